"""
WebSocket network client for Coin Arena.
Networking lives on its own asyncio loop in a background thread so the
pygame loop never waits on it. Outgoing intents are delayed through the
same LatencyEmulator the server uses.
"""

import asyncio
import json
import threading
from typing import Optional, List
from queue import Queue, Empty

import websockets

from coin_arena.shared.constants import SERVER_HOST, SERVER_PORT, SIMULATED_LATENCY
from coin_arena.shared.latency import LatencyEmulator
from coin_arena.shared.protocol import (
    Message, MessageType, InputDirection, create_input_message
)


class NetworkClient:
    """
    Handles WebSocket communication with the game server.
    The game thread talks to it only through the two queues.
    """

    def __init__(self, uri: Optional[str] = None, latency: float = SIMULATED_LATENCY):
        self.uri = uri or f"ws://{SERVER_HOST}:{SERVER_PORT}"
        self.websocket = None
        self.connected = False
        self.player_id: Optional[str] = None

        # Message queues for thread-safe communication
        self.incoming_messages: Queue = Queue()
        self.outgoing_messages: Queue = Queue()

        self.latency = LatencyEmulator(latency, name="NETWORK")

        # Threading
        self.network_thread: Optional[threading.Thread] = None
        self.running = False
        self.loop: Optional[asyncio.AbstractEventLoop] = None

    def connect(self):
        """Start connection to the server in a separate thread."""
        self.running = True
        self.network_thread = threading.Thread(
            target=self._run_network_loop,
            daemon=True
        )
        self.network_thread.start()

    def _run_network_loop(self):
        """Run the asyncio event loop for networking."""
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)

        try:
            self.loop.run_until_complete(self._connect_and_run())
        except Exception as e:
            print(f"[NETWORK] Error in network loop: {e}")
        finally:
            self.loop.close()

    async def _connect_and_run(self):
        """Connect to server and pump messages both ways."""
        print(f"[NETWORK] Connecting to {self.uri}...")

        try:
            async with websockets.connect(
                self.uri,
                ping_interval=None,
                ping_timeout=None
            ) as websocket:
                self.websocket = websocket
                self.connected = True
                print("[NETWORK] Connected!")

                await asyncio.gather(
                    self._receive_loop(),
                    self._send_loop()
                )
        except websockets.exceptions.ConnectionClosed as e:
            print(f"[NETWORK] Connection closed: {e}")
        except OSError as e:
            print(f"[NETWORK] Connection error: {e}")
        finally:
            self.connected = False
            self.latency.close()

    async def _receive_loop(self):
        """Parse server messages and hand them to the game thread."""
        try:
            async for raw_message in self.websocket:
                try:
                    message = Message.from_json(raw_message)
                except (json.JSONDecodeError, KeyError, ValueError) as e:
                    print(f"[NETWORK] Error parsing message: {e}")
                    continue

                if message.type == MessageType.CURRENT_PLAYERS and isinstance(message.data, dict):
                    self.player_id = message.data.get("player_id")
                    print(f"[NETWORK] Received player ID: {self.player_id}")

                self.incoming_messages.put(message)
        except websockets.exceptions.ConnectionClosed:
            print("[NETWORK] Connection closed by server")
        finally:
            self.connected = False

    async def _send_loop(self):
        """Move queued intents from the game thread into the latency emulator."""
        while self.running and self.connected:
            try:
                while True:
                    message = self.outgoing_messages.get_nowait()
                    self.latency.send(self.websocket, message.to_json())
            except Empty:
                pass

            await asyncio.sleep(0.005)

        if not self.running and self.websocket is not None:
            await self.websocket.close()

    def send_input(self, direction: InputDirection):
        """Queue an intent for the server."""
        if not self.connected:
            return
        self.outgoing_messages.put(create_input_message(direction))

    def get_messages(self) -> List[Message]:
        """Get all pending incoming messages (non-blocking)."""
        messages = []
        while True:
            try:
                messages.append(self.incoming_messages.get_nowait())
            except Empty:
                break
        return messages

    def disconnect(self):
        """Disconnect from the server."""
        self.running = False

        if self.network_thread and self.network_thread.is_alive():
            self.network_thread.join(timeout=1.0)
        self.connected = False
