"""
Authoritative game server for Coin Arena.
Owns the tick loop, the reset timer and the websocket endpoint.
"""

import asyncio
import json
import time
from typing import Any, Optional

import websockets

from coin_arena.shared.constants import (
    SERVER_HOST, SERVER_PORT, SIMULATED_LATENCY, MIN_PLAYERS,
    SERVER_TICK_RATE, RESET_DELAY, WIN_SCORE
)
from coin_arena.shared.latency import LatencyEmulator
from coin_arena.shared.protocol import (
    Message, MessageType, parse_direction,
    create_state_message, create_game_over_message, create_game_reset_message
)
from coin_arena.server.game_state import GameState
from coin_arena.server.registry import ConnectionRegistry


class GameServer:
    """
    Main game server class.
    Handles client connections and drives the authoritative game state.
    """

    def __init__(self, game_state: Optional[GameState] = None,
                 latency: Optional[LatencyEmulator] = None,
                 reset_delay: float = RESET_DELAY,
                 clock=time.time):
        self.clock = clock
        self.game_state = game_state or GameState(now=clock())
        self.latency = latency or LatencyEmulator(SIMULATED_LATENCY, name="SERVER")
        self.registry = ConnectionRegistry(self.game_state, self.latency)
        self.reset_delay = reset_delay
        self.reset_handle: Optional[asyncio.TimerHandle] = None
        self.running = False

        print(f"[SERVER] Initialized with {self.latency.delay * 1000:.0f}ms simulated latency")

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def process_message(self, websocket: Any, raw_message: str):
        """Handle one raw client message. Bad input is dropped."""
        try:
            message = Message.from_json(raw_message)
        except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
            print(f"[SERVER] Invalid message received: {e}")
            return

        player_id = self.registry.player_for(websocket)
        if player_id is None or message.type != MessageType.INPUT:
            return

        direction = parse_direction(message.data)
        if direction is None:
            return
        self.game_state.queue_intent(player_id, direction)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self, now: float):
        """One fixed-rate simulation step followed by the state broadcast."""
        events = self.game_state.update(now)

        for event in events:
            if event["type"] == "coin_collected":
                print(f"[SERVER] Player {event['player_id']} picked up {event['coin_id']}. "
                      f"Score: {event['new_score']}")

            elif event["type"] == "coin_spawned":
                self.registry.broadcast(create_state_message(event["snapshot"]))
                print(f"[SERVER] Scheduled spawn: {event['coin_id']}")

            elif event["type"] == "game_over":
                winner_id = event["winner_id"]
                print(f"[SERVER] Player {winner_id} reached {WIN_SCORE}, announcing winner")
                self.registry.broadcast(create_game_over_message(winner_id))
                self.schedule_reset()
                # Rest of this tick is skipped, broadcast included
                return

        if not self.game_state.is_paused(now):
            self.registry.broadcast(create_state_message(self.game_state.get_snapshot()))

    def schedule_reset(self):
        loop = asyncio.get_running_loop()
        self.reset_handle = loop.call_later(self.reset_delay, self.reset_game)

    def reset_game(self):
        """Reset the world and let everyone know."""
        self.reset_handle = None
        print("[SERVER] Resetting game, bumping version and repositioning players")

        self.game_state.reset(self.clock())
        snapshot = self.game_state.get_snapshot()
        self.registry.broadcast(create_game_reset_message(snapshot))
        self.registry.broadcast(create_state_message(snapshot))

    async def game_loop(self):
        """Main game loop - ticks at a fixed rate until stopped."""
        tick_interval = 1.0 / SERVER_TICK_RATE
        self.running = True

        while self.running:
            current_time = self.clock()

            try:
                self.tick(current_time)
            except Exception as e:
                # Never let one bad tick take the loop down
                print(f"[SERVER] Tick failed: {e!r}")

            elapsed = self.clock() - current_time
            await asyncio.sleep(max(0, tick_interval - elapsed))

    def stop(self):
        self.running = False
        if self.reset_handle is not None:
            self.reset_handle.cancel()
            self.reset_handle = None
        self.latency.close()

    # ------------------------------------------------------------------
    # Websocket plumbing
    # ------------------------------------------------------------------

    async def handle_connection(self, websocket: Any):
        """Handle a new WebSocket connection for its whole lifetime."""
        print(f"[SERVER] New connection from {websocket.remote_address}")
        self.registry.join(websocket)

        try:
            async for raw_message in websocket:
                self.process_message(websocket, raw_message)
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            self.registry.leave(websocket)

    async def start(self, host: str = SERVER_HOST, port: int = SERVER_PORT):
        """Start the game server."""
        print(f"[SERVER] Starting on ws://{host}:{port}")

        loop_task = asyncio.create_task(self.game_loop())

        # Ping disabled, keepalives would trip over the artificial latency
        try:
            async with websockets.serve(
                self.handle_connection,
                host,
                port,
                ping_interval=None,
                ping_timeout=None
            ):
                print("[SERVER] Listening for connections...")
                print(f"[SERVER] Movement unlocks once {MIN_PLAYERS} players are in")
                await asyncio.Future()  # Run forever
        finally:
            self.stop()
            loop_task.cancel()


async def main():
    """Entry point for the server."""
    server = GameServer()
    await server.start()


def run():
    print("=" * 50)
    print("  COIN ARENA - Authoritative Game Server")
    print("=" * 50)
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("[SERVER] Shutting down")


if __name__ == "__main__":
    run()
