"""
Artificial one-way latency for outgoing messages.
Both the server and the client push every send through a LatencyEmulator.
Every message gets its own timer, so two sends in quick succession are not
guaranteed to arrive in order.
"""

import asyncio
from typing import Any, Optional, Set

import websockets

from coin_arena.shared.constants import SIMULATED_LATENCY


class DelayedMessage:
    """A message waiting for its delivery time."""
    def __init__(self, websocket: Any, message: str):
        self.websocket = websocket
        self.message = message
        self.handle: Optional[asyncio.TimerHandle] = None


class LatencyEmulator:
    """
    Fire-and-forget delayed dispatch on top of the running event loop.

    send() returns straight away; the actual websocket send happens after
    `delay` seconds. Failed deliveries are dropped, never retried.
    """

    def __init__(self, delay: float = SIMULATED_LATENCY, name: str = "LATENCY"):
        self.delay = delay
        self.name = name
        self.closed = False
        self._scheduled: Set[DelayedMessage] = set()
        self._in_flight: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Deliveries that are scheduled or currently being sent."""
        return len(self._scheduled) + len(self._in_flight)

    def send(self, websocket: Any, message: str, delay: Optional[float] = None):
        """Schedule `message` for `websocket`. Must be called from the loop thread."""
        if self.closed:
            return

        delay = self.delay if delay is None else delay
        loop = asyncio.get_running_loop()
        delayed = DelayedMessage(websocket, message)
        delayed.handle = loop.call_later(delay, self._deliver, delayed)
        self._scheduled.add(delayed)

    def _deliver(self, delayed: DelayedMessage):
        self._scheduled.discard(delayed)
        task = asyncio.get_running_loop().create_task(self._dispatch(delayed))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _dispatch(self, delayed: DelayedMessage):
        try:
            await delayed.websocket.send(delayed.message)
        except websockets.exceptions.ConnectionClosed:
            pass
        except Exception as e:
            print(f"[{self.name}] Dropped delayed message: {e!r}")

    def close(self):
        """Throw away everything still waiting. Nothing scheduled runs afterwards."""
        self.closed = True
        for delayed in self._scheduled:
            if delayed.handle is not None:
                delayed.handle.cancel()
        self._scheduled.clear()
        for task in self._in_flight:
            task.cancel()
        self._in_flight.clear()
