"""
Coin placement and the spawn schedule.
"""

import random
from dataclasses import dataclass
from typing import Iterable, Optional

from coin_arena.shared.constants import (
    WORLD_WIDTH, WORLD_HEIGHT, PLAYER_RADIUS, COIN_RADIUS,
    COIN_SPAWN_MARGIN, COIN_SPAWN_BUFFER, COIN_SPAWN_ATTEMPTS, COIN_SPAWN_INTERVAL
)
from coin_arena.shared.protocol import Vector2, CoinState


@dataclass
class Coin:
    """Server-side coin representation."""
    id: str
    position: Vector2

    def to_state(self) -> CoinState:
        """Convert to CoinState for network transmission."""
        return CoinState(id=self.id, position=self.position.copy())


class CoinSpawner:
    """
    Hands out coins that keep clear of players, on a fixed schedule.

    The deadline advances by exactly `interval` per spawn, so a slow tick
    catches up instead of drifting.
    """

    def __init__(self, rng: Optional[random.Random] = None,
                 interval: float = COIN_SPAWN_INTERVAL,
                 max_attempts: int = COIN_SPAWN_ATTEMPTS):
        self.rng = rng or random.Random()
        self.interval = interval
        self.max_attempts = max_attempts
        self.next_spawn: float = 0.0
        self._next_id = 1  # never rewinds, not even on reset

    def reschedule(self, now: float):
        """First spawn one full interval from now."""
        self.next_spawn = now + self.interval

    def is_due(self, now: float) -> bool:
        return now >= self.next_spawn

    def advance(self):
        self.next_spawn += self.interval

    def random_position(self) -> Vector2:
        margin = COIN_SPAWN_MARGIN
        return Vector2(
            self.rng.randrange(margin, WORLD_WIDTH - margin),
            self.rng.randrange(margin, WORLD_HEIGHT - margin)
        )

    def find_position(self, player_positions: Iterable[Vector2]) -> Vector2:
        """Random spot at least radius+radius+buffer away from every player."""
        positions = list(player_positions)
        clearance_sq = (PLAYER_RADIUS + COIN_RADIUS + COIN_SPAWN_BUFFER) ** 2

        for _ in range(self.max_attempts):
            candidate = self.random_position()
            too_close = False
            for pos in positions:
                dx = candidate.x - pos.x
                dy = candidate.y - pos.y
                if dx * dx + dy * dy < clearance_sq:
                    too_close = True
                    break
            if not too_close:
                return candidate

        # Crowded map, give up on the clearance
        return self.random_position()

    def spawn(self, player_positions: Iterable[Vector2]) -> Coin:
        coin = Coin(f"coin{self._next_id}", self.find_position(player_positions))
        self._next_id += 1
        return coin
