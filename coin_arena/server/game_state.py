"""
Server-side game state manager: authoritative players, coins, scores.
Single source of truth for all mutable game data. Everything in here runs on
the server's event loop thread, one call at a time, so there is no locking.
"""

import time
import random
from collections import deque
from enum import Enum
from typing import Deque, Dict, List, Optional, Tuple
from dataclasses import dataclass

from coin_arena.shared.constants import (
    WORLD_WIDTH, WORLD_HEIGHT, PLAYER_STEP, PLAYER_SPAWN_MARGIN,
    PICKUP_THRESHOLD_SQ, MIN_PLAYERS, WIN_SCORE, POST_RESET_PAUSE
)
from coin_arena.shared.protocol import (
    Vector2, PlayerState, WorldSnapshot, InputDirection
)
from coin_arena.server.coin_spawner import Coin, CoinSpawner


class Phase(str, Enum):
    LOBBY = "lobby"          # not enough players, intents do nothing
    ACTIVE = "active"
    RESOLVING = "resolving"  # someone won, waiting for the reset


@dataclass
class Player:
    """Server-side player representation."""
    id: str
    color: str
    position: Vector2
    score: int = 0

    def to_state(self) -> PlayerState:
        """Convert to PlayerState for network transmission."""
        return PlayerState(
            id=self.id,
            color=self.color,
            position=self.position.copy(),
            score=self.score
        )


def random_color(rng: random.Random) -> str:
    return "#%06x" % rng.randrange(0x1000000)


def random_position(rng: random.Random, margin: int = PLAYER_SPAWN_MARGIN) -> Vector2:
    return Vector2(
        rng.randrange(margin, WORLD_WIDTH - margin),
        rng.randrange(margin, WORLD_HEIGHT - margin)
    )


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class GameState:
    """
    Authoritative game state manager.
    All game logic and validation happens here; the server only moves
    messages in and out.
    """

    def __init__(self, rng: Optional[random.Random] = None,
                 spawner: Optional[CoinSpawner] = None,
                 now: Optional[float] = None):
        self.rng = rng or random.Random()
        self.spawner = spawner or CoinSpawner(rng=self.rng)

        # dicts keep insertion order, so iteration follows join order
        self.players: Dict[str, Player] = {}
        self.coins: List[Coin] = []
        self.pending_intents: Deque[Tuple[str, InputDirection]] = deque()

        self.version: int = 0
        self.sequence: int = 0
        self.paused_until: float = 0.0
        self.resolving: bool = False

        # One coin on the map from the start, the next one a full interval later
        now = time.time() if now is None else now
        self.coins.append(self.spawner.spawn([]))
        self.spawner.reschedule(now)

    # ------------------------------------------------------------------
    # Presence
    # ------------------------------------------------------------------

    def add_player(self, player_id: str, color: str, position: Vector2) -> Player:
        """Add a new player to the game."""
        player = Player(id=player_id, color=color, position=position)
        self.players[player_id] = player
        return player

    def remove_player(self, player_id: str) -> Optional[Player]:
        """Remove a player from the game."""
        return self.players.pop(player_id, None)

    def get_player(self, player_id: str) -> Optional[Player]:
        """Get a player by ID."""
        return self.players.get(player_id)

    @property
    def phase(self) -> Phase:
        if self.resolving:
            return Phase.RESOLVING
        if len(self.players) < MIN_PLAYERS:
            return Phase.LOBBY
        return Phase.ACTIVE

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    def queue_intent(self, player_id: str, direction: InputDirection):
        """
        Accept an intent; it takes effect on the next tick. Intents that arrive
        outside the active phase are accepted and dropped on the spot.
        """
        if self.phase != Phase.ACTIVE:
            return
        self.pending_intents.append((player_id, direction))

    def apply_intents(self):
        """Drain the intent queue in receipt order."""
        movable = self.phase == Phase.ACTIVE

        while self.pending_intents:
            player_id, direction = self.pending_intents.popleft()
            player = self.players.get(player_id)
            if not movable or player is None:
                continue

            pos = player.position
            if direction == InputDirection.UP:
                pos.y = clamp(pos.y - PLAYER_STEP, 0, WORLD_HEIGHT)
            elif direction == InputDirection.DOWN:
                pos.y = clamp(pos.y + PLAYER_STEP, 0, WORLD_HEIGHT)
            elif direction == InputDirection.LEFT:
                pos.x = clamp(pos.x - PLAYER_STEP, 0, WORLD_WIDTH)
            elif direction == InputDirection.RIGHT:
                pos.x = clamp(pos.x + PLAYER_STEP, 0, WORLD_WIDTH)

    def update(self, now: float) -> List[Dict]:
        """
        Advance one tick. Returns the list of events that occurred.

        Event types:
          coin_collected  {coin_id, player_id, new_score}
          game_over       {winner_id}; nothing after it ran this tick
          coin_spawned    {coin_id, snapshot}; snapshot taken right after that coin
        """
        events: List[Dict] = []

        self.apply_intents()
        if self.resolving:
            return events

        # Pickups. A player grabs at most one coin per tick.
        for player in self.players.values():
            pos = player.position
            for index, coin in enumerate(self.coins):
                dx = pos.x - coin.position.x
                dy = pos.y - coin.position.y
                if dx * dx + dy * dy > PICKUP_THRESHOLD_SQ:
                    continue

                player.score += 1
                del self.coins[index]
                events.append({
                    "type": "coin_collected",
                    "coin_id": coin.id,
                    "player_id": player.id,
                    "new_score": player.score
                })

                if player.score >= WIN_SCORE:
                    self.resolving = True
                    events.append({"type": "game_over", "winner_id": player.id})
                    return events
                break

        # Scheduled spawns, catching up if ticks fell behind
        while self.spawner.is_due(now):
            coin = self.spawner.spawn(p.position for p in self.players.values())
            self.coins.append(coin)
            self.spawner.advance()
            events.append({
                "type": "coin_spawned",
                "coin_id": coin.id,
                "snapshot": self.get_snapshot()
            })

        return events

    def is_paused(self, now: float) -> bool:
        """True inside the quiet window right after a reset."""
        return now < self.paused_until

    def reset(self, now: float):
        """Start a new round with the same players."""
        self.version += 1

        for player in self.players.values():
            player.score = 0
            player.position = random_position(self.rng)

        self.coins.clear()
        self.pending_intents.clear()
        self.spawner.reschedule(now)
        self.resolving = False
        self.paused_until = now + POST_RESET_PAUSE

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def get_snapshot(self) -> WorldSnapshot:
        """
        Copy of the current world for network transmission. Every call gets a
        fresh sequence number.
        """
        self.sequence += 1
        return WorldSnapshot(
            players={pid: p.to_state() for pid, p in self.players.items()},
            coins=[c.to_state() for c in self.coins],
            version=self.version,
            sequence=self.sequence
        )
