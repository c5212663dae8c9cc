"""
Snapshot reconciliation and smoothing for the client.
The server is the only one that simulates; we just chase its positions.
Snapshots show up at network pace, step() runs at frame pace, and the two
never have to line up.
"""

from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass

from coin_arena.shared.constants import SMOOTHING_FACTOR
from coin_arena.shared.protocol import (
    Message, MessageType, Vector2, PlayerState, CoinState, WorldSnapshot
)


@dataclass
class VisualEntity:
    """
    What the client draws for one player: where it is on screen right now,
    and where the server last said it is.
    """
    entity_id: str
    current_position: Vector2
    target_position: Vector2
    color: str
    score: int = 0

    @staticmethod
    def from_state(state: PlayerState) -> "VisualEntity":
        # current == target, so a newcomer appears in place instead of sliding in
        return VisualEntity(
            entity_id=state.id,
            current_position=state.position.copy(),
            target_position=state.position.copy(),
            color=state.color,
            score=state.score
        )

    def retarget(self, state: PlayerState):
        self.target_position = state.position.copy()
        self.color = state.color or self.color
        self.score = state.score

    def step(self, alpha: float):
        """Close `alpha` of the remaining gap. Never overshoots for 0 < alpha <= 1."""
        cur, tgt = self.current_position, self.target_position
        cur.x += (tgt.x - cur.x) * alpha
        cur.y += (tgt.y - cur.y) * alpha


class StateReconciler:
    """
    Folds the authoritative stream into per-player visual state.

    Deliveries are independently delayed and can arrive out of order, so each
    snapshot is only applied if its (version, sequence) is not older than the
    last one applied.
    """

    def __init__(self, smoothing: float = SMOOTHING_FACTOR):
        if not 0 < smoothing <= 1:
            raise ValueError(f"smoothing factor must be in (0, 1], got {smoothing}")
        self.smoothing = smoothing
        self.entities: Dict[str, VisualEntity] = {}
        self.coins: List[CoinState] = []
        self.last_applied: Optional[Tuple[int, int]] = None
        # departed id -> last applied key when its disconnect notice arrived
        self.departed: Dict[str, Optional[Tuple[int, int]]] = {}

    @property
    def version(self) -> Optional[int]:
        return self.last_applied[0] if self.last_applied else None

    def is_stale(self, snapshot: WorldSnapshot) -> bool:
        return self.last_applied is not None and snapshot.ordering_key() < self.last_applied

    def apply_full(self, snapshot: WorldSnapshot) -> bool:
        """Join-time or reset snapshot: rebuild everything from scratch."""
        if self.is_stale(snapshot):
            return False

        self.last_applied = snapshot.ordering_key()
        self.coins = list(snapshot.coins)
        self.entities = {
            pid: VisualEntity.from_state(state)
            for pid, state in snapshot.players.items()
            if pid not in self.departed
        }
        self._forget_departed(snapshot)
        return True

    def apply_incremental(self, snapshot: WorldSnapshot) -> bool:
        """Periodic snapshot: merge targets, keep current positions."""
        if self.is_stale(snapshot):
            return False

        self.last_applied = snapshot.ordering_key()
        self.coins = list(snapshot.coins)

        for pid, state in snapshot.players.items():
            if pid in self.departed:
                continue
            entity = self.entities.get(pid)
            if entity is None:
                self.entities[pid] = VisualEntity.from_state(state)
            else:
                entity.retarget(state)

        for pid in [pid for pid in self.entities if pid not in snapshot.players]:
            del self.entities[pid]
        self._forget_departed(snapshot)
        return True

    def add_participant(self, state: PlayerState):
        if state.id in self.departed or state.id in self.entities:
            return
        self.entities[state.id] = VisualEntity.from_state(state)

    def remove_participant(self, player_id: str):
        # Ids are never reused, so a late snapshot must not bring this one back
        self.departed[player_id] = self.last_applied
        self.entities.pop(player_id, None)

    def apply_message(self, message: Message) -> bool:
        """
        Route a server message to the right update. Returns False for
        messages this class does not care about or could not use.
        """
        data = message.data
        if message.type in (MessageType.CURRENT_PLAYERS, MessageType.GAME_RESET):
            snapshot = self._parse(data)
            return snapshot is not None and self.apply_full(snapshot)

        if message.type == MessageType.STATE:
            snapshot = self._parse(data)
            return snapshot is not None and self.apply_incremental(snapshot)

        if message.type == MessageType.NEW_PLAYER:
            try:
                self.add_participant(PlayerState.from_dict(data))
            except (KeyError, TypeError, AttributeError):
                return False
            return True

        if message.type == MessageType.PLAYER_DISCONNECTED:
            if not isinstance(data, str):
                return False
            self.remove_participant(data)
            return True

        return False

    def _forget_departed(self, snapshot: WorldSnapshot):
        """
        Once a snapshot newer than the disconnect notice leaves an id out, every
        later snapshot will too, so the id no longer needs guarding.
        """
        key = snapshot.ordering_key()
        for pid, removed_at in list(self.departed.items()):
            if pid not in snapshot.players and (removed_at is None or key > removed_at):
                del self.departed[pid]

    @staticmethod
    def _parse(data) -> Optional[WorldSnapshot]:
        if not isinstance(data, dict):
            return None
        try:
            return WorldSnapshot.from_dict(data)
        except ValueError:
            return None

    def step(self):
        """One render frame worth of smoothing for every known player."""
        for entity in self.entities.values():
            entity.step(self.smoothing)

    def get_render_positions(self) -> Dict[str, Vector2]:
        return {pid: e.current_position.copy() for pid, e in self.entities.items()}

    def scoreboard(self) -> List[Tuple[str, int]]:
        """(player_id, score) pairs, best first. Ties keep join order."""
        rows = [(pid, e.score) for pid, e in self.entities.items()]
        return sorted(rows, key=lambda row: row[1], reverse=True)

    def clear(self):
        """Clear all interpolation data."""
        self.entities.clear()
        self.coins = []
        self.last_applied = None
        self.departed.clear()
