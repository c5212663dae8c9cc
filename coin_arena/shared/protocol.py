"""
Network protocol definitions for client-server messages.
Message types, dataclasses, and helper factory functions.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
import json


class MessageType(str, Enum):
    """All possible message types in the protocol."""

    # Client -> Server messages
    INPUT = "input"                               # Movement intent

    # Server -> Client messages
    CURRENT_PLAYERS = "currentPlayers"            # Full snapshot, sent once at join
    NEW_PLAYER = "newPlayer"                      # Another player joined
    PLAYER_DISCONNECTED = "playerDisconnected"    # A player left
    STATE = "state"                               # Periodic authoritative snapshot
    GAME_RESET = "gameReset"                      # World reset, reinitialize fully
    GAME_OVER = "gameOver"                        # Somebody won the round


class InputDirection(str, Enum):
    """Movement input directions."""
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


@dataclass
class Vector2:
    """2D vector/position."""
    x: float
    y: float

    def copy(self) -> "Vector2":
        return Vector2(self.x, self.y)

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}

    @staticmethod
    def from_dict(data: Dict[str, float]) -> "Vector2":
        return Vector2(x=data["x"], y=data["y"])


@dataclass
class PlayerState:
    """State of a single player as seen on the wire."""
    id: str
    color: str
    position: Vector2
    score: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "color": self.color,
            "position": self.position.to_dict(),
            "score": self.score
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "PlayerState":
        return PlayerState(
            id=data["id"],
            color=data.get("color") or "#ffffff",
            position=Vector2.from_dict(data["position"]),
            score=data.get("score") or 0
        )


@dataclass
class CoinState:
    """State of a single coin. Flattened to {id, x, y} on the wire."""
    id: str
    position: Vector2

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "x": self.position.x,
            "y": self.position.y
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "CoinState":
        return CoinState(
            id=data["id"],
            position=Vector2(x=data["x"], y=data["y"])
        )


@dataclass
class WorldSnapshot:
    """
    Complete authoritative world state at a point in time.

    `version` only changes on reset; `sequence` grows with every snapshot the
    server takes, so receivers can drop deliveries that arrive late.
    """
    players: Dict[str, PlayerState] = field(default_factory=dict)
    coins: List[CoinState] = field(default_factory=list)
    version: int = 0
    sequence: int = 0

    def ordering_key(self):
        return (self.version, self.sequence)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "players": {pid: p.to_dict() for pid, p in self.players.items()},
            "coins": [c.to_dict() for c in self.coins],
            "version": self.version,
            "sequence": self.sequence
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "WorldSnapshot":
        """
        Parse a snapshot payload. Entries that are structurally broken
        (a player without a position, a coin without coordinates) are skipped.
        Raises ValueError when version or sequence is not an integer, since
        such a snapshot cannot be ordered against the others.
        """
        version = data.get("version", 0)
        sequence = data.get("sequence", 0)
        for value in (version, sequence):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"snapshot ordering fields must be integers, got {value!r}")

        raw_players = data.get("players")
        if not isinstance(raw_players, dict):
            raw_players = {}

        players: Dict[str, PlayerState] = {}
        for pid, raw in raw_players.items():
            if not isinstance(raw, dict) or not isinstance(raw.get("position"), dict):
                continue
            try:
                raw = dict(raw, id=raw.get("id", pid))
                players[pid] = PlayerState.from_dict(raw)
            except (KeyError, TypeError):
                continue

        coins: List[CoinState] = []
        for raw in data.get("coins") or []:
            try:
                coins.append(CoinState.from_dict(raw))
            except (KeyError, TypeError):
                continue

        return WorldSnapshot(
            players=players,
            coins=coins,
            version=version,
            sequence=sequence
        )


class Message:
    """Base message class for all network communication."""

    def __init__(self, msg_type: MessageType, data: Any = None):
        self.type = msg_type
        self.data = data if data is not None else {}

    def to_json(self) -> str:
        """Serialize message to JSON string."""
        return json.dumps({
            "type": self.type.value,
            "data": self.data
        })

    @staticmethod
    def from_json(json_str: str) -> "Message":
        """Deserialize message from JSON string.

        Raises json.JSONDecodeError, KeyError or ValueError on garbage.
        """
        obj = json.loads(json_str)
        if not isinstance(obj, dict):
            raise ValueError("message must be a JSON object")
        return Message(
            msg_type=MessageType(obj["type"]),
            data=obj.get("data")
        )


# =============================================================================
# MESSAGE FACTORIES - Convenience functions to create specific messages
# =============================================================================

def create_input_message(direction: InputDirection) -> Message:
    """Create a movement intent message."""
    return Message(MessageType.INPUT, {"dir": direction.value})


def create_current_players_message(snapshot: WorldSnapshot, player_id: str) -> Message:
    """Full snapshot for a freshly joined player, tagged with their own id."""
    data = snapshot.to_dict()
    data["player_id"] = player_id
    return Message(MessageType.CURRENT_PLAYERS, data)


def create_new_player_message(player: PlayerState) -> Message:
    return Message(MessageType.NEW_PLAYER, player.to_dict())


def create_player_disconnected_message(player_id: str) -> Message:
    return Message(MessageType.PLAYER_DISCONNECTED, player_id)


def create_state_message(snapshot: WorldSnapshot) -> Message:
    """Create a periodic state message."""
    return Message(MessageType.STATE, snapshot.to_dict())


def create_game_reset_message(snapshot: WorldSnapshot) -> Message:
    return Message(MessageType.GAME_RESET, snapshot.to_dict())


def create_game_over_message(winner_id: str) -> Message:
    """Create a game over message."""
    return Message(MessageType.GAME_OVER, {"winner": winner_id})


def parse_direction(data: Any) -> Optional[InputDirection]:
    """Pull a direction out of an input payload, None if it is not a valid one."""
    if not isinstance(data, dict):
        return None
    try:
        return InputDirection(data.get("dir"))
    except ValueError:
        return None
