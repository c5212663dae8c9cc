"""
Connection registry: who is connected, and how to reach them.
The only place players are added to or removed from the world.
"""

import uuid
from typing import Any, Dict, Optional, Set

from coin_arena.shared.latency import LatencyEmulator
from coin_arena.shared.protocol import (
    Message,
    create_current_players_message, create_new_player_message,
    create_player_disconnected_message
)
from coin_arena.server.game_state import GameState, Player, random_color, random_position


class ConnectionRegistry:
    """
    Maps player ids to websockets and back. All outgoing traffic goes
    through the latency emulator from here.
    """

    def __init__(self, game_state: GameState, latency: LatencyEmulator):
        self.game_state = game_state
        self.latency = latency
        self.clients: Dict[str, Any] = {}  # player_id -> websocket
        self.websocket_to_player: Dict[Any, str] = {}  # websocket -> player_id
        self._issued_ids: Set[str] = set()

    def __len__(self):
        return len(self.clients)

    def allocate_id(self) -> str:
        """Short id, never handed out twice in this process."""
        while True:
            player_id = uuid.uuid4().hex[:8]
            if player_id not in self._issued_ids:
                self._issued_ids.add(player_id)
                return player_id

    def player_for(self, websocket: Any) -> Optional[str]:
        return self.websocket_to_player.get(websocket)

    def join(self, websocket: Any) -> Player:
        """Register a new connection as a player and tell everyone about it."""
        player_id = self.allocate_id()
        rng = self.game_state.rng
        player = self.game_state.add_player(player_id, random_color(rng), random_position(rng))

        self.clients[player_id] = websocket
        self.websocket_to_player[websocket] = player_id

        print(f"[REGISTRY] Player {player_id} joined. Total players: {len(self.clients)}")

        snapshot = self.game_state.get_snapshot()
        self.send_to(player_id, create_current_players_message(snapshot, player_id))
        self.broadcast(create_new_player_message(player.to_state()), exclude=player_id)
        return player

    def leave(self, websocket: Any) -> Optional[str]:
        """Forget a connection. Returns the player id, None if it was unknown."""
        player_id = self.websocket_to_player.pop(websocket, None)
        if player_id is None:
            return None

        self.clients.pop(player_id, None)
        self.game_state.remove_player(player_id)

        print(f"[REGISTRY] Player {player_id} disconnected. Total players: {len(self.clients)}")

        self.broadcast(create_player_disconnected_message(player_id))
        return player_id

    def send_to(self, player_id: str, message: Message):
        """Send a message to a specific client with simulated latency."""
        websocket = self.clients.get(player_id)
        if websocket is None:
            return
        self.latency.send(websocket, message.to_json())

    def broadcast(self, message: Message, exclude: Optional[str] = None):
        """Broadcast a message to all clients with simulated latency."""
        json_msg = message.to_json()
        for player_id, websocket in self.clients.items():
            if player_id != exclude:
                self.latency.send(websocket, json_msg)
