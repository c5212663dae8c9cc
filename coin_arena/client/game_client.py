"""
Main game client for Coin Arena.
Reads keys, ships intents, feeds server messages to the reconciler and draws
whatever it says at display rate.
"""

import pygame
import sys
import time
from typing import Optional

from coin_arena.shared.constants import (
    WORLD_WIDTH, WORLD_HEIGHT, CLIENT_FPS, SIMULATED_LATENCY, MIN_PLAYERS
)
from coin_arena.shared.protocol import Message, MessageType, InputDirection

from coin_arena.client.network import NetworkClient
from coin_arena.client.renderer import GameRenderer, short_label
from coin_arena.client.interpolation import StateReconciler


class ClientState:
    """Client-side screen state."""
    CONNECTING = "connecting"
    PLAYING = "playing"
    DISCONNECTED = "disconnected"


KEY_DIRECTIONS = {
    pygame.K_UP: InputDirection.UP, pygame.K_w: InputDirection.UP,
    pygame.K_DOWN: InputDirection.DOWN, pygame.K_s: InputDirection.DOWN,
    pygame.K_LEFT: InputDirection.LEFT, pygame.K_a: InputDirection.LEFT,
    pygame.K_RIGHT: InputDirection.RIGHT, pygame.K_d: InputDirection.RIGHT,
}

# How long the winner banner stays up if the reset never shows
GAME_OVER_BANNER_SECONDS = 3.0


class CoinArenaClient:
    """Main game client class."""

    def __init__(self, uri: Optional[str] = None):
        self.uri = uri

        pygame.init()
        pygame.display.set_caption("Coin Arena")
        self.screen = pygame.display.set_mode((WORLD_WIDTH, WORLD_HEIGHT))
        self.clock = pygame.time.Clock()
        # Held keys repeat like a browser keydown would
        pygame.key.set_repeat(150, 30)

        self.renderer = GameRenderer(self.screen)
        self.network = NetworkClient(uri)
        self.reconciler = StateReconciler()

        self.state = ClientState.CONNECTING
        self.running = True

        self.winner_label: Optional[str] = None
        self.winner_shown_at = 0.0

    def start(self):
        print("[CLIENT] Starting")
        self.network.connect()
        self.run()

    def rejoin(self):
        """Reconnect as a brand new player."""
        print("[CLIENT] Rejoining...")
        self.network.disconnect()
        self.reconciler.clear()
        self.winner_label = None
        self.state = ClientState.CONNECTING
        self.network = NetworkClient(self.uri)
        self.network.connect()

    def run(self):
        """Main game loop."""
        while self.running:
            self.handle_events()
            self.process_network_messages()

            # Smoothing runs every frame whether or not anything arrived
            self.reconciler.step()

            self.render()
            pygame.display.flip()
            self.clock.tick(CLIENT_FPS)

        self.cleanup()

    def handle_events(self):
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False

            elif event.type == pygame.KEYDOWN:
                direction = KEY_DIRECTIONS.get(event.key)
                if direction is not None:
                    self.network.send_input(direction)
                elif event.key == pygame.K_ESCAPE:
                    self.running = False
                elif event.key == pygame.K_SPACE and self.state == ClientState.DISCONNECTED:
                    self.rejoin()

    def process_network_messages(self):
        for message in self.network.get_messages():
            self.handle_server_message(message)

        if not self.network.connected and self.state == ClientState.PLAYING:
            self.state = ClientState.DISCONNECTED

    def handle_server_message(self, message: Message):
        if message.type == MessageType.GAME_OVER:
            winner = message.data.get("winner") if isinstance(message.data, dict) else None
            if winner:
                self.winner_label = short_label(winner, self.network.player_id)
                self.winner_shown_at = time.time()
                print(f"[CLIENT] {self.winner_label} won the game!")
            return

        if message.type == MessageType.GAME_RESET:
            self.winner_label = None
            print("[CLIENT] Game has been reset.")

        if self.reconciler.apply_message(message) and message.type == MessageType.CURRENT_PLAYERS:
            self.state = ClientState.PLAYING

    def render(self):
        if self.state == ClientState.CONNECTING:
            self.renderer.render_connecting()
        elif self.state == ClientState.DISCONNECTED:
            self.renderer.render_disconnected()
        else:
            self.render_game()

        self.renderer.render_latency_indicator(int(SIMULATED_LATENCY * 2 * 1000))

    def render_game(self):
        self.renderer.render_background()

        for i, coin in enumerate(self.reconciler.coins):
            self.renderer.render_coin(coin.position, pulse_offset=i * 0.5)

        local_id = self.network.player_id
        for player_id, entity in self.reconciler.entities.items():
            self.renderer.render_player(
                entity.current_position,
                entity.color,
                short_label(player_id, local_id),
                entity.score,
                is_local=player_id == local_id
            )

        self.renderer.render_scoreboard(self.reconciler.scoreboard(), local_id)

        if len(self.reconciler.entities) < MIN_PLAYERS:
            self.renderer.render_waiting(len(self.reconciler.entities), MIN_PLAYERS)

        if self.winner_label is not None:
            if time.time() - self.winner_shown_at > GAME_OVER_BANNER_SECONDS:
                self.winner_label = None
            else:
                self.renderer.render_game_over(self.winner_label)

    def cleanup(self):
        print("[CLIENT] Shutting down...")
        self.network.disconnect()
        pygame.quit()


def main():
    """Entry point for the client. Optional first argument: server URI."""
    uri = sys.argv[1] if len(sys.argv) > 1 else None

    print("=" * 50)
    print("  COIN ARENA - Game Client")
    print("=" * 50)

    client = CoinArenaClient(uri)
    client.start()


if __name__ == "__main__":
    main()
