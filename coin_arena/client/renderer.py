"""
Pygame renderer for Coin Arena.
Draws players, coins and the odd banner. Positions come in already smoothed.
"""

import pygame
import math
from typing import List, Optional, Tuple

from coin_arena.shared.constants import (
    WORLD_WIDTH, WORLD_HEIGHT, PLAYER_SIZE, COIN_RADIUS, COIN_COLOR
)
from coin_arena.shared.protocol import Vector2


# Color definitions
BACKGROUND_COLOR = (0, 0, 0)
GRID_COLOR = (25, 25, 35)
TEXT_COLOR = (255, 255, 255)
LOCAL_OUTLINE_COLOR = (255, 255, 0)
LOBBY_BG_COLOR = (40, 40, 50)


def short_label(player_id: str, local_player_id: Optional[str]) -> str:
    return "You" if player_id == local_player_id else player_id[:4]


class GameRenderer:
    """Handles all Pygame rendering for the game."""

    def __init__(self, screen: pygame.Surface):
        self.screen = screen
        self.width = screen.get_width()
        self.height = screen.get_height()

        # Initialize fonts
        pygame.font.init()
        self.font_large = pygame.font.Font(None, 48)
        self.font_medium = pygame.font.Font(None, 36)
        self.font_small = pygame.font.Font(None, 20)

        self.title_text = self.font_large.render("COIN ARENA", True, COIN_COLOR)

    def render_background(self):
        """Render the game background with grid."""
        self.screen.fill(BACKGROUND_COLOR)

        grid_spacing = 50
        for x in range(0, WORLD_WIDTH + 1, grid_spacing):
            pygame.draw.line(self.screen, GRID_COLOR, (x, 0), (x, WORLD_HEIGHT))
        for y in range(0, WORLD_HEIGHT + 1, grid_spacing):
            pygame.draw.line(self.screen, GRID_COLOR, (0, y), (WORLD_WIDTH, y))

    def render_player(self, position: Vector2, color: str, label: str,
                      score: int, is_local: bool = False):
        """Render a player square centered on its position, label on top."""
        rect = pygame.Rect(0, 0, PLAYER_SIZE, PLAYER_SIZE)
        rect.center = (round(position.x), round(position.y))

        try:
            fill = pygame.Color(color)
        except ValueError:
            fill = pygame.Color(TEXT_COLOR)
        pygame.draw.rect(self.screen, fill, rect)

        if is_local:
            pygame.draw.rect(self.screen, LOCAL_OUTLINE_COLOR, rect, 2)

        name_surface = self.font_small.render(f"{label} ({score})", True, TEXT_COLOR)
        name_rect = name_surface.get_rect(centerx=rect.centerx, bottom=rect.top - 4)
        self.screen.blit(name_surface, name_rect)

    def render_coin(self, position: Vector2, pulse_offset: float = 0):
        """Render a coin with a slight pulse."""
        x, y = int(position.x), int(position.y)
        pulse = math.sin(pygame.time.get_ticks() / 200.0 + pulse_offset)
        radius = int(COIN_RADIUS + pulse)

        pygame.draw.circle(self.screen, COIN_COLOR, (x, y), radius)
        pygame.draw.circle(self.screen, (255, 255, 200), (x - 3, y - 3), 3)

    def render_scoreboard(self, rows: List[Tuple[str, int]], local_player_id: Optional[str]):
        """Small score panel in the top-left corner, best score first."""
        panel = pygame.Surface((140, 30 + len(rows) * 20), pygame.SRCALPHA)
        panel.fill((20, 20, 30, 200))
        self.screen.blit(panel, (10, 10))

        title = self.font_small.render("Scores", True, COIN_COLOR)
        self.screen.blit(title, (20, 16))

        for i, (player_id, score) in enumerate(rows):
            marker = "►" if player_id == local_player_id else " "
            text = f"{marker} {short_label(player_id, local_player_id)}: {score}"
            text_surface = self.font_small.render(text, True, TEXT_COLOR)
            self.screen.blit(text_surface, (20, 36 + i * 20))

    def render_waiting(self, player_count: int, required: int):
        """Banner shown while movement is still locked."""
        text = f"Waiting for players... ({player_count}/{required})"
        surface = self.font_medium.render(text, True, TEXT_COLOR)
        rect = surface.get_rect(centerx=self.width // 2, y=20)
        self.screen.blit(surface, rect)

    def render_game_over(self, winner_label: str):
        """Darken the arena and announce the winner until the reset lands."""
        overlay = pygame.Surface((self.width, self.height), pygame.SRCALPHA)
        overlay.fill((0, 0, 0, 160))
        self.screen.blit(overlay, (0, 0))

        verb = "win" if winner_label == "You" else "wins"
        winner_surface = self.font_large.render(f"{winner_label} {verb}!", True, COIN_COLOR)
        winner_rect = winner_surface.get_rect(center=(self.width // 2, self.height // 2))
        self.screen.blit(winner_surface, winner_rect)

    def render_connecting(self):
        """Render connecting screen."""
        self.screen.fill(LOBBY_BG_COLOR)

        title_rect = self.title_text.get_rect(centerx=self.width // 2, y=200)
        self.screen.blit(self.title_text, title_rect)

        dots = "." * ((pygame.time.get_ticks() // 500) % 4)
        connect_surface = self.font_medium.render(f"Connecting to server{dots}", True, TEXT_COLOR)
        connect_rect = connect_surface.get_rect(centerx=self.width // 2, y=280)
        self.screen.blit(connect_surface, connect_rect)

    def render_disconnected(self):
        """Render disconnected screen."""
        self.screen.fill((50, 30, 30))

        error_surface = self.font_large.render("Connection Lost!", True, (255, 100, 100))
        error_rect = error_surface.get_rect(centerx=self.width // 2, y=250)
        self.screen.blit(error_surface, error_rect)

        hint_surface = self.font_small.render("Press SPACE to rejoin or ESC to quit", True, (150, 150, 150))
        hint_rect = hint_surface.get_rect(centerx=self.width // 2, y=320)
        self.screen.blit(hint_surface, hint_rect)

    def render_latency_indicator(self, latency_ms: int):
        """Show the emulated round trip in the corner."""
        latency_surface = self.font_small.render(f"Latency: ~{latency_ms}ms RTT", True, (255, 100, 100))
        self.screen.blit(latency_surface, (self.width - 150, self.height - 20))
