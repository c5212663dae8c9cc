"""Pygame client. Only interpolation is importable without pygame."""
