"""Coin Arena: authoritative multiplayer coin collecting over websockets."""

__version__ = "1.0.0"
