"""Authoritative game server."""
