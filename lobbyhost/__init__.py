"""Dedicated game server host: fleet session models and messages, a lobby server-to-server client and the server lifecycle."""

__version__ = "0.1.0"
__all__ = ["game_mode", "messages", "policies", "process", "requests", "s2s"]