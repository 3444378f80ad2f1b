"""
WebSocket transport for the Fichy game.
"""

from .server import ConnectionManager, create_app

__all__ = ["ConnectionManager", "create_app"]
