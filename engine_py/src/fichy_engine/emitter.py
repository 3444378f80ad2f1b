"""
Outbound event delivery interface.
"""

from abc import ABC, abstractmethod

from .events import OutboundEvent
from .models import RoomState


class Emitter(ABC):
    """
    Where the engine sends events.

    Both methods must return without yielding to the event loop, so room
    mutations around them stay atomic.
    """

    @abstractmethod
    def send(self, player_id: str, event: OutboundEvent):
        """Unicast to one connection."""
        pass

    @abstractmethod
    def broadcast(self, room: RoomState, event: OutboundEvent):
        """Send to every connected player of the room."""
        pass
