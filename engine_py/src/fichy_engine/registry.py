"""
In-memory room registry.
"""

import logging
import random
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from .config import GameConfig, default_config
from .constants import CREATE_ROOM_CODE_ATTEMPTS, Phase
from .errors import GameAlreadyStarted, GameError, RoomFull, RoomNotFound
from .models import Player, RoomState
from .presence import find_rejoin_candidate, rejoin_player

logger = logging.getLogger(__name__)


@dataclass
class JoinResult:
    """Outcome of a successful join."""
    room: RoomState
    player: Player
    rejoin: bool = False
    previous_id: Optional[str] = None
    previous_host_id: Optional[str] = None


class RoomRegistry:
    """Owns every live room, keyed by room code."""

    def __init__(self, config: GameConfig = default_config, rng: Optional[random.Random] = None):
        self.config = config
        self.rooms: Dict[str, RoomState] = {}
        self._rng = rng or random.SystemRandom()

    def __len__(self) -> int:
        return len(self.rooms)

    def generate_code(self) -> str:
        """Draw a room code not used by any live room."""
        for _ in range(CREATE_ROOM_CODE_ATTEMPTS):
            code = "".join(
                self._rng.choice(self.config.code_alphabet)
                for _ in range(self.config.code_length)
            )
            if code not in self.rooms:
                return code
            logger.warning(f"Room code collision detected, regenerating: {code}")
        raise GameError("Unable to create a room code right now.")

    def get_room(self, code: str) -> Optional[RoomState]:
        return self.rooms.get(code)

    def require_room(self, code: str) -> RoomState:
        room = self.rooms.get(code)
        if room is None:
            raise RoomNotFound(code)
        return room

    def find_player_room(self, player_id: str) -> Optional[RoomState]:
        """Room that currently has ``player_id`` as a player key."""
        for room in self.rooms.values():
            if player_id in room.players:
                return room
        return None

    def create_room(self, connection_id: str, player_name: str) -> RoomState:
        """Create a lobby with its creator as the only player and host."""
        code = self.generate_code()
        host = Player(
            id=connection_id,
            name=player_name.strip(),
            chips=self.config.starting_chips
        )
        room = RoomState(code=code, host_id=connection_id, players={connection_id: host}, phase=Phase.LOBBY)
        self.rooms[code] = room
        logger.info(f"Created room {code} for {host.name} ({connection_id})")
        return room

    def join_room(self, code: str, connection_id: str, player_name: str) -> JoinResult:
        """
        Admit a player, or reconnect one who left under the same name.

        Raises:
            RoomNotFound: Unknown code
            GameAlreadyStarted: New name while the game is running
            RoomFull: Room already at capacity
        """
        room = self.require_room(code)

        candidate = find_rejoin_candidate(room, player_name)
        if candidate is not None:
            previous_id = candidate.id
            previous_host_id = room.host_id
            player = rejoin_player(room, previous_id, connection_id)
            room.touch()
            return JoinResult(
                room=room,
                player=player,
                rejoin=True,
                previous_id=previous_id,
                previous_host_id=previous_host_id
            )

        if room.phase != Phase.LOBBY:
            raise GameAlreadyStarted(
                "Game already started! If you were playing, rejoin with the same name."
            )
        if len(room.players) >= self.config.max_players:
            raise RoomFull(f"Room is full ({self.config.max_players} players max).")

        player = Player(
            id=connection_id,
            name=player_name.strip(),
            chips=self.config.starting_chips
        )
        previous_host_id = room.host_id
        room.players[connection_id] = player
        host = room.players.get(room.host_id) if room.host_id else None
        if host is None or not host.connected:
            room.host_id = connection_id
            logger.info(f"Host of room {code} moved to newcomer {connection_id}")
        room.touch()
        logger.info(f"Player {player.name} ({connection_id}) joined room {code}")
        return JoinResult(room=room, player=player, previous_host_id=previous_host_id)

    def reap_idle(self, max_idle: float, now: Optional[float] = None) -> List[str]:
        """
        Drop rooms nobody is connected to and that saw no activity for ``max_idle`` seconds.

        Returns:
            Codes of the removed rooms
        """
        now = time.monotonic() if now is None else now
        stale = [
            code for code, room in self.rooms.items()
            if not room.connected_players() and now - room.last_activity >= max_idle
        ]
        for code in stale:
            room = self.rooms.pop(code)
            room.clear_timer()
            logger.info(f"Reaped idle room {code}")
        return stale

    def close(self):
        """Cancel every pending deadline; used on shutdown."""
        for room in self.rooms.values():
            room.clear_timer()
