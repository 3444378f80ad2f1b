"""
Player presence: disconnects, host migration and rejoin-by-name.

Presence changes are independent of the room phase.
"""

import logging
from typing import Optional

from .constants import normalize_name
from .models import Player, RoomState

logger = logging.getLogger(__name__)


def find_rejoin_candidate(state: RoomState, player_name: str) -> Optional[Player]:
    """Return the disconnected player whose name matches, if any."""
    key = normalize_name(player_name)
    for player in state.players.values():
        if not player.connected and normalize_name(player.name) == key:
            return player
    return None


def promote_host(state: RoomState) -> Optional[str]:
    """
    Hand the host role to the first connected player.

    Returns:
        The new host id, or None when nobody is connected (host unchanged).
    """
    for player in state.players.values():
        if player.connected and player.id != state.host_id:
            state.host_id = player.id
            return player.id
    return None


def disconnect_player(state: RoomState, player_id: str) -> Optional[str]:
    """
    Mark a player as disconnected and migrate the host role if needed.

    Args:
        state: Room the player belongs to
        player_id: Connection id that went away

    Returns:
        The new host id if the host role moved, otherwise None
    """
    player = state.players.get(player_id)
    if player is None:
        return None

    player.connected = False
    logger.info(f"Player {player.name} ({player_id}) disconnected from room {state.code}")

    if state.host_id == player_id:
        new_host = promote_host(state)
        if new_host:
            logger.info(f"Host of room {state.code} moved to {new_host}")
        else:
            logger.info(f"Room {state.code} has no connected player to host")
        return new_host
    return None


def rejoin_player(state: RoomState, old_id: str, new_id: str) -> Player:
    """
    Move a disconnected player's identity onto a new connection id.

    Precondition: ``old_id`` is a disconnected player of the room and
    ``new_id`` is not yet used in it.

    Every reference to ``old_id`` moves in one step: the players key, the
    host pointer, this round's answer and bet entries, and answer pool
    authorship. Chips are untouched. If the room has no connected host the
    rejoining player takes the role.

    Returns:
        The migrated player
    """
    player = state.players.get(old_id)
    if player is None or player.connected:
        raise ValueError(f"No disconnected player {old_id} in room {state.code}")
    if new_id in state.players:
        raise ValueError(f"Connection {new_id} already belongs to room {state.code}")

    # Rebuild the players mapping so the migrated player keeps their position
    state.players = {
        (new_id if pid == old_id else pid): p for pid, p in state.players.items()
    }
    player.id = new_id
    player.connected = True

    if old_id in state.answers:
        state.answers[new_id] = state.answers.pop(old_id)
    if old_id in state.bets:
        state.bets[new_id] = state.bets.pop(old_id)
    for answer in state.answer_pool or []:
        if answer.author_id == old_id:
            answer.author_id = new_id

    host = state.players.get(state.host_id) if state.host_id else None
    if state.host_id == old_id or host is None or not host.connected:
        state.host_id = new_id

    logger.info(f"Player {player.name} rejoined room {state.code} ({old_id} -> {new_id})")
    return player
