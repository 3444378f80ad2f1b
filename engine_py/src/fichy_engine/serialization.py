"""
Public views of room state.

Nothing here leaks answer correctness or authorship before results.
"""

from typing import Dict, List

from .events import PlayerView, PoolEntryView, RevealedAnswerView, RoomUpdateEvent
from .models import Player, PooledAnswer, RoomState


def public_player(player: Player) -> PlayerView:
    return PlayerView(
        id=player.id,
        name=player.name,
        chips=player.chips,
        connected=player.connected
    )


def public_players(state: RoomState) -> List[PlayerView]:
    return [public_player(player) for player in state.players.values()]


def public_pool(pool: List[PooledAnswer]) -> List[PoolEntryView]:
    """Pool as shown during betting."""
    return [PoolEntryView(id=answer.id, text=answer.text) for answer in pool]


def revealed_pool(state: RoomState) -> List[RevealedAnswerView]:
    """Pool with correctness and authorship, for round results."""
    revealed = []
    for answer in state.answer_pool or []:
        author = state.players.get(answer.author_id) if answer.author_id else None
        revealed.append(RevealedAnswerView(
            id=answer.id,
            text=answer.text,
            is_correct=answer.is_correct,
            author_id=answer.author_id,
            author_name=author.name if author else None
        ))
    return revealed


def public_room_state(state: RoomState, total_rounds: int) -> RoomUpdateEvent:
    """The room-wide snapshot broadcast on membership and host changes."""
    return RoomUpdateEvent(
        code=state.code,
        state=state.phase,
        round=state.round,
        total=total_rounds,
        players=public_players(state),
        host_id=state.host_id
    )


def copy_bets(state: RoomState) -> Dict[str, Dict[str, int]]:
    return {player_id: dict(stakes) for player_id, stakes in state.bets.items()}
