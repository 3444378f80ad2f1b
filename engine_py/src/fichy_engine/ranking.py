# engine_py/src/fichy_engine/ranking.py

from typing import List

from .events import RankingEntryView
from .models import RoomState


def rank_players(state: RoomState) -> List[RankingEntryView]:
    """
    Final standings, richest first.

    The sort is stable, so players tied on chips keep their join order.

    Args:
        state: The finished RoomState.

    Returns:
        One entry per player with a 1-based position.
    """
    ordered = sorted(state.players.values(), key=lambda p: p.chips, reverse=True)
    return [
        RankingEntryView(
            id=player.id,
            name=player.name,
            chips=player.chips,
            connected=player.connected,
            position=index + 1
        )
        for index, player in enumerate(ordered)
    ]
