"""
Round settlement: chip deltas from bets against the answer pool.
"""

from typing import Any, Dict, Iterable, List

from .models import Player, PooledAnswer


def coerce_stake(amount: Any) -> int:
    """Read a stake as an integer; anything unreadable counts as zero."""
    if isinstance(amount, bool):
        return 0
    try:
        return int(amount)
    except (TypeError, ValueError, OverflowError):
        return 0


def settle_bets(
    bets: Dict[str, Dict[str, Any]],
    pool: List[PooledAnswer],
    player_ids: Iterable[str]
) -> Dict[str, int]:
    """
    Compute every player's chip delta for a round.

    A stake on the correct answer wins the stake. A stake on a wrong answer
    is lost, and goes to that answer's author unless the author is the
    bettor or the house. Stakes on unknown answers or of zero or less are
    ignored.

    Args:
        bets: Mapping of bettor_id to {answer_id: stake}
        pool: The round's answer pool, with correctness and authorship
        player_ids: Players that get an entry even when nothing happened to them

    Returns:
        Mapping of player_id to summed delta
    """
    deltas = {player_id: 0 for player_id in player_ids}
    answers_by_id = {answer.id: answer for answer in pool}

    for bettor_id, stakes in bets.items():
        for answer_id, amount in (stakes or {}).items():
            stake = coerce_stake(amount)
            if stake <= 0:
                continue
            answer = answers_by_id.get(answer_id)
            if answer is None:
                continue

            if answer.is_correct:
                deltas[bettor_id] = deltas.get(bettor_id, 0) + stake
            else:
                deltas[bettor_id] = deltas.get(bettor_id, 0) - stake
                if answer.author_id and answer.author_id != bettor_id:
                    deltas[answer.author_id] = deltas.get(answer.author_id, 0) + stake

    return deltas


def apply_deltas(players: Dict[str, Player], deltas: Dict[str, int]):
    """Apply deltas to chip balances, flooring every balance at zero."""
    for player_id, delta in deltas.items():
        player = players.get(player_id)
        if player is not None:
            player.chips = max(0, player.chips + delta)
