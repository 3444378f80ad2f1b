"""
Answer pool construction and shuffling.
"""

import random
import uuid
from typing import Dict, List, Optional

from .constants import HOUSE_ANSWER_PREFIX, normalize_answer
from .models import PooledAnswer, Question


def is_correct_answer(text: str, canonical: str) -> bool:
    """Grade a submitted answer against the canonical one."""
    return normalize_answer(text) == normalize_answer(canonical)


def new_answer_id() -> str:
    return str(uuid.uuid4())[:8]


def shuffle_pool(pool: List[PooledAnswer], seed: Optional[int] = None) -> List[PooledAnswer]:
    """
    Shuffle an answer pool deterministically if seed is provided.

    Args:
        pool: Pooled answers in submission order
        seed: Optional seed for deterministic shuffling

    Returns:
        Shuffled copy of the pool
    """
    pool_copy = pool.copy()

    if seed is not None:
        rng = random.Random(seed)
        rng.shuffle(pool_copy)
    else:
        random.shuffle(pool_copy)

    return pool_copy


def build_answer_pool(
    answers: Dict[str, str],
    question: Question,
    seed: Optional[int] = None
) -> List[PooledAnswer]:
    """
    Build the betting pool for a round.

    Every submitted answer becomes its own entry, so two players writing the
    same text produce two entries with different authors. When nobody wrote
    the canonical answer a house entry (no author) carries it instead.

    Args:
        answers: Mapping of player_id to submitted text
        question: The round's question
        seed: Optional seed for the final shuffle

    Returns:
        Shuffled list of pooled answers
    """
    pool = [
        PooledAnswer(
            id=new_answer_id(),
            text=text,
            is_correct=is_correct_answer(text, question.answer),
            author_id=player_id
        )
        for player_id, text in answers.items()
    ]

    if not any(answer.is_correct for answer in pool):
        pool.append(PooledAnswer(
            id=f"{HOUSE_ANSWER_PREFIX}{new_answer_id()}",
            text=question.answer,
            is_correct=True,
            author_id=None
        ))

    return shuffle_pool(pool, seed)
