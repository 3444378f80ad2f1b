"""
Answer pool construction.
"""

from fichy_engine.constants import HOUSE_ANSWER_PREFIX
from fichy_engine.models import Question
from fichy_engine.pool import build_answer_pool, is_correct_answer, shuffle_pool

BONES = Question(question="How many bones?", answer="206", hint="")


def test_one_entry_per_author_and_no_house_when_someone_is_right():
    answers = {"p1": "206", "p2": "207", "p3": "206"}

    pool = build_answer_pool(answers, BONES, seed=1)

    assert len(pool) == 3
    assert {a.text for a in pool} == {"206", "207"}
    assert {a.author_id for a in pool} == {"p1", "p2", "p3"}
    assert all(a.is_correct == (a.text == "206") for a in pool)
    assert not any(a.id.startswith(HOUSE_ANSWER_PREFIX) for a in pool)


def test_house_answer_added_when_nobody_is_right():
    pool = build_answer_pool({"p1": "200", "p2": "???"}, BONES, seed=1)

    house = [a for a in pool if a.author_id is None]
    assert len(pool) == 3
    assert len(house) == 1
    assert house[0].is_correct
    assert house[0].text == "206"
    assert house[0].id.startswith(HOUSE_ANSWER_PREFIX)


def test_grading_ignores_case_and_whitespace():
    assert is_correct_answer("  Paris ", "paris")
    assert is_correct_answer("new   york", "New York")
    assert not is_correct_answer("Pari", "Paris")


def test_pool_ids_are_unique_and_not_player_ids():
    pool = build_answer_pool({"p1": "1", "p2": "2", "p3": "3"}, BONES)

    ids = [a.id for a in pool]
    assert len(set(ids)) == len(ids)
    assert not set(ids) & {"p1", "p2", "p3"}


def test_seeded_shuffle_is_deterministic():
    pool = build_answer_pool({f"p{i}": str(i) for i in range(6)}, BONES, seed=3)

    first = shuffle_pool(pool, seed=42)
    second = shuffle_pool(pool, seed=42)

    assert [a.id for a in first] == [a.id for a in second]
    assert sorted(a.id for a in first) == sorted(a.id for a in pool)
