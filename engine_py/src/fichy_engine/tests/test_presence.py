"""
Presence: disconnects, host migration and rejoin migration.
"""

import pytest

from fichy_engine.constants import Phase
from fichy_engine.models import Player, PooledAnswer, RoomState
from fichy_engine.presence import disconnect_player, find_rejoin_candidate, rejoin_player


def make_room():
    room = RoomState(code="ABCDE", host_id="p1", phase=Phase.BETTING, round=2)
    room.players = {
        "p1": Player(id="p1", name="Alice", chips=20),
        "p2": Player(id="p2", name="Bob", chips=12),
        "p3": Player(id="p3", name="Carol", chips=28),
    }
    room.answers = {"p1": "4", "p2": "3", "p3": "???"}
    room.bets = {"p2": {"x1": 5}}
    room.answer_pool = [
        PooledAnswer(id="x1", text="3", is_correct=False, author_id="p2"),
        PooledAnswer(id="x2", text="4", is_correct=True, author_id="p1"),
    ]
    return room


def test_host_disconnect_promotes_next_connected_player():
    room = make_room()

    new_host = disconnect_player(room, "p1")

    assert new_host == "p2"
    assert room.host_id == "p2"
    assert not room.players["p1"].connected


def test_non_host_disconnect_keeps_host():
    room = make_room()

    assert disconnect_player(room, "p3") is None
    assert room.host_id == "p1"


def test_last_disconnect_leaves_no_eligible_host():
    room = make_room()
    disconnect_player(room, "p2")
    disconnect_player(room, "p3")

    assert disconnect_player(room, "p1") is None
    assert room.host_id == "p1"


def test_rejoin_migrates_every_reference():
    room = make_room()
    disconnect_player(room, "p2")

    player = rejoin_player(room, "p2", "n2")

    assert player.id == "n2"
    assert player.connected
    assert player.chips == 12
    assert list(room.players) == ["p1", "n2", "p3"]
    assert room.answers["n2"] == "3" and "p2" not in room.answers
    assert room.bets["n2"] == {"x1": 5} and "p2" not in room.bets
    assert room.answer_pool[0].author_id == "n2"
    assert room.answer_pool[0].id == "x1"
    assert room.host_id == "p1"


def test_rejoin_of_host_moves_host_pointer():
    room = make_room()
    for pid in ("p2", "p3", "p1"):
        disconnect_player(room, pid)

    rejoin_player(room, "p1", "n1")

    assert room.host_id == "n1"


def test_rejoin_into_hostless_room_takes_host():
    room = make_room()
    for pid in ("p2", "p3", "p1"):
        disconnect_player(room, pid)

    rejoin_player(room, "p3", "n3")

    assert room.host_id == "n3"


def test_rejoin_requires_disconnected_player():
    room = make_room()

    with pytest.raises(ValueError):
        rejoin_player(room, "p1", "n1")
    with pytest.raises(ValueError):
        rejoin_player(room, "missing", "n1")


def test_find_rejoin_candidate_matches_normalized_name():
    room = make_room()
    disconnect_player(room, "p3")

    assert find_rejoin_candidate(room, " carol  ").id == "p3"
    assert find_rejoin_candidate(room, "Alice") is None
