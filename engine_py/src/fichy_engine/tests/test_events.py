"""
Wire event parsing and serialization.
"""

import orjson
import pytest

from fichy_engine.constants import Phase
from fichy_engine.events import (
    CreateRoomEvent, JoinRoomEvent, PlayerView, PoolEntryView, RoomUpdateEvent, SubmitBetsEvent,
    SubmitAnswerEvent, BettingPhaseEvent, parse_inbound_event, serialize_event
)


def test_parse_join_room_normalizes_fields():
    event = parse_inbound_event({"type": "joinRoom", "code": " abcde ", "playerName": "  Bob "})

    assert isinstance(event, JoinRoomEvent)
    assert event.code == "ABCDE"
    assert event.player_name == "Bob"


def test_parse_create_room():
    event = parse_inbound_event({"type": "createRoom", "playerName": "Alice"})

    assert isinstance(event, CreateRoomEvent)


def test_parse_bets_keeps_junk_stakes_for_settlement():
    bets = {"a1": 5, "a2": "lots", "a3": 2.5, "a4": -1}
    event = parse_inbound_event({"type": "submitBets", "code": "ABCDE", "bets": bets})

    assert isinstance(event, SubmitBetsEvent)
    assert event.bets == bets


def test_parse_answer_defaults_to_empty():
    event = parse_inbound_event({"type": "submitAnswer", "code": "ABCDE"})

    assert isinstance(event, SubmitAnswerEvent)
    assert event.answer == ""


@pytest.mark.parametrize("data", [
    None,
    [],
    {},
    {"type": "dance"},
    {"type": "createRoom"},
    {"type": "createRoom", "playerName": "   "},
    {"type": "createRoom", "playerName": "x" * 40},
    {"type": "joinRoom", "playerName": "Bob"},
    {"type": "submitBets", "code": "ABCDE", "bets": ["a1"]},
])
def test_malformed_events_are_rejected(data):
    with pytest.raises(ValueError):
        parse_inbound_event(data)


def test_serialized_events_use_camel_case():
    event = RoomUpdateEvent(
        code="ABCDE",
        state=Phase.LOBBY,
        round=0,
        total=6,
        players=[PlayerView(id="c0", name="Alice", chips=20, connected=True)],
        host_id="c0"
    )

    data = orjson.loads(serialize_event(event))

    assert data["type"] == "roomUpdate"
    assert data["state"] == "lobby"
    assert data["hostId"] == "c0"
    assert data["players"][0] == {"id": "c0", "name": "Alice", "chips": 20, "connected": True}
    assert "timestamp" in data


def test_betting_pool_carries_only_id_and_text():
    event = BettingPhaseEvent(answers=[PoolEntryView(id="a1", text="4")], players=[], time_limit=45)

    data = orjson.loads(serialize_event(event))

    assert data["answers"] == [{"id": "a1", "text": "4"}]
    assert data["timeLimit"] == 45
