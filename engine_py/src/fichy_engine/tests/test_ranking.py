from fichy_engine.models import Player, RoomState
from fichy_engine.ranking import rank_players


def test_rank_players_richest_first():
    # 1. Setup
    state = RoomState(code="ABCDE")
    state.players = {
        "p1": Player(id="p1", name="Alice", chips=12),
        "p2": Player(id="p2", name="Bob", chips=30),
        "p3": Player(id="p3", name="Charlie", chips=12),
        "p4": Player(id="p4", name="Dana", chips=0, connected=False),
    }

    # 2. Action
    ranking = rank_players(state)

    # 3. Assert (ties keep join order)
    assert [entry.name for entry in ranking] == ["Bob", "Alice", "Charlie", "Dana"]
    assert [entry.position for entry in ranking] == [1, 2, 3, 4]
    assert not ranking[3].connected
