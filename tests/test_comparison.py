import pytest

from src.comparison.search import search_loaded_players, unique_players
from src.comparison.state import (
    MAX_PLAYERS,
    PALETTE,
    ComparisonState,
    PaletteAllocator,
    PlayerCandidate,
)


def _candidate(i: int) -> PlayerCandidate:
    return PlayerCandidate(player_id=f"P{i}", player_name=f"Player {i}", team="KC", position="WR")


@pytest.fixture()
def pinned_state(make_metric):
    return ComparisonState.for_player(_candidate(0), [make_metric()], metrics=["receptions"])


def test_for_player_pins_current_player(pinned_state):
    assert pinned_state.pinned_player_id == "P0"
    assert [p.player_id for p in pinned_state.players] == ["P0"]
    assert pinned_state.players[0].color_index == 0
    assert pinned_state.metrics == ("receptions",)
    assert pinned_state.is_active


def test_add_player_caps_at_max(pinned_state):
    state = pinned_state
    for i in range(1, 10):
        state = state.add_player(_candidate(i), [])
    assert len(state.players) == MAX_PLAYERS
    assert state.is_full
    assert [p.player_id for p in state.players] == [f"P{i}" for i in range(MAX_PLAYERS)]


def test_add_duplicate_is_noop(pinned_state):
    assert pinned_state.add_player(_candidate(0), []) == pinned_state


def test_pinned_player_cannot_be_removed(pinned_state):
    state = pinned_state.add_player(_candidate(1), [])
    assert state.remove_player("P0") == state
    state = state.remove_player("P1")
    assert [p.player_id for p in state.players] == ["P0"]
    assert state.remove_player("missing") == state


def test_released_color_is_reused(pinned_state):
    state = pinned_state.add_player(_candidate(1), []).add_player(_candidate(2), [])
    assert [p.color_index for p in state.players] == [0, 1, 2]
    state = state.remove_player("P1").add_player(_candidate(3), [])
    assert [p.color_index for p in state.players] == [0, 2, 1]


def test_allocator_wraps_once_palette_is_exhausted():
    alloc = PaletteAllocator(size=3)
    picked = []
    for count in range(5):
        idx, alloc = alloc.allocate(count)
        picked.append(idx)
    assert picked == [0, 1, 2, 0, 1]


def test_color_scheme_expected_shade_is_translucent():
    scheme = PALETTE[0]
    assert scheme.metric_color(0) == scheme.shades[0]
    assert scheme.metric_color(0, expected=True) == scheme.shades[0] + "80"
    assert scheme.metric_color(99) == scheme.shades[-1]


def test_toggle_metric(pinned_state):
    state = pinned_state.toggle_metric("targetShare")
    assert state.metrics == ("receptions", "targetShare")
    state = state.toggle_metric("receptions")
    assert state.metrics == ("targetShare",)
    assert state.toggle_metric("notAMetric") == state


def test_mode_and_scatter_metric(pinned_state):
    assert pinned_state.set_mode("scatter").mode == "scatter"
    with pytest.raises(ValueError):
        pinned_state.set_mode("bar")
    assert pinned_state.scatter_metric() == "receptions"
    assert pinned_state.scatter_metric("targetShare") == "receptions"
    assert ComparisonState().scatter_metric() == "receptions"
    state = pinned_state.toggle_metric("targetShare")
    assert state.scatter_metric("targetShare") == "targetShare"


def test_candidate_json():
    assert _candidate(1).to_json() == {"playerId": "P1", "playerName": "Player 1", "team": "KC", "position": "WR"}


def test_unique_players_and_loaded_search(make_metric):
    rows = [
        make_metric(full_name="Tyreek Hill", posteam="MIA", week="2"),
        make_metric(full_name="Tyreek Hill", posteam="MIA", week="1"),
        make_metric(full_name="Taysom Hill", posteam="NO", position="TE"),
        make_metric(full_name=""),
    ]
    players = unique_players(rows)
    assert [p.player_name for p in players] == ["Tyreek Hill", "Taysom Hill"]
    assert players[0].player_id == "Tyreek Hill"

    assert [p.player_name for p in search_loaded_players(rows, "hill")] == ["Tyreek Hill", "Taysom Hill"]
    assert [p.team for p in search_loaded_players(rows, "TAYSOM")] == ["NO"]
    assert search_loaded_players(rows, "h") == []
