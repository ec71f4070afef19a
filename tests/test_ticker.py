from src.database.supabase_client import SupabaseError
from src.web.ticker import TICKER_SIZE, build_ticker_items, load_ticker


def _perf(name, diff, team="KC", week=5):
    return {"full_name": name, "posteam": team, "position": "WR", "week": week, "total_fantasy_points_diff": diff}


def test_build_ticker_sorts_by_magnitude_and_dedupes():
    rows = [
        _perf("Rashee Rice", "4.5"),
        _perf("Xavier Worthy", -9.25),
        _perf("Rashee Rice", 2.0),
        _perf("Rashee Rice", 1.0, team="DAL"),
        _perf("", 20.0),
        _perf("Zero Guy", 0),
        _perf("Null Guy", None),
        _perf("Bad Guy", "NaN"),
    ]
    items = build_ticker_items(rows, 5)
    assert [(i.player_name, i.team, i.diff) for i in items] == [
        ("Xavier Worthy", "KC", -9.25),
        ("Rashee Rice", "KC", 4.5),
        ("Rashee Rice", "DAL", 1.0),
    ]
    assert items[0].href == "/ff-opp/xavier-worthy"
    assert items[0].week == 5


def test_build_ticker_missing_team_dedupes_as_unknown():
    rows = [_perf("Solo", 3.0, team=None), _perf("Solo", 1.0, team="")]
    items = build_ticker_items(rows, 2)
    assert len(items) == 1
    assert items[0].team == ""


def test_build_ticker_caps_size():
    rows = [_perf(f"Player {i}", float(i + 1)) for i in range(40)]
    items = build_ticker_items(rows, 1)
    assert len(items) == TICKER_SIZE
    assert items[0].diff == 40.0


def test_load_ticker(fake_supabase):
    def respond(call):
        if call["select"] == "week":
            return [{"week": 9}]
        if call["order"].endswith(".desc"):
            return [_perf("Over", 6.0, week=9)]
        return [_perf("Under", -7.5, week=9)]

    week, items = load_ticker(fake_supabase(respond), 2025)
    assert week == 9
    assert [i.player_name for i in items] == ["Under", "Over"]


def test_load_ticker_swallows_upstream_failure(fake_supabase, caplog):
    week, items = load_ticker(fake_supabase(error=SupabaseError("down")), 2025)
    assert (week, items) == (None, [])
    assert "latest week" in caplog.text


def test_load_ticker_no_data(fake_supabase):
    assert load_ticker(fake_supabase([[]]), 2025) == (None, [])
