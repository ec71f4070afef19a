import threading

import pytest
import requests

from src.database.supabase_client import SupabaseError
from src.web.server import make_server


@pytest.fixture()
def serve():
    servers = []

    def _serve(sb):
        server = make_server(sb, "127.0.0.1", 0, season=2025)
        threading.Thread(target=server.serve_forever, daemon=True).start()
        servers.append(server)
        host, port = server.server_address[:2]
        return f"http://{host}:{port}"

    yield _serve
    for server in servers:
        server.shutdown()
        server.server_close()


def test_search_endpoint(serve, fake_supabase):
    sb = fake_supabase([[{"player_id": "00-1", "full_name": "Travis Kelce", "posteam": "KC", "position": "TE"}]])
    base = serve(sb)
    resp = requests.post(f"{base}/api/players/search", json={"query": "kel"}, timeout=5)
    assert resp.status_code == 200
    assert resp.json() == [{"playerId": "00-1", "playerName": "Travis Kelce", "team": "KC", "position": "TE"}]


def test_search_short_query(serve, fake_supabase):
    sb = fake_supabase()
    base = serve(sb)
    resp = requests.post(f"{base}/api/players/search", json={"query": "k"}, timeout=5)
    assert resp.status_code == 200
    assert resp.json() == []
    assert sb.calls == []


def test_search_upstream_failure(serve, fake_supabase):
    base = serve(fake_supabase(error=SupabaseError("down", status=503)))
    resp = requests.post(f"{base}/api/players/search", json={"query": "kelce"}, timeout=5)
    assert resp.status_code == 500
    assert resp.json() == {"error": "Search failed"}


def test_search_malformed_body(serve, fake_supabase):
    base = serve(fake_supabase())
    resp = requests.post(f"{base}/api/players/search", data=b"{not json", timeout=5)
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}


def test_ff_opportunity_requires_player_id(serve, fake_supabase):
    base = serve(fake_supabase())
    resp = requests.post(f"{base}/api/players/ff-opportunity", json={}, timeout=5)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Player ID is required"}


def test_ff_opportunity_history(serve, fake_supabase, make_row):
    sb = fake_supabase([[make_row(week="1"), make_row(week="2")]])
    base = serve(sb)
    resp = requests.post(f"{base}/api/players/ff-opportunity", json={"playerId": "00-0036900"}, timeout=5)
    assert resp.status_code == 200
    body = resp.json()
    assert [r["week"] for r in body] == [1, 2]
    assert body[0]["playerId"] == "00-0036900"
    assert body[0]["receptionsExpected"] == pytest.approx(5.2)
    assert sb.calls[0]["filters"]["player_id"] == 'eq."00-0036900"'


def test_ff_opportunity_failure(serve, fake_supabase):
    base = serve(fake_supabase(error=SupabaseError("down")))
    resp = requests.post(f"{base}/api/players/ff-opportunity", json={"playerId": "x"}, timeout=5)
    assert resp.status_code == 500
    assert resp.json() == {"error": "Data fetch failed"}


def test_unknown_api_route(serve, fake_supabase):
    base = serve(fake_supabase())
    assert requests.post(f"{base}/api/nope", json={}, timeout=5).status_code == 404


def test_home_page_hides_ticker_on_failure(serve, fake_supabase):
    base = serve(fake_supabase(error=SupabaseError("down")))
    resp = requests.get(f"{base}/", timeout=5)
    assert resp.status_code == 200
    assert "Fantasy Freaks HQ" in resp.text
    assert "over/under performers" not in resp.text


def test_home_page_ticker(serve, fake_supabase):
    def respond(call):
        if call["select"] == "week":
            return [{"week": 6}]
        return [{"full_name": "Nico Collins", "posteam": "HOU", "position": "WR", "week": 6, "total_fantasy_points_diff": 8.4}]

    base = serve(fake_supabase(respond))
    resp = requests.get(f"{base}/", timeout=5)
    assert "Week 6 over/under performers" in resp.text
    assert "/ff-opp/nico-collins" in resp.text
    assert "+8.4" in resp.text


def test_list_page_error_renders_500(serve, fake_supabase):
    base = serve(fake_supabase(error=SupabaseError("down")))
    assert requests.get(f"{base}/ff-opp", timeout=5).status_code == 500
    assert requests.get(f"{base}/players", timeout=5).status_code == 500


def test_opportunity_list_page(serve, fake_supabase, make_row):
    base = serve(fake_supabase([[make_row(), make_row(week="2", full_name="Tee Higgins")]]))
    resp = requests.get(f"{base}/ff-opp", params={"player": "higgins"}, timeout=5)
    assert resp.status_code == 200
    assert "/ff-opp/tee-higgins" in resp.text
    assert "/ff-opp/ja&#x27;marr-chase" not in resp.text


def test_player_detail_not_found(serve, fake_supabase):
    base = serve(fake_supabase([[], []]))
    resp = requests.get(f"{base}/ff-opp/nobody-here", timeout=5)
    assert resp.status_code == 404
    assert "Player not found" in resp.text


def test_player_detail_with_comparison(serve, fake_supabase, make_row):
    def respond(call):
        f = call["filters"]
        if "full_name" in f:
            return [make_row(week="1"), make_row(week="2")]
        if f.get("player_id") == 'eq."00-2"':
            return [make_row(week="1", player_id="00-2", full_name="Tee Higgins")]
        return []

    sb = fake_supabase(respond)
    base = serve(sb)
    resp = requests.get(
        f"{base}/ff-opp/ja'marr-chase",
        params=[("metrics", "receptions"), ("compare", "00-2"), ("compare", "00-404")],
        timeout=5,
    )
    assert resp.status_code == 200
    assert "Ja&#x27;Marr Chase" in resp.text
    assert "(pinned)" in resp.text
    assert "Tee Higgins" in resp.text
    assert "<svg" in resp.text


def test_projection_detail(serve, fake_supabase):
    rows = [
        {"player.x": "Puka Nacua", "player_key": "puka nacua", "source": "ESPN", "season": 2025, "week": 1, "projected_points": 14, "fantasy_points": 18},
        {"player.x": "Puka Nacua", "player_key": "puka nacua", "source": "Yahoo", "season": 2025, "week": 1, "projected_points": 15, "fantasy_points": 18},
    ]
    base = serve(fake_supabase([rows]))
    resp = requests.get(f"{base}/players/puka-nacua", timeout=5)
    assert resp.status_code == 200
    assert "Puka Nacua" in resp.text
    assert "ESPN" in resp.text and "Yahoo" in resp.text

    base = serve(fake_supabase([[]]))
    assert requests.get(f"{base}/players/nobody", timeout=5).status_code == 404


def test_combined_page(serve, fake_supabase, make_row):
    rows = [make_row(week="2"), make_row(week="1"), make_row(full_name="Tee Higgins", player_id="00-2")]
    base = serve(fake_supabase([rows]))
    resp = requests.get(
        f"{base}/ff-opp/combined",
        params=[("players", "Ja'Marr Chase"), ("players", "Tee Higgins"), ("mode", "scatter")],
        timeout=5,
    )
    assert resp.status_code == 200
    assert "Tee Higgins" in resp.text
    assert "<circle" in resp.text


def test_unknown_page(serve, fake_supabase):
    base = serve(fake_supabase())
    assert requests.get(f"{base}/nope", timeout=5).status_code == 404


def test_search_unexpected_error_still_answers_500(serve, fake_supabase):
    base = serve(fake_supabase(error=ValueError("unexpected")))
    resp = requests.post(f"{base}/api/players/search", json={"query": "Smith"}, timeout=5)
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}


def test_page_unexpected_error_renders_500(serve, fake_supabase):
    base = serve(fake_supabase(error=ValueError("unexpected")))
    resp = requests.get(f"{base}/ff-opp", timeout=5)
    assert resp.status_code == 500
    assert "Error" in resp.text


@pytest.mark.parametrize("player_id", [0, False, [], {"id": "00-1"}, "   "])
def test_ff_opportunity_rejects_non_string_player_id(serve, fake_supabase, player_id):
    sb = fake_supabase()
    base = serve(sb)
    resp = requests.post(f"{base}/api/players/ff-opportunity", json={"playerId": player_id}, timeout=5)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Player ID is required"}
    assert sb.calls == []


def test_detail_page_search_script_builds_text_nodes(serve, fake_supabase, make_row):
    base = serve(fake_supabase(lambda call: [make_row()]))
    resp = requests.get(f"{base}/ff-opp/ja'marr-chase", timeout=5)
    assert resp.status_code == 200
    assert "innerHTML" not in resp.text
    assert "meta.textContent" in resp.text
    assert "query.length < 2" in resp.text
    assert "}, 300);" in resp.text
