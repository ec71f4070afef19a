import pytest
import requests

from src.database.supabase_client import SupabaseClient, SupabaseConfig, SupabaseError
from src.utils.env import current_season


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def get(self, url, headers=None, params=None, timeout=None):
        self.requests.append({"url": url, "headers": headers, "params": params, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def _client(session):
    return SupabaseClient(SupabaseConfig(url="https://example.supabase.co/", service_role_key="secret"), session=session)


def test_select_builds_postgrest_request():
    session = FakeSession(FakeResponse(payload=[{"week": 3}]))
    rows = _client(session).select(
        "nflreadr_nfl_ff_opportunity",
        select="week",
        filters={"season": "eq.2025"},
        order="week.desc",
        limit=1,
        offset=0,
    )
    assert rows == [{"week": 3}]
    [req] = session.requests
    assert req["url"] == "https://example.supabase.co/rest/v1/nflreadr_nfl_ff_opportunity"
    assert req["params"] == {"select": "week", "season": "eq.2025", "order": "week.desc", "limit": 1}
    assert req["headers"]["apikey"] == "secret"
    assert req["headers"]["Authorization"] == "Bearer secret"
    assert req["timeout"] == 30.0


def test_select_http_error_carries_status():
    session = FakeSession(FakeResponse(status_code=400, payload={"message": "column does not exist"}))
    with pytest.raises(SupabaseError) as exc:
        _client(session).select("player_projection", offset=1000)
    assert exc.value.status == 400
    assert "column does not exist" in str(exc.value)
    assert session.requests[0]["params"]["offset"] == 1000


def test_select_wraps_transport_errors():
    session = FakeSession(error=requests.ConnectionError("refused"))
    with pytest.raises(SupabaseError):
        _client(session).select("player_projection")


def test_select_rejects_non_list_payload():
    session = FakeSession(FakeResponse(payload={"rows": []}))
    with pytest.raises(SupabaseError):
        _client(session).select("player_projection")


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://x.supabase.co")
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)
    monkeypatch.setenv("SUPABASE_ANON_KEY", " anon ")
    monkeypatch.setenv("SUPABASE_TIMEOUT_SECONDS", "5")
    cfg = SupabaseConfig.from_env()
    assert cfg.service_role_key == "anon"
    assert cfg.timeout_seconds == 5.0


def test_config_from_env_requires_credentials(monkeypatch):
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    with pytest.raises(SupabaseError):
        SupabaseConfig.from_env()


def test_current_season(monkeypatch):
    monkeypatch.delenv("FF_SEASON", raising=False)
    assert current_season() == 2025
    monkeypatch.setenv("FF_SEASON", "2024")
    assert current_season() == 2024
    monkeypatch.setenv("FF_SEASON", "next")
    assert current_season() == 2025


def test_select_rejects_non_json_body():
    session = FakeSession(FakeResponse(status_code=200, payload=None, text="<html>maintenance</html>"))
    with pytest.raises(SupabaseError) as exc:
        _client(session).select("player_projection")
    assert exc.value.status == 200
