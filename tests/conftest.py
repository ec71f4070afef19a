from __future__ import annotations

import threading
from typing import Any, Callable, Optional, Union

import pytest

from src.models.opportunity import normalize_opportunity


Responder = Callable[[dict[str, Any]], list[dict[str, Any]]]


class FakeSupabase:
    """
    Stands in for SupabaseClient. Either replays `responses` in order, or asks a
    responder callable for each call. Every call is recorded.
    """

    def __init__(
        self,
        responses: Union[list[list[dict[str, Any]]], Responder, None] = None,
        *,
        error: Optional[Exception] = None,
    ) -> None:
        self.calls: list[dict[str, Any]] = []
        self._responses = responses if callable(responses) else list(responses or [])
        self._error = error
        self._lock = threading.Lock()

    def select(
        self,
        table: str,
        *,
        select: str = "*",
        filters: Optional[dict[str, str]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        call = {
            "table": table,
            "select": select,
            "filters": dict(filters or {}),
            "order": order,
            "limit": limit,
            "offset": offset,
        }
        with self._lock:
            self.calls.append(call)
            if self._error is not None:
                raise self._error
            if callable(self._responses):
                return self._responses(call)
            return self._responses.pop(0) if self._responses else []


def opp_row(**overrides: Any) -> dict[str, Any]:
    # A raw nflreadr_nfl_ff_opportunity row, keyed by database column.
    row: dict[str, Any] = {
        "season": "2025",
        "week": "1",
        "player_id": "00-0036900",
        "full_name": "Ja'Marr Chase",
        "posteam": "CIN",
        "position": "WR",
        "receptions": "6",
        "receptions_exp": "5.2",
        "rec_attempt": "9",
        "rec_yards_gained": "88",
        "rec_yards_gained_exp": "71.4",
        "rec_air_yards": "120",
        "rec_touchdown": "1",
        "rec_touchdown_exp": "0.45",
        "rec_fantasy_points": "20.8",
        "rec_fantasy_points_exp": "15.9",
        "total_fantasy_points": "20.8",
        "total_fantasy_points_exp": "15.9",
        "rec_attempt_team": "36",
        "rec_air_yards_team": "300",
    }
    row.update(overrides)
    return row


@pytest.fixture()
def make_row() -> Callable[..., dict[str, Any]]:
    return opp_row


@pytest.fixture()
def make_metric():
    def _make(**overrides: Any):
        return normalize_opportunity(opp_row(**overrides))

    return _make


@pytest.fixture()
def fake_supabase() -> type[FakeSupabase]:
    return FakeSupabase
