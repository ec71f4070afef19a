from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from src.database.supabase_client import SupabaseError
from src.models.opportunity import to_integer, to_number, to_text
from src.models.projection import player_key_to_slug
from src.web.queries_supabase import RowSource, latest_week, performer_rows


logger = logging.getLogger(__name__)

TICKER_SIZE = 25


@dataclass(frozen=True)
class TickerItem:
    id: str
    player_name: str
    team: str
    position: str
    diff: float
    href: str
    week: int


def build_ticker_items(rows: Iterable[dict[str, Any]], week: int) -> list[TickerItem]:
    """Biggest weekly swings in fantasy points vs expected, one entry per name/team."""
    seen: set[str] = set()
    items: list[TickerItem] = []
    for index, row in enumerate(rows):
        raw_diff = row.get("total_fantasy_points_diff")
        diff = to_number(raw_diff) if raw_diff is not None else 0.0
        name = to_text(row.get("full_name"))
        if not name or not math.isfinite(diff) or diff == 0:
            continue

        team_key = row.get("posteam") or "UNK"
        dedupe_key = f"{name}-{team_key}"
        if dedupe_key in seen:
            continue
        seen.add(dedupe_key)

        row_week = to_integer(row["week"]) if row.get("week") is not None else week
        items.append(
            TickerItem(
                id=f"{name}-{team_key}-{row_week}-{index}",
                player_name=name,
                team=row.get("posteam") or "",
                position=row.get("position") or "",
                diff=diff,
                href=f"/ff-opp/{player_key_to_slug(name)}",
                week=row_week,
            )
        )

    items.sort(key=lambda item: abs(item.diff), reverse=True)
    return items[:TICKER_SIZE]


def load_ticker(sb: RowSource, season: int) -> tuple[Optional[int], list[TickerItem]]:
    """
    Ticker for the home page. Failures here are logged and leave the ticker
    empty; the rest of the home page does not depend on it.
    """
    try:
        week = latest_week(sb, season)
    except SupabaseError as e:
        logger.error("Failed to determine latest week: %s", e)
        return None, []
    if week is None:
        return None, []

    try:
        over, under = performer_rows(sb, season, week)
    except SupabaseError as e:
        logger.error("Failed to load over/under performers: %s", e)
        return week, []
    return week, build_ticker_items([*over, *under], week)
