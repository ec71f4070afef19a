from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional, Protocol

from src.comparison.search import MIN_QUERY_LENGTH
from src.comparison.state import PlayerCandidate
from src.models.opportunity import OpportunityMetric, normalize_opportunities, to_integer
from src.models.projection import (
    PROJECTION_COLUMNS,
    PlayerProjection,
    normalize_projections,
    slug_to_player_key,
    title_case,
)


logger = logging.getLogger(__name__)


OPPORTUNITY_TABLE = "nflreadr_nfl_ff_opportunity"
PROJECTION_TABLE = "player_projection"

PAGE_SIZE = 1000
SEARCH_LIMIT = 20
PERFORMER_LIMIT = 15
TICKER_COLUMNS = "full_name,posteam,position,week,total_fantasy_points_diff"

_WS_RE = re.compile(r"\s+")
# PostgREST treats these as syntax inside filter values.
_FILTER_META_RE = re.compile(r"[,()*%]")


class RowSource(Protocol):
    def select(
        self,
        table: str,
        *,
        select: str = "*",
        filters: Optional[dict[str, str]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[dict[str, Any]]: ...


def _ilike_pattern(text: str) -> str:
    cleaned = _FILTER_META_RE.sub(" ", text).strip()
    return "*" + _WS_RE.sub("*", cleaned) + "*"


def _quoted(value: str) -> str:
    # Double-quote filter values so names like "St. Brown, Amon-Ra" survive.
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def fetch_all(
    sb: RowSource,
    table: str,
    *,
    select: str = "*",
    filters: Optional[dict[str, str]] = None,
    order: Optional[str] = None,
    page_size: int = PAGE_SIZE,
) -> list[dict[str, Any]]:
    """
    Page through `table` until a short (or empty) page signals the end.

    Any SupabaseError aborts the whole fetch; partial results are never returned.
    """
    rows: list[dict[str, Any]] = []
    offset = 0
    while True:
        page = sb.select(table, select=select, filters=filters, order=order, limit=page_size, offset=offset)
        if not page:
            break
        rows.extend(page)
        if len(page) < page_size:
            break
        offset += page_size
    logger.info("Fetched %d rows from %s", len(rows), table)
    return rows


# --- Projections -------------------------------------------------------------

def load_projections(sb: RowSource) -> list[PlayerProjection]:
    return normalize_projections(fetch_all(sb, PROJECTION_TABLE, select=PROJECTION_COLUMNS))


def load_player_projections(sb: RowSource, player_key: str) -> list[PlayerProjection]:
    rows = sb.select(
        PROJECTION_TABLE,
        select=PROJECTION_COLUMNS,
        filters={"player_key": f"eq.{_quoted(player_key)}"},
        order="season.asc,week.asc",
    )
    return normalize_projections(rows)


# --- Opportunity -------------------------------------------------------------

def load_opportunities(sb: RowSource, season: int) -> list[OpportunityMetric]:
    rows = fetch_all(
        sb,
        OPPORTUNITY_TABLE,
        filters={"season": f"eq.{int(season)}"},
        order="season.desc,week.desc",
    )
    return normalize_opportunities(rows)


def load_player_opportunities_by_name(sb: RowSource, season: int, slug: str) -> list[OpportunityMetric]:
    """
    Exact full_name match on the title-cased slug, then a whitespace-tolerant
    wildcard match. [] when neither finds anything.
    """
    player_key = slug_to_player_key(slug)
    candidate = title_case(player_key)

    rows = sb.select(
        OPPORTUNITY_TABLE,
        filters={"season": f"eq.{int(season)}", "full_name": f"eq.{_quoted(candidate)}"},
        order="week.asc",
    )
    if not rows:
        logger.info("No exact match for %r; trying fuzzy name match", candidate)
        rows = sb.select(
            OPPORTUNITY_TABLE,
            filters={"season": f"eq.{int(season)}", "full_name": f"ilike.{_ilike_pattern(player_key)}"},
            order="week.asc",
        )
    return normalize_opportunities(rows)


def player_opportunity_history(sb: RowSource, season: int, player_id: str) -> list[OpportunityMetric]:
    rows = sb.select(
        OPPORTUNITY_TABLE,
        filters={"season": f"eq.{int(season)}", "player_id": f"eq.{_quoted(player_id)}"},
        order="week.asc",
    )
    return normalize_opportunities(rows)


def search_players(sb: RowSource, season: int, query: str) -> list[PlayerCandidate]:
    if len(query) < MIN_QUERY_LENGTH:
        return []

    rows = sb.select(
        OPPORTUNITY_TABLE,
        select="full_name,player_id,position,posteam",
        filters={
            "season": f"eq.{int(season)}",
            "full_name": f"ilike.{_quoted('*' + query + '*')}",
            "and": "(full_name.not.is.null,player_id.not.is.null)",
        },
        limit=SEARCH_LIMIT,
    )

    # One entry per player_id: first-seen position in the list, latest row's values.
    by_id: dict[str, PlayerCandidate] = {}
    for r in rows:
        pid = r.get("player_id")
        if pid is None:
            continue
        by_id[str(pid)] = PlayerCandidate(
            player_id=str(pid),
            player_name=str(r.get("full_name") or ""),
            team=str(r.get("posteam") or ""),
            position=str(r.get("position") or ""),
        )
    return list(by_id.values())


# --- Home page ---------------------------------------------------------------

def latest_week(sb: RowSource, season: int) -> Optional[int]:
    rows = sb.select(
        OPPORTUNITY_TABLE,
        select="week",
        filters={"season": f"eq.{int(season)}"},
        order="week.desc",
        limit=1,
    )
    if not rows or rows[0].get("week") is None:
        return None
    return to_integer(rows[0]["week"])


def performer_rows(sb: RowSource, season: int, week: int) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Over- and under-performers for one week, queried side by side."""

    def _query(direction: str) -> list[dict[str, Any]]:
        return sb.select(
            OPPORTUNITY_TABLE,
            select=TICKER_COLUMNS,
            filters={"season": f"eq.{int(season)}", "week": f"eq.{int(week)}"},
            order=f"total_fantasy_points_diff.{direction}",
            limit=PERFORMER_LIMIT,
        )

    with ThreadPoolExecutor(max_workers=2) as pool:
        over = pool.submit(_query, "desc")
        under = pool.submit(_query, "asc")
        return over.result(), under.result()
