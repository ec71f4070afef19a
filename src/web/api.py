from __future__ import annotations

import json
import logging
from typing import Any

from src.database.supabase_client import SupabaseError
from src.web import queries_supabase
from src.web.queries_supabase import RowSource


logger = logging.getLogger(__name__)

ApiResponse = tuple[int, Any]


def parse_body(raw: bytes) -> dict[str, Any]:
    """
    Decode a JSON request body. Anything other than a JSON object raises
    ValueError.
    """
    payload = json.loads(raw.decode("utf-8") if raw else "")
    if not isinstance(payload, dict):
        raise ValueError("request body must be a JSON object")
    return payload


def search_players(sb: RowSource, season: int, raw_body: bytes) -> ApiResponse:
    try:
        body = parse_body(raw_body)
    except ValueError as e:
        logger.error("Bad search request: %s", e)
        return 500, {"error": "Internal server error"}

    query = body.get("query")
    if not isinstance(query, str) or len(query) < 2:
        return 200, []

    try:
        players = queries_supabase.search_players(sb, season, query)
    except SupabaseError as e:
        logger.error("Player search failed: %s", e)
        return 500, {"error": "Search failed"}
    return 200, [p.to_json() for p in players]


def ff_opportunity(sb: RowSource, season: int, raw_body: bytes) -> ApiResponse:
    try:
        body = parse_body(raw_body)
    except ValueError as e:
        logger.error("Bad ff-opportunity request: %s", e)
        return 500, {"error": "Internal server error"}

    player_id = body.get("playerId")
    if not isinstance(player_id, str) or not player_id.strip():
        return 400, {"error": "Player ID is required"}

    try:
        rows = queries_supabase.player_opportunity_history(sb, season, player_id)
    except SupabaseError as e:
        logger.error("FF opportunity fetch failed for %s: %s", player_id, e)
        return 500, {"error": "Data fetch failed"}
    return 200, [r.to_json() for r in rows]


ROUTES = {
    "/api/players/search": search_players,
    "/api/players/ff-opportunity": ff_opportunity,
}
