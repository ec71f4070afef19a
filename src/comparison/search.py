from __future__ import annotations

from typing import Iterable

from src.comparison.state import PlayerCandidate
from src.models.opportunity import OpportunityMetric


# Name search runs in the browser: each keystroke bumps a generation counter,
# and only the latest query is sent once the input has been quiet this long.
MIN_QUERY_LENGTH = 2
DEBOUNCE_SECONDS = 0.3


def unique_players(rows: Iterable[OpportunityMetric]) -> list[PlayerCandidate]:
    # Keyed by full name; the first row seen supplies team and position.
    seen: dict[str, PlayerCandidate] = {}
    for r in rows:
        if r.full_name and r.full_name not in seen:
            seen[r.full_name] = PlayerCandidate(
                player_id=r.full_name,
                player_name=r.full_name,
                team=r.team,
                position=r.position,
            )
    return list(seen.values())


def search_loaded_players(rows: Iterable[OpportunityMetric], query: str) -> list[PlayerCandidate]:
    if len(query) < MIN_QUERY_LENGTH:
        return []
    needle = query.lower()
    return [p for p in unique_players(rows) if needle in p.player_name.lower()]
