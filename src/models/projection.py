from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping
from urllib.parse import quote, unquote

from src.models.opportunity import to_integer, to_number, to_text


RawProjectionRecord = Mapping[str, Any]

PROJECTION_COLUMNS = 'pos,source,"player.x","player.y",player_key,season,week,team,projected_points,fantasy_points'

_WS_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class PlayerProjection:
    """One (player_key, season, week, source) projection alongside the actual result."""

    pos: str
    source: str
    player_name: str
    alternate_name: str
    player_key: str
    season: int
    week: int
    team: str
    projected_points: float
    fantasy_points: float

    @property
    def slug(self) -> str:
        base = self.player_key.strip() or self.player_name.strip()
        return player_key_to_slug(base) if base else ""


def normalize_projection(row: RawProjectionRecord) -> PlayerProjection:
    return PlayerProjection(
        pos=to_text(row.get("pos")),
        source=to_text(row.get("source")),
        player_name=to_text(row.get("player.x")),
        alternate_name=to_text(row.get("player.y")),
        player_key=to_text(row.get("player_key")),
        season=to_integer(row.get("season")),
        week=to_integer(row.get("week")),
        team=to_text(row.get("team")),
        projected_points=to_number(row.get("projected_points")),
        fantasy_points=to_number(row.get("fantasy_points")),
    )


def normalize_projections(rows: Iterable[RawProjectionRecord]) -> list[PlayerProjection]:
    return [normalize_projection(r) for r in rows]


def player_key_to_slug(player_key: str) -> str:
    normalized = _WS_RE.sub("-", player_key.strip().lower())
    return quote(normalized, safe="-_.!~*'()")


def slug_to_player_key(slug: str) -> str:
    return unquote(slug).replace("-", " ")


def title_case(value: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in value.split(" ") if word)
