from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Union


RawValue = Union[str, int, float, None]
RawOpportunityRecord = Mapping[str, Any]

# Leading float prefix, the way a browser's parseFloat reads "12.5yds" or " 3e2".
_FLOAT_PREFIX_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def to_number(value: RawValue) -> float:
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        try:
            out = float(value)
        except OverflowError:
            return 0.0
        return out if math.isfinite(out) else 0.0
    m = _FLOAT_PREFIX_RE.match(str(value))
    if not m:
        return 0.0
    try:
        out = float(m.group(1))
    except ValueError:
        return 0.0
    return out if math.isfinite(out) else 0.0


def to_integer(value: RawValue) -> int:
    # Halves round up (2.5 -> 3, -2.5 -> -2), not to even.
    return int(math.floor(to_number(value) + 0.5))


def to_text(value: Optional[Any]) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass(frozen=True)
class OpportunityMetric:
    season: int
    week: int
    player_id: str
    full_name: str
    team: str
    position: str
    # Receiving
    receptions: float
    receptions_expected: float
    targets: float
    receiving_yards: float
    receiving_yards_expected: float
    air_yards: float
    receiving_td: float
    receiving_td_expected: float
    receiving_first_downs: float
    receiving_first_downs_expected: float
    receiving_fantasy_points: float
    receiving_fantasy_points_expected: float
    receiving_interceptions: float
    receiving_interceptions_expected: float
    receiving_fumbles: float
    receiving_two_point_conv: float
    receiving_two_point_conv_expected: float
    # Rushing
    rushing_attempts: float
    rushing_yards: float
    rushing_yards_expected: float
    rushing_td: float
    rushing_td_expected: float
    rushing_first_downs: float
    rushing_first_downs_expected: float
    rushing_fantasy_points: float
    rushing_fantasy_points_expected: float
    rushing_fumbles: float
    rushing_two_point_conv: float
    rushing_two_point_conv_expected: float
    # Passing
    passing_attempts: float
    passing_completions: float
    passing_completions_expected: float
    passing_yards: float
    passing_yards_expected: float
    passing_air_yards: float
    passing_td: float
    passing_td_expected: float
    passing_first_downs: float
    passing_first_downs_expected: float
    passing_fantasy_points: float
    passing_fantasy_points_expected: float
    passing_interceptions: float
    passing_interceptions_expected: float
    passing_two_point_conv: float
    passing_two_point_conv_expected: float
    # Totals
    total_yards: float
    total_yards_expected: float
    total_td: float
    total_td_expected: float
    total_first_downs: float
    total_first_downs_expected: float
    total_fantasy_points: float
    total_fantasy_points_expected: float
    # Team context, used for shares
    team_targets: float
    team_rush_attempts: float
    team_pass_attempts: float
    team_receiving_air_yards: float
    team_passing_air_yards: float
    team_receptions: float
    team_receiving_yards: float
    team_receiving_tds: float
    team_receiving_fantasy_points: float
    team_rushing_yards: float
    team_rushing_tds: float
    team_rushing_fantasy_points: float
    team_passing_yards: float
    team_passing_tds: float
    team_passing_fantasy_points: float
    team_passing_completions: float
    team_total_yards: float
    team_total_tds: float
    team_total_fantasy_points: float

    def to_raw(self) -> dict[str, Any]:
        """Inverse of normalize_opportunity: the same record keyed by database column."""
        return {column: getattr(self, attr) for attr, column, _ in FIELD_MAP}

    def to_json(self) -> dict[str, Any]:
        return {json_key: getattr(self, attr) for attr, _, json_key in FIELD_MAP}


# (attribute, database column, JSON key)
_TEXT_FIELDS: tuple[tuple[str, str, str], ...] = (
    ("player_id", "player_id", "playerId"),
    ("full_name", "full_name", "fullName"),
    ("team", "posteam", "team"),
    ("position", "position", "position"),
)

_INT_FIELDS: tuple[tuple[str, str, str], ...] = (
    ("season", "season", "season"),
    ("week", "week", "week"),
)

_NUMERIC_FIELDS: tuple[tuple[str, str, str], ...] = (
    ("receptions", "receptions", "receptions"),
    ("receptions_expected", "receptions_exp", "receptionsExpected"),
    ("targets", "rec_attempt", "targets"),
    ("receiving_yards", "rec_yards_gained", "receivingYards"),
    ("receiving_yards_expected", "rec_yards_gained_exp", "receivingYardsExpected"),
    ("air_yards", "rec_air_yards", "airYards"),
    ("receiving_td", "rec_touchdown", "receivingTD"),
    ("receiving_td_expected", "rec_touchdown_exp", "receivingTDExpected"),
    ("receiving_first_downs", "rec_first_down", "receivingFirstDowns"),
    ("receiving_first_downs_expected", "rec_first_down_exp", "receivingFirstDownsExpected"),
    ("receiving_fantasy_points", "rec_fantasy_points", "receivingFantasyPoints"),
    ("receiving_fantasy_points_expected", "rec_fantasy_points_exp", "receivingFantasyPointsExpected"),
    ("receiving_interceptions", "rec_interception", "receivingInterceptions"),
    ("receiving_interceptions_expected", "rec_interception_exp", "receivingInterceptionsExpected"),
    ("receiving_fumbles", "rec_fumble_lost", "receivingFumbles"),
    ("receiving_two_point_conv", "rec_two_point_conv", "receivingTwoPointConv"),
    ("receiving_two_point_conv_expected", "rec_two_point_conv_exp", "receivingTwoPointConvExpected"),
    ("rushing_attempts", "rush_attempt", "rushingAttempts"),
    ("rushing_yards", "rush_yards_gained", "rushingYards"),
    ("rushing_yards_expected", "rush_yards_gained_exp", "rushingYardsExpected"),
    ("rushing_td", "rush_touchdown", "rushingTD"),
    ("rushing_td_expected", "rush_touchdown_exp", "rushingTDExpected"),
    ("rushing_first_downs", "rush_first_down", "rushingFirstDowns"),
    ("rushing_first_downs_expected", "rush_first_down_exp", "rushingFirstDownsExpected"),
    ("rushing_fantasy_points", "rush_fantasy_points", "rushingFantasyPoints"),
    ("rushing_fantasy_points_expected", "rush_fantasy_points_exp", "rushingFantasyPointsExpected"),
    ("rushing_fumbles", "rush_fumble_lost", "rushingFumbles"),
    ("rushing_two_point_conv", "rush_two_point_conv", "rushingTwoPointConv"),
    ("rushing_two_point_conv_expected", "rush_two_point_conv_exp", "rushingTwoPointConvExpected"),
    ("passing_attempts", "pass_attempt", "passingAttempts"),
    ("passing_completions", "pass_completions", "passingCompletions"),
    ("passing_completions_expected", "pass_completions_exp", "passingCompletionsExpected"),
    ("passing_yards", "pass_yards_gained", "passingYards"),
    ("passing_yards_expected", "pass_yards_gained_exp", "passingYardsExpected"),
    ("passing_air_yards", "pass_air_yards", "passingAirYards"),
    ("passing_td", "pass_touchdown", "passingTD"),
    ("passing_td_expected", "pass_touchdown_exp", "passingTDExpected"),
    ("passing_first_downs", "pass_first_down", "passingFirstDowns"),
    ("passing_first_downs_expected", "pass_first_down_exp", "passingFirstDownsExpected"),
    ("passing_fantasy_points", "pass_fantasy_points", "passingFantasyPoints"),
    ("passing_fantasy_points_expected", "pass_fantasy_points_exp", "passingFantasyPointsExpected"),
    ("passing_interceptions", "pass_interception", "passingInterceptions"),
    ("passing_interceptions_expected", "pass_interception_exp", "passingInterceptionsExpected"),
    ("passing_two_point_conv", "pass_two_point_conv", "passingTwoPointConv"),
    ("passing_two_point_conv_expected", "pass_two_point_conv_exp", "passingTwoPointConvExpected"),
    ("total_yards", "total_yards_gained", "totalYards"),
    ("total_yards_expected", "total_yards_gained_exp", "totalYardsExpected"),
    ("total_td", "total_touchdown", "totalTD"),
    ("total_td_expected", "total_touchdown_exp", "totalTDExpected"),
    ("total_first_downs", "total_first_down", "totalFirstDowns"),
    ("total_first_downs_expected", "total_first_down_exp", "totalFirstDownsExpected"),
    ("total_fantasy_points", "total_fantasy_points", "totalFantasyPoints"),
    ("total_fantasy_points_expected", "total_fantasy_points_exp", "totalFantasyPointsExpected"),
    ("team_targets", "rec_attempt_team", "teamTargets"),
    ("team_rush_attempts", "rush_attempt_team", "teamRushAttempts"),
    ("team_pass_attempts", "pass_attempt_team", "teamPassAttempts"),
    ("team_receiving_air_yards", "rec_air_yards_team", "teamReceivingAirYards"),
    ("team_passing_air_yards", "pass_air_yards_team", "teamPassingAirYards"),
    ("team_receptions", "receptions_team", "teamReceptions"),
    ("team_receiving_yards", "rec_yards_gained_team", "teamReceivingYards"),
    ("team_receiving_tds", "rec_touchdown_team", "teamReceivingTDs"),
    ("team_receiving_fantasy_points", "rec_fantasy_points_team", "teamReceivingFantasyPoints"),
    ("team_rushing_yards", "rush_yards_gained_team", "teamRushingYards"),
    ("team_rushing_tds", "rush_touchdown_team", "teamRushingTDs"),
    ("team_rushing_fantasy_points", "rush_fantasy_points_team", "teamRushingFantasyPoints"),
    ("team_passing_yards", "pass_yards_gained_team", "teamPassingYards"),
    ("team_passing_tds", "pass_touchdown_team", "teamPassingTDs"),
    ("team_passing_fantasy_points", "pass_fantasy_points_team", "teamPassingFantasyPoints"),
    ("team_passing_completions", "pass_completions_team", "teamPassingCompletions"),
    ("team_total_yards", "total_yards_gained_team", "teamTotalYards"),
    ("team_total_tds", "total_touchdown_team", "teamTotalTDs"),
    ("team_total_fantasy_points", "total_fantasy_points_team", "teamTotalFantasyPoints"),
)

FIELD_MAP: tuple[tuple[str, str, str], ...] = _INT_FIELDS + _TEXT_FIELDS + _NUMERIC_FIELDS
NUMERIC_ATTRS: tuple[str, ...] = tuple(attr for attr, _, _ in _NUMERIC_FIELDS)
TEXT_ATTRS: tuple[str, ...] = tuple(attr for attr, _, _ in _TEXT_FIELDS)


def normalize_opportunity(row: RawOpportunityRecord) -> OpportunityMetric:
    values: dict[str, Any] = {}
    for attr, column, _ in _INT_FIELDS:
        values[attr] = to_integer(row.get(column))
    for attr, column, _ in _TEXT_FIELDS:
        values[attr] = to_text(row.get(column))
    for attr, column, _ in _NUMERIC_FIELDS:
        values[attr] = to_number(row.get(column))
    return OpportunityMetric(**values)


def normalize_opportunities(rows: Iterable[RawOpportunityRecord]) -> list[OpportunityMetric]:
    return [normalize_opportunity(r) for r in rows]
