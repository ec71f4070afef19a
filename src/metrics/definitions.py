from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, NamedTuple, Optional, Union

from src.models.opportunity import OpportunityMetric


class MetricValue(NamedTuple):
    actual: float
    expected: float

    @property
    def diff(self) -> float:
        return self.actual - self.expected


Formatter = Callable[[float], str]
Calculator = Callable[[OpportunityMetric], MetricValue]

CATEGORIES = ("Receiving", "Rushing", "Passing", "Total", "Efficiency", "Usage")


def safe_div(numer: float, denom: float) -> float:
    # Zero (or negative) denominators yield 0 so charts never see NaN/inf.
    if denom > 0:
        return numer / denom
    return 0.0


def format_default(value: float) -> str:
    """Grouped, at most two decimals: 1234.5 -> '1,234.5', 3.0 -> '3'."""
    out = f"{value:,.2f}".rstrip("0").rstrip(".")
    return "0" if out in ("-0", "") else out


def format_fixed_two(value: float) -> str:
    return f"{value:,.2f}"


def format_one_decimal(value: float) -> str:
    return f"{value:.1f}"


def format_percent(value: float) -> str:
    return f"{value * 100:.1f}%"


@dataclass(frozen=True)
class DirectMetric:
    id: str
    label: str
    category: str
    description: str
    actual_field: str
    expected_field: str
    format: Optional[Formatter] = None


@dataclass(frozen=True)
class CalculatedMetric:
    id: str
    label: str
    category: str
    description: str
    calculator: Calculator
    format: Optional[Formatter] = None


MetricDefinition = Union[DirectMetric, CalculatedMetric]


def _direct(id_: str, label: str, category: str, description: str, actual: str) -> DirectMetric:
    return DirectMetric(
        id=id_,
        label=label,
        category=category,
        description=description,
        actual_field=actual,
        expected_field=f"{actual}_expected",
    )


METRICS: tuple[MetricDefinition, ...] = (
    _direct("receptions", "Receptions vs Expected", "Receiving",
            "How actual catches compare to expected receptions.", "receptions"),
    _direct("receivingYards", "Receiving Yards vs Expected", "Receiving",
            "Track yardage over expectation on receptions.", "receiving_yards"),
    _direct("receivingTD", "Receiving TD vs Expected", "Receiving",
            "Touchdowns scored versus model expectation.", "receiving_td"),
    _direct("receivingFirstDowns", "Receiving 1st Downs vs Expected", "Receiving",
            "Drive-extending plays compared to expected.", "receiving_first_downs"),
    _direct("receivingFantasyPoints", "Receiving Fantasy Pts vs Expected", "Receiving",
            "Fantasy impact relative to expectation.", "receiving_fantasy_points"),
    _direct("receivingInterceptions", "Receiving Interceptions vs Expected", "Receiving",
            "Interceptions thrown when targeting this player.", "receiving_interceptions"),
    _direct("receivingTwoPointConv", "Receiving 2PT Conv vs Expected", "Receiving",
            "Two-point conversions caught vs expected.", "receiving_two_point_conv"),
    _direct("rushingYards", "Rushing Yards vs Expected", "Rushing",
            "Ground yardage over expectation.", "rushing_yards"),
    _direct("rushingTD", "Rushing TD vs Expected", "Rushing",
            "Rushing scores versus expected.", "rushing_td"),
    _direct("rushingFirstDowns", "Rushing 1st Downs vs Expected", "Rushing",
            "Chain-movers compared with expected.", "rushing_first_downs"),
    _direct("rushingFantasyPoints", "Rushing Fantasy Pts vs Expected", "Rushing",
            "Rushing fantasy output relative to expected.", "rushing_fantasy_points"),
    _direct("rushingTwoPointConv", "Rushing 2PT Conv vs Expected", "Rushing",
            "Two-point conversions rushed vs expected.", "rushing_two_point_conv"),
    _direct("passingCompletions", "Completions vs Expected", "Passing",
            "Pass completions versus expected rate.", "passing_completions"),
    _direct("passingYards", "Passing Yards vs Expected", "Passing",
            "Air production versus the expected baseline.", "passing_yards"),
    _direct("passingTD", "Passing TD vs Expected", "Passing",
            "Passing touchdowns relative to model expectations.", "passing_td"),
    _direct("passingFirstDowns", "Passing 1st Downs vs Expected", "Passing",
            "Drive extenders compared with expected quarterback output.", "passing_first_downs"),
    _direct("passingFantasyPoints", "Passing Fantasy Pts vs Expected", "Passing",
            "Passing fantasy totals against expectation.", "passing_fantasy_points"),
    _direct("passingInterceptions", "Interceptions vs Expected", "Passing",
            "Interceptions thrown versus expected rate.", "passing_interceptions"),
    _direct("passingTwoPointConv", "Passing 2PT Conv vs Expected", "Passing",
            "Two-point conversions passed vs expected.", "passing_two_point_conv"),
    _direct("totalYards", "Total Yards vs Expected", "Total",
            "All-purpose yardage versus expectation.", "total_yards"),
    _direct("totalTD", "Total TD vs Expected", "Total",
            "Total touchdowns compared to expected.", "total_td"),
    _direct("totalFirstDowns", "Total 1st Downs vs Expected", "Total",
            "All first downs compared to expected.", "total_first_downs"),
    _direct("totalFantasyPoints", "Total Fantasy Pts vs Expected", "Total",
            "Aggregate fantasy production versus expectation.", "total_fantasy_points"),
    # Efficiency
    CalculatedMetric(
        id="receptionRate",
        label="Reception Rate",
        category="Efficiency",
        description="Catch rate on targets (actual vs expected based on target quality).",
        format=format_percent,
        calculator=lambda r: MetricValue(
            safe_div(r.receptions, r.targets),
            safe_div(r.receptions_expected, r.targets),
        ),
    ),
    CalculatedMetric(
        id="yardsPerReception",
        label="Yards per Reception",
        category="Efficiency",
        description="Average yards gained per catch (actual vs expected).",
        format=format_one_decimal,
        calculator=lambda r: MetricValue(
            safe_div(r.receiving_yards, r.receptions),
            safe_div(r.receiving_yards_expected, r.receptions_expected),
        ),
    ),
    CalculatedMetric(
        id="yardsPerTarget",
        label="Yards per Target",
        category="Efficiency",
        description="Average yards gained per target (actual vs expected).",
        format=format_one_decimal,
        calculator=lambda r: MetricValue(
            safe_div(r.receiving_yards, r.targets),
            safe_div(r.receiving_yards_expected, r.targets),
        ),
    ),
    CalculatedMetric(
        id="airYardsPerTarget",
        label="Air Yards per Target",
        category="Efficiency",
        description="Average air yards (depth of target) per target.",
        format=format_one_decimal,
        # No expected air yards upstream; both sides carry the actual value.
        calculator=lambda r: MetricValue(
            safe_div(r.air_yards, r.targets),
            safe_div(r.air_yards, r.targets),
        ),
    ),
    CalculatedMetric(
        id="yardsPerRush",
        label="Yards per Rush",
        category="Efficiency",
        description="Average yards gained per rush attempt (actual vs expected).",
        format=format_one_decimal,
        calculator=lambda r: MetricValue(
            safe_div(r.rushing_yards, r.rushing_attempts),
            safe_div(r.rushing_yards_expected, r.rushing_attempts),
        ),
    ),
    CalculatedMetric(
        id="completionRate",
        label="Completion Rate",
        category="Efficiency",
        description="Pass completion rate (actual vs expected).",
        format=format_percent,
        calculator=lambda r: MetricValue(
            safe_div(r.passing_completions, r.passing_attempts),
            safe_div(r.passing_completions_expected, r.passing_attempts),
        ),
    ),
    CalculatedMetric(
        id="yardsPerPass",
        label="Yards per Pass Attempt",
        category="Efficiency",
        description="Average yards gained per pass attempt (actual vs expected).",
        format=format_one_decimal,
        calculator=lambda r: MetricValue(
            safe_div(r.passing_yards, r.passing_attempts),
            safe_div(r.passing_yards_expected, r.passing_attempts),
        ),
    ),
    # Usage: shares have no expected counterpart.
    CalculatedMetric(
        id="targetShare",
        label="Target Share",
        category="Usage",
        description="Percentage of team targets received by this player.",
        format=format_percent,
        calculator=lambda r: MetricValue(
            safe_div(r.targets, r.team_targets),
            safe_div(r.targets, r.team_targets),
        ),
    ),
    CalculatedMetric(
        id="rushShare",
        label="Rush Share",
        category="Usage",
        description="Percentage of team rush attempts by this player.",
        format=format_percent,
        calculator=lambda r: MetricValue(
            safe_div(r.rushing_attempts, r.team_rush_attempts),
            safe_div(r.rushing_attempts, r.team_rush_attempts),
        ),
    ),
    CalculatedMetric(
        id="airYardShare",
        label="Air Yard Share",
        category="Usage",
        description="Percentage of team air yards allocated to this player.",
        format=format_percent,
        calculator=lambda r: MetricValue(
            safe_div(r.air_yards, r.team_receiving_air_yards),
            safe_div(r.air_yards, r.team_receiving_air_yards),
        ),
    ),
)

METRICS_BY_ID: dict[str, MetricDefinition] = {m.id: m for m in METRICS}


def get_metric(metric_id: str) -> Optional[MetricDefinition]:
    return METRICS_BY_ID.get(metric_id)


def metric_groups() -> dict[str, list[MetricDefinition]]:
    groups: dict[str, list[MetricDefinition]] = {}
    for m in METRICS:
        groups.setdefault(m.category, []).append(m)
    return groups


def short_label(metric: MetricDefinition) -> str:
    return metric.label.replace(" vs Expected", "")


_POSITION_DEFAULTS: dict[str, tuple[str, ...]] = {
    "QB": ("completionRate", "yardsPerPass", "passingFantasyPoints", "totalFantasyPoints"),
    "RB": ("rushShare", "yardsPerRush", "rushingFantasyPoints", "totalFantasyPoints"),
    "WR": ("targetShare", "receptionRate", "yardsPerTarget", "receivingFantasyPoints", "totalFantasyPoints"),
    "TE": ("targetShare", "receptionRate", "yardsPerTarget", "receivingFantasyPoints", "totalFantasyPoints"),
}


def default_metric_selection(position: str) -> list[str]:
    defaults = _POSITION_DEFAULTS.get((position or "").strip().upper(), ("totalFantasyPoints",))
    picked = [m for m in defaults if m in METRICS_BY_ID]
    if picked:
        return picked
    fallback = [m for m in ("receptions", "receivingFantasyPoints", "totalFantasyPoints") if m in METRICS_BY_ID]
    return fallback or [METRICS[0].id]
