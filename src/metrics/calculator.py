from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

from src.metrics.definitions import (
    CalculatedMetric,
    DirectMetric,
    MetricDefinition,
    MetricValue,
    format_default,
)
from src.models.opportunity import OpportunityMetric


def _finite(x: float) -> float:
    return x if math.isfinite(x) else 0.0


def metric_values(metric: MetricDefinition, row: OpportunityMetric) -> MetricValue:
    if isinstance(metric, CalculatedMetric):
        out = metric.calculator(row)
        return MetricValue(_finite(out.actual), _finite(out.expected))
    if isinstance(metric, DirectMetric):
        return MetricValue(
            float(getattr(row, metric.actual_field)),
            float(getattr(row, metric.expected_field)),
        )
    raise TypeError(f"unknown metric type: {type(metric).__name__}")


def aggregate(metric: MetricDefinition, rows: Sequence[OpportunityMetric]) -> MetricValue:
    """
    Season-level value for one metric over a player's weekly rows.

    Counting metrics are summed. Rates and shares are the mean of the weekly
    ratios, not the ratio of season sums. No rows -> 0/0.
    """
    weekly = [metric_values(metric, r) for r in rows]
    actual = sum(v.actual for v in weekly)
    expected = sum(v.expected for v in weekly)
    if isinstance(metric, CalculatedMetric):
        if not weekly:
            return MetricValue(0.0, 0.0)
        return MetricValue(actual / len(weekly), expected / len(weekly))
    return MetricValue(actual, expected)


def format_metric_value(metric: Optional[MetricDefinition], value: float) -> str:
    if metric is not None and metric.format is not None:
        return metric.format(value)
    return format_default(value)


def format_signed(metric: Optional[MetricDefinition], value: float) -> str:
    prefix = "+" if value >= 0 else ""
    return prefix + format_metric_value(metric, value)


@dataclass(frozen=True)
class MetricSummary:
    metric: MetricDefinition
    actual: float
    expected: float

    @property
    def diff(self) -> float:
        return self.actual - self.expected

    @property
    def trend(self) -> str:
        if self.diff > 0:
            return "up"
        if self.diff < 0:
            return "down"
        return "flat"

    def formatted(self) -> dict[str, str]:
        return {
            "actual": format_metric_value(self.metric, self.actual),
            "expected": format_metric_value(self.metric, self.expected),
            "diff": format_signed(self.metric, self.diff),
        }


def summarize(metrics: Iterable[MetricDefinition], rows: Sequence[OpportunityMetric]) -> list[MetricSummary]:
    out: list[MetricSummary] = []
    for m in metrics:
        agg = aggregate(m, rows)
        out.append(MetricSummary(metric=m, actual=agg.actual, expected=agg.expected))
    return out


def trend_points(metrics: Sequence[MetricDefinition], rows: Sequence[OpportunityMetric]) -> list[dict[str, Any]]:
    """One chart point per row: {week, label, <id>: actual, <id>Expected: expected}."""
    points: list[dict[str, Any]] = []
    for r in rows:
        point: dict[str, Any] = {"week": r.week, "label": f"Week {r.week}"}
        for m in metrics:
            v = metric_values(m, r)
            point[m.id] = v.actual
            point[f"{m.id}Expected"] = v.expected
        points.append(point)
    return points


@dataclass(frozen=True)
class ScatterPoint:
    week: int
    actual: float
    expected: float
    metric_id: str

    @property
    def label(self) -> str:
        return f"Week {self.week}"


@dataclass(frozen=True)
class ScatterSeries:
    metric: MetricDefinition
    points: list[ScatterPoint]


def scatter_series(metrics: Sequence[MetricDefinition], rows: Sequence[OpportunityMetric]) -> list[ScatterSeries]:
    out: list[ScatterSeries] = []
    for m in metrics:
        pts = []
        for r in rows:
            v = metric_values(m, r)
            pts.append(ScatterPoint(week=r.week, actual=v.actual, expected=v.expected, metric_id=m.id))
        out.append(ScatterSeries(metric=m, points=pts))
    return out


def scatter_domain(series: Iterable[ScatterSeries]) -> tuple[float, float]:
    values = [x for s in series for p in s.points for x in (p.actual, p.expected) if math.isfinite(x)]
    if not values:
        return (0.0, 1.0)
    lo, hi = min(values), max(values)
    if lo == hi:
        pad = abs(lo) * 0.1 or 1.0
        return (lo - pad, hi + pad)
    pad = (hi - lo) * 0.08
    return (lo - pad, hi + pad)


def weekly_comparison(
    players: Sequence[tuple[str, Sequence[OpportunityMetric]]],
    metric: MetricDefinition,
) -> list[dict[str, Any]]:
    """
    Week-aligned chart rows for several players on one metric.

    `players` is (player_id, rows) pairs. Weeks are the union over all players,
    ascending; a player without a row for a week simply has no keys there.
    """
    weeks = sorted({r.week for _, rows in players for r in rows})
    out: list[dict[str, Any]] = []
    for week in weeks:
        point: dict[str, Any] = {"week": week}
        for player_id, rows in players:
            row = next((r for r in rows if r.week == week), None)
            if row is None:
                continue
            v = metric_values(metric, row)
            point[f"{player_id}_actual"] = v.actual
            point[f"{player_id}_expected"] = v.expected
            point[f"{player_id}_diff"] = v.diff
        out.append(point)
    return out
