from __future__ import annotations

from dataclasses import dataclass
from html import escape
from typing import Any, Optional, Sequence

from src.models.projection import PlayerProjection


SOURCE_COLORS = (
    "#2563EB",
    "#EA580C",
    "#F59E0B",
    "#7C3AED",
    "#DB2777",
    "#0891B2",
    "#16A34A",
    "#E11D48",
    "#BE123C",
    "#0F766E",
)
ACTUAL_COLOR = "#10B981"

_W, _H, _PAD = 720, 320, 36


def projection_chart_data(projections: Sequence[PlayerProjection]) -> list[dict[str, Any]]:
    """
    One point per (season, week): `actual` from the last row seen for that week
    plus one key per projection source. Sorted by season, then week.
    """
    points: dict[tuple[int, int], dict[str, Any]] = {}
    for p in projections:
        key = (p.season, p.week)
        entry = points.setdefault(
            key,
            {"season": p.season, "week": p.week, "label": f"S{p.season} · W{p.week}", "actual": p.fantasy_points},
        )
        entry["actual"] = p.fantasy_points
        if p.source:
            entry[p.source] = p.projected_points
    return [points[k] for k in sorted(points)]


def projection_sources(projections: Sequence[PlayerProjection]) -> list[str]:
    return sorted({p.source for p in projections if p.source})


@dataclass(frozen=True)
class LineSeries:
    name: str
    color: str
    values: dict[Any, float]
    dashed: bool = False


@dataclass(frozen=True)
class ScatterSet:
    name: str
    color: str
    # (expected, actual, label)
    points: list[tuple[float, float, str]]


def _scale(v: float, lo: float, hi: float, out_lo: float, out_hi: float) -> float:
    if hi == lo:
        return (out_lo + out_hi) / 2
    return out_lo + (v - lo) * (out_hi - out_lo) / (hi - lo)


def _frame(inner: str, *, x_label: str, y_label: str, lo: float, hi: float) -> str:
    return (
        f'<svg class="chart" viewBox="0 0 {_W} {_H}" role="img">'
        f'<rect x="{_PAD}" y="{_PAD / 2}" width="{_W - 1.5 * _PAD}" height="{_H - 1.5 * _PAD}" class="plot"/>'
        f'<text x="{_W / 2}" y="{_H - 4}" class="axis">{escape(x_label)}</text>'
        f'<text x="4" y="{_PAD / 2 + 10}" class="axis">{hi:.1f}</text>'
        f'<text x="4" y="{_H - _PAD}" class="axis">{lo:.1f}</text>'
        f'<text x="4" y="{_H / 2}" class="axis">{escape(y_label)}</text>'
        f"{inner}</svg>"
    )


def render_line_chart(
    x_values: Sequence[Any],
    series: Sequence[LineSeries],
    *,
    x_label: str = "Week",
    y_label: str = "",
) -> str:
    ys = [v for s in series for v in s.values.values()]
    if not x_values or not ys:
        return '<div class="empty">No chart data</div>'
    lo, hi = min(ys + [0.0]), max(ys + [0.0])
    xs = {x: _scale(i, 0, max(len(x_values) - 1, 1), _PAD, _W - _PAD / 2) for i, x in enumerate(x_values)}

    parts: list[str] = []
    for x in x_values:
        parts.append(f'<text x="{xs[x]:.1f}" y="{_H - _PAD + 14}" class="tick">{escape(str(x))}</text>')
    legend_y = _PAD / 2 + 12
    for s in series:
        coords = [
            f"{xs[x]:.1f},{_scale(s.values[x], lo, hi, _H - _PAD, _PAD / 2):.1f}"
            for x in x_values
            if x in s.values
        ]
        dash = ' stroke-dasharray="5 5"' if s.dashed else ""
        parts.append(
            f'<polyline fill="none" stroke="{escape(s.color)}" stroke-width="2"{dash} points="{" ".join(coords)}">'
            f"<title>{escape(s.name)}</title></polyline>"
        )
        parts.append(f'<text x="{_W - _PAD * 5}" y="{legend_y:.0f}" fill="{escape(s.color)}" class="legend">{escape(s.name)}</text>')
        legend_y += 12
    return _frame("".join(parts), x_label=x_label, y_label=y_label, lo=lo, hi=hi)


def render_scatter_chart(
    sets: Sequence[ScatterSet],
    domain: tuple[float, float],
    *,
    x_label: str = "Expected",
    y_label: str = "Actual",
) -> str:
    if not any(s.points for s in sets):
        return '<div class="empty">No chart data</div>'
    lo, hi = domain

    def sx(v: float) -> float:
        return _scale(v, lo, hi, _PAD, _W - _PAD / 2)

    def sy(v: float) -> float:
        return _scale(v, lo, hi, _H - _PAD, _PAD / 2)

    # y = x: actual exactly matched expected.
    parts = [
        f'<line x1="{sx(lo):.1f}" y1="{sy(lo):.1f}" x2="{sx(hi):.1f}" y2="{sy(hi):.1f}" stroke="#666" stroke-dasharray="5 5"/>'
    ]
    for s in sets:
        for expected, actual, label in s.points:
            parts.append(
                f'<circle cx="{sx(expected):.1f}" cy="{sy(actual):.1f}" r="6" fill="{escape(s.color)}">'
                f"<title>{escape(s.name)} {escape(label)}: expected {expected:.2f}, actual {actual:.2f}</title></circle>"
            )
    return _frame("".join(parts), x_label=x_label, y_label=y_label, lo=lo, hi=hi)


def source_color(index: int, *, palette: Optional[Sequence[str]] = None) -> str:
    colors = palette or SOURCE_COLORS
    return colors[index % len(colors)]
