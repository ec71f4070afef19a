from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

import pandas as pd  # type: ignore

from src.metrics.definitions import format_fixed_two


@dataclass(frozen=True)
class Column:
    key: str
    label: str
    format: Callable[[Any], str] = str


@dataclass(frozen=True)
class TableSpec:
    columns: tuple[Column, ...]
    # query param -> attribute, substring match (case-insensitive)
    text_filters: dict[str, str] = field(default_factory=dict)
    # query param -> attribute, exact match
    exact_filters: dict[str, str] = field(default_factory=dict)
    page_size: int = 25

    def column(self, key: str) -> Optional[Column]:
        return next((c for c in self.columns if c.key == key), None)


def _int_fmt(v: Any) -> str:
    return f"{int(v):d}"


OPPORTUNITY_TABLE = TableSpec(
    columns=(
        Column("full_name", "Player"),
        Column("position", "Position"),
        Column("team", "Team"),
        Column("season", "Season", _int_fmt),
        Column("week", "Week", _int_fmt),
        Column("receptions", "Receptions", format_fixed_two),
        Column("targets", "Targets", format_fixed_two),
        Column("receiving_yards", "Rec Yards", format_fixed_two),
        Column("air_yards", "Air Yards", format_fixed_two),
        Column("receiving_td", "Rec TD", format_fixed_two),
        Column("rushing_attempts", "Rush Att", format_fixed_two),
        Column("rushing_yards", "Rush Yards", format_fixed_two),
        Column("total_td", "Total TD", format_fixed_two),
        Column("total_fantasy_points", "Fantasy Pts", format_fixed_two),
    ),
    text_filters={"player": "full_name", "team": "team"},
    exact_filters={"position": "position"},
    page_size=25,
)

PROJECTION_TABLE = TableSpec(
    columns=(
        Column("player_name", "Player"),
        Column("pos", "Position"),
        Column("team", "Team"),
        Column("source", "Source"),
        Column("season", "Season", _int_fmt),
        Column("week", "Week", _int_fmt),
        Column("projected_points", "Projected Pts", format_fixed_two),
        Column("fantasy_points", "Actual Pts", format_fixed_two),
    ),
    text_filters={"player": "player_name", "team": "team"},
    exact_filters={"position": "pos", "source": "source"},
    page_size=10,
)


@dataclass(frozen=True)
class TableQuery:
    sort: Optional[str] = None
    descending: bool = False
    filters: dict[str, str] = field(default_factory=dict)
    page: int = 0

    @classmethod
    def from_params(cls, qs: dict[str, list[str]], spec: TableSpec) -> "TableQuery":
        def first(name: str) -> str:
            return (qs.get(name, [""])[0] or "").strip()

        sort = first("sort") or None
        if sort is not None and spec.column(sort) is None:
            sort = None
        filters = {}
        for name in (*spec.text_filters, *spec.exact_filters):
            value = first(name)
            if value:
                filters[name] = value
        try:
            page = max(int(first("page") or 0), 0)
        except ValueError:
            page = 0
        return cls(sort=sort, descending=first("dir") == "desc", filters=filters, page=page)

    def next_sort(self, key: str) -> tuple[str, str]:
        # Header clicks go unsorted -> asc -> desc -> asc.
        if self.sort == key and not self.descending:
            return key, "desc"
        return key, "asc"


@dataclass(frozen=True)
class TablePage:
    rows: list[Any]
    page: int
    page_count: int
    total: int

    @property
    def has_previous(self) -> bool:
        return self.page > 0

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.page_count


def paginate_rows(rows: Sequence[Any], spec: TableSpec, query: TableQuery) -> TablePage:
    if not rows:
        return TablePage(rows=[], page=0, page_count=1, total=0)

    attrs = [c.key for c in spec.columns]
    df = pd.DataFrame([{a: getattr(r, a) for a in attrs} for r in rows])

    mask = pd.Series(True, index=df.index)
    for name, value in query.filters.items():
        if name in spec.text_filters:
            col = df[spec.text_filters[name]].astype(str)
            mask &= col.str.contains(value, case=False, regex=False)
        elif name in spec.exact_filters:
            mask &= df[spec.exact_filters[name]] == value
    df = df[mask]

    if query.sort:
        df = df.sort_values(query.sort, ascending=not query.descending, kind="mergesort")

    total = len(df)
    page_count = max(1, math.ceil(total / spec.page_size))
    page = min(query.page, page_count - 1)
    start = page * spec.page_size
    picked = df.index[start : start + spec.page_size]
    return TablePage(rows=[rows[i] for i in picked], page=page, page_count=page_count, total=total)


def facet_values(rows: Sequence[Any], attr: str) -> list[str]:
    return sorted({getattr(r, attr) for r in rows if getattr(r, attr)})
