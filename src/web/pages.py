from __future__ import annotations

import json
import logging
from html import escape
from string import Template
from typing import Any, Callable, Optional, Sequence
from urllib.parse import quote, urlencode

from src.comparison.search import DEBOUNCE_SECONDS, MIN_QUERY_LENGTH, search_loaded_players
from src.comparison.state import VISUALIZATION_MODES, ComparisonState, PlayerCandidate
from src.metrics.calculator import (
    format_metric_value,
    format_signed,
    metric_values,
    scatter_domain,
    scatter_series,
    summarize,
    trend_points,
    weekly_comparison,
)
from src.metrics.definitions import (
    METRICS_BY_ID,
    MetricDefinition,
    default_metric_selection,
    get_metric,
    metric_groups,
    short_label,
)
from src.models.opportunity import OpportunityMetric
from src.models.projection import player_key_to_slug, slug_to_player_key, title_case
from src.web import queries_supabase
from src.web.charts import (
    ACTUAL_COLOR,
    LineSeries,
    ScatterSet,
    projection_chart_data,
    projection_sources,
    render_line_chart,
    render_scatter_chart,
    source_color,
)
from src.web.queries_supabase import RowSource
from src.web.tables import (
    OPPORTUNITY_TABLE,
    PROJECTION_TABLE,
    TableQuery,
    TableSpec,
    facet_values,
    paginate_rows,
)
from src.web.ticker import load_ticker


logger = logging.getLogger(__name__)

Page = tuple[int, str]
QueryParams = dict[str, list[str]]

COMBINED_DEFAULT_METRICS = ("receptions", "receivingYards")

STYLE = """
      :root { --bg: #0b1220; --panel: rgba(255,255,255,0.06); --border: rgba(255,255,255,0.10);
              --text: rgba(255,255,255,0.92); --muted: rgba(255,255,255,0.62); --good: #33d69f; --bad: #ff6b6b; }
      body { margin: 0; font-family: ui-sans-serif, -apple-system, system-ui, Segoe UI, Roboto, sans-serif;
             background: var(--bg); color: var(--text); }
      a { color: var(--text); }
      .wrap { max-width: 1180px; margin: 0 auto; padding: 24px 18px 44px; }
      nav a { margin-right: 14px; text-decoration: none; color: var(--muted); }
      h2 { margin: 14px 0 6px; font-size: 26px; }
      h3 { margin: 22px 0 10px; font-size: 15px; color: var(--muted); text-transform: uppercase; }
      .muted { color: var(--muted); }
      .panel { border: 1px solid var(--border); background: var(--panel); border-radius: 14px; padding: 12px; }
      .cards { display: grid; grid-template-columns: repeat(auto-fill, minmax(200px, 1fr)); gap: 10px; }
      .card { border: 1px solid var(--border); border-radius: 12px; padding: 10px; }
      .value { font-size: 22px; font-weight: 800; }
      .up { color: var(--good); } .down { color: var(--bad); } .flat { color: var(--muted); }
      .ticker { display: flex; gap: 16px; overflow-x: auto; white-space: nowrap; }
      table { border-collapse: collapse; width: 100%; }
      th, td { border-bottom: 1px solid var(--border); padding: 6px 8px; text-align: left; font-size: 13px; }
      .empty { padding: 10px 0; color: var(--muted); }
      .err { color: var(--bad); }
      .chart { width: 100%; height: auto; }
      .chart .plot { fill: none; stroke: var(--border); }
      .chart text { fill: var(--muted); font-size: 10px; }
      .pill { display: inline-block; border: 1px solid var(--border); border-radius: 999px; padding: 2px 10px; margin: 2px; }
      .results a { display: block; padding: 4px 0; }
"""

LAYOUT = Template(
    """<!doctype html>
<html>
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>$TITLE</title>
    <style>$STYLE</style>
  </head>
  <body>
    <div class="wrap">
      <nav><a href="/">Home</a><a href="/players">Projections</a><a href="/ff-opp">FF Opportunity</a><a href="/ff-opp/combined">Compare</a></nav>
      $BODY
    </div>
  </body>
</html>"""
)

SEARCH_SCRIPT = Template(
    """<script>
      (function () {
        const input = document.getElementById("player-search");
        const out = document.getElementById("search-results");
        if (!input) return;
        const selected = $SELECTED;
        let timer = null;
        let generation = 0;

        function note(text, cls) {
          const div = document.createElement("div");
          div.className = cls;
          div.textContent = text;
          out.replaceChildren(div);
        }

        function link(p) {
          const url = new URL(location.href);
          url.searchParams.append("compare", p.playerId);
          const a = document.createElement("a");
          a.href = url.pathname + url.search;
          a.append(p.playerName + " ");
          const meta = document.createElement("span");
          meta.className = "muted";
          meta.textContent = p.team + " · " + p.position;
          a.append(meta);
          return a;
        }

        input.addEventListener("input", function () {
          const query = input.value;
          const gen = ++generation;
          clearTimeout(timer);
          if (query.length < $MIN_LENGTH) { out.replaceChildren(); return; }
          timer = setTimeout(async function () {
            try {
              const res = await fetch("/api/players/search", {
                method: "POST",
                headers: {"Content-Type": "application/json"},
                body: JSON.stringify({query: query})
              });
              const body = await res.json();
              if (gen !== generation) return;
              if (!res.ok) { note(body.error || "Search failed", "err"); return; }
              const players = body.filter(p => !selected.includes(p.playerId));
              if (!players.length) { note("No players found", "empty"); return; }
              out.replaceChildren(...players.map(link));
            } catch (e) {
              if (gen === generation) note("Search failed", "err");
            }
          }, $DELAY_MS);
        });
      })();
    </script>"""
)


def _page(title: str, body: str, *, status: int = 200) -> Page:
    return status, LAYOUT.safe_substitute(TITLE=escape(title), STYLE=STYLE, BODY=body)


def not_found_page(message: str = "Page not found") -> Page:
    return _page("Not found", f"<h2>{escape(message)}</h2><a href='/'>Back home</a>", status=404)


def error_page(message: str = "Something went wrong loading data.") -> Page:
    return _page("Error", f"<h2>Error</h2><div class='muted'>{escape(message)}</div>", status=500)


def _first(qs: QueryParams, name: str) -> str:
    return (qs.get(name, [""])[0] or "").strip()


def _link(path: str, params: Sequence[tuple[str, Any]]) -> str:
    query = urlencode([(k, v) for k, v in params if v not in (None, "")])
    return f"{path}?{query}" if query else path


def metric_ids_from(qs: QueryParams, default: Sequence[str]) -> list[str]:
    # Accepts repeated ?metrics=a&metrics=b as well as ?metrics=a,b.
    ids: list[str] = []
    for raw in qs.get("metrics", []):
        for part in raw.split(","):
            part = part.strip()
            if part in METRICS_BY_ID and part not in ids:
                ids.append(part)
    return ids or list(default)


def _summary_cards(metrics: Sequence[MetricDefinition], rows: Sequence[OpportunityMetric]) -> str:
    cards = []
    for s in summarize(metrics, rows):
        f = s.formatted()
        cards.append(
            f"<div class='card'><div class='muted'>{escape(short_label(s.metric))}</div>"
            f"<div class='value'>{f['actual']}</div>"
            f"<div class='muted'>Expected {f['expected']}</div>"
            f"<div class='{s.trend}'>{f['diff']}</div></div>"
        )
    return "<div class='cards'>" + "".join(cards) + "</div>"


# --- Tables ------------------------------------------------------------------

def _render_table(
    path: str,
    rows: Sequence[Any],
    spec: TableSpec,
    qs: QueryParams,
    *,
    link_column: str,
    href: Callable[[Any], str],
    facets: dict[str, list[str]],
) -> str:
    query = TableQuery.from_params(qs, spec)
    page = paginate_rows(rows, spec, query)
    keep = list(query.filters.items())
    sort_params = [("sort", query.sort), ("dir", "desc" if query.descending else "")] if query.sort else []

    controls = []
    for name in spec.text_filters:
        controls.append(
            f"<input name='{name}' placeholder='{escape(name.title())}' value='{escape(query.filters.get(name, ''))}' />"
        )
    for name, options in facets.items():
        current = query.filters.get(name, "")
        opts = "".join(
            f"<option value='{escape(o)}'{' selected' if o == current else ''}>{escape(o)}</option>" for o in options
        )
        controls.append(f"<select name='{name}'><option value=''>All {escape(name)}s</option>{opts}</select>")
    form = f"<form method='get' action='{path}'>{''.join(controls)}<button>Filter</button></form>"

    head = []
    for col in spec.columns:
        key, direction = query.next_sort(col.key)
        arrow = ""
        if query.sort == col.key:
            arrow = " ▼" if query.descending else " ▲"
        head.append(f"<th><a href='{escape(_link(path, [*keep, ('sort', key), ('dir', direction)]))}'>{col.label}{arrow}</a></th>")

    body = []
    for r in page.rows:
        cells = []
        for col in spec.columns:
            text = escape(col.format(getattr(r, col.key)))
            if col.key == link_column:
                text = f"<a href='{escape(href(r))}'>{text}</a>"
            cells.append(f"<td>{text}</td>")
        body.append("<tr>" + "".join(cells) + "</tr>")
    if not body:
        body.append(f"<tr><td class='empty' colspan='{len(spec.columns)}'>No rows</td></tr>")

    pager = [f"<span class='muted'>Page {page.page + 1} of {page.page_count} · {page.total} rows</span>"]
    if page.has_previous:
        pager.append(f" <a href='{escape(_link(path, [*keep, *sort_params, ('page', page.page - 1)]))}'>Previous</a>")
    if page.has_next:
        pager.append(f" <a href='{escape(_link(path, [*keep, *sort_params, ('page', page.page + 1)]))}'>Next</a>")

    return (
        f"<div class='panel'>{form}<table><thead><tr>{''.join(head)}</tr></thead>"
        f"<tbody>{''.join(body)}</tbody></table><div>{''.join(pager)}</div></div>"
    )


# --- Pages -------------------------------------------------------------------

def home_page(sb: RowSource, season: int) -> Page:
    week, items = load_ticker(sb, season)
    ticker = ""
    if items:
        total = get_metric("totalFantasyPoints")
        entries = "".join(
            f"<a href='{escape(i.href)}'>{escape(i.player_name)} "
            f"<span class='muted'>{escape(i.team)} {escape(i.position)}</span> "
            f"<span class='{'up' if i.diff > 0 else 'down'}'>{format_signed(total, i.diff)}</span></a>"
            for i in items
        )
        ticker = f"<h3>Week {week} over/under performers</h3><div class='panel ticker'>{entries}</div>"
    body = (
        "<h2>Fantasy Freaks HQ</h2>"
        f"<div class='muted'>{season} season: fantasy opportunity vs expectation.</div>"
        f"{ticker}"
        "<h3>Explore</h3><div class='cards'>"
        "<a class='card' href='/players'>Player projections</a>"
        "<a class='card' href='/ff-opp'>Fantasy opportunity</a>"
        "<a class='card' href='/ff-opp/combined'>Compare players</a></div>"
    )
    return _page("Fantasy Freaks HQ", body)


def projections_page(sb: RowSource, qs: QueryParams) -> Page:
    rows = queries_supabase.load_projections(sb)
    table = _render_table(
        "/players",
        rows,
        PROJECTION_TABLE,
        qs,
        link_column="player_name",
        href=lambda r: f"/players/{r.slug}",
        facets={"position": facet_values(rows, "pos"), "source": facet_values(rows, "source")},
    )
    return _page("Player projections", f"<h2>Player projections</h2>{table}")


def projection_detail_page(sb: RowSource, slug: str) -> Page:
    player_key = slug_to_player_key(slug)
    projections = queries_supabase.load_player_projections(sb, player_key)
    if not projections:
        return not_found_page("Player not found")

    first = projections[0]
    name = first.player_name or title_case(player_key)
    sources = projection_sources(projections)
    points = projection_chart_data(projections)
    labels = [p["label"] for p in points]
    series = [LineSeries("Actual", ACTUAL_COLOR, {p["label"]: p["actual"] for p in points})]
    for i, source in enumerate(sources):
        values = {p["label"]: p[source] for p in points if source in p}
        series.append(LineSeries(source, source_color(i), values, dashed=True))

    rows = "".join(
        f"<tr><td>{p.season}</td><td>{p.week}</td><td>{escape(p.source)}</td>"
        f"<td>{p.projected_points:.2f}</td><td>{p.fantasy_points:.2f}</td></tr>"
        for p in projections
    )
    body = (
        f"<h2>{escape(name)}</h2>"
        f"<div class='muted'>{escape(first.pos)} · {escape(first.team)}</div>"
        "<h3>Sources</h3><div>"
        + "".join(f"<span class='pill'>{escape(s)}</span>" for s in sources)
        + "</div><h3>Projected vs actual</h3><div class='panel'>"
        + render_line_chart(labels, series, x_label="Week", y_label="Fantasy points")
        + "</div><h3>Weekly projections</h3><div class='panel'><table>"
        "<thead><tr><th>Season</th><th>Week</th><th>Source</th><th>Projected</th><th>Actual</th></tr></thead>"
        f"<tbody>{rows}</tbody></table></div>"
    )
    return _page(name, body)


def opportunity_page(sb: RowSource, season: int, qs: QueryParams) -> Page:
    rows = queries_supabase.load_opportunities(sb, season)
    table = _render_table(
        "/ff-opp",
        rows,
        OPPORTUNITY_TABLE,
        qs,
        link_column="full_name",
        href=lambda r: f"/ff-opp/{player_key_to_slug(r.full_name)}",
        facets={"position": facet_values(rows, "position")},
    )
    return _page("Fantasy opportunity", f"<h2>Fantasy opportunity · {season}</h2>{table}")


def _metric_picker(path: str, selected: Sequence[str], hidden: Sequence[tuple[str, str]]) -> str:
    groups = []
    for category, metrics in metric_groups().items():
        boxes = "".join(
            f"<label class='pill'><input type='checkbox' name='metrics' value='{m.id}'"
            f"{' checked' if m.id in selected else ''} /> {escape(short_label(m))}</label>"
            for m in metrics
        )
        groups.append(f"<div><span class='muted'>{category}</span> {boxes}</div>")
    inputs = "".join(f"<input type='hidden' name='{k}' value='{escape(v)}' />" for k, v in hidden)
    return f"<form method='get' action='{escape(path)}' class='panel'>{''.join(groups)}{inputs}<button>Apply</button></form>"


def _player_charts(state: ComparisonState, metrics: Sequence[MetricDefinition], *, scatter_metric: Optional[str]) -> str:
    """Single-player trend/scatter, or one chart per metric when comparing."""
    if not state.players:
        return "<div class='empty'>No data</div>"

    if len(state.players) == 1:
        player = state.players[0]
        if state.mode == "scatter":
            series = scatter_series(metrics, player.rows)
            sets = [
                ScatterSet(short_label(s.metric), player.color.metric_color(i), [(p.expected, p.actual, p.label) for p in s.points])
                for i, s in enumerate(series)
            ]
            return render_scatter_chart(sets, scatter_domain(series))
        points = trend_points(metrics, player.rows)
        weeks = [p["week"] for p in points]
        lines = []
        for i, m in enumerate(metrics):
            lines.append(LineSeries(short_label(m), player.color.metric_color(i), {p["week"]: p[m.id] for p in points}))
            lines.append(
                LineSeries(
                    f"{short_label(m)} (exp)",
                    player.color.metric_color(i, expected=True),
                    {p["week"]: p[f"{m.id}Expected"] for p in points},
                    dashed=True,
                )
            )
        return render_line_chart(weeks, lines)

    if state.mode == "scatter":
        metric = get_metric(state.scatter_metric(scatter_metric))
        if metric is None:
            return ""
        per_player = [(p, scatter_series([metric], p.rows)[0]) for p in state.players]
        sets = [
            ScatterSet(p.player_name, p.color.base, [(pt.expected, pt.actual, pt.label) for pt in s.points])
            for p, s in per_player
        ]
        chart = render_scatter_chart(sets, scatter_domain(s for _, s in per_player))
        return f"<h3>{escape(metric.label)}</h3>{chart}"

    charts = []
    for metric in metrics:
        points = weekly_comparison([(p.player_id, p.rows) for p in state.players], metric)
        weeks = [pt["week"] for pt in points]
        lines = []
        for p in state.players:
            lines.append(
                LineSeries(p.player_name, p.color.base, {pt["week"]: pt[f"{p.player_id}_actual"] for pt in points if f"{p.player_id}_actual" in pt})
            )
            lines.append(
                LineSeries(
                    f"{p.player_name} (exp)",
                    p.color.metric_color(1, expected=True),
                    {pt["week"]: pt[f"{p.player_id}_expected"] for pt in points if f"{p.player_id}_expected" in pt},
                    dashed=True,
                )
            )
        charts.append(f"<h3>{escape(metric.label)}</h3>{render_line_chart(weeks, lines)}")
    return "".join(charts)


def _weekly_table(metrics: Sequence[MetricDefinition], rows: Sequence[OpportunityMetric]) -> str:
    head = "".join(f"<th>{escape(short_label(m))}</th><th>Exp</th><th>Diff</th>" for m in metrics)
    body = []
    for r in rows:
        cells = [f"<td>{r.week}</td>", f"<td>{escape(r.team)}</td>"]
        for m in metrics:
            v = metric_values(m, r)
            trend = "up" if v.diff > 0 else "down" if v.diff < 0 else "flat"
            cells.append(
                f"<td>{format_metric_value(m, v.actual)}</td><td>{format_metric_value(m, v.expected)}</td>"
                f"<td class='{trend}'>{format_signed(m, v.diff)}</td>"
            )
        body.append("<tr>" + "".join(cells) + "</tr>")
    return f"<table><thead><tr><th>Week</th><th>Team</th>{head}</tr></thead><tbody>{''.join(body)}</tbody></table>"


def opportunity_detail_page(sb: RowSource, season: int, slug: str, qs: QueryParams) -> Page:
    rows = queries_supabase.load_player_opportunities_by_name(sb, season, slug)
    if not rows:
        return not_found_page("Player not found")

    latest = rows[-1]
    current = PlayerCandidate(
        player_id=latest.player_id or latest.full_name,
        player_name=latest.full_name,
        team=latest.team,
        position=latest.position,
    )
    metric_ids = metric_ids_from(qs, default_metric_selection(current.position))
    view = _first(qs, "view")
    view = view if view in ("trend", "scatter") else "trend"

    state = ComparisonState.for_player(current, rows, metrics=metric_ids)
    state = state.set_mode("scatter" if view == "scatter" else "line")
    for pid in qs.get("compare", []):
        if state.is_full:
            break
        if not pid or state.has_player(pid):
            continue
        history = queries_supabase.player_opportunity_history(sb, season, pid)
        if not history:
            logger.info("No opportunity rows for compare player %s", pid)
            continue
        last = history[-1]
        state = state.add_player(PlayerCandidate(pid, last.full_name, last.team, last.position), history)

    metrics = [METRICS_BY_ID[m] for m in state.metrics]
    path = f"/ff-opp/{quote(slug)}"
    compare_ids = [p.player_id for p in state.players if p.player_id != state.pinned_player_id]
    base = [("view", view), *(("compare", c) for c in compare_ids)]
    metric_params = [("metrics", m) for m in state.metrics]

    view_links = " ".join(
        f"<a class='pill' href='{escape(_link(path, [('view', v), *metric_params, *(('compare', c) for c in compare_ids)]))}'>"
        f"{'▶ ' if v == view else ''}{v.title()}</a>"
        for v in ("trend", "scatter")
    )

    chips = []
    for p in state.players:
        if p.player_id == state.pinned_player_id:
            chips.append(f"<span class='pill' style='border-color:{p.color.base}'>{escape(p.player_name)} (pinned)</span>")
            continue
        remaining = [c for c in compare_ids if c != p.player_id]
        href = _link(path, [("view", view), *metric_params, *(("compare", c) for c in remaining)])
        chips.append(
            f"<span class='pill' style='border-color:{p.color.base}'>{escape(p.player_name)} "
            f"<a href='{escape(href)}' title='Remove'>×</a></span>"
        )
    if state.is_full:
        search = f"<div class='muted'>Maximum of {state.max_players} players selected.</div>"
    else:
        search = "<input id='player-search' placeholder='Add a player to compare' autocomplete='off' /><div id='search-results' class='results'></div>"
    selected_js = json.dumps([p.player_id for p in state.players]).replace("</", "<\\/")

    body = (
        f"<h2>{escape(current.player_name)}</h2>"
        f"<div class='muted'>{escape(current.position)} · {escape(current.team)} · {season}</div>"
        f"<h3>Metrics</h3>{_metric_picker(path, state.metrics, base)}"
        f"<h3>Season summary</h3>{_summary_cards(metrics, rows)}"
        f"<h3>Actual vs expected</h3><div>{view_links}</div>"
        f"<div class='panel'>{_player_charts(state, metrics, scatter_metric=_first(qs, 'scatter_metric') or None)}</div>"
        f"<h3>Compare</h3><div class='panel'>{''.join(chips)}{search}</div>"
        f"<h3>Weekly</h3><div class='panel'>{_weekly_table(metrics, rows)}</div>"
        + SEARCH_SCRIPT.safe_substitute(
            SELECTED=selected_js,
            MIN_LENGTH=MIN_QUERY_LENGTH,
            DELAY_MS=round(DEBOUNCE_SECONDS * 1000),
        )
    )
    return _page(current.player_name, body)


def combined_page(sb: RowSource, season: int, qs: QueryParams) -> Page:
    rows = queries_supabase.load_opportunities(sb, season)
    by_name: dict[str, list[OpportunityMetric]] = {}
    for r in rows:
        if r.full_name:
            by_name.setdefault(r.full_name, []).append(r)
    for history in by_name.values():
        history.sort(key=lambda r: r.week)

    mode = _first(qs, "mode")
    state = ComparisonState(metrics=tuple(metric_ids_from(qs, COMBINED_DEFAULT_METRICS)))
    state = state.set_mode(mode if mode in VISUALIZATION_MODES else "line")
    for name in qs.get("players", []):
        history = by_name.get(name)
        if not history or state.is_full:
            continue
        last = history[-1]
        state = state.add_player(PlayerCandidate(name, name, last.team, last.position), history)

    metrics = [METRICS_BY_ID[m] for m in state.metrics]
    selected = [p.player_id for p in state.players]
    metric_params = [("metrics", m) for m in state.metrics]
    base = [("mode", state.mode), *metric_params]
    path = "/ff-opp/combined"

    q = _first(qs, "q")
    results = ""
    if q and not state.is_full:
        found = [c for c in search_loaded_players(rows, q) if c.player_id not in selected][:20]
        results = "".join(
            f"<a href='{escape(_link(path, [*base, *(('players', s) for s in selected), ('players', c.player_id)]))}'>"
            f"{escape(c.player_name)} <span class='muted'>{escape(c.team)} · {escape(c.position)}</span></a>"
            for c in found
        ) or "<div class='empty'>No players found</div>"
    search = (
        f"<form method='get' action='{path}'>"
        + "".join(f"<input type='hidden' name='{k}' value='{escape(v)}' />" for k, v in base)
        + "".join(f"<input type='hidden' name='players' value='{escape(s)}' />" for s in selected)
        + f"<input name='q' value='{escape(q)}' placeholder='Search players' /><button>Search</button></form>"
        f"<div class='results'>{results}</div>"
    )

    chips = "".join(
        f"<span class='pill' style='border-color:{p.color.base}'>{escape(p.player_name)} "
        f"<a href='{escape(_link(path, [*base, *(('players', s) for s in selected if s != p.player_id)]))}'>×</a></span>"
        for p in state.players
    )
    mode_links = " ".join(
        f"<a class='pill' href='{escape(_link(path, [('mode', m), *metric_params, *(('players', s) for s in selected)]))}'>"
        f"{'▶ ' if m == state.mode else ''}{m.title()}</a>"
        for m in VISUALIZATION_MODES
    )
    cards = "".join(f"<h3>{escape(p.player_name)}</h3>{_summary_cards(metrics, p.rows)}" for p in state.players)
    charts = ""
    if state.players:
        charts = _player_charts(state, metrics, scatter_metric=_first(qs, "scatter_metric") or None)

    body = (
        f"<h2>Compare players · {season}</h2>"
        f"<div class='panel'>{chips or '<span class=muted>No players selected</span>'}{search}</div>"
        f"<h3>Metrics</h3>{_metric_picker(path, state.metrics, [('mode', state.mode), *(('players', s) for s in selected)])}"
        f"<div>{mode_links}</div>"
        f"{cards}<div class='panel'>{charts or '<div class=empty>Select players to compare</div>'}</div>"
    )
    return _page("Compare players", body)
