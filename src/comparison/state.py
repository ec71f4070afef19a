from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional, Sequence

from src.metrics.definitions import METRICS_BY_ID
from src.models.opportunity import OpportunityMetric


MAX_PLAYERS = 6
DEFAULT_SCATTER_METRIC = "receptions"
VISUALIZATION_MODES = ("line", "scatter")


@dataclass(frozen=True)
class ColorScheme:
    name: str
    base: str
    shades: tuple[str, ...]

    def metric_color(self, metric_index: int, *, expected: bool = False) -> str:
        # Expected series reuse the shade with 50% alpha.
        color = self.shades[min(metric_index, len(self.shades) - 1)]
        return color + "80" if expected else color


PALETTE: tuple[ColorScheme, ...] = (
    ColorScheme("blue", "#2563eb", ("#1d4ed8", "#2563eb", "#3b82f6", "#60a5fa", "#93c5fd")),
    ColorScheme("orange", "#f97316", ("#ea580c", "#f97316", "#fb923c", "#fdba74", "#fed7aa")),
    ColorScheme("green", "#16a34a", ("#15803d", "#16a34a", "#22c55e", "#4ade80", "#86efac")),
    ColorScheme("red", "#dc2626", ("#b91c1c", "#dc2626", "#ef4444", "#f87171", "#fca5a5")),
    ColorScheme("purple", "#7c3aed", ("#6d28d9", "#7c3aed", "#8b5cf6", "#a78bfa", "#c4b5fd")),
    ColorScheme("pink", "#db2777", ("#be185d", "#db2777", "#ec4899", "#f472b6", "#f9a8d4")),
    ColorScheme("sky", "#0ea5e9", ("#0284c7", "#0ea5e9", "#38bdf8", "#7dd3fc", "#bae6fd")),
    ColorScheme("emerald", "#059669", ("#047857", "#059669", "#10b981", "#34d399", "#6ee7b7")),
)


@dataclass(frozen=True)
class PaletteAllocator:
    """
    Hands out palette indices: the first unused one, or, once every color is
    taken, `selected_count % size` (plain round-robin by selection order).
    """

    size: int = len(PALETTE)
    used: frozenset[int] = frozenset()

    def allocate(self, selected_count: int) -> tuple[int, "PaletteAllocator"]:
        for i in range(self.size):
            if i not in self.used:
                return i, replace(self, used=self.used | {i})
        return selected_count % self.size, self

    def release(self, index: int) -> "PaletteAllocator":
        return replace(self, used=self.used - {index})


@dataclass(frozen=True)
class PlayerCandidate:
    player_id: str
    player_name: str
    team: str = ""
    position: str = ""

    def to_json(self) -> dict[str, str]:
        return {
            "playerId": self.player_id,
            "playerName": self.player_name,
            "team": self.team,
            "position": self.position,
        }


@dataclass(frozen=True)
class SelectedPlayer:
    player_id: str
    player_name: str
    team: str
    position: str
    color_index: int
    rows: tuple[OpportunityMetric, ...] = ()

    @property
    def color(self) -> ColorScheme:
        return PALETTE[self.color_index % len(PALETTE)]


@dataclass(frozen=True)
class ComparisonState:
    players: tuple[SelectedPlayer, ...] = ()
    metrics: tuple[str, ...] = ()
    mode: str = "line"
    pinned_player_id: Optional[str] = None
    max_players: int = MAX_PLAYERS
    allocator: PaletteAllocator = field(default_factory=PaletteAllocator)

    @classmethod
    def for_player(
        cls,
        current: PlayerCandidate,
        rows: Sequence[OpportunityMetric],
        *,
        metrics: Sequence[str] = (),
    ) -> "ComparisonState":
        state = cls(pinned_player_id=current.player_id).add_player(current, rows)
        for metric_id in metrics:
            state = state.toggle_metric(metric_id)
        return state

    @property
    def is_active(self) -> bool:
        return bool(self.players)

    @property
    def is_full(self) -> bool:
        return len(self.players) >= self.max_players

    def has_player(self, player_id: str) -> bool:
        return any(p.player_id == player_id for p in self.players)

    def add_player(self, candidate: PlayerCandidate, rows: Sequence[OpportunityMetric]) -> "ComparisonState":
        if self.has_player(candidate.player_id) or self.is_full:
            return self
        color_index, allocator = self.allocator.allocate(len(self.players))
        player = SelectedPlayer(
            player_id=candidate.player_id,
            player_name=candidate.player_name,
            team=candidate.team,
            position=candidate.position,
            color_index=color_index,
            rows=tuple(rows),
        )
        return replace(self, players=self.players + (player,), allocator=allocator)

    def remove_player(self, player_id: str) -> "ComparisonState":
        if player_id == self.pinned_player_id:
            return self
        target = next((p for p in self.players if p.player_id == player_id), None)
        if target is None:
            return self
        return replace(
            self,
            players=tuple(p for p in self.players if p.player_id != player_id),
            allocator=self.allocator.release(target.color_index),
        )

    def toggle_metric(self, metric_id: str) -> "ComparisonState":
        if metric_id in self.metrics:
            return replace(self, metrics=tuple(m for m in self.metrics if m != metric_id))
        if metric_id not in METRICS_BY_ID:
            return self
        return replace(self, metrics=self.metrics + (metric_id,))

    def set_mode(self, mode: str) -> "ComparisonState":
        if mode not in VISUALIZATION_MODES:
            raise ValueError(f"unknown visualization mode: {mode!r}")
        return replace(self, mode=mode)

    def scatter_metric(self, preferred: Optional[str] = None) -> str:
        if preferred and preferred in self.metrics:
            return preferred
        return self.metrics[0] if self.metrics else DEFAULT_SCATTER_METRIC
