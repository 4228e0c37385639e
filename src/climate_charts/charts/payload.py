from __future__ import annotations

from collections.abc import Hashable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from climate_charts.config import ChartsConfig, MarginConfig
from climate_charts.scales import OrdinalColorScale, ordinal_color

MarkKind = Literal["point", "rect", "line", "rule", "text", "path", "gradient"]
ALLOWED_MARK_KINDS = frozenset({"point", "rect", "line", "rule", "text", "path", "gradient"})

CATEGORICAL_PALETTE = [
    "#0072B2",
    "#009E73",
    "#E69F00",
    "#CC79A7",
    "#56B4E9",
    "#D55E00",
    "#8B99A8",
    "#475569",
]

Point = tuple[float, float]


@dataclass(slots=True, frozen=True)
class Mark:
    """One drawable element: geometry in chart pixels, a colour and a hover label."""

    kind: MarkKind
    key: str
    coords: tuple[Point, ...]
    color: str
    label: str = ""
    size: tuple[float, float] | None = None
    group: str | None = None
    style: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.kind not in ALLOWED_MARK_KINDS:
            raise ValueError(f"Unsupported mark kind: {self.kind!r}.")
        if not self.key.strip():
            raise ValueError("key must be non-empty.")
        if not self.coords:
            raise ValueError("coords must be non-empty.")
        object.__setattr__(
            self, "coords", tuple((float(x), float(y)) for x, y in self.coords)
        )
        object.__setattr__(self, "style", dict(self.style))

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "key": self.key,
            "coords": [list(point) for point in self.coords],
            "color": self.color,
            "label": self.label,
            "size": list(self.size) if self.size is not None else None,
            "group": self.group,
            "style": dict(self.style),
        }


@dataclass(slots=True, frozen=True)
class Axis:
    name: str
    domain: tuple[Any, ...]
    range: tuple[float, float]
    ticks: tuple[Any, ...] = ()
    tick_labels: tuple[str, ...] = ()
    title: str = ""

    def __post_init__(self) -> None:
        if self.tick_labels and len(self.tick_labels) != len(self.ticks):
            raise ValueError("tick_labels must match ticks one-to-one.")

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "domain": list(self.domain),
            "range": list(self.range),
            "ticks": list(self.ticks),
            "tick_labels": list(self.tick_labels),
            "title": self.title,
        }


@dataclass(slots=True, frozen=True)
class LegendEntry:
    key: str
    label: str
    color: str

    def to_dict(self) -> dict[str, str]:
        return {"key": self.key, "label": self.label, "color": self.color}


@dataclass(slots=True)
class ChartPayload:
    chart_id: str
    width: float
    height: float
    marks: list[Mark] = field(default_factory=list)
    axes: dict[str, Axis] = field(default_factory=dict)
    legend: list[LegendEntry] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)

    def add_warning(self, message: str) -> None:
        self.meta.setdefault("warnings", []).append(message)

    def add_skipped(self, group: Hashable) -> None:
        skipped = self.meta.setdefault("skipped", [])
        if group not in skipped:
            skipped.append(group)

    def marks_of(self, kind: MarkKind) -> list[Mark]:
        return [mark for mark in self.marks if mark.kind == kind]

    def to_dict(self) -> dict[str, Any]:
        return {
            "chart_id": self.chart_id,
            "width": self.width,
            "height": self.height,
            "marks": [mark.to_dict() for mark in self.marks],
            "axes": {name: axis.to_dict() for name, axis in self.axes.items()},
            "legend": [entry.to_dict() for entry in self.legend],
            "meta": dict(self.meta),
        }


def inner_size(width: float, height: float, margin: MarginConfig) -> tuple[float, float]:
    return width - margin.left - margin.right, height - margin.top - margin.bottom


def region_color_scale(regions: Sequence[Hashable], config: ChartsConfig) -> OrdinalColorScale:
    """Configured region colours first; unconfigured regions take palette colours in order."""
    configured: Mapping[str, str] = config.regions
    spare = iter(color for color in CATEGORICAL_PALETTE if color not in configured.values())
    colors = []
    for region in regions:
        color = configured.get(str(region))
        if color is None:
            color = next(spare, CATEGORICAL_PALETTE[len(colors) % len(CATEGORICAL_PALETTE)])
        colors.append(color)
    return ordinal_color(domain=list(regions), range=colors)


def scenario_color_scale(config: ChartsConfig) -> OrdinalColorScale:
    return ordinal_color(domain=config.scenario_ids, range=config.scenario_colors)


def scenario_legend(config: ChartsConfig) -> list[LegendEntry]:
    return [
        LegendEntry(key=scenario.id, label=scenario.label, color=scenario.color)
        for scenario in config.scenarios
    ]


def format_celsius(value: float, digits: int = 1) -> str:
    return f"{value:.{digits}f}°C"
