"""Pure domain-to-range mappings shared by every chart builder.

Scales are frozen dataclasses. Anything that changes a domain (``nice``,
``with_domain``) returns a new instance, so a scale handed to a renderer never
changes underneath it.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Hashable, Sequence
from dataclasses import dataclass, field, replace
from typing import Union

import numpy as np
import pandas as pd
from matplotlib import colormaps
from matplotlib.colors import is_color_like, to_hex, to_rgb

from climate_charts.errors import DegenerateDomain, MissingScaleCategory

DEFAULT_TICK_COUNT = 10
DEFAULT_RAMP_SAMPLES = 9

_E10 = math.sqrt(50.0)
_E5 = math.sqrt(10.0)
_E2 = math.sqrt(2.0)

Interpolator = Union[str, Sequence[str], Callable[[float], str]]


def _finite_pair(name: str, values: Sequence[float]) -> tuple[float, float]:
    if len(values) != 2:
        raise ValueError(f"{name} must have exactly two values, got {list(values)!r}.")
    lo, hi = float(values[0]), float(values[1])
    if not (math.isfinite(lo) and math.isfinite(hi)):
        raise ValueError(f"{name} must be finite, got {list(values)!r}.")
    return lo, hi


def _check_scalar(value: float) -> float:
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"Cannot map non-finite value {value!r}.")
    return value


def tick_step(start: float, stop: float, count: int = DEFAULT_TICK_COUNT) -> float:
    """Return a 1, 2 or 5 times power-of-ten step giving roughly ``count`` ticks."""
    span = abs(stop - start)
    if span == 0 or count <= 0:
        return 0.0
    raw = span / count
    power = math.floor(math.log10(raw))
    error = raw / (10.0**power)
    if error >= _E10:
        factor = 10.0
    elif error >= _E5:
        factor = 5.0
    elif error >= _E2:
        factor = 2.0
    else:
        factor = 1.0
    return factor * (10.0**power)


def _snap(value: float, step: float, rounding: Callable[[float], float]) -> float:
    # Multiply by the inverse for sub-unit steps so 1.3 / 0.1 does not land on 12.999...
    if step < 1:
        inverse = round(1.0 / step)
        return rounding(value * inverse) / inverse
    return rounding(value / step) * step


@dataclass(frozen=True)
class LinearScale:
    domain: tuple[float, float]
    range: tuple[float, float]
    clamp: bool = False
    allow_degenerate: bool = False

    def __post_init__(self) -> None:
        domain = _finite_pair("domain", self.domain)
        output = _finite_pair("range", self.range)
        if domain[0] == domain[1] and not self.allow_degenerate:
            raise DegenerateDomain(domain)
        object.__setattr__(self, "domain", domain)
        object.__setattr__(self, "range", output)

    @property
    def is_degenerate(self) -> bool:
        return self.domain[0] == self.domain[1]

    def _normalize(self, value: float) -> float:
        d0, d1 = self.domain
        if d0 == d1:
            return 0.5
        t = (value - d0) / (d1 - d0)
        if self.clamp:
            t = min(1.0, max(0.0, t))
        return t

    def __call__(self, value: float) -> float:
        t = self._normalize(_check_scalar(value))
        r0, r1 = self.range
        return r0 + t * (r1 - r0)

    def map_values(self, values: Sequence[float] | np.ndarray | pd.Series) -> np.ndarray:
        array = np.asarray(values, dtype=float)
        d0, d1 = self.domain
        r0, r1 = self.range
        if d0 == d1:
            return np.full(array.shape, (r0 + r1) / 2.0)
        t = (array - d0) / (d1 - d0)
        if self.clamp:
            t = np.clip(t, 0.0, 1.0)
        return r0 + t * (r1 - r0)

    def invert(self, pixel: float) -> float:
        pixel = _check_scalar(pixel)
        r0, r1 = self.range
        d0, d1 = self.domain
        if r0 == r1:
            return (d0 + d1) / 2.0
        t = (pixel - r0) / (r1 - r0)
        if self.clamp:
            t = min(1.0, max(0.0, t))
        return d0 + t * (d1 - d0)

    def ticks(self, count: int = DEFAULT_TICK_COUNT) -> list[float]:
        lo, hi = sorted(self.domain)
        step = tick_step(lo, hi, count)
        if step == 0:
            return [lo]
        if step < 1:
            inverse = round(1.0 / step)
            first, last = math.ceil(lo * inverse), math.floor(hi * inverse)
            values = [index / inverse for index in range(first, last + 1)]
        else:
            first, last = math.ceil(lo / step), math.floor(hi / step)
            values = [index * step for index in range(first, last + 1)]
        return values if self.domain[0] <= self.domain[1] else values[::-1]

    def nice(self, count: int = DEFAULT_TICK_COUNT) -> LinearScale:
        if self.is_degenerate:
            return self
        reverse = self.domain[0] > self.domain[1]
        lo, hi = sorted(self.domain)
        start, stop = lo, hi
        previous = None
        for _ in range(10):
            step = tick_step(start, stop, count)
            if step == 0 or step == previous:
                break
            start = min(_snap(start, step, math.floor), lo)
            stop = max(_snap(stop, step, math.ceil), hi)
            previous = step
        domain = (stop, start) if reverse else (start, stop)
        return replace(self, domain=domain)

    def with_domain(self, domain: Sequence[float]) -> LinearScale:
        return replace(self, domain=tuple(domain))


def linear(
    domain: Sequence[float],
    range: Sequence[float],
    nice: bool = False,
    *,
    clamp: bool = False,
    allow_degenerate: bool = False,
    tick_count: int = DEFAULT_TICK_COUNT,
) -> LinearScale:
    scale = LinearScale(
        domain=tuple(domain),
        range=tuple(range),
        clamp=clamp,
        allow_degenerate=allow_degenerate,
    )
    return scale.nice(tick_count) if nice else scale


@dataclass(frozen=True)
class TimeScale:
    domain: tuple[pd.Timestamp, pd.Timestamp]
    range: tuple[float, float]
    clamp: bool = False

    def __post_init__(self) -> None:
        start, stop = (pd.Timestamp(value) for value in self.domain)
        if pd.isna(start) or pd.isna(stop):
            raise ValueError(f"Time domain must not contain missing values: {self.domain!r}")
        if start == stop:
            raise DegenerateDomain((start, stop))
        object.__setattr__(self, "domain", (start, stop))
        object.__setattr__(self, "range", _finite_pair("range", self.range))

    @property
    def _linear(self) -> LinearScale:
        return LinearScale(
            domain=(float(self.domain[0].value), float(self.domain[1].value)),
            range=self.range,
            clamp=self.clamp,
        )

    def __call__(self, value: pd.Timestamp | str) -> float:
        return self._linear(float(pd.Timestamp(value).value))

    def invert(self, pixel: float) -> pd.Timestamp:
        return pd.Timestamp(int(round(self._linear.invert(pixel))))

    def ticks(self, count: int = 8) -> list[pd.Timestamp]:
        start, stop = sorted(self.domain)
        # Whole years only; sub-year steps would repeat January 1st.
        step = max(1, int(tick_step(start.year, stop.year, count)))
        first = -(-start.year // step) * step
        stamps = [
            pd.Timestamp(year=year, month=1, day=1) for year in range(first, stop.year + 1, step)
        ]
        return [stamp for stamp in stamps if start <= stamp <= stop]


def time_scale(
    domain: Sequence[pd.Timestamp | str],
    range: Sequence[float],
    *,
    clamp: bool = False,
) -> TimeScale:
    return TimeScale(domain=tuple(domain), range=tuple(range), clamp=clamp)


@dataclass(frozen=True)
class BandScale:
    """Equal-width slots per category; ``padding`` is split evenly around each slot."""

    domain: tuple[Hashable, ...]
    range: tuple[float, float]
    padding: float = 0.0
    _index: dict[Hashable, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        domain = tuple(dict.fromkeys(self.domain))
        if not domain:
            raise DegenerateDomain(domain, reason="band scale needs at least one category")
        if not 0.0 <= self.padding < 1.0:
            raise ValueError(f"padding must be in [0, 1), got {self.padding!r}.")
        object.__setattr__(self, "domain", domain)
        object.__setattr__(self, "range", _finite_pair("range", self.range))
        object.__setattr__(self, "_index", {category: i for i, category in enumerate(domain)})

    @property
    def step(self) -> float:
        lo, hi = sorted(self.range)
        return (hi - lo) / len(self.domain)

    @property
    def bandwidth(self) -> float:
        return self.step * (1.0 - self.padding)

    def index(self, category: Hashable) -> int:
        try:
            return self._index[category]
        except KeyError:
            raise MissingScaleCategory(category, self.domain) from None

    def __call__(self, category: Hashable) -> float:
        position = self.index(category)
        if self.range[0] > self.range[1]:
            position = len(self.domain) - 1 - position
        lo = min(self.range)
        return lo + position * self.step + self.step * self.padding / 2.0

    def center(self, category: Hashable) -> float:
        return self(category) + self.bandwidth / 2.0

    def slots(self) -> list[tuple[Hashable, float, float]]:
        return [(category, self(category), self.bandwidth) for category in self.domain]

    def sub_band(self, domain: Sequence[Hashable], padding: float = 0.0) -> BandScale:
        return BandScale(domain=tuple(domain), range=(0.0, self.bandwidth), padding=padding)

    def with_domain(self, domain: Sequence[Hashable]) -> BandScale:
        return BandScale(domain=tuple(domain), range=self.range, padding=self.padding)


def band(domain: Sequence[Hashable], range: Sequence[float], padding: float = 0.0) -> BandScale:
    return BandScale(domain=tuple(domain), range=tuple(range), padding=padding)


def _validate_colors(colors: Sequence[str]) -> tuple[str, ...]:
    bad = [color for color in colors if not is_color_like(color)]
    if bad:
        raise ValueError(f"Unrecognised colors: {bad!r}")
    return tuple(colors)


@dataclass(frozen=True)
class OrdinalColorScale:
    """Category to colour by position. Unknown categories raise unless ``unknown`` is set."""

    domain: tuple[Hashable, ...]
    range: tuple[str, ...]
    unknown: str | None = None
    _index: dict[Hashable, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        domain = tuple(dict.fromkeys(self.domain))
        if not self.range:
            raise ValueError("ordinal color range must not be empty")
        object.__setattr__(self, "domain", domain)
        object.__setattr__(self, "range", _validate_colors(self.range))
        if self.unknown is not None:
            _validate_colors([self.unknown])
        object.__setattr__(self, "_index", {category: i for i, category in enumerate(domain)})

    def __call__(self, category: Hashable) -> str:
        position = self._index.get(category)
        if position is None:
            if self.unknown is not None:
                return self.unknown
            raise MissingScaleCategory(category, self.domain)
        return self.range[position % len(self.range)]


def ordinal_color(
    domain: Sequence[Hashable],
    range: Sequence[str],
    unknown: str | None = None,
) -> OrdinalColorScale:
    return OrdinalColorScale(domain=tuple(domain), range=tuple(range), unknown=unknown)


@dataclass(frozen=True)
class SequentialColorScale:
    """Piecewise-linear RGB interpolation between colour stops."""

    domain: tuple[float, ...]
    colors: tuple[str, ...]
    clamp: bool = False

    def __post_init__(self) -> None:
        domain = tuple(float(value) for value in self.domain)
        if len(domain) < 2 or len(domain) != len(self.colors):
            raise ValueError("color scale needs at least two stops and one color per stop")
        if not all(math.isfinite(value) for value in domain):
            raise ValueError(f"color domain must be finite, got {list(domain)!r}.")
        steps = np.diff(domain)
        if np.any(steps == 0):
            raise DegenerateDomain(domain, reason="repeated color stop")
        if np.any(steps < 0):
            raise ValueError(f"color domain must be increasing, got {list(domain)!r}.")
        object.__setattr__(self, "domain", domain)
        object.__setattr__(self, "colors", tuple(to_hex(color) for color in _validate_colors(self.colors)))

    def rgb(self, value: float) -> tuple[float, float, float]:
        value = _check_scalar(value)
        stops = np.asarray(self.domain)
        if self.clamp:
            value = min(max(value, stops[0]), stops[-1])
        segment = int(np.searchsorted(stops, value, side="right")) - 1
        segment = min(max(segment, 0), len(stops) - 2)
        t = (value - stops[segment]) / (stops[segment + 1] - stops[segment])
        start = np.asarray(to_rgb(self.colors[segment]))
        stop = np.asarray(to_rgb(self.colors[segment + 1]))
        mixed = np.clip(start + t * (stop - start), 0.0, 1.0)
        return float(mixed[0]), float(mixed[1]), float(mixed[2])

    def __call__(self, value: float) -> str:
        return to_hex(self.rgb(value))

    def gradient_stops(self) -> list[tuple[float, str]]:
        """Stops as (percent offset, color) pairs for a legend gradient."""
        last = len(self.colors) - 1
        return [(index / last * 100.0, color) for index, color in enumerate(self.colors)]


def _ramp_colors(interpolator: Interpolator, samples: int) -> tuple[str, ...]:
    if isinstance(interpolator, str):
        cmap = colormaps[interpolator]
        return tuple(to_hex(cmap(t)) for t in np.linspace(0.0, 1.0, samples))
    if callable(interpolator):
        return tuple(to_hex(interpolator(float(t))) for t in np.linspace(0.0, 1.0, samples))
    return tuple(interpolator)


def sequential_color(
    domain: Sequence[float],
    interpolator: Interpolator,
    *,
    clamp: bool = False,
    samples: int = DEFAULT_RAMP_SAMPLES,
) -> SequentialColorScale:
    lo, hi = _finite_pair("domain", domain)
    if lo == hi:
        raise DegenerateDomain((lo, hi))
    colors = _ramp_colors(interpolator, samples)
    stops = tuple(float(value) for value in np.linspace(lo, hi, len(colors)))
    if lo > hi:
        stops, colors = stops[::-1], colors[::-1]
    return SequentialColorScale(domain=stops, colors=colors, clamp=clamp)


def piecewise_color(
    domain: Sequence[float],
    colors: Sequence[str],
    *,
    clamp: bool = False,
) -> SequentialColorScale:
    return SequentialColorScale(domain=tuple(domain), colors=tuple(colors), clamp=clamp)
