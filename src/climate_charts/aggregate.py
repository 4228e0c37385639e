from __future__ import annotations

import logging
import math
from collections.abc import Callable, Hashable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Literal, TypeVar

import numpy as np
import pandas as pd

from climate_charts.errors import DivisionByZeroError, MissingBaseline

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)

RowPredicate = Callable[[pd.DataFrame], pd.Series]
MissingPolicy = Literal["raise", "flag"]


@dataclass(frozen=True)
class BaselineTable(Mapping[Hashable, float]):
    """Per-group baseline means plus the groups that had no matching rows."""

    measurement: str
    values: dict[Hashable, float]
    missing: tuple[Hashable, ...] = ()

    def __getitem__(self, key: Hashable) -> float:
        try:
            return self.values[key]
        except KeyError:
            raise MissingBaseline(key) from None

    def __contains__(self, key: object) -> bool:
        return key in self.values

    def get(self, key: Hashable, default: float | None = None) -> float | None:
        return self.values.get(key, default)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)


@dataclass(frozen=True)
class AnomalyResult:
    frame: pd.DataFrame
    column: str
    missing_groups: tuple[Hashable, ...] = ()
    dropped_rows: int = 0
    baselines: Mapping[Hashable, float] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        return not self.missing_groups


def historical_period(scenario: str | None, start_year: int, end_year: int) -> RowPredicate:
    """Row filter selecting the reference period used for baselines."""

    def _predicate(frame: pd.DataFrame) -> pd.Series:
        mask = frame["year"].between(start_year, end_year)
        if scenario is not None:
            mask &= frame["scenario"] == scenario
        return mask

    return _predicate


def compute_baseline(
    frame: pd.DataFrame,
    predicate: RowPredicate,
    group_key: str,
    measurement: str,
) -> BaselineTable:
    subset = frame.loc[predicate(frame)]
    subset = subset.loc[subset[measurement].notna()]
    means = subset.groupby(group_key, sort=False)[measurement].mean()
    values = {key: float(value) for key, value in means.items()}

    all_groups = pd.unique(frame[group_key])
    missing = tuple(group for group in all_groups if group not in values)
    if missing:
        LOGGER.warning(
            "No reference rows for %s baseline in groups: %s",
            measurement,
            ", ".join(str(group) for group in missing),
        )
    return BaselineTable(measurement=measurement, values=values, missing=missing)


def compute_anomaly(
    frame: pd.DataFrame,
    baselines: Mapping[Hashable, float],
    group_key: str,
    measurement: str,
    *,
    output: str = "anomaly",
    on_missing: MissingPolicy = "raise",
) -> AnomalyResult:
    if on_missing not in ("raise", "flag"):
        raise ValueError(f"Unsupported on_missing policy: {on_missing!r}")

    groups = pd.unique(frame[group_key])
    missing = tuple(group for group in groups if group not in baselines)
    if missing and on_missing == "raise":
        raise MissingBaseline(missing[0])

    working = frame.copy()
    dropped = 0
    if missing:
        keep = ~working[group_key].isin(missing)
        dropped = int((~keep).sum())
        working = working.loc[keep].copy()
        LOGGER.warning(
            "Dropped %d rows without a baseline for groups: %s",
            dropped,
            ", ".join(str(group) for group in missing),
        )

    lookup = {group: float(baselines[group]) for group in pd.unique(working[group_key])}
    working[output] = working[measurement] - working[group_key].map(lookup).astype(float)
    return AnomalyResult(
        frame=working,
        column=output,
        missing_groups=missing,
        dropped_rows=dropped,
        baselines=lookup,
    )


def group_by(items: Iterable[T], key_fn: Callable[[T], K]) -> dict[K, list[T]]:
    """Group items keeping first-seen key order and in-group order."""
    grouped: dict[K, list[T]] = {}
    for item in items:
        grouped.setdefault(key_fn(item), []).append(item)
    return grouped


def group_frame(frame: pd.DataFrame, column: str) -> dict[Hashable, pd.DataFrame]:
    return {key: group for key, group in frame.groupby(column, sort=False)}


def percent_change(initial: float, final: float) -> float:
    if not (math.isfinite(initial) and math.isfinite(final)):
        raise ValueError(f"percent_change needs finite inputs, got {initial!r} and {final!r}.")
    if initial == 0:
        raise DivisionByZeroError(initial, final)
    return (final / initial - 1.0) * 100.0


def extent(values: Iterable[float] | pd.Series | np.ndarray) -> tuple[float, float]:
    if isinstance(values, (pd.Series, np.ndarray)):
        array = pd.to_numeric(pd.Series(values), errors="coerce").to_numpy(dtype=float)
    else:
        array = np.asarray(list(values), dtype=float)
    finite = array[np.isfinite(array)]
    if finite.size == 0:
        raise ValueError("extent requires at least one finite value")
    return float(finite.min()), float(finite.max())


def values_at_year(
    frame: pd.DataFrame,
    year: float,
    group_key: str,
    measurement: str,
) -> dict[Hashable, float]:
    """Per-group measurement at ``year``, linearly interpolated between observed years."""
    values: dict[Hashable, float] = {}
    for key, rows in group_frame(frame.loc[frame[measurement].notna()], group_key).items():
        ordered = rows.sort_values("year")
        years = ordered["year"].to_numpy(dtype=float)
        measured = ordered[measurement].to_numpy(dtype=float)
        values[key] = float(np.interp(year, years, measured))
    return values


def year_progress(year: float, start_year: int, end_year: int) -> float:
    if end_year == start_year:
        raise ValueError("year_progress needs start_year != end_year")
    return (year - start_year) / (end_year - start_year)
