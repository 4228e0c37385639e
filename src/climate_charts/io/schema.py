from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from climate_charts.config import ColumnsConfig
from climate_charts.errors import RecordSchemaError


@dataclass(frozen=True)
class CanonicalColumns:
    region: str = "region"
    year: str = "year"
    scenario: str = "scenario"
    date: str = "date"


@dataclass(frozen=True)
class ClimateRecord:
    """One validated observation. Immutable once loaded."""

    region: str
    year: int
    scenario: str | None = None
    measurements: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not str(self.region).strip():
            raise RecordSchemaError("region must be non-empty.")
        object.__setattr__(self, "measurements", dict(self.measurements))

    def value(self, measurement: str) -> float:
        try:
            return self.measurements[measurement]
        except KeyError as exc:
            raise RecordSchemaError(
                f"Record for {self.region!r}/{self.year} has no measurement {measurement!r}."
            ) from exc


def normalize_columns(
    df: pd.DataFrame,
    columns: ColumnsConfig,
    measurements: Sequence[str],
    *,
    require_scenario: bool = True,
) -> pd.DataFrame:
    """Rename source columns to the canonical names used by the chart pipeline."""
    rename_map = {
        columns.region: CanonicalColumns.region,
        columns.year: CanonicalColumns.year,
    }
    if require_scenario or columns.scenario in df.columns:
        rename_map[columns.scenario] = CanonicalColumns.scenario
    for measurement in measurements:
        source = columns.measurements.get(measurement, measurement)
        rename_map[source] = measurement

    missing = [source for source in rename_map if source not in df.columns]
    if missing:
        missing_str = ", ".join(missing)
        raise RecordSchemaError(f"Missing required columns in table: {missing_str}")
    return df.rename(columns=rename_map)


def coerce_record_types(df: pd.DataFrame, measurements: Sequence[str]) -> pd.DataFrame:
    working = df.copy()

    region = working[CanonicalColumns.region]
    blank_region = region.isna() | (region.astype(str).str.strip() == "")
    if blank_region.any():
        rows = ", ".join(str(index) for index in working.index[blank_region][:5])
        raise RecordSchemaError(f"Blank region values in rows: {rows}")
    working[CanonicalColumns.region] = region.astype(str)

    years = pd.to_numeric(working[CanonicalColumns.year], errors="coerce")
    bad_year = years.isna() | (np.floor(years) != years)
    if bad_year.any():
        rows = ", ".join(str(index) for index in working.index[bad_year][:5])
        raise RecordSchemaError(f"Non-integer year values in rows: {rows}")
    working[CanonicalColumns.year] = years.astype("int64")

    if CanonicalColumns.scenario in working.columns:
        working[CanonicalColumns.scenario] = working[CanonicalColumns.scenario].astype(str)

    for measurement in measurements:
        values = pd.to_numeric(working[measurement], errors="coerce")
        invalid = values.isna() & working[measurement].notna()
        if invalid.any():
            rows = ", ".join(str(index) for index in working.index[invalid][:5])
            raise RecordSchemaError(f"Non-numeric {measurement} values in rows: {rows}")
        working[measurement] = values.astype(float)
    return working


def iter_climate_records(df: pd.DataFrame, measurements: Sequence[str]) -> Iterator[ClimateRecord]:
    has_scenario = CanonicalColumns.scenario in df.columns
    selected = [CanonicalColumns.region, CanonicalColumns.year, *measurements]
    if has_scenario:
        selected.append(CanonicalColumns.scenario)
    for data in df[selected].to_dict(orient="records"):
        yield ClimateRecord(
            region=data[CanonicalColumns.region],
            year=int(data[CanonicalColumns.year]),
            scenario=data[CanonicalColumns.scenario] if has_scenario else None,
            measurements={name: float(data[name]) for name in measurements},
        )
