from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pandas as pd

from climate_charts.config import ChartsConfig
from climate_charts.errors import RecordSchemaError
from climate_charts.io.schema import coerce_record_types, normalize_columns

REQUIRED_COLUMNS = ["region", "year"]


def _validate_required_columns(df: pd.DataFrame, required: Sequence[str]) -> pd.DataFrame:
    for column in required:
        if column not in df.columns:
            raise RecordSchemaError(f"Normalized data missing column: {column}")
    return df


def load_table(path: Path) -> pd.DataFrame:
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    if path.suffix == ".csv":
        # utf-8-sig strips BOM-prefixed headers commonly found in exported CSV files.
        return pd.read_csv(path, encoding="utf-8-sig")
    if path.suffix == ".json":
        return pd.read_json(path, orient="records")
    raise ValueError(f"Unsupported table file type: {path.suffix}")


def load_records(
    path: Path,
    config: ChartsConfig,
    measurements: Sequence[str],
    *,
    require_scenario: bool = True,
) -> pd.DataFrame:
    """Load a region/year table and return canonical, type-checked columns."""
    df = load_table(path)
    normalized = normalize_columns(
        df=df,
        columns=config.columns,
        measurements=measurements,
        require_scenario=require_scenario,
    )
    required = [*REQUIRED_COLUMNS, *measurements]
    if require_scenario:
        required.append("scenario")
    _validate_required_columns(normalized, required)
    return coerce_record_types(normalized, measurements)


def load_grid(path: Path, value_columns: Sequence[str] = ("lat", "lon", "temp2100")) -> pd.DataFrame:
    """Load map grid cells; every value column must be present and numeric."""
    df = load_table(path)
    _validate_required_columns(df, value_columns)
    working = df.copy()
    for column in value_columns:
        values = pd.to_numeric(working[column], errors="coerce")
        if values.isna().any():
            raise RecordSchemaError(f"Grid column {column} has missing or non-numeric values")
        working[column] = values.astype(float)
    return working
