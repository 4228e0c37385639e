from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path

import pandas as pd

from climate_charts.aggregate import values_at_year
from climate_charts.charts.anomaly import build_anomaly_multiples
from climate_charts.charts.decadal import build_decadal_comparison
from climate_charts.charts.dumbbell import build_scenario_dumbbell
from climate_charts.charts.explorer import build_time_series
from climate_charts.charts.extreme_heat import build_extreme_heat
from climate_charts.charts.payload import ChartPayload
from climate_charts.charts.projection import build_regional_projection
from climate_charts.charts.temperature_map import build_map_legend, build_temperature_map
from climate_charts.config import ChartsConfig
from climate_charts.errors import ChartDataError
from climate_charts.io.read import load_grid, load_records, load_table
from climate_charts.io.write import write_payload

LOGGER = logging.getLogger(__name__)

ChartBuilder = Callable[[], ChartPayload]


def load_region_boundaries(path: Path) -> dict[str, list[tuple[float, float]]]:
    data = json.loads(path.read_text(encoding="utf-8"))
    return {
        str(name): [(float(lon), float(lat)) for lon, lat in points]
        for name, points in data.items()
    }


def _load_timeseries(path: Path, config: ChartsConfig) -> pd.DataFrame:
    frame = load_table(path)
    rename_map = {config.columns.region: "region", config.columns.date: "date"}
    missing = [column for column in rename_map if column not in frame.columns]
    if missing:
        raise ChartDataError(f"Missing required columns in table: {', '.join(missing)}")
    frame = frame.rename(columns=rename_map)
    frame["date"] = pd.to_datetime(frame["date"], errors="raise")
    frame["region"] = frame["region"].astype(str)
    return frame


def chart_builders(
    data_dir: Path,
    config: ChartsConfig,
    *,
    year: int | None = None,
    selected_region: str | None = None,
) -> dict[str, ChartBuilder]:
    """Lazily evaluated builders so a failing table only takes down its own charts."""
    files = config.files
    year = year if year is not None else config.projection.end_year

    def _july() -> pd.DataFrame:
        return load_records(data_dir / files.july_temperatures, config, ["july_temp_c"])

    def _increase() -> pd.DataFrame:
        return load_records(
            data_dir / files.regional_increase, config, ["temp_increase"], require_scenario=False
        )

    def _heat() -> pd.DataFrame:
        return load_records(data_dir / files.extreme_heat, config, ["days"], require_scenario=False)

    def _map() -> ChartPayload:
        boundaries = None
        if files.region_boundaries and (data_dir / files.region_boundaries).exists():
            boundaries = load_region_boundaries(data_dir / files.region_boundaries)
        increase = _increase()
        return build_temperature_map(
            load_grid(data_dir / files.temperature_grid),
            config,
            year,
            boundaries=boundaries,
            region_temperatures=values_at_year(increase, year, "region", "temp_increase"),
            selected_region=selected_region,
        )

    return {
        "anomaly_multiples": lambda: build_anomaly_multiples(_july(), config),
        "scenario_dumbbell": lambda: build_scenario_dumbbell(_july(), config, year=year),
        "decadal_comparison": lambda: build_decadal_comparison(_increase(), config),
        "regional_projection": lambda: build_regional_projection(_increase(), config),
        "extreme_heat": lambda: build_extreme_heat(_heat(), config),
        "temperature_map": _map,
        "temperature_legend": lambda: build_map_legend(config),
        "time_series_explorer": lambda: build_time_series(
            _load_timeseries(data_dir / files.timeseries, config), config
        ),
    }


def build_all_payloads(
    config: ChartsConfig,
    data_dir: Path | None = None,
    *,
    year: int | None = None,
    selected_region: str | None = None,
) -> tuple[dict[str, ChartPayload], dict[str, str]]:
    """Build every chart; failures are logged and reported per chart id."""
    data_dir = Path(data_dir or config.data_dir)
    payloads: dict[str, ChartPayload] = {}
    failures: dict[str, str] = {}
    for chart_id, builder in chart_builders(
        data_dir, config, year=year, selected_region=selected_region
    ).items():
        try:
            payloads[chart_id] = builder()
        except (ValueError, OSError) as exc:
            LOGGER.exception("Failed building chart %s", chart_id)
            failures[chart_id] = str(exc)
    return payloads, failures


def write_all_payloads(payloads: dict[str, ChartPayload], out_dir: Path) -> list[Path]:
    written = []
    for chart_id, payload in payloads.items():
        written.append(write_payload(payload.to_dict(), out_dir / f"{chart_id}.json"))
    return written
