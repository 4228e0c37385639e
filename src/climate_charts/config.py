from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_DECADES = [2030, 2040, 2050, 2060, 2070, 2080, 2090, 2100]


class ColumnsConfig(BaseModel):
    region: str = "region"
    year: str = "year"
    scenario: str = "scenario"
    date: str = "date"
    measurements: dict[str, str] = Field(
        default_factory=lambda: {
            "july_temp_c": "july_temp_c",
            "temp_increase": "temp_increase",
            "days": "days",
            "anomaly": "anomaly",
        }
    )


class BaselineConfig(BaseModel):
    scenario: str = "historical"
    start_year: int = 1850
    end_year: int = 1900
    measurement: str = "july_temp_c"

    @model_validator(mode="after")
    def _check_period(self) -> BaselineConfig:
        if self.start_year > self.end_year:
            raise ValueError("baseline.start_year must be <= baseline.end_year")
        return self


class ProjectionConfig(BaseModel):
    start_year: int = 2025
    end_year: int = 2100

    @model_validator(mode="after")
    def _check_period(self) -> ProjectionConfig:
        if self.start_year >= self.end_year:
            raise ValueError("projection.start_year must be < projection.end_year")
        return self


class ScenarioConfig(BaseModel):
    id: str
    label: str
    color: str


def _default_scenarios() -> list[ScenarioConfig]:
    return [
        ScenarioConfig(id="ssp245", label="Medium Emission (ssp245)", color="#4e79a7"),
        ScenarioConfig(id="ssp585", label="High Emission (ssp585)", color="#e15759"),
    ]


class MarginConfig(BaseModel):
    top: float = Field(default=40.0, ge=0)
    right: float = Field(default=60.0, ge=0)
    bottom: float = Field(default=40.0, ge=0)
    left: float = Field(default=60.0, ge=0)


class MapConfig(BaseModel):
    width: float = Field(default=900.0, gt=0)
    height: float = Field(default=500.0, gt=0)
    margin: MarginConfig = Field(
        default_factory=lambda: MarginConfig(top=20, right=20, bottom=40, left=60)
    )
    lon_domain: tuple[float, float] = (-125.0, -65.0)
    lat_domain: tuple[float, float] = (25.0, 50.0)
    cell_degrees: float = Field(default=1.0, gt=0)
    color_domain: list[float] = Field(default_factory=lambda: [0.0, 1.0, 2.0, 3.0, 4.0, 5.0, 7.0])
    color_range: list[str] = Field(
        default_factory=lambda: [
            "#ffffcc",
            "#ffeda0",
            "#fed976",
            "#feb24c",
            "#fd8d3c",
            "#f03b20",
            "#bd0026",
        ]
    )
    legend_domain: tuple[float, float] = (0.0, 7.0)
    legend_ticks: int = Field(default=8, ge=2)

    @model_validator(mode="after")
    def _check_color_stops(self) -> MapConfig:
        if len(self.color_domain) != len(self.color_range):
            raise ValueError("map.color_domain and map.color_range must have the same length")
        if len(self.color_domain) < 2:
            raise ValueError("map.color_domain needs at least two stops")
        return self


class TooltipConfig(BaseModel):
    offset: float = 15.0
    flip_gap: float = 20.0
    top_pin: float = 10.0
    edge_margin: float = 12.0


class AnimationConfig(BaseModel):
    step_years: int = Field(default=5, ge=1)
    interval_seconds: float = Field(default=0.5, gt=0)


class HeatThresholdConfig(BaseModel):
    id: str
    label: str


def _default_thresholds() -> list[HeatThresholdConfig]:
    return [
        HeatThresholdConfig(id="moderate", label="Moderate Heat (>95°F / 35°C)"),
        HeatThresholdConfig(id="severe", label="Severe Heat (>100°F / 38°C)"),
        HeatThresholdConfig(id="extreme", label="Extreme Heat (>105°F / 41°C)"),
    ]


class ExtremeHeatConfig(BaseModel):
    thresholds: list[HeatThresholdConfig] = Field(default_factory=_default_thresholds)
    headroom: float = Field(default=1.1, ge=1.0)
    width: float = Field(default=1200.0, gt=0)
    height: float = Field(default=500.0, gt=0)
    margin: MarginConfig = Field(
        default_factory=lambda: MarginConfig(top=40, right=160, bottom=60, left=80)
    )


class DecadalConfig(BaseModel):
    decades: list[int] = Field(default_factory=lambda: list(DEFAULT_DECADES))
    y_domain: tuple[float, float] = (0.0, 6.0)
    outer_padding: float = Field(default=0.2, ge=0, lt=1)
    inner_padding: float = Field(default=0.05, ge=0, lt=1)
    width: float = Field(default=1200.0, gt=0)
    height: float = Field(default=500.0, gt=0)
    margin: MarginConfig = Field(
        default_factory=lambda: MarginConfig(top=40, right=60, bottom=100, left=80)
    )


class SmallMultiplesConfig(BaseModel):
    columns: int = Field(default=2, ge=1)
    total_width: float = Field(default=1200.0, gt=0)
    total_height: float = Field(default=800.0, gt=0)
    margin: MarginConfig = Field(
        default_factory=lambda: MarginConfig(top=60, right=30, bottom=40, left=60)
    )


class DumbbellConfig(BaseModel):
    width: float = Field(default=1200.0, gt=0)
    height: float = Field(default=400.0, gt=0)
    margin: MarginConfig = Field(
        default_factory=lambda: MarginConfig(top=40, right=60, bottom=40, left=100)
    )
    padding: float = Field(default=0.4, ge=0, lt=1)
    domain_pad: float = Field(default=1.0, ge=0)


class ExplorerConfig(BaseModel):
    width: float = Field(default=900.0, gt=0)
    height: float = Field(default=400.0, gt=0)
    margin: MarginConfig = Field(
        default_factory=lambda: MarginConfig(top=30, right=40, bottom=40, left=60)
    )
    regions: list[str] = Field(default_factory=lambda: ["Global", "US", "Europe", "Arctic", "Tropics"])
    colors: list[str] = Field(
        default_factory=lambda: ["#3b82f6", "#ef4444", "#10b981", "#a855f7", "#f59e0b"]
    )
    default_region: str = "US"
    default_metric: str = "anomaly"
    domain_pad: float = Field(default=0.2, ge=0)


class ProjectionLinesConfig(BaseModel):
    width: float = Field(default=900.0, gt=0)
    height: float = Field(default=450.0, gt=0)
    margin: MarginConfig = Field(
        default_factory=lambda: MarginConfig(top=30, right=160, bottom=50, left=60)
    )
    interpolator: str = "YlOrRd"
    color_floor: float = 2.0
    thresholds: list[float] = Field(default_factory=lambda: [2.0, 4.0])
    y_headroom: float = Field(default=0.5, ge=0)


class DataFilesConfig(BaseModel):
    july_temperatures: str = "regional_july_temps.csv"
    regional_increase: str = "us_regional_future.csv"
    extreme_heat: str = "extreme_heat_days.csv"
    temperature_grid: str = "temperature_grid.csv"
    timeseries: str = "regional_timeseries.csv"
    region_boundaries: str | None = "region_boundaries.json"


class ChartsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    data_dir: str = "data"
    files: DataFilesConfig = Field(default_factory=DataFilesConfig)
    columns: ColumnsConfig = Field(default_factory=ColumnsConfig)
    baseline: BaselineConfig = Field(default_factory=BaselineConfig)
    projection: ProjectionConfig = Field(default_factory=ProjectionConfig)
    scenarios: list[ScenarioConfig] = Field(default_factory=_default_scenarios)
    regions: dict[str, str] = Field(default_factory=dict)
    map: MapConfig = Field(default_factory=MapConfig)
    tooltip: TooltipConfig = Field(default_factory=TooltipConfig)
    animation: AnimationConfig = Field(default_factory=AnimationConfig)
    extreme_heat: ExtremeHeatConfig = Field(default_factory=ExtremeHeatConfig)
    decadal: DecadalConfig = Field(default_factory=DecadalConfig)
    small_multiples: SmallMultiplesConfig = Field(default_factory=SmallMultiplesConfig)
    dumbbell: DumbbellConfig = Field(default_factory=DumbbellConfig)
    explorer: ExplorerConfig = Field(default_factory=ExplorerConfig)
    projection_lines: ProjectionLinesConfig = Field(default_factory=ProjectionLinesConfig)

    @property
    def scenario_ids(self) -> list[str]:
        return [scenario.id for scenario in self.scenarios]

    @property
    def scenario_colors(self) -> list[str]:
        return [scenario.color for scenario in self.scenarios]


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _resolve_optional_path(path_value: str | None, base_dir: Path) -> str | None:
    if not path_value:
        return None
    candidate = Path(path_value)
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def load_config(path: Path) -> ChartsConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = ChartsConfig.model_validate(data)
    base_dir = path.resolve().parent

    env_data_dir = os.getenv("CLIMATE_CHARTS_DATA_DIR")
    if env_data_dir:
        config.data_dir = env_data_dir
    config.data_dir = _resolve_optional_path(config.data_dir, base_dir) or str(base_dir)
    return config
