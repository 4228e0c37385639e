from __future__ import annotations

from collections.abc import Mapping, Sequence

import pandas as pd

from climate_charts.aggregate import year_progress
from climate_charts.charts.payload import Axis, ChartPayload, Mark
from climate_charts.config import ChartsConfig
from climate_charts.scales import SequentialColorScale, linear, piecewise_color

CHART_ID = "temperature_map"
LEGEND_ID = "temperature_legend"

BOUNDARY_COLOR = "#333333"


def map_color_scale(config: ChartsConfig) -> SequentialColorScale:
    return piecewise_color(config.map.color_domain, config.map.color_range, clamp=True)


def _slug(name: str) -> str:
    return "-".join(str(name).split())


def build_temperature_map(
    grid: pd.DataFrame,
    config: ChartsConfig,
    year: int,
    *,
    boundaries: Mapping[str, Sequence[tuple[float, float]]] | None = None,
    region_temperatures: Mapping[str, float] | None = None,
    selected_region: str | None = None,
) -> ChartPayload:
    """Grid cells coloured by the 2100 increase scaled to ``year``, plus region outlines."""
    map_cfg = config.map
    margin = map_cfg.margin
    projection = config.projection
    progress = year_progress(year, projection.start_year, projection.end_year)

    x_scale = linear(map_cfg.lon_domain, [margin.left, map_cfg.width - margin.right])
    y_scale = linear(map_cfg.lat_domain, [map_cfg.height - margin.bottom, margin.top])
    colors = map_color_scale(config)

    lon0, lat0 = map_cfg.lon_domain[0], map_cfg.lat_domain[0]
    cell_width = abs(x_scale(lon0 + map_cfg.cell_degrees) - x_scale(lon0))
    cell_height = abs(y_scale(lat0) - y_scale(lat0 + map_cfg.cell_degrees))

    payload = ChartPayload(
        chart_id=CHART_ID,
        width=map_cfg.width,
        height=map_cfg.height,
        meta={"year": int(year), "progress": progress},
    )
    for lat, lon, temp2100 in zip(grid["lat"], grid["lon"], grid["temp2100"]):
        value = float(temp2100) * progress
        payload.marks.append(
            Mark(
                kind="rect",
                key=f"cell:{lat:.2f}:{lon:.2f}",
                coords=((x_scale(lon), y_scale(lat)),),
                size=(cell_width, cell_height),
                color=colors(value),
                label=(
                    f"Location: {lat:.1f}°N, {abs(lon):.1f}°W\n"
                    f"Temp Increase ({year}): {value:.2f}°C"
                ),
                group="cells",
            )
        )

    for name, coordinates in (boundaries or {}).items():
        highlighted = name == selected_region
        temp = (region_temperatures or {}).get(name)
        label = str(name)
        if temp is not None:
            label += f"\nTemperature Increase ({year}): {temp:.2f}°C"
        payload.marks.append(
            Mark(
                kind="path",
                key=f"region-{_slug(name)}",
                coords=tuple((x_scale(lon), y_scale(lat)) for lon, lat in coordinates),
                color=config.regions.get(name, BOUNDARY_COLOR) if highlighted else BOUNDARY_COLOR,
                label=label,
                group="regions",
                style={
                    "stroke_width": 4.0 if highlighted else 2.0,
                    "opacity": 1.0 if highlighted else 0.6,
                    "closed": True,
                },
            )
        )

    lon_ticks = tuple(x_scale.ticks(6))
    lat_ticks = tuple(y_scale.ticks(5))
    payload.axes["x"] = Axis(
        name="x",
        domain=x_scale.domain,
        range=x_scale.range,
        ticks=lon_ticks,
        tick_labels=tuple(f"{abs(tick):g}°W" for tick in lon_ticks),
    )
    payload.axes["y"] = Axis(
        name="y",
        domain=y_scale.domain,
        range=y_scale.range,
        ticks=lat_ticks,
        tick_labels=tuple(f"{tick:g}°N" for tick in lat_ticks),
    )
    return payload


def build_map_legend(
    config: ChartsConfig,
    *,
    width: float = 800.0,
    height: float = 80.0,
    bar_x: float = 100.0,
    bar_y: float = 20.0,
    bar_width: float = 600.0,
    bar_height: float = 30.0,
) -> ChartPayload:
    colors = map_color_scale(config)
    scale = linear(config.map.legend_domain, [bar_x, bar_x + bar_width])
    ticks = tuple(scale.ticks(config.map.legend_ticks))

    payload = ChartPayload(chart_id=LEGEND_ID, width=width, height=height)
    payload.marks.append(
        Mark(
            kind="gradient",
            key="legend-bar",
            coords=((bar_x, bar_y),),
            size=(bar_width, bar_height),
            color=colors.colors[-1],
            label="Temperature increase",
            style={"stops": [[offset, color] for offset, color in colors.gradient_stops()]},
        )
    )
    for tick in ticks:
        payload.marks.append(
            Mark(
                kind="text",
                key=f"legend-tick:{tick:g}",
                coords=((scale(tick), bar_y + bar_height),),
                color="#333333",
                label=f"{tick:g}°C",
            )
        )
    payload.axes["x"] = Axis(
        name="x",
        domain=scale.domain,
        range=scale.range,
        ticks=ticks,
        tick_labels=tuple(f"{tick:g}°C" for tick in ticks),
    )
    return payload
