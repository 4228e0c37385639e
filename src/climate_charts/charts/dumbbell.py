from __future__ import annotations

import logging

import pandas as pd

from climate_charts.aggregate import extent, group_frame
from climate_charts.charts.payload import (
    Axis,
    ChartPayload,
    Mark,
    format_celsius,
    inner_size,
    scenario_color_scale,
    scenario_legend,
)
from climate_charts.config import ChartsConfig
from climate_charts.scales import band, linear

LOGGER = logging.getLogger(__name__)

CHART_ID = "scenario_dumbbell"


def build_scenario_dumbbell(
    frame: pd.DataFrame,
    config: ChartsConfig,
    measurement: str = "july_temp_c",
    year: int | None = None,
) -> ChartPayload:
    """One row per region with a point per scenario, joined by a bar."""
    layout = config.dumbbell
    margin = layout.margin
    inner_width, inner_height = inner_size(layout.width, layout.height, margin)

    working = frame.loc[frame["scenario"].isin(config.scenario_ids) & frame[measurement].notna()]
    if "year" in working.columns and working["year"].nunique() > 1:
        target_year = year if year is not None else config.projection.end_year
        working = working.loc[working["year"] == target_year]
    if working.empty:
        raise ValueError("No scenario rows to compare")

    by_region = group_frame(working, "region")
    y_scale = band(list(by_region), [0, inner_height], padding=layout.padding)
    lo, hi = extent(working[measurement])
    x_scale = linear(
        [lo - layout.domain_pad, hi + layout.domain_pad],
        [0, inner_width],
        nice=True,
        allow_degenerate=True,
    )
    colors = scenario_color_scale(config)

    payload = ChartPayload(
        chart_id=CHART_ID,
        width=layout.width,
        height=layout.height,
        legend=scenario_legend(config),
    )
    x_ticks = tuple(x_scale.ticks(5))
    payload.axes["x"] = Axis(
        name="x",
        domain=x_scale.domain,
        range=(margin.left, margin.left + inner_width),
        ticks=x_ticks,
        tick_labels=tuple(format_celsius(tick, 0) for tick in x_ticks),
        title="July Temperature (°C)",
    )
    payload.axes["y"] = Axis(
        name="y",
        domain=y_scale.domain,
        range=(margin.top, margin.top + inner_height),
        ticks=tuple(margin.top + y_scale.center(region) for region in y_scale.domain),
        tick_labels=tuple(str(region) for region in y_scale.domain),
    )

    for region, rows in by_region.items():
        cy = margin.top + y_scale.center(region)
        values = {
            scenario: float(value)
            for scenario, value in zip(rows["scenario"], rows[measurement])
        }
        if len(values) == len(config.scenario_ids):
            low_id, high_id = config.scenario_ids[0], config.scenario_ids[-1]
            x_low = margin.left + x_scale(values[low_id])
            x_high = margin.left + x_scale(values[high_id])
            payload.marks.append(
                Mark(
                    kind="line",
                    key=f"{region}:connector",
                    coords=((x_low, cy), (x_high, cy)),
                    color="#999999",
                    label=(
                        f"{region}: {high_id} is "
                        f"{values[high_id] - values[low_id]:+.1f}°C vs {low_id}"
                    ),
                    group=str(region),
                    style={"stroke_width": 3.0},
                )
            )
        else:
            LOGGER.warning("Region %s is missing a scenario; drawing points only", region)
            payload.add_warning(f"Region {region} lacks one or more scenarios")

        for scenario, value in values.items():
            color = colors(scenario)
            payload.marks.append(
                Mark(
                    kind="point",
                    key=f"{region}:{scenario}",
                    coords=((margin.left + x_scale(value), cy),),
                    color=color,
                    label=f"{region} ({scenario}): {format_celsius(value)}",
                    group=str(region),
                    size=(7.0, 7.0),
                )
            )
    return payload
