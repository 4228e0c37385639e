from __future__ import annotations

import logging

import pandas as pd

from climate_charts.aggregate import (
    compute_anomaly,
    compute_baseline,
    extent,
    group_frame,
    historical_period,
)
from climate_charts.charts.payload import (
    Axis,
    ChartPayload,
    Mark,
    format_celsius,
    scenario_color_scale,
    scenario_legend,
)
from climate_charts.config import ChartsConfig
from climate_charts.errors import MissingScaleCategory
from climate_charts.scales import linear

LOGGER = logging.getLogger(__name__)

CHART_ID = "anomaly_multiples"


def build_anomaly_multiples(frame: pd.DataFrame, config: ChartsConfig) -> ChartPayload:
    """Small multiples of July temperature anomaly per region, one line per scenario.

    Anomalies are measured against each region's historical baseline period and
    every panel shares one niced y axis so regions are directly comparable.
    """
    baseline_cfg = config.baseline
    layout = config.small_multiples
    margin = layout.margin
    measurement = baseline_cfg.measurement

    baselines = compute_baseline(
        frame,
        historical_period(baseline_cfg.scenario, baseline_cfg.start_year, baseline_cfg.end_year),
        group_key="region",
        measurement=measurement,
    )
    result = compute_anomaly(
        frame, baselines, group_key="region", measurement=measurement, on_missing="flag"
    )
    plot_data = result.frame.loc[result.frame["year"] >= config.projection.start_year]
    plot_data = plot_data.loc[plot_data["scenario"] != baseline_cfg.scenario]
    if plot_data.empty:
        raise ValueError("No projection rows left to plot after baseline subtraction")

    small_width = layout.total_width / layout.columns - margin.left - margin.right
    rows_needed = -(-plot_data["region"].nunique() // layout.columns)
    small_height = layout.total_height / max(rows_needed, 2) - margin.top - margin.bottom

    x_scale = linear([config.projection.start_year, config.projection.end_year], [0, small_width])
    # A single observation or a flat series maps to the middle of each panel.
    y_scale = linear(
        extent(plot_data[result.column]), [small_height, 0], nice=True, allow_degenerate=True
    )
    colors = scenario_color_scale(config)

    payload = ChartPayload(
        chart_id=CHART_ID,
        width=layout.total_width,
        height=layout.total_height,
        legend=scenario_legend(config),
        meta={"baselines": dict(result.baselines), "panels": []},
    )
    for group in result.missing_groups:
        payload.add_skipped(group)
        payload.add_warning(f"No baseline for region {group}")

    x_ticks = tuple(x_scale.ticks(5))
    y_ticks = tuple(y_scale.ticks(5))
    payload.axes["x"] = Axis(
        name="x",
        domain=x_scale.domain,
        range=x_scale.range,
        ticks=x_ticks,
        tick_labels=tuple(f"{tick:.0f}" for tick in x_ticks),
        title="Year",
    )
    payload.axes["y"] = Axis(
        name="y",
        domain=y_scale.domain,
        range=y_scale.range,
        ticks=y_ticks,
        tick_labels=tuple(format_celsius(tick) for tick in y_ticks),
        title="Temp. Increase (°C)",
    )

    for index, (region, region_rows) in enumerate(group_frame(plot_data, "region").items()):
        col = index % layout.columns
        row = index // layout.columns
        offset_x = col * (small_width + margin.left + margin.right) + margin.left
        offset_y = row * (small_height + margin.top + margin.bottom) + margin.top
        payload.meta["panels"].append(
            {"region": region, "offset": [offset_x, offset_y], "size": [small_width, small_height]}
        )

        payload.marks.append(
            Mark(
                kind="text",
                key=f"{region}:title",
                coords=((offset_x + small_width / 2, offset_y - margin.top / 2),),
                color="#2d3748",
                label=str(region),
                group=str(region),
            )
        )
        zero_y = offset_y + y_scale(0.0)
        if min(y_scale.domain) <= 0.0 <= max(y_scale.domain):
            payload.marks.append(
                Mark(
                    kind="rule",
                    key=f"{region}:baseline",
                    coords=((offset_x, zero_y), (offset_x + small_width, zero_y)),
                    color="#666666",
                    label=f"{baseline_cfg.start_year}-{baseline_cfg.end_year} baseline",
                    group=str(region),
                    style={"dash": "4 4"},
                )
            )

        for scenario, scenario_rows in group_frame(region_rows, "scenario").items():
            try:
                color = colors(scenario)
            except MissingScaleCategory:
                LOGGER.warning("Skipping unknown scenario %s for region %s", scenario, region)
                payload.add_warning(f"Unknown scenario {scenario} in region {region}")
                continue
            ordered = scenario_rows.loc[scenario_rows[result.column].notna()].sort_values("year")
            if ordered.empty:
                continue
            points = [
                (offset_x + x_scale(year), offset_y + y_scale(value))
                for year, value in zip(ordered["year"], ordered[result.column])
            ]
            payload.marks.append(
                Mark(
                    kind="line",
                    key=f"{region}:{scenario}",
                    coords=tuple(points),
                    color=color,
                    label=f"{region} ({scenario})",
                    group=str(region),
                    style={"stroke_width": 2.5},
                )
            )
            for (x, y), year, value in zip(points, ordered["year"], ordered[result.column]):
                payload.marks.append(
                    Mark(
                        kind="point",
                        key=f"{region}:{scenario}:{year}",
                        coords=((x, y),),
                        color=color,
                        label=f"{region} {scenario} {year}: {value:+.2f}°C vs baseline",
                        group=str(region),
                        size=(4.0, 4.0),
                    )
                )
    return payload
