from __future__ import annotations

import pandas as pd

from climate_charts.aggregate import extent, group_frame
from climate_charts.charts.payload import Axis, ChartPayload, Mark, inner_size
from climate_charts.config import ChartsConfig
from climate_charts.scales import linear, sequential_color

CHART_ID = "regional_projection"


def build_regional_projection(
    frame: pd.DataFrame,
    config: ChartsConfig,
    measurement: str = "temp_increase",
) -> ChartPayload:
    """Regional warming paths, each line coloured by where its final value sits on the ramp."""
    layout = config.projection_lines
    margin = layout.margin
    inner_width, _ = inner_size(layout.width, layout.height, margin)
    working = frame.loc[frame[measurement].notna()]
    if working.empty:
        raise ValueError(f"No {measurement} rows to plot")

    x_scale = linear(
        extent(working["year"]), [margin.left, layout.width - margin.right], allow_degenerate=True
    )
    peak = float(working[measurement].max())
    y_scale = linear(
        [0, peak + layout.y_headroom],
        [layout.height - margin.bottom, margin.top],
        allow_degenerate=True,
    )
    # A flat or sub-floor peak still needs a ramp with two distinct ends.
    ramp_top = peak if peak > layout.color_floor else layout.color_floor + 1.0
    colors = sequential_color([layout.color_floor, ramp_top], layout.interpolator, clamp=True)

    payload = ChartPayload(chart_id=CHART_ID, width=layout.width, height=layout.height)
    for region, rows in group_frame(working, "region").items():
        ordered = rows.sort_values("year")
        final = float(ordered[measurement].iloc[-1])
        color = colors(final)
        points = tuple(
            (x_scale(year), y_scale(value))
            for year, value in zip(ordered["year"], ordered[measurement])
        )
        payload.marks.append(
            Mark(
                kind="line",
                key=f"{region}:{measurement}",
                coords=points,
                color=color,
                label=f"{region}: {final:.1f}°C by {int(ordered['year'].iloc[-1])}",
                group=str(region),
                style={"stroke_width": 3.0, "curve": "monotone"},
            )
        )
        payload.marks.append(
            Mark(
                kind="text",
                key=f"{region}:end_label",
                coords=((points[-1][0] + 8, points[-1][1]),),
                color=color,
                label=f"{region} ({final:.1f}°C)",
                group=str(region),
                style={"font_weight": "bold"},
            )
        )

    for threshold in layout.thresholds:
        if not 0 <= threshold <= max(y_scale.domain):
            continue
        y = y_scale(threshold)
        payload.marks.append(
            Mark(
                kind="rule",
                key=f"threshold:{threshold:g}",
                coords=((margin.left, y), (margin.left + inner_width, y)),
                color="#666666",
                label=f"{threshold:g}°C threshold",
                style={"dash": "4 4"},
            )
        )

    end_year = config.projection.end_year
    if min(x_scale.domain) <= end_year <= max(x_scale.domain):
        x = x_scale(end_year)
        payload.marks.append(
            Mark(
                kind="rule",
                key=f"year-marker:{end_year}",
                coords=((x, margin.top), (x, layout.height - margin.bottom)),
                color="#2563eb",
                label=str(end_year),
                style={"dash": "3 3"},
            )
        )

    x_ticks = tuple(x_scale.ticks(8))
    y_ticks = tuple(y_scale.ticks())
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
        tick_labels=tuple(f"{tick:g}" for tick in y_ticks),
        title="Temperature Increase (°C)",
    )
    return payload
