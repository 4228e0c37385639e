from __future__ import annotations

import logging
import math

import pandas as pd

from climate_charts.aggregate import group_frame, percent_change
from climate_charts.charts.payload import Axis, ChartPayload, Mark, inner_size, region_color_scale
from climate_charts.config import ChartsConfig
from climate_charts.errors import DivisionByZeroError, RecordSchemaError
from climate_charts.scales import linear

LOGGER = logging.getLogger(__name__)

CHART_ID = "extreme_heat"
ALL_REGIONS = "All Regions"


def _line_style(region: str, focus_region: str | None) -> dict[str, float]:
    if focus_region in (None, ALL_REGIONS):
        return {"stroke_width": 3.0, "opacity": 0.8}
    if region == focus_region:
        return {"stroke_width": 4.0, "opacity": 1.0}
    return {"stroke_width": 2.0, "opacity": 0.15}


def build_extreme_heat(
    frame: pd.DataFrame,
    config: ChartsConfig,
    threshold: str | None = None,
    focus_region: str | None = None,
) -> ChartPayload:
    heat = config.extreme_heat
    labels = {item.id: item.label for item in heat.thresholds}
    threshold = threshold or heat.thresholds[0].id
    if threshold not in labels:
        raise ValueError(f"Unknown threshold {threshold!r}; expected one of {sorted(labels)}")

    required = ("region", "year", "threshold", "days")
    missing = [column for column in required if column not in frame.columns]
    if missing:
        raise RecordSchemaError(f"Missing required columns in table: {', '.join(missing)}")

    margin = heat.margin
    inner_width, inner_height = inner_size(heat.width, heat.height, margin)
    filtered = frame.loc[(frame["threshold"] == threshold) & frame["days"].notna()]
    if filtered.empty:
        raise ValueError(f"No extreme heat rows for threshold {threshold!r}")

    max_days = float(filtered["days"].max())
    x_scale = linear([config.projection.start_year, config.projection.end_year], [0, inner_width])
    y_scale = linear([0, max(1, math.ceil(max_days * heat.headroom))], [inner_height, 0])

    grouped = group_frame(filtered, "region")
    colors = region_color_scale(list(grouped), config)
    threshold_label = f"Days per Year Above {labels[threshold]}"

    payload = ChartPayload(
        chart_id=CHART_ID,
        width=heat.width,
        height=heat.height,
        meta={"threshold": threshold, "focus_region": focus_region or ALL_REGIONS},
    )
    y_ticks = tuple(y_scale.ticks(10))
    payload.axes["x"] = Axis(
        name="x",
        domain=x_scale.domain,
        range=(margin.left, margin.left + inner_width),
        ticks=tuple(x_scale.ticks(8)),
        tick_labels=tuple(f"{tick:.0f}" for tick in x_scale.ticks(8)),
        title="Year",
    )
    payload.axes["y"] = Axis(
        name="y",
        domain=y_scale.domain,
        range=(margin.top + inner_height, margin.top),
        ticks=y_ticks,
        tick_labels=tuple(f"{tick:g}" for tick in y_ticks),
        title=threshold_label,
    )

    for region, rows in grouped.items():
        ordered = rows.sort_values("year")
        color = colors(region)
        points = tuple(
            (margin.left + x_scale(year), margin.top + y_scale(days))
            for year, days in zip(ordered["year"], ordered["days"])
        )
        first, last = ordered.iloc[0], ordered.iloc[-1]
        try:
            increase = f"{percent_change(float(first['days']), float(last['days'])):+.0f}%"
        except DivisionByZeroError:
            increase = "n/a"
            LOGGER.info("Region %s starts at zero days; percent increase undefined", region)
            payload.add_warning(f"Percent increase undefined for {region} (zero base)")

        style = _line_style(str(region), focus_region)
        payload.marks.append(
            Mark(
                kind="line",
                key=f"{region}:{threshold}",
                coords=points,
                color=color,
                label=(
                    f"{region}\n"
                    f"{int(first['year'])}: {first['days']:.0f} days\n"
                    f"{int(last['year'])}: {last['days']:.0f} days\n"
                    f"Increase: {increase}\n"
                    f"Threshold: {threshold_label}"
                ),
                group=str(region),
                style=style,
            )
        )
        payload.marks.append(
            Mark(
                kind="text",
                key=f"{region}:end_label",
                coords=((margin.left + inner_width + 5, points[-1][1]),),
                color=color,
                label=f"{region} ({last['days']:.0f}d)",
                group=str(region),
                style={"opacity": 1.0 if style["opacity"] >= 0.8 else 0.3},
            )
        )
    return payload
