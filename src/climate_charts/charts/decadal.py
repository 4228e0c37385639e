from __future__ import annotations

import logging
import math

import pandas as pd

from climate_charts.aggregate import group_by
from climate_charts.charts.payload import (
    Axis,
    ChartPayload,
    LegendEntry,
    Mark,
    format_celsius,
    inner_size,
    region_color_scale,
)
from climate_charts.config import ChartsConfig
from climate_charts.io.schema import iter_climate_records
from climate_charts.scales import band, linear

LOGGER = logging.getLogger(__name__)

CHART_ID = "decadal_comparison"


def build_decadal_comparison(
    frame: pd.DataFrame,
    config: ChartsConfig,
    measurement: str = "temp_increase",
) -> ChartPayload:
    decadal = config.decadal
    margin = decadal.margin
    inner_width, inner_height = inner_size(decadal.width, decadal.height, margin)

    regions = list(config.regions) or list(pd.unique(frame["region"]))
    decades = list(decadal.decades)

    x_decade = band(decades, [0, inner_width], padding=decadal.outer_padding)
    x_region = x_decade.sub_band(regions, padding=decadal.inner_padding)
    y_scale = linear(decadal.y_domain, [inner_height, 0])
    colors = region_color_scale(regions, config)

    payload = ChartPayload(
        chart_id=CHART_ID,
        width=decadal.width,
        height=decadal.height,
        legend=[LegendEntry(key=str(region), label=str(region), color=colors(region)) for region in regions],
    )

    in_decades = frame.loc[frame["year"].isin(decades)].drop_duplicates(["region", "year"], keep="first")
    by_region = group_by(
        iter_climate_records(in_decades, [measurement]), lambda record: record.region
    )
    for region in regions:
        records = by_region.get(region)
        if not records:
            LOGGER.warning("No decadal rows for region %s", region)
            payload.add_skipped(region)
            continue
        for record in sorted(records, key=lambda item: item.year):
            decade = record.year
            temp = record.value(measurement)
            if math.isnan(temp):
                continue
            top = y_scale(temp)
            baseline = y_scale(max(min(decadal.y_domain), 0.0))
            x = margin.left + x_decade(decade) + x_region(region)
            payload.marks.append(
                Mark(
                    kind="rect",
                    key=f"{region}:{decade}",
                    coords=((x, margin.top + min(top, baseline)),),
                    size=(x_region.bandwidth, abs(baseline - top)),
                    color=colors(region),
                    label=(
                        f"{region} ({decade}): {temp:+.2f}°C "
                        f"({temp * 1.8:.1f}°F above {config.projection.start_year})"
                    ),
                    group=str(decade),
                )
            )

    payload.axes["x"] = Axis(
        name="x",
        domain=tuple(decades),
        range=(margin.left, margin.left + inner_width),
        ticks=tuple(margin.left + x_decade.center(decade) for decade in decades),
        tick_labels=tuple(f"{decade}s" for decade in decades),
        title="Decade",
    )
    y_ticks = tuple(y_scale.ticks(6))
    payload.axes["y"] = Axis(
        name="y",
        domain=y_scale.domain,
        range=(margin.top + inner_height, margin.top),
        ticks=y_ticks,
        tick_labels=tuple(format_celsius(tick) for tick in y_ticks),
        title=f"Temperature Increase from {config.projection.start_year} (°C)",
    )
    payload.meta["bandwidth"] = x_region.bandwidth
    return payload
