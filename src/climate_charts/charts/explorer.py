from __future__ import annotations

import pandas as pd

from climate_charts.aggregate import extent
from climate_charts.charts.payload import Axis, ChartPayload, LegendEntry, Mark
from climate_charts.config import ChartsConfig
from climate_charts.scales import linear, ordinal_color, time_scale

CHART_ID = "time_series_explorer"
SINGLE_DATE_PAD = pd.Timedelta(days=1)


def build_time_series(
    frame: pd.DataFrame,
    config: ChartsConfig,
    region: str | None = None,
    metric: str | None = None,
) -> ChartPayload:
    explorer = config.explorer
    margin = explorer.margin
    region = region or explorer.default_region
    metric = metric or explorer.default_metric
    if metric not in frame.columns:
        raise ValueError(f"Unknown metric {metric!r}; table has {sorted(frame.columns)}")

    colors = ordinal_color(explorer.regions, explorer.colors)
    color = colors(region)
    payload = ChartPayload(
        chart_id=CHART_ID,
        width=explorer.width,
        height=explorer.height,
        legend=[LegendEntry(key=region, label=f"{region} ({metric})", color=color)],
        meta={"region": region, "metric": metric},
    )

    filtered = frame.loc[(frame["region"] == region) & frame[metric].notna()]
    if filtered.empty:
        payload.add_warning(f"No {metric} rows for region {region}")
        return payload

    dates = pd.to_datetime(filtered["date"])
    start, stop = dates.min(), dates.max()
    if start == stop:
        # One observation: centre it in a two-day window.
        start, stop = start - SINGLE_DATE_PAD, stop + SINGLE_DATE_PAD
    x_scale = time_scale([start, stop], [margin.left, explorer.width - margin.right])
    lo, hi = extent(filtered[metric])
    y_scale = linear(
        [lo - explorer.domain_pad, hi + explorer.domain_pad],
        [explorer.height - margin.bottom, margin.top],
        allow_degenerate=True,
    )

    ordered = filtered.assign(_date=dates).sort_values("_date")
    payload.marks.append(
        Mark(
            kind="line",
            key=f"{region}:{metric}",
            coords=tuple(
                (x_scale(date), y_scale(value))
                for date, value in zip(ordered["_date"], ordered[metric])
            ),
            color=color,
            label=f"{region} ({metric})",
            group=region,
            style={"stroke_width": 2.5, "curve": "monotone"},
        )
    )
    payload.marks.append(
        Mark(
            kind="text",
            key=f"{region}:label",
            coords=((explorer.width - 100, margin.top + 10),),
            color=color,
            label=region,
            style={"font_weight": "bold"},
        )
    )

    x_ticks = tuple(x_scale.ticks(8))
    y_ticks = tuple(y_scale.ticks(6))
    payload.axes["x"] = Axis(
        name="x",
        domain=x_scale.domain,
        range=x_scale.range,
        ticks=x_ticks,
        tick_labels=tuple(str(tick.year) for tick in x_ticks),
    )
    payload.axes["y"] = Axis(
        name="y",
        domain=y_scale.domain,
        range=y_scale.range,
        ticks=y_ticks,
        tick_labels=tuple(f"{tick:g}" for tick in y_ticks),
        title=metric,
    )
    return payload
