from __future__ import annotations

import json

import pandas as pd
import pytest
from matplotlib import colormaps
from matplotlib.colors import to_hex

from climate_charts.charts.anomaly import build_anomaly_multiples
from climate_charts.charts.decadal import build_decadal_comparison
from climate_charts.charts.dumbbell import build_scenario_dumbbell
from climate_charts.charts.explorer import build_time_series
from climate_charts.charts.extreme_heat import build_extreme_heat
from climate_charts.charts.payload import (
    CATEGORICAL_PALETTE,
    Axis,
    ChartPayload,
    Mark,
    region_color_scale,
)
from climate_charts.charts.projection import build_regional_projection
from climate_charts.charts.temperature_map import (
    build_map_legend,
    build_temperature_map,
    map_color_scale,
)
from climate_charts.config import ChartsConfig
from climate_charts.errors import MissingScaleCategory, RecordSchemaError
from climate_charts.io.write import json_safe

REGION_COLORS = {"Northeast": "#3b82f6", "West": "#a855f7", "Midwest": "#10b981"}


@pytest.fixture
def config() -> ChartsConfig:
    return ChartsConfig.model_validate({"regions": REGION_COLORS})


def _july_frame() -> pd.DataFrame:
    rows = [
        ("Northeast", 1850, "historical", 19.0),
        ("Northeast", 1900, "historical", 21.0),
        ("Northeast", 2050, "ssp245", 21.0),
        ("Northeast", 2100, "ssp245", 22.0),
        ("Northeast", 2050, "ssp585", 22.0),
        ("Northeast", 2100, "ssp585", 24.0),
        ("West", 1875, "historical", 25.0),
        ("West", 2050, "ssp245", 26.0),
        ("West", 2100, "ssp245", 27.5),
        ("West", 2050, "ssp585", 27.0),
        ("West", 2100, "ssp585", 29.0),
        ("Lonely", 2050, "ssp585", 30.0),
    ]
    return pd.DataFrame(rows, columns=["region", "year", "scenario", "july_temp_c"])


def test_anomaly_multiples_draws_a_line_per_region_and_scenario(config: ChartsConfig) -> None:
    payload = build_anomaly_multiples(_july_frame(), config)

    lines = payload.marks_of("line")
    assert sorted(mark.key for mark in lines) == [
        "Northeast:ssp245",
        "Northeast:ssp585",
        "West:ssp245",
        "West:ssp585",
    ]
    assert len(payload.marks_of("point")) == 8
    assert payload.meta["baselines"] == {"Northeast": 20.0, "West": 25.0}
    assert [panel["region"] for panel in payload.meta["panels"]] == ["Northeast", "West"]
    assert [entry.key for entry in payload.legend] == ["ssp245", "ssp585"]


def test_anomaly_multiples_skips_regions_without_history(config: ChartsConfig) -> None:
    payload = build_anomaly_multiples(_july_frame(), config)

    assert payload.meta["skipped"] == ["Lonely"]
    assert "No baseline for region Lonely" in payload.meta["warnings"]
    assert not any(mark.group == "Lonely" for mark in payload.marks)


def test_anomaly_multiples_share_one_niced_axis(config: ChartsConfig) -> None:
    payload = build_anomaly_multiples(_july_frame(), config)

    # Anomalies run from +1.0 to +4.0.
    assert payload.axes["y"].domain == (1.0, 4.0)
    northeast = next(mark for mark in payload.marks if mark.key == "Northeast:ssp585")
    west = next(mark for mark in payload.marks if mark.key == "West:ssp585")
    assert northeast.coords[0][0] < northeast.coords[1][0]
    assert northeast.coords[1][1] < northeast.coords[0][1]
    # Same anomaly in each panel sits at the same height relative to its panel.
    ne_offset, west_offset = (panel["offset"] for panel in payload.meta["panels"])
    assert northeast.coords[1][1] - ne_offset[1] == pytest.approx(west.coords[1][1] - west_offset[1])


def test_anomaly_multiples_centre_a_single_projection_row(config: ChartsConfig) -> None:
    frame = pd.DataFrame(
        [
            ("Northeast", 1850, "historical", 19.0),
            ("Northeast", 1900, "historical", 21.0),
            ("Northeast", 2050, "ssp245", 22.0),
        ],
        columns=["region", "year", "scenario", "july_temp_c"],
    )

    payload = build_anomaly_multiples(frame, config)

    assert payload.axes["y"].domain == (2.0, 2.0)
    assert payload.axes["y"].ticks == (2.0,)
    panel = payload.meta["panels"][0]
    line = payload.marks_of("line")[0]
    assert line.coords[0][1] == pytest.approx(panel["offset"][1] + panel["size"][1] / 2)
    assert payload.marks_of("rule") == []


def test_anomaly_multiples_warns_on_unknown_scenario(config: ChartsConfig) -> None:
    frame = pd.concat(
        [
            _july_frame(),
            pd.DataFrame(
                [("West", 2100, "ssp999", 28.0)],
                columns=["region", "year", "scenario", "july_temp_c"],
            ),
        ],
        ignore_index=True,
    )

    payload = build_anomaly_multiples(frame, config)

    assert "Unknown scenario ssp999 in region West" in payload.meta["warnings"]
    assert not any("ssp999" in mark.key for mark in payload.marks)


def test_decadal_comparison_nests_region_bars_inside_decades(config: ChartsConfig) -> None:
    frame = pd.DataFrame(
        {
            "region": ["Northeast", "West", "Northeast", "West"],
            "year": [2030, 2030, 2040, 2040],
            "temp_increase": [1.5, 3.0, 2.0, 4.0],
        }
    )

    payload = build_decadal_comparison(frame, config)

    rects = {mark.key: mark for mark in payload.marks_of("rect")}
    assert set(rects) == {"Northeast:2030", "West:2030", "Northeast:2040", "West:2040"}
    assert rects["Northeast:2030"].coords[0][0] < rects["West:2030"].coords[0][0]
    assert rects["West:2030"].coords[0][0] < rects["Northeast:2040"].coords[0][0]
    # 360px of plot height over a 0-6°C axis.
    assert rects["West:2030"].size[1] == pytest.approx(180.0)
    assert "2.7°F" in rects["Northeast:2030"].label
    assert payload.meta["skipped"] == ["Midwest"]
    assert payload.axes["x"].tick_labels[0] == "2030s"


def test_decadal_comparison_reads_first_record_per_decade_and_skips_gaps(
    config: ChartsConfig,
) -> None:
    frame = pd.DataFrame(
        {
            "region": ["West", "West", "Northeast", "Northeast"],
            "year": [2030, 2030, 2030, 2040],
            "temp_increase": [3.0, 9.0, 1.5, float("nan")],
        }
    )

    payload = build_decadal_comparison(frame, config)

    rects = {mark.key: mark for mark in payload.marks_of("rect")}
    assert set(rects) == {"West:2030", "Northeast:2030"}
    assert rects["West:2030"].size[1] == pytest.approx(180.0)


def test_decadal_comparison_rejects_rows_without_region(config: ChartsConfig) -> None:
    frame = pd.DataFrame({"region": ["West", " "], "year": [2030, 2030], "temp_increase": [1.0, 2.0]})

    with pytest.raises(RecordSchemaError, match="region"):
        build_decadal_comparison(frame, config)


def test_extreme_heat_reports_percent_increase_and_zero_base(config: ChartsConfig) -> None:
    frame = pd.DataFrame(
        {
            "region": ["Northeast", "Northeast", "West", "West", "West"],
            "year": [2030, 2100, 2030, 2100, 2100],
            "threshold": ["moderate", "moderate", "moderate", "moderate", "severe"],
            "days": [10.0, 30.0, 0.0, 12.0, 99.0],
        }
    )

    payload = build_extreme_heat(frame, config, focus_region="Northeast")

    lines = {mark.group: mark for mark in payload.marks_of("line")}
    assert "Increase: +200%" in lines["Northeast"].label
    assert "Increase: n/a" in lines["West"].label
    assert payload.meta["warnings"] == ["Percent increase undefined for West (zero base)"]
    assert lines["Northeast"].style == {"stroke_width": 4.0, "opacity": 1.0}
    assert lines["West"].style["opacity"] == pytest.approx(0.15)
    # 30 days with 10% headroom, severe rows excluded.
    assert payload.axes["y"].domain == (0.0, 33.0)
    assert lines["Northeast"].color == REGION_COLORS["Northeast"]


def test_extreme_heat_validates_threshold_and_columns(config: ChartsConfig) -> None:
    frame = pd.DataFrame(
        {"region": ["West"], "year": [2030], "threshold": ["moderate"], "days": [3.0]}
    )

    with pytest.raises(ValueError, match="Unknown threshold"):
        build_extreme_heat(frame, config, threshold="scorching")
    with pytest.raises(RecordSchemaError, match="threshold"):
        build_extreme_heat(frame.drop(columns=["threshold"]), config)
    with pytest.raises(ValueError, match="severe"):
        build_extreme_heat(frame, config, threshold="severe")


def _grid() -> pd.DataFrame:
    return pd.DataFrame({"lat": [40.0, 45.0], "lon": [-100.0, -80.0], "temp2100": [3.1, 7.0]})


def test_temperature_map_scales_cells_by_year_progress(config: ChartsConfig) -> None:
    colors = map_color_scale(config)

    start = build_temperature_map(_grid(), config, 2025)
    end = build_temperature_map(_grid(), config, 2100)

    assert {mark.color for mark in start.marks_of("rect")} == {"#ffffcc"}
    assert [mark.color for mark in end.marks_of("rect")] == [colors(3.1), "#bd0026"]
    assert end.meta == {"year": 2100, "progress": 1.0}
    assert "Temp Increase (2100): 3.10°C" in end.marks_of("rect")[0].label


def test_temperature_map_highlights_selected_region(config: ChartsConfig) -> None:
    boundaries = {
        "West": [(-120.0, 40.0), (-110.0, 40.0), (-110.0, 45.0)],
        "Northeast": [(-75.0, 42.0), (-70.0, 42.0), (-70.0, 45.0)],
    }

    payload = build_temperature_map(
        _grid(),
        config,
        2100,
        boundaries=boundaries,
        region_temperatures={"West": 4.25},
        selected_region="West",
    )

    paths = {mark.key: mark for mark in payload.marks_of("path")}
    assert paths["region-West"].color == REGION_COLORS["West"]
    assert paths["region-West"].style["stroke_width"] == 4.0
    assert paths["region-Northeast"].color == "#333333"
    assert "Temperature Increase (2100): 4.25°C" in paths["region-West"].label
    assert paths["region-Northeast"].label == "Northeast"


def test_map_legend_exposes_gradient_and_ticks(config: ChartsConfig) -> None:
    payload = build_map_legend(config)

    gradient = payload.marks_of("gradient")[0]
    stops = gradient.style["stops"]
    assert stops[0] == [0.0, "#ffffcc"]
    assert stops[-1] == [100.0, "#bd0026"]
    assert len(stops) == 7
    assert [mark.label for mark in payload.marks_of("text")] == [f"{n}°C" for n in range(8)]


def test_scenario_dumbbell_joins_scenarios_per_region(config: ChartsConfig) -> None:
    frame = pd.DataFrame(
        [
            ("Northeast", 2100, "ssp245", 24.0),
            ("Northeast", 2100, "ssp585", 26.0),
            ("Northeast", 2050, "ssp585", 25.0),
            ("West", 2100, "ssp245", 28.0),
            ("West", 2100, "ssp585", 31.5),
            ("Midwest", 2100, "ssp245", 27.0),
        ],
        columns=["region", "year", "scenario", "july_temp_c"],
    )

    payload = build_scenario_dumbbell(frame, config)

    connectors = {mark.group: mark for mark in payload.marks_of("line")}
    assert set(connectors) == {"Northeast", "West"}
    assert "ssp585 is +2.0°C vs ssp245" in connectors["Northeast"].label
    assert len(payload.marks_of("point")) == 5
    assert payload.meta["warnings"] == ["Region Midwest lacks one or more scenarios"]

    points = {mark.key: mark for mark in payload.marks_of("point")}
    assert points["West:ssp585"].coords[0][0] > points["West:ssp245"].coords[0][0]
    assert points["West:ssp585"].coords[0][1] == points["West:ssp245"].coords[0][1]
    assert payload.axes["y"].tick_labels == ("Northeast", "West", "Midwest")


def test_scenario_dumbbell_requires_rows(config: ChartsConfig) -> None:
    frame = pd.DataFrame(
        [("Northeast", 2100, "historical", 24.0)],
        columns=["region", "year", "scenario", "july_temp_c"],
    )
    with pytest.raises(ValueError, match="No scenario rows"):
        build_scenario_dumbbell(frame, config)


def _timeseries() -> pd.DataFrame:
    dates = pd.date_range("2000-01-01", periods=48, freq="MS")
    return pd.DataFrame(
        {
            "date": list(dates) * 2,
            "region": ["US"] * 48 + ["Global"] * 48,
            "anomaly": [index * 0.01 for index in range(48)] + [0.5] * 48,
            "temperature": [14.0] * 96,
        }
    )


def test_time_series_explorer_plots_selected_region(config: ChartsConfig) -> None:
    payload = build_time_series(_timeseries(), config)

    line = payload.marks_of("line")[0]
    assert line.key == "US:anomaly"
    assert len(line.coords) == 48
    xs = [x for x, _ in line.coords]
    assert xs == sorted(xs)
    assert line.color == "#ef4444"
    assert payload.axes["x"].tick_labels[0] == "2000"
    assert payload.axes["y"].domain == pytest.approx((-0.2, 0.67))


def test_time_series_explorer_handles_missing_and_unknown_inputs(config: ChartsConfig) -> None:
    empty = build_time_series(_timeseries(), config, region="Arctic")
    assert empty.marks == []
    assert empty.meta["warnings"] == ["No anomaly rows for region Arctic"]

    with pytest.raises(ValueError, match="Unknown metric"):
        build_time_series(_timeseries(), config, metric="rainfall")
    with pytest.raises(MissingScaleCategory):
        build_time_series(_timeseries(), config, region="Atlantis")


def test_time_series_explorer_centres_a_single_observation() -> None:
    config = ChartsConfig.model_validate({"regions": REGION_COLORS, "explorer": {"domain_pad": 0}})
    frame = pd.DataFrame(
        {"date": ["2010-06-15"], "region": ["US"], "anomaly": [0.4], "temperature": [14.0]}
    )

    payload = build_time_series(frame, config)

    line = payload.marks_of("line")[0]
    assert line.coords == ((pytest.approx(460.0), pytest.approx(195.0)),)
    assert payload.axes["x"].domain == (pd.Timestamp("2010-06-14"), pd.Timestamp("2010-06-16"))
    assert payload.axes["y"].domain == (0.4, 0.4)


def test_regional_projection_colours_lines_by_final_value(config: ChartsConfig) -> None:
    frame = pd.DataFrame(
        {
            "region": ["Northeast", "Northeast", "West", "West"],
            "year": [2025, 2100, 2025, 2100],
            "temp_increase": [0.0, 2.5, 0.0, 5.0],
        }
    )

    payload = build_regional_projection(frame, config)

    lines = {mark.group: mark for mark in payload.marks_of("line")}
    assert lines["West"].color == to_hex(colormaps["YlOrRd"](1.0))
    assert lines["Northeast"].color != lines["West"].color
    rules = [mark.key for mark in payload.marks_of("rule")]
    assert rules == ["threshold:2", "threshold:4", "year-marker:2100"]
    assert payload.axes["y"].domain == (0.0, 5.5)


def test_regional_projection_handles_flat_ramp(config: ChartsConfig) -> None:
    frame = pd.DataFrame(
        {"region": ["West", "West"], "year": [2025, 2100], "temp_increase": [0.5, 1.0]}
    )

    payload = build_regional_projection(frame, config)

    assert payload.marks_of("line")[0].color == to_hex(colormaps["YlOrRd"](0.0))


def test_regional_projection_plots_a_single_year(config: ChartsConfig) -> None:
    frame = pd.DataFrame({"region": ["West"], "year": [2100], "temp_increase": [3.0]})

    payload = build_regional_projection(frame, config)

    line = payload.marks_of("line")[0]
    assert line.coords[0][0] == pytest.approx(400.0)
    assert payload.axes["x"].domain == (2100.0, 2100.0)
    assert [mark.key for mark in payload.marks_of("rule")] == ["threshold:2", "year-marker:2100"]


def test_mark_and_axis_validate_inputs() -> None:
    with pytest.raises(ValueError, match="Unsupported mark kind"):
        Mark(kind="blob", key="a", coords=((0, 0),), color="#000000")  # type: ignore[arg-type]
    with pytest.raises(ValueError, match="coords"):
        Mark(kind="point", key="a", coords=(), color="#000000")
    with pytest.raises(ValueError, match="one-to-one"):
        Axis(name="x", domain=(0, 1), range=(0, 10), ticks=(0, 1), tick_labels=("0",))


def test_payload_serializes_to_json(config: ChartsConfig) -> None:
    payload = ChartPayload(chart_id="demo", width=100, height=50)
    payload.marks.append(Mark(kind="point", key="p", coords=((1, 2),), color="#000000"))
    payload.axes["x"] = Axis(name="x", domain=(0, 1), range=(0, 100), ticks=(0, 1))
    payload.add_skipped("West")
    payload.add_skipped("West")

    data = json.loads(json.dumps(json_safe(payload.to_dict())))

    assert data["marks"][0]["coords"] == [[1.0, 2.0]]
    assert data["axes"]["x"]["ticks"] == [0, 1]
    assert data["meta"] == {"skipped": ["West"]}


def test_region_color_scale_prefers_configured_colours(config: ChartsConfig) -> None:
    scale = region_color_scale(["West", "Pacific", "Northeast", "Alaska"], config)

    assert scale("West") == REGION_COLORS["West"]
    assert scale("Northeast") == REGION_COLORS["Northeast"]
    assert scale("Pacific") == CATEGORICAL_PALETTE[0]
    assert scale("Alaska") == CATEGORICAL_PALETTE[1]
