from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from climate_charts.config import ChartsConfig
from climate_charts.errors import RecordSchemaError
from climate_charts.io import read as read_module
from climate_charts.io.read import load_grid, load_records, load_table
from climate_charts.io.schema import ClimateRecord, iter_climate_records
from climate_charts.io.write import json_safe, write_payload


def _config_with_custom_columns() -> ChartsConfig:
    return ChartsConfig.model_validate(
        {
            "columns": {
                "region": "Region",
                "year": "Year",
                "scenario": "Scenario",
                "measurements": {"july_temp_c": "July Temp (C)"},
            }
        }
    )


def test_load_records_normalizes_source_columns(tmp_path: Path) -> None:
    csv_path = tmp_path / "july.csv"
    csv_path.write_text(
        "\n".join(
            [
                "Region,Year,Scenario,July Temp (C)",
                "Northeast,1850,historical,21.5",
                "Northeast,2050,ssp585,24.25",
            ]
        ),
        encoding="utf-8",
    )

    loaded = load_records(csv_path, _config_with_custom_columns(), ["july_temp_c"])

    assert list(loaded.columns) == ["region", "year", "scenario", "july_temp_c"]
    assert loaded["year"].dtype == "int64"
    assert loaded.loc[1, "july_temp_c"] == 24.25


def test_load_records_strips_byte_order_mark(tmp_path: Path) -> None:
    csv_path = tmp_path / "increase.csv"
    csv_path.write_text(
        "\ufeffregion,year,temp_increase\nWest,2030,0.8\n", encoding="utf-8"
    )

    loaded = load_records(csv_path, ChartsConfig(), ["temp_increase"], require_scenario=False)

    assert loaded.loc[0, "region"] == "West"
    assert "scenario" not in loaded.columns


def test_load_records_reports_missing_source_columns(tmp_path: Path) -> None:
    csv_path = tmp_path / "july.csv"
    csv_path.write_text("region,year\nWest,2030\n", encoding="utf-8")

    with pytest.raises(RecordSchemaError, match="scenario, july_temp_c"):
        load_records(csv_path, ChartsConfig(), ["july_temp_c"])


def test_load_records_raises_when_normalized_output_is_missing_required_column(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    csv_path = tmp_path / "july.csv"
    csv_path.write_text(
        "region,year,scenario,july_temp_c\nWest,2030,ssp245,25.0\n", encoding="utf-8"
    )

    def _bad_normalize(df: pd.DataFrame, **_: object) -> pd.DataFrame:
        return df.drop(columns=["year"])

    monkeypatch.setattr(read_module, "normalize_columns", _bad_normalize)

    with pytest.raises(RecordSchemaError, match="missing column: year"):
        load_records(csv_path, ChartsConfig(), ["july_temp_c"])


@pytest.mark.parametrize(
    ("row", "message"),
    [
        ("West,20x0,ssp245,25.0", "Non-integer year"),
        ("West,2030.5,ssp245,25.0", "Non-integer year"),
        (" ,2030,ssp245,25.0", "Blank region"),
        ("West,2030,ssp245,hot", "Non-numeric july_temp_c"),
    ],
)
def test_load_records_rejects_bad_values(tmp_path: Path, row: str, message: str) -> None:
    csv_path = tmp_path / "july.csv"
    csv_path.write_text(f"region,year,scenario,july_temp_c\n{row}\n", encoding="utf-8")

    with pytest.raises(RecordSchemaError, match=message):
        load_records(csv_path, ChartsConfig(), ["july_temp_c"])


def test_load_records_keeps_missing_measurements_as_nan(tmp_path: Path) -> None:
    csv_path = tmp_path / "july.csv"
    csv_path.write_text(
        "region,year,scenario,july_temp_c\nWest,2030,ssp245,\nWest,2040,ssp245,26.0\n",
        encoding="utf-8",
    )

    loaded = load_records(csv_path, ChartsConfig(), ["july_temp_c"])

    assert pd.isna(loaded.loc[0, "july_temp_c"])
    assert loaded.loc[1, "july_temp_c"] == 26.0


def test_load_table_reads_json_records(tmp_path: Path) -> None:
    json_path = tmp_path / "heat.json"
    json_path.write_text(
        json.dumps([{"region": "Midwest", "year": 2030, "days": 12}]), encoding="utf-8"
    )

    loaded = load_table(json_path)

    assert loaded.to_dict(orient="records") == [{"region": "Midwest", "year": 2030, "days": 12}]


def test_load_table_round_trips_parquet(tmp_path: Path) -> None:
    frame = pd.DataFrame({"region": ["West"], "year": [2030], "days": [4.0]})
    path = tmp_path / "heat.parquet"
    frame.to_parquet(path, index=False)

    pd.testing.assert_frame_equal(load_table(path), frame)


def test_load_table_rejects_unknown_suffix(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Unsupported table file type: .xlsx"):
        load_table(tmp_path / "data.xlsx")


def test_load_grid_requires_numeric_columns(tmp_path: Path) -> None:
    good = tmp_path / "grid.csv"
    good.write_text("lat,lon,temp2100\n40.5,-100.5,3.2\n", encoding="utf-8")
    bad = tmp_path / "bad.csv"
    bad.write_text("lat,lon,temp2100\n40.5,-100.5,warm\n", encoding="utf-8")

    assert load_grid(good)["temp2100"].tolist() == [3.2]
    with pytest.raises(RecordSchemaError, match="temp2100"):
        load_grid(bad)


def test_iter_climate_records_builds_immutable_records() -> None:
    frame = pd.DataFrame(
        {"region": ["West"], "year": [2030], "scenario": ["ssp245"], "july_temp_c": [25.0]}
    )

    records = list(iter_climate_records(frame, ["july_temp_c"]))

    assert records == [
        ClimateRecord(region="West", year=2030, scenario="ssp245", measurements={"july_temp_c": 25.0})
    ]
    assert records[0].value("july_temp_c") == 25.0
    with pytest.raises(RecordSchemaError, match="days"):
        records[0].value("days")


def test_climate_record_requires_region() -> None:
    with pytest.raises(RecordSchemaError):
        ClimateRecord(region="  ", year=2030)


def test_write_payload_replaces_non_finite_numbers(tmp_path: Path) -> None:
    path = write_payload(
        {"ticks": (0, 1.5), "value": float("nan"), "when": pd.Timestamp("2030-01-01")},
        tmp_path / "out" / "payload.json",
    )

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data == {"ticks": [0, 1.5], "value": None, "when": "2030-01-01T00:00:00"}
    assert json_safe({1: float("inf")}) == {"1": None}
