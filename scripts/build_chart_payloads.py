#!/usr/bin/env python3
"""Build every chart payload from the configured data directory.

``configs/default.yaml`` points ``data_dir`` at ``data/`` in the repo root, which
ships a small sample set. Replace those files (or set ``CLIMATE_CHARTS_DATA_DIR``)
to chart real data. Expected tables:

- ``regional_july_temps.csv``: region, year, scenario, july_temp_c. Needs
  ``historical`` rows for 1850-1900 plus ssp245/ssp585 projections.
- ``us_regional_future.csv``: region, year, temp_increase (2025 and each decade).
- ``extreme_heat_days.csv``: region, year, threshold, days.
- ``temperature_grid.csv``: lat, lon, temp2100.
- ``regional_timeseries.csv``: date, region and one column per metric.
- ``region_boundaries.json``: region name to a list of ``[lon, lat]`` points.

Payloads land in ``out/payloads``.
"""

from __future__ import annotations

from pathlib import Path

from climate_charts.config import load_config
from climate_charts.logging import configure_logging
from climate_charts.pipeline import build_all_payloads, write_all_payloads


def project_root() -> Path:
    return Path(__file__).resolve().parents[1]


def main() -> None:
    configure_logging()
    root = project_root()
    config = load_config(root / "configs" / "default.yaml")
    payloads, failures = build_all_payloads(config)
    written = write_all_payloads(payloads, root / "out" / "payloads")
    print(f"Wrote {len(written)} payload(s) to {root / 'out' / 'payloads'}")
    for chart_id, reason in sorted(failures.items()):
        print(f"Skipped {chart_id}: {reason}")


if __name__ == "__main__":
    main()
