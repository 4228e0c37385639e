"""Static matplotlib previews of chart payloads.

These are for eyeballing builder output in CI artifacts or notebooks; the
browser renderer remains the real consumer of payloads.
"""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
from matplotlib.patches import Polygon, Rectangle

from climate_charts.charts.payload import ChartPayload, Mark

PIXELS_PER_INCH = 100.0


def save_figure(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(path, dpi=PIXELS_PER_INCH)
    plt.close()
    return path


def _draw_mark(ax: plt.Axes, mark: Mark) -> None:
    opacity = float(mark.style.get("opacity", 1.0))
    width = float(mark.style.get("stroke_width", 1.5))
    xs = [point[0] for point in mark.coords]
    ys = [point[1] for point in mark.coords]

    if mark.kind in ("rect", "gradient") and mark.size is not None:
        ax.add_patch(
            Rectangle(
                mark.coords[0],
                mark.size[0],
                mark.size[1],
                facecolor=mark.color,
                edgecolor="none",
                alpha=opacity,
            )
        )
    elif mark.kind == "path":
        ax.add_patch(
            Polygon(
                list(mark.coords),
                closed=bool(mark.style.get("closed", False)),
                fill=False,
                edgecolor=mark.color,
                linewidth=width,
                alpha=opacity,
            )
        )
    elif mark.kind in ("line", "rule"):
        linestyle = "--" if mark.style.get("dash") else "-"
        ax.plot(xs, ys, color=mark.color, linewidth=width, alpha=opacity, linestyle=linestyle)
    elif mark.kind == "point":
        size = mark.size[0] if mark.size else 4.0
        ax.scatter(xs, ys, s=size**2, color=mark.color, alpha=opacity, zorder=3)
    elif mark.kind == "text":
        ax.text(xs[0], ys[0], mark.label, color=mark.color, fontsize=8, alpha=opacity)


def plot_payload(payload: ChartPayload, output_path: Path) -> Path:
    plt.figure(figsize=(payload.width / PIXELS_PER_INCH, payload.height / PIXELS_PER_INCH))
    ax = plt.gca()
    for mark in payload.marks:
        _draw_mark(ax, mark)
    ax.set_xlim(0, payload.width)
    # Payload coordinates are screen pixels with y growing downward.
    ax.set_ylim(payload.height, 0)
    ax.set_axis_off()
    ax.set_title(payload.chart_id.replace("_", " ").title())
    return save_figure(output_path)
