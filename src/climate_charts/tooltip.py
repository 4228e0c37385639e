from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

from climate_charts.config import TooltipConfig
from climate_charts.errors import UnmeasuredPanel


@dataclass(frozen=True)
class ViewportRect:
    """Visible window size and scroll offset, read fresh for every placement."""

    width: float
    height: float
    scroll_x: float = 0.0
    scroll_y: float = 0.0

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Viewport must have positive size, got {self.width}x{self.height}.")

    @property
    def right(self) -> float:
        return self.scroll_x + self.width

    @property
    def bottom(self) -> float:
        return self.scroll_y + self.height


class TooltipPlacement(NamedTuple):
    left: float
    top: float


def position_tooltip(
    pointer_x: float,
    pointer_y: float,
    panel_width: float,
    panel_height: float,
    viewport: ViewportRect,
    config: TooltipConfig | None = None,
) -> TooltipPlacement:
    """Place a panel beside the pointer, flipping left/up when it would overflow.

    Horizontal and vertical decisions are made independently, once. A panel with
    no measured size raises ``UnmeasuredPanel`` so the caller can leave the panel
    where it is.
    """
    config = config or TooltipConfig()
    if panel_width <= 0 or panel_height <= 0:
        raise UnmeasuredPanel(panel_width, panel_height)

    left = pointer_x + config.offset
    top = pointer_y + config.offset

    if left + panel_width + config.edge_margin > viewport.right:
        left = pointer_x - panel_width - config.flip_gap

    if top + panel_height + config.edge_margin > viewport.bottom:
        top_above = pointer_y - panel_height - config.offset
        pinned_top = viewport.scroll_y + config.top_pin
        top = pinned_top if top_above < pinned_top else top_above

    return TooltipPlacement(left=left, top=top)
