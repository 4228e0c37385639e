from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from climate_charts.aggregate import year_progress
from climate_charts.config import ChartsConfig
from climate_charts.errors import UnmeasuredPanel
from climate_charts.tooltip import TooltipPlacement, ViewportRect, position_tooltip

LOGGER = logging.getLogger(__name__)

YearListener = Callable[[int], None]


class Cancellable(Protocol):
    def cancel(self) -> Any: ...


class Scheduler(Protocol):
    """Anything with ``call_later``; an asyncio event loop qualifies."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Cancellable: ...


@dataclass
class ViewState:
    current_year: int
    is_playing: bool = False
    selected_region: str | None = None
    focus_region: str | None = None
    threshold: str | None = None
    metric: str | None = None
    tooltip: TooltipPlacement | None = None
    tooltip_visible: bool = False


class ChartController:
    """Owns the shared view state for one mounted set of charts.

    Playback and manual year changes are mutually exclusive: ``set_year`` stops
    playback, and starting playback cancels any timer already pending.
    """

    def __init__(self, config: ChartsConfig, scheduler: Scheduler | None = None) -> None:
        self._config = config
        self._scheduler = scheduler
        self._timer: Cancellable | None = None
        self._listeners: list[YearListener] = []
        self._mounted = True
        self.state = ViewState(
            current_year=config.projection.end_year,
            threshold=config.extreme_heat.thresholds[0].id if config.extreme_heat.thresholds else None,
            metric=config.explorer.default_metric,
            focus_region=None,
        )

    @property
    def current_year(self) -> int:
        return self.state.current_year

    @property
    def is_playing(self) -> bool:
        return self.state.is_playing

    @property
    def is_mounted(self) -> bool:
        return self._mounted

    @property
    def progress(self) -> float:
        projection = self._config.projection
        return year_progress(self.state.current_year, projection.start_year, projection.end_year)

    def _require_mounted(self) -> None:
        if not self._mounted:
            raise RuntimeError("ChartController has been torn down")

    def subscribe(self, listener: YearListener) -> Callable[[], None]:
        self._require_mounted()
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _apply_year(self, year: int) -> None:
        self.state.current_year = year
        for listener in list(self._listeners):
            listener(year)

    def set_year(self, year: int) -> None:
        self._require_mounted()
        projection = self._config.projection
        if not projection.start_year <= year <= projection.end_year:
            raise ValueError(
                f"year must be within {projection.start_year}-{projection.end_year}, got {year}"
            )
        if self.state.is_playing:
            self.stop_playback()
        self._apply_year(int(year))

    def start_playback(self) -> None:
        self._require_mounted()
        # Resolve the scheduler before touching state so a missing loop leaves nothing half-set.
        self._scheduler_or_loop()
        self._cancel_timer()
        projection = self._config.projection
        if self.state.current_year >= projection.end_year:
            self._apply_year(projection.start_year)
        self.state.is_playing = True
        self._schedule_tick()
        LOGGER.debug("Playback started at %s", self.state.current_year)

    def stop_playback(self) -> None:
        self._cancel_timer()
        if self.state.is_playing:
            LOGGER.debug("Playback stopped at %s", self.state.current_year)
        self.state.is_playing = False

    def toggle_playback(self) -> bool:
        if self.state.is_playing:
            self.stop_playback()
        else:
            self.start_playback()
        return self.state.is_playing

    def _scheduler_or_loop(self) -> Scheduler:
        if self._scheduler is None:
            self._scheduler = asyncio.get_running_loop()
        return self._scheduler

    def _schedule_tick(self) -> None:
        delay = self._config.animation.interval_seconds
        self._timer = self._scheduler_or_loop().call_later(delay, self._tick)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _tick(self) -> None:
        self._timer = None
        if not (self._mounted and self.state.is_playing):
            return
        projection = self._config.projection
        year = self.state.current_year + self._config.animation.step_years
        if year > projection.end_year:
            year = projection.start_year
        self._apply_year(year)
        if self.state.is_playing:
            self._schedule_tick()

    def select_region(self, region: str | None) -> None:
        self._require_mounted()
        self.state.selected_region = region

    def set_focus_region(self, region: str | None) -> None:
        self._require_mounted()
        self.state.focus_region = region

    def set_threshold(self, threshold: str) -> None:
        self._require_mounted()
        known = {item.id for item in self._config.extreme_heat.thresholds}
        if threshold not in known:
            raise ValueError(f"Unknown threshold {threshold!r}; expected one of {sorted(known)}")
        self.state.threshold = threshold

    def set_metric(self, metric: str) -> None:
        self._require_mounted()
        self.state.metric = metric

    def place_tooltip(
        self,
        pointer_x: float,
        pointer_y: float,
        panel_width: float,
        panel_height: float,
        viewport: ViewportRect,
    ) -> TooltipPlacement | None:
        """Position the tooltip, keeping the previous placement for an unmeasured panel."""
        self._require_mounted()
        try:
            placement = position_tooltip(
                pointer_x,
                pointer_y,
                panel_width,
                panel_height,
                viewport,
                self._config.tooltip,
            )
        except UnmeasuredPanel:
            LOGGER.debug("Tooltip panel not measured yet; keeping previous placement")
            return self.state.tooltip
        self.state.tooltip = placement
        self.state.tooltip_visible = True
        return placement

    def hide_tooltip(self) -> None:
        self.state.tooltip_visible = False

    def teardown(self) -> None:
        self.stop_playback()
        self._listeners.clear()
        self._mounted = False
