"""Recoverable data and geometry conditions raised by the chart pipeline.

Every error derives from ``ChartDataError`` (a ``ValueError``) so call sites can
skip a group, show a placeholder or log and continue without a blanket handler.
"""

from __future__ import annotations

from typing import Any


class ChartDataError(ValueError):
    pass


class MissingBaseline(ChartDataError):
    def __init__(self, group: Any) -> None:
        super().__init__(f"No historical records to build a baseline for group {group!r}.")
        self.group = group


class MissingScaleCategory(ChartDataError):
    def __init__(self, category: Any, domain: tuple[Any, ...]) -> None:
        super().__init__(f"Category {category!r} is not in scale domain {list(domain)!r}.")
        self.category = category
        self.domain = domain


class DivisionByZeroError(ChartDataError, ZeroDivisionError):
    def __init__(self, initial: float, final: float) -> None:
        super().__init__(
            f"Cannot compute percent change from a zero base (initial={initial!r}, final={final!r})."
        )
        self.initial = initial
        self.final = final


class DegenerateDomain(ChartDataError):
    def __init__(self, domain: tuple[Any, ...], reason: str = "min == max") -> None:
        super().__init__(f"Degenerate scale domain {list(domain)!r}: {reason}.")
        self.domain = domain


class UnmeasuredPanel(ChartDataError):
    def __init__(self, width: float, height: float) -> None:
        super().__init__(f"Tooltip panel has not been measured yet ({width!r}x{height!r}).")
        self.width = width
        self.height = height


class RecordSchemaError(ChartDataError):
    pass
