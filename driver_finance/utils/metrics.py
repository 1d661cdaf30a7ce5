"""Pure arithmetic helpers shared by the analytics services."""
from __future__ import annotations

from typing import Iterable


def safe_div(numerator: float | int, denominator: float | int) -> float:
    if denominator in (0, 0.0):
        return 0.0
    return float(numerator) / float(denominator)


def mean(values: Iterable[float]) -> float:
    items = list(values)
    return safe_div(sum(items), len(items))


def pct_change(current: float, previous: float) -> float:
    """Relative change from ``previous`` to ``current`` in percent (0 when previous is 0)."""
    return safe_div(current - previous, previous) * 100


def round_money(value: float) -> float:
    return round(float(value), 2)


def as_float(value: float | int | None) -> float:
    return float(value) if value is not None else 0.0


__all__ = ["safe_div", "mean", "pct_change", "round_money", "as_float"]
