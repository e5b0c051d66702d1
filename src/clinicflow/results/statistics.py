"""Descriptive statistics and display formatting for simulation output.

All helpers return 0 for empty input rather than NaN.
"""

from typing import Sequence

import numpy as np


def calculate_mean(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.mean(values))


def calculate_standard_deviation(values: Sequence[float]) -> float:
    """Population standard deviation (0 for fewer than two values)."""
    if len(values) <= 1:
        return 0.0
    return float(np.std(values))


def calculate_median(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.median(values))


def calculate_percentile(values: Sequence[float], percentile: float) -> float:
    """Value at ``percentile`` using linear interpolation between ranks.

    Args:
        values: Sample values.
        percentile: Percentile in [0, 100].

    Raises:
        ValueError: If ``percentile`` is outside [0, 100].
    """
    if not 0 <= percentile <= 100:
        raise ValueError(f"Percentile must be between 0 and 100, got {percentile}")
    if len(values) == 0:
        return 0.0
    return float(np.percentile(values, percentile))


def calculate_utilization(busy_time: float, total_time: float) -> float:
    """Busy fraction of a period (0 when the period is empty)."""
    if total_time <= 0:
        return 0.0
    return busy_time / total_time


def format_time(minutes: float) -> str:
    """Format minutes for display, e.g. ``45s``, ``12m``, ``2h``, ``2h 30m``."""
    if minutes < 1:
        return f"{round(minutes * 60)}s"
    if minutes < 60:
        return f"{round(minutes)}m"

    hours = int(minutes // 60)
    remaining = round(minutes % 60)
    if remaining == 60:
        hours, remaining = hours + 1, 0
    if remaining == 0:
        return f"{hours}h"
    return f"{hours}h {remaining}m"


def format_percentage(value: float, decimals: int = 1) -> str:
    """Format a 0-1 fraction as a percentage string."""
    return f"{value * 100:.{decimals}f}%"
