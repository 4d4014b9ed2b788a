"""Statistics helpers for review metrics reporting.

This module provides:
- Half-away-from-zero rounding to two decimals.
- Averages and nearest-rank percentiles that return ``0.0`` for empty samples.
- Percentages that return ``0.0`` for a zero denominator.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from .models import TimingStats

_TWO_PLACES = Decimal("0.01")


def round_half_up(value: float, places: Decimal = _TWO_PLACES) -> float:
    """Round ``value`` to two decimals, ties away from zero."""
    return float(Decimal(str(value)).quantize(places, rounding=ROUND_HALF_UP))


def _round_index(position: float) -> int:
    """Round a non-negative rank position to the nearest index, ties upward."""
    return int(math.floor(position + 0.5))


def percentage(numerator: float, denominator: float) -> float:
    """Return ``numerator / denominator * 100`` rounded, or ``0.0`` for a zero denominator."""
    if not denominator:
        return 0.0
    return round_half_up(numerator / denominator * 100)


def average(samples: Sequence[float]) -> float:
    """Return the mean of ``samples`` rounded to two decimals, ``0.0`` when empty."""
    if not samples:
        return 0.0
    return round_half_up(sum(samples) / len(samples))


def percentile(samples: Sequence[float], p: float) -> float:
    """Calculate a percentile using the nearest rank on the sorted sample.

    The rank index is ``round(p / 100 * (n - 1))``; no interpolation happens
    between neighbouring ranks.

    Args:
        samples: Numeric samples in any order.
        p: Percentile in the inclusive range ``[0, 100]``.

    Returns:
        The selected sample rounded to two decimals, or ``0.0`` for empty input.

    Raises:
        ValueError: If ``p`` is outside ``[0, 100]``.
    """
    if not 0 <= p <= 100:
        raise ValueError("Percentile 'p' must be in the range [0, 100].")

    if not samples:
        return 0.0

    sorted_values = sorted(samples)
    index = _round_index(p / 100.0 * (len(sorted_values) - 1))
    return round_half_up(sorted_values[index])


def summarize_timing(samples: Sequence[float]) -> TimingStats:
    """Compute average and P90 for one timing metric."""
    return TimingStats(
        average=average(samples),
        p90=percentile(samples, 90),
        count=len(samples),
    )
