"""Shock curve builder: per-month magnitude shaping for multi-month shocks.

Values are the fraction of full shock magnitude applied at each relative month
of a shock's window:

    flat      1.0 everywhere (no shaping)
    decay     (1 - progress) ** e       starts at full strength, fades to 0
    recovery  progress ** e             starts at 0, builds to full strength

with ``progress = month / (horizon - 1)`` (0 for a one-month horizon). The
decay values are the complement of the blend-toward-baseline
``1 - (1 - progress) ** e``.

The exponent is coupled to the baseline: ``e = clamp(1 - trend, 0.7, 1.6)``
where ``trend`` is the revenue regression slope normalized by mean revenue and
clamped to [-0.25, 0.25]. A steeply growing baseline gets e < 1, so its shocks
fade (decay) and build (recovery) faster than on a flat baseline.
"""
from __future__ import annotations

from typing import Optional

import numpy as np

from stress_engine.models.kpi import KpiSpineRow
from stress_engine.models.scenario import ShockCurve

TREND_CLAMP = 0.25
EXPONENT_MIN = 0.7
EXPONENT_MAX = 1.6


def _clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


def trend_strength(kpi_series: Optional[list[KpiSpineRow]]) -> float:
    """Normalized OLS slope of revenue over period index, clamped."""
    if not kpi_series:
        return 0.0
    points = [
        (idx, row.total_revenue)
        for idx, row in enumerate(kpi_series)
        if row.total_revenue is not None
    ]
    if len(points) < 2:
        return 0.0

    xs = np.array([p[0] for p in points], dtype=float)
    ys = np.array([p[1] for p in points], dtype=float)
    mean_y = float(ys.mean())
    if mean_y == 0:
        return 0.0
    x_dev = xs - xs.mean()
    denominator = float((x_dev ** 2).sum())
    slope = float((x_dev * (ys - mean_y)).sum()) / denominator if denominator else 0.0
    return _clamp(slope / mean_y, -TREND_CLAMP, TREND_CLAMP)


def curve_exponent(kpi_series: Optional[list[KpiSpineRow]]) -> float:
    return _clamp(1.0 - trend_strength(kpi_series), EXPONENT_MIN, EXPONENT_MAX)


def build_curve(
    curve_type: ShockCurve | str,
    horizon_months: int,
    baseline_kpi_series: Optional[list[KpiSpineRow]] = None,
) -> list[float]:
    """Return ``horizon_months`` magnitudes in [0, 1]."""
    curve = ShockCurve(curve_type)
    horizon = max(1, int(horizon_months))

    if curve == ShockCurve.flat:
        return [1.0] * horizon

    exponent = curve_exponent(baseline_kpi_series)
    values = []
    for month in range(horizon):
        progress = month / (horizon - 1) if horizon > 1 else 0.0
        if curve == ShockCurve.decay:
            values.append((1.0 - progress) ** exponent)
        else:
            values.append(progress ** exponent)
    return values
