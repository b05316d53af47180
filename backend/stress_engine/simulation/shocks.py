"""Shock applier: timed driver perturbations for scenarios and mitigations.

Scenario shocks and mitigation adjustments share one algorithm: for each
period, every perturbation active at that index is applied in list order.
A missing (None) driver value stays None.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from stress_engine.models.driver import DriverRow
from stress_engine.models.kpi import KpiSpineRow
from stress_engine.models.scenario import (
    Mitigation,
    MitigationSelection,
    Scenario,
    Shock,
    ShockCurve,
    ShockMode,
)
from stress_engine.simulation.kpi_spine import compute_kpi_spine
from stress_engine.simulation.shock_curve import build_curve

logger = logging.getLogger(__name__)


def _apply_one(value: Optional[float], shock: Shock, magnitude: float) -> Optional[float]:
    if value is None:
        return None
    if shock.mode == ShockMode.add:
        return value + shock.value * magnitude
    if shock.mode == ShockMode.multiply:
        # Scale the deviation from identity so a zero magnitude is a no-op.
        return value * (1.0 + (shock.value - 1.0) * magnitude)
    if shock.mode == ShockMode.set:
        return shock.value
    raise ValueError(f"Unknown shock mode: {shock.mode!r}")


def _window_horizon(shock: Shock, n_periods: int) -> int:
    in_series = min(shock.start_month_offset + shock.duration_months, n_periods) - shock.start_month_offset
    return max(1, in_series)


def apply_shocks(
    driver_series: list[DriverRow],
    shocks: Sequence[Shock],
    curve_type: ShockCurve | str = ShockCurve.flat,
    baseline_kpis: Optional[list[KpiSpineRow]] = None,
) -> list[DriverRow]:
    """Return a new driver series with the shocks applied. Input is not modified."""
    curve = ShockCurve(curve_type)
    n_periods = len(driver_series)

    curves: list[Optional[list[float]]] = []
    for shock in shocks:
        if curve == ShockCurve.flat or shock.mode == ShockMode.set:
            curves.append(None)
        else:
            horizon = _window_horizon(shock, n_periods)
            if curve == ShockCurve.recovery and horizon == 1 and shock.start_month_offset < n_periods:
                logger.warning(
                    "Recovery shock on %s spans one month and has no effect",
                    shock.driver.value,
                )
            curves.append(build_curve(curve, horizon, baseline_kpis))

    result: list[DriverRow] = []
    for index, row in enumerate(driver_series):
        drivers = dict(row.drivers)
        for shock, magnitudes in zip(shocks, curves):
            if not shock.is_active(index):
                continue
            magnitude = 1.0 if magnitudes is None else magnitudes[index - shock.start_month_offset]
            drivers[shock.driver] = _apply_one(drivers[shock.driver], shock, magnitude)
        result.append(row.model_copy(update={"drivers": drivers}))
    return result


def apply_scenario(
    driver_series: list[DriverRow],
    scenario: Scenario,
    baseline_kpis: Optional[list[KpiSpineRow]] = None,
) -> list[DriverRow]:
    """Apply a scenario's shocks using its shock curve.

    The curve exponent is derived from ``baseline_kpis``; when omitted it is
    computed from the unshocked ``driver_series``.

    A recovery curve starts at zero magnitude, so the first month of every
    recovery window is unshocked and a one-month recovery shock does nothing
    (a warning is logged). Use a flat curve for single-month shocks.
    """
    if baseline_kpis is None and scenario.shock_curve != ShockCurve.flat:
        baseline_kpis = compute_kpi_spine(driver_series)
    return apply_shocks(driver_series, scenario.shocks, scenario.shock_curve, baseline_kpis)


def selected_mitigations(
    mitigations: Mitigation | Iterable[Mitigation],
    selection: Optional[MitigationSelection] = None,
) -> list[Mitigation]:
    if isinstance(mitigations, Mitigation):
        mitigations = [mitigations]
    selection = selection or MitigationSelection()
    return [m for m in mitigations if selection.includes(m)]


def apply_adjustments(
    driver_series: list[DriverRow],
    mitigations: Mitigation | Iterable[Mitigation],
    selection: Optional[MitigationSelection] = None,
) -> list[DriverRow]:
    """Apply the adjustments of every selected mitigation, in order."""
    adjustments: list[Shock] = []
    for mitigation in selected_mitigations(mitigations, selection):
        adjustments.extend(mitigation.adjustments)
    return apply_shocks(driver_series, adjustments)
