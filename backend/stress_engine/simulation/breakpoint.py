"""Breakpoint detector: ordered rule cascade over a stressed trajectory.

Rules are evaluated in order and the first one that fires decides the verdict;
later rules are never consulted once one has fired:

    1. any period's cash end balance < 0
    2. final cash declines more than ``cash_decline_limit`` vs baseline
    3. any period's gross margin < ``gross_margin_floor``
    4. baseline final EBITDA > 0 but stressed final EBITDA < 0
    5. final EBITDA declines more than ``ebitda_decline_limit`` vs baseline
    6. final covers below ``volume_floor`` x baseline final covers
    7. scenario authored as expected to break: re-test with the loosened
       limits, reporting the scenario's own break reason
    8. otherwise the plan holds

Trajectory quantities derived from a run:
    EBITDA     gross_profit - wage_costs - operating_expenses
    cash flow  EBITDA * cash_conversion_ratio - non_operating_expenses
    cash end   opening_cash + cumulative cash flow (a missing period makes
               every later balance missing)
    volume     the COVERS driver
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from stress_engine.models.analysis import Breakpoint, BreakpointMetric, BreakpointRule
from stress_engine.models.driver import DriverKey
from stress_engine.models.kpi import KpiSpineRow
from stress_engine.models.run import ComputationRun
from stress_engine.models.scenario import Scenario
from stress_engine.simulation.comparison import check_aligned


@dataclass(frozen=True)
class BreakpointPolicy:
    """Thresholds for the cascade.

    Planning policy, not calibrated constants. Tune per business.
    """
    cash_decline_limit: float = 0.30
    gross_margin_floor: float = 0.68
    ebitda_decline_limit: float = 0.50
    volume_floor: float = 0.90
    loosened_cash_decline_limit: float = 0.15
    loosened_ebitda_decline_limit: float = 0.30
    opening_cash: float = 0.0
    cash_conversion_ratio: float = 0.8


DEFAULT_POLICY = BreakpointPolicy()
DEFAULT_BREAK_REASON = "Scenario causes significant financial stress"


def ebitda(row: KpiSpineRow) -> Optional[float]:
    if None in (row.gross_profit, row.wage_costs, row.operating_expenses):
        return None
    return row.gross_profit - row.wage_costs - row.operating_expenses


def cash_balances(
    run: ComputationRun, policy: BreakpointPolicy = DEFAULT_POLICY,
) -> list[Optional[float]]:
    balances: list[Optional[float]] = []
    balance: Optional[float] = policy.opening_cash
    for row in run.kpi_results:
        operating = ebitda(row)
        if balance is None or operating is None or row.non_operating_expenses is None:
            balance = None
        else:
            balance += operating * policy.cash_conversion_ratio - row.non_operating_expenses
        balances.append(balance)
    return balances


def _decline(baseline: Optional[float], stressed: Optional[float]) -> Optional[float]:
    """Fractional decline vs a positive baseline; undefined otherwise."""
    if baseline is None or stressed is None or baseline <= 0:
        return None
    return (baseline - stressed) / baseline


def _last(values: list) -> Optional[float]:
    return values[-1] if values else None


def detect_breakpoint(
    baseline_run: ComputationRun,
    stressed_run: ComputationRun,
    scenario: Optional[Scenario] = None,
    policy: BreakpointPolicy = DEFAULT_POLICY,
) -> Breakpoint:
    """Decide whether the stressed trajectory breaks the plan."""
    check_aligned(baseline_run, stressed_run)
    periods = stressed_run.periods

    base_cash = cash_balances(baseline_run, policy)
    stressed_cash = cash_balances(stressed_run, policy)
    base_ebitda = [ebitda(r) for r in baseline_run.kpi_results]
    stressed_ebitda = [ebitda(r) for r in stressed_run.kpi_results]
    base_volume = [r.drivers[DriverKey.COVERS] for r in baseline_run.driver_series]
    stressed_volume = [r.drivers[DriverKey.COVERS] for r in stressed_run.driver_series]

    final_index = len(periods) - 1 if periods else None
    cash_decline = _decline(_last(base_cash), _last(stressed_cash))
    ebitda_decline = _decline(_last(base_ebitda), _last(stressed_ebitda))

    fired: Optional[tuple[BreakpointRule, Optional[int], str]] = None

    for i, balance in enumerate(stressed_cash):
        if balance is not None and balance < 0:
            fired = (BreakpointRule.cash_below_zero, i, "Cash balance falls below zero")
            break

    if fired is None and cash_decline is not None and cash_decline > policy.cash_decline_limit:
        fired = (
            BreakpointRule.cash_decline,
            final_index,
            f"Cash balance declines by {cash_decline * 100:.0f}% vs baseline",
        )

    if fired is None:
        for i, row in enumerate(stressed_run.derived_results):
            margin = row.gross_margin_pct
            if margin is not None and margin < policy.gross_margin_floor:
                fired = (
                    BreakpointRule.gross_margin_floor,
                    i,
                    f"Gross margin falls to {margin * 100:.1f}% "
                    f"(below {policy.gross_margin_floor * 100:.0f}% threshold)",
                )
                break

    if fired is None:
        base_final, stressed_final = _last(base_ebitda), _last(stressed_ebitda)
        if (
            base_final is not None and stressed_final is not None
            and base_final > 0 and stressed_final < 0
        ):
            fired = (
                BreakpointRule.ebitda_turns_negative,
                final_index,
                "EBITDA fails to turn positive by the final period",
            )

    if fired is None and ebitda_decline is not None and ebitda_decline > policy.ebitda_decline_limit:
        fired = (
            BreakpointRule.ebitda_decline,
            final_index,
            f"EBITDA declines by {ebitda_decline * 100:.0f}% vs baseline",
        )

    if fired is None:
        base_final, stressed_final = _last(base_volume), _last(stressed_volume)
        if (
            base_final is not None and stressed_final is not None
            and stressed_final < base_final * policy.volume_floor
        ):
            shortfall = (base_final - stressed_final) / base_final * 100 if base_final else 0.0
            fired = (
                BreakpointRule.volume_decline,
                final_index,
                f"Covers {shortfall:.0f}% below baseline projection",
            )

    if fired is None and scenario is not None and scenario.expected_to_break:
        loosened_ebitda = ebitda_decline if ebitda_decline is not None else 0.0
        if (
            (cash_decline is not None and cash_decline > policy.loosened_cash_decline_limit)
            or loosened_ebitda > policy.loosened_ebitda_decline_limit
        ):
            fired = (
                BreakpointRule.expected_break,
                final_index,
                scenario.break_reason or DEFAULT_BREAK_REASON,
            )

    metrics = [
        BreakpointMetric(metric="cash_end", baseline_value=_last(base_cash), stressed_value=_last(stressed_cash)),
        BreakpointMetric(
            metric="gross_margin_pct",
            baseline_value=_last([r.gross_margin_pct for r in baseline_run.derived_results]),
            stressed_value=_last([r.gross_margin_pct for r in stressed_run.derived_results]),
        ),
        BreakpointMetric(metric="ebitda", baseline_value=_last(base_ebitda), stressed_value=_last(stressed_ebitda)),
        BreakpointMetric(metric="covers", baseline_value=_last(base_volume), stressed_value=_last(stressed_volume)),
    ]

    scenario_id = scenario.id if scenario is not None else stressed_run.scenario_id
    if fired is None:
        return Breakpoint(scenario_id=scenario_id, fails=False, metrics=metrics)

    rule, index, reason = fired
    return Breakpoint(
        scenario_id=scenario_id,
        fails=True,
        first_failure_month=periods[index] if index is not None else None,
        first_failure_index=index,
        rule=rule,
        reason=reason,
        metrics=metrics,
    )
