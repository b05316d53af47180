"""Monte Carlo over mitigation adjustments.

Each simulation perturbs every adjustment value with Gaussian noise and
recomputes the mitigated run against the same stressed drivers. The result
is the p10/p50/p90 band of the headline summary deltas.
"""
from __future__ import annotations

import random
from typing import Iterable, Optional

from stress_engine.models.analysis import MonteCarloResult, PercentileBand
from stress_engine.models.run import ComputationRun
from stress_engine.models.scenario import (
    Adjustment,
    Mitigation,
    MitigationSelection,
    Scenario,
    ShockMode,
)
from stress_engine.simulation.engine import compute_mitigated_run, compute_scenario_run
from stress_engine.simulation.shocks import selected_mitigations

_DEFAULT_VOLATILITY = 0.10  # Relative standard deviation of adjustment noise


def _perturb(adjustment: Adjustment, volatility: float, rng: random.Random) -> Adjustment:
    noise = rng.gauss(0.0, volatility)
    if adjustment.mode == ShockMode.multiply:
        value = 1.0 + (adjustment.value - 1.0) * (1.0 + noise)
    else:
        value = adjustment.value * (1.0 + noise)
    return adjustment.model_copy(update={"value": value})


def _perturb_mitigation(mitigation: Mitigation, volatility: float, rng: random.Random) -> Mitigation:
    return mitigation.model_copy(
        update={"adjustments": [_perturb(a, volatility, rng) for a in mitigation.adjustments]}
    )


def percentile_band(values: list[Optional[float]]) -> PercentileBand:
    """Nearest-rank p10/p50/p90 of the non-null values."""
    present = sorted(v for v in values if v is not None)
    if not present:
        return PercentileBand()
    last = len(present) - 1
    return PercentileBand(
        p10=present[round(0.10 * last)],
        p50=present[round(0.50 * last)],
        p90=present[round(0.90 * last)],
    )


def simulate_mitigations(
    baseline_run: ComputationRun,
    scenario: Scenario,
    mitigations: Mitigation | Iterable[Mitigation],
    selection: Optional[MitigationSelection] = None,
    n_simulations: int = 200,
    volatility: float = _DEFAULT_VOLATILITY,
    seed: Optional[int] = 42,
    scenario_run: Optional[ComputationRun] = None,
) -> MonteCarloResult:
    if n_simulations < 1:
        raise ValueError("n_simulations must be at least 1")
    if volatility < 0:
        raise ValueError("volatility must be non-negative")

    rng = random.Random(seed)
    chosen = selected_mitigations(mitigations, selection)
    if scenario_run is None:
        scenario_run = compute_scenario_run(baseline_run, scenario)

    revenue: list[Optional[float]] = []
    net_profit: list[Optional[float]] = []
    prime_cost: list[Optional[float]] = []
    for _ in range(n_simulations):
        perturbed = [_perturb_mitigation(m, volatility, rng) for m in chosen]
        run = compute_mitigated_run(
            baseline_run, scenario, perturbed,
            selection=MitigationSelection(enabled_ids=[m.id for m in perturbed]),
            scenario_run=scenario_run,
        )
        revenue.append(run.summary.total_revenue_change_pct)
        net_profit.append(run.summary.net_profit_change_pct)
        prime_cost.append(run.summary.prime_cost_change_pct)

    return MonteCarloResult(
        n_simulations=n_simulations,
        seed=seed,
        total_revenue_change_pct=percentile_band(revenue),
        net_profit_change_pct=percentile_band(net_profit),
        prime_cost_change_pct=percentile_band(prime_cost),
    )
