"""Run orchestration service.

Evaluates scenarios and mitigation bundles against one baseline, scoring
each trajectory for breakpoints, risk and survival, and ranks them. Every
evaluation is independent; nothing here mutates its inputs.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from stress_engine.models.analysis import BundleOutcome, ScenarioOutcome
from stress_engine.models.run import ComputationRun
from stress_engine.models.scenario import Mitigation, MitigationSelection, Scenario
from stress_engine.services.run_store import RunStore
from stress_engine.simulation.breakpoint import DEFAULT_POLICY, BreakpointPolicy, detect_breakpoint
from stress_engine.simulation.engine import compute_mitigated_run, compute_scenario_run
from stress_engine.simulation.survival import score_risk, score_survival

logger = logging.getLogger(__name__)


def default_bundles(mitigations: list[Mitigation]) -> list[MitigationSelection]:
    """Bundle A (no mitigations), B (each mitigation's own flag), C (everything)."""
    return [
        MitigationSelection(name="A", enabled_ids=[]),
        MitigationSelection(name="B"),
        MitigationSelection(name="C", enabled_ids=[m.id for m in mitigations]),
    ]


def _final(values: list[float]) -> Optional[float]:
    return values[-1] if values else None


def evaluate_bundles(
    baseline_run: ComputationRun,
    scenario: Scenario,
    mitigations: list[Mitigation],
    bundles: Optional[list[MitigationSelection]] = None,
    policy: BreakpointPolicy = DEFAULT_POLICY,
    persist: bool = False,
) -> list[BundleOutcome]:
    """Evaluate each bundle on top of ``scenario`` and rank by risk score.

    Lower risk ranks first; ties keep the bundle order.
    """
    bundles = bundles or default_bundles(mitigations)
    scenario_run = compute_scenario_run(baseline_run, scenario)

    outcomes: list[BundleOutcome] = []
    for bundle in bundles:
        run = compute_mitigated_run(
            baseline_run, scenario, mitigations, bundle, scenario_run=scenario_run,
        )
        if persist:
            RunStore.get().save(run)
        outcomes.append(BundleOutcome(
            bundle=bundle.name,
            run_id=run.id,
            kind=run.kind,
            mitigation_ids=run.mitigation_ids,
            summary=run.summary,
            breakpoint=detect_breakpoint(baseline_run, run, scenario, policy),
            risk=score_risk(run),
            final_survival=_final(score_survival(run)),
        ))

    ranked = sorted(outcomes, key=lambda o: o.risk.score)
    for rank, outcome in enumerate(ranked, start=1):
        outcome.rank = rank
    logger.info(
        "Ranked %d bundles for scenario %s: %s",
        len(ranked), scenario.id, [o.bundle for o in ranked],
    )
    return ranked


def rank_scenarios(
    baseline_run: ComputationRun,
    scenarios: Iterable[Scenario],
    policy: BreakpointPolicy = DEFAULT_POLICY,
    persist: bool = False,
) -> list[ScenarioOutcome]:
    """Stress the baseline with each scenario; riskiest first."""
    outcomes: list[ScenarioOutcome] = []
    for scenario in scenarios:
        run = compute_scenario_run(baseline_run, scenario)
        if persist:
            RunStore.get().save(run)
        outcomes.append(ScenarioOutcome(
            scenario_id=scenario.id,
            run_id=run.id,
            summary=run.summary,
            breakpoint=detect_breakpoint(baseline_run, run, scenario, policy),
            risk=score_risk(run),
            final_survival=_final(score_survival(run)),
        ))

    ranked = sorted(outcomes, key=lambda o: o.risk.score, reverse=True)
    for rank, outcome in enumerate(ranked, start=1):
        outcome.rank = rank
    failing = sum(1 for o in ranked if o.breakpoint.fails)
    logger.info("Evaluated %d scenarios, %d break the plan", len(ranked), failing)
    return ranked
