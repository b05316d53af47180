"""Computation runs: baseline, scenario and mitigated evaluations.

Every run re-derives KPIs from its own driver series, so a scenario or
mitigation only ever changes drivers. Run ids are derived from the run's
inputs, which makes recomputation with unchanged inputs idempotent.
"""
from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from typing import Iterable, Optional

from stress_engine.models.driver import DriverRow
from stress_engine.models.kpi import DerivedField, KpiField, derived_value, kpi_value
from stress_engine.models.run import ComputationRun, RunKind, RunSummary
from stress_engine.models.scenario import Mitigation, MitigationSelection, Scenario
from stress_engine.simulation.comparison import pct_change, series_mean, series_total
from stress_engine.simulation.derived import compute_derived
from stress_engine.simulation.kpi_spine import compute_kpi_spine
from stress_engine.simulation.shocks import apply_adjustments, apply_scenario, selected_mitigations
from stress_engine.simulation.survival import time_to_event


def fingerprint(*parts) -> str:
    """Stable short hash of JSON-serializable inputs."""
    payload = json.dumps(parts, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


def _series_payload(series: list[DriverRow]) -> list[dict]:
    return [row.model_dump(mode="json") for row in series]


def _build_run(
    run_id: str,
    kind: RunKind,
    drivers: list[DriverRow],
    baseline_run: Optional[ComputationRun] = None,
    scenario_id: Optional[str] = None,
    mitigation_ids: Optional[list[str]] = None,
) -> ComputationRun:
    kpis = compute_kpi_spine(drivers)
    derived = compute_derived(kpis)
    run = ComputationRun(
        id=run_id,
        kind=kind,
        scenario_id=scenario_id,
        mitigation_ids=mitigation_ids or [],
        driver_series=drivers,
        kpi_results=kpis,
        derived_results=derived,
        time_to_event=time_to_event(kpis),
        computed_at=datetime.now(timezone.utc),
    )
    run.summary = summarize(baseline_run if baseline_run is not None else run, run)
    return run


def summarize(baseline_run: ComputationRun, run: ComputationRun) -> RunSummary:
    """Headline deltas of ``run`` vs ``baseline_run`` over the whole horizon.

    Revenue, net profit and prime cost compare totals; gross margin is the
    difference of mean gross margins.
    """
    def kpi_total(r: ComputationRun, field: KpiField) -> Optional[float]:
        return series_total([kpi_value(row, field) for row in r.kpi_results])

    def derived_total(r: ComputationRun, field: DerivedField) -> Optional[float]:
        return series_total([derived_value(row, field) for row in r.derived_results])

    base_gm = series_mean([row.gross_margin_pct for row in baseline_run.derived_results])
    run_gm = series_mean([row.gross_margin_pct for row in run.derived_results])

    return RunSummary(
        total_revenue_change_pct=pct_change(
            kpi_total(baseline_run, KpiField.TOTAL_REVENUE), kpi_total(run, KpiField.TOTAL_REVENUE),
        ),
        net_profit_change_pct=pct_change(
            kpi_total(baseline_run, KpiField.NET_PROFIT), kpi_total(run, KpiField.NET_PROFIT),
        ),
        prime_cost_change_pct=pct_change(
            derived_total(baseline_run, DerivedField.PRIME_COST), derived_total(run, DerivedField.PRIME_COST),
        ),
        gross_margin_change_pct=None if base_gm is None or run_gm is None else run_gm - base_gm,
    )


def compute_baseline_run(
    driver_series: list[DriverRow], run_id: Optional[str] = None,
) -> ComputationRun:
    run_id = run_id or f"baseline-{fingerprint(_series_payload(driver_series))}"
    return _build_run(run_id, RunKind.baseline, list(driver_series))


def compute_scenario_run(
    baseline_run: ComputationRun,
    scenario: Scenario,
    run_id: Optional[str] = None,
) -> ComputationRun:
    """Stress the baseline drivers with ``scenario`` and recompute."""
    drivers = apply_scenario(baseline_run.driver_series, scenario, baseline_run.kpi_results)
    run_id = run_id or "scenario-{}-{}".format(
        scenario.id,
        fingerprint(_series_payload(baseline_run.driver_series), scenario.model_dump(mode="json")),
    )
    return _build_run(run_id, RunKind.scenario, drivers, baseline_run, scenario_id=scenario.id)


def compute_mitigated_run(
    baseline_run: ComputationRun,
    scenario: Scenario,
    mitigations: Mitigation | Iterable[Mitigation],
    selection: Optional[MitigationSelection] = None,
    scenario_run: Optional[ComputationRun] = None,
    run_id: Optional[str] = None,
) -> ComputationRun:
    """Apply the selected mitigations on top of the stressed drivers."""
    if scenario_run is None:
        scenario_run = compute_scenario_run(baseline_run, scenario)
    chosen = selected_mitigations(mitigations, selection)
    drivers = apply_adjustments(scenario_run.driver_series, chosen)
    run_id = run_id or "mitigated-{}-{}".format(
        scenario.id,
        fingerprint(
            _series_payload(scenario_run.driver_series),
            [m.model_dump(mode="json") for m in chosen],
        ),
    )
    return _build_run(
        run_id,
        RunKind.mitigated,
        drivers,
        baseline_run,
        scenario_id=scenario.id,
        mitigation_ids=[m.id for m in chosen],
    )
