"""Comparison engine: aligned per-period and aggregate deltas between runs.

Absolute KPI fields aggregate as sums, derived ratio fields as arithmetic
means. An aggregate over a series with any missing value is itself missing.
Percentage deltas are ``(comparison - reference) / abs(reference)`` and are
None whenever the reference is missing or zero.
"""
from __future__ import annotations

from typing import Optional

from stress_engine.models.analysis import (
    ComparisonResult,
    FieldDelta,
    PeriodComparison,
    ReferenceChoice,
)
from stress_engine.models.kpi import DerivedField, KpiField, derived_value, kpi_value
from stress_engine.models.run import ComputationRun, RunKind
from stress_engine.simulation.derived import safe_divide

_KIND_TO_REFERENCE = {
    RunKind.baseline: ReferenceChoice.baseline,
    RunKind.scenario: ReferenceChoice.stressed,
    RunKind.mitigated: ReferenceChoice.mitigated,
}


def pct_change(reference: Optional[float], comparison: Optional[float]) -> Optional[float]:
    if reference is None or comparison is None:
        return None
    return safe_divide(comparison - reference, abs(reference))


def _delta(field: str, reference: Optional[float], comparison: Optional[float]) -> FieldDelta:
    diff = None if reference is None or comparison is None else comparison - reference
    return FieldDelta(
        field=field,
        reference=reference,
        comparison=comparison,
        delta=diff,
        delta_pct=pct_change(reference, comparison),
    )


def series_total(values: list[Optional[float]]) -> Optional[float]:
    if not values or any(v is None for v in values):
        return None
    return sum(values)


def series_mean(values: list[Optional[float]]) -> Optional[float]:
    total = series_total(values)
    return None if total is None else total / len(values)


def check_aligned(reference_run: ComputationRun, comparison_run: ComputationRun) -> None:
    ref_periods = reference_run.periods
    cmp_periods = comparison_run.periods
    if len(ref_periods) != len(cmp_periods):
        raise ValueError(
            f"Cannot compare runs of different length: {reference_run.id} has "
            f"{len(ref_periods)} periods, {comparison_run.id} has {len(cmp_periods)}"
        )
    for ref_period, cmp_period in zip(ref_periods, cmp_periods):
        if ref_period != cmp_period:
            raise ValueError(
                f"Runs are not aligned: period {ref_period!r} vs {cmp_period!r}"
            )
    if len(reference_run.derived_results) != len(ref_periods) or len(
        comparison_run.derived_results
    ) != len(cmp_periods):
        raise ValueError("derived_results must have one row per KPI row")


def compare(
    reference_run: ComputationRun,
    comparison_run: ComputationRun,
    reference_choice: ReferenceChoice | str | None = None,
) -> ComparisonResult:
    """Deltas of ``comparison_run`` measured against ``reference_run``."""
    check_aligned(reference_run, comparison_run)
    choice = (
        ReferenceChoice(reference_choice)
        if reference_choice is not None
        else _KIND_TO_REFERENCE[reference_run.kind]
    )

    periods: list[PeriodComparison] = []
    for ref_kpi, cmp_kpi, ref_der, cmp_der in zip(
        reference_run.kpi_results,
        comparison_run.kpi_results,
        reference_run.derived_results,
        comparison_run.derived_results,
    ):
        periods.append(PeriodComparison(
            period=ref_kpi.period,
            kpis=[
                _delta(f.value, kpi_value(ref_kpi, f), kpi_value(cmp_kpi, f))
                for f in KpiField
            ],
            derived=[
                _delta(f.value, derived_value(ref_der, f), derived_value(cmp_der, f))
                for f in DerivedField
            ],
        ))

    kpi_totals = [
        _delta(
            f.value,
            series_total([kpi_value(r, f) for r in reference_run.kpi_results]),
            series_total([kpi_value(r, f) for r in comparison_run.kpi_results]),
        )
        for f in KpiField
    ]
    derived_averages = [
        _delta(
            f.value,
            series_mean([derived_value(r, f) for r in reference_run.derived_results]),
            series_mean([derived_value(r, f) for r in comparison_run.derived_results]),
        )
        for f in DerivedField
    ]

    return ComparisonResult(
        reference_choice=choice,
        reference_run_id=reference_run.id,
        comparison_run_id=comparison_run.id,
        periods=periods,
        kpi_totals=kpi_totals,
        derived_averages=derived_averages,
    )


def compare_runs(
    baseline_run: ComputationRun,
    stressed_run: ComputationRun,
    mitigated_run: Optional[ComputationRun] = None,
    reference: ReferenceChoice | str = ReferenceChoice.baseline,
) -> dict[str, ComparisonResult]:
    """Compare every other trajectory of a baseline/stressed/mitigated triple
    against the chosen reference, keyed by the compared trajectory's name."""
    choice = ReferenceChoice(reference)
    runs: dict[ReferenceChoice, ComputationRun] = {
        ReferenceChoice.baseline: baseline_run,
        ReferenceChoice.stressed: stressed_run,
    }
    if mitigated_run is not None:
        runs[ReferenceChoice.mitigated] = mitigated_run
    if choice not in runs:
        raise ValueError(f"Reference {choice.value!r} requested but no such run was supplied")

    reference_run = runs[choice]
    return {
        name.value: compare(reference_run, run, choice)
        for name, run in runs.items()
        if name != choice
    }


def find_delta(deltas: list[FieldDelta], field: KpiField | DerivedField) -> FieldDelta:
    for delta in deltas:
        if delta.field == field.value:
            return delta
    raise KeyError(field.value)
