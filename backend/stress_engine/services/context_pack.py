"""Context pack: the baseline digest handed to the generation collaborator.

Summarizes every KPI and derived field over the baseline horizon. Missing
values are skipped, so a field with no data at all summarizes to nulls.
"""
from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from stress_engine.models.context import ContextPack, EvidenceItem, RestaurantMetadata, SummaryStats
from stress_engine.models.kpi import DerivedField, KpiField, derived_value, kpi_value
from stress_engine.models.run import ComputationRun

logger = logging.getLogger(__name__)


def summarize_series(values: list[Optional[float]]) -> SummaryStats:
    present = [v for v in values if v is not None]
    if not present:
        return SummaryStats()
    arr = np.asarray(present, dtype=float)
    return SummaryStats(
        average=float(arr.mean()),
        trend=float(arr[-1] - arr[0]),
        volatility=float(arr.std()),
        min=float(arr.min()),
        max=float(arr.max()),
    )


def build_context_pack(
    baseline_run: ComputationRun,
    metadata: Optional[RestaurantMetadata] = None,
    evidence: Optional[list[EvidenceItem]] = None,
) -> ContextPack:
    metadata = metadata or RestaurantMetadata()
    periods = baseline_run.periods
    if periods:
        update = {}
        if metadata.period_start is None:
            update["period_start"] = periods[0]
        if metadata.period_end is None:
            update["period_end"] = periods[-1]
        metadata = metadata.model_copy(update=update)

    summary: dict[str, SummaryStats] = {}
    for field in KpiField:
        summary[field.value] = summarize_series(
            [kpi_value(row, field) for row in baseline_run.kpi_results]
        )
    for field in DerivedField:
        summary[field.value] = summarize_series(
            [derived_value(row, field) for row in baseline_run.derived_results]
        )

    logger.info("Built context pack for %d periods", len(periods))
    return ContextPack(
        metadata=metadata,
        kpi_series=baseline_run.kpi_results,
        derived_kpis=baseline_run.derived_results,
        summary=summary,
        evidence_registry=evidence or [],
    )
