from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from stress_engine.api.deps import resolve_run
from stress_engine.config import settings
from stress_engine.models.analysis import (
    Breakpoint,
    ComparisonResult,
    ReferenceChoice,
    RiskScore,
    SurvivalCurve,
)
from stress_engine.models.kpi import KpiSpineRow
from stress_engine.models.run import ComputationRun
from stress_engine.models.scenario import Scenario, ShockCurve
from stress_engine.simulation.breakpoint import BreakpointPolicy, detect_breakpoint
from stress_engine.simulation.comparison import compare, compare_runs
from stress_engine.simulation.shock_curve import build_curve
from stress_engine.simulation.survival import score_risk, score_survival

router = APIRouter(tags=["analysis"])


class CompareRequest(BaseModel):
    """Runs may be inline or referenced by stored id."""
    reference_run: Optional[ComputationRun] = None
    reference_run_id: Optional[str] = None
    comparison_run: Optional[ComputationRun] = None
    comparison_run_id: Optional[str] = None
    reference_choice: Optional[ReferenceChoice] = None


class CompareSetRequest(BaseModel):
    baseline_run: Optional[ComputationRun] = None
    baseline_run_id: Optional[str] = None
    stressed_run: Optional[ComputationRun] = None
    stressed_run_id: Optional[str] = None
    mitigated_run: Optional[ComputationRun] = None
    mitigated_run_id: Optional[str] = None
    reference: ReferenceChoice = ReferenceChoice.baseline


class BreakpointRequest(BaseModel):
    baseline_run: Optional[ComputationRun] = None
    baseline_run_id: Optional[str] = None
    stressed_run: Optional[ComputationRun] = None
    stressed_run_id: Optional[str] = None
    scenario: Optional[Scenario] = None
    opening_cash: Optional[float] = None


class RunRequest(BaseModel):
    run: Optional[ComputationRun] = None
    run_id: Optional[str] = None


class CurveRequest(BaseModel):
    curve_type: ShockCurve = ShockCurve.flat
    horizon_months: int = Field(default=6, ge=1, le=120)
    baseline_kpi_series: Optional[list[KpiSpineRow]] = None


class CurveResponse(BaseModel):
    curve_type: ShockCurve
    values: list[float]


@router.post("/analysis/compare", response_model=ComparisonResult)
def compare_endpoint(request: CompareRequest):
    reference = resolve_run(request.reference_run, request.reference_run_id, "reference_run")
    comparison = resolve_run(request.comparison_run, request.comparison_run_id, "comparison_run")
    try:
        return compare(reference, comparison, request.reference_choice)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/analysis/compare-set", response_model=dict[str, ComparisonResult])
def compare_set_endpoint(request: CompareSetRequest):
    """Compare a baseline/stressed(/mitigated) triple against one reference."""
    baseline = resolve_run(request.baseline_run, request.baseline_run_id, "baseline_run")
    stressed = resolve_run(request.stressed_run, request.stressed_run_id, "stressed_run")
    mitigated = None
    if request.mitigated_run is not None or request.mitigated_run_id:
        mitigated = resolve_run(request.mitigated_run, request.mitigated_run_id, "mitigated_run")
    try:
        return compare_runs(baseline, stressed, mitigated, request.reference)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/analysis/breakpoint", response_model=Breakpoint)
def breakpoint_endpoint(request: BreakpointRequest):
    baseline = resolve_run(request.baseline_run, request.baseline_run_id, "baseline_run")
    stressed = resolve_run(request.stressed_run, request.stressed_run_id, "stressed_run")
    opening_cash = (
        request.opening_cash if request.opening_cash is not None else settings.OPENING_CASH_BALANCE
    )
    try:
        return detect_breakpoint(
            baseline, stressed, request.scenario, BreakpointPolicy(opening_cash=opening_cash),
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/analysis/survival", response_model=SurvivalCurve)
def survival_endpoint(request: RunRequest):
    run = resolve_run(request.run, request.run_id, "run")
    return SurvivalCurve(run_id=run.id, periods=run.periods, survival=score_survival(run))


@router.post("/analysis/risk", response_model=RiskScore)
def risk_endpoint(request: RunRequest):
    run = resolve_run(request.run, request.run_id, "run")
    return score_risk(run)


@router.post("/analysis/curve", response_model=CurveResponse)
def curve_endpoint(request: CurveRequest):
    """Per-month shock magnitudes for a curve type and horizon."""
    values = build_curve(request.curve_type, request.horizon_months, request.baseline_kpi_series)
    return CurveResponse(curve_type=request.curve_type, values=values)
