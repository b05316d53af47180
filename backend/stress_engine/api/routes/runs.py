from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from stress_engine.api.deps import get_run_store, resolve_baseline, resolve_mitigations, resolve_scenario
from stress_engine.config import settings
from stress_engine.models.analysis import BundleOutcome, MonteCarloResult, ScenarioOutcome
from stress_engine.models.driver import DriverRow
from stress_engine.models.run import ComputationRun
from stress_engine.models.scenario import Mitigation, MitigationSelection, Scenario
from stress_engine.services.run_service import evaluate_bundles, rank_scenarios
from stress_engine.services.run_store import RunConflictError
from stress_engine.simulation.breakpoint import BreakpointPolicy
from stress_engine.simulation.engine import compute_baseline_run, compute_mitigated_run, compute_scenario_run
from stress_engine.simulation.monte_carlo import simulate_mitigations
from stress_engine.simulation.scenarios import list_scenarios, sample_driver_series

router = APIRouter(tags=["runs"])


class BaselineRequest(BaseModel):
    """Driver series to evaluate. Omit to use the sample series."""
    driver_series: Optional[list[DriverRow]] = None
    persist: bool = False


class ScenarioRunRequest(BaseModel):
    baseline_run: Optional[ComputationRun] = None
    driver_series: Optional[list[DriverRow]] = None
    scenario: Optional[Scenario] = None
    scenario_id: Optional[str] = None
    persist: bool = False


class MitigatedRunRequest(ScenarioRunRequest):
    mitigations: Optional[list[Mitigation]] = None
    mitigation_ids: Optional[list[str]] = None
    selection: Optional[MitigationSelection] = None


class BundleRequest(MitigatedRunRequest):
    bundles: Optional[list[MitigationSelection]] = None


class MonteCarloRequest(MitigatedRunRequest):
    n_simulations: Optional[int] = Field(default=None, ge=1, le=10_000)
    volatility: float = Field(default=0.10, ge=0.0)
    seed: Optional[int] = None


class ScenarioRankRequest(BaseModel):
    baseline_run: Optional[ComputationRun] = None
    driver_series: Optional[list[DriverRow]] = None
    scenarios: Optional[list[Scenario]] = None
    persist: bool = False


def _persist(run: ComputationRun, persist: bool) -> ComputationRun:
    if not persist:
        return run
    try:
        return get_run_store().save(run)
    except RunConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))


def _policy() -> BreakpointPolicy:
    return BreakpointPolicy(opening_cash=settings.OPENING_CASH_BALANCE)


@router.post("/runs/baseline", response_model=ComputationRun)
def run_baseline(request: BaselineRequest):
    try:
        run = compute_baseline_run(request.driver_series or sample_driver_series())
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _persist(run, request.persist)


@router.post("/runs/scenario", response_model=ComputationRun)
def run_scenario(request: ScenarioRunRequest):
    """Stress a baseline with one scenario (inline or from the library)."""
    scenario = resolve_scenario(request.scenario, request.scenario_id)
    try:
        baseline = resolve_baseline(request.baseline_run, request.driver_series)
        run = compute_scenario_run(baseline, scenario)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _persist(run, request.persist)


@router.post("/runs/mitigated", response_model=ComputationRun)
def run_mitigated(request: MitigatedRunRequest):
    """Apply the selected mitigations on top of a stressed scenario."""
    scenario = resolve_scenario(request.scenario, request.scenario_id)
    mitigations = resolve_mitigations(request.mitigations, request.mitigation_ids)
    try:
        baseline = resolve_baseline(request.baseline_run, request.driver_series)
        run = compute_mitigated_run(baseline, scenario, mitigations, request.selection)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _persist(run, request.persist)


@router.post("/runs/bundles", response_model=list[BundleOutcome])
def run_bundles(request: BundleRequest):
    """Compare mitigation bundles (A/B/C by default) for one scenario."""
    scenario = resolve_scenario(request.scenario, request.scenario_id)
    mitigations = resolve_mitigations(request.mitigations, request.mitigation_ids)
    try:
        baseline = resolve_baseline(request.baseline_run, request.driver_series)
        return evaluate_bundles(
            baseline, scenario, mitigations, request.bundles,
            policy=_policy(), persist=request.persist,
        )
    except RunConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/runs/scenarios/rank", response_model=list[ScenarioOutcome])
def run_scenario_ranking(request: ScenarioRankRequest):
    """Evaluate several scenarios (the library by default), riskiest first."""
    scenarios = request.scenarios if request.scenarios is not None else list_scenarios()
    try:
        baseline = resolve_baseline(request.baseline_run, request.driver_series)
        return rank_scenarios(baseline, scenarios, policy=_policy(), persist=request.persist)
    except RunConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/runs/monte-carlo", response_model=MonteCarloResult)
def run_monte_carlo(request: MonteCarloRequest):
    """Percentile bands of mitigated outcomes under noisy adjustment sizes."""
    scenario = resolve_scenario(request.scenario, request.scenario_id)
    mitigations = resolve_mitigations(request.mitigations, request.mitigation_ids)
    try:
        baseline = resolve_baseline(request.baseline_run, request.driver_series)
        return simulate_mitigations(
            baseline, scenario, mitigations, request.selection,
            n_simulations=request.n_simulations or settings.MONTE_CARLO_SIMULATIONS,
            volatility=request.volatility,
            seed=request.seed if request.seed is not None else settings.MONTE_CARLO_SEED,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
