from typing import Optional

from fastapi import HTTPException

from stress_engine.models.driver import DriverRow
from stress_engine.models.run import ComputationRun
from stress_engine.models.scenario import Mitigation, Scenario
from stress_engine.services.run_store import RunNotFoundError, RunStore
from stress_engine.simulation.engine import compute_baseline_run
from stress_engine.simulation.scenarios import get_mitigation, get_scenario, list_mitigations, sample_driver_series


def get_run_store() -> RunStore:
    """FastAPI dependency returning the process-wide run store."""
    return RunStore.get()


def load_run(run_id: str) -> ComputationRun:
    try:
        return RunStore.get().load(run_id)
    except RunNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


def resolve_run(run: Optional[ComputationRun], run_id: Optional[str], label: str) -> ComputationRun:
    """Use an inline run, else load one from the store by id."""
    if run is not None:
        return run
    if run_id:
        return load_run(run_id)
    raise HTTPException(status_code=422, detail=f"Provide {label} or {label}_id")


def resolve_baseline(
    baseline_run: Optional[ComputationRun],
    driver_series: Optional[list[DriverRow]],
) -> ComputationRun:
    """Inline baseline run, else a fresh run over the given or sample drivers."""
    if baseline_run is not None:
        return baseline_run
    return compute_baseline_run(driver_series if driver_series else sample_driver_series())


def resolve_scenario(scenario: Optional[Scenario], scenario_id: Optional[str]) -> Scenario:
    if scenario is not None:
        return scenario
    if not scenario_id:
        raise HTTPException(status_code=422, detail="Provide scenario or scenario_id")
    try:
        return get_scenario(scenario_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


def resolve_mitigations(
    mitigations: Optional[list[Mitigation]], mitigation_ids: Optional[list[str]],
) -> list[Mitigation]:
    """Inline mitigations, else library ones by id, else the whole library."""
    if mitigations is not None:
        return mitigations
    if mitigation_ids is None:
        return list_mitigations()
    try:
        return [get_mitigation(mid) for mid in mitigation_ids]
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
