from fastapi import APIRouter, HTTPException

from stress_engine.models.driver import DriverRow
from stress_engine.models.scenario import Mitigation, Scenario
from stress_engine.simulation.scenarios import (
    get_mitigation,
    get_scenario,
    list_mitigations,
    list_scenarios,
    sample_driver_series,
)

router = APIRouter(tags=["library"])


@router.get("/library/scenarios", response_model=list[Scenario])
def get_scenarios():
    return list_scenarios()


@router.get("/library/scenarios/{scenario_id}", response_model=Scenario)
def get_scenario_by_id(scenario_id: str):
    try:
        return get_scenario(scenario_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/library/mitigations", response_model=list[Mitigation])
def get_mitigations():
    return list_mitigations()


@router.get("/library/mitigations/{mitigation_id}", response_model=Mitigation)
def get_mitigation_by_id(mitigation_id: str):
    try:
        return get_mitigation(mitigation_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/library/drivers", response_model=list[DriverRow])
def get_sample_drivers():
    """The six-month sample driver series."""
    return sample_driver_series()
