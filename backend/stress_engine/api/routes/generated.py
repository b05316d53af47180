from typing import Any

from fastapi import APIRouter, Body, HTTPException

from stress_engine.models.scenario import GeneratedAssumptions, GeneratedMitigations, GeneratedScenarios
from stress_engine.services.generation_boundary import (
    normalize_assumptions,
    normalize_mitigations,
    normalize_scenarios,
)

router = APIRouter(tags=["generated"])


@router.post("/generated/scenarios", response_model=GeneratedScenarios)
def normalize_generated_scenarios(payload: Any = Body(...)):
    """Validate generator output into scenarios, clamping out-of-range values."""
    try:
        return normalize_scenarios(payload)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/generated/mitigations", response_model=GeneratedMitigations)
def normalize_generated_mitigations(payload: Any = Body(...)):
    try:
        return normalize_mitigations(payload)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/generated/assumptions", response_model=GeneratedAssumptions)
def normalize_generated_assumptions(payload: Any = Body(...)):
    try:
        return normalize_assumptions(payload)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
