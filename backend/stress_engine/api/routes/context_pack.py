from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from stress_engine.api.deps import resolve_baseline
from stress_engine.models.context import ContextPack, EvidenceItem, RestaurantMetadata
from stress_engine.models.driver import DriverRow
from stress_engine.models.run import ComputationRun
from stress_engine.services.context_pack import build_context_pack

router = APIRouter(tags=["context"])


class ContextPackRequest(BaseModel):
    baseline_run: Optional[ComputationRun] = None
    driver_series: Optional[list[DriverRow]] = None
    metadata: Optional[RestaurantMetadata] = None
    evidence: list[EvidenceItem] = []


@router.post("/context-pack", response_model=ContextPack)
def context_pack_endpoint(request: ContextPackRequest):
    """Baseline digest for the scenario and mitigation generator."""
    try:
        baseline = resolve_baseline(request.baseline_run, request.driver_series)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return build_context_pack(baseline, request.metadata, request.evidence)
