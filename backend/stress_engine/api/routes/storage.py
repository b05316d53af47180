from fastapi import APIRouter, HTTPException

from stress_engine.api.deps import get_run_store, load_run
from stress_engine.models.run import ComputationRun
from stress_engine.services.run_store import RunConflictError

router = APIRouter(tags=["storage"])


@router.get("/storage/versions")
def list_versions(prefix: str = ""):
    return {"prefix": prefix, "versions": get_run_store().list_versions(prefix)}


@router.post("/storage/runs", response_model=ComputationRun)
def save_run(run: ComputationRun):
    """Store a run. Re-saving identical content is a no-op."""
    try:
        return get_run_store().save(run)
    except RunConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/storage/runs/{run_id}", response_model=ComputationRun)
def get_run(run_id: str):
    return load_run(run_id)
