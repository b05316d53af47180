from fastapi import APIRouter

from stress_engine.services.run_store import RunStore

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check():
    return {
        "status": "ok",
        "run_store": RunStore.get().get_status(),
    }
