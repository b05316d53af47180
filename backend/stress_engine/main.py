from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stress_engine.config import settings
from stress_engine.services.run_store import RunStore
from stress_engine.api.routes import analysis, context_pack, drivers, generated, health, library, runs, storage


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: open the run store
    store = RunStore.get()
    if not store.is_open:
        store.open()
    yield


app = FastAPI(title="Restaurant Stress Engine", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix="/api")
app.include_router(runs.router, prefix="/api")
app.include_router(analysis.router, prefix="/api")
app.include_router(drivers.router, prefix="/api")
app.include_router(library.router, prefix="/api")
app.include_router(generated.router, prefix="/api")
app.include_router(storage.router, prefix="/api")
app.include_router(context_pack.router, prefix="/api")
