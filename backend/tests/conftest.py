import pytest

from stress_engine.services.run_store import RunStore


@pytest.fixture(autouse=True)
def _isolated_run_store(tmp_path):
    """Point the run store singleton at a fresh temp directory for each test."""
    RunStore.reset()
    RunStore.get().open(tmp_path / "runs")
    yield
    RunStore.reset()
