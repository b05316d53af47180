"""Run store: persists ComputationRuns as JSON files keyed by run id.

Saving is idempotent: re-saving a run whose content matches the stored copy
is a no-op, while a different run under an existing id is a conflict. Runs
are never patched in place.
"""
from __future__ import annotations

import json
import logging
import re
import threading
from pathlib import Path

from stress_engine.config import settings
from stress_engine.models.run import ComputationRun

logger = logging.getLogger(__name__)

_RUN_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class RunConflictError(ValueError):
    """A different run is already stored under the same id."""


class RunNotFoundError(LookupError):
    """No run is stored under the requested id."""


class RunStore:
    """Singleton JSON-file store for computation runs."""

    _instance: "RunStore | None" = None

    def __init__(self) -> None:
        self._dir: Path | None = None
        self._lock = threading.Lock()

    @classmethod
    def get(cls) -> "RunStore":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset singleton: mainly for testing."""
        cls._instance = None

    def open(self, directory: str | Path | None = None) -> None:
        self._dir = Path(directory or settings.RUN_STORE_DIR).resolve()
        self._dir.mkdir(parents=True, exist_ok=True)
        logger.info("Run store at %s", self._dir)

    @property
    def is_open(self) -> bool:
        return self._dir is not None

    @property
    def directory(self) -> Path:
        if self._dir is None:
            self.open()
        return self._dir

    def _path(self, run_id: str) -> Path:
        if not _RUN_ID_RE.match(run_id):
            raise ValueError(f"Invalid run id: {run_id!r}")
        return self.directory / f"{run_id}.json"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def save(self, run: ComputationRun) -> ComputationRun:
        """Store ``run`` and return the stored copy."""
        path = self._path(run.id)
        with self._lock:
            if path.is_file():
                existing = ComputationRun.model_validate_json(path.read_text())
                if existing.content_key() != run.content_key():
                    raise RunConflictError(f"Run {run.id} already exists with different content")
                logger.debug("Run %s already stored", run.id)
                return existing
            tmp = path.with_suffix(".tmp")
            tmp.write_text(run.model_dump_json(indent=2))
            tmp.replace(path)
        logger.info("Stored run %s (%s)", run.id, run.kind.value)
        return run

    def load(self, run_id: str) -> ComputationRun:
        path = self._path(run_id)
        if not path.is_file():
            raise RunNotFoundError(f"Run not found: {run_id}")
        return ComputationRun.model_validate_json(path.read_text())

    def exists(self, run_id: str) -> bool:
        return self._path(run_id).is_file()

    def list_versions(self, prefix: str = "") -> list[str]:
        """Stored run ids starting with ``prefix``, sorted."""
        return sorted(
            p.stem for p in self.directory.glob("*.json") if p.stem.startswith(prefix)
        )

    def get_status(self) -> dict:
        return {
            "directory": str(self.directory),
            "run_count": len(self.list_versions()),
        }
