from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from stress_engine.models.driver import DriverRow
from stress_engine.models.kpi import DerivedKpiRow, KpiSpineRow


class RunKind(str, Enum):
    baseline = "baseline"
    scenario = "scenario"
    mitigated = "mitigated"


class RunSummary(BaseModel):
    """Headline change vs the baseline run. Percentages are fractions."""
    total_revenue_change_pct: Optional[float] = None
    net_profit_change_pct: Optional[float] = None
    prime_cost_change_pct: Optional[float] = None
    gross_margin_change_pct: Optional[float] = None


class TimeToEvent(BaseModel):
    """Months until net profit first stays below ``threshold`` for
    ``consecutive_months`` in a row. ``time_to_event_months`` is 1-based."""
    time_to_event_months: Optional[int] = None
    event_occurred: bool = False
    consecutive_months: int
    threshold: float


class ComputationRun(BaseModel):
    """One engine evaluation. Superseded runs are replaced, never patched."""
    id: str
    kind: RunKind
    scenario_id: Optional[str] = None
    mitigation_ids: list[str] = []
    driver_series: list[DriverRow]
    kpi_results: list[KpiSpineRow]
    derived_results: list[DerivedKpiRow]
    summary: RunSummary = RunSummary()
    time_to_event: Optional[TimeToEvent] = None
    computed_at: Optional[datetime] = None

    @property
    def periods(self) -> list[str]:
        return [row.period for row in self.kpi_results]

    def content_key(self) -> dict:
        """Serialized content without the timestamp, for equality checks."""
        return self.model_dump(mode="json", exclude={"computed_at"})
