from typing import Optional

from pydantic import BaseModel

from stress_engine.models.kpi import DerivedKpiRow, KpiSpineRow
from stress_engine.models.scenario import ConfidenceLevel


class RestaurantMetadata(BaseModel):
    restaurant_name: str = ""
    location: str = ""
    currency: str = "USD"
    period_start: Optional[str] = None
    period_end: Optional[str] = None
    timezone: Optional[str] = None


class EvidenceItem(BaseModel):
    """A source the generator may cite through ``evidence_refs``."""
    id: str
    type: str = "document"
    source: str = ""
    description: str = ""
    confidence: ConfidenceLevel = ConfidenceLevel.medium


class SummaryStats(BaseModel):
    average: Optional[float] = None
    trend: Optional[float] = None
    volatility: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None


class ContextPack(BaseModel):
    metadata: RestaurantMetadata
    kpi_series: list[KpiSpineRow]
    derived_kpis: list[DerivedKpiRow]
    summary: dict[str, SummaryStats]
    evidence_registry: list[EvidenceItem] = []
