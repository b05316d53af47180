from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from stress_engine.models.driver import DriverKey, parse_driver_key


class ShockMode(str, Enum):
    add = "add"
    multiply = "multiply"
    set = "set"


class ShockCurve(str, Enum):
    """Per-month magnitude shaping applied across a shock's active window."""
    flat = "flat"
    decay = "decay"
    recovery = "recovery"


class Severity(str, Enum):
    low = "low"
    moderate = "moderate"
    high = "high"
    critical = "critical"


class ProbabilityLevel(str, Enum):
    rare = "rare"
    possible = "possible"
    likely = "likely"
    almost_certain = "almost_certain"


class ConfidenceLevel(str, Enum):
    high = "high"
    medium = "medium"
    low = "low"


class MitigationCategory(str, Enum):
    revenue = "revenue"
    cost_reduction = "cost_reduction"
    efficiency = "efficiency"
    hedging = "hedging"
    contingency = "contingency"


class Shock(BaseModel):
    """A timed perturbation of one driver.

    Active for period index ``i`` iff
    ``start_month_offset <= i < start_month_offset + duration_months``.
    """
    driver: DriverKey
    mode: ShockMode
    value: float
    start_month_offset: int = Field(default=0, ge=0)
    duration_months: int = Field(default=1, ge=1)

    @field_validator("driver", mode="before")
    @classmethod
    def _known_driver(cls, value):
        return value if isinstance(value, DriverKey) else parse_driver_key(value)

    def is_active(self, index: int) -> bool:
        return self.start_month_offset <= index < self.start_month_offset + self.duration_months


class Adjustment(Shock):
    """A mitigation's driver change. Same timing semantics as a Shock."""


class Scenario(BaseModel):
    id: str
    name: str
    description: str = ""
    shocks: list[Shock] = []
    probability: float = Field(default=0.5, ge=0.0, le=1.0)
    probability_level: ProbabilityLevel = ProbabilityLevel.possible
    severity: Severity = Severity.moderate
    confidence: ConfidenceLevel = ConfidenceLevel.medium
    risk_score: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    shock_curve: ShockCurve = ShockCurve.flat
    expected_to_break: bool = False
    break_reason: Optional[str] = None
    evidence_refs: list[str] = []


class Mitigation(BaseModel):
    id: str
    name: str
    description: str = ""
    adjustments: list[Adjustment] = []
    enabled: bool = True
    category: MitigationCategory = MitigationCategory.cost_reduction
    confidence: ConfidenceLevel = ConfidenceLevel.medium
    constraints: list[str] = []
    implementation_steps: list[str] = []
    evidence_refs: list[str] = []


class MitigationSelection(BaseModel):
    """Which mitigations are switched on for one evaluation.

    ``enabled_ids=None`` defers to each mitigation's own ``enabled`` flag.
    """
    name: str = "default"
    enabled_ids: Optional[list[str]] = None

    def includes(self, mitigation: Mitigation) -> bool:
        if self.enabled_ids is None:
            return mitigation.enabled
        return mitigation.id in self.enabled_ids


class DriverAssumption(BaseModel):
    """Operator-reviewable baseline assumption for one driver."""
    id: str
    driver: DriverKey
    baseline: float
    range_min: float
    range_max: float
    unit: str = ""
    confidence: ConfidenceLevel = ConfidenceLevel.medium
    needs_user_confirmation: bool = False
    rationale: str = ""
    evidence_refs: list[str] = []

    @field_validator("driver", mode="before")
    @classmethod
    def _known_driver(cls, value):
        return value if isinstance(value, DriverKey) else parse_driver_key(value)


class GeneratedScenarios(BaseModel):
    scenarios: list[Scenario]
    warnings: list[str] = []


class GeneratedMitigations(BaseModel):
    mitigations: list[Mitigation]
    warnings: list[str] = []


class GeneratedAssumptions(BaseModel):
    assumptions: list[DriverAssumption]
    warnings: list[str] = []
