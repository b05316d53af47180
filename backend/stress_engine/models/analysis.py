from enum import Enum
from typing import Optional

from pydantic import BaseModel

from stress_engine.models.run import RunKind, RunSummary


class ReferenceChoice(str, Enum):
    """Which trajectory percentage deltas are measured against."""
    baseline = "baseline"
    stressed = "stressed"
    mitigated = "mitigated"


class FieldDelta(BaseModel):
    field: str
    reference: Optional[float] = None
    comparison: Optional[float] = None
    delta: Optional[float] = None
    delta_pct: Optional[float] = None


class PeriodComparison(BaseModel):
    period: str
    kpis: list[FieldDelta]
    derived: list[FieldDelta]


class ComparisonResult(BaseModel):
    reference_choice: ReferenceChoice
    reference_run_id: str
    comparison_run_id: str
    periods: list[PeriodComparison]
    kpi_totals: list[FieldDelta]
    derived_averages: list[FieldDelta]


class BreakpointRule(str, Enum):
    cash_below_zero = "cash_below_zero"
    cash_decline = "cash_decline"
    gross_margin_floor = "gross_margin_floor"
    ebitda_turns_negative = "ebitda_turns_negative"
    ebitda_decline = "ebitda_decline"
    volume_decline = "volume_decline"
    expected_break = "expected_break"


class BreakpointMetric(BaseModel):
    metric: str
    baseline_value: Optional[float] = None
    stressed_value: Optional[float] = None


class Breakpoint(BaseModel):
    scenario_id: Optional[str] = None
    fails: bool
    first_failure_month: Optional[str] = None
    first_failure_index: Optional[int] = None
    rule: Optional[BreakpointRule] = None
    reason: Optional[str] = None
    metrics: list[BreakpointMetric] = []


class RiskFeatureSet(BaseModel):
    revenue_trend: float
    net_margin_volatility: float
    avg_net_margin: float
    prime_cost_pct_avg: float


class RiskScore(BaseModel):
    run_id: str
    score: float
    features: RiskFeatureSet


class SurvivalCurve(BaseModel):
    run_id: str
    periods: list[str]
    survival: list[float]


class PercentileBand(BaseModel):
    p10: Optional[float] = None
    p50: Optional[float] = None
    p90: Optional[float] = None


class MonteCarloResult(BaseModel):
    n_simulations: int
    seed: Optional[int] = None
    total_revenue_change_pct: PercentileBand
    net_profit_change_pct: PercentileBand
    prime_cost_change_pct: PercentileBand


class BundleOutcome(BaseModel):
    bundle: str
    run_id: str
    kind: RunKind
    mitigation_ids: list[str]
    summary: RunSummary
    breakpoint: Breakpoint
    risk: RiskScore
    final_survival: Optional[float] = None
    rank: int = 0


class ScenarioOutcome(BaseModel):
    scenario_id: str
    run_id: str
    summary: RunSummary
    breakpoint: Breakpoint
    risk: RiskScore
    final_survival: Optional[float] = None
    rank: int = 0
