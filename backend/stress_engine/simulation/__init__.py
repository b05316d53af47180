"""Simulation engine: KPI spine, shocks, comparison, breakpoints and survival."""
from stress_engine.simulation.kpi_spine import compute_kpi_spine
from stress_engine.simulation.derived import compute_derived
from stress_engine.simulation.shocks import apply_adjustments, apply_scenario, apply_shocks
from stress_engine.simulation.comparison import compare, compare_runs
from stress_engine.simulation.breakpoint import detect_breakpoint, BreakpointPolicy
from stress_engine.simulation.survival import score_risk, score_survival, time_to_event
from stress_engine.simulation.engine import (
    compute_baseline_run,
    compute_mitigated_run,
    compute_scenario_run,
)

__all__ = [
    "compute_kpi_spine",
    "compute_derived",
    "apply_shocks",
    "apply_scenario",
    "apply_adjustments",
    "compare",
    "compare_runs",
    "detect_breakpoint",
    "BreakpointPolicy",
    "score_survival",
    "score_risk",
    "time_to_event",
    "compute_baseline_run",
    "compute_scenario_run",
    "compute_mitigated_run",
]
