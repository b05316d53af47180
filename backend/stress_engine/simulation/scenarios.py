"""Scenario library: sample drivers, named scenarios and mitigations.

Provides a six-month sample driver series for a single full-service
restaurant plus the stock stress scenarios and mitigation plays that the
API and the report script evaluate when no custom ones are supplied.
"""
from __future__ import annotations

from stress_engine.models.driver import DriverKey, DriverRow
from stress_engine.models.scenario import (
    Adjustment,
    ConfidenceLevel,
    Mitigation,
    MitigationCategory,
    ProbabilityLevel,
    Scenario,
    Severity,
    Shock,
    ShockCurve,
    ShockMode,
)

_SAMPLE_COLUMNS: tuple[DriverKey, ...] = tuple(DriverKey)

# One row per month, columns in DriverKey order.
_SAMPLE_ROWS: list[tuple[str, tuple[float, ...]]] = [
    ("2024-01", (5200, 42.0, 0.04, 0.28, 7.4, 2.6, 0.05, 0.02, 1950, 21.5, 0.06,
                 28000, 6200, 4800, 0.18, 2100, 1200)),
    ("2024-02", (5050, 41.5, 0.05, 0.30, 7.6, 2.7, 0.055, 0.015, 1920, 21.75, 0.065,
                 28000, 6400, 5200, 0.18, 2100, 900)),
    ("2024-03", (5480, 43.0, 0.045, 0.27, 7.3, 2.5, 0.045, 0.02, 2005, 21.6, 0.055,
                 28000, 6000, 5100, 0.18, 2100, 1500)),
    ("2024-04", (5750, 44.2, 0.04, 0.26, 7.5, 2.6, 0.05, 0.018, 2050, 22.0, 0.06,
                 28000, 6100, 5600, 0.18, 2100, 800)),
    ("2024-05", (5980, 44.5, 0.035, 0.25, 7.7, 2.7, 0.05, 0.02, 2100, 22.2, 0.055,
                 28000, 6200, 6200, 0.18, 2100, 1000)),
    ("2024-06", (6200, 45.1, 0.03, 0.24, 7.8, 2.8, 0.052, 0.018, 2140, 22.5, 0.05,
                 28000, 6300, 6400, 0.18, 2100, 700)),
]


def sample_driver_series() -> list[DriverRow]:
    """Return a fresh copy of the six-month sample driver series."""
    return [
        DriverRow(period=period, drivers=dict(zip(_SAMPLE_COLUMNS, values)))
        for period, values in _SAMPLE_ROWS
    ]


_SCENARIOS: dict[str, Scenario] = {
    "S-001": Scenario(
        id="S-001",
        name="Rainy season demand dip",
        description="Covers fall for two months while discounts rise to move inventory.",
        shocks=[
            Shock(driver=DriverKey.COVERS, mode=ShockMode.multiply, value=0.88, duration_months=2),
            Shock(driver=DriverKey.DISCOUNT_RATE, mode=ShockMode.add, value=0.02, duration_months=2),
        ],
        probability=0.4,
        probability_level=ProbabilityLevel.possible,
        severity=Severity.moderate,
        confidence=ConfidenceLevel.medium,
        evidence_refs=["E-REV-001"],
    ),
    "S-002": Scenario(
        id="S-002",
        name="Protein inflation spike",
        description="Protein costs rise for three months due to supplier disruption.",
        shocks=[
            Shock(driver=DriverKey.FOOD_COST_PROTEIN, mode=ShockMode.multiply, value=1.12, duration_months=3),
        ],
        probability=0.6,
        probability_level=ProbabilityLevel.likely,
        severity=Severity.moderate,
        confidence=ConfidenceLevel.high,
        evidence_refs=["E-COGS-002"],
    ),
    "S-003": Scenario(
        id="S-003",
        name="Combined downturn",
        description="Demand falls, wages rise and delivery share grows at the same time.",
        shocks=[
            Shock(driver=DriverKey.COVERS, mode=ShockMode.multiply, value=0.75, duration_months=6),
            Shock(driver=DriverKey.WAGE_RATE, mode=ShockMode.multiply, value=1.08, duration_months=6),
            Shock(driver=DriverKey.CHANNEL_MIX, mode=ShockMode.add, value=0.10,
                  start_month_offset=1, duration_months=5),
        ],
        probability=0.15,
        probability_level=ProbabilityLevel.rare,
        severity=Severity.critical,
        confidence=ConfidenceLevel.low,
        shock_curve=ShockCurve.decay,
        expected_to_break=True,
        break_reason="Sustained demand loss with rising labor costs",
        evidence_refs=["E-REV-001", "E-LAB-003"],
    ),
}

_MITIGATIONS: dict[str, Mitigation] = {
    "M-001": Mitigation(
        id="M-001",
        name="Labor schedule optimization",
        description="Shift labor hours down during low-cover weeks and cap overtime.",
        adjustments=[
            Adjustment(driver=DriverKey.LABOR_HOURS, mode=ShockMode.multiply, value=0.94, duration_months=2),
            Adjustment(driver=DriverKey.OVERTIME_PCT, mode=ShockMode.set, value=0.03, duration_months=2),
        ],
        category=MitigationCategory.efficiency,
        constraints=["Maintain service levels during peak dinner hours."],
        implementation_steps=[
            "Update weekly labor forecast using reservation data.",
            "Cross-train servers to cover bar shifts.",
            "Enforce overtime approval from the GM.",
        ],
        evidence_refs=["E-LAB-003"],
    ),
    "M-002": Mitigation(
        id="M-002",
        name="Menu engineering refresh",
        description="Shift menu mix toward higher-margin items and reduce waste.",
        adjustments=[
            Adjustment(driver=DriverKey.MENU_MIX, mode=ShockMode.add, value=-0.03, duration_months=3),
            Adjustment(driver=DriverKey.WASTE_PCT, mode=ShockMode.add, value=-0.01, duration_months=3),
        ],
        category=MitigationCategory.cost_reduction,
        constraints=["Do not remove top-5 guest favorites."],
        implementation_steps=[
            "Highlight high-margin dishes in server training.",
            "Introduce limited-time specials to move inventory.",
            "Tighten prep pars for slow-moving items.",
        ],
        evidence_refs=["E-COGS-002"],
    ),
}


def get_scenario(scenario_id: str) -> Scenario:
    """Return a library scenario by id. Raises ValueError if unknown."""
    try:
        return _SCENARIOS[scenario_id].model_copy(deep=True)
    except KeyError:
        raise ValueError(f"Unknown scenario: {scenario_id}") from None


def list_scenario_ids() -> list[str]:
    return list(_SCENARIOS.keys())


def get_mitigation(mitigation_id: str) -> Mitigation:
    """Return a library mitigation by id. Raises ValueError if unknown."""
    try:
        return _MITIGATIONS[mitigation_id].model_copy(deep=True)
    except KeyError:
        raise ValueError(f"Unknown mitigation: {mitigation_id}") from None


def list_mitigation_ids() -> list[str]:
    return list(_MITIGATIONS.keys())


def list_scenarios() -> list[Scenario]:
    return [get_scenario(sid) for sid in _SCENARIOS]


def list_mitigations() -> list[Mitigation]:
    return [get_mitigation(mid) for mid in _MITIGATIONS]
