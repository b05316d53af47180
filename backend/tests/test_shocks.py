"""Tests for the shock applier and mitigation adjustments."""
import pytest

from stress_engine.models.driver import DriverKey, make_driver_row
from stress_engine.models.scenario import (
    Adjustment,
    Mitigation,
    MitigationSelection,
    Scenario,
    Shock,
    ShockCurve,
)
from stress_engine.simulation.kpi_spine import compute_kpi_spine
from stress_engine.simulation.shocks import apply_adjustments, apply_scenario, apply_shocks


def _make_series(n=3, **overrides):
    defaults = dict(
        COVERS=1000, AVERAGE_CHECK=40.0, DISCOUNT_RATE=0.0, CHANNEL_MIX=0.0,
        FOOD_COST_PROTEIN=8.0, FOOD_COST_PRODUCE=2.0, WASTE_PCT=0.0, MENU_MIX=0.0,
        LABOR_HOURS=500, WAGE_RATE=20.0, OVERTIME_PCT=0.0,
        RENT=5000, UTILITIES=1000, MARKETING=1000, DELIVERY_COMMISSION=0.2,
        INTEREST_EXPENSE=500, ONE_TIME_COSTS=0,
    )
    defaults.update(overrides)
    return [make_driver_row(f"2024-{i + 1:02d}", **defaults) for i in range(n)]


def _covers(series):
    return [row.drivers[DriverKey.COVERS] for row in series]


def test_multiply_shock_on_covers_lowers_revenue():
    series = _make_series(n=1)
    shocked = apply_shocks(series, [Shock(driver="COVERS", mode="multiply", value=0.9)])
    assert shocked[0].drivers[DriverKey.COVERS] == pytest.approx(900.0)
    before = compute_kpi_spine(series)[0].total_revenue
    after = compute_kpi_spine(shocked)[0].total_revenue
    assert after < before
    assert after == pytest.approx(36_000.0)


def test_add_and_set_modes():
    series = _make_series(n=1)
    shocked = apply_shocks(series, [
        Shock(driver="DISCOUNT_RATE", mode="add", value=0.02),
        Shock(driver="OVERTIME_PCT", mode="set", value=0.03),
    ])
    assert shocked[0].drivers[DriverKey.DISCOUNT_RATE] == pytest.approx(0.02)
    assert shocked[0].drivers[DriverKey.OVERTIME_PCT] == pytest.approx(0.03)


def test_shock_window_respects_offset_and_duration():
    series = _make_series(n=4)
    shocked = apply_shocks(series, [
        Shock(driver="COVERS", mode="multiply", value=0.5, start_month_offset=1, duration_months=2),
    ])
    assert _covers(shocked) == pytest.approx([1000, 500, 500, 1000])


def test_window_past_end_of_series_is_truncated():
    series = _make_series(n=2)
    shocked = apply_shocks(series, [
        Shock(driver="COVERS", mode="add", value=-100, start_month_offset=1, duration_months=12),
    ])
    assert _covers(shocked) == pytest.approx([1000, 900])


def test_shocks_apply_in_list_order():
    series = _make_series(n=1)
    add_then_multiply = apply_shocks(series, [
        Shock(driver="COVERS", mode="add", value=100),
        Shock(driver="COVERS", mode="multiply", value=0.5),
    ])
    multiply_then_add = apply_shocks(series, [
        Shock(driver="COVERS", mode="multiply", value=0.5),
        Shock(driver="COVERS", mode="add", value=100),
    ])
    assert _covers(add_then_multiply) == pytest.approx([550.0])
    assert _covers(multiply_then_add) == pytest.approx([600.0])


def test_null_driver_stays_null():
    series = _make_series(n=1, COVERS=None)
    shocked = apply_shocks(series, [
        Shock(driver="COVERS", mode="multiply", value=0.9),
        Shock(driver="COVERS", mode="add", value=10),
    ])
    assert shocked[0].drivers[DriverKey.COVERS] is None


def test_input_series_not_modified():
    series = _make_series(n=2)
    apply_shocks(series, [Shock(driver="COVERS", mode="multiply", value=0.5, duration_months=2)])
    assert _covers(series) == [1000, 1000]


def test_identity_shocks_leave_drivers_unchanged():
    series = _make_series(n=3)
    shocked = apply_shocks(series, [
        Shock(driver="COVERS", mode="multiply", value=1.0, duration_months=3),
        Shock(driver="RENT", mode="add", value=0.0, duration_months=3),
    ])
    assert [r.drivers for r in shocked] == [r.drivers for r in series]


def test_decay_curve_fades_multiply_shock():
    """Flat baseline: exponent 1, decay magnitudes [1, 0.5, 0]."""
    series = _make_series(n=3)
    scenario = Scenario(
        id="S-DECAY",
        name="decay",
        shocks=[Shock(driver="COVERS", mode="multiply", value=0.8, duration_months=3)],
        shock_curve=ShockCurve.decay,
    )
    shocked = apply_scenario(series, scenario)
    assert _covers(shocked) == pytest.approx([800.0, 900.0, 1000.0])


def test_recovery_curve_builds_add_shock():
    series = _make_series(n=3)
    scenario = Scenario(
        id="S-REC",
        name="recovery",
        shocks=[Shock(driver="COVERS", mode="add", value=-200, duration_months=3)],
        shock_curve=ShockCurve.recovery,
    )
    shocked = apply_scenario(series, scenario)
    assert _covers(shocked) == pytest.approx([1000.0, 900.0, 800.0])


def test_one_month_recovery_shock_warns(caplog):
    series = _make_series(n=3)
    scenario = Scenario(
        id="S-REC1",
        name="recovery",
        shocks=[Shock(driver="COVERS", mode="multiply", value=0.5, duration_months=1)],
        shock_curve=ShockCurve.recovery,
    )
    with caplog.at_level("WARNING", logger="stress_engine.simulation.shocks"):
        shocked = apply_scenario(series, scenario)
    assert _covers(shocked) == pytest.approx([1000.0, 1000.0, 1000.0])
    assert "one month" in caplog.text


def test_unvalidated_mode_raises():
    shock = Shock.model_construct(
        driver=DriverKey.COVERS, mode="scale", value=2.0, start_month_offset=0, duration_months=1,
    )
    with pytest.raises(ValueError, match="Unknown shock mode"):
        apply_shocks(_make_series(n=1), [shock])


def test_set_shock_ignores_curve():
    series = _make_series(n=3)
    scenario = Scenario(
        id="S-SET",
        name="set",
        shocks=[Shock(driver="RENT", mode="set", value=7000, duration_months=3)],
        shock_curve=ShockCurve.decay,
    )
    shocked = apply_scenario(series, scenario)
    assert [r.drivers[DriverKey.RENT] for r in shocked] == [7000, 7000, 7000]


def test_labor_hours_adjustment_reduces_wages():
    series = _make_series(n=1)
    mitigation = Mitigation(
        id="M-LAB",
        name="labor",
        adjustments=[Adjustment(driver="LABOR_HOURS", mode="multiply", value=0.95)],
    )
    adjusted = apply_adjustments(series, mitigation)
    before = compute_kpi_spine(series)[0].wage_costs
    after = compute_kpi_spine(adjusted)[0].wage_costs
    assert after == pytest.approx(before * 0.95)
    assert after == pytest.approx(9_500.0)


def test_disabled_mitigations_are_skipped():
    series = _make_series(n=1)
    on = Mitigation(id="M1", name="on",
                    adjustments=[Adjustment(driver="RENT", mode="add", value=-1000)])
    off = Mitigation(id="M2", name="off", enabled=False,
                     adjustments=[Adjustment(driver="RENT", mode="add", value=-2000)])
    adjusted = apply_adjustments(series, [on, off])
    assert adjusted[0].drivers[DriverKey.RENT] == pytest.approx(4000)

    forced = apply_adjustments(series, [on, off], MitigationSelection(enabled_ids=["M2"]))
    assert forced[0].drivers[DriverKey.RENT] == pytest.approx(3000)


def test_empty_selection_is_identity():
    series = _make_series(n=2)
    mitigation = Mitigation(id="M1", name="m",
                            adjustments=[Adjustment(driver="RENT", mode="add", value=-1000)])
    adjusted = apply_adjustments(series, [mitigation], MitigationSelection(enabled_ids=[]))
    assert [r.drivers for r in adjusted] == [r.drivers for r in series]
