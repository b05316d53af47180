"""Tests for survival scoring and the risk score."""
import pytest

from stress_engine.models.driver import DriverKey, make_driver_row
from stress_engine.models.kpi import KpiSpineRow
from stress_engine.models.scenario import Scenario, Shock
from stress_engine.simulation.engine import compute_baseline_run, compute_scenario_run
from stress_engine.simulation.scenarios import sample_driver_series
from stress_engine.simulation.survival import (
    LossEventPolicy,
    RiskWeights,
    SurvivalPolicy,
    risk_features,
    score_risk,
    score_survival,
    time_to_event,
)


def _make_flat_baseline(n=4, **overrides):
    defaults = dict(
        COVERS=1000, AVERAGE_CHECK=40.0, DISCOUNT_RATE=0.0, CHANNEL_MIX=0.0,
        FOOD_COST_PROTEIN=8.0, FOOD_COST_PRODUCE=2.0, WASTE_PCT=0.0, MENU_MIX=0.0,
        LABOR_HOURS=500, WAGE_RATE=20.0, OVERTIME_PCT=0.0,
        RENT=5000, UTILITIES=1000, MARKETING=1000, DELIVERY_COMMISSION=0.2,
        INTEREST_EXPENSE=500, ONE_TIME_COSTS=0,
    )
    defaults.update(overrides)
    return compute_baseline_run(
        [make_driver_row(f"2024-{i + 1:02d}", **defaults) for i in range(n)]
    )


def test_survival_non_increasing_and_bounded():
    policy = SurvivalPolicy()
    for run in (
        compute_baseline_run(sample_driver_series()),
        _make_flat_baseline(),
        _make_flat_baseline(COVERS=200),
    ):
        curve = score_survival(run)
        assert len(curve) == len(run.periods)
        for i, value in enumerate(curve):
            assert policy.survival_floor <= value <= policy.survival_cap
            if i:
                assert value <= curve[i - 1]


def test_loss_making_run_decays_faster():
    healthy = score_survival(_make_flat_baseline())
    losing = score_survival(_make_flat_baseline(COVERS=200))
    assert losing[-1] < healthy[-1]


def test_long_losses_hit_the_floor():
    curve = score_survival(_make_flat_baseline(n=60, COVERS=100))
    assert curve[-1] == pytest.approx(0.05)


def test_missing_period_carries_survival_forward():
    series = _make_flat_baseline(n=3, COVERS=200).driver_series
    series[1] = series[1].model_copy(
        update={"drivers": {**series[1].drivers, DriverKey.COVERS: None}}
    )
    curve = score_survival(compute_baseline_run(series))
    assert curve[1] == curve[0]
    assert curve[2] < curve[1]


def test_risk_features_flat_run():
    features = risk_features(_make_flat_baseline())
    assert features.revenue_trend == 0.0
    assert features.net_margin_volatility == 0.0
    assert features.avg_net_margin == pytest.approx(0.3125)
    assert features.prime_cost_pct_avg == pytest.approx(0.5)


def test_risk_score_is_weighted_sum():
    run = _make_flat_baseline()
    weights = RiskWeights()
    score = score_risk(run, weights)
    expected = 0.3125 * weights.avg_net_margin + 0.5 * weights.prime_cost_pct_avg
    assert score.score == pytest.approx(expected)
    assert score.run_id == run.id


def test_demand_shock_raises_risk():
    baseline = _make_flat_baseline()
    scenario = Scenario(
        id="S-RISK",
        name="demand",
        shocks=[Shock(driver="COVERS", mode="multiply", value=0.7, duration_months=4)],
    )
    stressed = compute_scenario_run(baseline, scenario)
    assert score_risk(stressed).score > score_risk(baseline).score


def test_all_missing_features_are_zero():
    features = risk_features(_make_flat_baseline(COVERS=None))
    assert features.revenue_trend == 0.0
    assert features.avg_net_margin == 0.0
    assert features.prime_cost_pct_avg == 0.0



# --- Time to event ---


def _profits(*values):
    return [KpiSpineRow(period=f"2024-{i + 1:02d}", net_profit=v) for i, v in enumerate(values)]


def test_event_after_two_consecutive_losses():
    result = time_to_event(_profits(100.0, -5.0, -5.0, 50.0))
    assert result.event_occurred is True
    assert result.time_to_event_months == 3
    assert result.consecutive_months == 2
    assert result.threshold == 0.0


def test_profitable_month_resets_the_streak():
    result = time_to_event(_profits(-5.0, 10.0, -5.0, 10.0, -5.0))
    assert result.event_occurred is False
    assert result.time_to_event_months is None


def test_missing_net_profit_resets_the_streak():
    assert time_to_event(_profits(-5.0, None, -5.0)).event_occurred is False
    assert time_to_event(_profits(None, -5.0, -5.0)).time_to_event_months == 3


def test_event_policy_is_configurable():
    policy = LossEventPolicy(consecutive_months=1, net_profit_threshold=1_000.0)
    result = time_to_event(_profits(5_000.0, 500.0), policy)
    assert result.time_to_event_months == 2
    assert result.threshold == 1_000.0
    with pytest.raises(ValueError):
        time_to_event(_profits(1.0), LossEventPolicy(consecutive_months=0))


def test_runs_carry_time_to_event():
    healthy = _make_flat_baseline()
    assert healthy.time_to_event.event_occurred is False
    losing = _make_flat_baseline(COVERS=200)
    assert losing.time_to_event.time_to_event_months == 2
    assert compute_baseline_run(sample_driver_series()).time_to_event.event_occurred is False
