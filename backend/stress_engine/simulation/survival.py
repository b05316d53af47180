"""Survival curve and linear risk scorer for a single KPI trajectory.

Survival: starting from 1, each period applies a hazard

    hazard = sigmoid((profit_signal + margin_signal) / 2) * max_hazard
    profit_signal = -net_profit / profit_scale
    margin_signal = -net_margin / margin_scale

where each scale is the population standard deviation of its series over the
whole trajectory, floored. The running value is clamped to
[survival_floor, survival_cap] after every period, so the curve is
non-increasing within those bounds. Periods with a missing signal carry the
previous value forward.

Time to event: the first month that closes a run of ``consecutive_months``
periods with net profit below ``net_profit_threshold``. A missing net profit
is not a confirmed loss and resets the streak.

Risk score: a fixed-weight linear combination of trajectory features. The
weights are transparent policy constants, not fitted coefficients. Higher
score means higher modeled hazard.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from stress_engine.models.analysis import RiskFeatureSet, RiskScore
from stress_engine.models.kpi import KpiSpineRow
from stress_engine.models.run import ComputationRun, TimeToEvent


@dataclass(frozen=True)
class SurvivalPolicy:
    profit_scale_floor: float = 1.0
    margin_scale_floor: float = 0.5
    max_hazard: float = 0.25
    survival_floor: float = 0.05
    survival_cap: float = 0.98


@dataclass(frozen=True)
class LossEventPolicy:
    consecutive_months: int = 2
    net_profit_threshold: float = 0.0


@dataclass(frozen=True)
class RiskWeights:
    """Illustrative default weights; recalibrate as policy, not as fitted values."""
    revenue_trend: float = -0.8
    net_margin_volatility: float = 1.2
    avg_net_margin: float = -1.5
    prime_cost_pct_avg: float = 1.1


DEFAULT_SURVIVAL_POLICY = SurvivalPolicy()
DEFAULT_RISK_WEIGHTS = RiskWeights()
DEFAULT_LOSS_EVENT_POLICY = LossEventPolicy()


def _present(values: list[Optional[float]]) -> list[float]:
    return [v for v in values if v is not None]


def _pstdev(values: list[float]) -> float:
    if not values:
        return 0.0
    return float(np.std(np.array(values, dtype=float)))


def _mean(values: list[float]) -> float:
    if not values:
        return 0.0
    return float(np.mean(np.array(values, dtype=float)))


def _sigmoid(x: float) -> float:
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def score_survival(
    run: ComputationRun, policy: SurvivalPolicy = DEFAULT_SURVIVAL_POLICY,
) -> list[float]:
    """Per-period survival probabilities for one trajectory."""
    profits = [row.net_profit for row in run.kpi_results]
    margins = [row.net_margin for row in run.derived_results]

    profit_scale = max(_pstdev(_present(profits)), policy.profit_scale_floor)
    margin_scale = max(_pstdev(_present(margins)), policy.margin_scale_floor)

    survival = 1.0
    curve: list[float] = []
    for profit, margin in zip(profits, margins):
        if profit is not None and margin is not None:
            profit_signal = -profit / profit_scale
            margin_signal = -margin / margin_scale
            hazard = _sigmoid((profit_signal + margin_signal) / 2.0) * policy.max_hazard
            survival *= 1.0 - hazard
        survival = min(max(survival, policy.survival_floor), policy.survival_cap)
        curve.append(survival)
    return curve


def risk_features(run: ComputationRun) -> RiskFeatureSet:
    """Trajectory features; a feature with no usable data is 0."""
    revenues = _present([row.total_revenue for row in run.kpi_results])
    margins = _present([row.net_margin for row in run.derived_results])
    prime_pcts = _present([row.prime_cost_pct for row in run.derived_results])

    if len(revenues) >= 2:
        revenue_trend = (revenues[-1] - revenues[0]) / max(revenues[0], 1.0)
    else:
        revenue_trend = 0.0

    return RiskFeatureSet(
        revenue_trend=revenue_trend,
        net_margin_volatility=_pstdev(margins),
        avg_net_margin=_mean(margins),
        prime_cost_pct_avg=_mean(prime_pcts),
    )


def score_risk(run: ComputationRun, weights: RiskWeights = DEFAULT_RISK_WEIGHTS) -> RiskScore:
    features = risk_features(run)
    score = (
        features.revenue_trend * weights.revenue_trend
        + features.net_margin_volatility * weights.net_margin_volatility
        + features.avg_net_margin * weights.avg_net_margin
        + features.prime_cost_pct_avg * weights.prime_cost_pct_avg
    )
    return RiskScore(run_id=run.id, score=score, features=features)


def time_to_event(
    kpi_series: list[KpiSpineRow], policy: LossEventPolicy = DEFAULT_LOSS_EVENT_POLICY,
) -> TimeToEvent:
    """Months until a sustained net loss, or None if the trajectory avoids one."""
    if policy.consecutive_months < 1:
        raise ValueError("consecutive_months must be at least 1")

    streak = 0
    event_month: Optional[int] = None
    for index, row in enumerate(kpi_series):
        if row.net_profit is not None and row.net_profit < policy.net_profit_threshold:
            streak += 1
            if streak >= policy.consecutive_months:
                event_month = index + 1
                break
        else:
            streak = 0

    return TimeToEvent(
        time_to_event_months=event_month,
        event_occurred=event_month is not None,
        consecutive_months=policy.consecutive_months,
        threshold=policy.net_profit_threshold,
    )
