"""KPI spine: maps one period's drivers to the seven canonical KPI fields.

Each period is computed from its own drivers only. Any missing operand makes
the formula's result None, and that None flows into every dependent field
(a missing COGS forces missing gross and net profit).
"""
from __future__ import annotations

from typing import Optional

from stress_engine.models.driver import DriverKey, DriverRow
from stress_engine.models.kpi import KpiSpineRow


def _product(*values: Optional[float]) -> Optional[float]:
    if any(v is None for v in values):
        return None
    result = 1.0
    for v in values:
        result *= v
    return result


def _total(*values: Optional[float]) -> Optional[float]:
    if any(v is None for v in values):
        return None
    return sum(values)


def _one_plus(value: Optional[float]) -> Optional[float]:
    return None if value is None else 1.0 + value


def compute_kpi_row(row: DriverRow) -> KpiSpineRow:
    """Compute the KPI spine for a single period."""
    d = row.drivers

    gross_revenue = _product(d[DriverKey.COVERS], d[DriverKey.AVERAGE_CHECK])
    discount = d[DriverKey.DISCOUNT_RATE]
    total_revenue = _product(gross_revenue, None if discount is None else 1.0 - discount)

    food_cost_base = _total(d[DriverKey.FOOD_COST_PROTEIN], d[DriverKey.FOOD_COST_PRODUCE])
    cogs = _product(
        d[DriverKey.COVERS],
        food_cost_base,
        _one_plus(d[DriverKey.WASTE_PCT]),
        _one_plus(d[DriverKey.MENU_MIX]),
    )

    wage_costs = _product(
        d[DriverKey.LABOR_HOURS], d[DriverKey.WAGE_RATE], _one_plus(d[DriverKey.OVERTIME_PCT]),
    )

    delivery_expense = _product(
        total_revenue, d[DriverKey.CHANNEL_MIX], d[DriverKey.DELIVERY_COMMISSION],
    )
    operating_expenses = _total(
        d[DriverKey.RENT], d[DriverKey.UTILITIES], d[DriverKey.MARKETING], delivery_expense,
    )

    non_operating_expenses = _total(d[DriverKey.INTEREST_EXPENSE], d[DriverKey.ONE_TIME_COSTS])

    gross_profit = None if total_revenue is None or cogs is None else total_revenue - cogs
    if None in (gross_profit, wage_costs, operating_expenses, non_operating_expenses):
        net_profit = None
    else:
        net_profit = gross_profit - wage_costs - operating_expenses - non_operating_expenses

    return KpiSpineRow(
        period=row.period,
        total_revenue=total_revenue,
        cost_of_goods_sold=cogs,
        gross_profit=gross_profit,
        wage_costs=wage_costs,
        operating_expenses=operating_expenses,
        non_operating_expenses=non_operating_expenses,
        net_profit=net_profit,
    )


def compute_kpi_spine(driver_series: list[DriverRow]) -> list[KpiSpineRow]:
    """One KPI row per driver row, order preserved."""
    return [compute_kpi_row(row) for row in driver_series]
