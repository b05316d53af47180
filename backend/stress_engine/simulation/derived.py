"""Derived KPI calculator: margins and ratios from the KPI spine."""
from __future__ import annotations

from typing import Optional

from stress_engine.models.kpi import DerivedKpiRow, KpiSpineRow


def safe_divide(numerator: Optional[float], denominator: Optional[float]) -> Optional[float]:
    """a / b, or None when either side is missing or b is zero."""
    if numerator is None or denominator is None or denominator == 0:
        return None
    return numerator / denominator


def compute_derived_row(row: KpiSpineRow) -> DerivedKpiRow:
    revenue = row.total_revenue
    gross_margin_pct = safe_divide(row.gross_profit, revenue)

    if row.cost_of_goods_sold is None or row.wage_costs is None:
        prime_cost = None
    else:
        prime_cost = row.cost_of_goods_sold + row.wage_costs

    if None in (row.wage_costs, row.operating_expenses, row.non_operating_expenses):
        fixed_costs = None
    else:
        fixed_costs = row.wage_costs + row.operating_expenses + row.non_operating_expenses

    # A non-positive margin has no finite breakeven.
    if fixed_costs is None or gross_margin_pct is None or gross_margin_pct <= 0:
        breakeven_revenue = None
    else:
        breakeven_revenue = fixed_costs / gross_margin_pct

    return DerivedKpiRow(
        period=row.period,
        gross_margin_pct=gross_margin_pct,
        cogs_pct=safe_divide(row.cost_of_goods_sold, revenue),
        wage_pct=safe_divide(row.wage_costs, revenue),
        prime_cost=prime_cost,
        prime_cost_pct=safe_divide(prime_cost, revenue),
        net_margin=safe_divide(row.net_profit, revenue),
        breakeven_revenue=breakeven_revenue,
    )


def compute_derived(kpi_series: list[KpiSpineRow]) -> list[DerivedKpiRow]:
    return [compute_derived_row(row) for row in kpi_series]
