from enum import Enum
from typing import Optional

from pydantic import BaseModel


class KpiField(str, Enum):
    """The fixed seven-field KPI spine."""
    TOTAL_REVENUE = "total_revenue"
    COST_OF_GOODS_SOLD = "cost_of_goods_sold"
    GROSS_PROFIT = "gross_profit"
    WAGE_COSTS = "wage_costs"
    OPERATING_EXPENSES = "operating_expenses"
    NON_OPERATING_EXPENSES = "non_operating_expenses"
    NET_PROFIT = "net_profit"


class DerivedField(str, Enum):
    """Ratios and margins computed from a KPI spine row."""
    GROSS_MARGIN_PCT = "gross_margin_pct"
    COGS_PCT = "cogs_pct"
    WAGE_PCT = "wage_pct"
    PRIME_COST = "prime_cost"
    PRIME_COST_PCT = "prime_cost_pct"
    NET_MARGIN = "net_margin"
    BREAKEVEN_REVENUE = "breakeven_revenue"


class KpiSpineRow(BaseModel):
    period: str
    total_revenue: Optional[float] = None
    cost_of_goods_sold: Optional[float] = None
    gross_profit: Optional[float] = None
    wage_costs: Optional[float] = None
    operating_expenses: Optional[float] = None
    non_operating_expenses: Optional[float] = None
    net_profit: Optional[float] = None


class DerivedKpiRow(BaseModel):
    period: str
    gross_margin_pct: Optional[float] = None
    cogs_pct: Optional[float] = None
    wage_pct: Optional[float] = None
    prime_cost: Optional[float] = None
    prime_cost_pct: Optional[float] = None
    net_margin: Optional[float] = None
    breakeven_revenue: Optional[float] = None


_KPI_ACCESSORS = {
    KpiField.TOTAL_REVENUE: lambda row: row.total_revenue,
    KpiField.COST_OF_GOODS_SOLD: lambda row: row.cost_of_goods_sold,
    KpiField.GROSS_PROFIT: lambda row: row.gross_profit,
    KpiField.WAGE_COSTS: lambda row: row.wage_costs,
    KpiField.OPERATING_EXPENSES: lambda row: row.operating_expenses,
    KpiField.NON_OPERATING_EXPENSES: lambda row: row.non_operating_expenses,
    KpiField.NET_PROFIT: lambda row: row.net_profit,
}

_DERIVED_ACCESSORS = {
    DerivedField.GROSS_MARGIN_PCT: lambda row: row.gross_margin_pct,
    DerivedField.COGS_PCT: lambda row: row.cogs_pct,
    DerivedField.WAGE_PCT: lambda row: row.wage_pct,
    DerivedField.PRIME_COST: lambda row: row.prime_cost,
    DerivedField.PRIME_COST_PCT: lambda row: row.prime_cost_pct,
    DerivedField.NET_MARGIN: lambda row: row.net_margin,
    DerivedField.BREAKEVEN_REVENUE: lambda row: row.breakeven_revenue,
}


def kpi_value(row: KpiSpineRow, field: KpiField) -> Optional[float]:
    return _KPI_ACCESSORS[field](row)


def derived_value(row: DerivedKpiRow, field: DerivedField) -> Optional[float]:
    return _DERIVED_ACCESSORS[field](row)
