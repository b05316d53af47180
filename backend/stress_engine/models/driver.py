from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator


class DriverKey(str, Enum):
    """Primitive input variables from which the KPI spine is derived."""
    COVERS = "COVERS"
    AVERAGE_CHECK = "AVERAGE_CHECK"
    DISCOUNT_RATE = "DISCOUNT_RATE"
    CHANNEL_MIX = "CHANNEL_MIX"
    FOOD_COST_PROTEIN = "FOOD_COST_PROTEIN"
    FOOD_COST_PRODUCE = "FOOD_COST_PRODUCE"
    WASTE_PCT = "WASTE_PCT"
    MENU_MIX = "MENU_MIX"
    LABOR_HOURS = "LABOR_HOURS"
    WAGE_RATE = "WAGE_RATE"
    OVERTIME_PCT = "OVERTIME_PCT"
    RENT = "RENT"
    UTILITIES = "UTILITIES"
    MARKETING = "MARKETING"
    DELIVERY_COMMISSION = "DELIVERY_COMMISSION"
    INTEREST_EXPENSE = "INTEREST_EXPENSE"
    ONE_TIME_COSTS = "ONE_TIME_COSTS"


class DriverCategory(str, Enum):
    revenue = "revenue"
    cogs = "cogs"
    labor = "labor"
    opex = "opex"
    non_operating = "non_operating"


DRIVER_CATEGORIES: dict[DriverKey, DriverCategory] = {
    DriverKey.COVERS: DriverCategory.revenue,
    DriverKey.AVERAGE_CHECK: DriverCategory.revenue,
    DriverKey.DISCOUNT_RATE: DriverCategory.revenue,
    DriverKey.CHANNEL_MIX: DriverCategory.revenue,
    DriverKey.FOOD_COST_PROTEIN: DriverCategory.cogs,
    DriverKey.FOOD_COST_PRODUCE: DriverCategory.cogs,
    DriverKey.WASTE_PCT: DriverCategory.cogs,
    DriverKey.MENU_MIX: DriverCategory.cogs,
    DriverKey.LABOR_HOURS: DriverCategory.labor,
    DriverKey.WAGE_RATE: DriverCategory.labor,
    DriverKey.OVERTIME_PCT: DriverCategory.labor,
    DriverKey.RENT: DriverCategory.opex,
    DriverKey.UTILITIES: DriverCategory.opex,
    DriverKey.MARKETING: DriverCategory.opex,
    DriverKey.DELIVERY_COMMISSION: DriverCategory.opex,
    DriverKey.INTEREST_EXPENSE: DriverCategory.non_operating,
    DriverKey.ONE_TIME_COSTS: DriverCategory.non_operating,
}


def parse_driver_key(value: str) -> DriverKey:
    """Resolve a driver name (case-insensitive) or raise naming the bad key."""
    try:
        return DriverKey(str(value).strip().upper())
    except ValueError:
        raise ValueError(
            f"Unknown driver key {value!r}. Expected one of: "
            f"{[k.value for k in DriverKey]}"
        ) from None


class DriverRow(BaseModel):
    """One period of driver values. Missing data is None, never omitted."""
    period: str
    drivers: dict[DriverKey, Optional[float]]

    @field_validator("drivers", mode="before")
    @classmethod
    def _require_full_key_set(cls, value):
        if not isinstance(value, dict):
            raise ValueError("drivers must be a mapping of driver key to value")
        resolved: dict[DriverKey, Optional[float]] = {}
        for key, val in value.items():
            resolved[parse_driver_key(key.value if isinstance(key, DriverKey) else key)] = val
        missing = [k.value for k in DriverKey if k not in resolved]
        if missing:
            raise ValueError(f"drivers is missing keys {missing}; use null for missing data")
        return resolved

    def value(self, key: DriverKey) -> Optional[float]:
        return self.drivers[key]


def make_driver_row(period: str, **values: Optional[float]) -> DriverRow:
    """Build a DriverRow from keyword values, filling unspecified drivers with None."""
    drivers: dict[DriverKey, Optional[float]] = {k: None for k in DriverKey}
    for name, val in values.items():
        drivers[parse_driver_key(name)] = val
    return DriverRow(period=period, drivers=drivers)


class DriverUpload(BaseModel):
    """Result of parsing an uploaded driver file."""
    filename: str
    period_count: int
    missing_drivers: list[DriverKey] = []
    driver_series: list[DriverRow]
