"""Parse an uploaded CSV or Excel driver table into DriverRow records.

Column matching is flexible (partial, case-insensitive) so operator exports
with headers like ``Avg Check ($)`` or ``labor_hours`` map onto driver keys.
Currency symbols, thousands separators and percent signs are stripped, and
percent rates are converted to decimals for fraction-valued drivers. Blank
or unparseable cells become None.
"""
from __future__ import annotations

import logging
import math
import numbers
import re
from io import BytesIO
from typing import BinaryIO, Optional

from stress_engine.models.driver import DriverKey, DriverRow, DriverUpload

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Column matching helpers
# ---------------------------------------------------------------------------
_PERIOD_PATTERNS: list[str] = ["period", "month", "date"]

_COLUMN_PATTERNS: dict[DriverKey, list[str]] = {
    DriverKey.COVERS: ["covers", "guest count", "guests"],
    DriverKey.AVERAGE_CHECK: ["average check", "avg check", "check average", "avg.*check"],
    DriverKey.DISCOUNT_RATE: ["discount"],
    DriverKey.CHANNEL_MIX: ["channel mix", "channel", "off.?premise"],
    DriverKey.FOOD_COST_PROTEIN: ["food cost protein", "protein"],
    DriverKey.FOOD_COST_PRODUCE: ["food cost produce", "produce"],
    DriverKey.WASTE_PCT: ["waste"],
    DriverKey.MENU_MIX: ["menu mix", "menu"],
    DriverKey.LABOR_HOURS: ["labor hours", "labour hours", "hours"],
    DriverKey.WAGE_RATE: ["wage rate", "hourly wage", "wage"],
    DriverKey.OVERTIME_PCT: ["overtime", "ot pct"],
    DriverKey.RENT: ["^rent", "occupancy"],
    DriverKey.UTILITIES: ["utilities", "utility"],
    DriverKey.MARKETING: ["marketing", "advertising"],
    DriverKey.DELIVERY_COMMISSION: ["delivery commission", "delivery", "commission"],
    DriverKey.INTEREST_EXPENSE: ["interest"],
    DriverKey.ONE_TIME_COSTS: ["one time", "one off", "nonrecurring"],
}

_REGEX_CHARS = ("*", "+", "?", "\\", "^", "$", "|")

# Drivers held as decimal fractions (0.04, not 4).
_FRACTION_DRIVERS: frozenset[DriverKey] = frozenset({
    DriverKey.DISCOUNT_RATE,
    DriverKey.CHANNEL_MIX,
    DriverKey.WASTE_PCT,
    DriverKey.MENU_MIX,
    DriverKey.OVERTIME_PCT,
    DriverKey.DELIVERY_COMMISSION,
})


def _normalize_header(name: str) -> str:
    return re.sub(r"[_\-]+", " ", str(name)).lower().strip()


def _find_column(columns: list[str], patterns: list[str], taken: set[str]) -> Optional[str]:
    """Find a column by partial case-insensitive match, skipping taken columns.

    Patterns are tried in order (most specific first). A pattern containing
    regex metacharacters is treated as a regex; otherwise plain substring
    matching is used.
    """
    normalized = {c: _normalize_header(c) for c in columns if c not in taken}
    for pattern in patterns:
        if any(ch in pattern for ch in _REGEX_CHARS):
            rx = re.compile(pattern)
            for orig, low in normalized.items():
                if rx.search(low):
                    return orig
        else:
            for orig, low in normalized.items():
                if pattern in low:
                    return orig
    return None


def map_columns(columns: list[str]) -> tuple[Optional[str], dict[DriverKey, Optional[str]]]:
    """Resolve the period column and one source column per driver key."""
    taken: set[str] = set()
    period_col = _find_column(columns, _PERIOD_PATTERNS, taken)
    if period_col is not None:
        taken.add(period_col)
    # Exact key names win before fuzzy patterns.
    col_map: dict[DriverKey, Optional[str]] = {}
    for key in DriverKey:
        exact = next(
            (c for c in columns if c not in taken and _normalize_header(c) == _normalize_header(key.value)),
            None,
        )
        if exact is not None:
            col_map[key] = exact
            taken.add(exact)
    for key in DriverKey:
        if key in col_map:
            continue
        col_map[key] = _find_column(columns, _COLUMN_PATTERNS[key], taken)
        if col_map[key] is not None:
            taken.add(col_map[key])
    return period_col, {key: col_map[key] for key in DriverKey}


def parse_number(value) -> Optional[float]:
    """Parse a cell into a float, or None when blank or not numeric."""
    if value is None:
        return None
    if isinstance(value, numbers.Real):
        return float(value) if math.isfinite(value) else None
    normalized = re.sub(r"[$,%]", "", str(value)).strip()
    if not normalized:
        return None
    try:
        parsed = float(normalized)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def parse_driver_value(key: DriverKey, value) -> Optional[float]:
    """Parse a cell for one driver, converting percent rates to decimals.

    A fraction-valued driver is divided by 100 when its cell carries a
    ``%`` sign or its magnitude is above 1 (``4`` and ``4%`` both mean 0.04).
    """
    parsed = parse_number(value)
    if parsed is None or key not in _FRACTION_DRIVERS:
        return parsed
    if (isinstance(value, str) and "%" in value) or abs(parsed) > 1:
        return parsed / 100.0
    return parsed


def _normalize_period(value) -> str:
    text = str(value).strip()
    # Excel month cells arrive as full timestamps.
    match = re.match(r"^(\d{4}-\d{2})-\d{2}", text)
    return match.group(1) if match else text


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def parse_driver_file(file: BinaryIO, filename: str) -> DriverUpload:
    """Parse a CSV or Excel driver table.

    Raises ValueError on empty files, a missing period column, or no data rows.
    """
    import pandas as pd

    data = file.read()
    if not data:
        raise ValueError("Uploaded file is empty")

    if filename.lower().endswith((".xlsx", ".xlsm", ".xls")):
        df = pd.read_excel(BytesIO(data), dtype=object)
    else:
        df = pd.read_csv(BytesIO(data), dtype=str, skipinitialspace=True)
    df.columns = [str(c).strip() for c in df.columns]
    df = df.dropna(how="all")

    if df.empty:
        raise ValueError("Driver file contains no data rows")

    period_col, col_map = map_columns(list(df.columns))
    logger.info("Driver columns: %s", list(df.columns))
    logger.info("Column mapping: %s", {k.value: v for k, v in col_map.items()})

    if period_col is None:
        raise ValueError(
            f"Cannot find a period column. Available columns: {list(df.columns)}"
        )

    missing = [key for key, col in col_map.items() if col is None]
    if missing:
        logger.warning(
            "Driver columns not found, values set to null: %s", [k.value for k in missing]
        )

    rows: list[DriverRow] = []
    for _, record in df.iterrows():
        raw_period = record[period_col]
        if raw_period is None or (isinstance(raw_period, float) and math.isnan(raw_period)):
            logger.warning("Skipping row without a period")
            continue
        drivers = {
            key: (parse_driver_value(key, _cell(record, col)) if col is not None else None)
            for key, col in col_map.items()
        }
        rows.append(DriverRow(period=_normalize_period(raw_period), drivers=drivers))

    if not rows:
        raise ValueError("No driver rows could be parsed from the file")

    return DriverUpload(
        filename=filename,
        period_count=len(rows),
        missing_drivers=missing,
        driver_series=rows,
    )


def _cell(record, col: str):
    value = record[col]
    if isinstance(value, float) and math.isnan(value):
        return None
    return value
