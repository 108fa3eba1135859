from __future__ import annotations

import math
import re
import pandas as pd
from typing import Optional, Union

from . import settings


class ParseError(ValueError):
    """Raised when a raw market quote cannot be interpreted."""


# Exchange month codes for listed futures
FUTURES_MONTH_CODES = {
    "F": 1, "G": 2, "H": 3, "J": 4, "K": 5, "M": 6,
    "N": 7, "Q": 8, "U": 9, "V": 10, "X": 11, "Z": 12,
}

MONTH_NAMES = {
    "JAN": 1, "FEB": 2, "MAR": 3, "APR": 4, "MAY": 5, "JUN": 6,
    "JUL": 7, "AUG": 8, "SEP": 9, "OCT": 10, "NOV": 11, "DEC": 12,
}

_TENOR_CODE = re.compile(r"^(\d+(?:\.\d+)?)\s*(D|DAYS?|W|WEEKS?|M|MONTHS?|Y|YEARS?)$")
_MONTH_YEAR = re.compile(r"^([A-Z]{3})[A-Z]*[\s\-'/.]*(\d{2}|\d{4})$")
_FUTURES_CODE = re.compile(r"^[A-Z0-9]*?([FGHJKMNQUVXZ])(\d{1,2})$")

DAYS_PER_YEAR = 365.0


def _thirty_360(start: pd.Timestamp, end: pd.Timestamp) -> float:
    # US bond basis
    d1 = min(start.day, 30)
    d2 = 30 if (end.day == 31 and d1 == 30) else end.day
    return ((end.year - start.year) * 360 + (end.month - start.month) * 30 + (d2 - d1)) / 360.0


DAY_COUNTS = {
    "ACT/365": lambda s, e: (e - s).days / 365.0,
    "ACT/365F": lambda s, e: (e - s).days / 365.0,
    "ACT/360": lambda s, e: (e - s).days / 360.0,
    "30/360": _thirty_360,
    "30/360US": _thirty_360,
}


def yearfrac(start: pd.Timestamp, end: pd.Timestamp, convention: str) -> float:
    """Year fraction between two dates under one of the DAY_COUNTS conventions."""
    key = convention.upper().replace(" ", "")
    if key not in DAY_COUNTS:
        raise ValueError(f"Unsupported day count convention: {convention}")

    start, end = pd.Timestamp(start), pd.Timestamp(end)
    if end < start:
        raise ValueError(f"end < start: {start=} {end=}")
    return DAY_COUNTS[key](start, end)


def third_wednesday(year: int, month: int) -> pd.Timestamp:
    """IMM date of a contract month."""
    first = pd.Timestamp(year=year, month=month, day=1)
    offset = (2 - first.weekday()) % 7
    return first + pd.Timedelta(days=offset + 14)


def _tenor_code_years(amount: float, unit: str) -> float:
    if unit.startswith("D"):
        return amount / DAYS_PER_YEAR
    if unit.startswith("W"):
        return 7.0 * amount / DAYS_PER_YEAR
    if unit.startswith("M"):
        return amount / 12.0
    return amount


def _contract_year(digits: str, month: int, as_of: pd.Timestamp) -> int:
    if len(digits) == 2:
        return 2000 + int(digits)

    # single-digit year: the next contract in the decade cycle
    year = as_of.year - as_of.year % 10 + int(digits)
    if (year, month) < (as_of.year, as_of.month):
        year += 10
    return year


def _maturity_years(raw: str, as_of: pd.Timestamp) -> float:
    text = raw.upper()

    m = _TENOR_CODE.match(text)
    if m:
        return _tenor_code_years(float(m.group(1)), m.group(2))

    m = _MONTH_YEAR.match(text)
    if m and m.group(1) in MONTH_NAMES:
        month = MONTH_NAMES[m.group(1)]
        digits = m.group(2)
        year = int(digits) if len(digits) == 4 else 2000 + int(digits)
        maturity = third_wednesday(year, month)
        return (maturity - as_of).days / DAYS_PER_YEAR

    m = _FUTURES_CODE.match(text)
    if m:
        month = FUTURES_MONTH_CODES[m.group(1)]
        year = _contract_year(m.group(2), month, as_of)
        maturity = third_wednesday(year, month)
        return (maturity - as_of).days / DAYS_PER_YEAR

    maturity = pd.Timestamp(raw)
    if pd.isna(maturity):
        raise ParseError(f"Unrecognised maturity code: {raw!r}")
    if maturity.tzinfo is not None:
        maturity = maturity.tz_localize(None)

    return (maturity.normalize() - as_of).days / DAYS_PER_YEAR


def maturity_to_years(code: str, as_of: Optional[pd.Timestamp] = None) -> float:
    """
    Year fraction (ACT/365) from ``as_of`` to the maturity described by ``code``.

    Accepted formats:
    - tenor codes: "3M", "18M", "2Y", "2W", "3 months", "1 year"
    - month + year: "MAR 2026", "Jun26", "Sep-26" (IMM date of the month)
    - futures codes with optional root: "H6", "Z25", "SR3H26", "EDZ5"
    - explicit dates: "2026-03-18" or anything pandas can parse

    The result is signed: an expired contract gives a negative tenor,
    callers filter on tenor > 0. Maturities further than
    settings.MAX_MATURITY_YEARS away either way raise ParseError.
    """
    if as_of is None:
        as_of = pd.Timestamp.today()
    as_of = pd.Timestamp(as_of).normalize()

    raw = str(code).strip() if code is not None else ""
    if not raw:
        raise ParseError("Empty maturity code.")

    try:
        years = _maturity_years(raw, as_of)
    except ParseError:
        raise
    except (ValueError, TypeError, OverflowError) as exc:
        raise ParseError(f"Unrecognised maturity code: {raw!r}") from exc

    if abs(years) > settings.MAX_MATURITY_YEARS:
        raise ParseError(f"Implausible maturity {raw!r}: {years:.1f} years from {as_of.date()}")
    return years


def parse_price(value: Union[str, float, int]) -> float:
    """
    Numeric price from a raw quote, e.g. "96.125s" -> 96.125.
    Everything but digits, '.' and '-' is stripped before parsing.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        price = float(value)
    else:
        text = re.sub(r"[^0-9.\-]", "", str(value))
        try:
            price = float(text)
        except ValueError as exc:
            raise ParseError(f"Non-numeric price: {value!r}") from exc

    if not math.isfinite(price):
        raise ParseError(f"Non-numeric price: {value!r}")
    return price


def price_to_rate(price: float) -> float:
    """Futures price quoted as 100 - rate% -> decimal rate."""
    return (100.0 - price) / 100.0
