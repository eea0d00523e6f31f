"""
Cell Cleaning Module

Converts raw spreadsheet cells into typed values.
Handles:
- Currency strings ("SAR 1,250.00", "$12", "(4.50)", "ر.س 100") to Decimal
- Arabic-Indic digits and separators
- Quantities with a default of 1
- Dates in ISO, US, European and spreadsheet-native forms
- Blank cell detection
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
import math
import re

import structlog

logger = structlog.get_logger(__name__)

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
# Currency words and symbols with a trailing abbreviation dot ("ر.س", "Rs.")
_CURRENCY_TOKEN = re.compile(r"[^\d\s.,()\-]+\.?")
_EASTERN_DIGITS = str.maketrans("٠١٢٣٤٥٦٧٨٩۰۱۲۳۴۵۶۷۸۹٫٬", "01234567890123456789.,")

DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S.%f",
    "%m/%d/%Y %H:%M",
    "%d/%m/%Y %H:%M",
]


def is_blank(value: Any) -> bool:
    """True for None, NaN and whitespace-only strings"""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def parse_decimal(value: Any) -> Optional[Decimal]:
    """
    Parse a cell into a Decimal.

    Currency symbols (including dotted abbreviations), thousands separators
    and whitespace are stripped. Arabic-Indic digits are read as ASCII.
    Accounting negatives "(12.50)" become -12.50.

    Returns:
        Decimal, or None when the cell holds no number
    """
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if math.isinf(value):
            return None
        return Decimal(repr(value))

    text = str(value).strip().translate(_EASTERN_DIGITS)
    negative = text.startswith("(") and text.endswith(")")
    cleaned = _NON_NUMERIC.sub("", _CURRENCY_TOKEN.sub("", text))
    if not cleaned or cleaned in {"-", ".", "-."}:
        return None

    try:
        number = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not number.is_finite():
        return None
    return -abs(number) if negative else number


def parse_quantity(value: Any, default: int = 1) -> int:
    """Parse a quantity cell; missing or non-positive values become the default"""
    number = parse_decimal(value)
    if number is None:
        return default
    quantity = int(number)
    return quantity if quantity > 0 else default


def parse_count(value: Any) -> Optional[int]:
    """Parse a non-negative integer count (units sold, stock on hand)"""
    number = parse_decimal(value)
    if number is None:
        return None
    return max(int(number), 0)


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a date cell.

    Accepts date/datetime objects (including pandas Timestamps from Excel)
    and strings in any of DATE_FORMATS.

    Returns:
        date, or None when the cell cannot be read as a date
    """
    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    logger.debug("Unparseable date", value=text)
    return None


def clean_text(value: Any, default: str = "") -> str:
    """Stringify and trim a cell, returning default for blanks"""
    if is_blank(value):
        return default
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()
