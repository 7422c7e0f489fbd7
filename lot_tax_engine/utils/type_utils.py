# lot_tax_engine/utils/type_utils.py
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
from datetime import datetime, date

from dateutil import parser as dateutil_parser

_TRUE_STRINGS = {"true", "yes", "y", "1", "x"}
_FALSE_STRINGS = {"false", "no", "n", "0"}


def safe_decimal(value: Any, default: Optional[Decimal] = None, raise_error: bool = False) -> Optional[Decimal]:
    """
    Safely converts a value to a Decimal.
    Handles None, empty strings, currency symbols and strings with commas (as thousands or decimal).
    If raise_error is True, re-raises InvalidOperation instead of returning default.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):  # str() first so 0.1 stays 0.1
        return Decimal(str(value))

    s_value = str(value).strip().replace("$", "").replace(" ", "")
    if not s_value:
        return default

    try:
        if '.' in s_value and ',' in s_value:  # e.g., "1,234.56"
            s_value = s_value.replace(',', '')
        elif ',' in s_value and '.' not in s_value:  # e.g., "12,34"
            s_value = s_value.replace(',', '.')
        return Decimal(s_value)
    except InvalidOperation as e:
        if raise_error:
            raise e
        return default


def safe_bool(value: Any, default: Optional[bool] = None) -> Optional[bool]:
    """Parses spreadsheet-style booleans ("TRUE", "yes", "1"). Unknown values give default."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    s_value = str(value).strip().lower()
    if s_value in _TRUE_STRINGS:
        return True
    if s_value in _FALSE_STRINGS:
        return False
    return default


def parse_datetime(value: Any, default: Optional[datetime] = None) -> Optional[datetime]:
    """
    Parses ISO timestamps, plain dates and the common spreadsheet formats into a naive datetime.
    Returns default when the value cannot be parsed.
    """
    if value is None:
        return default
    if isinstance(value, datetime):
        return value.replace(tzinfo=None) if value.tzinfo else value
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())

    s_value = str(value).strip()
    if not s_value:
        return default

    formats_to_try = [
        "%Y-%m-%dT%H:%M:%S",
        "%Y-%m-%d %H:%M:%S",
        "%Y-%m-%d",
        "%m/%d/%Y",
        "%d.%m.%Y",
    ]

    try:
        return datetime.fromisoformat(s_value).replace(tzinfo=None)
    except ValueError:
        pass

    for fmt in formats_to_try:
        try:
            return datetime.strptime(s_value, fmt)
        except ValueError:
            continue

    # Fallback to dateutil.parser (slower, more lenient)
    try:
        return dateutil_parser.parse(s_value).replace(tzinfo=None)
    except (ValueError, TypeError, OverflowError):
        return default
