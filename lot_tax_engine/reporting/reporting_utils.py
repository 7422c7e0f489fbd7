# lot_tax_engine/reporting/reporting_utils.py
import logging
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional
from datetime import date, datetime

from lot_tax_engine.domain.enums import HoldingPeriod
import lot_tax_engine.config as config  # For precision settings


logger = logging.getLogger(__name__)


def _quantize(val: Optional[Decimal | int | float | str], exponent: Decimal, helper_name: str) -> Decimal:
    if val is None:
        return Decimal('0').quantize(exponent, rounding=ROUND_HALF_UP)
    if not isinstance(val, Decimal):
        try:
            val = Decimal(str(val))
        except InvalidOperation:
            logger.error(f"Could not convert value '{val}' of type {type(val)} to Decimal in {helper_name}. Returning zero.")
            return Decimal('0').quantize(exponent, rounding=ROUND_HALF_UP)
    return val.quantize(exponent, rounding=ROUND_HALF_UP)


def _q(val: Optional[Decimal | int | float | str], exponent: Optional[Decimal] = None) -> Decimal:
    """Quantize Decimal value for total amounts, handling None, int, float, str."""
    return _quantize(val, exponent or config.OUTPUT_PRECISION_AMOUNTS, "_q")


def _q_price(val: Optional[Decimal | int | float | str]) -> Decimal:
    """Quantize Decimal value for per-unit prices."""
    return _quantize(val, config.OUTPUT_PRECISION_PER_UNIT, "_q_price")


def _q_qty(val: Optional[Decimal | int | float | str]) -> Decimal:
    """Quantize Decimal value for quantities."""
    return _quantize(val, config.PRECISION_QUANTITY, "_q_qty")


def currency_exponent(decimal_places: int) -> Decimal:
    return Decimal(1).scaleb(-decimal_places)


def format_date(dt: Optional[date | datetime | str]) -> str:
    """Formats a date, datetime or ISO string as MM/DD/YYYY. Unparseable strings are returned unchanged."""
    if dt is None:
        return ""
    if isinstance(dt, str):
        try:
            dt = datetime.fromisoformat(dt)
        except ValueError:
            return dt
    if isinstance(dt, date):
        return dt.strftime("%m/%d/%Y")
    return str(dt)


def holding_period_label(holding_period: HoldingPeriod) -> str:
    return "Long-term" if holding_period == HoldingPeriod.LONG_TERM else "Short-term"

