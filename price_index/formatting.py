"""
Display formatting for capacities and prices.

All helpers accept Decimals and never go through float.
"""

from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Union

from core.constants import (
    DECIMAL_CONTEXT_PRECISION,
    EXCHANGE_RATE_PLACES,
    NATIVE_PRICE_PLACES,
    NATIVE_SYMBOL,
    REFERENCE_PRICE_PLACES,
    REFERENCE_SYMBOL,
)


SIZE_UNITS = ("B", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB", "ZiB", "YiB")


def _quantize(value: Decimal, places: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = DECIMAL_CONTEXT_PRECISION
        return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def format_fixed(value: Decimal, places: int) -> str:
    """Round half-up to exactly ``places`` digits. NaN/Infinity pass through."""
    if not value.is_finite():
        return "NaN" if value.is_nan() else str(value)
    return f"{_quantize(value, places):f}"


def format_decimal(value: Decimal, places: int) -> str:
    """Round half-up to at most ``places`` digits, without trailing zeros."""
    if not value.is_finite():
        return "NaN" if value.is_nan() else str(value)
    rounded = _quantize(value, places)
    if rounded == 0:
        return "0"
    return f"{rounded.normalize():f}"


def format_size(size_bytes: Union[int, str, Decimal]) -> str:
    """Human-scaled binary size, e.g. ``1.50 PiB``."""
    size = Decimal(size_bytes)
    unit_index = 0
    while abs(size) >= 1024 and unit_index < len(SIZE_UNITS) - 1:
        size /= 1024
        unit_index += 1
    places = 0 if unit_index == 0 else 2
    return f"{format_fixed(size, places)} {SIZE_UNITS[unit_index]}"


def format_native_price(value: Decimal) -> str:
    return f"{format_fixed(value, NATIVE_PRICE_PLACES)} {NATIVE_SYMBOL}"


def format_reference_price(value: Decimal) -> str:
    return f"{format_fixed(value, REFERENCE_PRICE_PLACES)} {REFERENCE_SYMBOL}"


def format_exchange_rate(value: Decimal) -> str:
    return format_fixed(value, EXCHANGE_RATE_PLACES)
