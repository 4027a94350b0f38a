"""Helpers for Decimal normalization and rounding"""

from decimal import Decimal, ROUND_HALF_UP


def coerce_decimal(value) -> Decimal:
    """Normalize numeric values (None, int, float, str) to Decimal"""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves away from zero"""
    return int(coerce_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
