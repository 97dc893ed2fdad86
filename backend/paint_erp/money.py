# Overview: Decimal helpers for prices and invoice amounts.

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")

# Catalog prices up to 9,999,999.99
MAX_PRICE = Decimal("9999999.99")

# Scales of the Numeric price and tax-rate columns
CENT = Decimal("0.01")
RATE_STEP = Decimal("0.001")


def to_decimal(value) -> Decimal:
    """
    Convert a stored or submitted amount to Decimal.

    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.
    Raises InvalidOperation for anything that is not a plain number.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidOperation("booleans are not amounts")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        return Decimal(value.strip())
    raise InvalidOperation(f"unsupported amount type {type(value).__name__}")


def quantize_money(value: Decimal) -> Decimal:
    """Round half-up to cents, the scale prices are stored at."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def quantize_rate(value: Decimal) -> Decimal:
    """Round half-up to the 3 decimal places a tax rate is stored with."""
    return value.quantize(RATE_STEP, rounding=ROUND_HALF_UP)


def money_json(value) -> float | None:
    """Render an amount for JSON responses; rounding is left to the client."""
    if value is None:
        return None
    return float(value)
