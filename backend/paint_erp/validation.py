from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

from .models import CONTAINER_SIZES
from .money import MAX_PRICE, quantize_money, to_decimal

# Largest value any Integer column accepts on every supported database
MAX_INT = 2_147_483_647

# Per-size and total stock ceiling; four sizes at the cap still fit MAX_INT
MAX_STOCK = 100_000_000


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """Duplicate brand name or product code."""


class NotFoundError(ValueError):
    """404-level missing brand, product or invoice."""


class InsufficientStockError(ValueError):
    """Requested quantity exceeds what is on hand."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def coerce_int(value: Any, field_name: str, *, minimum: int | None = 0, maximum: int | None = MAX_INT) -> int:
    """
    Strict integer coercion: rejects bools, floats, decimals and scientific notation.
    Digit strings are accepted because form posts send everything as text.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field_name} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field_name} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field_name} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field_name} must be an integer")
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field_name} must be an integer, not a decimal")
        result = int(value)
    else:
        raise ValidationError(f"{field_name} must be an integer")

    if minimum is not None and result < minimum:
        if minimum == 0:
            raise ValidationError(f"{field_name} cannot be negative")
        raise ValidationError(f"{field_name} must be at least {minimum}")
    if maximum is not None and result > maximum:
        raise ValidationError(f"{field_name} cannot exceed {maximum}")
    return result


def coerce_count(value: Any, field_name: str, *, minimum: int = 0) -> int:
    """Stock quantity, threshold or cart quantity, capped at MAX_STOCK."""
    return coerce_int(value, field_name, minimum=minimum, maximum=MAX_STOCK)


def coerce_amount(value: Any, field_name: str, *, maximum: Decimal | None = MAX_PRICE) -> Decimal:
    """Non-negative decimal amount (price, tax rate)."""
    try:
        amount = to_decimal(value)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be a number")
    if amount < 0:
        raise ValidationError(f"{field_name} cannot be negative")
    if maximum is not None and amount > maximum:
        raise ValidationError(f"{field_name} cannot exceed {maximum}")
    return amount


def coerce_money(value: Any, field_name: str) -> Decimal:
    """Price rounded to cents so what is computed with is what gets stored."""
    return quantize_money(coerce_amount(value, field_name))


def coerce_text(value: Any, field_name: str, *, max_length: int | None = None, required: bool = False) -> str:
    if value is None:
        value = ""
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise ValidationError(f"{field_name} must be text")
    text = str(value).strip()
    if required and not text:
        raise ValidationError(f"{field_name} is required")
    if max_length and len(text) > max_length:
        raise ValidationError(f"{field_name} exceeds max length {max_length}")
    return text


def coerce_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false", "1", "0"}:
        return value.strip().lower() in {"true", "1"}
    raise ValidationError(f"{field_name} must be true or false")


def coerce_size(value: Any, field_name: str = "size") -> str:
    size = coerce_text(value, field_name, required=True)
    if size not in CONTAINER_SIZES:
        raise ValidationError(
            f"Invalid {field_name} {size!r}. Allowed sizes: {', '.join(CONTAINER_SIZES)}"
        )
    return size


def coerce_size_map(value: Any, field_name: str, coerce_one: Callable[[Any, str], Any]) -> dict:
    """Validate a {size: value} mapping; unknown size labels are rejected."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError(f"{field_name} must be an object keyed by container size")
    result = {}
    for size, raw in value.items():
        if size not in CONTAINER_SIZES:
            raise ValidationError(
                f"Invalid size {size!r} in {field_name}. Allowed sizes: {', '.join(CONTAINER_SIZES)}"
            )
        if raw is None or raw == "":
            raw = 0
        result[size] = coerce_one(raw, f"{field_name}.{size}")
    return result


def coerce_stock_by_size(value: Any, field_name: str = "stockBySize") -> dict[str, int]:
    return coerce_size_map(value, field_name, coerce_count)


def coerce_price_by_size(value: Any, field_name: str = "priceBySize") -> dict[str, Decimal]:
    return coerce_size_map(value, field_name, coerce_money)


@dataclass(frozen=True)
class PayloadPolicy:
    """
    Central policy layer for JSON payloads:
    - fields: wire key -> (attribute name, coercer)
    - required_on_create: wire keys required for POST
    """
    fields: dict[str, tuple[str, Callable[[Any, str], Any]]]
    required_on_create: set[str] = field(default_factory=set)


def validate_payload(*, payload: Any, policy: PayloadPolicy, partial: bool) -> dict:
    """
    Validates + normalizes incoming JSON.

    Unknown keys are ignored so the UI can post whole form objects; known
    keys are coerced and renamed to their attribute names.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(
            key for key in policy.required_on_create
            if payload.get(key) is None or (isinstance(payload.get(key), str) and not payload[key].strip())
        )
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    patch: dict = {}
    for key, (attr, coerce) in policy.fields.items():
        if key not in payload:
            continue
        patch[attr] = coerce(payload[key], key)
    return patch
