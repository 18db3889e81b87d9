from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any


# Maximum single amount: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical amounts
MAX_AMOUNT_CENTS = 999_999_999

_CENT = Decimal("0.01")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate period closure)."""


class ImmutableRecordError(ConflictError):
    """Attempt to edit an append-only ledger row or a frozen snapshot."""


class NotFoundError(LookupError):
    """404-level missing record."""


def parse_amount_cents(value: Any, field: str = "amount") -> int:
    """
    Convert an operator-entered decimal amount ("150.00", 150, 150.5) to cents.

    - Rounds half-up to the cent
    - Rejects booleans, blanks, NaN/Infinity and negative values
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    if isinstance(value, float):
        # repr() keeps 0.1 as "0.1" instead of the binary expansion
        value = repr(value)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValidationError(f"{field} is required")
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a decimal number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if amount < 0:
        raise ValidationError(f"{field} must be >= 0")

    cents = int((amount.quantize(_CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())
    if cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS / 100:,.2f}")
    return cents


def parse_choice(value: Any, field: str, choices, *, default: str | None = None) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        if default is not None:
            return default
        raise ValidationError(f"{field} is required")
    normalized = str(value).strip()
    if normalized not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(sorted(choices))}")
    return normalized


def clean_text(value: Any, field: str, max_length: int) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def format_cents(cents: int) -> str:
    """150000 -> '1,500.00'; negative values keep their sign."""
    sign = "-" if cents < 0 else ""
    return f"{sign}{abs(cents) / 100:,.2f}"
