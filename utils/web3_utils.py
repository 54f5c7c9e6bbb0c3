"""
Amount helpers shared by the decision and execution paths.

Human amounts are ``Decimal`` values; on-chain amounts are ``int`` values in
the token's smallest unit. Nothing on the money-bearing path goes through
``float``.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_DOWN, InvalidOperation
from typing import Any

# smallest decimal exponent still written without scientific notation
PLAIN_MIN_EXPONENT = -6


def to_decimal(value: Any) -> Decimal:
    """Convert a JSON/DB value into ``Decimal`` without float artefacts.

    Floats are converted through ``str`` so that ``80.0`` becomes
    ``Decimal("80.0")`` rather than its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = repr(value)
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Not a decimal amount: {value!r}") from e


def to_base_units(amount: Decimal, decimals: int) -> int:
    """Scale a human amount to integer base units, rounding toward zero."""
    scaled = to_decimal(amount).scaleb(int(decimals))
    return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def from_base_units(raw: int, decimals: int) -> Decimal:
    return Decimal(int(raw)).scaleb(-int(decimals))


def format_plain_decimal(amount: Decimal) -> str:
    """Render ``amount`` as a plain decimal string with no trailing zeros."""
    text = format(to_decimal(amount).normalize(), "f")
    return "0" if text in ("-0", "") else text


def renders_scientific(amount: Any) -> bool:
    """True when ``amount`` is too small to write as a plain decimal (below 1e-6).

    Non-finite values count as unrepresentable. Large amounts never do,
    whatever exponent their ``Decimal`` form carries.
    """
    value = to_decimal(amount)
    if not value.is_finite():
        return True
    return value != 0 and value.adjusted() < PLAIN_MIN_EXPONENT
