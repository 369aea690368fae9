"""
Exact decimal helpers for vault amounts.

Ledger amounts are exact-precision decimal strings (Numeric 38,10: up to 28
integer digits and 10 decimal places). Every amount in this package is a
Decimal so ledger mode and demo mode share one representation, one range and
one rounding rule.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN, localcontext
from typing import Any

from canton_vault.core.errors import InvalidArgumentError

# Ledger Numeric 38,10
AMOUNT_SCALE = 10
AMOUNT_QUANTUM = Decimal(10) ** -AMOUNT_SCALE
AMOUNT_PRECISION = 38
AMOUNT_INTEGER_DIGITS = AMOUNT_PRECISION - AMOUNT_SCALE
# Largest magnitude is 10**28 - 10**-10
AMOUNT_LIMIT = Decimal(10) ** AMOUNT_INTEGER_DIGITS
# Intermediate precision: the product of two amounts is exact before dividing
CONTEXT_PREC = 2 * AMOUNT_PRECISION

ZERO = Decimal("0")
ONE = Decimal("1")


def _in_range(value: Decimal) -> bool:
    return value.is_zero() or value.adjusted() < AMOUNT_INTEGER_DIGITS


def to_amount(value: Any) -> Decimal:
    """
    Coerce str/int/float/Decimal into a Decimal.

    Floats go through str() so 0.1 stays 0.1 rather than its binary expansion.
    Raises ValueError for anything that is not a finite number or does not
    fit a ledger Numeric (28 integer digits).
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"not an amount: {value!r}")
    if isinstance(value, Decimal):
        dec = value
    else:
        try:
            dec = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as exc:
            raise ValueError(f"not an amount: {value!r}") from exc
    if not dec.is_finite():
        raise ValueError(f"not a finite amount: {value!r}")
    if not _in_range(dec):
        raise ValueError(f"amount out of range: {value!r}")
    return dec


def quantize(value: Decimal) -> Decimal:
    """
    Round to ledger scale (ROUND_HALF_EVEN).

    A result with more than 28 integer digits cannot be represented on the
    ledger and raises InvalidArgumentError.
    """
    if _in_range(value):
        with localcontext() as ctx:
            ctx.prec = CONTEXT_PREC
            result = value.quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_EVEN)
        # rounding may carry into a 29th integer digit
        if _in_range(result):
            return result
    raise InvalidArgumentError("amount out of range", value=value, limit=AMOUNT_LIMIT)


def mul_div(a: Decimal, b: Decimal, c: Decimal) -> Decimal:
    """Compute a * b / c at conversion precision, then quantize."""
    with localcontext() as ctx:
        ctx.prec = CONTEXT_PREC
        result = a * b / c
    return quantize(result)


def format_amount(value: Decimal) -> str:
    """
    Render a Decimal as a plain decimal string for the ledger.

    No exponent notation, trailing zeros stripped ("100.0000000000" -> "100.0").
    """
    dec = quantize(value)
    text = format(dec, "f")
    if "." in text:
        text = text.rstrip("0")
        if text.endswith("."):
            text += "0"
    else:
        text += ".0"
    return text


def as_number(value: Decimal) -> float:
    """JSON-friendly rendering for callers that expect numbers."""
    return float(value)
