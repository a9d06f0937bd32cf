"""
Money -- Exact decimal arithmetic for ledger and matching code.

Responsibility:
    Every monetary comparison and sum in the kernel goes through Decimal.
    This module is the one place raw inputs (int, str, float, Decimal) are
    turned into Decimal, and the one place a Decimal is turned back into a
    float for presentation.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Floats are converted through their shortest repr string, never through
      their binary expansion: to_decimal(0.1) == Decimal("0.1").
    - Rounding is ROUND_HALF_UP, two places by default.

Failure modes:
    - ValueError for input that is not a finite number.
    - ZeroDivisionError from divide() when the divisor is zero.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

Numeric = Decimal | int | str | float

ZERO = Decimal("0")


def to_decimal(value: Numeric) -> Decimal:
    """
    Convert a supported value into a Decimal.

    Raises:
        ValueError: value is None, a bool, unparseable, NaN or infinite.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or value is None:
        raise ValueError(f"Cannot convert {value!r} to Decimal")
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"Cannot convert {value!r} to Decimal") from exc
    else:
        raise ValueError(f"Cannot convert {type(value).__name__} to Decimal")

    if not result.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    return result


def add(*values: Numeric) -> Decimal:
    """Sum any number of values exactly.  add() == 0."""
    total = ZERO
    for value in values:
        total += to_decimal(value)
    return total


def subtract(a: Numeric, b: Numeric) -> Decimal:
    return to_decimal(a) - to_decimal(b)


def multiply(a: Numeric, b: Numeric) -> Decimal:
    return to_decimal(a) * to_decimal(b)


def divide(a: Numeric, b: Numeric) -> Decimal:
    divisor = to_decimal(b)
    if divisor == 0:
        raise ZeroDivisionError("Division by zero")
    return to_decimal(a) / divisor


def compare(a: Numeric, b: Numeric) -> int:
    """Return -1, 0 or 1."""
    left, right = to_decimal(a), to_decimal(b)
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def equals(a: Numeric, b: Numeric) -> bool:
    return to_decimal(a) == to_decimal(b)


def to_number(value: Numeric) -> float:
    """Presentation boundary only.  Never feed the result back into arithmetic."""
    return float(to_decimal(value))


def round_money(value: Numeric, places: int = 2) -> Decimal:
    exponent = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def tolerance_band(amount: Numeric, pct: Numeric) -> tuple[Decimal, Decimal]:
    """
    Return (amount * (1 - pct), amount * (1 + pct)).

    For a negative amount the bounds are swapped so low <= high.
    """
    base = to_decimal(amount)
    fraction = to_decimal(pct)
    low = base * (1 - fraction)
    high = base * (1 + fraction)
    if low > high:
        low, high = high, low
    return low, high


def within_tolerance(value: Numeric, target: Numeric, pct: Numeric) -> bool:
    """True when value lies in the closed tolerance band around target."""
    low, high = tolerance_band(target, pct)
    return low <= to_decimal(value) <= high
