"""Helpers for Decimal normalization."""

from decimal import Decimal, InvalidOperation


def coerce_decimal(value) -> Decimal:
    """Normalize numeric values to Decimal.

    Floats are rejected: currency and rates must reach the core as strings,
    integers, or Decimals so no binary rounding leaks in.

    Args:
        value: Raw numeric value from SQL, JSON, or adapters.

    Returns:
        Decimal: Normalized numeric value.

    Raises:
        TypeError: If the value is missing, a float, or a bool.
        ValueError: If the value cannot be parsed as a finite Decimal.
    """
    if value is None:
        raise TypeError("Missing decimal value")
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Refusing to coerce {type(value).__name__} to Decimal")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a decimal value: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Not a finite decimal value: {value!r}")
    return result


def decimal_places(value: Decimal) -> int:
    """Return how many fractional digits a Decimal carries.

    Args:
        value: Finite Decimal value.

    Returns:
        int: Number of digits after the decimal point (0 for integers).
    """
    exponent = value.normalize().as_tuple().exponent
    return max(0, -int(exponent))


__all__ = ["coerce_decimal", "decimal_places"]
