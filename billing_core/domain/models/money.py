"""Fixed-precision money for INR amounts.

Amounts are held as an integer count of paise. Decimal strings are parsed
and produced only at I/O boundaries; every operation in between is integer
arithmetic, so totals never drift.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal

from billing_core.domain.errors import InvalidAmount, InvalidRate, NegativeResult
from billing_core.utils.decimal_utils import coerce_decimal, decimal_places

CURRENCY_CODE = "INR"
MINOR_UNITS = 100
CURRENCY_SCALE = 2
RATE_SCALE = 2

_RATE_DENOMINATOR = 100 * 10**RATE_SCALE


def _divide_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounding half away from zero."""
    quotient, remainder = divmod(abs(numerator), denominator)
    if remainder * 2 >= denominator:
        quotient += 1
    return quotient if numerator >= 0 else -quotient


def validate_rate(rate) -> Decimal:
    """Return a percentage rate as a Decimal with at most two places.

    Args:
        rate: Percentage as Decimal, int, or string (e.g. ``"18"``, ``"12.5"``).

    Returns:
        Decimal: The validated rate.

    Raises:
        InvalidRate: If the rate is a float, not a number, or carries more
            precision than can be applied exactly.
    """
    try:
        value = coerce_decimal(rate)
    except (TypeError, ValueError) as exc:
        raise InvalidRate(f"Invalid rate {rate!r}: {exc}") from exc
    if decimal_places(value) > RATE_SCALE:
        raise InvalidRate(
            f"Rate {rate} has more than {RATE_SCALE} decimal places"
        )
    return value


@dataclass(frozen=True, order=True)
class Money:
    """An exact INR amount in paise.

    Attributes:
        minor: Amount in minor units (1 rupee = 100 paise). May be negative
            for signed adjustments such as round-off.
    """

    minor: int

    def __post_init__(self) -> None:
        if isinstance(self.minor, bool) or not isinstance(self.minor, int):
            raise InvalidAmount(
                f"Money requires integer minor units, got {self.minor!r}"
            )

    @classmethod
    def zero(cls) -> "Money":
        return cls(0)

    @classmethod
    def parse(cls, raw) -> "Money":
        """Parse a decimal string, int, or Decimal expressed in rupees.

        Raises:
            InvalidAmount: If the value is malformed, a float, or has more
                than two decimal places.
        """
        try:
            value = coerce_decimal(raw)
        except (TypeError, ValueError) as exc:
            raise InvalidAmount(f"Invalid amount {raw!r}: {exc}") from exc
        return cls.from_decimal(value)

    @classmethod
    def from_decimal(cls, value: Decimal) -> "Money":
        if not isinstance(value, Decimal) or not value.is_finite():
            raise InvalidAmount(f"Invalid amount {value!r}")
        if decimal_places(value) > CURRENCY_SCALE:
            raise InvalidAmount(
                f"Amount {value} has more than {CURRENCY_SCALE} decimal places"
            )
        return cls(int(value * MINOR_UNITS))

    @staticmethod
    def total(values: Iterable["Money"]) -> "Money":
        """Sum an iterable of Money values (empty iterables sum to zero)."""
        return Money(sum(value.minor for value in values))

    def to_decimal(self) -> Decimal:
        return Decimal(self.minor).scaleb(-CURRENCY_SCALE)

    def add(self, other: "Money") -> "Money":
        return Money(self.minor + other.minor)

    def subtract(self, other: "Money", allow_negative: bool = True) -> "Money":
        result = self.minor - other.minor
        if result < 0 and not allow_negative:
            raise NegativeResult(f"{self} - {other} would be negative")
        return Money(result)

    def multiply(self, factor: int) -> "Money":
        if isinstance(factor, bool) or not isinstance(factor, int):
            raise InvalidAmount(f"Money can only be multiplied by int, got {factor!r}")
        return Money(self.minor * factor)

    def allocate(self, weights: Sequence[int]) -> tuple["Money", ...]:
        """Split this amount in proportion to ``weights``.

        Shares are floored to the paisa and the leftover paise go one each to
        the largest fractional remainders, earlier positions first on ties, so
        the shares always sum to this amount.

        Raises:
            InvalidAmount: If the amount or a weight is negative, or a non-zero
                amount has nothing to be spread over.
        """
        if self.is_negative() or any(weight < 0 for weight in weights):
            raise InvalidAmount(f"Cannot allocate {self} over weights {weights}")
        total_weight = sum(weights)
        if total_weight == 0:
            if self.is_zero():
                return tuple(Money.zero() for _ in weights)
            raise InvalidAmount(f"Cannot allocate {self} over zero weights")

        shares = []
        remainders = []
        for index, weight in enumerate(weights):
            share, remainder = divmod(self.minor * weight, total_weight)
            shares.append(share)
            remainders.append((-remainder, index))
        leftover = self.minor - sum(shares)
        for _, index in sorted(remainders)[:leftover]:
            shares[index] += 1
        return tuple(Money(share) for share in shares)

    def percent_of(self, rate) -> "Money":
        """Return ``rate`` percent of this amount, rounded half-up to a paisa."""
        validated = validate_rate(rate)
        scaled_rate = int(validated * 10**RATE_SCALE)
        return Money(_divide_half_up(self.minor * scaled_rate, _RATE_DENOMINATOR))

    def is_zero(self) -> bool:
        return self.minor == 0

    def is_negative(self) -> bool:
        return self.minor < 0

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return self.subtract(other)

    def __mul__(self, factor: int) -> "Money":
        if isinstance(factor, bool) or not isinstance(factor, int):
            return NotImplemented
        return self.multiply(factor)

    __rmul__ = __mul__

    def __neg__(self) -> "Money":
        return Money(-self.minor)

    def __str__(self) -> str:
        return format(self.to_decimal(), "f")


__all__ = [
    "CURRENCY_CODE",
    "CURRENCY_SCALE",
    "MINOR_UNITS",
    "RATE_SCALE",
    "Money",
    "validate_rate",
]
