"""Money value object.

Amounts are held as an integer count of minor units (cents) so that arithmetic
never accumulates binary floating-point error. Every operation returns a new
instance.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from fractions import Fraction
from typing import Self, TypeAlias

from fastcv_payments.domain.exceptions import PaymentError


MINOR_UNITS_PER_UNIT = 100

# amount_cents is stored in a BIGINT column
MAX_MINOR_UNITS = 2**63 - 1

# Scalars further than this many decimal places from 1 are rejected
MAX_SCALAR_EXPONENT = 40

Scalar: TypeAlias = int | float | Decimal
MoneyInput: TypeAlias = "str | int | float | Decimal | Money"

_CURRENCY_SYMBOLS = {
    "BRL": "R$",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}


def _to_decimal(value: object) -> Decimal:
    if isinstance(value, bool):
        raise PaymentError.invalid_amount(value, "not a number")
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, int):
        parsed = Decimal(value)
    elif isinstance(value, float):
        parsed = Decimal(repr(value))
    elif isinstance(value, str):
        text = value.strip().replace(",", ".", 1)
        try:
            parsed = Decimal(text)
        except InvalidOperation as e:
            raise PaymentError.invalid_amount(value, "not a number") from e
    else:
        raise PaymentError.invalid_amount(value, f"unsupported type {type(value).__name__}")

    if not parsed.is_finite():
        raise PaymentError.invalid_amount(value, "not a finite number")
    return parsed


def _to_fraction(value: object) -> Fraction:
    parsed = _to_decimal(value)
    if parsed and abs(parsed.adjusted()) > MAX_SCALAR_EXPONENT:
        raise PaymentError.invalid_amount(value, "out of range")
    return Fraction(parsed)


def _round_half_up(value: Fraction, source: object) -> int:
    """Round an exact value to whole minor units, halves away from zero."""
    units, remainder = divmod(abs(value.numerator), value.denominator)
    if 2 * remainder >= value.denominator:
        units += 1
    if units > MAX_MINOR_UNITS:
        raise PaymentError.invalid_amount(source, "out of range")
    return -units if value < 0 else units


def normalize_currency(currency: str) -> str:
    code = currency.strip().upper() if isinstance(currency, str) else ""
    if len(code) != 3 or not code.isalpha():
        raise PaymentError.invalid_input(
            f"Currency must be ISO 4217 code (3 letters), got {currency!r}",
            currency=str(currency),
        )
    return code


@dataclass(frozen=True)
class Money:
    minor_units: int
    currency: str = "BRL"

    def __post_init__(self) -> None:
        if isinstance(self.minor_units, bool) or not isinstance(self.minor_units, int):
            raise PaymentError.invalid_amount(self.minor_units, "minor units must be an integer")
        if abs(self.minor_units) > MAX_MINOR_UNITS:
            raise PaymentError.invalid_amount(self.minor_units, "out of range")
        object.__setattr__(self, "currency", normalize_currency(self.currency))

    @classmethod
    def create(cls, value: MoneyInput, currency: str, *, is_minor_units: bool = False) -> Self:
        """Build Money from a decimal amount, a minor-unit count or another Money.

        Strings may use either ``.`` or ``,`` as the decimal separator. Amounts
        are rounded half away from zero to the nearest minor unit.
        """
        if isinstance(value, Money):
            code = normalize_currency(currency)
            if value.currency != code:
                raise PaymentError.currency_mismatch(code, value.currency)
            return cls(value.minor_units, code)

        exact = _to_fraction(value)
        if not is_minor_units:
            exact *= MINOR_UNITS_PER_UNIT
        return cls(_round_half_up(exact, value), currency)

    @classmethod
    def from_minor_units(cls, minor_units: int, currency: str) -> Self:
        return cls.create(minor_units, currency, is_minor_units=True)

    from_cents = from_minor_units

    @classmethod
    def from_amount(cls, amount: str | Scalar, currency: str) -> Self:
        return cls.create(amount, currency)

    @classmethod
    def zero(cls, currency: str) -> Self:
        return cls(0, currency)

    @property
    def amount(self) -> Decimal:
        return Decimal(self.minor_units).scaleb(-2)

    def format(self) -> str:
        sign = "-" if self.minor_units < 0 else ""
        prefix = _CURRENCY_SYMBOLS.get(self.currency, f"{self.currency} ")
        return f"{sign}{prefix}{abs(self.amount):,.2f}"

    def _require_same_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise PaymentError.currency_mismatch(self.currency, other.currency)

    def _with_minor_units(self, minor_units: int) -> "Money":
        return Money(minor_units, self.currency)

    def add(self, other: "Money") -> "Money":
        self._require_same_currency(other)
        return self._with_minor_units(self.minor_units + other.minor_units)

    def subtract(self, other: "Money") -> "Money":
        self._require_same_currency(other)
        return self._with_minor_units(self.minor_units - other.minor_units)

    def multiply(self, multiplier: Scalar) -> "Money":
        factor = _to_fraction(multiplier)
        return self._with_minor_units(_round_half_up(self.minor_units * factor, multiplier))

    def divide(self, divisor: Scalar) -> "Money":
        factor = _to_fraction(divisor)
        if factor == 0:
            raise PaymentError.division_by_zero()
        return self._with_minor_units(_round_half_up(self.minor_units / factor, divisor))

    def percentage(self, percent: Scalar) -> "Money":
        factor = _to_fraction(percent) / 100
        return self._with_minor_units(_round_half_up(self.minor_units * factor, percent))

    def is_equal_to(self, other: "Money") -> bool:
        self._require_same_currency(other)
        return self.minor_units == other.minor_units

    def is_greater_than(self, other: "Money") -> bool:
        self._require_same_currency(other)
        return self.minor_units > other.minor_units

    def is_less_than(self, other: "Money") -> bool:
        self._require_same_currency(other)
        return self.minor_units < other.minor_units

    def is_zero(self) -> bool:
        return self.minor_units == 0

    def is_positive(self) -> bool:
        return self.minor_units > 0

    def is_negative(self) -> bool:
        return self.minor_units < 0

    def abs(self) -> "Money":
        return self._with_minor_units(abs(self.minor_units))

    def round(self) -> "Money":
        """Snap to the nearest whole currency unit."""
        units = _round_half_up(Fraction(self.minor_units, MINOR_UNITS_PER_UNIT), self.minor_units)
        return self._with_minor_units(units * MINOR_UNITS_PER_UNIT)

    def __add__(self, other: "Money") -> "Money":
        return self.add(other)

    def __sub__(self, other: "Money") -> "Money":
        return self.subtract(other)

    def __mul__(self, multiplier: Scalar) -> "Money":
        return self.multiply(multiplier)

    def __truediv__(self, divisor: Scalar) -> "Money":
        return self.divide(divisor)

    def __abs__(self) -> "Money":
        return self.abs()

    def __str__(self) -> str:
        return self.format()
