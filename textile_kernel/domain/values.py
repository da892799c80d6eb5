"""
Values -- Immutable, self-validating domain value objects.

Responsibility:
    Provides the value types every ledger and inventory computation is
    expressed in: Currency, Money and Quantity. Bills, manual entries,
    payments and stock movements never carry raw floats or bare Decimals.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every other domain module. No outward dependencies except
    textile_kernel.domain.currency (CurrencyRegistry).

Invariants enforced:
    - Monetary amounts are always Decimal, paired with their Currency
    - Currency codes are validated against ISO 4217 at construction time
    - Rounding precision and tolerance derive from the currency's decimal
      places, never from a hardcoded constant

Failure modes:
    - ValueError on construction with invalid amounts, currencies or units
    - ValueError when arithmetic mixes different currencies or units

Audit relevance:
    A payment rounded differently on two loads would make the remaining
    balance drift. Money.round() is the single rounding point used by the
    payment engine so repeated loads produce identical arithmetic.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from textile_kernel.domain.currency import CurrencyRegistry


def to_decimal(value: object, default: Decimal | None = None) -> Decimal:
    """
    Coerce a store value (Decimal, int, str, float) into a Decimal.

    Floats go through ``str()`` so 0.1 becomes Decimal("0.1"), not the
    binary expansion. Returns ``default`` when given and the value cannot
    be parsed; otherwise raises ValueError.
    """
    if isinstance(value, Decimal):
        if value.is_finite():
            return value
    elif value is not None and not isinstance(value, bool):
        try:
            parsed = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            parsed = None
        if parsed is not None and parsed.is_finite():
            return parsed
    if default is not None:
        return default
    raise ValueError(f"Cannot convert {value!r} to Decimal")


@dataclass(frozen=True, slots=True)
class Currency:
    """
    ISO 4217 currency code value object.

    Contract:
        Wraps a three-letter ISO 4217 code, normalized (uppercased) on
        construction. Invalid codes are rejected immediately.

    Guarantees:
        - Immutable and hashable
        - code is always a registered ISO 4217 code

    Non-goals:
        - Does NOT perform currency conversion
    """

    code: str

    def __post_init__(self) -> None:
        normalized = self.code.upper().strip() if self.code else ""
        if not CurrencyRegistry.is_valid(normalized):
            raise ValueError(f"Invalid ISO 4217 currency code: {self.code}")
        object.__setattr__(self, "code", normalized)

    @property
    def decimal_places(self) -> int:
        return CurrencyRegistry.get_decimal_places(self.code)

    @property
    def rounding_tolerance(self) -> Decimal:
        """Smallest representable unit of this currency."""
        return CurrencyRegistry.get_rounding_tolerance(self.code)

    @property
    def name(self) -> str:
        info = CurrencyRegistry.get_info(self.code)
        return info.name if info else self.code

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"Currency({self.code!r})"


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount value object.

    Contract:
        Pairs a Decimal amount with its Currency. Bill totals, remaining
        balances and payment amounts are all Money.

    Guarantees:
        - Immutable and hashable
        - amount is always a Decimal (never float)
        - Arithmetic and comparison refuse to mix currencies

    Non-goals:
        - Does NOT auto-round; callers call .round() explicitly
        - Does NOT compare with tolerance; see within() for that
    """

    amount: Decimal
    currency: Currency

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            try:
                object.__setattr__(self, "amount", Decimal(str(self.amount)))
            except (InvalidOperation, ValueError) as e:
                raise ValueError(f"Invalid amount: {self.amount}") from e

        if isinstance(self.currency, str):
            object.__setattr__(self, "currency", Currency(self.currency))
        elif not isinstance(self.currency, Currency):
            raise TypeError(f"currency must be Currency or str, got {type(self.currency)}")

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str | Currency) -> Money:
        """
        Factory method for creating Money.

        Raises:
            ValueError: If amount cannot be converted or currency is invalid.
        """
        if isinstance(amount, (str, int)):
            amount = Decimal(str(amount))
        if isinstance(currency, str):
            currency = Currency(currency)
        return cls(amount=amount, currency=currency)

    @classmethod
    def zero(cls, currency: str | Currency) -> Money:
        if isinstance(currency, str):
            currency = Currency(currency)
        return cls(amount=Decimal("0"), currency=currency)

    @property
    def is_zero(self) -> bool:
        return self.amount == Decimal("0")

    @property
    def is_positive(self) -> bool:
        return self.amount > Decimal("0")

    @property
    def is_negative(self) -> bool:
        return self.amount < Decimal("0")

    def round(self, rounding: str = ROUND_HALF_UP) -> Money:
        """Round to the currency's decimal places (half-up by default)."""
        decimal_places = self.currency.decimal_places
        quantize_str = "0." + "0" * decimal_places if decimal_places > 0 else "1"
        rounded = self.amount.quantize(Decimal(quantize_str), rounding=rounding)
        return Money(amount=rounded, currency=self.currency)

    def clamp(self, lower: Money, upper: Money) -> Money:
        """Return self bounded into [lower, upper]."""
        if self < lower:
            return lower
        if self > upper:
            return upper
        return self

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot add Money with different currencies: "
                f"{self.currency} and {other.currency}"
            )
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot subtract Money with different currencies: "
                f"{self.currency} and {other.currency}"
            )
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def __neg__(self) -> Money:
        return Money(amount=-self.amount, currency=self.currency)

    def __mul__(self, factor: Decimal | int | str) -> Money:
        """Multiply by a scalar (markups, quantities)."""
        if isinstance(factor, (int, str)):
            factor = Decimal(str(factor))
        if not isinstance(factor, Decimal):
            return NotImplemented
        return Money(amount=self.amount * factor, currency=self.currency)

    def __rmul__(self, factor: Decimal | int | str) -> Money:
        return self.__mul__(factor)

    def _check_comparable(self, other: Money) -> None:
        if self.currency != other.currency:
            raise ValueError("Cannot compare Money with different currencies")

    def __lt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_comparable(other)
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_comparable(other)
        return self.amount <= other.amount

    def __gt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_comparable(other)
        return self.amount > other.amount

    def __ge__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_comparable(other)
        return self.amount >= other.amount

    def __str__(self) -> str:
        return f"{self.amount} {self.currency.code}"

    def __repr__(self) -> str:
        return f"Money({self.amount!r}, {self.currency!r})"


@dataclass(frozen=True, slots=True)
class Quantity:
    """
    Numeric quantity with unit value object.

    Contract:
        Pairs a Decimal value with its unit of measure ("kg", "meters",
        "pieces"). Used for pending items and stock movements.

    Guarantees:
        - Immutable and hashable
        - value is always Decimal (never float)
        - unit is always a non-empty, stripped string
        - Arithmetic enforces the same-unit constraint

    Non-goals:
        - Does NOT perform unit conversion
    """

    value: Decimal
    unit: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, Decimal):
            try:
                object.__setattr__(self, "value", Decimal(str(self.value)))
            except (InvalidOperation, ValueError) as e:
                raise ValueError(f"Invalid quantity value: {self.value}") from e

        if not self.unit or not self.unit.strip():
            raise ValueError("Quantity unit is required")
        object.__setattr__(self, "unit", self.unit.strip())

    @classmethod
    def of(cls, value: Decimal | str | int, unit: str) -> Quantity:
        if isinstance(value, (str, int)):
            value = Decimal(str(value))
        return cls(value=value, unit=unit)

    @classmethod
    def zero(cls, unit: str) -> Quantity:
        return cls(value=Decimal("0"), unit=unit)

    @property
    def is_positive(self) -> bool:
        return self.value > Decimal("0")

    def __add__(self, other: Quantity) -> Quantity:
        if not isinstance(other, Quantity):
            return NotImplemented
        if self.unit != other.unit:
            raise ValueError(
                f"Cannot add Quantity with different units: {self.unit} and {other.unit}"
            )
        return Quantity(value=self.value + other.value, unit=self.unit)

    def __sub__(self, other: Quantity) -> Quantity:
        if not isinstance(other, Quantity):
            return NotImplemented
        if self.unit != other.unit:
            raise ValueError(
                f"Cannot subtract Quantity with different units: {self.unit} and {other.unit}"
            )
        return Quantity(value=self.value - other.value, unit=self.unit)

    def __neg__(self) -> Quantity:
        return Quantity(value=-self.value, unit=self.unit)

    def __str__(self) -> str:
        return f"{self.value} {self.unit}"

    def __repr__(self) -> str:
        return f"Quantity({self.value!r}, {self.unit!r})"
