"""
Values -- Immutable, self-validating monetary value objects.

Responsibility:
    Provides Currency and Money, the value types every section total,
    fee amount, snapshot field and payment split is expressed in.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every other domain module. No outward dependencies except
    pricing_kernel.domain.currency (CurrencyRegistry).

Invariants enforced:
    - Monetary amounts are Decimal, never float.
    - Currency codes are validated against the registry at construction.
    - Arithmetic never silently mixes currencies.
    - Amounts are never rounded implicitly; callers call ``.round()``.

Failure modes:
    - ValueError on construction with invalid amounts or currencies.
    - TypeError when the currency argument is of the wrong type.
    - ValueError when arithmetic mixes different currencies.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from pricing_kernel.domain.currency import CurrencyRegistry


@dataclass(frozen=True, slots=True)
class Currency:
    """
    ISO 4217 currency code value object.

    Guarantees:
        - Immutable and hashable
        - code is always uppercase and stripped of whitespace
        - code is always a registered currency
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
    def quantum(self) -> Decimal:
        """Smallest representable amount in this currency."""
        return CurrencyRegistry.get_quantum(self.code)

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"Currency({self.code!r})"


def _coerce_currency(currency: str | Currency) -> Currency:
    if isinstance(currency, str):
        return Currency(currency)
    if not isinstance(currency, Currency):
        raise TypeError(f"currency must be Currency or str, got {type(currency)}")
    return currency


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount value object.

    Contract:
        Pairs a Decimal amount with its Currency. Section totals, fee
        amounts and payment amounts are all Money.

    Guarantees:
        - amount is always a Decimal (never float)
        - Arithmetic operations enforce same-currency constraint

    Non-goals:
        - Does NOT perform currency conversion
        - Does NOT auto-round -- callers must explicitly call .round()
    """

    amount: Decimal
    currency: Currency

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            if isinstance(self.amount, float):
                raise ValueError(f"Money amount must not be float: {self.amount!r}")
            try:
                object.__setattr__(self, "amount", Decimal(str(self.amount)))
            except (InvalidOperation, ValueError) as e:
                raise ValueError(f"Invalid amount: {self.amount}") from e
        if not self.amount.is_finite():
            raise ValueError(f"Money amount must be finite: {self.amount}")
        object.__setattr__(self, "currency", _coerce_currency(self.currency))

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str | Currency) -> Money:
        """
        Factory method for creating Money.

        Args:
            amount: The monetary amount (Decimal, str or int; never float).
            currency: ISO 4217 currency code or Currency object.

        Raises:
            ValueError: If amount cannot be converted or currency is invalid.
        """
        if isinstance(amount, (str, int)):
            amount = Decimal(str(amount))
        return cls(amount=amount, currency=_coerce_currency(currency))

    @classmethod
    def zero(cls, currency: str | Currency) -> Money:
        """Create a zero amount in the given currency."""
        return cls(amount=Decimal("0"), currency=_coerce_currency(currency))

    @classmethod
    def total(cls, items: Iterable[Money], currency: str | Currency) -> Money:
        """Sum Money values; an empty iterable sums to zero."""
        result = cls.zero(currency)
        for item in items:
            result = result + item
        return result

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
        """Round to the currency's decimal places. Returns a new Money."""
        rounded = self.amount.quantize(self.currency.quantum, rounding=rounding)
        return Money(amount=rounded, currency=self.currency)

    def _check_currency(self, other: Money, operation: str) -> None:
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot {operation} Money with different currencies: "
                f"{self.currency} and {other.currency}"
            )

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "add")
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "subtract")
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def __neg__(self) -> Money:
        return Money(amount=-self.amount, currency=self.currency)

    def __abs__(self) -> Money:
        return Money(amount=abs(self.amount), currency=self.currency)

    def __mul__(self, factor: Decimal | int | str) -> Money:
        """Multiply by a scalar."""
        if isinstance(factor, (int, str)):
            factor = Decimal(str(factor))
        if not isinstance(factor, Decimal):
            return NotImplemented
        return Money(amount=self.amount * factor, currency=self.currency)

    def __rmul__(self, factor: Decimal | int | str) -> Money:
        return self.__mul__(factor)

    def __truediv__(self, divisor: Decimal | int | str) -> Money:
        """Divide by a scalar."""
        if isinstance(divisor, (int, str)):
            divisor = Decimal(str(divisor))
        if not isinstance(divisor, Decimal):
            return NotImplemented
        return Money(amount=self.amount / divisor, currency=self.currency)

    def __lt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.amount <= other.amount

    def __gt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.amount > other.amount

    def __ge__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.amount >= other.amount

    def __str__(self) -> str:
        return f"{self.amount} {self.currency.code}"

    def __repr__(self) -> str:
        return f"Money({self.amount!r}, {self.currency!r})"
