"""
Discount sources.

``RowDiscountSource`` totals the discount rows of an event with the pure
``DiscountCalculator``; ``FixedDiscountSource`` returns amounts set by the
caller.  Both satisfy the ``DiscountSource`` protocol read by
``TotalsService``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence

from pricing_engines.discounts import DiscountCalculator
from pricing_engines.extra_fees import FeeBases
from pricing_kernel.domain.rows import DiscountRow
from pricing_kernel.domain.values import Currency, Money


class RowDiscountSource:
    """
    Discount total computed from discount rows.

    Args:
        rows_for: Returns the current discount rows of an event, e.g. the
            draft of the event's discount ``DraftController``.
        currency: Currency used when no bases are given.
    """

    def __init__(self, rows_for: Callable[[str], Sequence[DiscountRow]], currency: str | Currency):
        self._rows_for = rows_for
        self._currency = currency
        self._calculator = DiscountCalculator()

    def total_discount(self, event_id: str, bases: FeeBases | None = None) -> Money:
        if bases is None:
            bases = FeeBases.zero(self._currency)
        return self._calculator.calculate(list(self._rows_for(event_id)), bases).total


class FixedDiscountSource:
    """Fixed discount per event; events not listed get ``default``."""

    def __init__(self, amounts: Mapping[str, Money] | None = None, default: Money | None = None,
                 currency: str | Currency = "VND"):
        self._amounts = dict(amounts or {})
        self._default = default if default is not None else Money.zero(currency)

    def set(self, event_id: str, amount: Money) -> None:
        self._amounts[event_id] = amount

    def total_discount(self, event_id: str, bases: FeeBases | None = None) -> Money:
        return self._amounts.get(event_id, self._default)
