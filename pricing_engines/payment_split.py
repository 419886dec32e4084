"""
Payment Split Engine - Deposit/balance split of an event's quoted total.

Pure state machine with no I/O. ``PaymentSplitter`` holds the current
``PaymentSplit`` and applies one operator edit at a time; every edit
returns the new immutable split.

Invariants:
    - deposit_amount + balance_amount == total after every edit.
    - Amounts never go negative and the deposit never exceeds the total.
    - The total and the deposit amount are rounded to the currency; the
      balance is the exact remainder.
    - Percentages are derived from amounts at full precision, never the
      reverse, so repeated edits do not drift. ``amount_from_percent``
      reproduces the deposit amount from its derived percentage.
    - plan is FULL when the deposit is 0 or the whole total, otherwise
      INSTALLMENTS.
    - Toggling FULL -> INSTALLMENTS restores the last installment
      percentage and deposit due date.
    - The balance due date is never earlier than the deposit due date.

Usage:
    splitter = PaymentSplitter(Money.of("1500000", "VND"))
    splitter.set_deposit_percent(Decimal("30"))   # 450000 / 1050000
    split = splitter.set_deposit_amount(Money.of("500000", "VND"))
    split.deposit_percent                          # 33.333...
    split.payment_term                             # "33.33333333/66.66666667"
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from pricing_kernel.domain.numeric import HUNDRED, ZERO, clamp_percent, to_decimal
from pricing_kernel.domain.values import Money
from pricing_kernel.logging_config import get_logger

logger = get_logger("engines.payment_split")

FULL_PAYMENT_TERM = "100% full payment"


class PaymentPlan(str, Enum):
    FULL = "full"
    INSTALLMENTS = "installments"


def format_percent(value: Decimal, places: int = 8) -> str:
    """Percentage text with at most ``places`` decimals and no trailing zeros."""
    quantized = value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    text = format(quantized, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


@dataclass(frozen=True)
class PaymentSplit:
    """Immutable deposit/balance split."""

    total: Money
    plan: PaymentPlan
    deposit_amount: Money
    balance_amount: Money
    deposit_percent: Decimal
    balance_percent: Decimal
    deposit_due_date: date | None = None
    balance_due_date: date | None = None
    percent_places: int = 8

    @property
    def deposit_ratio(self) -> Decimal:
        """Deposit share as a 0..1 fraction."""
        return self.deposit_percent / HUNDRED

    @property
    def payment_term(self) -> str:
        if self.plan is PaymentPlan.FULL:
            return FULL_PAYMENT_TERM
        return (
            f"{format_percent(self.deposit_percent, self.percent_places)}/"
            f"{format_percent(self.balance_percent, self.percent_places)}"
        )

    def amount_from_percent(self, percent: Decimal) -> Money:
        """Deposit amount a percentage of this total maps to."""
        return (self.total * percent / HUNDRED).round()

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": str(self.total.amount),
            "currency": self.total.currency.code,
            "plan": self.plan.value,
            "deposit_amount": str(self.deposit_amount.amount),
            "balance_amount": str(self.balance_amount.amount),
            "deposit_percent": str(self.deposit_percent),
            "balance_percent": str(self.balance_percent),
            "deposit_due_date": self.deposit_due_date.isoformat() if self.deposit_due_date else None,
            "balance_due_date": self.balance_due_date.isoformat() if self.balance_due_date else None,
            "payment_term": self.payment_term,
        }


class PaymentSplitter:
    """
    Deposit/balance state machine.

    Args:
        total: The post-discount price to split.
        default_deposit_percent: Installment percentage used the first
            time the plan switches to INSTALLMENTS.
        percent_places: Decimals shown in ``payment_term``.
    """

    def __init__(
        self,
        total: Money,
        default_deposit_percent: Decimal = Decimal("50"),
        percent_places: int = 8,
        split: PaymentSplit | None = None,
    ):
        self._percent_places = percent_places
        self._cached_percent = clamp_percent(default_deposit_percent)
        self._cached_deposit_due: date | None = None
        if split is not None:
            self._split = replace(split, percent_places=percent_places)
            if split.plan is PaymentPlan.INSTALLMENTS:
                self._cached_percent = split.deposit_percent
                self._cached_deposit_due = split.deposit_due_date
            self.set_total(total)
        else:
            zero = Money.zero(total.currency)
            self._split = PaymentSplit(
                total=zero,
                plan=PaymentPlan.FULL,
                deposit_amount=zero,
                balance_amount=zero,
                deposit_percent=ZERO,
                balance_percent=HUNDRED,
                percent_places=percent_places,
            )
            self.set_total(total)

    @property
    def split(self) -> PaymentSplit:
        return self._split

    @property
    def cached_installment_percent(self) -> Decimal:
        return self._cached_percent

    # ------------------------------------------------------------------
    # Amount edits
    # ------------------------------------------------------------------

    def set_total(self, total: Money) -> PaymentSplit:
        """
        Re-split a new total, keeping the current deposit percentage.

        The total is rounded to the currency first so that a 100% deposit
        equals it exactly.
        """
        total = total.round()
        current = self._split
        if current.plan is PaymentPlan.FULL and current.deposit_amount.is_zero:
            deposit = Money.zero(total.currency)
        else:
            deposit = (total * current.deposit_percent / HUNDRED).round()
        return self._apply(total, deposit, "set_total")

    def set_deposit_amount(self, amount: Money | Decimal | str | int) -> PaymentSplit:
        """Set the deposit; balance and both percentages follow."""
        deposit = self._to_money(amount).round()
        return self._apply(self._split.total, deposit, "set_deposit_amount")

    def set_balance_amount(self, amount: Money | Decimal | str | int) -> PaymentSplit:
        """Set the balance; the deposit becomes the remainder."""
        total = self._split.total
        balance = self._to_money(amount)
        deposit = (total - balance).round()
        return self._apply(total, deposit, "set_balance_amount")

    def set_deposit_percent(self, percent: Decimal | str | int) -> PaymentSplit:
        """Set the deposit by percentage; the stored percentage is re-derived from the rounded amount."""
        total = self._split.total
        deposit = self._split.amount_from_percent(clamp_percent(percent))
        return self._apply(total, deposit, "set_deposit_percent")

    def set_balance_percent(self, percent: Decimal | str | int) -> PaymentSplit:
        return self.set_deposit_percent(HUNDRED - clamp_percent(percent))

    # ------------------------------------------------------------------
    # Plan and due dates
    # ------------------------------------------------------------------

    def set_plan(self, plan: PaymentPlan | str) -> PaymentSplit:
        """
        Toggle between FULL and INSTALLMENTS.

        FULL zeroes the deposit after caching the installment percentage
        and deposit due date; INSTALLMENTS restores them.
        """
        plan = PaymentPlan(plan)
        current = self._split
        if plan is current.plan:
            return current

        if plan is PaymentPlan.FULL:
            self._cache_installments(current)
            self._split = replace(current, deposit_due_date=None)
            result = self._apply(current.total, Money.zero(current.total.currency), "set_plan")
        else:
            self._split = replace(current, deposit_due_date=self._cached_deposit_due)
            deposit = current.amount_from_percent(self._cached_percent)
            result = self._apply(current.total, deposit, "set_plan")
            result = self._clamp_due_dates(result)
            self._split = result
        return result

    def set_deposit_due_date(self, due: date | None) -> PaymentSplit:
        self._split = self._clamp_due_dates(replace(self._split, deposit_due_date=due))
        if self._split.plan is PaymentPlan.INSTALLMENTS:
            self._cached_deposit_due = due
        return self._split

    def set_balance_due_date(self, due: date | None) -> PaymentSplit:
        self._split = self._clamp_due_dates(replace(self._split, balance_due_date=due))
        return self._split

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _to_money(self, amount: Money | Decimal | str | int) -> Money:
        currency = self._split.total.currency
        if isinstance(amount, Money):
            if amount.currency != currency:
                raise ValueError(
                    f"Payment amount currency {amount.currency} does not match {currency}"
                )
            return amount
        return Money.of(to_decimal(amount, field="payment_amount"), currency)

    @staticmethod
    def _clamp_due_dates(split: PaymentSplit) -> PaymentSplit:
        deposit_due, balance_due = split.deposit_due_date, split.balance_due_date
        if deposit_due is not None and balance_due is not None and balance_due < deposit_due:
            return replace(split, balance_due_date=deposit_due)
        return split

    def _cache_installments(self, split: PaymentSplit) -> None:
        if split.plan is PaymentPlan.INSTALLMENTS:
            self._cached_percent = split.deposit_percent
            self._cached_deposit_due = split.deposit_due_date

    def _apply(self, total: Money, deposit: Money, operation: str) -> PaymentSplit:
        previous = self._split
        zero = Money.zero(total.currency)

        if not total.is_positive:
            # Nothing to split; a negative total stays visible on the balance.
            deposit = zero
        elif deposit < zero:
            deposit = zero
        elif deposit > total:
            deposit = total
        balance = total - deposit

        if total.is_positive:
            deposit_percent = deposit.amount / total.amount * HUNDRED
        elif previous.plan is PaymentPlan.INSTALLMENTS:
            deposit_percent = previous.deposit_percent
        else:
            deposit_percent = ZERO
        balance_percent = HUNDRED - deposit_percent

        if total.is_positive:
            plan = PaymentPlan.FULL if deposit.is_zero or deposit == total else PaymentPlan.INSTALLMENTS
        else:
            plan = previous.plan

        split = PaymentSplit(
            total=total,
            plan=plan,
            deposit_amount=deposit,
            balance_amount=balance,
            deposit_percent=deposit_percent,
            balance_percent=balance_percent,
            deposit_due_date=previous.deposit_due_date,
            balance_due_date=previous.balance_due_date,
            percent_places=self._percent_places,
        )
        self._split = split
        self._cache_installments(split)

        logger.debug("payment_split_updated", extra={
            "operation": operation,
            "plan": plan.value,
            "total": str(total.amount),
            "deposit_amount": str(deposit.amount),
            "balance_amount": str(balance.amount),
            "deposit_percent": str(deposit_percent),
        })
        return split
