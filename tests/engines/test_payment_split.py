"""
Tests for the Payment Split Engine.

Covers:
- Deposit/balance edits by amount and by percentage
- Plan derivation and the FULL <-> INSTALLMENTS toggle
- Currency rounding and clamping
- Due-date ordering
- Payment term text
"""

from datetime import date
from decimal import Decimal

import pytest

from pricing_engines.payment_split import (
    FULL_PAYMENT_TERM,
    PaymentPlan,
    PaymentSplitter,
    format_percent,
)
from pricing_kernel.domain.values import Money


def vnd(amount) -> Money:
    return Money.of(str(amount), "VND")


class TestAmountEdits:
    def setup_method(self):
        self.splitter = PaymentSplitter(vnd(1500000))

    def test_starts_as_full_payment(self):
        split = self.splitter.split
        assert split.plan is PaymentPlan.FULL
        assert split.deposit_amount.is_zero
        assert split.balance_amount == vnd(1500000)
        assert split.payment_term == FULL_PAYMENT_TERM

    def test_deposit_percent(self):
        split = self.splitter.set_deposit_percent(Decimal("30"))
        assert split.deposit_amount == vnd(450000)
        assert split.balance_amount == vnd(1050000)
        assert split.plan is PaymentPlan.INSTALLMENTS
        assert split.payment_term == "30/70"

    def test_deposit_amount_derives_percentages(self):
        self.splitter.set_deposit_percent(Decimal("30"))
        split = self.splitter.set_deposit_amount(vnd(500000))
        assert split.balance_amount == vnd(1000000)
        assert abs(split.deposit_percent - Decimal(100) / Decimal(3)) < Decimal("1E-20")
        assert split.payment_term == "33.33333333/66.66666667"

    def test_balance_amount(self):
        split = self.splitter.set_balance_amount(vnd(1200000))
        assert split.deposit_amount == vnd(300000)
        assert split.deposit_percent == Decimal("20")

    def test_balance_percent(self):
        split = self.splitter.set_balance_percent("75")
        assert split.deposit_amount == vnd(375000)
        assert split.balance_percent == Decimal("75")

    def test_deposit_rounded_to_currency(self):
        splitter = PaymentSplitter(vnd(1000))
        split = splitter.set_deposit_percent("33.333")
        assert split.deposit_amount == vnd(333)
        assert split.balance_amount == vnd(667)
        assert split.deposit_amount + split.balance_amount == vnd(1000)

    def test_percent_reproduces_amount(self):
        split = self.splitter.set_deposit_amount(vnd(123457))
        assert split.amount_from_percent(split.deposit_percent) == vnd(123457)

    def test_deposit_clamped_to_total(self):
        split = self.splitter.set_deposit_amount(vnd(9000000))
        assert split.deposit_amount == vnd(1500000)
        assert split.balance_amount.is_zero
        assert split.plan is PaymentPlan.FULL

    def test_negative_deposit_clamped_to_zero(self):
        split = self.splitter.set_deposit_amount("-5")
        assert split.deposit_amount.is_zero
        assert split.plan is PaymentPlan.FULL

    def test_lenient_text_amount(self):
        split = self.splitter.set_deposit_amount("1.000.000")
        assert split.deposit_amount == vnd(1000000)
        assert split.balance_amount == vnd(500000)

    def test_currency_mismatch(self):
        with pytest.raises(ValueError, match="does not match"):
            self.splitter.set_deposit_amount(Money.of("10", "USD"))

    def test_set_total_keeps_percentage(self):
        self.splitter.set_deposit_percent("30")
        split = self.splitter.set_total(vnd(2000000))
        assert split.deposit_amount == vnd(600000)
        assert split.balance_amount == vnd(1400000)

    def test_set_total_keeps_full_payment(self):
        split = self.splitter.set_total(vnd(2000000))
        assert split.plan is PaymentPlan.FULL
        assert split.deposit_amount.is_zero
        assert split.balance_amount == vnd(2000000)

    def test_negative_total(self):
        self.splitter.set_deposit_percent("30")
        split = self.splitter.set_total(vnd(-100))
        assert split.deposit_amount.is_zero
        assert split.balance_amount == vnd(-100)
        assert split.plan is PaymentPlan.INSTALLMENTS
        assert split.deposit_percent == Decimal("30")

    def test_usd_rounding(self):
        splitter = PaymentSplitter(Money.of("100.00", "USD"))
        split = splitter.set_deposit_percent("33.335")
        assert split.deposit_amount == Money.of("33.34", "USD")
        assert split.balance_amount == Money.of("66.66", "USD")

    def test_fractional_total_full_deposit(self):
        split = PaymentSplitter(Money.of("366.3", "VND")).set_deposit_percent(100)
        assert split.total == vnd(366)
        assert split.deposit_amount == vnd(366)
        assert split.balance_amount.is_zero
        assert split.plan is PaymentPlan.FULL
        assert split.balance_percent == Decimal("0")

    def test_set_total_rounds_to_currency(self):
        self.splitter.set_deposit_percent("50")
        split = self.splitter.set_total(Money.of("1000.6", "VND"))
        assert split.total == vnd(1001)
        assert split.deposit_amount + split.balance_amount == vnd(1001)
        assert split.deposit_amount == vnd(501)


class TestPlanToggle:
    def setup_method(self):
        self.splitter = PaymentSplitter(vnd(1500000), default_deposit_percent=Decimal("50"))

    def test_first_switch_uses_default_percent(self):
        split = self.splitter.set_plan(PaymentPlan.INSTALLMENTS)
        assert split.deposit_amount == vnd(750000)
        assert split.plan is PaymentPlan.INSTALLMENTS

    def test_full_then_back_restores_installment(self):
        self.splitter.set_deposit_percent("30")
        self.splitter.set_deposit_due_date(date(2024, 3, 1))

        full = self.splitter.set_plan("full")
        assert full.plan is PaymentPlan.FULL
        assert full.deposit_amount.is_zero
        assert full.balance_amount == vnd(1500000)
        assert full.deposit_due_date is None
        assert self.splitter.cached_installment_percent == Decimal("30")

        back = self.splitter.set_plan("installments")
        assert back.deposit_amount == vnd(450000)
        assert back.deposit_due_date == date(2024, 3, 1)

    def test_same_plan_is_noop(self):
        before = self.splitter.split
        assert self.splitter.set_plan(PaymentPlan.FULL) is before

    def test_restore_from_previous_split(self):
        self.splitter.set_deposit_percent("40")
        restored = PaymentSplitter(vnd(2000000), split=self.splitter.split)
        assert restored.split.deposit_amount == vnd(800000)
        assert restored.cached_installment_percent == Decimal("40")


class TestDueDates:
    def test_balance_never_before_deposit(self):
        splitter = PaymentSplitter(vnd(1000))
        splitter.set_deposit_percent("50")
        splitter.set_deposit_due_date(date(2024, 3, 1))
        split = splitter.set_balance_due_date(date(2024, 2, 1))
        assert split.balance_due_date == date(2024, 3, 1)

    def test_later_deposit_pushes_balance(self):
        splitter = PaymentSplitter(vnd(1000))
        splitter.set_deposit_percent("50")
        splitter.set_balance_due_date(date(2024, 3, 1))
        split = splitter.set_deposit_due_date(date(2024, 4, 1))
        assert split.balance_due_date == date(2024, 4, 1)


class TestFormatting:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (Decimal("50"), "50"),
            (Decimal("12.50000"), "12.5"),
            (Decimal("0"), "0"),
            (Decimal("33.333333333333"), "33.33333333"),
            (Decimal("66.666666666667"), "66.66666667"),
        ],
    )
    def test_format_percent(self, value, expected):
        assert format_percent(value) == expected

    def test_to_dict(self):
        splitter = PaymentSplitter(vnd(1500000))
        data = splitter.set_deposit_percent("30").to_dict()
        assert data["deposit_amount"] == "450000"
        assert data["plan"] == "installments"
        assert data["payment_term"] == "30/70"
        assert data["currency"] == "VND"
