"""Tests for the Discount Engine."""

from pricing_engines.discounts import DiscountCalculator
from pricing_engines.extra_fees import FeeBases
from pricing_kernel.domain import DiscountMode, DiscountRow, PercentBase
from pricing_kernel.domain.values import Money


def vnd(amount) -> Money:
    return Money.of(str(amount), "VND")


class TestDiscountCalculator:
    def setup_method(self):
        self.calculator = DiscountCalculator()
        self.bases = FeeBases(vnd(1000000), vnd(200000), vnd(0), vnd(0), vnd(0))

    def test_no_rows(self):
        result = self.calculator.calculate([], self.bases)
        assert result.total.is_zero
        assert result.lines == ()

    def test_manual_amount(self):
        rows = [DiscountRow(id="d1", label="Loyalty", amount="50000")]
        result = self.calculator.calculate(rows, self.bases)
        assert result.total == vnd(50000)
        assert result.lines[0].label == "Loyalty"

    def test_percent_of_section(self):
        rows = [DiscountRow(id="d1", mode=DiscountMode.PERCENT, percent=10, scope=PercentBase.BUNDLES)]
        assert self.calculator.calculate(rows, self.bases).total == vnd(100000)

    def test_percent_of_total_including_fees(self):
        rows = [DiscountRow(id="d1", mode="percent", percent=10)]
        with_fees = self.bases.with_extra_fees(vnd(300000))
        assert self.calculator.calculate(rows, with_fees).total == vnd(150000)

    def test_rows_sum(self):
        rows = [
            DiscountRow(id="d1", amount="1000"),
            DiscountRow(id="d2", mode="percent", percent=1, scope="total_excluding_fees"),
        ]
        result = self.calculator.calculate(rows, self.bases)
        assert result.total == vnd(13000)
        assert [line.row_id for line in result.lines] == ["d1", "d2"]
