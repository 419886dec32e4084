"""
Property-based tests for the pricing engines.

Properties checked:
- Payment split: deposit + balance == total after any edit sequence
- Payment split: a derived percentage maps back to the same deposit
- Inclusive fees: the closed-form total satisfies its fixed-point equation
- Inclusive fees: the inclusive rows sum exactly to T - N
- Sections: empty row lists give zero; overrides always win
- Totals: identical inputs return the identical snapshot
- Draft signatures ignore row order and ids
- Lenient numeric coercion never raises
"""

from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from pricing_config import get_active_config
from pricing_engines.extra_fees import ExtraFeeResolver, FeeBases
from pricing_engines.payment_split import PaymentPlan, PaymentSplitter
from pricing_engines.sections import SectionCalculator, equipment_unit_values
from pricing_kernel.domain import (
    BASE_SECTIONS,
    CatalogItem,
    DeterministicClock,
    DictCatalog,
    EquipmentRow,
    ExtraFeeRow,
    FeeMode,
    SectionKey,
    SectionTotal,
    StaffRow,
)
from pricing_kernel.domain.numeric import clamp_percent, markup_multiplier, to_decimal, to_quantity
from pricing_kernel.domain.values import Money
from pricing_services.aggregation_bus import AggregationBus
from pricing_services.draft_controller import signature_of
from pricing_services.totals_service import TotalsService

CONFIG = get_active_config()

percents = st.decimals(min_value=Decimal("0"), max_value=Decimal("100"), places=4)
amounts = st.integers(min_value=0, max_value=10**12)
numeric_text = st.text(alphabet="0123456789.,-+ _xa\u00a0", max_size=30)


@composite
def payment_edits(draw):
    kind = draw(st.sampled_from(["percent", "amount", "balance", "plan", "total"]))
    if kind == "percent":
        return kind, draw(percents)
    if kind == "plan":
        return kind, draw(st.sampled_from(list(PaymentPlan)))
    return kind, draw(amounts)


@composite
def inclusive_rows(draw):
    count = draw(st.integers(min_value=1, max_value=3))
    return [
        ExtraFeeRow(
            id=f"i{index}",
            mode=FeeMode.PERCENT_INCLUSIVE,
            percent=draw(st.decimals(min_value=Decimal("0"), max_value=Decimal("40"), places=2)),
        )
        for index in range(count)
    ]


def vnd(amount) -> Money:
    return Money.of(str(amount), "VND")


class TestPaymentSplitProperties:
    @given(total=st.integers(min_value=1, max_value=10**12), edits=st.lists(payment_edits(), max_size=12))
    @settings(max_examples=200)
    def test_split_invariant_holds_after_every_edit(self, total, edits):
        splitter = PaymentSplitter(vnd(total))
        for kind, value in edits:
            if kind == "percent":
                split = splitter.set_deposit_percent(value)
            elif kind == "amount":
                split = splitter.set_deposit_amount(vnd(value))
            elif kind == "balance":
                split = splitter.set_balance_amount(vnd(value))
            elif kind == "plan":
                split = splitter.set_plan(value)
            else:
                split = splitter.set_total(vnd(value))

            assert split.deposit_amount + split.balance_amount == split.total
            assert split.deposit_amount.amount == split.deposit_amount.amount.to_integral_value()
            if split.total.is_positive:
                assert Money.zero("VND") <= split.deposit_amount <= split.total
                full = split.deposit_amount.is_zero or split.deposit_amount == split.total
                assert (split.plan is PaymentPlan.FULL) == full
            else:
                assert split.deposit_amount.is_zero

    @given(total=st.integers(min_value=1, max_value=10**12), data=st.data())
    @settings(max_examples=200)
    def test_percent_maps_back_to_deposit(self, total, data):
        deposit = data.draw(st.integers(min_value=0, max_value=total))
        split = PaymentSplitter(vnd(total)).set_deposit_amount(vnd(deposit))
        assert split.amount_from_percent(split.deposit_percent) == vnd(deposit)


class TestInclusiveFeeProperties:
    @given(
        rows=inclusive_rows(),
        base=st.integers(min_value=0, max_value=10**10),
        manual=st.integers(min_value=0, max_value=10**8),
    )
    @settings(max_examples=200)
    def test_fixed_point_and_exact_sum(self, rows, base, manual):
        fee_rows = [ExtraFeeRow(id="m", mode=FeeMode.MANUAL, unit_price_manual=manual)] + rows
        bases = FeeBases.from_prices({SectionKey.BUNDLES: vnd(base)}, "VND")
        result = ExtraFeeResolver().resolve(fee_rows, bases)

        assert result.converged is True
        assert result.inclusive_total == result.fee_total - result.independent_total

        grand = Decimal(base) + result.fee_total.amount
        claimed = sum((row.rate / (1 + row.rate) for row in rows), Decimal(0)) * grand
        assert abs(Decimal(manual) + claimed - result.fee_total.amount) < Decimal("0.0001")

    @given(
        percents=st.lists(
            st.decimals(min_value=Decimal("50"), max_value=Decimal("100"), places=2),
            min_size=2,
            max_size=4,
        ),
        base=st.integers(min_value=1, max_value=10**9),
    )
    @settings(max_examples=100)
    def test_claims_of_whole_total_never_converge(self, percents, base):
        rows = [
            ExtraFeeRow(id=f"i{i}", mode=FeeMode.PERCENT_INCLUSIVE, percent=p)
            for i, p in enumerate(percents)
        ]
        ratio = sum((row.rate / (1 + row.rate) for row in rows), Decimal(0))
        result = ExtraFeeResolver().resolve(rows, FeeBases.from_prices({SectionKey.STAFF: vnd(base)}, "VND"))
        if ratio >= 1:
            assert result.converged is False
            assert result.fee_total == vnd(base) * sum((row.rate for row in rows), Decimal(0))
        else:
            assert result.converged is True


class TestSectionProperties:
    @given(section=st.sampled_from(BASE_SECTIONS))
    @settings(max_examples=20)
    def test_empty_section_is_zero(self, section):
        result = SectionCalculator(CONFIG, DictCatalog()).recompute(section, [])
        assert result.cost.is_zero
        assert result.price.is_zero

    @given(
        catalog_cost=st.decimals(min_value=Decimal("0"), max_value=Decimal("1000000"), places=2),
        catalog_price=st.one_of(st.none(), st.decimals(min_value=Decimal("0"), max_value=Decimal("2000000"), places=2)),
        cost_override=st.one_of(st.none(), st.decimals(min_value=Decimal("0"), max_value=Decimal("1000000"), places=2)),
        markup_override=st.one_of(st.none(), st.decimals(min_value=Decimal("0.01"), max_value=Decimal("10"), places=2)),
    )
    @settings(max_examples=200)
    def test_overrides_take_precedence(self, catalog_cost, catalog_price, cost_override, markup_override):
        item = CatalogItem("item", catalog_cost, catalog_price)
        row = EquipmentRow(
            id="r", equipment_id="item", quantity=1,
            unit_cost_override=cost_override, markup_x_override=markup_override,
        )
        unit_cost, unit_price = equipment_unit_values(row, item)

        expected_cost = cost_override if cost_override is not None else catalog_cost
        assert unit_cost == expected_cost
        if markup_override is not None:
            assert unit_price == expected_cost * markup_override
        elif catalog_price:
            assert unit_price == catalog_price
        else:
            assert unit_price == expected_cost


class TestTotalsProperties:
    @given(
        prices=st.dictionaries(
            st.sampled_from(BASE_SECTIONS),
            st.integers(min_value=0, max_value=10**9),
        ),
    )
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow])
    def test_identical_inputs_return_identical_snapshot(self, prices):
        bus = AggregationBus()
        for section, price in prices.items():
            bus.publish(SectionTotal("evt", section, vnd(price // 2), vnd(price)))
        service = TotalsService(bus, CONFIG, DeterministicClock())

        first = service.aggregate("evt")
        assert service.aggregate("evt") is first
        assert first.grand_price == vnd(sum(prices.values()))


class TestSignatureProperties:
    @given(
        hours=st.lists(st.integers(min_value=0, max_value=24), min_size=1, max_size=6),
        data=st.data(),
    )
    @settings(max_examples=100)
    def test_order_and_ids_do_not_matter(self, hours, data):
        rows = [StaffRow(id=f"db-{i}", cost_per_hour=100, hours=h) for i, h in enumerate(hours)]
        shuffled = data.draw(st.permutations(rows))
        renamed = [StaffRow(id=f"tmp:{i}", cost_per_hour=r.cost_per_hour, hours=r.hours)
                   for i, r in enumerate(shuffled)]
        assert signature_of(rows) == signature_of(renamed)


class TestNumericProperties:
    @given(value=st.one_of(numeric_text, st.none(), st.booleans(), st.integers()))
    @settings(max_examples=300)
    def test_lenient_coercion_never_raises(self, value):
        assert to_decimal(value).is_finite()
        assert to_quantity(value) >= 0
        assert Decimal(0) <= clamp_percent(value) <= Decimal(100)
        assert markup_multiplier(value) > 0
