"""
Totals Engine - Combine section totals, fees and discounts into a snapshot.

Pure functions with no I/O. The caller gathers the current value of each
base section, the extra-fee resolution and the discount total; this
module turns them into one immutable ``TotalsSnapshot``.

    grand_cost            = sum(section cost)  + extra_fee_cost
    grand_price           = sum(section price) + extra_fee_price
    price_after_discounts = grand_price - discounts_total   (never clamped)
    margin_after          = price_after_discounts - grand_cost
    margin_after_pct      = margin_after / price_after_discounts * 100
    cost_pct_after        = grand_cost / price_after_discounts * 100

Both percentages are None (undefined, not 0) when
``price_after_discounts <= 0``.

Usage:
    from pricing_engines.totals import TotalsAggregator

    snapshot = TotalsAggregator().aggregate(
        event_id="evt-1",
        sections=section_totals,      # SectionKey -> SectionTotal
        fees=resolution,              # ExtraFeeResolution
        discounts_total=Money.of("0", "VND"),
        as_of=clock.now(),
    )
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from pricing_engines.extra_fees import ExtraFeeResolution
from pricing_engines.tracer import traced_engine
from pricing_kernel.domain.numeric import HUNDRED, ZERO
from pricing_kernel.domain.sections import (
    BASE_SECTIONS,
    PricingWarning,
    SectionKey,
    SectionTotal,
)
from pricing_kernel.domain.values import Currency, Money
from pricing_kernel.logging_config import get_logger

logger = get_logger("engines.totals")


@dataclass(frozen=True)
class SectionLine:
    """One base section's contribution to a snapshot."""

    section: SectionKey
    cost: Money
    price: Money
    stale: bool = False


def _money_or_none(value: Money | None) -> str | None:
    return None if value is None else str(value.amount)


def _decimal_or_none(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


@dataclass(frozen=True)
class TotalsSnapshot:
    """
    Immutable point-in-time totals of an event.

    ``provisional`` marks a zeroed placeholder returned while inputs are
    still loading and no earlier snapshot exists.
    """

    event_id: str | None
    currency: Currency
    sections: tuple[SectionLine, ...]
    extra_fee_cost: Money
    extra_fee_price: Money
    grand_cost: Money
    grand_price: Money
    discounts_total: Money
    price_after_discounts: Money
    margin_after: Money
    margin_after_pct: Decimal | None
    cost_pct_after: Decimal | None
    computed_at: datetime | None = None
    stale_sections: tuple[SectionKey, ...] = ()
    warnings: tuple[PricingWarning, ...] = ()
    provisional: bool = False
    people_count: int | None = None
    price_per_person: Money | None = None
    budget_total: Money | None = None
    budget_variance: Money | None = None

    @classmethod
    def zero(
        cls,
        event_id: str | None,
        currency: str | Currency,
        computed_at: datetime | None = None,
        provisional: bool = False,
    ) -> TotalsSnapshot:
        zero = Money.zero(currency)
        return cls(
            event_id=event_id,
            currency=zero.currency,
            sections=tuple(SectionLine(section, zero, zero) for section in BASE_SECTIONS),
            extra_fee_cost=zero,
            extra_fee_price=zero,
            grand_cost=zero,
            grand_price=zero,
            discounts_total=zero,
            price_after_discounts=zero,
            margin_after=zero,
            margin_after_pct=None,
            cost_pct_after=None,
            computed_at=computed_at,
            provisional=provisional,
        )

    @property
    def is_stale(self) -> bool:
        return bool(self.stale_sections)

    def section(self, key: SectionKey) -> SectionLine:
        for line in self.sections:
            if line.section is key:
                return line
        raise KeyError(key)

    @property
    def per_section_cost(self) -> dict[SectionKey, Money]:
        return {line.section: line.cost for line in self.sections}

    @property
    def per_section_price(self) -> dict[SectionKey, Money]:
        return {line.section: line.price for line in self.sections}

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe representation used by the durable snapshot store."""
        return {
            "event_id": self.event_id,
            "currency": self.currency.code,
            "sections": [
                {
                    "section": line.section.value,
                    "cost": str(line.cost.amount),
                    "price": str(line.price.amount),
                    "stale": line.stale,
                }
                for line in self.sections
            ],
            "extra_fee_cost": str(self.extra_fee_cost.amount),
            "extra_fee_price": str(self.extra_fee_price.amount),
            "grand_cost": str(self.grand_cost.amount),
            "grand_price": str(self.grand_price.amount),
            "discounts_total": str(self.discounts_total.amount),
            "price_after_discounts": str(self.price_after_discounts.amount),
            "margin_after": str(self.margin_after.amount),
            "margin_after_pct": _decimal_or_none(self.margin_after_pct),
            "cost_pct_after": _decimal_or_none(self.cost_pct_after),
            "computed_at": self.computed_at.isoformat() if self.computed_at else None,
            "stale_sections": [s.value for s in self.stale_sections],
            "warnings": [w.to_dict() for w in self.warnings],
            "provisional": self.provisional,
            "people_count": self.people_count,
            "price_per_person": _money_or_none(self.price_per_person),
            "budget_total": _money_or_none(self.budget_total),
            "budget_variance": _money_or_none(self.budget_variance),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TotalsSnapshot:
        """Inverse of ``to_dict``. Raises KeyError/ValueError on malformed input."""
        currency = Currency(data["currency"])

        def money(key: str) -> Money:
            return Money.of(data[key], currency)

        def optional_money(key: str) -> Money | None:
            value = data.get(key)
            return None if value is None else Money.of(value, currency)

        def optional_decimal(key: str) -> Decimal | None:
            value = data.get(key)
            return None if value is None else Decimal(value)

        computed_at = data.get("computed_at")
        return cls(
            event_id=data.get("event_id"),
            currency=currency,
            sections=tuple(
                SectionLine(
                    section=SectionKey(line["section"]),
                    cost=Money.of(line["cost"], currency),
                    price=Money.of(line["price"], currency),
                    stale=bool(line.get("stale", False)),
                )
                for line in data["sections"]
            ),
            extra_fee_cost=money("extra_fee_cost"),
            extra_fee_price=money("extra_fee_price"),
            grand_cost=money("grand_cost"),
            grand_price=money("grand_price"),
            discounts_total=money("discounts_total"),
            price_after_discounts=money("price_after_discounts"),
            margin_after=money("margin_after"),
            margin_after_pct=optional_decimal("margin_after_pct"),
            cost_pct_after=optional_decimal("cost_pct_after"),
            computed_at=datetime.fromisoformat(computed_at) if computed_at else None,
            stale_sections=tuple(SectionKey(s) for s in data.get("stale_sections", ())),
            warnings=tuple(PricingWarning(**w) for w in data.get("warnings", ())),
            provisional=bool(data.get("provisional", False)),
            people_count=data.get("people_count"),
            price_per_person=optional_money("price_per_person"),
            budget_total=optional_money("budget_total"),
            budget_variance=optional_money("budget_variance"),
        )


class TotalsAggregator:
    """
    Aggregate totals.

    Pure functions - no I/O, no database access, no clock.
    """

    def aggregate(
        self,
        event_id: str | None,
        sections: Mapping[SectionKey, SectionTotal],
        fees: ExtraFeeResolution,
        discounts_total: Money,
        as_of: datetime | None = None,
        people_count: int | None = None,
        budget_total: Money | None = None,
    ) -> TotalsSnapshot:
        """
        Build a snapshot.

        Args:
            event_id: Event the snapshot belongs to.
            sections: Current value of each base section. Missing sections
                contribute 0.
            fees: Extra-fee resolution computed against the same sections.
            discounts_total: Total discount.
            as_of: Timestamp recorded as ``computed_at``.
            people_count: Optional guest count for the per-person price.
            budget_total: Optional client budget to compare against.
        """
        currency = fees.extra_fee_price.currency
        zero = Money.zero(currency)

        lines: list[SectionLine] = []
        stale: list[SectionKey] = []
        warnings: list[PricingWarning] = []
        for key in BASE_SECTIONS:
            total = sections.get(key)
            if total is None:
                lines.append(SectionLine(key, zero, zero))
                continue
            lines.append(SectionLine(key, total.cost, total.price, total.stale))
            if total.stale:
                stale.append(key)
            warnings.extend(total.warnings)
        warnings.extend(fees.warnings)

        grand_cost = Money.total((line.cost for line in lines), currency) + fees.extra_fee_cost
        grand_price = Money.total((line.price for line in lines), currency) + fees.extra_fee_price
        price_after = grand_price - discounts_total
        margin_after = price_after - grand_cost

        if price_after.is_positive:
            margin_after_pct = margin_after.amount / price_after.amount * HUNDRED
            cost_pct_after = grand_cost.amount / price_after.amount * HUNDRED
        else:
            margin_after_pct = None
            cost_pct_after = None

        price_per_person = None
        if people_count is not None and people_count > 0:
            price_per_person = price_after / people_count
        budget_variance = None
        if budget_total is not None:
            budget_variance = budget_total - price_after

        snapshot = TotalsSnapshot(
            event_id=event_id,
            currency=currency,
            sections=tuple(lines),
            extra_fee_cost=fees.extra_fee_cost,
            extra_fee_price=fees.extra_fee_price,
            grand_cost=grand_cost,
            grand_price=grand_price,
            discounts_total=discounts_total,
            price_after_discounts=price_after,
            margin_after=margin_after,
            margin_after_pct=margin_after_pct,
            cost_pct_after=cost_pct_after,
            computed_at=as_of,
            stale_sections=tuple(stale),
            warnings=tuple(warnings),
            people_count=people_count,
            price_per_person=price_per_person,
            budget_total=budget_total,
            budget_variance=budget_variance,
        )

        logger.info("totals_aggregated", extra={
            "event_id": event_id,
            "grand_cost": str(grand_cost.amount),
            "grand_price": str(grand_price.amount),
            "discounts_total": str(discounts_total.amount),
            "price_after_discounts": str(price_after.amount),
            "margin_after_pct": str(margin_after_pct) if margin_after_pct is not None else None,
            "stale_sections": [s.value for s in stale],
            "warning_count": len(warnings),
        })
        if price_after.amount < ZERO:
            logger.warning("price_after_discounts_negative", extra={
                "event_id": event_id,
                "price_after_discounts": str(price_after.amount),
            })
        return snapshot


@traced_engine(
    "totals",
    "1.0",
    fingerprint_fields=("event_id", "sections", "fees", "discounts_total", "people_count", "budget_total"),
)
def aggregate_totals(
    *,
    event_id: str | None,
    sections: Mapping[SectionKey, SectionTotal],
    fees: ExtraFeeResolution,
    discounts_total: Money,
    as_of: datetime | None = None,
    people_count: int | None = None,
    budget_total: Money | None = None,
) -> TotalsSnapshot:
    """Traced entry point for totals aggregation."""
    return TotalsAggregator().aggregate(
        event_id,
        sections,
        fees,
        discounts_total,
        as_of=as_of,
        people_count=people_count,
        budget_total=budget_total,
    )
