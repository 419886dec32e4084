"""
Sections -- Section keys, published section totals and warnings.

A section is one independently edited category of event cost. The five
base sections publish a ``SectionTotal`` each; extra fees are resolved
on top of them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pricing_kernel.domain.values import Currency, Money
from pricing_kernel.exceptions import PricingKernelError


class SectionKey(str, Enum):
    """Independently edited cost sections of an event."""

    BUNDLES = "bundles"
    EQUIPMENT = "equipment"
    STAFF = "staff"
    TRANSPORT = "transport"
    ASSETS = "assets"
    EXTRA_FEES = "extra_fees"


# Sections whose prices form the non-circular base B.
BASE_SECTIONS: tuple[SectionKey, ...] = (
    SectionKey.BUNDLES,
    SectionKey.EQUIPMENT,
    SectionKey.STAFF,
    SectionKey.TRANSPORT,
    SectionKey.ASSETS,
)


class PercentBase(str, Enum):
    """Named base a percentage fee or discount is computed against."""

    BUNDLES = "bundles"
    EQUIPMENT = "equipment"
    STAFF = "staff"
    TRANSPORT = "transport"
    ASSETS = "assets"
    TOTAL_EXCLUDING_FEES = "total_excluding_fees"
    TOTAL_INCLUDING_FEES = "total_including_fees"  # discounts only


@dataclass(frozen=True)
class PricingWarning:
    """A non-fatal condition surfaced to the operator as data."""

    code: str
    message: str
    section: str | None = None
    row_id: str | None = None

    @classmethod
    def from_error(
        cls,
        error: PricingKernelError,
        section: str | None = None,
        row_id: str | None = None,
    ) -> PricingWarning:
        return cls(code=error.code, message=str(error), section=section, row_id=row_id)

    def to_dict(self) -> dict[str, str | None]:
        return {
            "code": self.code,
            "message": self.message,
            "section": self.section,
            "row_id": self.row_id,
        }


@dataclass(frozen=True)
class SectionTotal:
    """
    Published {cost, price} pair for one (event, section).

    One per (event, section); overwritten on every recompute, never
    appended. ``stale`` marks a value computed while one of its sources
    was unavailable.
    """

    event_id: str
    section: SectionKey
    cost: Money
    price: Money
    published_at: datetime | None = None
    stale: bool = False
    warnings: tuple[PricingWarning, ...] = ()

    @classmethod
    def zero(
        cls,
        event_id: str,
        section: SectionKey,
        currency: str | Currency,
        stale: bool = False,
    ) -> SectionTotal:
        return cls(
            event_id=event_id,
            section=section,
            cost=Money.zero(currency),
            price=Money.zero(currency),
            stale=stale,
        )

    @property
    def margin(self) -> Money:
        return self.price - self.cost
