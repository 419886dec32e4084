"""
Section Engine - Recompute a section's {cost, price} pair from its rows.

Pure functions with no I/O. The catalog is passed in; section settings
(markups, bundle types, vehicle types) come from ``PricingConfig``.

Per-row override fields always take precedence over catalog defaults and
are evaluated independently: an explicit unit cost does not imply an
explicit markup, and vice versa.

A catalog that raises ``SourceError`` for an item id makes that row
contribute 0; the section is flagged stale and carries a warning. An id
the catalog simply does not know also contributes 0, without the stale
flag. No row aborts its section.

Usage:
    from pricing_engines.sections import SectionCalculator
    from pricing_kernel.domain import DictCatalog, CatalogItem, EquipmentRow

    catalog = DictCatalog([CatalogItem("chair", Decimal("100"), Decimal("150"))])
    calculator = SectionCalculator(config, catalog)
    result = calculator.equipment([EquipmentRow(id="r1", equipment_id="chair", quantity=2)])
    print(result.cost, result.price)  # 200 VND, 300 VND
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from pricing_config.schema import PricingConfig
from pricing_engines.tracer import traced_engine
from pricing_kernel.domain.catalog import CatalogItem, CatalogLookup
from pricing_kernel.domain.numeric import ZERO
from pricing_kernel.domain.rows import (
    AssetRow,
    BundleRow,
    EquipmentRow,
    Row,
    StaffRow,
    TransportRow,
)
from pricing_kernel.domain.sections import PricingWarning, SectionKey, SectionTotal
from pricing_kernel.domain.values import Money
from pricing_kernel.exceptions import SourceError
from pricing_kernel.logging_config import get_logger

logger = get_logger("engines.sections")


@dataclass(frozen=True)
class RowAmount:
    """Computed cost and price of one row."""

    row_id: str
    cost: Money
    price: Money


@dataclass(frozen=True)
class SectionComputation:
    """
    Result of recomputing one section.

    Immutable; ``rows`` keeps the per-row breakdown in input order.
    """

    section: SectionKey
    cost: Money
    price: Money
    rows: tuple[RowAmount, ...] = ()
    stale: bool = False
    warnings: tuple[PricingWarning, ...] = field(default=())

    def to_total(self, event_id: str, published_at: datetime | None) -> SectionTotal:
        return SectionTotal(
            event_id=event_id,
            section=self.section,
            cost=self.cost,
            price=self.price,
            published_at=published_at,
            stale=self.stale,
            warnings=self.warnings,
        )


class _Accumulator:
    """Collects row amounts, warnings and the stale flag for one section."""

    def __init__(self, section: SectionKey, currency: str):
        self.section = section
        self.currency = currency
        self.rows: list[RowAmount] = []
        self.warnings: list[PricingWarning] = []
        self.stale = False

    def add(self, row_id: str, cost: Decimal, price: Decimal) -> None:
        self.rows.append(
            RowAmount(
                row_id=row_id,
                cost=Money.of(cost, self.currency),
                price=Money.of(price, self.currency),
            )
        )

    def lookup(self, catalog: CatalogLookup, item_id: str | None, row_id: str) -> CatalogItem | None:
        if not item_id:
            return None
        try:
            return catalog.get(item_id)
        except SourceError as exc:
            self.stale = True
            self.warnings.append(
                PricingWarning.from_error(exc, section=self.section.value, row_id=row_id)
            )
            logger.warning(
                "catalog_lookup_failed",
                extra={
                    "section": self.section.value,
                    "row_id": row_id,
                    "item_id": item_id,
                    "error_code": exc.code,
                },
            )
            return None

    def result(self) -> SectionComputation:
        return SectionComputation(
            section=self.section,
            cost=Money.total((r.cost for r in self.rows), self.currency),
            price=Money.total((r.price for r in self.rows), self.currency),
            rows=tuple(self.rows),
            stale=self.stale,
            warnings=tuple(self.warnings),
        )


class SectionCalculator:
    """
    Recompute section totals.

    Pure functions - no I/O, no database access.
    Catalog and configuration provided at construction.

    Handles:
        - Bundles (dish plus a capped number of modifiers, bundle-type markup)
        - Equipment (catalog defaults with independent per-row overrides)
        - Staff (hourly cost, section markup)
        - Transport (distance, round trips, vehicle cost per km)
        - Company assets (price only)
    """

    def __init__(self, config: PricingConfig, catalog: CatalogLookup):
        self.config = config
        self.catalog = catalog

    @property
    def currency(self) -> str:
        return self.config.currency

    def recompute(self, section: SectionKey, rows: Sequence[Row]) -> SectionComputation:
        """
        Recompute one of the five base sections.

        Args:
            section: Which section ``rows`` belong to.
            rows: The section's rows, in display order.

        Raises:
            ValueError: If ``section`` is not a base section.
        """
        t0 = time.monotonic()
        handlers = {
            SectionKey.BUNDLES: self.bundles,
            SectionKey.EQUIPMENT: self.equipment,
            SectionKey.STAFF: self.staff,
            SectionKey.TRANSPORT: self.transport,
            SectionKey.ASSETS: self.assets,
        }
        if section not in handlers:
            raise ValueError(f"Not a base section: {section}")

        result = handlers[section](rows)

        logger.debug("section_recomputed", extra={
            "section": section.value,
            "row_count": len(rows),
            "cost": str(result.cost.amount),
            "price": str(result.price.amount),
            "stale": result.stale,
            "duration_ms": round((time.monotonic() - t0) * 1000, 2),
        })
        return result

    def bundles(self, rows: Sequence[BundleRow]) -> SectionComputation:
        acc = _Accumulator(SectionKey.BUNDLES, self.currency)
        for row in rows:
            bundle_type = self.config.bundle_type(row.bundle_type)
            if bundle_type is None:
                limit, markup = 0, Decimal("1")
            else:
                limit = bundle_type.modifier_limit(self.config.modifier_limit_cap)
                markup = bundle_type.markup_x

            unit_cost = ZERO
            dish = acc.lookup(self.catalog, row.dish_id, row.id)
            if dish is not None:
                unit_cost += dish.unit_cost
            for modifier_id in row.modifier_ids[:limit]:
                modifier = acc.lookup(self.catalog, modifier_id, row.id)
                if modifier is not None:
                    unit_cost += modifier.unit_cost

            cost = unit_cost * row.quantity
            acc.add(row.id, cost, cost * markup)
        return acc.result()

    def equipment(self, rows: Sequence[EquipmentRow]) -> SectionComputation:
        acc = _Accumulator(SectionKey.EQUIPMENT, self.currency)
        for row in rows:
            # Skip the lookup only when both overrides make it irrelevant.
            needs_catalog = row.unit_cost_override is None or row.markup_x_override is None
            item = acc.lookup(self.catalog, row.equipment_id, row.id) if needs_catalog else None
            unit_cost, unit_price = equipment_unit_values(row, item)
            acc.add(row.id, unit_cost * row.quantity, unit_price * row.quantity)
        return acc.result()

    def staff(self, rows: Sequence[StaffRow]) -> SectionComputation:
        acc = _Accumulator(SectionKey.STAFF, self.currency)
        markup = self.config.staff_markup_x
        for row in rows:
            cost = row.cost_per_hour * row.hours
            acc.add(row.id, cost, cost * markup)
        return acc.result()

    def transport(self, rows: Sequence[TransportRow]) -> SectionComputation:
        acc = _Accumulator(SectionKey.TRANSPORT, self.currency)
        for row in rows:
            if row.cost_per_km is not None:
                cost_per_km = row.cost_per_km
            else:
                vehicle = self.config.vehicle(row.vehicle_key)
                cost_per_km = vehicle.cost_per_km if vehicle is not None else ZERO
            markup = row.markup_x if row.markup_x is not None else self.config.transport_markup_x
            cost = row.distance_km * row.legs * cost_per_km
            acc.add(row.id, cost, cost * markup)
        return acc.result()

    def assets(self, rows: Sequence[AssetRow]) -> SectionComputation:
        acc = _Accumulator(SectionKey.ASSETS, self.currency)
        for row in rows:
            price = row.unit_price * row.quantity if row.include_price else ZERO
            acc.add(row.id, ZERO, price)
        return acc.result()


def equipment_unit_values(row: EquipmentRow, item: CatalogItem | None) -> tuple[Decimal, Decimal]:
    """
    Unit cost and unit price of an equipment row.

    Unit cost is the override when set, else the catalog cost. Unit price
    is ``unit_cost * markup override`` when a markup override is set,
    else the catalog price, else the unit cost.
    """
    if row.unit_cost_override is not None:
        unit_cost = row.unit_cost_override
    else:
        unit_cost = item.unit_cost if item is not None else ZERO

    if row.markup_x_override is not None:
        unit_price = unit_cost * row.markup_x_override
    elif item is not None and item.unit_price:
        unit_price = item.unit_price
    else:
        unit_price = unit_cost
    return unit_cost, unit_price


@traced_engine("sections", "1.0", fingerprint_fields=("section", "rows"))
def recompute_section(
    *,
    section: SectionKey,
    rows: Sequence[Row],
    config: PricingConfig,
    catalog: CatalogLookup,
) -> SectionComputation:
    """Traced entry point used by the section publishers."""
    return SectionCalculator(config, catalog).recompute(section, rows)
