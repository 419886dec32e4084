"""
Pure domain layer.

Immutable value objects and row types with NO dependencies on the ORM,
the database, the clock or any I/O.
"""

from pricing_kernel.domain.catalog import CatalogItem, CatalogLookup, DictCatalog
from pricing_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from pricing_kernel.domain.currency import CurrencyInfo, CurrencyRegistry
from pricing_kernel.domain.rows import (
    AssetRow,
    BundleRow,
    DiscountMode,
    DiscountRow,
    EquipmentRow,
    ExtraFeeRow,
    FeeMode,
    Row,
    StaffRow,
    TransportRow,
    is_temp_id,
    new_temp_id,
    row_type_for,
)
from pricing_kernel.domain.sections import (
    BASE_SECTIONS,
    PercentBase,
    PricingWarning,
    SectionKey,
    SectionTotal,
)
from pricing_kernel.domain.values import Currency, Money

__all__ = [
    "AssetRow",
    "BASE_SECTIONS",
    "BundleRow",
    "CatalogItem",
    "CatalogLookup",
    "Clock",
    "Currency",
    "CurrencyInfo",
    "CurrencyRegistry",
    "DeterministicClock",
    "DictCatalog",
    "DiscountMode",
    "DiscountRow",
    "EquipmentRow",
    "ExtraFeeRow",
    "FeeMode",
    "Money",
    "PercentBase",
    "PricingWarning",
    "Row",
    "SectionKey",
    "SectionTotal",
    "StaffRow",
    "SystemClock",
    "TransportRow",
    "is_temp_id",
    "new_temp_id",
    "row_type_for",
]
