"""
Pricing configuration schema.

Frozen dataclasses that YAML configuration files are parsed into by
``pricing_config.loader``. These are the only configuration types the
engines and services accept.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

# ---------------------------------------------------------------------------
# Section settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BundleTypeConfig:
    """A bundle type: its markup and how many modifiers count toward cost."""

    key: str
    label: str = ""
    markup_x: Decimal = Decimal("1")
    max_modifiers: int = 0
    modifier_slots: int = 0

    def modifier_limit(self, cap: int) -> int:
        """Modifiers priced per bundle: the larger of the two counts, capped."""
        return min(max(self.max_modifiers, self.modifier_slots), cap)


@dataclass(frozen=True)
class VehicleType:
    """Transport vehicle with its default cost per kilometre."""

    key: str
    name: str
    cost_per_km: Decimal = Decimal("0")


@dataclass(frozen=True)
class PaymentDefaults:
    """Defaults for the deposit/balance split."""

    default_deposit_percent: Decimal = Decimal("50")
    percent_display_places: int = 8


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PricingConfig:
    """
    Complete pricing configuration.

    ``checksum`` is the SHA-256 of the canonical source document and
    identifies the configuration in trace logs.
    """

    currency: str = "VND"
    staff_markup_x: Decimal = Decimal("1")
    transport_markup_x: Decimal = Decimal("1")
    extra_fee_markup_x: Decimal = Decimal("1.5")
    modifier_limit_cap: int = 16
    bundle_types: tuple[BundleTypeConfig, ...] = ()
    vehicle_types: tuple[VehicleType, ...] = ()
    payment: PaymentDefaults = field(default_factory=PaymentDefaults)
    checksum: str = ""

    def bundle_type(self, key: str) -> BundleTypeConfig | None:
        for bundle_type in self.bundle_types:
            if bundle_type.key == key:
                return bundle_type
        return None

    def vehicle(self, key: str | None) -> VehicleType | None:
        """Look a vehicle up by key, then by name (case-insensitive)."""
        if not key:
            return None
        for vehicle in self.vehicle_types:
            if vehicle.key == key:
                return vehicle
        wanted = key.strip().lower()
        for vehicle in self.vehicle_types:
            if vehicle.name.strip().lower() == wanted:
                return vehicle
        return None
