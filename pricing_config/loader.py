"""
Configuration Loader (``pricing_config.loader``).

Responsibility
--------------
Loads YAML configuration files and parses them into typed
``pricing_config.schema`` dataclass instances. Runtime callers use
``pricing_config.get_active_config()`` rather than this module.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Numeric settings go through the kernel's numeric coercion, so a markup
  of ``0`` or ``"abc"`` becomes 1 rather than poisoning every price.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys (bundle/vehicle ``key``)  -> ``KeyError`` propagates.
* Unknown currency  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from pricing_config.schema import (
    BundleTypeConfig,
    PaymentDefaults,
    PricingConfig,
    VehicleType,
)
from pricing_kernel.domain.currency import CurrencyRegistry
from pricing_kernel.domain.numeric import (
    clamp_percent,
    markup_multiplier,
    non_negative,
    to_quantity,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_bundle_type(data: dict[str, Any]) -> BundleTypeConfig:
    return BundleTypeConfig(
        key=str(data["key"]),
        label=str(data.get("label", "")),
        markup_x=markup_multiplier(data.get("markup_x")),
        max_modifiers=to_quantity(data.get("max_modifiers", 0)),
        modifier_slots=to_quantity(data.get("modifier_slots", 0)),
    )


def parse_vehicle_type(data: dict[str, Any]) -> VehicleType:
    return VehicleType(
        key=str(data["key"]),
        name=str(data.get("name", data["key"])),
        cost_per_km=non_negative(data.get("cost_per_km", 0)),
    )


def parse_payment_defaults(data: dict[str, Any]) -> PaymentDefaults:
    return PaymentDefaults(
        default_deposit_percent=clamp_percent(data.get("default_deposit_percent", 50)),
        percent_display_places=to_quantity(data.get("percent_display_places", 8)),
    )


def parse_config(data: dict[str, Any]) -> PricingConfig:
    """
    Parse a ``PricingConfig`` from a dict.

    Postconditions:
        - Returns a frozen ``PricingConfig`` whose ``checksum`` is the
          SHA-256 of ``data``.
    Raises:
        KeyError: if a bundle or vehicle entry has no ``key``.
        ValueError: if ``currency`` is not a supported ISO 4217 code.
    """
    currency = str(data.get("currency", "VND")).upper().strip()
    if not CurrencyRegistry.is_valid(currency):
        raise ValueError(f"Unsupported currency in pricing config: {currency!r}")

    sections = data.get("sections", {}) or {}
    staff = sections.get("staff", {}) or {}
    transport = sections.get("transport", {}) or {}
    bundles = sections.get("bundles", {}) or {}
    extra_fees = sections.get("extra_fees", {}) or {}

    return PricingConfig(
        currency=currency,
        staff_markup_x=markup_multiplier(staff.get("markup_x")),
        transport_markup_x=markup_multiplier(transport.get("markup_x")),
        extra_fee_markup_x=markup_multiplier(
            extra_fees.get("default_markup_x"), default=Decimal("1.5")
        ),
        modifier_limit_cap=to_quantity(bundles.get("modifier_limit_cap", 16)),
        bundle_types=tuple(parse_bundle_type(b) for b in bundles.get("types", []) or []),
        vehicle_types=tuple(
            parse_vehicle_type(v) for v in transport.get("vehicle_types", []) or []
        ),
        payment=parse_payment_defaults(data.get("payment", {}) or {}),
        checksum=compute_checksum(data),
    )


def load_config_file(path: Path) -> PricingConfig:
    """Load and parse one YAML configuration file."""
    return parse_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
