"""
pricing_config -- single public entrypoint for pricing configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``. Section markups, bundle types, vehicle types
    and payment defaults all come from here.

Architecture position:
    Configuration -- sits above ``pricing_kernel`` and beside
    ``pricing_engines``. The kernel MUST NEVER import from
    ``pricing_config``.

Failure modes:
    - ``FileNotFoundError`` -- the requested file does not exist.
    - ``ValueError`` / ``KeyError`` -- structural validation failures.

Every successful ``get_active_config()`` call emits a
``PRICING_CONFIG_TRACE`` log entry with the config checksum.
"""

from __future__ import annotations

from pathlib import Path

from pricing_config.loader import load_config_file
from pricing_config.schema import (
    BundleTypeConfig,
    PaymentDefaults,
    PricingConfig,
    VehicleType,
)
from pricing_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "pricing.yaml"


def get_active_config(path: Path | None = None) -> PricingConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: Override path to a YAML configuration file.
            Defaults to pricing_config/defaults/pricing.yaml.

    Returns:
        A frozen ``PricingConfig``.
    """
    config_path = path or DEFAULT_CONFIG_PATH
    config = load_config_file(config_path)

    _logger.info(
        "PRICING_CONFIG_TRACE",
        extra={
            "trace_type": "PRICING_CONFIG_TRACE",
            "config_path": str(config_path),
            "checksum": config.checksum,
            "currency": config.currency,
            "bundle_type_count": len(config.bundle_types),
            "vehicle_type_count": len(config.vehicle_types),
        },
    )
    return config


__all__ = [
    "BundleTypeConfig",
    "DEFAULT_CONFIG_PATH",
    "PaymentDefaults",
    "PricingConfig",
    "VehicleType",
    "get_active_config",
]
