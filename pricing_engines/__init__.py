"""
Module: pricing_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines: section recompute, extra-fee resolution,
    discounts, totals aggregation and the payment split.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import pricing_kernel.domain and pricing_config.schema.
    MUST NOT import pricing_services.

Invariants enforced:
    - Purity: engines never call ``datetime.now()``; callers pass ``as_of``.
    - Decimal-only arithmetic; floats never reach an engine.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from pricing_engines import SectionCalculator, ExtraFeeResolver
    from pricing_engines import TotalsAggregator, PaymentSplitter
"""

from pricing_engines.discounts import DiscountCalculator, DiscountLine, DiscountResult
from pricing_engines.extra_fees import (
    ExtraFeeResolution,
    ExtraFeeResolver,
    FeeBases,
    FeeLine,
    resolve_extra_fees,
)
from pricing_engines.payment_split import (
    FULL_PAYMENT_TERM,
    PaymentPlan,
    PaymentSplit,
    PaymentSplitter,
    format_percent,
)
from pricing_engines.sections import (
    RowAmount,
    SectionCalculator,
    SectionComputation,
    equipment_unit_values,
    recompute_section,
)
from pricing_engines.totals import (
    SectionLine,
    TotalsAggregator,
    TotalsSnapshot,
    aggregate_totals,
)
from pricing_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "DiscountCalculator",
    "DiscountLine",
    "DiscountResult",
    "ExtraFeeResolution",
    "ExtraFeeResolver",
    "FULL_PAYMENT_TERM",
    "FeeBases",
    "FeeLine",
    "PaymentPlan",
    "PaymentSplit",
    "PaymentSplitter",
    "RowAmount",
    "SectionCalculator",
    "SectionComputation",
    "SectionLine",
    "TotalsAggregator",
    "TotalsSnapshot",
    "aggregate_totals",
    "compute_input_fingerprint",
    "equipment_unit_values",
    "format_percent",
    "recompute_section",
    "resolve_extra_fees",
    "traced_engine",
]
