"""
Module: pricing_services
Responsibility:
    Stateful orchestration over the pure engines: the aggregation bus,
    section publishers, draft/commit controllers, the totals service,
    the commit trigger, the SQLAlchemy and in-memory stores, and the
    ``EventPricingService`` facade.

Architecture position:
    Services -- may import pricing_kernel, pricing_engines and
    pricing_config.  Nothing below imports from here.

Usage:
    from pricing_services import EventPricingService, SqlRowStore
"""

from pricing_services.aggregation_bus import AggregationBus
from pricing_services.commit_trigger import CommitTrigger
from pricing_services.discount_source import FixedDiscountSource, RowDiscountSource
from pricing_services.draft_controller import (
    CommitResult,
    DraftController,
    RowDiff,
    RowFailure,
    signature_of,
)
from pricing_services.interfaces import (
    DiscountSource,
    PaymentTermsStore,
    RowStore,
    SectionTotalStore,
    SnapshotStore,
)
from pricing_services.memory import (
    InMemoryPaymentTermsStore,
    InMemoryRowStore,
    InMemorySectionTotalStore,
    InMemorySnapshotStore,
)
from pricing_services.payment_terms_store import SqlPaymentTermsStore
from pricing_services.pricing_service import CommitReport, EventPricingService
from pricing_services.row_store import SqlRowStore
from pricing_services.section_publisher import SectionPublisher
from pricing_services.snapshot_store import SqlSectionTotalStore, SqlSnapshotStore
from pricing_services.totals_service import TotalsService

__all__ = [
    "AggregationBus",
    "CommitReport",
    "CommitResult",
    "CommitTrigger",
    "DiscountSource",
    "DraftController",
    "EventPricingService",
    "FixedDiscountSource",
    "InMemoryPaymentTermsStore",
    "InMemoryRowStore",
    "InMemorySectionTotalStore",
    "InMemorySnapshotStore",
    "PaymentTermsStore",
    "RowDiff",
    "RowDiscountSource",
    "RowFailure",
    "RowStore",
    "SectionPublisher",
    "SectionTotalStore",
    "SnapshotStore",
    "SqlPaymentTermsStore",
    "SqlRowStore",
    "SqlSectionTotalStore",
    "SqlSnapshotStore",
    "TotalsService",
]
