"""ORM models for the pricing kernel."""

from pricing_kernel.models.payment_terms import PaymentTermsModel
from pricing_kernel.models.section_row import SectionRowModel
from pricing_kernel.models.section_total import SectionTotalModel
from pricing_kernel.models.totals_snapshot import TotalsSnapshotModel

__all__ = [
    "PaymentTermsModel",
    "SectionRowModel",
    "SectionTotalModel",
    "TotalsSnapshotModel",
]
