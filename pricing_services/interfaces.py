"""
pricing_services.interfaces -- Collaborator protocols of the pricing core.

Responsibility:
    Narrow interfaces for everything outside the core: the per-section
    row store, the durable snapshot and section-total stores, the payment
    terms store and the discount source.  SQLAlchemy implementations live
    in ``row_store``, ``snapshot_store`` and ``payment_terms_store``;
    in-memory ones in ``memory``.

Failure contract:
    Implementations raise ``SourceError`` subclasses (``RowStoreError``,
    ``SourceUnavailableError``) for failures the core should absorb.  The
    core converts them into stale flags, warnings and commit failures.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pricing_kernel.domain.rows import Row
from pricing_kernel.domain.sections import SectionTotal
from pricing_kernel.domain.values import Money

if TYPE_CHECKING:
    from pricing_engines.extra_fees import FeeBases
    from pricing_engines.payment_split import PaymentSplit
    from pricing_engines.totals import TotalsSnapshot


@runtime_checkable
class RowStore(Protocol):
    """Durable rows of every section, keyed by (event_id, section)."""

    def list(self, event_id: str, section: str) -> list[Row]:
        """Rows of one section in display order."""
        ...

    def create(self, event_id: str, section: str, row: Row, position: int) -> str:
        """Persist a new row and return its durable id."""
        ...

    def update(self, event_id: str, section: str, row: Row, position: int) -> None:
        """Overwrite the stored content of ``row.id``."""
        ...

    def delete(self, event_id: str, section: str, row_id: str) -> None:
        ...


@runtime_checkable
class SnapshotStore(Protocol):
    """Durable "last known good" totals snapshot per event."""

    def write(self, event_id: str, snapshot: TotalsSnapshot) -> None:
        ...

    def read(self, event_id: str) -> TotalsSnapshot | None:
        ...


@runtime_checkable
class SectionTotalStore(Protocol):
    """Committed {cost, price} per (event, section)."""

    def write(self, total: SectionTotal) -> None:
        ...

    def read_all(self, event_id: str) -> list[SectionTotal]:
        ...


@runtime_checkable
class PaymentTermsStore(Protocol):
    def write(self, event_id: str, split: PaymentSplit) -> None:
        ...

    def read(self, event_id: str) -> PaymentSplit | None:
        ...


@runtime_checkable
class DiscountSource(Protocol):
    """
    Discount total of an event.

    ``bases`` carries the current section prices (and fee total) for
    percentage discounts; sources that only know fixed amounts ignore it.
    """

    def total_discount(self, event_id: str, bases: FeeBases | None = None) -> Money:
        ...
