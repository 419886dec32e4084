"""
Module: pricing_kernel.models.totals_snapshot
Responsibility: Durable "last known good" totals snapshot per event.
Architecture position: Kernel > Models.  May import from db/base.py only.

The full snapshot lives in ``body`` (``TotalsSnapshot.to_dict()``); the
post-discount price is also kept as a column because it is the event's
authoritative quoted total.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pricing_kernel.db.base import TimestampedBase


class TotalsSnapshotModel(TimestampedBase):
    __tablename__ = "pricing_totals_snapshots"

    __table_args__ = (
        UniqueConstraint("event_id", name="uq_totals_snapshot_event"),
    )

    event_id: Mapped[str] = mapped_column(String(64), nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    price_after_discounts: Mapped[Decimal] = mapped_column(nullable=False)

    computed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    body: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    def __repr__(self) -> str:
        return f"<TotalsSnapshot {self.event_id}: {self.price_after_discounts} {self.currency}>"
