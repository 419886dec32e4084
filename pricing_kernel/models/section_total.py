"""
Module: pricing_kernel.models.section_total
Responsibility: Last committed {cost, price} pair per (event, section).
Architecture position: Kernel > Models.  May import from db/base.py only.

One row per (event, section), overwritten on every commit, never appended.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pricing_kernel.db.base import TimestampedBase


class SectionTotalModel(TimestampedBase):
    __tablename__ = "pricing_section_totals"

    __table_args__ = (
        UniqueConstraint("event_id", "section", name="uq_section_total_event_section"),
    )

    event_id: Mapped[str] = mapped_column(String(64), nullable=False)

    section: Mapped[str] = mapped_column(String(32), nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    stale: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    published_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<SectionTotal {self.event_id}/{self.section}: {self.cost}/{self.price}>"
