"""
Module: pricing_kernel.models.section_row
Responsibility: Durable storage for the editable rows of every section
    (bundles, equipment, staff, transport, assets, extra fees, discounts).
Architecture position: Kernel > Models.  May import from db/base.py only.

Rows are stored as a JSON payload keyed by (event_id, section) so that one
table serves every row type; ``pricing_kernel.domain.rows`` owns the shape
of the payload.  The primary key doubles as the row id seen by drafts.
"""

from typing import Any

from sqlalchemy import JSON, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from pricing_kernel.db.base import TimestampedBase


class SectionRowModel(TimestampedBase):
    """One persisted row of one section of one event."""

    __tablename__ = "pricing_section_rows"

    __table_args__ = (
        Index("idx_section_rows_event_section", "event_id", "section"),
    )

    event_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    section: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
    )

    # Display order within the section
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    payload: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )

    def __repr__(self) -> str:
        return f"<SectionRow {self.section}/{self.id} event={self.event_id}>"
