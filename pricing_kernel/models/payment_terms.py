"""
Module: pricing_kernel.models.payment_terms
Responsibility: Persisted deposit/balance split of an event.
Architecture position: Kernel > Models.  May import from db/base.py only.

Percentages are stored as text so that a derived value such as
33.333333333333333333333333 keeps its full precision; ``deposit_ratio``
is the same split expressed as a 0..1 fraction for reporting queries.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pricing_kernel.db.base import TimestampedBase


class PaymentTermsModel(TimestampedBase):
    __tablename__ = "pricing_payment_terms"

    __table_args__ = (
        UniqueConstraint("event_id", name="uq_payment_terms_event"),
    )

    event_id: Mapped[str] = mapped_column(String(64), nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    plan: Mapped[str] = mapped_column(String(16), nullable=False)

    total: Mapped[Decimal] = mapped_column(nullable=False)

    deposit_amount: Mapped[Decimal] = mapped_column(nullable=False)

    balance_amount: Mapped[Decimal] = mapped_column(nullable=False)

    deposit_percent: Mapped[str] = mapped_column(String(64), nullable=False)

    balance_percent: Mapped[str] = mapped_column(String(64), nullable=False)

    deposit_ratio: Mapped[Decimal] = mapped_column(nullable=False)

    deposit_due_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    balance_due_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    payment_term: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<PaymentTerms {self.event_id}: {self.payment_term}>"
