"""
pricing_services.payment_terms_store -- Durable payment split per event.

Writes the deposit/balance split produced by ``PaymentSplitter`` into
``pricing_payment_terms`` (one row per event, overwritten) and reads it
back so a reopened event restores the operator's split.

Database failures surface as SourceUnavailableError; a failed write
rolls its savepoint back first.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pricing_engines.payment_split import PaymentPlan, PaymentSplit
from pricing_kernel.domain.values import Money
from pricing_kernel.exceptions import SourceUnavailableError
from pricing_kernel.logging_config import get_logger
from pricing_kernel.models.payment_terms import PaymentTermsModel

logger = get_logger("services.payment_terms_store")


class SqlPaymentTermsStore:
    def __init__(self, session: Session):
        self._session = session

    def write(self, event_id: str, split: PaymentSplit) -> None:
        savepoint = self._session.begin_nested()
        try:
            model = self._session.execute(
                select(PaymentTermsModel).where(PaymentTermsModel.event_id == event_id)
            ).scalar_one_or_none()
            if model is None:
                model = PaymentTermsModel(event_id=event_id)
                self._session.add(model)

            model.currency = split.total.currency.code
            model.plan = split.plan.value
            model.total = split.total.amount
            model.deposit_amount = split.deposit_amount.amount
            model.balance_amount = split.balance_amount.amount
            # Full precision survives only as text.
            model.deposit_percent = str(split.deposit_percent)
            model.balance_percent = str(split.balance_percent)
            model.deposit_ratio = split.deposit_ratio
            model.deposit_due_date = split.deposit_due_date
            model.balance_due_date = split.balance_due_date
            model.payment_term = split.payment_term
            self._session.flush()
            savepoint.commit()
        except SQLAlchemyError as exc:
            savepoint.rollback()
            raise SourceUnavailableError("payment_terms", str(exc)) from exc

        logger.info("payment_terms_persisted", extra={
            "event_id": event_id,
            "plan": split.plan.value,
            "payment_term": split.payment_term,
        })

    def read(self, event_id: str) -> PaymentSplit | None:
        try:
            model = self._session.execute(
                select(PaymentTermsModel).where(PaymentTermsModel.event_id == event_id)
            ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise SourceUnavailableError("payment_terms", str(exc)) from exc
        if model is None:
            return None
        try:
            return PaymentSplit(
                total=Money.of(model.total, model.currency),
                plan=PaymentPlan(model.plan),
                deposit_amount=Money.of(model.deposit_amount, model.currency),
                balance_amount=Money.of(model.balance_amount, model.currency),
                deposit_percent=Decimal(model.deposit_percent),
                balance_percent=Decimal(model.balance_percent),
                deposit_due_date=model.deposit_due_date,
                balance_due_date=model.balance_due_date,
            )
        except (ArithmeticError, ValueError) as exc:
            raise SourceUnavailableError("payment_terms", f"malformed record: {exc}") from exc
