"""
Discount Engine - Total the discounts applied to an event.

Pure functions with no I/O. A discount row is either a fixed amount or a
percentage of a named base (a section price, the total excluding fees, or
the total including fees).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from pricing_engines.extra_fees import FeeBases
from pricing_kernel.domain.rows import DiscountMode, DiscountRow
from pricing_kernel.domain.values import Money
from pricing_kernel.logging_config import get_logger

logger = get_logger("engines.discounts")


@dataclass(frozen=True)
class DiscountLine:
    row_id: str
    label: str
    amount: Money


@dataclass(frozen=True)
class DiscountResult:
    lines: tuple[DiscountLine, ...]
    total: Money


class DiscountCalculator:
    """
    Total discount rows.

    Pure functions - no I/O, no database access.
    """

    def calculate(self, rows: Sequence[DiscountRow], bases: FeeBases) -> DiscountResult:
        """
        Args:
            rows: Discount rows of the event.
            bases: Section prices; ``bases.extra_fees`` should be set when
                any row is scoped to the total including fees.
        """
        lines = []
        for row in rows:
            if row.mode is DiscountMode.PERCENT:
                amount = bases.of(row.scope) * row.percent / 100
            else:
                amount = Money.of(row.amount, bases.currency)
            lines.append(DiscountLine(row_id=row.id, label=row.label, amount=amount))

        total = Money.total((line.amount for line in lines), bases.currency)
        logger.debug("discounts_calculated", extra={
            "row_count": len(rows),
            "discounts_total": str(total.amount),
        })
        return DiscountResult(lines=tuple(lines), total=total)
