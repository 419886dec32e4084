"""
Extra-Fee Engine - Resolve extra-fee rows into monetary amounts.

Pure functions with no I/O. Section prices are provided as ``FeeBases``.

Modes:
    MANUAL             amount = quantity * unit_price_manual; no cost
    COST_BASED         amount = quantity * cost * markup_x; cost = quantity * cost
    PERCENT_EXCLUSIVE  amount = percent * base[percent_base]; no cost
    PERCENT_INCLUSIVE  amount = percent of a grand total that includes the
                       fee itself; no cost

Inclusive fees are solved in closed form, never iteratively. With
``B`` the total excluding fees, ``N`` the sum of all other fee amounts and
``K = sum(p_i / (1 + p_i))`` over inclusive rows, the fee total satisfies
``T = N + K * (B + T)``, so ``T = (N + K*B) / (1 - K)`` for ``K < 1``.

``K`` is evaluated as ``A / D`` with ``D = prod(1 + p_i)`` and
``A = sum(p_i * prod_{j != i}(1 + p_j))``, which keeps every step a
product of the operator's own Decimal inputs; ``T = (N*D + A*B) / (D - A)``
then needs a single division. The last inclusive row takes the residual
so that ``sum(inclusive amounts) == T - N`` holds exactly.

``K >= 1`` (A >= D) has no finite solution. Inclusive rows then fall back
to ``percent * B`` and the resolution carries a NON_CONVERGENT_FEE_SYSTEM
warning.

Usage:
    from pricing_engines.extra_fees import ExtraFeeResolver, FeeBases

    bases = FeeBases.from_prices({SectionKey.BUNDLES: Money.of("1000000", "VND")}, "VND")
    rows = [ExtraFeeRow(id="f1", mode=FeeMode.PERCENT_INCLUSIVE, percent=50)]
    result = ExtraFeeResolver().resolve(rows, bases)
    print(result.extra_fee_price)  # 500000 VND
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal, localcontext

from pricing_engines.tracer import traced_engine
from pricing_kernel.domain.numeric import ONE, ZERO
from pricing_kernel.domain.rows import ExtraFeeRow, FeeMode
from pricing_kernel.domain.sections import (
    BASE_SECTIONS,
    PercentBase,
    PricingWarning,
    SectionKey,
)
from pricing_kernel.domain.values import Currency, Money
from pricing_kernel.exceptions import NonConvergentFeeSystemError
from pricing_kernel.logging_config import get_logger

logger = get_logger("engines.extra_fees")

# Working precision of the inclusive solve, and the exponent inclusive
# amounts are quantized to so that sums of them stay exact.
SOLVE_PRECISION = 60
INCLUSIVE_QUANTUM = Decimal("1E-12")


@dataclass(frozen=True)
class FeeBases:
    """
    Section prices a percentage fee or discount can be computed against.

    ``extra_fees`` is only known after fee resolution; it is used by
    discounts scoped to the total including fees.
    """

    bundles: Money
    equipment: Money
    staff: Money
    transport: Money
    assets: Money
    extra_fees: Money | None = None

    @classmethod
    def zero(cls, currency: str | Currency) -> FeeBases:
        zero = Money.zero(currency)
        return cls(zero, zero, zero, zero, zero)

    @classmethod
    def from_prices(cls, prices: Mapping[SectionKey, Money], currency: str | Currency) -> FeeBases:
        """Build bases from a section -> price mapping; missing sections are 0."""
        zero = Money.zero(currency)
        return cls(*(prices.get(section, zero) for section in BASE_SECTIONS))

    @property
    def currency(self) -> Currency:
        return self.bundles.currency

    @property
    def total_excluding_fees(self) -> Money:
        return self.bundles + self.equipment + self.staff + self.transport + self.assets

    @property
    def total_including_fees(self) -> Money:
        if self.extra_fees is None:
            return self.total_excluding_fees
        return self.total_excluding_fees + self.extra_fees

    def with_extra_fees(self, extra_fees: Money) -> FeeBases:
        return FeeBases(
            self.bundles, self.equipment, self.staff, self.transport, self.assets, extra_fees
        )

    def of(self, base: PercentBase | None) -> Money:
        """Value of a named base; None means the total excluding fees."""
        if base is None or base is PercentBase.TOTAL_EXCLUDING_FEES:
            return self.total_excluding_fees
        if base is PercentBase.TOTAL_INCLUDING_FEES:
            return self.total_including_fees
        return getattr(self, base.value)


@dataclass(frozen=True)
class FeeLine:
    """Resolved amount of one extra-fee row."""

    row_id: str
    label: str
    mode: FeeMode
    amount: Money  # contribution to price
    cost: Money  # contribution to cost


@dataclass(frozen=True)
class ExtraFeeResolution:
    """
    Complete extra-fee resolution.

    ``independent_total`` is N (manual, cost-based and exclusive rows).
    ``fee_total`` is T and equals ``extra_fee_price``.
    ``inclusive_ratio`` is K; None when there are no inclusive rows.
    """

    lines: tuple[FeeLine, ...]
    extra_fee_cost: Money
    extra_fee_price: Money
    independent_total: Money
    inclusive_ratio: Decimal | None = None
    converged: bool = True
    warnings: tuple[PricingWarning, ...] = ()

    @classmethod
    def empty(cls, currency: str | Currency) -> ExtraFeeResolution:
        zero = Money.zero(currency)
        return cls(lines=(), extra_fee_cost=zero, extra_fee_price=zero, independent_total=zero)

    @property
    def fee_total(self) -> Money:
        return self.extra_fee_price

    @property
    def inclusive_total(self) -> Money:
        """Sum of inclusive row amounts; equals ``fee_total - independent_total``."""
        return Money.total(
            (line.amount for line in self.lines if line.mode is FeeMode.PERCENT_INCLUSIVE),
            self.extra_fee_price.currency,
        )

    @property
    def per_row_amount(self) -> dict[str, Money]:
        return {line.row_id: line.amount for line in self.lines}

    def amount_of(self, row_id: str) -> Money | None:
        for line in self.lines:
            if line.row_id == row_id:
                return line.amount
        return None


class ExtraFeeResolver:
    """
    Resolve extra-fee rows.

    Pure functions - no I/O, no database access.

    Args:
        default_markup_x: Markup for COST_BASED rows whose ``markup_x`` is
            not set.
    """

    def __init__(self, default_markup_x: Decimal = Decimal("1.5")):
        self.default_markup_x = default_markup_x

    def resolve(self, rows: Sequence[ExtraFeeRow], bases: FeeBases) -> ExtraFeeResolution:
        """
        Resolve every row against ``bases``.

        Returns:
            ExtraFeeResolution with one line per row, in input order.
        """
        t0 = time.monotonic()
        currency = bases.currency
        zero = Money.zero(currency)
        total_excluding = bases.total_excluding_fees

        logger.info("extra_fee_resolution_started", extra={
            "row_count": len(rows),
            "total_excluding_fees": str(total_excluding.amount),
            "currency": currency.code,
        })

        if not rows:
            return ExtraFeeResolution.empty(currency)

        amounts: dict[str, Money] = {}
        costs: dict[str, Money] = {}
        inclusive: list[ExtraFeeRow] = []

        for row in rows:
            if row.mode is FeeMode.MANUAL:
                amounts[row.id] = Money.of(row.unit_price_manual * row.quantity, currency)
                costs[row.id] = zero
            elif row.mode is FeeMode.COST_BASED:
                markup = row.markup_x if row.markup_x is not None else self.default_markup_x
                line_cost = row.cost * row.quantity
                amounts[row.id] = Money.of(line_cost * markup, currency)
                costs[row.id] = Money.of(line_cost, currency)
            elif row.mode is FeeMode.PERCENT_EXCLUSIVE:
                amounts[row.id] = bases.of(row.percent_base) * row.rate
                costs[row.id] = zero
            else:
                inclusive.append(row)
                costs[row.id] = zero

        independent = Money.total(amounts.values(), currency)
        ratio: Decimal | None = None
        converged = True
        warnings: list[PricingWarning] = []

        if inclusive:
            solved = _solve_inclusive(inclusive, independent.amount, total_excluding.amount)
            if solved is None:
                converged = False
                error = NonConvergentFeeSystemError(
                    inclusive_ratio=str(_inclusive_ratio(inclusive)),
                    row_ids=[row.id for row in inclusive],
                )
                warnings.append(PricingWarning.from_error(error, section=SectionKey.EXTRA_FEES.value))
                logger.warning("extra_fee_system_non_convergent", extra={
                    "inclusive_ratio": error.inclusive_ratio,
                    "row_ids": error.row_ids,
                })
                for row in inclusive:
                    amounts[row.id] = total_excluding * row.rate
            else:
                ratio, inclusive_amounts = solved
                for row in inclusive:
                    amounts[row.id] = Money.of(inclusive_amounts[row.id], currency)

        lines = tuple(
            FeeLine(
                row_id=row.id,
                label=row.label,
                mode=row.mode,
                amount=amounts[row.id],
                cost=costs[row.id],
            )
            for row in rows
        )
        result = ExtraFeeResolution(
            lines=lines,
            extra_fee_cost=Money.total(costs.values(), currency),
            extra_fee_price=Money.total((line.amount for line in lines), currency),
            independent_total=independent,
            inclusive_ratio=ratio,
            converged=converged,
            warnings=tuple(warnings),
        )

        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        logger.info("extra_fee_resolution_completed", extra={
            "extra_fee_cost": str(result.extra_fee_cost.amount),
            "extra_fee_price": str(result.extra_fee_price.amount),
            "independent_total": str(independent.amount),
            "inclusive_row_count": len(inclusive),
            "inclusive_ratio": str(ratio) if ratio is not None else None,
            "converged": converged,
            "duration_ms": duration_ms,
        })
        return result


def _ratio_terms(rows: Sequence[ExtraFeeRow]) -> tuple[Decimal, Decimal]:
    """(A, D) such that K = A / D."""
    factors = [ONE + row.rate for row in rows]
    denominator = ONE
    for factor in factors:
        denominator *= factor
    numerator = ZERO
    for i, row in enumerate(rows):
        others = ONE
        for j, factor in enumerate(factors):
            if j != i:
                others *= factor
        numerator += row.rate * others
    return numerator, denominator


def _inclusive_ratio(rows: Sequence[ExtraFeeRow]) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = SOLVE_PRECISION
        numerator, denominator = _ratio_terms(rows)
        return numerator / denominator


def _solve_inclusive(
    rows: Sequence[ExtraFeeRow],
    independent: Decimal,
    base: Decimal,
) -> tuple[Decimal, dict[str, Decimal]] | None:
    """
    Closed-form solve of the inclusive fee system.

    Returns (K, amounts by row id), or None when K >= 1.
    """
    with localcontext() as ctx:
        ctx.prec = SOLVE_PRECISION
        numerator, denominator = _ratio_terms(rows)
        if numerator >= denominator:
            return None

        fee_total = (independent * denominator + numerator * base) / (denominator - numerator)
        fee_total = fee_total.quantize(INCLUSIVE_QUANTUM)
        grand = base + fee_total

        amounts: dict[str, Decimal] = {}
        for row in rows[:-1]:
            amounts[row.id] = (row.rate * grand / (ONE + row.rate)).quantize(INCLUSIVE_QUANTUM)
        last = rows[-1]
        amounts[last.id] = fee_total - independent - sum(amounts.values(), ZERO)
        return numerator / denominator, amounts


@traced_engine("extra_fees", "1.0", fingerprint_fields=("rows", "bases", "default_markup_x"))
def resolve_extra_fees(
    *,
    rows: Sequence[ExtraFeeRow],
    bases: FeeBases,
    default_markup_x: Decimal = Decimal("1.5"),
) -> ExtraFeeResolution:
    """Traced entry point for extra-fee resolution."""
    return ExtraFeeResolver(default_markup_x).resolve(rows, bases)
