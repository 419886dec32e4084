"""
Rows -- Editable line items of each section.

Responsibility:
    Typed, immutable row records for bundles, equipment, staff, transport,
    company assets, extra fees and discounts. Every row normalizes its own
    fields on construction through ``pricing_kernel.domain.numeric`` so
    the engines only ever see clamped, finite Decimal values.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - Construction never raises on bad operator input; values are clamped.
    - ``content()`` excludes the row id, so two rows with equal content
      have equal signatures whether they are persisted or still carry a
      temporary ``tmp:`` id.
    - ``to_payload()`` / ``from_payload()`` give a JSON-safe form used by
      the row store; ``from_payload`` tolerates unknown keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar
from uuid import uuid4

from pricing_kernel.domain.numeric import (
    ZERO,
    clamp_percent,
    markup_multiplier,
    non_negative,
    optional_amount,
    to_quantity,
)
from pricing_kernel.domain.sections import PercentBase, SectionKey

TEMP_ID_PREFIX = "tmp:"
DISCOUNTS = "discounts"


def new_temp_id() -> str:
    """Id for a row that exists only in a draft."""
    return f"{TEMP_ID_PREFIX}{uuid4().hex}"


def is_temp_id(row_id: str | None) -> bool:
    return not row_id or str(row_id).startswith(TEMP_ID_PREFIX)


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _ref(value: Any) -> str | None:
    text = _text(value)
    return text or None


def _enum(enum_type: type[Enum], value: Any, default: Enum | None) -> Any:
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(_text(value).lower())
    except ValueError:
        return default


class FeeMode(str, Enum):
    """How an extra-fee row derives its amount."""

    MANUAL = "manual"
    COST_BASED = "cost_based"
    PERCENT_EXCLUSIVE = "percent_exclusive"
    PERCENT_INCLUSIVE = "percent_inclusive"

    @property
    def is_percentage(self) -> bool:
        return self in (FeeMode.PERCENT_EXCLUSIVE, FeeMode.PERCENT_INCLUSIVE)


class DiscountMode(str, Enum):
    MANUAL = "manual"
    PERCENT = "percent"


class Row:
    """Shared behaviour of section rows (dataclass mixin)."""

    section: ClassVar[str]

    id: str

    def _set(self, name: str, value: Any) -> None:
        object.__setattr__(self, name, value)

    def content(self) -> dict[str, Any]:
        """Row fields without the id."""
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "id"}

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe content, as written to the row store."""
        payload: dict[str, Any] = {}
        for name, value in self.content().items():
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, Decimal):
                value = str(value)
            elif isinstance(value, tuple):
                value = list(value)
            payload[name] = value
        return payload

    @classmethod
    def from_payload(cls, row_id: str, payload: dict[str, Any]) -> Row:
        names = {f.name for f in fields(cls)} - {"id"}
        return cls(id=str(row_id), **{k: v for k, v in payload.items() if k in names})

    @property
    def is_temporary(self) -> bool:
        return is_temp_id(self.id)


@dataclass(frozen=True)
class BundleRow(Row):
    """A package bundle: one dish plus modifiers, times a quantity."""

    section: ClassVar[str] = SectionKey.BUNDLES.value

    id: str
    bundle_type: str = ""
    dish_id: str | None = None
    modifier_ids: tuple[str, ...] = ()
    quantity: int = 0

    def __post_init__(self) -> None:
        self._set("bundle_type", _text(self.bundle_type))
        self._set("dish_id", _ref(self.dish_id))
        self._set(
            "modifier_ids",
            tuple(m for m in (_ref(x) for x in (self.modifier_ids or ())) if m),
        )
        self._set("quantity", to_quantity(self.quantity))


@dataclass(frozen=True)
class EquipmentRow(Row):
    """
    Rented equipment. ``unit_cost_override`` and ``markup_x_override``
    each replace the catalog default independently.
    """

    section: ClassVar[str] = SectionKey.EQUIPMENT.value

    id: str
    equipment_id: str | None = None
    quantity: int = 0
    unit_cost_override: Decimal | None = None
    markup_x_override: Decimal | None = None
    notes: str = ""

    def __post_init__(self) -> None:
        self._set("equipment_id", _ref(self.equipment_id))
        self._set("quantity", to_quantity(self.quantity))
        self._set("unit_cost_override", optional_amount(self.unit_cost_override))
        markup = optional_amount(self.markup_x_override)
        self._set("markup_x_override", None if markup is None else markup_multiplier(markup))
        self._set("notes", _text(self.notes))


@dataclass(frozen=True)
class StaffRow(Row):
    section: ClassVar[str] = SectionKey.STAFF.value

    id: str
    name: str = ""
    role: str = ""
    cost_per_hour: Decimal = ZERO
    hours: Decimal = ZERO
    notes: str = ""

    def __post_init__(self) -> None:
        self._set("name", _text(self.name))
        self._set("role", _text(self.role))
        self._set("cost_per_hour", non_negative(self.cost_per_hour))
        self._set("hours", non_negative(self.hours))
        self._set("notes", _text(self.notes))


@dataclass(frozen=True)
class TransportRow(Row):
    """
    A transport leg. ``cost_per_km`` and ``markup_x`` fall back to the
    vehicle type and the section markup when not set.
    """

    section: ClassVar[str] = SectionKey.TRANSPORT.value

    id: str
    from_text: str = ""
    to_text: str = ""
    vehicle_key: str | None = None
    round_trip: bool = False
    distance_km: Decimal = ZERO
    cost_per_km: Decimal | None = None
    markup_x: Decimal | None = None
    notes: str = ""

    def __post_init__(self) -> None:
        self._set("from_text", _text(self.from_text))
        self._set("to_text", _text(self.to_text))
        self._set("vehicle_key", _ref(self.vehicle_key))
        self._set("round_trip", _flag(self.round_trip))
        self._set("distance_km", non_negative(self.distance_km))
        self._set("cost_per_km", optional_amount(self.cost_per_km))
        markup = optional_amount(self.markup_x)
        self._set("markup_x", None if markup is None else markup_multiplier(markup))
        self._set("notes", _text(self.notes))

    @property
    def legs(self) -> int:
        return 2 if self.round_trip else 1


@dataclass(frozen=True)
class AssetRow(Row):
    """Company-owned asset. Contributes price only, never cost."""

    section: ClassVar[str] = SectionKey.ASSETS.value

    id: str
    asset_id: str | None = None
    name: str = ""
    quantity: int = 0
    include_price: bool = True
    unit_price: Decimal = ZERO
    notes: str = ""

    def __post_init__(self) -> None:
        self._set("asset_id", _ref(self.asset_id))
        self._set("name", _text(self.name))
        self._set("quantity", to_quantity(self.quantity))
        self._set("include_price", _flag(self.include_price))
        self._set("unit_price", non_negative(self.unit_price))
        self._set("notes", _text(self.notes))


@dataclass(frozen=True)
class ExtraFeeRow(Row):
    """
    An extra fee.

    ``percent`` is a percentage number (10 means 10%). ``markup_x`` of
    None means the configured default markup applies. ``percent_base`` is
    only meaningful for PERCENT_EXCLUSIVE rows; None means the total
    excluding fees.
    """

    section: ClassVar[str] = SectionKey.EXTRA_FEES.value

    id: str
    label: str = ""
    quantity: int = 1
    mode: FeeMode = FeeMode.MANUAL
    unit_price_manual: Decimal = ZERO
    cost: Decimal = ZERO
    markup_x: Decimal | None = None
    percent: Decimal = ZERO
    percent_base: PercentBase | None = None

    def __post_init__(self) -> None:
        self._set("label", _text(self.label))
        self._set("quantity", to_quantity(self.quantity))
        self._set("mode", _enum(FeeMode, self.mode, FeeMode.MANUAL))
        self._set("unit_price_manual", non_negative(self.unit_price_manual))
        self._set("cost", non_negative(self.cost))
        markup = optional_amount(self.markup_x)
        self._set("markup_x", None if markup is None else markup_multiplier(markup))
        self._set("percent", clamp_percent(self.percent))
        base = None if self.percent_base is None else _enum(PercentBase, self.percent_base, None)
        if base is PercentBase.TOTAL_INCLUDING_FEES:
            base = None
        self._set("percent_base", base)

    @property
    def rate(self) -> Decimal:
        """``percent`` as a fraction (0.1 for 10%)."""
        return self.percent / Decimal("100")


@dataclass(frozen=True)
class DiscountRow(Row):
    """A discount: a fixed amount or a percentage of a named base."""

    section: ClassVar[str] = DISCOUNTS

    id: str
    label: str = ""
    mode: DiscountMode = DiscountMode.MANUAL
    amount: Decimal = ZERO
    percent: Decimal = ZERO
    scope: PercentBase = PercentBase.TOTAL_INCLUDING_FEES

    def __post_init__(self) -> None:
        self._set("label", _text(self.label))
        self._set("mode", _enum(DiscountMode, self.mode, DiscountMode.MANUAL))
        self._set("amount", non_negative(self.amount))
        self._set("percent", clamp_percent(self.percent))
        self._set(
            "scope",
            _enum(PercentBase, self.scope, PercentBase.TOTAL_INCLUDING_FEES),
        )


ROW_TYPES: dict[str, type[Row]] = {
    row_type.section: row_type
    for row_type in (
        BundleRow,
        EquipmentRow,
        StaffRow,
        TransportRow,
        AssetRow,
        ExtraFeeRow,
        DiscountRow,
    )
}


def row_type_for(section: str | SectionKey) -> type[Row]:
    """Row class stored under ``section``. Raises KeyError if unknown."""
    key = section.value if isinstance(section, SectionKey) else str(section)
    return ROW_TYPES[key]
