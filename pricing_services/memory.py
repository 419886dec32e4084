"""
In-memory store implementations.

Dict-backed versions of the store protocols for tests, demos and
callers that run without a database.  ``InMemoryRowStore`` can be told
to fail for given row ids or operations, which is how partial commits
are exercised.
"""

from __future__ import annotations

from dataclasses import replace
from uuid import uuid4

from pricing_engines.payment_split import PaymentSplit
from pricing_engines.totals import TotalsSnapshot
from pricing_kernel.domain.rows import Row
from pricing_kernel.domain.sections import SectionTotal
from pricing_kernel.exceptions import RowStoreError, SourceUnavailableError


class InMemoryRowStore:
    """Row store keeping rows per (event_id, section) in insertion order."""

    def __init__(self) -> None:
        self._rows: dict[tuple[str, str], dict[str, tuple[int, Row]]] = {}
        self.failing_row_ids: set[str] = set()
        self.failing_operations: set[str] = set()
        self.unavailable_sections: set[str] = set()

    def seed(self, event_id: str, section: str, rows: list[Row]) -> list[Row]:
        """Store rows directly, assigning durable ids. Returns the stored rows."""
        stored = []
        for row in rows:
            new_id = self.create(event_id, section, row, len(self._bucket(event_id, section)))
            stored.append(replace(row, id=new_id))
        return stored

    def list(self, event_id: str, section: str) -> list[Row]:
        if section in self.unavailable_sections:
            raise SourceUnavailableError(f"rows[{section}]", "store offline")
        bucket = self._bucket(event_id, section)
        return [row for _, row in sorted(bucket.values(), key=lambda item: item[0])]

    def create(self, event_id: str, section: str, row: Row, position: int) -> str:
        self._check("create", row.id)
        new_id = uuid4().hex
        self._bucket(event_id, section)[new_id] = (position, replace(row, id=new_id))
        return new_id

    def update(self, event_id: str, section: str, row: Row, position: int) -> None:
        self._check("update", row.id)
        bucket = self._bucket(event_id, section)
        if row.id not in bucket:
            raise RowStoreError("update", row.id, "row not found")
        bucket[row.id] = (position, row)

    def delete(self, event_id: str, section: str, row_id: str) -> None:
        self._check("delete", row_id)
        bucket = self._bucket(event_id, section)
        if row_id not in bucket:
            raise RowStoreError("delete", row_id, "row not found")
        del bucket[row_id]

    def _bucket(self, event_id: str, section: str) -> dict[str, tuple[int, Row]]:
        return self._rows.setdefault((event_id, section), {})

    def _check(self, operation: str, row_id: str) -> None:
        if row_id in self.failing_row_ids or operation in self.failing_operations:
            raise RowStoreError(operation, row_id, "rejected by store")


class InMemorySnapshotStore:
    def __init__(self) -> None:
        self._snapshots: dict[str, TotalsSnapshot] = {}

    def write(self, event_id: str, snapshot: TotalsSnapshot) -> None:
        self._snapshots[event_id] = snapshot

    def read(self, event_id: str) -> TotalsSnapshot | None:
        return self._snapshots.get(event_id)


class InMemorySectionTotalStore:
    def __init__(self) -> None:
        self._totals: dict[tuple[str, str], SectionTotal] = {}

    def write(self, total: SectionTotal) -> None:
        self._totals[(total.event_id, total.section.value)] = total

    def read_all(self, event_id: str) -> list[SectionTotal]:
        return [total for (evt, _), total in self._totals.items() if evt == event_id]


class InMemoryPaymentTermsStore:
    def __init__(self) -> None:
        self._splits: dict[str, PaymentSplit] = {}

    def write(self, event_id: str, split: PaymentSplit) -> None:
        self._splits[event_id] = split

    def read(self, event_id: str) -> PaymentSplit | None:
        return self._splits.get(event_id)
