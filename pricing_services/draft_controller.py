"""
pricing_services.draft_controller -- Draft/commit lifecycle of one section.

Responsibility:
    Keeps two explicit state slots per section: the editable draft and
    the last rows known to be durable.  Decides dirtiness by content
    signature, refuses background hydration while the draft is dirty,
    and applies the draft as a best-effort diff against a ``RowStore``.

Architecture position:
    Services -- stateful orchestration over kernel row types.
    One controller per (event, section); ``SectionPublisher`` listens to
    its change notifications and ``EventPricingService`` drives commit.

Invariants enforced:
    - ``is_dirty`` compares content signatures only; ids, temporary ids
      and row order never make a draft dirty.
    - ``hydrate`` replaces the draft only when the draft is clean and the
      durable signature actually changed.
    - Every create/update/delete of a commit is attempted independently.
      Only successful operations advance the persisted slot, so any
      failure leaves the draft dirty.
    - Created rows swap their ``tmp:`` id for the store's id in the draft.

Failure modes:
    - Row store errors never escape ``load`` or ``commit``.  ``load``
      records ``load_error`` and leaves the draft empty; ``commit``
      reports each failing row in ``CommitResult.failures``.
    - ``CommitResult.raise_for_failures()`` converts a partial commit
      into ``PartialCommitFailureError`` for callers that want one.

Usage:
    controller = DraftController("evt-1", SectionKey.STAFF, store)
    controller.load()
    controller.add_row(StaffRow(id="", name="Chef", cost_per_hour=200000, hours=6))
    result = controller.commit()
    if not result.ok:
        show(result.failures)
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace

from pricing_kernel.domain.rows import Row, is_temp_id, new_temp_id
from pricing_kernel.exceptions import (
    PartialCommitFailureError,
    PricingKernelError,
    RowCommitFailedError,
)
from pricing_kernel.logging_config import LogContext, get_logger
from pricing_kernel.utils.hashing import content_signature
from pricing_services.interfaces import RowStore

logger = get_logger("services.draft_controller")

DraftListener = Callable[[Sequence[Row]], None]


def signature_of(rows: Sequence[Row]) -> str:
    """Order- and id-independent signature of a row list."""
    return content_signature(row.content() for row in rows)


@dataclass(frozen=True)
class RowDiff:
    """Row operations that turn the persisted slot into the draft."""

    created: tuple[Row, ...] = ()
    updated: tuple[Row, ...] = ()
    deleted: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.created or self.updated or self.deleted)


@dataclass(frozen=True)
class RowFailure:
    """One row operation of a commit that the store rejected."""

    operation: str
    row_id: str
    code: str
    message: str


@dataclass(frozen=True)
class CommitResult:
    """
    Outcome of applying a diff.

    ``created`` pairs each temporary id with the id the store assigned.
    """

    section: str
    created: tuple[tuple[str, str], ...] = ()
    updated: tuple[str, ...] = ()
    deleted: tuple[str, ...] = ()
    failures: tuple[RowFailure, ...] = field(default=())

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def failed_row_ids(self) -> list[str]:
        return [failure.row_id for failure in self.failures]

    def raise_for_failures(self) -> None:
        if self.failures:
            raise PartialCommitFailureError(self.section, self.failed_row_ids)


class DraftController:
    """
    Draft and last-persisted rows of one section of one event.

    Args:
        event_id: Owning event.
        section: Row-store section name (a ``SectionKey`` value or
            ``"discounts"``).
        store: Durable row store.
    """

    def __init__(self, event_id: str, section: str, store: RowStore):
        self.event_id = event_id
        self.section = getattr(section, "value", section)
        self._store = store
        self._draft: list[Row] = []
        self._persisted: list[Row] = []
        self._persisted_signature = signature_of([])
        self._listeners: list[DraftListener] = []
        self.load_error: PricingKernelError | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def rows(self) -> list[Row]:
        return list(self._draft)

    @property
    def persisted_rows(self) -> list[Row]:
        return list(self._persisted)

    @property
    def draft_signature(self) -> str:
        return signature_of(self._draft)

    @property
    def persisted_signature(self) -> str:
        return self._persisted_signature

    def is_dirty(self) -> bool:
        return self.draft_signature != self._persisted_signature

    def on_change(self, listener: DraftListener) -> Callable[[], None]:
        """Register a listener called with the draft after every change."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # ------------------------------------------------------------------
    # Durable side
    # ------------------------------------------------------------------

    def load(self) -> bool:
        """
        Read the durable rows and hydrate from them.

        Returns:
            True if the draft was replaced.
        """
        try:
            rows = self._store.list(self.event_id, self.section)
        except PricingKernelError as exc:
            self.load_error = exc
            logger.warning("draft_load_failed", extra={
                "event_id": self.event_id,
                "section": self.section,
                "error_code": exc.code,
                "error": str(exc),
            })
            return False
        self.load_error = None
        return self.hydrate(rows)

    def hydrate(self, persisted: Sequence[Row]) -> bool:
        """
        Accept a durable row list.

        The draft follows it only when the draft is clean and the durable
        signature changed; otherwise the update is ignored so that a
        background refresh never overwrites unsaved edits.

        Returns:
            True if the draft was replaced.
        """
        incoming = signature_of(persisted)
        if incoming == self._persisted_signature and self._persisted:
            return False
        if self.is_dirty():
            logger.info("draft_hydration_skipped_dirty", extra={
                "event_id": self.event_id,
                "section": self.section,
                "draft_rows": len(self._draft),
                "persisted_rows": len(persisted),
            })
            return False

        self._persisted = list(persisted)
        self._persisted_signature = incoming
        self._draft = list(persisted)
        logger.debug("draft_hydrated", extra={
            "event_id": self.event_id,
            "section": self.section,
            "row_count": len(persisted),
        })
        self._notify()
        return True

    # ------------------------------------------------------------------
    # Draft edits
    # ------------------------------------------------------------------

    def add_row(self, row: Row) -> Row:
        """Append a row; it gets a temporary id unless it already has one."""
        if not row.id or not is_temp_id(row.id):
            row = replace(row, id=new_temp_id())
        self._draft.append(row)
        self._notify()
        return row

    def update_row(self, row: Row) -> None:
        """Replace the draft row with the same id. Raises KeyError if absent."""
        index = self._index_of(row.id)
        self._draft[index] = row
        self._notify()

    def remove_row(self, row_id: str) -> None:
        """Remove a draft row. Raises KeyError if absent."""
        del self._draft[self._index_of(row_id)]
        self._notify()

    def replace_rows(self, rows: Sequence[Row]) -> None:
        self._draft = list(rows)
        self._notify()

    def discard(self) -> None:
        """Revert the draft to the last persisted rows."""
        self._draft = list(self._persisted)
        self._notify()

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def diff(self) -> RowDiff:
        persisted = {row.id: row for row in self._persisted}
        draft_ids = {row.id for row in self._draft}

        created: list[Row] = []
        updated: list[Row] = []
        for row in self._draft:
            previous = persisted.get(row.id)
            if previous is None:
                created.append(row)
            elif previous.content() != row.content():
                updated.append(row)
        deleted = [row.id for row in self._persisted if row.id not in draft_ids]
        return RowDiff(tuple(created), tuple(updated), tuple(deleted))

    def commit(self) -> CommitResult:
        """
        Apply the diff to the row store, one independent operation per row.

        Already-applied operations are never rolled back. The dirty flag
        clears only when every operation succeeded.
        """
        t0 = time.monotonic()
        diff = self.diff()
        if diff.is_empty:
            return CommitResult(section=self.section)

        with LogContext.bind(event_id=self.event_id, section=self.section):
            logger.info("draft_commit_started", extra={
                "created_count": len(diff.created),
                "updated_count": len(diff.updated),
                "deleted_count": len(diff.deleted),
            })

            persisted = {row.id: row for row in self._persisted}
            failures: list[RowFailure] = []
            created: list[tuple[str, str]] = []
            updated: list[str] = []
            deleted: list[str] = []

            for row_id in diff.deleted:
                if self._attempt("delete", row_id, failures,
                                 lambda: self._store.delete(self.event_id, self.section, row_id)):
                    persisted.pop(row_id, None)
                    deleted.append(row_id)

            for row in diff.updated:
                position = self._position(row.id, self._draft)
                if self._attempt("update", row.id, failures,
                                 lambda: self._store.update(self.event_id, self.section, row, position)):
                    persisted[row.id] = row
                    updated.append(row.id)

            for row in diff.created:
                position = self._position(row.id, self._draft)
                new_id: list[str] = []
                if self._attempt("create", row.id, failures,
                                 lambda: new_id.append(
                                     self._store.create(self.event_id, self.section, row, position))):
                    saved = replace(row, id=new_id[0])
                    self._draft[position] = saved
                    persisted[saved.id] = saved
                    created.append((row.id, saved.id))

            draft_order = {row.id: i for i, row in enumerate(self._draft)}
            self._persisted = sorted(
                persisted.values(), key=lambda r: draft_order.get(r.id, len(draft_order))
            )
            self._persisted_signature = signature_of(self._persisted)

            result = CommitResult(
                section=self.section,
                created=tuple(created),
                updated=tuple(updated),
                deleted=tuple(deleted),
                failures=tuple(failures),
            )
            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            if result.ok:
                logger.info("draft_commit_completed", extra={
                    "created_count": len(created),
                    "updated_count": len(updated),
                    "deleted_count": len(deleted),
                    "duration_ms": duration_ms,
                })
            else:
                logger.warning("draft_commit_partial", extra={
                    "failed_row_ids": result.failed_row_ids,
                    "failure_count": len(failures),
                    "duration_ms": duration_ms,
                })

        if created:
            self._notify()
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _attempt(
        self,
        operation: str,
        row_id: str,
        failures: list[RowFailure],
        action: Callable[[], object],
    ) -> bool:
        try:
            action()
        except PricingKernelError as exc:
            error = RowCommitFailedError(self.section, operation, row_id, str(exc))
            failures.append(RowFailure(operation, row_id, exc.code, str(error)))
            logger.warning("row_commit_failed", extra={
                "operation": operation,
                "row_id": row_id,
                "error_code": exc.code,
            })
            return False
        return True

    def _index_of(self, row_id: str) -> int:
        for index, row in enumerate(self._draft):
            if row.id == row_id:
                return index
        raise KeyError(row_id)

    @staticmethod
    def _position(row_id: str, rows: Sequence[Row]) -> int:
        for index, row in enumerate(rows):
            if row.id == row_id:
                return index
        return -1

    def _notify(self) -> None:
        rows = list(self._draft)
        for listener in list(self._listeners):
            listener(rows)
