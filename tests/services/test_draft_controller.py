"""
Tests for DraftController.

Covers:
- Loading and hydration from the row store
- Signature-based dirtiness
- Background hydration refused while dirty
- Best-effort commit with per-row failures
"""

import pytest

from pricing_kernel.domain import StaffRow, is_temp_id
from pricing_kernel.exceptions import PartialCommitFailureError
from pricing_services.draft_controller import DraftController, signature_of
from pricing_services.memory import InMemoryRowStore

EVENT = "evt-1"
SECTION = "staff"


def staff(row_id="", name="Chef", rate=100000, hours=8):
    return StaffRow(id=row_id, name=name, cost_per_hour=rate, hours=hours)


class TestSignature:
    def test_ignores_ids_and_order(self):
        a = [staff("1", "Chef"), staff("2", "Waiter")]
        b = [staff("tmp:x", "Waiter"), staff("9", "Chef")]
        assert signature_of(a) == signature_of(b)

    def test_detects_content_change(self):
        assert signature_of([staff(hours=8)]) != signature_of([staff(hours=9)])

    def test_counts_duplicates(self):
        assert signature_of([staff()]) != signature_of([staff(), staff()])


class TestLoad:
    def setup_method(self):
        self.store = InMemoryRowStore()
        self.controller = DraftController(EVENT, SECTION, self.store)

    def test_load_hydrates_clean_draft(self):
        seeded = self.store.seed(EVENT, SECTION, [staff(name="Chef"), staff(name="Waiter")])
        assert self.controller.load() is True
        assert [r.id for r in self.controller.rows] == [r.id for r in seeded]
        assert self.controller.is_dirty() is False

    def test_load_failure_is_recorded(self, captured_logs):
        self.store.unavailable_sections.add(SECTION)
        assert self.controller.load() is False
        assert self.controller.load_error.code == "SOURCE_UNAVAILABLE"
        assert self.controller.rows == []
        assert any(r["message"] == "draft_load_failed" for r in captured_logs())

    def test_unchanged_refresh_does_not_notify(self):
        self.store.seed(EVENT, SECTION, [staff()])
        self.controller.load()
        notified = []
        self.controller.on_change(notified.append)
        assert self.controller.load() is False
        assert notified == []

    def test_refresh_ignored_while_dirty(self, captured_logs):
        self.store.seed(EVENT, SECTION, [staff(name="Chef")])
        self.controller.load()
        self.controller.add_row(staff(name="Local edit"))

        assert self.controller.hydrate([staff("remote", name="Remote")]) is False
        assert [r.name for r in self.controller.rows] == ["Chef", "Local edit"]
        assert any(r["message"] == "draft_hydration_skipped_dirty" for r in captured_logs())

    def test_refresh_applies_when_clean(self):
        self.store.seed(EVENT, SECTION, [staff(name="Chef")])
        self.controller.load()
        assert self.controller.hydrate([staff("remote", name="Remote")]) is True
        assert [r.name for r in self.controller.rows] == ["Remote"]
        assert self.controller.is_dirty() is False


class TestEdits:
    def setup_method(self):
        self.store = InMemoryRowStore()
        self.seeded = self.store.seed(EVENT, SECTION, [staff(name="Chef")])
        self.controller = DraftController(EVENT, SECTION, self.store)
        self.controller.load()

    def test_add_assigns_temp_id(self):
        row = self.controller.add_row(staff(name="Waiter"))
        assert is_temp_id(row.id)
        assert self.controller.is_dirty() is True

    def test_reorder_is_not_dirty(self):
        self.controller.add_row(staff(name="Waiter"))
        self.controller.commit()
        self.controller.replace_rows(list(reversed(self.controller.rows)))
        assert self.controller.is_dirty() is False

    def test_edit_back_to_original_is_clean(self):
        original = self.seeded[0]
        self.controller.update_row(staff(original.id, name="Chef", hours=10))
        assert self.controller.is_dirty() is True
        self.controller.update_row(original)
        assert self.controller.is_dirty() is False

    def test_update_unknown_row(self):
        with pytest.raises(KeyError):
            self.controller.update_row(staff("missing"))
        with pytest.raises(KeyError):
            self.controller.remove_row("missing")

    def test_discard(self):
        self.controller.add_row(staff(name="Waiter"))
        self.controller.discard()
        assert self.controller.is_dirty() is False
        assert len(self.controller.rows) == 1

    def test_listeners_receive_draft(self):
        seen = []
        remove = self.controller.on_change(seen.append)
        self.controller.add_row(staff(name="Waiter"))
        remove()
        self.controller.add_row(staff(name="Driver"))
        assert len(seen) == 1
        assert len(seen[0]) == 2

    def test_diff(self):
        original = self.seeded[0]
        self.controller.update_row(staff(original.id, name="Head chef"))
        added = self.controller.add_row(staff(name="Waiter"))
        diff = self.controller.diff()
        assert [r.id for r in diff.created] == [added.id]
        assert [r.id for r in diff.updated] == [original.id]
        assert diff.deleted == ()

        self.controller.remove_row(original.id)
        assert self.controller.diff().deleted == (original.id,)


class TestCommit:
    def setup_method(self):
        self.store = InMemoryRowStore()
        self.seeded = self.store.seed(EVENT, SECTION, [staff(name="Chef"), staff(name="Driver")])
        self.controller = DraftController(EVENT, SECTION, self.store)
        self.controller.load()

    def test_clean_commit_is_empty(self):
        result = self.controller.commit()
        assert result.ok
        assert result.created == result.updated == result.deleted == ()

    def test_full_commit(self, captured_logs):
        chef, driver = self.seeded
        self.controller.update_row(staff(chef.id, name="Head chef"))
        self.controller.remove_row(driver.id)
        added = self.controller.add_row(staff(name="Waiter"))

        result = self.controller.commit()

        assert result.ok
        assert result.updated == (chef.id,)
        assert result.deleted == (driver.id,)
        assert result.created[0][0] == added.id
        new_id = result.created[0][1]
        assert not is_temp_id(new_id)
        assert [r.id for r in self.controller.rows] == [chef.id, new_id]
        assert self.controller.is_dirty() is False
        assert sorted(r.name for r in self.store.list(EVENT, SECTION)) == ["Head chef", "Waiter"]
        assert any(r["message"] == "draft_commit_completed" for r in captured_logs())

    def test_commit_logs_operation_counts(self, captured_logs):
        _chef, driver = self.seeded
        self.controller.remove_row(driver.id)
        self.controller.add_row(staff(name="Waiter"))
        self.controller.add_row(staff(name="Runner"))

        assert self.controller.commit().ok

        logs = {r["message"]: r for r in captured_logs()}
        started = logs["draft_commit_started"]
        assert (started["created_count"], started["updated_count"], started["deleted_count"]) == (2, 0, 1)
        completed = logs["draft_commit_completed"]
        assert (completed["created_count"], completed["deleted_count"]) == (2, 1)
        assert completed["level"] == "INFO"

    def test_partial_failure_keeps_draft_dirty(self, captured_logs):
        chef, driver = self.seeded
        self.controller.update_row(staff(chef.id, name="Head chef"))
        self.controller.update_row(staff(driver.id, name="Night driver"))
        self.store.failing_row_ids.add(driver.id)

        result = self.controller.commit()

        assert not result.ok
        assert result.updated == (chef.id,)
        assert result.failed_row_ids == [driver.id]
        failure = result.failures[0]
        assert failure.operation == "update"
        assert failure.code == "ROW_STORE_ERROR"
        assert self.controller.is_dirty() is True
        # The successful update is not rolled back.
        assert "Head chef" in [r.name for r in self.store.list(EVENT, SECTION)]
        assert any(r["message"] == "draft_commit_partial" for r in captured_logs())

        with pytest.raises(PartialCommitFailureError) as exc_info:
            result.raise_for_failures()
        assert exc_info.value.failed_row_ids == [driver.id]

    def test_retry_after_failure(self):
        _chef, driver = self.seeded
        self.controller.update_row(staff(driver.id, name="Night driver"))
        self.store.failing_row_ids.add(driver.id)
        assert not self.controller.commit().ok

        self.store.failing_row_ids.clear()
        result = self.controller.commit()
        assert result.ok
        assert result.updated == (driver.id,)
        assert self.controller.is_dirty() is False

    def test_failed_create_keeps_temp_row(self):
        self.store.failing_operations.add("create")
        added = self.controller.add_row(staff(name="Waiter"))
        result = self.controller.commit()
        assert result.failed_row_ids == [added.id]
        assert added.id in [r.id for r in self.controller.rows]
        assert self.controller.is_dirty() is True

    def test_failed_delete_is_retried(self):
        _chef, driver = self.seeded
        self.controller.remove_row(driver.id)
        self.store.failing_operations.add("delete")
        assert self.controller.commit().failed_row_ids == [driver.id]
        assert self.controller.diff().deleted == (driver.id,)
