"""
Tests for the outbound sync queue
"""

import pytest
from decimal import Decimal

from sqlmodel import select

from shiftbook.core.database import atomic
from shiftbook.core.errors import NoActiveCashier
from shiftbook.models import RestaurantTable, SyncOperation, SyncQueueItem, SyncStatus
from tests.conftest import BRANCH, TERMINAL


def rows_for(db, table_name: str):
    statement = (
        select(SyncQueueItem)
        .where(SyncQueueItem.table_name == table_name)
        .order_by(SyncQueueItem.created_at)
    )
    return db.exec(statement).all()


class TestEnqueue:

    def test_open_shift_queues_snapshots(self, services, db):
        shift = services.shifts.open_shift("cashier-a", BRANCH, TERMINAL, "cashier", "100")

        shift_rows = rows_for(db, "staff_shifts")
        assert len(shift_rows) == 1
        assert shift_rows[0].record_id == str(shift.id)
        assert shift_rows[0].operation == SyncOperation.INSERT
        assert shift_rows[0].payload["staff_id"] == "cashier-a"
        assert shift_rows[0].payload["role"] == "cashier"
        assert len(rows_for(db, "cash_drawer_sessions")) == 1

    def test_update_carries_post_mutation_state(self, services, db, clock):
        shift = services.shifts.open_shift("cashier-a", BRANCH, TERMINAL, "cashier", "100")
        clock.advance(hours=1)
        services.shifts.close_shift(shift.id, Decimal("100"), closed_by="cashier-a")

        latest = rows_for(db, "staff_shifts")[-1]
        assert latest.operation == SyncOperation.UPDATE
        assert latest.payload["status"] == "closed"
        assert latest.payload["closed_by"] == "cashier-a"

    def test_drawer_increment_is_queued(self, services, db):
        shift = services.shifts.open_shift("cashier-a", BRANCH, TERMINAL, "cashier", "100")
        services.drawers.record_cash_drop(shift.id, "40")

        latest = rows_for(db, "cash_drawer_sessions")[-1]
        assert Decimal(str(latest.payload["cash_drops"])) == Decimal("40.00")

    def test_enqueue_failure_does_not_fail_owner(self, services, db):
        with atomic(db):
            table = RestaurantTable(branch_id=BRANCH, name="B1")
            db.add(table)
            item = services.sync.enqueue(
                "restaurant_tables", table.id, SyncOperation.INSERT, {"unserializable": object()}
            )

        assert item is None
        assert db.get(RestaurantTable, table.id) is not None
        assert rows_for(db, "restaurant_tables") == []

    def test_failed_command_leaves_no_queue_rows(self, services, db):
        with pytest.raises(NoActiveCashier):
            services.shifts.open_shift("driver-1", BRANCH, TERMINAL, "driver", "20")

        assert db.exec(select(SyncQueueItem)).all() == []


class TestDrain:

    def test_pending_oldest_first(self, services, clock):
        services.shifts.open_shift("kitchen-1", BRANCH, TERMINAL, "kitchen")
        clock.advance(minutes=1)
        services.shifts.open_shift("kitchen-2", BRANCH, TERMINAL, "kitchen")

        pending = services.sync.pending()

        assert [item.payload["staff_id"] for item in pending] == ["kitchen-1", "kitchen-2"]
        assert len(services.sync.pending(limit=1)) == 1

    def test_mark_synced(self, services, clock):
        services.shifts.open_shift("kitchen-1", BRANCH, TERMINAL, "kitchen")
        item = services.sync.pending()[0]

        assert services.sync.mark_synced([item.id]) == 1

        assert item.status == SyncStatus.SYNCED
        assert item.synced_at == clock()
        assert services.sync.pending() == []

    def test_mark_failed_gives_up_after_max_attempts(self, services, settings):
        services.shifts.open_shift("kitchen-1", BRANCH, TERMINAL, "kitchen")
        item = services.sync.pending()[0]

        for _ in range(settings.SYNC_MAX_ATTEMPTS - 1):
            services.sync.mark_failed(item.id, "timeout")
        assert item.status == SyncStatus.PENDING
        assert item.attempts == settings.SYNC_MAX_ATTEMPTS - 1

        services.sync.mark_failed(item.id, "timeout")

        assert item.status == SyncStatus.FAILED
        assert item.last_error == "timeout"
        assert services.sync.pending() == []
