"""
Outbound change queue

Every mutation writes a post-mutation snapshot here in the same transaction
as the local write. A failed enqueue is logged and never fails the owner.
"""

from typing import Iterable, List, Optional, Union
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, select
import structlog

from shiftbook.core.clock import Clock, utcnow
from shiftbook.core.config import Settings
from shiftbook.core.database import atomic
from shiftbook.models.sync_queue import SyncOperation, SyncQueueItem, SyncStatus

logger = structlog.get_logger(__name__)


class SyncQueue:
    """Writes and drains sync_queue rows"""

    def __init__(self, session: Session, settings: Settings, clock: Clock = utcnow):
        self.session = session
        self.settings = settings
        self.clock = clock

    def enqueue(
        self,
        table_name: str,
        record_id: Union[uuid.UUID, str],
        operation: SyncOperation,
        payload: Union[SQLModel, dict],
    ) -> Optional[SyncQueueItem]:
        """Queue a full snapshot of one record.

        The owner's pending writes are flushed first so their failures still
        propagate; only the queue insert itself runs inside a SAVEPOINT.
        """
        self.session.flush()
        try:
            snapshot = (
                payload.model_dump(mode="json")
                if isinstance(payload, SQLModel)
                else dict(payload)
            )
            with self.session.begin_nested():
                item = SyncQueueItem(
                    table_name=table_name,
                    record_id=str(record_id),
                    operation=operation,
                    payload=snapshot,
                    created_at=self.clock(),
                )
                self.session.add(item)
            return item
        except (SQLAlchemyError, TypeError, ValueError) as exc:
            logger.warning(
                "sync_enqueue_failed",
                table_name=table_name,
                record_id=str(record_id),
                operation=operation.value,
                error=str(exc),
            )
            return None

    def record_insert(self, table_name: str, record: SQLModel) -> Optional[SyncQueueItem]:
        return self.enqueue(table_name, record.id, SyncOperation.INSERT, record)

    def record_update(self, table_name: str, record: SQLModel) -> Optional[SyncQueueItem]:
        return self.enqueue(table_name, record.id, SyncOperation.UPDATE, record)

    def pending(self, limit: int = 100) -> List[SyncQueueItem]:
        """Rows the transport still has to deliver, oldest first"""
        statement = (
            select(SyncQueueItem)
            .where(SyncQueueItem.status == SyncStatus.PENDING)
            .order_by(SyncQueueItem.created_at)
            .limit(limit)
        )
        return list(self.session.exec(statement).all())

    def mark_synced(self, item_ids: Iterable[uuid.UUID]) -> int:
        synced_at = self.clock()
        count = 0
        with atomic(self.session):
            for item_id in item_ids:
                item = self.session.get(SyncQueueItem, item_id)
                if item is None:
                    continue
                item.status = SyncStatus.SYNCED
                item.synced_at = synced_at
                item.last_error = None
                self.session.add(item)
                count += 1
        logger.info("sync_items_synced", count=count)
        return count

    def mark_failed(self, item_id: uuid.UUID, error: str) -> Optional[SyncQueueItem]:
        """Record a delivery failure; give up after SYNC_MAX_ATTEMPTS"""
        with atomic(self.session):
            item = self.session.get(SyncQueueItem, item_id)
            if item is None:
                return None
            item.attempts += 1
            item.last_error = error[:1000]
            if item.attempts >= self.settings.SYNC_MAX_ATTEMPTS:
                item.status = SyncStatus.FAILED
            self.session.add(item)

        if item.status == SyncStatus.FAILED:
            logger.warning(
                "sync_item_gave_up",
                item_id=str(item.id),
                table_name=item.table_name,
                attempts=item.attempts,
            )
        return item
