"""
Database configuration and session management
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel
import structlog

from shiftbook.core.config import get_settings
from shiftbook.core.errors import ShiftbookError, StoreFailure

logger = structlog.get_logger(__name__)
settings = get_settings()


def build_engine(url: str, echo: bool = False) -> Engine:
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=echo, future=True, connect_args=connect_args)


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)


def init_db(bind: Optional[Engine] = None) -> None:
    """Initialize database tables"""
    # Table classes register on SQLModel.metadata when imported
    import shiftbook.models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)
    logger.info("database_tables_created")


def get_session() -> Iterator[Session]:
    """Dependency to get database session"""
    with Session(engine, expire_on_commit=False) as session:
        yield session


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """Run one command as a single transaction.

    Commits on success and rolls back on any exception. Domain errors pass
    through unchanged; store errors surface as StoreFailure.
    """
    try:
        yield session
        session.commit()
    except ShiftbookError:
        session.rollback()
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("transaction_failed", error=str(exc), exc_info=True)
        raise StoreFailure("The operation failed and was rolled back") from exc
    except Exception:
        session.rollback()
        raise
