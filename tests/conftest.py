"""
Test configuration for pytest
"""

import pytest
import os
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Generator, Optional
import uuid

from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session

# Test environment variables
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["LOG_JSON"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

import shiftbook.models  # noqa: E402,F401
from shiftbook.core.config import Settings  # noqa: E402
from shiftbook.models import Order, OrderStatus, OrderType, PaymentMethod  # noqa: E402
from shiftbook.services import Services, build_services  # noqa: E402
from shiftbook.services.driver_transfer import DriverListCache  # noqa: E402


# Create test engine using in-memory SQLite; one shared connection so the
# API tests see the same database from the server thread
test_engine = create_engine(
    "sqlite:///:memory:",
    echo=False,
    future=True,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

BRANCH = "branch-1"
TERMINAL = "terminal-1"


class FakeClock:
    """Controllable naive-UTC clock"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, moment: datetime) -> datetime:
        self.now = moment
        return self.now


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a clean database session for each test"""
    # Create all tables
    SQLModel.metadata.create_all(test_engine)

    # Create session
    with Session(test_engine, expire_on_commit=False) as session:
        yield session

    # Cleanup
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 14, 9, 0, 0))


@pytest.fixture
def settings() -> Settings:
    return Settings(DRIVER_CACHE_TTL_SECONDS=30, EXPENSES_REQUIRE_APPROVAL=False)


@pytest.fixture
def driver_cache() -> DriverListCache:
    return DriverListCache()


@pytest.fixture
def services(db: Session, settings: Settings, clock: FakeClock, driver_cache) -> Services:
    return build_services(db, settings=settings, clock=clock, driver_cache=driver_cache)


@pytest.fixture
def make_order(db: Session, clock: FakeClock):
    """Factory for orders attributed to a shift"""
    counter = {"n": 0}

    def _make(
        staff_shift_id: Optional[uuid.UUID] = None,
        total: str = "10.00",
        payment_method: PaymentMethod = PaymentMethod.CASH,
        order_type: OrderType = OrderType.DINE_IN,
        status: OrderStatus = OrderStatus.COMPLETED,
        branch_id: str = BRANCH,
        terminal_id: str = TERMINAL,
        refunded: str = "0.00",
        driver_shift_id: Optional[uuid.UUID] = None,
    ) -> Order:
        counter["n"] += 1
        order = Order(
            order_number=f"ORD-{counter['n']:04d}",
            branch_id=branch_id,
            terminal_id=terminal_id,
            staff_shift_id=staff_shift_id,
            driver_shift_id=driver_shift_id,
            order_type=order_type,
            payment_method=payment_method,
            status=status,
            total_amount=Decimal(total),
            refunded_amount=Decimal(refunded),
            created_at=clock(),
            updated_at=clock(),
        )
        db.add(order)
        db.commit()
        return order

    return _make


@pytest.fixture
def client(db: Session):
    """API client bound to the test session"""
    from fastapi.testclient import TestClient

    from shiftbook.core.database import get_session
    from shiftbook.main import app

    def override_session():
        yield db

    app.dependency_overrides[get_session] = override_session
    app.state.driver_cache = DriverListCache()
    yield TestClient(app)
    app.dependency_overrides.clear()
