"""
Pytest configuration and fixtures.
"""
import os

# Must be set before config/database are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["LOG_JSON"] = "false"

from datetime import date
from decimal import Decimal
from typing import Callable, Optional

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from config import Settings
from database import build_session_factory
from models import Base, Order
from services.activity_log import InMemoryActivitySink
from services.bulk_service import BulkOperationCoordinator
from services.payment_service import PaymentService
from services.status_service import derive_status

TODAY = date(2026, 10, 19)
ACTOR = "staff-1"
JWT_SECRET = "test-secret"


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def settings() -> Settings:
    """Create test settings."""
    return Settings(
        jwt_secret=JWT_SECRET,
        conflict_max_attempts=3,
        conflict_backoff_seconds=0,
        conflict_backoff_max_seconds=0,
    )


@pytest.fixture
def activity_sink() -> InMemoryActivitySink:
    return InMemoryActivitySink()


@pytest.fixture
def service(session_factory, settings, activity_sink) -> PaymentService:
    return PaymentService(
        session_factory=session_factory,
        settings=settings,
        activity_sink=activity_sink,
        clock=lambda: TODAY,
    )


@pytest.fixture
def coordinator(session_factory, settings, activity_sink) -> BulkOperationCoordinator:
    return BulkOperationCoordinator(
        session_factory=session_factory,
        settings=settings,
        activity_sink=activity_sink,
    )


def create_order(
    session_factory,
    total: str = "1000.00",
    received: str = "0",
    due_date: Optional[date] = None,
    customer_name: Optional[str] = "Asha Prints",
    order_date: Optional[date] = None,
    is_deleted: bool = False,
    today: date = TODAY,
) -> int:
    """Insert an order with a consistent aggregate and return its id."""
    total_amount = Decimal(total)
    amount_received = Decimal(received)
    order = Order(
        customer_name=customer_name,
        total_amount=total_amount,
        amount_received=amount_received,
        balance_amount=total_amount - amount_received,
        due_date=due_date,
        payment_status=derive_status(total_amount, amount_received, due_date, today),
        is_deleted=is_deleted,
    )
    if order_date is not None:
        order.order_date = order_date
    with session_factory() as db:
        db.add(order)
        db.commit()
        return order.id


def load_order(session_factory, order_id: int) -> Order:
    with session_factory() as db:
        return db.get(Order, order_id)


@pytest.fixture
def make_order(session_factory) -> Callable[..., int]:
    def _make(**kwargs) -> int:
        return create_order(session_factory, **kwargs)
    return _make


@pytest.fixture
def get_order(session_factory) -> Callable[[int], Order]:
    def _get(order_id: int) -> Order:
        return load_order(session_factory, order_id)
    return _get


def make_token(subject: str = ACTOR, secret: str = JWT_SECRET) -> str:
    return jwt.encode({"sub": subject}, secret, algorithm="HS256")


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def client(session_factory, settings, activity_sink):
    """Create test HTTP client wired to the per-test database."""
    from database import get_session
    from dependencies import get_activity_sink, get_app_settings, get_session_factory
    from main import app

    def override_get_session():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_app_settings] = lambda: settings
    app.dependency_overrides[get_activity_sink] = lambda: activity_sink

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
