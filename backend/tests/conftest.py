"""Shared test fixtures for all test modules."""

import contextlib
from datetime import UTC, datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core import database as db_module
from app.core.database import Base, get_db, init_db
from app.models.payment import PaymentMethod
from app.repositories.client_repository import ClientRepository
from app.schemas.client import ClientCreate
from app.schemas.invoice import InvoiceCreate
from app.services.invoice_payment_service import InvoicePaymentService
from app.services.invoice_service import InvoiceService

# Create an in-memory SQLite engine with StaticPool so all connections
# share the same database state and there are no file-locking issues.
_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and truncate all data after.

    Patches the module-level engine and SessionLocal so all application code
    uses the in-memory test database. Clears data after each test.
    """
    original_engine = db_module.engine
    original_session = db_module.SessionLocal
    db_module.engine = _test_engine
    db_module.SessionLocal = _TestSessionLocal

    init_db()

    yield
    with _test_engine.connect() as conn:
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            with contextlib.suppress(OperationalError):
                conn.execute(table.delete())
        conn.execute(text("PRAGMA foreign_keys = ON"))
        conn.commit()

    db_module.engine = original_engine
    db_module.SessionLocal = original_session


@pytest.fixture
def db_session():
    """Create a database session for direct service testing."""
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


@pytest.fixture
def client_record(db_session):
    """Create a client with no credit."""
    return ClientRepository(db_session).create(
        ClientCreate(name="Acme Trading", email="billing@acme-trading.com")
    )


@pytest.fixture
def make_invoice(db_session, client_record):
    """Factory creating an invoice for ``client_record`` (or another client)."""

    def _make(amount: str = "100.00", client=None):
        owner = client or client_record
        return InvoiceService(db_session).create_invoice(
            InvoiceCreate(client_id=owner.id, amount=Decimal(amount))
        )

    return _make


@pytest.fixture
def invoice(make_invoice):
    """An unpaid 100.00 invoice."""
    return make_invoice("100.00")


@pytest.fixture
def pay(db_session):
    """Record a bank transfer payment on an invoice."""

    def _pay(invoice_id, amount: str, admin_approved: bool = False):
        return InvoicePaymentService(db_session).record_payment(
            invoice_id,
            Decimal(amount),
            payment_date=datetime.now(UTC),
            payment_method=PaymentMethod.BANK_TRANSFER,
            admin_approved=admin_approved,
        )

    return _pay
