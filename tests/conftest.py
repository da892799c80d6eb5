"""
Pytest fixtures for the textile ledger core test suite.

Provides:
- Structured logging configured once per session, with LogContext cleared
  between tests
- An in-memory SQLite database with all tables created, one per test
- The packaged default configuration and a deterministic clock
- Row builders for bills, ledger entries and production records

Environment Variables:
- DATABASE_URL: optional SQLAlchemy URL.  Defaults to in-memory SQLite.
"""

import json
import logging
import os
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from textile_config import get_active_config
from textile_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from textile_kernel.domain.clock import DeterministicClock
from textile_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from textile_kernel.models.ledger import BillModel, LedgerEntryModel, PartyModel
from textile_kernel.models.production import (
    DyeingProcessModel,
    FabricProductionModel,
    ThreadPurchaseModel,
)

DEFAULT_DATABASE_URL = "sqlite://"

# Fixed "now" shared by the clock fixture and the date-sensitive tests.
TEST_NOW = datetime(2024, 3, 15, 12, 0, 0, tzinfo=timezone.utc)
TEST_TODAY = TEST_NOW.date()


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture textile_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            ...
            logs = captured_logs()
            assert any(r["message"] == "payment_applied" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("textile_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Configuration and time
# =============================================================================


@pytest.fixture(scope="session")
def core_config():
    """The packaged default configuration."""
    return get_active_config()


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(TEST_NOW)


# =============================================================================
# Database
# =============================================================================


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """A session over a freshly created schema; torn down after the test."""
    init_engine_from_url(get_database_url(), echo=False)
    create_tables()
    sess = get_session()
    try:
        yield sess
    finally:
        sess.close()
        drop_tables()
        reset_engine()


@pytest.fixture
def make_party(session):
    def _make(name: str, role: str = "VENDOR") -> PartyModel:
        party = PartyModel(name=name, role=role)
        session.add(party)
        session.commit()
        return party

    return _make


@pytest.fixture
def make_bill(session):
    def _make(
        amount: str = "1000.00",
        paid_amount: str = "0",
        status: str = "PENDING",
        bill_type: str = "PURCHASE",
        party: PartyModel | None = None,
        bill_number: str = "B-001",
        bill_date: date = TEST_TODAY,
        due_date: date | None = None,
        khata_id: int | None = 1,
    ) -> BillModel:
        bill = BillModel(
            bill_number=bill_number,
            bill_type=bill_type,
            party_id=party.id if party is not None else None,
            amount=Decimal(amount),
            paid_amount=Decimal(paid_amount),
            status=status,
            bill_date=bill_date,
            due_date=due_date,
            khata_id=khata_id,
        )
        session.add(bill)
        session.commit()
        return bill

    return _make


@pytest.fixture
def make_ledger_row(session):
    def _make(
        entry_type: str = "MANUAL_PAYABLE",
        amount: str = "500.00",
        remaining_amount: str | None = None,
        status: str = "PENDING",
        party_name: str | None = None,
        notes: str | None = None,
        reference: str | None = None,
        transaction_type: str | None = None,
        entry_date: date = TEST_TODAY,
        due_date: date | None = None,
        khata_id: int | None = 1,
    ) -> LedgerEntryModel:
        row = LedgerEntryModel(
            entry_type=entry_type,
            description="",
            amount=Decimal(amount),
            remaining_amount=Decimal(remaining_amount if remaining_amount is not None else amount),
            status=status,
            entry_date=entry_date,
            due_date=due_date,
            reference=reference,
            notes=notes,
            party_name=party_name,
            transaction_type=transaction_type,
            khata_id=khata_id,
        )
        session.add(row)
        session.commit()
        return row

    return _make


@pytest.fixture
def make_thread_purchase(session):
    def _make(
        thread_type: str = "Cotton",
        quantity: str = "100",
        unit_price: str = "50.00",
        received: bool = True,
        color: str | None = None,
        color_status: str = "RAW",
        inventory_status: str | None = None,
    ) -> ThreadPurchaseModel:
        purchase = ThreadPurchaseModel(
            thread_type=thread_type,
            quantity=Decimal(quantity),
            unit_of_measure="kg",
            unit_price=Decimal(unit_price),
            received=received,
            color=color,
            color_status=color_status,
            inventory_status=inventory_status,
        )
        session.add(purchase)
        session.commit()
        return purchase

    return _make


@pytest.fixture
def make_dyeing_process(session):
    def _make(
        thread_purchase: ThreadPurchaseModel | None = None,
        output_quantity: str = "80",
        total_cost: str = "4000.00",
        result_status: str = "SUCCESS",
        color_name: str | None = "Indigo",
        color_code: str | None = "IND-01",
        inventory_status: str | None = None,
    ) -> DyeingProcessModel:
        process = DyeingProcessModel(
            thread_purchase_id=thread_purchase.id if thread_purchase is not None else None,
            output_quantity=Decimal(output_quantity),
            total_cost=Decimal(total_cost),
            result_status=result_status,
            color_name=color_name,
            color_code=color_code,
            inventory_status=inventory_status,
        )
        session.add(process)
        session.commit()
        return process

    return _make


@pytest.fixture
def make_fabric_production(session):
    def _make(
        fabric_type: str = "Lawn",
        quantity_produced: str = "250",
        total_cost: str = "25000.00",
        status: str = "COMPLETED",
        dimensions: str = "44x40",
        batch_number: str = "FB-7",
        inventory_status: str | None = None,
    ) -> FabricProductionModel:
        production = FabricProductionModel(
            fabric_type=fabric_type,
            quantity_produced=Decimal(quantity_produced),
            total_cost=Decimal(total_cost),
            status=status,
            dimensions=dimensions,
            batch_number=batch_number,
            inventory_status=inventory_status,
        )
        session.add(production)
        session.commit()
        return production

    return _make
