"""
Pytest fixtures for cashbook backend tests.

Provides an in-memory database, a test client, a CLI runner and a print
dispatcher that runs synchronously so ticket output can be asserted.
"""

from concurrent.futures import Executor, Future
from datetime import datetime

import pytest
from cashbook import create_app
from cashbook.extensions import db
from cashbook.models import CashMovement, Transaction, TransactionLine
from cashbook.services.printing_service import PrintDispatcher


class InlineExecutor(Executor):
    """Runs submitted work immediately on the calling thread."""

    def submit(self, fn, /, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    spool_dir = tmp_path_factory.mktemp("spool")
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'CASHBOOK_TIMEZONE': 'UTC',
        'CASHBOOK_PRINT_SPOOL_DIR': str(spool_dir),
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def cli_runner(app):
    return app.test_cli_runner()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def printer(app, tmp_path):
    """Synchronous spool dispatcher installed on the app for one test."""
    previous = app.extensions["cashbook_printer"]
    dispatcher = PrintDispatcher(
        target="spool",
        spool_dir=tmp_path / "spool",
        business_name="Test Store",
        executor=InlineExecutor(),
    )
    app.extensions["cashbook_printer"] = dispatcher
    yield dispatcher
    app.extensions["cashbook_printer"] = previous


@pytest.fixture(scope='function')
def add_movement(db_session):
    """Insert a ledger row directly, bypassing drawer-state checks."""
    def _add(movement_type, amount_cents, occurred_at, **fields):
        movement = CashMovement(
            movement_type=movement_type,
            amount_cents=amount_cents,
            occurred_at=occurred_at,
            category=fields.pop("category", "OTHER"),
            is_z_cut=fields.pop("is_z_cut", False),
            **fields,
        )
        db_session.add(movement)
        db_session.commit()
        return movement
    return _add


@pytest.fixture(scope='function')
def add_transaction(db_session):
    """Insert a transaction (and its lines) directly."""
    counter = {"n": 0}

    def _add(occurred_at: datetime, total_cents: int, payment_method: str = "cash", *, lines=None, **fields):
        counter["n"] += 1
        tx = Transaction(
            external_id=fields.pop("external_id", f"T-{counter['n']:05d}"),
            occurred_at=occurred_at,
            subtotal_cents=total_cents,
            discount_cents=0,
            total_cents=total_cents,
            amount_paid_cents=fields.pop("amount_paid_cents", total_cents),
            payment_method=payment_method,
            payment_status=fields.pop("payment_status", "paid"),
            status=fields.pop("status", "completed"),
            **fields,
        )
        for line in lines or []:
            tx.lines.append(TransactionLine(
                name=line["name"],
                category=line.get("category"),
                quantity=line.get("quantity", 1),
                unit_price_cents=line["unit_price_cents"],
                is_consignment=line.get("is_consignment", False),
            ))
        db_session.add(tx)
        db_session.commit()
        return tx
    return _add
