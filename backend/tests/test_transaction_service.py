"""
Transaction intake: parsing, automatic cash deposits and cancellation.
"""

from datetime import datetime

import pytest

from cashbook.models import CashMovement, Transaction
from cashbook.services import ledger_service, transaction_service
from cashbook.services.drawer_service import current_session
from cashbook.validation import ConflictError, NotFoundError, ValidationError


NOW = datetime(2024, 3, 1, 12, 0)


def _payload(**overrides):
    payload = {
        "id": "T-000001",
        "total": "50.00",
        "payment_method": "cash",
        "items": [
            {"name": "Coffee", "price": "2.50", "quantity": 4, "category": "Drinks"},
            {"name": "Scarf", "price": "40.00", "quantity": 1, "is_consignment": True},
        ],
    }
    payload.update(overrides)
    return payload


def test_record_cash_sale_appends_linked_deposit(db_session):
    ledger_service.open_shift(amount_cents=10000, now=NOW)

    tx = transaction_service.record_transaction(_payload(), now=NOW)

    assert tx.total_cents == 5000
    assert tx.amount_paid_cents == 5000
    assert [line.line_total_cents for line in tx.lines] == [1000, 4000]

    deposits = ledger_service.movements_by_source("tx:T-000001")
    assert len(deposits) == 1
    assert deposits[0].movement_type == "DEPOSIT"
    assert deposits[0].category == "SALES"
    assert deposits[0].amount_cents == 5000
    assert current_session().balance_cents == 15000


def test_split_sale_deposits_cash_portion_only(db_session):
    tx = transaction_service.record_transaction(
        _payload(payment_method="split", split_details={"cash": "30.00", "card": "20.00"}),
        now=NOW,
    )

    assert tx.split_cash_cents == 3000
    assert tx.split_card_cents == 2000
    assert tx.split_transfer_cents is None
    assert [m.amount_cents for m in ledger_service.movements_by_source("tx:T-000001")] == [3000]


def test_card_sale_does_not_touch_the_drawer(db_session):
    transaction_service.record_transaction(_payload(payment_method="card"), now=NOW)
    assert db_session.query(CashMovement).count() == 0


def test_affects_cash_false_skips_deposit(db_session):
    transaction_service.record_transaction(_payload(affects_cash=False), now=NOW)
    assert db_session.query(CashMovement).count() == 0


def test_deposit_written_even_when_drawer_closed(db_session):
    transaction_service.record_transaction(_payload(), now=NOW)

    deposit = ledger_service.movements_by_source("tx:T-000001")[0]
    assert deposit.occurred_at == NOW
    assert current_session().is_open is False


def test_occurred_at_is_normalized_to_utc(db_session):
    tx = transaction_service.record_transaction(_payload(occurred_at="2024-03-01T08:00:00-06:00"), now=NOW)
    assert tx.occurred_at == datetime(2024, 3, 1, 14, 0)


def test_duplicate_id_is_a_conflict(db_session):
    transaction_service.record_transaction(_payload(), now=NOW)
    with pytest.raises(ConflictError):
        transaction_service.record_transaction(_payload(), now=NOW)


@pytest.mark.parametrize("overrides", [
    {"id": ""},
    {"total": "-1"},
    {"payment_method": "barter"},
    {"items": [{"name": "X", "price": "1.00", "quantity": 0}]},
    {"items": [{"price": "1.00", "quantity": 1}]},
    {"split_details": {"cash": "10.00"}},
])
def test_invalid_payloads(db_session, overrides):
    with pytest.raises(ValidationError):
        transaction_service.record_transaction(_payload(**overrides), now=NOW)


def test_cancel_removes_linked_deposit(db_session):
    ledger_service.open_shift(amount_cents=10000, now=NOW)
    transaction_service.record_transaction(_payload(), now=NOW)

    tx = transaction_service.cancel_transaction("T-000001")

    assert tx.status == "cancelled"
    assert ledger_service.movements_by_source("tx:T-000001") == []
    assert current_session().balance_cents == 10000


def test_cancel_twice_is_a_conflict(db_session):
    transaction_service.record_transaction(_payload(), now=NOW)
    transaction_service.cancel_transaction("T-000001")
    with pytest.raises(ConflictError):
        transaction_service.cancel_transaction("T-000001")


def test_cancel_unknown_transaction(db_session):
    with pytest.raises(NotFoundError):
        transaction_service.cancel_transaction("nope")


def test_list_transactions_between_bounds(db_session):
    transaction_service.record_transaction(_payload(id="A", occurred_at="2024-03-01T10:00:00Z"), now=NOW)
    transaction_service.record_transaction(_payload(id="B", occurred_at="2024-03-02T10:00:00Z"), now=NOW)
    transaction_service.cancel_transaction("B")

    assert [t.external_id for t in transaction_service.list_transactions()] == ["A", "B"]
    assert [t.external_id for t in transaction_service.list_transactions(include_cancelled=False)] == ["A"]
    assert [t.external_id for t in transaction_service.list_transactions(start=datetime(2024, 3, 2))] == ["B"]
    assert db_session.query(Transaction).count() == 2
