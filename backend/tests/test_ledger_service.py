"""
Ledger commands: drawer-state checks, default categories and immutability.
"""

from datetime import datetime, timedelta

import pytest

from cashbook.extensions import db
from cashbook.models import CashMovement
from cashbook.models.ledger import DEFAULT_CATEGORY
from cashbook.services import ledger_service
from cashbook.services.drawer_service import current_session
from cashbook.services.ledger_service import InvalidStateError
from cashbook.validation import ImmutableRecordError, NotFoundError, ValidationError


NOW = datetime(2024, 3, 1, 9, 0)


def test_open_shift_opens_the_drawer(db_session):
    movement = ledger_service.open_shift(amount_cents=10000, now=NOW)

    assert movement.id is not None
    assert movement.movement_type == "OPEN"
    assert movement.category == DEFAULT_CATEGORY["OPEN"] == "OTHER"
    session = current_session()
    assert session.is_open is True
    assert session.balance_cents == 10000


def test_open_shift_refused_while_open(db_session):
    ledger_service.open_shift(amount_cents=10000, now=NOW)

    with pytest.raises(InvalidStateError):
        ledger_service.open_shift(amount_cents=500, now=NOW + timedelta(minutes=1))

    assert db_session.query(CashMovement).count() == 1


def test_manual_movement_requires_open_drawer(db_session):
    with pytest.raises(InvalidStateError):
        ledger_service.record_movement(movement_type="EXPENSE", amount_cents=100, now=NOW)


def test_default_categories_by_type(db_session):
    ledger_service.open_shift(amount_cents=10000, now=NOW)

    expense = ledger_service.record_movement(movement_type="EXPENSE", amount_cents=100, now=NOW)
    withdrawal = ledger_service.record_movement(movement_type="WITHDRAWAL", amount_cents=100, now=NOW)
    deposit = ledger_service.record_movement(movement_type="DEPOSIT", amount_cents=100, now=NOW)

    assert expense.category == "OPERATIONAL"
    assert withdrawal.category == "PROFIT"
    assert deposit.category == "SALES"


def test_record_movement_rejects_open_and_close_types(db_session):
    ledger_service.open_shift(amount_cents=10000, now=NOW)

    with pytest.raises(ValidationError):
        ledger_service.record_movement(movement_type="CLOSE", amount_cents=0, now=NOW)
    with pytest.raises(ValidationError):
        ledger_service.record_movement(movement_type="OPEN", amount_cents=100, now=NOW)


def test_append_rejects_unknown_category_and_negative_amount(db_session):
    with pytest.raises(ValidationError):
        ledger_service.append_movement(movement_type="DEPOSIT", amount_cents=100, occurred_at=NOW, category="FUN")
    with pytest.raises(ValidationError):
        ledger_service.append_movement(movement_type="DEPOSIT", amount_cents=-1, occurred_at=NOW)


def test_z_cut_flag_only_on_close(db_session):
    with pytest.raises(ValidationError):
        ledger_service.append_movement(movement_type="DEPOSIT", amount_cents=1, occurred_at=NOW, is_z_cut=True)


def test_zero_amount_manual_entry_is_allowed(db_session):
    ledger_service.open_shift(amount_cents=0, now=NOW)
    movement = ledger_service.record_movement(movement_type="DEPOSIT", amount_cents=0, now=NOW)
    assert movement.is_z_cut is False


def test_delete_manual_movement(db_session):
    ledger_service.open_shift(amount_cents=10000, now=NOW)
    expense = ledger_service.record_movement(movement_type="EXPENSE", amount_cents=2500, now=NOW)

    ledger_service.delete_movement(expense.id)

    assert current_session().balance_cents == 10000


def test_delete_missing_movement(db_session):
    with pytest.raises(NotFoundError):
        ledger_service.delete_movement(999)


def test_z_cut_record_cannot_be_deleted(db_session, add_movement):
    add_movement("OPEN", 100, NOW)
    z_cut = add_movement("CLOSE", 0, NOW + timedelta(hours=1), is_z_cut=True, z_report={"difference_cents": 0})

    with pytest.raises(ImmutableRecordError):
        ledger_service.delete_movement(z_cut.id)

    assert db_session.get(CashMovement, z_cut.id) is not None


def test_orm_guard_blocks_direct_z_cut_delete(db_session, add_movement):
    z_cut = add_movement("CLOSE", 0, NOW, is_z_cut=True, z_report={})

    db_session.delete(z_cut)
    with pytest.raises(ImmutableRecordError):
        db_session.flush()
    db_session.rollback()


def test_movements_cannot_be_edited(db_session):
    movement = ledger_service.open_shift(amount_cents=10000, now=NOW)

    movement.amount_cents = 1
    with pytest.raises(ImmutableRecordError):
        db.session.commit()
    db.session.rollback()

    assert db_session.get(CashMovement, movement.id).amount_cents == 10000


def test_list_movements_newest_first(db_session, add_movement):
    first = add_movement("OPEN", 100, NOW)
    second = add_movement("DEPOSIT", 200, NOW)
    third = add_movement("EXPENSE", 50, NOW - timedelta(minutes=5))

    ids = [m.id for m in ledger_service.list_movements()]
    assert ids == [second.id, first.id, third.id]


def test_commands_never_stamp_behind_the_newest_row(db_session, add_movement):
    ahead = NOW + timedelta(hours=2)
    add_movement("OPEN", 100, ahead)

    deposit = ledger_service.record_movement(movement_type="DEPOSIT", amount_cents=50, now=NOW)

    assert deposit.occurred_at == ahead
    assert ledger_service.list_movements()[0].id == deposit.id
    assert current_session().balance_cents == 150
