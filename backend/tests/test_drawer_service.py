"""
Session resolution and balance folding over in-memory ledgers.
"""

from datetime import date, datetime, timedelta

from cashbook.models import CashMovement
from cashbook.services.drawer_service import (
    cash_flow_for_day,
    movement_effect_cents,
    newest_first,
    resolve_session,
    session_balance,
)
from cashbook.time_utils import get_zone


T0 = datetime(2024, 3, 1, 9, 0)


def _mv(movement_id, movement_type, amount_cents, minutes=0, **fields):
    return CashMovement(
        id=movement_id,
        movement_type=movement_type,
        amount_cents=amount_cents,
        occurred_at=T0 + timedelta(minutes=minutes),
        category=fields.pop("category", "OTHER"),
        is_z_cut=fields.pop("is_z_cut", False),
        **fields,
    )


def test_empty_ledger_is_closed_and_empty():
    session = resolve_session([])
    assert session.is_open is False
    assert session.movements == ()
    assert session.opening is None
    assert session.balance_cents == 0


def test_open_without_close_is_open():
    ledger = [_mv(1, "OPEN", 10000), _mv(2, "DEPOSIT", 5000, 5)]
    session = resolve_session(ledger)
    assert session.is_open is True
    assert [m.id for m in session.movements] == [2, 1]
    assert session.opening.id == 1


def test_close_as_newest_entry_gives_closed_empty_session():
    ledger = [_mv(1, "OPEN", 10000), _mv(2, "DEPOSIT", 5000, 5), _mv(3, "CLOSE", 0, 10, is_z_cut=True)]
    session = resolve_session(ledger)
    assert session.is_open is False
    assert session.movements == ()


def test_only_close_is_closed():
    session = resolve_session([_mv(1, "CLOSE", 0)])
    assert session.is_open is False
    assert session.movements == ()


def test_movements_after_close_without_open_stay_closed():
    ledger = [_mv(1, "OPEN", 100), _mv(2, "CLOSE", 0, 5), _mv(3, "DEPOSIT", 700, 10)]
    session = resolve_session(ledger)
    assert session.is_open is False
    assert [m.id for m in session.movements] == [3]


def test_session_starts_after_most_recent_close():
    ledger = [
        _mv(1, "OPEN", 100),
        _mv(2, "CLOSE", 0, 5),
        _mv(3, "OPEN", 2000, 10),
        _mv(4, "EXPENSE", 300, 15),
    ]
    session = resolve_session(ledger)
    assert session.is_open is True
    assert [m.id for m in session.movements] == [4, 3]
    assert session.opening_fund_cents == 2000
    assert session.balance_cents == 1700


def test_input_order_does_not_matter():
    ledger = [_mv(3, "OPEN", 2000, 10), _mv(1, "OPEN", 100), _mv(2, "CLOSE", 0, 5)]
    session = resolve_session(ledger)
    assert [m.id for m in session.movements] == [3]


def test_equal_timestamps_break_ties_by_id():
    # CLOSE inserted after the OPEN at the same instant ends that session
    ledger = [_mv(1, "OPEN", 100), _mv(2, "CLOSE", 0)]
    assert resolve_session(ledger).is_open is False

    ordered = newest_first([_mv(5, "DEPOSIT", 1), _mv(7, "DEPOSIT", 1), _mv(6, "DEPOSIT", 1)])
    assert [m.id for m in ordered] == [7, 6, 5]


def test_balance_fold_signs():
    ledger = [
        _mv(1, "OPEN", 10000),
        _mv(2, "DEPOSIT", 5000, 1),
        _mv(3, "EXPENSE", 2000, 2),
        _mv(4, "WITHDRAWAL", 1000, 3),
    ]
    assert session_balance(ledger) == 12000
    assert movement_effect_cents(_mv(9, "CLOSE", 0)) == 0


def test_balance_can_go_negative():
    ledger = [_mv(1, "OPEN", 1000), _mv(2, "WITHDRAWAL", 2500, 1)]
    assert resolve_session(ledger).balance_cents == -1500


def test_cash_flow_skips_z_cut_records_but_keeps_zero_amount_entries():
    zone = get_zone("UTC")
    ledger = [
        _mv(1, "OPEN", 10000),
        _mv(2, "DEPOSIT", 0, 1),
        _mv(3, "EXPENSE", 2000, 2),
        _mv(4, "CLOSE", 0, 3, is_z_cut=True),
        _mv(5, "DEPOSIT", 700, 60 * 24),  # next day
    ]
    flow = cash_flow_for_day(ledger, date(2024, 3, 1), zone)
    assert flow == {"date": "2024-03-01", "income_cents": 10000, "outflow_cents": 2000}


def test_cash_flow_uses_local_calendar_day():
    zone = get_zone("America/Mexico_City")
    # 2024-03-02 03:00 UTC is still 2024-03-01 locally (UTC-6)
    late = CashMovement(id=1, movement_type="DEPOSIT", amount_cents=500,
                        occurred_at=datetime(2024, 3, 2, 3, 0), category="SALES", is_z_cut=False)
    assert cash_flow_for_day([late], date(2024, 3, 1), zone)["income_cents"] == 500
    assert cash_flow_for_day([late], date(2024, 3, 2), zone)["income_cents"] == 0
