"""
Z-Cut Reconciliation Service

WHY: At the end of a shift the operator counts the drawer and the system
says what should have been there. The comparison is frozen into the
terminating CLOSE movement so the shift's figures never change afterwards,
whatever happens to the ledger later.

DESIGN PRINCIPLES:
- Two phases: the CLOSE (with its snapshot) is committed first, printing
  happens afterwards and can only fail on its own
- One clock read per operation; the caller passes it in as `now`
- Missing optional figures count as zero, never as errors
"""

from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from typing import Iterable, Optional

from ..extensions import db
from ..models import CashMovement, Transaction
from ..time_utils import start_of_local_day, to_utc_z
from ..validation import ValidationError, format_cents
from .drawer_service import SessionView, current_session, sum_by_type
from .ledger_service import InvalidStateError, append_movement, get_movement, ledger_time
from .printing_service import PrintDispatcher
from .split_rules import EXCLUDED_STATUSES, tender_totals


logger = logging.getLogger(__name__)


def build_z_report(
    *,
    session: SessionView,
    transactions: Iterable[Transaction],
    declared_cash_cents: int,
    session_start: datetime,
    now: datetime,
) -> dict:
    """
    Compute the reconciliation snapshot for one session.

    Pure: reads only its arguments. Callers are responsible for passing the
    session's transactions (already filtered to the session window).
    """
    transactions = list(transactions)
    expected = session.balance_cents

    report = {
        "opening_fund_cents": session.opening_fund_cents,
        **tender_totals(transactions),
        "expenses_cents": sum_by_type(session.movements, "EXPENSE"),
        "withdrawals_cents": sum_by_type(session.movements, "WITHDRAWAL"),
        "expected_cash_cents": expected,
        "declared_cash_cents": declared_cash_cents,
        "difference_cents": declared_cash_cents - expected,
        "timestamp": to_utc_z(now),
        "session_start": to_utc_z(session_start),
        "transaction_count": len(transactions),
    }
    return report


def session_start_for(session: SessionView, *, now: datetime, zone: tzinfo) -> datetime:
    """OPEN time of the session, or the start of today's local calendar day."""
    opening = session.opening
    if opening is not None:
        return opening.occurred_at
    return start_of_local_day(now, zone)


def load_session_transactions(session_start: datetime) -> list[Transaction]:
    return db.session.query(Transaction).filter(
        Transaction.occurred_at >= session_start,
        Transaction.status.notin_(EXCLUDED_STATUSES),
    ).order_by(Transaction.occurred_at.asc(), Transaction.id.asc()).all()


def perform_z_cut(
    *,
    declared_cash_cents: int,
    now: datetime,
    zone: tzinfo,
    dispatcher: Optional[PrintDispatcher] = None,
) -> CashMovement:
    """
    Reconcile and close the current drawer session.

    Args:
        declared_cash_cents: Cash physically counted by the operator
        now: The single clock reading for this operation
        zone: Business timezone (fallback session start)
        dispatcher: Print collaborator; None skips printing

    Returns:
        The committed CLOSE movement carrying the snapshot in z_report

    Raises:
        InvalidStateError: If the drawer is not open
    """
    if declared_cash_cents is None or declared_cash_cents < 0:
        raise ValidationError("declared_cash must be >= 0")

    session = current_session()
    if not session.is_open:
        raise InvalidStateError("Cash drawer is not open; there is nothing to reconcile")

    # The CLOSE must be the newest row or part of this session survives it
    closed_at = ledger_time(now)
    session_start = session_start_for(session, now=closed_at, zone=zone)
    transactions = load_session_transactions(session_start)

    z_report = build_z_report(
        session=session,
        transactions=transactions,
        declared_cash_cents=declared_cash_cents,
        session_start=session_start,
        now=closed_at,
    )

    movement = append_movement(
        movement_type="CLOSE",
        amount_cents=0,
        occurred_at=closed_at,
        category="OTHER",
        description=(
            f"Z-cut - declared {format_cents(declared_cash_cents)}"
            f" | difference {format_cents(z_report['difference_cents'])}"
        ),
        is_z_cut=True,
        z_report=z_report,
    )

    logger.info(
        "Z-cut %s committed: expected=%s declared=%s difference=%s",
        movement.id,
        z_report["expected_cash_cents"],
        z_report["declared_cash_cents"],
        z_report["difference_cents"],
    )

    if dispatcher is not None:
        dispatcher.dispatch_z_report(z_report)

    return movement


def reprint_z_report(movement_id: int, dispatcher: PrintDispatcher):
    """Send a stored Z-cut snapshot to the printer again, unchanged."""
    movement = get_movement(movement_id)
    if not movement.is_z_cut or movement.z_report is None:
        raise ValidationError(f"Cash movement {movement_id} is not a Z-cut record")
    return dispatcher.dispatch_z_report(movement.z_report)
