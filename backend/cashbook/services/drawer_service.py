# Overview: Derives the cash drawer's session and balance from the movement ledger.

"""
Drawer state is a projection, not a record.

INVARIANTS:
- The current session is the run of movements newer than the most recent
  CLOSE (or the whole ledger when there is no CLOSE yet).
- The session is open iff that run contains an OPEN.
- Balance = OPEN + DEPOSIT - EXPENSE - WITHDRAWAL over the session; it may go
  negative (a shortfall is reportable, not an error).

Everything here except current_session() is a pure function over a list of
movements, so it can be exercised without a database.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Iterable, Sequence

from ..extensions import db
from ..models import CashMovement
from ..time_utils import local_date, to_utc_z


INFLOW_TYPES = ("OPEN", "DEPOSIT")
OUTFLOW_TYPES = ("EXPENSE", "WITHDRAWAL")


@dataclass(frozen=True)
class SessionView:
    """Current drawer session, newest movement first."""
    movements: tuple
    is_open: bool

    @property
    def opening(self) -> CashMovement | None:
        """Most recent OPEN in the session, if any."""
        for movement in self.movements:
            if movement.movement_type == "OPEN":
                return movement
        return None

    @property
    def opening_fund_cents(self) -> int:
        opening = self.opening
        return opening.amount_cents if opening is not None else 0

    @property
    def balance_cents(self) -> int:
        return session_balance(self.movements)

    def to_dict(self) -> dict:
        opening = self.opening
        return {
            "is_open": self.is_open,
            "balance_cents": self.balance_cents,
            "opening": opening.to_dict() if opening is not None else None,
            "opened_at": to_utc_z(opening.occurred_at) if opening is not None else None,
            "movements": [m.to_dict() for m in self.movements],
        }


def _ordering_key(movement: CashMovement):
    # Equal timestamps fall back to insertion order (id)
    return (movement.occurred_at, movement.id if movement.id is not None else 0)


def newest_first(movements: Iterable[CashMovement]) -> list[CashMovement]:
    return sorted(movements, key=_ordering_key, reverse=True)


def resolve_session(movements: Iterable[CashMovement]) -> SessionView:
    """
    Find the current session in a full ledger.

    - Empty ledger -> empty, closed session
    - Ledger ending in CLOSE with nothing after it -> empty, closed session
    """
    ordered = newest_first(movements)

    last_close = next(
        (index for index, movement in enumerate(ordered) if movement.movement_type == "CLOSE"),
        None,
    )
    session = ordered if last_close is None else ordered[:last_close]

    is_open = any(movement.movement_type == "OPEN" for movement in session)
    return SessionView(movements=tuple(session), is_open=is_open)


def movement_effect_cents(movement: CashMovement) -> int:
    """Signed effect of one movement on the drawer."""
    if movement.movement_type in INFLOW_TYPES:
        return movement.amount_cents
    if movement.movement_type in OUTFLOW_TYPES:
        return -movement.amount_cents
    return 0


def session_balance(movements: Iterable[CashMovement]) -> int:
    return sum(movement_effect_cents(movement) for movement in movements)


def sum_by_type(movements: Iterable[CashMovement], movement_type: str) -> int:
    return sum(m.amount_cents for m in movements if m.movement_type == movement_type and not m.is_z_cut)


def cash_flow_for_day(movements: Sequence[CashMovement], day: date, zone: tzinfo) -> dict:
    """
    Money in and out of the drawer on one local calendar day.

    Z-cut records are skipped by their flag, not by amount: a legitimate
    manual entry may also have a zero amount.
    """
    income = 0
    outflow = 0
    for movement in movements:
        if movement.is_z_cut or local_date(movement.occurred_at, zone) != day:
            continue
        if movement.movement_type in INFLOW_TYPES:
            income += movement.amount_cents
        elif movement.movement_type in OUTFLOW_TYPES:
            outflow += movement.amount_cents
    return {
        "date": day.isoformat(),
        "income_cents": income,
        "outflow_cents": outflow,
    }


def load_ledger() -> list[CashMovement]:
    """Full ledger in chronological order."""
    return db.session.query(CashMovement).order_by(
        CashMovement.occurred_at.asc(),
        CashMovement.id.asc(),
    ).all()


def current_session() -> SessionView:
    return resolve_session(load_ledger())


def drawer_state(*, now: datetime, zone: tzinfo) -> dict:
    """Live drawer summary for the register screen."""
    ledger = load_ledger()
    session = resolve_session(ledger)
    state = session.to_dict()
    state["today"] = cash_flow_for_day(ledger, local_date(now, zone), zone)
    state["as_of"] = to_utc_z(now)
    return state
