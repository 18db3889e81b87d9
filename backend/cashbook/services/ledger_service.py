# Overview: Service-layer operations for the cash movement ledger; encapsulates business logic and database work.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import func

from ..extensions import db
from ..models import CashMovement
from ..models.ledger import CATEGORIES, DEFAULT_CATEGORY, MANUAL_MOVEMENT_TYPES, MOVEMENT_TYPES
from ..validation import ImmutableRecordError, NotFoundError, ValidationError
from .drawer_service import current_session
"""
Cash Ledger Invariants (authoritative)

- Append-only: rows are inserted, never updated.
- The only mutation is operator deletion of a non Z-cut row.
- OPEN is refused while a session is open; manual movements are refused
  while the drawer is closed. These checks live here, at the command
  boundary, not in the ledger itself.
- occurred_at is business time; created_at is system time (DB default).
- Commands stamp occurred_at with ledger_time(now), never a caller-supplied
  time, so a new row is always the newest and lands in the live session.
"""


class InvalidStateError(Exception):
    """Command not valid for the drawer's current state (e.g. OPEN while open)."""
    pass


def append_movement(
    *,
    movement_type: str,
    amount_cents: int,
    occurred_at: datetime,
    category: Optional[str] = None,
    sub_category: Optional[str] = None,
    description: Optional[str] = None,
    is_z_cut: bool = False,
    z_report: Optional[dict] = None,
    source_ref: Optional[str] = None,
    commit: bool = True,
) -> CashMovement:
    """
    Append one movement.

    - No drawer-state checks here (see the command functions below).
    - Only the reconciliation engine writes is_z_cut rows.
    """
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(MOVEMENT_TYPES)}")
    if amount_cents is None or amount_cents < 0:
        raise ValidationError("amount must be >= 0")
    if category is None:
        category = DEFAULT_CATEGORY[movement_type]
    if category not in CATEGORIES:
        raise ValidationError(f"category must be one of: {', '.join(CATEGORIES)}")
    if is_z_cut and movement_type != "CLOSE":
        raise ValidationError("Only CLOSE movements can be Z-cut records")
    if z_report is not None and not is_z_cut:
        raise ValidationError("z_report is only allowed on Z-cut records")

    movement = CashMovement(
        movement_type=movement_type,
        amount_cents=amount_cents,
        category=category,
        sub_category=sub_category,
        description=description,
        is_z_cut=is_z_cut,
        z_report=z_report,
        source_ref=source_ref,
        occurred_at=occurred_at,
    )
    db.session.add(movement)

    if commit:
        db.session.commit()
    else:
        db.session.flush()

    return movement


def ledger_time(now: datetime) -> datetime:
    """now, or the newest recorded occurred_at if the ledger is already ahead of it."""
    newest = db.session.query(func.max(CashMovement.occurred_at)).scalar()
    if newest is not None and newest > now:
        return newest
    return now


def open_shift(
    *,
    amount_cents: int,
    now: datetime,
    description: Optional[str] = None,
) -> CashMovement:
    """
    Open the drawer with its starting fund.

    Raises:
        InvalidStateError: If a session is already open
    """
    if current_session().is_open:
        raise InvalidStateError("Cash drawer is already open")

    return append_movement(
        movement_type="OPEN",
        amount_cents=amount_cents,
        occurred_at=ledger_time(now),
        description=description or "Drawer opened (starting fund)",
    )


def record_movement(
    *,
    movement_type: str,
    amount_cents: int,
    now: datetime,
    category: Optional[str] = None,
    sub_category: Optional[str] = None,
    description: Optional[str] = None,
    source_ref: Optional[str] = None,
    require_open: bool = True,
    commit: bool = True,
) -> CashMovement:
    """
    Record a DEPOSIT, EXPENSE or WITHDRAWAL.

    Args:
        require_open: Refuse the movement while the drawer is closed. Manual
            entries keep this on, which is stricter than the old register
            screen (it only refused OPEN while open); automatic sale deposits
            turn it off.
    """
    if movement_type not in MANUAL_MOVEMENT_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(MANUAL_MOVEMENT_TYPES)}")

    if require_open and not current_session().is_open:
        raise InvalidStateError("Cash drawer is closed. Open it before recording movements.")

    return append_movement(
        movement_type=movement_type,
        amount_cents=amount_cents,
        occurred_at=ledger_time(now),
        category=category,
        sub_category=sub_category,
        description=description,
        source_ref=source_ref,
        commit=commit,
    )


def get_movement(movement_id: int) -> CashMovement:
    movement = db.session.get(CashMovement, movement_id)
    if movement is None:
        raise NotFoundError(f"Cash movement {movement_id} not found")
    return movement


def list_movements(*, newest_first: bool = True, limit: int | None = None) -> list[CashMovement]:
    query = db.session.query(CashMovement)
    if newest_first:
        query = query.order_by(CashMovement.occurred_at.desc(), CashMovement.id.desc())
    else:
        query = query.order_by(CashMovement.occurred_at.asc(), CashMovement.id.asc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def list_z_cuts(*, limit: int = 50) -> list[CashMovement]:
    return db.session.query(CashMovement).filter(
        CashMovement.is_z_cut.is_(True),
    ).order_by(CashMovement.occurred_at.desc(), CashMovement.id.desc()).limit(limit).all()


def movements_by_source(source_ref: str) -> list[CashMovement]:
    return db.session.query(CashMovement).filter_by(source_ref=source_ref).order_by(CashMovement.id).all()


def delete_movement(movement_id: int, *, commit: bool = True) -> CashMovement:
    """
    Remove an erroneous manual entry.

    Z-cut rows are refused here and, as a backstop, by the model's delete guard.
    """
    movement = get_movement(movement_id)
    if movement.is_z_cut:
        raise ImmutableRecordError(f"Z-cut record {movement_id} cannot be deleted")

    db.session.delete(movement)

    if commit:
        db.session.commit()
    else:
        db.session.flush()

    return movement
