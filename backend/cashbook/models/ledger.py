from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.orm import object_session

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import ImmutableRecordError


MOVEMENT_TYPES = ("OPEN", "DEPOSIT", "EXPENSE", "WITHDRAWAL", "CLOSE")

# Movement types an operator may record by hand (OPEN and CLOSE have their own commands)
MANUAL_MOVEMENT_TYPES = ("DEPOSIT", "EXPENSE", "WITHDRAWAL")

CATEGORIES = ("SALES", "OPERATIONAL", "EQUITY", "PROFIT", "THIRD_PARTY", "INVESTMENT", "OTHER")

DEFAULT_CATEGORY = {
    "OPEN": "OTHER",
    "DEPOSIT": "SALES",
    "EXPENSE": "OPERATIONAL",
    "WITHDRAWAL": "PROFIT",
    "CLOSE": "OTHER",
}


class CashMovement(db.Model):
    """
    One cash-drawer event.

    WHY: The drawer's state (open/closed, running balance, shift boundaries)
    is derived by folding over these rows, never stored separately.

    APPEND-ONLY: Rows are never updated. The one allowed mutation is deleting
    a manual (non Z-cut) entry entered by mistake. Z-cut CLOSE rows carry a
    frozen reconciliation snapshot in z_report and can never be removed.

    SIGN: amount_cents is a magnitude. OPEN/DEPOSIT add to the drawer,
    EXPENSE/WITHDRAWAL take from it, CLOSE is a zero-amount terminator.
    """
    __tablename__ = "cash_movements"
    __table_args__ = (
        db.CheckConstraint("amount_cents >= 0", name="ck_cash_movements_amount_nonneg"),
        db.Index("ix_cash_movements_occurred_id", "occurred_at", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    movement_type = db.Column(db.String(16), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False, default=0)

    # Why the money moved (independent of direction)
    category = db.Column(db.String(32), nullable=False, default="OTHER", index=True)
    sub_category = db.Column(db.String(128), nullable=True)  # e.g. supplier, expense label
    description = db.Column(db.String(255), nullable=True)

    # Z-cut discriminator: true only for the synthetic CLOSE written by reconciliation
    is_z_cut = db.Column(db.Boolean, nullable=False, default=False, index=True)
    z_report = db.Column(db.JSON, nullable=True)

    # External reference, e.g. the transaction whose cash portion produced a DEPOSIT
    source_ref = db.Column(db.String(64), nullable=True, index=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<CashMovement id={self.id} type={self.movement_type} amount_cents={self.amount_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.movement_type,
            "amount_cents": self.amount_cents,
            "category": self.category,
            "sub_category": self.sub_category,
            "description": self.description,
            "is_z_cut": bool(self.is_z_cut),
            "z_report": self.z_report,
            "source_ref": self.source_ref,
            "occurred_at": to_utc_z(self.occurred_at),
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(CashMovement, "before_update")
def _reject_movement_update(mapper, connection, target):
    session = object_session(target)
    if session is not None and session.is_modified(target, include_collections=False):
        raise ImmutableRecordError(f"Cash movement {target.id} is append-only and cannot be edited")


@event.listens_for(CashMovement, "before_delete")
def _reject_z_cut_delete(mapper, connection, target):
    if target.is_z_cut:
        raise ImmutableRecordError(f"Z-cut record {target.id} cannot be deleted")
