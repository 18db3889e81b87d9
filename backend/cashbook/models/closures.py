from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.orm import object_session

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import ImmutableRecordError


class PeriodClosure(db.Model):
    """
    Frozen period report.

    WHY: Once a reporting period is closed its figures are the record of
    what was reported, even if ledger entries are corrected afterwards.

    IMMUTABLE: Written once, never updated.
    """
    __tablename__ = "period_closures"
    __table_args__ = (
        db.UniqueConstraint("period_start", name="uq_period_closures_start"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    period_start = db.Column(db.Date, nullable=False)
    period_end = db.Column(db.Date, nullable=False)

    report = db.Column(db.JSON, nullable=False)
    distribution = db.Column(db.JSON, nullable=False)
    notes = db.Column(db.String(255), nullable=True)

    closed_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "report": self.report,
            "distribution": self.distribution,
            "notes": self.notes,
            "closed_at": to_utc_z(self.closed_at),
        }


@event.listens_for(PeriodClosure, "before_update")
def _reject_closure_update(mapper, connection, target):
    session = object_session(target)
    if session is not None and session.is_modified(target, include_collections=False):
        raise ImmutableRecordError(f"Period closure {target.id} is frozen")
