from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


PAYMENT_METHODS = ("cash", "card", "transfer", "credit", "split")
PAYMENT_STATUSES = ("paid", "pending", "partial", "refunded")
TRANSACTION_STATUSES = ("completed", "cancelled", "returned")


class Transaction(db.Model):
    """
    Sales record received from the POS front end.

    WHY: Reconciliation and period reports read these to split sales by
    tender. The cash core never edits them; the front end only appends new
    ones or flags them cancelled.

    SPLIT PAYMENTS: split_*_cents hold the per-tender breakdown when
    payment_method is "split". Missing portions count as zero.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_status_occurred", "status", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Folio assigned by the POS front end (e.g. "T-000123")
    external_id = db.Column(db.String(64), nullable=False, unique=True, index=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    # Amounts (all in cents)
    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    amount_paid_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_method = db.Column(db.String(16), nullable=False, index=True)
    payment_status = db.Column(db.String(16), nullable=False, default="paid")

    split_cash_cents = db.Column(db.Integer, nullable=True)
    split_card_cents = db.Column(db.Integer, nullable=True)
    split_transfer_cents = db.Column(db.Integer, nullable=True)

    status = db.Column(db.String(16), nullable=False, default="completed", index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def split_portion_cents(self, tender: str) -> int:
        """Split-payment portion for cash/card/transfer (0 when absent)."""
        return getattr(self, f"split_{tender}_cents", None) or 0

    def cash_portion_cents(self) -> int:
        """Cash physically received for this sale."""
        if self.payment_method == "cash":
            return self.amount_paid_cents or 0
        if self.payment_method == "split":
            return self.split_portion_cents("cash")
        return 0

    def to_dict(self) -> dict:
        split = None
        if self.payment_method == "split":
            split = {
                "cash_cents": self.split_cash_cents,
                "card_cents": self.split_card_cents,
                "transfer_cents": self.split_transfer_cents,
            }
        return {
            "id": self.external_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "split_details": split,
            "status": self.status,
            "items": [line.to_dict() for line in self.lines],
        }


class TransactionLine(db.Model):
    """Individual line items on a transaction."""
    __tablename__ = "transaction_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)

    product_ref = db.Column(db.String(64), nullable=True)
    name = db.Column(db.String(128), nullable=False)
    category = db.Column(db.String(64), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)

    # Consignment: revenue belongs to a third party, not to the store
    is_consignment = db.Column(db.Boolean, nullable=False, default=False)

    transaction = db.relationship(
        "Transaction",
        backref=db.backref("lines", lazy=True, order_by="TransactionLine.id"),
    )

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "product_ref": self.product_ref,
            "name": self.name,
            "category": self.category,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "is_consignment": bool(self.is_consignment),
        }
