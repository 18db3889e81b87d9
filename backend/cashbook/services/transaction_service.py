# Overview: Intake seam for sales records produced by the POS front end; the cash core only reads them.

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from ..extensions import db
from ..models import Transaction, TransactionLine
from ..time_utils import parse_iso_datetime
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    clean_text,
    parse_amount_cents,
    parse_choice,
)
from ..models.transactions import PAYMENT_METHODS, PAYMENT_STATUSES, TRANSACTION_STATUSES
from .ledger_service import delete_movement, movements_by_source, record_movement


def source_ref_for(transaction: Transaction) -> str:
    return f"tx:{transaction.external_id}"


def _parse_optional_amount(value: Any, field: str) -> Optional[int]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_amount_cents(value, field)


def _parse_quantity(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValidationError("quantity must be a positive integer")
    try:
        quantity = int(value)
    except ValueError:
        raise ValidationError("quantity must be a positive integer")
    if quantity <= 0:
        raise ValidationError("quantity must be a positive integer")
    return quantity


def _build_line(item: Any) -> TransactionLine:
    if not isinstance(item, dict):
        raise ValidationError("items must be a list of objects")
    name = clean_text(item.get("name"), "item name", 128)
    if not name:
        raise ValidationError("item name is required")
    return TransactionLine(
        product_ref=clean_text(item.get("product_id"), "product_id", 64),
        name=name,
        category=clean_text(item.get("category"), "item category", 64),
        quantity=_parse_quantity(item.get("quantity", 1)),
        unit_price_cents=parse_amount_cents(item.get("price"), "item price"),
        is_consignment=bool(item.get("is_consignment", False)),
    )


def record_transaction(payload: dict, *, now: datetime) -> Transaction:
    """
    Store a sale received from the front end.

    Amounts arrive as decimals ("150.00"). A completed sale whose cash
    portion is positive also appends a DEPOSIT/SALES movement referencing
    it, unless the payload says "affects_cash": false. The deposit is
    written whether or not the drawer is open, with the sale's own time.

    Raises:
        ValidationError: Malformed payload
        ConflictError: A transaction with the same id already exists
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    external_id = clean_text(payload.get("id"), "id", 64)
    if not external_id:
        raise ValidationError("id is required")
    if db.session.query(Transaction.id).filter_by(external_id=external_id).first():
        raise ConflictError(f"Transaction {external_id} already exists")

    occurred_raw = payload.get("occurred_at")
    try:
        occurred_at = parse_iso_datetime(occurred_raw) if occurred_raw else now
    except (TypeError, ValueError, AttributeError):
        raise ValidationError("occurred_at must be an ISO-8601 datetime")

    total_cents = parse_amount_cents(payload.get("total"), "total")
    subtotal_cents = _parse_optional_amount(payload.get("subtotal"), "subtotal")
    discount_cents = _parse_optional_amount(payload.get("discount"), "discount") or 0
    amount_paid_cents = _parse_optional_amount(payload.get("amount_paid"), "amount_paid")

    payment_method = parse_choice(payload.get("payment_method"), "payment_method", PAYMENT_METHODS)
    payment_status = parse_choice(payload.get("payment_status"), "payment_status", PAYMENT_STATUSES, default="paid")
    status = parse_choice(payload.get("status"), "status", TRANSACTION_STATUSES, default="completed")

    transaction = Transaction(
        external_id=external_id,
        occurred_at=occurred_at,
        subtotal_cents=subtotal_cents if subtotal_cents is not None else total_cents + discount_cents,
        discount_cents=discount_cents,
        total_cents=total_cents,
        amount_paid_cents=amount_paid_cents if amount_paid_cents is not None else total_cents,
        payment_method=payment_method,
        payment_status=payment_status,
        status=status,
    )

    split = payload.get("split_details")
    if split is not None:
        if payment_method != "split":
            raise ValidationError("split_details only apply to split payments")
        if not isinstance(split, dict):
            raise ValidationError("split_details must be an object")
        transaction.split_cash_cents = _parse_optional_amount(split.get("cash"), "split cash")
        transaction.split_card_cents = _parse_optional_amount(split.get("card"), "split card")
        transaction.split_transfer_cents = _parse_optional_amount(split.get("transfer"), "split transfer")

    items = payload.get("items") or []
    if not isinstance(items, list):
        raise ValidationError("items must be a list")
    for item in items:
        transaction.lines.append(_build_line(item))

    db.session.add(transaction)
    db.session.flush()

    affects_cash = payload.get("affects_cash", True) is not False
    cash_portion = transaction.cash_portion_cents()
    if affects_cash and status == "completed" and cash_portion > 0:
        # The drawer receives the cash when the sale is recorded; the sale's
        # own time stays on the transaction.
        record_movement(
            movement_type="DEPOSIT",
            amount_cents=cash_portion,
            now=now,
            category="SALES",
            description=f"Sale #{external_id}",
            source_ref=source_ref_for(transaction),
            require_open=False,
            commit=False,
        )

    db.session.commit()
    return transaction


def get_transaction(external_id: str) -> Transaction:
    transaction = db.session.query(Transaction).filter_by(external_id=external_id).first()
    if transaction is None:
        raise NotFoundError(f"Transaction {external_id} not found")
    return transaction


def list_transactions(
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    include_cancelled: bool = True,
) -> list[Transaction]:
    """Transactions in [start, end] (UTC-naive bounds), oldest first."""
    query = db.session.query(Transaction)
    if start is not None:
        query = query.filter(Transaction.occurred_at >= start)
    if end is not None:
        query = query.filter(Transaction.occurred_at <= end)
    if not include_cancelled:
        query = query.filter(Transaction.status != "cancelled")
    return query.order_by(Transaction.occurred_at.asc(), Transaction.id.asc()).all()


def cancel_transaction(external_id: str) -> Transaction:
    """
    Flag a sale cancelled and remove the cash deposit it produced.

    The deposit removal is the ledger's one permitted mutation; a deposit
    already folded into a Z-cut snapshot stays in that snapshot.
    """
    transaction = get_transaction(external_id)
    if transaction.status == "cancelled":
        raise ConflictError(f"Transaction {external_id} is already cancelled")

    for movement in movements_by_source(source_ref_for(transaction)):
        if not movement.is_z_cut:
            delete_movement(movement.id, commit=False)

    transaction.status = "cancelled"
    db.session.commit()
    return transaction
