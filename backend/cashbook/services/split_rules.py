# Overview: Categorical split rules shared by the Z-cut and period reports.

"""
One place for "which bucket does this money go to".

TENDERS:
- cash / card / transfer sales count what was actually paid (amount_paid)
- split sales contribute each portion to its own tender; a missing portion
  contributes zero
- credit sales count their full total: nothing was received, it is a
  receivable, so it never touches the cash/card/transfer figures

CONSIGNMENT:
- line revenue of consignment items belongs to a third party, everything
  else is the store's own revenue
"""

from __future__ import annotations

from typing import Iterable

from ..models import CashMovement, Transaction


EXCLUDED_STATUSES = ("cancelled",)


def counts_as_sale(transaction: Transaction) -> bool:
    return transaction.status not in EXCLUDED_STATUSES


def tender_totals(transactions: Iterable[Transaction]) -> dict:
    gross = cash = card = transfer = credit = 0

    for tx in transactions:
        gross += tx.total_cents or 0
        method = tx.payment_method

        if method == "cash":
            cash += tx.amount_paid_cents or 0
        elif method == "card":
            card += tx.amount_paid_cents or 0
        elif method == "transfer":
            transfer += tx.amount_paid_cents or 0
        elif method == "credit":
            credit += tx.total_cents or 0
        elif method == "split":
            cash += tx.split_portion_cents("cash")
            card += tx.split_portion_cents("card")
            transfer += tx.split_portion_cents("transfer")

    return {
        "gross_sales_cents": gross,
        "cash_sales_cents": cash,
        "card_sales_cents": card,
        "transfer_sales_cents": transfer,
        "credit_sales_cents": credit,
    }


def consignment_split(transactions: Iterable[Transaction]) -> tuple[int, int]:
    """(own_sales_cents, third_party_sales_cents) from line items."""
    own = 0
    third_party = 0
    for tx in transactions:
        for line in tx.lines:
            if line.is_consignment:
                third_party += line.line_total_cents
            else:
                own += line.line_total_cents
    return own, third_party


def money_out(movements: Iterable[CashMovement]) -> dict:
    """Expenses and withdrawals, skipping Z-cut records."""
    expenses = 0
    withdrawals = 0
    for movement in movements:
        if movement.is_z_cut:
            continue
        if movement.movement_type == "EXPENSE":
            expenses += movement.amount_cents
        elif movement.movement_type == "WITHDRAWAL":
            withdrawals += movement.amount_cents
    return {
        "expenses_cents": expenses,
        "withdrawals_cents": withdrawals,
    }
