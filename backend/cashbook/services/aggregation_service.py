# Overview: Period reporting over sales and cash movements; buckets by local calendar day.

"""
Period Aggregator

WHY: Owners compare weeks, months and custom windows that have nothing to do
with drawer sessions. The figures use the same tender and consignment rules
as the Z-cut so both reports agree on what a sale is.

DESIGN PRINCIPLES:
- Buckets are local calendar dates (YYYY-MM-DD), not UTC day divisions
- aggregate_period() and budget_distribution() are pure; the loaders and
  closures around them do the database work
- One captured `now` resolves the range and everything downstream
- Deterministic output: sorted keys and explicit tie-breaks
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta

from ..extensions import db
from ..models import CashMovement, PeriodClosure, Transaction
from ..models.transactions import PAYMENT_METHODS
from ..time_utils import local_date, local_day_bounds, parse_iso_date
from ..validation import ConflictError
from .split_rules import consignment_split, counts_as_sale, money_out, tender_totals
from .transaction_service import list_transactions


RANGE_PRESETS = ("TODAY", "WEEK", "MONTH", "YEAR", "CUSTOM")

UNCATEGORIZED = "Uncategorized"
UNSPECIFIED = "Unspecified"


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


@dataclass(frozen=True)
class PeriodRange:
    """Inclusive range of local calendar days."""
    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def iter_days(self):
        day = self.start
        while day <= self.end:
            yield day
            day += timedelta(days=1)

    def utc_bounds(self, zone: tzinfo) -> tuple[datetime, datetime]:
        """UTC-naive instants covering the first through the last local day."""
        return local_day_bounds(self.start, zone)[0], local_day_bounds(self.end, zone)[1]

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "days": self.days,
        }


def _as_date(value, field: str) -> date:
    if isinstance(value, date):
        return value
    try:
        parsed = parse_iso_date(value)
    except (AttributeError, TypeError, ValueError):
        raise ReportError(f"{field} must be a date (YYYY-MM-DD)")
    if parsed is None:
        raise ReportError(f"{field} is required for CUSTOM ranges")
    return parsed


def resolve_range(preset: Optional[str], *, today: date, start=None, end=None) -> PeriodRange:
    """
    Turn a preset into concrete local dates.

    - TODAY: today only
    - WEEK: the last 7 days including today
    - MONTH / YEAR: same calendar day one month / year back, through today
    - CUSTOM: explicit start and end, start <= end
    """
    preset = preset or "TODAY"
    if not isinstance(preset, str):
        raise ReportError(f"range must be one of: {', '.join(RANGE_PRESETS)}")
    preset = preset.strip().upper()

    if preset == "TODAY":
        return PeriodRange(today, today)
    if preset == "WEEK":
        return PeriodRange(today - timedelta(days=6), today)
    if preset == "MONTH":
        return PeriodRange(today - relativedelta(months=1), today)
    if preset == "YEAR":
        return PeriodRange(today - relativedelta(years=1), today)
    if preset == "CUSTOM":
        start_day = _as_date(start, "start")
        end_day = _as_date(end, "end")
        if start_day > end_day:
            raise ReportError("start must be on or before end")
        return PeriodRange(start_day, end_day)

    raise ReportError(f"range must be one of: {', '.join(RANGE_PRESETS)}")


def _half_up(numerator: int, denominator: int) -> int:
    if not denominator:
        return 0
    return int((Decimal(numerator) / Decimal(denominator)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _percent_of(amount_cents: int, percent) -> int:
    return int((Decimal(amount_cents) * Decimal(str(percent)) / 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


# =============================================================================
# PURE AGGREGATION
# =============================================================================

def aggregate_period(
    *,
    transactions: Iterable[Transaction],
    movements: Iterable[CashMovement],
    period: PeriodRange,
    zone: tzinfo,
    payment_method: Optional[str] = None,
    dense_days: int = 60,
    top_n: int = 5,
) -> dict:
    """
    Financial summary of one period.

    Args:
        transactions: Candidate sales; cancelled ones and those outside the
            period (by local date) are ignored
        movements: Candidate cash movements; Z-cut records are ignored
        payment_method: Restrict sales to one tender (movements unaffected)
        dense_days: Periods up to this many days get a zero-filled series
    """
    if payment_method is not None and payment_method not in PAYMENT_METHODS:
        raise ReportError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")

    sales = []
    for tx in transactions:
        if not counts_as_sale(tx):
            continue
        if payment_method is not None and tx.payment_method != payment_method:
            continue
        if not period.contains(local_date(tx.occurred_at, zone)):
            continue
        sales.append(tx)

    cash_movements = [
        m for m in movements
        if not m.is_z_cut and period.contains(local_date(m.occurred_at, zone))
    ]

    # Daily series
    dense = period.days <= dense_days
    buckets: dict[str, dict] = {}
    if dense:
        for day in period.iter_days():
            buckets[day.isoformat()] = {"date": day.isoformat(), "sales_cents": 0, "expenses_cents": 0}

    def bucket_for(dt: datetime) -> dict:
        key = local_date(dt, zone).isoformat()
        if key not in buckets:
            buckets[key] = {"date": key, "sales_cents": 0, "expenses_cents": 0}
        return buckets[key]

    for tx in sales:
        bucket_for(tx.occurred_at)["sales_cents"] += tx.total_cents or 0
    for movement in cash_movements:
        if movement.movement_type == "EXPENSE":
            bucket_for(movement.occurred_at)["expenses_cents"] += movement.amount_cents

    # Products and sales categories, from line items
    products: dict[str, dict] = {}
    sales_categories: dict[str, int] = {}
    for tx in sales:
        for line in tx.lines:
            product = products.setdefault(line.name, {"name": line.name, "quantity": 0, "revenue_cents": 0})
            product["quantity"] += line.quantity
            product["revenue_cents"] += line.line_total_cents

            category = line.category or UNCATEGORIZED
            sales_categories[category] = sales_categories.get(category, 0) + line.line_total_cents

    top_products = sorted(products.values(), key=lambda p: (-p["revenue_cents"], p["name"]))[:top_n]

    sales_by_category = [
        {"category": category, "revenue_cents": revenue}
        for category, revenue in sorted(sales_categories.items(), key=lambda item: (-item[1], item[0]))
    ]

    # Money out, by category then sub-category
    expense_categories: dict[str, dict[str, int]] = {}
    for movement in cash_movements:
        if movement.movement_type not in ("EXPENSE", "WITHDRAWAL"):
            continue
        subs = expense_categories.setdefault(movement.category, {})
        sub = movement.sub_category or UNSPECIFIED
        subs[sub] = subs.get(sub, 0) + movement.amount_cents

    expenses_by_category = []
    for category, subs in expense_categories.items():
        expenses_by_category.append({
            "category": category,
            "amount_cents": sum(subs.values()),
            "sub_categories": [
                {"sub_category": name, "amount_cents": amount}
                for name, amount in sorted(subs.items(), key=lambda item: (-item[1], item[0]))
            ],
        })
    expenses_by_category.sort(key=lambda entry: (-entry["amount_cents"], entry["category"]))

    # Summary
    tenders = tender_totals(sales)
    own_sales, third_party_sales = consignment_split(sales)
    outflows = money_out(cash_movements)
    operational_expenses = outflows["expenses_cents"]
    transaction_count = len(sales)

    summary = {
        "total_sales_cents": tenders["gross_sales_cents"],
        "transaction_count": transaction_count,
        "avg_ticket_cents": _half_up(tenders["gross_sales_cents"], transaction_count),
        "own_sales_cents": own_sales,
        "third_party_sales_cents": third_party_sales,
        "operational_expenses_cents": operational_expenses,
        "withdrawals_cents": outflows["withdrawals_cents"],
        "total_money_out_cents": operational_expenses + outflows["withdrawals_cents"],
        "net_estimate_cents": own_sales - operational_expenses,
        "cash_sales_cents": tenders["cash_sales_cents"],
        "card_sales_cents": tenders["card_sales_cents"],
        "transfer_sales_cents": tenders["transfer_sales_cents"],
        "credit_sales_cents": tenders["credit_sales_cents"],
    }

    return {
        "range": {**period.to_dict(), "dense": dense},
        "payment_method": payment_method,
        "series": [buckets[key] for key in sorted(buckets)],
        "top_products": top_products,
        "sales_by_category": sales_by_category,
        "expenses_by_category": expenses_by_category,
        "summary": summary,
    }


def budget_distribution(
    *,
    movements: Iterable[CashMovement],
    period: PeriodRange,
    zone: tzinfo,
    today: date,
    expenses_pct=50,
    profit_pct=20,
    investment_pct=30,
) -> dict:
    """
    Split period income into operating, profit and investment targets.

    Income is SALES or EQUITY deposits. Whatever operating budget is left
    unspent is added to the investment actually available.
    """
    income = 0
    actual_opex = 0
    actual_profit = 0
    for movement in movements:
        if movement.is_z_cut or not period.contains(local_date(movement.occurred_at, zone)):
            continue
        if movement.movement_type == "DEPOSIT" and movement.category in ("SALES", "EQUITY"):
            income += movement.amount_cents
        elif movement.movement_type in ("EXPENSE", "WITHDRAWAL"):
            if movement.category == "OPERATIONAL":
                actual_opex += movement.amount_cents
            elif movement.category == "PROFIT":
                actual_profit += movement.amount_cents

    target_opex = _percent_of(income, expenses_pct)
    target_profit = _percent_of(income, profit_pct)
    target_investment = _percent_of(income, investment_pct)
    surplus = max(0, target_opex - actual_opex)

    is_current = period.contains(today)
    return {
        "range": period.to_dict(),
        "is_current_period": is_current,
        "days_remaining": (period.end - today).days + 1 if is_current else 0,
        "income_cents": income,
        "percentages": {
            "expenses": expenses_pct,
            "profit": profit_pct,
            "investment": investment_pct,
        },
        "target": {
            "opex_cents": target_opex,
            "profit_cents": target_profit,
            "investment_cents": target_investment,
        },
        "actual": {
            "opex_cents": actual_opex,
            "profit_cents": actual_profit,
            "investment_cents": target_investment + surplus,
        },
        "expense_surplus_cents": surplus,
    }


# =============================================================================
# DATABASE-BACKED REPORTS
# =============================================================================

def budget_settings(config) -> dict:
    return {
        "expenses_pct": config["CASHBOOK_BUDGET_EXPENSES_PCT"],
        "profit_pct": config["CASHBOOK_BUDGET_PROFIT_PCT"],
        "investment_pct": config["CASHBOOK_BUDGET_INVESTMENT_PCT"],
    }


def _load_movements(start: datetime, end: datetime) -> list[CashMovement]:
    return db.session.query(CashMovement).filter(
        CashMovement.occurred_at >= start,
        CashMovement.occurred_at <= end,
    ).order_by(CashMovement.occurred_at.asc(), CashMovement.id.asc()).all()


def period_report(
    *,
    preset: Optional[str],
    start=None,
    end=None,
    payment_method: Optional[str] = None,
    now: datetime,
    zone: tzinfo,
    dense_days: int = 60,
    top_n: int = 5,
) -> dict:
    if isinstance(payment_method, str) and not payment_method.strip():
        payment_method = None

    period = resolve_range(preset, today=local_date(now, zone), start=start, end=end)
    start_utc, end_utc = period.utc_bounds(zone)

    report = aggregate_period(
        transactions=list_transactions(start=start_utc, end=end_utc, include_cancelled=False),
        movements=_load_movements(start_utc, end_utc),
        period=period,
        zone=zone,
        payment_method=payment_method,
        dense_days=dense_days,
        top_n=top_n,
    )
    report["range"]["preset"] = (preset or "TODAY").strip().upper()
    return report


def distribution_report(
    *,
    preset: Optional[str],
    start=None,
    end=None,
    now: datetime,
    zone: tzinfo,
    budget: dict,
) -> dict:
    today = local_date(now, zone)
    period = resolve_range(preset, today=today, start=start, end=end)
    start_utc, end_utc = period.utc_bounds(zone)
    return budget_distribution(
        movements=_load_movements(start_utc, end_utc),
        period=period,
        zone=zone,
        today=today,
        **budget,
    )


def close_period(
    *,
    preset: Optional[str],
    start=None,
    end=None,
    notes: Optional[str] = None,
    now: datetime,
    zone: tzinfo,
    budget: dict,
    dense_days: int = 60,
    top_n: int = 5,
) -> PeriodClosure:
    """
    Freeze the report and distribution of a period.

    Raises:
        ConflictError: A closure already exists for the same start date
    """
    period = resolve_range(preset, today=local_date(now, zone), start=start, end=end)

    existing = db.session.query(PeriodClosure).filter_by(period_start=period.start).first()
    if existing:
        raise ConflictError(f"Period starting {period.start.isoformat()} is already closed")

    report = period_report(
        preset="CUSTOM",
        start=period.start,
        end=period.end,
        now=now,
        zone=zone,
        dense_days=dense_days,
        top_n=top_n,
    )
    distribution = distribution_report(
        preset="CUSTOM",
        start=period.start,
        end=period.end,
        now=now,
        zone=zone,
        budget=budget,
    )

    closure = PeriodClosure(
        period_start=period.start,
        period_end=period.end,
        report=report,
        distribution=distribution,
        notes=notes,
        closed_at=now,
    )
    db.session.add(closure)
    db.session.commit()
    return closure


def list_closures(*, limit: int = 50) -> list[PeriodClosure]:
    return db.session.query(PeriodClosure).order_by(
        PeriodClosure.period_start.desc(),
    ).limit(limit).all()
