# Overview: Flask CLI command groups for the cash drawer and period reports.

# backend/cashbook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Cash drawer:
# - python -m flask cash status
#   Show whether the drawer is open, its balance and the current session.
# - python -m flask cash open --amount 100.00
#   Open the drawer with a starting fund.
# - python -m flask cash record --type EXPENSE --amount 20.00 --category OPERATIONAL --sub-category Cleaning
#   Record a deposit, expense or withdrawal (drawer must be open).
# - python -m flask cash delete 42
#   Delete an erroneous manual entry (Z-cut records are refused).
# - python -m flask cash zcut --declared 125.00
#   Reconcile and close the drawer; the ticket prints in the background.
# - python -m flask cash history --limit 10
#   List recent Z-cuts.
#
# Reports:
# - python -m flask reports period --range WEEK
# - python -m flask reports period --range CUSTOM --start 2024-03-01 --end 2024-03-31 --payment-method cash
#   Print a period summary.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .services import aggregation_service, drawer_service, ledger_service, reconciliation_service
from .services.aggregation_service import ReportError
from .services.ledger_service import InvalidStateError
from .services.printing_service import get_dispatcher
from .time_utils import current_zone, utcnow
from .validation import ConflictError, NotFoundError, ValidationError, format_cents, parse_amount_cents
from .models.ledger import CATEGORIES, MANUAL_MOVEMENT_TYPES


@click.group('cash')
def cash_group():
    """Cash drawer commands."""


@cash_group.command('status')
@with_appcontext
def cash_status_cli():
    """
    Show the current drawer session.

    Example:
        flask cash status
    """
    session = drawer_service.current_session()

    if not session.is_open:
        click.echo("Drawer is CLOSED.")
    else:
        opening = session.opening
        click.echo(f"Drawer is OPEN since {opening.occurred_at:%Y-%m-%d %H:%M} UTC")
        click.echo(f"   Opening fund: {format_cents(session.opening_fund_cents)}")
        click.echo(f"   Balance:      {format_cents(session.balance_cents)}")

    if not session.movements:
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<6} {'Type':<12} {'Amount':>14}  {'Category':<12} {'Description'}")
    click.echo("="*80)
    for movement in session.movements:
        click.echo(
            f"{movement.id:<6} {movement.movement_type:<12} {format_cents(movement.amount_cents):>14}  "
            f"{movement.category:<12} {movement.description or ''}"
        )
    click.echo("="*80 + "\n")


@cash_group.command('open')
@click.option('--amount', required=True, help='Starting fund, e.g. 100.00')
@click.option('--description', help='Optional note')
@with_appcontext
def cash_open_cli(amount, description):
    """
    Open the drawer.

    Example:
        flask cash open --amount 100.00
    """
    try:
        movement = ledger_service.open_shift(
            amount_cents=parse_amount_cents(amount),
            now=utcnow(),
            description=description,
        )
        click.echo(f"PASS Drawer opened with {format_cents(movement.amount_cents)} (movement {movement.id})")
    except (InvalidStateError, ValidationError) as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")


@cash_group.command('record')
@click.option('--type', 'movement_type', required=True,
              type=click.Choice(MANUAL_MOVEMENT_TYPES, case_sensitive=False), help='Movement type')
@click.option('--amount', required=True, help='Amount, e.g. 20.00')
@click.option('--category', type=click.Choice(CATEGORIES, case_sensitive=False), help='Defaults by type')
@click.option('--sub-category', help='Free-text refinement (supplier, expense label)')
@click.option('--description', help='Optional note')
@with_appcontext
def cash_record_cli(movement_type, amount, category, sub_category, description):
    """
    Record a deposit, expense or withdrawal.

    Fails while the drawer is closed; unlike the old register screen,
    manual entries always belong to an open session.

    Example:
        flask cash record --type WITHDRAWAL --amount 50.00 --category PROFIT
    """
    try:
        movement = ledger_service.record_movement(
            movement_type=movement_type.upper(),
            amount_cents=parse_amount_cents(amount),
            now=utcnow(),
            category=category.upper() if category else None,
            sub_category=sub_category,
            description=description,
        )
        click.echo(
            f"PASS Recorded {movement.movement_type} {format_cents(movement.amount_cents)} "
            f"[{movement.category}] (movement {movement.id})"
        )
    except (InvalidStateError, ValidationError) as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")


@cash_group.command('delete')
@click.argument('movement_id', type=int)
@with_appcontext
def cash_delete_cli(movement_id):
    """
    Delete an erroneous manual entry.

    Example:
        flask cash delete 42
    """
    try:
        ledger_service.delete_movement(movement_id)
        click.echo(f"PASS Deleted movement {movement_id}")
    except (NotFoundError, ConflictError) as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")


@cash_group.command('zcut')
@click.option('--declared', required=True, help='Cash counted in the drawer, e.g. 125.00')
@click.option('--no-print', is_flag=True, help='Skip the printed ticket')
@with_appcontext
def cash_zcut_cli(declared, no_print):
    """
    Reconcile and close the drawer.

    Example:
        flask cash zcut --declared 125.00
    """
    try:
        movement = reconciliation_service.perform_z_cut(
            declared_cash_cents=parse_amount_cents(declared, "declared"),
            now=utcnow(),
            zone=current_zone(),
            dispatcher=None if no_print else get_dispatcher(),
        )
    except (InvalidStateError, ValidationError) as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")
        return

    report = movement.z_report
    click.echo(f"PASS Z-cut {movement.id} recorded")
    click.echo(f"   Opening fund: {format_cents(report['opening_fund_cents'])}")
    click.echo(f"   Gross sales:  {format_cents(report['gross_sales_cents'])}")
    click.echo(f"   Expenses:     {format_cents(report['expenses_cents'])}")
    click.echo(f"   Withdrawals:  {format_cents(report['withdrawals_cents'])}")
    click.echo(f"   Expected:     {format_cents(report['expected_cash_cents'])}")
    click.echo(f"   Declared:     {format_cents(report['declared_cash_cents'])}")
    click.echo(f"   Difference:   {format_cents(report['difference_cents'])}")


@cash_group.command('history')
@click.option('--limit', type=int, default=10, show_default=True)
@with_appcontext
def cash_history_cli(limit):
    """
    List recent Z-cuts.

    Example:
        flask cash history --limit 5
    """
    z_cuts = ledger_service.list_z_cuts(limit=limit)
    if not z_cuts:
        click.echo("No Z-cuts found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<6} {'Closed (UTC)':<18} {'Expected':>14} {'Declared':>14} {'Difference':>14}")
    click.echo("="*80)
    for movement in z_cuts:
        report = movement.z_report or {}
        click.echo(
            f"{movement.id:<6} {movement.occurred_at:%Y-%m-%d %H:%M}  "
            f"{format_cents(report.get('expected_cash_cents', 0)):>14} "
            f"{format_cents(report.get('declared_cash_cents', 0)):>14} "
            f"{format_cents(report.get('difference_cents', 0)):>14}"
        )
    click.echo("="*80 + "\n")


@click.group('reports')
def reports_group():
    """Period reporting commands."""


@reports_group.command('period')
@click.option('--range', 'preset', default='TODAY', show_default=True,
              type=click.Choice(aggregation_service.RANGE_PRESETS, case_sensitive=False))
@click.option('--start', help='YYYY-MM-DD (CUSTOM only)')
@click.option('--end', help='YYYY-MM-DD (CUSTOM only)')
@click.option('--payment-method', help='Restrict sales to one payment method')
@with_appcontext
def reports_period_cli(preset, start, end, payment_method):
    """
    Print a period summary.

    Example:
        flask reports period --range MONTH
    """
    try:
        report = aggregation_service.period_report(
            preset=preset,
            start=start,
            end=end,
            payment_method=payment_method,
            now=utcnow(),
            zone=current_zone(),
            dense_days=current_app.config["CASHBOOK_DENSE_SERIES_DAYS"],
            top_n=current_app.config["CASHBOOK_TOP_PRODUCTS"],
        )
    except ReportError as e:
        click.echo(f"FAIL {e}")
        return

    summary = report["summary"]
    click.echo(f"Period {report['range']['start']} .. {report['range']['end']} ({report['range']['days']} days)")
    click.echo(f"   Total sales:       {format_cents(summary['total_sales_cents'])}")
    click.echo(f"   Own sales:         {format_cents(summary['own_sales_cents'])}")
    click.echo(f"   Third-party sales: {format_cents(summary['third_party_sales_cents'])}")
    click.echo(f"   Expenses:          {format_cents(summary['operational_expenses_cents'])}")
    click.echo(f"   Total money out:   {format_cents(summary['total_money_out_cents'])}")
    click.echo(f"   Net estimate:      {format_cents(summary['net_estimate_cents'])}")
    click.echo(f"   Tickets:           {summary['transaction_count']}")
    click.echo(f"   Average ticket:    {format_cents(summary['avg_ticket_cents'])}")


def register_commands(app):
    app.cli.add_command(cash_group)
    app.cli.add_command(reports_group)
