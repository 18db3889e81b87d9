"""
Ticket rendering and fire-and-forget dispatch.
"""

import threading

import pytest

from cashbook.services.printing_service import (
    PrintDispatchError,
    PrintDispatcher,
    render_period_ticket,
    render_z_ticket,
)

from conftest import InlineExecutor


Z_REPORT = {
    "opening_fund_cents": 10000,
    "gross_sales_cents": 5000,
    "cash_sales_cents": 5000,
    "card_sales_cents": 0,
    "transfer_sales_cents": 0,
    "credit_sales_cents": 0,
    "expenses_cents": 2000,
    "withdrawals_cents": 0,
    "expected_cash_cents": 13000,
    "declared_cash_cents": 12500,
    "difference_cents": -500,
    "timestamp": "2024-03-01T18:00:00Z",
}


def test_z_ticket_escapes_business_name_and_sets_width():
    ticket = render_z_ticket(Z_REPORT, business_name="Tom & Jerry <Shop>", width_mm=58)
    assert "Tom &amp; Jerry &lt;Shop&gt;" in ticket
    assert "width: 58mm" in ticket
    assert "Expected in drawer:" in ticket


def test_period_ticket_lists_categories():
    report = {
        "range": {"start": "2024-03-01", "end": "2024-03-07"},
        "summary": {
            "total_sales_cents": 1000,
            "own_sales_cents": 1000,
            "third_party_sales_cents": 0,
            "operational_expenses_cents": 0,
            "total_money_out_cents": 0,
            "net_estimate_cents": 1000,
            "transaction_count": 1,
            "avg_ticket_cents": 1000,
        },
        "sales_by_category": [{"category": "Drinks", "revenue_cents": 1000}],
    }
    ticket = render_period_ticket(report, business_name="Shop")
    assert "2024-03-01 - 2024-03-07" in ticket
    assert "Drinks:" in ticket


def test_unknown_target_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        PrintDispatcher(target="fax", spool_dir=tmp_path, business_name="X")


def test_dispatch_returns_before_delivery(tmp_path):
    release = threading.Event()

    class GatedRender:
        def __call__(self, *args, **kwargs):
            release.wait(timeout=5)
            return render_z_ticket(*args, **kwargs)

    dispatcher = PrintDispatcher(target="spool", spool_dir=tmp_path, business_name="X")
    future = dispatcher._dispatch("z-report", GatedRender(), Z_REPORT)

    assert not future.done()
    release.set()
    path = future.result(timeout=5)
    assert path.exists()
    dispatcher.shutdown()


def test_dispatch_after_shutdown_fails_quietly(tmp_path):
    dispatcher = PrintDispatcher(target="spool", spool_dir=tmp_path, business_name="X")
    dispatcher.shutdown()
    future = dispatcher.dispatch_z_report(Z_REPORT)
    assert isinstance(future.exception(), PrintDispatchError)


def test_unwritable_spool_is_a_dispatch_error(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    dispatcher = PrintDispatcher(
        target="spool", spool_dir=blocker / "spool", business_name="X", executor=InlineExecutor(),
    )
    future = dispatcher.dispatch_z_report(Z_REPORT)
    assert isinstance(future.exception(), PrintDispatchError)
