# Overview: Best-effort ticket printing for Z-cut and period reports.

"""
Printing collaborator.

WHY: Operators expect a paper ticket after a Z-cut, but the ticket is a
presentation of data that is already committed. A missing printer, a full
disk or a slow device must never undo or block the close.

DESIGN:
- dispatch_*() submit work to a background executor and return a Future
  immediately; they never raise
- failures are logged as warnings by a done-callback
- targets: "spool" writes an HTML ticket into a directory that a print
  daemon (or a human) picks up; "none" means no printer is connected
"""

from __future__ import annotations

import html
import logging
import uuid
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from pathlib import Path

from flask import current_app

from ..time_utils import utcnow
from ..validation import format_cents


logger = logging.getLogger(__name__)

PRINT_TARGETS = ("spool", "none")


class PrintDispatchError(Exception):
    """Ticket could not be delivered to the print target."""
    pass


# =============================================================================
# RENDERING
# =============================================================================

def _ticket_document(title: str, body_lines: list[str], *, width_mm: int) -> str:
    body_content = "\n".join(body_lines)
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{html.escape(title)}</title>
<style>
  body {{
    width: {width_mm}mm;
    margin: 0 auto;
    font-family: 'Courier New', monospace;
    font-size: 12px;
    padding: 5px;
  }}
  .header {{ text-align: center; margin-bottom: 10px; }}
  .title {{ font-size: 16px; font-weight: bold; text-transform: uppercase; }}
  .line {{ border-bottom: 1px dashed #000; margin: 5px 0; }}
  .row {{ display: flex; justify-content: space-between; }}
  .bold {{ font-weight: bold; }}
  .footer {{ text-align: center; margin-top: 10px; font-size: 10px; }}
</style>
</head>
<body>
{body_content}
</body>
</html>"""


def _row(label: str, cents: int, *, bold: bool = False) -> str:
    css = "row bold" if bold else "row"
    return f"<div class='{css}'><span>{html.escape(label)}</span><span>{format_cents(cents)}</span></div>"


def render_z_ticket(z_report: dict, *, business_name: str, width_mm: int = 80) -> str:
    """Z-cut ticket: drawer math first, then the sales breakdown by tender."""
    lines = [
        "<div class='header'>",
        "<div class='title'>Cash count (Z)</div>",
        f"<div>{html.escape(business_name)}</div>",
        f"<div>{html.escape(z_report.get('timestamp') or '')}</div>",
        "</div>",
        "<div class='line'></div>",
        _row("Opening fund:", z_report["opening_fund_cents"]),
        _row("+ Gross sales:", z_report["gross_sales_cents"]),
        _row("- Expenses (cash):", z_report["expenses_cents"]),
        _row("- Withdrawals (cash):", z_report["withdrawals_cents"]),
        "<div class='line'></div>",
        _row("Expected in drawer:", z_report["expected_cash_cents"], bold=True),
        _row("Declared:", z_report["declared_cash_cents"], bold=True),
        _row("Difference:", z_report["difference_cents"], bold=True),
        "<div class='line'></div>",
        "<div class='bold'>SALES BY TENDER</div>",
        _row("Cash:", z_report["cash_sales_cents"]),
        _row("Card:", z_report["card_sales_cents"]),
        _row("Transfer:", z_report["transfer_sales_cents"]),
        _row("Credit:", z_report["credit_sales_cents"]),
        "<div class='line'></div>",
        "<div class='footer'>--- END OF REPORT ---</div>",
    ]
    return _ticket_document("Z report", lines, width_mm=width_mm)


def render_period_ticket(report: dict, *, business_name: str, width_mm: int = 80) -> str:
    summary = report["summary"]
    period = report["range"]
    lines = [
        "<div class='header'>",
        "<div class='title'>Financial summary</div>",
        f"<div>{html.escape(business_name)}</div>",
        f"<div>{html.escape(period['start'])} - {html.escape(period['end'])}</div>",
        "</div>",
        "<div class='line'></div>",
        _row("Total sales:", summary["total_sales_cents"], bold=True),
        _row("Own sales:", summary["own_sales_cents"]),
        _row("Third-party sales:", summary["third_party_sales_cents"]),
        _row("Operational expenses:", summary["operational_expenses_cents"]),
        _row("Total money out:", summary["total_money_out_cents"]),
        _row("Net estimate:", summary["net_estimate_cents"], bold=True),
        f"<div class='row'><span>Tickets:</span><span>{summary['transaction_count']}</span></div>",
        _row("Average ticket:", summary["avg_ticket_cents"]),
        "<div class='line'></div>",
    ]
    for entry in report.get("sales_by_category", []):
        lines.append(_row(f"{entry['category']}:", entry["revenue_cents"]))
    lines.append("<div class='footer'>--- END OF REPORT ---</div>")
    return _ticket_document("Financial summary", lines, width_mm=width_mm)


# =============================================================================
# DISPATCH
# =============================================================================

class PrintDispatcher:
    """
    Fire-and-forget delivery of rendered tickets.

    Args:
        target: "spool" or "none"
        spool_dir: Directory receiving HTML tickets for the "spool" target
        executor: Defaults to a single background worker thread so tickets
            come out in the order they were dispatched
    """

    def __init__(
        self,
        *,
        target: str,
        spool_dir: str | Path,
        business_name: str,
        width_mm: int = 80,
        executor: Executor | None = None,
    ):
        if target not in PRINT_TARGETS:
            raise ValueError(f"print target must be one of: {', '.join(PRINT_TARGETS)}")
        self.target = target
        self.spool_dir = Path(spool_dir)
        self.business_name = business_name
        self.width_mm = width_mm
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="cashbook-print")

    def dispatch_z_report(self, z_report: dict) -> Future:
        return self._dispatch("z-report", render_z_ticket, z_report)

    def dispatch_period_report(self, report: dict) -> Future:
        return self._dispatch("period-report", render_period_ticket, report)

    def _dispatch(self, kind: str, render, payload: dict) -> Future:
        try:
            future = self._executor.submit(self._deliver, kind, render, payload)
        except RuntimeError as exc:
            # Executor already shut down
            logger.warning("Print dispatch for %s not scheduled: %s", kind, exc)
            future = Future()
            future.set_exception(PrintDispatchError(str(exc)))
            return future

        future.add_done_callback(lambda done: self._log_outcome(kind, done))
        return future

    def _deliver(self, kind: str, render, payload: dict) -> Path:
        if self.target == "none":
            raise PrintDispatchError("No printer connected")

        try:
            document = render(payload, business_name=self.business_name, width_mm=self.width_mm)
        except (KeyError, TypeError) as exc:
            raise PrintDispatchError(f"Malformed {kind} payload: {exc}") from exc

        stamp = utcnow().strftime("%Y%m%dT%H%M%S")
        path = self.spool_dir / f"{kind}-{stamp}-{uuid.uuid4().hex[:8]}.html"
        try:
            self.spool_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(document, encoding="utf-8")
        except OSError as exc:
            raise PrintDispatchError(f"Could not write ticket to {path}: {exc}") from exc
        return path

    def _log_outcome(self, kind: str, future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.warning("Print dispatch for %s failed (result kept): %s", kind, exc)
        else:
            logger.info("Printed %s to %s", kind, future.result())

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


def init_printing(app) -> PrintDispatcher:
    dispatcher = PrintDispatcher(
        target=app.config["CASHBOOK_PRINT_TARGET"],
        spool_dir=app.config["CASHBOOK_PRINT_SPOOL_DIR"],
        business_name=app.config["CASHBOOK_BUSINESS_NAME"],
        width_mm=app.config["CASHBOOK_TICKET_WIDTH_MM"],
    )
    app.extensions["cashbook_printer"] = dispatcher
    return dispatcher


def get_dispatcher() -> PrintDispatcher:
    return current_app.extensions["cashbook_printer"]
