"""Command line entry point: `milk-ledger <command> [options]`."""
from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from .constants import APP_NAME
from .database import StorageClient
from .database.errors import DomainError
from .modules.backup_restore.snapshot import export_backup
from .modules.ledger.engine import LedgerEngine
from .modules.reporting.period_reports import PeriodReports
from .utils.helpers import fmt_money, today_str
from .utils.loggers import get_logger

_log = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="milk-ledger", description=APP_NAME)
    parser.add_argument("--db", help="Database file (default: configured DB_PATH)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create or migrate the database schema")

    p = sub.add_parser("dues", help="Outstanding dues per active customer")
    p.add_argument("--as-of", default=None, help="YYYY-MM-DD (default: today)")
    p.add_argument("--all", action="store_true", help="Include settled customers")

    p = sub.add_parser("report", help="Period report across active customers")
    p.add_argument("--start", required=True)
    p.add_argument("--end", required=True)

    p = sub.add_parser("statement", help="One customer's statement for a period")
    p.add_argument("--customer", type=int, required=True)
    p.add_argument("--start", required=True)
    p.add_argument("--end", required=True)

    p = sub.add_parser("backup", help="Export the current month as JSON")
    p.add_argument("--dest", required=True, help="Target directory")
    p.add_argument("--as-of", default=None)

    return parser


def _cmd_dues(client: StorageClient, args) -> None:
    as_of = args.as_of or today_str()
    engine = LedgerEngine(client)
    if args.all:
        dues = engine.total_due_for_all_active_customers(as_of)
    else:
        dues = engine.outstanding_dues(as_of)
    print(f"Dues as of {as_of}")
    for d in dues:
        print(f"  {d.customer_id:>5}  {d.name:<30} {fmt_money(d.total_due):>12}")
    print(f"  {'Total':<36} {fmt_money(sum(d.total_due for d in dues)):>12}")


def _cmd_report(client: StorageClient, args) -> None:
    report = PeriodReports(client).aggregate_period_summary(args.start, args.end)
    print(f"Period {report.start_date} .. {report.end_date}")
    print(f"  {'Customer':<30} {'Opening':>12} {'Sales':>12} {'Paid':>12} {'Closing':>12}")
    for s in report.customers:
        print(
            f"  {s.customer_name:<30} {fmt_money(s.opening_balance):>12} {fmt_money(s.period_sales):>12}"
            f" {fmt_money(s.period_payments):>12} {fmt_money(s.closing_balance):>12}"
        )
    print(f"Total sales:    {fmt_money(report.total_sales)}")
    print(f"Total payments: {fmt_money(report.total_payments)}")
    print(f"Total expenses: {fmt_money(report.total_expenses)}")
    print(f"Net profit:     {fmt_money(report.net_profit)}")


def _cmd_statement(client: StorageClient, args) -> None:
    st = PeriodReports(client).statement(args.customer, args.start, args.end)
    s = st.summary
    print(f"Statement for {s.customer_name} ({s.start_date} .. {s.end_date})")
    print(f"  Opening balance: {fmt_money(s.opening_balance)}")
    for e in st.entries:
        sign = "-" if e.kind == "payment" else " "
        print(f"  {e.entry_date}  {e.description:<30} {sign}{fmt_money(e.amount):>12}")
    print(f"  Period sales:    {fmt_money(s.period_sales)}")
    print(f"  Period payments: {fmt_money(s.period_payments)}")
    print(f"  Closing balance: {fmt_money(s.closing_balance)}")


def _cmd_backup(client: StorageClient, args) -> None:
    path = export_backup(client, args.dest, args.as_of)
    print(f"Backup written to {path}")


_COMMANDS = {
    "dues": _cmd_dues,
    "report": _cmd_report,
    "statement": _cmd_statement,
    "backup": _cmd_backup,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        with StorageClient(args.db) as client:
            if args.command == "init-db":
                print(f"Database ready at {client.db_path}")
                return 0
            _COMMANDS[args.command](client, args)
    except DomainError as e:
        _log.error("%s failed: %s", args.command, e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
