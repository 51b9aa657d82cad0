"""
modules/backup_restore/snapshot.py

Purpose
-------
Point-in-time export of the ledger: every customer and product plus the
current month's sales, payments and expenses, read inside one read
transaction so no half-applied write shows up in the file.

Public interface
----------------
- take_snapshot(client, as_of=None) -> BackupSnapshot
- export_backup(client, dest_dir, as_of=None) -> Path
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import List, Optional

from ... import __version__
from ...constants import BACKUP_FILE_PREFIX
from ...database import StorageClient, StorageError
from ...database.repositories import (
    Customer,
    CustomersRepo,
    Expense,
    ExpensesRepo,
    Payment,
    PaymentsRepo,
    Product,
    ProductsRepo,
    Sale,
    SalesRepo,
)
from ...utils.helpers import month_start, parse_iso, today_str
from ...utils.validators import require_iso_date
from .logging_utils import get_logger, log_event


@dataclass
class BackupSnapshot:
    as_of: str
    period_start: str
    customers: List[Customer] = field(default_factory=list)
    products: List[Product] = field(default_factory=list)
    sales: List[Sale] = field(default_factory=list)
    payments: List[Payment] = field(default_factory=list)
    expenses: List[Expense] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["app_version"] = __version__
        return data


def take_snapshot(client: StorageClient, as_of: Optional[str] = None) -> BackupSnapshot:
    """Month window is the 1st of as_of's month through as_of, inclusive."""
    day = require_iso_date(as_of or today_str(), "As-of date")
    start = month_start(day)
    conn = client.conn
    with client.snapshot():
        return BackupSnapshot(
            as_of=day,
            period_start=start,
            customers=CustomersRepo(conn).list_customers(active_only=False),
            products=ProductsRepo(conn).list_products(),
            sales=SalesRepo(conn).list_between(start, day),
            payments=PaymentsRepo(conn).list_between(start, day),
            expenses=ExpensesRepo(conn).list_for_period(start, day),
        )


def backup_file_name(as_of: str) -> str:
    return f"{BACKUP_FILE_PREFIX}_{parse_iso(as_of).strftime('%Y%m%d')}.json"


def export_backup(
    client: StorageClient,
    dest_dir,
    as_of: Optional[str] = None,
    log_file: Optional[str] = None,
) -> Path:
    """
    Write the snapshot as pretty-printed JSON to
    `<dest_dir>/milkwala_backup_<YYYYMMDD>.json` and return the path.
    The file is written next to its target and then renamed into place.
    """
    logger = get_logger(log_file)
    dest = Path(dest_dir)

    snap = take_snapshot(client, as_of)
    log_event(logger, "backup", "snapshot", "Snapshot read", {
        "as_of": snap.as_of,
        "customers": len(snap.customers),
        "products": len(snap.products),
        "sales": len(snap.sales),
        "payments": len(snap.payments),
        "expenses": len(snap.expenses),
    })

    target = dest / backup_file_name(snap.as_of)
    tmp = target.with_suffix(target.suffix + ".part")
    try:
        dest.mkdir(parents=True, exist_ok=True)
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(snap.to_dict(), fh, indent=2, ensure_ascii=False)
        os.replace(tmp, target)
    except OSError as e:
        log_event(logger, "backup", "write", "Backup write failed", {"path": str(target), "error": str(e)}, level=logging.ERROR)
        tmp.unlink(missing_ok=True)
        raise StorageError(f"Could not write backup to {target}: {e}") from e

    log_event(logger, "backup", "done", "Backup written", {
        "path": str(target),
        "size": target.stat().st_size,
    })
    return target
