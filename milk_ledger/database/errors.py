from __future__ import annotations


class DomainError(Exception):
    """Domain-level error the caller can surface directly (toast/snackbar/CLI)."""
    pass


class ValidationError(DomainError):
    """Rejected input (negative quantity/price, missing field); nothing was written."""
    pass


class NotFoundError(DomainError):
    """Referenced customer/product/sale/payment does not exist."""
    pass


class StorageError(DomainError):
    """
    Constraint violation or I/O failure reported by SQLite.
    The original `sqlite3.Error` is kept as `__cause__`.
    """
    pass
