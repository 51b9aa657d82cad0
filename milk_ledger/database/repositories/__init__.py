# database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from milk_ledger.database.repositories import (
        # Customers
        CustomersRepo, Customer,
        # Products & per-customer assignments
        ProductsRepo, Product,
        CustomerProductsRepo, CustomerProductAssignment, AssignedProduct,
        # Sales / payments
        SalesRepo, Sale, DaySheetRow, PaymentsRepo, Payment,
        # Expenses
        ExpensesRepo, Expense,
        # Ledger sums
        LedgerRepo,
    )
"""

# ---------------- Customers ----------------
from .customers_repo import CustomersRepo, Customer

# ---------------- Products -----------------
from .products_repo import ProductsRepo, Product
from .customer_products_repo import (
    CustomerProductsRepo,
    CustomerProductAssignment,
    AssignedProduct,
)

# ------------------ Sales ------------------
from .sales_repo import SalesRepo, Sale, DaySheetRow

# ----------------- Payments ----------------
from .payments_repo import PaymentsRepo, Payment

# ---------------- Expenses -----------------
from .expenses_repo import ExpensesRepo, Expense

# ----------------- Ledger ------------------
from .ledger_repo import LedgerRepo

__all__ = [
    "CustomersRepo",
    "Customer",
    "ProductsRepo",
    "Product",
    "CustomerProductsRepo",
    "CustomerProductAssignment",
    "AssignedProduct",
    "SalesRepo",
    "Sale",
    "DaySheetRow",
    "PaymentsRepo",
    "Payment",
    "ExpensesRepo",
    "Expense",
    "LedgerRepo",
]
