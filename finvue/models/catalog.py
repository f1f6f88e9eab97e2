"""
Static Category Catalog and Demo Seed Data

The category catalog is fixed: it is loaded once at import time and
never mutated. Lookups go through CATEGORY_INDEX (id -> Category)
instead of scanning the list.

The demo accounts and transactions are what a fresh demo-mode user sees
before saving anything.
"""

from decimal import Decimal
from typing import Iterable, Mapping

from finvue.models.finance import (
    BankAccount,
    Category,
    Transaction,
    TransactionType,
)


FALLBACK_CATEGORY_NAME = "Other"
FALLBACK_CATEGORY_COLOR = "#6b7280"
UNKNOWN_LABEL = "Unknown"


CATEGORIES: tuple[Category, ...] = (
    Category(id="cat1", name="Food & Dining", icon="utensils", color="#f97316", type=TransactionType.EXPENSE),
    Category(id="cat2", name="Transportation", icon="car", color="#3b82f6", type=TransactionType.EXPENSE),
    Category(id="cat3", name="Home & Living", icon="home", color="#6366f1", type=TransactionType.EXPENSE),
    Category(id="cat4", name="Entertainment", icon="gamepad", color="#a855f7", type=TransactionType.EXPENSE),
    Category(id="cat5", name="Healthcare", icon="heartbeat", color="#ef4444", type=TransactionType.EXPENSE),
    Category(id="cat6", name="Salary", icon="wallet", color="#10b981", type=TransactionType.INCOME),
    Category(id="cat7", name="Investment Income", icon="chart-line", color="#06b6d4", type=TransactionType.INCOME),
    Category(id="cat8", name="Other Income", icon="plus-circle", color="#64748b", type=TransactionType.INCOME),
)


def build_category_index(categories: Iterable[Category]) -> dict[str, Category]:
    """
    Build the id -> Category mapping.

    Raises ValueError on duplicate ids; a catalog with two entries
    for one id would make lookups ambiguous.
    """
    index: dict[str, Category] = {}
    for category in categories:
        if category.id in index:
            raise ValueError(f"Duplicate category id in catalog: {category.id}")
        index[category.id] = category
    return index


CATEGORY_INDEX: Mapping[str, Category] = build_category_index(CATEGORIES)


def categories_for(transaction_type: TransactionType) -> list[Category]:
    """Catalog entries usable for the given transaction type."""
    return [c for c in CATEGORIES if c.type == transaction_type]


def default_accounts() -> list[BankAccount]:
    """Demo accounts (fresh copies every call)."""
    return [
        BankAccount(id="acc1", name="Payroll Account", type="Savings", balance=Decimal("50000"), currency="TWD", color="#10b981"),
        BankAccount(id="acc2", name="Everyday Credit Card", type="Credit", balance=Decimal("-12500"), currency="TWD", color="#6366f1"),
        BankAccount(id="acc3", name="Brokerage Account", type="Investment", balance=Decimal("150000"), currency="TWD", color="#f59e0b"),
    ]


def default_transactions() -> list[Transaction]:
    """Demo transactions (fresh copies every call)."""
    return [
        Transaction(id="t1", account_id="acc1", category_id="cat6", amount=Decimal("60000"), type=TransactionType.INCOME, date="2023-11-05", note="November salary"),
        Transaction(id="t2", account_id="acc1", category_id="cat1", amount=Decimal("150"), type=TransactionType.EXPENSE, date="2023-11-06", note="Lunch"),
        Transaction(id="t3", account_id="acc2", category_id="cat2", amount=Decimal("2500"), type=TransactionType.EXPENSE, date="2023-11-07", note="Fuel"),
        Transaction(id="t4", account_id="acc1", category_id="cat3", amount=Decimal("12000"), type=TransactionType.EXPENSE, date="2023-11-01", note="Rent"),
    ]
