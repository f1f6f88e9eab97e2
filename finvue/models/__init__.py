"""
Data Models Package

Pydantic models for everything FinVue stores, computes, or shows.
"""

from finvue.models.finance import (
    BankAccount,
    Category,
    CategorySlice,
    DashboardData,
    DashboardStats,
    FinancialAdvice,
    Transaction,
    TransactionType,
    TrendPoint,
    ValidationIssue,
    ValidationResult,
)
from finvue.models.catalog import (
    CATEGORIES,
    CATEGORY_INDEX,
    build_category_index,
    default_accounts,
    default_transactions,
)
from finvue.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "BankAccount",
    "Category",
    "CategorySlice",
    "DashboardData",
    "DashboardStats",
    "FinancialAdvice",
    "Transaction",
    "TransactionType",
    "TrendPoint",
    "ValidationIssue",
    "ValidationResult",
    # Catalog
    "CATEGORIES",
    "CATEGORY_INDEX",
    "build_category_index",
    "default_accounts",
    "default_transactions",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
