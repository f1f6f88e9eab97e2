"""
Core Data Models for FinVue

These models define the schemas for everything the app stores or shows:
1. What the user records (accounts, transactions)
2. The static category catalog
3. What the dashboard renders (stats, trend points, category slices)
4. What the AI advisor returns

DESIGN DECISION: Transaction amounts are unsigned magnitudes.
Whether money came in or went out is carried by the type flag only,
never by the sign of the number.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


def new_id() -> str:
    """Generate a record identifier."""
    return uuid4().hex


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


# =============================================================================
# CATALOG
# =============================================================================

class Category(BaseModel):
    """
    A fixed catalog entry.

    Categories are not user-editable; the full list lives in
    finvue.models.catalog and is loaded once at import time.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    icon: str = Field(default="", description="Icon name for the UI")
    color: str = Field(default="#94a3b8", description="Display color")
    type: TransactionType


# =============================================================================
# USER DATA
# =============================================================================

class BankAccount(BaseModel):
    """
    A bank account, card, or cash pocket.

    Balance may be negative (credit cards). No currency conversion is
    ever applied: balances in different currencies are summed as-is.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_id,
        description="Unique account ID"
    )
    name: str = Field(
        ...,
        max_length=100,
        description="Display name"
    )
    type: str = Field(
        default="",
        max_length=50,
        description="Free-text label (savings, credit, investment, cash...)"
    )
    balance: Decimal = Field(
        default=Decimal("0"),
        description="Signed balance"
    )
    currency: str = Field(
        default="TWD",
        max_length=10,
        description="Currency code"
    )
    color: str = Field(
        default="#10b981",
        description="Display color"
    )


class Transaction(BaseModel):
    """
    A single income or expense record.

    The date is kept as the raw YYYY-MM-DD string. It is checked when the
    user enters it (see finvue.validation), not when a record is loaded,
    so an old malformed record never prevents the rest from loading.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_id,
        description="Unique transaction ID"
    )
    account_id: str = Field(
        ...,
        description="Account this transaction belongs to (may dangle)"
    )
    category_id: str = Field(
        ...,
        description="Catalog category ID"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Unsigned magnitude"
    )
    type: TransactionType
    date: str = Field(
        default="",
        description="Calendar date, YYYY-MM-DD; empty when unknown"
    )
    note: str = Field(
        default="",
        max_length=500,
        description="Free-text note"
    )

    @field_validator('date', mode='before')
    @classmethod
    def missing_date_as_empty(cls, v: object) -> object:
        """A null date loads as an empty (unparsable) date."""
        return "" if v is None else v

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the sign implied by the type flag."""
        if self.type == TransactionType.INCOME:
            return self.amount
        return -self.amount


# =============================================================================
# DASHBOARD OUTPUT
# =============================================================================

class DashboardStats(BaseModel):
    """Headline numbers for the dashboard."""

    total_balance: Decimal = Field(
        ...,
        description="Raw sum of all account balances"
    )
    monthly_income: Decimal = Field(
        ...,
        description="Income recorded in the current month"
    )
    monthly_expenses: Decimal = Field(
        ...,
        description="Expenses recorded in the current month"
    )
    savings_rate: float = Field(
        ...,
        description="Percent of this month's income not spent; 0 without income"
    )


class TrendPoint(BaseModel):
    """Income and expense totals for one calendar month."""

    year: int
    month: int = Field(ge=1, le=12)
    label: str = Field(
        ...,
        description="Month number as text, for chart axes"
    )
    income: Decimal
    expense: Decimal


class CategorySlice(BaseModel):
    """Total spent in one category."""

    category_id: str
    name: str
    value: Decimal
    color: str


class DashboardData(BaseModel):
    """Everything the dashboard page renders."""

    generated_at: datetime
    stats: DashboardStats
    trend: list[TrendPoint] = Field(default_factory=list)
    breakdown: list[CategorySlice] = Field(default_factory=list)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'unknown_reference')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """Result of validating one account or transaction before it is saved."""

    entity_type: str = Field(
        ...,
        description="'account' or 'transaction'"
    )
    entity_id: str
    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def is_valid(self) -> bool:
        """Warnings don't block saving; errors do."""
        return not self.has_errors


# =============================================================================
# AI ADVICE
# =============================================================================

class FinancialAdvice(BaseModel):
    """
    Advice returned by the AI advisor.

    is_fallback marks the canned answer shown when the model call failed.
    """

    analysis: str
    recommendations: list[str] = Field(default_factory=list)
    score: float = Field(
        ...,
        ge=0,
        le=100,
        description="Overall financial health score (1-100, 0 when unavailable)"
    )
    is_fallback: bool = False
