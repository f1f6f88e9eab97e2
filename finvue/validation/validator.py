"""
Ledger Entry Validation

Checks accounts and transactions when the user enters them, before they
reach storage. The dashboard engine assumes clean data and only skips
what it can't parse; catching bad input is this module's job.

Issues are split by severity:
- error: the record can't be saved (unparsable date, zero amount,
  unknown category, category of the wrong type)
- warning: saved anyway, but worth showing (unknown account, date
  far in the future)

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user to correct.
"""

import re
from datetime import date, timedelta
from typing import Mapping, Optional, Sequence

from finvue.config import get_settings
from finvue.models.catalog import CATEGORY_INDEX
from finvue.models.finance import (
    BankAccount,
    Category,
    Transaction,
    ValidationIssue,
    ValidationResult,
)


CURRENCY_CODE_PATTERN = re.compile(r"^[A-Z]{3}$")


class LedgerValidator:
    """Validates accounts and transactions before they are saved."""

    def __init__(
        self,
        categories: Mapping[str, Category] = CATEGORY_INDEX,
        future_date_tolerance_days: Optional[int] = None,
    ):
        """
        Initialize validator.

        Args:
            categories: Catalog index used to resolve category ids
            future_date_tolerance_days: Overrides the configured tolerance
        """
        self._categories = categories
        if future_date_tolerance_days is None:
            future_date_tolerance_days = get_settings().app.future_date_tolerance_days
        self._future_tolerance = timedelta(days=future_date_tolerance_days)

    def validate_transaction(
        self,
        transaction: Transaction,
        accounts: Sequence[BankAccount] = (),
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Validate a transaction about to be recorded.

        Args:
            transaction: The new transaction
            accounts: The user's current accounts, for reference checks
            today: Reference date for the future-date check
        """
        issues = []
        today = today or date.today()

        # Date must be a real calendar date in YYYY-MM-DD form
        try:
            tx_date = date.fromisoformat(transaction.date)
        except ValueError:
            tx_date = None
            issues.append(ValidationIssue(
                field="date",
                issue_type="invalid_format",
                message=f"'{transaction.date}' is not a valid date",
                severity="error",
                suggested_fix="Use the YYYY-MM-DD format, e.g. 2024-01-15",
            ))

        if tx_date and tx_date > today + self._future_tolerance:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date {tx_date.isoformat()} is in the future",
                severity="warning",
                suggested_fix="Check the year and month",
            ))

        if transaction.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Enter the amount without a sign; pick income or expense instead",
            ))

        category = self._categories.get(transaction.category_id)
        if category is None:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="unknown_reference",
                message=f"Unknown category: {transaction.category_id}",
                severity="error",
            ))
        elif category.type != transaction.type:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="type_mismatch",
                message=(
                    f"Category '{category.name}' is for {category.type.value.lower()}, "
                    f"not {transaction.type.value.lower()}"
                ),
                severity="error",
                suggested_fix="Pick a category matching the transaction type",
            ))

        if not any(account.id == transaction.account_id for account in accounts):
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="unknown_reference",
                message=f"Account {transaction.account_id} does not exist",
                severity="warning",
            ))

        return ValidationResult(
            entity_type="transaction",
            entity_id=transaction.id,
            issues=issues,
        )

    def validate_account(self, account: BankAccount) -> ValidationResult:
        """Validate an account about to be created or edited."""
        issues = []

        if not account.name:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Account name is required",
                severity="error",
            ))

        if not CURRENCY_CODE_PATTERN.match(account.currency):
            issues.append(ValidationIssue(
                field="currency",
                issue_type="invalid_format",
                message=f"'{account.currency}' is not a currency code",
                severity="error",
                suggested_fix="Use a three-letter code such as TWD or USD",
            ))

        return ValidationResult(
            entity_type="account",
            entity_id=account.id,
            issues=issues,
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """One line per issue, errors first, for display next to the form."""
        if not result.issues:
            return "All good."

        ordered = sorted(result.issues, key=lambda i: i.severity != "error")
        lines = []
        for issue in ordered:
            prefix = "Error" if issue.severity == "error" else "Note"
            line = f"{prefix}: {issue.message}"
            if issue.suggested_fix:
                line += f" ({issue.suggested_fix})"
            lines.append(line)
        return "\n".join(lines)
