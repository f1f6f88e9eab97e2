"""
Main Orchestrator for FinVue

Ties the components together and defines the end-to-end flows for:
1. Dashboard (load ledger -> aggregate against the clock)
2. Ledger edits (validate -> save -> audit)
3. AI advice (load ledger -> ask the advisor -> audit)

DESIGN DECISION: The orchestrator is the only place that reads the clock.
It passes "now" down explicitly, so the aggregation engine stays pure
and tests can pin any reference date.
"""

from datetime import datetime
from typing import Callable, Mapping, NamedTuple, Optional
from uuid import UUID

import structlog

from finvue.agents import FinancialAdvisorAgent
from finvue.audit import AuditLogger, create_correlation_id
from finvue.config import Settings, get_settings
from finvue.dashboard import DEFAULT_TREND_MONTHS, compute_dashboard, transaction_month
from finvue.models.catalog import CATEGORY_INDEX, UNKNOWN_LABEL
from finvue.models.finance import (
    BankAccount,
    Category,
    DashboardData,
    FinancialAdvice,
    Transaction,
    ValidationResult,
)
from finvue.services.storage import (
    FinanceStorageInterface,
    StorageError,
    create_storage,
)
from finvue.validation import LedgerValidator


logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


class LedgerValidationError(Exception):
    """A ledger edit was rejected by validation."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(
            issue.message for issue in result.issues if issue.severity == "error"
        )
        super().__init__(f"Invalid {result.entity_type}: {messages}")


class DashboardFlow:
    """Loads a user's ledger and computes the dashboard."""

    def __init__(
        self,
        storage: FinanceStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        clock: Clock = datetime.now,
        categories: Mapping[str, Category] = CATEGORY_INDEX,
        trend_months: int = DEFAULT_TREND_MONTHS,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._clock = clock
        self._categories = categories
        self._trend_months = trend_months

    async def load_ledger(
        self,
        user_id: str,
    ) -> tuple[list[BankAccount], list[Transaction]]:
        """
        Read a consistent snapshot of accounts and transactions.

        Storage failures are audited and re-raised.
        """
        try:
            accounts = await self._storage.get_accounts(user_id)
            transactions = await self._storage.get_transactions(user_id)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_error(
                    operation="load_ledger",
                    error_message=str(e),
                    user_id=user_id,
                )
            raise
        return accounts, transactions

    async def load_dashboard(
        self,
        user_id: str,
        now: Optional[datetime] = None,
    ) -> DashboardData:
        """
        Compute the dashboard for `user_id`.

        Args:
            now: Reference time; the injected clock is used when omitted
        """
        now = now or self._clock()
        accounts, transactions = await self.load_ledger(user_id)

        dashboard = compute_dashboard(
            accounts,
            transactions,
            now,
            categories=self._categories,
            months=self._trend_months,
        )

        if self._audit_logger:
            await self._audit_logger.log_dashboard_loaded(
                user_id=user_id,
                account_count=len(accounts),
                transaction_count=len(transactions),
                reference_month=f"{now.year}-{now.month:02d}",
            )

        return dashboard


class LedgerFlow:
    """
    Validated edits to accounts and transactions.

    Flow for every edit:
    1. Validate (errors block, warnings are returned)
    2. Persist
    3. Audit
    """

    def __init__(
        self,
        storage: FinanceStorageInterface,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Clock = datetime.now,
        categories: Mapping[str, Category] = CATEGORY_INDEX,
    ):
        self._storage = storage
        self._validator = validator or LedgerValidator(categories=categories)
        self._audit_logger = audit_logger
        self._clock = clock
        self._categories = categories

    @property
    def validator(self) -> LedgerValidator:
        return self._validator

    async def _reject(
        self,
        user_id: str,
        result: ValidationResult,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            issues = [
                {"field": i.field, "type": i.issue_type, "message": i.message}
                for i in result.issues
            ]
            await self._audit_logger.log_validation_failed(
                user_id=user_id,
                entity_type=result.entity_type,
                entity_id=result.entity_id,
                issues=issues,
                correlation_id=correlation_id,
            )
        raise LedgerValidationError(result)

    async def add_transaction(
        self,
        user_id: str,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Transaction, ValidationResult]:
        """
        Validate and record a transaction.

        Returns:
            (saved_transaction, validation_result) - the result may carry warnings

        Raises:
            LedgerValidationError: If validation found errors
        """
        correlation_id = correlation_id or create_correlation_id()

        accounts = await self._storage.get_accounts(user_id)
        today = self._clock().date()
        result = self._validator.validate_transaction(transaction, accounts, today=today)
        if result.has_errors:
            await self._reject(user_id, result, correlation_id)

        saved = await self._storage.add_transaction(user_id, transaction)

        if self._audit_logger:
            await self._audit_logger.log_transaction_added(
                user_id=user_id,
                transaction_id=saved.id,
                transaction_type=saved.type.value,
                amount=str(saved.amount),
                correlation_id=correlation_id,
            )

        return saved, result

    async def delete_transaction(
        self,
        user_id: str,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete a transaction. Returns False if it didn't exist."""
        deleted = await self._storage.delete_transaction(user_id, transaction_id)

        if deleted and self._audit_logger:
            await self._audit_logger.log_transaction_deleted(
                user_id=user_id,
                transaction_id=transaction_id,
                correlation_id=correlation_id or create_correlation_id(),
            )

        return deleted

    async def save_account(
        self,
        user_id: str,
        account: BankAccount,
        correlation_id: Optional[UUID] = None,
    ) -> BankAccount:
        """
        Validate and create/update an account.

        Raises:
            LedgerValidationError: If validation found errors
        """
        correlation_id = correlation_id or create_correlation_id()

        result = self._validator.validate_account(account)
        if result.has_errors:
            await self._reject(user_id, result, correlation_id)

        saved = await self._storage.save_account(user_id, account)

        if self._audit_logger:
            await self._audit_logger.log_account_saved(
                user_id=user_id,
                account_id=saved.id,
                name=saved.name,
                correlation_id=correlation_id,
            )

        return saved

    async def delete_account(
        self,
        user_id: str,
        account_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete an account. Returns False if it didn't exist.

        Transactions that reference it are kept.
        """
        deleted = await self._storage.delete_account(user_id, account_id)

        if deleted and self._audit_logger:
            await self._audit_logger.log_account_deleted(
                user_id=user_id,
                account_id=account_id,
                correlation_id=correlation_id or create_correlation_id(),
            )

        return deleted

    async def list_transactions(self, user_id: str) -> list[dict]:
        """
        Transactions as display rows, newest first.

        Account and category names are resolved; dangling references
        read "Unknown". Rows with unparsable dates sort last.
        """
        accounts = await self._storage.get_accounts(user_id)
        transactions = await self._storage.get_transactions(user_id)
        account_names = {account.id: account.name for account in accounts}

        def sort_key(tx: Transaction) -> tuple[bool, str]:
            return transaction_month(tx.date) is not None, tx.date

        rows = []
        for tx in sorted(transactions, key=sort_key, reverse=True):
            category = self._categories.get(tx.category_id)
            rows.append({
                "id": tx.id,
                "date": tx.date,
                "type": tx.type.value,
                "amount": tx.amount,
                "signed_amount": tx.signed_amount,
                "category": category.name if category else UNKNOWN_LABEL,
                "account": account_names.get(tx.account_id, UNKNOWN_LABEL),
                "note": tx.note,
            })
        return rows


class AdvisorFlow:
    """
    Gets AI advice for a user's ledger.

    The advisor is optional: without Gemini configuration the flow
    answers with a "not configured" notice instead of failing.
    """

    def __init__(
        self,
        storage: FinanceStorageInterface,
        agent: Optional[FinancialAdvisorAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
        categories: Mapping[str, Category] = CATEGORY_INDEX,
    ):
        self._storage = storage
        self._agent = agent
        self._audit_logger = audit_logger
        self._categories = categories

    @property
    def is_configured(self) -> bool:
        return self._agent is not None

    async def request_advice(
        self,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> FinancialAdvice:
        """Ask the advisor about the user's current ledger."""
        correlation_id = correlation_id or create_correlation_id()

        if not self._agent:
            return FinancialAdvice(
                analysis=(
                    "The AI advisor isn't configured yet. "
                    "Set GEMINI_API_KEY to enable it."
                ),
                recommendations=[],
                score=0,
                is_fallback=True,
            )

        accounts = await self._storage.get_accounts(user_id)
        transactions = await self._storage.get_transactions(user_id)

        advice = await self._agent.get_financial_advice(
            transactions, self._categories, accounts
        )

        if self._audit_logger:
            await self._audit_logger.log_advice(
                user_id=user_id,
                score=advice.score,
                is_fallback=advice.is_fallback,
                transaction_count=len(transactions),
                correlation_id=correlation_id,
            )

        return advice


class AppComponents(NamedTuple):
    dashboard_flow: DashboardFlow
    ledger_flow: LedgerFlow
    advisor_flow: AdvisorFlow
    is_demo: bool


def create_app_components(
    settings: Optional[Settings] = None,
    clock: Clock = datetime.now,
) -> AppComponents:
    """
    Factory function to create all application components.

    Storage falls back to local JSON files when the remote store isn't
    usable; the advisor is left out when Gemini isn't configured.
    """
    settings = settings or get_settings()
    app_settings = settings.app

    storage, audit_storage, is_demo = create_storage(settings)
    audit_logger = AuditLogger(audit_storage)

    try:
        agent = FinancialAdvisorAgent(settings=settings.gemini)
    except Exception as e:
        logger.warning("advisor_not_configured", error=str(e))
        agent = None

    validator = LedgerValidator(
        future_date_tolerance_days=app_settings.future_date_tolerance_days,
    )

    return AppComponents(
        dashboard_flow=DashboardFlow(
            storage,
            audit_logger=audit_logger,
            clock=clock,
            trend_months=app_settings.trend_months,
        ),
        ledger_flow=LedgerFlow(
            storage,
            validator=validator,
            audit_logger=audit_logger,
            clock=clock,
        ),
        advisor_flow=AdvisorFlow(storage, agent=agent, audit_logger=audit_logger),
        is_demo=is_demo,
    )
