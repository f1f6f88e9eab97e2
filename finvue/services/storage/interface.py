"""
Abstract Storage Interface

DESIGN DECISION: Business logic only talks to these interfaces.
This allows us to:
1. Run in demo mode on local JSON files with zero setup
2. Keep real data in Google Sheets
3. Use in-memory fakes for testing

Every collection is scoped by a user identifier, the same way a
document store query filters on the owner field.
"""

from abc import ABC, abstractmethod

from finvue.models.audit import AuditEvent
from finvue.models.finance import BankAccount, Transaction


class FinanceStorageInterface(ABC):
    """
    Abstract interface for a user's accounts and transactions.

    Any storage implementation (local files, Google Sheets, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def get_accounts(self, user_id: str) -> list[BankAccount]:
        """
        List the user's accounts.

        Raises:
            StorageError: If the backend can't be read
        """
        pass

    @abstractmethod
    async def save_account(self, user_id: str, account: BankAccount) -> BankAccount:
        """
        Create or update an account (matched by id).

        Returns:
            The saved account
        """
        pass

    @abstractmethod
    async def delete_account(self, user_id: str, account_id: str) -> bool:
        """
        Delete an account.

        Transactions referencing it are left alone; they show up
        with an "Unknown" account afterwards.

        Returns:
            True if an account was deleted, False if none matched
        """
        pass

    @abstractmethod
    async def get_transactions(self, user_id: str) -> list[Transaction]:
        """List the user's transactions, in storage order."""
        pass

    @abstractmethod
    async def add_transaction(self, user_id: str, transaction: Transaction) -> Transaction:
        """
        Record a new transaction.

        Raises:
            DuplicateError: If a transaction with the same id exists
        """
        pass

    @abstractmethod
    async def delete_transaction(self, user_id: str, transaction_id: str) -> bool:
        """
        Delete a transaction.

        Returns:
            True if a transaction was deleted, False if none matched
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Returns True if persisted."""
        pass

    @abstractmethod
    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
