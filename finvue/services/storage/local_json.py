"""
Local JSON Storage (demo mode)

DESIGN DECISION: Demo mode keeps everything in plain JSON files so the
app runs with no accounts, keys or network:

    <data_dir>/<user_id>/accounts.json
    <data_dir>/<user_id>/transactions.json
    <data_dir>/audit.jsonl

A user with no saved files sees the demo seed data. The first write
saves the seed data along with the change, so it becomes the user's own.

TRADEOFFS:
- Whole-file rewrites on every change (fine for a personal ledger)
- No locking; one app process per data directory
"""

import re
from pathlib import Path
from typing import Callable, TypeVar

import structlog
from pydantic import TypeAdapter, ValidationError

from finvue.models.audit import AuditEvent
from finvue.models.catalog import default_accounts, default_transactions
from finvue.models.finance import BankAccount, Transaction
from finvue.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    FinanceStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)

T = TypeVar("T")

_accounts_adapter = TypeAdapter(list[BankAccount])
_transactions_adapter = TypeAdapter(list[Transaction])

_UNSAFE_PATH_CHARS = re.compile(r"[^A-Za-z0-9_.-]")

ACCOUNTS_FILE = "accounts.json"
TRANSACTIONS_FILE = "transactions.json"
AUDIT_FILE = "audit.jsonl"


def _user_dir_name(user_id: str) -> str:
    """Map a user id to a directory name that can't escape the data dir."""
    name = _UNSAFE_PATH_CHARS.sub("_", user_id)
    if not name.strip("."):
        raise StorageError(f"Invalid user id: {user_id!r}")
    return name


class LocalJSONStorage(FinanceStorageInterface):
    """File-backed storage for demo mode."""

    def __init__(
        self,
        data_dir: Path,
        seed_accounts: Callable[[], list[BankAccount]] = default_accounts,
        seed_transactions: Callable[[], list[Transaction]] = default_transactions,
    ):
        """
        Args:
            data_dir: Root directory for all users' files
            seed_accounts: Accounts shown before the user saves anything
            seed_transactions: Transactions shown before the user saves anything
        """
        self._data_dir = Path(data_dir)
        self._seed_accounts = seed_accounts
        self._seed_transactions = seed_transactions

    def _path(self, user_id: str, filename: str) -> Path:
        return self._data_dir / _user_dir_name(user_id) / filename

    def _load(self, path: Path, adapter: TypeAdapter, seed: Callable[[], list[T]]) -> list[T]:
        if not path.exists():
            return seed()
        try:
            return adapter.validate_json(path.read_bytes())
        except (OSError, ValidationError) as e:
            raise StorageError(f"Failed to read {path}: {e}")

    def _write(self, path: Path, adapter: TypeAdapter, items: list) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(path.suffix + ".tmp")
            tmp_path.write_bytes(adapter.dump_json(items, indent=2))
            tmp_path.replace(path)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}")

    async def get_accounts(self, user_id: str) -> list[BankAccount]:
        return self._load(
            self._path(user_id, ACCOUNTS_FILE), _accounts_adapter, self._seed_accounts
        )

    async def save_account(self, user_id: str, account: BankAccount) -> BankAccount:
        accounts = await self.get_accounts(user_id)
        for idx, existing in enumerate(accounts):
            if existing.id == account.id:
                accounts[idx] = account
                break
        else:
            accounts.append(account)

        self._write(self._path(user_id, ACCOUNTS_FILE), _accounts_adapter, accounts)
        logger.debug("account_saved", user_id=user_id, account_id=account.id)
        return account

    async def delete_account(self, user_id: str, account_id: str) -> bool:
        accounts = await self.get_accounts(user_id)
        remaining = [a for a in accounts if a.id != account_id]
        if len(remaining) == len(accounts):
            return False

        self._write(self._path(user_id, ACCOUNTS_FILE), _accounts_adapter, remaining)
        return True

    async def get_transactions(self, user_id: str) -> list[Transaction]:
        return self._load(
            self._path(user_id, TRANSACTIONS_FILE),
            _transactions_adapter,
            self._seed_transactions,
        )

    async def add_transaction(self, user_id: str, transaction: Transaction) -> Transaction:
        transactions = await self.get_transactions(user_id)
        if any(t.id == transaction.id for t in transactions):
            raise DuplicateError(f"Transaction already exists: {transaction.id}")

        transactions.append(transaction)
        self._write(
            self._path(user_id, TRANSACTIONS_FILE), _transactions_adapter, transactions
        )
        logger.debug("transaction_added", user_id=user_id, transaction_id=transaction.id)
        return transaction

    async def delete_transaction(self, user_id: str, transaction_id: str) -> bool:
        transactions = await self.get_transactions(user_id)
        remaining = [t for t in transactions if t.id != transaction_id]
        if len(remaining) == len(transactions):
            return False

        self._write(
            self._path(user_id, TRANSACTIONS_FILE), _transactions_adapter, remaining
        )
        return True


class LocalAuditStorage(AuditStorageInterface):
    """Append-only JSON-lines audit log."""

    def __init__(self, data_dir: Path):
        self._path = Path(data_dir) / AUDIT_FILE

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as fh:
                fh.write(event.model_dump_json() + "\n")
            return True
        except OSError as e:
            logger.warning("audit_write_failed", error=str(e), path=str(self._path))
            return False

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        if not self._path.exists():
            return []

        events = []
        try:
            with self._path.open(encoding="utf-8") as fh:
                for line in fh:
                    if not line.strip():
                        continue
                    try:
                        events.append(AuditEvent.model_validate_json(line))
                    except ValidationError:
                        continue  # Skip malformed lines
        except OSError as e:
            raise StorageError(f"Failed to read audit log: {e}")

        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
