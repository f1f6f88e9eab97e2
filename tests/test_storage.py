"""
Tests for the storage backends.

The local JSON store runs against pytest's tmp_path; the Google Sheets
store runs against a mocked worksheet, never the network.
"""

import asyncio
import json
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from finvue.models.audit import AuditEventBuilder
from finvue.models.finance import BankAccount, Transaction, TransactionType
from finvue.orchestrator import DashboardFlow
from finvue.services.storage import (
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsFinanceStorage,
    LocalAuditStorage,
    LocalJSONStorage,
    StorageConnectionError,
    StorageError,
    create_storage,
)
from finvue.services.storage import factory
from finvue.services.storage.google_sheets import ACCOUNT_COLUMNS, TRANSACTION_COLUMNS


USER = "demo-uid"


def expense(tx_id="new1", amount="99", date="2024-01-10"):
    return Transaction(
        id=tx_id,
        account_id="acc1",
        category_id="cat1",
        amount=Decimal(amount),
        type=TransactionType.EXPENSE,
        date=date,
    )


class TestLocalJSONStorage:
    """Tests for the demo-mode JSON file store."""

    def test_fresh_user_sees_seed_data(self, tmp_path):
        """Test fresh user sees seed data."""
        storage = LocalJSONStorage(tmp_path)
        accounts = asyncio.run(storage.get_accounts(USER))
        transactions = asyncio.run(storage.get_transactions(USER))
        assert [a.id for a in accounts] == ["acc1", "acc2", "acc3"]
        assert len(transactions) == 4

    def test_empty_seed(self, tmp_path):
        """Test empty seed."""
        storage = LocalJSONStorage(tmp_path, seed_accounts=list, seed_transactions=list)
        assert asyncio.run(storage.get_accounts(USER)) == []
        assert asyncio.run(storage.get_transactions(USER)) == []

    def test_add_transaction_persists_alongside_seed(self, tmp_path):
        """Test add transaction persists alongside seed."""
        storage = LocalJSONStorage(tmp_path)
        asyncio.run(storage.add_transaction(USER, expense()))

        reopened = LocalJSONStorage(tmp_path)
        transactions = asyncio.run(reopened.get_transactions(USER))
        assert len(transactions) == 5
        assert transactions[-1].id == "new1"
        assert transactions[-1].amount == Decimal("99")

    def test_duplicate_transaction_rejected(self, tmp_path):
        """Test duplicate transaction rejected."""
        storage = LocalJSONStorage(tmp_path)
        asyncio.run(storage.add_transaction(USER, expense()))
        with pytest.raises(DuplicateError):
            asyncio.run(storage.add_transaction(USER, expense()))

    def test_delete_transaction(self, tmp_path):
        """Test delete transaction."""
        storage = LocalJSONStorage(tmp_path)
        assert asyncio.run(storage.delete_transaction(USER, "t2")) is True
        assert asyncio.run(storage.delete_transaction(USER, "t2")) is False
        ids = [t.id for t in asyncio.run(storage.get_transactions(USER))]
        assert "t2" not in ids

    def test_save_account_upserts(self, tmp_path):
        """Test save account upserts."""
        storage = LocalJSONStorage(tmp_path)
        accounts = asyncio.run(storage.get_accounts(USER))
        updated = accounts[0].model_copy(update={"balance": Decimal("1")})
        asyncio.run(storage.save_account(USER, updated))
        asyncio.run(storage.save_account(USER, BankAccount(id="acc9", name="Cash")))

        accounts = asyncio.run(storage.get_accounts(USER))
        assert [a.id for a in accounts] == ["acc1", "acc2", "acc3", "acc9"]
        assert accounts[0].balance == Decimal("1")

    def test_delete_account_keeps_transactions(self, tmp_path):
        """Test delete account keeps transactions."""
        storage = LocalJSONStorage(tmp_path)
        assert asyncio.run(storage.delete_account(USER, "acc2")) is True
        assert asyncio.run(storage.delete_account(USER, "missing")) is False
        transactions = asyncio.run(storage.get_transactions(USER))
        assert any(t.account_id == "acc2" for t in transactions)

    def test_users_are_isolated(self, tmp_path):
        """Test users are isolated."""
        storage = LocalJSONStorage(tmp_path, seed_accounts=list, seed_transactions=list)
        asyncio.run(storage.add_transaction("alice", expense()))
        assert asyncio.run(storage.get_transactions("bob")) == []

    def test_user_id_cannot_escape_data_dir(self, tmp_path):
        """Test user id cannot escape data dir."""
        storage = LocalJSONStorage(tmp_path / "data", seed_accounts=list, seed_transactions=list)
        asyncio.run(storage.add_transaction("../outside", expense()))
        assert not (tmp_path / "outside").exists()
        with pytest.raises(StorageError):
            asyncio.run(storage.get_accounts(".."))

    def test_corrupt_file_raises_storage_error(self, tmp_path):
        """Test corrupt file raises storage error."""
        storage = LocalJSONStorage(tmp_path)
        user_dir = tmp_path / USER
        user_dir.mkdir()
        (user_dir / "transactions.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError):
            asyncio.run(storage.get_transactions(USER))

    def test_null_or_missing_dates_do_not_block_loading(self, tmp_path):
        """Test records without a usable date load and only drop out of monthly totals."""
        user_dir = tmp_path / USER
        user_dir.mkdir()
        (user_dir / "transactions.json").write_text(json.dumps([
            {"id": "ok", "account_id": "acc1", "category_id": "cat6",
             "amount": "100", "type": "INCOME", "date": "2024-03-01"},
            {"id": "null-date", "account_id": "acc1", "category_id": "cat1",
             "amount": "40", "type": "EXPENSE", "date": None},
            {"id": "no-date", "account_id": "acc1", "category_id": "cat1",
             "amount": "2", "type": "EXPENSE"},
        ]), encoding="utf-8")
        storage = LocalJSONStorage(tmp_path)

        transactions = asyncio.run(storage.get_transactions(USER))
        assert [t.date for t in transactions] == ["2024-03-01", "", ""]

        dashboard = asyncio.run(DashboardFlow(storage).load_dashboard(USER, now=datetime(2024, 3, 5)))
        assert dashboard.stats.monthly_income == Decimal("100")
        assert dashboard.stats.monthly_expenses == 0
        assert dashboard.breakdown[0].value == Decimal("42")

    def test_file_keeps_decimal_amounts(self, tmp_path):
        """Test file keeps decimal amounts."""
        storage = LocalJSONStorage(tmp_path, seed_accounts=list, seed_transactions=list)
        asyncio.run(storage.add_transaction(USER, expense(amount="10.25")))
        raw = json.loads((tmp_path / USER / "transactions.json").read_text(encoding="utf-8"))
        assert Decimal(str(raw[0]["amount"])) == Decimal("10.25")


class TestLocalAuditStorage:
    """Tests for the JSON-lines audit log."""

    def test_append_and_read_newest_first(self, tmp_path):
        """Test append and read newest first."""
        storage = LocalAuditStorage(tmp_path)
        first = AuditEventBuilder.account_deleted(USER, "acc1")
        second = AuditEventBuilder.account_deleted(USER, "acc2")
        second.timestamp = first.timestamp.replace(year=first.timestamp.year + 1)

        assert asyncio.run(storage.append_event(first)) is True
        assert asyncio.run(storage.append_event(second)) is True

        events = asyncio.run(storage.get_recent_events())
        assert [e.entity_id for e in events] == ["acc2", "acc1"]
        assert len(asyncio.run(storage.get_recent_events(limit=1))) == 1

    def test_missing_log_is_empty(self, tmp_path):
        """Test missing log is empty."""
        assert asyncio.run(LocalAuditStorage(tmp_path).get_recent_events()) == []

    def test_malformed_lines_skipped(self, tmp_path):
        """Test malformed lines skipped."""
        storage = LocalAuditStorage(tmp_path)
        asyncio.run(storage.append_event(AuditEventBuilder.account_deleted(USER, "acc1")))
        with (tmp_path / "audit.jsonl").open("a", encoding="utf-8") as fh:
            fh.write('{"broken": true}\n\n')
        assert len(asyncio.run(storage.get_recent_events())) == 1


def sheets_client(rows_by_sheet):
    """A stand-in GoogleSheetsClient whose worksheets are MagicMocks."""
    sheets = {}
    for title, rows in rows_by_sheet.items():
        sheet = MagicMock()
        sheet.get_all_values.return_value = rows
        sheets[title] = sheet

    client = MagicMock()
    client.settings = SimpleNamespace(
        accounts_sheet_name="Accounts",
        transactions_sheet_name="Transactions",
        audit_sheet_name="AuditLog",
    )
    client.get_worksheet.side_effect = lambda title, columns, rows=1000: sheets[title]
    return client, sheets


class TestGoogleSheetsFinanceStorage:
    """Tests for the Google Sheets store with a mocked worksheet."""

    def test_rows_scoped_to_user(self):
        """Test rows scoped to user."""
        client, _ = sheets_client({
            "Transactions": [
                TRANSACTION_COLUMNS,
                ["t1", USER, "acc1", "cat6", "60000", "INCOME", "2023-11-05", "Salary"],
                ["t2", "someone-else", "acc1", "cat1", "150", "EXPENSE", "2023-11-06", ""],
                ["t3", USER, "acc1", "cat1", "150", "EXPENSE", "2023-11-06"],
            ],
        })
        storage = GoogleSheetsFinanceStorage(client)
        transactions = asyncio.run(storage.get_transactions(USER))
        assert [t.id for t in transactions] == ["t1", "t3"]
        assert transactions[0].amount == Decimal("60000")
        assert transactions[1].note == ""

    def test_malformed_rows_skipped(self):
        """Test malformed rows skipped."""
        client, _ = sheets_client({
            "Accounts": [
                ACCOUNT_COLUMNS,
                ["acc1", USER, "Payroll", "Savings", "50000", "TWD", "#10b981"],
                ["acc2", USER, "Broken", "", "lots", "TWD", ""],
            ],
        })
        storage = GoogleSheetsFinanceStorage(client)
        accounts = asyncio.run(storage.get_accounts(USER))
        assert [a.id for a in accounts] == ["acc1"]

    def test_add_transaction_appends_row(self):
        """Test add transaction appends row."""
        client, sheets = sheets_client({"Transactions": [TRANSACTION_COLUMNS]})
        storage = GoogleSheetsFinanceStorage(client)
        asyncio.run(storage.add_transaction(USER, expense()))
        sheets["Transactions"].append_row.assert_called_once_with(
            ["new1", USER, "acc1", "cat1", "99", "EXPENSE", "2024-01-10", ""],
            value_input_option="RAW",
        )

    def test_duplicate_transaction_not_retried(self):
        """Test duplicate transaction not retried."""
        client, sheets = sheets_client({
            "Transactions": [
                TRANSACTION_COLUMNS,
                ["new1", USER, "acc1", "cat1", "99", "EXPENSE", "2024-01-10", ""],
            ],
        })
        storage = GoogleSheetsFinanceStorage(client)
        with pytest.raises(DuplicateError):
            asyncio.run(storage.add_transaction(USER, expense()))
        assert sheets["Transactions"].get_all_values.call_count == 1
        sheets["Transactions"].append_row.assert_not_called()

    def test_save_existing_account_updates_in_place(self):
        """Test save existing account updates in place."""
        client, sheets = sheets_client({
            "Accounts": [
                ACCOUNT_COLUMNS,
                ["other", "someone-else", "Theirs", "", "1", "TWD", ""],
                ["acc1", USER, "Payroll", "Savings", "50000", "TWD", "#10b981"],
            ],
        })
        storage = GoogleSheetsFinanceStorage(client)
        account = BankAccount(id="acc1", name="Payroll", balance=Decimal("42"))
        asyncio.run(storage.save_account(USER, account))
        sheets["Accounts"].update.assert_called_once()
        assert sheets["Accounts"].update.call_args.kwargs["range_name"] == "A3"
        sheets["Accounts"].append_row.assert_not_called()

    def test_delete_transaction_removes_sheet_row(self):
        """Test delete transaction removes sheet row."""
        client, sheets = sheets_client({
            "Transactions": [
                TRANSACTION_COLUMNS,
                ["t1", USER, "acc1", "cat6", "60000", "INCOME", "2023-11-05", ""],
                ["t2", USER, "acc1", "cat1", "150", "EXPENSE", "2023-11-06", ""],
            ],
        })
        storage = GoogleSheetsFinanceStorage(client)
        assert asyncio.run(storage.delete_transaction(USER, "t2")) is True
        sheets["Transactions"].delete_rows.assert_called_once_with(3)
        assert asyncio.run(storage.delete_transaction(USER, "missing")) is False

    def test_read_failure_becomes_storage_error(self):
        """Test read failure becomes storage error."""
        client, sheets = sheets_client({"Accounts": []})
        sheets["Accounts"].get_all_values.side_effect = RuntimeError("quota")
        storage = GoogleSheetsFinanceStorage(client)
        with pytest.raises(StorageError):
            asyncio.run(storage.get_accounts(USER))


class TestGoogleSheetsAuditStorage:
    """Tests for the Sheets audit log."""

    def test_append_failure_returns_false(self):
        """Test append failure returns false."""
        client, sheets = sheets_client({"AuditLog": []})
        sheets["AuditLog"].append_row.side_effect = RuntimeError("quota")
        storage = GoogleSheetsAuditStorage(client)
        event = AuditEventBuilder.account_deleted(USER, "acc1")
        assert asyncio.run(storage.append_event(event)) is False

    def test_recent_events_parsed_from_rows(self):
        """Test recent events parsed from rows."""
        event = AuditEventBuilder.account_deleted(USER, "acc1")
        client, _ = sheets_client({"AuditLog": [["header"], event.to_sheets_row(), ["", "junk"]]})
        storage = GoogleSheetsAuditStorage(client)
        events = asyncio.run(storage.get_recent_events())
        assert [e.event_id for e in events] == [event.event_id]


class TestCreateStorage:
    """Tests for backend selection."""

    def test_demo_mode_uses_local_files(self, tmp_path):
        """Test demo mode uses local files."""
        settings = SimpleNamespace(
            app=SimpleNamespace(demo_mode=True, local_data_path=tmp_path),
        )
        finance, audit, is_demo = create_storage(settings)
        assert isinstance(finance, LocalJSONStorage)
        assert isinstance(audit, LocalAuditStorage)
        assert is_demo is True

    def test_unconfigured_remote_falls_back(self, tmp_path):
        """Test unconfigured remote falls back."""
        class Unconfigured:
            app = SimpleNamespace(demo_mode=False, local_data_path=tmp_path)

            @property
            def google_sheets(self):
                raise ValueError("GOOGLE_SHEETS_SPREADSHEET_ID missing")

        finance, _, is_demo = create_storage(Unconfigured())
        assert isinstance(finance, LocalJSONStorage)
        assert is_demo is True

    def test_unreachable_remote_falls_back(self, tmp_path, monkeypatch):
        """Test bad credentials or a wrong spreadsheet id fall back to local files."""
        class UnreachableClient:
            def __init__(self, settings):
                self.settings = settings

            def get_spreadsheet(self):
                raise StorageConnectionError("Spreadsheet not found: wrong-id")

        monkeypatch.setattr(factory, "GoogleSheetsClient", UnreachableClient)
        settings = SimpleNamespace(
            app=SimpleNamespace(demo_mode=False, local_data_path=tmp_path),
            google_sheets=SimpleNamespace(spreadsheet_id="wrong-id"),
        )

        finance, audit, is_demo = create_storage(settings)
        assert isinstance(finance, LocalJSONStorage)
        assert isinstance(audit, LocalAuditStorage)
        assert is_demo is True

    def test_reachable_remote_uses_sheets(self, tmp_path, monkeypatch):
        """Test a reachable spreadsheet selects the Google Sheets backend."""
        client = MagicMock()
        monkeypatch.setattr(factory, "GoogleSheetsClient", lambda settings: client)
        settings = SimpleNamespace(
            app=SimpleNamespace(demo_mode=False, local_data_path=tmp_path),
            google_sheets=SimpleNamespace(spreadsheet_id="sheet-id"),
        )

        finance, audit, is_demo = create_storage(settings)
        client.get_spreadsheet.assert_called_once_with()
        assert isinstance(finance, GoogleSheetsFinanceStorage)
        assert isinstance(audit, GoogleSheetsAuditStorage)
        assert is_demo is False
