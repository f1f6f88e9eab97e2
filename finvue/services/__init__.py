"""Services package."""

from finvue.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    FinanceStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStorage,
    LocalAuditStorage,
    LocalJSONStorage,
    StorageConnectionError,
    StorageError,
    create_storage,
)

__all__ = [
    "AuditStorageInterface",
    "DuplicateError",
    "FinanceStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsFinanceStorage",
    "LocalAuditStorage",
    "LocalJSONStorage",
    "StorageConnectionError",
    "StorageError",
    "create_storage",
]
