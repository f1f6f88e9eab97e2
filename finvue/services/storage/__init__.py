"""
Storage Services Package

Abstract interfaces plus two backends: local JSON files (demo mode)
and Google Sheets (remote document store).
"""

from finvue.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    FinanceStorageInterface,
    StorageConnectionError,
    StorageError,
)
from finvue.services.storage.local_json import LocalAuditStorage, LocalJSONStorage
from finvue.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStorage,
)
from finvue.services.storage.factory import create_storage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "FinanceStorageInterface",
    # Exceptions
    "DuplicateError",
    "StorageConnectionError",
    "StorageError",
    # Local implementation
    "LocalAuditStorage",
    "LocalJSONStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsFinanceStorage",
    # Backend selection
    "create_storage",
]
