"""
Storage backend selection.

Demo mode, or a remote store that isn't configured or can't be reached,
means local JSON files. Otherwise everything lives in Google Sheets.
"""

from typing import Optional

import structlog

from finvue.config import Settings, get_settings
from finvue.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStorage,
)
from finvue.services.storage.interface import (
    AuditStorageInterface,
    FinanceStorageInterface,
)
from finvue.services.storage.local_json import LocalAuditStorage, LocalJSONStorage


logger = structlog.get_logger(__name__)


def create_storage(
    settings: Optional[Settings] = None,
) -> tuple[FinanceStorageInterface, AuditStorageInterface, bool]:
    """
    Build the finance and audit stores.

    Returns:
        (finance_storage, audit_storage, is_demo)
    """
    settings = settings or get_settings()
    app_settings = settings.app

    if not app_settings.demo_mode:
        try:
            client = GoogleSheetsClient(settings.google_sheets)
            client.get_spreadsheet()
            logger.info("storage_selected", backend="google_sheets")
            return (
                GoogleSheetsFinanceStorage(client),
                GoogleSheetsAuditStorage(client),
                False,
            )
        except Exception as e:
            logger.warning(
                "remote_storage_unavailable",
                error=str(e),
                fallback="local_json",
            )

    data_dir = app_settings.local_data_path
    logger.info("storage_selected", backend="local_json", data_dir=str(data_dir))
    return LocalJSONStorage(data_dir), LocalAuditStorage(data_dir), True
