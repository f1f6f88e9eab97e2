"""Ledger validation package."""

from finvue.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]
