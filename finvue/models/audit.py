"""
Audit Models for FinVue

Every change to a user's ledger, and every call out to the AI advisor,
is recorded as an audit event. This provides:
1. A history of what was added or removed, and when
2. Debugging information when the remote store or the model misbehaves

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Accounts
    ACCOUNT_SAVED = "account_saved"
    ACCOUNT_DELETED = "account_deleted"

    # Transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_DELETED = "transaction_deleted"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # Dashboard
    DASHBOARD_LOADED = "dashboard_loaded"

    # AI advisor
    ADVICE_GENERATED = "advice_generated"
    ADVICE_FAILED = "advice_failed"

    # System events
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


# Column order used by the audit worksheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class AuditEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    user_id: Optional[str] = Field(
        default=None,
        description="Owner of the data the event is about"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'account', 'transaction', 'advice')"
    )
    entity_id: Optional[str] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one form submission)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """Convert to a row in AUDIT_COLUMNS order."""
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]

    @classmethod
    def from_sheets_row(cls, row: list) -> "AuditEvent":
        """Inverse of to_sheets_row. Missing trailing cells read as empty."""
        def cell(index: int) -> str:
            return row[index] if index < len(row) and row[index] else ""

        return cls(
            event_id=UUID(cell(0)),
            timestamp=datetime.fromisoformat(cell(1)),
            event_type=AuditEventType(cell(2)),
            severity=AuditSeverity(cell(3)),
            user_id=cell(4) or None,
            entity_type=cell(5) or None,
            entity_id=cell(6) or None,
            correlation_id=UUID(cell(7)) if cell(7) else None,
            description=cell(8),
            details=json.loads(cell(9)) if cell(9) else {},
            error_message=cell(10) or None,
            is_user_action=cell(11).lower() == "true",
        )


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(user_id, tx, correlation_id)
    """

    @staticmethod
    def account_saved(
        user_id: str,
        account_id: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_SAVED,
            user_id=user_id,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Account saved: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def account_deleted(
        user_id: str,
        account_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_DELETED,
            user_id=user_id,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Account deleted: {account_id}",
            is_user_action=True,
        )

    @staticmethod
    def transaction_added(
        user_id: str,
        transaction_id: str,
        transaction_type: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"{transaction_type.title()} of {amount} recorded",
            details={"type": transaction_type, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        user_id: str,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction deleted: {transaction_id}",
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        user_id: str,
        entity_type: str,
        entity_id: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.title()} rejected with {len(issues)} issue(s)",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def dashboard_loaded(
        user_id: str,
        account_count: int,
        transaction_count: int,
        reference_month: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DASHBOARD_LOADED,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            entity_type="dashboard",
            description=f"Dashboard computed for {reference_month}",
            details={
                "accounts": account_count,
                "transactions": transaction_count,
                "reference_month": reference_month,
            },
        )

    @staticmethod
    def advice_generated(
        user_id: str,
        score: float,
        is_fallback: bool,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        if is_fallback:
            return AuditEvent(
                event_type=AuditEventType.ADVICE_FAILED,
                severity=AuditSeverity.WARNING,
                user_id=user_id,
                entity_type="advice",
                correlation_id=correlation_id,
                description="AI advisor unavailable, fallback advice shown",
                details={"transactions": transaction_count},
                is_user_action=True,
            )
        return AuditEvent(
            event_type=AuditEventType.ADVICE_GENERATED,
            user_id=user_id,
            entity_type="advice",
            correlation_id=correlation_id,
            description=f"AI advice generated (score {score:.0f})",
            details={"score": score, "transactions": transaction_count},
            is_user_action=True,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Storage operation failed: {operation}",
            details={"operation": operation},
            error_message=error_message,
        )
