"""
Audit Models for the Budget Engine

Every ledger mutation produces an audit event. This provides:
1. Traceability of who changed which month and when
2. An explanation for every lock that was invalidated
3. A feed the persistence layer can store alongside the new snapshot

DESIGN DECISION: Audit events are append-only values. The engine emits them;
it never reads them back.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of ledger events we audit."""
    # Manual values
    BALANCE_SET = "balance_set"
    BALANCE_CLEARED = "balance_cleared"
    BUDGET_ITEMS_CHANGED = "budget_items_changed"
    TRANSFER_SETTINGS_CHANGED = "transfer_settings_changed"

    # Finality
    MONTH_LOCKED = "month_locked"
    LOCK_REJECTED = "lock_rejected"
    LOCK_INVALIDATED = "lock_invalidated"

    # Structure
    MONTH_DELETED = "month_deleted"
    ACCOUNT_REMOVED = "account_removed"

    # Computation
    RECOMPUTE_COMPLETED = "recompute_completed"
    ANOMALY_DETECTED = "anomaly_detected"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of the ledger's audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - which month/account is this about?
    month_key: Optional[str] = Field(
        default=None,
        description="Month the event relates to"
    )
    account_id: Optional[str] = Field(
        default=None,
        description="Account the event relates to"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user edit?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "month_key": self.month_key,
            "account_id": self.account_id,
            "description": self.description,
            "details": self.details,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.balance_set("2025-03", "acc-1", 125000)
        event = AuditEventBuilder.lock_invalidated("2025-03", ["2025-03", "2025-04"])
    """

    @staticmethod
    def balance_set(month_key: str, account_id: str, value: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_SET,
            month_key=month_key,
            account_id=account_id,
            description=f"Actual balance set for {account_id} in {month_key}",
            details={"value": value},
            is_user_action=True,
        )

    @staticmethod
    def balance_cleared(month_key: str, account_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_CLEARED,
            month_key=month_key,
            account_id=account_id,
            description=f"Actual balance cleared for {account_id} in {month_key}",
            is_user_action=True,
        )

    @staticmethod
    def budget_items_changed(month_key: str, cost_count: int, savings_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_ITEMS_CHANGED,
            month_key=month_key,
            description=f"Budget items replaced for {month_key}",
            details={
                "cost_items": cost_count,
                "savings_items": savings_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def transfer_settings_changed(
        month_key: str,
        daily_transfer: int,
        weekend_transfer: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_SETTINGS_CHANGED,
            month_key=month_key,
            description=f"Daily transfer settings changed for {month_key}",
            details={
                "daily_transfer": daily_transfer,
                "weekend_transfer": weekend_transfer,
            },
            is_user_action=True,
        )

    @staticmethod
    def month_locked(month_key: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTH_LOCKED,
            month_key=month_key,
            description=f"Closing balances for {month_key} marked final",
            is_user_action=True,
        )

    @staticmethod
    def lock_rejected(month_key: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOCK_REJECTED,
            severity=AuditSeverity.WARNING,
            month_key=month_key,
            description=f"Lock rejected for {month_key}",
            details={"reason": reason},
            is_user_action=True,
        )

    @staticmethod
    def lock_invalidated(month_key: str, unlocked_months: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOCK_INVALIDATED,
            severity=AuditSeverity.WARNING,
            month_key=month_key,
            description=f"Change in {month_key} invalidated {len(unlocked_months)} locked month(s)",
            details={"unlocked_months": unlocked_months},
        )

    @staticmethod
    def month_deleted(month_key: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTH_DELETED,
            severity=AuditSeverity.WARNING,
            month_key=month_key,
            description=f"Month {month_key} deleted",
            is_user_action=True,
        )

    @staticmethod
    def account_removed(account_id: str, month_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_REMOVED,
            severity=AuditSeverity.WARNING,
            account_id=account_id,
            description=f"Account {account_id} removed from {month_count} month(s)",
            details={"months_touched": month_count},
            is_user_action=True,
        )

    @staticmethod
    def recompute_completed(month_key: str, account_count: int, anomaly_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECOMPUTE_COMPLETED,
            severity=AuditSeverity.DEBUG,
            month_key=month_key,
            description=f"Recomputed {account_count} account(s) for {month_key}",
            details={
                "accounts": account_count,
                "anomalies": anomaly_count,
            },
        )

    @staticmethod
    def anomaly_detected(
        kind: str,
        entity_id: str,
        message: str,
        month_key: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANOMALY_DETECTED,
            severity=AuditSeverity.WARNING,
            month_key=month_key,
            description=message[:500],
            details={
                "kind": kind,
                "entity_id": entity_id,
            },
        )
