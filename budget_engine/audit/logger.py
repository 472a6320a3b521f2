"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged.
This provides:
1. Complete traceability of manual edits
2. An explanation for every invalidated lock
3. Debugging capability for propagation questions

The audit logger:
- Is synchronous, like the rest of the engine
- Gracefully handles sink failures (never breaks a ledger operation)
- Always logs locally through structlog
"""

from typing import Optional

import structlog

from budget_engine.audit.sink import AuditSinkInterface
from budget_engine.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def get_logger(name: Optional[str] = None):
    """Get a structlog logger bound to the engine's configuration."""
    return structlog.get_logger(name)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An optional audit sink (for persistence)
    """

    def __init__(
        self,
        sink: Optional[AuditSinkInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            sink: Where events are appended.
                  If None, only logs locally.
        """
        self._sink = sink
        self._logger = structlog.get_logger("budget_engine.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Appends to the sink if available.

        Returns True if the sink write succeeded (or no sink is configured).
        """
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._sink:
            try:
                return self._sink.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_sink_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_balance_set(self, month_key: str, account_id: str, value: Optional[int]) -> None:
        """Log a manual balance edit (None clears it)."""
        if value is None:
            event = AuditEventBuilder.balance_cleared(month_key, account_id)
        else:
            event = AuditEventBuilder.balance_set(month_key, account_id, value)
        self.log(event)

    def log_budget_items_changed(self, month_key: str, cost_count: int, savings_count: int) -> None:
        self.log(AuditEventBuilder.budget_items_changed(month_key, cost_count, savings_count))

    def log_transfer_settings_changed(
        self,
        month_key: str,
        daily_transfer: int,
        weekend_transfer: int,
    ) -> None:
        self.log(AuditEventBuilder.transfer_settings_changed(month_key, daily_transfer, weekend_transfer))

    def log_month_locked(self, month_key: str) -> None:
        self.log(AuditEventBuilder.month_locked(month_key))

    def log_lock_rejected(self, month_key: str, reason: str) -> None:
        self.log(AuditEventBuilder.lock_rejected(month_key, reason))

    def log_lock_invalidated(self, month_key: str, unlocked_months: list[str]) -> None:
        """Log a lock cascade. Nothing is logged when no lock was cleared."""
        if unlocked_months:
            self.log(AuditEventBuilder.lock_invalidated(month_key, unlocked_months))

    def log_month_deleted(self, month_key: str) -> None:
        self.log(AuditEventBuilder.month_deleted(month_key))

    def log_account_removed(self, account_id: str, month_count: int) -> None:
        self.log(AuditEventBuilder.account_removed(account_id, month_count))

    def log_recompute_completed(self, month_key: str, account_count: int, anomaly_count: int) -> None:
        self.log(AuditEventBuilder.recompute_completed(month_key, account_count, anomaly_count))

    def log_anomaly(
        self,
        kind: str,
        entity_id: str,
        message: str,
        month_key: Optional[str] = None,
    ) -> None:
        self.log(AuditEventBuilder.anomaly_detected(kind, entity_id, message, month_key))
