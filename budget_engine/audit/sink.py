"""
Audit Sink Interface

DESIGN DECISION: The engine does not persist anything. Audit events leave
the engine through this interface, so the persistence layer can store them
wherever it stores ledger snapshots, and tests can use the in-memory sink.
"""

from abc import ABC, abstractmethod
from typing import Optional

from budget_engine.models.audit import AuditEvent


class AuditSinkInterface(ABC):
    """
    Abstract interface for receiving audit events.

    Any sink implementation (database table, log shipper, etc.)
    must implement these methods.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event.

        Args:
            event: The audit event to store

        Returns:
            True if stored successfully

        Raises:
            AuditSinkError: If the write fails
        """
        pass

    @abstractmethod
    def get_events_for_month(self, month_key: str) -> list[AuditEvent]:
        """
        Get all audit events for a month.

        Returns:
            List of events in the order they were appended
        """
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class AuditSinkError(Exception):
    """Base exception for audit sink operations."""
    pass


class InMemoryAuditSink(AuditSinkInterface):
    """Keeps events in a list. Used by tests and tooling."""

    def __init__(self, max_events: Optional[int] = None):
        self._events: list[AuditEvent] = []
        self._max_events = max_events

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        if self._max_events is not None and len(self._events) > self._max_events:
            del self._events[: len(self._events) - self._max_events]
        return True

    def get_events_for_month(self, month_key: str) -> list[AuditEvent]:
        return [event for event in self._events if event.month_key == month_key]

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)
