"""Audit logging package."""

from budget_engine.audit.logger import AuditLogger, get_logger
from budget_engine.audit.sink import AuditSinkError, AuditSinkInterface, InMemoryAuditSink

__all__ = [
    "AuditLogger",
    "AuditSinkError",
    "AuditSinkInterface",
    "InMemoryAuditSink",
    "get_logger",
]
