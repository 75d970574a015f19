"""Audit logging for index commands."""

from .audit import (
    AuditEvent,
    JsonlAuditLogger,
    sanitize_arguments,
    summarize_outcome,
    utc_timestamp,
)

__all__ = [
    "AuditEvent",
    "JsonlAuditLogger",
    "sanitize_arguments",
    "summarize_outcome",
    "utc_timestamp",
]
