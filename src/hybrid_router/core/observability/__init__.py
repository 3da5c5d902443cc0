"""
Observability utilities for hybrid-router.

Provides audit logging and request correlation for the router and its
resilience components.

Example:
    from hybrid_router.core.observability import audit_log, correlation_scope

    with correlation_scope():
        audit_log("route_decision", route="local", task_type="help")
"""

from hybrid_router.core.observability.audit import (
    AuditEvent,
    AuditEventType,
    AuditLogger,
    audit_log,
    get_audit_logger,
)
from hybrid_router.core.observability.context import (
    correlation_scope,
    get_correlation_id,
    new_correlation_id,
)

__all__ = [
    "AuditEvent",
    "AuditEventType",
    "AuditLogger",
    "audit_log",
    "correlation_scope",
    "get_audit_logger",
    "get_correlation_id",
    "new_correlation_id",
]
