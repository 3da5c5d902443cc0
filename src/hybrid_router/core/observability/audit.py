"""Audit trail for routing and resilience decisions.

Every decision that changes where or whether a request runs (route choice,
privacy override, cache replay, admission rejection, breaker transition,
retry) is written as one structured record on the
``hybrid_router.core.observability.audit.audit`` logger. The payload travels
in ``record.audit`` so ``JsonFormatter`` can emit it verbatim.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from hybrid_router.core.observability.context import get_correlation_id

logger = logging.getLogger(__name__)


class AuditEventType(Enum):
    """Kinds of audited decisions."""

    ROUTE_DECISION = "route_decision"
    CACHE_HIT = "cache_hit"
    PRIVACY_OVERRIDE = "privacy_override"
    CIRCUIT_STATE_CHANGE = "circuit_state_change"
    RETRY_ATTEMPT = "retry_attempt"
    RETRY_CANCELLED = "retry_cancelled"
    RATE_LIMIT = "rate_limit"
    BUDGET_EXCEEDED = "budget_exceeded"
    CLOUD_FAILURE = "cloud_failure"
    OPERATION = "operation"

    @property
    def component(self) -> str:
        """Subsystem that emits this event."""
        return _COMPONENTS.get(self, "router")

    @property
    def level(self) -> int:
        """Log level the event is written at."""
        return _WARNING_EVENTS.get(self, logging.INFO)


_COMPONENTS: Dict[AuditEventType, str] = {
    AuditEventType.CACHE_HIT: "cache",
    AuditEventType.CIRCUIT_STATE_CHANGE: "circuit_breaker",
    AuditEventType.RETRY_ATTEMPT: "retry",
    AuditEventType.RETRY_CANCELLED: "retry",
    AuditEventType.RATE_LIMIT: "rate_limiter",
    AuditEventType.BUDGET_EXCEEDED: "cost_tracker",
    AuditEventType.CLOUD_FAILURE: "cloud",
}

# Events that mean a request was refused or failed
_WARNING_EVENTS: Dict[AuditEventType, int] = {
    AuditEventType.RATE_LIMIT: logging.WARNING,
    AuditEventType.BUDGET_EXCEEDED: logging.WARNING,
    AuditEventType.CLOUD_FAILURE: logging.WARNING,
}


@dataclass
class AuditEvent:
    """One audited decision.

    Attributes:
        event_type: What was decided
        details: Event-specific values (route, error code, state, ...)
        timestamp: UTC ISO-8601 time of the decision
        correlation_id: Request the decision belongs to, taken from the
            active ``correlation_scope`` when not given
    """

    event_type: AuditEventType
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    correlation_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.correlation_id is None:
            self.correlation_id = get_correlation_id() or None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "event_type": self.event_type.value,
            "component": self.event_type.component,
            "timestamp": self.timestamp,
            "details": self.details,
        }
        if self.correlation_id:
            result["correlation_id"] = self.correlation_id
        return result


class AuditLogger:
    """Writes audit events to a dedicated child logger so they can be filtered or routed separately."""

    def __init__(self):
        self._logger = logging.getLogger(f"{__name__}.audit")

    def log(self, event: AuditEvent) -> None:
        self._logger.log(
            event.event_type.level,
            "AUDIT: %s",
            event.event_type.value,
            extra={"audit": event.to_dict()},
        )


_audit = AuditLogger()


def get_audit_logger() -> AuditLogger:
    return _audit


def audit_log(event_type: str, **details: Any) -> None:
    """Record an audited decision.

    Args:
        event_type: An ``AuditEventType`` value; anything else is recorded as
            ``operation`` with the original name kept in the details
        **details: Values describing the decision
    """
    try:
        event_enum = AuditEventType(event_type)
    except ValueError:
        event_enum = AuditEventType.OPERATION
        details["original_event_type"] = event_type

    _audit.log(AuditEvent(event_type=event_enum, details=details))
