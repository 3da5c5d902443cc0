"""Failure history and degraded responses for the cloud path.

When a cloud request fails the router records the failure here, keyed by a
hash of the normalized input, and answers with an apology followed by
guidance on doing the task by hand. Once the same input has failed
``max_attempts`` times within ``recent_window`` seconds the guidance is
dropped and only the apology is returned.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from collections import Counter, OrderedDict
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Optional

from hybrid_router.core.cache import ResponseCache
from hybrid_router.core.errors import as_router_error
from hybrid_router.core.executors import guidance_for
from hybrid_router.core.models import TaskType

logger = logging.getLogger(__name__)


APOLOGY_MESSAGE = (
    "I apologize, but I'm unable to process your request at the moment. "
    "This could be due to:\n\n"
    "• Temporary service issues\n"
    "• Network connectivity problems\n"
    "• System resource limitations\n\n"
    "Please try again in a few moments, or rephrase your request."
)

DEFAULT_MAX_ATTEMPTS = 3
# Seconds during which a failure counts toward has_recent_failures
DEFAULT_RECENT_WINDOW = 600.0
# Seconds covered by recent_failures in the statistics
DEFAULT_STATISTICS_WINDOW = 3600.0
DEFAULT_MAX_ENTRIES = 1000


def input_hash(text: str) -> str:
    """Stable key for an input; inputs equal after normalization share it."""
    normalized = ResponseCache.normalize_key(text or "")
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:16]


def degraded_response(task_type: TaskType, *, exhausted: bool = False) -> str:
    """User-facing output for a failed cloud request.

    Args:
        task_type: Task type of the failed request
        exhausted: The input keeps failing; return the bare apology
    """
    if exhausted:
        return APOLOGY_MESSAGE
    return f"{APOLOGY_MESSAGE}\n\n{guidance_for(task_type, degraded=True)}"


@dataclass
class FailureRecord:
    """Failures seen for one input."""

    input_hash: str
    first_failure: float
    last_failure: float
    attempt_count: int
    last_error_code: str


@dataclass
class FailureStatistics:
    """Aggregate view of the failure history.

    Attributes:
        total_failures: Failures across all inputs
        unique_failures: Distinct inputs that failed
        recent_failures: Distinct inputs whose last failure is within the statistics window
        error_breakdown: Inputs per last error code
    """

    total_failures: int = 0
    unique_failures: int = 0
    recent_failures: int = 0
    error_breakdown: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class FailureHistory:
    """Thread-safe record of which inputs failed, how often and how recently.

    The oldest entries are evicted once ``max_entries`` inputs are tracked.
    """

    def __init__(
        self,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        recent_window: float = DEFAULT_RECENT_WINDOW,
        statistics_window: float = DEFAULT_STATISTICS_WINDOW,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self.max_attempts = max_attempts
        self.recent_window = recent_window
        self.statistics_window = statistics_window
        self.max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._records: "OrderedDict[str, FailureRecord]" = OrderedDict()

    def record_failure(self, text: str, error: BaseException) -> FailureRecord:
        """Count one failure of ``text``.

        A failure outside the recent window starts the attempt count over.
        """
        key = input_hash(text)
        code = as_router_error(error).code
        now = self._clock()
        with self._lock:
            record = self._records.pop(key, None)
            if record is None or now - record.last_failure > self.recent_window:
                record = FailureRecord(key, now, now, 1, code)
            else:
                record.last_failure = now
                record.attempt_count += 1
                record.last_error_code = code
            self._records[key] = record
            while len(self._records) > self.max_entries:
                self._records.popitem(last=False)
            return FailureRecord(**asdict(record))

    def _recent_record(self, text: str) -> Optional[FailureRecord]:
        with self._lock:
            record = self._records.get(input_hash(text))
            if record is None or self._clock() - record.last_failure > self.recent_window:
                return None
            return record

    def has_recent_failures(self, text: str) -> bool:
        return self._recent_record(text) is not None

    def is_exhausted(self, text: str) -> bool:
        """True once ``text`` has failed ``max_attempts`` times in the recent window."""
        record = self._recent_record(text)
        return record is not None and record.attempt_count >= self.max_attempts

    def get_failure_statistics(self) -> FailureStatistics:
        now = self._clock()
        with self._lock:
            records = list(self._records.values())
        return FailureStatistics(
            total_failures=sum(r.attempt_count for r in records),
            unique_failures=len(records),
            recent_failures=sum(1 for r in records if now - r.last_failure <= self.statistics_window),
            error_breakdown=dict(Counter(r.last_error_code for r in records)),
        )

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
        logger.info("Failure history cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
