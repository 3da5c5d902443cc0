"""Request-scoped correlation context.

Each ``process_input`` call runs inside ``correlation_scope`` so log and audit
records emitted anywhere below the router share one correlation id.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

from ulid import ULID

correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Return the current correlation id, or an empty string outside a scope."""
    return correlation_id.get()


def new_correlation_id() -> str:
    return f"req_{ULID()}"


@contextmanager
def correlation_scope(value: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation id for the duration of the block.

    Args:
        value: Correlation id to bind (generated if omitted)

    Yields:
        The bound correlation id
    """
    cid = value or new_correlation_id()
    token = correlation_id.set(cid)
    try:
        yield cid
    finally:
        correlation_id.reset(token)
