"""Classification error classes (TC codes)."""

from __future__ import annotations

from typing import Optional

from hybrid_router.core.errors.taxonomy import RouterError
from hybrid_router.core.errors.types import ErrorCategory, ErrorKind


class ClassificationError(RouterError):
    """Raised by classifier implementations that cannot produce a result.

    The router never lets this escape: it degrades to the help route.

    Attributes:
        confidence: Confidence reached before giving up, if any
    """

    category = ErrorCategory.CLASSIFICATION

    def __init__(
        self,
        kind: ErrorKind = ErrorKind.INVALID_INPUT,
        message: Optional[str] = None,
        *,
        confidence: Optional[float] = None,
        **payload,
    ):
        super().__init__(kind, message, confidence=confidence, **payload)
        self.confidence = confidence
