"""Base router exception and its serializable summary.

``RouterError`` is the tagged variant every domain error derives from: the
``kind`` is the discriminant and ``payload`` carries structured context such
as ``retry_after`` or ``path``. Severity, recoverability and presentation text
are looked up in ``ERROR_REGISTRY`` rather than stored per instance.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from hybrid_router.core.errors.types import (
    ErrorCategory,
    ErrorKind,
    ErrorSeverity,
    ErrorSpec,
    get_spec,
)


class ErrorInfo(BaseModel):
    """Serializable description of an error attached to a TaskResult."""

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., description="Stable error code, e.g. AS003")
    name: str = Field(..., description="Error kind name")
    category: ErrorCategory
    severity: ErrorSeverity
    is_recoverable: bool
    message: str
    recovery_suggestion: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class RouterError(Exception):
    """Base exception for every error in the taxonomy.

    Subclasses pin ``category`` so a kind from the wrong family is rejected
    at construction time.

    Attributes:
        kind: Error kind (discriminant)
        payload: Structured context for the error
    """

    category: Optional[ErrorCategory] = None

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        **payload: Any,
    ):
        spec = get_spec(kind)
        if self.category is not None and spec.category != self.category:
            raise ValueError(
                f"{type(self).__name__} cannot carry {kind.value} ({spec.category.value})"
            )
        super().__init__(message or spec.description)
        self.kind = kind
        self.payload: Dict[str, Any] = {k: v for k, v in payload.items() if v is not None}

    @property
    def spec(self) -> ErrorSpec:
        return get_spec(self.kind)

    @property
    def code(self) -> str:
        return self.kind.value

    @property
    def message(self) -> str:
        return str(self)

    @property
    def severity(self) -> ErrorSeverity:
        return self.spec.severity

    @property
    def is_recoverable(self) -> bool:
        return self.spec.is_recoverable

    @property
    def is_retryable(self) -> bool:
        """Whether the default retry policy would retry this error."""
        return self.spec.default_retryable

    @property
    def recovery_suggestion(self) -> str:
        return self.spec.recovery_suggestion

    def to_info(self) -> ErrorInfo:
        """Build the serializable summary for this error."""
        return ErrorInfo(
            code=self.code,
            name=self.kind.name,
            category=self.spec.category,
            severity=self.severity,
            is_recoverable=self.is_recoverable,
            message=self.message,
            recovery_suggestion=self.recovery_suggestion,
            payload={k: _jsonable(v) for k, v in self.payload.items()},
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code}, {self.message!r})"


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return str(value)
