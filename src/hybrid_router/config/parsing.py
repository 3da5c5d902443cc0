"""Parsing and normalization helpers for configuration values."""

import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


def _parse_optional_float(value: Any) -> Optional[float]:
    """Parse a float where empty, ``none`` or ``0`` mean "not set"."""
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in {"", "none", "null", "off"}:
        return None
    parsed = float(value)
    return parsed if parsed > 0 else None


def _normalize_log_level(value: str) -> str:
    normalized = value.strip().upper()
    if normalized not in _VALID_LOG_LEVELS:
        logger.warning(
            "Invalid log level '%s'. Falling back to 'INFO'. Valid options: %s",
            value,
            ", ".join(sorted(_VALID_LOG_LEVELS)),
        )
        return "INFO"
    return normalized
