"""Keyword and pattern based task classification.

Scores every task type against the input, picks the best, calibrates a
confidence from how strong and how unambiguous the match is, and extracts
parameters with regexes. No network access and no shared mutable state, so
one classifier can serve any number of concurrent requests.

Confidence calibration:

    raw(type)  = min(1, matched_weight / (weight * 1.5))
    strength   = 0.55 + 0.45 * raw(best)
    confidence = strength * (1 - 0.5 * raw(runner_up) / raw(best))

capped at 0.95. One strong keyword with no competing type gives 0.85; two
types matching equally well give about 0.43.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Pattern, Protocol, Tuple

from hybrid_router.core.models import (
    ProcessingRoute,
    TaskClassificationResult,
    TaskComplexity,
    TaskType,
)

logger = logging.getLogger(__name__)

DEFAULT_ESCALATION_THRESHOLD = 0.7
DEFAULT_MAX_INPUT_LENGTH = 2000

# Inputs longer than this are bumped one complexity tier
LONG_INPUT_CHARS = 200
MULTI_STEP_MARKERS = ("and then", "after that")

# Whole-word system queries answered by quick_classify
_QUICK_SYSTEM_QUERY = re.compile(r"\b(battery|storage)\b")

PHRASE_BONUS = 1.5
MAX_CONFIDENCE = 0.95
EMPTY_CONFIDENCE = 0.1
UNRECOGNIZED_CONFIDENCE = 0.3


class Classifier(Protocol):
    """Anything the router can classify with."""

    def classify(self, text: str) -> TaskClassificationResult: ...

    def quick_classify(self, text: str) -> Optional[TaskClassificationResult]: ...


# =============================================================================
# Patterns
# =============================================================================


@dataclass(frozen=True)
class ParameterExtractor:
    """Regex pulling one named parameter out of the input.

    The first capture group is the value. With ``collect_all`` every match
    is kept, comma-joined.
    """

    name: str
    pattern: Pattern[str]
    collect_all: bool = False

    def extract(self, text: str) -> Optional[str]:
        if self.collect_all:
            values = [m.group(1) for m in self.pattern.finditer(text)]
            return ",".join(values) if values else None
        match = self.pattern.search(text)
        if match is None:
            return None
        value = match.group(1).strip()
        return value or None


def _extractor(name: str, pattern: str, *, collect_all: bool = False) -> ParameterExtractor:
    return ParameterExtractor(name, re.compile(pattern, re.IGNORECASE), collect_all)


@dataclass(frozen=True)
class ClassificationPattern:
    task_type: TaskType
    keywords: Tuple[str, ...]
    weight: float
    complexity: TaskComplexity = TaskComplexity.SIMPLE
    requires_confirmation: bool = False
    extractors: Tuple[ParameterExtractor, ...] = ()
    _matchers: Tuple[Tuple[Pattern[str], bool], ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        matchers = tuple(
            (re.compile(r"\b" + re.escape(keyword) + r"\b"), " " in keyword)
            for keyword in self.keywords
        )
        object.__setattr__(self, "_matchers", matchers)

    def score(self, normalized: str) -> float:
        """Raw score in [0, 1] for an already normalized input."""
        matched = 0.0
        for matcher, is_phrase in self._matchers:
            if matcher.search(normalized):
                matched += self.weight * PHRASE_BONUS if is_phrase else self.weight
        return min(1.0, matched / (self.weight * PHRASE_BONUS))


PATTERNS: Tuple[ClassificationPattern, ...] = (
    ClassificationPattern(
        TaskType.FILE_OPERATION,
        ("copy", "move", "delete", "rename", "organize", "find", "create folder", "mkdir"),
        weight=1.2,
        requires_confirmation=True,
        extractors=(
            _extractor("filename", r"(?:create|find)\s+(?:file\s+)?[\"']?([^\"'\s]+\.[a-z0-9]+)[\"']?"),
            _extractor("extension", r"\bfind\b.*?\.([a-z0-9]+)\b"),
            _extractor("directory", r"\b(?:in|from)\s+[\"']?([~/][^\"'\s]*)[\"']?"),
        ),
    ),
    ClassificationPattern(
        TaskType.SYSTEM_QUERY,
        ("battery", "storage", "memory", "disk space", "cpu", "network", "wifi", "system info", "running apps"),
        weight=1.1,
        extractors=(
            _extractor("query_type", r"\b(battery|storage|memory|disk|cpu|network|wifi|system)\b"),
            _extractor("unit", r"\b(percentage|percent|gb|mb|kb|bytes)\b"),
        ),
    ),
    ClassificationPattern(
        TaskType.APP_CONTROL,
        ("open", "launch", "start", "close", "quit", "switch to", "activate", "minimize", "maximize"),
        weight=1.0,
        extractors=(
            _extractor("app_name", r"\b(?:open|launch|start|close|quit|switch to|activate)\s+([a-z0-9][\w.-]*)"),
            _extractor("action", r"\b(open|launch|start|close|quit|minimize|maximize|activate)\b"),
        ),
    ),
    ClassificationPattern(
        TaskType.TEXT_PROCESSING,
        ("summarize", "translate", "format", "convert", "extract", "analyze", "count words", "spell check"),
        weight=0.9,
        complexity=TaskComplexity.MODERATE,
        extractors=(
            _extractor("action", r"\b(summarize|translate|format|convert|extract|analyze|count|spell check)\b"),
            _extractor("format", r"\b(?:to|as)\s+(pdf|docx|txt|html|markdown)\b"),
            _extractor("language", r"\b(?:to|in)\s+([a-z]+)\s*$"),
        ),
    ),
    ClassificationPattern(
        TaskType.CALCULATION,
        ("calculate", "compute", "math", "add", "subtract", "multiply", "divide", "percentage", "convert units"),
        weight=1.0,
        extractors=(
            _extractor("expression", r"\b(?:calculate|compute)\s+(.+)"),
            _extractor("operation", r"\b(add|subtract|multiply|divide|percentage|convert)\b"),
        ),
    ),
    ClassificationPattern(
        TaskType.WEB_QUERY,
        ("search", "google", "browse", "website", "url", "bookmark", "web"),
        weight=0.8,
        extractors=(
            _extractor("query", r"\b(?:search|google)\s+(?:the\s+web\s+)?(?:for\s+)?(.+)"),
            _extractor("url", r"(https?://\S+|www\.\S+|\b[a-z0-9-]+\.(?:com|org|net|io|dev|edu|gov)\b)"),
            _extractor("action", r"\b(search|browse|bookmark|open)\b"),
        ),
    ),
    ClassificationPattern(
        TaskType.AUTOMATION,
        ("workflow", "automate", "schedule", "repeat", "batch", "script", "macro"),
        weight=0.9,
        complexity=TaskComplexity.COMPLEX,
        requires_confirmation=True,
        extractors=(
            _extractor("action", r"\b(create|run|schedule|automate)\b"),
        ),
    ),
    ClassificationPattern(
        TaskType.SETTINGS,
        ("settings", "preferences", "configure", "setup", "change", "adjust", "volume", "brightness"),
        weight=1.0,
        extractors=(
            _extractor("setting", r"\b(volume|brightness|theme|language|notifications)\b"),
            _extractor("value", r"\b(?:to|at)\s+(\d+%?|\w+)"),
        ),
    ),
    ClassificationPattern(
        TaskType.HELP,
        ("help", "how to", "tutorial", "guide", "explain", "what is", "show me"),
        weight=0.7,
        extractors=(
            _extractor("topic", r"\b(?:help with|help me with|how to|explain|what is|show me)\s+(.+)"),
        ),
    ),
)

# Extractors applied whatever the task type
_COMMON_EXTRACTORS: Tuple[ParameterExtractor, ...] = (
    _extractor("numbers", r"(?<![\w.])(\d+(?:\.\d+)?)", collect_all=True),
    _extractor("frequency", r"\b(daily|weekly|monthly|hourly|every\s+\d+\s*\w*)"),
    _extractor("time", r"\b(\d{1,2}(?::\d{2})?\s*(?:am|pm)|\d{1,2}:\d{2})\b"),
)

KNOWN_APPS: Tuple[str, ...] = (
    "system preferences",
    "activity monitor",
    "safari",
    "chrome",
    "firefox",
    "mail",
    "calendar",
    "notes",
    "finder",
    "terminal",
    "xcode",
    "vscode",
    "photoshop",
    "illustrator",
    "sketch",
    "figma",
    "slack",
    "discord",
    "spotify",
    "music",
    "photos",
    "preview",
    "textedit",
    "pages",
    "numbers",
    "keynote",
)

_KNOWN_APP_PATTERNS = tuple((app, re.compile(r"\b" + re.escape(app) + r"\b")) for app in KNOWN_APPS)

_BASE_DURATIONS: Dict[TaskType, float] = {
    TaskType.SYSTEM_QUERY: 0.5,
    TaskType.CALCULATION: 0.5,
    TaskType.HELP: 0.5,
    TaskType.FILE_OPERATION: 1.0,
    TaskType.APP_CONTROL: 1.0,
    TaskType.SETTINGS: 1.0,
    TaskType.TEXT_PROCESSING: 2.0,
    TaskType.WEB_QUERY: 2.0,
    TaskType.AUTOMATION: 5.0,
    TaskType.UNKNOWN: 1.0,
}

_WHITESPACE = re.compile(r"\s+")
_PATH_TRIM = "\"'`,;:!?()[]{}"
_FILENAME = re.compile(r"^[\w.-]*\w\.[A-Za-z0-9]{1,5}$")


def normalize(text: str) -> str:
    return _WHITESPACE.sub(" ", text.strip()).casefold()


def estimate_duration(task_type: TaskType, complexity: TaskComplexity) -> float:
    """Expected processing seconds for a task type at a complexity tier."""
    return _BASE_DURATIONS[task_type] * complexity.duration_multiplier


def extract_paths(text: str) -> Dict[str, str]:
    """Find path-like tokens and label them ``source``/``destination``.

    A token counts as a path when it contains ``/``, starts with ``~``, or
    looks like a file name with an extension. A path right after ``to`` or
    ``into`` is the destination; the first other path is the source.
    """
    found: Dict[str, str] = {}
    previous = ""
    for raw in text.split():
        token = raw.strip(_PATH_TRIM).rstrip(".")
        if token and ("/" in token or token.startswith("~") or _FILENAME.match(token)):
            if previous in ("to", "into"):
                found.setdefault("destination", token)
            else:
                found.setdefault("source", token)
        previous = raw.casefold()
    return found


def find_app_name(normalized: str) -> Optional[str]:
    """Return the first known application named in the input."""
    for app, pattern in _KNOWN_APP_PATTERNS:
        if pattern.search(normalized):
            return app
    return None


# =============================================================================
# Classifier
# =============================================================================


class TaskClassifier:
    """Default classifier.

    Args:
        escalation_threshold: Confidence below which results are flagged for escalation
        max_input_length: Inputs are cut to this many characters before classifying
    """

    def __init__(
        self,
        *,
        escalation_threshold: float = DEFAULT_ESCALATION_THRESHOLD,
        max_input_length: int = DEFAULT_MAX_INPUT_LENGTH,
        patterns: Tuple[ClassificationPattern, ...] = PATTERNS,
    ):
        if not 0.0 <= escalation_threshold <= 1.0:
            raise ValueError(f"escalation_threshold must be in [0, 1], got {escalation_threshold}")
        if max_input_length < 1:
            raise ValueError(f"max_input_length must be positive, got {max_input_length}")
        self.escalation_threshold = escalation_threshold
        self.max_input_length = max_input_length
        self.patterns = patterns

    def _truncate(self, text: str) -> Tuple[str, bool]:
        if len(text) > self.max_input_length:
            return text[: self.max_input_length], True
        return text, False

    def classify(self, text: str) -> TaskClassificationResult:
        """Classify ``text``. Never raises.

        Empty input and input no pattern recognizes both come back as HELP
        with a confidence below 0.5.
        """
        text, truncated = self._truncate(text or "")
        normalized = normalize(text)
        if not normalized:
            return self._build(TaskType.HELP, EMPTY_CONFIDENCE, TaskComplexity.SIMPLE, {}, False, truncated)

        scores: List[Tuple[float, ClassificationPattern]] = [
            (pattern.score(normalized), pattern) for pattern in self.patterns
        ]
        scores = sorted((s for s in scores if s[0] > 0), key=lambda s: s[0], reverse=True)
        if not scores:
            logger.debug("No pattern matched input (%d chars)", len(normalized))
            return self._build(
                TaskType.HELP, UNRECOGNIZED_CONFIDENCE, TaskComplexity.SIMPLE, {}, False, truncated
            )

        best_score, best = scores[0]
        runner_up = scores[1][0] if len(scores) > 1 else 0.0
        confidence = self._calibrate(best_score, runner_up)

        complexity = best.complexity
        if len(normalized) > LONG_INPUT_CHARS or any(m in normalized for m in MULTI_STEP_MARKERS):
            complexity = complexity.bumped()

        parameters = self._extract_parameters(text, normalized, best)
        return self._build(
            best.task_type, confidence, complexity, parameters, best.requires_confirmation, truncated
        )

    @staticmethod
    def _calibrate(best: float, runner_up: float) -> float:
        strength = 0.55 + 0.45 * best
        ambiguity = runner_up / best if best > 0 else 1.0
        return round(min(MAX_CONFIDENCE, strength * (1.0 - 0.5 * ambiguity)), 4)

    def _extract_parameters(
        self, text: str, normalized: str, pattern: ClassificationPattern
    ) -> Dict[str, str]:
        parameters: Dict[str, str] = {}
        for extractor in pattern.extractors + _COMMON_EXTRACTORS:
            value = extractor.extract(text)
            if value is not None:
                parameters.setdefault(extractor.name, value)

        if pattern.task_type is TaskType.FILE_OPERATION:
            for key, value in extract_paths(text).items():
                parameters.setdefault(key, value)
        elif pattern.task_type is TaskType.APP_CONTROL:
            app = find_app_name(normalized)
            if app is not None:
                parameters["app_name"] = app
            elif "app_name" in parameters:
                parameters["app_name"] = parameters["app_name"].lower()
        return parameters

    def _build(
        self,
        task_type: TaskType,
        confidence: float,
        complexity: TaskComplexity,
        parameters: Dict[str, str],
        requires_confirmation: bool,
        truncated: bool,
    ) -> TaskClassificationResult:
        if confidence >= self.escalation_threshold:
            route = complexity.suggested_route
        else:
            route = ProcessingRoute.CLOUD
        return TaskClassificationResult(
            task_type=task_type,
            confidence=confidence,
            complexity=complexity,
            parameters=parameters,
            suggested_route=route,
            requires_confirmation=requires_confirmation,
            requires_escalation=confidence < self.escalation_threshold,
            estimated_duration=estimate_duration(task_type, complexity),
            truncated=truncated,
        )

    def _names_confirming_action(self, normalized: str) -> bool:
        return any(p.requires_confirmation and p.score(normalized) > 0 for p in self.patterns)

    def quick_classify(self, text: str) -> Optional[TaskClassificationResult]:
        """Fast path for a few obvious requests; None means use ``classify``."""
        text, truncated = self._truncate(text or "")
        normalized = normalize(text)

        match = _QUICK_SYSTEM_QUERY.search(normalized)
        # "delete the storage reports" is a file operation, not a storage query
        if match and not self._names_confirming_action(normalized):
            query_type = match.group(1)
            return self._build(
                TaskType.SYSTEM_QUERY, 0.9, TaskComplexity.SIMPLE, {"query_type": query_type}, False, truncated
            )

        for prefix in ("open ", "launch "):
            if normalized.startswith(prefix):
                app_name = normalized[len(prefix):].strip()
                if app_name:
                    return self._build(
                        TaskType.APP_CONTROL,
                        0.85,
                        TaskComplexity.SIMPLE,
                        {"app_name": app_name, "action": "open"},
                        False,
                        truncated,
                    )
        return None
