"""Tests for TaskClassifier.

Verifies:
- Keyword matching assigns the expected task type
- Confidence calibration against routing thresholds
- Empty and unrecognized input fall back to help with low confidence
- Parameter extraction (paths, app names, numbers, topics)
- Complexity bumps for long and multi-step input
- Truncation to the configured length
- The quick-classify fast path
"""

import pytest

from hybrid_router.core.classifier import TaskClassifier, extract_paths, find_app_name
from hybrid_router.core.models import ProcessingRoute, TaskComplexity, TaskType


@pytest.fixture
def classifier():
    return TaskClassifier()


class TestTaskTypes:
    """Tests for task type assignment."""

    def test_help(self, classifier):
        """'help' is a confident help request."""
        result = classifier.classify("help")
        assert result.task_type is TaskType.HELP
        assert result.confidence == pytest.approx(0.85, abs=0.01)
        assert result.suggested_route is ProcessingRoute.LOCAL

    def test_file_operation_with_paths(self, classifier):
        """Copy requests extract source and destination paths."""
        result = classifier.classify("copy report.pdf to ~/Documents/archive")
        assert result.task_type is TaskType.FILE_OPERATION
        assert result.requires_confirmation
        assert result.parameters["source"] == "report.pdf"
        assert result.parameters["destination"] == "~/Documents/archive"

    def test_calculation_numbers(self, classifier):
        """Calculations capture the expression and every number."""
        result = classifier.classify("calculate 15 percent of 200")
        assert result.task_type is TaskType.CALCULATION
        assert result.parameters["expression"] == "15 percent of 200"
        assert result.parameters["numbers"] == "15,200"
        assert result.confidence >= 0.8

    def test_app_control_known_app(self, classifier):
        """App names are resolved through the known-app list."""
        result = classifier.classify("please quit Spotify now")
        assert result.task_type is TaskType.APP_CONTROL
        assert result.parameters["app_name"] == "spotify"
        assert result.parameters["action"] == "quit"

    def test_web_query(self, classifier):
        """Search requests capture the query text."""
        result = classifier.classify("search for python tutorials")
        assert result.task_type is TaskType.WEB_QUERY
        assert result.parameters["query"] == "python tutorials"

    def test_automation_is_complex(self, classifier):
        """Automation defaults to complex and suggests the cloud."""
        result = classifier.classify("automate my weekly backup workflow")
        assert result.task_type is TaskType.AUTOMATION
        assert result.complexity is TaskComplexity.COMPLEX
        assert result.suggested_route is ProcessingRoute.CLOUD
        assert result.parameters["frequency"] == "weekly"


class TestConfidence:
    """Tests for confidence calibration and fallbacks."""

    def test_empty_input(self, classifier):
        """Empty input is help with very low confidence."""
        for text in ("", "   "):
            result = classifier.classify(text)
            assert result.task_type is TaskType.HELP
            assert result.confidence < 0.5
            assert result.requires_escalation

    def test_unrecognized_input(self, classifier):
        """Input matching no pattern is help below 0.5."""
        result = classifier.classify("xyzzy plugh")
        assert result.task_type is TaskType.HELP
        assert result.confidence < 0.5
        assert result.suggested_route is ProcessingRoute.CLOUD

    def test_ambiguous_input_escalates(self, classifier):
        """Two equally strong matches halve the confidence."""
        result = classifier.classify("calculate the volume")
        assert result.confidence < 0.6
        assert result.requires_escalation
        assert result.suggested_route is ProcessingRoute.CLOUD

    def test_confidence_capped(self, classifier):
        """Strong multi-keyword matches never exceed 0.95."""
        result = classifier.classify("find and copy and move and rename files")
        assert result.confidence <= 0.95

    def test_escalation_threshold_configurable(self):
        """A stricter threshold flags more results for escalation."""
        strict = TaskClassifier(escalation_threshold=0.9)
        assert strict.classify("help").requires_escalation

    def test_never_raises_on_odd_input(self, classifier):
        """Unusual characters classify without error."""
        result = classifier.classify("\x00☃ ((( [[[ \\ ***")
        assert result.task_type is TaskType.HELP


class TestComplexityAndLength:
    """Tests for complexity bumps and truncation."""

    def test_multi_step_bumps_complexity(self, classifier):
        """'and then' raises the complexity one tier."""
        result = classifier.classify("find the file and then copy it")
        assert result.task_type is TaskType.FILE_OPERATION
        assert result.complexity is TaskComplexity.MODERATE

    def test_long_input_bumps_complexity(self, classifier):
        """Inputs over 200 characters raise the complexity one tier."""
        result = classifier.classify("summarize " + "word " * 50)
        assert result.task_type is TaskType.TEXT_PROCESSING
        assert result.complexity is TaskComplexity.COMPLEX

    def test_truncation(self):
        """Input beyond max_input_length is cut, not rejected."""
        classifier = TaskClassifier(max_input_length=10)
        result = classifier.classify("help " + "x" * 50)
        assert result.truncated
        assert result.task_type is TaskType.HELP

    def test_estimated_duration_scales(self, classifier):
        """Duration grows with complexity."""
        simple = classifier.classify("help")
        bumped = classifier.classify("help me and then explain " + "it " * 80)
        assert bumped.estimated_duration > simple.estimated_duration

    def test_invalid_settings(self):
        """Thresholds outside [0, 1] and zero lengths are rejected."""
        with pytest.raises(ValueError):
            TaskClassifier(escalation_threshold=1.5)
        with pytest.raises(ValueError):
            TaskClassifier(max_input_length=0)


class TestQuickClassify:
    """Tests for the fast path."""

    def test_battery(self, classifier):
        """Battery questions are system queries at 0.9."""
        result = classifier.quick_classify("what's my battery level")
        assert result is not None
        assert result.task_type is TaskType.SYSTEM_QUERY
        assert result.confidence == 0.9
        assert result.complexity is TaskComplexity.SIMPLE
        assert result.parameters == {"query_type": "battery"}

    def test_open_app(self, classifier):
        """'open X' and 'launch X' are app control at 0.85."""
        result = classifier.quick_classify("Launch Safari")
        assert result is not None
        assert result.task_type is TaskType.APP_CONTROL
        assert result.parameters == {"app_name": "safari", "action": "open"}

    def test_system_words_match_whole_words(self, classifier):
        """Words that merely contain battery or storage are not system queries."""
        assert classifier.quick_classify("list the storageclass objects") is None
        assert classifier.quick_classify("recharge the batteryless clock") is None
        result = classifier.quick_classify("how much storage is left")
        assert result.parameters == {"query_type": "storage"}

    def test_confirming_actions_skip_fast_path(self, classifier):
        """Inputs naming a side-effecting action are left to the full classifier."""
        assert classifier.quick_classify("delete the old storage reports") is None
        assert classifier.quick_classify("automate my battery report") is None

    def test_returns_none_otherwise(self, classifier):
        """Anything else defers to the full classifier."""
        assert classifier.quick_classify("what is the meaning of life") is None
        assert classifier.quick_classify("open") is None


class TestHelpers:
    """Tests for extraction helpers."""

    def test_extract_paths_move_into(self):
        """'into' marks the destination."""
        assert extract_paths("move /tmp/a.txt into /var/data") == {
            "source": "/tmp/a.txt",
            "destination": "/var/data",
        }

    def test_extract_paths_none(self):
        """Plain words are not paths."""
        assert extract_paths("tidy up my desk") == {}

    def test_find_app_name_multiword(self):
        """Multi-word app names match on word boundaries."""
        assert find_app_name("open activity monitor please") == "activity monitor"
        assert find_app_name("nothing here") is None
