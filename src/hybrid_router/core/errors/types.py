"""Error taxonomy data: kinds, categories, severities and the static registry.

Every error the router can surface is identified by an ``ErrorKind`` whose
value is a stable code (``"AS003"``, ``"NE001"``, ...). The kind is the
discriminant; everything else about it (category, severity, recoverability,
default retryability, presentation text) lives in ``ERROR_REGISTRY`` so call
sites never re-derive it.

This module is pure data and has no dependencies on the rest of the package.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional


class ErrorSeverity(str, Enum):
    """How serious an error is for the user."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Family an error kind belongs to (the code prefix)."""

    CLASSIFICATION = "classification"
    CLOUD_SERVICE = "cloud_service"
    NETWORK = "network"
    FILE_OPERATION = "file_operation"
    SYSTEM_ACCESS = "system_access"
    APP_INTEGRATION = "app_integration"
    WORKFLOW = "workflow"
    PERMISSION = "permission"
    VALIDATION = "validation"
    ROUTING = "routing"
    UNKNOWN = "unknown"


class ErrorKind(str, Enum):
    """Closed set of error kinds. Values are the stable error codes."""

    # Classification
    INVALID_INPUT = "TC001"
    LOW_CONFIDENCE = "TC002"
    UNSUPPORTED_TASK_TYPE = "TC003"
    PARAMETER_EXTRACTION_FAILED = "TC004"
    MODEL_LOADING_FAILED = "TC005"
    PROCESSING_TIMEOUT = "TC006"
    CONTEXT_TOO_LARGE = "TC007"

    # Cloud AI service
    API_KEY_MISSING = "AS001"
    API_KEY_INVALID = "AS002"
    CLOUD_RATE_LIMITED = "AS003"
    QUOTA_EXCEEDED = "AS004"
    CLOUD_NETWORK_ERROR = "AS005"
    INVALID_RESPONSE = "AS006"
    MODEL_NOT_AVAILABLE = "AS007"
    CONTEXT_LENGTH_EXCEEDED = "AS008"
    TOKEN_LIMIT_EXCEEDED = "AS009"
    STREAMING_FAILED = "AS010"
    FUNCTION_CALL_FAILED = "AS011"
    RESPONSE_PARSING_FAILED = "AS012"
    CLOUD_TIMEOUT = "AS013"
    SERVER_ERROR = "AS014"
    LOCAL_MODEL_LOAD_FAILED = "AS015"
    COST_LIMIT_EXCEEDED = "AS016"
    CIRCUIT_OPEN = "AS017"

    # Network
    NO_CONNECTION = "NE001"
    CONNECTION_TIMEOUT = "NE002"
    HOST_UNREACHABLE = "NE003"
    INVALID_URL = "NE004"
    SSL_ERROR = "NE005"
    HTTP_ERROR = "NE006"
    REQUEST_FAILED = "NE007"
    NETWORK_RESPONSE_PARSING_FAILED = "NE008"
    CERTIFICATE_ERROR = "NE009"
    PROXY_ERROR = "NE010"

    # File operations
    FILE_NOT_FOUND = "FO001"
    INSUFFICIENT_PERMISSIONS = "FO002"
    INSUFFICIENT_DISK_SPACE = "FO003"
    DESTINATION_EXISTS = "FO004"
    INVALID_PATH = "FO005"
    OPERATION_CANCELLED = "FO006"
    COPY_FAILED = "FO007"
    MOVE_FAILED = "FO008"
    DELETE_FAILED = "FO009"
    RENAME_FAILED = "FO010"
    SEARCH_FAILED = "FO011"
    METADATA_EXTRACTION_FAILED = "FO012"
    ORGANIZATION_FAILED = "FO013"
    BATCH_PARTIAL_FAILURE = "FO014"

    # System access
    ACCESSIBILITY_PERMISSION_DENIED = "SA001"
    AUTOMATION_PERMISSION_DENIED = "SA002"
    FULL_DISK_ACCESS_DENIED = "SA003"
    SCREEN_RECORDING_DENIED = "SA004"
    NETWORK_ACCESS_DENIED = "SA005"
    BATTERY_INFO_UNAVAILABLE = "SA006"
    SYSTEM_INFO_UNAVAILABLE = "SA007"
    PROCESS_LIST_UNAVAILABLE = "SA008"
    VOLUME_CONTROL_FAILED = "SA009"
    BRIGHTNESS_CONTROL_FAILED = "SA010"
    NETWORK_CONFIGURATION_FAILED = "SA011"
    SYSTEM_PREFERENCES_ACCESS_DENIED = "SA012"
    SERVICE_UNAVAILABLE = "SA013"

    # App integration
    APP_NOT_FOUND = "AI001"
    APP_NOT_RUNNING = "AI002"
    APP_LAUNCH_FAILED = "AI003"
    SCRIPT_ERROR = "AI004"
    URL_SCHEME_NOT_SUPPORTED = "AI005"
    UI_ELEMENT_NOT_FOUND = "AI006"
    COMMAND_NOT_SUPPORTED = "AI007"
    PARAMETER_MISSING = "AI008"
    AUTOMATION_TIMEOUT = "AI009"
    APP_PERMISSION_DENIED = "AI010"
    SCRIPT_COMPILATION_FAILED = "AI011"
    INTEGRATION_NOT_AVAILABLE = "AI012"

    # Workflow
    WORKFLOW_NOT_FOUND = "WF001"
    INVALID_WORKFLOW_DEFINITION = "WF002"
    STEP_EXECUTION_FAILED = "WF003"
    WORKFLOW_CANCELLED = "WF004"
    WORKFLOW_TIMEOUT = "WF005"
    DEPENDENCY_NOT_MET = "WF006"
    VARIABLE_NOT_FOUND = "WF007"
    CONDITIONAL_EVALUATION_FAILED = "WF008"
    LOOP_LIMIT_EXCEEDED = "WF009"
    RECURSION_LIMIT_EXCEEDED = "WF010"
    WORKFLOW_VALIDATION_FAILED = "WF011"
    SCHEDULING_FAILED = "WF012"
    CONCURRENCY_LIMIT_EXCEEDED = "WF013"

    # Permissions
    ACCESSIBILITY_NOT_GRANTED = "PE001"
    AUTOMATION_NOT_GRANTED = "PE002"
    FULL_DISK_ACCESS_NOT_GRANTED = "PE003"
    SCREEN_RECORDING_NOT_GRANTED = "PE004"
    MICROPHONE_NOT_GRANTED = "PE005"
    CAMERA_NOT_GRANTED = "PE006"
    CONTACTS_NOT_GRANTED = "PE007"
    CALENDARS_NOT_GRANTED = "PE008"
    REMINDERS_NOT_GRANTED = "PE009"
    PHOTOS_NOT_GRANTED = "PE010"
    LOCATION_NOT_GRANTED = "PE011"
    NOTIFICATIONS_NOT_GRANTED = "PE012"
    FILE_SYSTEM_ACCESS_DENIED = "PE013"
    KEYCHAIN_ACCESS_DENIED = "PE014"
    PERMISSION_NETWORK_DENIED = "PE015"

    # Validation
    EMPTY_INPUT = "VE001"
    INVALID_FORMAT = "VE002"
    VALUE_OUT_OF_RANGE = "VE003"
    REQUIRED_FIELD_MISSING = "VE004"
    INVALID_CHARACTERS = "VE005"
    LENGTH_EXCEEDED = "VE006"
    LENGTH_TOO_SHORT = "VE007"
    INVALID_EMAIL = "VE008"
    INVALID_URL_VALUE = "VE009"
    INVALID_PATH_VALUE = "VE010"
    INVALID_DATE = "VE011"
    INVALID_NUMBER = "VE012"
    DUPLICATE_VALUE = "VE013"
    DEPENDENCY_VALIDATION_FAILED = "VE014"
    CUSTOM_VALIDATION_FAILED = "VE015"

    # Routing
    CLOUD_SERVICE_UNAVAILABLE = "RT001"
    ROUTING_RATE_LIMITED = "RT002"
    ROUTING_TIMEOUT = "RT003"
    INVALID_CLOUD_RESPONSE = "RT004"
    CACHE_ERROR = "RT005"
    FALLBACK_FAILED = "RT006"
    INTERNAL_ERROR = "RT007"

    UNKNOWN = "UE001"

    @property
    def code(self) -> str:
        return self.value


@dataclass(frozen=True)
class ErrorSpec:
    """Static description of an error kind.

    Attributes:
        category: Family the kind belongs to
        severity: Default severity
        is_recoverable: Whether the user or the system can recover
        default_retryable: Whether the default retry policy retries it
        description: Short human-readable description
        recovery_suggestion: What the user can do about it
    """

    category: ErrorCategory
    severity: ErrorSeverity
    is_recoverable: bool
    default_retryable: bool
    description: str
    recovery_suggestion: str


# Codes retried by the default retry policy
DEFAULT_RETRYABLE_CODES: FrozenSet[str] = frozenset(
    {
        "NE001",
        "NE002",
        "NE003",
        "NE007",
        "AS003",
        "AS005",
        "AS013",
        "AS014",
        "SA005",
        "SA009",
        "SA010",
        "SA011",
        "FO007",
        "FO008",
        "FO011",
        "FO012",
    }
)

_CATEGORY_BY_PREFIX: Dict[str, ErrorCategory] = {
    "TC": ErrorCategory.CLASSIFICATION,
    "AS": ErrorCategory.CLOUD_SERVICE,
    "NE": ErrorCategory.NETWORK,
    "FO": ErrorCategory.FILE_OPERATION,
    "SA": ErrorCategory.SYSTEM_ACCESS,
    "AI": ErrorCategory.APP_INTEGRATION,
    "WF": ErrorCategory.WORKFLOW,
    "PE": ErrorCategory.PERMISSION,
    "VE": ErrorCategory.VALIDATION,
    "RT": ErrorCategory.ROUTING,
    "UE": ErrorCategory.UNKNOWN,
}

_DEFAULT_SUGGESTIONS: Dict[ErrorCategory, str] = {
    ErrorCategory.CLASSIFICATION: "Try rephrasing your request with more specific details",
    ErrorCategory.CLOUD_SERVICE: "Please try again in a few moments",
    ErrorCategory.NETWORK: "Check your internet connection and try again",
    ErrorCategory.FILE_OPERATION: "Check the file path and try again",
    ErrorCategory.SYSTEM_ACCESS: "Grant the required access in system settings",
    ErrorCategory.APP_INTEGRATION: "Make sure the application is installed and running",
    ErrorCategory.WORKFLOW: "Review the workflow definition and try again",
    ErrorCategory.PERMISSION: "Grant the permission in system settings and try again",
    ErrorCategory.VALIDATION: "Correct the input and try again",
    ErrorCategory.ROUTING: "Please try again or rephrase your request",
    ErrorCategory.UNKNOWN: "Please try again or rephrase your request",
}

_L = ErrorSeverity.LOW
_M = ErrorSeverity.MEDIUM
_H = ErrorSeverity.HIGH
_C = ErrorSeverity.CRITICAL

# kind -> (severity, is_recoverable, description, recovery suggestion or None)
_TABLE: Dict[ErrorKind, tuple] = {
    ErrorKind.INVALID_INPUT: (_L, True, "Invalid input provided", None),
    ErrorKind.LOW_CONFIDENCE: (_L, True, "Could not determine the task with enough confidence", None),
    ErrorKind.UNSUPPORTED_TASK_TYPE: (_M, False, "This type of task is not supported", "Try a different kind of request"),
    ErrorKind.PARAMETER_EXTRACTION_FAILED: (_L, True, "Could not extract the task details", None),
    ErrorKind.MODEL_LOADING_FAILED: (_H, False, "Classification model failed to load", "Restart the application"),
    ErrorKind.PROCESSING_TIMEOUT: (_H, False, "Classification timed out", "Try a shorter request"),
    ErrorKind.CONTEXT_TOO_LARGE: (_M, True, "Input is too large to classify", "Try a shorter request"),
    ErrorKind.API_KEY_MISSING: (_H, True, "Cloud API key is missing", "Add an API key to the configuration"),
    ErrorKind.API_KEY_INVALID: (_H, True, "Cloud API key is invalid", "Check the configured API key"),
    ErrorKind.CLOUD_RATE_LIMITED: (_M, True, "Rate limit exceeded", "Wait for the rate limit to reset or try a simpler request"),
    ErrorKind.QUOTA_EXCEEDED: (_M, True, "Cloud usage quota exceeded", "Check your plan or wait for the quota to reset"),
    ErrorKind.CLOUD_NETWORK_ERROR: (_M, True, "Network error talking to the cloud service", None),
    ErrorKind.INVALID_RESPONSE: (_L, True, "Invalid response from the cloud service", "Try rephrasing your request"),
    ErrorKind.MODEL_NOT_AVAILABLE: (_M, True, "Requested model is not available", "Try again later or choose another model"),
    ErrorKind.CONTEXT_LENGTH_EXCEEDED: (_L, True, "Request exceeds the model context length", "Try a shorter request"),
    ErrorKind.TOKEN_LIMIT_EXCEEDED: (_L, True, "Request exceeds the token limit", "Try a shorter request"),
    ErrorKind.STREAMING_FAILED: (_L, True, "Streaming response failed", None),
    ErrorKind.FUNCTION_CALL_FAILED: (_L, True, "Function call failed", None),
    ErrorKind.RESPONSE_PARSING_FAILED: (_L, True, "Could not parse the cloud response", "Try rephrasing your request"),
    ErrorKind.CLOUD_TIMEOUT: (_M, True, "Request timed out", "Check your internet connection and try again"),
    ErrorKind.SERVER_ERROR: (_H, True, "Cloud service returned a server error", None),
    ErrorKind.LOCAL_MODEL_LOAD_FAILED: (_H, False, "Local model failed to load", "Restart the application"),
    ErrorKind.COST_LIMIT_EXCEEDED: (_M, True, "Spending limit reached", "Raise the cost ceiling or wait for the next billing period"),
    ErrorKind.CIRCUIT_OPEN: (_M, True, "Cloud AI service is temporarily unavailable", "The service will be retried automatically shortly"),
    ErrorKind.NO_CONNECTION: (_M, True, "No network connection", None),
    ErrorKind.CONNECTION_TIMEOUT: (_M, True, "Connection timed out", None),
    ErrorKind.HOST_UNREACHABLE: (_M, True, "Host is unreachable", None),
    ErrorKind.INVALID_URL: (_L, False, "Invalid URL", "Check the URL"),
    ErrorKind.SSL_ERROR: (_H, True, "Secure connection failed", None),
    ErrorKind.HTTP_ERROR: (_M, True, "HTTP request failed", None),
    ErrorKind.REQUEST_FAILED: (_M, True, "Network request failed", None),
    ErrorKind.NETWORK_RESPONSE_PARSING_FAILED: (_L, True, "Could not parse the network response", None),
    ErrorKind.CERTIFICATE_ERROR: (_H, True, "Certificate validation failed", None),
    ErrorKind.PROXY_ERROR: (_M, True, "Proxy error", "Check your proxy settings"),
    ErrorKind.FILE_NOT_FOUND: (_L, True, "File not found", None),
    ErrorKind.INSUFFICIENT_PERMISSIONS: (_M, True, "Insufficient permissions for the file", "Check the file permissions"),
    ErrorKind.INSUFFICIENT_DISK_SPACE: (_H, True, "Not enough disk space", "Free up disk space and try again"),
    ErrorKind.DESTINATION_EXISTS: (_L, True, "Destination already exists", "Choose a different destination"),
    ErrorKind.INVALID_PATH: (_L, True, "Invalid file path", None),
    ErrorKind.OPERATION_CANCELLED: (_L, True, "File operation cancelled", "Run the operation again if needed"),
    ErrorKind.COPY_FAILED: (_H, True, "Copy failed", None),
    ErrorKind.MOVE_FAILED: (_H, True, "Move failed", None),
    ErrorKind.DELETE_FAILED: (_H, True, "Delete failed", None),
    ErrorKind.RENAME_FAILED: (_H, True, "Rename failed", None),
    ErrorKind.SEARCH_FAILED: (_M, True, "File search failed", None),
    ErrorKind.METADATA_EXTRACTION_FAILED: (_M, True, "Could not read file metadata", None),
    ErrorKind.ORGANIZATION_FAILED: (_M, True, "File organization failed", None),
    ErrorKind.BATCH_PARTIAL_FAILURE: (_M, True, "Some files in the batch failed", "Review the failed files and retry them"),
    ErrorKind.ACCESSIBILITY_PERMISSION_DENIED: (_H, True, "Accessibility access denied", None),
    ErrorKind.AUTOMATION_PERMISSION_DENIED: (_H, True, "Automation access denied", None),
    ErrorKind.FULL_DISK_ACCESS_DENIED: (_M, True, "Full disk access denied", None),
    ErrorKind.SCREEN_RECORDING_DENIED: (_M, True, "Screen recording access denied", None),
    ErrorKind.NETWORK_ACCESS_DENIED: (_M, True, "Network access denied", None),
    ErrorKind.BATTERY_INFO_UNAVAILABLE: (_L, False, "Battery information unavailable", "This device may not report battery status"),
    ErrorKind.SYSTEM_INFO_UNAVAILABLE: (_L, False, "System information unavailable", "Check system information manually"),
    ErrorKind.PROCESS_LIST_UNAVAILABLE: (_L, False, "Process list unavailable", "Use the system activity monitor"),
    ErrorKind.VOLUME_CONTROL_FAILED: (_L, True, "Volume control failed", None),
    ErrorKind.BRIGHTNESS_CONTROL_FAILED: (_L, True, "Brightness control failed", None),
    ErrorKind.NETWORK_CONFIGURATION_FAILED: (_M, True, "Network configuration failed", None),
    ErrorKind.SYSTEM_PREFERENCES_ACCESS_DENIED: (_M, True, "System settings access denied", None),
    ErrorKind.SERVICE_UNAVAILABLE: (_M, False, "System service unavailable", "Try again later"),
    ErrorKind.APP_NOT_FOUND: (_M, True, "Application not found", "Check the application name"),
    ErrorKind.APP_NOT_RUNNING: (_M, True, "Application is not running", "Launch the application first"),
    ErrorKind.APP_LAUNCH_FAILED: (_H, True, "Application failed to launch", None),
    ErrorKind.SCRIPT_ERROR: (_M, True, "Automation script failed", None),
    ErrorKind.URL_SCHEME_NOT_SUPPORTED: (_L, True, "URL scheme not supported", None),
    ErrorKind.UI_ELEMENT_NOT_FOUND: (_M, True, "Interface element not found", None),
    ErrorKind.COMMAND_NOT_SUPPORTED: (_L, False, "Command not supported by the application", "Try a different command"),
    ErrorKind.PARAMETER_MISSING: (_L, True, "Required parameter missing", "Provide the missing detail"),
    ErrorKind.AUTOMATION_TIMEOUT: (_M, True, "Application automation timed out", None),
    ErrorKind.APP_PERMISSION_DENIED: (_H, True, "Permission to control the application denied", None),
    ErrorKind.SCRIPT_COMPILATION_FAILED: (_H, False, "Automation script failed to compile", "Report this problem"),
    ErrorKind.INTEGRATION_NOT_AVAILABLE: (_L, False, "Integration not available for this application", "Try a different application"),
    ErrorKind.WORKFLOW_NOT_FOUND: (_M, True, "Workflow not found", None),
    ErrorKind.INVALID_WORKFLOW_DEFINITION: (_M, True, "Invalid workflow definition", None),
    ErrorKind.STEP_EXECUTION_FAILED: (_H, True, "Workflow step failed", None),
    ErrorKind.WORKFLOW_CANCELLED: (_L, True, "Workflow cancelled", "Run the workflow again if needed"),
    ErrorKind.WORKFLOW_TIMEOUT: (_M, True, "Workflow timed out", None),
    ErrorKind.DEPENDENCY_NOT_MET: (_M, True, "Workflow dependency not met", None),
    ErrorKind.VARIABLE_NOT_FOUND: (_M, True, "Workflow variable not found", None),
    ErrorKind.CONDITIONAL_EVALUATION_FAILED: (_M, True, "Workflow condition could not be evaluated", None),
    ErrorKind.LOOP_LIMIT_EXCEEDED: (_H, False, "Workflow loop limit exceeded", "Reduce the number of iterations"),
    ErrorKind.RECURSION_LIMIT_EXCEEDED: (_H, False, "Workflow recursion limit exceeded", "Reduce workflow nesting"),
    ErrorKind.WORKFLOW_VALIDATION_FAILED: (_M, True, "Workflow validation failed", None),
    ErrorKind.SCHEDULING_FAILED: (_H, True, "Workflow scheduling failed", None),
    ErrorKind.CONCURRENCY_LIMIT_EXCEEDED: (_M, True, "Too many workflows running", "Wait for running workflows to finish"),
    ErrorKind.ACCESSIBILITY_NOT_GRANTED: (_H, True, "Accessibility permission not granted", None),
    ErrorKind.AUTOMATION_NOT_GRANTED: (_H, True, "Automation permission not granted", None),
    ErrorKind.FULL_DISK_ACCESS_NOT_GRANTED: (_H, True, "Full disk access not granted", None),
    ErrorKind.SCREEN_RECORDING_NOT_GRANTED: (_M, True, "Screen recording permission not granted", None),
    ErrorKind.MICROPHONE_NOT_GRANTED: (_L, True, "Microphone permission not granted", None),
    ErrorKind.CAMERA_NOT_GRANTED: (_L, True, "Camera permission not granted", None),
    ErrorKind.CONTACTS_NOT_GRANTED: (_M, True, "Contacts permission not granted", None),
    ErrorKind.CALENDARS_NOT_GRANTED: (_M, True, "Calendar permission not granted", None),
    ErrorKind.REMINDERS_NOT_GRANTED: (_M, True, "Reminders permission not granted", None),
    ErrorKind.PHOTOS_NOT_GRANTED: (_L, True, "Photos permission not granted", None),
    ErrorKind.LOCATION_NOT_GRANTED: (_L, True, "Location permission not granted", None),
    ErrorKind.NOTIFICATIONS_NOT_GRANTED: (_M, True, "Notification permission not granted", None),
    ErrorKind.FILE_SYSTEM_ACCESS_DENIED: (_H, True, "File system access denied", None),
    ErrorKind.KEYCHAIN_ACCESS_DENIED: (_M, True, "Credential store access denied", None),
    ErrorKind.PERMISSION_NETWORK_DENIED: (_M, True, "Network permission not granted", None),
    ErrorKind.EMPTY_INPUT: (_M, True, "Input is empty", "Enter a request"),
    ErrorKind.INVALID_FORMAT: (_L, True, "Invalid format", None),
    ErrorKind.VALUE_OUT_OF_RANGE: (_L, True, "Value out of range", None),
    ErrorKind.REQUIRED_FIELD_MISSING: (_M, True, "Required field missing", None),
    ErrorKind.INVALID_CHARACTERS: (_L, True, "Input contains invalid characters", None),
    ErrorKind.LENGTH_EXCEEDED: (_L, True, "Input is too long", None),
    ErrorKind.LENGTH_TOO_SHORT: (_L, True, "Input is too short", None),
    ErrorKind.INVALID_EMAIL: (_L, True, "Invalid email address", None),
    ErrorKind.INVALID_URL_VALUE: (_L, True, "Invalid URL value", None),
    ErrorKind.INVALID_PATH_VALUE: (_L, True, "Invalid path value", None),
    ErrorKind.INVALID_DATE: (_L, True, "Invalid date", None),
    ErrorKind.INVALID_NUMBER: (_L, True, "Invalid number", None),
    ErrorKind.DUPLICATE_VALUE: (_M, True, "Duplicate value", None),
    ErrorKind.DEPENDENCY_VALIDATION_FAILED: (_H, True, "Dependent value failed validation", None),
    ErrorKind.CUSTOM_VALIDATION_FAILED: (_M, True, "Validation failed", None),
    ErrorKind.CLOUD_SERVICE_UNAVAILABLE: (_M, True, "Cloud AI service is currently unavailable", "Try again later. Requests that can be handled locally are unaffected"),
    ErrorKind.ROUTING_RATE_LIMITED: (_M, True, "Rate limit exceeded", "Wait for the rate limit to reset or try a simpler request"),
    ErrorKind.ROUTING_TIMEOUT: (_M, True, "Request timed out", "Check your internet connection and try again"),
    ErrorKind.INVALID_CLOUD_RESPONSE: (_L, True, "Invalid response from cloud service", "Try rephrasing your request"),
    ErrorKind.CACHE_ERROR: (_L, True, "Cache error", "Cache will be cleared automatically"),
    ErrorKind.FALLBACK_FAILED: (_C, False, "All fallback mechanisms failed", "Please try a different approach or contact support"),
    ErrorKind.INTERNAL_ERROR: (_H, False, "Internal error", "Please restart the application if the problem persists"),
    ErrorKind.UNKNOWN: (_M, True, "An unexpected error occurred", None),
}


def _build_registry() -> Dict[ErrorKind, ErrorSpec]:
    registry: Dict[ErrorKind, ErrorSpec] = {}
    for kind in ErrorKind:
        severity, recoverable, description, suggestion = _TABLE[kind]
        category = _CATEGORY_BY_PREFIX[kind.value[:2]]
        registry[kind] = ErrorSpec(
            category=category,
            severity=severity,
            is_recoverable=recoverable,
            default_retryable=kind.value in DEFAULT_RETRYABLE_CODES,
            description=description,
            recovery_suggestion=suggestion or _DEFAULT_SUGGESTIONS[category],
        )
    return registry


ERROR_REGISTRY: Dict[ErrorKind, ErrorSpec] = _build_registry()


def get_spec(kind: ErrorKind) -> ErrorSpec:
    """Return the registry entry for an error kind."""
    return ERROR_REGISTRY[kind]


def kind_for_code(code: str) -> Optional[ErrorKind]:
    """Look up an error kind by its code, or None if the code is unknown."""
    try:
        return ErrorKind(code)
    except ValueError:
        return None
