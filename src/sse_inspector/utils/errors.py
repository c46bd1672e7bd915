"""
Error handling framework for SSE Inspector.

This module provides:
- Hierarchical exception classes
- Error context preservation
- Structured error responses
"""

from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from contextlib import contextmanager

from .logging import get_logger


logger = get_logger("sse-inspector.errors")


class ErrorSeverity(Enum):
    """Error severity levels."""
    WARNING = "warning"
    ERROR = "error"


class ErrorCategory(Enum):
    """Error categories for classification."""
    NETWORK = "network"
    STREAM = "stream"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    STORAGE = "storage"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Context information for an error."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    component: Optional[str] = None
    operation: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class InspectorError(Exception):
    """Base exception for all SSE Inspector errors."""

    code: str = "INSPECTOR_ERROR"
    default_message: str = "An error occurred in SSE Inspector"
    severity: ErrorSeverity = ErrorSeverity.ERROR
    category: ErrorCategory = ErrorCategory.UNKNOWN
    is_retryable: bool = False

    def __init__(
        self,
        message: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        **kwargs
    ):
        """Initialize inspector error."""
        self.message = message or self.default_message
        self.context = context or ErrorContext()
        self.cause = cause
        self.kwargs = kwargs
        super().__init__(self.message)

    def get_suggestions(self) -> List[str]:
        """Get error resolution suggestions."""
        return []

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "severity": self.severity.value,
                "category": self.category.value,
                "is_retryable": self.is_retryable,
                "suggestions": self.get_suggestions(),
                "context": {
                    "timestamp": self.context.timestamp.isoformat(),
                    "component": self.context.component,
                    "operation": self.context.operation,
                    "metadata": self.context.metadata
                }
            }
        }


class ConfigurationError(InspectorError):
    """Configuration errors."""
    code = "CONFIG_ERROR"
    default_message = "Configuration error"
    category = ErrorCategory.CONFIGURATION

    def get_suggestions(self) -> List[str]:
        return [
            "Check your configuration file syntax",
            "Check SSE_INSPECTOR_* environment variables"
        ]


# Network Errors

class NetworkError(InspectorError):
    """Network-related errors."""
    code = "NETWORK_ERROR"
    default_message = "Network error occurred"
    category = ErrorCategory.NETWORK
    is_retryable = True


class StreamConnectionError(NetworkError):
    """The request failed before a streaming response was established."""
    code = "CONNECTION_ERROR"
    default_message = "Failed to establish connection"

    def __init__(self, message: Optional[str] = None, status: Optional[int] = None, **kwargs):
        self.status = status
        super().__init__(message, **kwargs)

    def get_suggestions(self) -> List[str]:
        if self.status is not None:
            return ["Check the endpoint URL, method and request headers"]
        return [
            "Check your network connection",
            "Verify the target host is reachable"
        ]


class StreamError(InspectorError):
    """Errors while reading a response stream or driving the controller."""
    code = "STREAM_ERROR"
    default_message = "Stream error"
    category = ErrorCategory.STREAM


# Validation Errors

class ValidationError(InspectorError):
    """Input validation errors."""
    code = "VALIDATION_ERROR"
    default_message = "Validation error"
    category = ErrorCategory.VALIDATION
    severity = ErrorSeverity.WARNING

    def __init__(self, field: str, value: Any, constraint: str, **kwargs):
        self.field = field
        self.value = value
        self.constraint = constraint
        message = f"Validation failed for field '{field}': {constraint}"
        super().__init__(message, **kwargs)

    def get_suggestions(self) -> List[str]:
        return [
            f"Check the value of field '{self.field}'",
            f"Ensure it meets the constraint: {self.constraint}"
        ]


class JsonBodyError(ValidationError):
    """The request body is not valid JSON."""
    code = "JSON_BODY_ERROR"

    def __init__(self, detail: str, **kwargs):
        self.detail = detail
        super().__init__("body", None, detail, **kwargs)


class TemplateNotFoundError(ValidationError):
    """Unknown JSON-RPC template name."""
    code = "TEMPLATE_NOT_FOUND"

    def __init__(self, name: str, available: List[str], **kwargs):
        self.available = available
        super().__init__("template", name, f"must be one of {', '.join(available)}", **kwargs)


# Storage Errors

class SettingsStoreError(InspectorError):
    """Settings could not be loaded or saved."""
    code = "SETTINGS_STORE_ERROR"
    default_message = "Settings store error"
    category = ErrorCategory.STORAGE
    severity = ErrorSeverity.WARNING


class ExportError(InspectorError):
    """Event history could not be exported."""
    code = "EXPORT_ERROR"
    default_message = "Failed to export events"
    category = ErrorCategory.STORAGE


@contextmanager
def error_context(
    component: str,
    operation: str,
    reraise: bool = True,
    **metadata
):
    """
    Context manager for error handling with context.

    Args:
        component: Component name
        operation: Operation name
        reraise: Whether to reraise exceptions
        **metadata: Additional context metadata
    """
    context = ErrorContext(
        component=component,
        operation=operation,
        metadata=metadata
    )

    try:
        yield context
    except InspectorError as e:
        e.context.component = e.context.component or component
        e.context.operation = e.context.operation or operation
        e.context.metadata.update(metadata)
        logger.error("inspector_error_in_context", error=e.to_dict())
        if reraise:
            raise
    except Exception as e:
        wrapped = InspectorError(message=str(e), context=context, cause=e)
        logger.error(
            "unexpected_error_in_context",
            error=wrapped.to_dict(),
            exc_info=True
        )
        if reraise:
            raise wrapped from e


__all__ = [
    'InspectorError',
    'ErrorContext',
    'ErrorSeverity',
    'ErrorCategory',
    'ConfigurationError',
    'NetworkError',
    'StreamConnectionError',
    'StreamError',
    'ValidationError',
    'JsonBodyError',
    'TemplateNotFoundError',
    'SettingsStoreError',
    'ExportError',
    'error_context',
]
