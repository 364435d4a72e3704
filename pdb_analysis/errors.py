"""
Error handling for the PDB Analysis toolkit.

This module provides the exception hierarchy, error classification and
structured logging used by the fetcher and the tool layer. The fetcher
raises these exceptions internally and converts them to ``None`` at its
boundary; configuration and argument errors propagate to callers.
"""

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Dict, Optional, Tuple
from dataclasses import dataclass, field, fields
from datetime import datetime

import httpx


class ErrorCategory(Enum):
    """Categories of errors that can occur in the system."""
    NETWORK = "network"
    API = "api"
    DATA = "data"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


SEVERITY_LOG_LEVELS = {
    ErrorSeverity.LOW: logging.INFO,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


class ErrorAction(Enum):
    """Actions to take when an error occurs."""
    RETRY = "retry"
    SKIP = "skip"
    FAIL = "fail"
    LOG_AND_CONTINUE = "log_and_continue"
    FALLBACK = "fallback"


# HTTP statuses are never retried: the response already arrived
CATEGORY_ACTIONS = {
    ErrorCategory.NETWORK: ErrorAction.RETRY,
    ErrorCategory.API: ErrorAction.SKIP,
    ErrorCategory.DATA: ErrorAction.SKIP,
    ErrorCategory.VALIDATION: ErrorAction.SKIP,
    ErrorCategory.CONFIGURATION: ErrorAction.FAIL,
}


@dataclass
class ErrorContext:
    """Contextual information about an error."""
    operation: str
    service: Optional[str] = None
    entity_id: Optional[str] = None
    request_url: Optional[str] = None
    request_method: Optional[str] = None
    response_status: Optional[int] = None
    timestamp: datetime = field(default_factory=datetime.now)
    additional_data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ErrorInfo:
    """Complete information about an error occurrence."""
    category: ErrorCategory
    severity: ErrorSeverity
    action: ErrorAction
    message: str
    original_exception: Exception
    context: ErrorContext


class PDBAnalysisError(Exception):
    """
    Base exception class for PDB Analysis errors.

    Subclasses fix ``category`` and ``severity``; an instance may override
    the severity when the failure is more or less serious than usual.
    """

    category = ErrorCategory.UNKNOWN
    severity = ErrorSeverity.MEDIUM

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None,
        severity: Optional[ErrorSeverity] = None
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext(operation="unknown")
        self.original_exception = original_exception
        if severity is not None:
            self.severity = severity


class NetworkError(PDBAnalysisError):
    """Transport failures and timeouts. Always transient."""
    category = ErrorCategory.NETWORK


class APIError(PDBAnalysisError):
    """Non-2xx responses from an upstream API."""
    category = ErrorCategory.API

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None, **kwargs):
        # Client errors point at the request itself
        if status_code and 400 <= status_code < 500:
            kwargs.setdefault("severity", ErrorSeverity.HIGH)
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.body = body


class DataError(PDBAnalysisError):
    """Response bodies that cannot be decoded or validated."""
    category = ErrorCategory.DATA
    severity = ErrorSeverity.HIGH


class ValidationError(PDBAnalysisError):
    """Invalid arguments supplied by a caller."""
    category = ErrorCategory.VALIDATION
    severity = ErrorSeverity.HIGH


class ConfigurationError(PDBAnalysisError):
    """Errors related to system configuration."""
    category = ErrorCategory.CONFIGURATION
    severity = ErrorSeverity.CRITICAL


class ErrorHandler:
    """
    Error handler with classification and recovery strategies.

    Decides whether a failure is retried, rescued by a fallback or skipped,
    and logs it with the request context attached.
    """

    def __init__(self):
        """Initialize error handler with logger."""
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._error_counts: Dict[str, int] = {}

    def classify_error(self, exception: Exception, context: ErrorContext) -> ErrorInfo:
        """
        Work out what kind of failure ``exception`` is and what to do about it.

        Package exceptions carry their own category and severity; standard
        library and httpx exceptions are mapped by type.
        """
        if isinstance(exception, PDBAnalysisError):
            category, severity = exception.category, exception.severity
        else:
            category, severity = self._classify_standard_exception(exception)

        action = CATEGORY_ACTIONS.get(category, ErrorAction.LOG_AND_CONTINUE)
        # A missing entry may still be found through another endpoint
        if category is ErrorCategory.API and getattr(exception, "status_code", None) == 404:
            action = ErrorAction.FALLBACK

        return ErrorInfo(
            category=category,
            severity=severity,
            action=action,
            message=str(exception),
            original_exception=exception,
            context=context
        )

    def _classify_standard_exception(self, exception: Exception) -> Tuple[ErrorCategory, ErrorSeverity]:
        if isinstance(exception, (httpx.TransportError, asyncio.TimeoutError, TimeoutError, ConnectionError)):
            return ErrorCategory.NETWORK, ErrorSeverity.MEDIUM
        if isinstance(exception, httpx.HTTPStatusError):
            client_error = exception.response.is_client_error
            return ErrorCategory.API, ErrorSeverity.HIGH if client_error else ErrorSeverity.MEDIUM
        if isinstance(exception, (json.JSONDecodeError, UnicodeDecodeError, KeyError, TypeError)):
            return ErrorCategory.DATA, ErrorSeverity.HIGH
        return ErrorCategory.UNKNOWN, ErrorSeverity.MEDIUM

    def handle_error(self, exception: Exception, context: ErrorContext) -> ErrorInfo:
        """
        Handle an error with appropriate logging and classification.

        Args:
            exception: The exception to handle
            context: Contextual information about the error

        Returns:
            ErrorInfo with handling details
        """
        error_info = self.classify_error(exception, context)

        error_key = f"{error_info.category.value}:{error_info.context.operation}"
        self._error_counts[error_key] = self._error_counts.get(error_key, 0) + 1

        self._log_error(error_info)

        return error_info

    def _log_error(self, error_info: ErrorInfo) -> None:
        context = error_info.context
        log_data = {
            "error_category": error_info.category.value,
            "error_severity": error_info.severity.value,
            "recommended_action": error_info.action.value,
            "exception_type": type(error_info.original_exception).__name__,
        }
        log_data.update(
            (f.name, getattr(context, f.name)) for f in fields(context) if f.name != "additional_data"
        )
        log_data["timestamp"] = context.timestamp.isoformat()
        log_data.update(context.additional_data)

        self.logger.log(
            SEVERITY_LOG_LEVELS[error_info.severity],
            "%s error during %s: %s",
            error_info.category.value.capitalize(),
            context.operation,
            error_info.message,
            extra=log_data
        )

    def get_error_statistics(self) -> Dict[str, int]:
        """Get error count statistics."""
        return self._error_counts.copy()

    def reset_error_statistics(self) -> None:
        """Reset error count statistics."""
        self._error_counts.clear()


# Global error handler instance
_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    global _error_handler
    if _error_handler is None:
        _error_handler = ErrorHandler()
    return _error_handler


def set_error_handler(handler: Optional[ErrorHandler]) -> None:
    """Set the global error handler instance."""
    global _error_handler
    _error_handler = handler


def handle_error(exception: Exception, context: ErrorContext) -> ErrorInfo:
    """Handle an error using the global error handler."""
    return get_error_handler().handle_error(exception, context)


def create_error_context(
    operation: str,
    service: Optional[str] = None,
    entity_id: Optional[str] = None,
    request_url: Optional[str] = None,
    request_method: Optional[str] = None,
    response_status: Optional[int] = None,
    **additional_data
) -> ErrorContext:
    """
    Convenience function to create error context.

    Args:
        operation: Name of the operation being performed
        service: Name of the upstream service being accessed
        entity_id: Identifier of the entity being looked up
        request_url: URL of the request that failed
        request_method: HTTP method of the request
        response_status: HTTP response status code
        **additional_data: Additional contextual data

    Returns:
        ErrorContext instance
    """
    return ErrorContext(
        operation=operation,
        service=service,
        entity_id=entity_id,
        request_url=request_url,
        request_method=request_method,
        response_status=response_status,
        additional_data=additional_data
    )
