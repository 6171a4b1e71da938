"""
CellGuard Error Handling Module

Structured error codes, user-friendly messages and the closed set of
error kinds reported by the anomaly engine.
"""

import logging
import traceback
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# =============================================================================
# Error Code Taxonomy
# =============================================================================


class ErrorCategory(Enum):
    """Top-level error categories."""

    DATA = "DATA"
    VALIDATION = "VALIDATION"
    STORAGE = "STORAGE"
    SYSTEM = "SYSTEM"


class ErrorSeverity(Enum):
    """Error severity levels for monitoring and alerting."""

    DEBUG = auto()
    INFO = auto()
    WARNING = auto()
    ERROR = auto()
    CRITICAL = auto()


class AnomalyErrorKind(Enum):
    """Closed set of failure kinds surfaced by the anomaly engine."""

    DEGENERATE_INPUT = "degenerate_input"
    UNKNOWN_RANGE = "unknown_range"
    PERSISTENCE_FAILURE = "persistence_failure"


@dataclass
class ErrorCode:
    """Structured error code with metadata."""

    code: str
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    user_message: str
    http_status: int
    retryable: bool = False
    recovery_hint: str = ""

    def __str__(self) -> str:
        return f"{self.category.value}_{self.code}"


class ErrorCodes:
    """Central registry of all CellGuard error codes."""

    # Data Errors (2xxx)
    DATA_DEGENERATE_GRID = ErrorCode(
        code="2001",
        category=ErrorCategory.DATA,
        severity=ErrorSeverity.WARNING,
        message="Grid is empty, ragged or not a grid",
        user_message="The selected range could not be analyzed.",
        http_status=422,
        retryable=False,
        recovery_hint="Select a rectangular range containing numeric values.",
    )

    DATA_EMPTY_SAMPLE = ErrorCode(
        code="2002",
        category=ErrorCategory.DATA,
        severity=ErrorSeverity.DEBUG,
        message="Statistics requested for an empty sample",
        user_message="There are no numeric values to analyze.",
        http_status=422,
        retryable=False,
        recovery_hint="Select a range that contains numbers.",
    )

    DATA_UNKNOWN_RANGE = ErrorCode(
        code="2003",
        category=ErrorCategory.DATA,
        severity=ErrorSeverity.INFO,
        message="No detection result stored for range",
        user_message="No anomaly detection has been run for this range.",
        http_status=404,
        retryable=False,
        recovery_hint="Run anomaly detection on the range first.",
    )

    # Validation Errors (4xxx)
    VALIDATION_INVALID_VALUE = ErrorCode(
        code="4001",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.INFO,
        message="Invalid parameter value",
        user_message="The provided value is not valid.",
        http_status=400,
        retryable=False,
        recovery_hint="Check the parameter requirements.",
    )

    # Storage Errors (5xxx)
    STORAGE_READ_FAILED = ErrorCode(
        code="5001",
        category=ErrorCategory.STORAGE,
        severity=ErrorSeverity.ERROR,
        message="Failed to read persisted state",
        user_message="Saved anomaly settings could not be loaded.",
        http_status=500,
        retryable=True,
        recovery_hint="Check that the storage file is readable and valid JSON.",
    )

    STORAGE_WRITE_FAILED = ErrorCode(
        code="5002",
        category=ErrorCategory.STORAGE,
        severity=ErrorSeverity.ERROR,
        message="Failed to persist state",
        user_message="Anomaly settings could not be saved.",
        http_status=500,
        retryable=True,
        recovery_hint="Check disk space and permissions of the storage location.",
    )

    # System Errors (9xxx)
    SYSTEM_INTERNAL_ERROR = ErrorCode(
        code="9001",
        category=ErrorCategory.SYSTEM,
        severity=ErrorSeverity.CRITICAL,
        message="Internal server error",
        user_message="An unexpected error occurred.",
        http_status=500,
        retryable=False,
        recovery_hint="Please report this issue.",
    )


# =============================================================================
# Exception Classes
# =============================================================================


class CellGuardError(Exception):
    """
    Base exception for all CellGuard errors.

    Provides structured error information including error codes,
    user-friendly messages, and recovery suggestions.
    """

    kind: Optional[AnomalyErrorKind] = None

    def __init__(
        self,
        error_code: ErrorCode,
        detail: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None,
        debug_info: Optional[Dict[str, Any]] = None,
    ):
        self.error_code = error_code
        self.detail = detail
        self.original_error = original_error
        self.context = context or {}
        self.debug_info = debug_info or {}
        self.timestamp = datetime.now(timezone.utc)

        if original_error:
            self.debug_info["original_traceback"] = traceback.format_exception(
                type(original_error), original_error, original_error.__traceback__
            )

        super().__init__(self.technical_message)

    @property
    def code(self) -> str:
        """Full error code string."""
        return str(self.error_code)

    @property
    def category(self) -> ErrorCategory:
        return self.error_code.category

    @property
    def severity(self) -> ErrorSeverity:
        return self.error_code.severity

    @property
    def http_status(self) -> int:
        return self.error_code.http_status

    @property
    def is_retryable(self) -> bool:
        return self.error_code.retryable

    @property
    def user_message(self) -> str:
        """User-friendly error message."""
        msg = self.error_code.user_message
        if self.detail:
            msg = f"{msg} ({self.detail})"
        return msg

    @property
    def technical_message(self) -> str:
        """Technical error message for logging."""
        msg = f"[{self.code}] {self.error_code.message}"
        if self.detail:
            msg = f"{msg}: {self.detail}"
        return msg

    @property
    def recovery_hint(self) -> str:
        return self.error_code.recovery_hint

    def to_dict(self, include_debug: bool = False) -> Dict[str, Any]:
        """
        Convert error to dictionary for API responses.

        Args:
            include_debug: Include debug information (for dev mode only)
        """
        result = {
            "code": self.code,
            "category": self.category.value,
            "kind": self.kind.value if self.kind else None,
            "message": self.user_message,
            "recovery_hint": self.recovery_hint,
            "retryable": self.is_retryable,
            "timestamp": self.timestamp.isoformat(),
        }

        if include_debug:
            result["debug"] = {
                "technical_message": self.technical_message,
                "context": self.context,
                "debug_info": self.debug_info,
            }

        return result

    def log(self) -> None:
        """Log the error with appropriate severity."""
        log_method = getattr(logger, self.severity.name.lower(), logger.error)
        log_method(
            f"{self.technical_message}",
            extra={
                "ctx_error_code": self.code,
                "ctx_context": self.context,
                "ctx_retryable": self.is_retryable,
            },
        )


class DegenerateInputError(CellGuardError):
    """Grid or sample that cannot be analyzed."""

    kind = AnomalyErrorKind.DEGENERATE_INPUT

    def __init__(
        self,
        error_code: ErrorCode = ErrorCodes.DATA_DEGENERATE_GRID,
        detail: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(error_code, detail, **kwargs)


class UnknownRangeError(CellGuardError):
    """No detection result is stored for the requested range."""

    kind = AnomalyErrorKind.UNKNOWN_RANGE

    def __init__(self, range_id: str, **kwargs):
        self.range_id = range_id
        super().__init__(
            ErrorCodes.DATA_UNKNOWN_RANGE,
            detail=range_id,
            context={"range_id": range_id},
            **kwargs,
        )


class PersistenceError(CellGuardError):
    """Reading or writing persisted engine state failed."""

    kind = AnomalyErrorKind.PERSISTENCE_FAILURE

    def __init__(
        self,
        error_code: ErrorCode = ErrorCodes.STORAGE_WRITE_FAILED,
        detail: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(error_code, detail, **kwargs)


# =============================================================================
# Utility Functions
# =============================================================================


def wrap_exception(
    exception: Exception,
    default_code: ErrorCode = ErrorCodes.SYSTEM_INTERNAL_ERROR,
) -> CellGuardError:
    """
    Wrap a generic exception in a CellGuardError.

    Maps common exception types to the matching engine error.
    """
    if isinstance(exception, CellGuardError):
        return exception

    if isinstance(exception, OSError):
        return PersistenceError(detail=str(exception), original_error=exception)

    if isinstance(exception, (ValueError, TypeError, IndexError)):
        return DegenerateInputError(detail=str(exception), original_error=exception)

    return CellGuardError(
        default_code,
        detail=str(exception),
        original_error=exception,
    )


def create_error_response(
    error: CellGuardError,
    debug_mode: bool = False,
) -> Dict[str, Any]:
    """
    Create a standardized error payload.

    Args:
        error: The CellGuard error
        debug_mode: Include debug information
    """
    return {
        "success": False,
        "data": None,
        "error": error.to_dict(include_debug=debug_mode),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


__all__ = [
    "ErrorCategory",
    "ErrorSeverity",
    "AnomalyErrorKind",
    "ErrorCode",
    "ErrorCodes",
    "CellGuardError",
    "DegenerateInputError",
    "UnknownRangeError",
    "PersistenceError",
    "wrap_exception",
    "create_error_response",
]
