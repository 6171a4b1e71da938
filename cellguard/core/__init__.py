"""
CellGuard Core Module

Error taxonomy shared by the engine, persistence layer and API.
"""

from .errors import (
    AnomalyErrorKind,
    CellGuardError,
    DegenerateInputError,
    ErrorCategory,
    ErrorCode,
    ErrorCodes,
    ErrorSeverity,
    PersistenceError,
    UnknownRangeError,
    create_error_response,
    wrap_exception,
)

__all__ = [
    "AnomalyErrorKind",
    "CellGuardError",
    "DegenerateInputError",
    "ErrorCategory",
    "ErrorCode",
    "ErrorCodes",
    "ErrorSeverity",
    "PersistenceError",
    "UnknownRangeError",
    "create_error_response",
    "wrap_exception",
]
