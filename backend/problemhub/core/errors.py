"""Error Taxonomy — symbolic business codes plus typed infrastructure exceptions.

Invariants:
    - Expected business conditions are RETURNED as error dicts (error_result), never raised
    - Every error result carries exactly one ErrorCode plus actionable context
    - Infrastructure faults are raised as ProblemHubError subclasses with
      code (str), category (ErrorCategory), severity (ErrorSeverity)
    - to_response() produces the REST envelope; no internal details leaked

Design Decisions:
    - Two channels: business codes as values (uniform result shape for every operation),
      infrastructure faults as exceptions caught by the global FastAPI handler
      (ADR: never mix thrown fault and returned code for the same failure class)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    STORAGE = "storage"
    INTERNAL = "internal"


class ErrorCode(str, Enum):
    """Public business error codes returned by service operations."""
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    DUPLICATE_NAME = "DUPLICATE_NAME"
    DISPLAY_ID_CONFLICT = "DISPLAY_ID_CONFLICT"
    ALREADY_LOGGED_IN = "ALREADY_LOGGED_IN"
    VALIDATION = "VALIDATION"


# code -> (category, http status)
ERROR_CODE_MAPPING: dict[ErrorCode, tuple[ErrorCategory, int]] = {
    ErrorCode.FORBIDDEN: (ErrorCategory.AUTHORIZATION, 403),
    ErrorCode.NOT_FOUND: (ErrorCategory.RESOURCE_NOT_FOUND, 404),
    ErrorCode.DUPLICATE_NAME: (ErrorCategory.CONFLICT, 409),
    ErrorCode.DISPLAY_ID_CONFLICT: (ErrorCategory.CONFLICT, 409),
    ErrorCode.ALREADY_LOGGED_IN: (ErrorCategory.VALIDATION, 400),
    ErrorCode.VALIDATION: (ErrorCategory.VALIDATION, 400),
}


def error_result(code: ErrorCode, message: str, **context: Any) -> dict:
    """Build a business error result. Context keys are surfaced as details."""
    return {
        "status": "error",
        "error_code": code.value,
        "message": message,
        **context,
    }


def is_error(result: dict) -> bool:
    return result.get("status") == "error"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    problem_id: str | None = None
    user_id: str | None = None
    debug_info: dict[str, Any] | None = None


class ProblemHubError(Exception):
    """Base exception for all infrastructure-level ProblemHub failures."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "problem_id": self.context.problem_id,
                    "user_id": self.context.user_id,
                },
            }
        }


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(ProblemHubError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class BlobStorageError(ProblemHubError):
    """Blob read/write failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Blob storage {operation} failed: {message}",
            "STORAGE_ERROR", ErrorCategory.STORAGE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class BlobTooLargeError(ProblemHubError):
    """Uploaded content exceeded the configured size limit."""
    def __init__(self, limit_bytes: int, context: ErrorContext | None = None):
        super().__init__(
            f"File exceeds the maximum size of {limit_bytes} bytes",
            ErrorCode.VALIDATION.value, ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.limit_bytes = limit_bytes


# ─── Boundary Errors (400-level) ────────────────────────────────

class InvalidIdentityError(ProblemHubError):
    """Identity headers carry a value the store cannot hold."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, ErrorCode.VALIDATION.value, ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
