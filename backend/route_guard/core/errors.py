"""Error Hierarchy — typed, categorized exceptions for guard adapters and the HTTP boundary.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Adapter errors (session backend, profile store) never cross into the decision
      engine: resolvers convert them to classified states first
    - to_response() produces the REST envelope; no internal details leaked

Design Decisions:
    - Single hierarchy with RouteGuardError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"
    TIMEOUT = "timeout"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    request_path: str | None = None
    user_id: str | None = None
    attempt: int | None = None
    debug_info: dict[str, Any] | None = None


class RouteGuardError(Exception):
    """Base exception for all route guard errors."""

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
                    "request_path": self.context.request_path,
                    "attempt": self.context.attempt,
                },
            }
        }


# ─── Configuration Errors ───────────────────────────────────────

class RouteConfigError(RouteGuardError):
    """Route table configuration could not be loaded or is invalid."""
    def __init__(self, message: str, source: str, context: ErrorContext | None = None):
        super().__init__(
            f"Route configuration '{source}' invalid: {message}",
            "ROUTE_CONFIG_INVALID", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.source = source


# ─── Readiness Errors ───────────────────────────────────────────

class ServiceNotReadyError(RouteGuardError):
    """A readiness dependency is missing; reason is a stable machine-readable slug."""
    def __init__(self, reason: str, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "SERVICE_NOT_READY", ErrorCategory.INTERNAL,
            ErrorSeverity.ERROR, context, 503,
        )
        self.reason = reason

    def to_response(self) -> dict:
        response = super().to_response()
        response["error"]["reason"] = self.reason
        return response


# ─── Infrastructure Errors ──────────────────────────────────────

class SessionBackendError(RouteGuardError):
    """Session backend rejected or failed an identity/refresh call.

    error_code and status_code are the backend's own values; the identity
    resolver classifies on them together with the message.
    """
    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Session backend error: {message}",
            "SESSION_BACKEND_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.WARNING, context, 503,
        )
        self.backend_message = message
        self.error_code = error_code
        self.status_code = status_code


class DatabaseError(RouteGuardError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class ProfileStoreError(RouteGuardError):
    """Profile lookup failed."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Profile store error: {message}",
            "PROFILE_STORE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.WARNING, context, 503,
        )
        self.detail = message


class ProfileSchemaDriftError(ProfileStoreError):
    """A requested profile column is not visible yet (schema propagation lag)."""
    def __init__(self, message: str, column: str | None = None, context: ErrorContext | None = None):
        super().__init__(message, context)
        self.code = "PROFILE_SCHEMA_DRIFT"
        self.column = column
