"""Error Hierarchy — typed, categorized exceptions for all MathCoach failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (4xx) carry enough detail for the client to correct the request
    - NotFoundOrForbiddenError never distinguishes "missing" from "not yours"
    - CollaboratorError is absorbed by the dialogue and report paths (deterministic fallback)
    - to_response() produces the REST envelope; no internal details in user-facing messages

Design Decisions:
    - Single hierarchy with MathCoachError base: FastAPI global handler catches all (ADR: uniform error shape)
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
    AUTHENTICATION = "authentication"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"
    CONFLICT = "conflict"
    TIMEOUT = "timeout"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    session_id: str | None = None
    user_id: str | None = None
    round_number: int | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class MathCoachError(Exception):
    """Base exception for all MathCoach errors."""

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
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "session_id": self.context.session_id,
                    "round_number": self.context.round_number,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class ValidationError(MathCoachError):
    """Malformed or missing required input. Raised before any side effect."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class AuthenticationError(MathCoachError):
    """Request carries no valid access token."""
    def __init__(self, message: str = "Authentication required", context: ErrorContext | None = None):
        super().__init__(
            message, "AUTHENTICATION_REQUIRED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class NotFoundOrForbiddenError(MathCoachError):
    """Resource does not exist OR belongs to another user — deliberately indistinguishable."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type


class StaleRoundError(MathCoachError):
    """Answer submitted against a round that is no longer current."""
    def __init__(
        self, expected_round: int, current_round: int, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.round_number = current_round
        super().__init__(
            f"Round {expected_round} is stale; session is at round {current_round}. "
            "Re-fetch the session before retrying.",
            "STALE_ROUND", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, ctx, 409,
        )
        self.expected_round = expected_round
        self.current_round = current_round


class SessionNotReadyError(MathCoachError):
    """Report requested before the session reached completed status."""
    def __init__(self, session_id: str, status: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.session_id = session_id
        super().__init__(
            f"Session '{session_id}' is {status}; reports require a completed session",
            "SESSION_NOT_READY", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, ctx, 409,
        )
        self.status = status


class InvalidTransitionError(MathCoachError):
    """Status change out of a terminal state (completed/abandoned)."""
    def __init__(
        self, session_id: str, current: str, target: str, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.session_id = session_id
        super().__init__(
            f"Session '{session_id}' cannot move from {current} to {target}",
            "INVALID_TRANSITION", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, ctx, 409,
        )


class DuplicateSessionError(MathCoachError):
    """Session id already taken by another owner."""
    def __init__(self, session_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Session id '{session_id}' is already in use",
            "DUPLICATE_SESSION", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class ConcurrencyError(MathCoachError):
    """Concurrent modification detected and retries exhausted."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONCURRENCY_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class CollaboratorError(MathCoachError):
    """External model or service failed, timed out, or returned unusable output."""
    def __init__(
        self,
        message: str,
        collaborator: str,
        error_type: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        super().__init__(
            f"{collaborator} collaborator error ({error_type}): {message}",
            "COLLABORATOR_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, ctx, 503,
        )
        self.collaborator = collaborator
        self.error_type = error_type


class InternalError(MathCoachError):
    """Catch-all for storage and infrastructure failures."""
    def __init__(
        self, message: str = "Internal error", code: str = "INTERNAL_ERROR",
        category: ErrorCategory = ErrorCategory.INTERNAL,
        context: ErrorContext | None = None, http_status: int = 500,
    ):
        super().__init__(
            message, code, category, ErrorSeverity.CRITICAL, context, http_status,
        )


class DatabaseError(InternalError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE, context, 503,
        )
        self.operation = operation
