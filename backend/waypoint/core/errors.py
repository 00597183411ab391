"""Error Hierarchy — typed, categorized exceptions for all Waypoint failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces the REST envelope
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with WaypointError base: FastAPI global handler catches all
    - ExplorationRejected wraps the pure rejection descriptors from core/exploration_rules.py,
      so the rules stay IO-free and the shell decides the HTTP status
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
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    DATABASE = "database"
    INTERNAL = "internal"
    CONFLICT = "conflict"
    RATE_LIMIT = "rate_limit"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: str | None = None
    place_id: str | None = None
    district: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class WaypointError(Exception):
    """Base exception for all Waypoint errors."""

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
                    "user_id": self.context.user_id,
                    "place_id": self.context.place_id,
                    "district": self.context.district,
                    "retry_after_ms": self.context.retry_after_ms,
                },
                "details": self.context.debug_info,
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

# Rejection code → (category, http status). Anything unlisted is a plain 400.
_REJECTION_STATUS: dict[str, tuple[ErrorCategory, int]] = {
    "INSUFFICIENT_SAMPLES": (ErrorCategory.VALIDATION, 400),
    "INVALID_SAMPLES": (ErrorCategory.VALIDATION, 400),
    "HOMETOWN_REQUIRED": (ErrorCategory.VALIDATION, 400),
    "HOMETOWN_NOT_IN_CATALOG": (ErrorCategory.VALIDATION, 400),
    "CATALOG_EMPTY": (ErrorCategory.BUSINESS_RULE, 400),
    "CATALOG_UNDERFILLED": (ErrorCategory.BUSINESS_RULE, 400),
    "LOCATION_NOT_ASSIGNED": (ErrorCategory.AUTHORIZATION, 403),
    "COOLDOWN_ACTIVE": (ErrorCategory.RATE_LIMIT, 429),
    "EXPLORATION_ALREADY_INITIALIZED": (ErrorCategory.CONFLICT, 409),
    "REROLL_ALREADY_USED": (ErrorCategory.BUSINESS_RULE, 400),
    "REROLL_PROGRESS_EXCEEDED": (ErrorCategory.BUSINESS_RULE, 400),
    "REROLL_REASON_REQUIRED": (ErrorCategory.VALIDATION, 400),
    "REROLL_DETAIL_REQUIRED": (ErrorCategory.VALIDATION, 400),
}


class ExplorationRejected(WaypointError):
    """A recoverable exploration rule rejection. Raised before any state mutation."""
    def __init__(self, rejection: dict, context: ErrorContext | None = None):
        code = rejection["error_code"]
        category, http_status = _REJECTION_STATUS.get(
            code, (ErrorCategory.BUSINESS_RULE, 400),
        )
        ctx = context or ErrorContext()
        details = {
            k: v for k, v in rejection.items()
            if k not in ("status", "error_code", "message")
        }
        if details:
            ctx.debug_info = details
        if "retry_after_seconds" in rejection:
            ctx.retry_after_ms = int(rejection["retry_after_seconds"] * 1000)
        super().__init__(
            rejection["message"], code, category,
            ErrorSeverity.WARNING, ctx, http_status,
        )
        self.rejection = rejection


class ResourceNotFoundError(WaypointError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type


class AuthenticationError(WaypointError):
    """Bearer token missing, invalid, or without a uid."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Unauthorized: {message}", "UNAUTHORIZED",
            ErrorCategory.AUTHENTICATION, ErrorSeverity.WARNING, context, 401,
        )


class AdminRequiredError(WaypointError):
    """Caller is authenticated but lacks the admin claim."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Forbidden: Admin access required", "FORBIDDEN",
            ErrorCategory.AUTHORIZATION, ErrorSeverity.WARNING, context, 403,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(WaypointError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
