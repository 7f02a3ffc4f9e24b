"""Error Hierarchy — typed, categorized exceptions for every failure the bootstrap surfaces.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Client errors (400-level) carry user-facing messages; 500-level are redacted in production
    - to_response() produces the REST envelope {"error": message}
"""

from enum import Enum


class ErrorSeverity(str, Enum):
    """Error severity for observability."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    RATE_LIMIT = "rate_limit"
    DATABASE = "database"
    CONFIGURATION = "configuration"
    INTERNAL = "internal"


class RestaurantAPIError(Exception):
    """Base exception for all restaurant API errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        http_status: int = 500,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.http_status = http_status
        self.headers = headers or {}

    @property
    def is_client_error(self) -> bool:
        return self.http_status < 500

    def to_response(self) -> dict:
        """Convert to the standard REST error envelope."""
        return {"error": self.message}


# ─── Client Errors (400-level) ──────────────────────────────────

class AuthenticationError(RestaurantAPIError):
    """Missing, invalid or expired credentials."""
    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message, "AUTHENTICATION_REQUIRED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, 401, {"WWW-Authenticate": "Bearer"},
        )


class ForbiddenError(RestaurantAPIError):
    """Authenticated, but the role does not allow the operation."""
    def __init__(self, message: str = "Access denied"):
        super().__init__(
            message, "FORBIDDEN", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, 403,
        )


class PayloadTooLargeError(RestaurantAPIError):
    """Request body exceeds the configured cap."""
    def __init__(self, max_bytes: int):
        super().__init__(
            f"Request body exceeds {max_bytes} bytes",
            "PAYLOAD_TOO_LARGE", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, 413,
        )
        self.max_bytes = max_bytes


class RateLimitExceededError(RestaurantAPIError):
    """Client exceeded a rate-limit window."""
    def __init__(self, message: str, retry_after_seconds: int):
        super().__init__(
            message, "RATE_LIMITED", ErrorCategory.RATE_LIMIT,
            ErrorSeverity.WARNING, 429,
            {"Retry-After": str(max(retry_after_seconds, 0))},
        )
        self.retry_after_seconds = retry_after_seconds


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(RestaurantAPIError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, 503,
        )
        self.operation = operation


class ConfigurationError(RestaurantAPIError):
    """Settings are inconsistent for the selected environment."""
    def __init__(self, message: str):
        super().__init__(
            message, "CONFIGURATION_ERROR", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, 500,
        )
