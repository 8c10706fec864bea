"""
Infinite Notepad Backend — Custom Exception Hierarchy
=======================================================

What:  Defines application-specific exceptions for different error scenarios.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services, repositories, dependencies and middleware.

Exception Hierarchy:
    NotepadError (base)
    ├── ValidationError           → 400 Bad Request (client can fix)
    ├── AuthenticationError       → 401 Unauthorized (client must re-authenticate)
    ├── WebhookVerificationError  → 401 Unauthorized (bad webhook signature)
    ├── ForbiddenError            → 403 Forbidden (bad or expired signed URL)
    ├── NotFoundError             → 404 Not Found (also: another user's row)
    ├── RateLimitExceededError    → 429 Too Many Requests
    ├── FileStorageError          → 500 Internal Server Error
    ├── DatabaseError             → 500 Internal Server Error
    ├── PaymentServiceError       → 503 Service Unavailable (retry later)
    └── CircuitBreakerOpenError   → 503 Service Unavailable (circuit open)

Ownership failures raise NotFoundError, never ForbiddenError: a row owned by
another user is indistinguishable from a missing row.
"""

from typing import Any, Dict, Optional


class NotepadError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client,
                  except for validation errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NotepadError):
    """
    Raised when client input fails a business rule.

    When:    Blank search query, unsupported file type, file too large,
             duplicate email at sign-up.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "File type 'application/zip' is not supported.",
            "details": {"field": "file", "mime_type": "application/zip"}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(NotepadError):
    """
    Raised when a bearer token is missing, malformed, expired or unknown,
    or when sign-in credentials are rejected.

    HTTP:    401 Unauthorized
    Clients react by clearing their session; the gateway never retries.
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class WebhookVerificationError(NotepadError):
    """
    Raised when a payment webhook has a missing or invalid signature.

    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Invalid webhook signature",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(NotepadError):
    """
    Raised when a signed storage URL fails verification or has expired.

    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "Access denied",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(NotepadError):
    """
    Raised when a requested resource does not exist for the current user.

    When:    PUT /api/notes/{id} for a missing id, or for a note owned by
             somebody else (scoped queries return None in both cases).
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource.capitalize()} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class FileStorageError(NotepadError):
    """
    Raised when object storage operations fail.

    When:    Disk full, permission denied, bucket not writable, I/O error.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(NotepadError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error
    The message returned to the client is always generic; the SQL error is
    logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PaymentServiceError(NotepadError):
    """
    Raised when the payment provider fails after all retries, or rejects
    the request.

    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "Payment service is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(NotepadError):
    """
    Raised when the payment circuit breaker is in OPEN state.

    How circuit breaker works:
        CLOSED (normal) → failures increment counter
        → After N failures → OPEN (reject all calls for recovery_time seconds)
        → After recovery_time → HALF-OPEN (allow one test call)
        → If test succeeds → CLOSED
        → If test fails → OPEN again
    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            "Payment service is temporarily unavailable due to repeated failures. "
            f"Please retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time


class RateLimitExceededError(NotepadError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
