"""
Books API — Custom Exception Hierarchy
=======================================

What:  Application-specific exceptions for the resource controller.
How:   Each exception carries a machine-readable `code`, a human-readable
       message and an optional context dict. Global exception handlers
       (registered in main.py) turn them into structured JSON error bodies
       with the HTTP status declared on the class.
Who:   Raised by the controller, store, auth dependency and middleware.

Exception Hierarchy:
    BooksAPIError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── AuthorizationError       → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── OperationError           → 500 Internal Server Error
    └── RateLimitExceededError   → 429 Too Many Requests

Error body:
    {
        "code": "rest_missing_title",
        "message": "Title is required.",
        "data": {"status": 400, ...context},
        "request_id": "a1b2c3d4"
    }
"""

from typing import Any, Dict, Optional


class BooksAPIError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        code:     Stable machine-readable error code
        context:  Additional info merged into the `data` member of the body
    """

    status_code: int = 500
    default_code: str = "rest_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(BooksAPIError):
    """
    Raised when client input fails validation.

    When:    Missing title on create, wrong argument type, out-of-range
             collection parameter.
    HTTP:    400 Bad Request
    """

    status_code = 400
    default_code = "rest_invalid_param"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, code=code, context=ctx)
        self.field = field


class AuthorizationError(BooksAPIError):
    """
    Raised when the calling principal lacks the capability for an operation.

    HTTP:    403 Forbidden. Never retried automatically.
    """

    status_code = 403
    default_code = "rest_forbidden"

    def __init__(
        self,
        message: str = "Sorry, you are not allowed to do that.",
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, context=context)


class NotFoundError(BooksAPIError):
    """
    Raised when a requested entity does not exist or is of another type.

    When:    GET/PUT/PATCH/DELETE /books/{id} with an unknown id, or an id
             belonging to a document of a different entity type.
    HTTP:    404 Not Found. Checked before authorization.
    """

    status_code = 404
    default_code = "rest_post_not_found"

    def __init__(
        self,
        resource: str = "Book",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if resource_id is not None:
            ctx["resource_id"] = resource_id
        super().__init__(message=f"{resource} not found.", context=ctx)
        self.resource = resource


class OperationError(BooksAPIError):
    """
    Raised when a store-level operation fails.

    When:    Delete failed, database unreachable, constraint violation.
    HTTP:    500 Internal Server Error, surfaced verbatim, no retry.
    """

    status_code = 500
    default_code = "rest_operation_failed"

    def __init__(
        self,
        message: str = "The operation could not be completed.",
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, context=context)


class RateLimitExceededError(BooksAPIError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests, with a Retry-After header.
    """

    status_code = 429
    default_code = "rate_limit_exceeded"

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
