"""
Custom exception classes and error handling.

Provides consistent error responses across the engine. Client errors carry
a specific reason; infrastructure errors carry a generic one.
"""
from fastapi import HTTPException, status
from typing import Optional, Dict, Any


class APIException(HTTPException):
    """Base API exception with consistent structure."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class NotFoundError(APIException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found: {identifier}",
            error_code="NOT_FOUND"
        )


class ValidationError(APIException):
    """Validation error."""

    def __init__(self, detail: str, field: Optional[str] = None):
        error_code = f"VALIDATION_ERROR_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code=error_code
        )
        self.field = field


class RateLimitedError(APIException):
    """Too many requests for this action."""

    def __init__(self, action: str, retry_after: Optional[int] = None):
        headers = {"Retry-After": str(retry_after)} if retry_after else None
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Rate limit exceeded for {action}",
            error_code="RATE_LIMITED",
            headers=headers
        )
        self.retry_after = retry_after


class ForbiddenError(APIException):
    """Access denied."""

    def __init__(self, detail: str = "Access denied", error_code: str = "FORBIDDEN"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code=error_code
        )


class OwnershipError(ForbiddenError):
    """Acting user does not own the referenced plan or workout."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            detail=f"{resource} {identifier} does not belong to the acting user",
            error_code="OWNERSHIP_MISMATCH"
        )


class ConflictError(APIException):
    """Resource conflict (e.g., workout already completed)."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code="CONFLICT"
        )


class InfrastructureError(APIException):
    """Store or cache failure. Never leaks internal detail to the caller."""

    def __init__(self, detail: str = "Temporary problem, please try again"):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            error_code="INFRASTRUCTURE_ERROR"
        )
