"""
Custom exception classes for the Emergency Assistance Service.

Every failure the API reports maps to one class here; the exception handlers
in ``app.main`` render them into a uniform JSON envelope.
"""

from typing import Any, Dict, List, Optional
from fastapi import HTTPException, status


class EmergencyServiceException(Exception):
    """Base exception class for all service exceptions."""

    def __init__(
        self,
        message: str = "An error occurred in the Emergency Assistance Service",
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        # Not super(): in APIException the next class in the MRO is HTTPException
        Exception.__init__(self, self.message)


# API/HTTP Exceptions
class APIException(EmergencyServiceException, HTTPException):
    """Base HTTP exception for API errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        EmergencyServiceException.__init__(self, message, error_code, details)
        HTTPException.__init__(self, status_code, message, headers)


class ValidationError(APIException):
    """Raised when a payload fails schema validation."""

    def __init__(
        self,
        message: str = "Validation failed",
        errors: Optional[List[Dict[str, Any]]] = None,
        field: Optional[str] = None
    ):
        if errors is None and field:
            errors = [{"loc": [field], "msg": message, "type": "value_error"}]
        self.errors = errors or []
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="VALIDATION_ERROR",
        )

    @classmethod
    def from_pydantic(cls, exc, message: str = "Validation failed") -> "ValidationError":
        """Build from a pydantic ``ValidationError`` keeping its itemized errors."""
        return cls(message=message, errors=normalize_errors(exc.errors()))


class NotFoundError(APIException):
    """Raised when a requested resource is not found."""

    def __init__(
        self,
        resource: str,
        identifier: Optional[Any] = None,
        message: Optional[str] = None
    ):
        if message is None:
            message = f"{resource} not found"
            if identifier is not None:
                message += f" (ID: {identifier})"

        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="RESOURCE_NOT_FOUND",
            details={"resource": resource, "identifier": identifier}
        )


class PermissionDeniedError(APIException):
    """Raised when an identified caller's role does not permit an operation."""

    def __init__(
        self,
        message: str = "Unauthorized access",
        required_roles: Optional[List[str]] = None,
        action: Optional[str] = None
    ):
        details: Dict[str, Any] = {}
        if required_roles:
            details["required_roles"] = required_roles
        if action:
            details["action"] = action

        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="PERMISSION_DENIED",
            details=details
        )


class AuthenticationError(APIException):
    """Raised when no caller identity can be resolved."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="AUTHENTICATION_REQUIRED",
            headers={"WWW-Authenticate": "Bearer"}
        )


class ConflictError(APIException):
    """Raised when a unique key is already taken."""

    def __init__(
        self,
        message: str = "Resource already exists",
        field: Optional[str] = None,
        value: Optional[Any] = None
    ):
        details: Dict[str, Any] = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = value
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code="CONFLICT",
            details=details
        )


# Storage Exceptions
class StoreError(APIException):
    """Raised when the entity store backend fails.

    The original error is kept on ``__cause__`` for logging; the client only
    ever sees a generic message.
    """

    def __init__(self, operation: str, message: str = "An internal server error occurred"):
        self.operation = operation
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_ERROR",
        )


def normalize_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Reduce pydantic error dicts to JSON-safe ``loc``/``msg``/``type`` items."""
    return [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": str(error.get("msg", "")),
            "type": str(error.get("type", "value_error")),
        }
        for error in errors
    ]
