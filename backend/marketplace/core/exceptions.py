# backend/marketplace/core/exceptions.py
"""
Domain-specific exceptions for the marketplace.

Services raise these; the API layer converts them with
``to_http_exception()``. Each carries a stable ``code`` so clients can
branch on it without parsing the message.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when input fails business validation."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code or "VALIDATION_ERROR", details)


class NotFoundException(DomainException):
    """Raised when a requested entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code or "NOT_FOUND", details)


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class ForbiddenException(DomainException):
    """Raised when the actor lacks authority for an action."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code or "FORBIDDEN", details)


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class BookingConflictException(ConflictException):
    """Raised when a reservation window overlaps a live reservation on the same car."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "Car is not available for the selected time",
            code="BOOKING_CONFLICT",
            details=details or {},
        )


class ResourceBusyException(ConflictException):
    """Raised when the per-resource lock could not be taken in time."""

    def __init__(self, resource_id: str, waited_seconds: float):
        super().__init__(
            message="Another request is modifying this car's schedule, please retry",
            code="RESOURCE_BUSY",
            details={"resource_id": resource_id, "waited_seconds": waited_seconds},
        )


class InvalidStateTransitionException(ConflictException):
    """Raised when a state machine is asked for a move its table does not allow."""

    def __init__(
        self,
        message: str,
        *,
        current: Optional[str] = None,
        requested: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        payload = dict(details or {})
        if current is not None:
            payload["current_status"] = current
        if requested is not None:
            payload["requested_status"] = requested
        super().__init__(message=message, code="INVALID_STATE_TRANSITION", details=payload)


class ConfigurationException(BusinessRuleException):
    """Raised when a resource is missing configuration an operation needs (e.g. a rate)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="CONFIGURATION_ERROR", details=details)


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
