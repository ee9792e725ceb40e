"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

Every exception carries a stable machine-readable ``kind`` plus a human
message. The HTTP layer maps kinds to status codes; the core never swallows
them.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    kind = "internal"

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain rule violations."""

    kind = "domain_error"


class RepositoryException(ApplicationException):
    """Unexpected failure from the data access layer."""

    kind = "internal"


class ValidationException(ApplicationException):
    """Malformed or missing input."""

    kind = "validation_error"


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    kind = "not_found"

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[object] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id is not None:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class UnauthorizedException(ApplicationException):
    """No usable actor identity on the request."""

    kind = "unauthorized"


class ForbiddenException(ApplicationException):
    """The actor's scope does not cover the requested resource or action."""

    kind = "forbidden"


class InvalidStatusException(DomainException):
    """Unknown ticket status name or a disallowed transition."""

    kind = "invalid_status"


class InvalidOutcomeException(DomainException):
    """Call outcome not present in the call status catalog."""

    kind = "invalid_outcome"


class InvalidAssignmentException(DomainException):
    """Assignee is not an active executive of the ticket's zone."""

    kind = "invalid_assignment"


class ConflictException(ApplicationException):
    """Uniqueness violation, e.g. a duplicate ticket number."""

    kind = "conflict"


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""

    kind = "configuration_error"
