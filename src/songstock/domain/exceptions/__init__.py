"""Domain exceptions.

Each exception maps to exactly one HTTP status in
``songstock.api.exception_handlers``. Raise the most specific subclass so the
handler can pick the right status code.
"""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me - message is stored so handlers can return it without parsing str(exc).
    # Don't raise DomainException directly, always pick a subclass.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when an entity is not found.

    HTTP Status: 404
    """

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationException(DomainException):
    """Raised when input fails a business validation rule before any write.

    Example: an admin edit with a blank username, a negative stock quantity.

    HTTP Status: 400
    """

    pass


class DuplicateEntityException(DomainException):
    """Raised when a uniqueness rule would be violated.

    HTTP Status: 409

    Example:
        raise DuplicateEntityException("User", "username", "alice")
    """

    def __init__(self, entity_type: str, field: str, value: Any) -> None:
        super().__init__(f"{entity_type} with {field} '{value}' already exists")
        self.entity_type = entity_type
        self.field = field
        self.value = value


class InvalidStateException(DomainException):
    """Raised when an entity is in the wrong state for the requested operation.

    Example: cancelling an order that was already delivered.

    HTTP Status: 400
    """

    pass


class BusinessRuleViolation(DomainException):
    """A business rule was violated.

    Example:
        raise BusinessRuleViolation("User cannot be deleted: provider has products")

    HTTP Status: 400
    """

    pass


class AuthenticationError(DomainException):
    """Caller is not authenticated, or the session token is invalid or expired.

    HTTP Status: 401
    """

    pass


class AuthorizationError(DomainException):
    """Caller is authenticated but lacks permission for this action.

    HTTP Status: 403
    """

    pass


class ConfigurationError(DomainException):
    """Application misconfiguration detected at startup.

    HTTP Status: 503
    """

    pass


__all__ = [
    "AuthenticationError",
    "AuthorizationError",
    "BusinessRuleViolation",
    "ConfigurationError",
    "DomainException",
    "DuplicateEntityException",
    "EntityNotFoundException",
    "InvalidStateException",
    "ValidationException",
]
