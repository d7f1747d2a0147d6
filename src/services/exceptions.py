"""Shared exceptions for service layer operations."""
from typing import Any


class DomainError(Exception):
    """Base class for errors raised by repositories and services."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class EntityNotFoundError(DomainError):
    """Raised when an id does not resolve to an existing row."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id '{entity_id}' was not found")


class DuplicateEntityError(DomainError):
    """Raised when a natural key (bookmark url, tag name) already exists for the user."""

    def __init__(self, entity_type: str, property_name: str, property_value: Any) -> None:
        self.entity_type = entity_type
        self.property_name = property_name
        self.property_value = property_value
        super().__init__(
            f"{entity_type} with {property_name} '{property_value}' already exists",
        )


class AccessDeniedError(DomainError):
    """Raised when a row exists but belongs to another user."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"Access to {entity_type} '{entity_id}' is denied")


class UnauthenticatedError(DomainError):
    """Raised when the caller identity is missing or invalid."""

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class InvalidArgumentError(DomainError):
    """Raised when input is blank, malformed, or violates a business rule."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
