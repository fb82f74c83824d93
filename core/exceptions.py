"""Custom exception hierarchy for the application."""
from __future__ import annotations


class InventoryException(Exception):
    """Base exception for all inventory processing errors."""
    pass


class ParsingError(InventoryException):
    """Raised when no numeric quantity can be extracted from a fragment."""
    pass


class InvalidStateError(InventoryException):
    """Raised when a review session or item does not allow the requested transition."""
    pass


class NotFoundError(InventoryException):
    """Raised when a session or item index does not exist."""
    pass


class ValidationError(InventoryException):
    """Raised when an item fails minimum-field checks."""
    pass


class PersistenceError(InventoryException):
    """Raised when the persistence collaborator rejects a row."""
    pass


class ConfigurationError(InventoryException):
    """Raised when configuration is invalid or missing."""
    pass
