"""Core infrastructure: exception hierarchy, result type and error handling helpers."""
from __future__ import annotations

from .container import Container
from .exceptions import (
    InventoryException,
    ParsingError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
    PersistenceError,
    ConfigurationError,
)
from .result import Result, Success, Failure

__all__ = [
    "Container",
    "InventoryException",
    "ParsingError",
    "InvalidStateError",
    "NotFoundError",
    "ValidationError",
    "PersistenceError",
    "ConfigurationError",
    "Result",
    "Success",
    "Failure",
]
