"""Result type returned by the use-case layer instead of raising."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

T = TypeVar('T')
E = TypeVar('E')


@dataclass(frozen=True)
class Success(Generic[T]):
    """Represents a successful outcome carrying a value."""
    value: T

    def is_success(self) -> bool:
        return True

    def is_failure(self) -> bool:
        return False

    def map(self, fn: Callable[[T], Any]) -> "Result[Any, Exception]":
        """Transform the success value; an exception raised by fn becomes a Failure."""
        try:
            return Success(fn(self.value))
        except Exception as e:
            return Failure(e)

    def and_then(self, fn: Callable[[T], "Result[Any, Any]"]) -> "Result[Any, Any]":
        """Chain an operation that itself returns a Result."""
        return fn(self.value)

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value


@dataclass(frozen=True)
class Failure(Generic[E]):
    """Represents a failed outcome carrying the error."""
    error: E

    def is_success(self) -> bool:
        return False

    def is_failure(self) -> bool:
        return True

    def map(self, fn: Callable) -> "Failure[E]":
        return self

    def and_then(self, fn: Callable) -> "Failure[E]":
        return self

    def unwrap(self):
        """Raise the wrapped error."""
        if isinstance(self.error, Exception):
            raise self.error
        raise Exception(str(self.error))

    def unwrap_or(self, default):
        return default


Result = Union[Success[T], Failure[E]]
