"""
Book Catalogue Backend — Tagged Results
=======================================

What:  `Ok` / `Err` values returned by service functions instead of raising.
How:   Callers branch on `is_ok()` or chain with `map` / `bind`; the HTTP layer
       hands either variant to the response translator.
"""

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def map(self, func: Callable[[T], U]) -> "Ok[U]":
        return Ok(func(self.value))

    def bind(self, func: Callable[[T], "Result[U, E]"]) -> "Result[U, E]":
        return func(self.value)

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed outcome carrying an error value."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def map(self, func: Callable) -> "Err[E]":
        return self

    def bind(self, func: Callable) -> "Err[E]":
        return self

    def unwrap(self):
        raise ValueError(f"Called unwrap() on Err: {self.error!r}")

    def unwrap_or(self, default: T) -> T:
        return default


Result = Union[Ok[T], Err[E]]
