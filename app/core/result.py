"""Typed success/failure values.

Pipeline stages return ``Ok(value)`` or ``Err(error)`` instead of raising, so the
structured detail of a failure (missing columns, duplicate lists, ...) travels as
plain data and the presentation layer decides how to render it.
"""
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar('T')
E = TypeVar('E')


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    @property
    def is_ok(self) -> bool:
        return False


Result = Union[Ok[T], Err[E]]
