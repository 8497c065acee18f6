"""
Result type returned by service operations.

A service call returns either Ok(value) or Err(error) where error is one of
the AppError subclasses from api.errors. Routes turn an Err into the JSON
error envelope without raising.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from api.errors import AppError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: AppError

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]
