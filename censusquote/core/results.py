"""Outcome of a presentation step that is allowed to fail."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from censusquote.core.errors import AdapterError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class Err:
    error: AdapterError


Result = Union[Ok[T], Err]
