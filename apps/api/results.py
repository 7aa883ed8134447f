# apps/api/results.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    data: T
    message: str = ""


@dataclass(frozen=True)
class Done:
    message: str = ""


@dataclass(frozen=True)
class Failure:
    reason: str
    retryable: bool = True


Result = Union[Success[T], Done, Failure]
