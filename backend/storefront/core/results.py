"""
Tagged results returned by every provider-facing call.

Callers branch on `result.ok` (or `isinstance`) instead of catching exceptions:

    result = await board.confirm_status_change()
    if not result.ok:
        log(result.kind, result.error)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Literal, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T = None
    message: str = ""

    @property
    def ok(self) -> Literal[True]:
        return True


@dataclass(frozen=True)
class Failure:
    kind: str
    error: str

    @property
    def ok(self) -> Literal[False]:
        return False

    @property
    def message(self) -> str:
        return self.error


Result = Union[Success[T], Failure]
