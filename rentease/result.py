# Two-variant result returned by every repository method.
# Callers branch on the variant (or use is_success); repositories never raise to them.
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")


class ResultError(Exception):
    """Raised by Result.unwrap() on an Error."""


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    @property
    def is_success(self) -> bool:
        return True

    def get_or_none(self) -> Optional[T]:
        return self.value

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Error:
    # Short, human-readable; shown as-is in toasts/snackbars
    message: str

    @property
    def is_success(self) -> bool:
        return False

    def get_or_none(self) -> None:
        return None

    def unwrap(self):
        raise ResultError(self.message)


Result = Union[Success[T], Error]
