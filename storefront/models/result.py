"""Explicit read results for fail-open backend reads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Value returned by a read, plus the reason it fell back, if it did.

    ``value`` is always usable (an empty list or the default settings when
    the read failed), so callers that only want the value can ignore
    ``error``.
    """

    value: T
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
