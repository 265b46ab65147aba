"""Models describing table change events and subscription state."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


class ChangeEvent(BaseModel):
    """A committed row change on one table."""

    event_type: Literal["INSERT", "UPDATE", "DELETE"]
    table: str
    new: dict[str, Any] = Field(default_factory=dict)
    old: dict[str, Any] = Field(default_factory=dict)
    commit_timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def record_id(self) -> str | None:
        """Identifier of the changed row (``key`` for settings rows)."""
        for row in (self.new, self.old):
            ident = row.get("id") or row.get("key")
            if ident is not None:
                return str(ident)
        return None


class SubscriptionStatus(str, Enum):
    SUBSCRIBED = "SUBSCRIBED"
    CHANNEL_ERROR = "CHANNEL_ERROR"
    TIMED_OUT = "TIMED_OUT"
    CLOSED = "CLOSED"


class LiveState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    LIVE = "live"
    CLOSED = "closed"


class LiveStatus(BaseModel):
    """Snapshot of one live collection for the status endpoint."""

    state: LiveState
    loading: bool
    error: str | None = None
    subscription: SubscriptionStatus | None = None
    size: int | None = None


class LiveCatalogView(BaseModel):
    enabled: bool
    collections: dict[str, LiveStatus] = Field(default_factory=dict)
