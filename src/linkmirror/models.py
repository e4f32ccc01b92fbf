# SPDX-License-Identifier: MIT
"""Core data models for link mirror."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .constants import DEFAULT_SORT_KEY, DEFAULT_SYNC_INTERVAL_MINUTES
from .enums import MessageType, SyncStatus


class Credential(BaseModel):
    """Short-lived bearer credential for remote calls."""

    model_config = ConfigDict(frozen=True)

    token: str = Field(..., min_length=1, description="Bearer token")
    expires_at: datetime = Field(..., description="Instant the token stops being valid")

    def is_valid(self, now: datetime) -> bool:
        """A credential at exactly its expiry instant is already expired."""
        return now < self.expires_at


class RemoteConfig(BaseModel):
    """Remote table access settings, read once per sync attempt."""

    model_config = ConfigDict(frozen=True)

    app_id: str = Field("", description="Application ID")
    app_secret: str = Field("", description="Application secret")
    app_token: str = Field("", description="Bitable app token")
    table_id: str = Field("", description="Bitable table ID")
    sync_interval_minutes: int = Field(
        DEFAULT_SYNC_INTERVAL_MINUTES, ge=1, description="Periodic sync interval"
    )
    sync_enabled: bool = Field(True, description="Enable periodic sync")

    def has_credentials(self) -> bool:
        return bool(self.app_id and self.app_secret)

    def has_table(self) -> bool:
        return bool(self.app_token and self.table_id)


class Record(BaseModel):
    """One link produced from one remote row."""

    model_config = ConfigDict(frozen=True)

    id: str = Field("", description="Remote record ID")
    name: str = Field(..., min_length=1, description="Site name")
    url: str = Field(..., min_length=1, description="Site URL")
    category: str = Field(..., description="Category the link is grouped under")
    sort_key: int = Field(DEFAULT_SORT_KEY, description="Ascending order in category")
    icon_ref: str = Field("", description="Icon URL or inline icon text")


class DateInfo(BaseModel):
    """Calendar information captured when a snapshot is built."""

    date: str = Field("", description="ISO calendar date")
    weekday: str = Field("", description="Weekday name")
    lunar_date: str = Field("", description="Lunar calendar date when available")


class Snapshot(BaseModel):
    """Full set of categorized records as of one successful fetch."""

    categories: list[str] = Field(default_factory=list)
    records_by_category: dict[str, list[Record]] = Field(default_factory=dict)
    fetched_at: datetime
    date_info: DateInfo = Field(default_factory=DateInfo)

    def record_count(self) -> int:
        return sum(len(records) for records in self.records_by_category.values())


class NewLink(BaseModel):
    """Input for creating a remote record."""

    name: str
    url: str
    category: str
    sort_key: int = DEFAULT_SORT_KEY
    icon_ref: str = ""


class SyncState(BaseModel):
    """Observable state of the sync state machine."""

    status: SyncStatus = SyncStatus.IDLE
    message: str = ""
    last_sync_at: datetime | None = None
    retry_count: int = Field(0, ge=0)
    updated_at: datetime | None = None
    periodic_enabled: bool = False
    interval_minutes: int | None = None


class ControlRequest(BaseModel):
    """Request accepted by the control surface."""

    type: MessageType
    interval: int | None = Field(None, ge=1, description="Minutes between syncs")


class ControlResponse(BaseModel):
    """Uniform response returned for every control request."""

    success: bool
    error: str | None = None
    status: SyncState | None = None

    def to_message(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class SyncComplete(BaseModel):
    """Notification emitted after a sync that changed the snapshot."""

    type: MessageType = MessageType.SYNC_COMPLETE
    timestamp: datetime
