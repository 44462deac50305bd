from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class IntegrationCreatePayload(BaseModel):
    """
    Schema for connecting a tenant to a booking channel.
    """

    platform: str = Field(..., min_length=1, description="Channel platform, e.g. airbnb or booking_com")
    display_name: Optional[str] = Field(None, description="Label shown to the host")
    credentials: dict[str, str] = Field(default_factory=dict, description="Channel credential values")
    auto_sync_enabled: bool = Field(False, description="Let the scheduler sync this integration")
    sync_interval_minutes: int = Field(60, ge=1, description="Minutes between scheduled syncs")


class IntegrationUpdatePayload(BaseModel):
    """
    Settings a host may change after creation. All fields are optional.
    Credentials are write-once and are rejected here.
    """

    model_config = ConfigDict(extra="forbid")

    display_name: Optional[str] = Field(None, description="Label shown to the host")
    is_active: Optional[bool] = Field(None, description="Disable to stop every sync of this integration")
    auto_sync_enabled: Optional[bool] = Field(None, description="Let the scheduler sync this integration")
    sync_interval_minutes: Optional[int] = Field(None, ge=1, description="Minutes between scheduled syncs")


class IntegrationResponse(BaseModel):
    id: UUID
    platform: str
    display_name: Optional[str] = None
    is_active: bool
    is_connected: bool
    last_synced_at: Optional[datetime] = None
    last_error: Optional[str] = None
    auto_sync_enabled: bool
    sync_interval_minutes: int
    credentials: dict[str, str] = Field(default_factory=dict, description="Masked credential values")


class RoomMappingPayload(BaseModel):
    room_id: UUID
    external_room_id: str = Field(..., min_length=1)
    external_room_name: Optional[str] = None
    ical_url: Optional[str] = Field(None, description="Channel iCal export URL, or demo://<platform>")


class RoomMappingsPayload(BaseModel):
    mappings: list[RoomMappingPayload]


class RoomMappingResponse(BaseModel):
    id: UUID
    room_id: UUID
    room_name: Optional[str] = None
    external_room_id: str
    external_room_name: Optional[str] = None
    ical_url: Optional[str] = None
    last_ical_sync: Optional[datetime] = None


class SyncTriggerPayload(BaseModel):
    sync_type: str = Field("full", pattern="^(bookings|availability|full)$")


class SyncRunResponse(BaseModel):
    log_id: UUID
    status: str
    records_created: int
    records_updated: int
    records_skipped: int
    records_failed: int
    errors: list[str]
    conflicts: list[str]


class SyncLogResponse(BaseModel):
    id: UUID
    sync_type: str
    direction: str
    status: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    records_processed: int
    records_created: int
    records_updated: int
    records_skipped: int
    records_failed: int
    error_message: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)


class ConnectionTestResponse(BaseModel):
    connected: bool
    feeds_total: int
    feeds_valid: int
    feeds_invalid: int
    errors: list[str]
