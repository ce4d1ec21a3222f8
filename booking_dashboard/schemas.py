from datetime import date, datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .domain.entities import BookingDraft, BookingRules, ExistingBooking, ResourceInfo
from .domain.services import derive_timeline_status
from .models import BookingStatus, TimelineStatus
from .utils.time import is_aware


# Dashboard-facing models


def _blank_as_missing(value: Any) -> Any:
    # HTML forms post "" for untouched inputs.
    if isinstance(value, str) and not value.strip():
        return None
    return value


class BookingDraftIn(BaseModel):
    # Everything optional: missing fields are reported as violations, not 422 schema errors.
    resource_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    requested_by: Optional[str] = None

    @field_validator("resource_id", "start_time", "end_time", "requested_by", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        return _blank_as_missing(value)

    def to_draft(self) -> BookingDraft:
        return BookingDraft(
            resource_id=self.resource_id,
            start_time=self.start_time,
            end_time=self.end_time,
            requested_by=self.requested_by.strip() if self.requested_by else self.requested_by,
        )


class BookingUpdateIn(BaseModel):
    resource_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    requested_by: Optional[str] = None

    @field_validator("resource_id", "start_time", "end_time", "requested_by", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        return _blank_as_missing(value)


class BookingRead(BaseModel):
    id: str
    resource_id: str
    start_time: datetime
    end_time: datetime
    requested_by: str
    status: BookingStatus
    timeline_status: TimelineStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, booking: ExistingBooking, *, now: datetime) -> "BookingRead":
        return cls(
            id=booking.id,
            resource_id=booking.resource_id,
            start_time=booking.start_time,
            end_time=booking.end_time,
            requested_by=booking.requested_by,
            status=booking.status,
            timeline_status=derive_timeline_status(booking, now),
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


class ValidationResult(BaseModel):
    valid: bool
    errors: list[str]


class UpcomingOngoingRead(BaseModel):
    upcoming_bookings: list[BookingRead]
    ongoing_bookings: list[BookingRead]


class CalendarDayRead(BaseModel):
    day: date
    bookings: list[BookingRead]


class CalendarWeekRead(BaseModel):
    week_start: date
    week_end: date
    days: list[CalendarDayRead]


class ResourceCreate(BaseModel):
    name: Optional[str] = None


class ResourceRead(BaseModel):
    id: str
    name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, resource: ResourceInfo) -> "ResourceRead":
        return cls(
            id=resource.id,
            name=resource.name,
            created_at=resource.created_at,
            updated_at=resource.updated_at,
        )


class ResourceUtilizationRead(BaseModel):
    id: str
    name: str
    total_bookings: int
    upcoming_bookings: int
    ongoing_bookings: int
    total_hours: float
    utilization: int
    is_active: bool


class AvailableSlotRead(BaseModel):
    start: datetime
    end: datetime
    duration: int


class AvailabilityRead(BaseModel):
    resource_id: str
    day: date
    total_slots: int
    available_slots: list[AvailableSlotRead]


class BookingStatsRead(BaseModel):
    total_bookings: int
    total_resources: int
    total_bookings_today: int
    ongoing_bookings_today: int


class RulesRead(BaseModel):
    min_duration_minutes: int
    max_duration_hours: int
    buffer_minutes: int
    advance_booking_days: int

    @classmethod
    def from_rules(cls, rules: BookingRules) -> "RulesRead":
        return cls(
            min_duration_minutes=rules.min_duration_minutes,
            max_duration_hours=rules.max_duration_hours,
            buffer_minutes=rules.buffer_minutes,
            advance_booking_days=rules.advance_booking_days,
        )


# Upstream booking API payloads (camelCase, wrapped in {success, message, data})


class UpstreamEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool = True
    message: Optional[str] = None
    data: Any = None


class UpstreamBooking(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    resource_id: str = Field(alias="resourceId")
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")
    requested_by: str = Field(default="", alias="requestedBy")
    status: BookingStatus = BookingStatus.ACTIVE
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @field_validator("status", mode="before")
    @classmethod
    def _collapse_status(cls, value: Any) -> BookingStatus:
        # Legacy payloads send upcoming/ongoing/past; only "cancelled" is authoritative.
        if isinstance(value, str) and value.strip().lower() == BookingStatus.CANCELLED.value:
            return BookingStatus.CANCELLED
        return BookingStatus.ACTIVE

    @field_validator("start_time", "end_time", "created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and not is_aware(value):
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_entity(self) -> ExistingBooking:
        return ExistingBooking(
            id=self.id,
            resource_id=self.resource_id,
            start_time=self.start_time,
            end_time=self.end_time,
            requested_by=self.requested_by,
            status=self.status,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class UpstreamBookingWrite(BaseModel):
    """PUT/POST body for /booking.

    A PUT carries either the booking fields (an edit) or `status` alone (a cancel),
    never both. `HttpBookingRepository.update` never sends `status`.
    """

    resource_id: Optional[str] = Field(default=None, serialization_alias="resourceId")
    start_time: Optional[datetime] = Field(default=None, serialization_alias="startTime")
    end_time: Optional[datetime] = Field(default=None, serialization_alias="endTime")
    requested_by: Optional[str] = Field(default=None, serialization_alias="requestedBy")
    status: Optional[BookingStatus] = None

    def to_body(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class UpstreamResource(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")
    bookings: list[UpstreamBooking] = Field(default_factory=list)

    def to_entity(self) -> ResourceInfo:
        return ResourceInfo(
            id=self.id,
            name=self.name,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class UpstreamResourcePage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    data: list[UpstreamResource] = Field(default_factory=list)
    meta: Optional[dict[str, Any]] = None
