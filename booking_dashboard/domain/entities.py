from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..models import BookingStatus

DEFAULT_BUFFER_MINUTES = 15
DEFAULT_MIN_DURATION_MINUTES = 30
DEFAULT_MAX_DURATION_HOURS = 8
DEFAULT_ADVANCE_BOOKING_DAYS = 30


@dataclass(frozen=True)
class BookingDraft:
    """Unsaved booking built from form input; any field may still be missing."""

    resource_id: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    requested_by: str | None = None


@dataclass(frozen=True)
class ExistingBooking:
    id: str
    resource_id: str
    start_time: datetime
    end_time: datetime
    requested_by: str
    status: BookingStatus = BookingStatus.ACTIVE
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED

    @property
    def duration_hours(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 3600


@dataclass(frozen=True)
class ResourceInfo:
    id: str
    name: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class BookingRules:
    min_duration_minutes: int = DEFAULT_MIN_DURATION_MINUTES
    max_duration_hours: int = DEFAULT_MAX_DURATION_HOURS
    buffer_minutes: int = DEFAULT_BUFFER_MINUTES
    # Shown on the settings page only; the upstream API owns this rule.
    advance_booking_days: int = DEFAULT_ADVANCE_BOOKING_DAYS
