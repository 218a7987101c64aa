"""Scheduler schemas - appointment types, availability and bookings"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from ...shared.responses import UtcDateTime
from ...shared.validators import is_valid_time_zone

LocationType = Literal["video", "phone", "in_person", "custom"]
SchedulingMode = Literal["single", "round_robin"]
ContactPreference = Literal["email", "phone", "sms"]


class AppointmentTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    slug: str = Field(..., min_length=1, max_length=64)
    durationMinutes: int = Field(..., ge=5, le=480)
    locationType: LocationType = "video"
    locationDetails: Optional[str] = Field(None, max_length=400)
    bufferBeforeMinutes: int = Field(0, ge=0, le=120)
    bufferAfterMinutes: int = Field(0, ge=0, le=120)
    active: bool = True
    schedulingMode: SchedulingMode = "single"
    teamUserIds: list[int] = []


class AppointmentTypeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    slug: Optional[str] = Field(None, min_length=1, max_length=64)
    durationMinutes: Optional[int] = Field(None, ge=5, le=480)
    locationType: Optional[LocationType] = None
    locationDetails: Optional[str] = Field(None, max_length=400)
    bufferBeforeMinutes: Optional[int] = Field(None, ge=0, le=120)
    bufferAfterMinutes: Optional[int] = Field(None, ge=0, le=120)
    active: Optional[bool] = None
    schedulingMode: Optional[SchedulingMode] = None
    teamUserIds: Optional[list[int]] = None


class AppointmentTypeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    ownerUserId: int = Field(validation_alias="owner_user_id")
    name: str
    slug: str
    durationMinutes: int = Field(validation_alias="duration_minutes")
    locationType: str = Field("video", validation_alias="location_type")
    locationDetails: Optional[str] = Field(None, validation_alias="location_details")
    bufferBeforeMinutes: int = Field(0, validation_alias="buffer_before_minutes")
    bufferAfterMinutes: int = Field(0, validation_alias="buffer_after_minutes")
    active: bool = True
    schedulingMode: str = Field("single", validation_alias="scheduling_mode")
    teamUserIds: list[int] = Field([], validation_alias="team_user_ids")
    lastAssignedUserId: Optional[int] = Field(None, validation_alias="last_assigned_user_id")
    lastUsedAt: Optional[UtcDateTime] = Field(None, validation_alias="last_used_at")
    createdAt: Optional[UtcDateTime] = Field(None, validation_alias="created_at")
    updatedAt: Optional[UtcDateTime] = Field(None, validation_alias="updated_at")


class WeeklyWindow(BaseModel):
    day: int = Field(..., ge=0, le=6)
    enabled: bool
    startMin: int
    endMin: int


class AvailabilityUpdate(BaseModel):
    timeZone: str = Field(..., min_length=1, max_length=64)
    weekly: list[WeeklyWindow] = Field(..., min_length=7, max_length=7)

    @field_validator("timeZone")
    @classmethod
    def known_time_zone(cls, v: str) -> str:
        if not is_valid_time_zone(v):
            raise ValueError("Unknown time zone")
        return v

    @field_validator("weekly")
    @classmethod
    def one_window_per_day(cls, v: list[WeeklyWindow]) -> list[WeeklyWindow]:
        if len({w.day for w in v}) != 7:
            raise ValueError("Each weekday must appear exactly once")
        return v


class AvailabilityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    timeZone: str = Field("UTC", validation_alias="time_zone")
    weekly: list[dict] = []
    updatedAt: Optional[UtcDateTime] = Field(None, validation_alias="updated_at")


class BookingRequest(BaseModel):
    """Attendee details for a booking. A full name or a first/last pair is required."""

    attendeeFirstName: Optional[str] = Field(None, max_length=120)
    attendeeLastName: Optional[str] = Field(None, max_length=120)
    attendeeName: Optional[str] = Field(None, max_length=120)
    attendeeEmail: EmailStr
    attendeePhone: Optional[str] = Field(None, max_length=40)
    attendeeContactPreference: Optional[ContactPreference] = None
    notes: Optional[str] = Field(None, max_length=1500)
    startsAt: datetime
    timeZone: Optional[str] = Field(None, max_length=64)
    reminderMinutesBefore: Optional[int] = Field(None, ge=0, le=10080)

    @model_validator(mode="after")
    def require_name(self):
        if not (self.attendeeName or "").strip():
            parts = [p.strip() for p in (self.attendeeFirstName, self.attendeeLastName) if p and p.strip()]
            if not parts:
                raise ValueError("attendeeName is required")
            self.attendeeName = " ".join(parts)
        return self


class InternalBookingRequest(BookingRequest):
    appointmentTypeId: int
    contactId: Optional[int] = None


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    appointmentTypeId: int = Field(validation_alias="appointment_type_id")
    ownerUserId: int = Field(validation_alias="owner_user_id")
    status: str
    attendeeFirstName: Optional[str] = Field(None, validation_alias="attendee_first_name")
    attendeeLastName: Optional[str] = Field(None, validation_alias="attendee_last_name")
    attendeeName: str = Field(validation_alias="attendee_name")
    attendeeEmail: str = Field(validation_alias="attendee_email")
    attendeePhone: Optional[str] = Field(None, validation_alias="attendee_phone")
    attendeeContactPreference: Optional[str] = Field(None, validation_alias="attendee_contact_preference")
    contactId: Optional[int] = Field(None, validation_alias="contact_id")
    notes: Optional[str] = None
    startsAt: UtcDateTime = Field(validation_alias="starts_at")
    endsAt: UtcDateTime = Field(validation_alias="ends_at")
    timeZone: Optional[str] = Field(None, validation_alias="time_zone")
    source: Optional[str] = None
    scheduledByUserId: Optional[int] = Field(None, validation_alias="scheduled_by_user_id")
    reminderMinutesBefore: Optional[int] = Field(None, validation_alias="reminder_minutes_before")
    reminderEmailSentAt: Optional[UtcDateTime] = Field(None, validation_alias="reminder_email_sent_at")
    inviteEmailSentAt: Optional[UtcDateTime] = Field(None, validation_alias="invite_email_sent_at")
    cancelledAt: Optional[UtcDateTime] = Field(None, validation_alias="cancelled_at")
    createdAt: Optional[UtcDateTime] = Field(None, validation_alias="created_at")
    updatedAt: Optional[UtcDateTime] = Field(None, validation_alias="updated_at")


def serialize_appointment(appointment) -> dict:
    """Appointment plus the name and slug of its type"""
    data = AppointmentResponse.model_validate(appointment).model_dump(mode="json")
    appointment_type = appointment.appointment_type
    data["appointmentTypeName"] = appointment_type.name if appointment_type else None
    data["appointmentTypeSlug"] = appointment_type.slug if appointment_type else None
    return data
