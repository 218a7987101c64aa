"""Scheduler service - Business logic for appointment types, availability and bookings"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import user_has_application
from ...config import FRONTEND_URL
from ...email_service import (
    send_appointment_cancelled_email,
    send_appointment_confirmation_email,
    send_appointment_reminder_email,
)
from ...models import Appointment, AppointmentType, Availability, User
from ...shared.dates import isoformat_utc, parse_instant, to_naive_utc, utcnow
from ...shared.validators import is_valid_slug, slugify
from ..contacts.service import ContactService
from .repository import SchedulerRepository
from .schemas import (
    AppointmentTypeCreate,
    AppointmentTypeUpdate,
    AvailabilityUpdate,
    BookingRequest,
    InternalBookingRequest,
)
from .slots import (
    SlotValidationError,
    default_weekly,
    generate_slots,
    generate_team_slots,
    normalize_weekly,
    rotation_order,
    validate_requested_slot,
)

logger = logging.getLogger(__name__)

SCHEDULER_APPLICATION = "scheduler"
DEFAULT_WINDOW_DAYS = 14
MAX_WINDOW_DAYS = 60
REMINDER_LOOKAHEAD = timedelta(hours=24)
REMINDER_GRACE = timedelta(minutes=2)

TYPE_COLUMNS = {
    "name": "name",
    "durationMinutes": "duration_minutes",
    "locationType": "location_type",
    "locationDetails": "location_details",
    "bufferBeforeMinutes": "buffer_before_minutes",
    "bufferAfterMinutes": "buffer_after_minutes",
    "active": "active",
    "schedulingMode": "scheduling_mode",
}

LOCATION_LABELS = {
    "video": "Video call",
    "phone": "Phone call",
    "in_person": "In person",
    "custom": "Custom",
}


def location_label(appointment_type: AppointmentType) -> str:
    return appointment_type.location_details or LOCATION_LABELS.get(appointment_type.location_type, "")


def blocks(appointments: list[Appointment]) -> list[tuple[datetime, datetime]]:
    return [(a.starts_at, a.ends_at) for a in appointments]


class SchedulerService:
    """Service layer for scheduler business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulerRepository()

    # ========================================================================
    # APPOINTMENT TYPES
    # ========================================================================

    def list_types(self, user: User) -> list[AppointmentType]:
        return self.repo.list_types(self.db, user.id)

    def _get_owned_type(self, user: User, type_id: int) -> AppointmentType:
        appointment_type = self.repo.get_type(self.db, type_id, owner_user_id=user.id)
        if not appointment_type:
            raise HTTPException(status_code=404, detail="not_found")
        return appointment_type

    def _clean_slug(self, user: User, raw: str, exclude_id: Optional[int] = None) -> str:
        slug = slugify(raw)
        if not is_valid_slug(slug):
            raise HTTPException(status_code=400, detail="invalid_slug")
        clash = self.repo.get_type_by_slug(self.db, slug, owner_user_id=user.id)
        if clash and clash.id != exclude_id:
            raise HTTPException(status_code=409, detail="slug_taken")
        return slug

    def _clean_team(self, team_user_ids: list[int]) -> list[int]:
        team = list(dict.fromkeys(team_user_ids))
        known = {u.id for u in self.repo.get_users(self.db, team)}
        if len(known) != len(team):
            raise HTTPException(status_code=400, detail="invalid_team")
        return team

    def create_type(self, user: User, data: AppointmentTypeCreate) -> AppointmentType:
        slug = self._clean_slug(user, data.slug)
        appointment_type = self.repo.create_type(
            self.db,
            owner_user_id=user.id,
            name=data.name.strip(),
            slug=slug,
            duration_minutes=data.durationMinutes,
            location_type=data.locationType,
            location_details=data.locationDetails,
            buffer_before_minutes=data.bufferBeforeMinutes,
            buffer_after_minutes=data.bufferAfterMinutes,
            active=data.active,
            scheduling_mode=data.schedulingMode,
            team_user_ids=self._clean_team(data.teamUserIds),
        )
        logger.info(f"📅 Appointment type '{slug}' created for user {user.id}")
        return appointment_type

    def update_type(self, user: User, type_id: int, data: AppointmentTypeUpdate) -> AppointmentType:
        appointment_type = self._get_owned_type(user, type_id)
        payload = data.model_dump(exclude_unset=True)

        if payload.get("slug") is not None:
            appointment_type.slug = self._clean_slug(user, payload["slug"], exclude_id=appointment_type.id)
        if payload.get("teamUserIds") is not None:
            appointment_type.team_user_ids = self._clean_team(payload["teamUserIds"])
        for field, column in TYPE_COLUMNS.items():
            if field not in payload:
                continue
            value = payload[field]
            if value is None and field != "locationDetails":
                continue
            setattr(appointment_type, column, value.strip() if field == "name" else value)
        return self.repo.save(self.db, appointment_type)

    def delete_type(self, user: User, type_id: int) -> dict:
        appointment_type = self._get_owned_type(user, type_id)
        if self.repo.has_appointments(self.db, appointment_type.id):
            raise HTTPException(status_code=409, detail="type_in_use")
        self.repo.delete(self.db, appointment_type)
        return {"ok": True}

    # ========================================================================
    # AVAILABILITY
    # ========================================================================

    def get_availability(self, user_id: int) -> Availability:
        """A user's weekly hours; created with defaults on first read"""
        availability = self.repo.get_availability(self.db, user_id)
        if availability:
            return availability
        return self.repo.create_availability(self.db, user_id=user_id, time_zone="UTC", weekly=default_weekly())

    def update_availability(self, user: User, data: AvailabilityUpdate) -> Availability:
        availability = self.get_availability(user.id)
        availability.time_zone = data.timeZone
        availability.weekly = normalize_weekly(w.model_dump() for w in data.weekly)
        return self.repo.save(self.db, availability)

    # ========================================================================
    # APPOINTMENTS AND CALENDAR
    # ========================================================================

    @staticmethod
    def _parse_range(raw_from: Optional[str], raw_to: Optional[str], now: datetime) -> tuple[datetime, datetime]:
        start = parse_instant(raw_from) if raw_from else now - timedelta(days=7)
        end = parse_instant(raw_to) if raw_to else now + timedelta(days=30)
        if start is None or end is None or start >= end:
            raise HTTPException(status_code=400, detail="invalid_range")
        return start, end

    def list_appointments(self, user: User, raw_from: Optional[str] = None, raw_to: Optional[str] = None):
        start, end = self._parse_range(raw_from, raw_to, utcnow())
        return self.repo.list_appointments(self.db, user.id, start, end)

    def calendar_events(self, user: User, raw_from: Optional[str], raw_to: Optional[str]) -> list[dict]:
        if not raw_from or not raw_to:
            raise HTTPException(status_code=400, detail="invalid_range")
        start, end = self._parse_range(raw_from, raw_to, utcnow())
        events = []
        for a in self.repo.list_overlapping(self.db, user.id, start, end, booked_only=False):
            appointment_type = a.appointment_type
            events.append(
                {
                    "kind": "appointment",
                    "id": a.id,
                    "title": appointment_type.name if appointment_type else f"Appointment: {a.attendee_name}",
                    "startsAt": isoformat_utc(a.starts_at),
                    "endsAt": isoformat_utc(a.ends_at),
                    "timeZone": a.time_zone or "UTC",
                    "locationType": appointment_type.location_type if appointment_type else "video",
                    "attendee": {
                        "firstName": a.attendee_first_name,
                        "lastName": a.attendee_last_name,
                        "name": a.attendee_name,
                        "email": a.attendee_email,
                        "phone": a.attendee_phone,
                        "contactPreference": a.attendee_contact_preference,
                    },
                    "contactId": a.contact_id,
                    "source": a.source,
                    "scheduledByUserId": a.scheduled_by_user_id,
                }
            )
        return events

    def list_scheduler_users(self) -> list[dict]:
        return [
            {"id": u.id, "email": u.email, "name": u.full_name}
            for u in self.repo.list_active_users(self.db)
            if user_has_application(u, SCHEDULER_APPLICATION)
        ]

    async def cancel_appointment(self, user: User, appointment_id: int) -> dict:
        appointment = self.repo.get_appointment(self.db, appointment_id, user.id)
        if not appointment:
            raise HTTPException(status_code=404, detail="not_found")
        appointment.status = "cancelled"
        appointment.cancelled_at = utcnow()
        self.repo.save(self.db, appointment)
        logger.info(f"📅 Appointment {appointment.id} cancelled by user {user.id}")

        appointment_type = appointment.appointment_type
        try:
            await send_appointment_cancelled_email(
                to=appointment.attendee_email,
                attendee_name=appointment.attendee_name,
                type_name=appointment_type.name if appointment_type else "Appointment",
                starts_at=appointment.starts_at,
                booking_url=f"{FRONTEND_URL}/book/{appointment_type.slug}" if appointment_type else FRONTEND_URL,
                time_zone=appointment.time_zone,
            )
        except Exception as e:
            logger.error(f"❌ Failed to send cancellation email for appointment {appointment.id}: {str(e)}")
        return {"ok": True}

    # ========================================================================
    # BOOKING
    # ========================================================================

    @staticmethod
    def _team(appointment_type: AppointmentType) -> list[int]:
        if appointment_type.scheduling_mode == "round_robin" and appointment_type.team_user_ids:
            return list(appointment_type.team_user_ids)
        return [appointment_type.owner_user_id]

    def _host_schedule(self, user_id: int, start: datetime, end: datetime) -> dict:
        availability = self.get_availability(user_id)
        busy = self.repo.list_overlapping(self.db, user_id, start, end)
        return {
            "userId": user_id,
            "timeZone": availability.time_zone,
            "weekly": availability.weekly or [],
            "busy": blocks(busy),
        }

    def _get_public_type(self, slug: str) -> AppointmentType:
        clean = slugify(slug)
        if not clean:
            raise HTTPException(status_code=400, detail="invalid_slug")
        appointment_type = self.repo.get_type_by_slug(self.db, clean, active_only=True)
        if not appointment_type:
            raise HTTPException(status_code=404, detail="not_found")
        return appointment_type

    def get_booking_link(self, slug: str, window_days: Optional[int] = None, now: Optional[datetime] = None) -> dict:
        appointment_type = self._get_public_type(slug)
        now = now or utcnow()
        days = max(1, min(MAX_WINDOW_DAYS, DEFAULT_WINDOW_DAYS if window_days is None else window_days))
        window_to = now + timedelta(days=days)
        # Busy lookups reach past the window so buffers at the edges are honoured
        margin = timedelta(days=1)

        hosts = [self._host_schedule(uid, now - margin, window_to + margin) for uid in self._team(appointment_type)]
        common = dict(
            duration_minutes=appointment_type.duration_minutes,
            window_from=now,
            window_to=window_to,
            now=now,
            buffer_before=appointment_type.buffer_before_minutes or 0,
            buffer_after=appointment_type.buffer_after_minutes or 0,
        )
        if appointment_type.scheduling_mode == "round_robin":
            slots = generate_team_slots(hosts, **common)
        else:
            host = hosts[0]
            slots = generate_slots(host["timeZone"], host["weekly"], busy=host["busy"], **common)

        owner = hosts[0]
        return {
            "type": {
                "id": appointment_type.id,
                "name": appointment_type.name,
                "slug": appointment_type.slug,
                "durationMinutes": appointment_type.duration_minutes,
                "locationType": appointment_type.location_type or "video",
                "locationDetails": appointment_type.location_details,
                "bufferBeforeMinutes": appointment_type.buffer_before_minutes or 0,
                "bufferAfterMinutes": appointment_type.buffer_after_minutes or 0,
                "schedulingMode": appointment_type.scheduling_mode or "single",
            },
            "availability": {"timeZone": owner["timeZone"], "weekly": owner["weekly"]},
            "existing": [
                {"startsAt": isoformat_utc(s), "endsAt": isoformat_utc(e)}
                for s, e in owner["busy"]
                if e > now and s < window_to
            ],
            "window": {"from": isoformat_utc(now), "to": isoformat_utc(window_to)},
            "slots": slots,
        }

    def _assign_host(self, appointment_type: AppointmentType, starts_at: datetime, now: datetime):
        """
        Validate the start time for each candidate host in rotation order.

        Returns (host_id, ends_at, time_zone) for the first host who can take it.
        """
        team = self._team(appointment_type)
        if appointment_type.scheduling_mode == "round_robin":
            candidates = rotation_order(team, appointment_type.last_assigned_user_id)
        else:
            candidates = team

        duration = appointment_type.duration_minutes
        before = appointment_type.buffer_before_minutes or 0
        after = appointment_type.buffer_after_minutes or 0
        errors: list[SlotValidationError] = []
        for host_id in candidates:
            availability = self.get_availability(host_id)
            busy = self.repo.list_overlapping(
                self.db,
                host_id,
                starts_at - timedelta(minutes=before),
                starts_at + timedelta(minutes=duration + after),
            )
            try:
                ends_at = validate_requested_slot(
                    starts_at,
                    now,
                    availability.time_zone,
                    availability.weekly or [],
                    duration,
                    blocks(busy),
                    buffer_before=before,
                    buffer_after=after,
                )
            except SlotValidationError as e:
                errors.append(e)
                continue
            return host_id, ends_at, availability.time_zone

        taken = next((e for e in errors if e.code == "slot_taken"), None)
        error = taken or errors[0]
        raise HTTPException(status_code=error.status_code, detail=error.code)

    async def _book(
        self,
        appointment_type: AppointmentType,
        data: BookingRequest,
        source: str,
        scheduled_by: Optional[User] = None,
        contact_id: Optional[int] = None,
    ) -> Appointment:
        now = utcnow()
        starts_at = to_naive_utc(data.startsAt)
        host_id, ends_at, host_time_zone = self._assign_host(appointment_type, starts_at, now)

        appointment = self.repo.create_appointment(
            self.db,
            appointment_type_id=appointment_type.id,
            owner_user_id=host_id,
            status="booked",
            attendee_first_name=(data.attendeeFirstName or "").strip() or None,
            attendee_last_name=(data.attendeeLastName or "").strip() or None,
            attendee_name=data.attendeeName.strip(),
            attendee_email=data.attendeeEmail.strip().lower(),
            attendee_phone=(data.attendeePhone or "").strip() or None,
            attendee_contact_preference=data.attendeeContactPreference,
            contact_id=contact_id,
            notes=(data.notes or "").strip() or None,
            starts_at=starts_at,
            ends_at=ends_at,
            time_zone=host_time_zone or data.timeZone or "UTC",
            source=source,
            scheduled_by_user_id=scheduled_by.id if scheduled_by else None,
            reminder_minutes_before=data.reminderMinutesBefore,
        )
        logger.info(f"📅 Appointment {appointment.id} booked with host {host_id} ({source})")

        if appointment_type.scheduling_mode == "round_robin":
            appointment_type.last_assigned_user_id = host_id
            self.repo.save(self.db, appointment_type)

        if appointment.contact_id is None:
            self._link_contact(appointment)
        self._touch_type(appointment_type, now)
        await self._send_confirmation(appointment, appointment_type, data.timeZone)
        return appointment

    def _link_contact(self, appointment: Appointment) -> None:
        try:
            contact = ContactService(self.db).find_or_create_by_email(
                appointment.attendee_email,
                appointment.attendee_name,
                phone=appointment.attendee_phone,
                source="scheduler",
            )
            appointment.contact_id = contact.id
            self.repo.save(self.db, appointment)
        except Exception as e:
            self.db.rollback()
            logger.warning(f"⚠️ Could not link appointment {appointment.id} to a contact: {str(e)}")

    def _touch_type(self, appointment_type: AppointmentType, now: datetime) -> None:
        try:
            appointment_type.last_used_at = now
            self.repo.save(self.db, appointment_type)
        except Exception as e:
            self.db.rollback()
            logger.warning(f"⚠️ Could not stamp lastUsedAt on type {appointment_type.id}: {str(e)}")

    async def _send_confirmation(
        self, appointment: Appointment, appointment_type: AppointmentType, attendee_time_zone: Optional[str]
    ) -> None:
        host = self.repo.get_users(self.db, [appointment.owner_user_id])
        try:
            result = await send_appointment_confirmation_email(
                to=appointment.attendee_email,
                attendee_name=appointment.attendee_name,
                type_name=appointment_type.name,
                starts_at=appointment.starts_at,
                time_zone=attendee_time_zone or appointment.time_zone,
                location=location_label(appointment_type),
                host_name=host[0].full_name if host else None,
            )
            if not (isinstance(result, dict) and result.get("skipped")):
                appointment.invite_email_sent_at = utcnow()
                self.repo.save(self.db, appointment)
        except Exception as e:
            logger.error(f"❌ Failed to send confirmation for appointment {appointment.id}: {str(e)}")

    async def book_public(self, slug: str, data: BookingRequest) -> Appointment:
        appointment_type = self._get_public_type(slug)
        return await self._book(appointment_type, data, source="public")

    async def book_internal(self, user: User, data: InternalBookingRequest) -> Appointment:
        appointment_type = self.repo.get_type(self.db, data.appointmentTypeId)
        if not appointment_type:
            raise HTTPException(status_code=404, detail="not_found")
        if data.contactId is not None:
            ContactService(self.db).get_contact(data.contactId)
        return await self._book(
            appointment_type, data, source="internal", scheduled_by=user, contact_id=data.contactId
        )


async def send_appointment_reminders(db: Session, now: Optional[datetime] = None) -> int:
    """
    Email reminders that fall due in the two minutes after
    ``startsAt - reminderMinutesBefore``. Returns how many were sent.
    """
    now = now or utcnow()
    repo = SchedulerRepository()
    sent = 0
    for appointment in repo.list_reminder_candidates(db, now, now + REMINDER_LOOKAHEAD):
        if appointment.attendee_contact_preference not in (None, "email"):
            continue
        if not appointment.attendee_email:
            continue
        minutes = appointment.reminder_minutes_before
        if minutes is None or minutes < 0:
            continue
        send_at = appointment.starts_at - timedelta(minutes=minutes)
        if now < send_at or now - send_at > REMINDER_GRACE:
            continue

        appointment_type = appointment.appointment_type
        try:
            await send_appointment_reminder_email(
                to=appointment.attendee_email,
                attendee_name=appointment.attendee_name,
                type_name=appointment_type.name if appointment_type else "Appointment",
                starts_at=appointment.starts_at,
                time_zone=appointment.time_zone,
                location=location_label(appointment_type) if appointment_type else None,
            )
        except Exception as e:
            logger.error(f"❌ Reminder for appointment {appointment.id} failed: {str(e)}")
            continue
        appointment.reminder_email_sent_at = utcnow()
        db.commit()
        sent += 1
    return sent
