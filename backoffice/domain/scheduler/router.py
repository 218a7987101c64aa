"""Scheduler router - internal scheduling endpoints, public booking and calendar events"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_application
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from ...shared.dates import isoformat_utc
from ...shared.responses import envelope
from .schemas import (
    AppointmentTypeCreate,
    AppointmentTypeResponse,
    AppointmentTypeUpdate,
    AvailabilityResponse,
    AvailabilityUpdate,
    BookingRequest,
    InternalBookingRequest,
    serialize_appointment,
)
from .service import SCHEDULER_APPLICATION, SchedulerService

router = APIRouter(prefix="/api/scheduler", tags=["Scheduler"])
public_router = APIRouter(prefix="/api/scheduler/public", tags=["Public Booking"])
calendar_router = APIRouter(prefix="/api/calendar", tags=["Calendar"])

require_scheduler = require_application(SCHEDULER_APPLICATION)

limit_booking_page = create_rate_limiter(limit=60, window_seconds=60, key_prefix="public_booking_page")
limit_booking = create_rate_limiter(limit=10, window_seconds=60, key_prefix="public_book")


def get_scheduler_service(db: Session = Depends(get_db)) -> SchedulerService:
    """Dependency injection for SchedulerService"""
    return SchedulerService(db)


# ============================================================================
# APPOINTMENT TYPES
# ============================================================================


@router.get("/appointment-types")
async def list_appointment_types(
    current_user: User = Depends(require_scheduler),
    service: SchedulerService = Depends(get_scheduler_service),
):
    types = service.list_types(current_user)
    return envelope({"items": [AppointmentTypeResponse.model_validate(t) for t in types]})


@router.post("/appointment-types", status_code=201)
async def create_appointment_type(
    data: AppointmentTypeCreate,
    current_user: User = Depends(require_scheduler),
    service: SchedulerService = Depends(get_scheduler_service),
):
    return envelope(AppointmentTypeResponse.model_validate(service.create_type(current_user, data)))


@router.put("/appointment-types/{type_id}")
async def update_appointment_type(
    type_id: int,
    data: AppointmentTypeUpdate,
    current_user: User = Depends(require_scheduler),
    service: SchedulerService = Depends(get_scheduler_service),
):
    return envelope(AppointmentTypeResponse.model_validate(service.update_type(current_user, type_id, data)))


@router.delete("/appointment-types/{type_id}")
async def delete_appointment_type(
    type_id: int,
    current_user: User = Depends(require_scheduler),
    service: SchedulerService = Depends(get_scheduler_service),
):
    return envelope(service.delete_type(current_user, type_id))


# ============================================================================
# AVAILABILITY
# ============================================================================


@router.get("/availability/me")
async def get_my_availability(
    current_user: User = Depends(require_scheduler),
    service: SchedulerService = Depends(get_scheduler_service),
):
    return envelope(AvailabilityResponse.model_validate(service.get_availability(current_user.id)))


@router.put("/availability/me")
async def update_my_availability(
    data: AvailabilityUpdate,
    current_user: User = Depends(require_scheduler),
    service: SchedulerService = Depends(get_scheduler_service),
):
    return envelope(AvailabilityResponse.model_validate(service.update_availability(current_user, data)))


# ============================================================================
# APPOINTMENTS
# ============================================================================


@router.get("/appointments")
async def list_appointments(
    from_: Optional[str] = Query(None, alias="from"),
    to: Optional[str] = Query(None),
    current_user: User = Depends(require_scheduler),
    service: SchedulerService = Depends(get_scheduler_service),
):
    appointments = service.list_appointments(current_user, from_, to)
    return envelope({"items": [serialize_appointment(a) for a in appointments]})


@router.post("/appointments/book", status_code=201)
async def book_appointment(
    data: InternalBookingRequest,
    current_user: User = Depends(require_scheduler),
    service: SchedulerService = Depends(get_scheduler_service),
):
    appointment = await service.book_internal(current_user, data)
    return envelope(serialize_appointment(appointment))


@router.post("/appointments/{appointment_id}/cancel")
async def cancel_appointment(
    appointment_id: int,
    current_user: User = Depends(require_scheduler),
    service: SchedulerService = Depends(get_scheduler_service),
):
    return envelope(await service.cancel_appointment(current_user, appointment_id))


@router.get("/users")
async def list_scheduler_users(
    current_user: User = Depends(require_scheduler),
    service: SchedulerService = Depends(get_scheduler_service),
):
    return envelope({"items": service.list_scheduler_users()})


# ============================================================================
# PUBLIC BOOKING (no auth)
# ============================================================================


@public_router.get("/booking-links/{slug}", dependencies=[Depends(limit_booking_page)])
async def get_booking_link(
    slug: str,
    windowDays: Optional[int] = Query(None),
    service: SchedulerService = Depends(get_scheduler_service),
):
    return envelope(service.get_booking_link(slug, windowDays))


@public_router.post("/book/{slug}", status_code=201, dependencies=[Depends(limit_booking)])
async def book_public(
    slug: str,
    data: BookingRequest,
    service: SchedulerService = Depends(get_scheduler_service),
):
    appointment = await service.book_public(slug, data)
    return envelope(
        {
            "id": appointment.id,
            "ownerUserId": appointment.owner_user_id,
            "startsAt": isoformat_utc(appointment.starts_at),
            "endsAt": isoformat_utc(appointment.ends_at),
        }
    )


# ============================================================================
# CALENDAR
# ============================================================================


@calendar_router.get("/events")
async def calendar_events(
    from_: Optional[str] = Query(None, alias="from"),
    to: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: SchedulerService = Depends(get_scheduler_service),
):
    return envelope({"items": service.calendar_events(current_user, from_, to)})
