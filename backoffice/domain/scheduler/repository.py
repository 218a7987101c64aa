"""Scheduler repository - Database operations for types, availability and appointments"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Appointment, AppointmentType, Availability, User

REMINDER_BATCH_SIZE = 200


class SchedulerRepository:
    """Repository for scheduler database operations"""

    # ========================================================================
    # Appointment types
    # ========================================================================

    @staticmethod
    def list_types(db: Session, owner_user_id: int) -> list[AppointmentType]:
        return (
            db.query(AppointmentType)
            .filter(AppointmentType.owner_user_id == owner_user_id)
            .order_by(AppointmentType.updated_at.desc(), AppointmentType.id.desc())
            .all()
        )

    @staticmethod
    def get_type(db: Session, type_id: int, owner_user_id: Optional[int] = None) -> Optional[AppointmentType]:
        query = db.query(AppointmentType).filter(AppointmentType.id == type_id)
        if owner_user_id is not None:
            query = query.filter(AppointmentType.owner_user_id == owner_user_id)
        return query.first()

    @staticmethod
    def get_type_by_slug(
        db: Session, slug: str, owner_user_id: Optional[int] = None, active_only: bool = False
    ) -> Optional[AppointmentType]:
        query = db.query(AppointmentType).filter(AppointmentType.slug == slug)
        if owner_user_id is not None:
            query = query.filter(AppointmentType.owner_user_id == owner_user_id)
        if active_only:
            query = query.filter(AppointmentType.active.is_(True))
        return query.order_by(AppointmentType.id.asc()).first()

    @staticmethod
    def create_type(db: Session, **type_data) -> AppointmentType:
        appointment_type = AppointmentType(**type_data)
        db.add(appointment_type)
        db.commit()
        db.refresh(appointment_type)
        return appointment_type

    @staticmethod
    def save(db: Session, instance):
        db.commit()
        db.refresh(instance)
        return instance

    @staticmethod
    def delete(db: Session, instance) -> None:
        db.delete(instance)
        db.commit()

    @staticmethod
    def has_appointments(db: Session, type_id: int) -> bool:
        return db.query(Appointment.id).filter(Appointment.appointment_type_id == type_id).first() is not None

    # ========================================================================
    # Availability
    # ========================================================================

    @staticmethod
    def get_availability(db: Session, user_id: int) -> Optional[Availability]:
        return db.query(Availability).filter(Availability.user_id == user_id).first()

    @staticmethod
    def create_availability(db: Session, **availability_data) -> Availability:
        availability = Availability(**availability_data)
        db.add(availability)
        db.commit()
        db.refresh(availability)
        return availability

    # ========================================================================
    # Appointments
    # ========================================================================

    @staticmethod
    def get_appointment(db: Session, appointment_id: int, owner_user_id: int) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .filter(Appointment.id == appointment_id, Appointment.owner_user_id == owner_user_id)
            .first()
        )

    @staticmethod
    def list_appointments(db: Session, owner_user_id: int, start: datetime, end: datetime) -> list[Appointment]:
        """Appointments starting in [start, end)"""
        return (
            db.query(Appointment)
            .filter(
                Appointment.owner_user_id == owner_user_id,
                Appointment.starts_at >= start,
                Appointment.starts_at < end,
            )
            .order_by(Appointment.starts_at.asc())
            .all()
        )

    @staticmethod
    def list_overlapping(
        db: Session, owner_user_id: int, start: datetime, end: datetime, booked_only: bool = True
    ) -> list[Appointment]:
        query = db.query(Appointment).filter(
            Appointment.owner_user_id == owner_user_id,
            Appointment.starts_at < end,
            Appointment.ends_at > start,
        )
        if booked_only:
            query = query.filter(Appointment.status == "booked")
        else:
            query = query.filter(Appointment.status != "cancelled")
        return query.order_by(Appointment.starts_at.asc()).all()

    @staticmethod
    def create_appointment(db: Session, **appointment_data) -> Appointment:
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def list_reminder_candidates(db: Session, now: datetime, lookahead: datetime) -> list[Appointment]:
        return (
            db.query(Appointment)
            .filter(
                Appointment.status == "booked",
                Appointment.reminder_email_sent_at.is_(None),
                Appointment.reminder_minutes_before.isnot(None),
                Appointment.starts_at >= now,
                Appointment.starts_at <= lookahead,
            )
            .order_by(Appointment.starts_at.asc())
            .limit(REMINDER_BATCH_SIZE)
            .all()
        )

    # ========================================================================
    # Users
    # ========================================================================

    @staticmethod
    def get_users(db: Session, user_ids: list[int]) -> list[User]:
        if not user_ids:
            return []
        return db.query(User).filter(User.id.in_(user_ids)).all()

    @staticmethod
    def list_active_users(db: Session) -> list[User]:
        return db.query(User).filter(User.is_active.is_(True)).order_by(User.id.asc()).all()
