"""Background job tests: reminders, SLA lifecycle and invite expiry"""

import asyncio
from datetime import datetime, timedelta

from backoffice import worker
from backoffice.domain.scheduler import service as scheduler_service
from backoffice.domain.scheduler.service import send_appointment_reminders
from backoffice.domain.slas.lifecycle import update_sla_statuses
from backoffice.models import Appointment, AppointmentType, SignatureInvite, SlaContract

NOW = datetime(2026, 3, 2, 8, 0)


def make_appointment(db, user, **overrides):
    appointment_type = db.query(AppointmentType).first()
    if appointment_type is None:
        appointment_type = AppointmentType(owner_user_id=user.id, name="Intro Call", slug="intro-call", duration_minutes=30)
        db.add(appointment_type)
        db.commit()
    values = {
        "appointment_type_id": appointment_type.id,
        "owner_user_id": user.id,
        "status": "booked",
        "attendee_name": "Guest",
        "attendee_email": "guest@example.com",
        "starts_at": NOW + timedelta(minutes=60),
        "ends_at": NOW + timedelta(minutes=90),
        "reminder_minutes_before": 60,
    }
    values.update(overrides)
    appointment = Appointment(**values)
    db.add(appointment)
    db.commit()
    return appointment


def make_contract(db, account_row, **overrides):
    values = {"account_id": account_row.id, "name": "Gold Support", "status": "active", "signature_audit": []}
    values.update(overrides)
    contract = SlaContract(**values)
    db.add(contract)
    db.commit()
    return contract


def test_reminder_sent_once_when_due(db, user, monkeypatch):
    sent = []

    async def fake_reminder(**kwargs):
        sent.append(kwargs["to"])
        return {"id": "email"}

    monkeypatch.setattr(scheduler_service, "send_appointment_reminder_email", fake_reminder)
    due = make_appointment(db, user)
    make_appointment(db, user, attendee_email="later@example.com", starts_at=NOW + timedelta(hours=3), ends_at=NOW + timedelta(hours=4))
    make_appointment(db, user, attendee_email="sms@example.com", attendee_contact_preference="sms")

    assert asyncio.run(send_appointment_reminders(db, now=NOW)) == 1
    assert sent == ["guest@example.com"]
    db.refresh(due)
    assert due.reminder_email_sent_at is not None

    assert asyncio.run(send_appointment_reminders(db, now=NOW + timedelta(minutes=1))) == 0


def test_reminder_skipped_after_grace_window(db, user, monkeypatch):
    async def fake_reminder(**kwargs):
        return {"id": "email"}

    monkeypatch.setattr(scheduler_service, "send_appointment_reminder_email", fake_reminder)
    make_appointment(db, user)

    assert asyncio.run(send_appointment_reminders(db, now=NOW + timedelta(minutes=5))) == 0


def test_failed_reminder_is_retried(db, user, monkeypatch):
    async def failing_reminder(**kwargs):
        raise RuntimeError("provider down")

    monkeypatch.setattr(scheduler_service, "send_appointment_reminder_email", failing_reminder)
    appointment = make_appointment(db, user)

    assert asyncio.run(send_appointment_reminders(db, now=NOW)) == 0
    db.refresh(appointment)
    assert appointment.reminder_email_sent_at is None


def test_sla_lifecycle_transitions(db, account_row):
    scheduled = make_contract(db, account_row, status="scheduled", start_date=NOW - timedelta(days=1))
    future = make_contract(db, account_row, status="scheduled", start_date=NOW + timedelta(days=1))
    lapsed = make_contract(db, account_row, end_date=NOW - timedelta(days=1))
    renewing = make_contract(db, account_row, end_date=datetime(2025, 1, 15, 12), auto_renew=True)

    summary = update_sla_statuses(db, now=NOW)

    assert summary == {"scheduled_to_active": 1, "renewed": 1, "active_to_expired": 1, "total_updated": 3}
    for contract in (scheduled, future, lapsed, renewing):
        db.refresh(contract)
    assert scheduled.status == "active"
    assert scheduled.signature_audit[-1]["event"] == "activated"
    assert future.status == "scheduled"
    assert lapsed.status == "expired"
    assert renewing.status == "active"
    assert renewing.end_date == datetime(2027, 1, 15, 12)
    assert renewing.renewal_date == datetime(2025, 1, 15, 12)
    assert renewing.signature_audit[-1]["event"] == "auto_renewed"


def test_sla_lifecycle_boundaries(db, account_row):
    ending_now = make_contract(db, account_row, end_date=NOW)
    leap_day = make_contract(db, account_row, end_date=datetime(2024, 2, 29), auto_renew=True)

    summary = update_sla_statuses(db, now=NOW)

    assert summary["active_to_expired"] == 0
    db.refresh(ending_now)
    db.refresh(leap_day)
    assert ending_now.status == "active"
    # Terms are counted from the original end, so the day is clamped once, not compounded
    assert leap_day.end_date == datetime(2027, 2, 28)
    assert leap_day.renewal_date == datetime(2024, 2, 29)


def test_sla_lifecycle_task(db, account_row):
    contract = make_contract(db, account_row, end_date=datetime(2000, 1, 1))

    summary = asyncio.run(worker.sla_lifecycle_task({}))

    assert summary["active_to_expired"] == 1
    db.refresh(contract)
    assert contract.status == "expired"


def test_expire_signature_invites_task(db, account_row):
    contract = make_contract(db, account_row)
    stale = SignatureInvite(
        contract_id=contract.id,
        role="customerSigner",
        email="cfo@acme.example.com",
        token="stale-token",
        status="pending",
        expires_at=datetime(2000, 1, 1),
    )
    fresh = SignatureInvite(
        contract_id=contract.id,
        role="providerSigner",
        email="ops@provider.example.com",
        token="fresh-token",
        status="pending",
        expires_at=datetime(2999, 1, 1),
    )
    db.add_all([stale, fresh])
    db.commit()

    assert asyncio.run(worker.expire_signature_invites_task({})) == {"expired": 1}

    db.refresh(stale)
    db.refresh(fresh)
    assert stale.status == "expired"
    assert fresh.status == "pending"


def test_worker_settings_schedule_every_job():
    names = {job.name for job in worker.WorkerSettings.cron_jobs}

    assert names == {
        "cron:send_appointment_reminders_task",
        "cron:sla_lifecycle_task",
        "cron:expire_signature_invites_task",
    }
