"""
Automated status transitions for SLA contracts
Handles scheduled → active, active → expired and auto-renewal of active contracts
"""

import logging
from datetime import datetime
from typing import Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from ...models import SlaContract
from ...shared.dates import utcnow
from .service import append_json, audit_event

logger = logging.getLogger(__name__)

RENEWAL_TERM_MONTHS = 12


def update_sla_statuses(db: Session, now: Optional[datetime] = None) -> dict:
    """
    Update SLA contract statuses based on dates.
    Should be run as a scheduled job (daily cron).

    Auto-renewing contracts roll their end date forward one term at a time
    until it is in the future; the previous end becomes the renewal date.

    Returns:
        dict: Summary of status changes made
    """
    now = now or utcnow()
    summary = {"scheduled_to_active": 0, "renewed": 0, "active_to_expired": 0}

    scheduled = (
        db.query(SlaContract)
        .filter(
            SlaContract.status == "scheduled",
            SlaContract.start_date.isnot(None),
            SlaContract.start_date <= now,
        )
        .all()
    )
    for contract in scheduled:
        contract.status = "active"
        append_json(contract, "signature_audit", audit_event("activated", details="Start date reached"))
        summary["scheduled_to_active"] += 1
        logger.info(f"✅ SLA {contract.id} transitioned: scheduled → active")

    lapsed = (
        db.query(SlaContract)
        .filter(
            SlaContract.status == "active",
            SlaContract.end_date.isnot(None),
            SlaContract.end_date < now,
        )
        .all()
    )
    for contract in lapsed:
        if contract.auto_renew:
            previous_end = contract.end_date
            terms = 1
            new_end = previous_end + relativedelta(months=RENEWAL_TERM_MONTHS)
            while new_end <= now:
                terms += 1
                new_end = previous_end + relativedelta(months=RENEWAL_TERM_MONTHS * terms)
            contract.renewal_date = previous_end
            contract.end_date = new_end
            append_json(
                contract,
                "signature_audit",
                audit_event("auto_renewed", details=f"Renewed until {new_end.date().isoformat()}"),
            )
            summary["renewed"] += 1
            logger.info(f"🔁 SLA {contract.id} auto-renewed until {new_end.date().isoformat()}")
        else:
            contract.status = "expired"
            append_json(contract, "signature_audit", audit_event("expired", details="End date passed"))
            summary["active_to_expired"] += 1
            logger.info(f"✅ SLA {contract.id} transitioned: active → expired")

    db.commit()
    summary["total_updated"] = sum(summary.values())
    return summary
