"""Invoice service - Business logic for invoices, payments, refunds and subscriptions"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import send_invoice_email
from ...models import Invoice, User
from ...shared.dates import isoformat_utc, to_naive_utc, utcnow
from ..accounts.service import AccountService
from ..sequences import INVOICE_NUMBER_START, next_sequence
from .repository import InvoiceRepository
from .schemas import (
    DUNNING_STATES,
    DunningRequest,
    InvoiceCreate,
    InvoiceUpdate,
    PaymentCreate,
    RefundCreate,
    SendInvoiceRequest,
    SubscribeRequest,
)
from .totals import compute_balance, compute_totals, next_invoice_date, round_money

logger = logging.getLogger(__name__)

AMOUNT_FIELDS = ("items", "discount", "subtotal", "tax", "taxRate", "total")


class InvoiceService:
    """Service layer for invoice business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = InvoiceRepository()

    def list_invoices(
        self,
        q: Optional[str] = None,
        sort: str = "updatedAt",
        direction: str = "desc",
        account_id: Optional[int] = None,
    ) -> list[Invoice]:
        return self.repo.list_invoices(self.db, q, sort, direction != "asc", account_id)

    def get_invoice(self, invoice_id: int) -> Invoice:
        invoice = self.repo.get_by_id(self.db, invoice_id)
        if not invoice:
            raise HTTPException(status_code=404, detail="not_found")
        return invoice

    def create_invoice(self, data: InvoiceCreate, user: Optional[User] = None) -> Invoice:
        account = AccountService(self.db).resolve_account(data.accountId, data.accountNumber)

        items = [item.model_dump() for item in data.items]
        discount = data.discount.model_dump() if data.discount else None
        totals = compute_totals(items, discount, data.subtotal, data.tax, data.taxRate, data.total)

        invoice_number = next_sequence(
            self.db, "invoiceNumber", INVOICE_NUMBER_START, floor_column=Invoice.invoice_number
        )
        invoice = self.repo.create(
            self.db,
            invoice_number=invoice_number,
            title=data.title.strip(),
            account_id=account.id,
            items=items,
            discount=discount,
            subtotal=totals["subtotal"],
            discount_total=totals["discount_total"],
            tax=totals["tax"],
            tax_rate=data.taxRate,
            total=totals["total"],
            balance=totals["total"],
            currency=data.currency.upper(),
            status=data.status,
            due_date=to_naive_utc(data.dueDate),
            issued_at=to_naive_utc(data.issuedAt),
            payments=[],
            refunds=[],
            dunning_state="none",
        )
        self._record(invoice.id, "created", f"Invoice #{invoice.invoice_number} created: {invoice.title}", user)
        logger.info(f"🧾 Invoice #{invoice.invoice_number} created for account {account.account_number}")
        return invoice

    def update_invoice(self, invoice_id: int, data: InvoiceUpdate, user: Optional[User] = None) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        changes = data.model_dump(exclude_unset=True)
        events: list[tuple[str, str, Optional[dict]]] = []

        if changes.get("status") is not None and changes["status"] != invoice.status:
            events.append(
                (
                    "status_changed",
                    f'Status changed from "{invoice.status}" to "{changes["status"]}"',
                    {"oldValue": invoice.status, "newValue": changes["status"]},
                )
            )
            invoice.status = changes["status"]

        if changes.get("title") is not None:
            new_title = changes["title"].strip()
            if new_title != invoice.title:
                events.append(
                    (
                        "field_changed",
                        f'Title changed from "{invoice.title}" to "{new_title}"',
                        {"field": "title", "oldValue": invoice.title, "newValue": new_title},
                    )
                )
                invoice.title = new_title

        if "dueDate" in changes:
            new_due = to_naive_utc(changes["dueDate"])
            if new_due != invoice.due_date:
                old_label = invoice.due_date.strftime("%Y-%m-%d") if invoice.due_date else None
                new_label = new_due.strftime("%Y-%m-%d") if new_due else "removed"
                events.append(
                    (
                        "field_changed",
                        f"Due date changed{f' from {old_label}' if old_label else ''} to {new_label}",
                        {"field": "dueDate", "oldValue": isoformat_utc(invoice.due_date), "newValue": isoformat_utc(new_due)},
                    )
                )
                invoice.due_date = new_due

        if "issuedAt" in changes:
            invoice.issued_at = to_naive_utc(changes["issuedAt"])

        if changes.get("accountId") is not None and changes["accountId"] != invoice.account_id:
            account = AccountService(self.db).resolve_account(changes["accountId"], None)
            invoice.account_id = account.id

        if any(field in changes for field in AMOUNT_FIELDS):
            old_total = invoice.total or 0
            if "items" in changes:
                invoice.items = [item.model_dump() for item in data.items or []]
            if "discount" in changes:
                invoice.discount = data.discount.model_dump() if data.discount else None
            if "taxRate" in changes:
                invoice.tax_rate = data.taxRate
            totals = compute_totals(
                invoice.items,
                invoice.discount,
                changes.get("subtotal", invoice.subtotal),
                changes.get("tax", None if invoice.tax_rate else invoice.tax),
                invoice.tax_rate,
                changes.get("total"),
            )
            invoice.subtotal = totals["subtotal"]
            invoice.discount_total = totals["discount_total"]
            invoice.tax = totals["tax"]
            invoice.total = totals["total"]
            invoice.balance = compute_balance(invoice.total, invoice.payments, invoice.refunds)
            if invoice.total != old_total:
                events.append(
                    (
                        "total_changed",
                        f"Total changed from ${old_total:.2f} to ${invoice.total:.2f}",
                        {"oldValue": old_total, "newValue": invoice.total},
                    )
                )

        invoice = self.repo.save(self.db, invoice)

        for event_type, description, meta in events:
            self._record(invoice.id, event_type, description, user, meta)
        if not events:
            self._record(invoice.id, "updated", "Invoice updated", user)
        return invoice

    def delete_invoice(self, invoice_id: int) -> dict:
        invoice = self.get_invoice(invoice_id)
        self.repo.delete(self.db, invoice)
        logger.info(f"🗑️ Invoice {invoice_id} deleted")
        return {"ok": True}

    # ========================================================================
    # MONEY MOVEMENTS
    # ========================================================================

    def record_payment(self, invoice_id: int, data: PaymentCreate, user: Optional[User] = None) -> Invoice:
        amount = round_money(data.amount)
        if not amount > 0:
            raise HTTPException(status_code=400, detail="invalid_amount")
        invoice = self.get_invoice(invoice_id)

        paid_at = to_naive_utc(data.paidAt) or utcnow()
        method = data.method or "card"
        old_balance = float(invoice.balance if invoice.balance is not None else invoice.total or 0)
        new_balance = round_money(max(0.0, old_balance - amount))

        payment = {"amount": amount, "method": method, "paidAt": isoformat_utc(paid_at)}
        invoice.payments = [*(invoice.payments or []), payment]
        invoice.balance = new_balance
        if new_balance == 0:
            invoice.paid_at = paid_at
            invoice.status = "paid"
        invoice = self.repo.save(self.db, invoice)

        self._record(
            invoice.id,
            "payment_received",
            f"Payment received: ${amount:.2f} via {method}. Balance: ${old_balance:.2f} → ${new_balance:.2f}",
            user,
            {**payment, "oldBalance": old_balance, "newBalance": new_balance},
        )
        return invoice

    def record_refund(self, invoice_id: int, data: RefundCreate, user: Optional[User] = None) -> Invoice:
        amount = round_money(data.amount)
        if not amount > 0:
            raise HTTPException(status_code=400, detail="invalid_amount")
        invoice = self.get_invoice(invoice_id)

        refunded_at = to_naive_utc(data.refundedAt) or utcnow()
        reason = data.reason or "refund"
        old_balance = float(invoice.balance or 0)
        new_balance = round_money(old_balance + amount)

        refund = {"amount": amount, "reason": reason, "refundedAt": isoformat_utc(refunded_at)}
        invoice.refunds = [*(invoice.refunds or []), refund]
        invoice.balance = new_balance
        invoice = self.repo.save(self.db, invoice)

        reason_label = f" ({reason})" if reason != "refund" else ""
        self._record(
            invoice.id,
            "refund_issued",
            f"Refund issued: ${amount:.2f}{reason_label}. Balance: ${old_balance:.2f} → ${new_balance:.2f}",
            user,
            {**refund, "oldBalance": old_balance, "newBalance": new_balance},
        )
        return invoice

    def subscribe(self, invoice_id: int, data: SubscribeRequest, user: Optional[User] = None) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        start = to_naive_utc(data.startAt) or utcnow()
        next_at = next_invoice_date(start, data.interval)
        invoice.subscription = {
            "interval": data.interval,
            "active": True,
            "startedAt": isoformat_utc(start),
            "nextInvoiceAt": isoformat_utc(next_at),
        }
        invoice = self.repo.save(self.db, invoice)
        self._record(
            invoice.id,
            "subscription_started",
            f"Subscription started: {data.interval} billing",
            user,
            {"newValue": invoice.subscription},
        )
        return invoice

    def cancel_subscription(self, invoice_id: int, user: Optional[User] = None) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        subscription = dict(invoice.subscription or {})
        subscription.update({"active": False, "canceledAt": isoformat_utc(utcnow())})
        invoice.subscription = subscription
        invoice = self.repo.save(self.db, invoice)
        self._record(invoice.id, "subscription_canceled", "Subscription canceled", user)
        return invoice

    def set_dunning_state(self, invoice_id: int, data: DunningRequest, user: Optional[User] = None) -> Invoice:
        if data.state not in DUNNING_STATES:
            raise HTTPException(status_code=400, detail="invalid_state")
        invoice = self.get_invoice(invoice_id)
        old_state = invoice.dunning_state or "none"
        invoice.dunning_state = data.state
        invoice.last_dunning_at = utcnow()
        invoice = self.repo.save(self.db, invoice)
        if data.state != old_state:
            self._record(
                invoice.id,
                "dunning_state_changed",
                f'Dunning state changed from "{old_state}" to "{data.state}"',
                user,
                {"oldValue": old_state, "newValue": data.state},
            )
        return invoice

    # ========================================================================
    # HISTORY & DELIVERY
    # ========================================================================

    def get_history(self, invoice_id: int) -> dict:
        """Recorded history plus synthesised entries for untracked payments/refunds"""
        invoice = self.get_invoice(invoice_id)
        entries = [
            {
                "id": h.id,
                "eventType": h.event_type,
                "description": h.description,
                "userId": h.user_id,
                "meta": h.meta,
                "createdAt": isoformat_utc(h.created_at),
            }
            for h in self.repo.get_history(self.db, invoice_id)
        ]

        def tracked(event_type: str, when_key: str, movement: dict) -> bool:
            return any(
                e["eventType"] == event_type
                and (e["meta"] or {}).get(when_key) == movement.get(when_key)
                and (e["meta"] or {}).get("amount") == movement.get("amount")
                for e in entries
            )

        synthesised = []
        for payment in invoice.payments or []:
            if not tracked("payment_received", "paidAt", payment):
                synthesised.append(
                    {
                        "id": None,
                        "eventType": "payment_received",
                        "description": f"Payment received: ${float(payment['amount']):.2f} via {payment.get('method')}",
                        "userId": None,
                        "meta": payment,
                        "createdAt": payment.get("paidAt"),
                    }
                )
        for refund in invoice.refunds or []:
            if not tracked("refund_issued", "refundedAt", refund):
                reason = refund.get("reason") or "refund"
                reason_label = f" ({reason})" if reason != "refund" else ""
                synthesised.append(
                    {
                        "id": None,
                        "eventType": "refund_issued",
                        "description": f"Refund issued: ${float(refund['amount']):.2f}{reason_label}",
                        "userId": None,
                        "meta": refund,
                        "createdAt": refund.get("refundedAt"),
                    }
                )

        history = sorted(entries + synthesised, key=lambda e: e["createdAt"] or "", reverse=True)
        return {
            "history": history,
            "payments": invoice.payments or [],
            "refunds": invoice.refunds or [],
            "invoice": {
                "title": invoice.title,
                "total": invoice.total,
                "status": invoice.status,
                "invoiceNumber": invoice.invoice_number,
                "createdAt": isoformat_utc(invoice.created_at),
                "issuedAt": isoformat_utc(invoice.issued_at),
                "dueDate": isoformat_utc(invoice.due_date),
                "updatedAt": isoformat_utc(invoice.updated_at),
            },
        }

    async def send_invoice(self, invoice_id: int, data: SendInvoiceRequest, user: Optional[User] = None) -> Invoice:
        """Email the invoice to the account's primary contact and open it"""
        invoice = self.get_invoice(invoice_id)
        account = invoice.account
        recipient = data.to or (account.primary_contact_email if account else None)
        if not recipient:
            raise HTTPException(status_code=400, detail="missing_recipient")

        await send_invoice_email(
            to=recipient,
            recipient_name=account.primary_contact_name if account else None,
            invoice_number=invoice.invoice_number,
            title=invoice.title,
            total=invoice.total or 0,
            balance=invoice.balance or 0,
            currency=invoice.currency or "USD",
            due_date=invoice.due_date,
        )

        if invoice.status == "draft":
            invoice.status = "open"
        if invoice.issued_at is None:
            invoice.issued_at = utcnow()
        invoice = self.repo.save(self.db, invoice)
        self._record(invoice.id, "sent", f"Invoice sent to {recipient}", user, {"to": recipient})
        return invoice

    def _record(
        self,
        invoice_id: int,
        event_type: str,
        description: str,
        user: Optional[User] = None,
        meta: Optional[dict] = None,
    ) -> None:
        try:
            self.repo.add_history(self.db, invoice_id, event_type, description, user.id if user else None, meta)
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to record invoice history for {invoice_id}: {e}")
