from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    # Application keys the user may open, e.g. ["crm", "scheduler"]
    applications = Column(JSON, default=list)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())


class Counter(Base):
    """Named monotonically increasing sequences (account and invoice numbers)"""

    __tablename__ = "counters"

    name = Column(String(64), primary_key=True)
    value = Column(Integer, nullable=False)


# ============================================================================
# CRM
# ============================================================================


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    account_number = Column(Integer, unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    company_name = Column(String(255), nullable=True)
    primary_contact_name = Column(String(255), nullable=True)
    primary_contact_email = Column(String(255), nullable=True)
    primary_contact_phone = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    invoices = relationship("Invoice", back_populates="account")


class Contact(Base):
    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(255), nullable=False)
    company = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True, index=True)
    mobile_phone = Column(String(50), nullable=True)
    office_phone = Column(String(50), nullable=True)
    is_primary = Column(Boolean, default=False)
    primary_phone = Column(String(10), nullable=True)  # mobile, office
    source = Column(String(50), nullable=True)  # e.g. scheduler
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    history = relationship(
        "ContactHistory",
        back_populates="contact",
        cascade="all, delete-orphan",
        order_by="ContactHistory.id",
    )


class ContactHistory(Base):
    __tablename__ = "contact_history"

    id = Column(Integer, primary_key=True, index=True)
    contact_id = Column(Integer, ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type = Column(String(50), nullable=False)  # created, updated, field_changed
    description = Column(Text, nullable=True)
    user_id = Column(Integer, nullable=True)
    meta = Column(JSON, nullable=True)  # {field, oldValue, newValue}
    created_at = Column(DateTime, server_default=func.now())

    contact = relationship("Contact", back_populates="history")


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(Integer, unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)

    # [{description, quantity, unitPrice, discount}]
    items = Column(JSON, default=list)
    # {type: percent|amount, value}
    discount = Column(JSON, nullable=True)
    subtotal = Column(Float, default=0)
    discount_total = Column(Float, default=0)
    tax = Column(Float, default=0)
    tax_rate = Column(Float, nullable=True)
    total = Column(Float, default=0)
    balance = Column(Float, default=0)
    currency = Column(String(10), default="USD")

    status = Column(String(20), default="draft")  # draft, open, paid, void, uncollectible
    due_date = Column(DateTime, nullable=True)
    issued_at = Column(DateTime, nullable=True)
    paid_at = Column(DateTime, nullable=True)

    payments = Column(JSON, default=list)  # [{amount, method, paidAt}]
    refunds = Column(JSON, default=list)  # [{amount, reason, refundedAt}]
    # {interval, active, startedAt, canceledAt, nextInvoiceAt}
    subscription = Column(JSON, nullable=True)

    dunning_state = Column(String(20), default="none")
    last_dunning_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    account = relationship("Account", back_populates="invoices")
    history = relationship(
        "InvoiceHistory",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceHistory.id",
    )


class InvoiceHistory(Base):
    __tablename__ = "invoice_history"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)
    user_id = Column(Integer, nullable=True)
    meta = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    invoice = relationship("Invoice", back_populates="history")


# ============================================================================
# SLA CONTRACTS
# ============================================================================


class ContractTemplate(Base):
    __tablename__ = "contract_templates"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    html_body = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class SlaContract(Base):
    __tablename__ = "sla_contracts"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(20), default="support")  # support, subscription, project, other
    status = Column(String(20), default="active")  # draft, active, expired, scheduled, cancelled

    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    auto_renew = Column(Boolean, default=False)
    renewal_date = Column(DateTime, nullable=True)

    response_target_minutes = Column(Integer, nullable=True)
    resolution_target_minutes = Column(Integer, nullable=True)
    entitlements = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    # Versioning: an amendment is a new row pointing at the row it replaces
    version = Column(Integer, default=1, nullable=False)
    parent_contract_id = Column(Integer, ForeignKey("sla_contracts.id"), nullable=True)
    superseded_by_id = Column(Integer, nullable=True)
    amendment_reason = Column(Text, nullable=True)

    template_key = Column(String(100), nullable=True)
    rendered_html = Column(Text, nullable=True)
    billing_contact_email = Column(String(255), nullable=True)
    internal_owner_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Signatures
    signed_by_customer = Column(String(255), nullable=True)
    signed_at_customer = Column(DateTime, nullable=True)
    signed_by_provider = Column(String(255), nullable=True)
    signed_at_provider = Column(DateTime, nullable=True)
    executed_date = Column(DateTime, nullable=True)

    attachments = Column(JSON, default=list)  # [{id, name, url, contentType, size, uploadedAt}]
    signature_audit = Column(JSON, default=list)  # [{at, actor, event, ip, userAgent, details}]
    email_sends = Column(JSON, default=list)  # [{to, subject, kind, sentAt, status}]

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    account = relationship("Account")
    invites = relationship(
        "SignatureInvite",
        back_populates="contract",
        cascade="all, delete-orphan",
        order_by="SignatureInvite.id",
    )


class SignatureInvite(Base):
    __tablename__ = "signature_invites"

    id = Column(Integer, primary_key=True, index=True)
    contract_id = Column(Integer, ForeignKey("sla_contracts.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False)  # customerSigner, providerSigner
    email = Column(String(255), nullable=False)
    name = Column(String(255), nullable=True)
    title = Column(String(255), nullable=True)
    token = Column(String(64), unique=True, nullable=False, index=True)
    status = Column(String(20), default="pending")  # pending, signed, expired, cancelled
    expires_at = Column(DateTime, nullable=True)
    used_at = Column(DateTime, nullable=True)

    # One-time code gate (only the SHA-256 hash is stored)
    login_id = Column(String(32), nullable=True)
    otp_hash = Column(String(64), nullable=True)
    otp_expires_at = Column(DateTime, nullable=True)
    otp_verified_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    contract = relationship("SlaContract", back_populates="invites")


# ============================================================================
# SCHEDULER
# ============================================================================


class AppointmentType(Base):
    __tablename__ = "appointment_types"
    __table_args__ = (UniqueConstraint("owner_user_id", "slug", name="uq_appointment_type_owner_slug"),)

    id = Column(Integer, primary_key=True, index=True)
    owner_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    slug = Column(String(64), nullable=False, index=True)
    duration_minutes = Column(Integer, nullable=False, default=30)
    location_type = Column(String(20), default="video")  # video, phone, in_person, custom
    location_details = Column(String(500), nullable=True)
    buffer_before_minutes = Column(Integer, default=0)
    buffer_after_minutes = Column(Integer, default=0)
    active = Column(Boolean, default=True)

    scheduling_mode = Column(String(20), default="single")  # single, round_robin
    team_user_ids = Column(JSON, default=list)
    last_assigned_user_id = Column(Integer, nullable=True)
    last_used_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Availability(Base):
    __tablename__ = "availability"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    time_zone = Column(String(64), default="UTC")
    # Exactly 7 entries: [{day, enabled, startMin, endMin}], day 0 = Sunday
    weekly = Column(JSON, default=list)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    appointment_type_id = Column(Integer, ForeignKey("appointment_types.id"), nullable=False, index=True)
    owner_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)  # Assigned host
    status = Column(String(20), default="booked")  # booked, cancelled

    attendee_first_name = Column(String(120), nullable=True)
    attendee_last_name = Column(String(120), nullable=True)
    attendee_name = Column(String(255), nullable=False)
    attendee_email = Column(String(255), nullable=False)
    attendee_phone = Column(String(50), nullable=True)
    attendee_contact_preference = Column(String(20), nullable=True)  # email, phone, sms
    contact_id = Column(Integer, ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True)
    notes = Column(Text, nullable=True)

    starts_at = Column(DateTime, nullable=False, index=True)
    ends_at = Column(DateTime, nullable=False)
    time_zone = Column(String(64), nullable=True)
    source = Column(String(20), default="public")  # public, internal
    scheduled_by_user_id = Column(Integer, nullable=True)

    reminder_minutes_before = Column(Integer, nullable=True)
    reminder_email_sent_at = Column(DateTime, nullable=True)
    invite_email_sent_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    appointment_type = relationship("AppointmentType")
