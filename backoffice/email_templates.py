"""
MJML Email Templates
All email templates using MJML for responsive, cross-client compatibility
"""

from typing import Optional

from .config import COMPANY_NAME, FRONTEND_URL

THEME = {
    "primary": "#2563eb",
    "primary_dark": "#1d4ed8",
    "primary_light": "#dbeafe",
    "background": "#f8fafc",
    "card_bg": "#ffffff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#16a34a",
    "warning": "#f59e0b",
    "danger": "#ef4444",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 20px 0 20px">
          <mj-column>
            <mj-text font-size="18px" font-weight="700" color="{THEME['primary_dark']}" padding="0">
              {COMPANY_NAME}
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="24px 0 0 0" />
          </mj-column>
        </mj-section>

        <!-- Main Content -->
        <mj-section background-color="#ffffff" padding="24px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <!-- Footer -->
        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              Sent by {COMPANY_NAME}. If you weren't expecting this email you can ignore it.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def info_rows(rows: list[tuple[str, str]]) -> str:
    """Label/value lines inside a tinted box"""
    lines = "".join(
        f'<strong style="color: {THEME["text_primary"]};">{label}:</strong> {value}<br/>'
        for label, value in rows
        if value
    )
    return f"""
    <mj-text background-color="{THEME['primary_light']}" padding="16px" font-size="15px">
      {lines}
    </mj-text>
    """


# ============================================
# Contracts
# ============================================


def signature_invite_template(
    signer_name: Optional[str],
    contract_name: str,
    sign_url: str,
    role_label: str,
    expires_label: str,
    requires_code: bool = False,
    login_id: Optional[str] = None,
) -> str:
    """Signature request with the signing link"""
    code_notice = ""
    if requires_code:
        code_notice = f"""
    <mj-text color="{THEME['text_muted']}">
      For your security, signing requires a one-time code which we've sent in a separate email.
      Your login ID is <strong>{login_id}</strong>.
    </mj-text>
    """
    content = f"""
    <mj-text>
      Hi {signer_name or "there"},
    </mj-text>

    <mj-text>
      You've been asked to review and sign <strong>{contract_name}</strong> as the {role_label}.
    </mj-text>

    {code_notice}

    <mj-text color="{THEME['text_muted']}" font-size="14px">
      This link expires on {expires_label}.
    </mj-text>
    """
    return get_base_template(
        title="Signature requested",
        preview_text=f"Please sign {contract_name}",
        content_sections=content,
        cta_url=sign_url,
        cta_label="Review & Sign",
    )


def signature_code_template(signer_name: Optional[str], contract_name: str, code: str, minutes: int) -> str:
    """One-time code for the signing page"""
    content = f"""
    <mj-text>
      Hi {signer_name or "there"},
    </mj-text>

    <mj-text>
      Use this code to open <strong>{contract_name}</strong> for signing:
    </mj-text>

    <mj-text align="center" font-size="32px" font-weight="700" letter-spacing="8px" color="{THEME['primary_dark']}" padding="16px 0">
      {code}
    </mj-text>

    <mj-text color="{THEME['text_muted']}" font-size="14px">
      The code expires in {minutes} minutes. Never share it with anyone.
    </mj-text>
    """
    return get_base_template(
        title="Your signing code",
        preview_text=f"Your code is {code}",
        content_sections=content,
    )


def contract_executed_template(
    contract_name: str,
    customer_signer: Optional[str],
    provider_signer: Optional[str],
    executed_label: str,
) -> str:
    details = info_rows(
        [
            ("Customer signer", customer_signer or ""),
            ("Provider signer", provider_signer or ""),
            ("Executed", executed_label),
        ]
    )
    content = f"""
    <mj-text>
      <strong>{contract_name}</strong> has been signed by both parties and is now in effect.
    </mj-text>

    {details}
    """
    return get_base_template(
        title="Contract fully executed",
        preview_text=f"{contract_name} is fully executed",
        content_sections=content,
    )


# ============================================
# Scheduler
# ============================================


def appointment_confirmation_template(
    attendee_name: str,
    type_name: str,
    when_label: str,
    location: Optional[str] = None,
    host_name: Optional[str] = None,
) -> str:
    details = info_rows([("When", when_label), ("With", host_name or ""), ("Where", location or "")])
    content = f"""
    <mj-text>
      Hi {attendee_name},
    </mj-text>

    <mj-text>
      Your <strong>{type_name}</strong> is booked.
    </mj-text>

    {details}
    """
    return get_base_template(
        title="Appointment confirmed",
        preview_text=f"{type_name} on {when_label}",
        content_sections=content,
    )


def appointment_cancelled_template(attendee_name: str, type_name: str, when_label: str, booking_url: str) -> str:
    content = f"""
    <mj-text>
      Hi {attendee_name},
    </mj-text>

    <mj-text>
      Your <strong>{type_name}</strong> scheduled for {when_label} has been cancelled.
    </mj-text>
    """
    return get_base_template(
        title="Appointment cancelled",
        preview_text=f"{type_name} on {when_label} was cancelled",
        content_sections=content,
        cta_url=booking_url,
        cta_label="Book another time",
    )


def appointment_reminder_template(
    attendee_name: str,
    type_name: str,
    when_label: str,
    location: Optional[str] = None,
) -> str:
    details = info_rows([("When", when_label), ("Where", location or "")])
    content = f"""
    <mj-text>
      Hi {attendee_name},
    </mj-text>

    <mj-text>
      This is a reminder of your upcoming <strong>{type_name}</strong>.
    </mj-text>

    {details}
    """
    return get_base_template(
        title="Appointment reminder",
        preview_text=f"Reminder: {type_name} on {when_label}",
        content_sections=content,
    )


# ============================================
# Invoices
# ============================================


def invoice_issued_template(
    recipient_name: Optional[str],
    invoice_number: int,
    title: str,
    total_label: str,
    balance_label: str,
    due_label: Optional[str] = None,
) -> str:
    details = info_rows([("Total", total_label), ("Balance due", balance_label), ("Due date", due_label or "")])
    content = f"""
    <mj-text>
      Hi {recipient_name or "there"},
    </mj-text>

    <mj-text>
      Invoice <strong>#{invoice_number}</strong> for <strong>{title}</strong> is ready.
    </mj-text>

    {details}
    """
    return get_base_template(
        title=f"Invoice #{invoice_number}",
        preview_text=f"Invoice #{invoice_number}: {balance_label} due",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/invoices",
        cta_label="View invoice",
    )
