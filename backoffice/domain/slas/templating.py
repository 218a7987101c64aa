"""
Contract template rendering.

Templates use ``{{ path }}`` placeholders. A path is either a flat key
(``{{name}}``, ``{{startDate}}``) or a dotted path into the context
(``{{ contract.name }}``, ``{{ account.accountNumber }}``). Values are
HTML-escaped; unknown placeholders render as an empty string.
"""

import html
import re
from datetime import date, datetime
from typing import Any, Optional

from ...config import COMPANY_NAME
from ...shared.dates import format_date, utcnow

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*)\s*\}\}")


def resolve_path(context: dict, path: str) -> Any:
    value: Any = context
    for part in path.split("."):
        if isinstance(value, dict) and part in value:
            value = value[part]
        else:
            return None
    return value


def format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, datetime):
        return format_date(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (dict, list)):
        return ""
    return str(value)


def render_template(body: Optional[str], context: dict) -> str:
    if not body:
        return ""

    def replace(match: re.Match) -> str:
        return html.escape(format_value(resolve_path(context, match.group(1))), quote=True)

    return PLACEHOLDER_PATTERN.sub(replace, body)


def build_contract_context(contract, account=None, now: Optional[datetime] = None) -> dict:
    """Context for a contract: nested ``contract``/``account`` plus flat contract keys"""
    now = now or utcnow()
    contract_values = {
        "id": contract.id,
        "name": contract.name,
        "type": contract.type,
        "status": contract.status,
        "version": contract.version,
        "startDate": contract.start_date,
        "endDate": contract.end_date,
        "renewalDate": contract.renewal_date,
        "autoRenew": bool(contract.auto_renew),
        "responseTargetMinutes": contract.response_target_minutes,
        "resolutionTargetMinutes": contract.resolution_target_minutes,
        "entitlements": contract.entitlements,
        "notes": contract.notes,
        "amendmentReason": contract.amendment_reason,
        "billingContactEmail": contract.billing_contact_email,
        "signedByCustomer": contract.signed_by_customer,
        "signedAtCustomer": contract.signed_at_customer,
        "signedByProvider": contract.signed_by_provider,
        "signedAtProvider": contract.signed_at_provider,
        "executedDate": contract.executed_date,
    }
    account_values = {}
    if account is not None:
        account_values = {
            "id": account.id,
            "accountNumber": account.account_number,
            "name": account.name,
            "companyName": account.company_name,
            "primaryContactName": account.primary_contact_name,
            "primaryContactEmail": account.primary_contact_email,
            "primaryContactPhone": account.primary_contact_phone,
        }

    context = dict(contract_values)
    context.update(
        {
            "contract": contract_values,
            "account": account_values,
            "contractNumber": f"SLA-{contract.id}-v{contract.version or 1}",
            "customerLegalName": account_values.get("companyName") or account_values.get("name"),
            "providerLegalName": COMPANY_NAME,
            "effectiveDate": contract.start_date,
            "today": format_date(now),
        }
    )
    return context
