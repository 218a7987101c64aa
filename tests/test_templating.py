from datetime import datetime
from types import SimpleNamespace

from backoffice.domain.slas.service import reconcile_targets
from backoffice.domain.slas.templating import build_contract_context, format_value, render_template, resolve_path


def make_contract(**overrides):
    values = {
        "id": 7,
        "name": "Gold Support",
        "type": "support",
        "status": "active",
        "version": 2,
        "start_date": datetime(2026, 1, 1, 12),
        "end_date": None,
        "renewal_date": None,
        "auto_renew": True,
        "response_target_minutes": 60,
        "resolution_target_minutes": 240,
        "entitlements": None,
        "notes": None,
        "amendment_reason": None,
        "billing_contact_email": None,
        "signed_by_customer": None,
        "signed_at_customer": None,
        "signed_by_provider": None,
        "signed_at_provider": None,
        "executed_date": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def make_account():
    return SimpleNamespace(
        id=3,
        account_number=998801,
        name="Acme",
        company_name="Acme Corporation",
        primary_contact_name="Jane",
        primary_contact_email="jane@acme.example.com",
        primary_contact_phone=None,
    )


def test_resolve_path():
    context = {"contract": {"name": "X"}, "flat": 1}
    assert resolve_path(context, "contract.name") == "X"
    assert resolve_path(context, "flat") == 1
    assert resolve_path(context, "contract.missing") is None
    assert resolve_path(context, "flat.deeper") is None


def test_format_value():
    assert format_value(None) == ""
    assert format_value(True) == "Yes"
    assert format_value(False) == "No"
    assert format_value(datetime(2026, 3, 4, 15, 30)) == "2026-03-04"
    assert format_value({"a": 1}) == ""
    assert format_value(42) == "42"


def test_render_escapes_and_blanks_unknown():
    body = "<h1>{{ name }}</h1><p>{{unknown}}</p><p>{{ contract.autoRenew }}</p>"
    context = {"name": "<b>Bold</b>", "contract": {"autoRenew": True}}

    assert render_template(body, context) == "<h1>&lt;b&gt;Bold&lt;/b&gt;</h1><p></p><p>Yes</p>"


def test_render_empty_body():
    assert render_template(None, {}) == ""


def test_contract_context():
    context = build_contract_context(make_contract(), make_account(), now=datetime(2026, 5, 1))

    assert context["contractNumber"] == "SLA-7-v2"
    assert context["customerLegalName"] == "Acme Corporation"
    assert context["today"] == "2026-05-01"
    assert context["account"]["accountNumber"] == 998801
    rendered = render_template("{{ contractNumber }} effective {{ effectiveDate }}", context)
    assert rendered == "SLA-7-v2 effective 2026-01-01"


def test_contract_context_without_account():
    context = build_contract_context(make_contract(), None, now=datetime(2026, 5, 1))

    assert context["account"] == {}
    assert context["customerLegalName"] is None


def test_reconcile_targets():
    assert reconcile_targets(60, 30) == 60
    assert reconcile_targets(60, 240) == 240
    assert reconcile_targets(None, 30) == 30
    assert reconcile_targets(60, None) is None
