"""Public contract signing tests"""

from datetime import timedelta

from backoffice.domain.slas import service as sla_service
from backoffice.domain.slas import signing as signing_module
from backoffice.models import SignatureInvite
from backoffice.shared.dates import utcnow


def draft_contract(client, headers, account, **payload):
    body = {"accountId": account["id"], "name": "Gold Support", "status": "draft", **payload}
    return client.post("/api/crm/slas", json=body, headers=headers).json()["data"]


def invite(client, headers, contract_id, role, email, **payload):
    response = client.post(
        f"/api/crm/slas/{contract_id}/signature-invites",
        json={"role": role, "email": email, "name": "Signer", **payload},
        headers=headers,
    )
    assert response.status_code == 201, response.json()
    return response.json()["data"]


def sign(client, token, name="Pat Signer", email="pat@acme.example.com"):
    return client.post(f"/api/public/contracts/sign/{token}", json={"name": name, "email": email})


def test_signing_view_hides_internal_fields(client, headers, account):
    contract = draft_contract(client, headers, account)
    customer = invite(client, headers, contract["id"], "customerSigner", "cfo@acme.example.com")

    response = client.get(f"/api/public/contracts/sign/{customer['token']}")

    data = response.json()["data"]
    assert data["requiresOtp"] is False
    assert data["role"] == "customerSigner"
    assert data["contract"]["name"] == "Gold Support"
    assert "emailSends" not in data["contract"]
    assert "signatureAudit" not in data["contract"]


def test_unknown_token(client):
    response = client.get("/api/public/contracts/sign/not-a-token")

    assert response.status_code == 404
    assert response.json()["error"] == "invalid_or_expired"


def test_expired_invite(client, headers, account, db):
    contract = draft_contract(client, headers, account)
    customer = invite(client, headers, contract["id"], "customerSigner", "cfo@acme.example.com")
    row = db.query(SignatureInvite).filter(SignatureInvite.id == customer["id"]).first()
    row.expires_at = utcnow() - timedelta(minutes=1)
    db.commit()

    response = client.get(f"/api/public/contracts/sign/{customer['token']}")

    assert response.status_code == 410
    assert response.json()["error"] == "expired"


def test_both_signatures_execute_contract(client, headers, account, monkeypatch):
    executed = []

    async def fake_executed_email(**kwargs):
        executed.append(kwargs)
        return {"id": "email"}

    monkeypatch.setattr(signing_module, "send_contract_executed_email", fake_executed_email)

    contract = draft_contract(client, headers, account)
    customer = invite(client, headers, contract["id"], "customerSigner", "cfo@acme.example.com")
    provider = invite(client, headers, contract["id"], "providerSigner", "ops@provider.example.com")

    first = sign(client, customer["token"], name="Casey Customer")
    assert first.status_code == 200
    assert first.json()["data"]["contract"]["status"] == "draft"
    assert first.json()["data"]["contract"]["signedByCustomer"] == "Casey Customer"

    second = sign(client, provider["token"], name="Parker Provider")
    signed = second.json()["data"]["contract"]
    assert signed["status"] == "active"
    assert signed["executedDate"]

    stored = client.get(f"/api/crm/slas/{contract['id']}", headers=headers).json()["data"]
    events = [e["event"] for e in stored["signatureAudit"]]
    assert events[-3:] == ["signed_customerSigner", "signed_providerSigner", "fully_executed"]
    signed_event = stored["signatureAudit"][-3]
    assert signed_event["actor"] == "Casey Customer"
    assert signed_event["userAgent"]

    assert executed[0]["to"] == ["cfo@acme.example.com", "ops@provider.example.com"]

    reused = sign(client, customer["token"])
    assert reused.status_code == 410
    assert reused.json()["error"] == "already_used"


def test_otp_gate(client, headers, account, monkeypatch):
    codes = []

    async def fake_code_email(to, signer_name, contract_name, code, ttl_minutes):
        codes.append(code)
        return {"id": "email"}

    monkeypatch.setattr(sla_service, "send_signature_code_email", fake_code_email)

    contract = draft_contract(client, headers, account)
    customer = invite(client, headers, contract["id"], "customerSigner", "cfo@acme.example.com", requireOtp=True)
    token = customer["token"]
    assert customer["loginId"]
    assert len(codes[0]) == 6

    view = client.get(f"/api/public/contracts/sign/{token}").json()["data"]
    assert view == {
        "requiresOtp": True,
        "role": "customerSigner",
        "signer": {"email": "cfo@acme.example.com", "name": "Signer", "title": ""},
    }

    blocked = sign(client, token)
    assert blocked.status_code == 403
    assert blocked.json()["error"] == "otp_required"

    wrong_login = client.post(f"/api/public/contracts/sign/{token}/otp", json={"loginId": "NOPE", "otpCode": codes[0]})
    assert wrong_login.status_code == 401
    assert wrong_login.json()["error"] == "login_invalid"

    wrong_code = "000000" if codes[0] != "000000" else "111111"
    bad = client.post(f"/api/public/contracts/sign/{token}/otp", json={"loginId": customer["loginId"], "otpCode": wrong_code})
    assert bad.status_code == 401
    assert bad.json()["error"] == "otp_invalid"

    ok = client.post(
        f"/api/public/contracts/sign/{token}/otp",
        json={"loginId": customer["loginId"].lower(), "otpCode": codes[0]},
    )
    assert ok.json()["data"] == {"verified": True, "role": "customerSigner"}

    assert client.get(f"/api/public/contracts/sign/{token}").json()["data"]["requiresOtp"] is False
    assert sign(client, token).status_code == 200


def test_otp_on_invite_without_code(client, headers, account):
    contract = draft_contract(client, headers, account)
    customer = invite(client, headers, contract["id"], "customerSigner", "cfo@acme.example.com")

    response = client.post(
        f"/api/public/contracts/sign/{customer['token']}/otp", json={"loginId": "X", "otpCode": "123456"}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "otp_not_configured"


def test_expired_code_is_rejected(client, headers, account, db, monkeypatch):
    codes = []

    async def fake_code_email(to, signer_name, contract_name, code, minutes):
        codes.append(code)
        return {"id": "email"}

    monkeypatch.setattr(sla_service, "send_signature_code_email", fake_code_email)
    contract = draft_contract(client, headers, account)
    customer = invite(client, headers, contract["id"], "customerSigner", "cfo@acme.example.com", requireOtp=True)
    row = db.query(SignatureInvite).filter(SignatureInvite.id == customer["id"]).first()
    row.otp_expires_at = utcnow() - timedelta(minutes=1)
    db.commit()

    response = client.post(
        f"/api/public/contracts/sign/{customer['token']}/otp",
        json={"loginId": customer["loginId"], "otpCode": codes[0]},
    )

    assert response.status_code == 410
    assert response.json()["error"] == "otp_expired"


def test_invite_listing_never_exposes_code_hash(client, headers, account):
    contract = draft_contract(client, headers, account)
    invite(client, headers, contract["id"], "customerSigner", "cfo@acme.example.com", requireOtp=True)

    response = client.get(f"/api/crm/slas/{contract['id']}/signature-invites", headers=headers)

    items = response.json()["data"]["items"]
    assert len(items) == 1
    assert items[0]["loginId"]
    assert not any("hash" in key.lower() or "code" in key.lower() for key in items[0])


def test_executed_amendment_retires_active_parent(client, headers, account):
    parent = draft_contract(client, headers, account, status="active")
    amendment = client.post(
        f"/api/crm/slas/{parent['id']}/amend", json={"amendmentReason": "New targets"}, headers=headers
    ).json()["data"]

    for role, email in (("customerSigner", "cfo@acme.example.com"), ("providerSigner", "ops@provider.example.com")):
        token = invite(client, headers, amendment["id"], role, email)["token"]
        assert sign(client, token).status_code == 200

    stored_parent = client.get(f"/api/crm/slas/{parent['id']}", headers=headers).json()["data"]
    assert stored_parent["status"] == "expired"
    assert stored_parent["signatureAudit"][-1]["event"] == "superseded"

    stored_amendment = client.get(f"/api/crm/slas/{amendment['id']}", headers=headers).json()["data"]
    assert stored_amendment["status"] == "active"
