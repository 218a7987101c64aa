"""SLA contract API tests"""

from datetime import date, timedelta


def create_contract(client, headers, account, **payload):
    body = {
        "accountId": account["id"],
        "name": "Gold Support",
        "type": "support",
        "status": "active",
        "startDate": "2026-01-01",
        "endDate": "2026-12-31",
        "responseTargetMinutes": 60,
        "resolutionTargetMinutes": 240,
        **payload,
    }
    response = client.post("/api/crm/slas", json=body, headers=headers)
    assert response.status_code == 201, response.json()
    return response.json()["data"]


def test_create_contract_defaults(client, headers, account, user):
    contract = create_contract(client, headers, account)

    assert contract["version"] == 1
    assert contract["startDate"] == "2026-01-01T12:00:00Z"
    assert contract["internalOwnerUserId"] == user.id
    assert contract["attachments"] == []


def test_create_contract_unknown_account(client, headers):
    response = client.post("/api/crm/slas", json={"accountId": 404, "name": "X"}, headers=headers)

    assert response.status_code == 400
    assert response.json()["error"] == "account_not_found"


def test_contract_owner_must_exist(client, headers, account):
    response = client.post(
        "/api/crm/slas", json={"accountId": account["id"], "name": "X", "internalOwnerUserId": 9999}, headers=headers
    )
    assert response.status_code == 400
    assert response.json()["error"] == "owner_not_found"

    contract = create_contract(client, headers, account)
    update = client.put(f"/api/crm/slas/{contract['id']}", json={"internalOwnerUserId": 9999}, headers=headers)
    assert update.status_code == 400
    assert update.json()["error"] == "owner_not_found"


def test_resolution_target_is_raised_to_response(client, headers, account):
    contract = create_contract(client, headers, account, responseTargetMinutes=120, resolutionTargetMinutes=30)

    assert contract["resolutionTargetMinutes"] == 120


def test_unparseable_date_is_stored_as_null(client, headers, account):
    contract = create_contract(client, headers, account, endDate="someday")

    assert contract["endDate"] is None


def test_list_contracts_filters(client, headers, account):
    create_contract(client, headers, account, name="Support", type="support")
    create_contract(client, headers, account, name="Project", type="project", status="draft")

    response = client.get("/api/crm/slas", params={"type": "project"}, headers=headers)
    assert [c["name"] for c in response.json()["data"]["items"]] == ["Project"]

    response = client.get("/api/crm/slas", params={"status": "bogus"}, headers=headers)
    assert len(response.json()["data"]["items"]) == 2


def test_update_ignores_null_for_required_fields(client, headers, account):
    contract = create_contract(client, headers, account)

    response = client.put(
        f"/api/crm/slas/{contract['id']}",
        json={"name": None, "notes": "Escalate to on-call", "endDate": None},
        headers=headers,
    )

    data = response.json()["data"]
    assert data["name"] == "Gold Support"
    assert data["notes"] == "Escalate to on-call"
    assert data["endDate"] is None


def test_summary_by_account(client, headers, account):
    soon = (date.today() + timedelta(days=30)).isoformat()
    later = (date.today() + timedelta(days=400)).isoformat()
    create_contract(client, headers, account, endDate=soon, responseTargetMinutes=30, resolutionTargetMinutes=60)
    create_contract(client, headers, account, endDate=later, status="draft")

    response = client.get("/api/crm/slas/by-account", params={"accountIds": f"{account['id']},999"}, headers=headers)

    items = response.json()["data"]["items"]
    assert len(items) == 1
    summary = items[0]
    assert summary["accountId"] == account["id"]
    assert summary["activeCount"] == 1
    assert summary["expiringSoon"] == 1
    assert summary["bestResponse"] == 30
    assert summary["nextExpiry"] == f"{soon}T12:00:00Z"


def test_amend_creates_draft_version(client, headers, account):
    contract = create_contract(client, headers, account)

    response = client.post(
        f"/api/crm/slas/{contract['id']}/amend",
        json={"responseTargetMinutes": 30, "amendmentReason": "Faster response"},
        headers=headers,
    )
    assert response.status_code == 201
    amendment = response.json()["data"]
    assert amendment["version"] == 2
    assert amendment["status"] == "draft"
    assert amendment["parentContractId"] == contract["id"]
    assert amendment["responseTargetMinutes"] == 30
    assert amendment["resolutionTargetMinutes"] == 240
    assert amendment["signatureAudit"][0]["event"] == "amendment_created"

    parent = client.get(f"/api/crm/slas/{contract['id']}", headers=headers).json()["data"]
    assert parent["supersededById"] == amendment["id"]

    again = client.post(f"/api/crm/slas/{contract['id']}/amend", json={}, headers=headers)
    assert again.status_code == 409
    assert again.json()["error"] == "already_superseded"

    versions = client.get(f"/api/crm/slas/{amendment['id']}/versions", headers=headers).json()["data"]["items"]
    assert [v["version"] for v in versions] == [1, 2]


def test_amend_cancelled_contract_is_rejected(client, headers, account):
    contract = create_contract(client, headers, account, status="cancelled")

    response = client.post(f"/api/crm/slas/{contract['id']}/amend", json={}, headers=headers)

    assert response.status_code == 409
    assert response.json()["error"] == "contract_cancelled"


def test_delete_parent_keeps_amendment(client, headers, account):
    contract = create_contract(client, headers, account)
    amendment = client.post(f"/api/crm/slas/{contract['id']}/amend", json={}, headers=headers).json()["data"]

    response = client.delete(f"/api/crm/slas/{contract['id']}", headers=headers)
    assert response.json()["data"] == {"ok": True}

    remaining = client.get(f"/api/crm/slas/{amendment['id']}", headers=headers).json()["data"]
    assert remaining["parentContractId"] is None


def test_deleting_draft_amendment_allows_new_amendment(client, headers, account):
    contract = create_contract(client, headers, account)
    amendment = client.post(f"/api/crm/slas/{contract['id']}/amend", json={}, headers=headers).json()["data"]

    client.delete(f"/api/crm/slas/{amendment['id']}", headers=headers)

    parent = client.get(f"/api/crm/slas/{contract['id']}", headers=headers).json()["data"]
    assert parent["supersededById"] is None
    again = client.post(f"/api/crm/slas/{contract['id']}/amend", json={}, headers=headers)
    assert again.status_code == 201
    assert again.json()["data"]["version"] == 2


def test_render_with_template(client, headers, account):
    client.post(
        "/api/crm/contract-templates",
        json={
            "key": "support-v1",
            "name": "Support",
            "htmlBody": "<p>{{ contract.name }} for {{ customerLegalName }} from {{startDate}}</p>",
        },
        headers=headers,
    )
    contract = create_contract(client, headers, account, name="Gold & Platinum")

    response = client.post(f"/api/crm/slas/{contract['id']}/render", json={"templateKey": "support-v1"}, headers=headers)

    data = response.json()["data"]
    assert data["templateKey"] == "support-v1"
    assert data["renderedHtml"] == "<p>Gold &amp; Platinum for Acme Corporation from 2026-01-01</p>"


def test_render_without_template(client, headers, account):
    contract = create_contract(client, headers, account)

    response = client.post(f"/api/crm/slas/{contract['id']}/render", headers=headers)

    assert response.status_code == 404
    assert response.json()["error"] == "template_not_found"


def test_pdf_download(client, headers, account):
    contract = create_contract(client, headers, account, entitlements="24x7 phone support")

    response = client.get(f"/api/crm/slas/{contract['id']}/pdf", headers=headers)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")


def test_attachments(client, headers, account):
    contract = create_contract(client, headers, account)

    added = client.post(
        f"/api/crm/slas/{contract['id']}/attachments",
        json={"name": "scope.pdf", "url": "https://files.example.com/scope.pdf", "size": 2048},
        headers=headers,
    )
    assert added.status_code == 201
    attachment = added.json()["data"]["attachments"][0]
    assert attachment["name"] == "scope.pdf"

    missing = client.delete(f"/api/crm/slas/{contract['id']}/attachments/nope", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["error"] == "attachment_not_found"

    removed = client.delete(f"/api/crm/slas/{contract['id']}/attachments/{attachment['id']}", headers=headers)
    assert removed.json()["data"]["attachments"] == []


def test_new_invite_cancels_pending_invite_for_role(client, headers, account):
    contract = create_contract(client, headers, account)
    url = f"/api/crm/slas/{contract['id']}/signature-invites"

    first = client.post(url, json={"role": "customerSigner", "email": "cfo@acme.example.com"}, headers=headers)
    assert first.status_code == 201
    client.post(url, json={"role": "customerSigner", "email": "ceo@acme.example.com"}, headers=headers)

    invites = client.get(url, headers=headers).json()["data"]["items"]
    statuses = {i["email"]: i["status"] for i in invites}
    assert statuses == {"ceo@acme.example.com": "pending", "cfo@acme.example.com": "cancelled"}
    assert all("otpHash" not in i for i in invites)

    stored = client.get(f"/api/crm/slas/{contract['id']}", headers=headers).json()["data"]
    assert [s["status"] for s in stored["emailSends"]] == ["skipped", "skipped"]
    assert [e["event"] for e in stored["signatureAudit"]] == ["invite_sent", "invite_sent"]


def test_sub_resources_of_unknown_contract(client, headers):
    requests = [
        ("post", "/api/crm/slas/999/amend", {}),
        ("get", "/api/crm/slas/999/versions", None),
        ("post", "/api/crm/slas/999/render", {}),
        ("get", "/api/crm/slas/999/pdf", None),
        ("post", "/api/crm/slas/999/attachments", {"name": "SOW", "url": "https://files.example.com/sow.pdf"}),
        ("get", "/api/crm/slas/999/signature-invites", None),
    ]
    for method, url, body in requests:
        kwargs = {"headers": headers}
        if body is not None:
            kwargs["json"] = body
        response = getattr(client, method)(url, **kwargs)

        assert response.status_code == 404, url
        assert response.json() == {"data": None, "error": "not_found"}, url
