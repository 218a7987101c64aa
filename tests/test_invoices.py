"""Invoice API tests"""

from backoffice.domain.sequences import INVOICE_NUMBER_START


def create_invoice(client, headers, account, **payload):
    body = {
        "title": "Managed services",
        "accountId": account["id"],
        "items": [{"description": "Support hours", "quantity": 10, "unitPrice": 50}],
        "taxRate": 10,
        **payload,
    }
    response = client.post("/api/crm/invoices", json=body, headers=headers)
    assert response.status_code == 201, response.json()
    return response.json()["data"]


def test_create_invoice_computes_totals(client, headers, account):
    invoice = create_invoice(client, headers, account)

    assert invoice["invoiceNumber"] == INVOICE_NUMBER_START
    assert invoice["subtotal"] == 500
    assert invoice["tax"] == 50
    assert invoice["total"] == 550
    assert invoice["balance"] == 550
    assert invoice["status"] == "draft"


def test_create_invoice_by_account_number(client, headers, account):
    invoice = create_invoice(client, headers, {"id": None}, accountNumber=account["accountNumber"])
    assert invoice["accountId"] == account["id"]


def test_create_invoice_unknown_account(client, headers):
    response = client.post("/api/crm/invoices", json={"title": "X", "accountId": 999}, headers=headers)

    assert response.status_code == 400
    assert response.json()["error"] == "account_not_found"


def test_create_invoice_missing_account(client, headers):
    response = client.post("/api/crm/invoices", json={"title": "X"}, headers=headers)

    assert response.status_code == 400
    assert response.json()["error"] == "missing_account"


def test_payment_settles_invoice(client, headers, account):
    invoice = create_invoice(client, headers, account)

    partial = client.post(f"/api/crm/invoices/{invoice['id']}/payments", json={"amount": 200}, headers=headers)
    assert partial.json()["data"]["balance"] == 350
    assert partial.json()["data"]["status"] == "draft"

    paid = client.post(f"/api/crm/invoices/{invoice['id']}/payments", json={"amount": 350}, headers=headers)
    data = paid.json()["data"]
    assert data["balance"] == 0
    assert data["status"] == "paid"
    assert data["paidAt"].endswith("Z")


def test_payment_must_be_positive(client, headers, account):
    invoice = create_invoice(client, headers, account)

    response = client.post(f"/api/crm/invoices/{invoice['id']}/payments", json={"amount": 0}, headers=headers)

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_amount"


def test_refund_raises_balance(client, headers, account):
    invoice = create_invoice(client, headers, account)
    client.post(f"/api/crm/invoices/{invoice['id']}/payments", json={"amount": 550}, headers=headers)

    response = client.post(
        f"/api/crm/invoices/{invoice['id']}/refunds", json={"amount": 50, "reason": "goodwill"}, headers=headers
    )

    assert response.json()["data"]["balance"] == 50


def test_update_items_recomputes_and_records_total_change(client, headers, account):
    invoice = create_invoice(client, headers, account)

    response = client.put(
        f"/api/crm/invoices/{invoice['id']}",
        json={"items": [{"description": "Support hours", "quantity": 20, "unitPrice": 50}]},
        headers=headers,
    )
    assert response.json()["data"]["total"] == 1100

    history = client.get(f"/api/crm/invoices/{invoice['id']}/history", headers=headers).json()["data"]
    events = [h["eventType"] for h in history["history"]]
    assert "total_changed" in events
    assert "created" in events


def test_status_change_is_tracked(client, headers, account):
    invoice = create_invoice(client, headers, account)

    client.put(f"/api/crm/invoices/{invoice['id']}", json={"status": "open"}, headers=headers)

    history = client.get(f"/api/crm/invoices/{invoice['id']}/history", headers=headers).json()["data"]
    status_events = [h for h in history["history"] if h["eventType"] == "status_changed"]
    assert status_events[0]["meta"] == {"oldValue": "draft", "newValue": "open"}


def test_subscription_lifecycle(client, headers, account):
    invoice = create_invoice(client, headers, account)

    started = client.post(
        f"/api/crm/invoices/{invoice['id']}/subscribe",
        json={"interval": "monthly", "startAt": "2026-01-31T00:00:00Z"},
        headers=headers,
    ).json()["data"]
    assert started["subscription"]["active"] is True
    assert started["subscription"]["nextInvoiceAt"] == "2026-02-28T00:00:00Z"

    canceled = client.post(f"/api/crm/invoices/{invoice['id']}/cancel-subscription", headers=headers).json()["data"]
    assert canceled["subscription"]["active"] is False
    assert canceled["subscription"]["canceledAt"]


def test_dunning_state_validation(client, headers, account):
    invoice = create_invoice(client, headers, account)

    bad = client.post(f"/api/crm/invoices/{invoice['id']}/dunning", json={"state": "angry"}, headers=headers)
    assert bad.status_code == 400
    assert bad.json()["error"] == "invalid_state"

    ok = client.post(f"/api/crm/invoices/{invoice['id']}/dunning", json={"state": "first_notice"}, headers=headers)
    assert ok.json()["data"]["dunningState"] == "first_notice"


def test_send_invoice_opens_draft(client, headers, account):
    invoice = create_invoice(client, headers, account)

    response = client.post(
        f"/api/crm/invoices/{invoice['id']}/send", json={"to": "billing@acme.example.com"}, headers=headers
    )

    data = response.json()["data"]
    assert data["status"] == "open"
    assert data["issuedAt"]


def test_send_invoice_without_recipient(client, headers, account):
    invoice = create_invoice(client, headers, account)

    response = client.post(f"/api/crm/invoices/{invoice['id']}/send", json={}, headers=headers)

    assert response.status_code == 400
    assert response.json()["error"] == "missing_recipient"
