"""Account API tests"""

from backoffice.domain.sequences import ACCOUNT_NUMBER_START


def test_account_numbers_are_sequential(client, headers, account):
    second = client.post("/api/crm/accounts", json={"name": "Globex"}, headers=headers).json()["data"]

    assert account["accountNumber"] == ACCOUNT_NUMBER_START
    assert second["accountNumber"] == ACCOUNT_NUMBER_START + 1


def test_list_accounts_search_and_sort(client, headers, account):
    client.post("/api/crm/accounts", json={"name": "Beta Labs"}, headers=headers)

    response = client.get("/api/crm/accounts", params={"sort": "name", "dir": "desc"}, headers=headers)
    assert [a["name"] for a in response.json()["data"]["items"]] == ["Beta Labs", "Acme Corp"]

    response = client.get("/api/crm/accounts", params={"q": "corporation"}, headers=headers)
    assert [a["name"] for a in response.json()["data"]["items"]] == ["Acme Corp"]


def test_update_account_keeps_name_when_null(client, headers, account):
    response = client.put(
        f"/api/crm/accounts/{account['id']}",
        json={"name": None, "primaryContactEmail": "billing@acme.example.com"},
        headers=headers,
    )

    data = response.json()["data"]
    assert data["name"] == "Acme Corp"
    assert data["primaryContactEmail"] == "billing@acme.example.com"


def test_delete_account_in_use_is_rejected(client, headers, account):
    client.post("/api/crm/invoices", json={"title": "Setup", "accountId": account["id"]}, headers=headers)

    response = client.delete(f"/api/crm/accounts/{account['id']}", headers=headers)

    assert response.status_code == 409
    assert response.json()["error"] == "account_in_use"


def test_delete_unused_account(client, headers, account):
    response = client.delete(f"/api/crm/accounts/{account['id']}", headers=headers)
    assert response.json()["data"] == {"ok": True}

    assert client.get(f"/api/crm/accounts/{account['id']}", headers=headers).status_code == 404
