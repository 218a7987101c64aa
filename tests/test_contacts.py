"""Contact API tests"""


def create_contact(client, headers, **payload):
    body = {"name": "Jane Doe", "email": "Jane@Example.com", **payload}
    response = client.post("/api/crm/contacts", json=body, headers=headers)
    assert response.status_code == 201
    return response.json()["data"]


def test_create_contact_lowercases_email(client, headers):
    contact = create_contact(client, headers)

    assert contact["name"] == "Jane Doe"
    assert contact["email"] == "jane@example.com"
    assert contact["isPrimary"] is False


def test_create_contact_requires_name(client, headers):
    response = client.post("/api/crm/contacts", json={"email": "a@b.com"}, headers=headers)

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_payload"


def test_contact_account_must_exist(client, headers, account):
    response = client.post("/api/crm/contacts", json={"name": "Jane", "accountId": 9999}, headers=headers)
    assert response.status_code == 400
    assert response.json()["error"] == "account_not_found"

    contact = create_contact(client, headers, accountId=account["id"])
    update = client.put(f"/api/crm/contacts/{contact['id']}", json={"accountId": 9999}, headers=headers)
    assert update.status_code == 400
    assert update.json()["error"] == "account_not_found"


def test_list_contacts_pages_and_searches(client, headers):
    for name in ("Alice", "Bob", "Carol"):
        create_contact(client, headers, name=name, email=f"{name.lower()}@example.com")

    response = client.get("/api/crm/contacts", params={"limit": 2}, headers=headers)
    data = response.json()["data"]
    assert data["total"] == 3
    assert data["pageSize"] == 2
    assert len(data["items"]) == 2

    response = client.get("/api/crm/contacts", params={"q": "bob"}, headers=headers)
    assert [c["name"] for c in response.json()["data"]["items"]] == ["Bob"]


def test_list_contacts_with_cursor(client, headers):
    first = create_contact(client, headers, name="First", email="first@example.com")
    create_contact(client, headers, name="Second", email="second@example.com")

    response = client.get("/api/crm/contacts", params={"cursor": first["id"]}, headers=headers)
    data = response.json()["data"]

    assert [c["name"] for c in data["items"]] == ["Second"]
    assert data["nextCursor"] is None


def test_update_contact_records_field_changes(client, headers):
    contact = create_contact(client, headers)

    response = client.put(
        f"/api/crm/contacts/{contact['id']}",
        json={"company": "Acme", "mobilePhone": "555-0100"},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["company"] == "Acme"

    history = client.get(f"/api/crm/contacts/{contact['id']}/history", headers=headers).json()["data"]
    events = [h["eventType"] for h in history["history"]]
    assert events[-1] == "created"
    assert events.count("field_changed") == 2
    changed = {h["meta"]["field"] for h in history["history"] if h["eventType"] == "field_changed"}
    assert changed == {"company", "mobilePhone"}


def test_update_without_changes_records_plain_update(client, headers):
    contact = create_contact(client, headers)

    client.put(f"/api/crm/contacts/{contact['id']}", json={"name": "Jane Doe"}, headers=headers)

    history = client.get(f"/api/crm/contacts/{contact['id']}/history", headers=headers).json()["data"]
    assert [h["eventType"] for h in history["history"]] == ["updated", "created"]


def test_delete_contact(client, headers):
    contact = create_contact(client, headers)

    response = client.delete(f"/api/crm/contacts/{contact['id']}", headers=headers)
    assert response.json() == {"data": {"ok": True}, "error": None}

    response = client.get(f"/api/crm/contacts/{contact['id']}", headers=headers)
    assert response.status_code == 404
    assert response.json() == {"data": None, "error": "not_found"}
