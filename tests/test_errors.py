"""Error envelope and authentication tests"""

from datetime import timedelta

from backoffice.auth import create_access_token


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_missing_token(client):
    response = client.get("/api/crm/contacts")

    assert response.status_code == 401
    assert response.json() == {"data": None, "error": "unauthorized"}


def test_bad_and_expired_tokens(client, user):
    bad = client.get("/api/crm/contacts", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401

    expired = create_access_token(user.id, expires_delta=timedelta(minutes=-5))
    response = client.get("/api/crm/contacts", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401


def test_token_for_inactive_user(client, db, user, headers):
    user.is_active = False
    db.commit()

    response = client.get("/api/crm/contacts", headers=headers)

    assert response.status_code == 401


def test_malformed_path_id(client, headers):
    response = client.get("/api/crm/slas/abc", headers=headers)

    assert response.status_code == 400
    assert response.json() == {"data": None, "error": "invalid_id"}


def test_invalid_payload_includes_details(client, headers):
    response = client.post("/api/crm/accounts", json={"name": ""}, headers=headers)

    body = response.json()
    assert response.status_code == 400
    assert body["error"] == "invalid_payload"
    assert body["data"] is None
    assert body["details"][0]["loc"] == ["body", "name"]


def test_unknown_route(client):
    response = client.get("/api/nowhere")

    assert response.status_code == 404
    assert response.json() == {"data": None, "error": "not_found"}


def test_method_not_allowed(client, headers):
    response = client.patch("/api/crm/contacts", headers=headers)

    assert response.status_code == 405
    assert response.json()["error"] == "method_not_allowed"
