import pytest
from sqlalchemy import select

from santa_portal.models import User

from .conftest import client_hash


def _register(client, name, passphrase="correct horse", email=None):
    return client.post(
        "/auth/register",
        json={"name": name, "email": email, "client_hash": client_hash(passphrase)},
    )


def test_register_and_login(client):
    resp = _register(client, "Alice", email="alice@example.com")
    assert resp.status_code == 201
    assert resp.get_json()["roles"] == ["employee"]

    resp = client.post("/auth/token", json={"name": "Alice", "client_hash": client_hash("correct horse")})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["token_type"] == "bearer"
    assert body["expires_in"] == 43200

    resp = client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert resp.status_code == 200
    assert resp.get_json()["name"] == "Alice"


def test_passphrase_is_stored_hashed(client, session):
    _register(client, "Alice")
    user = session.scalars(select(User).where(User.name == "Alice")).one()
    assert user.passkey_hash.startswith("$argon2")


def test_admin_name_gets_admin_role(client):
    resp = _register(client, "Admin")
    assert resp.get_json()["roles"] == ["admin", "employee"]


def test_duplicate_name(client):
    _register(client, "Alice")
    resp = _register(client, "Alice")

    assert resp.status_code == 409
    assert resp.get_json()["kind"] == "Conflict"


def test_missing_fields(client):
    resp = client.post("/auth/register", json={"name": "Alice"})
    assert resp.status_code == 400


def test_wrong_passphrase(client):
    _register(client, "Alice")
    resp = client.post("/auth/token", json={"name": "Alice", "client_hash": client_hash("nope")})

    assert resp.status_code == 401
    assert resp.get_json()["error"] == "Invalid name or passphrase."


def test_me_requires_token(client):
    resp = client.get("/auth/me")
    assert resp.status_code == 401
    assert resp.get_json()["kind"] == "Unauthenticated"


def test_expired_token(app, client, employees, auth_headers):
    headers = auth_headers(employees[0])
    app.config["ACCESS_TOKEN_TTL_SECONDS"] = -1

    resp = client.get("/auth/me", headers=headers)
    assert resp.status_code == 401


def test_grant_role_command(app, employees):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["grant-role", "Alice"])
    assert result.exit_code == 0
    assert "Granted admin to Alice." in result.output
    assert employees[0].is_admin

    result = runner.invoke(args=["grant-role", "Alice"])
    assert "Alice already has admin." in result.output

    result = runner.invoke(args=["grant-role", "Nobody"])
    assert result.exit_code != 0


@pytest.mark.parametrize("field, value", [("name", ["Alice"]), ("email", 42), ("client_hash", {"sha": 1})])
def test_register_rejects_non_string_fields(client, field, value):
    data = {"name": "Alice", "client_hash": client_hash("correct horse"), field: value}

    resp = client.post("/auth/register", json=data)

    assert resp.status_code == 400
    assert resp.get_json()["error"] == f"{field} must be a string"


def test_token_rejects_non_string_name(client):
    _register(client, "Alice")
    resp = client.post("/auth/token", json={"name": 7, "client_hash": client_hash("correct horse")})
    assert resp.status_code == 400
