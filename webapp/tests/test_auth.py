import pytest
from werkzeug.security import generate_password_hash

from dental_clinic.adapters.sqlite.core import get_db
from dental_clinic.services.auth_service import MAX_FAILED_ATTEMPTS, AuthService


def test_login_and_logout(client):
    response = client.post("/auth/login", data={"username": "admin", "password": "admin-pass"})
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/dashboard/")
    assert client.get("/dashboard/").status_code == 200

    client.get("/auth/logout")
    assert client.get("/dashboard/").status_code == 302


def test_bad_password_shows_login_again(client):
    response = client.post("/auth/login", data={"username": "admin", "password": "nope"})
    assert response.status_code == 200
    assert b"Incorrect username or password" in response.data


def test_json_requests_get_401(client):
    response = client.get("/patients/list", headers={"Accept": "application/json"})
    assert response.status_code == 401


def test_lockout_after_repeated_failures(ctx):
    service = AuthService()
    for _ in range(MAX_FAILED_ATTEMPTS):
        assert service.authenticate("admin", "wrong") is None
    assert service.authenticate("admin", "admin-pass") is None


def test_success_resets_failed_attempts(ctx):
    service = AuthService()
    for _ in range(MAX_FAILED_ATTEMPTS - 1):
        service.authenticate("admin", "wrong")
    assert service.authenticate("admin", "admin-pass").username == "admin"
    for _ in range(MAX_FAILED_ATTEMPTS - 1):
        service.authenticate("admin", "wrong")
    assert service.authenticate("admin", "admin-pass") is not None


def test_legacy_hash_is_upgraded_to_bcrypt(ctx):
    db = get_db()
    db.execute("UPDATE users SET password_hash = ? WHERE username = 'doc'",
               (generate_password_hash("doc-pass"),))
    db.commit()

    assert AuthService().authenticate("doc", "doc-pass") is not None
    stored = db.execute("SELECT password_hash FROM users WHERE username = 'doc'").fetchone()[0]
    if isinstance(stored, bytes):
        stored = stored.decode()
    assert stored.startswith("$2")


def test_register_user_validation(ctx):
    service = AuthService()
    assert service.register_user("admin", "x", "admin") is False
    with pytest.raises(ValueError):
        service.register_user("someone", "pw", "janitor")


def test_create_user_command(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["create-user", "nurse1", "pw", "assistant"])
    assert "created successfully" in result.output
    result = runner.invoke(args=["list-users"])
    assert "nurse1\tassistant" in result.output


def test_activity_log_is_admin_only(admin_client, desk_client):
    assert desk_client.get("/reports/activity").status_code == 403
    logs = admin_client.get("/reports/activity?action_type=login").get_json()["logs"]
    assert {entry["username"] for entry in logs} >= {"admin"}


def test_disabled_account_cannot_sign_in(app, client):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["set-user-active", "desk", "--disable"])
    assert "disabled" in result.output
    assert "desk\treceptionist\t\t(disabled)" in runner.invoke(args=["list-users"]).output

    client.post("/auth/login", data={"username": "desk", "password": "desk-pass"})
    assert client.get("/dashboard/").status_code == 302

    runner.invoke(args=["set-user-active", "desk"])
    client.post("/auth/login", data={"username": "desk", "password": "desk-pass"})
    assert client.get("/dashboard/").status_code == 200


def test_reset_password_lifts_lockout(app, ctx):
    service = AuthService()
    for _ in range(MAX_FAILED_ATTEMPTS):
        service.authenticate("doc", "wrong")
    assert service.authenticate("doc", "doc-pass") is None

    result = app.test_cli_runner().invoke(args=["reset-password", "doc", "new-pass"])
    assert "reset" in result.output
    assert service.authenticate("doc", "new-pass") is not None

    result = app.test_cli_runner().invoke(args=["reset-password", "ghost", "pw"])
    assert result.exit_code != 0
    assert "No user named" in result.output
