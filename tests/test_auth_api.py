from certdesk.db.init_db import ensure_user
from certdesk.models.user import User

PASSWORD = "s3cret-pass"


def test_login_returns_tokens_and_role(client, admin_user):
    resp = client.post("/api/v1/auth/login", json={"email": "ADMIN@certdesk.org", "password": PASSWORD})
    assert resp.status_code == 200
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["role"] == "admin"
    assert body["access_token"] and body["refresh_token"]


def test_wrong_password(client, admin_user):
    resp = client.post("/api/v1/auth/login", json={"email": admin_user.email, "password": "wrong-password"})
    assert resp.status_code == 401


def test_account_without_role_is_denied(client, db):
    from certdesk.core.security import hash_password

    db.add(User(name="Nobody", email="nobody@certdesk.org", hashed_password=hash_password(PASSWORD)))
    db.commit()
    resp = client.post("/api/v1/auth/login", json={"email": "nobody@certdesk.org", "password": PASSWORD})
    assert resp.status_code == 403


def test_super_admin_login_rejects_admins(client, admin_user, super_admin_user):
    denied = client.post("/api/v1/auth/super-admin/login", json={"email": admin_user.email, "password": PASSWORD})
    assert denied.status_code == 403
    ok = client.post("/api/v1/auth/super-admin/login", json={"email": super_admin_user.email, "password": PASSWORD})
    assert ok.status_code == 200
    assert ok.json()["user"]["role"] == "super_admin"


def test_oauth2_form_login(client, admin_user):
    resp = client.post("/api/v1/auth/token", data={"username": admin_user.email, "password": PASSWORD})
    assert resp.status_code == 200


def test_me_requires_bearer(client):
    assert client.get("/api/v1/auth/me").status_code == 401
    assert client.get("/api/v1/auth/me", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_me(client, admin_headers):
    resp = client.get("/api/v1/auth/me", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["email"] == "admin@certdesk.org"


def test_refresh_rotates_and_revokes_old_token(client, login_as, admin_user):
    tokens = login_as(admin_user.email)
    first = client.post("/api/v1/auth/refresh", json={"token": tokens["refresh_token"]})
    assert first.status_code == 200
    again = client.post("/api/v1/auth/refresh", json={"token": tokens["refresh_token"]})
    assert again.status_code == 401
    newer = client.post("/api/v1/auth/refresh", json={"token": first.json()["refresh_token"]})
    assert newer.status_code == 200


def test_logout_ends_session_and_clears_cached_role(client, login_as, admin_user, resolver):
    tokens = login_as(admin_user.email)
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}
    assert client.get("/api/v1/auth/me", headers=headers).status_code == 200
    assert len(resolver.cache) == 1

    assert client.post("/api/v1/auth/logout", json={"token": tokens["refresh_token"]}).json() == {"ok": True}
    assert len(resolver.cache) == 0
    resp = client.get("/api/v1/auth/me", headers=headers)
    assert resp.status_code == 401


def test_role_change_is_picked_up_on_next_request(client, db, admin_headers, admin_user):
    assert client.get("/api/v1/approvals/", headers=admin_headers).status_code == 403
    ensure_user(db, email=admin_user.email, password=PASSWORD, role="super_admin")
    assert client.get("/api/v1/approvals/", headers=admin_headers).status_code == 200
