from certportal.app import db
from certportal.constants import (
    ACCESS_DENIED_MESSAGE,
    AUTH_STORAGE_KEY,
    BACKEND_SESSION_KEY,
    INVALID_CREDENTIALS_MESSAGE,
)
from certportal.models import AuthUser
from certportal.shared.passwords import hash_password


def _add_user(email, password):
    db.session.add(AuthUser(email=email, password_hash=hash_password(password)))
    db.session.commit()


def test_login_page(client):
    resp = client.get("/login")
    assert resp.status_code == 200
    assert b"Admin login" in resp.data


def test_admin_pages_redirect_anonymous(client):
    resp = client.get("/admin/participants")
    assert resp.status_code == 302
    assert "/login" in resp.headers["Location"]
    assert "next=" in resp.headers["Location"]


def test_signup_admin_then_dashboard(admin_client):
    resp = admin_client.get("/admin")
    assert resp.status_code == 200
    assert b"Admin dashboard" in resp.data
    assert b"root@admin.com" in resp.data
    with admin_client.session_transaction() as sess:
        assert sess[AUTH_STORAGE_KEY] == {"identity": "root@admin.com", "isAdmin": True}
        assert sess[BACKEND_SESSION_KEY]["email"] == "root@admin.com"


def test_signup_non_admin_rejected(client, csrf_token):
    resp = client.post(
        "/login",
        data={
            "mode": "signup",
            "email": "user@example.com",
            "password": "secret123",
            "csrf_token": csrf_token,
        },
    )
    assert resp.status_code == 200
    assert b"Only @admin.com email addresses are allowed for registration" in resp.data
    assert AuthUser.query.count() == 0


def test_signin_admin_redirects_to_next(client, csrf_token):
    _add_user("boss@admin.com", "secret123")
    resp = client.post(
        "/login",
        data={
            "email": "boss@admin.com",
            "password": "secret123",
            "next": "/admin/events",
            "csrf_token": csrf_token,
        },
    )
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/admin/events")


def test_signin_ignores_offsite_next(client, csrf_token):
    _add_user("boss@admin.com", "secret123")
    resp = client.post(
        "/login",
        data={
            "email": "boss@admin.com",
            "password": "secret123",
            "next": "//evil.example.com/",
            "csrf_token": csrf_token,
        },
    )
    assert resp.headers["Location"].endswith("/admin")


def test_signin_non_admin_denied_and_signed_out(client, csrf_token):
    _add_user("user@example.com", "secret123")
    resp = client.post(
        "/login",
        data={"email": "user@example.com", "password": "secret123", "csrf_token": csrf_token},
    )
    assert resp.status_code == 403
    assert ACCESS_DENIED_MESSAGE.encode() in resp.data
    with client.session_transaction() as sess:
        assert BACKEND_SESSION_KEY not in sess
        assert AUTH_STORAGE_KEY not in sess
    assert client.get("/admin").status_code == 302


def test_wrong_password(client, csrf_token):
    _add_user("boss@admin.com", "secret123")
    resp = client.post(
        "/login",
        data={"email": "boss@admin.com", "password": "bad", "csrf_token": csrf_token},
    )
    assert resp.status_code == 200
    assert INVALID_CREDENTIALS_MESSAGE.encode() in resp.data


def test_logout(admin_client, csrf_token):
    resp = admin_client.post("/logout", data={"csrf_token": csrf_token}, follow_redirects=True)
    assert resp.request.path == "/"
    assert b"You have been signed out." in resp.data
    assert admin_client.get("/admin").status_code == 302


def test_stale_identity_is_reconciled(client):
    with client.session_transaction() as sess:
        sess[AUTH_STORAGE_KEY] = {"identity": "ghost@admin.com", "isAdmin": True}
    resp = client.get("/admin")
    assert resp.status_code == 302
    with client.session_transaction() as sess:
        assert AUTH_STORAGE_KEY not in sess


def test_post_without_csrf_token_is_rejected(client):
    resp = client.post("/login", data={"email": "a@admin.com", "password": "x"})
    assert resp.status_code == 400


def test_unknown_path_renders_not_found(client):
    resp = client.get("/definitely/not/here")
    assert resp.status_code == 404
    assert b"Page not found" in resp.data
