"""Auth endpoints: login, registration, me, refresh, logout.

Supabase Auth is patched out; session tokens are real and stored in fakeredis.

T1: login with good credentials returns a token that authenticates /me
T2: Supabase rejection maps to 401 "Invalid credentials"
T3: register creates the local user with the Supabase id, 409 on duplicates
T4: logout revokes the session; the same token then gets 401
T5: refresh rotates the token; the old one stops working
T6: deactivated users are rejected even with a live session
"""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from toiletcheck_api.db.models import User

SUPABASE_PATCH = "toiletcheck_api.services.auth.get_supabase_client"


@pytest.fixture
def supabase():
    client = MagicMock()
    with patch(SUPABASE_PATCH, return_value=client):
        yield client


def test_login_returns_working_token(test_client, supabase, make_user):
    user = make_user(role="supervisor", email="siti@example.com")
    supabase.auth.sign_in_with_password.return_value = SimpleNamespace(user=SimpleNamespace(id=user.id))

    response = test_client.post(
        "/api/auth/login", json={"email": "siti@example.com", "password": "secret123"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Login successful"
    assert body["data"]["user"]["role"] == {"name": "supervisor", "level": 50}

    me = test_client.get(
        "/api/auth/me", headers={"Authorization": f"Bearer {body['data']['token']}"}
    )
    assert me.status_code == 200
    assert me.json()["data"]["email"] == "siti@example.com"


def test_login_sets_last_login(test_client, supabase, make_user, db_session):
    user = make_user(email="budi@example.com")
    supabase.auth.sign_in_with_password.return_value = SimpleNamespace(user=SimpleNamespace(id=user.id))

    test_client.post("/api/auth/login", json={"email": "budi@example.com", "password": "secret123"})

    db_session.refresh(user)
    assert user.last_login_at is not None


def test_login_rejected_by_supabase(test_client, supabase, make_user):
    make_user(email="siti@example.com")
    supabase.auth.sign_in_with_password.side_effect = Exception("Invalid login credentials")

    response = test_client.post(
        "/api/auth/login", json={"email": "siti@example.com", "password": "wrong-pass"}
    )

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid credentials"


def test_login_of_inactive_user(test_client, supabase, make_user):
    user = make_user(email="gone@example.com", is_active=False)
    supabase.auth.sign_in_with_password.return_value = SimpleNamespace(user=SimpleNamespace(id=user.id))

    response = test_client.post(
        "/api/auth/login", json={"email": "gone@example.com", "password": "secret123"}
    )

    assert response.status_code == 401


def test_login_validation_is_400(test_client):
    response = test_client.post("/api/auth/login", json={"email": "not-an-email", "password": "x"})

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_register_creates_local_user(test_client, supabase, db_session, roles):
    supabase.auth.sign_up.return_value = SimpleNamespace(user=SimpleNamespace(id="sb-user-1"))

    response = test_client.post(
        "/api/auth/register",
        json={"email": "new@example.com", "password": "secret123", "full_name": "New Inspector"},
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["user"]["id"] == "sb-user-1"
    assert data["user"]["role"] == {"name": "user", "level": 0}
    assert db_session.get(User, "sb-user-1").full_name == "New Inspector"


def test_register_duplicate_is_409(test_client, supabase, make_user):
    make_user(email="taken@example.com")

    response = test_client.post(
        "/api/auth/register",
        json={"email": "taken@example.com", "password": "secret123", "full_name": "Someone"},
    )

    assert response.status_code == 409
    supabase.auth.sign_up.assert_not_called()


def test_me_requires_token(test_client):
    response = test_client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"
    assert response.json()["error"] == "Unauthorized - No token provided"


def test_logout_revokes_session(test_client, make_user, auth_headers):
    headers = auth_headers(make_user())

    assert test_client.post("/api/auth/logout", headers=headers).json() == {"success": True}

    response = test_client.get("/api/auth/me", headers=headers)
    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized - Invalid or expired session"


def test_refresh_rotates_token(test_client, make_user, auth_headers):
    headers = auth_headers(make_user())
    old_token = headers["Authorization"].split(" ")[1]

    response = test_client.post("/api/auth/refresh", json={"token": old_token})

    assert response.status_code == 200
    new_token = response.json()["data"]["token"]
    assert new_token != old_token
    assert test_client.get("/api/auth/me", headers=headers).status_code == 401
    assert (
        test_client.get("/api/auth/me", headers={"Authorization": f"Bearer {new_token}"}).status_code
        == 200
    )


def test_refresh_with_garbage_token(test_client):
    response = test_client.post("/api/auth/refresh", json={"token": "not-a-jwt"})

    assert response.status_code == 401


def test_deactivated_user_with_live_session(test_client, make_user, auth_headers, db_session):
    user = make_user()
    headers = auth_headers(user)
    user.is_active = False
    db_session.commit()

    response = test_client.get("/api/auth/me", headers=headers)

    assert response.status_code == 401
    assert response.json()["error"] == "User account is inactive"


def test_verify_role_reads_level_from_database(test_client, make_user, auth_headers):
    user = make_user(role="super_admin")
    # The token claims level 0; the database says 90
    headers = auth_headers(user, level=0)

    data = test_client.get("/api/auth/verify-role", headers=headers).json()["data"]

    assert data["role"] == {"name": "super_admin", "level": 90}
    assert data["isAdmin"] is True
    assert data["isSuperAdmin"] is True


def test_profile_update(test_client, make_user, auth_headers):
    headers = auth_headers(make_user())

    response = test_client.put(
        "/api/profile", json={"full_name": "  Rina Wati ", "phone": " "}, headers=headers
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["full_name"] == "Rina Wati"
    assert data["phone"] is None


def test_profile_update_requires_name(test_client, make_user, auth_headers):
    headers = auth_headers(make_user())

    response = test_client.put("/api/profile", json={"full_name": "R"}, headers=headers)

    assert response.status_code == 400
