import pytest

from app.constants.constants import UserRole

from conftest import (
    access_token_for,
    bearer,
    load_promote_script,
    login_token,
    refresh_cookie_header,
    signup,
)

PROFILE_PATH = "/api/v1/profile"


# ------------------------------
# Profile
# ------------------------------
async def test_get_profile(client, mailer):
    token = await access_token_for(client, mailer, "profile@example.com", full_name="Pro File")

    resp = await client.get(PROFILE_PATH, headers=bearer(token))
    assert resp.status_code == 200
    user = resp.json()["data"]["user"]
    assert user["email"] == "profile@example.com"
    assert user["createdAt"]
    assert user["profile"]["fullName"] == "Pro File"
    assert user["profile"]["role"] == "CREATOR"


async def test_profile_requires_token(client):
    assert (await client.get(PROFILE_PATH)).status_code == 401


async def test_update_profile(client, mailer):
    token = await access_token_for(client, mailer, "edit@example.com")

    resp = await client.put(
        PROFILE_PATH,
        headers=bearer(token),
        json={"username": "Jane_Doe", "fullName": "  Jane Doe ", "bio": "I teach Python"},
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["profile"] == {
        "username": "jane_doe",
        "fullName": "Jane Doe",
        "bio": "I teach Python",
        "role": "CREATOR",
    }

    resp = await client.get(PROFILE_PATH, headers=bearer(token))
    assert resp.json()["data"]["user"]["profile"]["username"] == "jane_doe"


async def test_update_profile_partial_keeps_other_fields(client, mailer):
    token = await access_token_for(client, mailer, "partial@example.com", full_name="Kept Name")

    resp = await client.put(PROFILE_PATH, headers=bearer(token), json={"bio": "New bio"})
    assert resp.status_code == 200
    profile = resp.json()["data"]["profile"]
    assert profile["fullName"] == "Kept Name"
    assert profile["bio"] == "New bio"


async def test_username_must_be_unique(client, mailer):
    first = await access_token_for(client, mailer, "first@example.com")
    second = await access_token_for(client, mailer, "second@example.com")
    assert (await client.put(PROFILE_PATH, headers=bearer(first), json={"username": "instructor"})).status_code == 200

    resp = await client.put(PROFILE_PATH, headers=bearer(second), json={"username": "Instructor"})
    assert resp.status_code == 409
    assert resp.json()["message"] == "Username is already taken"

    # keeping your own username is not a conflict
    resp = await client.put(PROFILE_PATH, headers=bearer(first), json={"username": "instructor"})
    assert resp.status_code == 200


@pytest.mark.parametrize("body", [{"username": "a b"}, {"username": "ab"}, {"bio": "x" * 301}])
async def test_update_profile_validation(client, mailer, body):
    token = await access_token_for(client, mailer, "invalid@example.com")
    resp = await client.put(PROFILE_PATH, headers=bearer(token), json=body)
    assert resp.status_code == 400
    assert resp.json()["status"] == "error"


async def test_delete_account(client, mailer):
    token = await access_token_for(client, mailer, "leaving@example.com")

    resp = await client.delete(PROFILE_PATH, headers=bearer(token))
    assert resp.status_code == 200
    assert "max-age=0" in refresh_cookie_header(resp).lower()

    assert (await client.get("/api/v1/auth/me", headers=bearer(token))).status_code == 404
    assert (await client.get(PROFILE_PATH, headers=bearer(token))).status_code == 401
    resp = await client.post("/api/v1/auth/login", json={"email": "leaving@example.com", "password": "Sup3r$ecret"})
    assert resp.status_code == 401

    # the email is free again
    assert (await signup(client, "leaving@example.com")).status_code == 201


# ------------------------------
# Admin
# ------------------------------
async def test_admin_routes_require_admin_role(client, mailer):
    token = await access_token_for(client, mailer, "creator@example.com")

    assert (await client.get("/api/v1/admin/dashboard")).status_code == 401
    resp = await client.get("/api/v1/admin/dashboard", headers=bearer(token))
    assert resp.status_code == 403
    assert resp.json()["status"] == "error"


async def test_dashboard_stats(client, mailer, admin_token):
    await signup(client, "pending@example.com")
    await access_token_for(client, mailer, "creator@example.com")

    resp = await client.get("/api/v1/admin/dashboard", headers=bearer(admin_token))
    assert resp.status_code == 200
    assert resp.json()["data"]["stats"] == {
        "totalUsers": 3,
        "verifiedUsers": 2,
        "totalProfiles": 3,
        "creatorCount": 2,
    }


async def test_list_users_paginates(client, mailer, admin_token):
    await signup(client, "one@example.com")
    await signup(client, "two@example.com")

    resp = await client.get("/api/v1/admin/users", params={"page": 2, "limit": 2}, headers=bearer(admin_token))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert len(data["users"]) == 1
    assert data["pagination"] == {"page": 2, "limit": 2, "total": 3, "totalPages": 2}


async def test_list_users_caps_page_size(client, admin_token):
    resp = await client.get("/api/v1/admin/users", params={"limit": 500}, headers=bearer(admin_token))
    assert resp.status_code == 200
    assert resp.json()["data"]["pagination"]["limit"] == 100


async def test_update_role_shows_in_next_token(client, mailer, admin_token, token_issuer):
    await access_token_for(client, mailer, "demote@example.com")
    users = (await client.get("/api/v1/admin/users", headers=bearer(admin_token))).json()["data"]["users"]
    user_id = next(u["id"] for u in users if u["email"] == "demote@example.com")

    resp = await client.put(
        f"/api/v1/admin/users/{user_id}/role",
        headers=bearer(admin_token),
        json={"role": "USER"},
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["profile"]["role"] == "USER"

    claims = token_issuer.verify_access_token(await login_token(client, "demote@example.com"))
    assert claims["role"] == "USER"


async def test_update_role_for_unknown_user(client, admin_token):
    resp = await client.put(
        "/api/v1/admin/users/00000000-0000-0000-0000-000000000000/role",
        headers=bearer(admin_token),
        json={"role": "CREATOR"},
    )
    assert resp.status_code == 404


async def test_update_role_rejects_unknown_role(client, admin_token):
    resp = await client.put(
        "/api/v1/admin/users/whoever/role",
        headers=bearer(admin_token),
        json={"role": "SUPERUSER"},
    )
    assert resp.status_code == 400
    assert "role" in resp.json()["errors"]


async def test_promote_script_reports_unknown_email(app):
    assert not await load_promote_script().promote_user("nobody@example.com", UserRole.ADMIN)
