from datetime import timedelta

import pytest

from app.constants.constants import (
    FORGOT_PASSWORD_MESSAGE,
    INVALID_RESET_EMAIL_MESSAGE,
    RESET_EXPIRED_MESSAGE,
    RESET_LOCKED_MESSAGE,
)
from app.utils.clock import utcnow
from app.utils.otp import hash_otp

from conftest import (
    REFRESH_PATH,
    STRONG_PASSWORD,
    load_account,
    post_with_refresh_cookie,
    refresh_cookie_from,
    signup,
    signup_and_verify,
    update_account,
    wrong_code,
)

FORGOT_PATH = "/api/v1/auth/forgot-password"
RESET_PATH = "/api/v1/auth/reset-password"
NEW_PASSWORD = "Br4nd&New!"


@pytest.fixture
async def verified(client, mailer):
    """A verified account whose last code went out long enough ago to ask for another."""
    resp = await signup_and_verify(client, mailer, "reset@example.com")
    await update_account("reset@example.com", otp_last_sent_at=utcnow() - timedelta(minutes=5))
    return refresh_cookie_from(resp)


async def forgot(client, email):
    return await client.post(FORGOT_PATH, json={"email": email})


async def reset(client, email, code, new_password=NEW_PASSWORD):
    return await client.post(RESET_PATH, json={"email": email, "otp": code, "newPassword": new_password})


async def test_forgot_password_sends_hashed_reset_code(client, mailer, verified):
    resp = await forgot(client, "reset@example.com")

    assert resp.status_code == 200
    assert resp.json()["message"] == FORGOT_PASSWORD_MESSAGE
    code = mailer.reset_codes["reset@example.com"]
    account = await load_account("reset@example.com")
    assert account["reset_otp"] == hash_otp(code)
    assert account["reset_otp_attempts"] == 0


async def test_forgot_password_is_generic_for_unknown_and_unverified(client, mailer, verified):
    await signup(client, "unverified@example.com")

    known = await forgot(client, "reset@example.com")
    unknown = await forgot(client, "unknown@example.com")
    unverified = await forgot(client, "unverified@example.com")

    assert known.json() == unknown.json() == unverified.json()
    assert set(mailer.reset_codes) == {"reset@example.com"}


async def test_forgot_password_respects_cooldown(client, mailer, verified):
    assert (await forgot(client, "reset@example.com")).status_code == 200

    resp = await forgot(client, "reset@example.com")
    assert resp.status_code == 429
    assert resp.json()["data"]["retryAfter"] > 0


async def test_reset_password_replaces_password_and_ends_sessions(client, mailer, verified):
    await forgot(client, "reset@example.com")

    resp = await reset(client, "reset@example.com", mailer.reset_codes["reset@example.com"])
    assert resp.status_code == 200

    account = await load_account("reset@example.com")
    assert account["reset_otp"] is None
    assert account["refresh_token"] is None

    old = await client.post("/api/v1/auth/login", json={"email": "reset@example.com", "password": STRONG_PASSWORD})
    assert old.status_code == 401
    new = await client.post("/api/v1/auth/login", json={"email": "reset@example.com", "password": NEW_PASSWORD})
    assert new.status_code == 200

    resp = await post_with_refresh_cookie(client, REFRESH_PATH, verified)
    assert resp.status_code == 401


async def test_reset_code_works_once(client, mailer, verified):
    await forgot(client, "reset@example.com")
    code = mailer.reset_codes["reset@example.com"]

    assert (await reset(client, "reset@example.com", code)).status_code == 200
    resp = await reset(client, "reset@example.com", code, "An0ther&Pass")
    assert resp.status_code == 400
    assert resp.json()["message"] == RESET_EXPIRED_MESSAGE


async def test_reset_with_wrong_code_counts_down_then_locks(client, mailer, verified):
    await forgot(client, "reset@example.com")
    code = mailer.reset_codes["reset@example.com"]

    for expected_remaining in (4, 3, 2, 1, 0):
        resp = await reset(client, "reset@example.com", wrong_code(code))
        assert resp.status_code == 400
        assert resp.json()["data"]["remainingAttempts"] == expected_remaining

    resp = await reset(client, "reset@example.com", code)
    assert resp.status_code == 429
    assert resp.json()["message"] == RESET_LOCKED_MESSAGE


async def test_reset_after_expiry(client, mailer, verified):
    await forgot(client, "reset@example.com")
    await update_account("reset@example.com", reset_otp_expires_at=utcnow() - timedelta(seconds=1))

    resp = await reset(client, "reset@example.com", mailer.reset_codes["reset@example.com"])
    assert resp.status_code == 400
    assert resp.json()["message"] == RESET_EXPIRED_MESSAGE


async def test_exhausted_and_expired_reset_code_reports_lockout(client, mailer, verified):
    await forgot(client, "reset@example.com")
    await update_account(
        "reset@example.com",
        reset_otp_attempts=5,
        reset_otp_expires_at=utcnow() - timedelta(minutes=1),
    )

    resp = await reset(client, "reset@example.com", mailer.reset_codes["reset@example.com"])
    assert resp.status_code == 429
    assert resp.json()["message"] == RESET_LOCKED_MESSAGE
    login = await client.post("/api/v1/auth/login", json={"email": "reset@example.com", "password": NEW_PASSWORD})
    assert login.status_code == 401


async def test_reset_without_requesting_a_code(client, verified):
    resp = await reset(client, "reset@example.com", "123456")
    assert resp.status_code == 400
    assert resp.json()["message"] == RESET_EXPIRED_MESSAGE


async def test_reset_for_unknown_email(client):
    resp = await reset(client, "nobody@example.com", "123456")
    assert resp.status_code == 400
    assert resp.json()["message"] == INVALID_RESET_EMAIL_MESSAGE


async def test_reset_rejects_weak_password_before_checking_code(client, mailer, verified):
    await forgot(client, "reset@example.com")

    resp = await reset(client, "reset@example.com", wrong_code(mailer.reset_codes["reset@example.com"]), "weak")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Password does not meet requirements"
    assert (await load_account("reset@example.com"))["reset_otp_attempts"] == 0
