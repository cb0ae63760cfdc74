import asyncio
from datetime import timedelta

import pytest
from sqlalchemy.exc import NoResultFound

from app.core.config import settings
from app.core.database import session_manager
from app.core.exceptions import AppError, EmailDeliveryError, SessionRevokedError
from app.services.AccountStore import AccountStore
from app.services.AuthService import AuthService
from app.utils.clock import utcnow
from app.utils.otp import hash_otp

from conftest import (
    STRONG_PASSWORD,
    load_account,
    refresh_cookie_from,
    signup,
    signup_and_verify,
    update_account,
    wrong_code,
)


class FailingMailer:
    async def send_otp_email(self, email, code):
        raise EmailDeliveryError()

    async def send_welcome_email(self, email, name=None):
        raise EmailDeliveryError("Welcome email bounced")


async def test_refresh_that_loses_rotation_race_revokes_session(client, mailer, token_issuer, monkeypatch):
    resp = await signup_and_verify(client, mailer, "race@example.com")
    token = refresh_cookie_from(resp)

    async with session_manager.get_session() as db:
        store = AccountStore(db)
        auth = AuthService(store, token_issuer, mailer, settings)

        async def lost_race(*args, **kwargs):
            return False

        monkeypatch.setattr(store, "rotate_refresh_hash", lost_race)
        with pytest.raises(SessionRevokedError):
            await auth.refresh(token)

    assert (await load_account("race@example.com"))["refresh_token"] is None


async def test_signup_retry_can_keep_original_password(client, mailer, token_issuer):
    await signup(client, "keep@example.com")
    keep_password = settings.model_copy(update={"SIGNUP_RETRY_OVERWRITES_PASSWORD": False})

    async with session_manager.get_session() as db:
        auth = AuthService(AccountStore(db), token_issuer, mailer, keep_password)
        result = await auth.signup("keep@example.com", "Att4cker$pass")
        assert result.created is False

    await client.post(
        "/api/v1/auth/verify-otp",
        json={"email": "keep@example.com", "otp": mailer.otp_codes["keep@example.com"]},
    )
    attacker = await client.post("/api/v1/auth/login", json={"email": "keep@example.com", "password": "Att4cker$pass"})
    owner = await client.post("/api/v1/auth/login", json={"email": "keep@example.com", "password": STRONG_PASSWORD})
    assert attacker.status_code == 401
    assert owner.status_code == 200


async def test_failed_verification_email_leaves_no_account(client, app):
    app.state.mailer = FailingMailer()

    resp = await signup(client, "bounce@example.com")
    assert resp.status_code == 500
    assert resp.json() == {"status": "error", "message": "Failed to send verification email"}

    with pytest.raises(NoResultFound):
        await load_account("bounce@example.com")


async def test_failed_welcome_email_does_not_block_verification(client, mailer, app):
    await signup(client, "welcome@example.com")
    app.state.mailer = FailingMailer()

    resp = await client.post(
        "/api/v1/auth/verify-otp",
        json={"email": "welcome@example.com", "otp": mailer.otp_codes["welcome@example.com"]},
    )
    assert resp.status_code == 200
    assert (await load_account("welcome@example.com"))["is_email_verified"] is True


async def run_concurrently(token_issuer, mailer, count, call):
    """Run ``call(auth)`` ``count`` times at once, each on its own session; returns the status codes."""

    async def one():
        async with session_manager.get_session() as db:
            auth = AuthService(AccountStore(db), token_issuer, mailer, settings)
            try:
                await call(auth)
            except AppError as e:
                return e.status_code
            return 200

    return sorted(await asyncio.gather(*(one() for _ in range(count))))


async def test_concurrent_wrong_guesses_cannot_exceed_attempt_ceiling(client, mailer, token_issuer):
    await signup(client, "ceiling@example.com")
    code = mailer.otp_codes["ceiling@example.com"]
    await update_account("ceiling@example.com", otp_attempts=4)

    statuses = await run_concurrently(
        token_issuer, mailer, 8, lambda auth: auth.verify_email("ceiling@example.com", wrong_code(code))
    )

    assert statuses == [400] + [429] * 7
    assert (await load_account("ceiling@example.com"))["otp_attempts"] == 5


async def test_concurrent_wrong_reset_guesses_cannot_exceed_attempt_ceiling(client, mailer, token_issuer):
    await signup_and_verify(client, mailer, "reset-ceiling@example.com")
    await update_account("reset-ceiling@example.com", otp_last_sent_at=utcnow() - timedelta(minutes=5))
    await client.post("/api/v1/auth/forgot-password", json={"email": "reset-ceiling@example.com"})
    code = mailer.reset_codes["reset-ceiling@example.com"]
    await update_account("reset-ceiling@example.com", reset_otp_attempts=4)

    statuses = await run_concurrently(
        token_issuer,
        mailer,
        8,
        lambda auth: auth.reset_password("reset-ceiling@example.com", wrong_code(code), "Br4nd&New!"),
    )

    assert statuses == [400] + [429] * 7
    assert (await load_account("reset-ceiling@example.com"))["reset_otp_attempts"] == 5


async def test_concurrent_correct_codes_start_one_session(client, mailer, token_issuer):
    await signup(client, "twice@example.com")
    code = mailer.otp_codes["twice@example.com"]

    statuses = await run_concurrently(
        token_issuer, mailer, 2, lambda auth: auth.verify_email("twice@example.com", code)
    )

    assert statuses == [200, 400]
    assert [email for email, _ in mailer.welcomed] == ["twice@example.com"]
    account = await load_account("twice@example.com")
    assert account["is_email_verified"] is True
    assert account["refresh_token"] is not None


async def test_concurrent_resends_send_one_code(client, mailer, token_issuer):
    await signup(client, "burst@example.com")
    await update_account("burst@example.com", otp_last_sent_at=utcnow() - timedelta(minutes=5))
    sends_before = mailer.otp_sends

    statuses = await run_concurrently(
        token_issuer, mailer, 5, lambda auth: auth.resend_otp("burst@example.com")
    )

    assert statuses == [200] + [429] * 4
    assert mailer.otp_sends == sends_before + 1
    account = await load_account("burst@example.com")
    assert account["otp"] == hash_otp(mailer.otp_codes["burst@example.com"])


async def test_concurrent_forgot_password_sends_one_code(client, mailer, token_issuer):
    await signup_and_verify(client, mailer, "forgot-burst@example.com")
    await update_account("forgot-burst@example.com", otp_last_sent_at=utcnow() - timedelta(minutes=5))

    statuses = await run_concurrently(
        token_issuer, mailer, 5, lambda auth: auth.forgot_password("forgot-burst@example.com")
    )

    assert statuses == [200] + [429] * 4
    assert mailer.reset_sends == 1
