"""
Account authentication flow.

An account moves UNREGISTERED -> PENDING_VERIFICATION -> VERIFIED. Pending
accounts can be re-sent a code any number of times (subject to a cooldown);
verified accounts hold at most one refresh token, rotated on every refresh.
"""

import logging
import math
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError

from app.constants.constants import (
    ACCOUNT_EXISTS_MESSAGE,
    ALREADY_VERIFIED_MESSAGE,
    FORGOT_PASSWORD_MESSAGE,
    INVALID_CREDENTIALS_MESSAGE,
    INVALID_OTP_EMAIL_MESSAGE,
    INVALID_REFRESH_TOKEN_MESSAGE,
    INVALID_RESET_EMAIL_MESSAGE,
    NO_REFRESH_TOKEN_MESSAGE,
    OTP_EXPIRED_MESSAGE,
    OTP_LOCKED_MESSAGE,
    RESEND_OTP_MESSAGE,
    RESET_EXPIRED_MESSAGE,
    RESET_LOCKED_MESSAGE,
    REVOKED_REFRESH_TOKEN_MESSAGE,
    UNKNOWN_REFRESH_TOKEN_MESSAGE,
    VERIFICATION_REQUIRED_MESSAGE,
)
from app.core.config import Settings
from app.core.exceptions import (
    ConflictError,
    CooldownError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotFoundError,
    SessionRevokedError,
    TooManyAttemptsError,
    ValidationFailedError,
    VerificationRequiredError,
)
from app.core.security import hash_password, hash_password_sync, verify_password
from app.models.user import User
from app.services.AccountStore import AccountStore
from app.services.SendEmailOtp import Mailer
from app.services.TokenService import TokenIssuer, TokenPair
from app.utils.clock import utcnow
from app.utils.otp import generate_otp, hash_otp, verify_otp
from app.utils.validators import validate_password

logger = logging.getLogger(__name__)


# Checked when the account does not exist so that a missing account costs
# the same bcrypt work as a wrong password.
@lru_cache(maxsize=4)
def _dummy_password_hash(rounds: int) -> str:
    return hash_password_sync(secrets.token_urlsafe(16), rounds)


@dataclass
class SignupResult:
    email: str
    created: bool


@dataclass
class SessionResult:
    user: User
    tokens: TokenPair


class AuthService:
    def __init__(
        self,
        store: AccountStore,
        tokens: TokenIssuer,
        mailer: Mailer,
        settings: Settings,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.tokens = tokens
        self.mailer = mailer
        self.settings = settings
        self.clock = clock or utcnow

    @property
    def otp_ttl(self) -> timedelta:
        return timedelta(minutes=self.settings.OTP_EXPIRE_MINUTES)

    def _check_password_policy(self, password: str):
        errors = validate_password(password)
        if errors:
            raise ValidationFailedError("Password does not meet requirements", errors=errors)

    def _check_cooldown(self, user: User, now: datetime):
        if not user.otp_last_sent_at:
            return
        cooldown = self.settings.OTP_RESEND_COOLDOWN_SECONDS
        elapsed = (now - user.otp_last_sent_at).total_seconds()
        if elapsed < cooldown:
            wait_seconds = min(cooldown, math.ceil(cooldown - elapsed))
            raise CooldownError(wait_seconds)

    def _send_cutoff(self, now: datetime) -> datetime:
        return now - timedelta(seconds=self.settings.OTP_RESEND_COOLDOWN_SECONDS)

    async def _start_session(self, user: User) -> SessionResult:
        """Issue a token pair and make its refresh token the only one accepted."""
        profile = await self.store.ensure_profile(user)
        tokens = self.tokens.issue_pair(user, profile.role)
        await self.store.set_refresh_hash(user.id, hash_otp(tokens.refresh_token))
        return SessionResult(user=user, tokens=tokens)

    # ------------------------------
    # Signup & verification
    # ------------------------------
    async def signup(self, email: str, password: str, full_name: Optional[str] = None) -> SignupResult:
        self._check_password_policy(password)

        user = await self.store.get_by_email(email)
        if user and user.is_email_verified:
            raise ConflictError(ACCOUNT_EXISTS_MESSAGE)

        code = generate_otp()
        now = self.clock()
        expires_at = now + self.otp_ttl

        if user:
            # Signing up again before verifying acts as a resend
            password_hash = None
            if self.settings.SIGNUP_RETRY_OVERWRITES_PASSWORD:
                password_hash = await hash_password(password, self.settings.BCRYPT_ROUNDS)
            await self.store.reissue_otp(user.id, hash_otp(code), expires_at, now, password_hash=password_hash)
            await self.store.ensure_profile(user, full_name)
            await self.mailer.send_otp_email(email, code)
            logger.info(f"Signup retried for unverified account {user.id}, new code issued")
            return SignupResult(email=email, created=False)

        password_hash = await hash_password(password, self.settings.BCRYPT_ROUNDS)
        try:
            user = await self.store.create(
                email=email,
                password_hash=password_hash,
                full_name=full_name,
                otp_hash=hash_otp(code),
                expires_at=expires_at,
                now=now,
            )
        except IntegrityError as e:
            # lost a race against a concurrent signup for the same email
            raise ConflictError(ACCOUNT_EXISTS_MESSAGE) from e

        await self.mailer.send_otp_email(email, code)
        logger.info(f"Account {user.id} created, pending email verification")
        return SignupResult(email=user.email, created=True)

    async def verify_email(self, email: str, code: str) -> SessionResult:
        user = await self.store.get_by_email(email)
        if not user:
            raise ValidationFailedError(INVALID_OTP_EMAIL_MESSAGE)

        if user.is_email_verified:
            raise ValidationFailedError(ALREADY_VERIFIED_MESSAGE)

        # lockout is reported before expiry
        if user.otp_attempts >= self.settings.MAX_OTP_ATTEMPTS:
            raise TooManyAttemptsError(OTP_LOCKED_MESSAGE)

        if not user.otp_expires_at or self.clock() > user.otp_expires_at:
            raise ValidationFailedError(OTP_EXPIRED_MESSAGE)

        # The attempt is counted before the code is compared
        attempts = await self.store.claim_otp_attempt(user.id, self.settings.MAX_OTP_ATTEMPTS)
        if attempts is None:
            raise TooManyAttemptsError(OTP_LOCKED_MESSAGE)

        if not verify_otp(code, user.otp):
            await self.store.commit()
            remaining = max(self.settings.MAX_OTP_ATTEMPTS - attempts, 0)
            if remaining == 0:
                logger.warning(f"Account {user.id} exhausted its verification attempts")
            raise ValidationFailedError(
                f"Invalid verification code. {remaining} attempt(s) remaining",
                data={"remainingAttempts": remaining},
            )

        if not await self.store.mark_verified(user.id):
            raise ValidationFailedError(ALREADY_VERIFIED_MESSAGE)
        user = await self.store.reload(user.id)
        session = await self._start_session(user)
        logger.info(f"Account {user.id} verified its email")

        try:
            await self.mailer.send_welcome_email(user.email, user.profile.full_name if user.profile else None)
        except Exception as e:
            logger.warning(f"Welcome email to account {user.id} failed: {e}")

        return session

    async def resend_otp(self, email: str) -> str:
        user = await self.store.get_by_email(email)
        if not user or user.is_email_verified:
            return RESEND_OTP_MESSAGE

        now = self.clock()
        self._check_cooldown(user, now)

        code = generate_otp()
        claimed = await self.store.reissue_otp(
            user.id, hash_otp(code), now + self.otp_ttl, now, sent_before=self._send_cutoff(now)
        )
        if not claimed:
            # a concurrent request sent a code after our read
            raise CooldownError(self.settings.OTP_RESEND_COOLDOWN_SECONDS)
        await self.mailer.send_otp_email(email, code)
        return RESEND_OTP_MESSAGE

    # ------------------------------
    # Sessions
    # ------------------------------
    async def login(self, email: str, password: str) -> SessionResult:
        user = await self.store.get_by_email(email)
        if not user:
            await verify_password(password, _dummy_password_hash(self.settings.BCRYPT_ROUNDS))
            raise InvalidCredentialsError(INVALID_CREDENTIALS_MESSAGE)

        if not await verify_password(password, user.password_hash):
            raise InvalidCredentialsError(INVALID_CREDENTIALS_MESSAGE)

        if not user.is_email_verified:
            code = generate_otp()
            now = self.clock()
            await self.store.reissue_otp(user.id, hash_otp(code), now + self.otp_ttl, now)
            await self.mailer.send_otp_email(email, code)
            await self.store.commit()
            raise VerificationRequiredError(
                VERIFICATION_REQUIRED_MESSAGE,
                data={"email": email, "requiresVerification": True},
            )

        return await self._start_session(user)

    async def refresh(self, refresh_token: Optional[str]) -> SessionResult:
        if not refresh_token:
            raise SessionRevokedError(NO_REFRESH_TOKEN_MESSAGE)

        try:
            claims = self.tokens.verify_refresh_token(refresh_token)
        except InvalidTokenError:
            raise SessionRevokedError(INVALID_REFRESH_TOKEN_MESSAGE)

        user = await self.store.get_by_id(claims.get("userId"))
        if not user or not user.refresh_token:
            raise SessionRevokedError(UNKNOWN_REFRESH_TOKEN_MESSAGE)

        if not verify_otp(refresh_token, user.refresh_token):
            # A validly signed but superseded token is being replayed
            await self._revoke(user.id)
            raise SessionRevokedError(REVOKED_REFRESH_TOKEN_MESSAGE)

        profile = await self.store.ensure_profile(user)
        tokens = self.tokens.issue_pair(user, profile.role)
        rotated = await self.store.rotate_refresh_hash(
            user.id, user.refresh_token, hash_otp(tokens.refresh_token)
        )
        if not rotated:
            # Another request rotated the same token first
            await self._revoke(user.id)
            raise SessionRevokedError(REVOKED_REFRESH_TOKEN_MESSAGE)

        return SessionResult(user=user, tokens=tokens)

    async def _revoke(self, account_id: str):
        await self.store.clear_refresh_hash(account_id)
        await self.store.commit()
        logger.warning(f"Refresh token reuse detected for account {account_id}, session revoked")

    async def logout(self, refresh_token: Optional[str]):
        """Forget the session behind ``refresh_token``. Never fails."""
        if not refresh_token:
            return
        try:
            claims = self.tokens.verify_refresh_token(refresh_token)
        except InvalidTokenError:
            logger.info("Logout with an unreadable refresh token, nothing to revoke")
            return
        if claims.get("userId"):
            await self.store.clear_refresh_hash(claims["userId"])

    async def current_user(self, account_id: str) -> User:
        user = await self.store.get_by_id(account_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    # ------------------------------
    # Password reset
    # ------------------------------
    async def forgot_password(self, email: str) -> str:
        user = await self.store.get_by_email(email)
        if not user or not user.is_email_verified:
            return FORGOT_PASSWORD_MESSAGE

        now = self.clock()
        self._check_cooldown(user, now)

        code = generate_otp()
        claimed = await self.store.issue_reset_otp(
            user.id, hash_otp(code), now + self.otp_ttl, now, sent_before=self._send_cutoff(now)
        )
        if not claimed:
            raise CooldownError(self.settings.OTP_RESEND_COOLDOWN_SECONDS)
        await self.mailer.send_password_reset_email(email, code)
        return FORGOT_PASSWORD_MESSAGE

    async def reset_password(self, email: str, code: str, new_password: str):
        self._check_password_policy(new_password)

        user = await self.store.get_by_email(email)
        if not user:
            raise ValidationFailedError(INVALID_RESET_EMAIL_MESSAGE)

        if user.reset_otp_attempts >= self.settings.MAX_OTP_ATTEMPTS:
            raise TooManyAttemptsError(RESET_LOCKED_MESSAGE)

        if not user.reset_otp or not user.reset_otp_expires_at or self.clock() > user.reset_otp_expires_at:
            raise ValidationFailedError(RESET_EXPIRED_MESSAGE)

        attempts = await self.store.claim_reset_attempt(user.id, self.settings.MAX_OTP_ATTEMPTS)
        if attempts is None:
            raise TooManyAttemptsError(RESET_LOCKED_MESSAGE)

        if not verify_otp(code, user.reset_otp):
            await self.store.commit()
            remaining = max(self.settings.MAX_OTP_ATTEMPTS - attempts, 0)
            raise ValidationFailedError(
                f"Invalid reset code. {remaining} attempt(s) remaining",
                data={"remainingAttempts": remaining},
            )

        password_hash = await hash_password(new_password, self.settings.BCRYPT_ROUNDS)
        if not await self.store.reset_password(user.id, password_hash, user.reset_otp):
            # consumed by a concurrent reset
            raise ValidationFailedError(RESET_EXPIRED_MESSAGE)
        logger.info(f"Password reset for account {user.id}, all sessions ended")
