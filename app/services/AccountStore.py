"""Persistence for accounts and their auth state.

Every transition that reads and then writes a counter, a send timestamp or a
token hash is a single conditional UPDATE whose rowcount tells the caller
whether it won. Two requests for the same account cannot both pass a check
that only one of them should pass.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants.constants import DEFAULT_SIGNUP_ROLE, UserRole
from app.models.profile import Profile
from app.models.user import User


class AccountStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def get_by_id(self, account_id: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == account_id))
        return result.scalar_one_or_none()

    async def reload(self, account_id: str) -> Optional[User]:
        """Fetch an account again, overwriting whatever the session already holds."""
        result = await self.db.execute(
            select(User)
            .where(User.id == account_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        email: str,
        password_hash: str,
        full_name: Optional[str],
        otp_hash: str,
        expires_at: datetime,
        now: datetime,
    ) -> User:
        account_id = str(uuid.uuid4())
        user = User(
            id=account_id,
            email=email,
            password_hash=password_hash,
            is_email_verified=False,
            otp=otp_hash,
            otp_expires_at=expires_at,
            otp_attempts=0,
            otp_last_sent_at=now,
            profile=Profile(
                id=account_id,
                username=account_id,
                full_name=full_name,
                role=DEFAULT_SIGNUP_ROLE,
            ),
        )
        self.db.add(user)
        await self.db.flush()
        return user

    async def ensure_profile(self, user: User, full_name: Optional[str] = None) -> Profile:
        """Create the profile of an account that predates profiles, or fill a missing name."""
        if user.profile is None:
            user.profile = Profile(
                id=user.id,
                username=user.id,
                full_name=full_name,
                role=DEFAULT_SIGNUP_ROLE,
            )
            await self.db.flush()
        elif full_name and not user.profile.full_name:
            user.profile.full_name = full_name
            await self.db.flush()
        return user.profile

    async def _update(self, account_id: str, **values) -> int:
        return await self._update_where(account_id, [], **values)

    async def _update_where(self, account_id: str, conditions, **values) -> int:
        result = await self.db.execute(
            update(User)
            .where(User.id == account_id, *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    def _sent_before(cutoff: Optional[datetime]):
        if cutoff is None:
            return []
        return [or_(User.otp_last_sent_at.is_(None), User.otp_last_sent_at <= cutoff)]

    async def _claim_attempt(self, account_id: str, counter, max_attempts: int) -> Optional[int]:
        """Count one attempt unless the ceiling is reached; returns the new count or None."""
        result = await self.db.execute(
            update(User)
            .where(User.id == account_id, counter < max_attempts)
            .values({counter: counter + 1})
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return (await self.db.execute(select(counter).where(User.id == account_id))).scalar_one()

    # ------------------------------
    # Email verification
    # ------------------------------
    async def reissue_otp(
        self,
        account_id: str,
        otp_hash: str,
        expires_at: datetime,
        now: datetime,
        password_hash: Optional[str] = None,
        sent_before: Optional[datetime] = None,
    ) -> bool:
        """Replace the verification code.

        With ``sent_before`` set, nothing is written unless the last code went
        out at or before that instant, and False is returned.
        """
        values = dict(
            otp=otp_hash,
            otp_expires_at=expires_at,
            otp_attempts=0,
            otp_last_sent_at=now,
        )
        if password_hash is not None:
            values["password_hash"] = password_hash
        return await self._update_where(account_id, self._sent_before(sent_before), **values) == 1

    async def claim_otp_attempt(self, account_id: str, max_attempts: int) -> Optional[int]:
        return await self._claim_attempt(account_id, User.otp_attempts, max_attempts)

    async def mark_verified(self, account_id: str) -> bool:
        """Verify a pending account. False when it was already verified."""
        updated = await self._update_where(
            account_id,
            [User.is_email_verified.is_(False)],
            is_email_verified=True,
            otp=None,
            otp_expires_at=None,
            otp_attempts=0,
        )
        return updated == 1

    # ------------------------------
    # Password reset
    # ------------------------------
    async def issue_reset_otp(
        self,
        account_id: str,
        otp_hash: str,
        expires_at: datetime,
        now: datetime,
        sent_before: Optional[datetime] = None,
    ) -> bool:
        updated = await self._update_where(
            account_id,
            self._sent_before(sent_before),
            reset_otp=otp_hash,
            reset_otp_expires_at=expires_at,
            reset_otp_attempts=0,
            otp_last_sent_at=now,
        )
        return updated == 1

    async def claim_reset_attempt(self, account_id: str, max_attempts: int) -> Optional[int]:
        return await self._claim_attempt(account_id, User.reset_otp_attempts, max_attempts)

    async def reset_password(self, account_id: str, password_hash: str, code_hash: str) -> bool:
        """Set a new password, consume the reset code and end every session.

        Returns False when ``code_hash`` is no longer the stored reset code.
        """
        updated = await self._update_where(
            account_id,
            [User.reset_otp == code_hash],
            password_hash=password_hash,
            reset_otp=None,
            reset_otp_expires_at=None,
            reset_otp_attempts=0,
            refresh_token=None,
        )
        return updated == 1

    # ------------------------------
    # Sessions
    # ------------------------------
    async def set_refresh_hash(self, account_id: str, token_hash: str):
        await self._update(account_id, refresh_token=token_hash)

    async def rotate_refresh_hash(self, account_id: str, expected_hash: str, new_hash: str) -> bool:
        """Swap the stored refresh hash only if it still equals ``expected_hash``."""
        result = await self.db.execute(
            update(User)
            .where(User.id == account_id, User.refresh_token == expected_hash)
            .values(refresh_token=new_hash)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def clear_refresh_hash(self, account_id: str):
        await self._update(account_id, refresh_token=None)

    # ------------------------------
    # Profiles & admin
    # ------------------------------
    async def get_profile_by_username(self, username: str) -> Optional[Profile]:
        result = await self.db.execute(select(Profile).where(Profile.username == username))
        return result.scalar_one_or_none()

    async def get_profile(self, account_id: str) -> Optional[Profile]:
        result = await self.db.execute(select(Profile).where(Profile.id == account_id))
        return result.scalar_one_or_none()

    async def delete(self, account_id: str) -> bool:
        result = await self.db.execute(delete(User).where(User.id == account_id))
        return result.rowcount == 1

    async def list_users(self, offset: int, limit: int):
        result = await self.db.execute(
            select(User).order_by(User.created_at.desc()).offset(offset).limit(limit)
        )
        return result.scalars().all()

    async def count_users(self, verified_only: bool = False) -> int:
        query = select(func.count()).select_from(User)
        if verified_only:
            query = query.where(User.is_email_verified.is_(True))
        return (await self.db.execute(query)).scalar_one()

    async def count_profiles(self, role: Optional[UserRole] = None) -> int:
        query = select(func.count()).select_from(Profile)
        if role is not None:
            query = query.where(Profile.role == role)
        return (await self.db.execute(query)).scalar_one()

    async def commit(self):
        """Persist writes that must survive the error response that follows them."""
        await self.db.commit()

    async def flush(self):
        await self.db.flush()
