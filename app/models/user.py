"""Account model: credentials, email verification state and the current session."""

import uuid
from sqlalchemy import Column, String, DateTime, Boolean, Integer
from sqlalchemy.orm import relationship

from app.models.base import Base, TimestampMixin
from app.models.profile import Profile  # noqa: F401


class User(Base, TimestampMixin):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    is_email_verified = Column(Boolean, default=False, nullable=False)

    # Email verification, SHA-256 of the outstanding code
    otp = Column(String(64), nullable=True)
    otp_expires_at = Column(DateTime, nullable=True)
    otp_attempts = Column(Integer, default=0, nullable=False)
    otp_last_sent_at = Column(DateTime, nullable=True)

    # Password reset
    reset_otp = Column(String(64), nullable=True)
    reset_otp_expires_at = Column(DateTime, nullable=True)
    reset_otp_attempts = Column(Integer, default=0, nullable=False)

    # SHA-256 of the one refresh token currently accepted
    refresh_token = Column(String(64), nullable=True)

    profile = relationship(
        "Profile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    def __repr__(self):
        return f"<User {self.email}>"
