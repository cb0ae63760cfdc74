from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.constants.constants import OTP_PATTERN
from app.utils.validators import sanitize_email


class EmailRequest(BaseModel):
    email: EmailStr

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        if isinstance(value, str):
            return sanitize_email(value)
        return value


class SignupRequest(EmailRequest):
    model_config = ConfigDict(populate_by_name=True)

    password: str = Field(min_length=1)
    full_name: Optional[str] = Field(default=None, alias="fullName", max_length=255)


class LoginRequest(EmailRequest):
    password: str = Field(min_length=1)


class VerifyOtpRequest(EmailRequest):
    otp: str = Field(pattern=OTP_PATTERN, description="6-digit code from the verification email")


class ResendOtpRequest(EmailRequest):
    pass


class ForgotPasswordRequest(EmailRequest):
    pass


class ResetPasswordRequest(EmailRequest):
    model_config = ConfigDict(populate_by_name=True)

    otp: str = Field(pattern=OTP_PATTERN)
    new_password: str = Field(alias="newPassword", min_length=1)
