from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.constants.constants import UserRole


class ProfileUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: Optional[str] = Field(default=None, alias="fullName", max_length=255)
    username: Optional[str] = None
    bio: Optional[str] = Field(default=None, max_length=300)


class RoleUpdateRequest(BaseModel):
    role: UserRole


def serialize_profile(profile) -> Optional[dict]:
    if profile is None:
        return None
    return {
        "username": profile.username,
        "fullName": profile.full_name,
        "bio": profile.bio,
        "role": profile.role.value if hasattr(profile.role, "value") else profile.role,
    }


def serialize_user(user, include_profile: bool = True) -> dict:
    data = {
        "id": user.id,
        "email": user.email,
        "isEmailVerified": user.is_email_verified,
    }
    if include_profile:
        data["createdAt"] = user.created_at.isoformat() if user.created_at else None
        data["profile"] = serialize_profile(user.profile)
    return data
