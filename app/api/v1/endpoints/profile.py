import logging
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from app.core.deps import get_account_store, get_current_user
from app.core.exceptions import ConflictError, NotFoundError, ValidationFailedError
from app.models.user import User
from app.schemas.userSchema import ProfileUpdateRequest, serialize_profile, serialize_user
from app.services.AccountStore import AccountStore
from app.utils.cookies import clear_refresh_cookie
from app.utils.validators import validate_username

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("")
async def get_profile(current_user: User = Depends(get_current_user)):
    """Get the authenticated user's profile"""
    return {"status": "success", "data": {"user": serialize_user(current_user)}}


@router.put("")
async def update_profile(
    data: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    store: AccountStore = Depends(get_account_store),
):
    """
    Update the authenticated user's profile.
    All fields are optional - only provided fields will be updated
    """
    profile = await store.ensure_profile(current_user)

    if data.username is not None:
        errors = validate_username(data.username)
        if errors:
            raise ValidationFailedError(errors[0], errors=errors)

        username = data.username.strip().lower()
        existing = await store.get_profile_by_username(username)
        if existing and existing.id != current_user.id:
            raise ConflictError("Username is already taken")
        profile.username = username

    if data.full_name is not None:
        profile.full_name = data.full_name.strip() or None

    if data.bio is not None:
        profile.bio = data.bio.strip() or None

    try:
        await store.flush()
    except IntegrityError as e:
        # username taken between the check and the write
        raise ConflictError("Username is already taken") from e

    return {
        "status": "success",
        "message": "Profile updated successfully",
        "data": {"profile": serialize_profile(profile)},
    }


@router.delete("")
async def delete_account(
    current_user: User = Depends(get_current_user),
    store: AccountStore = Depends(get_account_store),
):
    """Delete the account and everything attached to it, then end the session."""
    if not await store.delete(current_user.id):
        raise NotFoundError("User not found")

    logger.info(f"Account {current_user.id} deleted")
    response = JSONResponse({"status": "success", "message": "Account deleted successfully"})
    clear_refresh_cookie(response)
    return response
