"""Admin endpoints for system-wide operations."""

import logging
import math
from fastapi import APIRouter, Depends, Query

from app.constants.constants import UserRole
from app.core.deps import get_account_store, require_admin
from app.core.exceptions import NotFoundError
from app.schemas.userSchema import RoleUpdateRequest, serialize_profile, serialize_user
from app.services.AccountStore import AccountStore

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)]
)


@router.get("/dashboard")
async def get_dashboard(store: AccountStore = Depends(get_account_store)):
    return {
        "status": "success",
        "message": "Admin dashboard data",
        "data": {
            "stats": {
                "totalUsers": await store.count_users(),
                "verifiedUsers": await store.count_users(verified_only=True),
                "totalProfiles": await store.count_profiles(),
                "creatorCount": await store.count_profiles(UserRole.CREATOR),
            }
        },
    }


@router.get("/users")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    store: AccountStore = Depends(get_account_store),
):
    """List accounts, newest first. At most 100 per page."""
    limit = min(limit, MAX_PAGE_SIZE)
    users = await store.list_users(offset=(page - 1) * limit, limit=limit)
    total = await store.count_users()
    return {
        "status": "success",
        "data": {
            "users": [serialize_user(user) for user in users],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": math.ceil(total / limit),
            },
        },
    }


@router.put("/users/{user_id}/role")
async def update_user_role(
    user_id: str,
    data: RoleUpdateRequest,
    admin_claims: dict = Depends(require_admin),
    store: AccountStore = Depends(get_account_store),
):
    """
    Change a user's role.

    The new role shows up in the user's access tokens from their next refresh.
    """
    profile = await store.get_profile(user_id)
    if not profile:
        raise NotFoundError("User profile not found")

    profile.role = data.role
    await store.flush()
    logger.info(f"Admin {admin_claims.get('userId')} set role of {user_id} to {data.role.value}")

    return {
        "status": "success",
        "message": f"Role updated to {data.role.value}",
        "data": {"profile": serialize_profile(profile)},
    }
