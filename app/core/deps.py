"""FastAPI dependencies for services, bearer authentication and role checks."""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants.constants import UserRole
from app.core.config import settings
from app.core.database import aget_db
from app.core.exceptions import InvalidTokenError, PermissionDeniedError
from app.models.user import User
from app.services.AccountStore import AccountStore
from app.services.AuthService import AuthService
from app.services.CategoryStore import CategoryStore
from app.services.CourseStore import CourseStore
from app.services.SendEmailOtp import Mailer
from app.services.TokenService import TokenIssuer

security = HTTPBearer(auto_error=False)


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.tokens


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


def get_account_store(db: AsyncSession = Depends(aget_db)) -> AccountStore:
    return AccountStore(db)


def get_course_store(db: AsyncSession = Depends(aget_db)) -> CourseStore:
    return CourseStore(db)


def get_category_store(db: AsyncSession = Depends(aget_db)) -> CategoryStore:
    return CategoryStore(db)


def get_auth_service(
    store: AccountStore = Depends(get_account_store),
    tokens: TokenIssuer = Depends(get_token_issuer),
    mailer: Mailer = Depends(get_mailer),
) -> AuthService:
    return AuthService(store, tokens, mailer, settings)


def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> dict:
    """
    Verify the bearer access token and return its claims.

    An expired token is reported with the TOKEN_EXPIRED code so the client
    knows to refresh instead of sending the user back to the login page.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise InvalidTokenError("Unauthorized: No token provided")
    return tokens.verify_access_token(credentials.credentials)


async def get_current_user(
    claims: dict = Depends(get_current_claims),
    store: AccountStore = Depends(get_account_store),
) -> User:
    user = await store.get_by_id(claims.get("userId"))
    if not user:
        raise InvalidTokenError("User not found")
    return user


def require_role(*allowed_roles: UserRole):
    """Dependency factory: allow only tokens whose role is one of ``allowed_roles``."""
    allowed = {role.value for role in allowed_roles}

    def checker(claims: dict = Depends(get_current_claims)) -> dict:
        if claims.get("role", UserRole.USER.value) not in allowed:
            raise PermissionDeniedError()
        return claims

    return checker


require_admin = require_role(UserRole.ADMIN)
require_creator = require_role(UserRole.CREATOR, UserRole.ADMIN)
