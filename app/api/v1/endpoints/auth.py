from datetime import timedelta
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
import logging

from app.constants.constants import REFRESH_COOKIE_NAME
from app.core.config import settings
from app.core.deps import get_auth_service, get_current_claims
from app.core.exceptions import SessionRevokedError, error_body
from app.core.limiter import AUTH_LIMIT, STRICT_LIMIT, limiter
from app.schemas.authSchema import (
    ForgotPasswordRequest,
    LoginRequest,
    ResendOtpRequest,
    ResetPasswordRequest,
    SignupRequest,
    VerifyOtpRequest,
)
from app.schemas.userSchema import serialize_user
from app.services.AuthService import AuthService, SessionResult
from app.utils.cookies import clear_refresh_cookie, set_refresh_cookie

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)

def session_response(session: SessionResult, message: str) -> JSONResponse:
    response = JSONResponse({
        "status": "success",
        "message": message,
        "data": {
            "user": serialize_user(session.user, include_profile=False),
            "accessToken": session.tokens.access_token,
        },
    })
    set_refresh_cookie(
        response,
        session.tokens.refresh_token,
        timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )
    return response

# -----------------------------
# Signup & Verification
# -----------------------------
@router.post("/signup")
@limiter.limit(AUTH_LIMIT)
async def signup(
    request: Request,
    data: SignupRequest,
    auth: AuthService = Depends(get_auth_service),
):
    """
    Register a new account and email it a verification code.

    Signing up again with an email that is still unverified sends a fresh
    code instead of failing.
    """
    result = await auth.signup(data.email, data.password, data.full_name)
    return JSONResponse(
        status_code=201 if result.created else 200,
        content={
            "status": "success",
            "message": "Account created. Verification code sent to your email"
            if result.created else "Verification code sent to your email",
            "data": {"email": result.email, "requiresVerification": True},
        },
    )


@router.post("/verify-otp")
@limiter.limit(STRICT_LIMIT)
async def verify_otp(
    request: Request,
    data: VerifyOtpRequest,
    auth: AuthService = Depends(get_auth_service),
):
    """Verify the email with its code and start a session."""
    session = await auth.verify_email(data.email, data.otp)
    return session_response(session, "Email verified successfully")


@router.post("/resend-otp")
@limiter.limit(STRICT_LIMIT)
async def resend_otp(
    request: Request,
    data: ResendOtpRequest,
    auth: AuthService = Depends(get_auth_service),
):
    message = await auth.resend_otp(data.email)
    return {"status": "success", "message": message}

# -----------------------------
# Sessions
# -----------------------------
@router.post("/login")
@limiter.limit(AUTH_LIMIT)
async def login(
    request: Request,
    data: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
):
    session = await auth.login(data.email, data.password)
    return session_response(session, "Login successful")


@router.post("/refresh")
async def refresh_access_token(
    request: Request,
    auth: AuthService = Depends(get_auth_service),
):
    """Exchange the refresh cookie for a new access token and rotate the cookie."""
    try:
        session = await auth.refresh(request.cookies.get(REFRESH_COOKIE_NAME))
    except SessionRevokedError as exc:
        response = JSONResponse(status_code=exc.status_code, content=error_body(exc.message))
        clear_refresh_cookie(response)
        return response

    response = JSONResponse({
        "status": "success",
        "data": {"accessToken": session.tokens.access_token},
    })
    set_refresh_cookie(
        response,
        session.tokens.refresh_token,
        timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )
    return response


@router.post("/logout")
async def logout(
    request: Request,
    auth: AuthService = Depends(get_auth_service),
):
    await auth.logout(request.cookies.get(REFRESH_COOKIE_NAME))
    response = JSONResponse({"status": "success", "message": "Logged out successfully"})
    clear_refresh_cookie(response)
    return response

# -----------------------------
# Get Current User
# -----------------------------
@router.get("/me")
async def get_me(
    claims: dict = Depends(get_current_claims),
    auth: AuthService = Depends(get_auth_service),
):
    """
    Return current authenticated user info
    """
    user = await auth.current_user(claims.get("userId"))
    return {"status": "success", "data": {"user": serialize_user(user)}}

# -----------------------------
# Password Reset
# -----------------------------
@router.post("/forgot-password")
@limiter.limit(STRICT_LIMIT)
async def forgot_password(
    request: Request,
    data: ForgotPasswordRequest,
    auth: AuthService = Depends(get_auth_service),
):
    message = await auth.forgot_password(data.email)
    return {"status": "success", "message": message}


@router.post("/reset-password")
@limiter.limit(STRICT_LIMIT)
async def reset_password(
    request: Request,
    data: ResetPasswordRequest,
    auth: AuthService = Depends(get_auth_service),
):
    await auth.reset_password(data.email, data.otp, data.new_password)
    return {
        "status": "success",
        "message": "Password reset successfully. You can now log in with your new password",
    }
