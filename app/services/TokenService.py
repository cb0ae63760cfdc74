"""Access/refresh token issuing and verification (PyJWT)."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt

from app.constants.constants import UserRole
from app.core.exceptions import InvalidTokenError, TokenExpiredError

# Claims the issuer adds itself; callers only ever see their own claims back
RESERVED_CLAIMS = ("exp", "iat", "iss", "aud", "jti")


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def _aware_utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    """
    Mints and checks the two session credentials.

    Access tokens are short lived and carry the user's identity and role.
    Refresh tokens are long lived, carry only the user id and are signed
    with a different secret so a leak of one key does not expose the other.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        issuer: str,
        audience: str,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        algorithm: str = "HS256",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh tokens must be signed with different secrets")
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.issuer = issuer
        self.audience = audience
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.algorithm = algorithm
        self.clock = clock or _aware_utcnow

    def _encode(self, claims: dict, secret: str, ttl: timedelta) -> str:
        now = self.clock()
        to_encode = dict(claims)
        to_encode.update({
            "iat": now,
            "exp": now + ttl,
            "iss": self.issuer,
            "aud": self.audience,
            "jti": uuid.uuid4().hex,
        })
        return jwt.encode(to_encode, secret, algorithm=self.algorithm)

    def _decode(self, token: str, secret: str) -> dict:
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                audience=self.audience,
                options={"require": ["exp", "iat", "iss", "aud"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError() from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError() from e
        return {key: value for key, value in payload.items() if key not in RESERVED_CLAIMS}

    def issue_access_token(self, claims: dict) -> str:
        return self._encode(claims, self.access_secret, self.access_ttl)

    def issue_refresh_token(self, claims: dict) -> str:
        return self._encode(claims, self.refresh_secret, self.refresh_ttl)

    def verify_access_token(self, token: str) -> dict:
        """
        Validate signature, expiry, issuer and audience of an access token.

        Raises:
            TokenExpiredError: the token was valid but its lifetime is over.
            InvalidTokenError: anything else (bad signature, wrong audience, garbage).
        """
        return self._decode(token, self.access_secret)

    def verify_refresh_token(self, token: str) -> dict:
        return self._decode(token, self.refresh_secret)

    def issue_pair(self, user, role=UserRole.USER) -> TokenPair:
        role_value = role.value if hasattr(role, "value") else role
        return TokenPair(
            access_token=self.issue_access_token({
                "userId": user.id,
                "email": user.email,
                "isEmailVerified": bool(user.is_email_verified),
                "role": role_value,
            }),
            refresh_token=self.issue_refresh_token({"userId": user.id}),
        )
