from datetime import datetime, timedelta, timezone

import jwt
import pytest

from app.core.exceptions import InvalidTokenError, TokenExpiredError
from app.services.TokenService import TokenIssuer

ACCESS_SECRET = "access-secret-for-tests"
REFRESH_SECRET = "refresh-secret-for-tests"


class FakeUser:
    id = "8f7c2d4e-0000-4000-8000-000000000001"
    email = "creator@example.com"
    is_email_verified = True


def make_issuer(clock=None, **kwargs):
    return TokenIssuer(
        access_secret=ACCESS_SECRET,
        refresh_secret=REFRESH_SECRET,
        issuer="growthtubes-api",
        audience="growthtubes-web",
        clock=clock,
        **kwargs,
    )


def test_access_token_round_trip_returns_original_claims():
    issuer = make_issuer()
    claims = {"userId": "u1", "email": "a@b.co", "isEmailVerified": True, "role": "CREATOR"}
    assert issuer.verify_access_token(issuer.issue_access_token(claims)) == claims


def test_refresh_token_round_trip():
    issuer = make_issuer()
    assert issuer.verify_refresh_token(issuer.issue_refresh_token({"userId": "u1"})) == {"userId": "u1"}


def test_expired_access_token_reports_expiry():
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    stale = make_issuer(clock=lambda: past)
    token = stale.issue_access_token({"userId": "u1"})

    with pytest.raises(TokenExpiredError) as exc_info:
        make_issuer().verify_access_token(token)
    assert exc_info.value.code == "TOKEN_EXPIRED"
    assert exc_info.value.status_code == 401


def test_tampered_token_is_invalid_not_expired():
    issuer = make_issuer()
    token = issuer.issue_access_token({"userId": "u1"})
    head, payload, signature = token.split(".")
    tampered = ".".join([head, payload, signature[::-1]])

    with pytest.raises(InvalidTokenError) as exc_info:
        issuer.verify_access_token(tampered)
    assert not isinstance(exc_info.value, TokenExpiredError)
    assert exc_info.value.code is None


def test_garbage_is_invalid():
    with pytest.raises(InvalidTokenError):
        make_issuer().verify_access_token("not.a.jwt")


def test_access_and_refresh_tokens_are_not_interchangeable():
    issuer = make_issuer()
    with pytest.raises(InvalidTokenError):
        issuer.verify_refresh_token(issuer.issue_access_token({"userId": "u1"}))
    with pytest.raises(InvalidTokenError):
        issuer.verify_access_token(issuer.issue_refresh_token({"userId": "u1"}))


def test_wrong_audience_is_rejected():
    token = jwt.encode(
        {
            "userId": "u1",
            "iat": datetime.now(timezone.utc),
            "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
            "iss": "growthtubes-api",
            "aud": "someone-else",
        },
        ACCESS_SECRET,
        algorithm="HS256",
    )
    with pytest.raises(InvalidTokenError):
        make_issuer().verify_access_token(token)


def test_token_without_expiry_is_rejected():
    token = jwt.encode(
        {"userId": "u1", "iss": "growthtubes-api", "aud": "growthtubes-web", "iat": datetime.now(timezone.utc)},
        ACCESS_SECRET,
        algorithm="HS256",
    )
    with pytest.raises(InvalidTokenError):
        make_issuer().verify_access_token(token)


def test_same_secret_for_both_tokens_is_refused():
    with pytest.raises(ValueError):
        TokenIssuer("same", "same", "growthtubes-api", "growthtubes-web")


def test_issue_pair_claims():
    issuer = make_issuer()
    pair = issuer.issue_pair(FakeUser, "ADMIN")

    assert issuer.verify_access_token(pair.access_token) == {
        "userId": FakeUser.id,
        "email": FakeUser.email,
        "isEmailVerified": True,
        "role": "ADMIN",
    }
    assert issuer.verify_refresh_token(pair.refresh_token) == {"userId": FakeUser.id}


def test_tokens_issued_back_to_back_differ():
    issuer = make_issuer()
    assert issuer.issue_refresh_token({"userId": "u1"}) != issuer.issue_refresh_token({"userId": "u1"})
