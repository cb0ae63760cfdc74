"""One-time code helpers. Codes are only ever stored and compared as SHA-256 digests."""

import hashlib
import hmac
import secrets

from app.constants.constants import OTP_LENGTH


def generate_otp(length: int = OTP_LENGTH) -> str:
    """Return a zero-padded numeric code drawn from the OS CSPRNG."""
    return str(secrets.randbelow(10 ** length)).zfill(length)


def hash_otp(code: str) -> str:
    """Hash a code (or a refresh token) using SHA-256."""
    return hashlib.sha256(code.encode()).hexdigest()


def verify_otp(candidate, stored_hash) -> bool:
    """
    Compare a presented code against a stored digest in constant time.

    Malformed input (None, non-strings, a missing hash) never raises,
    it just fails to match.
    """
    if not isinstance(candidate, str) or not isinstance(stored_hash, str) or not stored_hash:
        return False
    try:
        return hmac.compare_digest(hash_otp(candidate), stored_hash)
    except (TypeError, UnicodeError):
        return False
