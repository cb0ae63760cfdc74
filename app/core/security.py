"""Password hashing with bcrypt."""

import bcrypt
from starlette.concurrency import run_in_threadpool

# bcrypt only looks at the first 72 bytes and newer releases refuse longer input
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password_sync(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password_sync(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), hashed.encode("utf-8"))
    except ValueError:
        # not a bcrypt hash
        return False


async def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password off the event loop."""
    return await run_in_threadpool(hash_password_sync, password, rounds)


async def verify_password(password: str, hashed: str) -> bool:
    return await run_in_threadpool(verify_password_sync, password, hashed)
