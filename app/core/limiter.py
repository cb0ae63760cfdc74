from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

# Per client IP
GLOBAL_LIMIT = "100/15minutes"
AUTH_LIMIT = "5/15minutes"
STRICT_LIMIT = "10/minute"

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[GLOBAL_LIMIT],
    enabled=settings.RATE_LIMIT_ENABLED,
)
