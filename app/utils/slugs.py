import uuid
from typing import Awaitable, Callable

from slugify import slugify


async def unique_slug(text: str, is_taken: Callable[[str], Awaitable[bool]], fallback: str) -> str:
    """URL-safe slug for ``text``, suffixed with a short random tag if already in use."""
    slug = slugify(text) or fallback
    if await is_taken(slug):
        slug = f"{slug}-{uuid.uuid4().hex[:8]}"
    return slug
