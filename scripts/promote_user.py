"""
Set the role of an existing account.

Usage:
    python scripts/promote_user.py admin@example.com ADMIN
"""
import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

import asyncio
from app.constants.constants import UserRole
from app.core.database import session_manager
from app.services.AccountStore import AccountStore
from app.utils.validators import sanitize_email


async def promote_user(email: str, role: UserRole) -> bool:
    """Give ``email`` the ``role``, creating its profile if it has none."""
    async with session_manager.get_session() as db:
        store = AccountStore(db)
        user = await store.get_by_email(sanitize_email(email))
        if not user:
            print(f"❌ No account found for {email}")
            return False

        profile = await store.ensure_profile(user)
        previous = profile.role
        profile.role = role
        await store.flush()
        print(f"✅ {user.email}: {previous.value} -> {role.value}")
        return True


async def main(argv) -> int:
    if len(argv) != 2:
        print("Usage: python scripts/promote_user.py EMAIL ROLE")
        return 2

    email, role_name = argv
    try:
        role = UserRole(role_name.upper())
    except ValueError:
        print(f"❌ Unknown role {role_name}. Choose one of: {', '.join(r.value for r in UserRole)}")
        return 2

    await session_manager.init()
    try:
        return 0 if await promote_user(email, role) else 1
    finally:
        await session_manager.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))
