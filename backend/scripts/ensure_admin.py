"""Create an admin account, or promote and unban an existing one.

Usage: python scripts/ensure_admin.py <username> <password> [email]
"""

import asyncio
import os
import sys
from uuid import uuid4

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lostphones.domain.accounts.models import AccountType, Role, User
from lostphones.infra import postgres
from lostphones.infra.password import hash_password
from lostphones.infra.user_repo import PostgresUserRepository


async def ensure_admin(username: str, password: str, email: str | None) -> None:
    from lostphones.settings import settings

    print(f"Connecting to: {settings.postgres_url}")
    pool = await postgres.init_pool()
    try:
        users = PostgresUserRepository(pool)
        existing = await users.get_by_identifier(username)
        if existing is None:
            user = await users.create(
                User(
                    id=str(uuid4()),
                    username=username,
                    password_hash=hash_password(password),
                    role=Role.ADMIN,
                    account_type=AccountType.USER,
                    email=email.lower() if email else None,
                )
            )
            print(f"Created admin {user.username}")
        else:
            await users.update(
                existing.id,
                {"role": Role.ADMIN, "is_banned": False, "password_hash": hash_password(password)},
            )
            print(f"Promoted {existing.username} to admin")
    finally:
        await postgres.close_pool()


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print("Usage: python scripts/ensure_admin.py <username> <password> [email]")
        sys.exit(1)
    asyncio.run(ensure_admin(sys.argv[1], sys.argv[2], sys.argv[3] if len(sys.argv) > 3 else None))
