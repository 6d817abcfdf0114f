"""
Seed Platform Admin User

Creates the initial platform admin account. Credentials come from the
PLATFORM_ADMIN_EMAIL / PLATFORM_ADMIN_PASSWORD environment variables or
the command line.

Usage:
    PLATFORM_ADMIN_EMAIL=admin@example.org PLATFORM_ADMIN_PASSWORD=... \\
        python scripts/seed_platform_admin.py

    python scripts/seed_platform_admin.py --email admin@example.org --password ...
"""

import argparse
import asyncio
import os
import sys

from sqlalchemy import select

from diploma_api.core.database import async_session_maker, close_db
from diploma_api.core.security import hash_password
from diploma_api.modules.users.models import User, UserRole


async def seed_platform_admin(email: str, password: str) -> None:
    """Create the platform admin user if it doesn't exist."""
    email = email.strip().lower()

    async with async_session_maker() as db:
        result = await db.execute(select(User).where(User.email == email))
        existing_user = result.scalar_one_or_none()

        if existing_user:
            print(f"Platform admin already exists: {email}")
            print(f"  ID: {existing_user.id}")
            print(f"  Role: {existing_user.role.value}")
            return

        admin_user = User(
            email=email,
            password_hash=hash_password(password),
            role=UserRole.PLATFORM_ADMIN,
            university_id=None,  # Platform admins have no university
            is_active=True,
            is_verified=True,
        )

        db.add(admin_user)
        await db.commit()
        await db.refresh(admin_user)

        print("Platform admin created successfully!")
        print(f"  Email: {email}")
        print(f"  ID: {admin_user.id}")

    await close_db()


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the platform admin account")
    parser.add_argument("--email", default=os.getenv("PLATFORM_ADMIN_EMAIL"))
    parser.add_argument("--password", default=os.getenv("PLATFORM_ADMIN_PASSWORD"))
    args = parser.parse_args()

    if not args.email or not args.password:
        parser.error("email and password are required (flags or PLATFORM_ADMIN_* env vars)")

    asyncio.run(seed_platform_admin(args.email, args.password))
    return 0


if __name__ == "__main__":
    sys.exit(main())
