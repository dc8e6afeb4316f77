#!/usr/bin/env python3
"""
Admin Bootstrap Script

Creates the first election administrator. Run this after database migrations.

Usage:
    python bootstrap_admin.py <username> [email]

The password is read from the ADMIN_PASSWORD environment variable or prompted for.
"""

import asyncio
import getpass
import os
import sys

import asyncpg

from app.core.config import get_settings
from app.core.validation import PasswordValidator
from app.services.admins import create_admin, get_admin_by_username


async def bootstrap_admin(username: str, password: str, email: str | None = None) -> bool:
    """Create the admin unless the username already exists."""
    settings = get_settings()
    conn = await asyncpg.connect(settings.DATABASE_URL_APP or settings.DATABASE_URL)

    try:
        print("🔍 Checking admin setup...")

        existing = await get_admin_by_username(conn, username)
        if existing:
            print(f"ℹ️  Admin {username} already exists (ID: {existing['id']})")
            return True

        admin = await create_admin(conn, username, password, email)
        print(f"✅ Created admin: {admin['username']} (ID: {admin['id']})")
        return True

    except asyncpg.PostgresError as e:
        print(f"❌ Error during bootstrap: {e}")
        return False

    finally:
        await conn.close()


def main() -> int:
    if len(sys.argv) < 2:
        print(__doc__)
        return 1

    username = sys.argv[1]
    email = sys.argv[2] if len(sys.argv) > 2 else None
    password = os.environ.get("ADMIN_PASSWORD") or getpass.getpass("Admin password: ")

    is_valid, error = PasswordValidator.validate(password)
    if not is_valid:
        print(f"❌ {error}")
        return 1

    return 0 if asyncio.run(bootstrap_admin(username, password, email)) else 1


if __name__ == "__main__":
    sys.exit(main())
