#!/usr/bin/env python3
"""Admin script to create admin accounts and list existing users.

Usage:
    uv run python scripts/create_admin.py <name> <email> <password>
    uv run python scripts/create_admin.py --list
"""

import asyncio
import logging
import sys

from src.core import db_client
from src.domain.user import UserRole
from src.services import auth_service, user_service


logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


async def list_users() -> None:
    """List all users with their roles."""
    for user in await user_service.list_users():
        logger.info(f"{user.id} - {user.name} <{user.email}> ({user.role}, {len(user.joined_challenges)} joined)")


async def create_admin(name: str, email: str, password: str) -> None:
    """Create an admin account, exiting non-zero if the email is taken or the form is invalid."""
    user = await auth_service.register(name=name, email=email, password=password, role=UserRole.ADMIN)
    if user is None:
        logger.error(f"Could not create admin {email}")
        sys.exit(1)

    logger.info(f"Created admin {user.id} ({user.email})")


def print_usage() -> None:
    """Print usage information."""
    logger.info(__doc__)


async def main() -> None:
    """Main entry point."""
    args = sys.argv[1:]

    if not args or "--help" in args or "-h" in args:
        print_usage()
        return

    await db_client.init_db()
    try:
        if "--list" in args:
            await list_users()
            return

        if len(args) != 3:  # noqa: PLR2004
            print_usage()
            sys.exit(1)

        await create_admin(*args)
    finally:
        await db_client.close_connection()


if __name__ == "__main__":
    asyncio.run(main())
