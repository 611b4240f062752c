"""
Grant the admin role to an existing user.

Usage:
    rbac-admin-make-admin user@example.com
"""

import argparse
import asyncio
import sys
from enum import Enum

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_admin.core.config import settings
from rbac_admin.core.logging import configure_logging
from rbac_admin.models.rbac import Role, UserRole
from rbac_admin.models.user import User

logger = structlog.get_logger()


class MakeAdminResult(str, Enum):
    GRANTED = "granted"
    ALREADY_ADMIN = "already_admin"
    USER_NOT_FOUND = "user_not_found"
    ROLE_NOT_FOUND = "role_not_found"


async def make_admin(db: AsyncSession, email: str) -> MakeAdminResult:
    """Assign the admin role to the user with this email."""
    user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()
    if not user:
        return MakeAdminResult.USER_NOT_FOUND

    role_name = settings.auth.admin_role
    role = (await db.execute(select(Role).where(Role.name == role_name))).scalar_one_or_none()
    if not role:
        return MakeAdminResult.ROLE_NOT_FOUND

    if await db.get(UserRole, (user.id, role.id)) is not None:
        return MakeAdminResult.ALREADY_ADMIN

    db.add(UserRole(user_id=user.id, role_id=role.id))
    await db.flush()
    logger.info("admin_granted", user_id=str(user.id), email=email)
    return MakeAdminResult.GRANTED


MESSAGES = {
    MakeAdminResult.GRANTED: "Successfully assigned {role} role to {email}",
    MakeAdminResult.ALREADY_ADMIN: "User {email} already has {role} role",
    MakeAdminResult.USER_NOT_FOUND: "User with email {email} not found",
    MakeAdminResult.ROLE_NOT_FOUND: "{role} role not found (run rbac-admin-seed first)",
}


async def _run(email: str) -> MakeAdminResult:
    from rbac_admin.models.database import async_session_factory, close_db

    try:
        async with async_session_factory() as db:
            result = await make_admin(db, email)
            await db.commit()
        return result
    finally:
        await close_db()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="rbac-admin-make-admin",
        description="Grant the admin role to an existing user.",
    )
    parser.add_argument("email", help="Email of the user to promote")
    args = parser.parse_args(argv)

    configure_logging(settings.log_level, "text")
    result = asyncio.run(_run(args.email))

    message = MESSAGES[result].format(role=settings.auth.admin_role, email=args.email)
    if result in (MakeAdminResult.USER_NOT_FOUND, MakeAdminResult.ROLE_NOT_FOUND):
        print(message, file=sys.stderr)
        return 1
    print(message)
    return 0


if __name__ == "__main__":
    sys.exit(main())
