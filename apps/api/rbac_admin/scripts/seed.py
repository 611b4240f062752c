"""
Seed the reserved roles and the admin permissions.

Idempotent: existing rows are left as they are.

Usage:
    rbac-admin-seed
"""

import argparse
import asyncio
import sys

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_admin.core.config import settings
from rbac_admin.core.logging import configure_logging
from rbac_admin.models.rbac import Permission, Role, RolePermission

logger = structlog.get_logger()

ROLES = {
    settings.auth.admin_role: "Administrator with all permissions",
    settings.auth.default_role: "Standard user with basic permissions",
}

PERMISSIONS = {
    "manage:users": "Allows managing users and their roles",
    "manage:roles": "Allows managing roles and their permissions",
    "manage:permissions": "Allows managing permissions",
}

# Role name -> permission names granted to it
GRANTS = {
    settings.auth.admin_role: list(PERMISSIONS),
}


async def _upsert(db: AsyncSession, model, name: str, description: str):
    result = await db.execute(select(model).where(model.name == name))
    row = result.scalar_one_or_none()
    if row is None:
        row = model(name=name, description=description)
        db.add(row)
        await db.flush()
        logger.info("seed_created", kind=model.__tablename__, name=name)
    return row


async def seed(db: AsyncSession) -> dict[str, int]:
    """
    Upsert roles, permissions and grants.

    Returns counts of rows now present for each kind.
    """
    roles = {name: await _upsert(db, Role, name, desc) for name, desc in ROLES.items()}
    permissions = {
        name: await _upsert(db, Permission, name, desc) for name, desc in PERMISSIONS.items()
    }

    grants = 0
    for role_name, permission_names in GRANTS.items():
        role = roles[role_name]
        for permission_name in permission_names:
            permission = permissions[permission_name]
            if await db.get(RolePermission, (role.id, permission.id)) is None:
                db.add(RolePermission(role_id=role.id, permission_id=permission.id))
            grants += 1

    await db.flush()
    return {"roles": len(roles), "permissions": len(permissions), "grants": grants}


async def _run() -> dict[str, int]:
    from rbac_admin.models.database import async_session_factory, close_db

    try:
        async with async_session_factory() as db:
            summary = await seed(db)
            await db.commit()
        return summary
    finally:
        await close_db()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="rbac-admin-seed",
        description="Create the ADMIN and USER roles and the admin permissions.",
    )
    parser.parse_args(argv)

    configure_logging(settings.log_level, "text")
    summary = asyncio.run(_run())
    print(
        f"Seeded {summary['roles']} roles, {summary['permissions']} permissions, "
        f"{summary['grants']} grants"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
