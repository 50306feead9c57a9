"""
Database seeding script for the bootstrap admin.

Admins cannot self-register through the API, so the first admin account is
created here from the ADMIN_EMAIL / ADMIN_USERNAME / ADMIN_PASSWORD settings.

Usage:
    python -m courier_backend.seed_admin        # create the admin
    python -m courier_backend.seed_admin -d     # remove the admin
"""

import asyncio
import sys

from sqlalchemy import select, delete

from courier_backend.app.core.config import settings
from courier_backend.app.core.security import get_password_hash
from courier_backend.app.db.session import AsyncSessionLocal, engine, Base
from courier_backend.app.models.enums import UserRole
from courier_backend.app.models.user import User
from courier_backend.app.models.audit_log import AuditLog
from courier_backend.app.models.package import Package, PackageHistory


async def import_admin() -> int:
    """
    Create the admin user unless one with the configured email exists.
    
    Returns:
        Process exit code
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    async with AsyncSessionLocal() as db:
        result = await db.execute(select(User).where(User.email == settings.admin_email))
        if result.scalar_one_or_none():
            print(f"ℹ️  Admin user with email {settings.admin_email} already exists. No action taken.")
            return 0
        
        db.add(User(
            username=settings.admin_username,
            email=settings.admin_email,
            hashed_password=get_password_hash(settings.admin_password),
            role=UserRole.ADMIN,
        ))
        await db.commit()
    
    print(f"✅ Admin user '{settings.admin_username}' ({settings.admin_email}) created successfully!")
    return 0


async def destroy_admin() -> int:
    """
    Delete the admin user with the configured email.
    
    Returns:
        Process exit code
    """
    async with AsyncSessionLocal() as db:
        result = await db.execute(
            delete(User).where(User.email == settings.admin_email, User.role == UserRole.ADMIN)
        )
        await db.commit()
    
    if result.rowcount == 0:
        print(f"ℹ️  Admin user with email {settings.admin_email} not found or not an admin. No action taken.")
    else:
        print(f"🗑️  Admin user '{settings.admin_username}' ({settings.admin_email}) deleted successfully!")
    return 0


async def main(argv: list) -> int:
    try:
        if "-d" in argv:
            return await destroy_admin()
        return await import_admin()
    finally:
        await engine.dispose()


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))
