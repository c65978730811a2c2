"""
Seed script to create the first admin user.

Run once (after app.db.init_db) with env set:
  ADMIN_EMAIL=admin@school.edu
  ADMIN_PASSWORD=YourSecurePassword

An existing user with that email is promoted to admin and gets the new password.
"""
import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.security import hash_password
from app.core.config import settings
from app.core.enums import UserRole
from app.core.logging import configure_logging
from app.db.session import AsyncSessionLocal

logger = logging.getLogger(__name__)


async def seed_admin(db: AsyncSession, email: str, password: str) -> User:
    email = email.strip().lower()
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if not user:
        user = User(
            email=email,
            password_hash=hash_password(password),
            role=UserRole.ADMIN.value,
            status="ACTIVE",
        )
        db.add(user)
        logger.info("Created admin user %s", email)
    else:
        user.role = UserRole.ADMIN.value
        user.password_hash = hash_password(password)
        user.status = "ACTIVE"
        logger.info("Updated existing user %s to admin", email)
    await db.commit()
    return user


async def main() -> None:
    if not settings.admin_email or not settings.admin_password:
        logger.warning("ADMIN_EMAIL / ADMIN_PASSWORD not set; nothing to seed")
        return
    async with AsyncSessionLocal() as db:
        try:
            await seed_admin(db, settings.admin_email, settings.admin_password)
        except Exception:
            await db.rollback()
            logger.exception("Admin seed failed")
            raise


if __name__ == "__main__":
    configure_logging(settings.log_level)
    asyncio.run(main())
