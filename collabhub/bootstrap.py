"""
First-run bootstrap: provision an admin account when none exists, so a
fresh deployment can approve and manage users.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.api.v1.helpers.authentication import hash_password
from collabhub.config import settings
from collabhub.models import AccountStatus, Role, User

logger = logging.getLogger(__name__)


async def ensure_default_admin(db: AsyncSession) -> User | None:
    """Create the bootstrap admin if there is no live admin account.

    Returns the created user, or None when an admin already exists.
    """
    result = await db.execute(
        select(User)
        .where(User.role == Role.ADMIN.value, User.deleted_at.is_(None))
        .limit(1)
    )
    if result.scalar_one_or_none() is not None:
        return None  # already provisioned

    email = settings.bootstrap_admin_email.strip().lower()
    taken = await db.execute(
        select(User).where(User.email == email, User.deleted_at.is_(None)).limit(1)
    )
    if taken.scalar_one_or_none() is not None:
        logger.warning(
            "No admin account exists but %s is taken by a non-admin user; "
            "skipping bootstrap",
            email,
        )
        return None

    user = User(
        name="Admin",
        email=email,
        password_hash=hash_password(settings.bootstrap_admin_password),
        role=Role.ADMIN.value,
        account_status=AccountStatus.ACTIVE.value,
    )
    db.add(user)
    await db.commit()

    logger.info(
        "=== FIRST RUN: provisioned admin user %s ===\n"
        "Change the default password after first login.",
        email,
    )
    return user
