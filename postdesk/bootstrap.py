"""
First-run bootstrap: create an admin user when the database has no users.

Credentials come from ``default_admin_*`` settings. Once any user exists the
bootstrap never runs again.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from postdesk.api.v1.helpers.authentication import hash_password
from postdesk.config import settings
from postdesk.models.iam.users import User

logger = logging.getLogger(__name__)


async def ensure_default_admin(db: AsyncSession, config=settings) -> User | None:
    """Create the default admin on an empty database and return it.

    Returns ``None`` when users already exist.
    """
    result = await db.execute(select(User.id).limit(1))
    if result.scalar_one_or_none() is not None:
        return None

    user = User(
        name=config.default_admin_name,
        email=config.default_admin_email.lower(),
        hashed_password=hash_password(config.default_admin_password),
        admin=True,
    )
    db.add(user)
    await db.commit()

    logger.info(
        "=== FIRST RUN: provisioned default admin ===\n"
        "  email:        %s\n"
        "Change the default password after first login.",
        user.email,
    )
    return user
