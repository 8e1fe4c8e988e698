"""
Seed the role table.

Run: python -m scripts.seed
"""

import asyncio
import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.middleware.authorization import RolePolicy
from core.middleware.logging import setup_logging
from database.engine import close_db, create_engine, create_session_factory, init_db
from database.models.institutions import Role

logger = logging.getLogger(__name__)

ROLE_NAMES = ("superadmin", "admin", "professor", "coordenador", "empresa", "student")


async def seed_roles(
    db: AsyncSession,
    global_roles: Iterable[str],
    names: Iterable[str] = ROLE_NAMES,
) -> int:
    """
    Create missing roles and align the scope of existing ones.

    Returns:
        Number of roles created
    """
    policy = RolePolicy.from_names(global_roles)
    existing = {
        role.name: role
        for role in (await db.execute(select(Role))).scalars().all()
    }

    created = 0
    for name in names:
        scope = policy.scope_of(name)
        role = existing.get(name)
        if role is None:
            db.add(Role(name=name, scope=scope))
            created += 1
        elif role.scope != scope:
            logger.info(f"Role '{name}' scope changed {role.scope.value} -> {scope.value}")
            role.scope = scope

    await db.commit()
    return created


async def main() -> None:
    engine = create_engine(settings.database_url)
    try:
        await init_db(engine)
        async with create_session_factory(engine)() as db:
            created = await seed_roles(db, settings.global_roles)
        logger.info(f"Seeded {created} roles")
    finally:
        await close_db(engine)


if __name__ == "__main__":
    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)
    asyncio.run(main())
