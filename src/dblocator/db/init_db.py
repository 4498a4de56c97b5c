# src/dblocator/db/init_db.py

import logging
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from dblocator.models import DatabaseRole, DatabaseRoleEntity

logger = logging.getLogger(__name__)

async def seed_database_roles(db: AsyncSession) -> int:
    """
    Inserts the fixed database role reference rows that are missing.
    The row id is the enum ordinal; the caller owns the transaction.
    """
    existing = set((await db.execute(select(DatabaseRoleEntity.id))).scalars().all())
    added = 0
    for role in DatabaseRole:
        if role.value in existing:
            continue
        db.add(DatabaseRoleEntity(id=role.value, name=role.name))
        added += 1
    if added:
        await db.flush()
        logger.info(f"Seeded {added} database role rows.")
    return added
