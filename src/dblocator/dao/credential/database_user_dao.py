# src/dblocator/dao/credential/database_user_dao.py

from typing import Optional, Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from dblocator.dao.base_dao import BaseDao
from dblocator.models import (
    DatabaseUser, DatabaseUserRole, DatabaseRole, RoleMatchMode, database_user_databases
)

class DatabaseUserDao(BaseDao[DatabaseUser]):
    DEFAULT_WITHS = [
        "roles",
        {"name": "databases", "withs": ["server", "database_type"]},
    ]

    def __init__(self, db_session: AsyncSession):
        super().__init__(DatabaseUser, db_session)

    async def get_with_relations(self, user_id: int) -> Optional[DatabaseUser]:
        """Loads a user with its roles and owned databases (and their servers)."""
        # Already-loaded collections would otherwise skip the nested server load
        stmt = self._quick_query(where={self.pk: user_id}, withs=self.DEFAULT_WITHS)
        executed = await self.db_session.execute(stmt.execution_options(populate_existing=True))
        return executed.scalars().first()

    async def get_by_user_name(self, user_name: str) -> Optional[DatabaseUser]:
        return await self.get_one(where={"user_name": user_name})

    async def list_with_relations(self) -> list[DatabaseUser]:
        return await self.get_list(withs=self.DEFAULT_WITHS)

    async def list_for_database(self, database_id: int) -> list[DatabaseUser]:
        stmt = (
            select(DatabaseUser)
            .join(database_user_databases, database_user_databases.c.database_user_id == DatabaseUser.id)
            .where(database_user_databases.c.database_id == database_id)
            .order_by(DatabaseUser.id)
        )
        executed = await self.db_session.execute(stmt)
        return list(executed.scalars().all())

    async def find_eligible(
        self,
        database_id: int,
        roles: Sequence[DatabaseRole],
        match: RoleMatchMode = RoleMatchMode.ANY
    ) -> Optional[DatabaseUser]:
        """
        The lowest-id user attached to ``database_id`` whose granted roles satisfy ``roles``.

        ANY: at least one requested role is granted.
        ALL: every requested role is granted.
        """
        role_ids = sorted({int(r) for r in roles})
        stmt = (
            select(DatabaseUser)
            .join(database_user_databases, database_user_databases.c.database_user_id == DatabaseUser.id)
            .where(database_user_databases.c.database_id == database_id)
        )
        if role_ids:
            if match == RoleMatchMode.ALL:
                for role_id in role_ids:
                    stmt = stmt.where(DatabaseUser.roles.any(DatabaseUserRole.role_id == role_id))
            else:
                stmt = stmt.where(DatabaseUser.roles.any(DatabaseUserRole.role_id.in_(role_ids)))
        stmt = stmt.order_by(DatabaseUser.id).limit(1)
        executed = await self.db_session.execute(stmt)
        return executed.scalars().first()

