# src/dblocator/dao/directory/connection_dao.py

from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from dblocator.dao.base_dao import BaseDao
from dblocator.models import Connection, Database

class ConnectionDao(BaseDao[Connection]):
    # Connection -> Database -> (Server, Type), loaded in one round of selectin queries
    RESOLVE_WITHS = [
        {"name": "database", "withs": ["server", "database_type"]},
    ]

    def __init__(self, db_session: AsyncSession):
        super().__init__(Connection, db_session)

    async def get_with_relations(self, connection_id: int) -> Optional[Connection]:
        return await self.get_by_pk(connection_id, withs=self.RESOLVE_WITHS)

    async def get_for_tenant_and_type(self, tenant_id: int, database_type_id: int, with_relations: bool = False) -> Optional[Connection]:
        """The tenant's connection whose database has the given type."""
        stmt = (
            select(Connection)
            .join(Connection.database)
            .where(Connection.tenant_id == tenant_id, Database.database_type_id == database_type_id)
            .order_by(Connection.id)
            .limit(1)
        )
        if with_relations:
            stmt = stmt.options(
                selectinload(Connection.database).selectinload(Database.server),
                selectinload(Connection.database).selectinload(Database.database_type),
            )
        executed = await self.db_session.execute(stmt)
        return executed.scalars().first()

    async def get_pair(self, tenant_id: int, database_id: int) -> Optional[Connection]:
        return await self.get_one(where={"tenant_id": tenant_id, "database_id": database_id})
