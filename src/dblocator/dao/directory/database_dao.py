# src/dblocator/dao/directory/database_dao.py

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from dblocator.dao.base_dao import BaseDao
from dblocator.models import Database

class DatabaseDao(BaseDao[Database]):
    DEFAULT_WITHS = ["server", "database_type"]

    def __init__(self, db_session: AsyncSession):
        super().__init__(Database, db_session)

    async def get_with_relations(self, database_id: int) -> Optional[Database]:
        """Loads a database with its server and type."""
        return await self.get_by_pk(database_id, withs=self.DEFAULT_WITHS)

    async def get_on_server(self, server_id: int, name: str) -> Optional[Database]:
        return await self.get_one(where={"server_id": server_id, "name": name})
