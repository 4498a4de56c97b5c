# src/dblocator/dao/directory/database_server_dao.py

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from dblocator.dao.base_dao import BaseDao
from dblocator.models import DatabaseServer

class DatabaseServerDao(BaseDao[DatabaseServer]):
    def __init__(self, db_session: AsyncSession):
        super().__init__(DatabaseServer, db_session)

    async def find_duplicate(self, field: str, value: Optional[str], exclude_id: Optional[int] = None) -> Optional[DatabaseServer]:
        """Another server already holding ``value`` in the unique column ``field``."""
        if not value:
            return None
        where = [getattr(DatabaseServer, field) == value]
        if exclude_id is not None:
            where.append(DatabaseServer.id != exclude_id)
        return await self.get_one(where=where)
