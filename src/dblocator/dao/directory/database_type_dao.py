# src/dblocator/dao/directory/database_type_dao.py

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from dblocator.dao.base_dao import BaseDao
from dblocator.models import DatabaseType

class DatabaseTypeDao(BaseDao[DatabaseType]):
    def __init__(self, db_session: AsyncSession):
        super().__init__(DatabaseType, db_session)

    async def get_by_name(self, name: str) -> Optional[DatabaseType]:
        return await self.get_one(where={"name": name})
