# src/dblocator/dao/credential/database_user_role_dao.py

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from dblocator.dao.base_dao import BaseDao
from dblocator.models import DatabaseUserRole, DatabaseRole

class DatabaseUserRoleDao(BaseDao[DatabaseUserRole]):
    def __init__(self, db_session: AsyncSession):
        super().__init__(DatabaseUserRole, db_session)

    async def get_pair(self, user_id: int, role: DatabaseRole) -> Optional[DatabaseUserRole]:
        return await self.get_one(where={"database_user_id": user_id, "role_id": int(role)})

    async def list_for_user(self, user_id: int) -> list[DatabaseUserRole]:
        return await self.get_list(where={"database_user_id": user_id}, order=[DatabaseUserRole.role_id])
