# src/dblocator/dao/directory/tenant_dao.py

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from dblocator.dao.base_dao import BaseDao
from dblocator.models import Tenant

class TenantDao(BaseDao[Tenant]):
    def __init__(self, db_session: AsyncSession):
        super().__init__(Tenant, db_session)

    async def get_by_code(self, code: str) -> Optional[Tenant]:
        return await self.get_one(where={"code": code})

    async def get_by_name(self, name: str) -> Optional[Tenant]:
        return await self.get_one(where={"name": name})
