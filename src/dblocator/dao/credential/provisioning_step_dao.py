# src/dblocator/dao/credential/provisioning_step_dao.py

from sqlalchemy.ext.asyncio import AsyncSession
from dblocator.dao.base_dao import BaseDao
from dblocator.models import ProvisioningStep

class ProvisioningStepDao(BaseDao[ProvisioningStep]):
    def __init__(self, db_session: AsyncSession):
        super().__init__(ProvisioningStep, db_session)

    async def is_done(self, user_id: int, step: str, target: str) -> bool:
        return await self.exists({"database_user_id": user_id, "step": step, "target": target})

    async def mark_done(self, user_id: int, step: str, target: str) -> None:
        if await self.is_done(user_id, step, target):
            return
        await self.add(ProvisioningStep(database_user_id=user_id, step=step, target=target), auto_flush=False)
        await self.db_session.flush()

    async def clear(self, user_id: int, step: str, target: str) -> int:
        return await self.delete_where({"database_user_id": user_id, "step": step, "target": target})

    async def clear_user(self, user_id: int) -> int:
        return await self.delete_where({"database_user_id": user_id})
