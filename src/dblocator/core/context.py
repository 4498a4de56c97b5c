# src/dblocator/core/context.py

from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession
from dblocator.core.encryption import SecretCipher
from dblocator.services.cache_service import BaseCache, NullCache
from dblocator.services.provisioning.sql_executor import SqlCommandExecutor

class AppContext(BaseModel):
    """
    The typed set of collaborators every service receives.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    # Directory Store session for this unit of work
    db: AsyncSession

    cache: BaseCache = NullCache()
    cipher: SecretCipher
    executor: SqlCommandExecutor
