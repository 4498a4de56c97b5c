# src/dblocator/services/provisioning/sql_executor.py

import asyncio
import logging
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError, DBAPIError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from dblocator.core.config import settings
from dblocator.db.session import engine as directory_engine
from dblocator.services.exceptions import ProvisioningError

logger = logging.getLogger(__name__)

class SqlCommandExecutor:
    """
    Runs one dynamic T-SQL batch on its own autocommit connection.

    DDL such as CREATE LOGIN and CREATE DATABASE cannot run inside a user
    transaction, and every batch is independent: nothing is rolled back when a
    later batch of the same fan-out fails.
    """
    def __init__(self, engine: AsyncEngine, timeout: Optional[int] = None):
        self.engine = engine
        self.timeout = timeout if timeout is not None else settings.SQL_COMMAND_TIMEOUT

    async def execute(self, command: str, description: str, target: str) -> None:
        """
        :param command: the final batch, already sanitized and wrapped.
        :param description: what the batch does, safe to log (no passwords).
        :param target: the server or database it runs on, used in errors.
        :raises ProvisioningError: when the driver reports an error or the timeout elapses.
        """
        logger.info(f"Executing '{description}' on {target}")
        try:
            await asyncio.wait_for(self._run(command), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"'{description}' on {target} timed out after {self.timeout}s")
            raise ProvisioningError(f"Failed to {description} on {target}: timed out after {self.timeout}s", target=target)
        except SQLAlchemyError as e:
            # DBAPIError.__str__ embeds the statement, which may hold a password literal
            reason = str(e.orig) if isinstance(e, DBAPIError) and e.orig is not None else e.__class__.__name__
            logger.error(f"'{description}' on {target} failed: {reason}")
            raise ProvisioningError(f"Failed to {description} on {target}: {reason}", target=target) from None

    async def _run(self, command: str) -> None:
        async with self.engine.connect() as conn:
            conn = await conn.execution_options(isolation_level="AUTOCOMMIT")
            await conn.exec_driver_sql(command)

_provisioning_engine: Optional[AsyncEngine] = None

def get_provisioning_engine() -> AsyncEngine:
    """The engine dynamic DDL runs on: PROVISIONING_DATABASE_URL, else the Directory Store's own server."""
    global _provisioning_engine
    if _provisioning_engine is None:
        if settings.PROVISIONING_DATABASE_URL:
            _provisioning_engine = create_async_engine(settings.PROVISIONING_DATABASE_URL, pool_pre_ping=True)
        else:
            _provisioning_engine = directory_engine
    return _provisioning_engine

def get_executor() -> SqlCommandExecutor:
    return SqlCommandExecutor(get_provisioning_engine())
