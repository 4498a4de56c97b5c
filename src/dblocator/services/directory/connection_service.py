# src/dblocator/services/directory/connection_service.py

import logging
from typing import List, Optional
from dblocator.core.connection_string import ConnectionHandle
from dblocator.core.context import AppContext
from dblocator.dao.directory.connection_dao import ConnectionDao
from dblocator.dao.directory.database_dao import DatabaseDao
from dblocator.dao.directory.tenant_dao import TenantDao
from dblocator.models import Connection
from dblocator.schemas.directory.connection_schemas import ConnectionCreate, ConnectionRead, ConnectionRequest
from dblocator.services.cache_service import CONNECTIONS_KEY
from dblocator.services.connection.connection_resolver import ConnectionResolver
from dblocator.services.exceptions import NotFoundError, ConflictError

logger = logging.getLogger(__name__)

class ConnectionService:
    """Tenant to database links, plus resolution of a link into a connection string."""
    def __init__(self, context: AppContext):
        self.context = context
        self.db = context.db
        self.cache = context.cache
        self.dao = ConnectionDao(self.db)
        self.tenant_dao = TenantDao(self.db)
        self.database_dao = DatabaseDao(self.db)

    async def create_connection(self, data: ConnectionCreate) -> ConnectionRead:
        tenant = await self.tenant_dao.get_by_pk(data.tenant_id)
        if not tenant:
            raise NotFoundError(f"Tenant with ID {data.tenant_id} not found.")
        database = await self.database_dao.get_by_pk(data.database_id)
        if not database:
            raise NotFoundError(f"Database with ID {data.database_id} not found.")

        if await self.dao.get_pair(tenant.id, database.id):
            raise ConflictError(f"Connection between tenant {tenant.id} and database {database.id} already exists.")
        # One database per type and tenant, otherwise tenant+type resolution is ambiguous
        if await self.dao.get_for_tenant_and_type(tenant.id, database.database_type_id):
            raise ConflictError(
                f"Tenant {tenant.id} already has a connection to a database of type {database.database_type_id}."
            )

        connection = await self.dao.add(Connection(tenant_id=tenant.id, database_id=database.id))
        await self.db.commit()
        await self._invalidate(connection, tenant.code)
        logger.info(f"Created connection {connection.id}: tenant {tenant.id} -> database {database.id}.")
        return ConnectionRead.model_validate(connection)

    async def get_connection(self, connection_id: int) -> ConnectionRead:
        return ConnectionRead.model_validate(await self._get_or_404(connection_id))

    async def list_connections(self) -> List[ConnectionRead]:
        cached = await self.cache.get(CONNECTIONS_KEY)
        if cached is not None:
            return [ConnectionRead.model_validate(c) for c in cached]
        connections = [ConnectionRead.model_validate(c) for c in await self.dao.get_list()]
        await self.cache.put(CONNECTIONS_KEY, [c.model_dump(mode="json") for c in connections])
        return connections

    async def delete_connection(self, connection_id: int) -> None:
        connection = await self._get_or_404(connection_id)
        tenant = await self.tenant_dao.get_by_pk(connection.tenant_id)

        await self.dao.remove(connection)
        await self.db.commit()
        await self._invalidate(connection, tenant.code if tenant else None)
        logger.info(f"Deleted connection {connection_id}.")

    async def resolve(self, request: ConnectionRequest) -> ConnectionHandle:
        return await ConnectionResolver(self.context).resolve(request)

    async def _get_or_404(self, connection_id: int) -> Connection:
        connection = await self.dao.get_by_pk(connection_id)
        if not connection:
            raise NotFoundError(f"Connection with ID {connection_id} not found.")
        return connection

    async def _invalidate(self, connection: Connection, tenant_code: Optional[str]) -> None:
        await self.cache.remove(CONNECTIONS_KEY)
        await self.cache.clear_connection_strings(
            tenant_id=connection.tenant_id,
            connection_id=connection.id,
            tenant_code=tenant_code,
        )
