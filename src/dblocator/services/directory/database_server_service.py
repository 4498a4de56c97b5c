# src/dblocator/services/directory/database_server_service.py

import logging
from typing import List
from dblocator.core.context import AppContext
from dblocator.dao.directory.database_dao import DatabaseDao
from dblocator.dao.directory.database_server_dao import DatabaseServerDao
from dblocator.models import DatabaseServer
from dblocator.schemas.directory.database_server_schemas import (
    DatabaseServerCreate, DatabaseServerUpdate, DatabaseServerRead
)
from dblocator.services.cache_service import (
    DATABASE_SERVERS_KEY, DATABASES_KEY, database_key, server_dependency
)
from dblocator.services.exceptions import NotFoundError, ConflictError, InvalidRequestError

logger = logging.getLogger(__name__)

UNIQUE_FIELDS = ("name", "host_name", "fully_qualified_domain_name", "ip_address")
NETWORK_FIELDS = ("host_name", "fully_qualified_domain_name", "ip_address")

class DatabaseServerService:
    def __init__(self, context: AppContext):
        self.context = context
        self.db = context.db
        self.cache = context.cache
        self.dao = DatabaseServerDao(self.db)
        self.database_dao = DatabaseDao(self.db)

    async def create_server(self, data: DatabaseServerCreate) -> DatabaseServerRead:
        for field in UNIQUE_FIELDS:
            await self._ensure_unique(field, getattr(data, field))
        server = await self.dao.add(DatabaseServer(**data.model_dump()))
        await self.db.commit()
        await self.cache.remove(DATABASE_SERVERS_KEY)
        logger.info(f"Created database server {server.id} ({server.name}).")
        return DatabaseServerRead.model_validate(server)

    async def get_server(self, server_id: int) -> DatabaseServerRead:
        return DatabaseServerRead.model_validate(await self._get_or_404(server_id))

    async def list_servers(self) -> List[DatabaseServerRead]:
        cached = await self.cache.get(DATABASE_SERVERS_KEY)
        if cached is not None:
            return [DatabaseServerRead.model_validate(s) for s in cached]
        servers = [DatabaseServerRead.model_validate(s) for s in await self.dao.get_list()]
        await self.cache.put(DATABASE_SERVERS_KEY, [s.model_dump(mode="json") for s in servers])
        return servers

    async def update_server(self, server_id: int, data: DatabaseServerUpdate) -> DatabaseServerRead:
        server = await self._get_or_404(server_id)
        changes = data.model_dump(exclude_unset=True)

        for field in UNIQUE_FIELDS:
            if changes.get(field):
                await self._ensure_unique(field, changes[field], exclude_id=server.id)

        for field in NETWORK_FIELDS:
            if field in changes:
                setattr(server, field, changes[field])
        if not any(getattr(server, f) for f in NETWORK_FIELDS):
            raise InvalidRequestError("At least one of host_name, fully_qualified_domain_name or ip_address is required")

        if changes.get("name") is not None:
            server.name = changes["name"]
        if changes.get("is_linked_server") is not None:
            server.is_linked_server = changes["is_linked_server"]
        if changes.get("status") is not None:
            server.status = int(changes["status"])

        await self.db.flush()
        await self.db.commit()
        await self._invalidate(server.id)
        return DatabaseServerRead.model_validate(server)

    async def delete_server(self, server_id: int) -> None:
        server = await self._get_or_404(server_id)
        if await self.database_dao.exists({"server_id": server.id}):
            raise ConflictError(f"Database server {server_id} still hosts databases; delete them first.")
        await self.dao.remove(server)
        await self.db.commit()
        await self._invalidate(server_id)
        logger.info(f"Deleted database server {server_id}.")

    async def _get_or_404(self, server_id: int) -> DatabaseServer:
        server = await self.dao.get_by_pk(server_id)
        if not server:
            raise NotFoundError(f"Database server with ID {server_id} not found.")
        return server

    async def _ensure_unique(self, field: str, value, exclude_id=None) -> None:
        if await self.dao.find_duplicate(field, value, exclude_id=exclude_id):
            raise ConflictError(f"A database server with {field} '{value}' already exists.")

    async def _invalidate(self, server_id: int) -> None:
        database_ids = await self.database_dao.pluck("id", where={"server_id": server_id})
        await self.cache.remove(DATABASE_SERVERS_KEY, DATABASES_KEY, *[database_key(i) for i in database_ids])
        await self.cache.invalidate_dependency(server_dependency(server_id))
