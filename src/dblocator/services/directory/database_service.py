# src/dblocator/services/directory/database_service.py

import logging
from typing import List
from dblocator.core.context import AppContext
from dblocator.dao.credential.database_user_dao import DatabaseUserDao
from dblocator.dao.directory.connection_dao import ConnectionDao
from dblocator.dao.directory.database_dao import DatabaseDao
from dblocator.dao.directory.database_server_dao import DatabaseServerDao
from dblocator.dao.directory.database_type_dao import DatabaseTypeDao
from dblocator.models import Database
from dblocator.schemas.directory.database_schemas import DatabaseCreate, DatabaseUpdate, DatabaseRead
from dblocator.services.cache_service import DATABASES_KEY, database_key, database_dependency
from dblocator.services.exceptions import NotFoundError, ConflictError
from dblocator.services.provisioning.credential_provisioner import CredentialProvisioner

logger = logging.getLogger(__name__)

class DatabaseService:
    """
    Physical databases. With ``affect_database`` the matching CREATE, ALTER
    and DROP DATABASE statements run on the hosting server after the directory
    change is committed.
    """
    def __init__(self, context: AppContext):
        self.context = context
        self.db = context.db
        self.cache = context.cache
        self.dao = DatabaseDao(self.db)
        self.server_dao = DatabaseServerDao(self.db)
        self.type_dao = DatabaseTypeDao(self.db)
        self.connection_dao = ConnectionDao(self.db)
        self.user_dao = DatabaseUserDao(self.db)
        self.provisioner = CredentialProvisioner(context)

    async def create_database(self, data: DatabaseCreate) -> DatabaseRead:
        await self._ensure_server_and_type(data.server_id, data.database_type_id)
        if await self.dao.get_on_server(data.server_id, data.name):
            raise ConflictError(f"Database '{data.name}' already exists on server {data.server_id}.")

        database = await self.dao.add(Database(
            name=data.name,
            server_id=data.server_id,
            database_type_id=data.database_type_id,
            status=int(data.status),
            use_trusted_connection=data.use_trusted_connection,
        ))
        await self.db.commit()
        database = await self._reload(database.id)
        await self.cache.remove(DATABASES_KEY)

        if data.affect_database:
            await self.provisioner.create_database(database)
        logger.info(f"Created database {database.id} ({database.name}) on server {database.server.name}.")
        return DatabaseRead.model_validate(database)

    async def get_database(self, database_id: int) -> DatabaseRead:
        cached = await self.cache.get(database_key(database_id))
        if cached is not None:
            return DatabaseRead.model_validate(cached)
        result = DatabaseRead.model_validate(await self._get_or_404(database_id))
        await self.cache.put(database_key(database_id), result.model_dump(mode="json"))
        return result

    async def list_databases(self) -> List[DatabaseRead]:
        cached = await self.cache.get(DATABASES_KEY)
        if cached is not None:
            return [DatabaseRead.model_validate(d) for d in cached]
        databases = [DatabaseRead.model_validate(d) for d in await self.dao.get_list(withs=DatabaseDao.DEFAULT_WITHS)]
        await self.cache.put(DATABASES_KEY, [d.model_dump(mode="json") for d in databases])
        return databases

    async def update_database(self, database_id: int, data: DatabaseUpdate) -> DatabaseRead:
        database = await self._get_or_404(database_id)
        old_name = database.name
        changes = data.model_dump(exclude_unset=True, exclude={"affect_database"})

        server_id = changes.get("server_id") or database.server_id
        type_id = changes.get("database_type_id") or database.database_type_id
        await self._ensure_server_and_type(server_id, type_id)

        new_name = changes.get("name") or database.name
        if (new_name, server_id) != (database.name, database.server_id):
            existing = await self.dao.get_on_server(server_id, new_name)
            if existing and existing.id != database.id:
                raise ConflictError(f"Database '{new_name}' already exists on server {server_id}.")

        database.name = new_name
        database.server_id = server_id
        database.database_type_id = type_id
        if changes.get("status") is not None:
            database.status = int(changes["status"])
        if changes.get("use_trusted_connection") is not None:
            database.use_trusted_connection = changes["use_trusted_connection"]

        await self.db.flush()
        await self.db.commit()
        database = await self._reload(database.id)
        await self._invalidate(database.id)

        if data.affect_database and old_name != database.name:
            await self.provisioner.rename_database(database, old_name)
        return DatabaseRead.model_validate(database)

    async def delete_database(self, database_id: int, affect_database: bool = True) -> None:
        database = await self._get_or_404(database_id)
        if await self.connection_dao.exists({"database_id": database.id}):
            raise ConflictError(f"Database {database_id} is used by connections; delete them first.")
        if await self.user_dao.list_for_database(database.id):
            raise ConflictError(f"Database {database_id} still has database users; remove them first.")

        await self.dao.remove(database)
        await self.db.commit()
        await self._invalidate(database_id)

        if affect_database:
            await self.provisioner.drop_database(database)
        logger.info(f"Deleted database {database_id} ({database.name}).")

    async def _get_or_404(self, database_id: int) -> Database:
        database = await self.dao.get_with_relations(database_id)
        if not database:
            raise NotFoundError(f"Database with ID {database_id} not found.")
        return database

    async def _reload(self, database_id: int) -> Database:
        database = await self.dao.get_with_relations(database_id)
        await self.db.refresh(database, ["server", "database_type"])
        return database

    async def _ensure_server_and_type(self, server_id: int, database_type_id: int) -> None:
        if not await self.server_dao.get_by_pk(server_id):
            raise NotFoundError(f"Database server with ID {server_id} not found.")
        if not await self.type_dao.get_by_pk(database_type_id):
            raise NotFoundError(f"Database type with ID {database_type_id} not found.")

    async def _invalidate(self, database_id: int) -> None:
        await self.cache.remove(DATABASES_KEY, database_key(database_id))
        await self.cache.invalidate_dependency(database_dependency(database_id))
