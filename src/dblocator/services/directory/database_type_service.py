# src/dblocator/services/directory/database_type_service.py

import logging
from typing import List
from dblocator.core.context import AppContext
from dblocator.dao.directory.database_dao import DatabaseDao
from dblocator.dao.directory.database_type_dao import DatabaseTypeDao
from dblocator.models import DatabaseType
from dblocator.schemas.directory.database_type_schemas import (
    DatabaseTypeCreate, DatabaseTypeUpdate, DatabaseTypeRead
)
from dblocator.services.cache_service import DATABASE_TYPES_KEY, DATABASES_KEY
from dblocator.services.exceptions import NotFoundError, ConflictError

logger = logging.getLogger(__name__)

class DatabaseTypeService:
    def __init__(self, context: AppContext):
        self.context = context
        self.db = context.db
        self.cache = context.cache
        self.dao = DatabaseTypeDao(self.db)
        self.database_dao = DatabaseDao(self.db)

    async def create_database_type(self, data: DatabaseTypeCreate) -> DatabaseTypeRead:
        await self._ensure_unique(data.name)
        database_type = await self.dao.add(DatabaseType(name=data.name))
        await self.db.commit()
        await self.cache.remove(DATABASE_TYPES_KEY)
        return DatabaseTypeRead.model_validate(database_type)

    async def get_database_type(self, database_type_id: int) -> DatabaseTypeRead:
        return DatabaseTypeRead.model_validate(await self._get_or_404(database_type_id))

    async def list_database_types(self) -> List[DatabaseTypeRead]:
        cached = await self.cache.get(DATABASE_TYPES_KEY)
        if cached is not None:
            return [DatabaseTypeRead.model_validate(t) for t in cached]
        types = [DatabaseTypeRead.model_validate(t) for t in await self.dao.get_list()]
        await self.cache.put(DATABASE_TYPES_KEY, [t.model_dump(mode="json") for t in types])
        return types

    async def update_database_type(self, database_type_id: int, data: DatabaseTypeUpdate) -> DatabaseTypeRead:
        database_type = await self._get_or_404(database_type_id)
        await self._ensure_unique(data.name, exclude_id=database_type.id)
        database_type.name = data.name
        await self.db.flush()
        await self.db.commit()
        await self._invalidate(database_type.id)
        return DatabaseTypeRead.model_validate(database_type)

    async def delete_database_type(self, database_type_id: int) -> None:
        database_type = await self._get_or_404(database_type_id)
        if await self.database_dao.exists({"database_type_id": database_type.id}):
            raise ConflictError(f"Database type {database_type_id} is used by databases; delete them first.")
        await self.dao.remove(database_type)
        await self.db.commit()
        await self._invalidate(database_type_id)
        logger.info(f"Deleted database type {database_type_id}.")

    async def _get_or_404(self, database_type_id: int) -> DatabaseType:
        database_type = await self.dao.get_by_pk(database_type_id)
        if not database_type:
            raise NotFoundError(f"Database type with ID {database_type_id} not found.")
        return database_type

    async def _ensure_unique(self, name: str, exclude_id=None) -> None:
        existing = await self.dao.get_by_name(name)
        if existing and existing.id != exclude_id:
            raise ConflictError(f"Database type '{name}' already exists.")

    async def _invalidate(self, database_type_id: int) -> None:
        await self.cache.remove(DATABASE_TYPES_KEY, DATABASES_KEY)
        await self.cache.clear_connection_strings(database_type_id=database_type_id)
