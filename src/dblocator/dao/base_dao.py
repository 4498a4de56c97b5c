# src/dblocator/dao/base_dao.py

from typing import Type, TypeVar, Generic, Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import inspect, select, delete, exists
from sqlalchemy.orm import selectinload
from sqlalchemy.sql.selectable import Select
from dblocator.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)

class BaseDao(Generic[ModelType]):
    def __init__(self, model_class: Type[ModelType], db_session: AsyncSession):
        self.model: Type[ModelType] = model_class
        self.db_session: AsyncSession = db_session
        primary_keys = inspect(model_class).primary_key
        if not primary_keys:
            raise ValueError(f"Model {model_class.__name__} does not have a primary key.")
        self.pk: str = primary_keys[0].name

    # ==============================================================================
    # 1. Object methods
    #    - inputs and outputs are ORM instances
    # ==============================================================================

    async def get_list(
        self,
        where: Optional[dict | list] = None,
        withs: Optional[list] = None,
        order: Optional[list] = None
    ) -> list[ModelType]:
        stmt = self._quick_query(
            where=where, withs=withs,
            order=order if order is not None else [getattr(self.model, self.pk)]
        )
        executed = await self.db_session.execute(stmt)
        return list(executed.scalars().all())

    async def get_one(self, where: Optional[dict | list] = None, withs: Optional[list] = None) -> Optional[ModelType]:
        stmt = self._quick_query(where=where, withs=withs)
        executed = await self.db_session.execute(stmt)
        return executed.scalars().first()

    async def get_by_pk(self, pk_value: Any, withs: Optional[list] = None) -> Optional[ModelType]:
        stmt = self._quick_query(where={self.pk: pk_value}, withs=withs)
        executed = await self.db_session.execute(stmt)
        return executed.scalars().first()

    async def exists(self, where: dict | list) -> bool:
        conditions = self._where_format(where)
        stmt = select(exists().where(*conditions))
        executed = await self.db_session.execute(stmt)
        return bool(executed.scalar())

    async def add(self, instance: ModelType, auto_flush: bool = True) -> ModelType:
        self.db_session.add(instance)
        if auto_flush:
            await self.db_session.flush()
            await self.db_session.refresh(instance)
        return instance

    async def remove(self, instance: ModelType, auto_flush: bool = True) -> None:
        await self.db_session.delete(instance)
        if auto_flush:
            await self.db_session.flush()

    # ==============================================================================
    # 2. Bulk methods
    # ==============================================================================

    async def delete_where(self, where: dict | list) -> int:
        if not where:
            return 0
        conditions = self._where_format(where)
        stmt = delete(self.model).where(*conditions)
        executed = await self.db_session.execute(stmt)
        return executed.rowcount

    async def pluck(self, column_name: str, where: Optional[dict | list] = None) -> list[Any]:
        stmt = select(getattr(self.model, column_name))
        stmt = self._quick_query(stmt=stmt, where=where)
        executed = await self.db_session.execute(stmt)
        return list(executed.scalars().all())

    # ==============================================================================
    # 3. Query building helpers
    # ==============================================================================

    def _to_class(self, relationship_property: Any) -> Type[Base]:
        return relationship_property.property.mapper.class_

    def _quick_query(
        self,
        stmt: Optional[Select] = None,
        where: Optional[dict | list] = None,
        withs: Optional[list] = None,
        order: Optional[list] = None
    ) -> Select:
        if stmt is None:
            stmt = select(self.model)

        if where is not None:
            stmt = self._where(stmt, where)

        if withs:
            stmt = stmt.options(*[self._build_loader_option(config, self.model) for config in withs])

        if order is not None:
            stmt = stmt.order_by(*order)

        return stmt

    def _where(self, stmt: Select, where: dict | list) -> Select:
        if isinstance(where, dict):
            return stmt.filter_by(**where)
        return stmt.filter(*self._where_format(where))

    def _build_loader_option(self, config: str | dict, current_entity: Any) -> Any:
        """
        Builds one ``selectinload`` option. ``config`` is a relationship name or
        a dict ``{"name", "withs"}`` for nested loads.
        """
        if isinstance(config, str):
            return selectinload(getattr(current_entity, config))

        if isinstance(config, dict):
            name = config.get("name")
            if not name:
                raise ValueError("Relation 'name' is required in withs configuration.")

            relationship_attr = getattr(current_entity, name)
            target_model_class = self._to_class(relationship_attr)
            loader_option = selectinload(relationship_attr)

            nested_options = [self._build_loader_option(nested, target_model_class) for nested in config.get("withs", [])]
            if nested_options:
                loader_option = loader_option.options(*nested_options)
            return loader_option

        raise TypeError("Unsupported 'withs' configuration type. Must be str or dict.")

    def _where_format(self, conditions: list | dict) -> list:
        """Turns ``{"field": value}`` into SQL clauses; a list of clauses passes through."""
        if not conditions:
            return []
        if isinstance(conditions, dict):
            return [getattr(self.model, field) == value for field, value in conditions.items()]
        return list(conditions)
