# src/dblocator/services/connection/connection_resolver.py

import logging
from typing import Optional, Sequence
from dblocator.core.config import settings
from dblocator.core.connection_string import ConnectionHandle, SqlConnectionString
from dblocator.core.context import AppContext
from dblocator.dao.credential.database_user_dao import DatabaseUserDao
from dblocator.dao.directory.connection_dao import ConnectionDao
from dblocator.dao.directory.database_type_dao import DatabaseTypeDao
from dblocator.dao.directory.tenant_dao import TenantDao
from dblocator.models import Connection, DatabaseRole, RoleMatchMode
from dblocator.schemas.directory.connection_schemas import ConnectionRequest
from dblocator.services.cache_service import (
    connection_cache_key, database_dependency, role_dependency,
    server_dependency, user_dependency
)
from dblocator.services.exceptions import (
    InvalidRequestError, NotFoundError, NoEligibleUserError, ServiceException
)

logger = logging.getLogger(__name__)

class ConnectionResolver:
    """
    Turns a connection request into a connection handle.

    A cached connection string short-circuits everything else, including the
    Directory Store. On a miss the connection row is loaded with its database,
    server and type, the server address is picked (FQDN, host name, IP), and,
    unless the database uses a trusted connection, a database user holding the
    requested roles supplies the credentials.
    """
    def __init__(self, context: AppContext):
        self.context = context
        self.db = context.db
        self.cache = context.cache
        self.cipher = context.cipher
        self.tenant_dao = TenantDao(self.db)
        self.database_type_dao = DatabaseTypeDao(self.db)
        self.connection_dao = ConnectionDao(self.db)
        self.user_dao = DatabaseUserDao(self.db)

    async def resolve(self, request: ConnectionRequest) -> ConnectionHandle:
        self._validate(request)

        roles = sorted(set(request.roles))
        cache_key = connection_cache_key(
            tenant_id=request.tenant_id,
            database_type_id=request.database_type_id,
            connection_id=request.connection_id,
            tenant_code=request.tenant_code,
            roles=roles,
            match=request.match,
        )

        cached = await self.cache.get(cache_key)
        if isinstance(cached, str):
            try:
                return ConnectionHandle(cached)
            except ValueError as e:
                logger.warning(f"Discarding unreadable cached connection string for {cache_key}: {e}")
                await self.cache.remove(cache_key)

        connection = await self._load_connection(request)
        connection_string, dependencies = await self._build_connection_string(connection, roles, request.match)

        await self.cache.cache_connection_string(cache_key, connection_string, dependencies)
        return ConnectionHandle(connection_string)

    def _validate(self, request: ConnectionRequest) -> None:
        """Selector shape checks. Raised before any I/O."""
        variants = [
            request.connection_id is not None,
            request.tenant_id is not None,
            bool(request.tenant_code),
        ]
        if sum(variants) == 0:
            raise InvalidRequestError("No connection selector provided: set connection_id, tenant_id or tenant_code.")
        if sum(variants) > 1:
            raise InvalidRequestError("Ambiguous connection selector: set only one of connection_id, tenant_id or tenant_code.")
        if request.connection_id is not None and request.database_type_id is not None:
            raise InvalidRequestError("database_type_id cannot be combined with connection_id.")
        if request.connection_id is None and request.database_type_id is None:
            raise InvalidRequestError("database_type_id is required when selecting by tenant.")

    async def _load_connection(self, request: ConnectionRequest) -> Connection:
        if request.connection_id is not None:
            connection = None
            if request.connection_id > 0:
                connection = await self.connection_dao.get_with_relations(request.connection_id)
            if connection is None:
                raise NotFoundError(f"Connection with ID {request.connection_id} not found.")
            return connection

        if request.tenant_id is not None:
            tenant = await self.tenant_dao.get_by_pk(request.tenant_id) if request.tenant_id > 0 else None
            if tenant is None:
                raise NotFoundError(f"Tenant with ID {request.tenant_id} not found.")
        else:
            tenant = await self.tenant_dao.get_by_code(request.tenant_code)
            if tenant is None:
                raise NotFoundError(f"Tenant with code {request.tenant_code} not found.")

        database_type = None
        if request.database_type_id > 0:
            database_type = await self.database_type_dao.get_by_pk(request.database_type_id)
        if database_type is None:
            raise NotFoundError(f"Database type with ID {request.database_type_id} not found.")

        connection = await self.connection_dao.get_for_tenant_and_type(tenant.id, database_type.id, with_relations=True)
        if connection is None:
            raise NotFoundError(
                f"Connection for tenant {tenant.code or tenant.id} and database type {database_type.id} not found."
            )
        return connection

    async def _build_connection_string(
        self,
        connection: Connection,
        roles: Sequence[DatabaseRole],
        match: RoleMatchMode
    ) -> tuple[str, list[str]]:
        database = connection.database
        server = database.server
        dependencies = [database_dependency(database.id), server_dependency(server.id)]

        builder = SqlConnectionString(
            server=server.address,
            database=database.name,
            integrated_security=database.use_trusted_connection,
            encrypt=True,
            trust_server_certificate=True,
            connect_timeout=settings.CONNECT_TIMEOUT,
        )

        # Trusted databases never carry credentials, whatever roles were asked for.
        if roles and not database.use_trusted_connection:
            user = await self.user_dao.find_eligible(database.id, roles, match)
            if user is None:
                raise NoEligibleUserError(
                    f"No user found with the specified roles ({', '.join(r.name for r in roles)}) "
                    f"for database {database.name}."
                )
            builder.user_id = user.user_name
            builder.password = self._decrypt(user.password, user.id)
            dependencies.append(user_dependency(user.id))
            dependencies.extend(role_dependency(r) for r in roles)

        return str(builder), dependencies

    def _decrypt(self, stored: str, user_id: int) -> str:
        try:
            return self.cipher.decrypt(stored)
        except ValueError:
            logger.error(f"Stored password of database user {user_id} cannot be decrypted.")
            raise ServiceException(f"Stored password of database user {user_id} cannot be decrypted with the configured key.")

async def resolve_connection(
    context: AppContext,
    connection_id: Optional[int] = None,
    tenant_id: Optional[int] = None,
    tenant_code: Optional[str] = None,
    database_type_id: Optional[int] = None,
    roles: Optional[Sequence[DatabaseRole]] = None,
    match: RoleMatchMode = RoleMatchMode.ANY
) -> ConnectionHandle:
    """Keyword shortcut around ConnectionResolver.resolve."""
    request = ConnectionRequest(
        connection_id=connection_id,
        tenant_id=tenant_id,
        tenant_code=tenant_code,
        database_type_id=database_type_id,
        roles=list(roles or []),
        match=match,
    )
    return await ConnectionResolver(context).resolve(request)
