# src/dblocator/services/cache_service.py

import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional, Sequence
from redis.exceptions import RedisError
from dblocator.core.config import settings
from dblocator.models import DatabaseRole, RoleMatchMode
from dblocator.services.redis_service import RedisService

logger = logging.getLogger(__name__)

# --- Entity cache keys ---
TENANTS_KEY = "tenants"
DATABASE_SERVERS_KEY = "databaseServers"
DATABASE_TYPES_KEY = "databaseTypes"
DATABASES_KEY = "databases"
DATABASE_USERS_KEY = "databaseUsers"
CONNECTIONS_KEY = "connections"

# Registry of every cached connection string key
CONNECTION_KEYS_REGISTRY = "connectionCacheKeys"

def tenant_key(tenant_id: int) -> str:
    return f"tenant-id-{tenant_id}"

def tenant_code_key(code: str) -> str:
    return f"tenant-code-{code}"

def database_key(database_id: int) -> str:
    return f"database-id-{database_id}"

def database_user_key(user_id: int) -> str:
    return f"database-user-id-{user_id}"

# --- Dependency names for the connection key index ---
def user_dependency(user_id: int) -> str:
    return f"user:{user_id}"

def database_dependency(database_id: int) -> str:
    return f"database:{database_id}"

def server_dependency(server_id: int) -> str:
    return f"server:{server_id}"

def role_dependency(role: DatabaseRole) -> str:
    return f"role:{DatabaseRole(role).name}"

def _text(value: Any) -> str:
    return "" if value is None else str(value)

def roles_segment(roles: Optional[Iterable[DatabaseRole]]) -> str:
    """``|DataWriter|DataReader|`` ordered by ordinal, or ``none``."""
    distinct = sorted({DatabaseRole(r) for r in (roles or [])})
    if not distinct:
        return "none"
    return "|" + "|".join(r.name for r in distinct) + "|"

def connection_cache_key(
    tenant_id: Optional[int] = None,
    database_type_id: Optional[int] = None,
    connection_id: Optional[int] = None,
    tenant_code: Optional[str] = None,
    roles: Optional[Iterable[DatabaseRole]] = None,
    match: RoleMatchMode = RoleMatchMode.ANY
) -> str:
    """
    Deterministic key for one resolution request. Every field is followed by a
    comma so that ``TenantId:1,`` never matches ``TenantId:12,`` in a fragment scan.
    """
    return (
        f"connection:TenantId:{_text(tenant_id)},"
        f"DatabaseTypeId:{_text(database_type_id)},"
        f"ConnectionId:{_text(connection_id)},"
        f"TenantCode:{_text(tenant_code)},"
        f"Roles:{roles_segment(roles)},"
        f"Match:{RoleMatchMode(match).value}"
    )

def tenant_id_fragment(tenant_id: int) -> str:
    return f"TenantId:{tenant_id},"

def tenant_code_fragment(tenant_code: str) -> str:
    return f"TenantCode:{tenant_code},"

def database_type_fragment(database_type_id: int) -> str:
    return f"DatabaseTypeId:{database_type_id},"

def connection_id_fragment(connection_id: int) -> str:
    return f"ConnectionId:{connection_id},"

def role_fragment(role: DatabaseRole) -> str:
    return f"|{DatabaseRole(role).name}|"

class BaseCache(ABC):
    """
    Cache-aside store used by the resolver, the provisioner and the directory services.
    Implementations never raise: a failing backend behaves like an empty cache.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    async def put(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    async def remove(self, *keys: str) -> None:
        ...

    @abstractmethod
    async def register_connection_key(self, key: str) -> None:
        ...

    @abstractmethod
    async def invalidate_by_fragment(self, fragment: str) -> int:
        """Removes every registered connection key containing ``fragment``."""
        ...

    @abstractmethod
    async def index_connection_key(self, key: str, dependencies: Iterable[str]) -> None:
        """Records that ``key`` was resolved through each entity in ``dependencies``."""
        ...

    @abstractmethod
    async def invalidate_dependency(self, dependency: str) -> int:
        """Removes every connection key indexed under ``dependency``."""
        ...

    async def cache_connection_string(self, key: str, connection_string: str, dependencies: Iterable[str] = ()) -> None:
        await self.put(key, connection_string)
        await self.register_connection_key(key)
        await self.index_connection_key(key, dependencies)

    async def clear_connection_strings(
        self,
        tenant_id: Optional[int] = None,
        database_type_id: Optional[int] = None,
        connection_id: Optional[int] = None,
        tenant_code: Optional[str] = None,
        roles: Optional[Sequence[DatabaseRole]] = None
    ) -> int:
        """Invalidates cached connection strings whose selector embeds any of the given values."""
        fragments = []
        if tenant_id is not None:
            fragments.append(tenant_id_fragment(tenant_id))
        if database_type_id is not None:
            fragments.append(database_type_fragment(database_type_id))
        if connection_id is not None:
            fragments.append(connection_id_fragment(connection_id))
        if tenant_code:
            fragments.append(tenant_code_fragment(tenant_code))
        for role in roles or []:
            fragments.append(role_fragment(role))

        removed = 0
        for fragment in fragments:
            removed += await self.invalidate_by_fragment(fragment)
        return removed

    async def clear_user(self, user_id: int, roles: Sequence[DatabaseRole] = ()) -> int:
        """Drops the cached user views and every connection string that resolved to the user."""
        await self.remove(DATABASE_USERS_KEY, database_user_key(user_id))
        removed = await self.invalidate_dependency(user_dependency(user_id))
        removed += await self.clear_connection_strings(roles=roles)
        return removed

class NullCache(BaseCache):
    """Always empty. Writes are no-ops."""

    async def get(self, key: str) -> Optional[Any]:
        return None

    async def put(self, key: str, value: Any) -> None:
        return None

    async def remove(self, *keys: str) -> None:
        return None

    async def register_connection_key(self, key: str) -> None:
        return None

    async def invalidate_by_fragment(self, fragment: str) -> int:
        return 0

    async def index_connection_key(self, key: str, dependencies: Iterable[str]) -> None:
        return None

    async def invalidate_dependency(self, dependency: str) -> int:
        return 0

class RedisCache(BaseCache):
    """
    Redis backed cache. Values are JSON, the key registry and the dependency
    index are Redis sets. All keys carry ``CACHE_KEY_PREFIX``.
    """
    def __init__(self, redis_service: RedisService, prefix: Optional[str] = None):
        self.redis = redis_service
        self.prefix = settings.CACHE_KEY_PREFIX if prefix is None else prefix

    def _k(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def _dependency_key(self, dependency: str) -> str:
        return self._k(f"dependency:{dependency}")

    async def get(self, key: str) -> Optional[Any]:
        try:
            value = await self.redis.get_json(self._k(key))
        except (RedisError, OSError, ValueError) as e:
            logger.warning(f"Cache read failed for '{key}', treating as a miss: {e}")
            return None
        logger.debug(f"Cache {'hit' if value is not None else 'miss'}: {key}")
        return value

    async def put(self, key: str, value: Any) -> None:
        try:
            await self.redis.set_json(self._k(key), value)
        except (RedisError, OSError, TypeError) as e:
            logger.warning(f"Cache write failed for '{key}': {e}")

    async def remove(self, *keys: str) -> None:
        try:
            await self.redis.delete_key(*[self._k(k) for k in keys])
        except (RedisError, OSError) as e:
            logger.warning(f"Cache delete failed for {list(keys)}: {e}")

    async def register_connection_key(self, key: str) -> None:
        try:
            await self.redis.add_to_set(self._k(CONNECTION_KEYS_REGISTRY), key)
        except (RedisError, OSError) as e:
            logger.warning(f"Could not register connection cache key '{key}': {e}")

    async def invalidate_by_fragment(self, fragment: str) -> int:
        try:
            registered = await self.redis.get_set(self._k(CONNECTION_KEYS_REGISTRY))
            matches = [key for key in registered if fragment in key]
            if not matches:
                return 0
            await self.redis.delete_key(*[self._k(k) for k in matches])
            await self.redis.remove_from_set(self._k(CONNECTION_KEYS_REGISTRY), matches)
        except (RedisError, OSError) as e:
            logger.warning(f"Cache invalidation by fragment '{fragment}' failed: {e}")
            return 0
        logger.info(f"Invalidated {len(matches)} cached connection strings matching '{fragment}'.")
        return len(matches)

    async def index_connection_key(self, key: str, dependencies: Iterable[str]) -> None:
        try:
            for dependency in dependencies:
                await self.redis.add_to_set(self._dependency_key(dependency), key)
        except (RedisError, OSError) as e:
            logger.warning(f"Could not index connection cache key '{key}': {e}")

    async def invalidate_dependency(self, dependency: str) -> int:
        try:
            keys = await self.redis.get_set(self._dependency_key(dependency))
            if keys:
                await self.redis.delete_key(*[self._k(k) for k in keys])
                await self.redis.remove_from_set(self._k(CONNECTION_KEYS_REGISTRY), keys)
            await self.redis.delete_key(self._dependency_key(dependency))
        except (RedisError, OSError) as e:
            logger.warning(f"Cache invalidation for '{dependency}' failed: {e}")
            return 0
        if keys:
            logger.info(f"Invalidated {len(keys)} cached connection strings resolved through {dependency}.")
        return len(keys)

def build_cache(redis_service: Optional[RedisService]) -> BaseCache:
    if redis_service is None or not settings.CACHE_ENABLED:
        return NullCache()
    return RedisCache(redis_service)
