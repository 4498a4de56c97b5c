# tests/services/test_cache_service.py

import pytest
from unittest.mock import AsyncMock
from dblocator.models import DatabaseRole, RoleMatchMode
from dblocator.services.cache_service import (
    RedisCache, NullCache, build_cache, connection_cache_key, roles_segment,
    user_dependency, database_dependency, CONNECTION_KEYS_REGISTRY
)
from dblocator.services.redis_service import RedisService
from tests.conftest import FakeRedis, FailingRedis

# ==============================================================================
# 1. Key Format
# ==============================================================================

class TestConnectionCacheKey:

    def test_full_key_layout(self):
        key = connection_cache_key(
            tenant_id=1, database_type_id=3,
            roles=[DatabaseRole.DataReader, DatabaseRole.DataWriter],
        )
        assert key == (
            "connection:TenantId:1,DatabaseTypeId:3,ConnectionId:,TenantCode:,"
            "Roles:|DataWriter|DataReader|,Match:any"
        )

    def test_roles_are_sorted_and_deduplicated(self):
        a = connection_cache_key(connection_id=7, roles=[DatabaseRole.DataReader, DatabaseRole.Owner, DatabaseRole.DataReader])
        b = connection_cache_key(connection_id=7, roles=[DatabaseRole.Owner, DatabaseRole.DataReader])
        assert a == b
        assert "Roles:|Owner|DataReader|," in a

    def test_no_roles_uses_sentinel(self):
        assert roles_segment([]) == "none"
        assert roles_segment(None) == "none"
        assert "Roles:none," in connection_cache_key(tenant_code="ACME", database_type_id=3)

    def test_match_mode_is_part_of_the_key(self):
        roles = [DatabaseRole.DataReader]
        assert connection_cache_key(connection_id=1, roles=roles, match=RoleMatchMode.ANY) != \
            connection_cache_key(connection_id=1, roles=roles, match=RoleMatchMode.ALL)

# ==============================================================================
# 2. Redis Cache
# ==============================================================================

class TestRedisCache:

    async def test_put_get_remove(self, cache: RedisCache, fake_redis: FakeRedis):
        await cache.put("tenants", [{"id": 1}])
        assert fake_redis.values["test:tenants"] == '[{"id": 1}]'
        assert await cache.get("tenants") == [{"id": 1}]

        await cache.remove("tenants")
        assert await cache.get("tenants") is None

    async def test_fragment_invalidation_respects_field_boundaries(self, cache: RedisCache):
        """[Edge case] TenantId:1, must not remove keys for tenant 12."""
        key_1 = connection_cache_key(tenant_id=1, database_type_id=3)
        key_12 = connection_cache_key(tenant_id=12, database_type_id=3)
        await cache.cache_connection_string(key_1, "Server=a;")
        await cache.cache_connection_string(key_12, "Server=b;")

        removed = await cache.clear_connection_strings(tenant_id=1)

        assert removed == 1
        assert await cache.get(key_1) is None
        assert await cache.get(key_12) == "Server=b;"

    async def test_role_fragment_invalidation(self, cache: RedisCache, fake_redis: FakeRedis):
        reader_key = connection_cache_key(connection_id=1, roles=[DatabaseRole.DataReader])
        writer_key = connection_cache_key(connection_id=1, roles=[DatabaseRole.DataWriter])
        await cache.cache_connection_string(reader_key, "r")
        await cache.cache_connection_string(writer_key, "w")

        await cache.clear_connection_strings(roles=[DatabaseRole.DataReader])

        assert await cache.get(reader_key) is None
        assert await cache.get(writer_key) == "w"
        assert fake_redis.sets[f"test:{CONNECTION_KEYS_REGISTRY}"] == {writer_key}

    async def test_dependency_invalidation_removes_indexed_keys_only(self, cache: RedisCache):
        key_a = connection_cache_key(connection_id=1, roles=[DatabaseRole.DataReader])
        key_b = connection_cache_key(connection_id=2, roles=[DatabaseRole.DataReader])
        await cache.cache_connection_string(key_a, "a", [user_dependency(10), database_dependency(1)])
        await cache.cache_connection_string(key_b, "b", [user_dependency(11), database_dependency(2)])

        removed = await cache.invalidate_dependency(user_dependency(10))

        assert removed == 1
        assert await cache.get(key_a) is None
        assert await cache.get(key_b) == "b"
        # The index entry itself is gone
        assert await cache.invalidate_dependency(user_dependency(10)) == 0

    async def test_clear_user_drops_user_views_and_connection_strings(self, cache: RedisCache):
        key = connection_cache_key(connection_id=1, roles=[DatabaseRole.DataWriter])
        await cache.cache_connection_string(key, "s", [user_dependency(5)])
        await cache.put("database-user-id-5", {"id": 5})

        await cache.clear_user(5)

        assert await cache.get(key) is None
        assert await cache.get("database-user-id-5") is None

    async def test_failing_backend_degrades_to_a_miss(self):
        """[Failure path] Redis errors never escape the cache layer."""
        cache = RedisCache(RedisService(client=FailingRedis()), prefix="test:")

        assert await cache.get("tenants") is None
        await cache.put("tenants", [1])
        await cache.remove("tenants")
        await cache.cache_connection_string("connection:x", "s", [user_dependency(1)])
        assert await cache.invalidate_by_fragment("TenantId:1,") == 0
        assert await cache.invalidate_dependency(user_dependency(1)) == 0

    async def test_entries_are_stored_without_expiry(self):
        """[Success path] Entries live until invalidated; no TTL is passed to Redis."""
        client = AsyncMock()
        await RedisService(client=client).set_json("test:tenants", [{"id": 1}])
        client.set.assert_awaited_once_with("test:tenants", '[{"id": 1}]')

class TestBuildCache:

    async def test_without_redis_service_is_null(self):
        cache = build_cache(None)
        assert isinstance(cache, NullCache)
        await cache.put("k", "v")
        assert await cache.get("k") is None

    async def test_with_redis_service_is_redis(self, redis_service: RedisService):
        assert isinstance(build_cache(redis_service), RedisCache)
