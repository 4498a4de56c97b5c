# tests/conftest.py

import os

# Settings are read at import time: point the Directory Store at SQLite before
# anything from dblocator is imported.
os.environ["DATABASE_URL_OVERRIDE"] = "sqlite+aiosqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENCRYPTION_KEY", "test-encryption-key")
os.environ.setdefault("CACHE_ENABLED", "true")

from dataclasses import dataclass, field
from typing import AsyncGenerator, Dict, Iterable, List, Optional, Sequence
import pytest
from httpx import AsyncClient, ASGITransport
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from sqlalchemy.pool import StaticPool
from unittest.mock import AsyncMock

from dblocator.main import app
from dblocator.api.dependencies.context import get_base_context
from dblocator.core.config import settings
from dblocator.core.context import AppContext
from dblocator.core.encryption import SecretCipher
from dblocator.core.security import create_access_token
from dblocator.db.base import Base
from dblocator.db.init_db import seed_database_roles
from dblocator.models import (
    Tenant, DatabaseServer, DatabaseType, Database, Connection,
    DatabaseUser, DatabaseUserRole, DatabaseRole
)
from dblocator.services.cache_service import RedisCache
from dblocator.services.redis_service import RedisService
from dblocator.services.provisioning.sql_executor import SqlCommandExecutor

TEST_ENCRYPTION_KEY = "test-encryption-key"

# ==============================================================================
# 1. Directory Store Fixtures
# ==============================================================================

@pytest.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """A fresh in-memory SQLite Directory Store per test, with the role reference rows seeded."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    SeedSession = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with SeedSession() as db:
        await seed_database_roles(db)
        await db.commit()

    yield engine
    await engine.dispose()

@pytest.fixture(scope="function")
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    TestSessionLocal = async_sessionmaker(
        autocommit=False, autoflush=False, expire_on_commit=False, bind=test_engine, class_=AsyncSession
    )
    async with TestSessionLocal() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()

# ==============================================================================
# 2. Collaborator Doubles
# ==============================================================================

class FakeRedis:
    """In-memory stand-in for the redis.asyncio client calls RedisService makes."""
    def __init__(self):
        self.values: Dict[str, str] = {}
        self.sets: Dict[str, set] = {}

    async def get(self, key):
        return self.values.get(key)

    async def set(self, key, value):
        self.values[key] = value
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.values.pop(key, None) is not None:
                removed += 1
            if self.sets.pop(key, None) is not None:
                removed += 1
        return removed

    async def sadd(self, key, *members):
        bucket = self.sets.setdefault(key, set())
        before = len(bucket)
        bucket.update(members)
        return len(bucket) - before

    async def smembers(self, key):
        return set(self.sets.get(key, set()))

    async def srem(self, key, *members):
        bucket = self.sets.get(key, set())
        removed = len(bucket & set(members))
        bucket.difference_update(members)
        return removed

    async def aclose(self):
        return None

class FailingRedis:
    """Every call fails the way an unreachable Redis server does."""
    def __getattr__(self, name):
        async def _fail(*args, **kwargs):
            raise RedisConnectionError("Connection refused")
        return _fail

@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()

@pytest.fixture
def redis_service(fake_redis: FakeRedis) -> RedisService:
    return RedisService(client=fake_redis)

@pytest.fixture
def cache(redis_service: RedisService) -> RedisCache:
    return RedisCache(redis_service, prefix="test:")

@pytest.fixture
def cipher() -> SecretCipher:
    return SecretCipher(TEST_ENCRYPTION_KEY)

@pytest.fixture
def executor_mock() -> AsyncMock:
    """Records every dynamic SQL batch instead of running it."""
    return AsyncMock(spec=SqlCommandExecutor)

def executed_commands(executor: AsyncMock) -> List[str]:
    return [c.args[0] for c in executor.execute.await_args_list]

# ==============================================================================
# 3. AppContext and Client Fixtures
# ==============================================================================

@pytest.fixture
def context(db_session: AsyncSession, cache: RedisCache, cipher: SecretCipher, executor_mock: AsyncMock) -> AppContext:
    return AppContext(db=db_session, cache=cache, cipher=cipher, executor=executor_mock)

@pytest.fixture
async def client(context: AppContext) -> AsyncGenerator[AsyncClient, None]:
    """
    Overrides only the base context; authentication still runs for real.
    """
    app.dependency_overrides[get_base_context] = lambda: context

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()

@pytest.fixture
def admin_headers() -> Dict[str, str]:
    token = create_access_token("admin@example.com", scopes=[settings.ADMIN_SCOPE])
    return {"Authorization": f"Bearer {token}"}

# ==============================================================================
# 4. Directory Data Helpers
# ==============================================================================

@dataclass
class Directory:
    tenant: Tenant
    server: DatabaseServer
    database_type: DatabaseType
    database: Database
    connection: Connection
    users: List[DatabaseUser] = field(default_factory=list)

async def add_user(
    db: AsyncSession,
    cipher: SecretCipher,
    user_name: str,
    password: str,
    databases: Sequence[Database],
    roles: Iterable[DatabaseRole] = ()
) -> DatabaseUser:
    user = DatabaseUser(
        user_name=user_name,
        password=cipher.encrypt(password),
        databases=list(databases),
        roles=[DatabaseUserRole(role_id=int(r)) for r in roles],
    )
    db.add(user)
    await db.flush()
    await db.commit()
    return user

async def build_directory(
    db: AsyncSession,
    tenant_name: str = "Acme",
    tenant_code: Optional[str] = "ACME",
    server_name: str = "sql01",
    host_name: Optional[str] = "sql01",
    fully_qualified_domain_name: Optional[str] = None,
    ip_address: Optional[str] = None,
    is_linked_server: bool = False,
    database_type_id: int = 3,
    database_type_name: str = "Billing",
    database_name: str = "AcmeBilling",
    use_trusted_connection: bool = False,
) -> Directory:
    """One tenant linked to one database of one type on one server."""
    tenant = Tenant(name=tenant_name, code=tenant_code, status=1)
    server = DatabaseServer(
        name=server_name,
        host_name=host_name,
        fully_qualified_domain_name=fully_qualified_domain_name,
        ip_address=ip_address,
        is_linked_server=is_linked_server,
        status=1,
    )
    database_type = DatabaseType(id=database_type_id, name=database_type_name)
    db.add_all([tenant, server, database_type])
    await db.flush()

    database = Database(
        name=database_name,
        server_id=server.id,
        database_type_id=database_type.id,
        status=1,
        use_trusted_connection=use_trusted_connection,
    )
    db.add(database)
    await db.flush()

    connection = Connection(tenant_id=tenant.id, database_id=database.id)
    db.add(connection)
    await db.flush()
    await db.commit()
    return Directory(tenant, server, database_type, database, connection)

@pytest.fixture
async def acme(db_session: AsyncSession, cipher: SecretCipher) -> Directory:
    """
    Tenant "Acme" (code "ACME") on database "AcmeBilling" (type "Billing", id 3)
    hosted by "sql01", with "acme_writer" holding DataWriter.
    """
    directory = await build_directory(db_session)
    writer = await add_user(
        db_session, cipher, "acme_writer", "P@ssw0rd1", [directory.database], [DatabaseRole.DataWriter]
    )
    directory.users.append(writer)
    return directory
