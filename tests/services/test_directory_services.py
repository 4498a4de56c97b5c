# tests/services/test_directory_services.py

import pytest
from unittest.mock import AsyncMock
from sqlalchemy.ext.asyncio import AsyncSession
from dblocator.core.context import AppContext
from dblocator.core.encryption import SecretCipher
from dblocator.schemas.directory.connection_schemas import ConnectionCreate
from dblocator.schemas.directory.database_schemas import DatabaseCreate, DatabaseUpdate
from dblocator.schemas.directory.database_server_schemas import DatabaseServerCreate, DatabaseServerUpdate
from dblocator.schemas.directory.database_type_schemas import DatabaseTypeCreate
from dblocator.schemas.directory.tenant_schemas import TenantCreate, TenantUpdate
from dblocator.services.cache_service import TENANTS_KEY, tenant_code_key
from dblocator.services.directory.connection_service import ConnectionService
from dblocator.services.directory.database_server_service import DatabaseServerService
from dblocator.services.directory.database_service import DatabaseService
from dblocator.services.directory.database_type_service import DatabaseTypeService
from dblocator.services.directory.tenant_service import TenantService
from dblocator.services.exceptions import ConflictError, InvalidRequestError, NotFoundError
from tests.conftest import Directory, add_user, executed_commands

# ==============================================================================
# 1. Tenants
# ==============================================================================

class TestTenantService:

    async def test_create_and_get_by_code(self, context: AppContext, fake_redis):
        """[Success path] A created tenant is found by its code, and the lookup is cached."""
        service = TenantService(context)
        created = await service.create_tenant(TenantCreate(name="Globex", code="GLX"))

        found = await service.get_tenant_by_code("GLX")

        assert found.id == created.id
        assert "test:" + tenant_code_key("GLX") in fake_redis.values

    async def test_duplicate_name_or_code_conflicts(self, context: AppContext, acme: Directory):
        service = TenantService(context)
        with pytest.raises(ConflictError):
            await service.create_tenant(TenantCreate(name="Acme"))
        with pytest.raises(ConflictError):
            await service.create_tenant(TenantCreate(name="Other", code="ACME"))

    async def test_unknown_code_is_not_found(self, context: AppContext):
        with pytest.raises(NotFoundError):
            await TenantService(context).get_tenant_by_code("NOPE")

    async def test_update_invalidates_cached_lists(self, context: AppContext, acme: Directory, fake_redis):
        service = TenantService(context)
        await service.list_tenants()
        assert "test:" + TENANTS_KEY in fake_redis.values

        updated = await service.update_tenant(acme.tenant.id, TenantUpdate(code="ACM"))

        assert updated.code == "ACM"
        assert "test:" + TENANTS_KEY not in fake_redis.values
        with pytest.raises(NotFoundError):
            await service.get_tenant_by_code("ACME")

    async def test_delete_refused_while_connections_exist(self, context: AppContext, acme: Directory):
        with pytest.raises(ConflictError):
            await TenantService(context).delete_tenant(acme.tenant.id)

# ==============================================================================
# 2. Servers and Types
# ==============================================================================

class TestDatabaseServerService:

    async def test_network_identifiers_are_unique(self, context: AppContext, acme: Directory):
        service = DatabaseServerService(context)
        with pytest.raises(ConflictError):
            await service.create_server(DatabaseServerCreate(name="sql99", host_name="sql01"))

    async def test_clearing_every_network_identifier_is_rejected(self, context: AppContext, acme: Directory):
        with pytest.raises(InvalidRequestError):
            await DatabaseServerService(context).update_server(acme.server.id, DatabaseServerUpdate(host_name=""))

    async def test_delete_refused_while_hosting_databases(self, context: AppContext, acme: Directory):
        with pytest.raises(ConflictError):
            await DatabaseServerService(context).delete_server(acme.server.id)

class TestDatabaseTypeService:

    async def test_duplicate_name_conflicts(self, context: AppContext, acme: Directory):
        with pytest.raises(ConflictError):
            await DatabaseTypeService(context).create_database_type(DatabaseTypeCreate(name="Billing"))

    async def test_delete_refused_while_in_use(self, context: AppContext, acme: Directory):
        with pytest.raises(ConflictError):
            await DatabaseTypeService(context).delete_database_type(acme.database_type.id)

    async def test_unused_type_can_be_deleted(self, context: AppContext):
        service = DatabaseTypeService(context)
        created = await service.create_database_type(DatabaseTypeCreate(name="Audit"))
        await service.delete_database_type(created.id)
        with pytest.raises(NotFoundError):
            await service.get_database_type(created.id)

# ==============================================================================
# 3. Databases
# ==============================================================================

class TestDatabaseService:

    async def test_create_runs_create_database(self, context: AppContext, executor_mock: AsyncMock, acme: Directory):
        created = await DatabaseService(context).create_database(DatabaseCreate(
            name="AcmeReporting", server_id=acme.server.id, database_type_id=acme.database_type.id
        ))

        assert created.server.name == "sql01"
        assert executed_commands(executor_mock) == ["create database [AcmeReporting]"]

    async def test_create_without_affect_database_issues_no_sql(self, context: AppContext, executor_mock: AsyncMock, acme: Directory):
        await DatabaseService(context).create_database(DatabaseCreate(
            name="AcmeReporting", server_id=acme.server.id,
            database_type_id=acme.database_type.id, affect_database=False
        ))
        executor_mock.execute.assert_not_awaited()

    async def test_rename_runs_alter_database(self, context: AppContext, executor_mock: AsyncMock, acme: Directory):
        await DatabaseService(context).update_database(acme.database.id, DatabaseUpdate(name="AcmeBilling2"))
        assert executed_commands(executor_mock) == ["alter database [AcmeBilling] modify name = [AcmeBilling2]"]

    async def test_duplicate_name_on_server_conflicts(self, context: AppContext, acme: Directory):
        with pytest.raises(ConflictError):
            await DatabaseService(context).create_database(DatabaseCreate(
                name="AcmeBilling", server_id=acme.server.id, database_type_id=acme.database_type.id
            ))

    async def test_unknown_server_is_not_found(self, context: AppContext, acme: Directory):
        with pytest.raises(NotFoundError):
            await DatabaseService(context).create_database(DatabaseCreate(
                name="Orphan", server_id=999, database_type_id=acme.database_type.id
            ))

    async def test_delete_refused_while_users_remain(
        self, context: AppContext, executor_mock: AsyncMock, acme: Directory, db_session: AsyncSession, cipher: SecretCipher
    ):
        service = DatabaseService(context)
        created = await service.create_database(DatabaseCreate(
            name="AcmeReporting", server_id=acme.server.id,
            database_type_id=acme.database_type.id, affect_database=False
        ))
        database = await service.dao.get_by_pk(created.id)
        await add_user(db_session, cipher, "report_reader", "P@ssw0rd1", [database])

        with pytest.raises(ConflictError):
            await service.delete_database(created.id)
        executor_mock.execute.assert_not_awaited()

    async def test_delete_drops_the_physical_database(self, context: AppContext, executor_mock: AsyncMock, acme: Directory):
        service = DatabaseService(context)
        created = await service.create_database(DatabaseCreate(
            name="Scratch", server_id=acme.server.id,
            database_type_id=acme.database_type.id, affect_database=False
        ))

        await service.delete_database(created.id)

        assert executed_commands(executor_mock) == ["drop database [Scratch]"]
        with pytest.raises(NotFoundError):
            await service.get_database(created.id)

# ==============================================================================
# 4. Connections
# ==============================================================================

class TestConnectionService:

    async def test_second_database_of_same_type_conflicts(self, context: AppContext, acme: Directory):
        """[Failure path] Two databases of one type would make tenant+type resolution ambiguous."""
        other = await DatabaseService(context).create_database(DatabaseCreate(
            name="AcmeBillingArchive", server_id=acme.server.id,
            database_type_id=acme.database_type.id, affect_database=False
        ))
        with pytest.raises(ConflictError):
            await ConnectionService(context).create_connection(
                ConnectionCreate(tenant_id=acme.tenant.id, database_id=other.id)
            )

    async def test_create_and_delete(self, context: AppContext, acme: Directory):
        reporting_type = await DatabaseTypeService(context).create_database_type(DatabaseTypeCreate(name="Reporting"))
        database = await DatabaseService(context).create_database(DatabaseCreate(
            name="AcmeReporting", server_id=acme.server.id,
            database_type_id=reporting_type.id, affect_database=False
        ))
        service = ConnectionService(context)

        created = await service.create_connection(ConnectionCreate(tenant_id=acme.tenant.id, database_id=database.id))
        assert {c.id for c in await service.list_connections()} == {acme.connection.id, created.id}

        await service.delete_connection(created.id)
        with pytest.raises(NotFoundError):
            await service.get_connection(created.id)

    async def test_unknown_tenant_is_not_found(self, context: AppContext, acme: Directory):
        with pytest.raises(NotFoundError):
            await ConnectionService(context).create_connection(
                ConnectionCreate(tenant_id=999, database_id=acme.database.id)
            )
