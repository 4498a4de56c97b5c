# tests/services/test_credential_services.py

import pytest
from unittest.mock import AsyncMock
from sqlalchemy.ext.asyncio import AsyncSession
from dblocator.core.context import AppContext
from dblocator.core.encryption import SecretCipher
from dblocator.core.passwords import is_strong_password
from dblocator.dao.credential.database_user_dao import DatabaseUserDao
from dblocator.models import DatabaseRole
from dblocator.schemas.credential.database_user_schemas import (
    DatabaseUserCreate, DatabaseUserUpdate, DatabaseUserRoleCreate
)
from dblocator.schemas.directory.database_schemas import DatabaseCreate
from dblocator.services.credential.database_user_role_service import DatabaseUserRoleService
from dblocator.services.credential.database_user_service import DatabaseUserService
from dblocator.services.directory.database_service import DatabaseService
from dblocator.services.exceptions import ConflictError, NotFoundError, ProvisioningError
from tests.conftest import Directory, executed_commands

# ==============================================================================
# 1. Database Users
# ==============================================================================

class TestDatabaseUserService:

    async def test_create_generates_and_encrypts_a_strong_password(
        self, context: AppContext, executor_mock: AsyncMock, acme: Directory, db_session: AsyncSession, cipher: SecretCipher
    ):
        """[Success path] Omitting the password generates one; only its ciphertext is stored."""
        created = await DatabaseUserService(context).create_user(
            DatabaseUserCreate(user_name="svc_user", database_ids=[acme.database.id])
        )

        stored = await DatabaseUserDao(db_session).get_by_pk(created.id)
        password = cipher.decrypt(stored.password)
        assert stored.password != password
        assert is_strong_password(password)
        assert executed_commands(executor_mock) == [
            f"create login [svc_user] with password = '{password}'",
            "use [AcmeBilling]; create user [svc_user] for login [svc_user]",
        ]

    async def test_duplicate_user_name_conflicts(self, context: AppContext, acme: Directory):
        with pytest.raises(ConflictError):
            await DatabaseUserService(context).create_user(
                DatabaseUserCreate(user_name="acme_writer", database_ids=[acme.database.id], affect_database=False)
            )

    async def test_unknown_database_is_not_found(self, context: AppContext, executor_mock: AsyncMock, acme: Directory):
        with pytest.raises(NotFoundError):
            await DatabaseUserService(context).create_user(
                DatabaseUserCreate(user_name="svc_user", database_ids=[999])
            )
        executor_mock.execute.assert_not_awaited()

    async def test_delete_refused_while_roles_remain(self, context: AppContext, acme: Directory):
        with pytest.raises(ConflictError):
            await DatabaseUserService(context).delete_user(acme.users[0].id)

    async def test_replacing_the_database_set(self, context: AppContext, executor_mock: AsyncMock, acme: Directory):
        """[Success path] Removed databases lose the user; added ones get it, reusing the server login."""
        reporting = await DatabaseService(context).create_database(DatabaseCreate(
            name="AcmeReporting", server_id=acme.server.id,
            database_type_id=acme.database_type.id, affect_database=False
        ))
        service = DatabaseUserService(context)
        created = await service.create_user(
            DatabaseUserCreate(user_name="svc_user", password="P@ssw0rd1", database_ids=[acme.database.id])
        )
        executor_mock.reset_mock()

        updated = await service.update_user(created.id, DatabaseUserUpdate(database_ids=[reporting.id]))

        assert [d.id for d in updated.databases] == [reporting.id]
        assert executed_commands(executor_mock) == [
            "use [AcmeBilling]; drop user [svc_user]",
            "use [AcmeReporting]; create user [svc_user] for login [svc_user]",
        ]

    async def test_rename_and_rotate(self, context: AppContext, executor_mock: AsyncMock, acme: Directory):
        service = DatabaseUserService(context)
        created = await service.create_user(
            DatabaseUserCreate(user_name="svc_user", password="P@ssw0rd1", database_ids=[acme.database.id])
        )
        executor_mock.reset_mock()

        updated = await service.update_user(
            created.id, DatabaseUserUpdate(user_name="svc_user2", password="N3w!Passw0rd")
        )

        assert updated.user_name == "svc_user2"
        assert executed_commands(executor_mock) == [
            "use [AcmeBilling]; alter user [svc_user] with name = [svc_user2]",
            "alter login [svc_user] with name = [svc_user2]",
            "alter login [svc_user2] with password = 'N3w!Passw0rd'",
        ]

    async def test_failed_create_resumes_on_retry(self, context: AppContext, executor_mock: AsyncMock, acme: Directory):
        """[Failure path] The login survives a failed user creation; the retry only creates the database user."""
        service = DatabaseUserService(context)
        request = DatabaseUserCreate(user_name="svc_user", password="P@ssw0rd1", database_ids=[acme.database.id])
        executor_mock.execute.side_effect = [None, ProvisioningError("Cannot create user", target="AcmeBilling")]
        with pytest.raises(ProvisioningError):
            await service.create_user(request)

        executor_mock.execute.side_effect = None
        executor_mock.reset_mock()
        created = await service.create_user(request)

        assert created.user_name == "svc_user"
        assert executed_commands(executor_mock) == [
            "use [AcmeBilling]; create user [svc_user] for login [svc_user]"
        ]

    async def test_recreate_with_other_databases_conflicts(self, context: AppContext, executor_mock: AsyncMock, acme: Directory):
        reporting = await DatabaseService(context).create_database(DatabaseCreate(
            name="AcmeReporting", server_id=acme.server.id,
            database_type_id=acme.database_type.id, affect_database=False
        ))
        with pytest.raises(ConflictError):
            await DatabaseUserService(context).create_user(
                DatabaseUserCreate(user_name="acme_writer", database_ids=[reporting.id])
            )
        executor_mock.execute.assert_not_awaited()

    async def test_failed_rename_keeps_old_name_and_retries(
        self, context: AppContext, executor_mock: AsyncMock, acme: Directory, db_session: AsyncSession, cipher: SecretCipher
    ):
        """[Failure path] A rename the server refused is not recorded, so the same update renames on retry."""
        service = DatabaseUserService(context)
        created = await service.create_user(
            DatabaseUserCreate(user_name="svc_user", password="P@ssw0rd1", database_ids=[acme.database.id])
        )
        update = DatabaseUserUpdate(user_name="svc_user2", password="N3w!Passw0rd")
        executor_mock.reset_mock()
        executor_mock.execute.side_effect = ProvisioningError("Cannot alter user", target="AcmeBilling")
        with pytest.raises(ProvisioningError):
            await service.update_user(created.id, update)

        stored = await DatabaseUserDao(db_session).get_with_relations(created.id)
        assert stored.user_name == "svc_user"
        assert cipher.decrypt(stored.password) == "P@ssw0rd1"

        executor_mock.execute.side_effect = None
        executor_mock.reset_mock()
        updated = await service.update_user(created.id, update)

        assert updated.user_name == "svc_user2"
        assert executed_commands(executor_mock) == [
            "use [AcmeBilling]; alter user [svc_user] with name = [svc_user2]",
            "alter login [svc_user] with name = [svc_user2]",
            "alter login [svc_user2] with password = 'N3w!Passw0rd'",
        ]

    async def test_failed_rotation_after_rename_keeps_the_new_name(
        self, context: AppContext, executor_mock: AsyncMock, acme: Directory, db_session: AsyncSession, cipher: SecretCipher
    ):
        service = DatabaseUserService(context)
        created = await service.create_user(
            DatabaseUserCreate(user_name="svc_user", password="P@ssw0rd1", database_ids=[acme.database.id])
        )
        update = DatabaseUserUpdate(user_name="svc_user2", password="N3w!Passw0rd")
        executor_mock.reset_mock()
        executor_mock.execute.side_effect = [None, None, ProvisioningError("Cannot alter login", target="sql01")]
        with pytest.raises(ProvisioningError):
            await service.update_user(created.id, update)

        stored = await DatabaseUserDao(db_session).get_with_relations(created.id)
        assert stored.user_name == "svc_user2"
        assert cipher.decrypt(stored.password) == "P@ssw0rd1"

        executor_mock.execute.side_effect = None
        executor_mock.reset_mock()
        await service.update_user(created.id, update)

        stored = await DatabaseUserDao(db_session).get_with_relations(created.id)
        assert cipher.decrypt(stored.password) == "N3w!Passw0rd"
        assert executed_commands(executor_mock) == ["alter login [svc_user2] with password = 'N3w!Passw0rd'"]


    async def test_delete_drops_user_then_login(self, context: AppContext, executor_mock: AsyncMock, acme: Directory):
        service = DatabaseUserService(context)
        created = await service.create_user(
            DatabaseUserCreate(user_name="svc_user", password="P@ssw0rd1", database_ids=[acme.database.id])
        )
        executor_mock.reset_mock()

        await service.delete_user(created.id)

        assert executed_commands(executor_mock) == [
            "use [AcmeBilling]; drop user [svc_user]",
            "drop login [svc_user]",
        ]
        with pytest.raises(NotFoundError):
            await service.get_user(created.id)

    async def test_list_by_database(self, context: AppContext, acme: Directory):
        users = await DatabaseUserService(context).list_users(database_id=acme.database.id)
        assert [u.user_name for u in users] == ["acme_writer"]
        assert users[0].roles == [DatabaseRole.DataWriter]

# ==============================================================================
# 2. Role Grants
# ==============================================================================

class TestDatabaseUserRoleService:

    async def test_grant_runs_sp_addrolemember(self, context: AppContext, executor_mock: AsyncMock, acme: Directory):
        service = DatabaseUserRoleService(context)
        granted = await service.grant_role(acme.users[0].id, DatabaseUserRoleCreate(role="DataReader"))

        assert granted.role == DatabaseRole.DataReader
        assert executed_commands(executor_mock) == [
            "use [AcmeBilling]; exec sp_addrolemember 'db_datareader', 'acme_writer';"
        ]
        assert [r.role for r in await service.list_roles(acme.users[0].id)] == [
            DatabaseRole.DataWriter, DatabaseRole.DataReader
        ]

    async def test_duplicate_grant_without_database_conflicts(self, context: AppContext, executor_mock: AsyncMock, acme: Directory):
        with pytest.raises(ConflictError):
            await DatabaseUserRoleService(context).grant_role(
                acme.users[0].id, DatabaseUserRoleCreate(role=DatabaseRole.DataWriter, affect_database=False)
            )
        executor_mock.execute.assert_not_awaited()

    async def test_failed_grant_resumes_on_retry(self, context: AppContext, executor_mock: AsyncMock, acme: Directory):
        """[Failure path] The grant stays recorded after a SQL failure; granting it again runs the missing SQL once."""
        service = DatabaseUserRoleService(context)
        executor_mock.execute.side_effect = ProvisioningError("Cannot add member", target="AcmeBilling")
        with pytest.raises(ProvisioningError):
            await service.grant_role(acme.users[0].id, DatabaseUserRoleCreate(role="DataReader"))
        assert DatabaseRole.DataReader in [r.role for r in await service.list_roles(acme.users[0].id)]

        executor_mock.execute.side_effect = None
        executor_mock.reset_mock()
        granted = await service.grant_role(acme.users[0].id, DatabaseUserRoleCreate(role="DataReader"))

        assert granted.role == DatabaseRole.DataReader
        assert executed_commands(executor_mock) == [
            "use [AcmeBilling]; exec sp_addrolemember 'db_datareader', 'acme_writer';"
        ]

        executor_mock.reset_mock()
        await service.grant_role(acme.users[0].id, DatabaseUserRoleCreate(role="DataReader"))
        executor_mock.execute.assert_not_awaited()


    async def test_revoke_after_grant_runs_sp_droprolemember(self, context: AppContext, executor_mock: AsyncMock, acme: Directory):
        service = DatabaseUserRoleService(context)
        await service.grant_role(acme.users[0].id, DatabaseUserRoleCreate(role=DatabaseRole.DdlAdmin))
        executor_mock.reset_mock()

        await service.revoke_role(acme.users[0].id, DatabaseRole.DdlAdmin)

        assert executed_commands(executor_mock) == [
            "use [AcmeBilling]; exec sp_droprolemember 'db_ddladmin', 'acme_writer';"
        ]

    async def test_revoke_of_never_granted_role_succeeds_silently(self, context: AppContext, executor_mock: AsyncMock, acme: Directory):
        await DatabaseUserRoleService(context).revoke_role(acme.users[0].id, DatabaseRole.Owner)
        executor_mock.execute.assert_not_awaited()

    async def test_unknown_user_is_not_found(self, context: AppContext):
        with pytest.raises(NotFoundError):
            await DatabaseUserRoleService(context).grant_role(999, DatabaseUserRoleCreate(role="DataReader"))
