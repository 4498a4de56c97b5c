# src/dblocator/services/provisioning/credential_provisioner.py

import logging
from typing import Iterable, Optional, Sequence
from dblocator.core.context import AppContext
from dblocator.core.sql import build_command, escape_literal, sanitize_identifier
from dblocator.dao.credential.provisioning_step_dao import ProvisioningStepDao
from dblocator.models import Database, DatabaseRole, DatabaseServer, DatabaseUser
from dblocator.services.cache_service import database_dependency, server_dependency
from dblocator.services.exceptions import InvalidRequestError

logger = logging.getLogger(__name__)

LOGIN_STEP = "login"
USER_STEP = "user"

def role_step(role: DatabaseRole) -> str:
    return f"role:{DatabaseRole(role).name}"

def server_target(server: DatabaseServer) -> str:
    return f"server:{server.id}"

def database_target(database: Database) -> str:
    return f"database:{database.id}"

def distinct_servers(databases: Iterable[Database]) -> list[DatabaseServer]:
    servers: dict[int, DatabaseServer] = {}
    for database in databases:
        servers.setdefault(database.server.id, database.server)
    return list(servers.values())

class CredentialProvisioner:
    """
    Creates and drops SQL logins, database users and fixed role memberships for
    a logical database user on every physical database it owns.

    Each physical step runs on its own autocommit connection. There is no
    transaction across targets, so each completed step leaves a row in
    ``provisioning_steps``: create and grant steps skip targets that already
    carry the marker, drop and revoke steps only touch targets that do, and
    re-running an operation after a partial failure resumes where it stopped.

    ``user.databases`` (with servers) and ``user.roles`` must be loaded.
    """
    def __init__(self, context: AppContext):
        self.context = context
        self.db = context.db
        self.cache = context.cache
        self.executor = context.executor
        self.step_dao = ProvisioningStepDao(self.db)

    # ==============================================================================
    # 1. Logins (one per server)
    # ==============================================================================

    async def create_login(self, user: DatabaseUser, password: str, databases: Optional[Sequence[Database]] = None) -> None:
        user_name = self._identifier(user.user_name)
        command = f"create login [{user_name}] with password = '{escape_literal(password)}'"
        for server in distinct_servers(self._targets(user, databases)):
            await self._step(
                user, LOGIN_STEP, server_target(server), server,
                command, f"create login {user_name}", create=True
            )
        await self._invalidate_user(user)

    async def drop_login(self, user: DatabaseUser, databases: Optional[Sequence[Database]] = None) -> None:
        user_name = self._identifier(user.user_name)
        for server in distinct_servers(self._targets(user, databases)):
            await self._step(
                user, LOGIN_STEP, server_target(server), server,
                f"drop login [{user_name}]", f"drop login {user_name}", create=False
            )
        await self._invalidate_user(user)

    async def change_password(self, user: DatabaseUser, password: str, databases: Optional[Sequence[Database]] = None) -> None:
        """Rotates the password of the login on every server hosting one of the user's databases."""
        user_name = self._identifier(user.user_name)
        command = f"alter login [{user_name}] with password = '{escape_literal(password)}'"
        for server in distinct_servers(self._targets(user, databases)):
            await self._execute(server, command, f"change password of login {user_name}", server.name)
        await self._invalidate_user(user)

    # ==============================================================================
    # 2. Database users (one per database)
    # ==============================================================================

    async def create_user(self, user: DatabaseUser, databases: Optional[Sequence[Database]] = None) -> None:
        user_name = self._identifier(user.user_name)
        for database in self._targets(user, databases):
            db_name = self._identifier(database.name)
            await self._step(
                user, USER_STEP, database_target(database), database.server,
                f"use [{db_name}]; create user [{user_name}] for login [{user_name}]",
                f"create user {user_name} in {db_name}", create=True
            )
        await self._invalidate_user(user)

    async def drop_user(self, user: DatabaseUser, databases: Optional[Sequence[Database]] = None) -> None:
        user_name = self._identifier(user.user_name)
        for database in self._targets(user, databases):
            db_name = self._identifier(database.name)
            await self._step(
                user, USER_STEP, database_target(database), database.server,
                f"use [{db_name}]; drop user [{user_name}]",
                f"drop user {user_name} from {db_name}", create=False
            )
        await self._invalidate_user(user)

    async def rename_user(self, user: DatabaseUser, old_user_name: str, databases: Optional[Sequence[Database]] = None) -> None:
        """Renames the database users and the logins from ``old_user_name`` to ``user.user_name``."""
        old_name = self._identifier(old_user_name)
        new_name = self._identifier(user.user_name)
        if old_name == new_name:
            return
        targets = self._targets(user, databases)
        for database in targets:
            db_name = self._identifier(database.name)
            await self._execute(
                database.server,
                f"use [{db_name}]; alter user [{old_name}] with name = [{new_name}]",
                f"rename user {old_name} to {new_name} in {db_name}", database.name
            )
        for server in distinct_servers(targets):
            await self._execute(
                server,
                f"alter login [{old_name}] with name = [{new_name}]",
                f"rename login {old_name} to {new_name}", server.name
            )
        await self._invalidate_user(user)

    # ==============================================================================
    # 3. Fixed database roles
    # ==============================================================================

    async def grant_role(self, user: DatabaseUser, role: DatabaseRole, databases: Optional[Sequence[Database]] = None) -> None:
        user_name = self._identifier(user.user_name)
        role_name = self._identifier(DatabaseRole(role).sql_name)
        for database in self._targets(user, databases):
            db_name = self._identifier(database.name)
            await self._step(
                user, role_step(role), database_target(database), database.server,
                f"use [{db_name}]; exec sp_addrolemember '{role_name}', '{user_name}';",
                f"add {user_name} to {role_name} in {db_name}", create=True
            )
        await self._invalidate_user(user, [role])

    async def revoke_role(self, user: DatabaseUser, role: DatabaseRole, databases: Optional[Sequence[Database]] = None) -> None:
        user_name = self._identifier(user.user_name)
        role_name = self._identifier(DatabaseRole(role).sql_name)
        for database in self._targets(user, databases):
            db_name = self._identifier(database.name)
            await self._step(
                user, role_step(role), database_target(database), database.server,
                f"use [{db_name}]; exec sp_droprolemember '{role_name}', '{user_name}';",
                f"remove {user_name} from {role_name} in {db_name}", create=False
            )
        await self._invalidate_user(user, [role])

    # ==============================================================================
    # 4. Composite fan-outs
    # ==============================================================================

    async def provision(
        self,
        user: DatabaseUser,
        password: str,
        databases: Optional[Sequence[Database]] = None,
        roles: Optional[Sequence[DatabaseRole]] = None
    ) -> None:
        """Login on each server, then user and the granted roles in each database."""
        targets = self._targets(user, databases)
        await self.create_login(user, password, targets)
        await self.create_user(user, targets)
        for role in (user.granted_roles if roles is None else roles):
            await self.grant_role(user, role, targets)

    async def deprovision(self, user: DatabaseUser, databases: Optional[Sequence[Database]] = None) -> None:
        """
        Drops the user from each target database, then the login on every
        server where the user keeps no other database.
        """
        targets = self._targets(user, databases)
        target_ids = {d.id for d in targets}
        await self.drop_user(user, targets)

        remaining_servers = {d.server_id for d in user.databases if d.id not in target_ids}
        orphaned = [d for d in targets if d.server_id not in remaining_servers]
        if orphaned:
            await self.drop_login(user, orphaned)

        # Role markers of dropped database users are meaningless now
        for database in targets:
            for role in DatabaseRole:
                await self.step_dao.clear(user.id, role_step(role), database_target(database))
        await self.db.commit()

    # ==============================================================================
    # 5. Physical databases
    # ==============================================================================

    async def create_database(self, database: Database) -> None:
        db_name = self._identifier(database.name)
        await self._execute(database.server, f"create database [{db_name}]", f"create database {db_name}", database.server.name)

    async def rename_database(self, database: Database, old_name: str) -> None:
        old = self._identifier(old_name)
        new = self._identifier(database.name)
        if old == new:
            return
        await self._execute(
            database.server,
            f"alter database [{old}] modify name = [{new}]",
            f"rename database {old} to {new}", database.server.name
        )
        await self.cache.invalidate_dependency(database_dependency(database.id))

    async def drop_database(self, database: Database) -> None:
        db_name = self._identifier(database.name)
        await self._execute(database.server, f"drop database [{db_name}]", f"drop database {db_name}", database.server.name)
        await self.cache.invalidate_dependency(database_dependency(database.id))
        await self.cache.invalidate_dependency(server_dependency(database.server.id))

    # ==============================================================================
    # 6. Helpers
    # ==============================================================================

    def _targets(self, user: DatabaseUser, databases: Optional[Sequence[Database]]) -> list[Database]:
        return list(user.databases if databases is None else databases)

    def _identifier(self, value: str) -> str:
        try:
            return sanitize_identifier(value)
        except ValueError as e:
            raise InvalidRequestError(str(e))

    async def _execute(self, server: DatabaseServer, command_text: str, description: str, target: str) -> None:
        try:
            command = build_command(
                command_text,
                is_linked_server=server.is_linked_server,
                linked_server_host=server.linked_host if server.is_linked_server else None,
            )
        except ValueError as e:
            raise InvalidRequestError(str(e))
        await self.executor.execute(command, description, target)

    async def _step(
        self,
        user: DatabaseUser,
        step: str,
        target: str,
        server: DatabaseServer,
        command_text: str,
        description: str,
        create: bool
    ) -> None:
        """
        Runs one marker-guarded step. ``create`` steps run when the marker is
        absent and record it, the others run when it is present and clear it.
        The marker change is committed right away.
        """
        done = await self.step_dao.is_done(user.id, step, target)
        if create and done:
            logger.info(f"Skipping '{description}': already completed for {target}.")
            return
        if not create and not done:
            logger.info(f"Skipping '{description}': never completed for {target}.")
            return

        await self._execute(server, command_text, description, f"{target} ({server.name})")

        if create:
            await self.step_dao.mark_done(user.id, step, target)
        else:
            await self.step_dao.clear(user.id, step, target)
        await self.db.commit()

    async def _invalidate_user(self, user: DatabaseUser, roles: Sequence[DatabaseRole] = ()) -> None:
        await self.cache.clear_user(user.id, roles)
