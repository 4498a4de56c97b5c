# src/dblocator/services/credential/database_user_service.py

import logging
from typing import List, Optional
from dblocator.core.context import AppContext
from dblocator.core.passwords import generate_password
from dblocator.dao.credential.database_user_dao import DatabaseUserDao
from dblocator.dao.credential.provisioning_step_dao import ProvisioningStepDao
from dblocator.dao.directory.database_dao import DatabaseDao
from dblocator.models import Database, DatabaseUser
from dblocator.schemas.credential.database_user_schemas import (
    DatabaseUserCreate, DatabaseUserUpdate, DatabaseUserRead
)
from dblocator.services.cache_service import DATABASE_USERS_KEY, database_user_key
from dblocator.services.exceptions import NotFoundError, ConflictError, ServiceException
from dblocator.services.provisioning.credential_provisioner import CredentialProvisioner

logger = logging.getLogger(__name__)

class DatabaseUserService:
    """
    Logical database users. New rows and database sets are committed first, then
    the provisioner mirrors them on the servers when ``affect_database`` is set.
    Renames and password rotations run on the servers before they are recorded.
    """
    def __init__(self, context: AppContext):
        self.context = context
        self.db = context.db
        self.cache = context.cache
        self.cipher = context.cipher
        self.dao = DatabaseUserDao(self.db)
        self.database_dao = DatabaseDao(self.db)
        self.step_dao = ProvisioningStepDao(self.db)
        self.provisioner = CredentialProvisioner(context)

    async def create_user(self, data: DatabaseUserCreate) -> DatabaseUserRead:
        """
        Records the user, then creates its login and database users.

        Re-creating an existing user with the same databases resumes the physical
        provisioning when ``affect_database`` is set, using the stored password;
        targets that already completed are skipped.
        """
        databases = await self._load_databases(data.database_ids)
        existing = await self.dao.get_by_user_name(data.user_name)
        if existing:
            return await self._resume_create(existing.id, data, databases)

        password = data.password or generate_password()
        user = DatabaseUser(user_name=data.user_name, password=self.cipher.encrypt(password))
        user.databases = databases
        user = await self.dao.add(user)
        await self.db.commit()
        user = await self._reload(user.id)
        await self.cache.remove(DATABASE_USERS_KEY)
        logger.info(f"Created database user {user.id} ({user.user_name}) on {len(databases)} database(s).")

        if data.affect_database:
            await self.provisioner.provision(user, password, roles=[])
        return DatabaseUserRead.model_validate(user)

    async def _resume_create(self, user_id: int, data: DatabaseUserCreate, databases: List[Database]) -> DatabaseUserRead:
        user = await self._get_or_404(user_id)
        same_databases = {d.id for d in user.databases} == {d.id for d in databases}
        if not data.affect_database or not same_databases:
            raise ConflictError(f"Database user '{data.user_name}' already exists.")

        password = self._decrypt(user)
        if data.password and data.password != password:
            raise ConflictError(f"Database user '{data.user_name}' already exists with a different password.")

        logger.info(f"Database user {user.id} ({user.user_name}) already recorded; resuming provisioning.")
        await self.provisioner.provision(user, password)
        return DatabaseUserRead.model_validate(user)

    async def get_user(self, user_id: int) -> DatabaseUserRead:
        cached = await self.cache.get(database_user_key(user_id))
        if cached is not None:
            return DatabaseUserRead.model_validate(cached)
        result = DatabaseUserRead.model_validate(await self._get_or_404(user_id))
        await self.cache.put(database_user_key(user_id), result.model_dump(mode="json"))
        return result

    async def list_users(self, database_id: Optional[int] = None) -> List[DatabaseUserRead]:
        if database_id is not None:
            if not await self.database_dao.get_by_pk(database_id):
                raise NotFoundError(f"Database with ID {database_id} not found.")
            ids = [u.id for u in await self.dao.list_for_database(database_id)]
            return [DatabaseUserRead.model_validate(await self._get_or_404(i)) for i in ids]

        cached = await self.cache.get(DATABASE_USERS_KEY)
        if cached is not None:
            return [DatabaseUserRead.model_validate(u) for u in cached]
        users = [DatabaseUserRead.model_validate(u) for u in await self.dao.list_with_relations()]
        await self.cache.put(DATABASE_USERS_KEY, [u.model_dump(mode="json") for u in users])
        return users

    async def update_user(self, user_id: int, data: DatabaseUserUpdate) -> DatabaseUserRead:
        """
        Renames, rotates the password and/or replaces the set of owned databases.

        The rename and the password rotation run on the servers before the
        directory records them, so a failure leaves the old name and password in
        place and the same update can be retried. The database set is recorded
        first, then the user is dropped from removed databases and provisioned on
        the whole new set, skipping targets that already completed.
        """
        user = await self._get_or_404(user_id)
        old_name = user.user_name
        old_databases = list(user.databases)

        rename = bool(data.user_name) and data.user_name != old_name
        if rename and await self.dao.get_by_user_name(data.user_name):
            raise ConflictError(f"Database user '{data.user_name}' already exists.")
        new_databases = None
        if data.database_ids is not None:
            new_databases = await self._load_databases(data.database_ids)

        if rename:
            user.user_name = data.user_name
            if data.affect_database:
                try:
                    await self.provisioner.rename_user(user, old_name, old_databases)
                except Exception:
                    user.user_name = old_name
                    raise
            await self.db.commit()
            logger.info(f"Renamed database user {user.id} from {old_name} to {user.user_name}.")

        if data.password:
            if data.affect_database:
                await self.provisioner.change_password(user, data.password, old_databases)
            user.password = self.cipher.encrypt(data.password)
            await self.db.commit()

        removed: list[Database] = []
        if new_databases is not None:
            new_ids = {d.id for d in new_databases}
            removed = [d for d in old_databases if d.id not in new_ids]
            user.databases = new_databases
            await self.db.flush()
            await self.db.commit()
        user = await self._reload(user.id)

        if data.affect_database and new_databases is not None:
            if removed:
                await self.provisioner.deprovision(user, removed)
            await self.provisioner.provision(user, data.password or self._decrypt(user), user.databases)

        await self.cache.clear_user(user.id, user.granted_roles)
        logger.info(f"Updated database user {user.id} ({user.user_name}).")
        return DatabaseUserRead.model_validate(user)

    async def delete_user(self, user_id: int, affect_database: bool = True) -> None:
        """
        Refused while roles remain. The physical drop runs before the row is
        deleted, so a failed drop leaves the user in place for a retry.
        """
        user = await self._get_or_404(user_id)
        if user.roles:
            raise ConflictError(
                f"Database user {user_id} still has roles ({', '.join(r.name for r in user.granted_roles)}); revoke them first."
            )

        if affect_database:
            await self.provisioner.deprovision(user)

        await self.step_dao.clear_user(user.id)
        await self.dao.remove(user)
        await self.db.commit()
        await self.cache.clear_user(user_id)
        logger.info(f"Deleted database user {user_id} ({user.user_name}).")

    async def _get_or_404(self, user_id: int) -> DatabaseUser:
        user = await self.dao.get_with_relations(user_id)
        if not user:
            raise NotFoundError(f"Database user with ID {user_id} not found.")
        return user

    async def _reload(self, user_id: int) -> DatabaseUser:
        return await self.dao.get_with_relations(user_id)

    async def _load_databases(self, database_ids: List[int]) -> List[Database]:
        databases = []
        for database_id in dict.fromkeys(database_ids):
            database = await self.database_dao.get_with_relations(database_id)
            if not database:
                raise NotFoundError(f"Database with ID {database_id} not found.")
            databases.append(database)
        return databases

    def _decrypt(self, user: DatabaseUser) -> str:
        try:
            return self.cipher.decrypt(user.password)
        except ValueError:
            raise ServiceException(f"Stored password of database user {user.id} cannot be decrypted with the configured key.")
