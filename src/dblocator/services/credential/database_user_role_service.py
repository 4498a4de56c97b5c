# src/dblocator/services/credential/database_user_role_service.py

import logging
from typing import List
from dblocator.core.context import AppContext
from dblocator.dao.credential.database_user_dao import DatabaseUserDao
from dblocator.dao.credential.database_user_role_dao import DatabaseUserRoleDao
from dblocator.models import DatabaseRole, DatabaseUser, DatabaseUserRole
from dblocator.schemas.credential.database_user_schemas import DatabaseUserRoleCreate, DatabaseUserRoleRead
from dblocator.services.exceptions import NotFoundError, ConflictError
from dblocator.services.provisioning.credential_provisioner import CredentialProvisioner

logger = logging.getLogger(__name__)

class DatabaseUserRoleService:
    """
    Role grants of a database user. A grant applies to every database the user owns.
    """
    def __init__(self, context: AppContext):
        self.context = context
        self.db = context.db
        self.cache = context.cache
        self.user_dao = DatabaseUserDao(self.db)
        self.dao = DatabaseUserRoleDao(self.db)
        self.provisioner = CredentialProvisioner(context)

    async def list_roles(self, user_id: int) -> List[DatabaseUserRoleRead]:
        await self._get_user_or_404(user_id)
        return [DatabaseUserRoleRead.model_validate(r) for r in await self.dao.list_for_user(user_id)]

    async def grant_role(self, user_id: int, data: DatabaseUserRoleCreate) -> DatabaseUserRoleRead:
        """
        Records the grant, then adds the user to the role on every owned database.

        Granting a role that is already recorded resumes the physical grant when
        ``affect_database`` is set: databases that already carry the role are
        skipped. Without ``affect_database`` the duplicate is a conflict.
        """
        user = await self._get_user_or_404(user_id)
        user_role = await self.dao.get_pair(user.id, data.role)
        if user_role is not None:
            if not data.affect_database:
                raise ConflictError(f"Database user {user_id} already has role {data.role.name}.")
            logger.info(f"Role {data.role.name} already recorded for database user {user.id}; resuming the grant.")
        else:
            user_role = await self.dao.add(DatabaseUserRole(database_user_id=user.id, role_id=int(data.role)))
            await self.db.commit()
            await self.db.refresh(user, ["roles"])

        if data.affect_database:
            await self.provisioner.grant_role(user, data.role)
        await self.cache.clear_user(user.id, [data.role])
        logger.info(f"Granted {data.role.name} to database user {user.id}.")
        return DatabaseUserRoleRead.model_validate(user_role)

    async def revoke_role(self, user_id: int, role: DatabaseRole, affect_database: bool = True) -> None:
        """Revoking a role that was never granted succeeds without touching any server."""
        user = await self._get_user_or_404(user_id)
        user_role = await self.dao.get_pair(user.id, role)
        if user_role is None:
            logger.info(f"Role {role.name} is not granted to database user {user.id}; nothing to revoke.")
            return

        await self.dao.remove(user_role)
        await self.db.commit()
        await self.db.refresh(user, ["roles"])

        if affect_database:
            await self.provisioner.revoke_role(user, role)
        await self.cache.clear_user(user.id, [role])
        logger.info(f"Revoked {role.name} from database user {user.id}.")

    async def _get_user_or_404(self, user_id: int) -> DatabaseUser:
        user = await self.user_dao.get_with_relations(user_id)
        if not user:
            raise NotFoundError(f"Database user with ID {user_id} not found.")
        return user
