# src/dblocator/models/__init__.py

from .directory import (
    Status,
    Tenant,
    DatabaseServer,
    DatabaseType,
    Database,
    Connection
)
from .credential import (
    DatabaseRole,
    RoleMatchMode,
    DatabaseRoleEntity,
    DatabaseUser,
    DatabaseUserRole,
    ProvisioningStep,
    database_user_databases
)
