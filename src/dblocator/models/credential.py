# src/dblocator/models/credential.py

import enum
from sqlalchemy import (
    Column, Integer, SmallInteger, String, ForeignKey, Table,
    DateTime, func, UniqueConstraint
)
from sqlalchemy.orm import relationship
from dblocator.db.base import Base

class DatabaseRole(enum.IntEnum):
    """
    SQL Server fixed database roles. The ordinal is the seeded ``database_roles`` id
    and the lower-cased name prefixed with ``db_`` is the SQL role name.
    """
    Owner = 1
    SecurityAdmin = 2
    AccessAdmin = 3
    BackupOperator = 4
    DdlAdmin = 5
    DataWriter = 6
    DataReader = 7
    DenyDataWriter = 8
    DenyDataReader = 9

    @property
    def sql_name(self) -> str:
        return f"db_{self.name.lower()}"

    @classmethod
    def parse(cls, value) -> "DatabaseRole":
        """Accepts a member, its ordinal, its name (case-insensitive) or its SQL role name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        text = str(value).strip()
        if text.isdigit():
            return cls(int(text))
        lowered = text.lower()
        for member in cls:
            if lowered in (member.name.lower(), member.sql_name):
                return member
        raise ValueError(f"Unknown database role '{value}'")

class RoleMatchMode(str, enum.Enum):
    ANY = "any"   # the user holds at least one requested role
    ALL = "all"   # the user holds every requested role

database_user_databases = Table(
    'database_user_databases',
    Base.metadata,
    Column('database_user_id', Integer, ForeignKey('database_users.id', ondelete="CASCADE"), primary_key=True),
    Column('database_id', Integer, ForeignKey('databases.id'), primary_key=True),
)

class DatabaseRoleEntity(Base):
    """Reference rows for DatabaseRole, seeded 1..9."""
    __tablename__ = 'database_roles'

    id = Column(SmallInteger, primary_key=True, autoincrement=False)
    name = Column(String(50), nullable=False, unique=True)

class DatabaseUser(Base):
    """
    A logical SQL login. The same login is created on every server that hosts
    one of its databases, and a database user of the same name in each database.
    """
    __tablename__ = 'database_users'

    id = Column(Integer, primary_key=True)
    user_name = Column(String(50), nullable=False, unique=True, comment="Login and database user name, unique system-wide")
    password = Column(String(255), nullable=False, comment="Password, encrypted when an encryption key is configured")

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    databases = relationship("Database", secondary=database_user_databases, back_populates="users", order_by="Database.id")
    roles = relationship("DatabaseUserRole", back_populates="user", cascade="all, delete-orphan", order_by="DatabaseUserRole.role_id")

    @property
    def granted_roles(self) -> list[DatabaseRole]:
        return sorted(DatabaseRole(r.role_id) for r in self.roles)

class DatabaseUserRole(Base):
    __tablename__ = 'database_user_roles'

    id = Column(Integer, primary_key=True)
    database_user_id = Column(Integer, ForeignKey('database_users.id', ondelete="CASCADE"), nullable=False, index=True)
    role_id = Column(SmallInteger, ForeignKey('database_roles.id'), nullable=False)

    user = relationship("DatabaseUser", back_populates="roles")

    __table_args__ = (
        UniqueConstraint('database_user_id', 'role_id', name='uq_database_user_roles_user_role'),
    )

    @property
    def role(self) -> DatabaseRole:
        return DatabaseRole(self.role_id)

class ProvisioningStep(Base):
    """
    Completion marker for one physical provisioning step.

    step: ``login``, ``user`` or ``role:<Role>``
    target: ``server:<id>`` for logins, ``database:<id>`` otherwise
    """
    __tablename__ = 'provisioning_steps'

    id = Column(Integer, primary_key=True)
    database_user_id = Column(Integer, ForeignKey('database_users.id', ondelete="CASCADE"), nullable=False, index=True)
    step = Column(String(30), nullable=False)
    target = Column(String(30), nullable=False)
    completed_at = Column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint('database_user_id', 'step', 'target', name='uq_provisioning_steps_user_step_target'),
    )
