# src/dblocator/models/directory.py

import enum
from sqlalchemy import (
    Column, Integer, SmallInteger, String, Boolean, ForeignKey,
    DateTime, func, UniqueConstraint
)
from sqlalchemy.orm import relationship
from dblocator.db.base import Base

class Status(enum.IntEnum):
    ACTIVE = 1
    INACTIVE = 2

def _status_column(comment: str) -> Column:
    # Stored as the enum ordinal.
    return Column(SmallInteger, nullable=False, default=int(Status.ACTIVE), comment=comment)

class Tenant(Base):
    """Tenant - a customer routed to one database per database type."""
    __tablename__ = 'tenants'

    id = Column(Integer, primary_key=True, comment="Tenant id")
    name = Column(String(50), nullable=False, unique=True, comment="Tenant name, unique")
    code = Column(String(10), nullable=True, unique=True, comment="Short tenant code, unique when set")
    status = _status_column("Tenant status (active, inactive)")

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    connections = relationship("Connection", back_populates="tenant")

class DatabaseServer(Base):
    """A physical SQL Server instance. Reached directly or through a linked server."""
    __tablename__ = 'database_servers'

    id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False, unique=True, comment="Logical server name, unique")

    # [Network] at least one of the three identifiers is set
    host_name = Column(String(50), nullable=True, unique=True, comment="Host name")
    fully_qualified_domain_name = Column(String(100), nullable=True, unique=True, comment="Fully qualified domain name")
    ip_address = Column(String(15), nullable=True, unique=True, comment="IPv4 address")

    is_linked_server = Column(Boolean, nullable=False, default=False, comment="Commands are forwarded with exec(...) at [host]")
    status = _status_column("Server status (active, inactive)")

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    databases = relationship("Database", back_populates="server")

    @property
    def address(self) -> str:
        """FQDN, else host name, else IP. The first non-empty field wins, fields are never merged."""
        for candidate in (self.fully_qualified_domain_name, self.host_name, self.ip_address):
            if candidate:
                return candidate
        return self.name

    @property
    def linked_host(self) -> str:
        return self.host_name or self.name

class DatabaseType(Base):
    """Logical database category, e.g. Billing."""
    __tablename__ = 'database_types'

    id = Column(Integer, primary_key=True)
    name = Column(String(20), nullable=False, unique=True)

    databases = relationship("Database", back_populates="database_type")

class Database(Base):
    __tablename__ = 'databases'

    id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False, comment="Physical catalog name")
    server_id = Column(Integer, ForeignKey('database_servers.id'), nullable=False, index=True)
    database_type_id = Column(Integer, ForeignKey('database_types.id'), nullable=False, index=True)
    status = _status_column("Database status (active, inactive)")
    use_trusted_connection = Column(Boolean, nullable=False, default=False, comment="Integrated security instead of a database user")

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    server = relationship("DatabaseServer", back_populates="databases")
    database_type = relationship("DatabaseType", back_populates="databases")
    connections = relationship("Connection", back_populates="database")
    users = relationship("DatabaseUser", secondary="database_user_databases", back_populates="databases")

    __table_args__ = (
        UniqueConstraint('server_id', 'name', name='uq_databases_server_id_name'),
    )

class Connection(Base):
    """Links a tenant to the database it uses for one database type."""
    __tablename__ = 'connections'

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey('tenants.id'), nullable=False, index=True)
    database_id = Column(Integer, ForeignKey('databases.id'), nullable=False, index=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())

    tenant = relationship("Tenant", back_populates="connections")
    database = relationship("Database", back_populates="connections")

    __table_args__ = (
        UniqueConstraint('tenant_id', 'database_id', name='uq_connections_tenant_id_database_id'),
    )
