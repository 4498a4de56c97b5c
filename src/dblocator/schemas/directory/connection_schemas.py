# src/dblocator/schemas/directory/connection_schemas.py

from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List
from dblocator.models import DatabaseRole, RoleMatchMode

class ConnectionCreate(BaseModel):
    tenant_id: int
    database_id: int

class ConnectionRead(BaseModel):
    id: int
    tenant_id: int
    database_id: int

    model_config = ConfigDict(from_attributes=True)

class ConnectionRequest(BaseModel):
    """
    Selects a connection by exactly one of: ``connection_id``,
    ``tenant_id`` + ``database_type_id`` or ``tenant_code`` + ``database_type_id``.
    The shape is checked by the resolver, not here, so a bad selector is an
    InvalidRequestError rather than a schema error.
    """
    connection_id: Optional[int] = None
    tenant_id: Optional[int] = None
    tenant_code: Optional[str] = None
    database_type_id: Optional[int] = None
    roles: List[DatabaseRole] = Field(default_factory=list, description="Roles the chosen database user must hold")
    match: RoleMatchMode = RoleMatchMode.ANY

    @field_validator("roles", mode="before")
    @classmethod
    def parse_roles(cls, v):
        if v is None:
            return []
        return [DatabaseRole.parse(r) for r in v]

class ConnectionHandleRead(BaseModel):
    connection_string: str
    server: str
    database: str
    user_name: Optional[str] = None
    trusted: bool

    model_config = ConfigDict(from_attributes=True)
