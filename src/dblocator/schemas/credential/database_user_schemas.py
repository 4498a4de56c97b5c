# src/dblocator/schemas/credential/database_user_schemas.py

from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List
from dblocator.core.passwords import is_strong_password
from dblocator.core.sql import IDENTIFIER_PATTERN
from dblocator.models import DatabaseRole

def _check_password(v: Optional[str]) -> Optional[str]:
    if v is not None and not is_strong_password(v):
        raise ValueError(
            "Password must be 8-50 characters and contain an upper-case letter, "
            "a lower-case letter, a digit and a special character"
        )
    return v

class DatabaseUserCreate(BaseModel):
    user_name: str = Field(..., max_length=50, pattern=IDENTIFIER_PATTERN.pattern)
    password: Optional[str] = Field(None, description="Generated when omitted")
    database_ids: List[int] = Field(..., min_length=1)
    affect_database: bool = Field(True, description="Create the login and database users on the servers")

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return _check_password(v)

class DatabaseUserUpdate(BaseModel):
    user_name: Optional[str] = Field(None, max_length=50, pattern=IDENTIFIER_PATTERN.pattern)
    password: Optional[str] = None
    database_ids: Optional[List[int]] = Field(None, min_length=1, description="The complete new set of owned databases")
    affect_database: bool = True

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return _check_password(v)

class DatabaseSummaryRead(BaseModel):
    id: int
    name: str
    server_id: int

    model_config = ConfigDict(from_attributes=True)

class DatabaseUserRead(BaseModel):
    id: int
    user_name: str
    roles: List[DatabaseRole] = Field(default_factory=list, validation_alias="granted_roles")
    databases: List[DatabaseSummaryRead] = []

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

class DatabaseUserRoleCreate(BaseModel):
    role: DatabaseRole
    affect_database: bool = True

    @field_validator("role", mode="before")
    @classmethod
    def parse_role(cls, v):
        return DatabaseRole.parse(v)

class DatabaseUserRoleRead(BaseModel):
    database_user_id: int
    role: DatabaseRole

    model_config = ConfigDict(from_attributes=True)
