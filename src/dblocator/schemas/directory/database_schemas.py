# src/dblocator/schemas/directory/database_schemas.py

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from dblocator.core.sql import IDENTIFIER_PATTERN
from dblocator.models import Status
from dblocator.schemas.directory.database_server_schemas import DatabaseServerRead
from dblocator.schemas.directory.database_type_schemas import DatabaseTypeRead

class DatabaseCreate(BaseModel):
    name: str = Field(..., max_length=50, pattern=IDENTIFIER_PATTERN.pattern)
    server_id: int
    database_type_id: int
    status: Status = Status.ACTIVE
    use_trusted_connection: bool = False
    affect_database: bool = Field(True, description="Also run CREATE DATABASE on the server")

class DatabaseUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=50, pattern=IDENTIFIER_PATTERN.pattern)
    server_id: Optional[int] = None
    database_type_id: Optional[int] = None
    status: Optional[Status] = None
    use_trusted_connection: Optional[bool] = None
    affect_database: bool = Field(True, description="Rename the physical database as well")

class DatabaseRead(BaseModel):
    id: int
    name: str
    status: Status
    use_trusted_connection: bool
    server: DatabaseServerRead
    database_type: DatabaseTypeRead

    model_config = ConfigDict(from_attributes=True)
