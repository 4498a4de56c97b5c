# src/dblocator/schemas/directory/tenant_schemas.py

from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional
from dblocator.models import Status

def _strip_required(value: str) -> str:
    value = value.strip() if isinstance(value, str) else value
    if not value:
        raise ValueError("must not be empty")
    return value

class TenantCreate(BaseModel):
    name: str = Field(..., max_length=50, description="Tenant name, unique")
    code: Optional[str] = Field(None, max_length=10, description="Short tenant code used by resolution requests")
    status: Status = Status.ACTIVE

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return _strip_required(v)

class TenantUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=50)
    code: Optional[str] = Field(None, max_length=10)
    status: Optional[Status] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return None if v is None else _strip_required(v)

class TenantRead(BaseModel):
    id: int
    name: str
    code: Optional[str] = None
    status: Status

    model_config = ConfigDict(from_attributes=True)
