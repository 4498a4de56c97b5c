# src/dblocator/schemas/directory/database_server_schemas.py

import re
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from typing import Optional
from dblocator.models import Status

FQDN_PATTERN = re.compile(r"^(?=.{1,100}$)([A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?\.)+[A-Za-z]{2,}$")
IPV4_PATTERN = re.compile(r"^((25[0-5]|2[0-4]\d|1\d\d|[1-9]?\d)\.){3}(25[0-5]|2[0-4]\d|1\d\d|[1-9]?\d)$")

class _NetworkFields(BaseModel):
    host_name: Optional[str] = Field(None, max_length=50)
    fully_qualified_domain_name: Optional[str] = Field(None, max_length=100)
    ip_address: Optional[str] = Field(None, max_length=15)

    @field_validator("host_name", "fully_qualified_domain_name", "ip_address", mode="before")
    @classmethod
    def empty_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    @field_validator("fully_qualified_domain_name")
    @classmethod
    def check_fqdn(cls, v):
        if v is not None and not FQDN_PATTERN.match(v):
            raise ValueError("must be a fully qualified domain name")
        return v

    @field_validator("ip_address")
    @classmethod
    def check_ip(cls, v):
        if v is not None and not IPV4_PATTERN.match(v):
            raise ValueError("must be an IPv4 address")
        return v

    def has_network_identifier(self) -> bool:
        return any((self.host_name, self.fully_qualified_domain_name, self.ip_address))

class DatabaseServerCreate(_NetworkFields):
    name: str = Field(..., min_length=1, max_length=50)
    is_linked_server: bool = False

    @model_validator(mode="after")
    def require_network_identifier(self):
        if not self.has_network_identifier():
            raise ValueError("At least one of host_name, fully_qualified_domain_name or ip_address is required")
        return self

class DatabaseServerUpdate(_NetworkFields):
    """Only the fields that are set are changed. Network fields set to "" are cleared."""
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    is_linked_server: Optional[bool] = None
    status: Optional[Status] = None

class DatabaseServerRead(BaseModel):
    id: int
    name: str
    host_name: Optional[str] = None
    fully_qualified_domain_name: Optional[str] = None
    ip_address: Optional[str] = None
    is_linked_server: bool
    status: Status

    model_config = ConfigDict(from_attributes=True)
