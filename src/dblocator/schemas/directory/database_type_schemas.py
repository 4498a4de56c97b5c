# src/dblocator/schemas/directory/database_type_schemas.py

from pydantic import BaseModel, Field, ConfigDict

class DatabaseTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=20)

class DatabaseTypeUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=20)

class DatabaseTypeRead(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)
