# src/dblocator/db/base.py

from sqlalchemy import MetaData
from sqlalchemy.orm import declarative_base

# Deterministic constraint names, so that migrations and drop_all can address them.
naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}

metadata_obj = MetaData(naming_convention=naming_convention)

Base = declarative_base(metadata=metadata_obj)
