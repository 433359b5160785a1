"""Shared base for SQLModel domain entities"""

import uuid
from sqlalchemy import BigInteger, Integer
from sqlmodel import SQLModel

# BIGINT on Postgres; SQLite only autoincrements INTEGER primary keys.
BigIntPK = BigInteger().with_variant(Integer(), "sqlite")


class BaseModel(SQLModel):
    """Base class for all persisted entities"""

    pass


def generate_uuid() -> str:
    return str(uuid.uuid4())
