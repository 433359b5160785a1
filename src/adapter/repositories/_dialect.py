"""Dialect-aware INSERT for ON CONFLICT DO NOTHING statements"""

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel.ext.asyncio.session import AsyncSession


def upsert_insert(session: AsyncSession, model):
    """Return an INSERT construct supporting on_conflict_do_nothing()"""
    if session.get_bind().dialect.name == "sqlite":
        return sqlite_insert(model)
    return pg_insert(model)


def row_values(entity) -> dict:
    """Column values of an unsaved entity, leaving unset autoincrement keys to the database"""
    values = {}
    for column in entity.__table__.columns:
        value = getattr(entity, column.name)
        if column.primary_key and value is None:
            continue
        values[column.name] = value
    return values
