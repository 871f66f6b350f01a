"""Dialect helpers for upserts."""
from sqlalchemy import case
from sqlalchemy.dialects.postgresql import insert as postgres_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession


def dialect_insert(db: AsyncSession, model):
    """Return an INSERT construct that supports ON CONFLICT for the bound dialect."""
    bind = db.get_bind()
    dialect_name = (bind.dialect.name if bind is not None else "").lower()
    if "sqlite" in dialect_name:
        return sqlite_insert(model)
    return postgres_insert(model)


def decrement_floor_zero(column):
    """SQL expression for ``column - 1`` that never drops below zero."""
    return case((column > 0, column - 1), else_=0)
