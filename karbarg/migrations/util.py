"""Utility functions for Alembic migrations."""
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from alembic import op


def get_uuid_type():
    """Get the UUID column type for the current database dialect.

    PostgreSQL gets a native UUID; SQLite and others get String(36) holding
    the hex form written by ``karbarg.models.base.AdaptiveUUID``.
    """
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        return UUID(as_uuid=True)
    return sa.String(length=36)


def get_timestamp_default():
    """Get the server default for timestamp columns (NOW() or CURRENT_TIMESTAMP)."""
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        return sa.text('NOW()')
    return sa.text('CURRENT_TIMESTAMP')
