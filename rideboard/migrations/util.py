"""Utility functions for Alembic migrations."""
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from alembic import op


def get_uuid_type():
    """Get the UUID column type for the current database dialect.

    PostgreSQL gets a native UUID; other dialects store hex strings in
    String(36), matching ``rideboard.models.base.AdaptiveUUID``.
    """
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        return UUID(as_uuid=True)
    return sa.String(length=36)


def valid_row_predicate():
    """Index predicate selecting valid snapshot rows for the current dialect."""
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        return sa.text('is_valid')
    return sa.text('is_valid = 1')
