"""Initial schema: users, vehicles, activities and leaderboard snapshots.

Revision ID: initial_0001
Revises:
Create Date: 2025-03-02

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from rideboard.migrations.util import get_uuid_type, valid_row_predicate


# revision identifiers, used by Alembic.
revision: str = "initial_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables."""
    uuid_type = get_uuid_type()

    op.create_table(
        'users',
        sa.Column('user_id', uuid_type, nullable=False),
        sa.Column('username', sa.String(80), nullable=False),
        sa.Column('name', sa.String(120), nullable=True),
        sa.Column('profile_image_url', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_distance_km', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_time_minutes', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_tracks', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_speed_kmh', sa.Float(), nullable=False, server_default='0'),
        sa.Column('avg_speed_kmh', sa.Float(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('user_id'),
        sa.UniqueConstraint('username', name='uq_users_username'),
    )

    op.create_table(
        'vehicles',
        sa.Column('vehicle_id', uuid_type, nullable=False),
        sa.Column('owner_id', uuid_type, nullable=False),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('vehicle_type', sa.String(30), nullable=False, server_default='bike'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('total_distance_km', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_time_minutes', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_tracks', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_speed_kmh', sa.Float(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('vehicle_id'),
        sa.ForeignKeyConstraint(['owner_id'], ['users.user_id'], ondelete='CASCADE'),
    )
    op.create_index('ix_vehicles_owner_id', 'vehicles', ['owner_id'])

    op.create_table(
        'activities',
        sa.Column('activity_id', uuid_type, nullable=False),
        sa.Column('user_id', uuid_type, nullable=False),
        sa.Column('vehicle_id', uuid_type, nullable=True),
        sa.Column('title', sa.String(200), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('duration_seconds', sa.Float(), nullable=False),
        sa.Column('distance_km', sa.Float(), nullable=False),
        sa.Column('avg_speed_kmh', sa.Float(), nullable=False, server_default='0'),
        sa.Column('max_speed_kmh', sa.Float(), nullable=False, server_default='0'),
        sa.Column('elevation_gain_m', sa.Float(), nullable=True),
        sa.Column('country_code', sa.String(8), nullable=True),
        sa.Column('region_code', sa.String(16), nullable=True),
        sa.Column('city_code', sa.String(32), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('activity_id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['vehicle_id'], ['vehicles.vehicle_id'], ondelete='SET NULL'),
    )
    op.create_index('ix_activities_user_id', 'activities', ['user_id'])
    op.create_index('ix_activities_started_at', 'activities', ['started_at'])
    op.create_index('ix_activities_country_started', 'activities', ['country_code', 'started_at'])
    op.create_index('ix_activities_region_started', 'activities', ['region_code', 'started_at'])
    op.create_index('ix_activities_city_started', 'activities', ['city_code', 'started_at'])

    op.create_table(
        'leaderboard_snapshots',
        sa.Column('snapshot_id', uuid_type, nullable=False),
        sa.Column('metric', sa.String(30), nullable=False),
        sa.Column('period_kind', sa.String(20), nullable=False),
        sa.Column('period_id', sa.String(20), nullable=False),
        sa.Column('scope', sa.String(20), nullable=False, server_default='global'),
        sa.Column('geo_qualifier', sa.String(32), nullable=False, server_default=''),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('entry_limit', sa.Integer(), nullable=False, server_default='100'),
        sa.Column('entries', sa.JSON(), nullable=False),
        sa.Column('is_valid', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('snapshot_id'),
    )
    op.create_index(
        'ix_leaderboard_snapshots_key',
        'leaderboard_snapshots',
        ['metric', 'period_kind', 'period_id', 'scope', 'geo_qualifier'],
    )
    op.create_index('ix_leaderboard_snapshots_updated_at', 'leaderboard_snapshots', ['updated_at'])

    # At most one valid snapshot per leaderboard key
    predicate = valid_row_predicate()
    op.create_index(
        'uq_leaderboard_snapshots_valid_key',
        'leaderboard_snapshots',
        ['metric', 'period_kind', 'period_id', 'scope', 'geo_qualifier'],
        unique=True,
        sqlite_where=predicate,
        postgresql_where=predicate,
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index('uq_leaderboard_snapshots_valid_key', table_name='leaderboard_snapshots')
    op.drop_index('ix_leaderboard_snapshots_updated_at', table_name='leaderboard_snapshots')
    op.drop_index('ix_leaderboard_snapshots_key', table_name='leaderboard_snapshots')
    op.drop_table('leaderboard_snapshots')

    op.drop_index('ix_activities_city_started', table_name='activities')
    op.drop_index('ix_activities_region_started', table_name='activities')
    op.drop_index('ix_activities_country_started', table_name='activities')
    op.drop_index('ix_activities_started_at', table_name='activities')
    op.drop_index('ix_activities_user_id', table_name='activities')
    op.drop_table('activities')

    op.drop_index('ix_vehicles_owner_id', table_name='vehicles')
    op.drop_table('vehicles')

    op.drop_table('users')
