"""initial schema: geocoded addresses, catalog plants, sync bookkeeping

Revision ID: a3c91e7d20b4
Revises:
Create Date: 2026-10-19 09:12:44.503127

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = 'a3c91e7d20b4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'geocoded_addresses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('full_address', sa.Text(), nullable=False),
        sa.Column('street_address', sa.String(length=255), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('state', sa.String(length=10), nullable=True),
        sa.Column('zip_code', sa.String(length=20), nullable=True),
        sa.Column('country', sa.String(length=10), nullable=False),
        sa.Column('lat', sa.Float(), nullable=False),
        sa.Column('lng', sa.Float(), nullable=False),
        sa.Column('zone_id', sa.String(length=5), nullable=False),
        sa.Column(
            'zone_method',
            sa.Enum('provider_api', 'geographic_approximation', name='zone_method_enum'),
            nullable=False,
        ),
        sa.Column('lookup_count', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('full_address'),
    )

    op.create_table(
        'catalog_plants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('provider_id', sa.Integer(), nullable=False),
        sa.Column('slug', sa.String(length=200), nullable=True),
        sa.Column('secondary_slug', sa.String(length=200), nullable=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('scientific_name', sa.String(length=200), nullable=True),
        sa.Column('common_names', sa.JSON(), nullable=False),
        sa.Column('family', sa.String(length=100), nullable=True),
        sa.Column('genus', sa.String(length=100), nullable=True),
        sa.Column('min_zone', sa.String(length=5), nullable=True),
        sa.Column('max_zone', sa.String(length=5), nullable=True),
        sa.Column('native_distributions', sa.JSON(), nullable=False),
        sa.Column('introduced_distributions', sa.JSON(), nullable=False),
        sa.Column('distribution_raw', sa.JSON(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('is_edible', sa.Boolean(), nullable=True),
        sa.Column('companion_plants', sa.JSON(), nullable=True),
        sa.Column('data_sources', sa.JSON(), nullable=False),
        sa.Column('enriched', sa.Boolean(), nullable=False),
        sa.Column('sync_count', sa.Integer(), nullable=False),
        sa.Column('last_synced', sa.DateTime(timezone=True), nullable=False),
        sa.Column('view_count', sa.Integer(), nullable=False),
        sa.Column('last_viewed', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('provider_id'),
    )
    op.create_index('ix_catalog_plants_name', 'catalog_plants', ['name'])
    op.create_index('ix_catalog_plants_scientific_name', 'catalog_plants', ['scientific_name'])
    op.create_index('ix_catalog_plants_view_count', 'catalog_plants', ['view_count'])

    op.create_table(
        'sync_cursors',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('source', sa.String(length=50), nullable=False),
        sa.Column('last_page', sa.Integer(), nullable=False),
        sa.Column('total_synced', sa.Integer(), nullable=False),
        sa.Column('is_complete', sa.Boolean(), nullable=False),
        sa.Column('last_run', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('source'),
    )

    op.create_table(
        'sync_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('source', sa.String(length=50), nullable=False),
        sa.Column(
            'status',
            sa.Enum('started', 'completed', 'failed', name='sync_status_enum'),
            nullable=False,
        ),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('records_synced', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sync_logs_source', 'sync_logs', ['source'])
    op.create_index('ix_sync_logs_timestamp', 'sync_logs', ['timestamp'])

    op.create_table(
        'api_request_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('method', sa.String(length=10), nullable=False),
        sa.Column('endpoint', sa.String(length=255), nullable=False),
        sa.Column('status_code', sa.Integer(), nullable=False),
        sa.Column('latency_ms', sa.Integer(), nullable=False),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_api_request_logs_timestamp', 'api_request_logs', ['timestamp'])


def downgrade() -> None:
    op.drop_index('ix_api_request_logs_timestamp', table_name='api_request_logs')
    op.drop_table('api_request_logs')
    op.drop_index('ix_sync_logs_timestamp', table_name='sync_logs')
    op.drop_index('ix_sync_logs_source', table_name='sync_logs')
    op.drop_table('sync_logs')
    op.execute("DROP TYPE IF EXISTS sync_status_enum")
    op.drop_table('sync_cursors')
    op.drop_index('ix_catalog_plants_view_count', table_name='catalog_plants')
    op.drop_index('ix_catalog_plants_scientific_name', table_name='catalog_plants')
    op.drop_index('ix_catalog_plants_name', table_name='catalog_plants')
    op.drop_table('catalog_plants')
    op.drop_table('geocoded_addresses')
    op.execute("DROP TYPE IF EXISTS zone_method_enum")
