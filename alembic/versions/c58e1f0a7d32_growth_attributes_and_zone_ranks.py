"""catalog growth attributes and numeric zone ranks

Revision ID: c58e1f0a7d32
Revises: a3c91e7d20b4
Create Date: 2026-10-19 15:40:02.118934

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = 'c58e1f0a7d32'
down_revision: Union[str, None] = 'a3c91e7d20b4'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column('catalog_plants', sa.Column('min_zone_rank', sa.Integer(), nullable=True))
    op.add_column('catalog_plants', sa.Column('max_zone_rank', sa.Integer(), nullable=True))
    op.add_column('catalog_plants', sa.Column('plant_type', sa.String(length=50), nullable=True))
    op.add_column('catalog_plants', sa.Column('sun_requirement', sa.JSON(), nullable=True))
    op.add_column('catalog_plants', sa.Column('water_needs', sa.String(length=20), nullable=True))
    op.add_column('catalog_plants', sa.Column('soil_ph_min', sa.Float(), nullable=True))
    op.add_column('catalog_plants', sa.Column('soil_ph_max', sa.Float(), nullable=True))
    op.add_column('catalog_plants', sa.Column('mature_height_min', sa.Float(), nullable=True))
    op.add_column('catalog_plants', sa.Column('mature_height_max', sa.Float(), nullable=True))
    op.add_column('catalog_plants', sa.Column('days_to_maturity', sa.Integer(), nullable=True))
    op.create_index('ix_catalog_plants_min_zone_rank', 'catalog_plants', ['min_zone_rank'])

    # "7b" → 7 * 2 + 1
    for column in ('min_zone', 'max_zone'):
        op.execute(f"""
            UPDATE catalog_plants
            SET {column}_rank = CAST(substring({column} from '^[0-9]+') AS integer) * 2
                + CASE WHEN {column} LIKE '%b' THEN 1 ELSE 0 END
            WHERE {column} ~ '^[0-9]{{1,2}}[ab]?$'
        """)


def downgrade() -> None:
    op.drop_index('ix_catalog_plants_min_zone_rank', table_name='catalog_plants')
    op.drop_column('catalog_plants', 'days_to_maturity')
    op.drop_column('catalog_plants', 'mature_height_max')
    op.drop_column('catalog_plants', 'mature_height_min')
    op.drop_column('catalog_plants', 'soil_ph_max')
    op.drop_column('catalog_plants', 'soil_ph_min')
    op.drop_column('catalog_plants', 'water_needs')
    op.drop_column('catalog_plants', 'sun_requirement')
    op.drop_column('catalog_plants', 'plant_type')
    op.drop_column('catalog_plants', 'max_zone_rank')
    op.drop_column('catalog_plants', 'min_zone_rank')
