"""initial schema: spots, spot_images, collections, tricks

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import geoalchemy2
from sqlalchemy.dialects import postgresql

revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS postgis")

    # geoalchemy2はGeography列に対してGISTインデックスを自動で作る（spatial_index=True）．
    op.create_table(
        'spots',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('type', sa.String(), server_default='unknown', nullable=False),
        sa.Column('difficulty', sa.String(), server_default='unknown', nullable=False),
        sa.Column('surface', sa.String(), nullable=True),
        sa.Column('skateability_score', sa.Float(), nullable=True),
        sa.Column('features', postgresql.JSONB(astext_type=sa.Text()), server_default='{}', nullable=False),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('geom', geoalchemy2.types.Geography(geometry_type='POINT', srid=4326), nullable=True),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('status', sa.String(), server_default='active', nullable=False),
        sa.Column('verified', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    for column in ('id', 'user_id', 'type', 'difficulty', 'surface', 'status'):
        op.create_index(op.f(f'ix_spots_{column}'), 'spots', [column], unique=(column == 'id'))

    op.create_table(
        'spot_images',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('spot_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('image_url', sa.String(), nullable=False),
        sa.Column('is_primary', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('angle', sa.String(), server_default='main', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['spot_id'], ['spots.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_spot_images_id'), 'spot_images', ['id'], unique=True)
    op.create_index(op.f('ix_spot_images_spot_id'), 'spot_images', ['spot_id'], unique=False)

    op.create_table(
        'collections',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('icon', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_collections_id'), 'collections', ['id'], unique=True)
    op.create_index(op.f('ix_collections_user_id'), 'collections', ['user_id'], unique=False)

    op.create_table(
        'collection_spots',
        sa.Column('collection_id', sa.String(length=36), nullable=False),
        sa.Column('spot_id', sa.String(length=36), nullable=False),
        sa.Column('added_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['collection_id'], ['collections.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['spot_id'], ['spots.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('collection_id', 'spot_id')
    )

    op.create_table(
        'tricks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('difficulty', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_tricks_id'), 'tricks', ['id'], unique=False)
    op.create_index(op.f('ix_tricks_name'), 'tricks', ['name'], unique=False)

    op.create_table(
        'daily_challenges',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_daily_challenges_id'), 'daily_challenges', ['id'], unique=False)
    op.create_index(op.f('ix_daily_challenges_is_active'), 'daily_challenges', ['is_active'], unique=False)


def downgrade() -> None:
    op.drop_table('daily_challenges')
    op.drop_table('tricks')
    op.drop_table('collection_spots')
    op.drop_table('collections')
    op.drop_table('spot_images')
    op.drop_table('spots')
