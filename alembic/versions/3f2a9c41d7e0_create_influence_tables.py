"""Create influence tables

Revision ID: 3f2a9c41d7e0
Revises:
Create Date: 2026-10-18 09:12:44.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f2a9c41d7e0'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SOURCES = "'quest', 'donation', 'combat', 'construction', 'event', 'decay', 'crime', 'gangAlignment'"


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'factions',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('default_floor', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('default_floor IS NULL OR (default_floor >= 0 AND default_floor <= 100)', name='ck_factions_default_floor'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )
    op.create_table(
        'territory_influence',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('strategic_value', sa.Integer(), nullable=False),
        sa.Column('control_level', sa.String(), nullable=False),
        sa.Column('controlling_faction_id', sa.String(length=64), nullable=True),
        sa.Column('control_changed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_decay_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint("category IN ('settlement', 'wilderness')", name='ck_territory_category'),
        sa.CheckConstraint('strategic_value >= 1 AND strategic_value <= 10', name='ck_territory_strategic_value'),
        sa.CheckConstraint("control_level IN ('contested', 'disputed', 'controlled', 'dominated')", name='ck_territory_control_level'),
        sa.ForeignKeyConstraint(['controlling_faction_id'], ['factions.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'faction_influence',
        sa.Column('territory_id', sa.String(length=64), nullable=False),
        sa.Column('faction_id', sa.String(length=64), nullable=False),
        sa.Column('value', sa.Float(), nullable=False),
        sa.Column('floor', sa.Float(), nullable=False),
        sa.CheckConstraint('value >= 0 AND value <= 100', name='ck_faction_influence_value'),
        sa.CheckConstraint('floor >= 0 AND floor <= 100', name='ck_faction_influence_floor'),
        sa.ForeignKeyConstraint(['faction_id'], ['factions.id']),
        sa.ForeignKeyConstraint(['territory_id'], ['territory_influence.id']),
        sa.PrimaryKeyConstraint('territory_id', 'faction_id'),
    )
    op.create_table(
        'influence_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('territory_id', sa.String(length=64), nullable=False),
        sa.Column('faction_id', sa.String(length=64), nullable=False),
        sa.Column('delta', sa.Float(), nullable=False),
        sa.Column('applied_delta', sa.Float(), nullable=False),
        sa.Column('resulting_value', sa.Float(), nullable=False),
        sa.Column('source', sa.String(length=32), nullable=False),
        sa.Column('actor_id', sa.String(length=64), nullable=True),
        sa.Column('recorded_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(f'source IN ({SOURCES})', name='ck_influence_history_source'),
        sa.ForeignKeyConstraint(['faction_id'], ['factions.id']),
        sa.ForeignKeyConstraint(['territory_id'], ['territory_influence.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('influence_history', schema=None) as batch_op:
        batch_op.create_index('idx_influence_history_territory_time', ['territory_id', 'recorded_at'], unique=False)
        batch_op.create_index('idx_influence_history_actor', ['actor_id'], unique=False)
        batch_op.create_index('idx_influence_history_pair', ['territory_id', 'faction_id', 'id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    with op.batch_alter_table('influence_history', schema=None) as batch_op:
        batch_op.drop_index('idx_influence_history_pair')
        batch_op.drop_index('idx_influence_history_actor')
        batch_op.drop_index('idx_influence_history_territory_time')

    op.drop_table('influence_history')
    op.drop_table('faction_influence')
    op.drop_table('territory_influence')
    op.drop_table('factions')
