"""create game and player tables

Revision ID: 5a7c9e1d2b3f
Revises:
Create Date: 2026-10-19 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5a7c9e1d2b3f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'game' not in existing_tables:
        op.create_table(
            'game',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('link', sa.String(length=255), nullable=True),
            sa.Column('status', sa.String(length=32), nullable=False, server_default='waiting'),
            sa.Column('max_players', sa.Integer(), nullable=False, server_default='4'),
            sa.Column('host_id', sa.String(length=36), nullable=True),
            sa.Column('roster_order', sa.Text(), nullable=True),
            sa.Column('settings', sa.Text(), nullable=True),
            sa.Column('deck', sa.Text(), nullable=True),
            sa.Column('board', sa.Text(), nullable=True),
            sa.Column('current_turn', sa.String(length=36), nullable=True),
            sa.Column('score', sa.Text(), nullable=True),
            sa.Column('winner', sa.String(length=16), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
        )
        op.create_index('ix_game_link', 'game', ['link'], unique=True)
        op.create_index('ix_game_status', 'game', ['status'])

    if 'player' not in existing_tables:
        op.create_table(
            'player',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('name', sa.String(length=50), nullable=False),
            sa.Column('role', sa.String(length=16), nullable=False, server_default='player'),
            sa.Column('game_id', sa.String(length=36), sa.ForeignKey('game.id'), nullable=False),
            sa.Column('team', sa.String(length=16), nullable=True),
            sa.Column('seat', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('cards', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
        )
        op.create_index('ix_player_game_id', 'player', ['game_id'])

    # Game and player reference each other; the host FK is added once both exist
    if bind.dialect.name != 'sqlite':
        op.create_foreign_key('fk_game_host_id', 'game', 'player', ['host_id'], ['id'])


def downgrade():
    bind = op.get_bind()
    if bind.dialect.name != 'sqlite':
        op.drop_constraint('fk_game_host_id', 'game', type_='foreignkey')
    op.drop_index('ix_player_game_id', table_name='player')
    op.drop_table('player')
    op.drop_index('ix_game_status', table_name='game')
    op.drop_index('ix_game_link', table_name='game')
    op.drop_table('game')
