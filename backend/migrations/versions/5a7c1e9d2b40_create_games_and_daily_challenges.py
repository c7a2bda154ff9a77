"""create games and daily_challenges

Revision ID: 5a7c1e9d2b40
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5a7c1e9d2b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'games' not in existing_tables:
        op.create_table(
            'games',
            sa.Column('gameId', sa.String(length=128), primary_key=True),
            sa.Column('inviterId', sa.String(length=128), nullable=False),
            sa.Column('inviteeId', sa.String(length=128), nullable=False),
            sa.Column('inviterStatus', sa.String(length=16), nullable=True),
            sa.Column('inviteeStatus', sa.String(length=16), nullable=True),
            sa.Column('toStatus', sa.String(length=16), nullable=True),
            sa.Column('fromStatus', sa.String(length=16), nullable=True),
            sa.Column('scores', sa.JSON(), nullable=False),
            sa.Column('updatedAt', sa.DateTime(timezone=True), nullable=True),
            sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        )

    # The date primary key is what makes daily creation create-if-absent
    if 'daily_challenges' not in existing_tables:
        op.create_table(
            'daily_challenges',
            sa.Column('date', sa.String(length=10), primary_key=True),
            sa.Column('question', sa.String(length=255), nullable=False),
            sa.Column('answer', sa.String(length=32), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        )


def downgrade():
    op.drop_table('daily_challenges')
    op.drop_table('games')
