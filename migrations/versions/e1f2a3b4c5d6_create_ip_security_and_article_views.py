"""create ip security and article view tables

Revision ID: e1f2a3b4c5d6
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'e1f2a3b4c5d6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'ip_blocking',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ip_address', sa.String(length=64), nullable=False),
        sa.Column('is_blocked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('block_reason', sa.String(length=255), nullable=True),
        sa.Column('blocked_at', sa.DateTime(), nullable=True),
        sa.Column('fingerprint_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_seen', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('ip_blocking', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_ip_blocking_ip_address'), ['ip_address'], unique=True)

    op.create_table(
        'fingerprint_ip_tracking',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('fingerprint_id', sa.String(length=128), nullable=False),
        sa.Column('ip_address', sa.String(length=64), nullable=False),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('fingerprint_ip_tracking', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_fingerprint_ip_tracking_fingerprint_id'), ['fingerprint_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_fingerprint_ip_tracking_ip_address'), ['ip_address'], unique=False)
        batch_op.create_index(batch_op.f('ix_fingerprint_ip_tracking_created_at'), ['created_at'], unique=False)

    op.create_table(
        'article_views',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('fingerprint', sa.String(length=128), nullable=False),
        sa.Column('article_id', sa.String(length=64), nullable=False),
        sa.Column('saw_upsell', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('article_views', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_article_views_fingerprint'), ['fingerprint'], unique=False)
        batch_op.create_index(batch_op.f('ix_article_views_article_id'), ['article_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_article_views_created_at'), ['created_at'], unique=False)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=80), nullable=False),
        sa.Column('entity', sa.String(length=80), nullable=True),
        sa.Column('entity_id', sa.String(length=80), nullable=True),
        sa.Column('ip', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('metadata_json', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade():
    op.drop_table('audit_logs')

    with op.batch_alter_table('article_views', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_article_views_created_at'))
        batch_op.drop_index(batch_op.f('ix_article_views_article_id'))
        batch_op.drop_index(batch_op.f('ix_article_views_fingerprint'))
    op.drop_table('article_views')

    with op.batch_alter_table('fingerprint_ip_tracking', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_fingerprint_ip_tracking_created_at'))
        batch_op.drop_index(batch_op.f('ix_fingerprint_ip_tracking_ip_address'))
        batch_op.drop_index(batch_op.f('ix_fingerprint_ip_tracking_fingerprint_id'))
    op.drop_table('fingerprint_ip_tracking')

    with op.batch_alter_table('ip_blocking', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_ip_blocking_ip_address'))
    op.drop_table('ip_blocking')
