"""claudometer tables: organization, user, membership, daily metric ledger,
metrics snapshots, device linking

Revision ID: claudo001
Revises: None
Create Date: 2026-10-18
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = 'claudo001'
down_revision = None
branch_labels = None
depends_on = None

# JSONB on postgres, JSON elsewhere
JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column('id', sa.String(length=50), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('modified_at', sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    # Organization ids come from the identity provider (org_2ab...)
    op.create_table(
        'organization',
        *_base_columns(),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'user',
        *_base_columns(),
        sa.Column('name', sa.String(length=200), nullable=True),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('org_id', sa.String(length=50), nullable=True),
        sa.ForeignKeyConstraint(['org_id'], ['organization.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_user_email', 'user', ['email'])

    op.create_table(
        'membership',
        *_base_columns(),
        sa.Column('organization_id', sa.String(length=50), nullable=False),
        sa.Column('user_id', sa.String(length=50), nullable=False),
        sa.ForeignKeyConstraint(['organization_id'], ['organization.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'user_id'),
    )
    op.create_index('ix_membership_organization_id', 'membership', ['organization_id'])
    op.create_index('ix_membership_user_id', 'membership', ['user_id'])

    # The ledger, one row per user per date
    op.create_table(
        'dailymetric',
        *_base_columns(),
        sa.Column('user_id', sa.String(length=50), nullable=False),
        sa.Column('org_id', sa.String(length=50), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('claude_sessions', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('claude_messages', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('claude_tokens', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('claude_tool_calls', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('git_commits', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('git_lines_added', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('git_lines_deleted', sa.BigInteger(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['user_id'], ['user.id']),
        sa.ForeignKeyConstraint(['org_id'], ['organization.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_dailymetric_user_id', 'dailymetric', ['user_id'])
    op.create_index('ix_dailymetric_org_id', 'dailymetric', ['org_id'])
    op.create_index('idx_daily_metric_user_date', 'dailymetric', ['user_id', 'date'], unique=True)
    op.create_index('idx_daily_metric_date', 'dailymetric', ['date'])

    op.create_table(
        'metricssnapshot',
        *_base_columns(),
        sa.Column('user_id', sa.String(length=50), nullable=False),
        sa.Column('org_id', sa.String(length=50), nullable=True),
        sa.Column('source', sa.String(length=50), nullable=False),
        sa.Column('reported_at', sa.DateTime(), nullable=False),
        sa.Column('claude_sessions', sa.BigInteger(), nullable=True),
        sa.Column('claude_messages', sa.BigInteger(), nullable=True),
        sa.Column('claude_input_tokens', sa.BigInteger(), nullable=True),
        sa.Column('claude_output_tokens', sa.BigInteger(), nullable=True),
        sa.Column('claude_cache_read_tokens', sa.BigInteger(), nullable=True),
        sa.Column('claude_cache_creation_tokens', sa.BigInteger(), nullable=True),
        sa.Column('claude_tool_calls', sa.BigInteger(), nullable=True),
        sa.Column('claude_by_model', JSON_TYPE, nullable=True),
        sa.Column('git_repos_scanned', sa.BigInteger(), nullable=True),
        sa.Column('git_repos_contributed', sa.BigInteger(), nullable=True),
        sa.Column('git_commits', sa.BigInteger(), nullable=True),
        sa.Column('git_lines_added', sa.BigInteger(), nullable=True),
        sa.Column('git_lines_deleted', sa.BigInteger(), nullable=True),
        sa.Column('git_files_changed', sa.BigInteger(), nullable=True),
        sa.Column('git_by_repo', JSON_TYPE, nullable=True),
        sa.Column('raw_payload', JSON_TYPE, nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['user.id']),
        sa.ForeignKeyConstraint(['org_id'], ['organization.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_metricssnapshot_user_id', 'metricssnapshot', ['user_id'])
    op.create_index('idx_metrics_snapshot_user_reported', 'metricssnapshot', ['user_id', 'reported_at'])

    op.create_table(
        'linkingcode',
        *_base_columns(),
        sa.Column('code', sa.String(length=6), nullable=False),
        sa.Column('user_id', sa.String(length=50), nullable=False),
        sa.Column('org_id', sa.String(length=50), nullable=True),
        sa.Column('device_name', sa.String(length=200), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('consumed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['user.id']),
        sa.ForeignKeyConstraint(['org_id'], ['organization.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code'),
    )
    op.create_index('ix_linkingcode_user_id', 'linkingcode', ['user_id'])

    op.create_table(
        'devicetoken',
        *_base_columns(),
        sa.Column('user_id', sa.String(length=50), nullable=False),
        sa.Column('org_id', sa.String(length=50), nullable=True),
        sa.Column('name', sa.String(length=200), nullable=True),
        sa.Column('source', sa.String(length=50), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('last_used_at', sa.DateTime(), nullable=True),
        sa.Column('revoked_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['user.id']),
        sa.ForeignKeyConstraint(['org_id'], ['organization.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token_hash'),
    )
    op.create_index('ix_devicetoken_user_id', 'devicetoken', ['user_id'])


def downgrade() -> None:
    op.drop_table('devicetoken')
    op.drop_table('linkingcode')
    op.drop_table('metricssnapshot')
    op.drop_table('dailymetric')
    op.drop_table('membership')
    op.drop_table('user')
    op.drop_table('organization')
