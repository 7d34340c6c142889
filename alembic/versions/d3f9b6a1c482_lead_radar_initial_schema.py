"""Lead radar initial schema

Revision ID: d3f9b6a1c482
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'd3f9b6a1c482'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'warm_leads',
        sa.Column('id', sa.Text(), primary_key=True),
        sa.Column('user_id', sa.Text(), nullable=False),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('phone', sa.Text(), nullable=True),
        sa.Column('company', sa.Text(), nullable=True),
        sa.Column('source', sa.Text(), nullable=False, server_default='website'),
        sa.Column('warmth_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.Text(), nullable=False, server_default='detected'),
        sa.Column('behavior_data', sa.JSON(), nullable=True),
        sa.Column('seizure_history', sa.JSON(), nullable=True),
        sa.Column('first_detected', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_activity', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_warm_leads_user_id', 'warm_leads', ['user_id'])
    op.create_index('ix_warm_leads_user_email', 'warm_leads', ['user_id', 'email'])

    op.create_table(
        'seizure_logs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('warm_lead_id', sa.Text(), nullable=False),
        sa.Column('user_id', sa.Text(), nullable=False),
        sa.Column('action_type', sa.Text(), nullable=False),
        sa.Column('action_data', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_seizure_logs_user_id', 'seizure_logs', ['user_id'])
    op.create_index('ix_seizure_logs_warm_lead_id', 'seizure_logs', ['warm_lead_id'])

    op.create_table(
        'seizure_settings',
        sa.Column('user_id', sa.Text(), primary_key=True),
        sa.Column('warmth_threshold', sa.Integer(), nullable=False, server_default='65'),
        sa.Column('ad_channels', sa.JSON(), nullable=True),
        sa.Column('ab_testing_mode', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('auto_dialer_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        'lead_threat_scores',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('lead_id', sa.Text(), nullable=False),
        sa.Column('user_id', sa.Text(), nullable=False),
        sa.Column('overall_score', sa.Integer(), nullable=False),
        sa.Column('threat_level', sa.Text(), nullable=False),
        sa.Column('scoring_factors', sa.JSON(), nullable=True),
        sa.Column('threat_indicators', sa.JSON(), nullable=True),
        sa.Column('recommended_actions', sa.JSON(), nullable=True),
        sa.Column('dynamic_follow_up', sa.JSON(), nullable=True),
        sa.Column('competitive_intelligence', sa.JSON(), nullable=True),
        sa.Column('calculated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_lead_threat_scores_lead_user', 'lead_threat_scores', ['lead_id', 'user_id'])
    op.create_index('ix_lead_threat_scores_calculated_at', 'lead_threat_scores', ['calculated_at'])

    op.create_table(
        'lead_scoring_config',
        sa.Column('organization_id', sa.Text(), primary_key=True),
        sa.Column('scoring_weights', sa.JSON(), nullable=True),
        sa.Column('threat_thresholds', sa.JSON(), nullable=True),
        sa.Column('cache_duration_hours', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table('lead_scoring_config')
    op.drop_index('ix_lead_threat_scores_calculated_at', table_name='lead_threat_scores')
    op.drop_index('ix_lead_threat_scores_lead_user', table_name='lead_threat_scores')
    op.drop_table('lead_threat_scores')
    op.drop_table('seizure_settings')
    op.drop_index('ix_seizure_logs_warm_lead_id', table_name='seizure_logs')
    op.drop_index('ix_seizure_logs_user_id', table_name='seizure_logs')
    op.drop_table('seizure_logs')
    op.drop_index('ix_warm_leads_user_email', table_name='warm_leads')
    op.drop_index('ix_warm_leads_user_id', table_name='warm_leads')
    op.drop_table('warm_leads')
