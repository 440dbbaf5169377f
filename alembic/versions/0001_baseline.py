"""Baseline migration - clients, quotes, estimations, projects and ledgers

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all back-office tables."""

    # ==========================================================================
    # Clients
    # ==========================================================================
    op.create_table(
        'clients',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('company', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    # ==========================================================================
    # Quotes
    # ==========================================================================
    op.create_table(
        'quotes',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price_estimated', sa.Float(), nullable=True),
        sa.Column('minimum_price', sa.Float(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('requirements', sa.JSON(), nullable=False),
        sa.Column('start_date_estimated', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_date_estimated', sa.DateTime(timezone=True), nullable=True),
        sa.Column('external_repository', sa.String(255), nullable=True),
        sa.Column('ai_message_rate', sa.Float(), nullable=False),
        sa.Column('ai_messages_used_for_requirements', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('profit_margin_percentage', sa.Float(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_quotes_client', 'quotes', ['client_id'])
    op.create_index('idx_quotes_status', 'quotes', ['status'])

    # ==========================================================================
    # Estimation tree
    # ==========================================================================
    op.create_table(
        'milestone_estimations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('quote_id', sa.Uuid(), nullable=False),
        sa.Column('external_milestone_id', sa.BigInteger(), nullable=False),
        sa.Column('milestone_number', sa.Integer(), nullable=True),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('calculated_price', sa.Float(), nullable=False),
        sa.Column('include_in_quote', sa.Boolean(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['quote_id'], ['quotes.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('quote_id', 'external_milestone_id', name='uq_milestone_estimation_quote_ext'),
    )

    op.create_table(
        'issue_estimations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('milestone_estimation_id', sa.Uuid(), nullable=False),
        sa.Column('external_issue_id', sa.BigInteger(), nullable=False),
        sa.Column('issue_number', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('issue_type', sa.String(20), nullable=False),
        sa.Column('estimated_messages', sa.Integer(), nullable=True),
        sa.Column('fixed_price', sa.Float(), nullable=True),
        sa.Column('calculated_price', sa.Float(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['milestone_estimation_id'], ['milestone_estimations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_issue_estimations_milestone', 'issue_estimations', ['milestone_estimation_id'])

    # ==========================================================================
    # Projects
    # ==========================================================================
    op.create_table(
        'projects',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('quote_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('agreed_price', sa.Float(), nullable=False),
        sa.Column('minimum_cost', sa.Float(), nullable=False),
        sa.Column('ai_message_rate', sa.Float(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('total_income', sa.Float(), nullable=True),
        sa.Column('total_costs', sa.Float(), nullable=True),
        sa.Column('net_profit', sa.Float(), nullable=True),
        sa.Column('profit_margin', sa.Float(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['quote_id'], ['quotes.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('quote_id'),
    )
    op.create_index('idx_projects_status', 'projects', ['status'])

    op.create_table(
        'project_milestones',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('project_id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('external_milestone_id', sa.BigInteger(), nullable=True),
        sa.Column('is_extra', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'issues',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('project_id', sa.Uuid(), nullable=False),
        sa.Column('milestone_id', sa.Uuid(), nullable=True),
        sa.Column('external_issue_id', sa.BigInteger(), nullable=True),
        sa.Column('number', sa.Integer(), nullable=True),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('issue_type', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('ai_message_estimate', sa.Integer(), nullable=False),
        sa.Column('ai_message_real', sa.Integer(), nullable=False),
        sa.Column('cost_estimated', sa.Float(), nullable=False),
        sa.Column('cost_real', sa.Float(), nullable=False),
        sa.Column('is_extra', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['milestone_id'], ['project_milestones.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_issues_project', 'issues', ['project_id'])

    # ==========================================================================
    # Ledgers
    # ==========================================================================
    op.create_table(
        'ai_messages',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('issue_id', sa.Uuid(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('cost', sa.Float(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['issue_id'], ['issues.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_ai_messages_issue', 'ai_messages', ['issue_id'])

    op.create_table(
        'payments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('project_id', sa.Uuid(), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('method', sa.String(30), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_payments_project', 'payments', ['project_id'])

    op.create_table(
        'manual_tasks',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('project_id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('hours', sa.Float(), nullable=True),
        sa.Column('cost', sa.Float(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'extra_expenses',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('project_id', sa.Uuid(), nullable=False),
        sa.Column('description', sa.String(500), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )

    # ==========================================================================
    # Alerts
    # ==========================================================================
    op.create_table(
        'alerts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('project_id', sa.Uuid(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_alerts_project_unread', 'alerts', ['project_id', 'read'])


def downgrade() -> None:
    """Drop all back-office tables."""
    op.drop_index('idx_alerts_project_unread', table_name='alerts')
    op.drop_table('alerts')
    op.drop_table('extra_expenses')
    op.drop_table('manual_tasks')
    op.drop_index('idx_payments_project', table_name='payments')
    op.drop_table('payments')
    op.drop_index('idx_ai_messages_issue', table_name='ai_messages')
    op.drop_table('ai_messages')
    op.drop_index('idx_issues_project', table_name='issues')
    op.drop_table('issues')
    op.drop_table('project_milestones')
    op.drop_index('idx_projects_status', table_name='projects')
    op.drop_table('projects')
    op.drop_index('idx_issue_estimations_milestone', table_name='issue_estimations')
    op.drop_table('issue_estimations')
    op.drop_table('milestone_estimations')
    op.drop_index('idx_quotes_status', table_name='quotes')
    op.drop_index('idx_quotes_client', table_name='quotes')
    op.drop_table('quotes')
    op.drop_table('clients')
