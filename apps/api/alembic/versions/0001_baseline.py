"""Baseline migration - tenants, intake, calendar, conflicts, damages, documents

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Fresh baseline for the LexDesk API. Column types are portable so the
same revision runs on PostgreSQL and SQLite.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column('id', sa.Uuid(), primary_key=True)


def _org_id() -> sa.Column:
    return sa.Column(
        'organization_id',
        sa.Uuid(),
        sa.ForeignKey('organizations.id', ondelete='CASCADE'),
        nullable=False,
    )


def _user_fk(name: str, ondelete: str = 'SET NULL', nullable: bool = True) -> sa.Column:
    return sa.Column(name, sa.Uuid(), sa.ForeignKey('users.id', ondelete=ondelete), nullable=nullable)


def _created_at() -> sa.Column:
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def _updated_at() -> sa.Column:
    return sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def _money(name: str) -> sa.Column:
    return sa.Column(name, sa.Numeric(14, 2), nullable=False, server_default='0')


def upgrade() -> None:
    """Create all tables."""

    # ==========================================================================
    # Tenants
    # ==========================================================================
    op.create_table(
        'organizations',
        _id(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False, unique=True),
        sa.Column('timezone', sa.String(50), nullable=False, server_default='America/New_York'),
        sa.Column('ai_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_table(
        'users',
        _id(),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
    )
    op.create_table(
        'memberships',
        _id(),
        _org_id(),
        _user_fk('user_id', ondelete='CASCADE', nullable=False),
        sa.Column('role', sa.String(50), nullable=False),
        _created_at(),
        sa.UniqueConstraint('organization_id', 'user_id', name='uq_membership_org_user'),
    )

    # ==========================================================================
    # Intake, leads, clients, cases
    # ==========================================================================
    op.create_table(
        'intake_forms',
        _id(),
        _org_id(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('practice_area', sa.String(100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
    )
    op.create_index('idx_intake_forms_org', 'intake_forms', ['organization_id'])

    op.create_table(
        'clients',
        _id(),
        _org_id(),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('company_name', sa.String(255), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        _created_at(),
    )
    op.create_index('idx_clients_org', 'clients', ['organization_id'])

    op.create_table(
        'leads',
        _id(),
        _org_id(),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('company_name', sa.String(255), nullable=True),
        sa.Column('practice_area', sa.String(100), nullable=False),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('source', sa.String(30), nullable=False),
        sa.Column('lead_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('initial_inquiry', sa.Text(), nullable=True),
        sa.Column('urgency_level', sa.String(20), nullable=False),
        _user_fk('assigned_to_user_id'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('lost_reason', sa.String(500), nullable=True),
        sa.Column('client_id', sa.Uuid(), sa.ForeignKey('clients.id', ondelete='SET NULL'), nullable=True),
        sa.Column('converted_at', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index('idx_leads_org_status', 'leads', ['organization_id', 'status'])

    op.create_table(
        'legal_cases',
        _id(),
        _org_id(),
        sa.Column('client_id', sa.Uuid(), sa.ForeignKey('clients.id', ondelete='CASCADE'), nullable=False),
        sa.Column('case_number', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('practice_area', sa.String(100), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        _created_at(),
    )
    op.create_index('idx_legal_cases_org', 'legal_cases', ['organization_id', 'status'])

    op.create_table(
        'intake_submissions',
        _id(),
        _org_id(),
        sa.Column('form_id', sa.Uuid(), sa.ForeignKey('intake_forms.id', ondelete='SET NULL'), nullable=True),
        sa.Column('submission_data', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('priority_score', sa.Integer(), nullable=False, server_default='50'),
        sa.Column('lead_id', sa.Uuid(), sa.ForeignKey('leads.id', ondelete='SET NULL'), nullable=True),
        _user_fk('reviewed_by_user_id'),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('user_agent', sa.String(500), nullable=True),
        sa.Column('referrer', sa.String(500), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index('idx_intake_sub_org_status', 'intake_submissions', ['organization_id', 'status'])
    op.create_index(
        'idx_intake_sub_org_priority',
        'intake_submissions',
        ['organization_id', 'priority_score', 'created_at'],
    )

    # ==========================================================================
    # Calendar
    # ==========================================================================
    op.create_table(
        'calendar_events',
        _id(),
        _org_id(),
        _user_fk('owner_user_id'),
        sa.Column('case_id', sa.Uuid(), sa.ForeignKey('legal_cases.id', ondelete='SET NULL'), nullable=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('event_type', sa.String(30), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('location', sa.String(500), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('reminder_minutes', sa.Integer(), nullable=True),
        sa.Column('reminder_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('additional_reminders', sa.JSON(), nullable=False),
        sa.Column('reminders_sent', sa.JSON(), nullable=False),
        sa.Column('reminder_generation', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('email_notification', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('push_notification', sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        _updated_at(),
    )
    op.create_index('idx_calendar_events_org_start', 'calendar_events', ['organization_id', 'start_time'])
    op.create_index('idx_calendar_events_owner', 'calendar_events', ['owner_user_id', 'start_time'])

    # ==========================================================================
    # Conflict checks
    # ==========================================================================
    op.create_table(
        'conflict_checks',
        _id(),
        _org_id(),
        sa.Column('entity_type', sa.String(30), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        sa.Column('check_type', sa.String(30), nullable=False),
        sa.Column('search_terms', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('results', sa.JSON(), nullable=False),
        sa.Column('confidence_score', sa.Integer(), nullable=False, server_default='0'),
        _user_fk('checked_by_user_id'),
        sa.Column('checked_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('resolution', sa.String(30), nullable=True),
        sa.Column('resolution_notes', sa.Text(), nullable=True),
        _user_fk('resolved_by_user_id'),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index(
        'idx_conflict_checks_entity',
        'conflict_checks',
        ['organization_id', 'entity_type', 'entity_id'],
    )

    # ==========================================================================
    # Notifications, jobs (outbox), audit
    # ==========================================================================
    op.create_table(
        'notifications',
        _id(),
        _org_id(),
        _user_fk('user_id', ondelete='CASCADE', nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('entity_type', sa.String(50), nullable=True),
        sa.Column('entity_id', sa.Uuid(), nullable=True),
        sa.Column('dedupe_key', sa.String(255), nullable=True),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index('idx_notif_user_unread', 'notifications', ['user_id', 'read_at', 'created_at'])
    op.create_index('idx_notif_org_user', 'notifications', ['organization_id', 'user_id', 'created_at'])
    op.create_index('idx_notif_dedupe', 'notifications', ['dedupe_key', 'user_id'])

    op.create_table(
        'jobs',
        _id(),
        _org_id(),
        sa.Column('job_type', sa.String(50), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('run_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_attempts', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('last_error', sa.Text(), nullable=True),
        _created_at(),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('idempotency_key', sa.String(255), nullable=True),
    )
    op.create_index('idx_jobs_pending', 'jobs', ['status', 'run_at'])
    op.create_index('idx_jobs_org', 'jobs', ['organization_id', 'created_at'])
    op.create_index('uq_job_idempotency', 'jobs', ['idempotency_key'], unique=True)

    op.create_table(
        'audit_logs',
        _id(),
        _org_id(),
        _user_fk('actor_user_id'),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column('target_type', sa.String(50), nullable=True),
        sa.Column('target_id', sa.Uuid(), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('prev_hash', sa.String(64), nullable=True),
        sa.Column('entry_hash', sa.String(64), nullable=True),
        _created_at(),
    )
    op.create_index('idx_audit_org_created', 'audit_logs', ['organization_id', 'created_at'])
    op.create_index('idx_audit_target', 'audit_logs', ['organization_id', 'target_type', 'target_id'])

    # ==========================================================================
    # Personal injury damages
    # ==========================================================================
    op.create_table(
        'damage_elements',
        _id(),
        _org_id(),
        sa.Column('case_id', sa.Uuid(), sa.ForeignKey('legal_cases.id', ondelete='CASCADE'), nullable=False),
        sa.Column('element_type', sa.String(30), nullable=False),
        sa.Column('description', sa.String(500), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('calculation_method', sa.String(50), nullable=True),
        sa.Column('provider_name', sa.String(255), nullable=True),
        sa.Column('incurred_on', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _user_fk('created_by_user_id'),
        _created_at(),
    )
    op.create_index('idx_damage_elements_case', 'damage_elements', ['organization_id', 'case_id'])

    op.create_table(
        'damage_calculations',
        _id(),
        _org_id(),
        sa.Column('case_id', sa.Uuid(), sa.ForeignKey('legal_cases.id', ondelete='CASCADE'), nullable=False),
        _money('past_medical_total'),
        _money('future_medical_total'),
        _money('lost_wages_total'),
        _money('earning_capacity_total'),
        _money('household_services_total'),
        _money('pain_suffering_total'),
        _money('mileage_total'),
        _money('other_total'),
        _money('economic_damages'),
        _money('non_economic_damages'),
        _money('gross_damages'),
        sa.Column('comparative_negligence_percent', sa.Numeric(5, 2), nullable=False, server_default='0'),
        _money('adjusted_damages'),
        _money('low_estimate'),
        _money('mid_estimate'),
        _money('high_estimate'),
        _user_fk('calculated_by_user_id'),
        sa.Column('calculated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('organization_id', 'case_id', name='uq_damage_calc_case'),
    )

    # ==========================================================================
    # AI documents
    # ==========================================================================
    op.create_table(
        'generated_documents',
        _id(),
        _org_id(),
        sa.Column('case_id', sa.Uuid(), sa.ForeignKey('legal_cases.id', ondelete='SET NULL'), nullable=True),
        sa.Column('document_type', sa.String(50), nullable=False),
        sa.Column('prompt_key', sa.String(100), nullable=False),
        sa.Column('prompt_version', sa.String(20), nullable=False),
        sa.Column('variables', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('provider', sa.String(30), nullable=True),
        sa.Column('model', sa.String(100), nullable=True),
        sa.Column('prompt_tokens', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('completion_tokens', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('estimated_cost_usd', sa.Numeric(12, 6), nullable=False, server_default='0'),
        _user_fk('created_by_user_id'),
        _created_at(),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('idx_generated_docs_org', 'generated_documents', ['organization_id', 'created_at'])
    op.create_index('idx_generated_docs_case', 'generated_documents', ['organization_id', 'case_id'])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    for table in (
        'generated_documents',
        'damage_calculations',
        'damage_elements',
        'audit_logs',
        'jobs',
        'notifications',
        'conflict_checks',
        'calendar_events',
        'intake_submissions',
        'legal_cases',
        'leads',
        'clients',
        'intake_forms',
        'memberships',
        'users',
        'organizations',
    ):
        op.drop_table(table)
