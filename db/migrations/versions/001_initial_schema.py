"""initial_schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _enum(name, *values):
    return postgresql.ENUM(*values, name=name, create_type=False)


def upgrade() -> None:
    # Create enum types
    op.execute("""
        CREATE TYPE kyc_status AS ENUM ('pending', 'in_review', 'approved', 'rejected', 'expired');
        CREATE TYPE account_status AS ENUM ('active', 'inactive', 'suspended', 'closed');
        CREATE TYPE trade_type AS ENUM ('buy', 'sell', 'transfer_in', 'transfer_out', 'dividend', 'fee');
        CREATE TYPE trade_status AS ENUM ('pending', 'settled');
        CREATE TYPE document_status AS ENUM ('pending', 'approved', 'rejected', 'archived');
        CREATE TYPE fee_type AS ENUM ('management', 'performance', 'transaction', 'custody', 'retrocession', 'other');
        CREATE TYPE compliance_task_type AS ENUM (
            'kyc_review', 'annual_review', 'document_renewal', 'concentration_review', 'other'
        );
        CREATE TYPE compliance_task_priority AS ENUM ('low', 'medium', 'high');
        CREATE TYPE compliance_task_status AS ENUM ('pending', 'in_progress', 'completed', 'overdue', 'cancelled');
        CREATE TYPE user_role AS ENUM ('viewer', 'operator', 'admin');
        CREATE TYPE audit_event_type AS ENUM (
            'fee_calculated', 'retrocession_allocated', 'fee_paid',
            'compliance_task_created', 'tasks_marked_overdue'
        );
    """)

    # Create clients table
    op.create_table(
        'clients',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('kyc_status', _enum('kyc_status', 'pending', 'in_review', 'approved', 'rejected', 'expired'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False)
    )

    # Create accounts table
    op.create_table(
        'accounts',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('account_number', sa.String(50), nullable=False, unique=True),
        sa.Column('base_currency', sa.String(3), nullable=False),
        sa.Column('status', _enum('account_status', 'active', 'inactive', 'suspended', 'closed'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'])
    )

    # Create account_valuations table
    op.create_table(
        'account_valuations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('account_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('valuation_date', sa.Date, nullable=False),
        sa.Column('total_value', sa.Numeric(20, 6), nullable=False),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE')
    )
    op.create_unique_constraint('uq_account_valuation_date', 'account_valuations', ['account_id', 'valuation_date'])
    op.create_index('idx_account_valuations_account', 'account_valuations', ['account_id', 'valuation_date'])

    # Create securities table
    op.create_table(
        'securities',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('symbol', sa.String(20), nullable=False, unique=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('sector', sa.String(100), nullable=True),
        sa.Column('country', sa.String(2), nullable=True),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default='true')
    )

    # Create positions table
    op.create_table(
        'positions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('account_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('security_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('quantity', sa.Numeric(20, 6), nullable=False, server_default='0'),
        sa.Column('average_cost', sa.Numeric(20, 6), nullable=True),
        sa.Column('market_value', sa.Numeric(20, 6), nullable=True),
        sa.Column('last_updated', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['security_id'], ['securities.id'])
    )
    op.create_index('idx_positions_account', 'positions', ['account_id', 'quantity'])

    # Create trades table
    op.create_table(
        'trades',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('account_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('security_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('trade_date', sa.Date, nullable=False),
        sa.Column('trade_type', _enum('trade_type', 'buy', 'sell', 'transfer_in', 'transfer_out', 'dividend', 'fee'), nullable=False),
        sa.Column('quantity', sa.Numeric(20, 6), nullable=False),
        sa.Column('price', sa.Numeric(20, 6), nullable=False),
        sa.Column('gross_amount', sa.Numeric(20, 6), nullable=False),
        sa.Column('commission', sa.Numeric(20, 6), nullable=True),
        sa.Column('fees', sa.Numeric(20, 6), nullable=True),
        sa.Column('tax', sa.Numeric(20, 6), nullable=True),
        sa.Column('net_amount', sa.Numeric(20, 6), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('status', _enum('trade_status', 'pending', 'settled'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['security_id'], ['securities.id'])
    )
    op.create_index('idx_trades_account_date', 'trades', ['account_id', 'trade_date'])

    # Create documents table
    op.create_table(
        'documents',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('account_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('status', _enum('document_status', 'pending', 'approved', 'rejected', 'archived'), nullable=False),
        sa.Column('expiry_date', sa.Date, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id']),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'])
    )
    op.create_index('idx_documents_expiry', 'documents', ['status', 'expiry_date'])

    # Create fees table
    op.create_table(
        'fees',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('account_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('fee_type', _enum('fee_type', 'management', 'performance', 'transaction', 'custody', 'retrocession', 'other'), nullable=False),
        sa.Column('fee_description', sa.String(500), nullable=False),
        sa.Column('calculation_period_start', sa.Date, nullable=False),
        sa.Column('calculation_period_end', sa.Date, nullable=False),
        sa.Column('fee_rate', sa.Numeric(10, 4), nullable=True),
        sa.Column('calculated_amount', sa.Numeric(20, 6), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('is_paid', sa.Boolean, nullable=False, server_default='false'),
        sa.Column('payment_date', sa.Date, nullable=True),
        sa.Column('created_by', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'])
    )
    op.create_index('idx_fees_account_period', 'fees', ['account_id', 'calculation_period_start', 'calculation_period_end'])

    # Create retrocessions table
    op.create_table(
        'retrocessions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('fee_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('recipient_name', sa.String(255), nullable=False),
        sa.Column('recipient_type', sa.String(50), nullable=False),
        sa.Column('retrocession_rate', sa.Numeric(10, 4), nullable=False),
        sa.Column('amount', sa.Numeric(20, 6), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('is_paid', sa.Boolean, nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['fee_id'], ['fees.id'])
    )
    op.create_index('idx_retrocessions_fee', 'retrocessions', ['fee_id'])

    # Create compliance_tasks table
    op.create_table(
        'compliance_tasks',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('account_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('task_type', _enum('compliance_task_type', 'kyc_review', 'annual_review', 'document_renewal', 'concentration_review', 'other'), nullable=False),
        sa.Column('priority', _enum('compliance_task_priority', 'low', 'medium', 'high'), nullable=False),
        sa.Column('status', _enum('compliance_task_status', 'pending', 'in_progress', 'completed', 'overdue', 'cancelled'), nullable=False),
        sa.Column('due_date', sa.Date, nullable=False),
        sa.Column('assigned_to', sa.String(255), nullable=True),
        sa.Column('created_by', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id']),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'])
    )
    op.create_index('idx_compliance_tasks_status_due', 'compliance_tasks', ['status', 'due_date'])
    op.create_index('idx_compliance_tasks_assignee', 'compliance_tasks', ['assigned_to', 'status'])

    # Create users table
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('username', sa.String(100), nullable=False, unique=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('display_name', sa.String(255), nullable=True),
        sa.Column('role', _enum('user_role', 'viewer', 'operator', 'admin'), nullable=False),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True)
    )

    # Create audit_events table
    op.create_table(
        'audit_events',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('event_type', _enum('audit_event_type', 'fee_calculated', 'retrocession_allocated', 'fee_paid', 'compliance_task_created', 'tasks_marked_overdue'), nullable=False),
        sa.Column('aggregate_type', sa.String(50), nullable=False),
        sa.Column('aggregate_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('event_data', postgresql.JSONB, nullable=False),
        sa.Column('actor', sa.String(255), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False)
    )
    op.create_index('idx_audit_events_aggregate', 'audit_events', ['aggregate_type', 'aggregate_id', 'occurred_at'])
    op.create_index('idx_audit_events_type', 'audit_events', ['event_type', 'occurred_at'])


def downgrade() -> None:
    op.drop_table('audit_events')
    op.drop_table('users')
    op.drop_table('compliance_tasks')
    op.drop_table('retrocessions')
    op.drop_table('fees')
    op.drop_table('documents')
    op.drop_table('trades')
    op.drop_table('positions')
    op.drop_table('securities')
    op.drop_table('account_valuations')
    op.drop_table('accounts')
    op.drop_table('clients')

    op.execute("""
        DROP TYPE IF EXISTS audit_event_type;
        DROP TYPE IF EXISTS user_role;
        DROP TYPE IF EXISTS compliance_task_status;
        DROP TYPE IF EXISTS compliance_task_priority;
        DROP TYPE IF EXISTS compliance_task_type;
        DROP TYPE IF EXISTS fee_type;
        DROP TYPE IF EXISTS document_status;
        DROP TYPE IF EXISTS trade_status;
        DROP TYPE IF EXISTS trade_type;
        DROP TYPE IF EXISTS account_status;
        DROP TYPE IF EXISTS kyc_status;
    """)
