"""
SQLAlchemy ORM models for the back-office ledger.

Import all models here to ensure they're registered with Base.metadata.
This is required for Alembic autogenerate to work correctly.
"""

from backoffice.models.client import Client, KycStatus
from backoffice.models.account import Account, AccountStatus, AccountValuation
from backoffice.models.security import Security
from backoffice.models.position import Position
from backoffice.models.trade import Trade, TradeType, TradeStatus, compute_net_amount
from backoffice.models.document import Document, DocumentStatus
from backoffice.models.fee import Fee, FeeType, Retrocession
from backoffice.models.compliance_task import ComplianceTask, TaskType, TaskPriority, TaskStatus
from backoffice.models.audit import AuditEvent, AuditEventType
from backoffice.models.user import User, UserRole

__all__ = [
    # Client
    "Client",
    "KycStatus",
    # Account
    "Account",
    "AccountStatus",
    "AccountValuation",
    # Instruments and holdings
    "Security",
    "Position",
    # Trade
    "Trade",
    "TradeType",
    "TradeStatus",
    "compute_net_amount",
    # Document
    "Document",
    "DocumentStatus",
    # Fee
    "Fee",
    "FeeType",
    "Retrocession",
    # Compliance
    "ComplianceTask",
    "TaskType",
    "TaskPriority",
    "TaskStatus",
    # Audit
    "AuditEvent",
    "AuditEventType",
    # User
    "User",
    "UserRole",
]
