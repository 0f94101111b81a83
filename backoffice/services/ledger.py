"""
Ledger Repository.

The only gateway between the engine and the database: reads of accounts,
clients, positions, trades, valuations, documents and tasks; inserts of
fees, retrocessions and compliance tasks; the bulk overdue transition; and
the time-weighted holdings aggregation used by management fees.

Every operation runs under the request-scoped deadline. The remaining
budget is checked before the operation, handed to the database so a slow
statement is cancelled, and checked again once the operation returns.
"""

import time
from contextlib import contextmanager
from datetime import date
from typing import Callable, Dict, Iterator, List, Optional
from uuid import UUID

from sqlalchemy import func, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, selectinload

from backoffice.domain.compliance_rules import Holding, TaskDraft
from backoffice.domain.fee_strategies import FeeComputation, time_weighted_value
from backoffice.errors import LedgerTimeout
from backoffice.models import (
    Account, AccountValuation, AuditEvent, AuditEventType, Client, ComplianceTask,
    Document, DocumentStatus, Fee, Position, Retrocession, Security, TaskStatus, Trade
)

# PostgreSQL SQLSTATE query_canceled, raised when statement_timeout fires
QUERY_CANCELED = "57014"

# SQLite virtual machine steps between deadline checks
SQLITE_PROGRESS_STEPS = 1000


def is_statement_timeout(error: DBAPIError) -> bool:
    """True when the database cancelled the statement for running too long."""
    orig = error.orig
    if getattr(orig, "pgcode", None) == QUERY_CANCELED:
        return True
    # sqlite3 reports an aborted progress handler as "interrupted"
    return str(orig) == "interrupted"


class Ledger:
    """
    Repository over a SQLAlchemy session.

    Writes commit immediately: each insert is its own unit of work, so a
    failed secondary write never rolls back an already persisted fee or task.
    """

    def __init__(
        self,
        db: Session,
        timeout_seconds: Optional[float] = None,
        monotonic: Callable[[], float] = time.monotonic
    ):
        """
        Initialize ledger.

        Args:
            db: SQLAlchemy database session
            timeout_seconds: Budget for all operations on this ledger (None = unbounded)
            monotonic: Time source for the deadline
        """
        self.db = db
        self._monotonic = monotonic
        self._deadline = monotonic() + timeout_seconds if timeout_seconds is not None else None

    def _checkpoint(self, operation: str) -> None:
        if self._deadline is not None and self._monotonic() >= self._deadline:
            raise LedgerTimeout(details=f"deadline exceeded at '{operation}'")

    def _deadline_passed(self) -> bool:
        return self._monotonic() >= self._deadline

    @contextmanager
    def _bounded(self, operation: str) -> Iterator[None]:
        """
        Run one ledger operation within the remaining budget.

        Writes flush inside the block and commit after it, so an operation
        that overruns is rolled back by the caller instead of committed.
        """
        self._checkpoint(operation)
        if self._deadline is None:
            yield
            return

        release = self._limit_statements()
        try:
            yield
        except DBAPIError as e:
            if is_statement_timeout(e):
                raise LedgerTimeout(details=f"'{operation}' cancelled by the database") from e
            raise
        finally:
            release()
        self._checkpoint(operation)

    def _limit_statements(self) -> Callable[[], None]:
        """Hand the remaining budget to the database; returns the undo."""
        dialect = self.db.get_bind().dialect.name

        if dialect == "postgresql":
            remaining_ms = max(int((self._deadline - self._monotonic()) * 1000), 1)
            # SET does not take bind parameters; scoped to the current transaction
            self.db.execute(text(f"SET LOCAL statement_timeout = {remaining_ms}"))
            return lambda: None

        if dialect == "sqlite":
            raw = self.db.connection().connection.dbapi_connection
            raw.set_progress_handler(self._deadline_passed, SQLITE_PROGRESS_STEPS)
            return lambda: raw.set_progress_handler(None, 0)

        return lambda: None

    def rollback(self) -> None:
        """Discard the failed unit of work so the session stays usable."""
        self.db.rollback()

    # ===== Reads =====

    def get_account(self, account_id: UUID) -> Optional[Account]:
        with self._bounded("get_account"):
            return self.db.query(Account).filter(Account.id == account_id).first()

    def get_client(self, client_id: UUID) -> Optional[Client]:
        with self._bounded("get_client"):
            return self.db.query(Client).filter(Client.id == client_id).first()

    def get_fee(self, fee_id: UUID) -> Optional[Fee]:
        with self._bounded("get_fee"):
            return self.db.query(Fee).filter(Fee.id == fee_id).first()

    def open_holdings(self, account_id: UUID) -> List[Holding]:
        """Positions with quantity > 0, joined with their security."""
        with self._bounded("open_holdings"):
            rows = (
                self.db.query(Position, Security)
                .outerjoin(Security, Position.security_id == Security.id)
                .filter(
                    Position.account_id == account_id,
                    Position.quantity > 0
                )
                .order_by(Position.id)
                .all()
            )
        return [
            Holding(
                position_id=position.id,
                security_id=position.security_id,
                symbol=security.symbol if security else None,
                sector=security.sector if security else None,
                quantity=float(position.quantity or 0),
                market_value=float(position.market_value or 0),
                cost_basis=float(position.cost_basis),
            )
            for position, security in rows
        ]

    def transaction_costs(self, account_id: UUID, start: date, end: date) -> float:
        """Sum of commission + fees over trades with start <= trade_date <= end."""
        with self._bounded("transaction_costs"):
            total = (
                self.db.query(
                    func.sum(func.coalesce(Trade.commission, 0) + func.coalesce(Trade.fees, 0))
                )
                .filter(
                    Trade.account_id == account_id,
                    Trade.trade_date >= start,
                    Trade.trade_date <= end
                )
                .scalar()
            )
        return float(total or 0)

    def time_weighted_average_value(self, account_id: UUID, start: date, end: date) -> float:
        """
        Time-weighted holdings value for the period, pro-rated by actual/365.

        Reads valuation snapshots up to the period end, including the last
        one on or before start (the value in force when the period opens).
        """
        with self._bounded("time_weighted_average_value"):
            opening = (
                self.db.query(AccountValuation)
                .filter(
                    AccountValuation.account_id == account_id,
                    AccountValuation.valuation_date <= start
                )
                .order_by(AccountValuation.valuation_date.desc())
                .first()
            )
            in_period = (
                self.db.query(AccountValuation)
                .filter(
                    AccountValuation.account_id == account_id,
                    AccountValuation.valuation_date > start,
                    AccountValuation.valuation_date < end
                )
                .order_by(AccountValuation.valuation_date)
                .all()
            )
        snapshots = [opening] if opening else []
        snapshots.extend(in_period)
        return time_weighted_value(
            [(s.valuation_date, float(s.total_value or 0)) for s in snapshots],
            start,
            end
        )

    def expiring_documents(self, cutoff: date) -> List[Document]:
        """Approved documents with an expiry date on or before cutoff."""
        with self._bounded("expiring_documents"):
            return (
                self.db.query(Document)
                .filter(
                    Document.status == DocumentStatus.APPROVED,
                    Document.expiry_date.isnot(None),
                    Document.expiry_date <= cutoff
                )
                .order_by(Document.expiry_date, Document.id)
                .all()
            )

    def overdue_tasks(self) -> List[ComplianceTask]:
        with self._bounded("overdue_tasks"):
            return (
                self.db.query(ComplianceTask)
                .filter(ComplianceTask.status == TaskStatus.OVERDUE)
                .order_by(ComplianceTask.due_date, ComplianceTask.id)
                .all()
            )

    def list_fees(
        self,
        account_id: Optional[UUID] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None
    ) -> List[Fee]:
        """Fees (with retrocessions), newest first."""
        query = self.db.query(Fee).options(selectinload(Fee.retrocessions))

        if account_id:
            query = query.filter(Fee.account_id == account_id)

        if from_date:
            query = query.filter(Fee.calculation_period_start >= from_date)

        if to_date:
            query = query.filter(Fee.calculation_period_end <= to_date)

        with self._bounded("list_fees"):
            return query.order_by(Fee.created_at.desc()).all()

    def list_tasks(
        self,
        status: Optional[TaskStatus] = None,
        assigned_to: Optional[str] = None
    ) -> List[ComplianceTask]:
        """Compliance tasks by due date ascending."""
        query = self.db.query(ComplianceTask)

        if status:
            query = query.filter(ComplianceTask.status == status)

        if assigned_to:
            query = query.filter(ComplianceTask.assigned_to == assigned_to)

        with self._bounded("list_tasks"):
            return query.order_by(ComplianceTask.due_date.asc(), ComplianceTask.created_at.asc()).all()

    # ===== Writes =====

    def insert_fee(
        self,
        account: Account,
        computation: FeeComputation,
        period_start: date,
        period_end: date,
        requested_rate: Optional[float],
        created_by: str
    ) -> Fee:
        """Persist a calculated fee (and its audit event) and commit."""
        with self._bounded("insert_fee"):
            fee = Fee(
                account_id=account.id,
                fee_type=computation.fee_type,
                fee_description=computation.description,
                calculation_period_start=period_start,
                calculation_period_end=period_end,
                fee_rate=requested_rate,
                calculated_amount=computation.amount,
                currency=account.base_currency,
                created_by=created_by
            )
            self.db.add(fee)
            self.db.flush()  # Get fee ID

            self._audit(
                AuditEventType.FEE_CALCULATED,
                "fee",
                fee.id,
                {
                    "account_id": str(account.id),
                    "fee_type": computation.fee_type.value,
                    "amount": computation.amount,
                    "rate_applied": computation.rate,
                    "period_start": period_start.isoformat(),
                    "period_end": period_end.isoformat(),
                },
                created_by
            )
            self.db.flush()
        self.db.commit()
        return fee

    def insert_retrocession(
        self,
        fee_id: UUID,
        recipient_name: str,
        recipient_type: str,
        retrocession_rate: float,
        amount: float,
        currency: str
    ) -> Retrocession:
        with self._bounded("insert_retrocession"):
            retrocession = Retrocession(
                fee_id=fee_id,
                recipient_name=recipient_name,
                recipient_type=recipient_type,
                retrocession_rate=retrocession_rate,
                amount=amount,
                currency=currency
            )
            self.db.add(retrocession)
            self.db.flush()

            self._audit(
                AuditEventType.RETROCESSION_ALLOCATED,
                "retrocession",
                retrocession.id,
                {"fee_id": str(fee_id), "amount": amount, "recipient": recipient_name},
                "system"
            )
            self.db.flush()
        self.db.commit()
        return retrocession

    def insert_task(self, draft: TaskDraft, created_by: str) -> ComplianceTask:
        """Persist a follow-up task in pending state and commit."""
        with self._bounded("insert_task"):
            task = ComplianceTask(
                client_id=draft.client_id,
                account_id=draft.account_id,
                title=draft.title,
                description=draft.description,
                task_type=draft.task_type,
                priority=draft.priority,
                status=TaskStatus.PENDING,
                due_date=draft.due_date,
                created_by=created_by
            )
            self.db.add(task)
            self.db.flush()

            self._audit(
                AuditEventType.COMPLIANCE_TASK_CREATED,
                "compliance_task",
                task.id,
                {
                    "task_type": draft.task_type.value,
                    "due_date": draft.due_date.isoformat(),
                    "client_id": str(draft.client_id) if draft.client_id else None,
                    "account_id": str(draft.account_id) if draft.account_id else None,
                },
                created_by
            )
            self.db.flush()
        self.db.commit()
        return task

    def mark_overdue_tasks(self, today: date, actor: str) -> int:
        """
        Transition every pending task with due_date < today to overdue.

        Returns:
            Number of tasks updated
        """
        with self._bounded("mark_overdue_tasks"):
            updated = (
                self.db.query(ComplianceTask)
                .filter(
                    ComplianceTask.status == TaskStatus.PENDING,
                    ComplianceTask.due_date < today
                )
                .update({ComplianceTask.status: TaskStatus.OVERDUE}, synchronize_session="fetch")
            )

            if updated:
                self._audit(
                    AuditEventType.TASKS_MARKED_OVERDUE,
                    "compliance_task",
                    None,
                    {"updated": updated, "as_of": today.isoformat()},
                    actor
                )
                self.db.flush()
        self.db.commit()
        return updated

    def mark_fee_paid(self, fee: Fee, payment_date: date, actor: str) -> Fee:
        with self._bounded("mark_fee_paid"):
            fee.is_paid = True
            fee.payment_date = payment_date

            self._audit(
                AuditEventType.FEE_PAID,
                "fee",
                fee.id,
                {"payment_date": payment_date.isoformat()},
                actor
            )
            self.db.flush()
        self.db.commit()
        return fee

    def _audit(
        self,
        event_type: AuditEventType,
        aggregate_type: str,
        aggregate_id: Optional[UUID],
        event_data: Dict,
        actor: str
    ) -> None:
        self.db.add(AuditEvent(
            event_type=event_type,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            event_data=event_data,
            actor=actor
        ))
