"""
Compliance Evaluation Service.

Runs the selected compliance rules against the ledger, persists follow-up
tasks and returns the issues with a severity summary.

Rules run in a fixed order: kyc, concentration, documents, tasks. Reads
feeding a rule are primary (failure fails the evaluation); each task
insert is secondary (failure is recorded and the remaining tasks are
still created).
"""

from typing import List, Optional, Union
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from backoffice.clock import Clock
from backoffice.domain.compliance_rules import (
    CheckType, RuleOutcome, check_concentration, check_document_expiry, check_kyc,
    document_expiry_cutoff, summarize_overdue_tasks
)
from backoffice.errors import ComputationFailed, InvalidParameter, LedgerTimeout, UnknownCheckType
from backoffice.logging import get_logger
from backoffice.models import ComplianceTask, TaskStatus
from backoffice.services.ledger import Ledger
from backoffice.services.results import ComplianceReport, SecondaryFailure

logger = get_logger(__name__)

LEDGER_ERRORS = (SQLAlchemyError, LedgerTimeout)


def parse_check_type(value: Optional[Union[str, CheckType]]) -> CheckType:
    """Map a check-type tag to CheckType; absent means all."""
    if value is None or value == "":
        return CheckType.ALL
    try:
        return CheckType(value)
    except ValueError:
        raise UnknownCheckType(details=f"Unknown check type '{value}'")


class ComplianceMonitor:
    """
    Compliance evaluation and task register operations.

    Tasks are not deduplicated: re-running an evaluation creates a fresh
    set of follow-up tasks.
    """

    def __init__(self, ledger: Ledger, clock: Clock):
        self.ledger = ledger
        self.clock = clock

    def evaluate(
        self,
        created_by: str,
        client_id: Optional[UUID] = None,
        account_id: Optional[UUID] = None,
        check_type: Optional[Union[str, CheckType]] = None
    ) -> ComplianceReport:
        """
        Run compliance checks.

        Args:
            created_by: Authenticated caller id (recorded on created tasks)
            client_id: Client for the KYC rule (rule skipped when absent)
            account_id: Account for the concentration rule (rule skipped when absent)
            check_type: kyc | concentration | documents | tasks | all (default all)

        Returns:
            ComplianceReport

        Raises:
            UnknownCheckType: Tag is not a known check type (no ledger access)
            ComputationFailed: Ledger failure while reading rule inputs
        """
        check_type = parse_check_type(check_type)
        report = ComplianceReport()

        try:
            if check_type.includes(CheckType.KYC) and client_id:
                self._apply(self._kyc(client_id), report, created_by)

            if check_type.includes(CheckType.CONCENTRATION) and account_id:
                outcome = check_concentration(account_id, self.ledger.open_holdings(account_id))
                self._apply(outcome, report, created_by)

            if check_type.includes(CheckType.DOCUMENTS):
                today = self.clock.today()
                documents = self.ledger.expiring_documents(document_expiry_cutoff(today))
                self._apply(check_document_expiry(documents, today), report, created_by)

            if check_type.includes(CheckType.TASKS):
                self._apply(self._overdue_sweep(created_by), report, created_by)
        except LEDGER_ERRORS as e:
            self.ledger.rollback()
            logger.compliance_check_failed(
                check_type=check_type.value,
                error=str(e),
                client_id=client_id,
                account_id=account_id
            )
            raise ComputationFailed(details=str(e)) from e

        summary = report.summary
        logger.compliance_check_completed(
            check_type=check_type.value,
            issue_count=summary["total_issues"],
            tasks_created=len(report.tasks_created),
            high_severity=summary["high_severity"],
            client_id=client_id,
            account_id=account_id
        )
        return report

    def list_tasks(
        self,
        status: Optional[Union[str, TaskStatus]] = None,
        assigned_to: Optional[str] = None
    ) -> List[ComplianceTask]:
        """Compliance tasks ordered by due date ascending."""
        try:
            status = TaskStatus(status) if status else None
        except ValueError:
            raise InvalidParameter(details=f"Unknown task status '{status}'")

        try:
            return self.ledger.list_tasks(status=status, assigned_to=assigned_to)
        except LEDGER_ERRORS as e:
            self.ledger.rollback()
            raise ComputationFailed(details=str(e)) from e

    # ===== Rules =====

    def _kyc(self, client_id: UUID) -> RuleOutcome:
        client = self.ledger.get_client(client_id)
        if client is None:
            return RuleOutcome()
        return check_kyc(client, self.clock.today(), self.clock.now())

    def _overdue_sweep(self, actor: str) -> RuleOutcome:
        today = self.clock.today()
        updated = self.ledger.mark_overdue_tasks(today, actor)
        if updated:
            logger.tasks_marked_overdue(updated=updated, as_of=today)
        return summarize_overdue_tasks(self.ledger.overdue_tasks())

    # ===== Helpers =====

    def _apply(self, outcome: RuleOutcome, report: ComplianceReport, created_by: str) -> None:
        """Collect a rule's issues and persist its task drafts one by one."""
        report.issues.extend(outcome.issues)

        for draft in outcome.tasks:
            try:
                report.tasks_created.append(self.ledger.insert_task(draft, created_by))
            except LEDGER_ERRORS as e:
                self.ledger.rollback()
                logger.compliance_task_failed(
                    task_type=draft.task_type.value,
                    error=str(e),
                    client_id=draft.client_id,
                    account_id=draft.account_id
                )
                report.secondary_failures.append(
                    SecondaryFailure(effect="compliance_task", error=str(e), reference=draft.task_type.value)
                )
