"""
Compliance rule evaluators.

Four independent rules (KYC, concentration, document expiry, overdue tasks)
turn ledger state into issues and follow-up task drafts. Rules are pure:
the caller supplies the data and the reference dates, and persists the
drafts.

Issues are a closed set of dataclasses, one per issue type, each carrying
only the fields its rule produces.
"""

from collections import OrderedDict
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from backoffice.clock import to_naive_utc
from backoffice.models.client import KycStatus
from backoffice.models.compliance_task import TaskPriority, TaskType

# Thresholds (strict: a weight exactly at the limit is not flagged)
POSITION_CONCENTRATION_LIMIT = 0.20
SECTOR_CONCENTRATION_LIMIT = 0.30

ANNUAL_REVIEW_INTERVAL_DAYS = 365
DOCUMENT_EXPIRY_WINDOW_DAYS = 30
KYC_REVIEW_DUE_DAYS = 7
ANNUAL_REVIEW_DUE_DAYS = 30

UNKNOWN_SECTOR = "Unknown"


class CheckType(str, Enum):
    """Which rule(s) an evaluation runs."""
    KYC = "kyc"
    CONCENTRATION = "concentration"
    DOCUMENTS = "documents"
    TASKS = "tasks"
    ALL = "all"

    def includes(self, other: "CheckType") -> bool:
        return self is CheckType.ALL or self is other


class IssueSeverity(str, Enum):
    """Issue severity classification."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ===== Issue types =====

class ComplianceIssue:
    """Base for issue dataclasses; subclasses pin issue_type and severity."""
    issue_type: ClassVar[str]
    severity: ClassVar[IssueSeverity]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.issue_type, "severity": self.severity.value}
        data.update({k: v for k, v in asdict(self).items() if v is not None})
        return data


@dataclass(frozen=True)
class KycIssue(ComplianceIssue):
    issue_type: ClassVar[str] = "kyc"
    severity: ClassVar[IssueSeverity] = IssueSeverity.HIGH

    message: str
    client_id: UUID
    kyc_status: str


@dataclass(frozen=True)
class AnnualReviewIssue(ComplianceIssue):
    issue_type: ClassVar[str] = "annual_review"
    severity: ClassVar[IssueSeverity] = IssueSeverity.MEDIUM

    message: str
    client_id: UUID
    last_reviewed_at: datetime


@dataclass(frozen=True)
class ConcentrationIssue(ComplianceIssue):
    issue_type: ClassVar[str] = "concentration"
    severity: ClassVar[IssueSeverity] = IssueSeverity.MEDIUM

    message: str
    account_id: UUID
    symbol: Optional[str]
    concentration: float


@dataclass(frozen=True)
class SectorConcentrationIssue(ComplianceIssue):
    issue_type: ClassVar[str] = "sector_concentration"
    severity: ClassVar[IssueSeverity] = IssueSeverity.LOW

    message: str
    account_id: UUID
    sector: str
    concentration: float


@dataclass(frozen=True)
class DocumentExpiryIssue(ComplianceIssue):
    issue_type: ClassVar[str] = "document_expiry"
    severity: ClassVar[IssueSeverity] = IssueSeverity.MEDIUM

    message: str
    document_id: UUID
    expiry_date: date
    client_id: Optional[UUID] = None
    account_id: Optional[UUID] = None


@dataclass(frozen=True)
class OverdueTasksIssue(ComplianceIssue):
    issue_type: ClassVar[str] = "overdue_tasks"
    severity: ClassVar[IssueSeverity] = IssueSeverity.HIGH

    message: str
    details: List[Dict[str, Any]] = field(default_factory=list)


# ===== Rule inputs / outputs =====

@dataclass(frozen=True)
class Holding:
    """Open position joined with its security, as seen by valuation rules."""
    position_id: UUID
    security_id: UUID
    symbol: Optional[str]
    sector: Optional[str]
    quantity: float
    market_value: float
    cost_basis: float = 0.0


@dataclass(frozen=True)
class TaskDraft:
    """Follow-up task to be persisted in pending state."""
    task_type: TaskType
    title: str
    description: str
    priority: TaskPriority
    due_date: date
    client_id: Optional[UUID] = None
    account_id: Optional[UUID] = None


@dataclass
class RuleOutcome:
    """Issues and task drafts produced by one rule."""
    issues: List[ComplianceIssue] = field(default_factory=list)
    tasks: List[TaskDraft] = field(default_factory=list)


# ===== Rules =====

def check_kyc(client, today: date, now: datetime) -> RuleOutcome:
    """
    KYC status and annual review.

    Both checks run independently; a client can trigger both.

    Args:
        client: Object exposing id, full_name, kyc_status, updated_at
        today: Reference date for task due dates
        now: Reference instant for the annual review cutoff

    Returns:
        RuleOutcome
    """
    outcome = RuleOutcome()
    name = client.full_name
    status = client.kyc_status.value if isinstance(client.kyc_status, Enum) else client.kyc_status

    if status != KycStatus.APPROVED.value:
        outcome.issues.append(KycIssue(
            message=f"KYC status is {status} for {name}",
            client_id=client.id,
            kyc_status=status,
        ))
        outcome.tasks.append(TaskDraft(
            task_type=TaskType.KYC_REVIEW,
            title="KYC Documentation Required",
            description=f"Complete KYC documentation for {name}",
            priority=TaskPriority.HIGH,
            due_date=today + timedelta(days=KYC_REVIEW_DUE_DAYS),
            client_id=client.id,
        ))

    last_update = to_naive_utc(client.updated_at)
    cutoff = to_naive_utc(now) - timedelta(days=ANNUAL_REVIEW_INTERVAL_DAYS)
    if last_update < cutoff:
        outcome.issues.append(AnnualReviewIssue(
            message=f"Annual review due for {name}",
            client_id=client.id,
            last_reviewed_at=last_update,
        ))
        outcome.tasks.append(TaskDraft(
            task_type=TaskType.ANNUAL_REVIEW,
            title="Annual Client Review",
            description=f"Conduct annual review for {name}",
            priority=TaskPriority.MEDIUM,
            due_date=today + timedelta(days=ANNUAL_REVIEW_DUE_DAYS),
            client_id=client.id,
        ))

    return outcome


def check_concentration(account_id: UUID, holdings: Sequence[Holding]) -> RuleOutcome:
    """
    Single-position (> 20%) and sector (> 30%) concentration.

    Only open holdings (quantity > 0) are considered. An empty or
    zero-valued portfolio produces no issues.
    """
    outcome = RuleOutcome()
    open_holdings = [h for h in holdings if (h.quantity or 0) > 0]
    total_value = sum(h.market_value or 0 for h in open_holdings)

    if total_value <= 0:
        return outcome

    for holding in open_holdings:
        concentration = (holding.market_value or 0) / total_value
        if concentration > POSITION_CONCENTRATION_LIMIT:
            outcome.issues.append(ConcentrationIssue(
                message=f"High concentration ({concentration * 100:.1f}%) in {holding.symbol}",
                account_id=account_id,
                symbol=holding.symbol,
                concentration=concentration,
            ))

    sectors: "OrderedDict[str, float]" = OrderedDict()
    for holding in open_holdings:
        sector = holding.sector or UNKNOWN_SECTOR
        sectors[sector] = sectors.get(sector, 0.0) + (holding.market_value or 0)

    for sector, value in sectors.items():
        concentration = value / total_value
        if concentration > SECTOR_CONCENTRATION_LIMIT:
            outcome.issues.append(SectorConcentrationIssue(
                message=f"High sector concentration ({concentration * 100:.1f}%) in {sector}",
                account_id=account_id,
                sector=sector,
                concentration=concentration,
            ))

    return outcome


def document_expiry_cutoff(today: date) -> date:
    """Last expiry date (inclusive) that is flagged."""
    return today + timedelta(days=DOCUMENT_EXPIRY_WINDOW_DAYS)


def check_document_expiry(documents: Iterable, today: date) -> RuleOutcome:
    """
    Approved documents expiring within 30 days (inclusive), including
    already expired ones.

    Args:
        documents: Objects exposing id, title, status, expiry_date, client_id, account_id
        today: Reference date

    Returns:
        RuleOutcome with one issue and one renewal task per document
    """
    outcome = RuleOutcome()
    cutoff = document_expiry_cutoff(today)

    for doc in documents:
        status = doc.status.value if isinstance(doc.status, Enum) else doc.status
        if status != "approved" or doc.expiry_date is None or doc.expiry_date > cutoff:
            continue

        outcome.issues.append(DocumentExpiryIssue(
            message=f'Document "{doc.title}" expires on {doc.expiry_date.isoformat()}',
            document_id=doc.id,
            expiry_date=doc.expiry_date,
            client_id=doc.client_id,
            account_id=doc.account_id,
        ))
        outcome.tasks.append(TaskDraft(
            task_type=TaskType.DOCUMENT_RENEWAL,
            title="Document Renewal Required",
            description=f"Renew document: {doc.title}",
            priority=TaskPriority.MEDIUM,
            due_date=doc.expiry_date,
            client_id=doc.client_id,
            account_id=doc.account_id,
        ))

    return outcome


def summarize_overdue_tasks(overdue_tasks: Sequence) -> RuleOutcome:
    """
    One aggregate issue over all overdue tasks (none if there are none).

    Args:
        overdue_tasks: Objects exposing id, title, due_date
    """
    outcome = RuleOutcome()
    if not overdue_tasks:
        return outcome

    outcome.issues.append(OverdueTasksIssue(
        message=f"{len(overdue_tasks)} compliance tasks are overdue",
        details=[
            {"id": task.id, "title": task.title, "due_date": task.due_date}
            for task in overdue_tasks
        ],
    ))
    return outcome


def summarize(issues: Sequence[ComplianceIssue]) -> Dict[str, int]:
    """Issue counts by severity."""
    return {
        "total_issues": len(issues),
        "high_severity": sum(1 for i in issues if i.severity == IssueSeverity.HIGH),
        "medium_severity": sum(1 for i in issues if i.severity == IssueSeverity.MEDIUM),
        "low_severity": sum(1 for i in issues if i.severity == IssueSeverity.LOW),
    }
