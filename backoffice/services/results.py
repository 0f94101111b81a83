"""
Result types for engine operations.

A result separates the primary effect (the fee, the issue list) from
best-effort secondary writes (retrocessions, follow-up tasks) so callers
can see partial failure instead of it being silently dropped.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from backoffice.domain.compliance_rules import ComplianceIssue, summarize
from backoffice.models import ComplianceTask, Fee, Retrocession


@dataclass(frozen=True)
class SecondaryFailure:
    """A secondary write that failed without failing the operation."""
    effect: str  # 'retrocession' | 'compliance_task'
    error: str
    reference: Optional[str] = None  # fee id or task type the write concerned

    def to_dict(self) -> Dict[str, Any]:
        return {"effect": self.effect, "error": self.error, "reference": self.reference}


@dataclass
class FeeCalculationResult:
    fee: Fee
    retrocessions: List[Retrocession] = field(default_factory=list)
    secondary_failures: List[SecondaryFailure] = field(default_factory=list)


@dataclass
class ComplianceReport:
    issues: List[ComplianceIssue] = field(default_factory=list)
    tasks_created: List[ComplianceTask] = field(default_factory=list)
    secondary_failures: List[SecondaryFailure] = field(default_factory=list)

    @property
    def summary(self) -> Dict[str, int]:
        return summarize(self.issues)
