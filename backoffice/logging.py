"""
Structured Logging Module for the back-office engine.

Provides JSON-formatted structured logging for observability.
Key events: fee calculation, retrocession allocation, compliance checks,
task creation and the overdue sweep.
"""

import logging
import json
import sys
from datetime import date, datetime, timezone
from typing import Any, Optional
from uuid import UUID

from backoffice.config import settings


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    All logs are emitted as single-line JSON objects for easy parsing
    by log aggregation tools (CloudWatch, Datadog, etc.).
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields if present
        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)

        # Add exception info if present
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class StructuredLogger:
    """
    Structured logger wrapper with domain-specific methods.

    Provides type-safe logging for fee and compliance engine events.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log(
        self,
        level: int,
        message: str,
        **kwargs: Any
    ) -> None:
        """Internal log method with extra fields."""
        extra = {"extra_fields": kwargs}
        self.logger.log(level, message, extra=extra)

    # ===== Fee Events =====

    def fee_calculated(
        self,
        fee_id: UUID,
        account_id: UUID,
        fee_type: str,
        amount: float,
        period_start: date,
        period_end: date
    ) -> None:
        """Log fee calculated and persisted."""
        self._log(
            logging.INFO,
            f"Fee calculated: {fee_type} {amount:.2f}",
            event="fee.calculated",
            fee_id=str(fee_id),
            account_id=str(account_id),
            fee_type=fee_type,
            amount=amount,
            period_start=period_start.isoformat(),
            period_end=period_end.isoformat()
        )

    def fee_calculation_failed(
        self,
        account_id: UUID,
        fee_type: str,
        error: str
    ) -> None:
        """Log fee calculation failure (primary effect)."""
        self._log(
            logging.ERROR,
            f"Fee calculation failed: {error}",
            event="fee.calculation_failed",
            account_id=str(account_id),
            fee_type=fee_type,
            error=error
        )

    def fee_marked_paid(
        self,
        fee_id: UUID,
        payment_date: date,
        marked_by: str
    ) -> None:
        """Log fee payment recorded."""
        self._log(
            logging.INFO,
            f"Fee {fee_id} marked paid",
            event="fee.paid",
            fee_id=str(fee_id),
            payment_date=payment_date.isoformat(),
            marked_by=marked_by
        )

    # ===== Retrocession Events =====

    def retrocession_allocated(
        self,
        retrocession_id: UUID,
        fee_id: UUID,
        amount: float,
        recipient: str
    ) -> None:
        """Log retrocession allocated from a fee."""
        self._log(
            logging.INFO,
            f"Retrocession allocated to {recipient}: {amount:.2f}",
            event="retrocession.allocated",
            retrocession_id=str(retrocession_id),
            fee_id=str(fee_id),
            amount=amount,
            recipient=recipient
        )

    def retrocession_failed(
        self,
        fee_id: UUID,
        error: str
    ) -> None:
        """Log retrocession insert failure (secondary effect, not surfaced as error)."""
        self._log(
            logging.WARNING,
            f"Retrocession allocation failed for fee {fee_id}: {error}",
            event="retrocession.failed",
            fee_id=str(fee_id),
            error=error
        )

    # ===== Compliance Events =====

    def compliance_check_completed(
        self,
        check_type: str,
        issue_count: int,
        tasks_created: int,
        high_severity: int,
        client_id: Optional[UUID] = None,
        account_id: Optional[UUID] = None
    ) -> None:
        """Log compliance evaluation completed."""
        level = logging.WARNING if high_severity else logging.INFO
        self._log(
            level,
            f"Compliance check completed: {issue_count} issues, {tasks_created} tasks created",
            event="compliance.completed",
            check_type=check_type,
            issue_count=issue_count,
            tasks_created=tasks_created,
            high_severity=high_severity,
            client_id=str(client_id) if client_id else None,
            account_id=str(account_id) if account_id else None
        )

    def compliance_check_failed(
        self,
        check_type: str,
        error: str,
        client_id: Optional[UUID] = None,
        account_id: Optional[UUID] = None
    ) -> None:
        """Log compliance evaluation failure (primary read failed)."""
        self._log(
            logging.ERROR,
            f"Compliance check failed: {error}",
            event="compliance.failed",
            check_type=check_type,
            error=error,
            client_id=str(client_id) if client_id else None,
            account_id=str(account_id) if account_id else None
        )

    def compliance_task_failed(
        self,
        task_type: str,
        error: str,
        client_id: Optional[UUID] = None,
        account_id: Optional[UUID] = None
    ) -> None:
        """Log follow-up task creation failure (secondary effect)."""
        self._log(
            logging.WARNING,
            f"Compliance task creation failed ({task_type}): {error}",
            event="compliance.task_failed",
            task_type=task_type,
            error=error,
            client_id=str(client_id) if client_id else None,
            account_id=str(account_id) if account_id else None
        )

    def tasks_marked_overdue(
        self,
        updated: int,
        as_of: date
    ) -> None:
        """Log overdue sweep."""
        self._log(
            logging.INFO if updated == 0 else logging.WARNING,
            f"Overdue sweep: {updated} tasks transitioned to overdue",
            event="compliance.overdue_sweep",
            updated=updated,
            as_of=as_of.isoformat()
        )

    # ===== Auth Events =====

    def authentication_failed(
        self,
        reason: str
    ) -> None:
        """Log rejected caller."""
        self._log(
            logging.WARNING,
            f"Authentication failed: {reason}",
            event="auth.failed",
            reason=reason
        )

    def permission_denied(
        self,
        user_id: UUID,
        role: str,
        action: str
    ) -> None:
        """Log authenticated caller refused for their role."""
        self._log(
            logging.WARNING,
            f"Permission denied: {role} cannot {action}",
            event="auth.forbidden",
            user_id=str(user_id),
            role=role,
            action=action
        )


def setup_logging() -> None:
    """
    Configure application-wide logging.

    Should be called once at application startup.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level.upper()))

    # Remove existing handlers
    root_logger.handlers = []

    # Add JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)

    # Set levels for noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger for a module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        StructuredLogger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.retrocession_failed(fee_id, "insert failed")
    """
    return StructuredLogger(name)
