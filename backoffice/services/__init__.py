"""
Services for the fee and compliance engine.

These services implement the business logic layer:
- Ledger: Repository over the back-office tables (deadline-bounded)
- FeeCalculator: Fee calculation, fee register and payment recording
- RetrocessionAllocator: Advisor revenue share on management fees
- ComplianceMonitor: Compliance rule evaluation and task register
"""

from backoffice.services.ledger import Ledger
from backoffice.services.fee_calculator import FeeCalculator
from backoffice.services.retrocession_allocator import RetrocessionAllocator
from backoffice.services.compliance_monitor import ComplianceMonitor

__all__ = [
    "Ledger",
    "FeeCalculator",
    "RetrocessionAllocator",
    "ComplianceMonitor",
]
