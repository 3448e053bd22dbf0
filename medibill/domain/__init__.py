"""
Domain models for Medibill.

Pydantic models for coverage rules, insurance policies, claims and bills.
"""

from medibill.domain.enums import (
    AccidentType,
    BenefitType,
    BillingStatus,
    ClaimStatus,
    InsuranceStatus,
    PaymentKind,
    PaymentMethod,
    WardClassType,
)
from medibill.domain.errors import (
    InvalidArgumentError,
    InvalidStateError,
    InvalidTransitionError,
    MedibillError,
    NotFoundError,
)
from medibill.domain.items import (
    BillableItemType,
    ClaimableItem,
    DiagnosisItem,
    FeeItem,
    MedicationItem,
    ProcedureItem,
    WardStayItem,
)
from medibill.domain.exclusions import ExclusionCriteria
from medibill.domain.limits import CoverageLimit, CoverageLimitBuilder
from medibill.domain.coverage import (
    BaseCoverage,
    CompositeCoverage,
    Coverage,
    CoverageBuilder,
    CoverageType,
)
from medibill.domain.policy import InsurancePolicy
from medibill.domain.claims import CLAIM_TRANSITIONS, InsuranceClaim
from medibill.domain.billing import (
    BILL_TRANSITIONS,
    Bill,
    BillEvent,
    BillLineItem,
    PaymentRecord,
)

__all__ = [
    # Enums
    "AccidentType",
    "BenefitType",
    "BillingStatus",
    "ClaimStatus",
    "InsuranceStatus",
    "PaymentKind",
    "PaymentMethod",
    "WardClassType",
    # Errors
    "InvalidArgumentError",
    "InvalidStateError",
    "InvalidTransitionError",
    "MedibillError",
    "NotFoundError",
    # Items
    "BillableItemType",
    "ClaimableItem",
    "DiagnosisItem",
    "FeeItem",
    "MedicationItem",
    "ProcedureItem",
    "WardStayItem",
    # Coverage
    "ExclusionCriteria",
    "CoverageLimit",
    "CoverageLimitBuilder",
    "BaseCoverage",
    "CompositeCoverage",
    "Coverage",
    "CoverageBuilder",
    "CoverageType",
    "InsurancePolicy",
    # Lifecycles
    "CLAIM_TRANSITIONS",
    "InsuranceClaim",
    "BILL_TRANSITIONS",
    "Bill",
    "BillEvent",
    "BillLineItem",
    "PaymentRecord",
]
