"""
Enumeration types for Medibill domain models.

Status values double as the wire and display vocabulary: the enum value is
the display name and serializes as-is.
"""

from decimal import Decimal
from enum import Enum

from medibill.domain.errors import InvalidArgumentError


class _DisplayEnum(str, Enum):
    """str-valued enum whose str() is its display value."""

    def __str__(self) -> str:
        return self.value

    @classmethod
    def _lookup(cls, text: str):
        if text is None:
            return None
        if isinstance(text, cls):
            return text
        cleaned = str(text).strip()
        for member in cls:
            if member.value.lower() == cleaned.lower():
                return member
        key = cleaned.upper().replace(" ", "_").replace("-", "_")
        return cls.__members__.get(key)

    @classmethod
    def from_string(cls, text: str):
        """
        Parse a member from its name (any case) or its display value.

        Raises:
            InvalidArgumentError: If the text names no member
        """
        member = cls._lookup(text)
        if member is None:
            raise InvalidArgumentError(f"Unknown {cls.__name__}: {text!r}")
        return member


class BenefitType(_DisplayEnum):
    """Category of medical service used to match coverage rules."""
    HOSPITALIZATION = "Hospitalization"
    SURGERY = "Surgery"
    OUTPATIENT_TREATMENTS = "Outpatient Treatments"
    DENTAL = "Dental"
    MATERNITY = "Maternity"
    CRITICAL_ILLNESS = "Critical Illness"
    ONCOLOGY_TREATMENTS = "Oncology Treatments"
    DIAGNOSTIC_IMAGING = "Diagnostic Imaging"
    MEDICATION_ADMIN = "Medication Administration"
    MINOR_SURGERY = "Minor Surgery"
    MAJOR_SURGERY = "Major Surgery"
    PREVENTIVE_CARE = "Preventive Care"
    CHRONIC_CONDITIONS = "Chronic Conditions"
    ACUTE_CONDITIONS = "Acute Conditions"
    ACCIDENT = "Accident"


class AccidentType(_DisplayEnum):
    """Accident classification for accident benefits."""
    DEATH = "Death"
    PERMANENT_DISABILITY = "Permanent Disability"
    PARTIAL_DISABILITY = "Partial Disability"
    TEMPORARY_DISABILITY = "Temporary Disability"
    FRACTURE = "Fracture"
    BURNS = "Burns"
    MEDICAL_EXPENSES = "Medical Expenses"


_WARD_RATES: dict[str, Decimal] = {
    "LABOUR_CLASS_A": Decimal("1500"),
    "LABOUR_CLASS_B1": Decimal("1000"),
    "LABOUR_CLASS_B2": Decimal("500"),
    "LABOUR_CLASS_C": Decimal("250"),
    "ICU": Decimal("2000"),
    "DAYSURGERY_CLASS_SEATER": Decimal("300"),
    "DAYSURGERY_CLASS_COHORT": Decimal("250"),
    "DAYSURGERY_CLASS_SINGLE": Decimal("200"),
    "GENERAL_CLASS_A": Decimal("500"),
    "GENERAL_CLASS_B1": Decimal("250"),
    "GENERAL_CLASS_B2": Decimal("200"),
    "GENERAL_CLASS_C": Decimal("150"),
}


class WardClassType(_DisplayEnum):
    """
    Ward class with its daily rate.

    The member name prefix identifies the ward family (labour, ICU,
    day surgery, general).
    """
    LABOUR_CLASS_A = "Labour Class A"
    LABOUR_CLASS_B1 = "Labour Class B1"
    LABOUR_CLASS_B2 = "Labour Class B2"
    LABOUR_CLASS_C = "Labour Class C"
    ICU = "ICU"
    DAYSURGERY_CLASS_SEATER = "Day Surgery Seater"
    DAYSURGERY_CLASS_COHORT = "Day Surgery Bed Cohort"
    DAYSURGERY_CLASS_SINGLE = "Day Surgery Bed Single"
    GENERAL_CLASS_A = "General Class A"
    GENERAL_CLASS_B1 = "General Class B1"
    GENERAL_CLASS_B2 = "General Class B2"
    GENERAL_CLASS_C = "General Class C"

    @property
    def daily_rate(self) -> Decimal:
        return _WARD_RATES[self.name]

    @property
    def ward_family(self) -> str:
        """One of "labour", "icu", "day_surgery", "general"."""
        if self is WardClassType.ICU:
            return "icu"
        if self.name.startswith("LABOUR"):
            return "labour"
        if self.name.startswith("DAYSURGERY"):
            return "day_surgery"
        return "general"

    @property
    def class_code(self) -> str:
        """Short class code, e.g. "B1" or "SEATER"."""
        if self is WardClassType.ICU:
            return "ICU"
        return self.name.split("_CLASS_")[-1]


class InsuranceStatus(_DisplayEnum):
    """Insurance policy status."""
    ACTIVE = "Active"
    EXPIRED = "Expired"
    CANCELLED = "Cancelled"
    PENDING = "Pending"


_CLAIM_DESCRIPTIONS = {
    "DRAFT": "Claim is draft",
    "SUBMITTED": "Claim has been submitted",
    "IN_REVIEW": "Claim is under review",
    "PENDING_INFORMATION": "Additional information requested",
    "APPROVED": "Claim has been approved",
    "PARTIALLY_APPROVED": "Claim approved with adjustments",
    "DENIED": "Claim has been denied",
    "APPEALED": "Claim is under appeal",
    "PAID": "Payment has been processed",
    "CANCELLED": "Claim has been cancelled",
    "EXPIRED": "Claim has expired",
}


class ClaimStatus(_DisplayEnum):
    """Insurance claim lifecycle status."""
    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    IN_REVIEW = "In Review"
    PENDING_INFORMATION = "Pending Information"
    APPROVED = "Approved"
    PARTIALLY_APPROVED = "Partially Approved"
    DENIED = "Denied"
    APPEALED = "Appealed"
    PAID = "Paid"
    CANCELLED = "Cancelled"
    EXPIRED = "Expired"

    @property
    def display_name(self) -> str:
        return self.value

    @property
    def description(self) -> str:
        return _CLAIM_DESCRIPTIONS[self.name]


_BILLING_DESCRIPTIONS = {
    "DRAFT": "Bill is being prepared",
    "PENDING": "Bill has been generated but not yet processed",
    "SUBMITTED": "Bill has been submitted for processing",
    "INSURANCE_PENDING": "Waiting for insurance approval",
    "INSURANCE_APPROVED": "Insurance claim has been approved",
    "INSURANCE_REJECTED": "Insurance claim has been rejected",
    "PARTIALLY_PAID": "Payment has been partially received",
    "PAID": "Bill has been fully paid",
    "OVERDUE": "Payment is past due",
    "CANCELLED": "Bill has been cancelled",
    "IN_DISPUTE": "Bill is under dispute",
    "REFUND_PENDING": "Refund is being processed",
    "REFUNDED": "Refund has been processed",
}


class BillingStatus(_DisplayEnum):
    """Bill lifecycle status."""
    DRAFT = "Draft"
    PENDING = "Pending"
    SUBMITTED = "Submitted"
    INSURANCE_PENDING = "Insurance Pending"
    INSURANCE_APPROVED = "Insurance Approved"
    INSURANCE_REJECTED = "Insurance Rejected"
    PARTIALLY_PAID = "Partially Paid"
    PAID = "Paid"
    OVERDUE = "Overdue"
    CANCELLED = "Cancelled"
    IN_DISPUTE = "In Dispute"
    REFUND_PENDING = "Refund Pending"
    REFUNDED = "Refunded"

    @property
    def display_name(self) -> str:
        return self.value

    @property
    def description(self) -> str:
        return _BILLING_DESCRIPTIONS[self.name]

    @property
    def is_finalized(self) -> bool:
        return self in (BillingStatus.PAID, BillingStatus.CANCELLED, BillingStatus.REFUNDED)

    @property
    def requires_action(self) -> bool:
        return self in (
            BillingStatus.INSURANCE_REJECTED,
            BillingStatus.OVERDUE,
            BillingStatus.IN_DISPUTE,
        )

    @property
    def is_insurance_related(self) -> bool:
        return self in (
            BillingStatus.INSURANCE_PENDING,
            BillingStatus.INSURANCE_APPROVED,
            BillingStatus.INSURANCE_REJECTED,
        )

    @property
    def is_in_preparation(self) -> bool:
        return self in (BillingStatus.DRAFT, BillingStatus.PENDING)

    @property
    def is_submitted(self) -> bool:
        return self is BillingStatus.SUBMITTED


class PaymentMethod(_DisplayEnum):
    """Payment method for bill settlement."""
    CASH = "Cash"
    CREDIT_CARD = "Credit Card"
    PAYNOW = "PayNow"
    INSURANCE = "Insurance"
    NOT_APPLICABLE = "Not Applicable"

    @classmethod
    def from_string(cls, text: str) -> "PaymentMethod":
        """Parse a payment method, falling back to NOT_APPLICABLE."""
        member = cls._lookup(text)
        return member if member is not None else cls.NOT_APPLICABLE


class PaymentKind(_DisplayEnum):
    """Direction of a money movement recorded on a bill."""
    PAYMENT = "Payment"
    REFUND = "Refund"
