"""
Insurance claim domain model for Medibill.

A claim is created in DRAFT by adjudication and only ever moves forward
through CLAIM_TRANSITIONS. Every operation validates before mutating, so a
rejected call leaves the claim untouched.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

import structlog
from pydantic import BaseModel, Field, computed_field

from medibill.domain.state_machine import Transition, TransitionTable
from medibill.domain.enums import ClaimStatus
from medibill.domain.errors import InvalidArgumentError, InvalidStateError
from medibill.utils.money import to_money

logger = structlog.get_logger()


def _claim_transitions(source: Optional[ClaimStatus], *targets: ClaimStatus) -> list[Transition]:
    return [Transition(source=source, target=t, event=t) for t in targets]


CLAIM_TRANSITIONS = TransitionTable(
    "claim",
    [
        *_claim_transitions(None, ClaimStatus.DRAFT),
        *_claim_transitions(ClaimStatus.DRAFT, ClaimStatus.SUBMITTED),
        *_claim_transitions(ClaimStatus.SUBMITTED, ClaimStatus.IN_REVIEW, ClaimStatus.CANCELLED),
        *_claim_transitions(
            ClaimStatus.IN_REVIEW,
            ClaimStatus.APPROVED,
            ClaimStatus.PARTIALLY_APPROVED,
            ClaimStatus.DENIED,
            ClaimStatus.PENDING_INFORMATION,
        ),
        *_claim_transitions(ClaimStatus.PENDING_INFORMATION, ClaimStatus.IN_REVIEW, ClaimStatus.EXPIRED),
        *_claim_transitions(ClaimStatus.DENIED, ClaimStatus.APPEALED),
        *_claim_transitions(ClaimStatus.APPEALED, ClaimStatus.IN_REVIEW),
        *_claim_transitions(ClaimStatus.APPROVED, ClaimStatus.PAID),
        *_claim_transitions(ClaimStatus.PARTIALLY_APPROVED, ClaimStatus.PAID),
    ],
    terminal={ClaimStatus.PAID, ClaimStatus.CANCELLED, ClaimStatus.EXPIRED},
)


class InsuranceClaim(BaseModel):
    """
    Insurance claim raised against a bill.

    ``payable_amount`` is what adjudication assessed the insurer should pay;
    ``approved_amount`` is only set once a reviewer approves the claim.
    """

    claim_id: str = Field(..., pattern=r"^CLM-\d{8}-[0-9A-Z]{4}$")
    bill_id: str
    provider_name: str
    policy_number: str
    patient_id: str

    status: Optional[ClaimStatus] = ClaimStatus.DRAFT
    claim_amount: Decimal = Field(..., ge=0)
    payable_amount: Decimal = Field(default=Decimal("0.00"), ge=0)
    approved_amount: Optional[Decimal] = None

    reviewer_comments: Optional[str] = None
    comments: Optional[str] = None
    supporting_documents: dict[datetime, str] = Field(default_factory=dict)

    created_at: datetime = Field(default_factory=datetime.now)
    submission_date: Optional[datetime] = None
    last_updated: datetime = Field(default_factory=datetime.now)

    @computed_field
    @property
    def status_description(self) -> Optional[str]:
        return self.status.description if self.status else None

    # =========================================================================
    # Transitions
    # =========================================================================

    def update_status(self, new_status: ClaimStatus, now: Optional[datetime] = None) -> None:
        """
        Move the claim to new_status if the transition table allows it.

        Raises:
            InvalidStateError: If the claim is in a terminal status
            InvalidTransitionError: If the transition is not allowed
        """
        CLAIM_TRANSITIONS.require(self.status, new_status)
        self._apply(new_status, now)

    def _apply(self, new_status: ClaimStatus, now: Optional[datetime]) -> None:
        previous = self.status
        self.status = new_status
        self.last_updated = now or datetime.now()
        logger.info(
            "claim_status_changed",
            claim_id=self.claim_id,
            from_status=previous.value if previous else None,
            to_status=new_status.value,
        )

    def submit(self, now: Optional[datetime] = None) -> None:
        CLAIM_TRANSITIONS.require(self.status, ClaimStatus.SUBMITTED)
        self.submission_date = now or datetime.now()
        self._apply(ClaimStatus.SUBMITTED, now)

    def start_review(self, now: Optional[datetime] = None) -> None:
        self.update_status(ClaimStatus.IN_REVIEW, now)

    def request_information(self, note: Optional[str] = None, now: Optional[datetime] = None) -> None:
        CLAIM_TRANSITIONS.require(self.status, ClaimStatus.PENDING_INFORMATION)
        if note:
            self.reviewer_comments = note
        self._apply(ClaimStatus.PENDING_INFORMATION, now)

    def deny(self, reason: str, now: Optional[datetime] = None) -> None:
        CLAIM_TRANSITIONS.require(self.status, ClaimStatus.DENIED)
        self.reviewer_comments = reason
        self._apply(ClaimStatus.DENIED, now)

    def appeal(self, reason: str, now: Optional[datetime] = None) -> None:
        CLAIM_TRANSITIONS.require(self.status, ClaimStatus.APPEALED)
        self.comments = reason
        self._apply(ClaimStatus.APPEALED, now)

    def cancel(self, now: Optional[datetime] = None) -> None:
        self.update_status(ClaimStatus.CANCELLED, now)

    def expire(self, now: Optional[datetime] = None) -> None:
        self.update_status(ClaimStatus.EXPIRED, now)

    def mark_paid(self, now: Optional[datetime] = None) -> None:
        self.update_status(ClaimStatus.PAID, now)

    def approve_claim(self, amount: Optional[Decimal] = None, now: Optional[datetime] = None) -> None:
        """
        Approve the full claimed amount.

        Raises:
            InvalidArgumentError: If amount is given and differs from the claimed amount
        """
        CLAIM_TRANSITIONS.require(self.status, ClaimStatus.APPROVED)
        if amount is not None and to_money(amount) != to_money(self.claim_amount):
            raise InvalidArgumentError(
                f"Full approval must equal the claimed amount {to_money(self.claim_amount)}, "
                f"got {to_money(amount)}; use process_partial_approval instead"
            )
        self.approved_amount = to_money(self.claim_amount)
        self._apply(ClaimStatus.APPROVED, now)

    def process_partial_approval(
        self,
        approved_amount: Decimal,
        reason: str,
        now: Optional[datetime] = None,
    ) -> None:
        """
        Approve part of the claim.

        Requires IN_REVIEW and 0 < approved_amount < claim_amount.
        """
        if self.status is not ClaimStatus.IN_REVIEW:
            raise InvalidStateError(
                self.status,
                ClaimStatus.PARTIALLY_APPROVED,
                "Claim must be in review for partial approval",
            )
        amount = to_money(approved_amount)
        if amount <= 0:
            raise InvalidArgumentError(f"Approved amount must be positive, got {amount}")
        if amount >= to_money(self.claim_amount):
            raise InvalidArgumentError(
                f"Partial approval {amount} must be less than the claimed amount "
                f"{to_money(self.claim_amount)}"
            )
        self.approved_amount = amount
        self.reviewer_comments = reason
        self._apply(ClaimStatus.PARTIALLY_APPROVED, now)

    # =========================================================================
    # Documents and comments
    # =========================================================================

    def add_supporting_document(self, description: str, now: Optional[datetime] = None) -> datetime:
        """
        Attach a supporting document description.

        Returns:
            Timestamp the document is stored under
        """
        if not self.is_actionable:
            raise InvalidStateError(
                self.status,
                "add_supporting_document",
                f"Cannot add documents to a claim in status {self.status.value}",
            )
        if description is None or not description.strip():
            raise InvalidArgumentError("Document description cannot be blank")

        timestamp = now or datetime.now()
        while timestamp in self.supporting_documents:
            timestamp += timedelta(microseconds=1)
        self.supporting_documents[timestamp] = description.strip()
        self.last_updated = timestamp
        return timestamp

    def most_recent_document(self) -> Optional[str]:
        if not self.supporting_documents:
            return None
        return self.supporting_documents[max(self.supporting_documents)]

    def update_comments(self, comments: str, now: Optional[datetime] = None) -> None:
        self.comments = comments
        self.last_updated = now or datetime.now()

    # =========================================================================
    # Predicates
    # =========================================================================

    @property
    def is_draft(self) -> bool:
        return self.status is ClaimStatus.DRAFT

    @property
    def is_submitted(self) -> bool:
        return self.status is ClaimStatus.SUBMITTED

    @property
    def is_under_review(self) -> bool:
        return self.status is ClaimStatus.IN_REVIEW

    @property
    def requires_action(self) -> bool:
        return self.status is ClaimStatus.PENDING_INFORMATION

    @property
    def is_approved(self) -> bool:
        return self.status in (ClaimStatus.APPROVED, ClaimStatus.PARTIALLY_APPROVED)

    @property
    def is_denied(self) -> bool:
        return self.status is ClaimStatus.DENIED

    @property
    def is_under_appeal(self) -> bool:
        return self.status is ClaimStatus.APPEALED

    @property
    def is_paid(self) -> bool:
        return self.status is ClaimStatus.PAID

    @property
    def is_closed(self) -> bool:
        return CLAIM_TRANSITIONS.is_terminal(self.status)

    @property
    def is_actionable(self) -> bool:
        return not self.is_closed

    def summary(self) -> str:
        """One-line display summary."""
        status = self.status.value if self.status else "Unset"
        text = (
            f"Claim {self.claim_id} [{status}] bill {self.bill_id} "
            f"policy {self.policy_number}: claimed {to_money(self.claim_amount)}"
        )
        if self.approved_amount is not None:
            text += f", approved {to_money(self.approved_amount)}"
        return text
