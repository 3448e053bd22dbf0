"""
Bill domain model for Medibill.

Status changes go through BILL_TRANSITIONS, a (status, BillEvent) -> status
table. Money fields keep ``settled_amount + outstanding_balance ==
grand_total`` after every operation.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, Field, PrivateAttr, computed_field

from medibill.domain.state_machine import Transition, TransitionTable
from medibill.domain.enums import BillingStatus, PaymentKind, PaymentMethod
from medibill.domain.errors import InvalidArgumentError, InvalidStateError
from medibill.domain.items import BillableItemType
from medibill.domain.policy import InsurancePolicy
from medibill.utils.logging import BillingEventLogger
from medibill.utils.money import ZERO, sum_money, to_money

if TYPE_CHECKING:
    from medibill.core.adjudicator import CoverageAdjudicator, InsuranceCoverageResult


class BillEvent(str, Enum):
    """Events that move a bill between statuses."""
    MARK_PENDING = "mark_pending"
    SUBMIT = "submit"
    REQUEST_INSURANCE = "request_insurance"
    APPROVE_INSURANCE = "approve_insurance"
    REJECT_INSURANCE = "reject_insurance"
    RECORD_PARTIAL_PAYMENT = "record_partial_payment"
    RECORD_FULL_PAYMENT = "record_full_payment"
    MARK_OVERDUE = "mark_overdue"
    DISPUTE = "dispute"
    RESOLVE_AGAINST_PATIENT = "resolve_against_patient"
    INITIATE_REFUND = "initiate_refund"
    COMPLETE_REFUND = "complete_refund"
    CANCEL = "cancel"


_PAYABLE = (
    BillingStatus.SUBMITTED,
    BillingStatus.INSURANCE_APPROVED,
    BillingStatus.INSURANCE_REJECTED,
    BillingStatus.PARTIALLY_PAID,
    BillingStatus.OVERDUE,
)

_DISPUTABLE = (
    BillingStatus.SUBMITTED,
    BillingStatus.INSURANCE_PENDING,
    BillingStatus.INSURANCE_APPROVED,
    BillingStatus.INSURANCE_REJECTED,
    BillingStatus.PARTIALLY_PAID,
    BillingStatus.OVERDUE,
)

_OVERDUE_FROM = (
    BillingStatus.SUBMITTED,
    BillingStatus.INSURANCE_APPROVED,
    BillingStatus.INSURANCE_REJECTED,
    BillingStatus.PARTIALLY_PAID,
)

_FINALIZED = (BillingStatus.PAID, BillingStatus.CANCELLED, BillingStatus.REFUNDED)


def _build_bill_transitions() -> TransitionTable:
    t: list[Transition] = [
        Transition(BillingStatus.DRAFT, BillingStatus.PENDING, BillEvent.MARK_PENDING),
        Transition(BillingStatus.DRAFT, BillingStatus.SUBMITTED, BillEvent.SUBMIT),
        Transition(BillingStatus.PENDING, BillingStatus.SUBMITTED, BillEvent.SUBMIT),
        Transition(BillingStatus.SUBMITTED, BillingStatus.INSURANCE_PENDING, BillEvent.REQUEST_INSURANCE),
        Transition(BillingStatus.INSURANCE_PENDING, BillingStatus.INSURANCE_APPROVED, BillEvent.APPROVE_INSURANCE),
        Transition(BillingStatus.INSURANCE_PENDING, BillingStatus.INSURANCE_REJECTED, BillEvent.REJECT_INSURANCE),
        Transition(BillingStatus.PAID, BillingStatus.REFUND_PENDING, BillEvent.INITIATE_REFUND),
        Transition(BillingStatus.IN_DISPUTE, BillingStatus.REFUND_PENDING, BillEvent.INITIATE_REFUND),
        Transition(BillingStatus.IN_DISPUTE, BillingStatus.SUBMITTED, BillEvent.RESOLVE_AGAINST_PATIENT),
        Transition(BillingStatus.REFUND_PENDING, BillingStatus.REFUNDED, BillEvent.COMPLETE_REFUND),
    ]
    for status in _PAYABLE:
        t.append(Transition(status, BillingStatus.PAID, BillEvent.RECORD_FULL_PAYMENT))
        t.append(Transition(status, BillingStatus.PARTIALLY_PAID, BillEvent.RECORD_PARTIAL_PAYMENT))
    for status in _OVERDUE_FROM:
        t.append(Transition(status, BillingStatus.OVERDUE, BillEvent.MARK_OVERDUE))
    for status in _DISPUTABLE:
        t.append(Transition(status, BillingStatus.IN_DISPUTE, BillEvent.DISPUTE))
    for status in BillingStatus:
        if status not in _FINALIZED:
            t.append(Transition(status, BillingStatus.CANCELLED, BillEvent.CANCEL))
    return TransitionTable("bill", t, terminal=_FINALIZED[1:])


# PAID is finalized but still accepts INITIATE_REFUND, so only CANCELLED and
# REFUNDED are terminal in the table.
BILL_TRANSITIONS = _build_bill_transitions()


class BillLineItem(BaseModel):
    """A claimable item on a bill with its quantity."""

    item: BillableItemType
    quantity: int = Field(default=1, ge=1)

    @property
    def unit_charge(self) -> Decimal:
        return to_money(self.item.charges)

    @property
    def total(self) -> Decimal:
        return to_money(self.item.charges * self.quantity)

    @property
    def category(self) -> str:
        return self.item.category


class PaymentRecord(BaseModel):
    """Money movement recorded against a bill."""

    amount: Decimal = Field(..., ge=0)
    method: PaymentMethod
    kind: PaymentKind = PaymentKind.PAYMENT
    recorded_at: datetime = Field(default_factory=datetime.now)


class Bill(BaseModel):
    """
    Patient bill aggregate.

    Line items drive ``category_totals`` and ``grand_total``; payments and
    refunds move money between ``settled_amount`` and
    ``outstanding_balance``.
    """

    bill_id: str
    patient_id: str
    bill_date: datetime = Field(default_factory=datetime.now)
    line_items: list[BillLineItem] = Field(default_factory=list)
    category_totals: dict[str, Decimal] = Field(default_factory=dict)
    grand_total: Decimal = Field(default=ZERO, ge=0)

    insurance_policy: Optional[InsurancePolicy] = None
    status: BillingStatus = BillingStatus.DRAFT

    settled_amount: Decimal = Field(default=ZERO, ge=0)
    outstanding_balance: Decimal = Field(default=ZERO, ge=0)

    is_inpatient: bool = False
    is_emergency: bool = False
    source_reference: Optional[str] = None

    claim_id: Optional[str] = None
    insurance_payable: Decimal = Field(default=ZERO, ge=0)
    insurance_approved_amount: Decimal = Field(default=ZERO, ge=0)

    pending_refund: Decimal = Field(default=ZERO, ge=0)
    refunded_amount: Decimal = Field(default=ZERO, ge=0)
    payments: list[PaymentRecord] = Field(default_factory=list)
    due_date: Optional[date] = None

    _events: Optional[BillingEventLogger] = PrivateAttr(default=None)

    @computed_field
    @property
    def status_description(self) -> str:
        return self.status.description

    @property
    def events(self) -> BillingEventLogger:
        if self._events is None:
            self._events = BillingEventLogger(bill_id=self.bill_id, patient_id=self.patient_id)
        return self._events

    def _fire(self, event: BillEvent) -> BillingStatus:
        """Resolve the next status without changing anything."""
        return BILL_TRANSITIONS.fire(self.status, event)

    def _move(self, target: BillingStatus, event: BillEvent) -> None:
        previous = self.status
        self.status = target
        self.events.bill_transition(previous.value, target.value, event.value)

    # =========================================================================
    # Classification
    # =========================================================================

    @property
    def is_finalized(self) -> bool:
        return self.status.is_finalized

    @property
    def requires_action(self) -> bool:
        return self.status.requires_action

    @property
    def is_insurance_related(self) -> bool:
        return self.status.is_insurance_related

    @property
    def is_in_preparation(self) -> bool:
        return self.status.is_in_preparation

    @property
    def is_submitted(self) -> bool:
        return self.status.is_submitted

    @property
    def is_payable(self) -> bool:
        return self.status in _PAYABLE

    @property
    def patient_responsibility(self) -> Decimal:
        """Amount left for the patient after approved insurance."""
        return max(ZERO, to_money(self.grand_total - self.insurance_approved_amount))

    # =========================================================================
    # Line items
    # =========================================================================

    def add_line_item(self, item: BillableItemType, quantity: int = 1) -> BillLineItem:
        """
        Append a line item and recalculate totals.

        Raises:
            InvalidArgumentError: If item is None or quantity is not positive
            InvalidStateError: If the bill no longer accepts charges
        """
        if item is None:
            raise InvalidArgumentError("Billable item cannot be None")
        if quantity is None or quantity <= 0:
            raise InvalidArgumentError(f"Quantity must be positive, got {quantity}")
        if self.is_finalized or self.status in (
            BillingStatus.IN_DISPUTE,
            BillingStatus.REFUND_PENDING,
        ):
            raise InvalidStateError(
                self.status,
                "add_line_item",
                f"Cannot add items to a bill in status {self.status.value}",
            )

        line = BillLineItem(item=item, quantity=quantity)
        self.line_items.append(line)
        self.recalculate()
        return line

    def recalculate(self) -> None:
        """Rebuild category totals, grand total and outstanding from the lines."""
        totals: dict[str, Decimal] = {}
        for line in self.line_items:
            totals[line.category] = totals.get(line.category, ZERO) + line.total
        self.category_totals = {category: to_money(amount) for category, amount in sorted(totals.items())}
        self.grand_total = sum_money(line.total for line in self.line_items)
        self.outstanding_balance = max(ZERO, to_money(self.grand_total - self.settled_amount))

    def total_by_category(self, category: str) -> Decimal:
        return self.category_totals.get(category, ZERO)

    # =========================================================================
    # Submission and insurance
    # =========================================================================

    def mark_pending(self) -> None:
        self._move(self._fire(BillEvent.MARK_PENDING), BillEvent.MARK_PENDING)

    def submit_for_processing(self, payment_due_days: int = 30) -> None:
        """Move the bill out of preparation into SUBMITTED."""
        target = self._fire(BillEvent.SUBMIT)
        self.due_date = (self.bill_date + timedelta(days=payment_due_days)).date()
        self._move(target, BillEvent.SUBMIT)

    def calculate_insurance_coverage(
        self,
        adjudicator: "CoverageAdjudicator",
        now: Optional[datetime] = None,
    ) -> "InsuranceCoverageResult":
        """
        Adjudicate the bill against its attached policy.

        On approval the bill moves to INSURANCE_PENDING and records the
        claim; on denial it stays SUBMITTED and the result carries the reason.
        """
        if self.status is not BillingStatus.SUBMITTED:
            raise InvalidStateError(
                self.status,
                BillEvent.REQUEST_INSURANCE,
                "Bill must be submitted before insurance coverage is calculated",
            )
        result = adjudicator.adjudicate(self, now=now)
        if result.approved:
            target = self._fire(BillEvent.REQUEST_INSURANCE)
            self.claim_id = result.claim.claim_id
            self.insurance_payable = result.payable_amount
            self._move(target, BillEvent.REQUEST_INSURANCE)
        else:
            self.events.warning("insurance_denied", reason=result.denial_reason)
        return result

    def approve_insurance(self, approved_amount: Optional[Decimal] = None) -> None:
        target = self._fire(BillEvent.APPROVE_INSURANCE)
        amount = self.insurance_payable if approved_amount is None else to_money(approved_amount)
        if amount < 0:
            raise InvalidArgumentError(f"Approved insurance amount cannot be negative: {amount}")
        self.insurance_approved_amount = amount
        self._move(target, BillEvent.APPROVE_INSURANCE)

    def reject_insurance(self) -> None:
        self._move(self._fire(BillEvent.REJECT_INSURANCE), BillEvent.REJECT_INSURANCE)

    # =========================================================================
    # Payments
    # =========================================================================

    def record_full_payment(self, method: PaymentMethod, now: Optional[datetime] = None) -> None:
        """Settle the whole outstanding balance."""
        target = self._fire(BillEvent.RECORD_FULL_PAYMENT)
        amount = self.outstanding_balance
        self.settled_amount = self.grand_total
        self.outstanding_balance = ZERO
        self.payments.append(PaymentRecord(amount=amount, method=method, recorded_at=now or datetime.now()))
        self.events.payment_recorded(amount, method.value, self.outstanding_balance)
        self._move(target, BillEvent.RECORD_FULL_PAYMENT)

    def record_partial_payment(
        self,
        amount: Decimal,
        method: PaymentMethod,
        now: Optional[datetime] = None,
    ) -> None:
        """
        Record a payment toward the outstanding balance.

        A payment equal to the outstanding balance settles the bill.

        Raises:
            InvalidArgumentError: If amount <= 0 or amount > outstanding
        """
        target = self._fire(BillEvent.RECORD_PARTIAL_PAYMENT)
        amount = to_money(amount)
        if amount <= 0:
            raise InvalidArgumentError(f"Payment amount must be positive, got {amount}")
        if amount > self.outstanding_balance:
            raise InvalidArgumentError(
                f"Payment {amount} exceeds outstanding balance {self.outstanding_balance}"
            )
        if amount == self.outstanding_balance:
            self.record_full_payment(method, now)
            return

        self.settled_amount = to_money(self.settled_amount + amount)
        self.outstanding_balance = to_money(self.outstanding_balance - amount)
        self.payments.append(PaymentRecord(amount=amount, method=method, recorded_at=now or datetime.now()))
        self.events.payment_recorded(amount, method.value, self.outstanding_balance)
        self._move(target, BillEvent.RECORD_PARTIAL_PAYMENT)

    def is_past_due(self, now: Optional[datetime] = None) -> bool:
        if self.due_date is None or self.outstanding_balance <= 0 or self.is_finalized:
            return False
        return (now or datetime.now()).date() > self.due_date

    def mark_overdue(self) -> None:
        self._move(self._fire(BillEvent.MARK_OVERDUE), BillEvent.MARK_OVERDUE)

    # =========================================================================
    # Disputes, refunds, cancellation
    # =========================================================================

    def mark_in_dispute(self) -> None:
        self._move(self._fire(BillEvent.DISPUTE), BillEvent.DISPUTE)

    def initiate_refund(self) -> None:
        """
        Start refunding the settled amount.

        Allowed from PAID, or from IN_DISPUTE when money has been settled.
        """
        target = self._fire(BillEvent.INITIATE_REFUND)
        if self.status is BillingStatus.IN_DISPUTE and self.settled_amount <= 0:
            raise InvalidStateError(
                self.status,
                BillEvent.INITIATE_REFUND,
                "Nothing has been settled on this bill to refund",
            )
        self.pending_refund = self.settled_amount
        self._move(target, BillEvent.INITIATE_REFUND)

    def complete_refund(self, method: PaymentMethod = PaymentMethod.NOT_APPLICABLE,
                        now: Optional[datetime] = None) -> None:
        target = self._fire(BillEvent.COMPLETE_REFUND)
        amount = self.pending_refund
        self.settled_amount = to_money(self.settled_amount - amount)
        self.outstanding_balance = to_money(self.outstanding_balance + amount)
        self.refunded_amount = to_money(self.refunded_amount + amount)
        self.pending_refund = ZERO
        self.payments.append(
            PaymentRecord(amount=amount, method=method, kind=PaymentKind.REFUND,
                          recorded_at=now or datetime.now())
        )
        self.events.refund_completed(amount)
        self._move(target, BillEvent.COMPLETE_REFUND)

    def resolve_dispute(self, in_favor_of_patient: bool) -> None:
        """
        Close a dispute.

        In the patient's favour the bill is refunded when money was settled,
        otherwise cancelled. Against the patient it returns to SUBMITTED.
        """
        if self.status is not BillingStatus.IN_DISPUTE:
            raise InvalidStateError(
                self.status,
                "resolve_dispute",
                f"Bill in status {self.status.value} is not in dispute",
            )
        if not in_favor_of_patient:
            self._move(self._fire(BillEvent.RESOLVE_AGAINST_PATIENT), BillEvent.RESOLVE_AGAINST_PATIENT)
        elif self.settled_amount > 0:
            self.initiate_refund()
        else:
            self.cancel_bill()

    def cancel_bill(self) -> None:
        self._move(self._fire(BillEvent.CANCEL), BillEvent.CANCEL)

    def __str__(self) -> str:
        return (
            f"Bill {self.bill_id} [{self.status}] total {self.grand_total} "
            f"settled {self.settled_amount} outstanding {self.outstanding_balance}"
        )
