"""
Unit tests for the Bill aggregate.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from medibill.domain.billing import BILL_TRANSITIONS, Bill, BillEvent
from medibill.domain.enums import BillingStatus, PaymentKind, PaymentMethod, WardClassType
from medibill.domain.errors import (
    InvalidArgumentError,
    InvalidStateError,
    InvalidTransitionError,
)
from medibill.domain.items import MedicationItem, WardStayItem


def assert_balanced(bill: Bill) -> None:
    assert bill.settled_amount + bill.outstanding_balance == bill.grand_total


def in_status(bill: Bill, status: BillingStatus) -> Bill:
    return bill.model_copy(update={"status": status})


class TestLineItems:
    """Tests for line items and totals."""

    def test_totals_by_category(self, draft_bill, make_fee):
        draft_bill.add_line_item(WardStayItem(ward_class=WardClassType.GENERAL_CLASS_B2, days=3))
        draft_bill.add_line_item(
            MedicationItem(drug_code="PARA500", name="Paracetamol", charges=Decimal("0.50")), 20
        )
        draft_bill.add_line_item(make_fee("45.00", fee_category="CONSULTATION"))

        assert draft_bill.category_totals == {
            "CONSULTATION": Decimal("45.00"),
            "MEDICATION": Decimal("10.00"),
            "WARD": Decimal("600.00"),
        }
        assert draft_bill.grand_total == Decimal("655.00")
        assert draft_bill.outstanding_balance == Decimal("655.00")
        assert draft_bill.total_by_category("WARD") == Decimal("600.00")
        assert draft_bill.total_by_category("LAB") == Decimal("0.00")
        assert_balanced(draft_bill)

    def test_same_category_lines_are_summed(self, draft_bill, make_fee):
        draft_bill.add_line_item(make_fee("100.00", code="A"), 2)
        draft_bill.add_line_item(make_fee("50.00", code="B"))
        assert draft_bill.category_totals == {"FEE": Decimal("250.00")}

    def test_recalculation_is_idempotent(self, draft_bill, make_fee):
        draft_bill.add_line_item(make_fee("100.00"), 3)
        first = dict(draft_bill.category_totals)
        draft_bill.recalculate()
        draft_bill.recalculate()
        assert draft_bill.category_totals == first
        assert draft_bill.grand_total == Decimal("300.00")

    def test_insertion_order_does_not_matter(self, now, make_fee):
        items = [
            (make_fee("10.00", code="A", fee_category="LAB"), 1),
            (make_fee("20.00", code="B"), 2),
            (make_fee("5.55", code="C", fee_category="LAB"), 3),
        ]
        forward = Bill(bill_id="B1", patient_id="P0001", bill_date=now)
        backward = Bill(bill_id="B2", patient_id="P0001", bill_date=now)
        for item, quantity in items:
            forward.add_line_item(item, quantity)
        for item, quantity in reversed(items):
            backward.add_line_item(item, quantity)

        assert forward.category_totals == backward.category_totals
        assert forward.grand_total == backward.grand_total == Decimal("66.65")

    def test_invalid_quantity(self, draft_bill, make_fee):
        with pytest.raises(InvalidArgumentError):
            draft_bill.add_line_item(make_fee("10"), 0)
        with pytest.raises(InvalidArgumentError):
            draft_bill.add_line_item(None)
        assert draft_bill.line_items == []

    @pytest.mark.parametrize(
        "status",
        [
            BillingStatus.PAID,
            BillingStatus.CANCELLED,
            BillingStatus.REFUNDED,
            BillingStatus.IN_DISPUTE,
            BillingStatus.REFUND_PENDING,
        ],
    )
    def test_closed_bill_rejects_items(self, draft_bill, make_fee, status):
        bill = in_status(draft_bill, status)
        with pytest.raises(InvalidStateError):
            bill.add_line_item(make_fee("10"))
        assert bill.grand_total == Decimal("0.00")

    def test_line_item_totals(self, draft_bill, make_fee):
        line = draft_bill.add_line_item(make_fee("12.345"), 2)
        assert line.unit_charge == Decimal("12.35")
        assert line.total == Decimal("24.69")


class TestSubmission:
    """Tests for leaving preparation."""

    def test_submit_from_draft_sets_due_date(self, draft_bill, make_fee, now):
        draft_bill.add_line_item(make_fee("10"))
        draft_bill.submit_for_processing(payment_due_days=14)
        assert draft_bill.is_submitted
        assert draft_bill.due_date == (now + timedelta(days=14)).date()

    def test_submit_from_pending(self, draft_bill):
        draft_bill.mark_pending()
        assert draft_bill.is_in_preparation
        draft_bill.submit_for_processing()
        assert draft_bill.status is BillingStatus.SUBMITTED

    def test_submit_twice_fails(self, submitted_bill):
        with pytest.raises(InvalidTransitionError):
            submitted_bill.submit_for_processing()
        assert submitted_bill.status is BillingStatus.SUBMITTED

    def test_status_description(self, submitted_bill):
        assert submitted_bill.status_description == "Bill has been submitted for processing"


class TestPayments:
    """Tests for full and partial payments."""

    def test_full_payment(self, submitted_bill, now):
        submitted_bill.record_full_payment(PaymentMethod.CASH, now=now)

        assert submitted_bill.status is BillingStatus.PAID
        assert submitted_bill.settled_amount == Decimal("1000.00")
        assert submitted_bill.outstanding_balance == Decimal("0.00")
        assert submitted_bill.payments[-1].amount == Decimal("1000.00")
        assert submitted_bill.payments[-1].method is PaymentMethod.CASH
        assert_balanced(submitted_bill)

    def test_partial_payment(self, submitted_bill, now):
        submitted_bill.record_partial_payment(Decimal("700"), PaymentMethod.PAYNOW, now=now)

        assert submitted_bill.status is BillingStatus.PARTIALLY_PAID
        assert submitted_bill.settled_amount == Decimal("700.00")
        assert submitted_bill.outstanding_balance == Decimal("300.00")
        assert_balanced(submitted_bill)

    def test_paying_remaining_balance_settles_bill(self, submitted_bill, now):
        submitted_bill.record_partial_payment(Decimal("700"), PaymentMethod.PAYNOW, now=now)
        submitted_bill.record_partial_payment(Decimal("300"), PaymentMethod.CASH, now=now)

        assert submitted_bill.status is BillingStatus.PAID
        assert submitted_bill.outstanding_balance == Decimal("0.00")
        assert submitted_bill.settled_amount == Decimal("1000.00")
        assert len(submitted_bill.payments) == 2

    @pytest.mark.parametrize("amount", ["0", "-10", "1000.01"])
    def test_invalid_partial_amounts(self, submitted_bill, amount):
        with pytest.raises(InvalidArgumentError):
            submitted_bill.record_partial_payment(Decimal(amount), PaymentMethod.CASH)
        assert submitted_bill.status is BillingStatus.SUBMITTED
        assert submitted_bill.settled_amount == Decimal("0.00")
        assert submitted_bill.payments == []

    @pytest.mark.parametrize(
        "status",
        [BillingStatus.DRAFT, BillingStatus.INSURANCE_PENDING, BillingStatus.IN_DISPUTE],
    )
    def test_payment_not_allowed(self, submitted_bill, status):
        bill = in_status(submitted_bill, status)
        with pytest.raises(InvalidTransitionError):
            bill.record_full_payment(PaymentMethod.CASH)
        assert bill.settled_amount == Decimal("0.00")

    def test_paid_bill_rejects_more_payments(self, submitted_bill):
        submitted_bill.record_full_payment(PaymentMethod.CASH)
        with pytest.raises(InvalidTransitionError):
            submitted_bill.record_partial_payment(Decimal("1"), PaymentMethod.CASH)


class TestRefunds:
    """Tests for refunds and the money invariant."""

    def test_refund_after_full_payment(self, submitted_bill, now):
        submitted_bill.record_full_payment(PaymentMethod.CREDIT_CARD, now=now)
        submitted_bill.initiate_refund()
        assert submitted_bill.status is BillingStatus.REFUND_PENDING
        assert submitted_bill.pending_refund == Decimal("1000.00")
        assert_balanced(submitted_bill)

        submitted_bill.complete_refund(PaymentMethod.CREDIT_CARD, now=now)
        assert submitted_bill.status is BillingStatus.REFUNDED
        assert submitted_bill.settled_amount == Decimal("0.00")
        assert submitted_bill.refunded_amount == Decimal("1000.00")
        assert submitted_bill.payments[-1].kind is PaymentKind.REFUND
        assert_balanced(submitted_bill)

    def test_invariant_over_operation_sequence(self, draft_bill, make_fee, now):
        draft_bill.add_line_item(make_fee("400.00", code="A"))
        assert_balanced(draft_bill)
        draft_bill.add_line_item(make_fee("100.00", code="B"), 2)
        assert_balanced(draft_bill)
        draft_bill.submit_for_processing()

        draft_bill.record_partial_payment(Decimal("150.25"), PaymentMethod.CASH, now=now)
        assert_balanced(draft_bill)
        draft_bill.add_line_item(make_fee("99.75", code="C"))
        assert_balanced(draft_bill)
        assert draft_bill.outstanding_balance == Decimal("549.50")

        draft_bill.record_partial_payment(Decimal("49.50"), PaymentMethod.PAYNOW, now=now)
        assert_balanced(draft_bill)
        draft_bill.record_full_payment(PaymentMethod.CREDIT_CARD, now=now)
        assert_balanced(draft_bill)
        draft_bill.initiate_refund()
        assert_balanced(draft_bill)
        draft_bill.complete_refund(now=now)
        assert_balanced(draft_bill)
        assert draft_bill.grand_total == Decimal("699.75")

    def test_refund_requires_paid_or_dispute(self, submitted_bill):
        with pytest.raises(InvalidTransitionError):
            submitted_bill.initiate_refund()
        with pytest.raises(InvalidTransitionError):
            submitted_bill.complete_refund()

    def test_refunded_bill_is_terminal(self, submitted_bill):
        submitted_bill.record_full_payment(PaymentMethod.CASH)
        submitted_bill.initiate_refund()
        submitted_bill.complete_refund()
        with pytest.raises(InvalidStateError):
            submitted_bill.cancel_bill()


class TestDisputes:
    """Tests for dispute handling."""

    def test_dispute_with_settled_money_refunds(self, submitted_bill):
        submitted_bill.record_partial_payment(Decimal("200"), PaymentMethod.CASH)
        submitted_bill.mark_in_dispute()
        assert submitted_bill.requires_action

        submitted_bill.resolve_dispute(in_favor_of_patient=True)
        assert submitted_bill.status is BillingStatus.REFUND_PENDING
        assert submitted_bill.pending_refund == Decimal("200.00")

    def test_dispute_without_settled_money_cancels(self, submitted_bill):
        submitted_bill.mark_in_dispute()
        submitted_bill.resolve_dispute(in_favor_of_patient=True)
        assert submitted_bill.status is BillingStatus.CANCELLED

    def test_dispute_against_patient_resubmits(self, submitted_bill):
        submitted_bill.mark_in_dispute()
        submitted_bill.resolve_dispute(in_favor_of_patient=False)
        assert submitted_bill.status is BillingStatus.SUBMITTED

    def test_refund_from_dispute_needs_settled_money(self, submitted_bill):
        submitted_bill.mark_in_dispute()
        with pytest.raises(InvalidStateError, match="Nothing has been settled"):
            submitted_bill.initiate_refund()
        assert submitted_bill.status is BillingStatus.IN_DISPUTE

    def test_resolve_requires_dispute(self, submitted_bill):
        with pytest.raises(InvalidStateError):
            submitted_bill.resolve_dispute(in_favor_of_patient=True)

    def test_cannot_dispute_draft(self, draft_bill):
        with pytest.raises(InvalidTransitionError):
            draft_bill.mark_in_dispute()


class TestCancellation:
    """Tests for bill cancellation."""

    @pytest.mark.parametrize(
        "status", [s for s in BillingStatus if not s.is_finalized]
    )
    def test_cancel_from_non_finalized(self, draft_bill, status):
        bill = in_status(draft_bill, status)
        bill.cancel_bill()
        assert bill.status is BillingStatus.CANCELLED

    @pytest.mark.parametrize("status", [s for s in BillingStatus if s.is_finalized])
    def test_cancel_from_finalized_fails(self, draft_bill, status):
        bill = in_status(draft_bill, status)
        with pytest.raises(InvalidTransitionError):
            bill.cancel_bill()
        assert bill.status is status


class TestOverdue:
    """Tests for overdue handling."""

    def test_past_due(self, submitted_bill, now):
        assert not submitted_bill.is_past_due(now + timedelta(days=30))
        assert submitted_bill.is_past_due(now + timedelta(days=31))

        submitted_bill.mark_overdue()
        assert submitted_bill.status is BillingStatus.OVERDUE
        assert submitted_bill.is_payable

    def test_paid_bill_is_never_past_due(self, submitted_bill, now):
        submitted_bill.record_full_payment(PaymentMethod.CASH)
        assert not submitted_bill.is_past_due(now + timedelta(days=365))

    def test_overdue_bill_can_be_paid(self, submitted_bill):
        submitted_bill.mark_overdue()
        submitted_bill.record_partial_payment(Decimal("1000"), PaymentMethod.CASH)
        assert submitted_bill.status is BillingStatus.PAID


class TestInsurancePath:
    """Tests for the insurance portion of the bill lifecycle."""

    def test_approve_insurance(self, submitted_bill, active_policy, adjudicator, now):
        submitted_bill.insurance_policy = active_policy
        result = submitted_bill.calculate_insurance_coverage(adjudicator, now=now)

        assert result.approved
        assert submitted_bill.status is BillingStatus.INSURANCE_PENDING
        assert submitted_bill.claim_id == result.claim.claim_id
        assert submitted_bill.insurance_payable == Decimal("720.00")
        assert not submitted_bill.is_payable

        submitted_bill.approve_insurance()
        assert submitted_bill.status is BillingStatus.INSURANCE_APPROVED
        assert submitted_bill.patient_responsibility == Decimal("280.00")

    def test_denied_coverage_keeps_bill_submitted(self, submitted_bill, adjudicator, now):
        result = submitted_bill.calculate_insurance_coverage(adjudicator, now=now)
        assert not result.approved
        assert result.denial_reason == "No active policy"
        assert submitted_bill.status is BillingStatus.SUBMITTED
        assert submitted_bill.claim_id is None

    def test_reject_insurance(self, submitted_bill, active_policy, adjudicator, now):
        submitted_bill.insurance_policy = active_policy
        submitted_bill.calculate_insurance_coverage(adjudicator, now=now)
        submitted_bill.reject_insurance()

        assert submitted_bill.status is BillingStatus.INSURANCE_REJECTED
        assert submitted_bill.patient_responsibility == Decimal("1000.00")
        submitted_bill.mark_in_dispute()
        assert submitted_bill.status is BillingStatus.IN_DISPUTE

    def test_coverage_requires_submitted(self, draft_bill, adjudicator, now):
        with pytest.raises(InvalidStateError):
            draft_bill.calculate_insurance_coverage(adjudicator, now=now)

    def test_approve_insurance_requires_pending(self, submitted_bill):
        with pytest.raises(InvalidTransitionError):
            submitted_bill.approve_insurance()


class TestBillTransitionTable:
    """Tests for the bill transition table itself."""

    def test_terminal_statuses(self):
        assert BILL_TRANSITIONS.terminal == frozenset(
            {BillingStatus.CANCELLED, BillingStatus.REFUNDED}
        )

    def test_paid_only_accepts_refund(self):
        assert BILL_TRANSITIONS.events_from(BillingStatus.PAID) == [BillEvent.INITIATE_REFUND]

    def test_unknown_event_message(self):
        with pytest.raises(InvalidTransitionError, match="Cannot complete refund a bill in status DRAFT"):
            BILL_TRANSITIONS.fire(BillingStatus.DRAFT, BillEvent.COMPLETE_REFUND)
