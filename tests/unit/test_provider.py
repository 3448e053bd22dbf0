"""
Unit tests for insurance providers.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from medibill.domain.billing import Bill
from medibill.domain.coverage import BaseCoverage
from medibill.domain.enums import AccidentType, BenefitType, ClaimStatus
from medibill.domain.errors import InvalidArgumentError
from medibill.domain.exclusions import ExclusionCriteria
from medibill.domain.limits import CoverageLimit
from medibill.insurance.provider import CatalogInsuranceProvider, InsuranceProvider


@pytest.fixture
def provider(id_generator, usage_tracker) -> CatalogInsuranceProvider:
    return CatalogInsuranceProvider("Government Insurance", id_generator, usage_tracker=usage_tracker)


def claim_for(claim, policy, **updates):
    return claim.model_copy(update={"policy_number": policy.policy_number, **updates})


class TestEnrollment:
    """Tests for policy enrollment."""

    def test_enroll(self, provider, basic_coverage, now):
        policy = provider.enroll("P0001", basic_coverage, start=now)

        assert policy.policy_number == "GOVT-0000000001-P0001"
        assert policy.name == "Basic Plan"
        assert policy.expiration_date == now + timedelta(days=365)
        assert provider.get_patient_policy("P0001") is policy
        assert provider.has_active_coverage("P0001", now)

    def test_unknown_patient(self, provider, now):
        assert provider.get_patient_policy("P9999") is None
        assert not provider.has_active_coverage("P9999", now)

    def test_abstract_provider(self):
        with pytest.raises(TypeError):
            InsuranceProvider()


class TestClaimSubmission:
    """Tests for submit_claim and process_claim."""

    def test_submit_requires_active_coverage(self, provider, draft_claim, now):
        assert not provider.submit_claim("P0001", draft_claim, now)
        assert draft_claim.is_draft

    def test_submit(self, provider, basic_coverage, draft_claim, now):
        policy = provider.enroll("P0001", basic_coverage, start=now)
        claim = claim_for(draft_claim, policy)

        assert provider.submit_claim("P0001", claim, now)
        assert claim.status is ClaimStatus.SUBMITTED
        assert claim.submission_date == now

    def test_partial_approval_records_usage(self, provider, basic_coverage, draft_claim, usage_tracker, now):
        policy = provider.enroll("P0001", basic_coverage, start=now)
        claim = claim_for(draft_claim, policy)
        provider.submit_claim("P0001", claim, now)

        assert provider.process_claim("P0001", claim, now)
        assert claim.status is ClaimStatus.PARTIALLY_APPROVED
        assert claim.approved_amount == Decimal("720.00")
        assert usage_tracker.usage_for(policy, now.date()).annual_used == Decimal("720.00")

    def test_full_approval(self, provider, basic_coverage, draft_claim, now):
        policy = provider.enroll("P0001", basic_coverage, start=now)
        claim = claim_for(draft_claim, policy, payable_amount=Decimal("1000.00"))
        provider.submit_claim("P0001", claim, now)

        assert provider.process_claim("P0001", claim, now)
        assert claim.status is ClaimStatus.APPROVED
        assert claim.approved_amount == Decimal("1000.00")

    def test_nothing_payable_is_denied(self, provider, basic_coverage, draft_claim, usage_tracker, now):
        policy = provider.enroll("P0001", basic_coverage, start=now)
        claim = claim_for(draft_claim, policy, payable_amount=Decimal("0.00"))
        provider.submit_claim("P0001", claim, now)

        assert not provider.process_claim("P0001", claim, now)
        assert claim.status is ClaimStatus.DENIED
        assert usage_tracker.usage_for(policy, now.date()).annual_used == Decimal("0.00")

    def test_claim_for_other_policy_rejected(self, provider, basic_coverage, draft_claim, now):
        provider.enroll("P0001", basic_coverage, start=now)
        claim = draft_claim.model_copy(update={"policy_number": "OTHER-1"})
        with pytest.raises(InvalidArgumentError):
            provider.process_claim("P0001", claim, now)
        assert claim.is_draft


class TestEmergencyClaims:
    """Accident payouts on emergency bills flow through approval."""

    @pytest.fixture
    def accident_plan(self) -> BaseCoverage:
        return (
            BaseCoverage.builder()
            .with_name("Accident Plan")
            .with_limits(
                CoverageLimit.builder().add_accident_limit(AccidentType.FRACTURE, Decimal("5000")).build()
            )
            .with_covered_benefits(BenefitType.OUTPATIENT_TREATMENTS)
            .with_exclusions(ExclusionCriteria.none())
            .build()
        )

    def test_accident_payout_is_approved_and_recorded(
        self, provider, accident_plan, adjudicator, usage_tracker, make_fee, now
    ):
        bill = Bill(bill_id="BILL-20240601-0000004", patient_id="P0001", bill_date=now, is_emergency=True)
        bill.add_line_item(make_fee("1000", code="ER-FX", accident_subtype=AccidentType.FRACTURE), 1)
        bill.insurance_policy = provider.enroll("P0001", accident_plan, start=now)
        bill.submit_for_processing()

        result = bill.calculate_insurance_coverage(adjudicator, now=now)
        assert result.accident_benefit == Decimal("5000.00")
        assert result.payable_amount == Decimal("6000.00")

        claim = result.claim
        assert claim.claim_amount == Decimal("6000.00")
        assert provider.submit_claim("P0001", claim, now)
        assert provider.process_claim("P0001", claim, now)

        assert claim.status is ClaimStatus.APPROVED
        assert claim.approved_amount == Decimal("6000.00")
        assert usage_tracker.usage_for(bill.insurance_policy, now.date()).annual_used == Decimal("6000.00")

        bill.approve_insurance(claim.approved_amount)
        assert bill.insurance_approved_amount == Decimal("6000.00")
        assert bill.patient_responsibility == Decimal("0.00")
