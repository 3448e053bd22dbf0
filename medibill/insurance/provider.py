"""
Insurance provider contract and a catalog-backed provider.

Providers own policy lookup and the claim decision. The core only calls
submit_claim and process_claim; what happens during review is up to the
provider.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional

import structlog

from medibill.core.adjudicator import InMemoryLimitUsageTracker
from medibill.domain.claims import InsuranceClaim
from medibill.domain.coverage import CoverageType
from medibill.domain.enums import ClaimStatus, InsuranceStatus
from medibill.domain.errors import InvalidArgumentError
from medibill.domain.policy import InsurancePolicy
from medibill.generators.id_generator import IDGenerator
from medibill.utils.money import to_money

logger = structlog.get_logger()


class InsuranceProvider(ABC):
    """
    Abstract insurance provider.

    Usage:
        class MyProvider(InsuranceProvider):
            provider_name = "My Insurer"

            def get_patient_policy(self, patient_id):
                ...
    """

    provider_name: str

    @abstractmethod
    def get_patient_policy(self, patient_id: str) -> Optional[InsurancePolicy]:
        """Policy held by the patient with this provider, if any."""
        pass

    @abstractmethod
    def process_claim(self, patient_id: str, claim: InsuranceClaim) -> bool:
        """
        Review a submitted claim and decide it.

        Returns:
            True if the claim ended fully or partially approved
        """
        pass

    def has_active_coverage(self, patient_id: str, now: Optional[datetime] = None) -> bool:
        policy = self.get_patient_policy(patient_id)
        return policy is not None and policy.is_active(now)

    def submit_claim(self, patient_id: str, claim: InsuranceClaim, now: Optional[datetime] = None) -> bool:
        """
        Submit a draft claim to this provider.

        Returns:
            False when the patient has no active policy here
        """
        if not self.has_active_coverage(patient_id, now):
            logger.warning(
                "claim_submission_rejected",
                provider=self.provider_name,
                claim_id=claim.claim_id,
                patient_id=patient_id,
            )
            return False
        claim.submit(now)
        return True


class CatalogInsuranceProvider(InsuranceProvider):
    """
    Provider that enrolls patients into coverages from a catalog.

    Review outcome follows the adjudicated payable amount: full approval
    when it covers the claim, partial approval when it covers part of it,
    denial otherwise. Approved payouts are recorded against the policy's
    annual and lifetime usage.
    """

    def __init__(
        self,
        provider_name: str,
        id_generator: IDGenerator,
        policy_prefix: str = "GOVT",
        policy_term_days: int = 365,
        usage_tracker: Optional[InMemoryLimitUsageTracker] = None,
    ):
        self.provider_name = provider_name
        self.id_generator = id_generator
        self.policy_prefix = policy_prefix
        self.policy_term_days = policy_term_days
        self.usage_tracker = usage_tracker or InMemoryLimitUsageTracker()
        self._policies: dict[str, InsurancePolicy] = {}

    def enroll(
        self,
        patient_id: str,
        coverage: CoverageType,
        name: Optional[str] = None,
        start: Optional[datetime] = None,
        expiration: Optional[datetime] = None,
    ) -> InsurancePolicy:
        """Create and hold a policy for the patient, replacing any previous one."""
        start = start or datetime.now()
        policy = InsurancePolicy(
            policy_number=self.id_generator.generate_policy_number(self.policy_prefix, patient_id),
            policy_holder_id=patient_id,
            name=name or coverage.name or self.provider_name,
            provider_name=self.provider_name,
            coverage=coverage,
            status=InsuranceStatus.ACTIVE,
            start_date=start,
            expiration_date=expiration or start + timedelta(days=self.policy_term_days),
        )
        self._policies[patient_id] = policy
        logger.info(
            "policy_enrolled",
            provider=self.provider_name,
            patient_id=patient_id,
            policy_number=policy.policy_number,
        )
        return policy

    def get_patient_policy(self, patient_id: str) -> Optional[InsurancePolicy]:
        return self._policies.get(patient_id)

    def process_claim(self, patient_id: str, claim: InsuranceClaim, now: Optional[datetime] = None) -> bool:
        policy = self.get_patient_policy(patient_id)
        if policy is None or policy.policy_number != claim.policy_number:
            raise InvalidArgumentError(
                f"Claim {claim.claim_id} does not belong to a policy held by {patient_id}"
            )

        now = now or datetime.now()
        claim.start_review(now)

        payable = to_money(claim.payable_amount)
        claimed = to_money(claim.claim_amount)
        if payable >= claimed and claimed > 0:
            claim.approve_claim(now=now)
        elif payable > 0:
            claim.process_partial_approval(
                payable,
                f"Approved {payable} of {claimed} after deductible, coinsurance and limits",
                now,
            )
        else:
            claim.deny("No payable amount after deductible, coinsurance and limits", now)

        approved = claim.status in (ClaimStatus.APPROVED, ClaimStatus.PARTIALLY_APPROVED)
        if approved:
            self.usage_tracker.record(policy.policy_number, claim.approved_amount, now.date())

        logger.info(
            "claim_processed",
            provider=self.provider_name,
            claim_id=claim.claim_id,
            status=claim.status.value,
            approved_amount=str(claim.approved_amount) if claim.approved_amount is not None else None,
        )
        return approved
