"""
Shared test fixtures for Medibill tests.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import numpy as np
import pytest

from medibill.core.adjudicator import CoverageAdjudicator, InMemoryLimitUsageTracker
from medibill.domain.billing import Bill
from medibill.domain.claims import InsuranceClaim
from medibill.domain.coverage import BaseCoverage
from medibill.domain.enums import BenefitType, InsuranceStatus
from medibill.domain.exclusions import ExclusionCriteria
from medibill.domain.items import FeeItem
from medibill.domain.limits import CoverageLimit
from medibill.domain.policy import InsurancePolicy
from medibill.generators.id_generator import IDGenerator


# =============================================================================
# RNG Fixtures
# =============================================================================


@pytest.fixture
def test_seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def test_rng(test_seed: int) -> np.random.Generator:
    """Deterministic random number generator."""
    return np.random.default_rng(test_seed)


@pytest.fixture
def id_generator(test_rng: np.random.Generator) -> IDGenerator:
    """Test ID generator."""
    return IDGenerator(test_rng)


@pytest.fixture
def now() -> datetime:
    """Fixed evaluation time."""
    return datetime(2024, 6, 1, 10, 30)


# =============================================================================
# Coverage Fixtures
# =============================================================================


@pytest.fixture
def basic_coverage() -> BaseCoverage:
    """Coverage with a 200 deductible and 10% coinsurance, no limits."""
    return (
        BaseCoverage.builder()
        .with_name("Basic Plan")
        .with_limits(CoverageLimit.unlimited())
        .with_deductible(Decimal("200"))
        .with_coinsurance(Decimal("0.10"))
        .with_covered_benefits(
            BenefitType.HOSPITALIZATION,
            BenefitType.SURGERY,
            BenefitType.OUTPATIENT_TREATMENTS,
        )
        .with_exclusions(ExclusionCriteria.none())
        .build()
    )


def _make_policy(coverage, now: datetime, **overrides) -> InsurancePolicy:
    """Active one-year policy on the given coverage."""
    values = dict(
        policy_number="GOVT-0000000001-P0001",
        policy_holder_id="P0001",
        name=coverage.name or "Test Plan",
        provider_name="Government Insurance",
        coverage=coverage,
        status=InsuranceStatus.ACTIVE,
        start_date=now - timedelta(days=30),
        expiration_date=now + timedelta(days=335),
    )
    values.update(overrides)
    return InsurancePolicy(**values)


@pytest.fixture
def active_policy(basic_coverage: BaseCoverage, now: datetime) -> InsurancePolicy:
    return _make_policy(basic_coverage, now)


@pytest.fixture
def expired_policy(basic_coverage: BaseCoverage, now: datetime) -> InsurancePolicy:
    return _make_policy(basic_coverage, now, expiration_date=now - timedelta(days=1))


# =============================================================================
# Item, Bill and Claim Fixtures
# =============================================================================


def _fee(charges: str, benefit: BenefitType = BenefitType.OUTPATIENT_TREATMENTS,
        code: str = "FEE-001", **kwargs) -> FeeItem:
    """Fixed fee item."""
    return FeeItem(
        code=code,
        description=f"Fee {code}",
        charges=Decimal(charges),
        benefit_type=benefit,
        **kwargs,
    )


@pytest.fixture
def consultation_fee() -> FeeItem:
    return _fee("1000.00", code="CONSULT")


@pytest.fixture
def draft_bill(now: datetime) -> Bill:
    return Bill(bill_id="BILL-20240601-0000001", patient_id="P0001", bill_date=now)


@pytest.fixture
def submitted_bill(draft_bill: Bill, consultation_fee: FeeItem) -> Bill:
    """Bill for 1000.00 in SUBMITTED."""
    draft_bill.add_line_item(consultation_fee, 1)
    draft_bill.submit_for_processing()
    return draft_bill


@pytest.fixture
def draft_claim(now: datetime) -> InsuranceClaim:
    return InsuranceClaim(
        claim_id="CLM-20240601-AB12",
        bill_id="BILL-20240601-0000001",
        provider_name="Government Insurance",
        policy_number="GOVT-0000000001-P0001",
        patient_id="P0001",
        claim_amount=Decimal("1000.00"),
        payable_amount=Decimal("720.00"),
        created_at=now,
        last_updated=now,
    )


@pytest.fixture
def usage_tracker() -> InMemoryLimitUsageTracker:
    return InMemoryLimitUsageTracker()


@pytest.fixture
def adjudicator(
    id_generator: IDGenerator,
    usage_tracker: InMemoryLimitUsageTracker,
    now: datetime,
) -> CoverageAdjudicator:
    return CoverageAdjudicator(id_generator, usage_tracker=usage_tracker, clock=lambda: now)


@pytest.fixture
def make_fee():
    """Factory for fixed fee items."""
    return _fee


@pytest.fixture
def make_policy(now: datetime):
    """Factory for active policies on a given coverage."""
    def factory(coverage, **overrides) -> InsurancePolicy:
        return _make_policy(coverage, now, **overrides)
    return factory
