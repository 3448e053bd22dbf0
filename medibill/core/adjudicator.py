"""
Coverage adjudication for Medibill.

Evaluates a bill's line items against the coverage of its attached policy
and decides what the insurer pays:

    gross      = sum of covered line totals
    remaining  = max(0, gross - deductible)
    payable    = round(remaining * (1 - coinsurance_rate), 2)

The payable amount is then spread over the covered lines in proportion to
their totals, capped per benefit type, ward class and accident type, and
finally capped by the annual and lifetime headroom reported by a
LimitUsageTracker.

On emergency bills the accident payout is added to both the claimed and the
payable amount, so a full approval pays it out.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Callable, Hashable, Optional, Protocol, runtime_checkable

import structlog
from pydantic import BaseModel, ConfigDict, Field

from medibill.domain.claims import InsuranceClaim
from medibill.domain.limits import CoverageLimit
from medibill.domain.policy import InsurancePolicy
from medibill.generators.id_generator import IDGenerator
from medibill.utils.money import ZERO, sum_money, to_money

if TYPE_CHECKING:
    from medibill.domain.billing import Bill, BillLineItem

logger = structlog.get_logger()


NO_ACTIVE_POLICY = "No active policy"
POLICY_EXPIRED = "Policy expired"
NO_COVERED_ITEMS = "No covered items"


class InsuranceCoverageResult(BaseModel):
    """Outcome of one adjudication run."""

    model_config = ConfigDict(frozen=True)

    approved: bool
    claim: Optional[InsuranceClaim] = None
    payable_amount: Decimal = ZERO
    gross_amount: Decimal = ZERO
    deductible_applied: Decimal = ZERO
    coinsurance_amount: Decimal = ZERO
    accident_benefit: Decimal = ZERO
    covered_items: list[str] = Field(default_factory=list)
    excluded_items: list[str] = Field(default_factory=list)
    limits_applied: list[str] = Field(default_factory=list)
    denial_reason: Optional[str] = None

    @classmethod
    def denied(cls, reason: str, excluded_items: Optional[list[str]] = None) -> "InsuranceCoverageResult":
        return cls(approved=False, denial_reason=reason, excluded_items=excluded_items or [])

    @classmethod
    def approved_with(cls, claim: InsuranceClaim, payable_amount: Decimal, **details) -> "InsuranceCoverageResult":
        return cls(approved=True, claim=claim, payable_amount=payable_amount, **details)

    @property
    def is_approved(self) -> bool:
        return self.approved and self.claim is not None


class LimitUsage(BaseModel):
    """Amounts already paid against a policy's annual and lifetime limits."""

    annual_used: Decimal = ZERO
    lifetime_used: Decimal = ZERO


@runtime_checkable
class LimitUsageTracker(Protocol):
    """Source of cumulative limit consumption per policy."""

    def usage_for(self, policy: InsurancePolicy, on: date) -> LimitUsage:
        """Usage for the policy year containing ``on``."""
        ...


class InMemoryLimitUsageTracker:
    """
    Tracks insurer payouts per policy and calendar year in memory.

    Calling ``record`` is up to the caller, typically when a claim is paid.
    """

    def __init__(self):
        self._annual: dict[tuple[str, int], Decimal] = {}
        self._lifetime: dict[str, Decimal] = {}

    def record(self, policy_number: str, amount: Decimal, on: date) -> None:
        key = (policy_number, on.year)
        self._annual[key] = to_money(self._annual.get(key, ZERO) + amount)
        self._lifetime[policy_number] = to_money(self._lifetime.get(policy_number, ZERO) + amount)

    def usage_for(self, policy: InsurancePolicy, on: date) -> LimitUsage:
        return LimitUsage(
            annual_used=self._annual.get((policy.policy_number, on.year), ZERO),
            lifetime_used=self._lifetime.get(policy.policy_number, ZERO),
        )


class CoverageAdjudicator:
    """
    Decides insurance coverage for bills.

    Usage:
        adjudicator = CoverageAdjudicator(IDGenerator(np.random.default_rng(42)))
        result = adjudicator.adjudicate(bill)
        if result.approved:
            provider.submit_claim(bill.patient_id, result.claim)
    """

    def __init__(
        self,
        id_generator: IDGenerator,
        usage_tracker: Optional[LimitUsageTracker] = None,
        clock: Callable[[], datetime] = datetime.now,
        apply_accident_benefit: bool = True,
    ):
        """
        Initialize the adjudicator.

        Args:
            id_generator: Source of claim IDs
            usage_tracker: Annual/lifetime usage source (defaults to no usage)
            clock: Current time provider
            apply_accident_benefit: Add accident payouts for emergency bills
        """
        self.id_generator = id_generator
        self.usage_tracker = usage_tracker or InMemoryLimitUsageTracker()
        self.clock = clock
        self.apply_accident_benefit = apply_accident_benefit

    def adjudicate(
        self,
        bill: "Bill",
        is_inpatient: Optional[bool] = None,
        now: Optional[datetime] = None,
    ) -> InsuranceCoverageResult:
        """
        Evaluate a bill against its attached policy.

        Denials are returned as results, never raised.
        """
        now = now or self.clock()
        inpatient = bill.is_inpatient if is_inpatient is None else is_inpatient
        policy = bill.insurance_policy

        if policy is None:
            return self._deny(bill, NO_ACTIVE_POLICY)
        if policy.is_expired(now):
            return self._deny(bill, POLICY_EXPIRED)
        if not policy.is_active(now):
            return self._deny(bill, NO_ACTIVE_POLICY)

        coverage = policy.coverage
        covered: list["BillLineItem"] = []
        excluded: list[str] = []
        for line in bill.line_items:
            reason = coverage.exclusion_reason(line.item, inpatient)
            if reason is None:
                covered.append(line)
            else:
                excluded.append(f"{line.item.code}: {reason}")

        if not covered:
            return self._deny(bill, NO_COVERED_ITEMS, excluded)

        gross = sum_money(line.total for line in covered)
        remaining = max(ZERO, to_money(gross - coverage.deductible_amount))
        payable = to_money(remaining * (Decimal("1") - coverage.coinsurance_rate))
        coinsurance = to_money(remaining - payable)

        limits = coverage.limits
        limits_applied: list[str] = []
        payable = self._cap_by_category(covered, payable, gross, limits, inpatient, limits_applied)

        accident_benefit = ZERO
        if bill.is_emergency and self.apply_accident_benefit:
            seen = []
            for line in covered:
                accident = line.item.accident_subtype
                if accident is not None and accident not in seen:
                    seen.append(accident)
                    accident_benefit += coverage.calculate_accident_payout(accident)
            accident_benefit = to_money(accident_benefit)

        total = self._cap_by_headroom(
            to_money(payable + accident_benefit), policy, limits, now.date(), limits_applied
        )
        claimed = to_money(gross + accident_benefit)

        claim = InsuranceClaim(
            claim_id=self.id_generator.generate_claim_id(now.date()),
            bill_id=bill.bill_id,
            provider_name=policy.provider_name,
            policy_number=policy.policy_number,
            patient_id=bill.patient_id,
            claim_amount=claimed,
            payable_amount=total,
            created_at=now,
            last_updated=now,
        )

        logger.info(
            "adjudication_approved",
            bill_id=bill.bill_id,
            claim_id=claim.claim_id,
            gross=str(gross),
            payable=str(total),
            limits_applied=limits_applied,
        )

        return InsuranceCoverageResult.approved_with(
            claim,
            total,
            gross_amount=gross,
            deductible_applied=to_money(gross - remaining),
            coinsurance_amount=coinsurance,
            accident_benefit=accident_benefit,
            covered_items=[line.item.code for line in covered],
            excluded_items=excluded,
            limits_applied=limits_applied,
        )

    def _deny(
        self,
        bill: "Bill",
        reason: str,
        excluded: Optional[list[str]] = None,
    ) -> InsuranceCoverageResult:
        logger.info("adjudication_denied", bill_id=bill.bill_id, reason=reason)
        return InsuranceCoverageResult.denied(reason, excluded)

    def _cap_by_category(
        self,
        covered: list["BillLineItem"],
        payable: Decimal,
        gross: Decimal,
        limits: CoverageLimit,
        inpatient: bool,
        applied: list[str],
    ) -> Decimal:
        """Allocate payable over lines and scale down groups above their ceiling."""
        if gross <= 0 or payable <= 0:
            return payable

        shares = [payable * line.total / gross for line in covered]

        dimensions: list[tuple[str, Callable, Callable]] = [
            ("benefit", lambda line: line.item.resolve_benefit_type(inpatient), limits.benefit_limit),
            ("ward", lambda line: getattr(line.item, "ward_class", None), limits.ward_limit),
            ("accident", lambda line: line.item.accident_subtype, limits.accident_limit),
        ]
        for label, key_of, limit_of in dimensions:
            groups: dict[Hashable, list[int]] = {}
            for index, line in enumerate(covered):
                key = key_of(line)
                if key is not None:
                    groups.setdefault(key, []).append(index)

            for key, indexes in groups.items():
                limit = limit_of(key)
                if limit is None:
                    continue
                subtotal = sum((shares[i] for i in indexes), Decimal("0"))
                if subtotal > limit:
                    factor = Decimal(limit) / subtotal
                    for i in indexes:
                        shares[i] = shares[i] * factor
                    applied.append(f"{label}:{key.value}")

        return to_money(sum(shares, Decimal("0")))

    def _cap_by_headroom(
        self,
        amount: Decimal,
        policy: InsurancePolicy,
        limits: CoverageLimit,
        on: date,
        applied: list[str],
    ) -> Decimal:
        usage = self.usage_tracker.usage_for(policy, on)
        if limits.has_annual_limit:
            headroom = max(ZERO, to_money(limits.annual_limit - usage.annual_used))
            if amount > headroom:
                amount = headroom
                applied.append("annual_limit")
        if limits.has_lifetime_limit:
            headroom = max(ZERO, to_money(limits.lifetime_limit - usage.lifetime_used))
            if amount > headroom:
                amount = headroom
                applied.append("lifetime_limit")
        return amount
