"""
Coverage models.

A Coverage decides which claimable items are payable and on what terms
(deductible, coinsurance, limits). BaseCoverage holds one scheme's rules;
CompositeCoverage stacks two coverages, e.g. a government scheme with a
supplementary plan.
"""

from decimal import Decimal
from typing import Annotated, Literal, Optional, Protocol, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from medibill.domain.enums import AccidentType, BenefitType
from medibill.domain.errors import InvalidArgumentError
from medibill.domain.exclusions import ExclusionCriteria
from medibill.domain.items import ClaimableItem
from medibill.domain.limits import CoverageLimit
from medibill.utils.money import ZERO, to_money


@runtime_checkable
class Coverage(Protocol):
    """Capability shared by BaseCoverage and CompositeCoverage."""

    @property
    def deductible_amount(self) -> Decimal: ...

    @property
    def coinsurance_rate(self) -> Decimal: ...

    @property
    def limits(self) -> CoverageLimit: ...

    @property
    def covered_benefits(self) -> frozenset[BenefitType]: ...

    def is_item_covered(self, item: ClaimableItem, is_inpatient: bool) -> bool: ...

    def exclusion_reason(self, item: ClaimableItem, is_inpatient: bool) -> Optional[str]: ...

    def calculate_coinsurance(self, claim_amount: Decimal) -> Decimal: ...

    def calculate_accident_payout(self, accident_type: AccidentType) -> Decimal: ...


class BaseCoverage(BaseModel):
    """
    Rules for a single insurance scheme.

    Construction fails when covered_benefits is empty or when limits or
    exclusions are missing.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["base"] = "base"
    name: str = ""
    limits: CoverageLimit
    deductible: Decimal = Field(default=Decimal("0"), ge=0)
    coinsurance_rate: Decimal = Field(default=Decimal("0"), ge=0, le=1)
    death_benefit: Decimal = Field(default=Decimal("0"), ge=0)
    covered_benefits: frozenset[BenefitType] = Field(..., min_length=1)
    exclusions: ExclusionCriteria

    @classmethod
    def builder(cls) -> "CoverageBuilder":
        return CoverageBuilder()

    @property
    def deductible_amount(self) -> Decimal:
        return self.deductible

    def exclusion_reason(self, item: ClaimableItem, is_inpatient: bool) -> Optional[str]:
        """Why the item is not covered, or None if it is."""
        benefit = item.resolve_benefit_type(is_inpatient)
        if benefit not in self.covered_benefits:
            return f"Benefit {benefit.value} not covered"
        return self.exclusions.reason(item, is_inpatient)

    def is_item_covered(self, item: ClaimableItem, is_inpatient: bool) -> bool:
        return self.exclusion_reason(item, is_inpatient) is None

    def calculate_coinsurance(self, claim_amount: Decimal) -> Decimal:
        return to_money(Decimal(claim_amount) * self.coinsurance_rate)

    def calculate_accident_payout(self, accident_type: AccidentType) -> Decimal:
        if self.exclusions.excludes_accident(accident_type):
            return ZERO
        limit = self.limits.accident_limit(accident_type)
        if limit is None or limit <= 0:
            return ZERO
        if accident_type is AccidentType.DEATH:
            return to_money(self.death_benefit)
        return to_money(limit)


class CompositeCoverage(BaseModel):
    """
    Two stacked coverages answering as one.

    An item is covered when either constituent covers it. Cost-sharing and
    limits take the more restrictive side: the larger deductible, the larger
    coinsurance rate, and the smaller ceiling per limit dimension.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["composite"] = "composite"
    name: str = ""
    primary: "CoverageType"
    supplementary: "CoverageType"

    @property
    def deductible_amount(self) -> Decimal:
        return max(self.primary.deductible_amount, self.supplementary.deductible_amount)

    @property
    def coinsurance_rate(self) -> Decimal:
        return max(self.primary.coinsurance_rate, self.supplementary.coinsurance_rate)

    @property
    def limits(self) -> CoverageLimit:
        return self.primary.limits.combine(self.supplementary.limits)

    @property
    def covered_benefits(self) -> frozenset[BenefitType]:
        return self.primary.covered_benefits | self.supplementary.covered_benefits

    def exclusion_reason(self, item: ClaimableItem, is_inpatient: bool) -> Optional[str]:
        primary_reason = self.primary.exclusion_reason(item, is_inpatient)
        if primary_reason is None:
            return None
        if self.supplementary.exclusion_reason(item, is_inpatient) is None:
            return None
        return primary_reason

    def is_item_covered(self, item: ClaimableItem, is_inpatient: bool) -> bool:
        return (
            self.primary.is_item_covered(item, is_inpatient)
            or self.supplementary.is_item_covered(item, is_inpatient)
        )

    def calculate_coinsurance(self, claim_amount: Decimal) -> Decimal:
        return to_money(Decimal(claim_amount) * self.coinsurance_rate)

    def calculate_accident_payout(self, accident_type: AccidentType) -> Decimal:
        if any(
            _excludes_accident(c, accident_type) for c in (self.primary, self.supplementary)
        ):
            return ZERO
        payouts = [
            self.primary.calculate_accident_payout(accident_type),
            self.supplementary.calculate_accident_payout(accident_type),
        ]
        positive = [p for p in payouts if p > 0]
        return min(positive) if positive else ZERO


def _excludes_accident(coverage: "CoverageType", accident_type: AccidentType) -> bool:
    if isinstance(coverage, CompositeCoverage):
        return any(
            _excludes_accident(c, accident_type)
            for c in (coverage.primary, coverage.supplementary)
        )
    return coverage.exclusions.excludes_accident(accident_type)


CoverageType = Annotated[
    Union[BaseCoverage, CompositeCoverage],
    Field(discriminator="kind"),
]

CompositeCoverage.model_rebuild()


class CoverageBuilder:
    """
    Fluent builder for BaseCoverage.

    Required fields are checked in build(), so an incomplete coverage is
    never returned.
    """

    def __init__(self):
        self._name = ""
        self._limits: Optional[CoverageLimit] = None
        self._deductible = Decimal("0")
        self._coinsurance = Decimal("0")
        self._death_benefit = Decimal("0")
        self._covered: set[BenefitType] = set()
        self._exclusions: Optional[ExclusionCriteria] = None

    def with_name(self, name: str) -> "CoverageBuilder":
        self._name = name
        return self

    def with_limits(self, limits: CoverageLimit) -> "CoverageBuilder":
        self._limits = limits
        return self

    def with_deductible(self, amount: Decimal) -> "CoverageBuilder":
        self._deductible = Decimal(str(amount))
        return self

    def with_coinsurance(self, rate: Decimal) -> "CoverageBuilder":
        self._coinsurance = Decimal(str(rate))
        return self

    def with_death_benefit(self, amount: Decimal) -> "CoverageBuilder":
        self._death_benefit = Decimal(str(amount))
        return self

    def add_covered_benefit(self, benefit_type: BenefitType) -> "CoverageBuilder":
        self._covered.add(benefit_type)
        return self

    def with_covered_benefits(self, *benefit_types: BenefitType) -> "CoverageBuilder":
        self._covered.update(benefit_types)
        return self

    def with_exclusions(self, exclusions: ExclusionCriteria) -> "CoverageBuilder":
        self._exclusions = exclusions
        return self

    def build(self) -> BaseCoverage:
        if self._limits is None:
            raise InvalidArgumentError("Coverage limits must be set")
        if not self._covered:
            raise InvalidArgumentError("At least one covered benefit is required")
        if self._exclusions is None:
            raise InvalidArgumentError("Exclusion criteria must be set")
        if self._deductible < 0:
            raise InvalidArgumentError(f"Deductible cannot be negative: {self._deductible}")
        if not Decimal("0") <= self._coinsurance <= Decimal("1"):
            raise InvalidArgumentError(f"Coinsurance rate must be between 0 and 1: {self._coinsurance}")
        if self._death_benefit < 0:
            raise InvalidArgumentError(f"Death benefit cannot be negative: {self._death_benefit}")

        return BaseCoverage(
            name=self._name,
            limits=self._limits,
            deductible=self._deductible,
            coinsurance_rate=self._coinsurance,
            death_benefit=self._death_benefit,
            covered_benefits=frozenset(self._covered),
            exclusions=self._exclusions,
        )
