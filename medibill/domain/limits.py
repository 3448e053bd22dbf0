"""
Coverage limits.

An absent entry means the dimension is unlimited, never zero.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from medibill.domain.enums import AccidentType, BenefitType, WardClassType
from medibill.domain.errors import InvalidArgumentError
from medibill.utils.money import min_optional


class CoverageLimit(BaseModel):
    """Monetary ceilings for a coverage."""

    model_config = ConfigDict(frozen=True)

    annual_limit: Optional[Decimal] = Field(default=None, ge=0)
    lifetime_limit: Optional[Decimal] = Field(default=None, ge=0)
    benefit_limits: dict[BenefitType, Decimal] = Field(default_factory=dict)
    ward_limits: dict[WardClassType, Decimal] = Field(default_factory=dict)
    accident_limits: dict[AccidentType, Decimal] = Field(default_factory=dict)

    @field_validator("annual_limit", "lifetime_limit")
    @classmethod
    def zero_means_unlimited(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        """A zero annual or lifetime limit is stored as no limit."""
        if v is not None and v == 0:
            return None
        return v

    @classmethod
    def builder(cls) -> "CoverageLimitBuilder":
        return CoverageLimitBuilder()

    @classmethod
    def unlimited(cls) -> "CoverageLimit":
        return cls()

    @property
    def has_annual_limit(self) -> bool:
        return self.annual_limit is not None

    @property
    def has_lifetime_limit(self) -> bool:
        return self.lifetime_limit is not None

    def benefit_limit(self, benefit_type: BenefitType) -> Optional[Decimal]:
        return self.benefit_limits.get(benefit_type)

    def ward_limit(self, ward_class: WardClassType) -> Optional[Decimal]:
        return self.ward_limits.get(ward_class)

    def accident_limit(self, accident_type: AccidentType) -> Optional[Decimal]:
        return self.accident_limits.get(accident_type)

    def combine(self, other: "CoverageLimit") -> "CoverageLimit":
        """
        Combine two limits conservatively.

        For every dimension the smaller ceiling wins. A dimension limited on
        only one side keeps that side's ceiling, since the other side is
        unlimited.
        """
        return CoverageLimit(
            annual_limit=min_optional(self.annual_limit, other.annual_limit),
            lifetime_limit=min_optional(self.lifetime_limit, other.lifetime_limit),
            benefit_limits=_combine_maps(self.benefit_limits, other.benefit_limits),
            ward_limits=_combine_maps(self.ward_limits, other.ward_limits),
            accident_limits=_combine_maps(self.accident_limits, other.accident_limits),
        )


def _combine_maps(a: dict, b: dict) -> dict:
    return {key: min_optional(a.get(key), b.get(key)) for key in a.keys() | b.keys()}


class CoverageLimitBuilder:
    """
    Accumulating builder for CoverageLimit.

    Usage:
        limits = (
            CoverageLimit.builder()
            .with_annual_limit(Decimal("150000"))
            .add_benefit_limit(BenefitType.SURGERY, Decimal("4500"))
            .build()
        )
    """

    def __init__(self):
        self._annual_limit: Optional[Decimal] = None
        self._lifetime_limit: Optional[Decimal] = None
        self._benefit_limits: dict[BenefitType, Decimal] = {}
        self._ward_limits: dict[WardClassType, Decimal] = {}
        self._accident_limits: dict[AccidentType, Decimal] = {}

    def with_annual_limit(self, amount: Decimal) -> "CoverageLimitBuilder":
        self._annual_limit = _non_negative(amount, "annual limit")
        return self

    def with_lifetime_limit(self, amount: Decimal) -> "CoverageLimitBuilder":
        self._lifetime_limit = _non_negative(amount, "lifetime limit")
        return self

    def add_benefit_limit(self, benefit_type: BenefitType, amount: Decimal) -> "CoverageLimitBuilder":
        self._benefit_limits[benefit_type] = _non_negative(amount, f"{benefit_type.value} limit")
        return self

    def add_ward_limit(self, ward_class: WardClassType, amount: Decimal) -> "CoverageLimitBuilder":
        self._ward_limits[ward_class] = _non_negative(amount, f"{ward_class.value} limit")
        return self

    def add_accident_limit(self, accident_type: AccidentType, amount: Decimal) -> "CoverageLimitBuilder":
        self._accident_limits[accident_type] = _non_negative(amount, f"{accident_type.value} limit")
        return self

    def build(self) -> CoverageLimit:
        return CoverageLimit(
            annual_limit=self._annual_limit,
            lifetime_limit=self._lifetime_limit,
            benefit_limits=dict(self._benefit_limits),
            ward_limits=dict(self._ward_limits),
            accident_limits=dict(self._accident_limits),
        )


def _non_negative(amount: Decimal | int | str, label: str) -> Decimal:
    value = Decimal(str(amount))
    if value < 0:
        raise InvalidArgumentError(f"{label} cannot be negative: {value}")
    return value
