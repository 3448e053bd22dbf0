"""
Exclusion criteria for insurance coverage.

Diagnosis and procedure exclusions are regular expressions matched against
the whole code (``re.fullmatch``), case-sensitively. ``E66\\..*`` therefore
excludes the E66 family while ``E66`` alone only excludes that exact code.
"""

import re
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from medibill.domain.enums import AccidentType, BenefitType
from medibill.domain.items import ClaimableItem


@lru_cache(maxsize=512)
def _compile(pattern: str) -> re.Pattern:
    return re.compile(pattern)


def _matches_any(code: Optional[str], patterns: tuple[str, ...]) -> Optional[str]:
    """Return the first pattern that fully matches the code."""
    if not code:
        return None
    for pattern in patterns:
        if _compile(pattern).fullmatch(code):
            return pattern
    return None


class ExclusionCriteria(BaseModel):
    """Immutable set of exclusion rules for a coverage."""

    model_config = ConfigDict(frozen=True)

    diagnosis_patterns: tuple[str, ...] = ()
    procedure_patterns: tuple[str, ...] = ()
    excluded_benefits: frozenset[BenefitType] = Field(default_factory=frozenset)
    excluded_accidents: frozenset[AccidentType] = Field(default_factory=frozenset)

    @field_validator("diagnosis_patterns", "procedure_patterns")
    @classmethod
    def validate_patterns(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        for pattern in v:
            try:
                _compile(pattern)
            except re.error as exc:
                raise ValueError(f"Invalid exclusion pattern {pattern!r}: {exc}") from exc
        return v

    @classmethod
    def none(cls) -> "ExclusionCriteria":
        """Criteria that exclude nothing."""
        return cls()

    def excludes_accident(self, accident_type: AccidentType) -> bool:
        return accident_type in self.excluded_accidents

    def excludes_benefit(self, benefit_type: BenefitType) -> bool:
        return benefit_type in self.excluded_benefits

    def reason(self, item: ClaimableItem, is_inpatient: bool) -> Optional[str]:
        """
        Describe the first exclusion rule that applies to the item.

        Returns:
            Human-readable reason, or None if the item is not excluded
        """
        pattern = _matches_any(item.diagnosis_code, self.diagnosis_patterns)
        if pattern is not None:
            return f"Diagnosis {item.diagnosis_code} excluded by pattern {pattern}"

        pattern = _matches_any(item.procedure_code, self.procedure_patterns)
        if pattern is not None:
            return f"Procedure {item.procedure_code} excluded by pattern {pattern}"

        benefit = item.resolve_benefit_type(is_inpatient)
        if benefit in self.excluded_benefits:
            return f"Benefit {benefit.value} is excluded"

        accident = item.accident_subtype
        if accident is not None and accident in self.excluded_accidents:
            return f"Accident type {accident.value} is excluded"

        return None

    def applies(self, item: ClaimableItem, is_inpatient: bool) -> bool:
        """True if any exclusion rule matches the item."""
        return self.reason(item, is_inpatient) is not None
