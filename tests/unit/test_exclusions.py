"""
Unit tests for ExclusionCriteria.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from medibill.domain.enums import AccidentType, BenefitType
from medibill.domain.exclusions import ExclusionCriteria
from medibill.domain.items import DiagnosisItem, FeeItem, ProcedureItem


def diagnosis(code: str) -> DiagnosisItem:
    return DiagnosisItem(code=code, description="Obesity", charges=Decimal("100"))


class TestPatternMatching:
    """Tests for diagnosis and procedure pattern exclusions."""

    def test_family_pattern_excludes_subcodes(self):
        criteria = ExclusionCriteria(diagnosis_patterns=(r"E66\..*",))
        assert criteria.applies(diagnosis("E66.01"), True)
        assert not criteria.applies(diagnosis("E660"), True)

    def test_pattern_must_match_whole_code(self):
        criteria = ExclusionCriteria(diagnosis_patterns=("E66",))
        assert criteria.applies(diagnosis("E66"), True)
        assert not criteria.applies(diagnosis("E66.01"), True)

    def test_matching_is_case_sensitive(self):
        criteria = ExclusionCriteria(diagnosis_patterns=(r"e66\..*",))
        assert not criteria.applies(diagnosis("E66.01"), True)

    def test_procedure_pattern(self):
        criteria = ExclusionCriteria(procedure_patterns=("0DT.*",))
        item = ProcedureItem(code="0DTJ4ZZ", description="Resection", charges=Decimal("10"))
        assert criteria.reason(item, True) == "Procedure 0DTJ4ZZ excluded by pattern 0DT.*"

    def test_absent_codes_never_match(self):
        criteria = ExclusionCriteria(diagnosis_patterns=(".*",), procedure_patterns=(".*",))
        fee = FeeItem(code="F", description="Fee", charges=Decimal("10"))
        assert not criteria.applies(fee, True)

    def test_reason_names_pattern(self):
        criteria = ExclusionCriteria(diagnosis_patterns=(r"E66\..*",))
        assert criteria.reason(diagnosis("E66.01"), True) == (
            r"Diagnosis E66.01 excluded by pattern E66\..*"
        )

    def test_invalid_pattern_rejected(self):
        with pytest.raises(ValidationError, match="Invalid exclusion pattern"):
            ExclusionCriteria(diagnosis_patterns=("E66[",))


class TestBenefitAndAccidentExclusions:
    """Tests for benefit type and accident type exclusions."""

    def test_excluded_benefit(self):
        criteria = ExclusionCriteria(excluded_benefits=frozenset({BenefitType.DENTAL}))
        fee = FeeItem(code="D", description="Scaling", charges=Decimal("80"),
                      benefit_type=BenefitType.DENTAL)
        assert criteria.excludes_benefit(BenefitType.DENTAL)
        assert criteria.reason(fee, False) == "Benefit Dental is excluded"

    def test_excluded_accident_subtype(self):
        criteria = ExclusionCriteria(excluded_accidents=frozenset({AccidentType.BURNS}))
        fee = FeeItem(code="ER", description="Burn care", charges=Decimal("500"),
                      accident_subtype=AccidentType.BURNS)
        assert criteria.excludes_accident(AccidentType.BURNS)
        assert not criteria.excludes_accident(AccidentType.FRACTURE)
        assert criteria.reason(fee, True) == "Accident type Burns is excluded"

    def test_none_excludes_nothing(self):
        criteria = ExclusionCriteria.none()
        assert not criteria.applies(diagnosis("E66.01"), True)
        for accident in AccidentType:
            assert not criteria.excludes_accident(accident)
