"""
Claimable item models for Medibill.

A claimable item is anything billable that can be evaluated for insurance
benefit eligibility. The concrete items are immutable pydantic models
discriminated by ``kind`` so that bills serialize and reload without losing
the item type.
"""

import re
from decimal import Decimal
from typing import Annotated, Literal, Optional, Protocol, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from medibill.domain.enums import AccidentType, BenefitType, WardClassType
from medibill.utils.money import to_money


@runtime_checkable
class ClaimableItem(Protocol):
    """
    Capability of a billable item that insurance can evaluate.

    Any object exposing these attributes can be placed on a bill and
    adjudicated.
    """

    @property
    def code(self) -> str: ...

    @property
    def description(self) -> str: ...

    @property
    def category(self) -> str: ...

    @property
    def charges(self) -> Decimal: ...

    @property
    def diagnosis_code(self) -> Optional[str]: ...

    @property
    def procedure_code(self) -> Optional[str]: ...

    @property
    def medication(self) -> Optional[str]: ...

    @property
    def accident_subtype(self) -> Optional[AccidentType]: ...

    def resolve_benefit_type(self, is_inpatient: bool) -> BenefitType: ...

    def benefit_description(self, is_inpatient: bool) -> str: ...


def _default_benefit(is_inpatient: bool) -> BenefitType:
    return BenefitType.HOSPITALIZATION if is_inpatient else BenefitType.OUTPATIENT_TREATMENTS


class _BillableItem(BaseModel):
    """Shared fields and defaults for concrete items."""

    model_config = ConfigDict(frozen=True)

    accident_subtype: Optional[AccidentType] = None

    @property
    def diagnosis_code(self) -> Optional[str]:
        return None

    @property
    def procedure_code(self) -> Optional[str]:
        return None

    @property
    def medication(self) -> Optional[str]:
        return None

    def __str__(self) -> str:
        return f"{self.code}: {self.description} [{self.charges}]"


# Ordered, first match wins. Patterns are matched against the 3-character
# diagnosis category.
_DIAGNOSIS_BENEFIT_RULES: list[tuple[re.Pattern, BenefitType]] = [
    (re.compile(r"O.*"), BenefitType.MATERNITY),
    (re.compile(r"C\d{2}.*"), BenefitType.CRITICAL_ILLNESS),
    (re.compile(r"I(2[0-5]|3|4[0-1]).*"), BenefitType.CRITICAL_ILLNESS),
    (re.compile(r"(G30|E10|E11).*"), BenefitType.CRITICAL_ILLNESS),
    (re.compile(r"[ST].*"), BenefitType.ACCIDENT),
    (re.compile(r"K0[0-5].*"), BenefitType.DENTAL),
    (re.compile(r"Z74.*"), BenefitType.PREVENTIVE_CARE),
    (re.compile(r"(E66|I10|J45|N18).*"), BenefitType.CHRONIC_CONDITIONS),
    (re.compile(r"(J06|N30|R05).*"), BenefitType.ACUTE_CONDITIONS),
    (re.compile(r"Z5[1-3].*"), BenefitType.PREVENTIVE_CARE),
]


class DiagnosisItem(_BillableItem):
    """ICD-10 diagnosis charge."""

    kind: Literal["diagnosis"] = "diagnosis"
    code: str = Field(..., min_length=1)
    description: str
    charges: Decimal = Field(..., ge=0)
    category_code: Optional[str] = None

    @property
    def category(self) -> str:
        return "DIAGNOSIS"

    @property
    def diagnosis_code(self) -> Optional[str]:
        return self.code

    def resolve_benefit_type(self, is_inpatient: bool) -> BenefitType:
        category_code = self.category_code or self.code[:3]
        for pattern, benefit in _DIAGNOSIS_BENEFIT_RULES:
            if pattern.fullmatch(category_code):
                return benefit
        return _default_benefit(is_inpatient)

    def benefit_description(self, is_inpatient: bool) -> str:
        return self.description


_BODY_SYSTEMS = {
    "0": "Central Nervous System and Cranial Nerves",
    "1": "Peripheral Nervous System",
    "2": "Heart and Great Vessels",
    "3": "Upper Arteries",
    "4": "Lower Arteries",
    "5": "Upper Veins",
    "6": "Lower Veins",
    "7": "Lymphatic and Hematic Systems",
    "8": "Eye",
    "9": "Ear, Nose, Sinus",
    "B": "Respiratory System",
    "C": "Mouth and Throat",
    "D": "Gastrointestinal System",
    "F": "Hepatobiliary System and Pancreas",
    "G": "Endocrine System",
    "H": "Skin and Breast",
    "J": "Subcutaneous Tissue and Fascia",
    "K": "Muscles",
    "L": "Tendons",
    "M": "Bursae and Ligaments",
    "N": "Head and Facial Bones",
    "P": "Upper Bones",
    "Q": "Lower Bones",
    "R": "Upper Joints",
    "S": "Lower Joints",
    "T": "Urinary System",
    "U": "Female Reproductive System",
    "V": "Male Reproductive System",
    "W": "Anatomical Regions, General",
}


class ProcedureItem(_BillableItem):
    """ICD-10-PCS procedure charge."""

    kind: Literal["procedure"] = "procedure"
    code: str = Field(..., min_length=1)
    description: str
    charges: Decimal = Field(..., ge=0)

    @property
    def category(self) -> str:
        return "PROCEDURE"

    @property
    def procedure_code(self) -> Optional[str]:
        return self.code

    def resolve_benefit_type(self, is_inpatient: bool) -> BenefitType:
        if len(self.code) < 2:
            return _default_benefit(is_inpatient)

        section, body_system = self.code[0], self.code[1]
        if section == "1":
            return BenefitType.MATERNITY
        if self.code[:3] == "3E0":
            return BenefitType.MEDICATION_ADMIN
        if section == "B":
            return BenefitType.DIAGNOSTIC_IMAGING
        if section in ("C", "D"):
            return BenefitType.ONCOLOGY_TREATMENTS
        if section == "0":
            if body_system in ("0", "2"):
                return BenefitType.MAJOR_SURGERY
            if body_system in ("H", "P", "Q", "R", "S"):
                return BenefitType.MINOR_SURGERY
            return BenefitType.HOSPITALIZATION if is_inpatient else BenefitType.MINOR_SURGERY
        return _default_benefit(is_inpatient)

    def benefit_description(self, is_inpatient: bool) -> str:
        setting = "Inpatient" if is_inpatient else "Outpatient"
        text = f"{setting} Surgical Procedure: {self.description}"
        if len(self.code) >= 2 and self.code[0] == "0":
            body_system = _BODY_SYSTEMS.get(self.code[1])
            if body_system:
                text += f" ({body_system})"
        return text


class MedicationItem(_BillableItem):
    """Dispensed medication, charged per unit."""

    kind: Literal["medication"] = "medication"
    drug_code: str = Field(..., min_length=1)
    name: str
    drug_category: str = ""
    unit_description: str = "unit"
    charges: Decimal = Field(..., ge=0)

    @property
    def code(self) -> str:
        return f"MED-{self.drug_code}"

    @property
    def description(self) -> str:
        return self.name

    @property
    def category(self) -> str:
        return "MEDICATION"

    @property
    def medication(self) -> Optional[str]:
        return self.drug_code

    def resolve_benefit_type(self, is_inpatient: bool) -> BenefitType:
        return _default_benefit(is_inpatient)

    def benefit_description(self, is_inpatient: bool) -> str:
        return f"Medication: {self.name} ({self.drug_category}) per {self.unit_description}"


_WARD_CODE_PREFIX = {
    "labour": "LBR",
    "icu": "ICU",
    "day_surgery": "DSG",
    "general": "GEN",
}


class WardStayItem(_BillableItem):
    """Ward stay charged at the ward class daily rate."""

    kind: Literal["ward_stay"] = "ward_stay"
    ward_class: WardClassType
    days: int = Field(..., ge=1)

    @property
    def charges(self) -> Decimal:
        return to_money(self.ward_class.daily_rate * self.days)

    @property
    def code(self) -> str:
        prefix = _WARD_CODE_PREFIX[self.ward_class.ward_family]
        return f"{prefix}-{self.ward_class.class_code}-{self.days}"

    @property
    def description(self) -> str:
        return self.benefit_description(True)

    @property
    def category(self) -> str:
        return "WARD"

    def resolve_benefit_type(self, is_inpatient: bool) -> BenefitType:
        family = self.ward_class.ward_family
        if family == "labour":
            return BenefitType.MATERNITY
        if family == "icu":
            return BenefitType.HOSPITALIZATION
        if family == "day_surgery":
            return BenefitType.SURGERY if is_inpatient else BenefitType.OUTPATIENT_TREATMENTS
        return _default_benefit(is_inpatient)

    def benefit_description(self, is_inpatient: bool) -> str:
        return f"{self.ward_class.value} Ward Stay ({self.days} days)"


class FeeItem(_BillableItem):
    """Fixed fee with a predetermined benefit type, e.g. a consultation fee."""

    kind: Literal["fee"] = "fee"
    code: str = Field(..., min_length=1)
    description: str
    charges: Decimal = Field(..., ge=0)
    benefit_type: BenefitType = BenefitType.OUTPATIENT_TREATMENTS
    fee_category: str = "FEE"

    @property
    def category(self) -> str:
        return self.fee_category

    def resolve_benefit_type(self, is_inpatient: bool) -> BenefitType:
        return self.benefit_type

    def benefit_description(self, is_inpatient: bool) -> str:
        return self.description


BillableItemType = Annotated[
    Union[DiagnosisItem, ProcedureItem, MedicationItem, WardStayItem, FeeItem],
    Field(discriminator="kind"),
]
