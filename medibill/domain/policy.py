"""
Insurance policy domain model for Medibill.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from medibill.domain.coverage import CoverageType
from medibill.domain.enums import InsuranceStatus


class InsurancePolicy(BaseModel):
    """
    A coverage held by a patient with one insurance provider.

    Temporal predicates take an explicit ``now`` and never change the
    stored status.
    """

    policy_number: str = Field(..., min_length=1)
    policy_holder_id: str
    name: str
    provider_name: str
    coverage: CoverageType
    status: InsuranceStatus = InsuranceStatus.ACTIVE
    start_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None
    cancellation_date: Optional[datetime] = None

    class Config:
        from_attributes = True

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.status is InsuranceStatus.EXPIRED:
            return True
        now = now or datetime.now()
        return self.expiration_date is not None and self.expiration_date < now

    def is_cancelled(self) -> bool:
        return self.status is InsuranceStatus.CANCELLED or self.cancellation_date is not None

    def is_pending(self) -> bool:
        return self.status is InsuranceStatus.PENDING

    def is_active(self, now: Optional[datetime] = None) -> bool:
        return (
            self.status is InsuranceStatus.ACTIVE
            and not self.is_expired(now)
            and not self.is_cancelled()
        )

    def __str__(self) -> str:
        return f"{self.name} ({self.policy_number}) - {self.provider_name} [{self.status}]"
