"""
JSON file store for Medibill aggregates.

Bills and claims are kept as whole collections in ``bills.json`` and
``claims.json``. Callers load a collection, mutate aggregates in memory and
save the collection back.
"""

import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from medibill.core.serializers import deserialize_from_json, serialize_to_json
from medibill.domain.billing import Bill
from medibill.domain.claims import InsuranceClaim
from medibill.domain.errors import NotFoundError

logger = structlog.get_logger()

STORE_VERSION = "1"

M = TypeVar("M", bound=BaseModel)


class StoreCorruptedError(Exception):
    """Raised when a store file cannot be parsed."""

    pass


class JsonStore:
    """
    Load-all / save-all persistence for bills and claims.

    Writes go to a temporary file that replaces the target, so a crash never
    leaves a half-written collection.

    Usage:
        store = JsonStore("data")
        bills = store.load_bills()
        bills[0].record_full_payment(PaymentMethod.CASH)
        store.save_bills(bills)
    """

    BILLS_FILE = "bills.json"
    CLAIMS_FILE = "claims.json"

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    # =========================================================================
    # Bills
    # =========================================================================

    def load_bills(self) -> list[Bill]:
        return self._load(self.BILLS_FILE, "bills", Bill)

    def save_bills(self, bills: Iterable[Bill]) -> None:
        self._save(self.BILLS_FILE, "bills", list(bills))

    def get_bill(self, bill_id: str) -> Bill:
        for bill in self.load_bills():
            if bill.bill_id == bill_id:
                return bill
        raise NotFoundError(f"Bill not found: {bill_id}")

    def upsert_bill(self, bill: Bill) -> None:
        bills = [b for b in self.load_bills() if b.bill_id != bill.bill_id]
        bills.append(bill)
        self.save_bills(bills)

    # =========================================================================
    # Claims
    # =========================================================================

    def load_claims(self) -> list[InsuranceClaim]:
        return self._load(self.CLAIMS_FILE, "claims", InsuranceClaim)

    def save_claims(self, claims: Iterable[InsuranceClaim]) -> None:
        self._save(self.CLAIMS_FILE, "claims", list(claims))

    def get_claim(self, claim_id: str) -> InsuranceClaim:
        for claim in self.load_claims():
            if claim.claim_id == claim_id:
                return claim
        raise NotFoundError(f"Claim not found: {claim_id}")

    def upsert_claim(self, claim: InsuranceClaim) -> None:
        claims = [c for c in self.load_claims() if c.claim_id != claim.claim_id]
        claims.append(claim)
        self.save_claims(claims)

    # =========================================================================
    # File handling
    # =========================================================================

    def _load(self, filename: str, key: str, model: type[M]) -> list[M]:
        path = self.directory / filename
        if not path.exists():
            return []

        try:
            payload: dict[str, Any] = deserialize_from_json(path.read_text(encoding="utf-8"))
            records = [model.model_validate(record) for record in payload.get(key, [])]
        except (ValueError, ValidationError) as e:
            raise StoreCorruptedError(f"Cannot read {path}: {e}") from e

        logger.debug("store_loaded", file=str(path), records=len(records))
        return records

    def _save(self, filename: str, key: str, records: list[BaseModel]) -> None:
        path = self.directory / filename
        payload = {
            "version": STORE_VERSION,
            "saved_at": datetime.now(),
            key: records,
        }

        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{filename}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(serialize_to_json(payload))
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        logger.debug("store_saved", file=str(path), records=len(records))
