"""
ID generator for Medibill.

Generates claim IDs, bill IDs and policy numbers in a deterministic,
reproducible manner from an injected NumPy RNG.
"""

from datetime import date

from numpy.random import Generator as RNG

BASE36_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


class IDGenerator:
    """
    Generates identifiers for bills, claims and policies.

    Random parts come from the RNG so the same seed yields the same IDs.
    Worker ID is included in bill IDs to keep them unique across workers.

    Usage:
        id_gen = IDGenerator(np.random.default_rng(42))
        claim_id = id_gen.generate_claim_id(date(2024, 3, 1))
        bill_id = id_gen.generate_bill_id(date(2024, 3, 1))
    """

    def __init__(self, rng: RNG, worker_id: int = 0):
        """
        Initialize the ID generator.

        Args:
            rng: NumPy random number generator
            worker_id: Worker ID for multi-worker uniqueness
        """
        self.rng = rng
        self.worker_id = worker_id

        self._bill_counter = 0
        self._policy_counter = 0

    def random_suffix(self, length: int = 4) -> str:
        """Random uppercase base-36 string."""
        indexes = self.rng.integers(0, len(BASE36_ALPHABET), size=length)
        return "".join(BASE36_ALPHABET[i] for i in indexes)

    def generate_claim_id(self, on: date) -> str:
        """
        Generate a claim ID.

        Format: CLM-YYYYMMDD-XXXX (X = base-36 uppercase)

        Returns:
            Claim ID string
        """
        return f"CLM-{on:%Y%m%d}-{self.random_suffix(4)}"

    def generate_bill_id(self, on: date) -> str:
        """
        Generate a bill ID.

        Format: BILL-YYYYMMDD-WNNNNNN (W = worker_id)

        Returns:
            Bill ID string
        """
        self._bill_counter += 1
        return f"BILL-{on:%Y%m%d}-{self.worker_id}{self._bill_counter:06d}"

    def generate_policy_number(self, prefix: str, patient_id: str) -> str:
        """
        Generate a policy number for a patient.

        Format: PREFIX-NNNNNNNNNN-PATIENTID

        Returns:
            Policy number string
        """
        self._policy_counter += 1
        return f"{prefix}-{self._policy_counter:010d}-{patient_id}"

    def get_counters(self) -> dict[str, int]:
        """Counter state, for saving alongside persisted aggregates."""
        return {
            "bill": self._bill_counter,
            "policy": self._policy_counter,
        }

    def set_counters(self, counters: dict[str, int]) -> None:
        """Restore counter state saved by get_counters()."""
        self._bill_counter = counters.get("bill", 0)
        self._policy_counter = counters.get("policy", 0)
