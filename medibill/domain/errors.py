"""
Error types for Medibill domain operations.

Adjudication denials are not errors; they are returned as
InsuranceCoverageResult values.
"""

from typing import Any


class MedibillError(Exception):
    """Base class for domain errors."""

    pass


class InvalidTransitionError(MedibillError):
    """Raised when a status change is not permitted from the current status."""

    def __init__(self, current: Any, requested: Any, message: str | None = None):
        self.current = current
        self.requested = requested
        if message is None:
            message = f"Cannot transition from {_label(current)} to {_label(requested)}"
        super().__init__(message)


class InvalidStateError(InvalidTransitionError):
    """Raised when an operation is attempted in a status that does not allow it."""

    pass


class InvalidArgumentError(MedibillError, ValueError):
    """Raised for out-of-range amounts and malformed inputs."""

    pass


class NotFoundError(MedibillError, LookupError):
    """Raised when a code, claim or bill does not exist."""

    pass


def _label(value: Any) -> str:
    if value is None:
        return "<unset>"
    name = getattr(value, "name", None)
    return name if name is not None else str(value)
