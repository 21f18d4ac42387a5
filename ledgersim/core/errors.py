"""
Harness error hierarchy.

Inventory-protocol errors abort the current operation with a stable numeric
code. Invariant violations are never raised; they travel as crash events.
"""
from typing import Any, Dict


class HarnessError(Exception):
    """
    Base error. Carries a numeric code and keyword context for logging.
    """
    code: int = 0

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def __str__(self) -> str:
        if not self.context:
            return f"[{self.code}] {self.message}"
        details = ", ".join(f"{k}={v}" for k, v in sorted(self.context.items()))
        return f"[{self.code}] {self.message} ({details})"


class InvalidSharedOrImmutableUsage(HarnessError):
    code = 1


class CantReturnObject(HarnessError):
    """Return target was not taken through the tracked take path of its pool."""
    code = 2


class EmptyInventory(HarnessError):
    """No eligible object of the requested type is available."""
    code = 3


class ObjectNotFound(EmptyInventory):
    """A specific id is not available (missing, already taken, or another type)."""
    code = 4


class OwnershipViolation(HarnessError):
    """
    Raised by transaction finalization when shared or immutable objects were
    deleted, transferred or wrapped.
    """
    code = 10


class ScenarioEnded(HarnessError):
    code = 11
