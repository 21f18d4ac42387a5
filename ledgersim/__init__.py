"""
ledgersim

Deterministic transaction scenarios and invariant oracles for an
object-capability ledger model.
"""
from .core.config import HarnessConfig
from .core.errors import (
    CantReturnObject,
    EmptyInventory,
    HarnessError,
    ObjectNotFound,
    OwnershipViolation,
    ScenarioEnded,
)
from .core.journal import EventLog
from .core.types import LedgerObject, LogEntry, LogMessage, TransactionEffects, ViolationSignal
from .runtime import SimulatedRuntime
from .scenario import Scenario, ScenarioEngine

__all__ = [
    "HarnessConfig",
    "CantReturnObject",
    "EmptyInventory",
    "HarnessError",
    "ObjectNotFound",
    "OwnershipViolation",
    "ScenarioEnded",
    "EventLog",
    "LedgerObject",
    "LogEntry",
    "LogMessage",
    "TransactionEffects",
    "ViolationSignal",
    "SimulatedRuntime",
    "Scenario",
    "ScenarioEngine",
]
