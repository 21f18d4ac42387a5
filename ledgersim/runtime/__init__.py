"""
ledgersim Runtime Package

The ledger boundary and its in-memory simulation.
"""
from .context import ExecutionContext, derive_tx_seed, new_tx_context
from .effects import EffectsTracker
from .interface import LedgerRuntime
from .inventory import ObjectInventory, Pool
from .simulated import SimulatedRuntime

__all__ = [
    "ExecutionContext",
    "derive_tx_seed",
    "new_tx_context",
    "EffectsTracker",
    "LedgerRuntime",
    "ObjectInventory",
    "Pool",
    "SimulatedRuntime",
]
