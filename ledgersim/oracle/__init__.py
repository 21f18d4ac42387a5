"""
ledgersim Oracle Package

Invariant oracles: context store, log/crash emission, verdicts.
"""
from .context_store import (
    AdminCap,
    ContextStore,
    InMemoryBackend,
    RedisBackend,
    init_context_store,
    namespaced_key,
)
from .invariant import Invariant
from .log import LogEmitter, address_entry, entry, id_entry, message, u64_entry, u256_entry
from .verdict import OracleFinding, ScenarioVerdict, Severity, TypedBugOracle, VerdictStatus, judge

__all__ = [
    "AdminCap",
    "ContextStore",
    "InMemoryBackend",
    "RedisBackend",
    "init_context_store",
    "namespaced_key",
    "Invariant",
    "LogEmitter",
    "address_entry",
    "entry",
    "id_entry",
    "message",
    "u64_entry",
    "u256_entry",
    "OracleFinding",
    "ScenarioVerdict",
    "Severity",
    "TypedBugOracle",
    "VerdictStatus",
    "judge",
]
