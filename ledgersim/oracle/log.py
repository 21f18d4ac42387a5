"""
ledgersim Oracle: Log Emitter

Structured log events and the violation signal built on the same emission
primitive. Publishing a violation does NOT abort the transaction; consumers
treat any `oracle::Crash` event in a run as a failing case.
"""
from typing import Optional
from ..core.logger import get_logger
from ..core.types import LogEntry, LogMessage, ViolationSignal, normalize_address
from ..runtime.interface import LedgerRuntime

logger = get_logger("Oracle")

U64_MAX = 2**64 - 1
U256_MAX = 2**256 - 1

def entry(value: str, key: Optional[str] = None) -> LogEntry:
    return LogEntry(key=key, value=value)

def _unsigned_entry(value: int, limit: int, key: Optional[str]) -> LogEntry:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"expected an unsigned integer, got {type(value).__name__}")
    if not 0 <= value <= limit:
        raise ValueError(f"value out of range: {value}")
    return LogEntry(key=key, value=str(value))

def u64_entry(value: int, key: Optional[str] = None) -> LogEntry:
    return _unsigned_entry(value, U64_MAX, key)

def u256_entry(value: int, key: Optional[str] = None) -> LogEntry:
    return _unsigned_entry(value, U256_MAX, key)

def address_entry(address: str, key: Optional[str] = None) -> LogEntry:
    return LogEntry(key=key, value=normalize_address(address))

# Object ids share the address representation
id_entry = address_entry

def message(*entries: LogEntry) -> LogMessage:
    return LogMessage(msg=list(entries))

class LogEmitter:
    """
    Publishes log and crash events through the runtime's event primitive.
    """
    def __init__(self, runtime: LedgerRuntime):
        self.runtime = runtime

    def emit_log(self, log_message: LogMessage):
        self.runtime.emit_event(log_message)

    def emit_crash(self, details: LogMessage):
        """
        Reports an invariant violation. Execution continues.
        """
        logger.warning("oracle_crash", reason=[e.model_dump() for e in details.msg])
        self.runtime.emit_event(ViolationSignal(reason=details))

    def log(self, value: str):
        self.emit_log(message(entry(value)))

    def log_keyed(self, key: str, value: str):
        self.emit_log(message(entry(value, key=key)))

    def crash(self, value: str):
        self.emit_crash(message(entry(value)))

    def crash_keyed(self, key: str, value: str):
        self.emit_crash(message(entry(value, key=key)))
