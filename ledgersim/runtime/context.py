"""
ledgersim Runtime: Deterministic Execution Context

Pure derivation of the per-transaction execution context.
Identical inputs MUST yield identical contexts and identical object ids.
"""
from dataclasses import dataclass
from ..core.hashing import StateHasher, TX_HASH_LENGTH
from ..core.types import Address, ObjectId, normalize_address

U64_MAX = 2**64 - 1

def derive_tx_seed(hint: int) -> bytes:
    """
    Seed for a transaction derived from a turn counter.
    The counter is encoded as u64 little-endian, then zero-padded.
    """
    if not 0 <= hint <= U64_MAX:
        raise ValueError(f"hint out of u64 range: {hint}")
    return hint.to_bytes(8, "little").ljust(TX_HASH_LENGTH, b"\x00")

@dataclass
class ExecutionContext:
    """
    Context of the currently open transaction.
    Only ids_created changes over the lifetime of a transaction.
    """
    sender: Address
    tx_hash: bytes
    epoch: int
    epoch_timestamp_ms: int
    ids_created: int = 0

    def fresh_id(self) -> ObjectId:
        """Derives the next object id and bumps ids_created."""
        object_id = StateHasher.derive_object_id(self.tx_hash, self.ids_created)
        self.ids_created += 1
        return object_id

    @property
    def digest(self) -> str:
        return "0x" + self.tx_hash.hex()

def new_tx_context(
    sender: Address,
    tx_seed: bytes,
    epoch: int,
    epoch_timestamp_ms: int,
    ids_created: int,
) -> ExecutionContext:
    """
    Builds an execution context. Seeds shorter than TX_HASH_LENGTH are zero-padded.
    """
    if len(tx_seed) > TX_HASH_LENGTH:
        raise ValueError(f"tx seed longer than {TX_HASH_LENGTH} bytes")
    if epoch < 0 or epoch_timestamp_ms < 0 or ids_created < 0:
        raise ValueError("epoch, epoch timestamp and ids_created must be non-negative")
    return ExecutionContext(
        sender=normalize_address(sender),
        tx_hash=tx_seed.ljust(TX_HASH_LENGTH, b"\x00"),
        epoch=epoch,
        epoch_timestamp_ms=epoch_timestamp_ms,
        ids_created=ids_created,
    )
