"""
ledgersim: Deterministic Hashing

Canonical hashes for effects snapshots and object id derivation.
Identical inputs MUST produce identical outputs across runs.
"""
import hashlib
import json
from decimal import Decimal
from typing import Dict, Any

TX_HASH_LENGTH = 32

class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal and set types."""
    def default(self, obj):
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, (set, frozenset)):
            return sorted(obj)
        return super().default(obj)

class StateHasher:
    """
    Computes deterministic SHA-256 hashes.
    """

    @staticmethod
    def hash_state(state: Dict[str, Any]) -> str:
        """
        Computes a deterministic hash of the given state dictionary.
        Keys are sorted for determinism.
        """
        serialized = json.dumps(state, sort_keys=True, cls=DecimalEncoder)
        return hashlib.sha256(serialized.encode('utf-8')).hexdigest()

    @staticmethod
    def derive_object_id(tx_hash: bytes, ids_created: int) -> str:
        """
        Object id = sha256(tx_hash || ids_created as u64 little-endian).
        """
        data = tx_hash + ids_created.to_bytes(8, "little")
        return "0x" + hashlib.sha256(data).hexdigest()
