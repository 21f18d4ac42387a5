import re
from typing import Any, ClassVar, Dict, FrozenSet, List, Optional
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from .hashing import StateHasher

# Identifiers are 0x-prefixed, 64 hex digit lowercase strings.
ObjectId = str
Address = str

ADDRESS_HEX_LENGTH = 64
_HEX = re.compile(r"[0-9a-fA-F]+")

def normalize_address(value: str) -> str:
    """
    Canonical form of an address or object id: 0x + 64 lowercase hex digits.
    Shorter hex is left-padded with zeros.
    """
    digits = value[2:] if value.lower().startswith("0x") else value
    if len(digits) > ADDRESS_HEX_LENGTH or not _HEX.fullmatch(digits):
        raise ValueError(f"invalid address: {value!r}")
    return "0x" + digits.lower().zfill(ADDRESS_HEX_LENGTH)

class OwnerKind(str, Enum):
    ADDRESS = "ADDRESS"
    OBJECT = "OBJECT"
    SHARED = "SHARED"
    IMMUTABLE = "IMMUTABLE"

class Owner(BaseModel):
    """
    Ownership of a stored object. `target` is the owning address or parent id.
    """
    model_config = ConfigDict(frozen=True)

    kind: OwnerKind
    target: Optional[str] = None

    @classmethod
    def address(cls, address: Address) -> "Owner":
        return cls(kind=OwnerKind.ADDRESS, target=address)

    @classmethod
    def object(cls, parent: ObjectId) -> "Owner":
        return cls(kind=OwnerKind.OBJECT, target=parent)

    @classmethod
    def shared(cls) -> "Owner":
        return cls(kind=OwnerKind.SHARED)

    @classmethod
    def immutable(cls) -> "Owner":
        return cls(kind=OwnerKind.IMMUTABLE)

    def is_restricted(self) -> bool:
        """Shared and immutable objects may not be deleted, transferred or wrapped."""
        return self.kind in (OwnerKind.SHARED, OwnerKind.IMMUTABLE)

class LedgerObject(BaseModel):
    """
    Base class for objects living on the simulated ledger.
    Subclasses add their own fields; the class itself is the object type.
    """
    id: ObjectId

    @classmethod
    def type_tag(cls) -> str:
        return f"{cls.__module__}::{cls.__qualname__}"

class TransactionEffects(BaseModel):
    """
    Observable mutations of exactly one transaction.
    Immutable once returned.
    """
    model_config = ConfigDict(frozen=True)

    created: FrozenSet[ObjectId] = frozenset()
    written: FrozenSet[ObjectId] = frozenset()
    deleted: FrozenSet[ObjectId] = frozenset()
    transferred_to_account: Dict[ObjectId, Address] = Field(default_factory=dict)
    transferred_to_object: Dict[ObjectId, ObjectId] = Field(default_factory=dict)
    shared: FrozenSet[ObjectId] = frozenset()
    frozen: FrozenSet[ObjectId] = frozenset()
    event_count: int = Field(default=0, ge=0)

    def is_empty(self) -> bool:
        return not (
            self.created or self.written or self.deleted
            or self.transferred_to_account or self.transferred_to_object
            or self.shared or self.frozen or self.event_count
        )

    def digest(self) -> str:
        """Deterministic hash of the effects, for comparing runs."""
        return StateHasher.hash_state(self.model_dump())

# --- Log / Oracle wire shapes ---

class LogEntry(BaseModel):
    key: Optional[str] = None
    value: str

class LogMessage(BaseModel):
    """
    Ordered sequence of log entries. Emitted as `log::LogMessage`.
    """
    EVENT_TYPE: ClassVar[str] = "log::LogMessage"

    msg: List[LogEntry] = Field(default_factory=list)

class ViolationSignal(BaseModel):
    """
    Non-aborting invariant violation. Emitted as `oracle::Crash`.
    """
    EVENT_TYPE: ClassVar[str] = "oracle::Crash"

    reason: LogMessage

class Event(BaseModel):
    """
    Entry of the append-only event log.
    """
    sequence: int  # Global emission order, starts at 0
    tx_index: int  # Runtime transaction counter at emission
    type_tag: str  # "module::Name"
    data: Dict[str, Any]

    @property
    def module(self) -> str:
        return self.type_tag.rsplit("::", 1)[0]

    @property
    def name(self) -> str:
        return self.type_tag.rsplit("::", 1)[-1]

    def is_violation(self) -> bool:
        return self.type_tag == ViolationSignal.EVENT_TYPE
