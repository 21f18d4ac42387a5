"""
ledgersim Runtime: Simulated Ledger

In-memory runtime for deterministic scenarios (no VM dependency).
Implements the LedgerRuntime boundary plus the object mutations that
contract code performs: share, freeze, transfer, wrap, write, delete.

Objects placed during a transaction only become retrievable once the
transaction is finalized.
"""
from dataclasses import dataclass
from typing import Dict, Optional, Type
from pydantic import BaseModel
from .context import ExecutionContext, new_tx_context
from .effects import EffectsTracker
from .interface import LedgerRuntime, T
from .inventory import ObjectInventory, Pool
from ..core.errors import (
    CantReturnObject,
    InvalidSharedOrImmutableUsage,
    ObjectNotFound,
    OwnershipViolation,
)
from ..core.journal import EventLog
from ..core.logger import get_logger
from ..core.types import (
    Address,
    LedgerObject,
    ObjectId,
    Owner,
    OwnerKind,
    TransactionEffects,
    normalize_address,
)

logger = get_logger("SimulatedRuntime")

@dataclass
class ObjectRecord:
    obj: LedgerObject
    owner: Owner
    type_tag: str

class SimulatedRuntime(LedgerRuntime):
    """
    In-memory object store with ownership enforcement.

    Invariant: one transaction is open at a time; everything recorded since
    the last end_transaction belongs to it. Callers only ever hold copies;
    stored state changes through write, return_object or a placement.
    """
    def __init__(self, event_log: Optional[EventLog] = None):
        self.objects: Dict[ObjectId, ObjectRecord] = {}
        self.inventory = ObjectInventory()
        self.effects = EffectsTracker()
        self.events = event_log if event_log is not None else EventLog()
        self.tx_index = 0

        # Pending ownership changes of this transaction, in call order
        self._placements: Dict[ObjectId, Owner] = {}
        # Owner at transaction start of every pre-existing object touched
        self._origin: Dict[ObjectId, Owner] = {}

    def new_tx_context(
        self,
        sender: Address,
        tx_seed: bytes,
        epoch: int,
        epoch_timestamp_ms: int,
        ids_created: int,
    ) -> ExecutionContext:
        return new_tx_context(sender, tx_seed, epoch, epoch_timestamp_ms, ids_created)

    # --- Object mutations (contract side) ---

    def share_object(self, obj: LedgerObject):
        if obj.id in self.objects and obj.id not in self.effects.created:
            raise OwnershipViolation("only objects created in this transaction can be shared", object_id=obj.id)
        self._place(obj, Owner.shared())
        self.effects.record_shared(obj.id)

    def freeze_object(self, obj: LedgerObject):
        self._place(obj, Owner.immutable())
        self.effects.record_frozen(obj.id)

    def transfer(self, obj: LedgerObject, recipient: Address):
        recipient = normalize_address(recipient)
        self._place(obj, Owner.address(recipient))
        self.effects.record_transfer_to_account(obj.id, recipient)

    def transfer_to_object(self, obj: LedgerObject, parent: ObjectId):
        parent = normalize_address(parent)
        self._place(obj, Owner.object(parent))
        self.effects.record_transfer_to_object(obj.id, parent)

    def write(self, obj: LedgerObject):
        """
        Records an in-place mutation of a held object.
        """
        record = self._held_record(obj)
        if record.owner.kind == OwnerKind.IMMUTABLE:
            raise InvalidSharedOrImmutableUsage("immutable objects cannot be mutated", object_id=obj.id)
        record.obj = obj.model_copy(deep=True)
        self.effects.record_written(obj.id)

    def delete(self, obj: LedgerObject):
        record = self._held_record(obj)
        if obj.id not in self.effects.created:
            self._origin.setdefault(obj.id, record.owner)
        del self.objects[obj.id]
        self._placements.pop(obj.id, None)
        self.effects.record_deleted(obj.id)

    def get_object(self, object_id: ObjectId) -> Optional[LedgerObject]:
        """Reads an object without taking it."""
        record = self.objects.get(object_id)
        return record.obj.model_copy(deep=True) if record else None

    def owner_of(self, object_id: ObjectId) -> Optional[Owner]:
        record = self.objects.get(object_id)
        return record.owner if record else None

    # --- Inventory primitives ---

    def take_by_id(self, type_: Type[T], object_id: ObjectId, pool: Pool) -> T:
        self.inventory.take(pool, type_.type_tag(), object_id)
        record = self.objects[object_id]
        self._origin.setdefault(object_id, record.owner)
        return record.obj.model_copy(deep=True)

    def most_recent_id(self, type_: Type[LedgerObject], pool: Pool) -> Optional[ObjectId]:
        return self.inventory.most_recent(pool, type_.type_tag())

    def was_taken(self, object_id: ObjectId, pool: Pool) -> bool:
        return self.inventory.is_taken(pool, object_id)

    def return_object(self, obj: LedgerObject, pool: Pool):
        location = self.inventory.location_of(obj.id)
        if location is not None and location[1] != obj.type_tag():
            raise CantReturnObject("returned value has a different type", object_id=obj.id, type_tag=obj.type_tag())
        if obj.id in self._placements:
            raise CantReturnObject("object was moved in this transaction", object_id=obj.id)
        self.inventory.give_back(pool, obj.id)
        self.objects[obj.id].obj = obj.model_copy(deep=True)
        if pool.kind != OwnerKind.IMMUTABLE:
            self.effects.record_written(obj.id)

    def emit_event(self, payload: BaseModel):
        payload_type = type(payload)
        type_tag = getattr(payload_type, "EVENT_TYPE", None) or f"{payload_type.__module__}::{payload_type.__qualname__}"
        self.events.append(self.tx_index, type_tag, payload)
        self.effects.record_event()

    # --- Finalization ---

    def end_transaction(self) -> TransactionEffects:
        violations = self._ownership_violations()
        if violations:
            logger.error("ownership_violation", tx_index=self.tx_index, violations=violations)
            raise OwnershipViolation(
                "shared or immutable objects were deleted, transferred or wrapped",
                violations=violations,
            )

        for object_id in self.effects.deleted:
            self.inventory.withdraw(object_id)

        # Publication order == placement order, so the last shared is the most recent
        for object_id, owner in self._placements.items():
            pool = Pool.for_owner(owner)
            if pool is None:
                self.inventory.withdraw(object_id)
            else:
                self.inventory.publish(pool, self.objects[object_id].type_tag, object_id)

        # Taken, never returned nor placed: consumed by the transaction, reported as deleted
        for object_id in self.inventory.taken():
            self.inventory.withdraw(object_id)
            self.objects.pop(object_id, None)
            self.effects.record_deleted(object_id)

        effects = self.effects.snapshot()
        logger.info(
            "tx_finalized",
            tx_index=self.tx_index,
            created=len(effects.created),
            written=len(effects.written),
            deleted=len(effects.deleted),
            events=effects.event_count,
        )

        self.effects.reset()
        self._placements = {}
        self._origin = {}
        self.tx_index += 1
        return effects

    def _ownership_violations(self) -> Dict[ObjectId, str]:
        found: Dict[ObjectId, str] = {}
        for object_id, origin in self._origin.items():
            if not origin.is_restricted():
                continue
            if object_id in self.effects.deleted:
                found[object_id] = "deleted"
            elif object_id in self._placements:
                if self._placements[object_id] != origin:
                    found[object_id] = "transferred"
            elif self.inventory.holds(object_id):
                found[object_id] = "wrapped"
        return found

    def _place(self, obj: LedgerObject, owner: Owner):
        record = self.objects.get(obj.id)
        if record is None:
            self.objects[obj.id] = ObjectRecord(obj=obj.model_copy(deep=True), owner=owner, type_tag=obj.type_tag())
            self.effects.record_created(obj.id)
        else:
            self._held_record(obj)
            if obj.id not in self.effects.created:
                self._origin.setdefault(obj.id, record.owner)
            record.obj = obj.model_copy(deep=True)
            record.owner = owner
        # Re-placing moves the object to the end of the publication order
        self._placements.pop(obj.id, None)
        self._placements[obj.id] = owner

    def _held_record(self, obj: LedgerObject) -> ObjectRecord:
        """
        The transaction may only touch objects it created or currently holds.
        """
        record = self.objects.get(obj.id)
        if record is None:
            raise ObjectNotFound("object does not exist", object_id=obj.id)
        if obj.id not in self.effects.created and not self.inventory.holds(obj.id):
            raise ObjectNotFound("object is not held by this transaction", object_id=obj.id)
        return record
