"""
ledgersim Runtime: Effects Tracker

Accumulates the observable mutations of the open transaction.
Ids are kept in first-record order.
"""
from typing import Dict
from ..core.types import Address, ObjectId, TransactionEffects

class EffectsTracker:
    """
    Per-transaction accumulator. Reset at every boundary.
    """
    def __init__(self):
        self.reset()

    def reset(self):
        # dicts used as ordered sets
        self.created: Dict[ObjectId, None] = {}
        self.written: Dict[ObjectId, None] = {}
        self.deleted: Dict[ObjectId, None] = {}
        self.transferred_to_account: Dict[ObjectId, Address] = {}
        self.transferred_to_object: Dict[ObjectId, ObjectId] = {}
        self.shared: Dict[ObjectId, None] = {}
        self.frozen: Dict[ObjectId, None] = {}
        self.event_count: int = 0

    def record_created(self, object_id: ObjectId):
        self.created[object_id] = None

    def record_written(self, object_id: ObjectId):
        if object_id not in self.created:
            self.written[object_id] = None

    def record_deleted(self, object_id: ObjectId):
        if object_id in self.created:
            # Created and deleted in the same transaction: leaves no trace.
            self._forget(object_id)
            return
        self._forget(object_id)
        self.deleted[object_id] = None

    def record_transfer_to_account(self, object_id: ObjectId, recipient: Address):
        self.transferred_to_object.pop(object_id, None)
        self.transferred_to_account[object_id] = recipient
        self.record_written(object_id)

    def record_transfer_to_object(self, object_id: ObjectId, parent: ObjectId):
        self.transferred_to_account.pop(object_id, None)
        self.transferred_to_object[object_id] = parent
        self.record_written(object_id)

    def record_shared(self, object_id: ObjectId):
        self.shared[object_id] = None

    def record_frozen(self, object_id: ObjectId):
        self.frozen[object_id] = None
        self.record_written(object_id)

    def record_event(self):
        self.event_count += 1

    def snapshot(self) -> TransactionEffects:
        return TransactionEffects(
            created=frozenset(self.created),
            written=frozenset(self.written),
            deleted=frozenset(self.deleted),
            transferred_to_account=dict(self.transferred_to_account),
            transferred_to_object=dict(self.transferred_to_object),
            shared=frozenset(self.shared),
            frozen=frozenset(self.frozen),
            event_count=self.event_count,
        )

    def _forget(self, object_id: ObjectId):
        for group in (self.created, self.written, self.transferred_to_account,
                      self.transferred_to_object, self.shared, self.frozen):
            group.pop(object_id, None)
