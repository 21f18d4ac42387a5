"""
ledgersim Runtime: Object Inventory

Availability bookkeeping for the take/return protocol.
Objects live in pools (shared, immutable, one per owning address); within a
pool each type keeps its ids in publication order, most recent last.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple
from ..core.errors import CantReturnObject, ObjectNotFound
from ..core.types import Address, ObjectId, Owner, OwnerKind

@dataclass(frozen=True)
class Pool:
    """
    A retrievable bucket of objects. Object-owned (wrapped) children have none.
    """
    kind: OwnerKind
    address: Optional[Address] = None

    @classmethod
    def shared(cls) -> "Pool":
        return cls(OwnerKind.SHARED)

    @classmethod
    def immutable(cls) -> "Pool":
        return cls(OwnerKind.IMMUTABLE)

    @classmethod
    def of_address(cls, address: Address) -> "Pool":
        return cls(OwnerKind.ADDRESS, address)

    @classmethod
    def for_owner(cls, owner: Owner) -> Optional["Pool"]:
        if owner.kind == OwnerKind.OBJECT:
            return None
        return cls(owner.kind, owner.target)

    def __str__(self) -> str:
        if self.kind == OwnerKind.ADDRESS:
            return f"address:{self.address}"
        return self.kind.value.lower()

class ObjectInventory:
    """
    Tracks which objects are available and which are taken.

    Invariant: an id is in at most one pool, and is either available or taken.
    Returning an object makes it available again at its original position,
    so a take/return round trip leaves "most recent" answers unchanged.
    """
    def __init__(self):
        self._order: Dict[Pool, Dict[str, List[ObjectId]]] = {}
        self._location: Dict[ObjectId, Tuple[Pool, str]] = {}
        self._taken: Set[ObjectId] = set()

    def publish(self, pool: Pool, type_tag: str, object_id: ObjectId):
        """
        Makes an object available as the most recent of its type in `pool`.
        Any previous placement is dropped first.
        """
        self.withdraw(object_id)
        self._order.setdefault(pool, {}).setdefault(type_tag, []).append(object_id)
        self._location[object_id] = (pool, type_tag)

    def withdraw(self, object_id: ObjectId):
        """Removes an object from circulation entirely (deleted, moved, wrapped)."""
        location = self._location.pop(object_id, None)
        if location is not None:
            pool, type_tag = location
            self._order[pool][type_tag].remove(object_id)
        self._taken.discard(object_id)

    def most_recent(self, pool: Pool, type_tag: str) -> Optional[ObjectId]:
        for object_id in reversed(self._order.get(pool, {}).get(type_tag, [])):
            if object_id not in self._taken:
                return object_id
        return None

    def available(self, pool: Pool, type_tag: str) -> List[ObjectId]:
        """Available ids of a type, most recent last."""
        ids = self._order.get(pool, {}).get(type_tag, [])
        return [i for i in ids if i not in self._taken]

    def location_of(self, object_id: ObjectId) -> Optional[Tuple[Pool, str]]:
        return self._location.get(object_id)

    def take(self, pool: Pool, type_tag: str, object_id: ObjectId):
        """
        Marks an available object as taken. Raises ObjectNotFound otherwise.
        """
        location = self._location.get(object_id)
        if location != (pool, type_tag) or object_id in self._taken:
            raise ObjectNotFound(
                "object not available",
                object_id=object_id, pool=str(pool), type_tag=type_tag,
            )
        self._taken.add(object_id)

    def is_taken(self, pool: Pool, object_id: ObjectId) -> bool:
        location = self._location.get(object_id)
        return object_id in self._taken and location is not None and location[0] == pool

    def give_back(self, pool: Pool, object_id: ObjectId):
        """
        Ends a take. Raises CantReturnObject unless the id was taken from `pool`.
        """
        if not self.is_taken(pool, object_id):
            raise CantReturnObject(
                "object was not taken from this pool",
                object_id=object_id, pool=str(pool),
            )
        self._taken.discard(object_id)

    def taken(self) -> List[ObjectId]:
        return sorted(self._taken)

    def holds(self, object_id: ObjectId) -> bool:
        """True while the object is taken from any pool."""
        return object_id in self._taken
