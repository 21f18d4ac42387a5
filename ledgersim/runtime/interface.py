from abc import ABC, abstractmethod
from typing import Optional, Type, TypeVar
from pydantic import BaseModel
from .context import ExecutionContext
from .inventory import Pool
from ..core.types import Address, LedgerObject, ObjectId, TransactionEffects

T = TypeVar("T", bound=LedgerObject)

class LedgerRuntime(ABC):
    """
    Abstract boundary to the ledger runtime.
    The scenario engine only talks to the ledger through these operations.
    """

    @abstractmethod
    def new_tx_context(
        self,
        sender: Address,
        tx_seed: bytes,
        epoch: int,
        epoch_timestamp_ms: int,
        ids_created: int,
    ) -> ExecutionContext:
        """
        Deterministic given identical inputs. Short seeds are zero-padded.
        """
        pass

    @abstractmethod
    def end_transaction(self) -> TransactionEffects:
        """
        Effects of everything mutated since the last call.
        Raises OwnershipViolation if the object model was violated.
        """
        pass

    @abstractmethod
    def take_by_id(self, type_: Type[T], object_id: ObjectId, pool: Pool) -> T:
        pass

    @abstractmethod
    def most_recent_id(self, type_: Type[LedgerObject], pool: Pool) -> Optional[ObjectId]:
        """
        Most recently published available id of `type_`, if any.
        """
        pass

    @abstractmethod
    def was_taken(self, object_id: ObjectId, pool: Pool) -> bool:
        pass

    @abstractmethod
    def return_object(self, obj: LedgerObject, pool: Pool):
        pass

    @abstractmethod
    def emit_event(self, payload: BaseModel):
        """
        Appends an observable event. Never fails.
        """
        pass
