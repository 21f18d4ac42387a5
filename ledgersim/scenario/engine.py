"""
ledgersim Scenario: Scenario Engine

Drives transaction boundaries over an injected LedgerRuntime.
Processes ONE transaction at a time, synchronously.

State machine: begin -> Open(0); next_tx: Open(n) -> Open(n+1);
end: Open(n) -> Ended (terminal).
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Type
from ..core.config import HarnessConfig
from ..core.errors import CantReturnObject, EmptyInventory, ScenarioEnded
from ..core.logger import bind_scenario, clear_scenario, configure_logging, get_logger
from ..core.types import Address, LedgerObject, ObjectId, TransactionEffects, normalize_address
from ..runtime.context import ExecutionContext, derive_tx_seed
from ..runtime.interface import LedgerRuntime, T
from ..runtime.inventory import Pool

logger = get_logger("ScenarioEngine")

class ScenarioState(str, Enum):
    OPEN = "OPEN"
    ENDED = "ENDED"

@dataclass
class Scenario:
    """
    Driver-held handle of an in-progress multi-transaction execution.
    """
    transaction_number: int
    ctx: ExecutionContext
    state: ScenarioState = ScenarioState.OPEN

    @property
    def sender(self) -> Address:
        return self.ctx.sender

    def is_open(self) -> bool:
        return self.state == ScenarioState.OPEN

class ScenarioEngine:
    """
    Scenario state machine and inventory protocol.

    Inventory operations are composed from the runtime primitives:
    take = most_recent_id + take_by_id, return = was_taken + return_object.
    """
    def __init__(self, runtime: LedgerRuntime, config: Optional[HarnessConfig] = None):
        self.runtime = runtime
        self.config = config or HarnessConfig()
        configure_logging(self.config.log_level)

    # --- Transaction boundaries ---

    def begin(self, sender: Address) -> Scenario:
        ctx = self.runtime.new_tx_context(
            normalize_address(sender),
            derive_tx_seed(0),
            self.config.initial_epoch,
            self.config.initial_epoch_timestamp_ms,
            0,
        )
        scenario = Scenario(transaction_number=0, ctx=ctx)
        bind_scenario(0, ctx.sender)
        logger.info("scenario_begin", epoch=ctx.epoch, epoch_timestamp_ms=ctx.epoch_timestamp_ms)
        return scenario

    def next_tx(self, scenario: Scenario, sender: Address) -> TransactionEffects:
        """
        Closes the open transaction and opens the next one for `sender`.
        Epoch and epoch timestamp carry forward.
        """
        self._require_open(scenario)
        return self._advance(scenario, sender, scenario.ctx.epoch, scenario.ctx.epoch_timestamp_ms)

    def next_epoch(self, scenario: Scenario, sender: Address) -> TransactionEffects:
        self._require_open(scenario)
        return self._advance(scenario, sender, scenario.ctx.epoch + 1, scenario.ctx.epoch_timestamp_ms)

    def later_epoch(self, scenario: Scenario, delta_ms: int, sender: Address) -> TransactionEffects:
        """
        Advances the epoch timestamp by `delta_ms`, then the epoch.
        """
        self._require_open(scenario)
        if delta_ms < 0:
            raise ValueError("delta_ms must be non-negative")
        return self._advance(
            scenario, sender, scenario.ctx.epoch + 1, scenario.ctx.epoch_timestamp_ms + delta_ms
        )

    def end(self, scenario: Scenario) -> TransactionEffects:
        """
        Finalizes the last transaction. Finalization errors propagate and
        leave the scenario open.
        """
        self._require_open(scenario)
        effects = self.runtime.end_transaction()
        scenario.state = ScenarioState.ENDED
        logger.info("scenario_end", transactions=scenario.transaction_number + 1)
        clear_scenario()
        return effects

    # --- Shared objects ---

    def take_shared(self, scenario: Scenario, type_: Type[T]) -> T:
        return self._take_most_recent(scenario, type_, Pool.shared())

    def take_shared_by_id(self, scenario: Scenario, type_: Type[T], object_id: ObjectId) -> T:
        self._require_open(scenario)
        return self.runtime.take_by_id(type_, object_id, Pool.shared())

    def return_shared(self, scenario: Scenario, obj: LedgerObject):
        self._return(scenario, obj, Pool.shared())

    def most_recent_id_shared(self, type_: Type[LedgerObject]) -> Optional[ObjectId]:
        return self.runtime.most_recent_id(type_, Pool.shared())

    def has_most_recent_shared(self, type_: Type[LedgerObject]) -> bool:
        return self.most_recent_id_shared(type_) is not None

    # --- Immutable objects ---

    def take_immutable(self, scenario: Scenario, type_: Type[T]) -> T:
        return self._take_most_recent(scenario, type_, Pool.immutable())

    def take_immutable_by_id(self, scenario: Scenario, type_: Type[T], object_id: ObjectId) -> T:
        self._require_open(scenario)
        return self.runtime.take_by_id(type_, object_id, Pool.immutable())

    def return_immutable(self, scenario: Scenario, obj: LedgerObject):
        self._return(scenario, obj, Pool.immutable())

    def most_recent_immutable_id(self, type_: Type[LedgerObject]) -> Optional[ObjectId]:
        return self.runtime.most_recent_id(type_, Pool.immutable())

    # --- Address-owned objects ---

    def take_from_sender(self, scenario: Scenario, type_: Type[T]) -> T:
        return self.take_from_address(scenario, type_, scenario.sender)

    def take_from_address(self, scenario: Scenario, type_: Type[T], address: Address) -> T:
        return self._take_most_recent(scenario, type_, Pool.of_address(normalize_address(address)))

    def take_from_address_by_id(
        self, scenario: Scenario, type_: Type[T], address: Address, object_id: ObjectId
    ) -> T:
        self._require_open(scenario)
        return self.runtime.take_by_id(type_, object_id, Pool.of_address(normalize_address(address)))

    def return_to_sender(self, scenario: Scenario, obj: LedgerObject):
        self.return_to_address(scenario, obj, scenario.sender)

    def return_to_address(self, scenario: Scenario, obj: LedgerObject, address: Address):
        self._return(scenario, obj, Pool.of_address(normalize_address(address)))

    def most_recent_id_for_address(self, type_: Type[LedgerObject], address: Address) -> Optional[ObjectId]:
        return self.runtime.most_recent_id(type_, Pool.of_address(normalize_address(address)))

    def has_most_recent_for_address(self, type_: Type[LedgerObject], address: Address) -> bool:
        return self.most_recent_id_for_address(type_, address) is not None

    # --- Internals ---

    def _advance(self, scenario: Scenario, sender: Address, epoch: int, epoch_timestamp_ms: int) -> TransactionEffects:
        """
        Finalizes the open transaction, then opens the next one.
        The scenario is left untouched if finalization raises.
        """
        sender = normalize_address(sender)
        effects = self.runtime.end_transaction()

        scenario.transaction_number += 1
        scenario.ctx = self.runtime.new_tx_context(
            sender,
            derive_tx_seed(scenario.transaction_number),
            epoch,
            epoch_timestamp_ms,
            0,
        )
        bind_scenario(scenario.transaction_number, scenario.ctx.sender)
        logger.info("tx_advanced", digest=scenario.ctx.digest, epoch=epoch)
        return effects

    def _take_most_recent(self, scenario: Scenario, type_: Type[T], pool: Pool) -> T:
        self._require_open(scenario)
        object_id = self.runtime.most_recent_id(type_, pool)
        if object_id is None:
            logger.error("inventory_empty", type_tag=type_.type_tag(), pool=str(pool))
            raise EmptyInventory("no available object of requested type", type_tag=type_.type_tag(), pool=str(pool))
        return self.runtime.take_by_id(type_, object_id, pool)

    def _return(self, scenario: Scenario, obj: LedgerObject, pool: Pool):
        self._require_open(scenario)
        if not self.runtime.was_taken(obj.id, pool):
            logger.error("cant_return_object", object_id=obj.id, pool=str(pool))
            raise CantReturnObject("object was not taken through the inventory", object_id=obj.id, pool=str(pool))
        self.runtime.return_object(obj, pool)

    def _require_open(self, scenario: Scenario):
        if not scenario.is_open():
            raise ScenarioEnded("scenario already ended", transaction_number=scenario.transaction_number)
