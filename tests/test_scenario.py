"""
Unit tests for the Scenario Engine.
Tests: transaction boundaries, inventory protocol, ownership enforcement.
"""
import io
import json
import unittest
from contextlib import redirect_stdout
from ledgersim.core.errors import (
    CantReturnObject,
    EmptyInventory,
    InvalidSharedOrImmutableUsage,
    ObjectNotFound,
    OwnershipViolation,
    ScenarioEnded,
)
from ledgersim.core.config import HarnessConfig
from ledgersim.core.logger import configure_logging
from ledgersim.core.types import LedgerObject, normalize_address
from ledgersim.runtime.simulated import SimulatedRuntime
from ledgersim.scenario.engine import ScenarioEngine, ScenarioState

DEPLOYER = normalize_address("0xde")
ATTACKER = normalize_address("0xa7")

class Counter(LedgerObject):
    value: int = 0

class Ticket(LedgerObject):
    seat: int = 0

class Registry(LedgerObject):
    name: str = "main"

def create_counter(runtime, ctx) -> str:
    counter = Counter(id=ctx.fresh_id())
    runtime.share_object(counter)
    return counter.id

class ScenarioTestCase(unittest.TestCase):
    def setUp(self):
        self.runtime = SimulatedRuntime()
        self.engine = ScenarioEngine(self.runtime)

class TestTransactionBoundaries(ScenarioTestCase):
    def test_transaction_number_progression(self):
        scenario = self.engine.begin(DEPLOYER)
        self.assertEqual(scenario.transaction_number, 0)
        for expected in range(1, 4):
            self.engine.next_tx(scenario, ATTACKER)
            self.assertEqual(scenario.transaction_number, expected)
        self.engine.end(scenario)
        self.assertEqual(scenario.transaction_number, 3)
        self.assertEqual(scenario.state, ScenarioState.ENDED)

    def test_begin_then_end_is_empty(self):
        scenario = self.engine.begin(DEPLOYER)
        effects = self.engine.end(scenario)
        self.assertTrue(effects.is_empty())
        self.assertEqual(effects.event_count, 0)

    def test_next_tx_switches_sender_and_context(self):
        scenario = self.engine.begin(DEPLOYER)
        first_digest = scenario.ctx.digest
        first_id = scenario.ctx.fresh_id()
        self.engine.next_tx(scenario, ATTACKER)
        self.assertEqual(scenario.sender, ATTACKER)
        self.assertNotEqual(scenario.ctx.digest, first_digest)
        self.assertEqual(scenario.ctx.ids_created, 0)
        self.assertNotEqual(scenario.ctx.fresh_id(), first_id)

    def test_epoch_carried_forward(self):
        engine = ScenarioEngine(self.runtime, HarnessConfig(initial_epoch=7, initial_epoch_timestamp_ms=1000))
        scenario = engine.begin(DEPLOYER)
        engine.next_tx(scenario, ATTACKER)
        self.assertEqual(scenario.ctx.epoch, 7)
        self.assertEqual(scenario.ctx.epoch_timestamp_ms, 1000)

    def test_next_epoch_and_later_epoch(self):
        scenario = self.engine.begin(DEPLOYER)
        self.engine.next_epoch(scenario, DEPLOYER)
        self.assertEqual(scenario.ctx.epoch, 1)
        self.assertEqual(scenario.transaction_number, 1)
        self.engine.later_epoch(scenario, 500, ATTACKER)
        self.assertEqual(scenario.ctx.epoch, 2)
        self.assertEqual(scenario.ctx.epoch_timestamp_ms, 500)
        self.assertEqual(scenario.transaction_number, 2)

    def test_failed_epoch_advance_leaves_scenario_unchanged(self):
        scenario = self.engine.begin(DEPLOYER)
        create_counter(self.runtime, scenario.ctx)
        self.engine.next_tx(scenario, ATTACKER)
        counter = self.engine.take_shared(scenario, Counter)
        self.runtime.delete(counter)
        ctx_before = scenario.ctx

        with self.assertRaises(OwnershipViolation):
            self.engine.next_epoch(scenario, DEPLOYER)
        with self.assertRaises(OwnershipViolation):
            self.engine.later_epoch(scenario, 250, DEPLOYER)
        self.assertIs(scenario.ctx, ctx_before)
        self.assertEqual(scenario.ctx.epoch, 0)
        self.assertEqual(scenario.ctx.epoch_timestamp_ms, 0)
        self.assertEqual(scenario.transaction_number, 1)
        self.assertEqual(scenario.sender, ATTACKER)

    def test_ended_scenario_rejects_operations(self):
        scenario = self.engine.begin(DEPLOYER)
        self.engine.end(scenario)
        with self.assertRaises(ScenarioEnded):
            self.engine.next_tx(scenario, ATTACKER)
        with self.assertRaises(ScenarioEnded):
            self.engine.end(scenario)
        with self.assertRaises(ScenarioEnded):
            self.engine.take_shared(scenario, Counter)

    def test_effects_of_closed_transaction(self):
        scenario = self.engine.begin(DEPLOYER)
        counter_id = create_counter(self.runtime, scenario.ctx)
        effects = self.engine.next_tx(scenario, ATTACKER)
        self.assertIn(counter_id, effects.created)
        self.assertIn(counter_id, effects.shared)
        self.assertEqual(effects.written, frozenset())

class TestSharedInventory(ScenarioTestCase):
    def test_take_shared_with_nothing_shared(self):
        scenario = self.engine.begin(DEPLOYER)
        with self.assertRaises(EmptyInventory) as ctx:
            self.engine.take_shared(scenario, Counter)
        self.assertEqual(ctx.exception.code, 3)

    def test_shared_object_not_visible_in_creating_transaction(self):
        scenario = self.engine.begin(DEPLOYER)
        create_counter(self.runtime, scenario.ctx)
        self.assertFalse(self.engine.has_most_recent_shared(Counter))
        self.engine.next_tx(scenario, DEPLOYER)
        self.assertTrue(self.engine.has_most_recent_shared(Counter))

    def test_return_untaken_object(self):
        scenario = self.engine.begin(DEPLOYER)
        create_counter(self.runtime, scenario.ctx)
        self.engine.next_tx(scenario, ATTACKER)
        forged = Counter(id=scenario.ctx.fresh_id())
        with self.assertRaises(CantReturnObject) as ctx:
            self.engine.return_shared(scenario, forged)
        self.assertEqual(ctx.exception.code, 2)

    def test_take_return_round_trip(self):
        scenario = self.engine.begin(DEPLOYER)
        counter_id = create_counter(self.runtime, scenario.ctx)
        self.engine.next_tx(scenario, ATTACKER)
        counter = self.engine.take_shared(scenario, Counter)
        self.engine.return_shared(scenario, counter)
        again = self.engine.take_shared(scenario, Counter)
        self.assertEqual(again.id, counter_id)

    def test_second_take_before_return_fails(self):
        scenario = self.engine.begin(DEPLOYER)
        counter_id = create_counter(self.runtime, scenario.ctx)
        self.engine.next_tx(scenario, ATTACKER)
        self.engine.take_shared(scenario, Counter)
        with self.assertRaises(EmptyInventory):
            self.engine.take_shared(scenario, Counter)
        with self.assertRaises(ObjectNotFound):
            self.engine.take_shared_by_id(scenario, Counter, counter_id)

    def test_double_return_fails(self):
        scenario = self.engine.begin(DEPLOYER)
        create_counter(self.runtime, scenario.ctx)
        self.engine.next_tx(scenario, ATTACKER)
        counter = self.engine.take_shared(scenario, Counter)
        self.engine.return_shared(scenario, counter)
        with self.assertRaises(CantReturnObject):
            self.engine.return_shared(scenario, counter)

    def test_most_recent_wins_within_one_transaction(self):
        # Both shared in the same transaction: share order decides.
        scenario = self.engine.begin(DEPLOYER)
        first = create_counter(self.runtime, scenario.ctx)
        second = create_counter(self.runtime, scenario.ctx)
        self.engine.next_tx(scenario, ATTACKER)
        self.assertEqual(self.engine.most_recent_id_shared(Counter), second)
        taken_second = self.engine.take_shared(scenario, Counter)
        taken_first = self.engine.take_shared(scenario, Counter)
        self.assertEqual((taken_second.id, taken_first.id), (second, first))
        with self.assertRaises(EmptyInventory):
            self.engine.take_shared(scenario, Counter)

    def test_most_recent_wins_across_transactions(self):
        scenario = self.engine.begin(DEPLOYER)
        older = create_counter(self.runtime, scenario.ctx)
        self.engine.next_tx(scenario, DEPLOYER)
        newer = create_counter(self.runtime, scenario.ctx)
        self.engine.next_tx(scenario, ATTACKER)
        self.assertEqual(self.engine.take_shared(scenario, Counter).id, newer)
        self.assertEqual(self.engine.take_shared(scenario, Counter).id, older)

    def test_take_by_id_ignores_recency(self):
        scenario = self.engine.begin(DEPLOYER)
        older = create_counter(self.runtime, scenario.ctx)
        newer = create_counter(self.runtime, scenario.ctx)
        self.engine.next_tx(scenario, ATTACKER)
        taken = self.engine.take_shared_by_id(scenario, Counter, older)
        self.assertEqual(taken.id, older)
        self.assertEqual(self.engine.most_recent_id_shared(Counter), newer)
        # Returning a middle object keeps the original ordering
        self.engine.return_shared(scenario, taken)
        self.assertEqual(self.engine.most_recent_id_shared(Counter), newer)

    def test_take_by_id_with_wrong_type(self):
        scenario = self.engine.begin(DEPLOYER)
        counter_id = create_counter(self.runtime, scenario.ctx)
        self.engine.next_tx(scenario, ATTACKER)
        with self.assertRaises(ObjectNotFound) as ctx:
            self.engine.take_shared_by_id(scenario, Registry, counter_id)
        self.assertEqual(ctx.exception.code, 4)

    def test_counter_scenario(self):
        scenario = self.engine.begin(DEPLOYER)
        counter_id = create_counter(self.runtime, scenario.ctx)
        self.engine.next_tx(scenario, ATTACKER)

        counter = self.engine.take_shared(scenario, Counter)
        self.assertEqual(counter.value, 0)
        counter.value += 1
        self.engine.return_shared(scenario, counter)
        effects = self.engine.end(scenario)

        self.assertIn(counter_id, effects.written)
        self.assertEqual(effects.deleted, frozenset())
        self.assertEqual(self.runtime.events.violations(), [])
        self.assertEqual(self.runtime.get_object(counter_id).value, 1)

    def test_stale_handle_does_not_change_ledger(self):
        scenario = self.engine.begin(DEPLOYER)
        counter_id = create_counter(self.runtime, scenario.ctx)
        self.engine.next_tx(scenario, ATTACKER)
        counter = self.engine.take_shared(scenario, Counter)
        self.engine.return_shared(scenario, counter)
        self.engine.next_tx(scenario, DEPLOYER)

        counter.value = 99
        self.runtime.get_object(counter_id).value = 98
        effects = self.engine.end(scenario)
        self.assertEqual(effects.written, frozenset())
        self.assertEqual(self.runtime.get_object(counter_id).value, 0)

class TestOwnedAndImmutableInventory(ScenarioTestCase):
    def test_address_owned_take_and_return(self):
        scenario = self.engine.begin(DEPLOYER)
        ticket = Ticket(id=scenario.ctx.fresh_id(), seat=4)
        self.runtime.transfer(ticket, ATTACKER)
        effects = self.engine.next_tx(scenario, ATTACKER)
        self.assertEqual(effects.transferred_to_account, {ticket.id: ATTACKER})

        self.assertFalse(self.engine.has_most_recent_for_address(Ticket, DEPLOYER))
        self.assertTrue(self.engine.has_most_recent_for_address(Ticket, ATTACKER))
        taken = self.engine.take_from_sender(scenario, Ticket)
        self.assertEqual(taken.seat, 4)
        with self.assertRaises(CantReturnObject):
            self.engine.return_shared(scenario, taken)
        self.engine.return_to_sender(scenario, taken)
        self.assertEqual(self.engine.most_recent_id_for_address(Ticket, ATTACKER), ticket.id)

    def test_take_from_other_address(self):
        scenario = self.engine.begin(DEPLOYER)
        ticket = Ticket(id=scenario.ctx.fresh_id())
        self.runtime.transfer(ticket, DEPLOYER)
        self.engine.next_tx(scenario, ATTACKER)
        with self.assertRaises(EmptyInventory):
            self.engine.take_from_sender(scenario, Ticket)
        taken = self.engine.take_from_address(scenario, Ticket, DEPLOYER)
        self.engine.return_to_address(scenario, taken, DEPLOYER)

    def test_owned_object_can_be_deleted(self):
        scenario = self.engine.begin(DEPLOYER)
        ticket = Ticket(id=scenario.ctx.fresh_id())
        self.runtime.transfer(ticket, DEPLOYER)
        self.engine.next_tx(scenario, DEPLOYER)
        taken = self.engine.take_from_sender(scenario, Ticket)
        self.runtime.delete(taken)
        effects = self.engine.end(scenario)
        self.assertEqual(effects.deleted, frozenset({ticket.id}))
        self.assertIsNone(self.runtime.get_object(ticket.id))

    def test_unreturned_owned_object_is_reported_deleted(self):
        scenario = self.engine.begin(DEPLOYER)
        ticket = Ticket(id=scenario.ctx.fresh_id())
        self.runtime.transfer(ticket, DEPLOYER)
        self.engine.next_tx(scenario, DEPLOYER)
        self.engine.take_from_sender(scenario, Ticket)
        effects = self.engine.end(scenario)
        self.assertEqual(effects.deleted, frozenset({ticket.id}))
        self.assertIsNone(self.runtime.get_object(ticket.id))
        self.assertFalse(self.engine.has_most_recent_for_address(Ticket, DEPLOYER))

    def test_take_from_address_by_id(self):
        scenario = self.engine.begin(DEPLOYER)
        first = Ticket(id=scenario.ctx.fresh_id(), seat=1)
        second = Ticket(id=scenario.ctx.fresh_id(), seat=2)
        self.runtime.transfer(first, DEPLOYER)
        self.runtime.transfer(second, DEPLOYER)
        self.engine.next_tx(scenario, ATTACKER)

        with self.assertRaises(ObjectNotFound):
            self.engine.take_from_address_by_id(scenario, Ticket, ATTACKER, first.id)
        taken = self.engine.take_from_address_by_id(scenario, Ticket, DEPLOYER, first.id)
        self.assertEqual(taken.seat, 1)
        self.assertEqual(self.engine.most_recent_id_for_address(Ticket, DEPLOYER), second.id)
        self.engine.return_to_address(scenario, taken, DEPLOYER)

    def test_take_immutable_by_id(self):
        scenario = self.engine.begin(DEPLOYER)
        registry = Registry(id=scenario.ctx.fresh_id(), name="frozen")
        self.runtime.freeze_object(registry)
        shared_id = create_counter(self.runtime, scenario.ctx)
        self.engine.next_tx(scenario, ATTACKER)

        with self.assertRaises(ObjectNotFound):
            self.engine.take_immutable_by_id(scenario, Counter, shared_id)
        taken = self.engine.take_immutable_by_id(scenario, Registry, registry.id)
        self.assertEqual(taken.name, "frozen")
        self.engine.return_immutable(scenario, taken)
        self.assertEqual(self.engine.most_recent_immutable_id(Registry), registry.id)

    def test_immutable_objects(self):
        scenario = self.engine.begin(DEPLOYER)
        registry = Registry(id=scenario.ctx.fresh_id())
        self.runtime.freeze_object(registry)
        effects = self.engine.next_tx(scenario, ATTACKER)
        self.assertIn(registry.id, effects.frozen)

        self.assertEqual(self.engine.most_recent_immutable_id(Registry), registry.id)
        taken = self.engine.take_immutable(scenario, Registry)
        with self.assertRaises(InvalidSharedOrImmutableUsage):
            self.runtime.write(taken)
        self.engine.return_immutable(scenario, taken)
        effects = self.engine.end(scenario)
        self.assertNotIn(registry.id, effects.written)

class TestOwnershipEnforcement(ScenarioTestCase):
    def _shared_counter_taken(self):
        scenario = self.engine.begin(DEPLOYER)
        create_counter(self.runtime, scenario.ctx)
        self.engine.next_tx(scenario, ATTACKER)
        return scenario, self.engine.take_shared(scenario, Counter)

    def test_deleting_shared_object_fails_at_end(self):
        scenario, counter = self._shared_counter_taken()
        self.runtime.delete(counter)
        with self.assertRaises(OwnershipViolation) as ctx:
            self.engine.end(scenario)
        self.assertEqual(ctx.exception.context["violations"], {counter.id: "deleted"})
        self.assertEqual(scenario.state, ScenarioState.OPEN)

    def test_transferring_shared_object_fails(self):
        scenario, counter = self._shared_counter_taken()
        self.runtime.transfer(counter, ATTACKER)
        with self.assertRaises(OwnershipViolation) as ctx:
            self.engine.next_tx(scenario, DEPLOYER)
        self.assertEqual(ctx.exception.context["violations"], {counter.id: "transferred"})
        self.assertEqual(scenario.transaction_number, 1)

    def test_unreturned_shared_object_is_wrapped(self):
        scenario, counter = self._shared_counter_taken()
        with self.assertRaises(OwnershipViolation) as ctx:
            self.engine.end(scenario)
        self.assertEqual(ctx.exception.context["violations"], {counter.id: "wrapped"})

    def test_sharing_existing_object_fails_immediately(self):
        scenario = self.engine.begin(DEPLOYER)
        ticket = Ticket(id=scenario.ctx.fresh_id())
        self.runtime.transfer(ticket, DEPLOYER)
        self.engine.next_tx(scenario, DEPLOYER)
        taken = self.engine.take_from_sender(scenario, Ticket)
        with self.assertRaises(OwnershipViolation):
            self.runtime.share_object(taken)

class TestEngineLogging(ScenarioTestCase):
    def tearDown(self):
        configure_logging("INFO")

    def test_log_level_from_config(self):
        out = io.StringIO()
        with redirect_stdout(out):
            engine = ScenarioEngine(self.runtime, HarnessConfig(log_level="warning"))
            scenario = engine.begin(DEPLOYER)
            with self.assertRaises(EmptyInventory):
                engine.take_shared(scenario, Counter)

        lines = [json.loads(line) for line in out.getvalue().splitlines()]
        self.assertEqual([line["event"] for line in lines], ["inventory_empty"])
        self.assertEqual(lines[0]["level"], "error")
        self.assertEqual(lines[0]["tx"], 0)
        self.assertEqual(lines[0]["sender"], DEPLOYER)

if __name__ == '__main__':
    unittest.main()
