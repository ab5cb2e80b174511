#!/usr/bin/env python3
"""
Unit tests for the AllocationEngine aggregate
Covers entry, exit, promotion, cancellation, statistics and the
invariants that must hold after every operation.
"""

import random
import unittest
import sys
from decimal import Decimal
from pathlib import Path

# Add the src directory to the Python path
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from parkline.domain.engine import AllocationEngine
from parkline.domain.exceptions import (
    AlreadyParked, AlreadyWaiting, InvalidConfiguration, InvalidRate, NotFound, ParkingError
)
from parkline.domain.models import (
    Assigned, Money, Ticket, VehicleType, Waitlisted,
    LotInitializedEvent, RateChangedEvent, VehicleExitedEvent, VehicleParkedEvent,
    VehicleWaitlistedEvent, WaitCancelledEvent, WaitlistPromotedEvent
)


CAR, BIKE, TRUCK = VehicleType.CAR, VehicleType.BIKE, VehicleType.TRUCK


class EngineTestCase(unittest.TestCase):
    """Shared helpers for engine tests"""

    def make_engine(self, counts=None, **kwargs):
        engine = AllocationEngine(**kwargs)
        engine.initialize(counts if counts is not None else {CAR: 2, BIKE: 1, TRUCK: 1})
        engine.clear_events()
        return engine

    def assert_invariants(self, engine):
        """Free and occupied slots partition the lot; registry matches tickets"""
        pool = engine._pool
        free = set()
        for vt in VehicleType:
            free.update(pool.free_indices(vt))
        occupied = {slot.index for slot in pool.occupied_slots()}
        self.assertFalse(free & occupied)
        self.assertEqual(free | occupied, set(range(pool.total)))

        tickets = engine.stats.occupied_slots()
        self.assertEqual(len(engine._registry), len(tickets))
        for ticket in tickets:
            self.assertEqual(engine._registry.lookup(ticket.external_id), ticket.slot_index)
            self.assertFalse(engine.is_waiting(ticket.external_id))


class TestEntry(EngineTestCase):

    def test_assigns_lowest_free_slot_of_type(self):
        engine = self.make_engine()
        first = engine.enter("c1", CAR)
        second = engine.enter("c2", CAR)
        bike = engine.enter("b1", BIKE)

        self.assertEqual(first, Assigned("T1", 0, CAR, "c1"))
        self.assertEqual(second.slot_index, 1)
        self.assertEqual(bike.slot_index, 2)
        self.assertEqual(bike.ticket_id, "T3")
        self.assertEqual(engine.served_total, 3)
        self.assert_invariants(engine)

    def test_full_category_waitlists(self):
        engine = self.make_engine({CAR: 1})
        engine.enter("c1", CAR)
        outcome = engine.enter("c2", CAR)
        self.assertIsInstance(outcome, Waitlisted)
        self.assertEqual(outcome.position, 1)
        self.assertEqual(engine.enter("c3", CAR).position, 2)
        # categories do not share queues
        self.assertEqual(engine.enter("b1", BIKE).position, 1)
        self.assertEqual(engine.served_total, 1)
        self.assert_invariants(engine)

    def test_already_parked_changes_nothing(self):
        engine = self.make_engine()
        engine.enter("c1", CAR)
        before = engine.snapshot()

        with self.assertRaises(AlreadyParked) as ctx:
            engine.enter("c1", BIKE)
        self.assertEqual(ctx.exception.slot_index, 0)
        self.assertEqual(ctx.exception.code, "ALREADY_PARKED")

        after = engine.snapshot()
        self.assertEqual(after.occupied_slots, before.occupied_slots)
        self.assertEqual(after.free_by_category, before.free_by_category)
        self.assertEqual(after.served_total, before.served_total)
        # no ticket number was consumed
        self.assertEqual(engine.enter("c2", CAR).ticket_id, "T2")

    def test_already_waiting_rejected_by_default(self):
        engine = self.make_engine({CAR: 1, BIKE: 0})
        engine.enter("c1", CAR)
        engine.enter("x", CAR)
        with self.assertRaises(AlreadyWaiting):
            engine.enter("x", BIKE)
        self.assertEqual(len(engine.snapshot().waitlist), 1)

    def test_duplicate_waitlisting_when_allowed(self):
        engine = self.make_engine({CAR: 1, BIKE: 1}, allow_duplicate_waitlist=True)
        engine.enter("c1", CAR)
        engine.enter("b1", BIKE)
        engine.enter("x", CAR)
        engine.enter("x", BIKE)
        self.assertEqual(len(engine.snapshot().waitlist), 2)

        promoted = engine.exit("c1", 30)
        self.assertEqual(promoted.promoted_waiter_id, "x")

        # x's bike entry went away when x was parked
        self.assertFalse(engine.is_waiting("x"))
        outcome = engine.exit("b1", 30)
        self.assertFalse(outcome.promoted)
        self.assertEqual(engine.stats.free_by_category()[BIKE], 1)
        self.assertEqual(engine.snapshot().waitlist, [])
        self.assert_invariants(engine)

    def test_direct_entry_clears_other_waitlist_entries(self):
        """A waiting vehicle that parks under another type stops waiting"""
        engine = self.make_engine({CAR: 1, BIKE: 1}, allow_duplicate_waitlist=True)
        engine.enter("c1", CAR)
        engine.enter("x", CAR)

        outcome = engine.enter("x", BIKE)
        self.assertIsInstance(outcome, Assigned)
        self.assertFalse(engine.is_waiting("x"))
        self.assert_invariants(engine)

        # the car slot is not handed to x on release
        released = engine.exit("c1", 10)
        self.assertFalse(released.promoted)
        self.assertEqual(engine._pool.free_indices(CAR), [0])
        self.assert_invariants(engine)

    def test_departed_vehicle_is_never_promoted(self):
        engine = self.make_engine({CAR: 1, BIKE: 1}, allow_duplicate_waitlist=True)
        engine.enter("c1", CAR)
        engine.enter("b1", BIKE)
        engine.enter("x", CAR)
        engine.enter("x", BIKE)

        self.assertEqual(engine.exit("c1", 10).promoted_waiter_id, "x")
        engine.exit("x", 10)
        outcome = engine.exit("b1", 10)

        self.assertFalse(outcome.promoted)
        with self.assertRaises(NotFound):
            engine.lookup("x")
        self.assertEqual(engine.served_total, 3)
        self.assert_invariants(engine)

    def test_random_workload_with_duplicates(self):
        rng = random.Random(11)
        engine = self.make_engine({CAR: 1, BIKE: 1, TRUCK: 1}, allow_duplicate_waitlist=True)
        ids = [f"v{i}" for i in range(6)]
        for _ in range(300):
            vid = rng.choice(ids)
            try:
                if rng.random() < 0.6:
                    engine.enter(vid, rng.choice(list(VehicleType)))
                else:
                    engine.exit(vid, rng.randint(0, 200))
            except ParkingError:
                pass
            self.assert_invariants(engine)

    def test_invalid_input(self):
        engine = self.make_engine()
        for bad_id in ("", "   ", None):
            with self.assertRaises(ValueError):
                engine.enter(bad_id, CAR)
        with self.assertRaises(ValueError):
            engine.enter("c1", "car")

    def test_ids_are_trimmed(self):
        engine = self.make_engine()
        engine.enter("  KA-01 ", CAR)
        self.assertEqual(engine.lookup("KA-01").slot_index, 0)

    def test_empty_lot_waitlists_everything(self):
        engine = self.make_engine({})
        for vt in VehicleType:
            self.assertIsInstance(engine.enter(f"v-{vt.value}", vt), Waitlisted)
        self.assertEqual(engine.served_total, 0)


class TestExit(EngineTestCase):

    def test_end_to_end_promotion(self):
        """One car slot: the waiting car inherits the slot on exit"""
        engine = self.make_engine({CAR: 1})
        self.assertEqual(engine.enter("v1", CAR), Assigned("T1", 0, CAR, "v1"))
        self.assertEqual(engine.enter("v2", CAR), Waitlisted(1, CAR, "v2"))

        outcome = engine.exit("v1", 90)
        self.assertEqual(outcome.billed_hours, 2)
        self.assertEqual(outcome.fee, Money(Decimal('100')))
        self.assertEqual(outcome.ticket_id, "T1")
        self.assertEqual(outcome.promoted_waiter_id, "v2")
        self.assertEqual(outcome.promoted_ticket_id, "T2")

        snapshot = engine.snapshot()
        self.assertEqual(snapshot.occupied_slots, [Ticket("T2", "v2", CAR, 0)])
        self.assertEqual(snapshot.waitlist, [])
        self.assertEqual(snapshot.served_total, 2)
        self.assertEqual(snapshot.earnings_total, Money(Decimal('100')))
        self.assertEqual(snapshot.free_by_category[CAR], 0)
        self.assert_invariants(engine)

    def test_exit_returns_slot_to_pool_without_waiters(self):
        engine = self.make_engine()
        engine.enter("c1", CAR)
        engine.enter("c2", CAR)
        engine.exit("c1", 10)
        self.assertEqual(engine._pool.free_indices(CAR), [0])
        # the freed lower slot is reused first
        self.assertEqual(engine.enter("c3", CAR).slot_index, 0)
        self.assert_invariants(engine)

    def test_promotion_is_fifo_and_per_category(self):
        engine = self.make_engine({CAR: 1, BIKE: 1})
        engine.enter("c1", CAR)
        engine.enter("b1", BIKE)
        engine.enter("b2", BIKE)
        engine.enter("c2", CAR)
        engine.enter("c3", CAR)

        outcome = engine.exit("c1", 5)
        self.assertEqual(outcome.promoted_waiter_id, "c2")
        self.assertEqual([e.external_id for e in engine.snapshot().waitlist], ["b2", "c3"])

        outcome = engine.exit("b1", 5)
        self.assertEqual(outcome.promoted_waiter_id, "b2")
        self.assertEqual(engine.lookup("b2").slot_index, 1)
        self.assert_invariants(engine)

    def test_exit_unknown_changes_nothing(self):
        engine = self.make_engine()
        engine.enter("c1", CAR)
        engine.clear_events()
        with self.assertRaises(NotFound):
            engine.exit("ghost", 60)
        self.assertEqual(engine.earnings_total, Money.zero())
        self.assertEqual(engine.served_total, 1)
        self.assertFalse(engine.has_changes)

    def test_waiting_vehicle_cannot_exit(self):
        engine = self.make_engine({CAR: 1})
        engine.enter("c1", CAR)
        engine.enter("c2", CAR)
        with self.assertRaises(NotFound):
            engine.exit("c2", 60)
        self.assertTrue(engine.is_waiting("c2"))

    def test_billing_edges(self):
        engine = self.make_engine({TRUCK: 1})
        for minutes, expected in ((0, 100), (-30, 100), (60, 100), (61, 200), (120, 200)):
            with self.subTest(minutes=minutes):
                engine.enter("t1", TRUCK)
                outcome = engine.exit("t1", minutes)
                self.assertEqual(outcome.fee, Money(Decimal(expected)))
                self.assertGreaterEqual(outcome.duration_minutes, 0)
        self.assertEqual(engine.earnings_total, Money(Decimal('700')))

    def test_rate_change_applies_to_later_exits(self):
        engine = self.make_engine()
        engine.enter("c1", CAR)
        engine.set_rate(CAR, "75")
        self.assertEqual(engine.exit("c1", 30).fee, Money(Decimal('75')))
        with self.assertRaises(InvalidRate):
            engine.set_rate(CAR, -1)


class TestCancelAndLifecycle(EngineTestCase):

    def test_cancel_wait(self):
        engine = self.make_engine({CAR: 1})
        engine.enter("c1", CAR)
        for name in ("c2", "c3", "c4"):
            engine.enter(name, CAR)

        entry = engine.cancel_wait("c3")
        self.assertEqual(entry.vehicle_type, CAR)
        self.assertEqual([e.external_id for e in engine.snapshot().waitlist], ["c2", "c4"])
        with self.assertRaises(NotFound):
            engine.cancel_wait("c3")
        with self.assertRaises(NotFound):
            engine.cancel_wait("c1")

        # a cancelled id may queue again, at the back
        self.assertEqual(engine.enter("c3", CAR).position, 3)

    def test_initialize_resets_everything_but_rates(self):
        engine = self.make_engine({CAR: 1})
        engine.set_rate(BIKE, 30)
        engine.enter("c1", CAR)
        engine.enter("c2", CAR)
        engine.exit("c1", 60)

        engine.initialize({BIKE: 2})
        snapshot = engine.snapshot()
        self.assertEqual(snapshot.total_slots, 2)
        self.assertEqual(snapshot.occupied_slots, [])
        self.assertEqual(snapshot.waitlist, [])
        self.assertEqual(snapshot.served_total, 0)
        self.assertEqual(snapshot.earnings_total, Money.zero())
        self.assertEqual(snapshot.rates[BIKE], Money(Decimal('30')))
        with self.assertRaises(NotFound):
            engine.lookup("c2")
        # ticket numbering restarts
        self.assertEqual(engine.enter("b1", BIKE).ticket_id, "T1")

    def test_invalid_initialize_keeps_state(self):
        engine = self.make_engine()
        engine.enter("c1", CAR)
        with self.assertRaises(InvalidConfiguration):
            engine.initialize({CAR: -3})
        self.assertEqual(engine.lookup("c1").slot_index, 0)
        self.assertEqual(engine.served_total, 1)

    def test_domain_events(self):
        engine = AllocationEngine()
        engine.initialize({CAR: 1})
        engine.set_rate(CAR, 60)
        engine.enter("c1", CAR)
        engine.enter("c2", CAR)
        engine.enter("c3", CAR)
        engine.cancel_wait("c3")
        engine.exit("c1", 10)

        events = engine.clear_events()
        self.assertEqual(
            [type(e) for e in events],
            [LotInitializedEvent, RateChangedEvent, VehicleParkedEvent,
             VehicleWaitlistedEvent, VehicleWaitlistedEvent, WaitCancelledEvent,
             VehicleExitedEvent, WaitlistPromotedEvent]
        )
        exited = events[6]
        self.assertEqual(exited.payload()["fee"], {"amount": "60", "currency": "INR"})
        self.assertEqual(events[0].payload()["counts"], {"car": 1, "bike": 0, "truck": 0})
        self.assertFalse(engine.has_changes)

    def test_version_increases_on_change(self):
        engine = self.make_engine()
        version = engine.version
        engine.enter("c1", CAR)
        self.assertGreater(engine.version, version)

        version = engine.version
        engine.set_rate(CAR, 70)
        self.assertEqual(engine.version, version + 1)
        # a rejected rate leaves the version alone
        with self.assertRaises(InvalidRate):
            engine.set_rate(CAR, -1)
        self.assertEqual(engine.version, version + 1)


class TestStatistics(EngineTestCase):

    def test_occupancy_and_categories(self):
        engine = self.make_engine({CAR: 2, BIKE: 1})
        self.assertEqual(engine.stats.occupancy_percent(), Decimal('0.00'))
        engine.enter("c1", CAR)
        self.assertEqual(engine.stats.occupancy_percent(), Decimal('33.33'))
        engine.enter("b1", BIKE)
        engine.enter("b2", BIKE)

        by_type = {s.vehicle_type: s for s in engine.stats.category_stats()}
        self.assertEqual((by_type[CAR].capacity, by_type[CAR].free, by_type[CAR].occupied), (2, 1, 1))
        self.assertEqual((by_type[BIKE].free, by_type[BIKE].waiting), (0, 1))
        self.assertEqual(by_type[TRUCK].capacity, 0)

        snapshot = engine.snapshot()
        self.assertEqual(snapshot.by_category, engine.stats.category_stats())
        self.assertEqual(sum(s.occupied for s in snapshot.by_category), snapshot.occupied_total)
        self.assertEqual(sum(s.free for s in snapshot.by_category), snapshot.free_total)

    def test_empty_lot_occupancy_is_zero(self):
        engine = self.make_engine({})
        self.assertEqual(engine.stats.occupancy_percent(), Decimal('0.00'))
        self.assertEqual(engine.snapshot().free_total, 0)

    def test_layout(self):
        engine = self.make_engine({CAR: 1, TRUCK: 1})
        engine.enter("t1", TRUCK)
        rows = engine.stats.layout()
        self.assertEqual([(r.slot_number, r.vehicle_type, r.is_occupied) for r in rows],
                         [(1, CAR, False), (2, TRUCK, True)])
        self.assertEqual(rows[1].ticket.external_id, "t1")

    def test_snapshot_lists_are_ordered(self):
        engine = self.make_engine({CAR: 3})
        for name in ("a", "b", "c"):
            engine.enter(name, CAR)
        engine.exit("b", 1)
        engine.enter("d", CAR)
        self.assertEqual(
            [(t.slot_index, t.external_id) for t in engine.snapshot().occupied_slots],
            [(0, "a"), (1, "d"), (2, "c")]
        )


class TestRandomizedInvariants(EngineTestCase):
    """Drive a seeded random workload and check invariants after each step"""

    def test_random_workload(self):
        rng = random.Random(7)
        engine = self.make_engine({CAR: 3, BIKE: 2, TRUCK: 1})
        ids = [f"v{i}" for i in range(12)]
        kinds = {vid: rng.choice(list(VehicleType)) for vid in ids}
        served = 0

        for _ in range(400):
            vid = rng.choice(ids)
            action = rng.random()
            try:
                if action < 0.5:
                    outcome = engine.enter(vid, kinds[vid])
                    if isinstance(outcome, Assigned):
                        served += 1
                elif action < 0.9:
                    outcome = engine.exit(vid, rng.randint(-10, 300))
                    if outcome.promoted:
                        served += 1
                else:
                    engine.cancel_wait(vid)
            except ParkingError:
                pass
            self.assert_invariants(engine)
            self.assertEqual(engine.served_total, served)

            # a category with free slots never has waiters
            for stats in engine.stats.category_stats():
                if stats.free > 0:
                    self.assertEqual(stats.waiting, 0)


if __name__ == "__main__":
    unittest.main()
