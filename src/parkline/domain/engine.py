# File: src/parkline/domain/engine.py
"""
Allocation Engine - aggregate root of the parking lot

Orchestrates SlotPool, Registry, Waitlist and BillingPolicy for the two
use cases of the lot:

    enter(id, type)      Absent -> Occupying   (a slot was free)
                         Absent -> Waiting     (no slot of that type free)
    exit(id, minutes)    Occupying -> Absent   (and, if someone of the same
                         type is waiting, Waiting -> Occupying for them)

On exit the freed slot is offered to the front of its category's waitlist
before it goes back to the free pool, so the longest waiting vehicle of
that category always gets it first.

All public mutating operations hold a single lock: pool, registry,
waitlist and counters change together or not at all.
"""

from typing import List, Mapping, Optional
import logging
import threading
import uuid

from .billing import BillingPolicy
from .exceptions import AlreadyParked, AlreadyWaiting, NoFreeSlot
from .models import (
    Assigned, DomainEvent, EntryOutcome, ExitOutcome, Money, Ticket,
    VehicleType, WaitEntry, Waitlisted,
    LotInitializedEvent, RateChangedEvent, VehicleParkedEvent,
    VehicleWaitlistedEvent, VehicleExitedEvent, WaitlistPromotedEvent,
    WaitCancelledEvent
)
from .registry import Registry
from .slot_pool import SlotPool
from .stats import LotCounters, Snapshot, StatsReporter
from .waitlist import Waitlist


# ============================================================================
# BASE AGGREGATE ROOT
# ============================================================================

class AggregateRoot:
    """
    Base class for aggregate roots
    Provides identity, domain event collection and versioning
    """

    def __init__(self, id: Optional[str] = None):
        self._id = id or str(uuid.uuid4())
        self._version: int = 1
        self._changes: List[DomainEvent] = []
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def id(self) -> str:
        return self._id

    @property
    def version(self) -> int:
        """Get current aggregate version"""
        return self._version

    def _increment_version(self) -> None:
        self._version += 1

    def _add_domain_event(self, event: DomainEvent) -> None:
        self._changes.append(event)
        self._logger.debug(f"Added domain event: {event.__class__.__name__}")

    def clear_events(self) -> List[DomainEvent]:
        """Clear and return all domain events"""
        events = self._changes.copy()
        self._changes.clear()
        return events

    @property
    def has_changes(self) -> bool:
        return len(self._changes) > 0


# ============================================================================
# ALLOCATION ENGINE
# ============================================================================

class AllocationEngine(AggregateRoot):
    """
    Aggregate Root: the parking lot's allocation and release engine
    Exclusively owns the slot pool, registry, waitlist and counters.
    """

    def __init__(
        self,
        billing: Optional[BillingPolicy] = None,
        allow_duplicate_waitlist: bool = False,
        id: Optional[str] = None
    ):
        super().__init__(id)
        self.billing = billing or BillingPolicy()
        self.allow_duplicate_waitlist = allow_duplicate_waitlist

        self._pool = SlotPool()
        self._registry = Registry()
        self._waitlist = Waitlist()
        self._counters = LotCounters(earnings_total=Money.zero(self.currency))
        self._ticket_counter = 0
        self._lock = threading.RLock()

        self.stats = StatsReporter(self._pool, self._waitlist, self.billing, self._counters)

    @property
    def currency(self) -> str:
        return self.billing.currency

    @property
    def served_total(self) -> int:
        return self._counters.served_total

    @property
    def earnings_total(self) -> Money:
        return self._counters.earnings_total

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def initialize(self, counts_by_category: Mapping[VehicleType, int]) -> None:
        """
        Re-create the slot pool and reset registry, waitlist and counters
        Rates are kept. Raises: InvalidConfiguration (state left untouched)
        """
        with self._lock:
            self._pool.initialize(counts_by_category)
            self._registry.clear()
            self._waitlist.clear()
            self._counters.reset(self.currency)
            self._ticket_counter = 0
            self._increment_version()
            self._add_domain_event(LotInitializedEvent(
                counts={vt: self._pool.capacity(vt) for vt in VehicleType}
            ))

    def set_rate(self, vehicle_type: VehicleType, rate) -> Money:
        """Raises: InvalidRate"""
        with self._lock:
            money = self.billing.set_rate(vehicle_type, rate)
            self._increment_version()
            self._add_domain_event(RateChangedEvent(vehicle_type=vehicle_type, rate=money))
        return money

    # ------------------------------------------------------------------
    # Use cases
    # ------------------------------------------------------------------

    def _next_ticket_id(self) -> str:
        self._ticket_counter += 1
        return f"T{self._ticket_counter}"

    def _issue_ticket(self, external_id: str, vehicle_type: VehicleType, slot_index: int) -> Ticket:
        """Occupy the slot, bind the id and drop any other waiting entries it still holds"""
        ticket = Ticket(self._next_ticket_id(), external_id, vehicle_type, slot_index)
        self._pool.occupy(ticket)
        self._registry.bind(external_id, slot_index)
        self._counters.served_total += 1
        for entry in self._waitlist.discard_all(external_id):
            self._logger.info(
                "Dropped %s waitlist entry for %s: vehicle is now parked",
                entry.vehicle_type, external_id
            )
        return ticket

    @staticmethod
    def _check_external_id(external_id: str) -> str:
        if not isinstance(external_id, str) or not external_id.strip():
            raise ValueError("Vehicle id must be a non-empty string")
        return external_id.strip()

    def enter(self, external_id: str, vehicle_type: VehicleType) -> EntryOutcome:
        """
        Park a vehicle or queue it when its category is full
        Raises: AlreadyParked, AlreadyWaiting
        """
        external_id = self._check_external_id(external_id)
        if not isinstance(vehicle_type, VehicleType):
            raise ValueError(f"Invalid vehicle type: {vehicle_type!r}")

        with self._lock:
            if external_id in self._registry:
                raise AlreadyParked(external_id, self._registry.lookup(external_id))

            if not self.allow_duplicate_waitlist and self._waitlist.contains(external_id):
                raise AlreadyWaiting(external_id)

            try:
                slot_index = self._pool.acquire_free_slot(vehicle_type)
            except NoFreeSlot:
                entry = WaitEntry(external_id, vehicle_type, self._waitlist.next_sequence())
                position = self._waitlist.enqueue(vehicle_type, entry)
                self._increment_version()
                self._add_domain_event(VehicleWaitlistedEvent(
                    external_id=external_id, vehicle_type=vehicle_type, position=position
                ))
                self._logger.info(
                    "No free %s slots; %s added to waitlist at position %d",
                    vehicle_type, external_id, position
                )
                return Waitlisted(position=position, vehicle_type=vehicle_type, external_id=external_id)

            ticket = self._issue_ticket(external_id, vehicle_type, slot_index)
            self._increment_version()
            self._add_domain_event(VehicleParkedEvent(
                external_id=external_id, ticket_id=ticket.ticket_id,
                slot_index=slot_index, vehicle_type=vehicle_type
            ))
            self._logger.info(
                "Ticket %s issued to %s for %s slot %d",
                ticket.ticket_id, external_id, vehicle_type, ticket.slot_number
            )
            return Assigned(
                ticket_id=ticket.ticket_id, slot_index=slot_index,
                vehicle_type=vehicle_type, external_id=external_id
            )

    def exit(self, external_id: str, duration_minutes: int) -> ExitOutcome:
        """
        Release a vehicle's slot, bill the stay and promote the next waiter
        Raises: NotFound (no state change)
        """
        external_id = self._check_external_id(external_id)
        duration_minutes = max(0, int(duration_minutes))

        with self._lock:
            slot_index = self._registry.lookup(external_id)
            slot = self._pool.slot(slot_index)
            vehicle_type = slot.vehicle_type

            quote = self.billing.quote(vehicle_type, duration_minutes)
            self._counters.earnings_total = self._counters.earnings_total + quote.fee

            ticket = self._pool.release_slot(slot_index)
            self._registry.unbind(external_id)
            self._add_domain_event(VehicleExitedEvent(
                external_id=external_id, ticket_id=ticket.ticket_id, slot_index=slot_index,
                vehicle_type=vehicle_type, billed_hours=quote.billed_hours, fee=quote.fee
            ))
            self._logger.info(
                "%s left slot %d after %d min: %d hour(s) billed, fee %s",
                external_id, slot.number, duration_minutes, quote.billed_hours, quote.fee.format()
            )

            promoted_id = promoted_ticket_id = None
            waiter = self._waitlist.dequeue_front(vehicle_type)
            if waiter is not None:
                new_ticket = self._issue_ticket(waiter.external_id, vehicle_type, slot_index)
                promoted_id, promoted_ticket_id = waiter.external_id, new_ticket.ticket_id
                self._add_domain_event(WaitlistPromotedEvent(
                    external_id=promoted_id, ticket_id=promoted_ticket_id,
                    slot_index=slot_index, vehicle_type=vehicle_type
                ))
                self._logger.info(
                    "Freed slot %d assigned to waitlisted %s (ticket %s)",
                    slot.number, promoted_id, promoted_ticket_id
                )
            else:
                self._pool.return_to_free_pool(slot_index)

            self._increment_version()
            return ExitOutcome(
                external_id=external_id,
                ticket_id=ticket.ticket_id,
                slot_index=slot_index,
                vehicle_type=vehicle_type,
                duration_minutes=duration_minutes,
                billed_hours=quote.billed_hours,
                rate=quote.rate,
                fee=quote.fee,
                promoted_waiter_id=promoted_id,
                promoted_ticket_id=promoted_ticket_id,
            )

    def cancel_wait(self, external_id: str) -> WaitEntry:
        """
        Withdraw a waiting request; the remaining waiters keep their order
        Raises: NotFound if the id is not waiting
        """
        external_id = self._check_external_id(external_id)
        with self._lock:
            entry = self._waitlist.remove(external_id)
            self._increment_version()
            self._add_domain_event(WaitCancelledEvent(
                external_id=external_id, vehicle_type=entry.vehicle_type
            ))
            self._logger.info("%s removed from the %s waitlist", external_id, entry.vehicle_type)
            return entry

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def lookup(self, external_id: str) -> Ticket:
        """Raises: NotFound"""
        with self._lock:
            return self._pool.slot(self._registry.lookup(external_id)).ticket

    def is_waiting(self, external_id: str) -> bool:
        with self._lock:
            return self._waitlist.contains(external_id)

    def snapshot(self) -> Snapshot:
        with self._lock:
            return self.stats.snapshot()
