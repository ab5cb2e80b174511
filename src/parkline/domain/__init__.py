"""Domain layer: slot pool, registry, waitlist, billing and the allocation engine"""

from .billing import BillingPolicy, DEFAULT_RATES, billed_hours_for
from .engine import AllocationEngine
from .exceptions import (
    ParkingError, InvalidConfiguration, InvalidRate, AlreadyParked,
    AlreadyWaiting, NoFreeSlot, NotFound
)
from .models import (
    VehicleType, Money, Slot, Ticket, WaitEntry, Quote,
    Assigned, Waitlisted, ExitOutcome, DomainEvent
)
from .registry import Registry
from .slot_pool import SlotPool
from .stats import Snapshot, StatsReporter
from .waitlist import Waitlist

__all__ = [
    "AllocationEngine", "BillingPolicy", "DEFAULT_RATES", "billed_hours_for",
    "ParkingError", "InvalidConfiguration", "InvalidRate", "AlreadyParked",
    "AlreadyWaiting", "NoFreeSlot", "NotFound",
    "VehicleType", "Money", "Slot", "Ticket", "WaitEntry", "Quote",
    "Assigned", "Waitlisted", "ExitOutcome", "DomainEvent",
    "Registry", "SlotPool", "Snapshot", "StatsReporter", "Waitlist",
]
