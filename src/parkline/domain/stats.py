# File: src/parkline/domain/stats.py
"""
Read-only statistics over the slot pool, waitlist and engine counters

Nothing here mutates state; every method can be called between engine
operations.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from .billing import BillingPolicy
from .models import Money, Ticket, VehicleType, WaitEntry
from .slot_pool import SlotPool
from .waitlist import Waitlist


@dataclass
class LotCounters:
    """Running totals owned by the engine; reset only by initialize"""
    served_total: int = 0
    earnings_total: Money = field(default_factory=Money.zero)

    def reset(self, currency: str) -> None:
        self.served_total = 0
        self.earnings_total = Money.zero(currency)


@dataclass(frozen=True)
class CategoryStats:
    vehicle_type: VehicleType
    capacity: int
    free: int
    occupied: int
    waiting: int


@dataclass(frozen=True)
class SlotView:
    """One row of the slot layout"""
    slot_index: int
    vehicle_type: VehicleType
    ticket: Optional[Ticket] = None

    @property
    def slot_number(self) -> int:
        return self.slot_index + 1

    @property
    def is_occupied(self) -> bool:
        return self.ticket is not None


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time view of the whole lot"""
    total_slots: int
    free_by_category: Dict[VehicleType, int]
    occupied_by_category: Dict[VehicleType, int]
    occupied_slots: List[Ticket]
    waitlist: List[WaitEntry]
    served_total: int
    earnings_total: Money
    rates: Dict[VehicleType, Money]
    occupancy_percent: Decimal
    by_category: List[CategoryStats] = field(default_factory=list)

    @property
    def free_total(self) -> int:
        return sum(self.free_by_category.values())

    @property
    def occupied_total(self) -> int:
        return len(self.occupied_slots)


class StatsReporter:
    """Aggregates occupancy and historical totals"""

    def __init__(
        self,
        pool: SlotPool,
        waitlist: Waitlist,
        billing: BillingPolicy,
        counters: LotCounters
    ):
        self._pool = pool
        self._waitlist = waitlist
        self._billing = billing
        self._counters = counters

    def free_by_category(self) -> Dict[VehicleType, int]:
        return {vt: self._pool.free_count(vt) for vt in VehicleType}

    def occupied_by_category(self) -> Dict[VehicleType, int]:
        occupied = {vt: 0 for vt in VehicleType}
        for slot in self._pool.occupied_slots():
            occupied[slot.vehicle_type] += 1
        return occupied

    def category_stats(self) -> List[CategoryStats]:
        occupied = self.occupied_by_category()
        return [
            CategoryStats(
                vehicle_type=vt,
                capacity=self._pool.capacity(vt),
                free=self._pool.free_count(vt),
                occupied=occupied[vt],
                waiting=self._waitlist.size(vt),
            )
            for vt in VehicleType
        ]

    def total_slots(self) -> int:
        return self._pool.total

    def occupied_total(self) -> int:
        return len(self._pool.occupied_slots())

    def free_total(self) -> int:
        return self._pool.free_count()

    def occupancy_percent(self) -> Decimal:
        """occupied / total x 100, rounded to 2 places; 0 for an empty lot"""
        total = self._pool.total
        if total == 0:
            return Decimal('0.00')
        percent = Decimal(100 * self.occupied_total()) / Decimal(total)
        return percent.quantize(Decimal('0.01'))

    def served_total(self) -> int:
        return self._counters.served_total

    def earnings_total(self) -> Money:
        return self._counters.earnings_total

    def rates(self) -> Dict[VehicleType, Money]:
        return self._billing.rates()

    def occupied_slots(self) -> List[Ticket]:
        """Active tickets in ascending slot order"""
        return [slot.ticket for slot in self._pool.occupied_slots()]

    def waitlist(self) -> List[WaitEntry]:
        return self._waitlist.entries()

    def layout(self) -> List[SlotView]:
        return [SlotView(slot.index, slot.vehicle_type, slot.ticket) for slot in self._pool.slots()]

    def snapshot(self) -> Snapshot:
        return Snapshot(
            total_slots=self.total_slots(),
            free_by_category=self.free_by_category(),
            occupied_by_category=self.occupied_by_category(),
            occupied_slots=self.occupied_slots(),
            waitlist=self.waitlist(),
            served_total=self.served_total(),
            earnings_total=self.earnings_total(),
            rates=self.rates(),
            occupancy_percent=self.occupancy_percent(),
            by_category=self.category_stats(),
        )
