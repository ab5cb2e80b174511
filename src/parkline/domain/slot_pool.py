# File: src/parkline/domain/slot_pool.py
"""
Slot pool: every slot of the lot plus one min-heap of free indices per
vehicle category.

Slots are laid out in contiguous blocks (cars, then bikes, then trucks) and
acquire_free_slot always hands out the smallest free index of the requested
category, so allocation order is reproducible.
"""

import heapq
import logging
from typing import Dict, List, Mapping, Optional

from .exceptions import InvalidConfiguration, NoFreeSlot, ParkingError
from .models import Slot, Ticket, VehicleType


class SlotPool:
    """Holds all slots and the per-category free pools"""

    def __init__(self):
        self._slots: List[Slot] = []
        self._free: Dict[VehicleType, List[int]] = {vt: [] for vt in VehicleType}
        self._logger = logging.getLogger(self.__class__.__name__)

    @staticmethod
    def _validate_counts(counts_by_category: Mapping[VehicleType, int]) -> Dict[VehicleType, int]:
        counts = {}
        for key, count in counts_by_category.items():
            if not isinstance(key, VehicleType):
                raise InvalidConfiguration(f"Unknown vehicle category: {key!r}")
            if isinstance(count, bool) or not isinstance(count, int):
                raise InvalidConfiguration(f"Slot count for {key} must be an integer, got {count!r}")
            if count < 0:
                raise InvalidConfiguration(f"Slot count for {key} cannot be negative: {count}")
            counts[key] = count
        return {vt: counts.get(vt, 0) for vt in VehicleType}

    def initialize(self, counts_by_category: Mapping[VehicleType, int]) -> None:
        """
        Discard all slots and lay out new blocks in category order
        Raises: InvalidConfiguration on a negative or non-integer count,
        leaving the current pool untouched
        """
        counts = self._validate_counts(counts_by_category)

        slots: List[Slot] = []
        free: Dict[VehicleType, List[int]] = {vt: [] for vt in VehicleType}
        for vehicle_type in VehicleType:
            for _ in range(counts[vehicle_type]):
                index = len(slots)
                slots.append(Slot(index, vehicle_type))
                # indices are appended in ascending order, which is already a valid heap
                free[vehicle_type].append(index)

        self._slots = slots
        self._free = free
        self._logger.info(
            "Pool initialized with %d slots (%s)",
            len(slots), ", ".join(f"{vt}: {counts[vt]}" for vt in VehicleType)
        )

    def acquire_free_slot(self, vehicle_type: VehicleType) -> int:
        """
        Remove and return the smallest free index of a category
        Raises: NoFreeSlot when the category has no free slot
        """
        heap = self._free[vehicle_type]
        if not heap:
            raise NoFreeSlot(f"No free {vehicle_type} slots")
        index = heapq.heappop(heap)
        self._logger.debug("Acquired slot %d for %s", index, vehicle_type)
        return index

    def occupy(self, ticket: Ticket) -> None:
        """Attach a ticket to its (already acquired) slot"""
        self.slot(ticket.slot_index).assign_ticket(ticket)

    def release_slot(self, index: int) -> Ticket:
        """
        Clear occupancy of a slot and return its ticket
        The index is NOT returned to the free pool; the caller decides.
        """
        return self.slot(index).release_ticket()

    def return_to_free_pool(self, index: int) -> None:
        """Put an unoccupied slot back into its category's free pool"""
        slot = self.slot(index)
        if slot.is_occupied:
            raise ParkingError(f"Slot {slot.number} is occupied and cannot be freed")
        heap = self._free[slot.vehicle_type]
        if index in heap:
            raise ParkingError(f"Slot {slot.number} is already in the free pool")
        heapq.heappush(heap, index)
        self._logger.debug("Returned slot %d to %s pool", index, slot.vehicle_type)

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    def slot(self, index: int) -> Slot:
        if not 0 <= index < len(self._slots):
            raise ParkingError(f"Slot index out of range: {index}")
        return self._slots[index]

    def slots(self) -> List[Slot]:
        return list(self._slots)

    @property
    def total(self) -> int:
        return len(self._slots)

    def free_count(self, vehicle_type: Optional[VehicleType] = None) -> int:
        if vehicle_type is None:
            return sum(len(heap) for heap in self._free.values())
        return len(self._free[vehicle_type])

    def free_indices(self, vehicle_type: VehicleType) -> List[int]:
        return sorted(self._free[vehicle_type])

    def capacity(self, vehicle_type: VehicleType) -> int:
        return sum(1 for slot in self._slots if slot.vehicle_type == vehicle_type)

    def occupied_slots(self) -> List[Slot]:
        return [slot for slot in self._slots if slot.is_occupied]
