# File: src/parkline/domain/waitlist.py
"""
Per-category FIFO waitlists

Each vehicle category has its own queue; entries are only ever served from
the front, so a waiter is promoted by the next matching release unless an
earlier waiter of the same category is still ahead of it.
"""

from collections import deque
from itertools import count
from typing import Deque, Dict, List, Optional

from .exceptions import NotFound
from .models import VehicleType, WaitEntry


class Waitlist:
    """One FIFO queue per vehicle category"""

    def __init__(self):
        self._queues: Dict[VehicleType, Deque[WaitEntry]] = {vt: deque() for vt in VehicleType}
        self._sequence = count(1)

    def next_sequence(self) -> int:
        """Arrival number used to order entries across categories"""
        return next(self._sequence)

    def enqueue(self, vehicle_type: VehicleType, entry: WaitEntry) -> int:
        """Append an entry and return its 1-based position in the queue"""
        if entry.vehicle_type != vehicle_type:
            raise ValueError(f"Entry for {entry.vehicle_type} cannot join the {vehicle_type} queue")
        queue = self._queues[vehicle_type]
        queue.append(entry)
        return len(queue)

    def peek_front(self, vehicle_type: VehicleType) -> Optional[WaitEntry]:
        queue = self._queues[vehicle_type]
        return queue[0] if queue else None

    def dequeue_front(self, vehicle_type: VehicleType) -> Optional[WaitEntry]:
        queue = self._queues[vehicle_type]
        return queue.popleft() if queue else None

    def size(self, vehicle_type: VehicleType) -> int:
        return len(self._queues[vehicle_type])

    def total_size(self) -> int:
        return sum(len(queue) for queue in self._queues.values())

    def contains(self, external_id: str) -> bool:
        return any(entry.external_id == external_id
                   for queue in self._queues.values() for entry in queue)

    def remove(self, external_id: str) -> WaitEntry:
        """
        Cancel the earliest waiting entry for an external id
        Raises: NotFound if the id is not waiting
        """
        matches = [entry for queue in self._queues.values()
                   for entry in queue if entry.external_id == external_id]
        if not matches:
            raise NotFound(external_id, f"Vehicle '{external_id}' is not on the waitlist")
        earliest = min(matches, key=lambda entry: entry.sequence)
        self._queues[earliest.vehicle_type].remove(earliest)
        return earliest

    def discard_all(self, external_id: str) -> List[WaitEntry]:
        """Drop every entry for an external id; returns the dropped entries"""
        dropped = []
        for queue in self._queues.values():
            kept = [entry for entry in queue if entry.external_id != external_id]
            if len(kept) != len(queue):
                dropped.extend(entry for entry in queue if entry.external_id == external_id)
                queue.clear()
                queue.extend(kept)
        return sorted(dropped, key=lambda entry: entry.sequence)

    def entries(self, vehicle_type: Optional[VehicleType] = None) -> List[WaitEntry]:
        """Waiting entries in FIFO order (by arrival across categories)"""
        if vehicle_type is not None:
            return list(self._queues[vehicle_type])
        merged = [entry for queue in self._queues.values() for entry in queue]
        return sorted(merged, key=lambda entry: entry.sequence)

    def clear(self) -> None:
        for queue in self._queues.values():
            queue.clear()
        self._sequence = count(1)
