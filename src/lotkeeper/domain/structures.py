# File: src/lotkeeper/domain/structures.py
"""
Internal structures of the allocation aggregate

1. SlotPool   - owns every Slot, partitioned by vehicle class
2. FreeIndex  - per-class min-heap of free slot indices (nearest = lowest index)
3. Waitlist   - per-class FIFO queues with a global arrival counter
4. Directory  - vehicle id -> slot index

These are entities within the AllocationEngine aggregate and are only
mutated through it. Each structure guards its own local contract and raises
InvariantViolation when a caller breaks it.
"""

from collections import deque
from typing import Deque, Dict, Iterator, List, Mapping, Optional, Set, Tuple
import heapq
import logging

from .models import (
    Assignment, DuplicateVehicle, InvariantViolation, Slot, VehicleClass,
    VehicleNotFound, WaitEntry
)


# ============================================================================
# SLOT POOL
# ============================================================================

class SlotPool:
    """
    Fixed array of slots, built in contiguous class blocks (CAR, BIKE, TRUCK)
    """

    def __init__(self, counts_by_class: Optional[Mapping[VehicleClass, int]] = None):
        self._slots: List[Slot] = []
        self._indices_by_class: Dict[VehicleClass, Tuple[int, ...]] = {
            vc: () for vc in VehicleClass.ordered()
        }
        self._occupied = 0
        self._logger = logging.getLogger(self.__class__.__name__)
        if counts_by_class is not None:
            self.initialize(counts_by_class)

    def initialize(self, counts_by_class: Mapping[VehicleClass, int]) -> None:
        """Rebuild the pool, discarding all prior state"""
        for vehicle_class in VehicleClass.ordered():
            count = counts_by_class.get(vehicle_class, 0)
            if count < 0:
                raise ValueError(f"Slot count for {vehicle_class} cannot be negative: {count}")

        slots: List[Slot] = []
        indices_by_class: Dict[VehicleClass, Tuple[int, ...]] = {}
        for vehicle_class in VehicleClass.ordered():
            start = len(slots)
            for _ in range(counts_by_class.get(vehicle_class, 0)):
                slots.append(Slot(len(slots), vehicle_class))
            indices_by_class[vehicle_class] = tuple(range(start, len(slots)))

        self._slots = slots
        self._indices_by_class = indices_by_class
        self._occupied = 0
        self._logger.debug(f"Initialized {len(self._slots)} slots")

    def slot(self, index: int) -> Slot:
        """Get slot by 0-based index"""
        if not 0 <= index < len(self._slots):
            raise InvariantViolation(f"Slot index {index} out of range [0, {len(self._slots)})")
        return self._slots[index]

    def assign(self, index: int, assignment: Assignment) -> None:
        """Mark a free slot occupied by the given assignment"""
        slot = self.slot(index)
        if slot.is_occupied:
            raise InvariantViolation(
                f"Slot {index} is already occupied by {slot.assignment.vehicle_id!r}"
            )
        if assignment.slot_index != index:
            raise InvariantViolation(
                f"Assignment {assignment.ticket_id} is bound to slot {assignment.slot_index}, not {index}"
            )
        if assignment.vehicle_class is not slot.vehicle_class:
            raise InvariantViolation(
                f"Cannot place {assignment.vehicle_class} in {slot.vehicle_class} slot {index}"
            )
        slot._occupy(assignment)
        self._occupied += 1

    def release_slot(self, index: int) -> Assignment:
        """Mark an occupied slot free and return the assignment it held"""
        slot = self.slot(index)
        if not slot.is_occupied:
            raise InvariantViolation(f"Slot {index} is already free")
        self._occupied -= 1
        return slot._vacate()

    def indices_of(self, vehicle_class: VehicleClass) -> Tuple[int, ...]:
        return self._indices_by_class[vehicle_class]

    def occupied_count(self) -> int:
        return self._occupied

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[Slot]:
        return iter(self._slots)


# ============================================================================
# FREE INDEX
# ============================================================================

class FreeIndex:
    """
    Per-class ordered set of free slot indices.

    Backed by a binary min-heap for O(log n) take/put plus a membership set
    so duplicate returns are detected without scanning.
    """

    def __init__(self):
        self._heaps: Dict[VehicleClass, List[int]] = {vc: [] for vc in VehicleClass.ordered()}
        self._members: Dict[VehicleClass, Set[int]] = {vc: set() for vc in VehicleClass.ordered()}

    @classmethod
    def from_pool(cls, pool: SlotPool) -> "FreeIndex":
        """Index every currently free slot of the pool"""
        index = cls()
        for slot in pool:
            if not slot.is_occupied:
                index.put(slot.vehicle_class, slot.index)
        return index

    def take(self, vehicle_class: VehicleClass) -> Optional[int]:
        """Remove and return the lowest free index, or None when the class is full"""
        heap = self._heaps[vehicle_class]
        if not heap:
            return None
        index = heapq.heappop(heap)
        self._members[vehicle_class].discard(index)
        return index

    def put(self, vehicle_class: VehicleClass, index: int) -> None:
        """Return an index to the free set"""
        members = self._members[vehicle_class]
        if index in members:
            raise InvariantViolation(f"Slot {index} returned twice to the {vehicle_class} free set")
        members.add(index)
        heapq.heappush(self._heaps[vehicle_class], index)

    def count(self, vehicle_class: VehicleClass) -> int:
        return len(self._heaps[vehicle_class])

    def contains(self, vehicle_class: VehicleClass, index: int) -> bool:
        return index in self._members[vehicle_class]

    def members(self, vehicle_class: VehicleClass) -> List[int]:
        """Sorted copy of the free indices of a class"""
        return sorted(self._members[vehicle_class])

    def counts(self) -> Dict[VehicleClass, int]:
        return {vc: self.count(vc) for vc in VehicleClass.ordered()}


# ============================================================================
# WAITLIST
# ============================================================================

class Waitlist:
    """
    FIFO queue of pending requests, one deque per class.

    Entries carry a global sequence number so the combined arrival order
    across classes can still be reported. Serving one class never removes
    or reorders entries of another.
    """

    def __init__(self):
        self._queues: Dict[VehicleClass, Deque[WaitEntry]] = {
            vc: deque() for vc in VehicleClass.ordered()
        }
        self._by_vehicle: Dict[str, WaitEntry] = {}
        self._sequence = 0

    def enqueue(self, vehicle_id: str, vehicle_class: VehicleClass) -> WaitEntry:
        if vehicle_id in self._by_vehicle:
            raise InvariantViolation(f"Vehicle {vehicle_id!r} is already waitlisted")
        self._sequence += 1
        entry = WaitEntry(vehicle_id=vehicle_id, vehicle_class=vehicle_class, sequence=self._sequence)
        self._queues[vehicle_class].append(entry)
        self._by_vehicle[vehicle_id] = entry
        return entry

    def peek_front(self, vehicle_class: VehicleClass) -> Optional[WaitEntry]:
        queue = self._queues[vehicle_class]
        return queue[0] if queue else None

    def dequeue_front(self, vehicle_class: VehicleClass) -> WaitEntry:
        queue = self._queues[vehicle_class]
        if not queue:
            raise InvariantViolation(f"Dequeue from empty {vehicle_class} waitlist")
        entry = queue.popleft()
        del self._by_vehicle[entry.vehicle_id]
        return entry

    def size(self, vehicle_class: Optional[VehicleClass] = None) -> int:
        """Queue length for one class, or for all classes when omitted"""
        if vehicle_class is None:
            return len(self._by_vehicle)
        return len(self._queues[vehicle_class])

    def contains(self, vehicle_id: str) -> bool:
        return vehicle_id in self._by_vehicle

    def get(self, vehicle_id: str) -> Optional[WaitEntry]:
        return self._by_vehicle.get(vehicle_id)

    def entries(self) -> List[WaitEntry]:
        """All entries in global arrival order"""
        return list(heapq.merge(*self._queues.values(), key=lambda entry: entry.sequence))

    def position_of(self, vehicle_id: str) -> Optional[int]:
        """1-based position in global arrival order"""
        entry = self._by_vehicle.get(vehicle_id)
        if entry is None:
            return None
        return sum(
            1 for queue in self._queues.values() for other in queue
            if other.sequence <= entry.sequence
        )

    def __len__(self) -> int:
        return len(self._by_vehicle)


# ============================================================================
# DIRECTORY
# ============================================================================

class Directory:
    """Vehicle id -> slot index for every currently parked vehicle"""

    def __init__(self):
        self._slots_by_vehicle: Dict[str, int] = {}

    def register(self, vehicle_id: str, slot_index: int) -> None:
        existing = self._slots_by_vehicle.get(vehicle_id)
        if existing is not None:
            raise DuplicateVehicle(vehicle_id, existing)
        self._slots_by_vehicle[vehicle_id] = slot_index

    def lookup(self, vehicle_id: str) -> Optional[int]:
        return self._slots_by_vehicle.get(vehicle_id)

    def remove(self, vehicle_id: str) -> int:
        try:
            return self._slots_by_vehicle.pop(vehicle_id)
        except KeyError:
            raise VehicleNotFound(vehicle_id) from None

    def items(self) -> List[Tuple[str, int]]:
        return list(self._slots_by_vehicle.items())

    def __contains__(self, vehicle_id: object) -> bool:
        return vehicle_id in self._slots_by_vehicle

    def __len__(self) -> int:
        return len(self._slots_by_vehicle)
