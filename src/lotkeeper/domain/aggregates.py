# File: src/lotkeeper/domain/aggregates.py
"""
Aggregate Root for the Slot Allocation Engine
Following Domain-Driven Design (DDD) Aggregate Pattern

AllocationEngine owns SlotPool, FreeIndex, Waitlist, Directory, the billing
policy and the running counters. All modifications go through its methods,
and it raises domain events for every state change.

Per-vehicle lifecycle:

    Unparked --entry--> Parked --exit--> Unparked
    Unparked --entry (class full)--> Waiting --slot freed--> Parked

Invariants checked by check_invariants():
1. Every slot index belongs to exactly one class block
2. A slot is occupied iff it holds an assignment
3. FreeIndex of a class == free slots of that class in the pool
4. Directory is the inverse of slot -> vehicle
"""

from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Tuple
import logging

from .models import (
    AlreadyParked, Assigned, Assignment, AvailabilitySnapshot, DomainEvent,
    EntryResult, ExitResult, InvariantViolation, LotInitializedEvent, NotParked,
    OccupiedSlotView, Queued, Receipt, SlotReboundEvent, SlotView, StatsSnapshot,
    VehicleClass, VehicleExitedEvent, VehicleParkedEvent, VehicleQueuedEvent,
    WaitlistView
)
from .strategies import BillingPolicy
from .structures import Directory, FreeIndex, SlotPool, Waitlist


PERCENT_QUANTUM = Decimal('0.01')


# ============================================================================
# BASE AGGREGATE ROOT
# ============================================================================

class AggregateRoot:
    """
    Base class for aggregate roots
    Provides domain event collection and versioning
    """

    def __init__(self):
        self._version: int = 1
        self._changes: List[DomainEvent] = []
        self._logger = logging.getLogger(self.__class__.__name__)

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
        """Clear and return all pending domain events"""
        events = self._changes.copy()
        self._changes.clear()
        return events

    @property
    def has_changes(self) -> bool:
        return len(self._changes) > 0

    def check_invariants(self) -> None:
        """Validate aggregate invariants - to be overridden by subclasses"""
        pass


# ============================================================================
# ALLOCATION ENGINE
# ============================================================================

class AllocationEngine(AggregateRoot):
    """
    Aggregate Root: slot allocation, release, waitlist hand-off and billing

    The engine serves one caller at a time. Wrap it in a single lock when
    exposing it to concurrent callers (see ParkingService).
    """

    def __init__(
        self,
        counts_by_class: Optional[Mapping[VehicleClass, int]] = None,
        billing: Optional[BillingPolicy] = None,
        verify_invariants: bool = False
    ):
        super().__init__()
        self.billing = billing or BillingPolicy()
        self.verify_invariants = verify_invariants
        self._initialized = False
        self._reset({})
        if counts_by_class is not None:
            self.initialize(counts_by_class)

    def _reset(self, counts_by_class: Mapping[VehicleClass, int]) -> None:
        self._pool = SlotPool(counts_by_class)
        self._free = FreeIndex.from_pool(self._pool)
        self._waitlist = Waitlist()
        self._directory = Directory()
        self._ticket_counter = 0
        self.total_served = 0
        self.total_earnings = Decimal('0.00')

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def initialize(self, counts_by_class: Mapping[VehicleClass, int]) -> None:
        """
        Rebuild the pool, discarding every slot, queue entry and counter.
        Rates are kept.
        """
        counts = {vc: int(counts_by_class.get(vc, 0)) for vc in VehicleClass.ordered()}
        self._reset(counts)
        self._initialized = True
        self._increment_version()
        self._add_domain_event(LotInitializedEvent(counts))
        self._logger.info(
            f"Parking initialized: total slots = {len(self._pool)} "
            f"(Cars: {counts[VehicleClass.CAR]}, Bikes: {counts[VehicleClass.BIKE]}, "
            f"Trucks: {counts[VehicleClass.TRUCK]})"
        )
        self._after_mutation()

    def set_rate(self, vehicle_class: VehicleClass, rate: Decimal) -> None:
        self.billing.set_rate(vehicle_class, rate)
        self._increment_version()

    def entry(self, vehicle_id: str, vehicle_class: VehicleClass) -> EntryResult:
        """
        Park a vehicle in the nearest free slot of its class, or waitlist it

        Returns: Assigned, Queued or AlreadyParked
        """
        slot_index = self._directory.lookup(vehicle_id)
        if slot_index is not None:
            self._logger.info(f"Vehicle {vehicle_id!r} already parked in slot {slot_index + 1}")
            return AlreadyParked(vehicle_id=vehicle_id, slot_index=slot_index)

        waiting = self._waitlist.get(vehicle_id)
        if waiting is not None:
            position = self._waitlist.position_of(vehicle_id)
            self._logger.info(f"Vehicle {vehicle_id!r} already waitlisted at position {position}")
            return Queued(vehicle_id=vehicle_id, vehicle_class=waiting.vehicle_class, position=position)

        slot_index = self._free.take(vehicle_class)
        if slot_index is None:
            queued = self._waitlist.enqueue(vehicle_id, vehicle_class)
            position = len(self._waitlist)
            self._increment_version()
            self._add_domain_event(VehicleQueuedEvent(queued, position))
            self._logger.info(
                f"No free {vehicle_class} slots. {vehicle_id!r} added to waitlist position {position}"
            )
            self._after_mutation()
            return Queued(vehicle_id=vehicle_id, vehicle_class=vehicle_class, position=position)

        assignment = self._bind(vehicle_id, vehicle_class, slot_index)
        self._increment_version()
        self._add_domain_event(VehicleParkedEvent(assignment))
        self._logger.info(
            f"Ticket {assignment.ticket_id}: {vehicle_id!r} ({vehicle_class}) -> slot {assignment.slot_number}"
        )
        self._after_mutation()
        return Assigned.from_assignment(assignment)

    def exit(self, vehicle_id: str, elapsed_minutes: int) -> ExitResult:
        """
        Release a vehicle's slot, bill it, and hand the slot to the head of
        the class waitlist if anyone is waiting

        Returns: Receipt or NotParked
        """
        slot_index = self._directory.lookup(vehicle_id)
        if slot_index is None:
            self._logger.info(f"Vehicle {vehicle_id!r} not found")
            return NotParked(vehicle_id=vehicle_id)

        released = self._pool.release_slot(slot_index)
        if released.vehicle_id != vehicle_id:
            raise InvariantViolation(
                f"Directory maps {vehicle_id!r} to slot {slot_index} held by {released.vehicle_id!r}"
            )
        self._directory.remove(vehicle_id)

        vehicle_class = released.vehicle_class
        minutes = max(0, int(elapsed_minutes))
        billed_hours = self.billing.billed_hours(minutes)
        rate = self.billing.rate(vehicle_class)
        fee = self.billing.fee(vehicle_class, minutes)
        self.total_earnings += fee

        # Direct hand-off: the freed slot never enters FreeIndex while
        # someone of the same class is waiting.
        handoff: Optional[Assignment] = None
        rebound: Optional[Assigned] = None
        if self._waitlist.peek_front(vehicle_class) is not None:
            waiting = self._waitlist.dequeue_front(vehicle_class)
            handoff = self._bind(waiting.vehicle_id, vehicle_class, slot_index)
            rebound = Assigned.from_assignment(handoff)
        else:
            self._free.put(vehicle_class, slot_index)

        receipt = Receipt(
            ticket_id=released.ticket_id,
            vehicle_id=vehicle_id,
            vehicle_class=vehicle_class,
            slot_index=slot_index,
            elapsed_minutes=minutes,
            billed_hours=billed_hours,
            rate=rate,
            fee=fee,
            rebound=rebound,
        )
        self._increment_version()
        self._add_domain_event(VehicleExitedEvent(receipt))
        self._logger.info(
            f"Receipt for {vehicle_id!r}: slot {slot_index + 1} ({vehicle_class}), "
            f"{minutes} min, {billed_hours} h billed, fee {fee}"
        )
        if handoff is not None:
            self._add_domain_event(SlotReboundEvent(handoff, vehicle_id))
            self._logger.info(
                f"Freed slot {rebound.slot_number} assigned to waitlisted vehicle "
                f"{rebound.vehicle_id!r} | New Ticket: {rebound.ticket_id}"
            )
        self._after_mutation()
        return receipt

    # ------------------------------------------------------------------
    # Queries (pure reads)
    # ------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def availability(self) -> AvailabilitySnapshot:
        occupied = tuple(
            OccupiedSlotView(
                slot_index=slot.index,
                vehicle_class=slot.vehicle_class,
                vehicle_id=slot.assignment.vehicle_id,
                ticket_id=slot.assignment.ticket_id,
            )
            for slot in self._pool if slot.is_occupied
        )
        waitlist = tuple(
            WaitlistView(position=position, vehicle_id=entry.vehicle_id, vehicle_class=entry.vehicle_class)
            for position, entry in enumerate(self._waitlist.entries(), start=1)
        )
        return AvailabilitySnapshot(free_counts=self._free.counts(), occupied=occupied, waitlist=waitlist)

    def stats(self) -> StatsSnapshot:
        total = len(self._pool)
        occupied = self._pool.occupied_count()
        if total == 0:
            percent = Decimal('0.00')
        else:
            percent = (Decimal(100 * occupied) / Decimal(total)).quantize(PERCENT_QUANTUM)
        return StatsSnapshot(
            total_slots=total,
            occupied_count=occupied,
            occupancy_percent=percent,
            total_served=self.total_served,
            total_earnings=self.total_earnings,
            rates=self.billing.rates(),
        )

    def layout(self) -> Tuple[SlotView, ...]:
        return tuple(
            SlotView(
                slot_index=slot.index,
                vehicle_class=slot.vehicle_class,
                state=slot.state,
                vehicle_id=slot.assignment.vehicle_id if slot.is_occupied else None,
            )
            for slot in self._pool
        )

    def slot_of(self, vehicle_id: str) -> Optional[int]:
        """0-based slot index held by the vehicle, if parked"""
        return self._directory.lookup(vehicle_id)

    def waitlist_size(self, vehicle_class: Optional[VehicleClass] = None) -> int:
        return self._waitlist.size(vehicle_class)

    def free_count(self, vehicle_class: VehicleClass) -> int:
        return self._free.count(vehicle_class)

    # ------------------------------------------------------------------
    # Invariants
    # ------------------------------------------------------------------

    def check_invariants(self) -> None:
        """Raise InvariantViolation if any structural invariant is broken"""
        seen: Dict[int, VehicleClass] = {}
        for vehicle_class in VehicleClass.ordered():
            indices = self._pool.indices_of(vehicle_class)
            for index in indices:
                if index in seen:
                    raise InvariantViolation(f"Slot {index} belongs to {seen[index]} and {vehicle_class}")
                seen[index] = vehicle_class
                if self._pool.slot(index).vehicle_class is not vehicle_class:
                    raise InvariantViolation(f"Slot {index} is not a {vehicle_class} slot")

            expected_free = [i for i in indices if not self._pool.slot(i).is_occupied]
            if self._free.members(vehicle_class) != expected_free:
                raise InvariantViolation(
                    f"{vehicle_class} free set {self._free.members(vehicle_class)} "
                    f"!= pool free slots {expected_free}"
                )
        if len(seen) != len(self._pool):
            raise InvariantViolation(f"{len(self._pool) - len(seen)} slots have no class block")

        occupied = 0
        for slot in self._pool:
            if not slot.is_occupied:
                continue
            occupied += 1
            assignment = slot.assignment
            if assignment.slot_index != slot.index or assignment.vehicle_class is not slot.vehicle_class:
                raise InvariantViolation(f"Slot {slot.index} holds mismatched assignment {assignment}")
            if self._directory.lookup(assignment.vehicle_id) != slot.index:
                raise InvariantViolation(
                    f"Directory does not map {assignment.vehicle_id!r} to slot {slot.index}"
                )
            if self._waitlist.contains(assignment.vehicle_id):
                raise InvariantViolation(f"Parked vehicle {assignment.vehicle_id!r} is also waitlisted")

        if occupied != self._pool.occupied_count() or occupied != len(self._directory):
            raise InvariantViolation(
                f"Occupied slots {occupied}, pool counter {self._pool.occupied_count()}, "
                f"directory size {len(self._directory)}"
            )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _next_ticket_id(self) -> str:
        self._ticket_counter += 1
        return f"T{self._ticket_counter}"

    def _bind(self, vehicle_id: str, vehicle_class: VehicleClass, slot_index: int) -> Assignment:
        assignment = Assignment(
            ticket_id=self._next_ticket_id(),
            vehicle_id=vehicle_id,
            vehicle_class=vehicle_class,
            slot_index=slot_index,
        )
        self._pool.assign(slot_index, assignment)
        self._directory.register(vehicle_id, slot_index)
        self.total_served += 1
        return assignment

    def _after_mutation(self) -> None:
        if not self.verify_invariants:
            return
        try:
            self.check_invariants()
        except InvariantViolation:
            self._logger.error("Invariant check failed", exc_info=True)
            raise

    def __str__(self) -> str:
        stats = self.stats()
        return (
            f"AllocationEngine: {stats.occupied_count}/{stats.total_slots} occupied, "
            f"{len(self._waitlist)} waiting"
        )
