# File: src/lotkeeper/domain/models.py
"""
Domain Models for the Slot Allocation Engine

This module contains:
1. Enums: Vehicle classes and slot states
2. Entities: The parking slot, the only object with a lifecycle
3. Value Objects: Assignments (tickets), waitlist entries, results, snapshots
4. Domain Events: Events representing business occurrences
5. Domain Errors: Exceptions raised when a contract is broken

Value objects are frozen dataclasses so a copy handed to a caller carries
no live reference into the engine.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union
import uuid


# ============================================================================
# ENUMS FOR DOMAIN TYPES
# ============================================================================

class VehicleClass(Enum):
    """
    Closed enumeration of vehicle classes
    Each class has its own slots, free set, waitlist and hourly rate
    """
    CAR = "car"        # Compact
    BIKE = "bike"      # Two-wheeler
    TRUCK = "truck"    # Heavy goods

    @classmethod
    def ordered(cls) -> Tuple["VehicleClass", ...]:
        """Classes in pool build order"""
        return (cls.CAR, cls.BIKE, cls.TRUCK)

    @property
    def label(self) -> str:
        """Uppercase label used in reports"""
        return self.value.upper()

    def __str__(self) -> str:
        return self.label


class SlotState(Enum):
    """Occupancy state of a slot"""
    FREE = "free"
    OCCUPIED = "occupied"


# ============================================================================
# DOMAIN ERRORS
# ============================================================================

class ParkingDomainError(Exception):
    """Base exception for domain errors"""
    pass


class DuplicateVehicle(ParkingDomainError):
    """A vehicle id is already registered in the directory"""

    def __init__(self, vehicle_id: str, slot_index: int):
        super().__init__(f"Vehicle {vehicle_id!r} already holds slot index {slot_index}")
        self.vehicle_id = vehicle_id
        self.slot_index = slot_index


class VehicleNotFound(ParkingDomainError):
    """A vehicle id is not registered in the directory"""

    def __init__(self, vehicle_id: str):
        super().__init__(f"Vehicle {vehicle_id!r} is not registered")
        self.vehicle_id = vehicle_id


class InvariantViolation(ParkingDomainError):
    """
    Internal consistency failure.

    Raised when the data-structure invariants have been broken, e.g. a slot
    released twice or a free index returned twice. This is a programming
    error: callers must let it propagate rather than recover from it.
    """
    pass


# ============================================================================
# VALUE OBJECTS
# ============================================================================

@dataclass(frozen=True)
class Assignment:
    """
    Value Object: the ticket binding one vehicle to one slot
    Minted whenever a slot becomes occupied, by entry or by waitlist hand-off
    """
    ticket_id: str
    vehicle_id: str
    vehicle_class: VehicleClass
    slot_index: int

    @property
    def slot_number(self) -> int:
        """1-based slot number shown to users"""
        return self.slot_index + 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticket_id": self.ticket_id,
            "vehicle_id": self.vehicle_id,
            "vehicle_class": self.vehicle_class.value,
            "slot_index": self.slot_index,
        }


@dataclass(frozen=True)
class WaitEntry:
    """
    Value Object: a pending allocation request
    sequence is the global arrival number across all classes
    """
    vehicle_id: str
    vehicle_class: VehicleClass
    sequence: int


# ============================================================================
# DOMAIN ENTITIES
# ============================================================================

class Slot:
    """
    Entity: one parking slot, identified by its 0-based index
    Class is fixed at creation; only SlotPool changes its occupancy
    """

    __slots__ = ("_index", "_vehicle_class", "_assignment")

    def __init__(self, index: int, vehicle_class: VehicleClass):
        if index < 0:
            raise ValueError(f"Slot index must be non-negative, got {index}")
        self._index = index
        self._vehicle_class = vehicle_class
        self._assignment: Optional[Assignment] = None

    @property
    def index(self) -> int:
        return self._index

    @property
    def vehicle_class(self) -> VehicleClass:
        return self._vehicle_class

    @property
    def assignment(self) -> Optional[Assignment]:
        return self._assignment

    @property
    def state(self) -> SlotState:
        return SlotState.OCCUPIED if self._assignment is not None else SlotState.FREE

    @property
    def is_occupied(self) -> bool:
        return self._assignment is not None

    def _occupy(self, assignment: Assignment) -> None:
        self._assignment = assignment

    def _vacate(self) -> Assignment:
        assignment = self._assignment
        self._assignment = None
        return assignment

    def __repr__(self) -> str:
        return f"Slot(index={self._index}, class={self._vehicle_class.value}, state={self.state.value})"


# ============================================================================
# OPERATION RESULTS
# ============================================================================

@dataclass(frozen=True)
class Assigned:
    """Entry result: the vehicle received a slot"""
    ticket_id: str
    vehicle_id: str
    vehicle_class: VehicleClass
    slot_index: int

    @property
    def slot_number(self) -> int:
        return self.slot_index + 1

    @classmethod
    def from_assignment(cls, assignment: Assignment) -> "Assigned":
        return cls(
            ticket_id=assignment.ticket_id,
            vehicle_id=assignment.vehicle_id,
            vehicle_class=assignment.vehicle_class,
            slot_index=assignment.slot_index,
        )


@dataclass(frozen=True)
class Queued:
    """Entry result: no free slot of the class, vehicle is waitlisted"""
    vehicle_id: str
    vehicle_class: VehicleClass
    position: int


@dataclass(frozen=True)
class AlreadyParked:
    """Entry result: the vehicle already holds a slot"""
    vehicle_id: str
    slot_index: int

    @property
    def slot_number(self) -> int:
        return self.slot_index + 1


@dataclass(frozen=True)
class Receipt:
    """Exit result: billing details for a released slot"""
    ticket_id: str
    vehicle_id: str
    vehicle_class: VehicleClass
    slot_index: int
    elapsed_minutes: int
    billed_hours: int
    rate: Decimal
    fee: Decimal
    rebound: Optional[Assigned] = None

    @property
    def slot_number(self) -> int:
        return self.slot_index + 1


@dataclass(frozen=True)
class NotParked:
    """Exit result: the vehicle holds no slot"""
    vehicle_id: str


EntryResult = Union[Assigned, Queued, AlreadyParked]
ExitResult = Union[Receipt, NotParked]


# ============================================================================
# SNAPSHOTS (pure reads)
# ============================================================================

@dataclass(frozen=True)
class OccupiedSlotView:
    slot_index: int
    vehicle_class: VehicleClass
    vehicle_id: str
    ticket_id: str


@dataclass(frozen=True)
class WaitlistView:
    position: int
    vehicle_id: str
    vehicle_class: VehicleClass


@dataclass(frozen=True)
class SlotView:
    slot_index: int
    vehicle_class: VehicleClass
    state: SlotState
    vehicle_id: Optional[str] = None


@dataclass(frozen=True)
class AvailabilitySnapshot:
    """Free counts per class, occupied slots in index order, waitlist in arrival order"""
    free_counts: Dict[VehicleClass, int]
    occupied: Tuple[OccupiedSlotView, ...]
    waitlist: Tuple[WaitlistView, ...]

    @property
    def total_free(self) -> int:
        return sum(self.free_counts.values())


@dataclass(frozen=True)
class StatsSnapshot:
    total_slots: int
    occupied_count: int
    occupancy_percent: Decimal
    total_served: int
    total_earnings: Decimal
    rates: Dict[VehicleClass, Decimal]


# ============================================================================
# DOMAIN EVENTS
# ============================================================================

class DomainEvent(ABC):
    """
    Base class for all domain events
    Events represent something that happened in the domain
    """

    event_type: str = "domain.event"

    def __init__(self):
        self.event_id = str(uuid.uuid4())
        self.timestamp = datetime.now()
        self.version = "1.0"

    def _envelope(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type,
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "version": self.version,
        }

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization"""
        pass

    def __str__(self) -> str:
        return f"{self.__class__.__name__} at {self.timestamp}"


class LotInitializedEvent(DomainEvent):
    """Event raised when the pool is (re)built"""

    event_type = "lot.initialized"

    def __init__(self, counts_by_class: Dict[VehicleClass, int]):
        super().__init__()
        self.counts_by_class = dict(counts_by_class)

    def to_dict(self) -> Dict[str, Any]:
        data = self._envelope()
        data["data"] = {
            "counts": {vc.value: count for vc, count in self.counts_by_class.items()},
            "total_slots": sum(self.counts_by_class.values()),
        }
        return data


class VehicleParkedEvent(DomainEvent):
    """Event raised when a vehicle is given a slot on entry"""

    event_type = "vehicle.parked"

    def __init__(self, assignment: Assignment):
        super().__init__()
        self.assignment = assignment

    def to_dict(self) -> Dict[str, Any]:
        data = self._envelope()
        data["data"] = self.assignment.to_dict()
        return data


class VehicleQueuedEvent(DomainEvent):
    """Event raised when a vehicle is placed on the waitlist"""

    event_type = "vehicle.queued"

    def __init__(self, entry: WaitEntry, position: int):
        super().__init__()
        self.entry = entry
        self.position = position

    def to_dict(self) -> Dict[str, Any]:
        data = self._envelope()
        data["data"] = {
            "vehicle_id": self.entry.vehicle_id,
            "vehicle_class": self.entry.vehicle_class.value,
            "position": self.position,
        }
        return data


class VehicleExitedEvent(DomainEvent):
    """Event raised when a vehicle leaves and is billed"""

    event_type = "vehicle.exited"

    def __init__(self, receipt: Receipt):
        super().__init__()
        self.receipt = receipt

    def to_dict(self) -> Dict[str, Any]:
        data = self._envelope()
        data["data"] = {
            "ticket_id": self.receipt.ticket_id,
            "vehicle_id": self.receipt.vehicle_id,
            "vehicle_class": self.receipt.vehicle_class.value,
            "slot_index": self.receipt.slot_index,
            "elapsed_minutes": self.receipt.elapsed_minutes,
            "billed_hours": self.receipt.billed_hours,
            "fee": str(self.receipt.fee),
        }
        return data


class SlotReboundEvent(DomainEvent):
    """Event raised when a freed slot is handed straight to a waitlisted vehicle"""

    event_type = "slot.rebound"

    def __init__(self, assignment: Assignment, previous_vehicle_id: str):
        super().__init__()
        self.assignment = assignment
        self.previous_vehicle_id = previous_vehicle_id

    def to_dict(self) -> Dict[str, Any]:
        data = self._envelope()
        data["data"] = self.assignment.to_dict()
        data["data"]["previous_vehicle_id"] = self.previous_vehicle_id
        return data
