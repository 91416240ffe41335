# File: src/lotkeeper/application/dtos.py
"""
Data Transfer Objects (DTOs) for the Slot Allocation Engine

1. Input DTOs  - validated requests; invalid input never reaches the engine
2. Output DTOs - results and snapshots for the presentation layer
3. DTOFactory  - maps domain results to output DTOs

Slot numbers in DTOs are 1-based; the engine works with 0-based indices.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence
import json

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..domain.models import (
    AlreadyParked, Assigned, AvailabilitySnapshot, EntryResult, ExitResult,
    NotParked, Queued, Receipt, SlotState, SlotView, StatsSnapshot, VehicleClass
)


# ============================================================================
# BASE DTO CLASSES
# ============================================================================

class BaseDTO(BaseModel):
    """Base DTO with common functionality"""

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        frozen=True,
    )

    def to_dict(self, exclude_none: bool = False, **kwargs) -> Dict[str, Any]:
        """Convert DTO to dictionary"""
        return self.model_dump(exclude_none=exclude_none, **kwargs)

    def to_json(self, **kwargs) -> str:
        """Convert DTO to JSON string"""
        return self.model_dump_json(**kwargs)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BaseDTO':
        return cls(**data)

    @classmethod
    def from_json(cls, json_str: str) -> 'BaseDTO':
        return cls(**json.loads(json_str))


# ============================================================================
# ENUM DTOs
# ============================================================================

class VehicleClassDTO(str, Enum):
    """Vehicle class tokens accepted at the boundary"""
    CAR = "car"
    BIKE = "bike"
    TRUCK = "truck"


class EntryStatusDTO(str, Enum):
    ASSIGNED = "assigned"
    QUEUED = "queued"
    ALREADY_PARKED = "already_parked"


class ExitStatusDTO(str, Enum):
    EXITED = "exited"
    NOT_PARKED = "not_parked"


def to_vehicle_class(value: Any) -> VehicleClass:
    """Domain class for a DTO field value (enum member or its string value)"""
    if isinstance(value, VehicleClass):
        return value
    return VehicleClass(getattr(value, "value", value))


# ============================================================================
# INPUT DTOs
# ============================================================================

class InitializeLotDTO(BaseDTO):
    """Slot counts per class for (re)building the pool"""
    car: int = Field(default=0, ge=0, description="Number of car slots")
    bike: int = Field(default=0, ge=0, description="Number of bike slots")
    truck: int = Field(default=0, ge=0, description="Number of truck slots")

    def counts(self) -> Dict[VehicleClass, int]:
        return {
            VehicleClass.CAR: self.car,
            VehicleClass.BIKE: self.bike,
            VehicleClass.TRUCK: self.truck,
        }


class RateUpdateDTO(BaseDTO):
    """New hourly rate for one vehicle class"""
    vehicle_class: VehicleClassDTO = Field(description="Vehicle class")
    rate: Decimal = Field(ge=0, description="Rate per hour")


class EntryRequestDTO(BaseDTO):
    """DTO for an entry request"""
    vehicle_id: str = Field(min_length=1, description="Vehicle registration or unique id")
    vehicle_class: VehicleClassDTO = Field(description="Vehicle class")

    @field_validator('vehicle_id')
    @classmethod
    def validate_vehicle_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Vehicle id cannot be blank")
        return v


class ExitRequestDTO(BaseDTO):
    """DTO for an exit request; elapsed time is supplied by the caller"""
    vehicle_id: str = Field(min_length=1, description="Vehicle registration or unique id")
    elapsed_minutes: int = Field(ge=0, description="Parked duration in minutes")

    @field_validator('vehicle_id')
    @classmethod
    def validate_vehicle_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Vehicle id cannot be blank")
        return v


# ============================================================================
# OUTPUT DTOs
# ============================================================================

class LotSummaryDTO(BaseDTO):
    total_slots: int = Field(ge=0)
    counts: Dict[str, int]


class EntryResultDTO(BaseDTO):
    """DTO for an entry result"""
    status: EntryStatusDTO
    vehicle_id: str
    vehicle_class: Optional[VehicleClassDTO] = None
    ticket_id: Optional[str] = None
    slot_number: Optional[int] = Field(default=None, ge=1, description="1-based slot number")
    position: Optional[int] = Field(default=None, ge=1, description="1-based waitlist position")
    message: str = ""


class ReceiptDTO(BaseDTO):
    """Billing details for a released slot"""
    ticket_id: str
    vehicle_id: str
    vehicle_class: VehicleClassDTO
    slot_number: int = Field(ge=1)
    elapsed_minutes: int = Field(ge=0)
    billed_hours: int = Field(ge=1)
    rate: Decimal = Field(ge=0)
    fee: Decimal = Field(ge=0)


class ExitResultDTO(BaseDTO):
    """DTO for an exit result"""
    status: ExitStatusDTO
    vehicle_id: str
    receipt: Optional[ReceiptDTO] = None
    rebound: Optional[EntryResultDTO] = None
    message: str = ""


class OccupiedSlotDTO(BaseDTO):
    slot_number: int = Field(ge=1)
    vehicle_class: VehicleClassDTO
    vehicle_id: str
    ticket_id: str


class WaitlistEntryDTO(BaseDTO):
    position: int = Field(ge=1)
    vehicle_id: str
    vehicle_class: VehicleClassDTO


class AvailabilityDTO(BaseDTO):
    """Free slots per class, occupied slots and the waitlist front to back"""
    free_counts: Dict[str, int]
    total_free: int = Field(ge=0)
    occupied: List[OccupiedSlotDTO] = Field(default_factory=list)
    waitlist: List[WaitlistEntryDTO] = Field(default_factory=list)


class StatsDTO(BaseDTO):
    total_slots: int = Field(ge=0)
    occupied_count: int = Field(ge=0)
    occupancy_percent: Decimal = Field(ge=0, le=100)
    total_served: int = Field(ge=0)
    total_earnings: Decimal = Field(ge=0)
    rates: Dict[str, Decimal]
    currency: str = "Rs"


class SlotLayoutDTO(BaseDTO):
    slot_number: int = Field(ge=1)
    vehicle_class: VehicleClassDTO
    status: str
    vehicle_id: Optional[str] = None


class LayoutDTO(BaseDTO):
    slots: List[SlotLayoutDTO] = Field(default_factory=list)


# ============================================================================
# DTO FACTORY
# ============================================================================

class DTOFactory:
    """Maps domain results and snapshots to DTOs"""

    @staticmethod
    def entry_result(result: EntryResult) -> EntryResultDTO:
        if isinstance(result, Assigned):
            return EntryResultDTO(
                status=EntryStatusDTO.ASSIGNED,
                vehicle_id=result.vehicle_id,
                vehicle_class=result.vehicle_class.value,
                ticket_id=result.ticket_id,
                slot_number=result.slot_number,
                message=f"Ticket {result.ticket_id}: slot {result.slot_number}",
            )
        if isinstance(result, Queued):
            return EntryResultDTO(
                status=EntryStatusDTO.QUEUED,
                vehicle_id=result.vehicle_id,
                vehicle_class=result.vehicle_class.value,
                position=result.position,
                message=f"No free {result.vehicle_class} slots. Waitlist position {result.position}",
            )
        if isinstance(result, AlreadyParked):
            return EntryResultDTO(
                status=EntryStatusDTO.ALREADY_PARKED,
                vehicle_id=result.vehicle_id,
                slot_number=result.slot_number,
                message=f"Vehicle {result.vehicle_id} already parked in slot {result.slot_number}",
            )
        raise TypeError(f"Unknown entry result: {result!r}")

    @staticmethod
    def receipt(receipt: Receipt) -> ReceiptDTO:
        return ReceiptDTO(
            ticket_id=receipt.ticket_id,
            vehicle_id=receipt.vehicle_id,
            vehicle_class=receipt.vehicle_class.value,
            slot_number=receipt.slot_number,
            elapsed_minutes=receipt.elapsed_minutes,
            billed_hours=receipt.billed_hours,
            rate=receipt.rate,
            fee=receipt.fee,
        )

    @staticmethod
    def exit_result(result: ExitResult) -> ExitResultDTO:
        if isinstance(result, Receipt):
            rebound = DTOFactory.entry_result(result.rebound) if result.rebound else None
            return ExitResultDTO(
                status=ExitStatusDTO.EXITED,
                vehicle_id=result.vehicle_id,
                receipt=DTOFactory.receipt(result),
                rebound=rebound,
                message=f"Vehicle {result.vehicle_id} exited, fee {result.fee}",
            )
        if isinstance(result, NotParked):
            return ExitResultDTO(
                status=ExitStatusDTO.NOT_PARKED,
                vehicle_id=result.vehicle_id,
                message=f"Vehicle {result.vehicle_id} not found",
            )
        raise TypeError(f"Unknown exit result: {result!r}")

    @staticmethod
    def availability(snapshot: AvailabilitySnapshot) -> AvailabilityDTO:
        return AvailabilityDTO(
            free_counts={vc.value: count for vc, count in snapshot.free_counts.items()},
            total_free=snapshot.total_free,
            occupied=[
                OccupiedSlotDTO(
                    slot_number=view.slot_index + 1,
                    vehicle_class=view.vehicle_class.value,
                    vehicle_id=view.vehicle_id,
                    ticket_id=view.ticket_id,
                )
                for view in snapshot.occupied
            ],
            waitlist=[
                WaitlistEntryDTO(
                    position=view.position,
                    vehicle_id=view.vehicle_id,
                    vehicle_class=view.vehicle_class.value,
                )
                for view in snapshot.waitlist
            ],
        )

    @staticmethod
    def stats(snapshot: StatsSnapshot, currency: str = "Rs") -> StatsDTO:
        return StatsDTO(
            total_slots=snapshot.total_slots,
            occupied_count=snapshot.occupied_count,
            occupancy_percent=snapshot.occupancy_percent,
            total_served=snapshot.total_served,
            total_earnings=snapshot.total_earnings,
            rates={vc.value: rate for vc, rate in snapshot.rates.items()},
            currency=currency,
        )

    @staticmethod
    def layout(slots: Sequence[SlotView]) -> LayoutDTO:
        return LayoutDTO(slots=[
            SlotLayoutDTO(
                slot_number=view.slot_index + 1,
                vehicle_class=view.vehicle_class.value,
                status="OCC" if view.state is SlotState.OCCUPIED else "FREE",
                vehicle_id=view.vehicle_id,
            )
            for view in slots
        ])
