"""Domain layer: slot allocation engine, its structures and billing"""

from .aggregates import AllocationEngine
from .models import (
    AlreadyParked, Assigned, Assignment, AvailabilitySnapshot, DuplicateVehicle,
    InvariantViolation, NotParked, Queued, Receipt, SlotState, StatsSnapshot,
    VehicleClass, VehicleNotFound
)
from .strategies import BillingPolicy

__all__ = [
    "AllocationEngine", "AlreadyParked", "Assigned", "Assignment",
    "AvailabilitySnapshot", "BillingPolicy", "DuplicateVehicle",
    "InvariantViolation", "NotParked", "Queued", "Receipt", "SlotState",
    "StatsSnapshot", "VehicleClass", "VehicleNotFound",
]
