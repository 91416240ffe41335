# File: src/lotkeeper/application/parking_service.py
"""
Parking Application Service

Orchestrates the use cases of the system on top of the AllocationEngine:
1. Build or rebuild the lot
2. Vehicle entry and exit
3. Rate updates
4. Availability, statistics and layout reports

Responsibilities:
- Accept validated request DTOs and return response DTOs
- Serialize every operation behind one lock (the engine state is a single
  consistency domain)
- Publish the engine's domain events once the lock is released
"""

from typing import List, Optional
import logging
import threading

from ..config import Settings
from ..domain.aggregates import AllocationEngine
from ..domain.models import DomainEvent
from ..domain.strategies import BillingPolicy
from ..infrastructure.messaging import EventBus
from .dtos import (
    AvailabilityDTO, DTOFactory, EntryRequestDTO, EntryResultDTO, ExitRequestDTO,
    ExitResultDTO, InitializeLotDTO, LayoutDTO, LotSummaryDTO, RateUpdateDTO,
    StatsDTO, to_vehicle_class
)


# ============================================================================
# EXCEPTIONS
# ============================================================================

class ParkingServiceError(Exception):
    """Base exception for parking service errors"""
    pass


class LotNotInitializedError(ParkingServiceError):
    """Raised when vehicles arrive or leave before the lot is built"""
    pass


# ============================================================================
# MAIN PARKING SERVICE
# ============================================================================

class ParkingService:
    """
    Main application service for the parking lot

    InvariantViolation raised by the engine is never caught here: it
    signals a bug, not a user error.
    """

    def __init__(
        self,
        engine: Optional[AllocationEngine] = None,
        event_bus: Optional[EventBus] = None,
        settings: type = Settings
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.settings = settings
        self.engine = engine or AllocationEngine(
            billing=BillingPolicy(settings.default_rates()),
            verify_invariants=settings.VERIFY_INVARIANTS,
        )
        self.event_bus = event_bus or EventBus()
        self._lock = threading.RLock()
        self.logger.info("ParkingService initialized")

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def initialize(self, request: InitializeLotDTO) -> LotSummaryDTO:
        """Rebuild the lot with the requested slot counts"""
        counts = request.counts()
        with self._lock:
            self.engine.initialize(counts)
            total = self.engine.stats().total_slots
            events = self.engine.clear_events()
        self._publish(events)
        return LotSummaryDTO(
            total_slots=total,
            counts={vc.value: count for vc, count in counts.items()},
        )

    def set_rate(self, request: RateUpdateDTO) -> None:
        vehicle_class = to_vehicle_class(request.vehicle_class)
        with self._lock:
            self.engine.set_rate(vehicle_class, request.rate)

    def vehicle_entry(self, request: EntryRequestDTO) -> EntryResultDTO:
        """
        Use Case: Vehicle Entry
        Assigns the nearest free slot of the class or waitlists the vehicle
        """
        self.logger.info(f"Processing entry request for {request.vehicle_id}")
        vehicle_class = to_vehicle_class(request.vehicle_class)
        with self._lock:
            self._require_initialized()
            result = self.engine.entry(request.vehicle_id, vehicle_class)
            events = self.engine.clear_events()
        self._publish(events)
        return DTOFactory.entry_result(result)

    def vehicle_exit(self, request: ExitRequestDTO) -> ExitResultDTO:
        """
        Use Case: Vehicle Exit
        Releases the slot, bills the stay and serves the class waitlist
        """
        self.logger.info(f"Processing exit request for {request.vehicle_id}")
        with self._lock:
            self._require_initialized()
            result = self.engine.exit(request.vehicle_id, request.elapsed_minutes)
            events = self.engine.clear_events()
        self._publish(events)
        return DTOFactory.exit_result(result)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def availability(self) -> AvailabilityDTO:
        with self._lock:
            snapshot = self.engine.availability()
        return DTOFactory.availability(snapshot)

    def stats(self) -> StatsDTO:
        with self._lock:
            snapshot = self.engine.stats()
        return DTOFactory.stats(snapshot, currency=self.settings.CURRENCY)

    def layout(self) -> LayoutDTO:
        with self._lock:
            slots = self.engine.layout()
        return DTOFactory.layout(slots)

    @property
    def is_initialized(self) -> bool:
        with self._lock:
            return self.engine.is_initialized

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_initialized(self) -> None:
        if not self.engine.is_initialized:
            raise LotNotInitializedError("Parking lot has not been initialized")

    def _publish(self, events: List[DomainEvent]) -> None:
        self.event_bus.publish_all(events)
