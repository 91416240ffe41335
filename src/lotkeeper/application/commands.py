# File: src/lotkeeper/application/commands.py
"""
Command Pattern Implementation for the Parking Lot

Each operator action is a command object that validates its raw input into
a request DTO, executes against the ParkingService and records an audit
entry in the CommandProcessor history.

Command Types:
1. InitializeLotCommand - (re)build the slot pool
2. VehicleEntryCommand  - park or waitlist a vehicle
3. VehicleExitCommand   - release, bill and serve the waitlist
4. SetRateCommand       - change the hourly rate of a class

Results are dictionaries with a "success" flag. User-level rejections
(validation errors, already parked, not parked) are reported as
success=False; InvariantViolation is not caught and propagates.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple, Union
import logging
import uuid

from pydantic import ValidationError

from .dtos import (
    BaseDTO, EntryRequestDTO, EntryStatusDTO, ExitRequestDTO, ExitStatusDTO,
    InitializeLotDTO, RateUpdateDTO
)
from .parking_service import ParkingService, ParkingServiceError


def _validation_messages(error: ValidationError) -> List[str]:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        messages.append(f"{location}: {item.get('msg')}" if location else item.get("msg", ""))
    return messages


# ============================================================================
# COMMAND BASE CLASS
# ============================================================================

class Command(ABC):
    """
    Abstract base class for all commands

    A command represents an intent to change the system state.
    Commands are named in the imperative (e.g., VehicleEntryCommand).
    """

    def __init__(self, command_id: Optional[str] = None):
        self.command_id = command_id or str(uuid.uuid4())
        self.executed_at: Optional[datetime] = None
        self.logger = logging.getLogger(self.__class__.__name__)
        self.request: Optional[BaseDTO] = None
        self.result: Optional[BaseDTO] = None
        self.metadata = {
            "command_id": self.command_id,
            "command_type": self.__class__.__name__,
            "created_at": datetime.now().isoformat()
        }

    @abstractmethod
    def build_request(self) -> BaseDTO:
        """Turn raw command input into a validated request DTO"""
        pass

    @abstractmethod
    def _run(self, service: ParkingService, request: BaseDTO) -> Dict[str, Any]:
        pass

    def validate(self) -> Tuple[bool, List[str]]:
        """
        Validate command parameters before execution

        Returns: (is_valid, error_messages)
        """
        try:
            self.request = self.build_request()
        except ValidationError as e:
            return False, _validation_messages(e)
        return True, []

    def execute(self, service: ParkingService) -> Dict[str, Any]:
        """Validate, then execute against the service"""
        is_valid, errors = self.validate()
        if not is_valid:
            return {
                "success": False,
                "command_id": self.command_id,
                "error": f"Validation failed: {'; '.join(errors)}",
                "errors": errors,
            }

        try:
            outcome = self._run(service, self.request)
        except ParkingServiceError as e:
            self.logger.warning(f"{self.get_description()} rejected: {e}")
            return {"success": False, "command_id": self.command_id, "error": str(e)}

        self.executed_at = datetime.now()
        outcome["command_id"] = self.command_id
        return outcome

    def get_description(self) -> str:
        """Get human-readable command description"""
        return self.__class__.__name__.replace("Command", "")

    def to_dict(self) -> Dict[str, Any]:
        """Convert command to dictionary for the audit history"""
        return {
            "command_id": self.command_id,
            "command_type": self.__class__.__name__,
            "description": self.get_description(),
            "metadata": self.metadata,
            "executed_at": self.executed_at.isoformat() if self.executed_at else None,
            "request": self.request.to_dict(mode="json") if self.request else None,
            "result": self.result.to_dict(mode="json") if self.result else None,
        }


# ============================================================================
# CONCRETE COMMANDS
# ============================================================================

class InitializeLotCommand(Command):
    """Command: rebuild the lot with the given slot counts"""

    def __init__(self, car: Any = 0, bike: Any = 0, truck: Any = 0):
        super().__init__()
        self.raw = {"car": car, "bike": bike, "truck": truck}

    def build_request(self) -> InitializeLotDTO:
        return InitializeLotDTO(**self.raw)

    def _run(self, service: ParkingService, request: InitializeLotDTO) -> Dict[str, Any]:
        self.result = service.initialize(request)
        return {
            "success": True,
            "data": self.result.to_dict(),
            "message": f"Parking initialized: total slots = {self.result.total_slots}",
        }

    def get_description(self) -> str:
        return "Initialize Lot ({car} car, {bike} bike, {truck} truck)".format(**self.raw)


class VehicleEntryCommand(Command):
    """Command: park a vehicle or place it on the waitlist"""

    def __init__(self, vehicle_id: str, vehicle_class: Any):
        super().__init__()
        self.vehicle_id = vehicle_id
        self.vehicle_class = vehicle_class

    def build_request(self) -> EntryRequestDTO:
        vehicle_class = getattr(self.vehicle_class, "value", self.vehicle_class)
        return EntryRequestDTO(vehicle_id=self.vehicle_id, vehicle_class=vehicle_class)

    def _run(self, service: ParkingService, request: EntryRequestDTO) -> Dict[str, Any]:
        self.result = service.vehicle_entry(request)
        accepted = self.result.status != EntryStatusDTO.ALREADY_PARKED
        outcome = {
            "success": accepted,
            "data": self.result.to_dict(),
            "status": self.result.status,
        }
        outcome["message" if accepted else "error"] = self.result.message
        return outcome

    def get_description(self) -> str:
        return f"Vehicle Entry {self.vehicle_id}"


class VehicleExitCommand(Command):
    """Command: release a vehicle's slot and bill the stay"""

    def __init__(self, vehicle_id: str, elapsed_minutes: Any):
        super().__init__()
        self.vehicle_id = vehicle_id
        self.elapsed_minutes = elapsed_minutes

    def build_request(self) -> ExitRequestDTO:
        return ExitRequestDTO(vehicle_id=self.vehicle_id, elapsed_minutes=self.elapsed_minutes)

    def _run(self, service: ParkingService, request: ExitRequestDTO) -> Dict[str, Any]:
        self.result = service.vehicle_exit(request)
        exited = self.result.status == ExitStatusDTO.EXITED
        outcome = {
            "success": exited,
            "data": self.result.to_dict(),
            "status": self.result.status,
        }
        if exited:
            outcome["message"] = self.result.message
            outcome["total_fee"] = self.result.receipt.fee
        else:
            outcome["error"] = self.result.message
        return outcome

    def get_description(self) -> str:
        return f"Vehicle Exit {self.vehicle_id}"


class SetRateCommand(Command):
    """Command: change the hourly rate of a vehicle class"""

    def __init__(self, vehicle_class: Any, rate: Union[Decimal, str, float, int]):
        super().__init__()
        self.vehicle_class = vehicle_class
        self.rate = rate

    def build_request(self) -> RateUpdateDTO:
        vehicle_class = getattr(self.vehicle_class, "value", self.vehicle_class)
        return RateUpdateDTO(vehicle_class=vehicle_class, rate=self.rate)

    def _run(self, service: ParkingService, request: RateUpdateDTO) -> Dict[str, Any]:
        service.set_rate(request)
        return {
            "success": True,
            "data": request.to_dict(),
            "message": f"Rate for {request.vehicle_class} set to {request.rate}",
        }

    def get_description(self) -> str:
        return f"Set Rate {self.vehicle_class}={self.rate}"


# ============================================================================
# COMMAND PROCESSOR
# ============================================================================

class CommandProcessor:
    """
    Executes commands and keeps an audit history of the successful ones
    """

    def __init__(self, service: ParkingService, max_history_size: int = 1000):
        self.service = service
        self.logger = logging.getLogger(self.__class__.__name__)
        self.command_history: List[Command] = []
        self.max_history_size = max_history_size

    def process(self, command: Command) -> Dict[str, Any]:
        """
        Process a command

        Returns: Execution result
        """
        self.logger.info(f"Processing command: {command.get_description()}")
        result = command.execute(self.service)
        if result.get("success", False):
            self._add_to_history(command)
        else:
            self.logger.info(f"Command {command.get_description()} failed: {result.get('error')}")
        return result

    def process_batch(self, commands: List[Command]) -> List[Dict[str, Any]]:
        """Process multiple commands in order"""
        return [self.process(command) for command in commands]

    def get_history(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        history = self.command_history.copy()
        if limit:
            history = history[-limit:]
        return [cmd.to_dict() for cmd in history]

    def clear_history(self) -> None:
        self.command_history.clear()

    def _add_to_history(self, command: Command) -> None:
        self.command_history.append(command)
        if len(self.command_history) > self.max_history_size:
            self.command_history = self.command_history[-self.max_history_size:]
