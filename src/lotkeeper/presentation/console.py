# File: src/lotkeeper/presentation/console.py
"""
Parking Lot Console

Text menu front-end for the parking service.

Menu:
1. Vehicle Entry
2. Vehicle Exit (enter duration)
3. Show Availability
4. Show Stats
5. Print Slots Layout
6. Set Rate per Hour
0. Exit

All text parsing and rendering lives here. Mutations go through the
CommandProcessor so they land in its audit history; reports are read
straight from the service. Slot numbers shown to the operator are 1-based.
"""

from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Optional, TextIO
import logging
import sys

from ..application.commands import (
    CommandProcessor, InitializeLotCommand, SetRateCommand,
    VehicleEntryCommand, VehicleExitCommand
)
from ..application.dtos import EntryResultDTO, EntryStatusDTO, ExitResultDTO
from ..application.parking_service import ParkingService
from ..domain.models import VehicleClass


VEHICLE_CLASS_TOKENS: Dict[str, VehicleClass] = {
    "car": VehicleClass.CAR,
    "c": VehicleClass.CAR,
    "bike": VehicleClass.BIKE,
    "b": VehicleClass.BIKE,
    "truck": VehicleClass.TRUCK,
    "t": VehicleClass.TRUCK,
}

MENU = (
    "\n----------------- Menu -----------------\n"
    "1. Vehicle Entry\n"
    "2. Vehicle Exit (enter duration)\n"
    "3. Show Availability\n"
    "4. Show Stats\n"
    "5. Print Slots Layout\n"
    "6. Set Rate per Hour\n"
    "0. Exit"
)


def parse_vehicle_class(token: str) -> Optional[VehicleClass]:
    """Map an operator token to a vehicle class (case-insensitive), None if unknown"""
    return VEHICLE_CLASS_TOKENS.get(token.strip().lower())


def _label(value: Optional[str]) -> str:
    return VehicleClass(value).label if value else "?"


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


class ConsoleClosed(Exception):
    """Input stream ended"""
    pass


class ParkingConsole:
    """
    Interactive menu loop

    input_func and output are injectable so the loop can be scripted.
    """

    def __init__(
        self,
        service: ParkingService,
        processor: Optional[CommandProcessor] = None,
        input_func: Callable[[str], str] = input,
        output: Optional[TextIO] = None
    ):
        self.service = service
        self.processor = processor or CommandProcessor(service)
        self.input_func = input_func
        self.output = output or sys.stdout
        self.logger = logging.getLogger(self.__class__.__name__)

        self._actions: Dict[int, Callable[[], None]] = {
            1: self.handle_entry,
            2: self.handle_exit,
            3: self.show_availability,
            4: self.show_stats,
            5: self.show_layout,
            6: self.handle_set_rate,
        }

    # ========================================================================
    # I/O HELPERS
    # ========================================================================

    def write(self, text: str = "") -> None:
        self.output.write(text + "\n")

    def ask(self, prompt: str) -> str:
        try:
            return self.input_func(prompt).strip()
        except EOFError:
            raise ConsoleClosed() from None

    def ask_non_negative_int(self, prompt: str) -> int:
        """Prompt until the operator enters a non-negative integer"""
        while True:
            raw = self.ask(prompt)
            try:
                value = int(raw)
            except ValueError:
                self.write(" ! Please enter a valid number.")
                continue
            if value < 0:
                self.write(" ! Please enter a non-negative number.")
                continue
            return value

    def ask_vehicle_class(self, prompt: str) -> Optional[VehicleClass]:
        token = self.ask(prompt)
        vehicle_class = parse_vehicle_class(token)
        if vehicle_class is None:
            self.write(f" ! Unknown vehicle type {token!r}. Use car/bike/truck.")
        return vehicle_class

    # ========================================================================
    # MAIN LOOP
    # ========================================================================

    def run(self, counts: Optional[Dict[str, Optional[int]]] = None) -> None:
        """Initialize the lot (prompting for missing counts), then serve the menu"""
        self.write("================ Parking Lot Management ================")
        try:
            self.setup_lot(counts or {})
            while self.step():
                pass
        except ConsoleClosed:
            self.logger.info("Input closed, leaving console")
        self.write("Goodbye!")

    def setup_lot(self, counts: Dict[str, Optional[int]]) -> None:
        prompts = (
            ("car", "Number of Car slots  : "),
            ("bike", "Number of Bike slots : "),
            ("truck", "Number of Truck slots: "),
        )
        resolved = {}
        for key, prompt in prompts:
            given = counts.get(key)
            resolved[key] = given if given is not None else self.ask_non_negative_int(prompt)

        result = self.processor.process(InitializeLotCommand(**resolved))
        if not result["success"]:
            raise ValueError(result["error"])
        self.write(f"\n{result['message']}")

    def step(self) -> bool:
        """Show the menu and run one choice; False when the operator quits"""
        self.write(MENU)
        raw = self.ask("Choose: ")
        try:
            choice = int(raw)
        except ValueError:
            self.write(" ! Invalid input.")
            return True

        if choice == 0:
            return False
        action = self._actions.get(choice)
        if action is None:
            self.write(" ! Invalid choice. Try again.")
            return True
        action()
        return True

    # ========================================================================
    # COMMAND HANDLERS
    # ========================================================================

    def handle_entry(self) -> None:
        vehicle_id = self.ask("Enter Vehicle ID: ")
        vehicle_class = self.ask_vehicle_class("Enter Type (car/bike/truck): ")
        if vehicle_class is None:
            return

        command = VehicleEntryCommand(vehicle_id, vehicle_class)
        result = self.processor.process(command)
        if command.result is None:
            self.write(f" ! {result['error']}")
            return
        self.render_entry(command.result)

    def handle_exit(self) -> None:
        vehicle_id = self.ask("Enter Vehicle ID to exit: ")
        minutes = self.ask_non_negative_int("Enter duration in minutes (e.g. 90): ")

        command = VehicleExitCommand(vehicle_id, minutes)
        result = self.processor.process(command)
        if command.result is None:
            self.write(f" ! {result['error']}")
            return
        self.render_exit(command.result)

    def handle_set_rate(self) -> None:
        vehicle_class = self.ask_vehicle_class("Type (car/bike/truck): ")
        if vehicle_class is None:
            return
        raw = self.ask("Rate per hour (numeric): ")
        try:
            rate = Decimal(raw)
        except InvalidOperation:
            self.write(" ! Invalid rate. Cancelled.")
            return
        if not rate.is_finite() or rate < 0:
            self.write(" ! Invalid rate. Cancelled.")
            return

        result = self.processor.process(SetRateCommand(vehicle_class, rate))
        if result["success"]:
            self.write("Rate set.")
        else:
            self.write(f" ! {result['error']}")

    # ========================================================================
    # RENDERING
    # ========================================================================

    def render_entry(self, result: EntryResultDTO) -> None:
        if result.status == EntryStatusDTO.ASSIGNED:
            self.write(
                f"\nTicket: {result.ticket_id}  | Vehicle: {result.vehicle_id}"
                f" | Type: {_label(result.vehicle_class)} | Slot#: {result.slot_number}"
            )
        elif result.status == EntryStatusDTO.QUEUED:
            self.write(
                f"\nNo free {_label(result.vehicle_class)} slots. "
                f"Added to waitlist position {result.position}"
            )
        else:
            self.write(f' ! Vehicle "{result.vehicle_id}" already parked in slot {result.slot_number}')

    def render_exit(self, result: ExitResultDTO) -> None:
        receipt = result.receipt
        if receipt is None:
            self.write(f' ! Vehicle "{result.vehicle_id}" not found.')
            return

        currency = self.service.settings.CURRENCY
        self.write("\nReceipt")
        self.write(f"  Ticket  : {receipt.ticket_id}")
        self.write(f"  Vehicle : {receipt.vehicle_id}")
        self.write(f"  Slot    : {receipt.slot_number} ({_label(receipt.vehicle_class)})")
        self.write(
            f"  Duration: {receipt.elapsed_minutes} minutes "
            f"({receipt.billed_hours} hour(s) billed)"
        )
        self.write(f"  Rate/hr : {currency} {_money(receipt.rate)}")
        self.write(f"  Amount  : {currency} {_money(receipt.fee)}")

        if result.rebound is not None:
            self.write(
                f'Freed slot {result.rebound.slot_number} assigned to waitlisted vehicle '
                f'"{result.rebound.vehicle_id}" | New Ticket: {result.rebound.ticket_id}'
            )

    def show_availability(self) -> None:
        availability = self.service.availability()
        counts = availability.free_counts
        self.write(
            f"\nAvailability: Free total = {availability.total_free}"
            f"  (Cars: {counts.get('car', 0)}, Bikes: {counts.get('bike', 0)},"
            f" Trucks: {counts.get('truck', 0)})"
        )

        self.write("\nOccupied slots:")
        for slot in availability.occupied:
            self.write(
                f"  Slot {slot.slot_number} | {_label(slot.vehicle_class)}"
                f" | Vehicle: {slot.vehicle_id} | Ticket: {slot.ticket_id}"
            )
        if not availability.occupied:
            self.write("  (none)")

        self.write(f"\nWaitlist size: {len(availability.waitlist)}")
        if availability.waitlist:
            self.write(" Front -> Back:")
            for entry in availability.waitlist:
                self.write(f"  {entry.position}. {entry.vehicle_id} ({_label(entry.vehicle_class)})")

    def show_stats(self) -> None:
        stats = self.service.stats()
        rates = stats.rates
        self.write("\n=== Parking Statistics ===")
        self.write(f"Total slots           : {stats.total_slots}")
        self.write(f"Currently occupied    : {stats.occupied_count}")
        self.write(f"Occupancy percent     : {_money(stats.occupancy_percent)}%")
        self.write(f"Total served (history): {stats.total_served}")
        self.write(f"Total earnings ({stats.currency})   : {_money(stats.total_earnings)}")
        self.write(
            f"Rates per hour ({stats.currency})   : "
            + ", ".join(f"{_label(key)}={_money(rates[key])}" for key in ("car", "bike", "truck") if key in rates)
        )

    def show_layout(self) -> None:
        layout = self.service.layout()
        self.write("\nSlots layout (Slot# : Type : Status)")
        for slot in layout.slots:
            status = f"OCC - {slot.vehicle_id}" if slot.status == "OCC" else "FREE"
            self.write(f"  {slot.slot_number} : {_label(slot.vehicle_class)} : {status}")
