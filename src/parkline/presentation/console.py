# File: src/parkline/presentation/console.py
"""
Interactive console for the parking lot

A thin menu loop over the CommandProcessor / ParkingService:
- prompts re-ask until a valid non-negative number is entered
- slot numbers are shown 1-based
- receipts and reports are rendered from the service's DTOs

Input and output streams are injectable so the loop can be driven from
tests.
"""

from typing import Callable, Dict, List, Optional, TextIO
import logging
import sys

from ..application.commands import (
    CancelWaitCommand, CommandProcessor, CommandResult, ExitVehicleCommand,
    InitializeLotCommand, ParkVehicleCommand, SetRateCommand
)
from ..application.dtos import (
    EntryStatusDTO, LotSnapshotDTO, LotStatisticsDTO, ParkingAllocationDTO,
    ParkingExitDTO, SlotLayoutRowDTO
)
from ..application.parking_service import ParkingService


MENU = """
----------------- Menu -----------------
1. Vehicle Entry
2. Vehicle Exit (enter duration)
3. Show Availability
4. Show Stats
5. Print Slots Layout
6. Set Rate per Hour
7. Cancel Waitlist Entry
0. Exit"""


# ============================================================================
# RENDERING
# ============================================================================

def render_allocation(dto: ParkingAllocationDTO) -> str:
    if not dto.success:
        return f"! {dto.message}"
    if dto.status == EntryStatusDTO.WAITLISTED:
        return (f"No free {dto.vehicle_type.upper()} slots. "
                f"Added to waitlist position {dto.waitlist_position}")
    return (f"Ticket: {dto.ticket_id}  | Vehicle: {dto.external_id} "
            f"| Type: {dto.vehicle_type.upper()} | Slot#: {dto.slot_number}")


def render_receipt(dto: ParkingExitDTO) -> str:
    if not dto.success:
        return f"! {dto.message}"
    lines = [
        "Receipt",
        f"  Vehicle : {dto.external_id}",
        f"  Ticket  : {dto.ticket_id}",
        f"  Slot    : {dto.slot_number} ({dto.vehicle_type.upper()})",
        f"  Duration: {dto.duration_minutes} minutes ({dto.billed_hours} hour(s) billed)",
        f"  Rate/hr : {dto.rate.format()}",
        f"  Amount  : {dto.fee.format()}",
    ]
    if dto.promoted_waiter_id:
        lines.append(
            f"Freed slot {dto.slot_number} assigned to waitlisted vehicle "
            f"\"{dto.promoted_waiter_id}\" | New Ticket: {dto.promoted_ticket_id}"
        )
    return "\n".join(lines)


def render_availability(snapshot: LotSnapshotDTO) -> str:
    free = snapshot.free_by_category
    lines = [
        f"Availability: Free total = {snapshot.free_total}  "
        f"(Cars: {free.get('car', 0)}, Bikes: {free.get('bike', 0)}, Trucks: {free.get('truck', 0)})",
        "",
        "Occupied slots:",
    ]
    if snapshot.occupied_slots:
        for ticket in snapshot.occupied_slots:
            lines.append(
                f"  Slot {ticket.slot_number} | {ticket.vehicle_type.upper()} "
                f"| Vehicle: {ticket.external_id} | Ticket: {ticket.ticket_id}"
            )
    else:
        lines.append("  (none)")

    lines.append("")
    lines.append(f"Waitlist size: {len(snapshot.waitlist)}")
    if snapshot.waitlist:
        lines.append(" Front -> Back:")
        for position, entry in enumerate(snapshot.waitlist, start=1):
            lines.append(f"  {position}. {entry.external_id} ({entry.vehicle_type.upper()})")
    return "\n".join(lines)


def render_statistics(stats: LotStatisticsDTO) -> str:
    rates = ", ".join(f"{vt.upper()}={money.amount:.2f}" for vt, money in stats.rates.items())
    lines = [
        "=== Parking Statistics ===",
        f"Total slots           : {stats.total_slots}",
        f"Currently occupied    : {stats.occupied_total}",
        f"Occupancy percent     : {stats.occupancy_percent:.2f}%",
        f"Total served (history): {stats.served_total}",
        f"Total earnings        : {stats.earnings_total.format()}",
        f"Rates per hour        : {rates}",
    ]
    for category in stats.by_category:
        lines.append(
            f"  {category.vehicle_type.upper():<5} capacity {category.capacity}, "
            f"free {category.free}, occupied {category.occupied}, waiting {category.waiting}"
        )
    return "\n".join(lines)


def render_layout(rows: List[SlotLayoutRowDTO]) -> str:
    lines = ["Slots layout (Slot# : Type : Status)"]
    for row in rows:
        status = f"OCC - {row.external_id}" if row.occupied else "FREE"
        lines.append(f"  {row.slot_number} : {row.vehicle_type.upper()} : {status}")
    if not rows:
        lines.append("  (no slots)")
    return "\n".join(lines)


# ============================================================================
# MENU LOOP
# ============================================================================

class ParkingConsole:
    """Menu-driven front-end"""

    def __init__(
        self,
        service: ParkingService,
        processor: Optional[CommandProcessor] = None,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None
    ):
        self.service = service
        self.processor = processor or CommandProcessor(service)
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.logger = logging.getLogger(self.__class__.__name__)

        self._actions: Dict[str, Callable[[], None]] = {
            "1": self.vehicle_entry,
            "2": self.vehicle_exit,
            "3": self.show_availability,
            "4": self.show_statistics,
            "5": self.show_layout,
            "6": self.set_rate,
            "7": self.cancel_wait,
        }

    # ------------------------------------------------------------------
    # I/O helpers
    # ------------------------------------------------------------------

    def write(self, text: str = "") -> None:
        self.stdout.write(text + "\n")
        self.stdout.flush()

    def prompt(self, text: str) -> str:
        """Read one stripped line; raises EOFError when input is exhausted"""
        self.stdout.write(text)
        self.stdout.flush()
        line = self.stdin.readline()
        if not line:
            raise EOFError
        return line.strip()

    def prompt_non_negative_int(self, text: str) -> int:
        """Re-ask until the answer is a non-negative integer"""
        while True:
            answer = self.prompt(text)
            try:
                value = int(answer)
            except ValueError:
                self.write(" ! Please enter a valid number.")
                continue
            if value < 0:
                self.write(" ! Please enter a non-negative number.")
                continue
            return value

    def _report(self, result: CommandResult, render: Optional[Callable] = None) -> None:
        if result.result is not None and render is not None:
            self.write(render(result.result))
        elif result.success:
            self.write(result.message or "Done.")
        else:
            self.write(f" ! {result.message}")

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def setup_lot(self) -> None:
        """Ask for the number of slots of each type and initialize the lot"""
        cars = self.prompt_non_negative_int("Number of Car slots  : ")
        bikes = self.prompt_non_negative_int("Number of Bike slots : ")
        trucks = self.prompt_non_negative_int("Number of Truck slots: ")
        self._report(self.processor.process(InitializeLotCommand(cars=cars, bikes=bikes, trucks=trucks)))

    def vehicle_entry(self) -> None:
        external_id = self.prompt("Enter Vehicle ID: ")
        vehicle_type = self.prompt("Enter Type (car/bike/truck): ")
        command = ParkVehicleCommand(external_id=external_id, vehicle_type=vehicle_type)
        self._report(self.processor.process(command), render_allocation)

    def vehicle_exit(self) -> None:
        external_id = self.prompt("Enter Vehicle ID to exit: ")
        minutes = self.prompt_non_negative_int("Enter duration in minutes (e.g. 90): ")
        command = ExitVehicleCommand(external_id=external_id, duration_minutes=minutes)
        self._report(self.processor.process(command), render_receipt)

    def show_availability(self) -> None:
        self.write(render_availability(self.service.get_snapshot()))

    def show_statistics(self) -> None:
        self.write(render_statistics(self.service.get_statistics()))

    def show_layout(self) -> None:
        self.write(render_layout(self.service.get_layout()))

    def set_rate(self) -> None:
        vehicle_type = self.prompt("Type (car/bike/truck): ")
        rate = self.prompt("Rate per hour (numeric): ")
        result = self.processor.process(SetRateCommand(vehicle_type=vehicle_type, rate=rate))
        if not result.success:
            self.write(f" ! Invalid rate. Cancelled. ({result.message})")
            return
        self._report(result)

    def cancel_wait(self) -> None:
        external_id = self.prompt("Enter Vehicle ID to remove from waitlist: ")
        self._report(self.processor.process(CancelWaitCommand(external_id=external_id)))

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def run(self, ask_for_layout: bool = False) -> int:
        """Run the menu until '0' or end of input; returns the exit status"""
        self.write("================ Parking Lot Management ================")
        try:
            if ask_for_layout:
                self.setup_lot()

            while True:
                self.write(MENU)
                choice = self.prompt("Choose: ")
                if choice == "0":
                    self.write("Goodbye!")
                    break
                action = self._actions.get(choice)
                if action is None:
                    self.write(" ! Invalid choice. Try again.")
                    continue
                action()
        except (EOFError, KeyboardInterrupt):
            self.logger.debug("Input closed, leaving console")
            self.write("")
        return 0
