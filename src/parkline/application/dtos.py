# File: src/parkline/application/dtos.py
"""
Data Transfer Objects (DTOs) for the parking application

DTOs carry data between the application service and its callers
(console, commands, tests):
1. Input DTOs - validated requests (entry, exit, rate change, layout)
2. Output DTOs - results of each use case, always with success/message
3. Report DTOs - snapshot, statistics and layout views

Every result DTO carries ``success``; failures also carry ``error_code``
(the domain exception's code) and a human-readable ``message``.
"""

from typing import Annotated, Dict, List, Optional, Any
from decimal import Decimal
from enum import Enum
import json

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field

from ..domain.models import ExitOutcome, Money, Ticket, VehicleType, WaitEntry
from ..domain.stats import CategoryStats, SlotView, Snapshot


# ============================================================================
# BASE DTO CLASSES
# ============================================================================

class BaseDTO(BaseModel):
    """Base DTO with common functionality"""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
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


class ResultDTO(BaseDTO):
    """Base DTO for use-case results"""
    success: bool
    message: Optional[str] = None
    error_code: Optional[str] = None


# ============================================================================
# ENUM DTOs
# ============================================================================

class VehicleTypeDTO(str, Enum):
    """Vehicle type DTO"""
    CAR = "car"
    BIKE = "bike"
    TRUCK = "truck"


class EntryStatusDTO(str, Enum):
    """How an entry request was resolved"""
    ASSIGNED = "assigned"
    WAITLISTED = "waitlisted"
    REJECTED = "rejected"


# ============================================================================
# COMMON VALUE OBJECT DTOs
# ============================================================================

class MoneyDTO(BaseDTO):
    """Money value object DTO"""
    amount: Decimal = Field(ge=0, description="Amount")
    currency: str = Field(default="INR", min_length=3, max_length=3, description="Currency code (ISO 4217)")

    @classmethod
    def from_money(cls, money: Money) -> 'MoneyDTO':
        return cls(amount=money.amount, currency=money.currency)

    def format(self) -> str:
        return f"{self.currency} {self.amount:.2f}"


class TicketDTO(BaseDTO):
    """Active ticket"""
    ticket_id: str
    external_id: str
    vehicle_type: VehicleTypeDTO
    slot_index: int = Field(ge=0)
    slot_number: int = Field(ge=1)

    @classmethod
    def from_ticket(cls, ticket: Ticket) -> 'TicketDTO':
        return cls(
            ticket_id=ticket.ticket_id,
            external_id=ticket.external_id,
            vehicle_type=ticket.vehicle_type.value,
            slot_index=ticket.slot_index,
            slot_number=ticket.slot_number,
        )


class WaitEntryDTO(BaseDTO):
    """Waiting request"""
    external_id: str
    vehicle_type: VehicleTypeDTO

    @classmethod
    def from_entry(cls, entry: WaitEntry) -> 'WaitEntryDTO':
        return cls(external_id=entry.external_id, vehicle_type=entry.vehicle_type.value)


# ============================================================================
# INPUT DTOs
# ============================================================================

def _strip_id(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Vehicle id cannot be empty")
    return value


def _parse_vehicle_type(value: Any) -> Any:
    """Accept 'car'/'c', 'bike'/'b', 'truck'/'t' in any case"""
    if isinstance(value, VehicleType):
        return value.value
    if isinstance(value, str):
        try:
            return VehicleType.parse(value).value
        except ValueError:
            return value
    return value


VehicleId = Annotated[str, Field(min_length=1, max_length=64), AfterValidator(_strip_id)]
VehicleTypeInput = Annotated[VehicleTypeDTO, BeforeValidator(_parse_vehicle_type)]


class InitializeLotRequestDTO(BaseDTO):
    """Slot counts per category"""
    cars: int = Field(default=0, ge=0)
    bikes: int = Field(default=0, ge=0)
    trucks: int = Field(default=0, ge=0)

    def to_counts(self) -> Dict[VehicleType, int]:
        return {
            VehicleType.CAR: self.cars,
            VehicleType.BIKE: self.bikes,
            VehicleType.TRUCK: self.trucks,
        }


class ParkingRequestDTO(BaseDTO):
    """Vehicle entry request"""
    external_id: VehicleId
    vehicle_type: VehicleTypeInput


class ExitRequestDTO(BaseDTO):
    """Vehicle exit request; negative durations are billed as zero"""
    external_id: VehicleId
    duration_minutes: int


class RateUpdateRequestDTO(BaseDTO):
    """Hourly rate change"""
    vehicle_type: VehicleTypeInput
    rate: Decimal


class CancelWaitRequestDTO(BaseDTO):
    """Withdraw a waiting request"""
    external_id: VehicleId


# ============================================================================
# OUTPUT DTOs
# ============================================================================

class ParkingAllocationDTO(ResultDTO):
    """Result of an entry request"""
    external_id: Optional[str] = None
    vehicle_type: Optional[VehicleTypeDTO] = None
    status: EntryStatusDTO = EntryStatusDTO.REJECTED
    ticket_id: Optional[str] = None
    slot_index: Optional[int] = None
    slot_number: Optional[int] = None
    waitlist_position: Optional[int] = None


class ParkingExitDTO(ResultDTO):
    """Result of an exit request (the receipt)"""
    external_id: Optional[str] = None
    ticket_id: Optional[str] = None
    slot_index: Optional[int] = None
    slot_number: Optional[int] = None
    vehicle_type: Optional[VehicleTypeDTO] = None
    duration_minutes: Optional[int] = None
    billed_hours: Optional[int] = None
    rate: Optional[MoneyDTO] = None
    fee: Optional[MoneyDTO] = None
    promoted_waiter_id: Optional[str] = None
    promoted_ticket_id: Optional[str] = None

    @classmethod
    def from_outcome(cls, outcome: ExitOutcome) -> 'ParkingExitDTO':
        return cls(
            success=True,
            message=f"Vehicle '{outcome.external_id}' left slot {outcome.slot_index + 1}",
            external_id=outcome.external_id,
            ticket_id=outcome.ticket_id,
            slot_index=outcome.slot_index,
            slot_number=outcome.slot_index + 1,
            vehicle_type=outcome.vehicle_type.value,
            duration_minutes=outcome.duration_minutes,
            billed_hours=outcome.billed_hours,
            rate=MoneyDTO.from_money(outcome.rate),
            fee=MoneyDTO.from_money(outcome.fee),
            promoted_waiter_id=outcome.promoted_waiter_id,
            promoted_ticket_id=outcome.promoted_ticket_id,
        )


class OperationResultDTO(ResultDTO):
    """Result of initialize / set_rate / cancel_wait"""
    details: Dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# REPORT DTOs
# ============================================================================

class CategoryStatsDTO(BaseDTO):
    vehicle_type: VehicleTypeDTO
    capacity: int
    free: int
    occupied: int
    waiting: int

    @classmethod
    def from_stats(cls, stats: CategoryStats) -> 'CategoryStatsDTO':
        return cls(
            vehicle_type=stats.vehicle_type.value,
            capacity=stats.capacity,
            free=stats.free,
            occupied=stats.occupied,
            waiting=stats.waiting,
        )


class LotSnapshotDTO(BaseDTO):
    """Availability, occupied slots and the waitlist"""
    total_slots: int
    free_total: int
    occupied_total: int
    free_by_category: Dict[str, int]
    occupied_slots: List[TicketDTO]
    waitlist: List[WaitEntryDTO]
    served_total: int
    earnings_total: MoneyDTO
    rates: Dict[str, MoneyDTO]
    occupancy_percent: Decimal

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> 'LotSnapshotDTO':
        return cls(
            total_slots=snapshot.total_slots,
            free_total=snapshot.free_total,
            occupied_total=snapshot.occupied_total,
            free_by_category={vt.value: n for vt, n in snapshot.free_by_category.items()},
            occupied_slots=[TicketDTO.from_ticket(t) for t in snapshot.occupied_slots],
            waitlist=[WaitEntryDTO.from_entry(e) for e in snapshot.waitlist],
            served_total=snapshot.served_total,
            earnings_total=MoneyDTO.from_money(snapshot.earnings_total),
            rates={vt.value: MoneyDTO.from_money(m) for vt, m in snapshot.rates.items()},
            occupancy_percent=snapshot.occupancy_percent,
        )


class LotStatisticsDTO(BaseDTO):
    """Historical and current statistics"""
    total_slots: int
    occupied_total: int
    occupancy_percent: Decimal
    served_total: int
    earnings_total: MoneyDTO
    rates: Dict[str, MoneyDTO]
    by_category: List[CategoryStatsDTO]


class SlotLayoutRowDTO(BaseDTO):
    slot_index: int
    slot_number: int
    vehicle_type: VehicleTypeDTO
    occupied: bool
    external_id: Optional[str] = None
    ticket_id: Optional[str] = None

    @classmethod
    def from_view(cls, view: SlotView) -> 'SlotLayoutRowDTO':
        return cls(
            slot_index=view.slot_index,
            slot_number=view.slot_number,
            vehicle_type=view.vehicle_type.value,
            occupied=view.is_occupied,
            external_id=view.ticket.external_id if view.ticket else None,
            ticket_id=view.ticket.ticket_id if view.ticket else None,
        )
