# File: src/parkline/domain/models.py
"""
Domain Models for the Parkline slot allocation engine

This module contains:
1. Enums: the closed set of vehicle categories
2. Value Objects: Money, Ticket, WaitEntry and the operation outcomes
3. Entities: Slot, the only mutable record in the pool
4. Domain Events: records of state changes raised by the engine

Value objects are frozen dataclasses; a Ticket is never mutated after it
is issued.
"""

from abc import ABC
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Union
from datetime import datetime
from decimal import Decimal
from enum import Enum

from .exceptions import ParkingError


# ============================================================================
# ENUMS FOR DOMAIN TYPES
# ============================================================================

class VehicleType(Enum):
    """
    Enumeration of vehicle categories
    Slots are laid out in blocks in declaration order: cars, bikes, trucks
    """
    CAR = "car"
    BIKE = "bike"
    TRUCK = "truck"

    @classmethod
    def parse(cls, text: str) -> 'VehicleType':
        """
        Parse user input into a vehicle type
        Accepts the full name or its first letter, case-insensitive
        """
        lowered = (text or "").strip().lower()
        for vehicle_type in cls:
            if lowered in (vehicle_type.value, vehicle_type.value[0]):
                return vehicle_type
        raise ValueError(f"Invalid vehicle type: {text!r} (expected car, bike or truck)")

    def __str__(self) -> str:
        return self.name


# ============================================================================
# VALUE OBJECTS
# ============================================================================

@dataclass(frozen=True)
class Money:
    """
    Value Object: Monetary amount with currency
    Provides arithmetic operations with validation
    """
    amount: Decimal
    currency: str = "INR"

    def __post_init__(self):
        """Validate money amount"""
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))

        if self.amount < Decimal('0'):
            raise ValueError("Money amount cannot be negative")

        if len(self.currency) != 3:
            raise ValueError(f"Currency must be 3-letter code: {self.currency}")

    @classmethod
    def zero(cls, currency: str = "INR") -> 'Money':
        return cls(Decimal('0'), currency)

    def __add__(self, other: 'Money') -> 'Money':
        """Add two money amounts (same currency only)"""
        if self.currency != other.currency:
            raise ValueError(f"Cannot add {self.currency} to {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __mul__(self, multiplier: Union[int, Decimal]) -> 'Money':
        """Multiply money by a non-negative count or decimal"""
        if multiplier < 0:
            raise ValueError("Multiplier cannot be negative")
        return Money(self.amount * Decimal(multiplier), self.currency)

    def format(self) -> str:
        """Format money for display"""
        return f"{self.currency} {self.amount:.2f}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount": str(self.amount),
            "currency": self.currency
        }

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True)
class Ticket:
    """
    Value Object: one active occupancy
    ticket_id is "T<n>" with n increasing since the last initialization
    """
    ticket_id: str
    external_id: str
    vehicle_type: VehicleType
    slot_index: int

    @property
    def slot_number(self) -> int:
        """1-based slot number for display"""
        return self.slot_index + 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticket_id": self.ticket_id,
            "external_id": self.external_id,
            "vehicle_type": self.vehicle_type.value,
            "slot_index": self.slot_index
        }


@dataclass(frozen=True)
class WaitEntry:
    """Value Object: a request that could not be served immediately"""
    external_id: str
    vehicle_type: VehicleType
    sequence: int = 0


# ============================================================================
# DOMAIN ENTITIES
# ============================================================================

class Slot:
    """
    Entity: one parking slot with a fixed category
    Occupied if and only if it holds a ticket
    """

    def __init__(self, index: int, vehicle_type: VehicleType):
        self._index = index
        self._vehicle_type = vehicle_type
        self._ticket: Optional[Ticket] = None

    @property
    def index(self) -> int:
        return self._index

    @property
    def number(self) -> int:
        return self._index + 1

    @property
    def vehicle_type(self) -> VehicleType:
        return self._vehicle_type

    @property
    def is_occupied(self) -> bool:
        return self._ticket is not None

    @property
    def ticket(self) -> Optional[Ticket]:
        return self._ticket

    def assign_ticket(self, ticket: Ticket) -> None:
        """
        Occupy the slot with a ticket
        Raises: ParkingError if the slot is already occupied or the ticket
        belongs to another slot or category
        """
        if self._ticket is not None:
            raise ParkingError(f"Slot {self.number} is already occupied")
        if ticket.slot_index != self._index or ticket.vehicle_type != self._vehicle_type:
            raise ParkingError(f"Ticket {ticket.ticket_id} does not match slot {self.number}")
        self._ticket = ticket

    def release_ticket(self) -> Ticket:
        """Clear occupancy and return the released ticket"""
        if self._ticket is None:
            raise ParkingError(f"Slot {self.number} is not occupied")
        ticket, self._ticket = self._ticket, None
        return ticket

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self._index,
            "vehicle_type": self._vehicle_type.value,
            "is_occupied": self.is_occupied,
            "ticket": self._ticket.to_dict() if self._ticket else None
        }

    def __repr__(self) -> str:
        state = f"OCC - {self._ticket.external_id}" if self._ticket else "FREE"
        return f"Slot(index={self._index}, type={self._vehicle_type}, {state})"


# ============================================================================
# OPERATION OUTCOMES
# ============================================================================

@dataclass(frozen=True)
class Assigned:
    """Entry outcome: a slot was allocated immediately"""
    ticket_id: str
    slot_index: int
    vehicle_type: VehicleType
    external_id: str


@dataclass(frozen=True)
class Waitlisted:
    """Entry outcome: no slot was free, request queued at ``position`` (1-based)"""
    position: int
    vehicle_type: VehicleType
    external_id: str


EntryOutcome = Union[Assigned, Waitlisted]


@dataclass(frozen=True)
class Quote:
    """Result of a billing computation"""
    billed_hours: int
    rate: Money
    fee: Money


@dataclass(frozen=True)
class ExitOutcome:
    """
    Exit outcome: what was billed and who, if anyone, took over the slot
    duration_minutes is the clamped (non-negative) value actually billed
    """
    external_id: str
    ticket_id: str
    slot_index: int
    vehicle_type: VehicleType
    duration_minutes: int
    billed_hours: int
    rate: Money
    fee: Money
    promoted_waiter_id: Optional[str] = None
    promoted_ticket_id: Optional[str] = None

    @property
    def promoted(self) -> bool:
        return self.promoted_waiter_id is not None


# ============================================================================
# DOMAIN EVENTS
# ============================================================================

@dataclass(frozen=True)
class DomainEvent(ABC):
    """Base class for events raised by the allocation engine"""
    occurred_at: datetime = field(default_factory=datetime.now, compare=False)

    @property
    def event_name(self) -> str:
        return self.__class__.__name__.replace("Event", "")

    def payload(self) -> Dict[str, Any]:
        data = {}
        for name in self.__dataclass_fields__:
            if name == "occurred_at":
                continue
            value = getattr(self, name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, Money):
                value = value.to_dict()
            elif isinstance(value, dict):
                value = {getattr(k, "value", k): v for k, v in value.items()}
            data[name] = value
        return data


@dataclass(frozen=True)
class LotInitializedEvent(DomainEvent):
    counts: Dict[VehicleType, int] = field(default_factory=dict)


@dataclass(frozen=True)
class RateChangedEvent(DomainEvent):
    vehicle_type: Optional[VehicleType] = None
    rate: Optional[Money] = None


@dataclass(frozen=True)
class VehicleParkedEvent(DomainEvent):
    external_id: str = ""
    ticket_id: str = ""
    slot_index: int = -1
    vehicle_type: Optional[VehicleType] = None


@dataclass(frozen=True)
class VehicleWaitlistedEvent(DomainEvent):
    external_id: str = ""
    vehicle_type: Optional[VehicleType] = None
    position: int = 0


@dataclass(frozen=True)
class VehicleExitedEvent(DomainEvent):
    external_id: str = ""
    ticket_id: str = ""
    slot_index: int = -1
    vehicle_type: Optional[VehicleType] = None
    billed_hours: int = 0
    fee: Optional[Money] = None


@dataclass(frozen=True)
class WaitlistPromotedEvent(DomainEvent):
    external_id: str = ""
    ticket_id: str = ""
    slot_index: int = -1
    vehicle_type: Optional[VehicleType] = None


@dataclass(frozen=True)
class WaitCancelledEvent(DomainEvent):
    external_id: str = ""
    vehicle_type: Optional[VehicleType] = None
