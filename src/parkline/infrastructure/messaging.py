# File: src/parkline/infrastructure/messaging.py
"""
Messaging Infrastructure for the parking engine

In-process publish/subscribe for the domain events raised by the
allocation engine:
1. Message types - EventType enum and the EventMessage envelope
2. Event Handlers - handler interface plus logging and storing handlers
3. Event Bus - synchronous in-memory publish/subscribe

A failing handler is logged and skipped; it never stops publication to
the remaining handlers.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Iterable
from datetime import datetime
import logging
import json
import threading
from dataclasses import dataclass, asdict, field
from enum import Enum
from uuid import UUID, uuid4

from ..domain.models import (
    DomainEvent, LotInitializedEvent, RateChangedEvent, VehicleParkedEvent,
    VehicleWaitlistedEvent, VehicleExitedEvent, WaitlistPromotedEvent,
    WaitCancelledEvent
)


# ============================================================================
# MESSAGE TYPES AND ENUMS
# ============================================================================

class EventType(str, Enum):
    """Domain event types published on the bus"""
    LOT_INITIALIZED = "lot.initialized"
    RATE_CHANGED = "rate.changed"
    VEHICLE_PARKED = "vehicle.parked"
    VEHICLE_WAITLISTED = "vehicle.waitlisted"
    VEHICLE_EXITED = "vehicle.exited"
    WAITLIST_PROMOTED = "waitlist.promoted"
    WAIT_CANCELLED = "wait.cancelled"


EVENT_TYPES = {
    LotInitializedEvent: EventType.LOT_INITIALIZED,
    RateChangedEvent: EventType.RATE_CHANGED,
    VehicleParkedEvent: EventType.VEHICLE_PARKED,
    VehicleWaitlistedEvent: EventType.VEHICLE_WAITLISTED,
    VehicleExitedEvent: EventType.VEHICLE_EXITED,
    WaitlistPromotedEvent: EventType.WAITLIST_PROMOTED,
    WaitCancelledEvent: EventType.WAIT_CANCELLED,
}


# ============================================================================
# MESSAGE BASE CLASSES
# ============================================================================

@dataclass
class EventMessage:
    """Envelope carrying one domain event over the bus"""
    event_type: EventType
    data: Dict[str, Any] = field(default_factory=dict)
    aggregate_id: Optional[str] = None
    version: int = 1
    message_id: UUID = field(default_factory=uuid4)
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_domain_event(
        cls,
        event: DomainEvent,
        aggregate_id: Optional[str] = None,
        version: int = 1
    ) -> 'EventMessage':
        try:
            event_type = EVENT_TYPES[type(event)]
        except KeyError:
            raise ValueError(f"Unsupported domain event: {event.__class__.__name__}") from None
        return cls(
            event_type=event_type,
            data=event.payload(),
            aggregate_id=aggregate_id,
            version=version,
            timestamp=event.occurred_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert message to dictionary"""
        data = asdict(self)
        data['event_type'] = self.event_type.value
        data['message_id'] = str(self.message_id)
        data['timestamp'] = self.timestamp.isoformat()
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


# ============================================================================
# EVENT HANDLERS
# ============================================================================

class EventHandler(ABC):
    """Abstract base class for event handlers"""

    @abstractmethod
    def handle(self, event: EventMessage) -> None:
        """Handle a domain event"""
        pass

    def can_handle(self, event: EventMessage) -> bool:
        """Check if this handler can handle the event"""
        return True


class LoggingEventHandler(EventHandler):
    """Writes every event to the audit logger"""

    def __init__(self, logger_name: str = "parkline.events"):
        self._logger = logging.getLogger(logger_name)

    def handle(self, event: EventMessage) -> None:
        self._logger.info(f"{event.event_type.value}: {json.dumps(event.data, default=str)}")


class InMemoryEventStore(EventHandler):
    """Keeps published events in arrival order (for auditing and tests)"""

    def __init__(self, max_events: Optional[int] = None):
        self._events: List[EventMessage] = []
        self._max_events = max_events
        self._lock = threading.Lock()

    def handle(self, event: EventMessage) -> None:
        with self._lock:
            self._events.append(event)
            if self._max_events is not None and len(self._events) > self._max_events:
                del self._events[:len(self._events) - self._max_events]

    def events(self, event_type: Optional[EventType] = None) -> List[EventMessage]:
        with self._lock:
            if event_type is None:
                return list(self._events)
            return [e for e in self._events if e.event_type == event_type]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        return len(self._events)


# ============================================================================
# EVENT BUS (In-memory)
# ============================================================================

class EventBus:
    """
    In-memory event bus for intra-process event publishing

    Implements publish/subscribe within the same process. Handlers run
    synchronously in subscription order.
    """

    def __init__(self):
        self._subscribers: Dict[EventType, List[EventHandler]] = {}
        self._global_subscribers: List[EventHandler] = []
        self._logger = logging.getLogger(self.__class__.__name__)

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Subscribe to events of a specific type"""
        handlers = self._subscribers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)
            self._logger.debug(f"Subscribed {handler.__class__.__name__} to {event_type.value}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe to every event type"""
        if handler not in self._global_subscribers:
            self._global_subscribers.append(handler)
            self._logger.debug(f"Subscribed {handler.__class__.__name__} to all events")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe handler from events"""
        if event_type in self._subscribers:
            try:
                self._subscribers[event_type].remove(handler)
                self._logger.debug(f"Unsubscribed {handler.__class__.__name__} from {event_type.value}")
            except ValueError:
                pass

    def publish(self, event: EventMessage) -> int:
        """
        Publish an event to all subscribers
        Returns: number of handlers that processed the event
        """
        self._logger.debug(f"Publishing event: {event.event_type.value} (ID: {event.message_id})")

        handled = 0
        handlers = self._subscribers.get(event.event_type, []) + self._global_subscribers
        for handler in handlers:
            if not handler.can_handle(event):
                continue
            try:
                handler.handle(event)
                handled += 1
            except Exception as e:
                self._logger.error(
                    f"Error handling event {event.event_type.value} with {handler.__class__.__name__}: {e}"
                )
        return handled

    def publish_all(self, events: Iterable[EventMessage]) -> None:
        for event in events:
            self.publish(event)

    def clear_subscribers(self) -> None:
        """Clear all subscribers (for testing)"""
        self._subscribers.clear()
        self._global_subscribers.clear()
