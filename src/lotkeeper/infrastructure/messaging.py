# File: src/lotkeeper/infrastructure/messaging.py
"""
Messaging Infrastructure for the Slot Allocation Engine

In-process publish/subscribe for the domain events raised by the
AllocationEngine. Handlers run synchronously in the publisher's thread;
a failing handler is logged and does not stop the others.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, List, Optional
import logging

from ..domain.models import DomainEvent


class EventType(str, Enum):
    """Domain event types"""
    LOT_INITIALIZED = "lot.initialized"
    VEHICLE_PARKED = "vehicle.parked"
    VEHICLE_QUEUED = "vehicle.queued"
    VEHICLE_EXITED = "vehicle.exited"
    SLOT_REBOUND = "slot.rebound"


# ============================================================================
# EVENT HANDLERS
# ============================================================================

class EventHandler(ABC):
    """Abstract base class for event handlers"""

    def can_handle(self, event: DomainEvent) -> bool:
        return True

    @abstractmethod
    def handle(self, event: DomainEvent) -> None:
        pass


class CallbackHandler(EventHandler):
    """Adapts a plain callable to the handler interface"""

    def __init__(self, callback: Callable[[DomainEvent], None]):
        self.callback = callback

    def handle(self, event: DomainEvent) -> None:
        self.callback(event)


class EventRecorder(EventHandler):
    """Keeps every handled event, newest last"""

    def __init__(self, max_events: int = 1000):
        self.max_events = max_events
        self.events: List[DomainEvent] = []

    def handle(self, event: DomainEvent) -> None:
        self.events.append(event)
        if len(self.events) > self.max_events:
            self.events = self.events[-self.max_events:]

    def of_type(self, event_type: EventType) -> List[DomainEvent]:
        return [e for e in self.events if e.event_type == event_type.value]

    def clear(self) -> None:
        self.events.clear()


# ============================================================================
# EVENT BUS
# ============================================================================

class EventBus:
    """
    In-memory event bus for intra-process event publishing

    Implements publish/subscribe within the same process. A handler
    subscribed with event_type=None receives every event.
    """

    def __init__(self):
        self._subscribers: Dict[Optional[EventType], List[EventHandler]] = {}
        self._logger = logging.getLogger(self.__class__.__name__)

    def subscribe(self, event_type: Optional[EventType], handler: EventHandler) -> None:
        """Subscribe to events of a specific type (None = all types)"""
        handlers = self._subscribers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)
            self._logger.debug(f"Subscribed {handler.__class__.__name__} to {event_type}")

    def unsubscribe(self, event_type: Optional[EventType], handler: EventHandler) -> None:
        handlers = self._subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            self._logger.debug(f"Unsubscribed {handler.__class__.__name__} from {event_type}")

    def publish(self, event: DomainEvent) -> None:
        """Publish an event to all matching subscribers"""
        event_type = EventType(event.event_type)
        self._logger.debug(f"Publishing event: {event_type.value} (ID: {event.event_id})")

        handlers = self._subscribers.get(event_type, []) + self._subscribers.get(None, [])
        for handler in handlers:
            if not handler.can_handle(event):
                continue
            try:
                handler.handle(event)
            except Exception as e:
                self._logger.error(
                    f"Error handling event {event_type.value} with {handler.__class__.__name__}: {e}",
                    exc_info=True
                )

    def publish_all(self, events: List[DomainEvent]) -> None:
        for event in events:
            self.publish(event)

    def clear_subscribers(self) -> None:
        """Clear all subscribers (for testing)"""
        self._subscribers.clear()
