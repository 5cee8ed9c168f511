"""
Change notifications for pool and claim activity.

Every committed state change emits one event carrying the token, account and
amounts involved plus the resulting schedule, so an off-chain indexer can
rebuild the ledger from the event stream alone.
"""
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional
import logging
import time

logger = logging.getLogger(__name__)

INCENTIVES_DEPOSITED = "incentives_deposited"
REWARDS_CLAIMED = "rewards_claimed"
ALLOWED_TOKEN_SET = "allowed_token_set"
ACCOUNT_CHECKPOINTED = "account_checkpointed"


@dataclass
class LedgerEvent:
    event_type: str
    data: Dict[str, Any]
    sequence: int
    emitted_at: float = field(default_factory=time.time)


class EventBus:
    """
    Synchronous pub/sub for ledger events.

    Listeners run in the emitting thread after the operation has committed;
    a failing listener is logged and never affects ledger state.
    """

    def __init__(self, history_size: int = 1000):
        self.listeners: Dict[str, List[Callable]] = {}
        self.history: Deque[LedgerEvent] = deque(maxlen=history_size)
        self._sequence = 0

    def subscribe(self, event_type: str, callback: Callable) -> None:
        self.listeners.setdefault(event_type, []).append(callback)
        logger.debug(f"Subscribed to event: {event_type}")

    def unsubscribe(self, event_type: str, callback: Callable) -> None:
        if event_type in self.listeners:
            try:
                self.listeners[event_type].remove(callback)
                logger.debug(f"Unsubscribed from event: {event_type}")
            except ValueError:
                logger.warning(f"Callback not found for event: {event_type}")

    def emit(self, event_type: str, **data: Any) -> LedgerEvent:
        """
        Records the event and delivers it to all subscribers.

        Args:
            event_type: Event name
            **data: Event payload as keyword arguments
        """
        self._sequence += 1
        event = LedgerEvent(event_type=event_type, data=dict(data), sequence=self._sequence)
        self.history.append(event)

        listeners = self.listeners.get(event_type, [])
        logger.debug(f"Emitting event #{event.sequence}: {event_type} to {len(listeners)} listener(s)")

        for callback in listeners:
            try:
                callback(**data)
            except Exception as e:
                logger.error(f"Error in event callback for {event_type}: {e}", exc_info=True)
        return event

    def events(self, event_type: Optional[str] = None) -> List[LedgerEvent]:
        if event_type is None:
            return list(self.history)
        return [e for e in self.history if e.event_type == event_type]

    def clear(self, event_type: str = None) -> None:
        """
        Clear listeners for an event type, or all listeners and history if no type specified.
        """
        if event_type:
            self.listeners.pop(event_type, None)
            logger.debug(f"Cleared listeners for event: {event_type}")
        else:
            self.listeners.clear()
            self.history.clear()
            logger.debug("Cleared all event listeners")


# Global event bus instance
event_bus = EventBus()
