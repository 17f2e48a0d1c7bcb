"""
Agent event channel

Subscribers are plain callables invoked synchronously in subscription order,
so a test can record a run and assert the exact event sequence.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from learnflow.utils.logger import get_logger

logger = get_logger(__name__)


class AgentEventType(str, Enum):
    STARTED = "started"
    PROGRESS = "progress"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class AgentEvent:
    type: AgentEventType
    agent: str
    session_id: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None


EventCallback = Callable[[AgentEvent], None]


class AgentEventBus:
    """
    Typed callback registry.

    Example:
        bus = AgentEventBus()
        seen = []
        unsubscribe = bus.subscribe(seen.append)
        ...
        unsubscribe()
    """

    def __init__(self):
        self._subscribers: List[Tuple[int, EventCallback]] = []
        self._next_token = 0

    def subscribe(self, callback: EventCallback) -> Callable[[], None]:
        token = self._next_token
        self._next_token += 1
        self._subscribers.append((token, callback))

        def unsubscribe() -> None:
            self._subscribers = [(t, cb) for t, cb in self._subscribers if t != token]

        return unsubscribe

    def publish(self, event: AgentEvent) -> None:
        # snapshot: a subscriber may unsubscribe while being notified
        for _, callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Event subscriber failed on {event.type.value} from {event.agent}: {e}")

    def clear(self) -> None:
        self._subscribers = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
