"""
Event Bus - Operator-visible signals from the scheduler and review loop

Synchronous pub-sub: handlers run on the publisher's thread, in priority
order. A failing handler is logged and recorded in the dead letter queue;
it never interrupts the publisher or the remaining handlers.
"""

import threading
import traceback
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional, Any, Dict, List, Tuple

from ..models.messages import SystemEvent
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class EventSubscription:
    """Represents a subscription to an event type."""
    subscription_id: str
    event_type: str
    handler: Callable[[SystemEvent], Any]
    filter_func: Optional[Callable[[SystemEvent], bool]] = None
    priority: int = 5  # 1=highest, 10=lowest
    subscriber_name: str = "unknown"
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())


@dataclass
class EventRecord:
    """Record of an event that was published."""
    event: SystemEvent
    published_at: str
    handlers_succeeded: List[str]
    handlers_failed: List[str]


class EventBus:
    """
    Event bus for pub-sub messaging.

    Usage:
        bus = EventBus()

        def on_stall(event: SystemEvent):
            print(f"Stalled: {event['payload']['waiting']}")

        bus.subscribe("scheduler_stalled", on_stall, subscriber_name="console")
        scheduler = ExecutionScheduler(executor, summarizer, event_bus=bus)
    """

    def __init__(self, enable_history: bool = True, history_max_size: int = 1000):
        self.subscriptions: Dict[str, List[EventSubscription]] = defaultdict(list)
        self.wildcard_subscriptions: List[EventSubscription] = []

        self.enable_history = enable_history
        self.history_max_size = history_max_size
        self.event_history: List[EventRecord] = []
        self.dead_letter_queue: List[Tuple[SystemEvent, str]] = []

        self.stats = {
            "events_published": 0,
            "handlers_executed": 0,
            "handlers_failed": 0,
        }
        self._lock = threading.RLock()

    def subscribe(
        self,
        event_type: str,
        handler: Callable[[SystemEvent], Any],
        subscriber_name: str = "unknown",
        filter_func: Optional[Callable[[SystemEvent], bool]] = None,
        priority: int = 5
    ) -> str:
        """
        Subscribe to an event type.

        Args:
            event_type: Type of event to subscribe to (or "*" for all events)
            handler: Function to call when event occurs
            subscriber_name: Name of the subscriber (for logging)
            filter_func: Optional filter function (return True to receive event)
            priority: Handler priority (1=highest, 10=lowest)

        Returns:
            subscription_id: Unique subscription ID (for unsubscribing)
        """
        subscription = EventSubscription(
            subscription_id=str(uuid.uuid4()),
            event_type=event_type,
            handler=handler,
            filter_func=filter_func,
            priority=priority,
            subscriber_name=subscriber_name
        )

        with self._lock:
            if event_type == "*":
                self.wildcard_subscriptions.append(subscription)
                self.wildcard_subscriptions.sort(key=lambda s: s.priority)
            else:
                self.subscriptions[event_type].append(subscription)
                self.subscriptions[event_type].sort(key=lambda s: s.priority)

        logger.debug(f"[EVENTS] Subscription added: {subscriber_name} -> {event_type}")
        return subscription.subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a subscription; returns True if it existed."""
        with self._lock:
            buckets = [self.wildcard_subscriptions] + list(self.subscriptions.values())
            for subs in buckets:
                for i, sub in enumerate(subs):
                    if sub.subscription_id == subscription_id:
                        subs.pop(i)
                        logger.debug(f"[EVENTS] Subscription removed: {sub.subscriber_name}")
                        return True
        return False

    def publish(self, event: SystemEvent) -> None:
        """Deliver *event* to every matching subscriber."""
        event_type = event['event_type']
        logger.debug(f"[EVENTS] {event_type} from {event['source']}")

        with self._lock:
            self.stats["events_published"] += 1
            targets = list(self.subscriptions.get(event_type, [])) + list(self.wildcard_subscriptions)

        succeeded: List[str] = []
        failed: List[str] = []
        for subscription in targets:
            if subscription.filter_func and not subscription.filter_func(event):
                continue
            try:
                subscription.handler(event)
                succeeded.append(subscription.subscriber_name)
            except Exception as e:
                failed.append(subscription.subscriber_name)
                logger.error(
                    f"[EVENTS] Handler {subscription.subscriber_name} failed for event {event_type}: {e}"
                )
                logger.debug(traceback.format_exc())
                with self._lock:
                    self.dead_letter_queue.append((event, str(e)))
                    if len(self.dead_letter_queue) > self.history_max_size:
                        self.dead_letter_queue = self.dead_letter_queue[-self.history_max_size:]

        with self._lock:
            self.stats["handlers_executed"] += len(succeeded)
            self.stats["handlers_failed"] += len(failed)
            if self.enable_history:
                self.event_history.append(EventRecord(
                    event=event,
                    published_at=datetime.now().isoformat(),
                    handlers_succeeded=succeeded,
                    handlers_failed=failed,
                ))
                if len(self.event_history) > self.history_max_size:
                    self.event_history = self.event_history[-self.history_max_size:]

    def get_event_history(
        self,
        event_type: Optional[str] = None,
        limit: int = 100
    ) -> List[EventRecord]:
        """
        Get event history, optionally filtered.

        Returns:
            List of event records (most recent first)
        """
        with self._lock:
            history = self.event_history[::-1]
        if event_type:
            history = [r for r in history if r.event['event_type'] == event_type]
        return history[:limit]

    def get_statistics(self) -> Dict[str, Any]:
        """Get event bus statistics."""
        with self._lock:
            return {
                **self.stats,
                "active_subscriptions": sum(len(subs) for subs in self.subscriptions.values()),
                "wildcard_subscriptions": len(self.wildcard_subscriptions),
                "dead_letter_queue_size": len(self.dead_letter_queue),
                "history_size": len(self.event_history),
            }
