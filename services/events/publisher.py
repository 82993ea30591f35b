from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Type

from shared.logging.logger import get_logger

log = get_logger("services.events")

Subscriber = Callable[[Any], None]


class EventPublisher(ABC):
    """Delivers lifecycle notifications to whoever is listening."""

    @abstractmethod
    def publish(self, event: Any) -> None:
        raise NotImplementedError


class EventBus(EventPublisher):
    """
    In-process publish/subscribe keyed by event type.

    Subscribers run synchronously in registration order. A failing
    subscriber is logged and does not stop the others.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[Type, List[Subscriber]] = {}
        self._any: List[Subscriber] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------

    def subscribe(self, event_type: Type, subscriber: Subscriber) -> None:
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(subscriber)

    def subscribe_all(self, subscriber: Subscriber) -> None:
        with self._lock:
            self._any.append(subscriber)

    def unsubscribe(self, event_type: Type, subscriber: Subscriber) -> None:
        with self._lock:
            subs = self._subscribers.get(event_type, [])
            if subscriber in subs:
                subs.remove(subscriber)

    # ------------------------------------------------------------

    def publish(self, event: Any) -> None:
        with self._lock:
            targets = list(self._subscribers.get(type(event), [])) + list(self._any)

        for subscriber in targets:
            try:
                subscriber(event)
            except Exception as e:
                log.warning(
                    f"Subscriber error ignored for {type(event).__name__}: {e}"
                )


class CompositeEventPublisher(EventPublisher):
    """Fans one event out to several publishers."""

    def __init__(self, publishers: Iterable[EventPublisher]) -> None:
        self._publishers = list(publishers)

    def add(self, publisher: EventPublisher) -> None:
        self._publishers.append(publisher)

    def publish(self, event: Any) -> None:
        for publisher in self._publishers:
            try:
                publisher.publish(event)
            except Exception as e:
                log.warning(
                    f"{type(publisher).__name__} failed to publish "
                    f"{type(event).__name__}: {e}"
                )
