from services.events.publisher import CompositeEventPublisher, EventBus, EventPublisher
from services.events.state_file import StateFileEventPublisher
from services.events.webhook import WebhookEventPublisher

__all__ = [
    "EventPublisher",
    "EventBus",
    "CompositeEventPublisher",
    "StateFileEventPublisher",
    "WebhookEventPublisher",
]
