from __future__ import annotations

import asyncio
from typing import Any, Dict, Iterable, Optional, Set

import httpx

from services.events.publisher import EventPublisher
from shared.logging.logger import get_logger

log = get_logger("services.events.webhook")


class WebhookEventPublisher(EventPublisher):
    """
    POSTs each event's JSON document to a webhook URL.

    When called on a running event loop (the primary context) the request is
    scheduled as a task so publication never blocks the loop. Outside a loop
    the request runs to completion before publish() returns. Delivery is
    best-effort: HTTP failures are logged, never raised.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10,
        headers: Optional[Dict[str, str]] = None,
        events: Optional[Iterable[str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._headers = dict(headers or {})
        self._events = set(events) if events is not None else None
        self._transport = transport
        self._pending: Set[asyncio.Task] = set()

    # ------------------------------------------------------------

    def publish(self, event: Any) -> None:
        name = getattr(event, "name", type(event).__name__)
        if self._events is not None and name not in self._events:
            return

        doc = event.to_document()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is None:
            asyncio.run(self._post(doc))
            return

        task = loop.create_task(self._post(doc))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for in-flight deliveries (used during shutdown)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ------------------------------------------------------------

    async def _post(self, doc: Dict[str, Any]) -> bool:
        async with httpx.AsyncClient(
            timeout=self._timeout,
            headers=self._headers,
            transport=self._transport,
        ) as client:
            try:
                resp = await client.post(self._url, json=doc)
                resp.raise_for_status()
                log.debug(
                    f"[{doc.get('tournament_id')}] Webhook delivered: {doc.get('event')}"
                )
                return True
            except Exception as e:
                log.error(
                    f"[{doc.get('tournament_id')}] Webhook delivery failed "
                    f"({doc.get('event')}): {e}"
                )
                return False
