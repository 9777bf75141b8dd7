# crankslist/realtime.py
import inspect
import itertools
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

logger = logging.getLogger(__name__)

Predicate = Callable[[str, dict], bool]
Handler = Callable[[str, dict], Union[None, Awaitable[None]]]


def format_sse(event: str, payload: dict) -> str:
    """event: <name>\\ndata: <json>\\n\\n"""
    data = json.dumps(payload, ensure_ascii=False)
    return f"event: {event}\ndata: {data}\n\n"


class Subscription:
    """Handle returned by `hub.subscribe`; `cancel()` is idempotent."""

    def __init__(self, hub: "_Hub", sub_id: int, predicate: Predicate, handler: Handler) -> None:
        self._hub = hub
        self.id = sub_id
        self.predicate = predicate
        self.handler = handler

    @property
    def active(self) -> bool:
        return self.id in self._hub._subs

    def cancel(self) -> None:
        self._hub._subs.pop(self.id, None)


class _Hub:
    """In-process change feed: publishers announce row changes, subscribers filter them."""

    def __init__(self) -> None:
        self._subs: Dict[int, Subscription] = {}
        self._ids = itertools.count(1)

    def subscribe(self, predicate: Optional[Predicate], handler: Handler) -> Subscription:
        sub = Subscription(self, next(self._ids), predicate or (lambda event, payload: True), handler)
        self._subs[sub.id] = sub
        return sub

    @property
    def subscriber_count(self) -> int:
        return len(self._subs)

    async def publish(self, event: str, payload: Dict[str, Any]) -> int:
        """
        Run every matching handler. A failing handler is logged and does not
        stop the others. Returns how many handlers ran.
        """
        delivered = 0
        for sub in list(self._subs.values()):
            try:
                if not sub.predicate(event, payload):
                    continue
                result = sub.handler(event, payload)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception:
                logger.exception("realtime handler failed (event=%s, sub=%s)", event, sub.id)
        return delivered


hub = _Hub()
