"""
Live unread counter for one inbox.

The count is never patched incrementally: every change notification triggers
a fresh count query, and when refreshes overlap only the most recently issued
one may store its result.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import AsyncIterator, Awaitable, Callable, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from ..config import settings
from ..realtime import format_sse, hub as default_hub
from ..services.messaging import MESSAGE_INSERTED, MESSAGE_UPDATED, unread_count

logger = logging.getLogger(__name__)

CountFn = Callable[[str], Union[int, Awaitable[int]]]


def inbox_filter(recipient_email: str):
    """Hub predicate: inserts/updates of messages addressed to `recipient_email`."""
    email = (recipient_email or "").lower()

    def _match(event: str, payload: dict) -> bool:
        if event not in (MESSAGE_INSERTED, MESSAGE_UPDATED):
            return False
        return (payload.get("recipient_email") or "").lower() == email

    return _match


def count_with_factory(session_factory, recipient_email: str) -> int:
    with session_factory() as db:
        return unread_count(db, recipient_email)


class UnreadCounter:
    def __init__(self, recipient_email: str, count: CountFn) -> None:
        self.recipient_email = recipient_email
        self._count = count
        self._issued = 0
        self.value = 0

    async def refresh(self) -> int:
        self._issued += 1
        token = self._issued
        try:
            if inspect.iscoroutinefunction(self._count):
                count = await self._count(self.recipient_email)
            else:
                count = await run_in_threadpool(self._count, self.recipient_email)
        except SQLAlchemyError as e:
            logger.error("unread count failed for %s: %s", self.recipient_email, e)
            count = 0
        if token == self._issued:
            self.value = count
        else:
            logger.debug("dropped stale unread count (token %s < %s)", token, self._issued)
        return self.value


async def watch_inbox(
    counter: UnreadCounter,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    keepalive: Optional[float] = None,
    feed=None,
) -> AsyncIterator[str]:
    """
    SSE stream of `unread_count` events for one inbox. The subscription lives
    exactly as long as this generator: it is cancelled however the stream ends.
    """
    feed = feed or default_hub
    keepalive = keepalive if keepalive is not None else settings.SSE_KEEPALIVE_SEC
    queue: asyncio.Queue = asyncio.Queue()
    sub = feed.subscribe(
        inbox_filter(counter.recipient_email),
        lambda event, payload: queue.put_nowait(event),
    )
    try:
        # opening comment keeps proxies from buffering the channel
        yield ": ok\n\n"
        yield format_sse("unread_count", {"count": await counter.refresh()})
        while True:
            if is_disconnected is not None and await is_disconnected():
                break
            try:
                await asyncio.wait_for(queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            # a burst of changes becomes one recount
            while not queue.empty():
                queue.get_nowait()
            yield format_sse("unread_count", {"count": await counter.refresh()})
    finally:
        sub.cancel()
