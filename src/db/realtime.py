"""
In-process change feed for the document store.

A subscriber registers a loader (a coroutine returning a snapshot) against one
or more collections. The loader runs once right after subscribing and again
every time a write is published on one of those collections; each result is
handed to ``on_next``. ``subscribe`` returns a ``Subscription`` that must be
released when the caller goes away.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set, Union

from utils.logger import get_logger

_logger = get_logger(__name__)

Loader = Callable[[], Awaitable[Any]]
OnNext = Callable[[Any], Any]
OnError = Callable[[BaseException], Any]


class Subscription:
    """Cancellation token returned by ChangeFeed.subscribe."""

    def __init__(
        self,
        feed: "ChangeFeed",
        collections: Set[str],
        loader: Loader,
        on_next: OnNext,
        on_error: Optional[OnError],
    ) -> None:
        self._feed = feed
        self.collections = collections
        self._loader = loader
        self._on_next = on_next
        self._on_error = on_error
        self._task: Optional[asyncio.Task] = None
        self._dirty = False
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._feed._remove(self)
        task = self._task
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
        _logger.debug(f"Unsubscribed from {sorted(self.collections)}")

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.unsubscribe()

    def _schedule(self) -> None:
        if not self.active:
            return
        if self._task and not self._task.done():
            # a load is running; make it go round once more
            self._dirty = True
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            self._dirty = False
            await self._deliver()
            if not self._dirty or not self.active:
                return

    async def _deliver(self) -> None:
        try:
            snapshot = await self._loader()
            if self.active:
                await _maybe_await(self._on_next(snapshot))
        except Exception as e:
            if not self.active:
                return
            _logger.error(f"Snapshot for {sorted(self.collections)} failed: {e}")
            if self._on_error is None:
                raise
            await _maybe_await(self._on_error(e))

    async def wait(self) -> None:
        """Wait for the delivery in flight, if any."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)


async def _maybe_await(value: Any) -> None:
    if inspect.isawaitable(value):
        await value


class SubscriptionGroup:
    """Holds every subscription a screen opened; release_all on unmount."""

    def __init__(self) -> None:
        self._subs: List[Subscription] = []

    def add(self, sub: Subscription) -> Subscription:
        self._subs.append(sub)
        return sub

    def release(self, sub: Subscription) -> None:
        """Unsubscribe one subscription and stop tracking it."""
        sub.unsubscribe()
        if sub in self._subs:
            self._subs.remove(sub)

    def release_all(self) -> None:
        while self._subs:
            self._subs.pop().unsubscribe()

    def __len__(self) -> int:
        return len(self._subs)

    def __enter__(self) -> "SubscriptionGroup":
        return self

    def __exit__(self, *exc) -> None:
        self.release_all()


class ChangeFeed:
    def __init__(self) -> None:
        self._subs: Dict[str, List[Subscription]] = defaultdict(list)

    def subscribe(
        self,
        collections: Union[str, Iterable[str]],
        loader: Loader,
        on_next: OnNext,
        on_error: Optional[OnError] = None,
    ) -> Subscription:
        """Must be called from inside the running event loop."""
        if isinstance(collections, str):
            collections = {collections}
        sub = Subscription(self, set(collections), loader, on_next, on_error)
        for c in sub.collections:
            self._subs[c].append(sub)
        _logger.debug(f"Subscribed to {sorted(sub.collections)}")
        sub._schedule()
        return sub

    def publish(self, collection: str) -> None:
        for sub in list(self._subs.get(collection, ())):
            sub._schedule()

    def subscriber_count(self, collection: str) -> int:
        return len(self._subs.get(collection, ()))

    async def drain(self) -> None:
        """Wait until every scheduled delivery has been made."""
        while True:
            pending = {
                s._task
                for subs in self._subs.values()
                for s in subs
                if s._task is not None and not s._task.done()
            }
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def _remove(self, sub: Subscription) -> None:
        for c in sub.collections:
            subs = self._subs.get(c)
            if subs and sub in subs:
                subs.remove(sub)


feed = ChangeFeed()
