"""Live snapshot views over the shared evaluation collection.

Subscribers get a complete replacement snapshot, newest first, whenever
the collection changes: after writes made through the feed and after
``notify_changed`` is called by the store's change hook. Store reads are
serialized, so a single subscription observes snapshots in store order.

Each subscription is served by its own worker task through a one-slot
mailbox. A newer snapshot replaces one still waiting, so a slow consumer
only ever skips to the latest state and never holds up writers or other
subscribers.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import AsyncIterator, Awaitable, Callable, Union

from skincheck.clients.leancloud import LeanCloudError
from skincheck.errors import SubscriptionError
from skincheck.models.evaluation import EvaluationCreate, EvaluationRecord
from skincheck.repositories.evaluation_repository import EvaluationRepository
from skincheck.telemetry.tracing import emit_event, emit_metric

logger = logging.getLogger(__name__)

LOAD_FAILED_MESSAGE = "Failed to load evaluation records"

SnapshotCallback = Callable[[list[EvaluationRecord]], Union[Awaitable[None], None]]
ErrorCallback = Callable[[str], Union[Awaitable[None], None]]


async def _call(callback: Callable, *args) -> None:
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class Subscription:
    def __init__(
        self,
        feed: "EvaluationFeed",
        *,
        limit: int | None,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None,
    ) -> None:
        self._feed = feed
        self.limit = limit
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._active = True
        self.failed = False
        self._pending: asyncio.Queue[list[EvaluationRecord] | SubscriptionError] = (
            asyncio.Queue(maxsize=1)
        )
        self._worker: asyncio.Task | None = None

    @property
    def view(self) -> str:
        return "all" if self.limit is None else "latest"

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._feed._discard(self)
        self._discard_pending()
        if self._worker is not None and self._worker is not _current_task():
            self._worker.cancel()

    async def drain(self) -> None:
        """Wait until whatever is queued has been handed to the callbacks."""
        if self._worker is None or self._worker.done():
            return
        await self._pending.join()

    def _start(self) -> None:
        self._worker = asyncio.create_task(self._run())
        self._feed._running.add(self)
        self._worker.add_done_callback(lambda _: self._feed._running.discard(self))

    def _offer(self, item: list[EvaluationRecord] | SubscriptionError) -> None:
        self._discard_pending()
        self._pending.put_nowait(item)

    def _discard_pending(self) -> None:
        while not self._pending.empty():
            self._pending.get_nowait()
            self._pending.task_done()

    def _fail(self, message: str) -> None:
        if not self._active:
            return
        self.failed = True
        self._active = False
        self._feed._discard(self)
        self._offer(SubscriptionError(message))

    async def _run(self) -> None:
        try:
            while True:
                item = await self._pending.get()
                try:
                    if isinstance(item, SubscriptionError):
                        await self._report(item.message)
                        return
                    await self._deliver(item)
                finally:
                    self._pending.task_done()
                if not self._active and not self.failed:
                    return
        finally:
            self._discard_pending()

    async def _deliver(self, records: list[EvaluationRecord]) -> None:
        if not self._active:
            return
        try:
            await _call(self._on_snapshot, list(records))
        except Exception:
            logger.exception("Snapshot subscriber failed; dropping %s subscription", self.view)
            self.unsubscribe()

    async def _report(self, message: str) -> None:
        if self._on_error is None:
            return
        try:
            await _call(self._on_error, message)
        except Exception:
            logger.exception("Error callback failed for %s subscription", self.view)


class EvaluationFeed:
    def __init__(self, repository: EvaluationRepository, *, latest_limit: int = 10) -> None:
        self._repository = repository
        self.latest_limit = latest_limit
        self._subscriptions: list[Subscription] = []
        self._running: set[Subscription] = set()
        self._lock = asyncio.Lock()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def _discard(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    async def subscribe_all(
        self, on_snapshot: SnapshotCallback, on_error: ErrorCallback | None = None
    ) -> Subscription:
        return await self._subscribe(None, on_snapshot, on_error)

    async def subscribe_latest(
        self,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
        *,
        limit: int | None = None,
    ) -> Subscription:
        return await self._subscribe(limit or self.latest_limit, on_snapshot, on_error)

    async def _subscribe(
        self,
        limit: int | None,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None,
    ) -> Subscription:
        subscription = Subscription(
            self, limit=limit, on_snapshot=on_snapshot, on_error=on_error
        )
        async with self._lock:
            self._subscriptions.append(subscription)
            await self._publish([subscription])
        subscription._start()
        return subscription

    async def snapshots(
        self, *, latest: bool = False, limit: int | None = None
    ) -> AsyncIterator[list[EvaluationRecord]]:
        """Iterate snapshots until the consumer stops or the view fails.

        At most one snapshot waits for a slow consumer; older ones are
        skipped. A failed view raises ``SubscriptionError`` once; leaving
        the loop unsubscribes.
        """
        queue: asyncio.Queue[list[EvaluationRecord] | SubscriptionError] = asyncio.Queue(
            maxsize=1
        )

        async def _on_error(message: str) -> None:
            await queue.put(SubscriptionError(message))

        if latest:
            subscription = await self.subscribe_latest(queue.put, _on_error, limit=limit)
        else:
            subscription = await self.subscribe_all(queue.put, _on_error)
        try:
            while True:
                item = await queue.get()
                if isinstance(item, SubscriptionError):
                    raise item
                yield item
        finally:
            subscription.unsubscribe()

    async def fetch(self, *, latest: bool = False) -> list[EvaluationRecord]:
        """One-shot snapshot for request/response callers."""
        limit = self.latest_limit if latest else None
        try:
            return await self._repository.list_evaluations(limit=limit)
        except LeanCloudError as exc:
            logger.error("Snapshot load failed (limit=%s): %s", limit, exc, exc_info=True)
            raise SubscriptionError(LOAD_FAILED_MESSAGE) from exc

    async def refresh(self) -> None:
        async with self._lock:
            await self._publish(list(self._subscriptions))

    async def notify_changed(self) -> None:
        logger.debug("Store change notification received")
        await self.refresh()

    async def drain(self) -> None:
        """Wait until every running subscription has caught up."""
        for subscription in list(self._running):
            await subscription.drain()

    async def _publish(self, subscriptions: list[Subscription]) -> None:
        by_limit: dict[int | None, list[Subscription]] = {}
        for subscription in subscriptions:
            by_limit.setdefault(subscription.limit, []).append(subscription)
        for limit, group in by_limit.items():
            try:
                records = await self._repository.list_evaluations(limit=limit)
            except LeanCloudError as exc:
                logger.error("Snapshot load failed (limit=%s): %s", limit, exc, exc_info=True)
                emit_event(
                    "feed.subscription_failed",
                    attributes={"limit": limit, "subscribers": len(group)},
                )
                for subscription in group:
                    subscription._fail(LOAD_FAILED_MESSAGE)
                continue
            emit_metric(
                "feed.snapshot_size",
                len(records),
                attributes={"view": "all" if limit is None else "latest"},
            )
            for subscription in group:
                if subscription.active:
                    subscription._offer(records)

    async def _refresh_after_write(self) -> None:
        # The write already succeeded; subscribers keep their last snapshot.
        try:
            await self.refresh()
        except Exception:
            logger.exception("Refresh after write failed")

    async def create(self, payload: EvaluationCreate) -> str:
        evaluation_id = await self._repository.create_evaluation(payload)
        emit_event(
            "evaluation.created",
            record_id=evaluation_id,
            attributes={
                "boneProtection": payload.boneProtection.value,
                "incontinenceCare": payload.incontinenceCare.value,
            },
        )
        await self._refresh_after_write()
        return evaluation_id

    async def delete(self, evaluation_id: str | None) -> None:
        if not evaluation_id:
            return
        await self._repository.delete_evaluation(evaluation_id)
        emit_event("evaluation.deleted", record_id=evaluation_id)
        await self._refresh_after_write()

    def close(self) -> None:
        for subscription in list(self._subscriptions):
            subscription.unsubscribe()
