import asyncio

import pytest

from skincheck.errors import SubscriptionError, WriteError
from skincheck.models.evaluation import EvaluationCreate
from skincheck.services.evaluation_feed import LOAD_FAILED_MESSAGE, EvaluationFeed


def _payload(assessor="山田", **overrides):
    data = {"assessor": assessor, "boneProtection": "done", "incontinenceCare": "na"}
    data.update(overrides)
    return EvaluationCreate.model_validate(data)


class Recorder:
    def __init__(self):
        self.snapshots = []
        self.errors = []

    def on_snapshot(self, records):
        self.snapshots.append([record.id for record in records])

    def on_error(self, message):
        self.errors.append(message)


@pytest.mark.asyncio
async def test_subscribe_delivers_initial_snapshot(feed, fake_store):
    first = fake_store.insert(assessor="A")
    second = fake_store.insert(assessor="B")
    recorder = Recorder()

    await feed.subscribe_all(recorder.on_snapshot, recorder.on_error)
    await feed.drain()

    assert recorder.snapshots == [[second, first]]
    assert recorder.errors == []


@pytest.mark.asyncio
async def test_create_pushes_full_replacement_snapshots(feed, fake_store):
    existing = fake_store.insert(assessor="A")
    recorder = Recorder()
    await feed.subscribe_all(recorder.on_snapshot)
    await feed.drain()

    created = await feed.create(_payload())
    await feed.drain()

    assert recorder.snapshots == [[existing], [created, existing]]


@pytest.mark.asyncio
async def test_latest_view_is_bounded(repository, fake_store):
    feed = EvaluationFeed(repository, latest_limit=3)
    ids = [fake_store.insert(assessor=f"A{index}") for index in range(5)]
    recorder = Recorder()

    await feed.subscribe_latest(recorder.on_snapshot)
    await feed.drain()

    assert recorder.snapshots == [list(reversed(ids))[:3]]


@pytest.mark.asyncio
async def test_delete_removes_record_from_both_views(feed, fake_store):
    keep = fake_store.insert(assessor="A")
    doomed = fake_store.insert(assessor="B")
    everything = Recorder()
    latest = Recorder()
    await feed.subscribe_all(everything.on_snapshot)
    await feed.subscribe_latest(latest.on_snapshot)

    await feed.delete(doomed)
    await feed.drain()

    assert everything.snapshots[-1] == [keep]
    assert latest.snapshots[-1] == [keep]


@pytest.mark.asyncio
async def test_refresh_queries_once_per_view_shape(feed, fake_store):
    fake_store.insert(assessor="A")
    for _ in range(3):
        await feed.subscribe_all(Recorder().on_snapshot)
    await feed.subscribe_latest(Recorder().on_snapshot)
    fake_store.requests.clear()

    await feed.refresh()

    assert len(fake_store.requests) == 2


@pytest.mark.asyncio
async def test_unsubscribe_stops_callbacks(feed, fake_store):
    recorder = Recorder()
    subscription = await feed.subscribe_all(recorder.on_snapshot)
    await feed.drain()

    subscription.unsubscribe()
    subscription.unsubscribe()
    await feed.create(_payload())
    await feed.notify_changed()
    await feed.drain()

    assert recorder.snapshots == [[]]
    assert not subscription.active
    assert feed.subscriber_count == 0


@pytest.mark.asyncio
async def test_unsubscribe_during_fanout_drops_pending_delivery(feed, fake_store):
    later = Recorder()
    holder = {}

    def first_callback(records):
        if "later" in holder:
            holder["later"].unsubscribe()

    await feed.subscribe_all(first_callback)
    await feed.drain()
    holder["later"] = await feed.subscribe_all(later.on_snapshot)
    await feed.drain()

    await feed.create(_payload())
    await feed.drain()

    assert later.snapshots == [[]]


@pytest.mark.asyncio
async def test_async_callbacks_are_awaited(feed, fake_store):
    seen = []

    async def on_snapshot(records):
        await asyncio.sleep(0)
        seen.append(len(records))

    await feed.subscribe_all(on_snapshot)
    await feed.drain()
    await feed.create(_payload())
    await feed.drain()

    assert seen == [0, 1]


@pytest.mark.asyncio
async def test_load_failure_is_terminal_and_reported_once(feed, fake_store):
    recorder = Recorder()
    subscription = await feed.subscribe_all(recorder.on_snapshot, recorder.on_error)
    await feed.drain()
    fake_store.fail_reads = True

    await feed.refresh()
    fake_store.fail_reads = False
    await feed.refresh()
    await feed.drain()

    assert recorder.errors == [LOAD_FAILED_MESSAGE]
    assert recorder.snapshots == [[]]
    assert subscription.failed
    assert not subscription.active


@pytest.mark.asyncio
async def test_initial_load_failure_reports_error(feed, fake_store):
    fake_store.fail_reads = True
    recorder = Recorder()

    subscription = await feed.subscribe_latest(recorder.on_snapshot, recorder.on_error)
    await feed.drain()

    assert recorder.errors == [LOAD_FAILED_MESSAGE]
    assert recorder.snapshots == []
    assert subscription.failed


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_block_others(feed, fake_store):
    healthy = Recorder()

    def broken(records):
        raise RuntimeError("socket closed")

    broken_subscription = await feed.subscribe_all(broken)
    await feed.subscribe_all(healthy.on_snapshot)
    await feed.drain()

    await feed.create(_payload())
    await feed.drain()

    assert not broken_subscription.active
    assert len(healthy.snapshots) == 2


@pytest.mark.asyncio
async def test_write_error_leaves_snapshots_untouched(feed, fake_store):
    fake_store.insert(assessor="A")
    recorder = Recorder()
    await feed.subscribe_all(recorder.on_snapshot)
    await feed.drain()
    fake_store.fail_writes = True

    with pytest.raises(WriteError):
        await feed.create(_payload())

    assert len(recorder.snapshots) == 1


@pytest.mark.asyncio
async def test_delete_with_empty_id_does_nothing(feed, fake_store):
    recorder = Recorder()
    await feed.subscribe_all(recorder.on_snapshot)
    fake_store.requests.clear()

    await feed.delete("")
    await feed.drain()

    assert fake_store.requests == []
    assert len(recorder.snapshots) == 1


@pytest.mark.asyncio
async def test_snapshot_iterator_yields_until_closed(feed, fake_store):
    stream = feed.snapshots()

    initial = await stream.__anext__()
    await feed.create(_payload())
    updated = await stream.__anext__()
    await stream.aclose()

    assert initial == []
    assert len(updated) == 1
    assert feed.subscriber_count == 0


@pytest.mark.asyncio
async def test_snapshot_iterator_raises_on_failure(feed, fake_store):
    fake_store.fail_reads = True

    with pytest.raises(SubscriptionError) as exc:
        async for _ in feed.snapshots(latest=True):
            pass

    assert exc.value.message == LOAD_FAILED_MESSAGE


@pytest.mark.asyncio
async def test_fetch_converts_store_errors(feed, fake_store):
    fake_store.fail_reads = True

    with pytest.raises(SubscriptionError):
        await feed.fetch()


@pytest.mark.asyncio
async def test_close_cancels_everything(feed, fake_store):
    recorder = Recorder()
    await feed.subscribe_all(recorder.on_snapshot)
    await feed.subscribe_latest(recorder.on_snapshot)
    await feed.drain()

    feed.close()
    await feed.refresh()
    await feed.drain()

    assert feed.subscriber_count == 0
    assert len(recorder.snapshots) == 2


@pytest.mark.asyncio
async def test_raising_error_callback_does_not_fail_a_saved_write(feed, fake_store):
    witness = Recorder()

    def closed_socket(message):
        raise RuntimeError("socket already closed")

    await feed.subscribe_all(Recorder().on_snapshot, closed_socket)
    await feed.subscribe_all(witness.on_snapshot, witness.on_error)
    await feed.drain()
    fake_store.fail_reads = True

    created = await feed.create(_payload())
    await feed.drain()

    assert created in fake_store.documents
    assert witness.errors == [LOAD_FAILED_MESSAGE]
    assert feed.subscriber_count == 0


@pytest.mark.asyncio
async def test_refresh_failure_after_write_keeps_the_write(feed, fake_store, monkeypatch):
    async def broken_refresh():
        raise RuntimeError("fan-out exploded")

    monkeypatch.setattr(feed, "refresh", broken_refresh)

    created = await feed.create(_payload())
    await feed.delete(created)

    assert fake_store.documents == {}


@pytest.mark.asyncio
async def test_slow_subscriber_does_not_delay_writes_or_others(feed, fake_store):
    release = asyncio.Event()
    slow_seen = []
    quick = Recorder()

    async def slow(records):
        await release.wait()
        slow_seen.append(len(records))

    await feed.subscribe_all(slow)
    quick_subscription = await feed.subscribe_all(quick.on_snapshot)
    await quick_subscription.drain()

    created = await asyncio.wait_for(feed.create(_payload()), timeout=1.0)
    await asyncio.wait_for(quick_subscription.drain(), timeout=1.0)

    assert quick.snapshots == [[], [created]]
    assert slow_seen == []

    release.set()
    await feed.drain()

    assert slow_seen == [0, 1]


@pytest.mark.asyncio
async def test_pending_snapshots_collapse_to_the_newest(feed, fake_store):
    release = asyncio.Event()
    seen = []

    async def slow(records):
        await release.wait()
        seen.append(len(records))

    await feed.subscribe_all(slow)
    await asyncio.sleep(0)
    for index in range(3):
        await feed.create(_payload(f"A{index}"))
    release.set()
    await feed.drain()

    assert seen == [0, 3]


@pytest.mark.asyncio
async def test_snapshot_iterator_skips_stale_snapshots(feed, fake_store):
    stream = feed.snapshots()
    assert await stream.__anext__() == []

    for index in range(4):
        await feed.create(_payload(f"A{index}"))
    sizes = []
    while not sizes or sizes[-1] < 4:
        sizes.append(len(await stream.__anext__()))
    await stream.aclose()

    assert sizes == sorted(set(sizes))
    assert len(sizes) <= 3
