"""Broadcaster tests — fan-out, ordering, overflow, unsubscribe."""

import asyncio

import pytest

from eventhub.errors import SubscriberLagged
from eventhub.realtime.broadcaster import Broadcaster, ChangeEvent


def _event(n: int) -> ChangeEvent:
    return ChangeEvent("event_changes", f"payload-{n}")


async def _drain(sub, count):
    return [await asyncio.wait_for(sub.receive(), timeout=1) for _ in range(count)]


@pytest.mark.asyncio
async def test_publish_reaches_every_current_subscriber_in_order():
    b = Broadcaster()
    first, second = b.subscribe(), b.subscribe()

    for n in range(3):
        assert b.publish(_event(n)) == 2

    assert await _drain(first, 3) == [_event(0), _event(1), _event(2)]
    assert await _drain(second, 3) == [_event(0), _event(1), _event(2)]


@pytest.mark.asyncio
async def test_late_subscriber_sees_only_later_events():
    b = Broadcaster()
    early = b.subscribe()
    b.publish(_event(1))
    late = b.subscribe()
    b.publish(_event(2))

    assert await _drain(early, 2) == [_event(1), _event(2)]
    assert await _drain(late, 1) == [_event(2)]
    assert len(late) == 0


@pytest.mark.asyncio
async def test_publish_without_subscribers_is_dropped():
    b = Broadcaster()
    assert b.publish(_event(1)) == 0
    sub = b.subscribe()
    assert len(sub) == 0


@pytest.mark.asyncio
async def test_receive_waits_for_publish():
    b = Broadcaster()
    sub = b.subscribe()

    waiter = asyncio.create_task(sub.receive())
    await asyncio.sleep(0)
    assert not waiter.done()

    b.publish(_event(7))
    assert await asyncio.wait_for(waiter, timeout=1) == _event(7)


@pytest.mark.asyncio
async def test_overflow_drops_oldest_and_reports_gap_once():
    b = Broadcaster(queue_size=3)
    slow = b.subscribe()

    for n in range(5):
        b.publish(_event(n))

    with pytest.raises(SubscriberLagged) as exc:
        await slow.receive()
    assert exc.value.missed == 2

    # Continues with the oldest event still buffered
    assert await _drain(slow, 3) == [_event(2), _event(3), _event(4)]


@pytest.mark.asyncio
async def test_overflow_is_local_to_one_subscriber():
    b = Broadcaster(queue_size=2)
    slow, fast = b.subscribe(), b.subscribe()

    for n in range(4):
        b.publish(_event(n))
        if n < 3:
            assert await fast.receive() == _event(n)

    assert await fast.receive() == _event(3)
    with pytest.raises(SubscriberLagged):
        await slow.receive()
    assert await _drain(slow, 2) == [_event(2), _event(3)]


@pytest.mark.asyncio
async def test_unsubscribe_leaves_others_untouched():
    b = Broadcaster()
    gone, stays = b.subscribe(), b.subscribe()

    gone.close()
    gone.close()  # idempotent
    assert b.subscriber_count == 1
    assert gone.closed and not stays.closed

    assert b.publish(_event(1)) == 1
    assert await stays.receive() == _event(1)
    assert len(gone) == 0


@pytest.mark.asyncio
async def test_subscriber_context_manager_unsubscribes():
    b = Broadcaster()
    async with b.subscribe() as sub:
        assert b.subscriber_count == 1
        assert not sub.closed
    assert b.subscriber_count == 0


@pytest.mark.asyncio
async def test_publish_wakes_receivers_waiting_in_other_tasks():
    b = Broadcaster()
    subs = [b.subscribe() for _ in range(3)]
    waiting = [asyncio.create_task(sub.receive()) for sub in subs]
    await asyncio.sleep(0)

    late = None

    async def join_mid_publish():
        nonlocal late
        late = b.subscribe()

    joiner = asyncio.create_task(join_mid_publish())
    assert b.publish(_event(1)) == 3
    await joiner

    received = await asyncio.wait_for(asyncio.gather(*waiting), timeout=1)
    assert received == [_event(1)] * 3
    assert len(late) == 0
