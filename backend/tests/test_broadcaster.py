"""Tests for Broadcaster local fan-out (Redis disabled)."""

import asyncio

import orjson

from fleet_eta.config import settings
from fleet_eta.core.broadcaster import CLIENT_BUFFER, Broadcaster, encode_frame


def test_encode_frame():
    assert orjson.loads(encode_frame("snapshot", [])) == {"type": "snapshot", "etas": []}


def test_publish_reaches_every_client(monkeypatch):
    monkeypatch.setattr(settings, "redis_url", "")

    async def scenario():
        broadcaster = Broadcaster()
        await broadcaster.connect()
        a, b = broadcaster.subscribe(), broadcaster.subscribe()
        await broadcaster.publish([{"trip_id": "t1", "delay_minutes": 3}])
        frames = a.get_nowait(), b.get_nowait()
        broadcaster.unsubscribe(a)
        await broadcaster.close()
        return frames, broadcaster.client_count

    (frame_a, frame_b), remaining = asyncio.run(scenario())
    assert frame_a == frame_b
    assert orjson.loads(frame_a) == {
        "type": "update",
        "etas": [{"trip_id": "t1", "delay_minutes": 3}],
    }
    assert remaining == 1


def test_client_that_falls_behind_is_dropped():
    async def scenario():
        broadcaster = Broadcaster()
        slow = broadcaster.subscribe()
        for _ in range(CLIENT_BUFFER + 1):
            await broadcaster.publish([])
        return broadcaster, slow

    broadcaster, slow = asyncio.run(scenario())
    assert slow.full()
    assert broadcaster.client_count == 0
