import asyncio
import json
from types import SimpleNamespace

from designtrack.dependencies import ContextRegistry
from designtrack.schemas import ProjectStart
from designtrack.sse import tracker_ticks


class FakeRequest:
    """Just enough of a Starlette request for the tick generator."""

    def __init__(self, registry):
        self.app = SimpleNamespace(state=SimpleNamespace(contexts=registry))

    async def is_disconnected(self):
        return False


def parse(event):
    return json.loads(event[len("data: "):])


def stream_around(registry, clock, action):
    """Pull one tick, run action, then return the next event."""
    async def scenario():
        ticks = tracker_ticks(FakeRequest(registry), 1, clock, tick_seconds=0)
        first = parse(await ticks.__anext__())
        action()
        clock.advance(1)
        second = parse(await ticks.__anext__())
        await ticks.aclose()
        return first, second

    return asyncio.run(scenario())


def attached_registry(tracker, clock):
    registry = ContextRegistry()
    ctx = registry.get(1)
    session = tracker.start(ctx, ProjectStart(ns="123456"))
    clock.advance(5)
    return registry, ctx, session


def test_stream_ticks_while_attached(tracker, clock):
    registry, ctx, session = attached_registry(tracker, clock)

    first, second = stream_around(registry, clock, lambda: None)
    assert first == {"type": "tick", "session_id": session.id, "elapsed_seconds": 5, "display": "00:00:05"}
    assert second["type"] == "tick"
    assert second["elapsed_seconds"] == 6


def test_stream_ends_on_pause(tracker, clock):
    registry, ctx, session = attached_registry(tracker, clock)

    first, second = stream_around(registry, clock, lambda: tracker.pause_and_detach(ctx, "lunch"))
    assert first["type"] == "tick"
    assert second == {"type": "detached", "session_id": session.id}


def test_stream_ends_on_finish(tracker, clock):
    registry, ctx, session = attached_registry(tracker, clock)

    first, second = stream_around(registry, clock, lambda: tracker.finish(ctx))
    assert second == {"type": "detached", "session_id": session.id}


def test_stream_ends_on_logout(tracker, clock):
    registry, ctx, session = attached_registry(tracker, clock)

    first, second = stream_around(registry, clock, lambda: registry.drop(1))
    assert second == {"type": "detached", "session_id": session.id}
    assert ctx.attached is None


def test_stream_without_attached_session(clock):
    async def scenario():
        return [event async for event in tracker_ticks(FakeRequest(ContextRegistry()), 1, clock, tick_seconds=0)]

    assert [parse(e) for e in asyncio.run(scenario())] == [{"type": "detached"}]
