import asyncio
import os
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
import logging

from .dependencies import get_current_user, get_clock
from .models import User
from .notifications import sse_manager, format_event, DASHBOARD_ROOM
from .timing import format_clock

logger = logging.getLogger(__name__)

TIMER_TICK_SECONDS = float(os.getenv("TIMER_TICK_SECONDS", "1"))
HEARTBEAT_SECONDS = 30.0

# SSE Router
router = APIRouter(prefix="/events", tags=["sse"])

async def tracker_ticks(request: Request, user_id: int, clock, tick_seconds: float = TIMER_TICK_SECONDS):
    """
    Live timer for the user's attached session.

    Presentation only: every tick recomputes elapsed time from the stored
    instants and nothing is written back. The stream ends as soon as the
    session is no longer attached, so no tick outlives its session.
    """
    ctx = request.app.state.contexts.get(user_id)
    if not ctx.attached:
        yield format_event({"type": "detached"})
        return

    session_id = ctx.attached.id
    logger.info(f"Timer stream opened for session {session_id}")
    try:
        while ctx.attached is not None and ctx.attached.id == session_id:
            if await request.is_disconnected():
                break
            elapsed = ctx.attached.elapsed_seconds(clock())
            yield format_event({
                "type": "tick",
                "session_id": session_id,
                "elapsed_seconds": elapsed,
                "display": format_clock(elapsed)
            })
            await asyncio.sleep(tick_seconds)
        else:
            yield format_event({"type": "detached", "session_id": session_id})
    finally:
        logger.info(f"Timer stream closed for session {session_id}")

@router.get("/tracker")
async def tracker_events(request: Request, current_user: User = Depends(get_current_user), clock=Depends(get_clock)):
    """SSE endpoint ticking the attached session's elapsed time"""
    return StreamingResponse(
        tracker_ticks(request, current_user.id, clock),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        }
    )

@router.get("/dashboard")
async def dashboard_events(current_user: User = Depends(get_current_user)):
    """SSE endpoint carrying completion notifications"""

    async def event_generator():
        queue = asyncio.Queue()
        try:
            await sse_manager.add_connection(DASHBOARD_ROOM, queue)
            yield format_event({"type": "connected"})

            while True:
                try:
                    # Wait for messages with timeout for heartbeat
                    message = await asyncio.wait_for(queue.get(), timeout=HEARTBEAT_SECONDS)
                    yield message
                except asyncio.TimeoutError:
                    # Send heartbeat to keep connection alive
                    yield format_event({"type": "heartbeat"})

        except asyncio.CancelledError:
            logger.info(f"Dashboard SSE connection cancelled for user {current_user.id}")
            raise
        finally:
            await sse_manager.remove_connection(DASHBOARD_ROOM, queue)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        }
    )
