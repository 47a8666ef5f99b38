from fastapi import APIRouter, Depends, Response
from ..dependencies import get_current_user, get_context, get_tracker
from ..models import User
from ..schemas import ProjectStart, PauseRequest, VariationCreate
from ..sessions import ProjectType, ImplementType, FLOORED_IMPLEMENTS, FLOORING_TYPES
from ..tracker import ProjectTracker, TrackerContext
from ..timing import format_clock
from .projects import session_payload, visible_user_id, ensure_visible

router = APIRouter(prefix="/api/tracker", tags=["tracker-api"])

def tracker_state(ctx: TrackerContext, tracker: ProjectTracker) -> dict:
    now = tracker.clock()
    elapsed = tracker.live_elapsed(ctx)
    return {
        "state": ctx.state.value,
        "attached": session_payload(ctx.attached, now) if ctx.attached else None,
        "elapsed_seconds": elapsed,
        "elapsed_display": format_clock(elapsed) if elapsed is not None else None,
        "pending_write": ctx.pending.to_dict() if ctx.pending else None,
    }

@router.get("/")
async def get_tracker_state(
    ctx: TrackerContext = Depends(get_context),
    tracker: ProjectTracker = Depends(get_tracker)
):
    return tracker_state(ctx, tracker)

@router.get("/options")
async def form_options(current_user: User = Depends(get_current_user)):
    """Choices for the start form; flooring only applies to floored implements."""
    return {
        "project_types": [t.value for t in ProjectType],
        "implement_types": [t.value for t in ImplementType],
        "floored_implements": sorted(t.value for t in FLOORED_IMPLEMENTS),
        "flooring_types": FLOORING_TYPES,
    }

@router.get("/pending")
async def list_pending(
    current_user: User = Depends(get_current_user),
    tracker: ProjectTracker = Depends(get_tracker)
):
    """Sessions in progress, open or paused, offered for resume."""
    now = tracker.clock()
    sessions = tracker.pending_sessions(user_id=visible_user_id(current_user))
    return [session_payload(s, now) for s in sessions]

@router.post("/start", status_code=201)
async def start_session(
    fields: ProjectStart,
    ctx: TrackerContext = Depends(get_context),
    tracker: ProjectTracker = Depends(get_tracker)
):
    tracker.start(ctx, fields)
    return tracker_state(ctx, tracker)

@router.post("/pause")
async def pause_session(
    body: PauseRequest,
    ctx: TrackerContext = Depends(get_context),
    tracker: ProjectTracker = Depends(get_tracker)
):
    session = tracker.pause_and_detach(ctx, body.reason)
    return {**tracker_state(ctx, tracker), "paused": session_payload(session, tracker.clock())}

@router.post("/resume/{session_id}")
async def resume_session(
    session_id: str,
    current_user: User = Depends(get_current_user),
    ctx: TrackerContext = Depends(get_context),
    tracker: ProjectTracker = Depends(get_tracker)
):
    session = tracker.gateway.get_session(session_id)
    ensure_visible(session, current_user)
    tracker.resume(ctx, session)
    return tracker_state(ctx, tracker)

@router.post("/finish")
async def finish_session(
    ctx: TrackerContext = Depends(get_context),
    tracker: ProjectTracker = Depends(get_tracker)
):
    session = tracker.finish(ctx)
    return {**tracker_state(ctx, tracker), "finished": session_payload(session, tracker.clock())}

@router.post("/variations", status_code=201)
async def add_variation(
    fields: VariationCreate,
    ctx: TrackerContext = Depends(get_context),
    tracker: ProjectTracker = Depends(get_tracker)
):
    variation = tracker.add_variation(ctx, fields)
    return variation.model_dump(mode="json")

@router.post("/variations/{variation_id}/toggle")
async def toggle_variation_files(
    variation_id: str,
    ctx: TrackerContext = Depends(get_context),
    tracker: ProjectTracker = Depends(get_tracker)
):
    tracker.toggle_variation_files(ctx, variation_id)
    return tracker_state(ctx, tracker)

@router.delete("/variations/{variation_id}")
async def remove_variation(
    variation_id: str,
    ctx: TrackerContext = Depends(get_context),
    tracker: ProjectTracker = Depends(get_tracker)
):
    tracker.remove_variation(ctx, variation_id)
    return tracker_state(ctx, tracker)

@router.post("/retry")
async def retry_pending_write(
    ctx: TrackerContext = Depends(get_context),
    tracker: ProjectTracker = Depends(get_tracker)
):
    tracker.retry(ctx)
    return tracker_state(ctx, tracker)

@router.delete("/pending-write", status_code=204)
async def discard_pending_write(
    ctx: TrackerContext = Depends(get_context),
    tracker: ProjectTracker = Depends(get_tracker)
):
    tracker.discard_pending(ctx)
    return Response(status_code=204)
