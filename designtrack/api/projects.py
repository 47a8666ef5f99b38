from datetime import date, datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session
from ..database import get_db
from ..dependencies import get_current_user, require_manager, get_clock
from ..gateway import SessionGateway
from ..models import User
from ..sessions import ProjectSession, ProjectType
from ..dashboard import in_window
from ..timing import pause_to_record, format_clock, format_duration
from ..utils.datetime_utils import to_iso

router = APIRouter(prefix="/api/projects", tags=["projects-api"])

def session_payload(session: ProjectSession, now: datetime) -> dict:
    elapsed = session.elapsed_seconds(now)
    return {
        "id": session.id,
        "ns": session.ns,
        "client_name": session.client_name,
        "project_code": session.project_code,
        "type": session.type.value,
        "implement_type": session.implement_type.value if session.implement_type else None,
        "flooring_type": session.flooring_type,
        "notes": session.notes,
        "user_id": session.user_id,
        "start_time": to_iso(session.start_time),
        "end_time": to_iso(session.end_time) if session.end_time else None,
        "total_active_seconds": session.total_active_seconds,
        "status": session.status.value,
        "is_paused": session.is_paused,
        "elapsed_seconds": elapsed,
        "elapsed_display": format_clock(elapsed),
        "pauses": [pause_to_record(p) for p in session.pauses],
        "variations": [v.model_dump(mode="json") for v in session.variations],
        "variation_counts": session.variation_ledger.counts(),
    }

def visible_user_id(current_user: User) -> Optional[int]:
    """Managers see everyone's records; designers only their own."""
    return None if current_user.is_manager else current_user.id

@router.get("/")
async def list_projects(
    ns: str = "",
    type: Optional[ProjectType] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    clock=Depends(get_clock)
):
    sessions = SessionGateway(db).list_sessions(user_id=visible_user_id(current_user))

    result = []
    now = clock()
    for session in sessions:
        if ns and ns.lower() not in session.ns.lower():
            continue
        if type and session.type != type:
            continue
        if not in_window(session.start_time, start_date, end_date):
            continue
        payload = session_payload(session, now)
        payload["duration_display"] = format_duration(session.total_active_seconds)
        result.append(payload)

    return result

@router.get("/{session_id}")
async def get_project(
    session_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    clock=Depends(get_clock)
):
    session = SessionGateway(db).get_session(session_id)
    ensure_visible(session, current_user)
    return session_payload(session, clock())

@router.delete("/{session_id}", status_code=204)
async def delete_project(
    session_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager)
):
    SessionGateway(db).delete_session(session_id)
    return Response(status_code=204)

def ensure_visible(session: ProjectSession, current_user: User):
    if not current_user.is_manager and session.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not your project")
