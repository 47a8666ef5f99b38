from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from ..database import get_db
from ..dependencies import get_current_user, get_clock
from ..dashboard import build_dashboard, completed_in_window, export_csv
from ..gateway import SessionGateway
from ..models import Issue, Innovation, User
from .projects import visible_user_id

router = APIRouter(prefix="/api/dashboard", tags=["dashboard-api"])

@router.get("/")
async def get_dashboard(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    user_id = visible_user_id(current_user)
    sessions = SessionGateway(db).list_sessions(user_id=user_id)

    issues_query = db.query(Issue)
    if user_id is not None:
        issues_query = issues_query.filter(Issue.reported_by == user_id)
    innovations = db.query(Innovation).all()

    users_map = None
    if current_user.is_manager:
        users_map = {u.id: u.full_name or u.username for u in db.query(User).all()}

    result = build_dashboard(
        sessions,
        issues_query.all(),
        innovations,
        users_map=users_map,
        start_date=start_date,
        end_date=end_date
    )
    result["scope"] = "team" if current_user.is_manager else "personal"
    return result

@router.get("/export.csv")
async def export_dashboard_csv(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    clock=Depends(get_clock)
):
    sessions = SessionGateway(db).list_sessions(user_id=visible_user_id(current_user))
    content = export_csv(completed_in_window(sessions, start_date, end_date))
    filename = f"design_track_export_{clock().date().isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
