from typing import List, Optional
from fastapi import APIRouter, HTTPException, Depends, Response
from sqlalchemy.orm import Session
from ..database import get_db
from ..dependencies import get_current_user, require_manager, get_clock
from ..exceptions import ValidationError
from ..models import Issue, IssueType, User
from ..schemas import IssueCreate, IssueOut
from ..sessions import new_id
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/issues", tags=["issues-api"])

@router.get("/types")
async def list_issue_types():
    return [t.value for t in IssueType]

@router.get("/", response_model=List[IssueOut])
async def list_issues(
    ns: str = "",
    type: Optional[IssueType] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    query = db.query(Issue)
    if not current_user.is_manager:
        query = query.filter(Issue.reported_by == current_user.id)
    if ns:
        query = query.filter(Issue.project_ns.ilike(f"%{ns}%"))
    if type:
        query = query.filter(Issue.type == type.value)
    return query.order_by(Issue.date.desc()).all()

@router.post("/", response_model=IssueOut, status_code=201)
async def report_issue(
    body: IssueCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    clock=Depends(get_clock)
):
    if not body.project_ns.strip():
        raise ValidationError("Enter the project NS", field="project_ns")
    if not body.description.strip():
        raise ValidationError("Describe the issue", field="description")

    issue = Issue(
        id=new_id(),
        project_ns=body.project_ns.strip(),
        type=body.type.value,
        description=body.description.strip(),
        date=clock(),
        reported_by=current_user.id
    )
    db.add(issue)
    db.commit()
    db.refresh(issue)

    logger.info(f"Issue {issue.type} reported on NS {issue.project_ns} by user {current_user.id}")
    return issue

@router.delete("/{issue_id}", status_code=204)
async def delete_issue(
    issue_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager)
):
    issue = db.query(Issue).filter(Issue.id == issue_id).first()
    if not issue:
        raise HTTPException(status_code=404, detail="Issue not found")

    db.delete(issue)
    db.commit()
    return Response(status_code=204)
