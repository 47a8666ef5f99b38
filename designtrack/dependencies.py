from typing import Dict, Optional
from fastapi import HTTPException, Depends, Request, BackgroundTasks
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from .database import get_db
from .models import User, ROLE_MANAGER
from .auth import verify_jwt
from .gateway import SessionGateway
from .tracker import ProjectTracker, TrackerContext
from .notifications import notify_completion
from .utils.datetime_utils import get_current_time

security = HTTPBearer(auto_error=False)

class ContextRegistry:
    """One TrackerContext per logged-in user, kept for the life of the process."""

    def __init__(self):
        self.contexts: Dict[int, TrackerContext] = {}

    def get(self, user_id: int) -> TrackerContext:
        if user_id not in self.contexts:
            self.contexts[user_id] = TrackerContext(user_id=user_id)
        return self.contexts[user_id]

    def drop(self, user_id: int):
        ctx = self.contexts.pop(user_id, None)
        if ctx:
            # Open timer streams hold the context; clearing it ends them
            ctx.attached = None

def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
):
    if credentials:
        token = credentials.credentials
    else:
        token = request.cookies.get("access_token")
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    payload = verify_jwt(token)
    username = payload.get("sub")
    user = db.query(User).filter(User.username == username).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found")
    return user

def require_manager(current_user: User = Depends(get_current_user)):
    if current_user.role != ROLE_MANAGER:
        raise HTTPException(status_code=403, detail="Manager access required")
    return current_user

def get_clock():
    return get_current_time

def get_context(request: Request, current_user: User = Depends(get_current_user)) -> TrackerContext:
    return request.app.state.contexts.get(current_user.id)

def get_tracker(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    clock=Depends(get_clock)
) -> ProjectTracker:
    # Notification runs after the response is sent, never inside the transition
    return ProjectTracker(
        SessionGateway(db),
        clock=clock,
        notifier=lambda session: background_tasks.add_task(notify_completion, session)
    )
