from fastapi import APIRouter, Request, Form, HTTPException, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from ..database import get_db
from ..dependencies import get_current_user
from ..exceptions import LedgerStateError
from ..models import User, ROLE_MANAGER
from ..auth import verify_password, hash_password, create_jwt, ACCESS_TOKEN_EXPIRE_MINUTES
from ..schemas import UserOut
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth-api"])

def token_response(user: User, status_code: int = 200) -> JSONResponse:
    access_token = create_jwt({"sub": user.username})
    response = JSONResponse({
        "access_token": access_token,
        "token_type": "bearer",
        "user": UserOut.model_validate(user).model_dump()
    }, status_code=status_code)
    response.set_cookie(
        key="access_token",
        value=access_token,
        httponly=True,
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60
    )
    return response

@router.get("/setup")
async def setup_status(db: Session = Depends(get_db)):
    return {"setup_required": db.query(User).count() == 0}

@router.post("/setup")
async def setup_manager(
    username: str = Form(...),
    password: str = Form(...),
    full_name: str = Form(""),
    db: Session = Depends(get_db)
):
    # Only the very first account can be created without logging in
    if db.query(User).count() > 0:
        raise HTTPException(status_code=409, detail="Setup already completed")

    manager = User(
        username=username,
        hashed_password=hash_password(password),
        full_name=full_name if full_name else username,
        role=ROLE_MANAGER
    )
    db.add(manager)
    db.commit()
    db.refresh(manager)

    logger.info(f"Initial manager account created: {username}")
    return token_response(manager, status_code=201)

@router.post("/login")
async def login(
    username: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db)
):
    user = db.query(User).filter(User.username == username).first()

    if not user or not verify_password(password, user.hashed_password):
        logger.warning(f"Failed login for {username}")
        raise HTTPException(status_code=401, detail="Invalid username or password")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account disabled")

    return token_response(user)

@router.post("/logout")
async def logout(request: Request, current_user: User = Depends(get_current_user)):
    # Logging out detaches whatever session was in the foreground; it stays stored
    ctx = request.app.state.contexts.get(current_user.id)
    if ctx.pending:
        raise LedgerStateError(
            f"Unsaved '{ctx.pending.action}' must be retried or discarded before logging out",
            session_id=ctx.pending.session.id
        )
    request.app.state.contexts.drop(current_user.id)
    response = JSONResponse({"detail": "Logged out"})
    response.delete_cookie("access_token")
    return response

@router.get("/me", response_model=UserOut)
async def me(current_user: User = Depends(get_current_user)):
    return current_user
