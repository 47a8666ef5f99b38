from typing import List
from fastapi import APIRouter, HTTPException, Depends, Response
from sqlalchemy.orm import Session
from ..database import get_db
from ..dependencies import require_manager
from ..models import User, ROLES
from ..auth import hash_password
from ..schemas import UserCreate, UserOut

router = APIRouter(prefix="/api/users", tags=["users-api"])

@router.get("/", response_model=List[UserOut])
async def list_users(db: Session = Depends(get_db), current_user: User = Depends(require_manager)):
    return db.query(User).order_by(User.username).all()

@router.post("/", response_model=UserOut, status_code=201)
async def create_user(body: UserCreate, db: Session = Depends(get_db), current_user: User = Depends(require_manager)):
    if body.role not in ROLES:
        raise HTTPException(status_code=422, detail=f"Role must be one of {', '.join(ROLES)}")

    # Check if username already exists
    existing_user = db.query(User).filter(User.username == body.username).first()
    if existing_user:
        raise HTTPException(status_code=409, detail="Username already exists")

    user = User(
        username=body.username,
        hashed_password=hash_password(body.password),
        full_name=body.full_name or body.username,
        role=body.role
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

@router.delete("/{user_id}", status_code=204)
async def delete_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_manager)):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    # Don't allow deleting self
    if user.id == current_user.id:
        raise HTTPException(status_code=400, detail="Cannot delete yourself")

    db.delete(user)
    db.commit()
    return Response(status_code=204)
