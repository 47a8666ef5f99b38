from typing import List
from fastapi import APIRouter, HTTPException, Depends, Response
from sqlalchemy.orm import Session
from ..database import get_db
from ..dependencies import get_current_user, require_manager, get_clock
from ..exceptions import ValidationError
from ..innovations import annual_savings, check_transition, savings_totals, InnovationStatus
from ..models import Innovation, User
from ..schemas import InnovationCreate, InnovationOut, InnovationStatusUpdate, InnovationTotals
from ..sessions import new_id
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/innovations", tags=["innovations-api"])

def get_innovation_or_404(db: Session, innovation_id: str) -> Innovation:
    innovation = db.query(Innovation).filter(Innovation.id == innovation_id).first()
    if not innovation:
        raise HTTPException(status_code=404, detail="Innovation not found")
    return innovation

@router.get("/", response_model=List[InnovationOut])
async def list_innovations(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    # Shared with every role so designers can see colleagues' ideas
    return db.query(Innovation).order_by(Innovation.created_at.desc()).all()

@router.get("/totals", response_model=InnovationTotals)
async def innovation_totals(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    innovations = db.query(Innovation).all()
    totals = savings_totals(innovations)
    counted = [i for i in innovations if i.status in (InnovationStatus.APPROVED.value, InnovationStatus.IMPLEMENTED.value)]
    return InnovationTotals(
        savings=totals["savings"],
        count=totals["count"],
        items=[InnovationOut.model_validate(i) for i in counted]
    )

@router.post("/", response_model=InnovationOut, status_code=201)
async def propose_innovation(
    body: InnovationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    clock=Depends(get_clock)
):
    if not body.title.strip():
        raise ValidationError("Enter a title", field="title")

    quantity, total = annual_savings(body.calculation_type, body.unit_savings, body.quantity)
    innovation = Innovation(
        id=new_id(),
        title=body.title.strip(),
        description=body.description,
        type=body.type.value,
        calculation_type=body.calculation_type.value,
        unit_savings=body.unit_savings,
        quantity=quantity,
        total_annual_savings=total,
        investment_cost=body.investment_cost or 0.0,
        status=InnovationStatus.PENDING.value,
        author_id=current_user.id,
        created_at=clock()
    )
    db.add(innovation)
    db.commit()
    db.refresh(innovation)

    logger.info(f"Innovation '{innovation.title}' proposed by user {current_user.id}: {total:.2f}/year")
    return innovation

@router.post("/{innovation_id}/status", response_model=InnovationOut)
async def update_innovation_status(
    innovation_id: str,
    body: InnovationStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager)
):
    innovation = get_innovation_or_404(db, innovation_id)
    check_transition(innovation.status, body.status)

    innovation.status = body.status.value
    db.commit()
    db.refresh(innovation)
    return innovation

@router.delete("/{innovation_id}", status_code=204)
async def delete_innovation(
    innovation_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager)
):
    innovation = get_innovation_or_404(db, innovation_id)
    db.delete(innovation)
    db.commit()
    return Response(status_code=204)
