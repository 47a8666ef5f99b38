from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

from .models import IssueType, ROLE_DESIGNER
from .sessions import ProjectType, ImplementType, VariationKind
from .innovations import InnovationType, CalculationType, InnovationStatus

# User schemas
class UserCreate(BaseModel):
    username: str
    password: str
    full_name: Optional[str] = None
    role: str = ROLE_DESIGNER

class UserOut(BaseModel):
    id: int
    username: str
    full_name: Optional[str]
    role: str
    is_active: bool

    class Config:
        from_attributes = True

# Project session schemas
class ProjectStart(BaseModel):
    ns: str
    client_name: Optional[str] = None
    project_code: Optional[str] = None
    type: ProjectType = ProjectType.RELEASE
    implement_type: Optional[ImplementType] = ImplementType.BASE
    flooring_type: Optional[str] = None
    notes: Optional[str] = None

class PauseRequest(BaseModel):
    reason: str

class VariationCreate(BaseModel):
    old_code: str = ""
    new_code: str = ""
    description: str = ""
    kind: VariationKind = VariationKind.PART
    files_generated: bool = False

# Issue schemas
class IssueCreate(BaseModel):
    project_ns: str
    type: IssueType
    description: str

class IssueOut(BaseModel):
    id: str
    project_ns: str
    type: str
    description: str
    date: datetime
    reported_by: Optional[int]

    class Config:
        from_attributes = True

# Innovation schemas
class InnovationCreate(BaseModel):
    title: str
    description: str = ""
    type: InnovationType = InnovationType.PRODUCT_IMPROVEMENT
    calculation_type: CalculationType = CalculationType.RECURRING_MONTHLY
    unit_savings: float = 0.0
    quantity: float = 0.0
    investment_cost: Optional[float] = 0.0

class InnovationStatusUpdate(BaseModel):
    status: InnovationStatus

class InnovationOut(BaseModel):
    id: str
    title: str
    description: Optional[str]
    type: str
    calculation_type: str
    unit_savings: float
    quantity: float
    total_annual_savings: float
    investment_cost: Optional[float]
    status: str
    author_id: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True

class InnovationTotals(BaseModel):
    savings: float
    count: int
    items: List[InnovationOut] = []
