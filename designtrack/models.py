from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, Text, ForeignKey, JSON
from sqlalchemy.orm import relationship, declarative_base
from datetime import datetime, timezone
import enum

Base = declarative_base()

ROLE_MANAGER = "manager"
ROLE_DESIGNER = "designer"
ROLES = [ROLE_MANAGER, ROLE_DESIGNER]

class IssueType(str, enum.Enum):
    COMMERCIAL = "commercial"
    CUTTING_BENDING = "cutting_bending"
    ENGINEERING = "engineering"
    PLANNING_COMPONENTS = "planning_components"
    PLANNING_PARTS = "planning_parts"
    CHASSIS_ASSEMBLY = "chassis_assembly"
    CARGO_BOX_ASSEMBLY = "cargo_box_assembly"
    ROOF_ASSEMBLY = "roof_assembly"
    ACCESSORIES_ASSEMBLY = "accessories_assembly"
    CHASSIS_MECHANICS = "chassis_mechanics"
    SEMI_TRAILER_MECHANICS = "semi_trailer_mechanics"
    SHEET_METAL = "sheet_metal"
    DOORS = "doors"
    PAINTING = "painting"
    ELECTRICAL_ABS_EBS = "electrical_abs_ebs"
    AXLE_ALIGNMENT = "axle_alignment"
    FINAL_INSPECTION = "final_inspection"

def utcnow():
    return datetime.now(timezone.utc)

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True)
    hashed_password = Column(String)
    full_name = Column(String)
    role = Column(String, default=ROLE_DESIGNER)  # manager, designer
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    @property
    def is_manager(self):
        return self.role == ROLE_MANAGER

class Project(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True, index=True)
    ns = Column(String, index=True, nullable=False)
    client_name = Column(String)
    project_code = Column(String)
    type = Column(String)  # release, variation, development
    implement_type = Column(String)
    flooring_type = Column(String)
    notes = Column(Text)
    user_id = Column(Integer, ForeignKey("users.id"))
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True))
    total_active_seconds = Column(Integer, default=0)
    # [{"reason", "timestamp", "durationSeconds"}]; durationSeconds -1 = open pause
    pauses = Column(JSON, default=list)
    variations = Column(JSON, default=list)
    status = Column(String, default="IN_PROGRESS", index=True)  # IN_PROGRESS, COMPLETED

    # Relationships
    user = relationship("User")

class Issue(Base):
    __tablename__ = "issues"

    id = Column(String, primary_key=True, index=True)
    project_ns = Column(String, index=True)
    type = Column(String)
    description = Column(Text)
    date = Column(DateTime(timezone=True), default=utcnow)
    reported_by = Column(Integer, ForeignKey("users.id"))

    # Relationships
    reporter = relationship("User")

class Innovation(Base):
    __tablename__ = "innovations"

    id = Column(String, primary_key=True, index=True)
    title = Column(String)
    description = Column(Text)
    type = Column(String)
    calculation_type = Column(String)
    unit_savings = Column(Float, default=0.0)
    quantity = Column(Float, default=0.0)
    total_annual_savings = Column(Float, default=0.0)
    investment_cost = Column(Float, default=0.0)
    status = Column(String, default="PENDING")  # PENDING, APPROVED, REJECTED, IMPLEMENTED
    author_id = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    author = relationship("User")
