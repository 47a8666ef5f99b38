import enum
import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .exceptions import ValidationError, NotFoundError
from .timing import PauseInterval, PauseLedger, elapsed_seconds


class ProjectType(str, enum.Enum):
    RELEASE = "release"
    VARIATION = "variation"
    DEVELOPMENT = "development"


class ImplementType(str, enum.Enum):
    BASE = "base"
    VAN_BODY = "van_body"
    CURTAIN_SIDER = "curtain_sider"
    CARGO_BOX = "cargo_box"
    TIPPER = "tipper"
    COMPONENTS = "components"
    OTHER = "other"


# Implements built on a floor; only these carry a flooring type
FLOORED_IMPLEMENTS = {ImplementType.BASE, ImplementType.VAN_BODY, ImplementType.CURTAIN_SIDER}

FLOORING_TYPES = [
    'M/F 20mm',
    'M/F 30mm',
    'Omega 28mm',
    'Sonata',
    'XDZ 3mm',
    'XDZ 4,75mm',
    'Naval 15mm',
    'Naval 18mm',
    'Naval 24mm',
    'Naval 27mm'
]


class SessionStatus(str, enum.Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class VariationKind(str, enum.Enum):
    PART = "part"
    ASSEMBLY = "assembly"


def new_id() -> str:
    return str(uuid.uuid4())


class VariationRecord(BaseModel):
    id: str = Field(default_factory=new_id)
    old_code: str = ""
    new_code: str = ""
    description: str = ""
    kind: VariationKind = VariationKind.PART
    files_generated: bool = False


class ProjectSession(BaseModel):
    """One timed unit of design work against a work-order number (NS)."""

    id: str = Field(default_factory=new_id)
    ns: str
    client_name: Optional[str] = None
    project_code: Optional[str] = None
    type: ProjectType = ProjectType.RELEASE
    implement_type: Optional[ImplementType] = None
    flooring_type: Optional[str] = None
    notes: Optional[str] = None
    user_id: Optional[int] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    total_active_seconds: int = 0
    pauses: List[PauseInterval] = Field(default_factory=list)
    status: SessionStatus = SessionStatus.IN_PROGRESS
    variations: List[VariationRecord] = Field(default_factory=list)

    @property
    def ledger(self) -> PauseLedger:
        return PauseLedger(self.pauses, session_id=self.id)

    @property
    def variation_ledger(self) -> "VariationLedger":
        return VariationLedger(self.variations)

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED

    @property
    def is_paused(self) -> bool:
        """Paused is never stored; it is an open pause at the ledger tail."""
        return not self.is_completed and self.ledger.last_pause_is_open()

    def elapsed_seconds(self, now: datetime) -> int:
        # The stored total is a terminal snapshot, never a running cache
        if self.is_completed:
            return self.total_active_seconds
        return elapsed_seconds(self.start_time, now, self.pauses)

    def snapshot(self) -> "ProjectSession":
        return self.model_copy(deep=True)


class VariationLedger:
    """Derived part/assembly codes recorded against one session."""

    def __init__(self, variations: List[VariationRecord]):
        self.variations = variations

    def __len__(self):
        return len(self.variations)

    def get(self, variation_id: str) -> VariationRecord:
        for variation in self.variations:
            if variation.id == variation_id:
                return variation
        raise NotFoundError("Variation", variation_id)

    def add(
        self,
        old_code: str = "",
        new_code: str = "",
        description: str = "",
        kind: VariationKind = VariationKind.PART,
        files_generated: bool = False
    ) -> VariationRecord:
        old_code = (old_code or "").strip()
        new_code = (new_code or "").strip()
        if not old_code and not new_code:
            raise ValidationError("Enter at least one code (old or new)", field="old_code")

        record = VariationRecord(
            old_code=old_code,
            new_code=new_code,
            description=(description or "").strip(),
            kind=kind,
            files_generated=files_generated
        )
        self.variations.append(record)
        return record

    def toggle_files(self, variation_id: str) -> VariationRecord:
        current = self.get(variation_id)
        index = self.variations.index(current)
        updated = current.model_copy(update={"files_generated": not current.files_generated})
        self.variations[index] = updated
        return updated

    def remove(self, variation_id: str) -> VariationRecord:
        current = self.get(variation_id)
        self.variations.remove(current)
        return current

    def counts(self) -> dict:
        parts = len([v for v in self.variations if v.kind == VariationKind.PART])
        assemblies = len([v for v in self.variations if v.kind == VariationKind.ASSEMBLY])
        return {"parts": parts, "assemblies": assemblies}
