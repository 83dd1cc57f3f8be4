from pydantic import BaseModel, Field
from typing import Literal, Optional, List

from campus_scheduler.schemas.generator import Placement

ConflictType = Literal["faculty_conflict", "classroom_conflict", "batch_conflict"]


class ConflictDetail(BaseModel):
    id: str
    conflict_type: ConflictType
    resource_id: int
    resource_name: str
    day_of_week: int
    day: Optional[str] = None
    start_time: str  # start of the overlapping interval
    end_time: str
    description: str
    severity: Literal["hard", "soft"] = "hard"
    affected_slots: List[str]  # ids of the two placements involved


class ConflictReport(BaseModel):
    conflicts: List[ConflictDetail]
    has_conflicts: bool = False


class DetectConflictsRequest(BaseModel):
    placements: List[Placement] = Field(default_factory=list)
    department_id: Optional[int] = None
