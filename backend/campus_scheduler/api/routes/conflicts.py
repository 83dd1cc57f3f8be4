from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campus_scheduler.api.deps import get_db
from campus_scheduler.schemas.conflict import ConflictReport, DetectConflictsRequest
from campus_scheduler.services.catalog_loader import load_resource_names
from campus_scheduler.services.conflict_service import ConflictService

router = APIRouter()


@router.post("/detect", response_model=ConflictReport)
def detect_conflicts(
    payload: DetectConflictsRequest,
    db: Session = Depends(get_db),
):
    faculty_names, classroom_names, batch_names = load_resource_names(db)
    service = ConflictService(payload.placements, faculty_names, classroom_names, batch_names)
    return service.detect_conflicts()
