from __future__ import annotations

import logging

from pydantic import ValidationError
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from campus_scheduler.core.exceptions import InvalidCatalogError, ResourceNotFoundError
from campus_scheduler.models.classroom import Classroom
from campus_scheduler.models.department import Department
from campus_scheduler.models.faculty import Faculty, FacultySubject
from campus_scheduler.models.fixed_slot import FixedSlot
from campus_scheduler.models.optimization_params import OptimizationParams
from campus_scheduler.models.student_batch import StudentBatch
from campus_scheduler.models.subject import Subject
from campus_scheduler.schemas import catalog as schema
from campus_scheduler.schemas.generator import OptimizationParamsOverride

logger = logging.getLogger(__name__)


def _load_params(db: Session, department_id: int) -> schema.OptimizationParams:
    record = db.execute(
        select(OptimizationParams).where(OptimizationParams.department_id == department_id)
    ).scalars().first()
    if record is None:
        return schema.OptimizationParams()
    return schema.OptimizationParams.model_validate(record)


def load_catalog_snapshot(
    db: Session,
    *,
    department_id: int,
    semester: int,
    academic_year: str | None = None,
    params_override: OptimizationParamsOverride | None = None,
) -> schema.CatalogSnapshot:
    """Read everything one generation run needs, once, into plain data."""
    if db.get(Department, department_id) is None:
        raise ResourceNotFoundError("Department", str(department_id))

    subjects = db.execute(
        select(Subject)
        .where(Subject.department_id == department_id, Subject.semester == semester)
        .order_by(Subject.id)
    ).scalars().all()
    faculty = db.execute(
        select(Faculty)
        .where(Faculty.department_id == department_id, Faculty.is_available.is_(True))
        .order_by(Faculty.id)
    ).scalars().all()
    classrooms = db.execute(
        select(Classroom)
        .where(
            or_(Classroom.department_id == department_id, Classroom.department_id.is_(None)),
            Classroom.is_available.is_(True),
        )
        .order_by(Classroom.id)
    ).scalars().all()
    batches = db.execute(
        select(StudentBatch)
        .where(StudentBatch.department_id == department_id, StudentBatch.semester == semester)
        .order_by(StudentBatch.id)
    ).scalars().all()
    mappings = db.execute(
        select(FacultySubject)
        .join(Subject, FacultySubject.subject_id == Subject.id)
        .where(Subject.department_id == department_id)
        .order_by(FacultySubject.id)
    ).scalars().all()
    fixed_slots = db.execute(
        select(FixedSlot).where(FixedSlot.is_active.is_(True)).order_by(FixedSlot.id)
    ).scalars().all()

    try:
        params = _load_params(db, department_id)
        if params_override is not None:
            params = params_override.apply(params)
        snapshot = schema.CatalogSnapshot(
            department_id=department_id,
            semester=semester,
            academic_year=academic_year,
            params=params,
            subjects=tuple(schema.Subject.model_validate(item) for item in subjects),
            faculty=tuple(schema.Faculty.model_validate(item) for item in faculty),
            classrooms=tuple(schema.Classroom.model_validate(item) for item in classrooms),
            batches=tuple(schema.Batch.model_validate(item) for item in batches),
            eligibility=tuple(schema.EligibilityMapping.model_validate(item) for item in mappings),
            fixed_slots=tuple(schema.FixedSlot.model_validate(item) for item in fixed_slots),
        )
    except ValidationError as exc:
        raise InvalidCatalogError(
            "Catalog data for this department is malformed",
            details={"errors": exc.errors(include_url=False, include_context=False, include_input=False)},
        ) from exc

    logger.info(
        "Loaded catalog department=%s semester=%s subjects=%s faculty=%s classrooms=%s batches=%s fixed=%s",
        department_id,
        semester,
        len(snapshot.subjects),
        len(snapshot.faculty),
        len(snapshot.classrooms),
        len(snapshot.batches),
        len(snapshot.fixed_slots),
    )
    return snapshot


def load_resource_names(db: Session) -> tuple[dict[int, str], dict[int, str], dict[int, str]]:
    faculty = {row.id: row.name for row in db.execute(select(Faculty.id, Faculty.name))}
    classrooms = {row.id: row.name for row in db.execute(select(Classroom.id, Classroom.name))}
    batches = {row.id: row.name for row in db.execute(select(StudentBatch.id, StudentBatch.name))}
    return faculty, classrooms, batches
