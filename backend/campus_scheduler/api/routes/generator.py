import logging
from time import perf_counter

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campus_scheduler.api.deps import get_db, get_generation_settings
from campus_scheduler.schemas.generator import (
    GenerateOptionsRequest,
    GenerateOptionsResponse,
    GenerateTimetableRequest,
    GeneratedTimetable,
    GenerationSettings,
)
from campus_scheduler.services.catalog_loader import load_catalog_snapshot
from campus_scheduler.services.option_ranking import generate_options
from campus_scheduler.services.placement_search import generate_timetable

router = APIRouter()
logger = logging.getLogger(__name__)


def _request_settings(settings: GenerationSettings, payload: GenerateTimetableRequest) -> GenerationSettings:
    seed = payload.optimization_options.random_seed
    if seed is None:
        return settings
    return settings.model_copy(update={"random_seed": seed})


@router.post("/generate", response_model=GeneratedTimetable)
def generate(
    payload: GenerateTimetableRequest,
    db: Session = Depends(get_db),
    settings: GenerationSettings = Depends(get_generation_settings),
) -> GeneratedTimetable:
    options = payload.optimization_options
    snapshot = load_catalog_snapshot(
        db,
        department_id=payload.department_id,
        semester=payload.semester,
        academic_year=payload.academic_year,
        params_override=options.params,
    )
    result = generate_timetable(
        snapshot,
        variation=options.variation,
        settings=_request_settings(settings, payload),
    )
    return result.to_schema()


@router.post("/generate-options", response_model=GenerateOptionsResponse)
def generate_timetable_options(
    payload: GenerateOptionsRequest,
    db: Session = Depends(get_db),
    settings: GenerationSettings = Depends(get_generation_settings),
) -> GenerateOptionsResponse:
    start = perf_counter()
    snapshot = load_catalog_snapshot(
        db,
        department_id=payload.department_id,
        semester=payload.semester,
        academic_year=payload.academic_year,
        params_override=payload.optimization_options.params,
    )
    ranked = generate_options(
        snapshot,
        payload.num_options,
        settings=_request_settings(settings, payload),
    )
    logger.info(
        "Options request department=%s semester=%s generated=%s/%s",
        payload.department_id,
        payload.semester,
        len(ranked),
        payload.num_options,
    )
    return GenerateOptionsResponse(
        message=f"Generated {len(ranked)} timetable options",
        options=ranked,
        requested=payload.num_options,
        runtime_ms=int((perf_counter() - start) * 1000),
    )
