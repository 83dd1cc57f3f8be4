from collections.abc import Generator

from fastapi import Depends
from pydantic import ValidationError
from sqlalchemy.orm import Session

from campus_scheduler.core.config import Settings, get_settings
from campus_scheduler.core.exceptions import ConfigurationError
from campus_scheduler.db.session import SessionLocal
from campus_scheduler.schemas.generator import GenerationSettings


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_generation_settings(settings: Settings = Depends(get_settings)) -> GenerationSettings:
    try:
        return GenerationSettings.from_app_settings(settings)
    except ValidationError as exc:
        fields = sorted({".".join(str(part) for part in error["loc"]) for error in exc.errors()})
        raise ConfigurationError(f"Invalid scheduler settings: {', '.join(fields)}") from exc
