from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from campus_scheduler.db.base import Base


class OptimizationParams(Base):
    __tablename__ = "optimization_params"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    department_id: Mapped[int] = mapped_column(ForeignKey("departments.id"), nullable=False, unique=True)
    max_classes_per_day: Mapped[int] = mapped_column(Integer, nullable=False, default=6)
    min_break_duration: Mapped[int] = mapped_column(Integer, nullable=False, default=15)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False, default="09:00")
    end_time: Mapped[str] = mapped_column(String(5), nullable=False, default="17:00")
    lunch_break_start: Mapped[str] = mapped_column(String(5), nullable=False, default="13:00")
    lunch_break_end: Mapped[str] = mapped_column(String(5), nullable=False, default="14:00")
    working_days: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
