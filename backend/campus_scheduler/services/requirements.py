from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from campus_scheduler.schemas.catalog import Batch, EligibilityMapping, Subject


@dataclass(frozen=True)
class Requirement:
    subject_id: int
    batch_id: int
    subject_name: str
    batch_name: str
    requires_lab: bool
    session_type: str
    priority: int


def expand_requirements(subjects: Iterable[Subject], batches: Iterable[Batch]) -> list[Requirement]:
    """Emit one single-slot requirement per weekly contact hour of every (subject, batch) pair."""
    batches = list(batches)
    requirements: list[Requirement] = []
    for subject in subjects:
        for batch in batches:
            if batch.department_id != subject.department_id or batch.semester != subject.semester:
                continue
            for _ in range(subject.hours_per_week):
                requirements.append(
                    Requirement(
                        subject_id=subject.id,
                        batch_id=batch.id,
                        subject_name=subject.name,
                        batch_name=batch.name,
                        requires_lab=subject.requires_lab,
                        session_type=subject.type,
                        priority=subject.credits * 10,
                    )
                )
    return requirements


def eligible_faculty_counts(eligibility: Iterable[EligibilityMapping]) -> Counter[int]:
    return Counter(mapping.subject_id for mapping in eligibility)


def constraint_score(requirement: Requirement, faculty_counts: Counter[int]) -> int:
    # Fewer eligible faculty means a tighter requirement.
    return 100 - faculty_counts.get(requirement.subject_id, 0) * 10


def order_by_constraint(requirements: list[Requirement], faculty_counts: Counter[int]) -> list[Requirement]:
    return sorted(requirements, key=lambda req: constraint_score(req, faculty_counts), reverse=True)
