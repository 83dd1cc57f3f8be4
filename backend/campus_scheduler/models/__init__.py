from campus_scheduler.models.classroom import Classroom  # noqa: F401
from campus_scheduler.models.department import Department  # noqa: F401
from campus_scheduler.models.faculty import Faculty, FacultySubject  # noqa: F401
from campus_scheduler.models.fixed_slot import FixedSlot  # noqa: F401
from campus_scheduler.models.optimization_params import OptimizationParams  # noqa: F401
from campus_scheduler.models.student_batch import StudentBatch  # noqa: F401
from campus_scheduler.models.subject import Subject  # noqa: F401
