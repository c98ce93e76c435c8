from attendo.models.generation_run import TimetableGenerationRun  # noqa: F401
from attendo.models.lesson_period import LessonPeriod  # noqa: F401
from attendo.models.room import Room  # noqa: F401
from attendo.models.school_class import SchoolClass  # noqa: F401
from attendo.models.subject import ClassSubject, Subject, TrainerSubjectAssignment  # noqa: F401
from attendo.models.term import DEFAULT_WORKING_DAYS, Term, TermClass  # noqa: F401
from attendo.models.timetable import TimetableSlot  # noqa: F401
from attendo.models.timetable_settings import TimetableSettings  # noqa: F401
from attendo.models.user import User, UserRole  # noqa: F401
