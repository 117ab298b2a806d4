"""Analysis modules."""

from .grading import GradeReport, grade_check, GRADE_TOLERANCE_M

__all__ = ["GradeReport", "grade_check", "GRADE_TOLERANCE_M"]
