from .student import Student
from .goal import Goal
from .attendance import Attendance

__all__ = [
    "Student",
    "Goal",
    "Attendance",
]
