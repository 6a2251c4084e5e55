"""
Database models package for the Academic Progression Engine
"""

from .academic import Teacher, Subject
from .group import Group, GroupSubjectTeacher
from .student import (
    Student, SemesterRecord, SubjectRecord, AssignmentResult,
    MainAssignmentResult, WeeklyAssignmentResult
)
from .assignments import Assignment, Submission
from .attendance import AttendanceSession, AttendanceEntry

__all__ = [
    'Teacher', 'Subject', 'Group', 'GroupSubjectTeacher', 'Student',
    'SemesterRecord', 'SubjectRecord', 'AssignmentResult',
    'MainAssignmentResult', 'WeeklyAssignmentResult',
    'Assignment', 'Submission', 'AttendanceSession', 'AttendanceEntry'
]
