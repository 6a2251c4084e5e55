"""
Validation utilities for the Academic Progression Engine
"""

from datetime import datetime, date

ATTENDANCE_STATUSES = ('present', 'absent', 'late', 'excused')
ASSIGNMENT_TYPES = ('weekly', 'main')

def validate_semester(semester, min_semester=1, max_semester=8):
    """Validate semester number"""
    if isinstance(semester, bool):
        return False, "Semester must be a number"
    try:
        sem_int = int(semester)
    except (ValueError, TypeError):
        return False, "Semester must be a number"

    if sem_int < min_semester or sem_int > max_semester:
        return False, f"Semester must be between {min_semester} and {max_semester}"
    return True, "Valid semester"

def validate_marks(marks, max_marks):
    """Validate marks against maximum marks"""
    try:
        marks_float = float(marks)
        max_marks_float = float(max_marks)
    except (ValueError, TypeError):
        return False, "Marks must be a valid number"

    if marks_float < 0:
        return False, "Marks cannot be negative"

    if marks_float > max_marks_float:
        return False, f"Marks cannot exceed maximum marks ({max_marks_float:g})"

    return True, "Valid marks"

def validate_assignment_type(assignment_type):
    """Validate assignment type"""
    if assignment_type not in ASSIGNMENT_TYPES:
        return False, f"Assignment type must be one of: {', '.join(ASSIGNMENT_TYPES)}"
    return True, "Valid assignment type"

def validate_attendance_status(status):
    """Validate attendance status"""
    if status not in ATTENDANCE_STATUSES:
        return False, f"Attendance status must be one of: {', '.join(ATTENDANCE_STATUSES)}"

    return True, "Valid attendance status"

def validate_capacity(capacity):
    """Validate group capacity"""
    if isinstance(capacity, bool):
        return False, "Capacity must be a whole number"
    try:
        value = int(capacity)
    except (ValueError, TypeError):
        return False, "Capacity must be a whole number"

    if value < 1:
        return False, "Capacity must be at least 1"
    return True, "Valid capacity"

def parse_date(value):
    """Return a date from a date, datetime or YYYY-MM-DD string"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value, '%Y-%m-%d').date()
