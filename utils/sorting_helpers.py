"""
Sorting helper utilities for the Academic Progression Engine
Provides consistent ordering for students and groups
"""

import re

class SortingHelpers:
    """Helper class for sorting operations"""

    @staticmethod
    def get_student_sort_key(student):
        """
        Get enrollment-order sort key for a student
        Order: semester, enrollment year, numeric part of the student code, then id
        """
        student_code = (student.student_code or '').upper()

        # Extract numeric part for proper sorting
        numeric_match = re.search(r'(\d+)', student_code)
        if numeric_match:
            numeric_part = int(numeric_match.group(1))
        else:
            numeric_part = 999999  # Put non-numeric at end

        return (student.current_semester, student.enrollment_year or 0, numeric_part,
                student_code, student.id or 0)

    @staticmethod
    def get_group_sort_key(group):
        """Groups are ordered by creation time, then id"""
        return (group.created_at is None, group.created_at, group.id or 0)

    @staticmethod
    def sort_students(students):
        """Sort students in enrollment order"""
        return sorted(students, key=SortingHelpers.get_student_sort_key)

    @staticmethod
    def sort_groups(groups):
        """Sort groups in creation order"""
        return sorted(groups, key=SortingHelpers.get_group_sort_key)
