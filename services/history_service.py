"""
Academic history service for the Academic Progression Engine
Merges graded results into a student's durable per-semester record
"""

import logging
from datetime import datetime

from flask import current_app

from database import db
from models.student import Student, SemesterRecord, SubjectRecord, RESULT_TYPES
from utils.db_helpers import get_or_raise, retry_on_conflict
from utils.exceptions import MissingGroupContext, NotFound, ValidationError
from utils.validators import validate_assignment_type, validate_marks

logger = logging.getLogger(__name__)

class AcademicHistoryService:
    """Academic history writer"""

    @staticmethod
    def get_or_create_semester_record(student, semester, group_id=None, require_group=True):
        """Locate the student's record for a semester, creating it on first use"""
        record = student.get_semester_record(semester)
        if record:
            if record.group_id is None and group_id is not None:
                record.group_id = group_id
            return record

        # the current group only describes the current semester
        if group_id is None and semester == student.current_semester:
            group_id = student.group_id
        if group_id is None and require_group:
            raise MissingGroupContext(
                f"Student {student.student_code} has no group for semester {semester}"
            )

        record = SemesterRecord(semester=semester, group_id=group_id)
        student.academic_history.append(record)
        return record

    @staticmethod
    def record_result(student, semester, subject_id, teacher_id, assignment_type, entry, group_id=None):
        """
        Merge one graded result into the student's history without committing.

        `entry` holds assignment_id, marks, max_marks and optional
        submitted_at / graded_at. A main result replaces the subject's main
        entry; a weekly result is upserted by assignment id. Derived subject
        totals are recomputed from every entry afterwards.
        """
        is_valid, message = validate_assignment_type(assignment_type)
        if not is_valid:
            raise ValidationError(message)
        is_valid, message = validate_marks(entry.get('marks'), entry.get('max_marks'))
        if not is_valid:
            raise ValidationError(message)

        record = AcademicHistoryService.get_or_create_semester_record(student, semester, group_id)

        subject_record = record.get_subject(subject_id)
        if not subject_record:
            subject_record = SubjectRecord(subject_id=subject_id, teacher_id=teacher_id)
            record.subjects.append(subject_record)

        values = dict(
            assignment_id=entry['assignment_id'],
            marks=float(entry['marks']),
            max_marks=float(entry['max_marks']),
            submitted_at=entry.get('submitted_at'),
            graded_at=entry.get('graded_at') or datetime.utcnow()
        )

        if assignment_type == 'main':
            target = subject_record.main_assignment
        else:
            target = next((result for result in subject_record.weekly_assignments
                           if result.assignment_id == values['assignment_id']), None)

        if target is None:
            subject_record.results.append(RESULT_TYPES[assignment_type](**values))
        else:
            target.update_from(**values)

        subject_record.recalculate(current_app.config.get('PASS_PERCENTAGE', 40))
        student.touch_history()
        return subject_record

    @staticmethod
    @retry_on_conflict()
    def merge_result(student_id, semester, subject_id, teacher_id, assignment_type, entry, group_id=None):
        """Merge a result and commit it as one unit, retrying on concurrent writes"""
        student = get_or_raise(Student, student_id)
        subject_record = AcademicHistoryService.record_result(
            student, semester, subject_id, teacher_id, assignment_type, entry, group_id
        )
        db.session.commit()
        return subject_record

    @staticmethod
    @retry_on_conflict()
    def recalculate_semester(student_id, semester):
        """Recompute derived fields of every subject in a semester record"""
        student = get_or_raise(Student, student_id)
        record = student.get_semester_record(semester)
        if not record:
            raise NotFound("Semester history not found")

        pass_percentage = current_app.config.get('PASS_PERCENTAGE', 40)
        for subject_record in record.subjects:
            subject_record.recalculate(pass_percentage)
        student.touch_history()
        db.session.commit()
        return record

    @staticmethod
    def get_main_assignments(student_id, semester):
        """Main assignment detail of each subject in a semester record"""
        student = get_or_raise(Student, student_id)
        record = student.get_semester_record(semester)
        if not record:
            raise NotFound("Semester history not found")

        pass_percentage = current_app.config.get('PASS_PERCENTAGE', 40)
        main_assignments = []
        for subject_record in record.subjects:
            main = subject_record.main_assignment
            main_assignments.append({
                'subject_id': subject_record.subject_id,
                'assignment_id': main.assignment_id if main else None,
                'marks': main.marks if main else None,
                'max_marks': main.max_marks if main else 0,
                'percentage': main.percentage if main else 0.0,
                'passed': bool(main) and main.passes(pass_percentage),
                'completed': main is not None,
                'submitted_at': main.submitted_at.isoformat() if main and main.submitted_at else None,
                'graded_at': main.graded_at.isoformat() if main and main.graded_at else None
            })

        return {
            'student_id': student.id,
            'student_code': student.student_code,
            'semester': semester,
            'main_assignments': main_assignments,
            'all_passed': bool(main_assignments) and all(ma['passed'] for ma in main_assignments),
            'all_completed': bool(main_assignments) and all(ma['completed'] for ma in main_assignments)
        }
