"""
Grading service for the Academic Progression Engine
Submission capture and grading, feeding the academic history
"""

import logging
from datetime import datetime

from database import db
from models.assignments import Assignment, Submission
from models.student import Student
from services.history_service import AcademicHistoryService
from utils.db_helpers import get_or_raise, retry_on_conflict
from utils.exceptions import AcademicError, Conflict, ValidationError
from utils.validators import validate_marks

logger = logging.getLogger(__name__)

class GradingService:
    """Grading service class"""

    @staticmethod
    def submit_work(assignment_id, student_id, submitted_at=None):
        """Record a student's submission; after the deadline it is marked late"""
        assignment = get_or_raise(Assignment, assignment_id)
        student = get_or_raise(Student, student_id)

        existing = Submission.query.filter_by(assignment_id=assignment.id, student_id=student.id).first()
        if existing:
            raise Conflict("Submission already exists for this assignment")

        submitted_at = submitted_at or datetime.utcnow()
        submission = Submission(
            assignment_id=assignment.id,
            student_id=student.id,
            group_id=student.group_id,
            subject_id=assignment.subject_id,
            status='late' if assignment.is_past_deadline(submitted_at) else 'submitted',
            submitted_at=submitted_at
        )
        db.session.add(submission)
        db.session.commit()
        return submission

    @staticmethod
    def grade_submission(submission_id, marks, feedback=None, graded_by=None):
        """
        Grade a submission and merge the result into the academic history.

        Returns (submission, subject_record). Submission and history are
        committed together; a concurrent grading of the same student is
        retried on fresh state.
        """
        try:
            return GradingService._grade(submission_id, marks, feedback, graded_by)
        except AcademicError:
            db.session.rollback()
            raise

    @staticmethod
    @retry_on_conflict()
    def _grade(submission_id, marks, feedback, graded_by):
        submission = get_or_raise(Submission, submission_id)
        assignment = get_or_raise(Assignment, submission.assignment_id)

        is_valid, message = validate_marks(marks, assignment.max_marks)
        if not is_valid:
            raise ValidationError(message)

        student = get_or_raise(Student, submission.student_id)
        graded_at = datetime.utcnow()

        submission.marks = float(marks)
        submission.feedback = feedback
        submission.graded_by = str(graded_by) if graded_by is not None else None
        submission.graded_at = graded_at
        submission.status = 'graded'

        subject_record = AcademicHistoryService.record_result(
            student,
            assignment.semester,
            assignment.subject_id,
            assignment.teacher_id,
            assignment.assignment_type,
            {
                'assignment_id': assignment.id,
                'marks': submission.marks,
                'max_marks': assignment.max_marks,
                'submitted_at': submission.submitted_at,
                'graded_at': graded_at
            },
            group_id=submission.group_id
        )
        db.session.commit()

        logger.info("Graded submission %s: %s/%s (%s subject %s now %.2f%% %s)",
                    submission.id, submission.marks, assignment.max_marks,
                    student.student_code, assignment.subject_id,
                    subject_record.percentage, subject_record.grade)
        return submission, subject_record
