"""
Promotion service for the Academic Progression Engine
Classifies each student of a semester and applies promotion, graduation
or failure, with a read-only report and a manual override path.
"""

import logging
from datetime import datetime

from flask import current_app

from database import db
from models.student import Student
from services.attendance_service import AttendanceService
from services.cohort_service import release_seat
from services.history_service import AcademicHistoryService
from services.performance_service import PerformanceService
from utils.exceptions import ValidationError
from utils.sorting_helpers import SortingHelpers
from utils.validators import validate_semester

logger = logging.getLogger(__name__)

AUTO_PROMOTE = 'auto_promote'
MANUAL_REVIEW = 'manual_review_required'
FAILED = 'failed'

# Students still progressing through the semester they are in
PROMOTION_CANDIDATE_STATUSES = ('active', 'failed', 'promoted')

def classify(attendance_percentage, performance, attendance_threshold=75):
    """
    Decide the promotion outcome for one student and semester.

    Returns (eligibility, reason). Attendance only matters once every main
    assignment is passed; a low attendance then needs a manual decision.
    """
    if not performance.get('graded_count'):
        return FAILED, "No graded submissions found"
    if not performance['main_assignments_completed']:
        return FAILED, "Main assignments not completed"
    if performance['main_assignments_passed'] and attendance_percentage >= attendance_threshold:
        return AUTO_PROMOTE, "Meets all criteria"
    if performance['main_assignments_passed']:
        return MANUAL_REVIEW, "Low attendance but passed main assignments"
    return FAILED, "Failed main assignments (marks below 40%)"

class PromotionService:
    """Promotion engine"""

    @staticmethod
    def check_semester(semester):
        """Validate and normalise a semester number"""
        config = current_app.config
        is_valid, message = validate_semester(
            semester, config.get('MIN_SEMESTER', 1), config.get('MAX_SEMESTER', 8)
        )
        if not is_valid:
            raise ValidationError(message)
        return int(semester)

    @staticmethod
    def assess_student(student, semester):
        """Attendance, performance and classification for one student"""
        config = current_app.config
        attendance_percentage = AttendanceService.get_overall_percentage(student.id, semester)
        performance = PerformanceService.evaluate_student(
            student.id, semester, config.get('PASS_PERCENTAGE', 40)
        )
        eligibility, reason = classify(
            attendance_percentage, performance, config.get('ATTENDANCE_THRESHOLD', 75)
        )
        return {
            'attendance_percentage': attendance_percentage,
            'performance': performance,
            'eligibility': eligibility,
            'reason': reason
        }

    @staticmethod
    def apply_promotion(student, semester, promoted_by=None, reason=None):
        """Mark the semester passed and move the student on (not committed)"""
        record = AcademicHistoryService.get_or_create_semester_record(
            student, semester, require_group=False
        )
        record.semester_passed = True
        record.promoted_at = datetime.utcnow()
        record.promoted_by = str(promoted_by) if promoted_by is not None else None
        if reason:
            record.manual_promotion_reason = reason

        previous_group_id = student.group_id
        student.advance_semester(current_app.config.get('MAX_SEMESTER', 8))
        if previous_group_id is not None and student.group_id is None:
            release_seat(previous_group_id)
        student.touch_history()
        return record

    @staticmethod
    def apply_failure(student, semester):
        """Mark the semester failed (not committed)"""
        record = AcademicHistoryService.get_or_create_semester_record(
            student, semester, require_group=False
        )
        record.semester_passed = False
        student.status = 'failed'
        student.touch_history()
        return record

    @staticmethod
    def promote_semester(semester, promoted_by=None, dry_run=False):
        """
        Run promotion for every candidate student in a semester.

        Each student is committed on its own; a failure for one student is
        recorded in the results and the batch carries on. With dry_run the
        classification is reported and nothing is written.
        """
        semester = PromotionService.check_semester(semester)

        students = SortingHelpers.sort_students(Student.query.filter(
            Student.current_semester == semester,
            Student.status.in_(PROMOTION_CANDIDATE_STATUSES)
        ).all())

        summary = {
            'semester': semester,
            'dry_run': dry_run,
            'total': len(students),
            'promoted': 0,
            'failed': 0,
            'graduated': 0,
            'errors': 0,
            'manual_promotion_required': 0,
            'manual_promotion_list': [],
            'results': []
        }

        for student in students:
            student_id = student.id
            student_code = student.student_code
            try:
                assessment = PromotionService.assess_student(student, semester)
                performance = assessment['performance']
                result = {
                    'student_id': student_id,
                    'student_code': student_code,
                    'attendance_percentage': assessment['attendance_percentage'],
                    'main_assignments_passed': performance['main_assignments_passed'],
                    'assignment_results': performance['main_assignment_results'],
                    'reason': assessment['reason']
                }

                if assessment['eligibility'] == AUTO_PROMOTE:
                    if not dry_run:
                        PromotionService.apply_promotion(student, semester, promoted_by)
                        db.session.commit()
                    graduating = semester >= current_app.config.get('MAX_SEMESTER', 8)
                    result['status'] = 'graduated' if graduating else 'promoted'
                    result['new_semester'] = semester if graduating else semester + 1
                    summary['graduated' if graduating else 'promoted'] += 1

                elif assessment['eligibility'] == MANUAL_REVIEW:
                    result['status'] = MANUAL_REVIEW
                    summary['manual_promotion_list'].append({
                        'student_id': student_id,
                        'student_code': student_code,
                        'attendance_percentage': assessment['attendance_percentage'],
                        'main_assignments_passed': True,
                        'current_status': student.status,
                        'assignment_results': performance['main_assignment_results']
                    })

                else:
                    if not dry_run:
                        PromotionService.apply_failure(student, semester)
                        db.session.commit()
                    result['status'] = FAILED
                    summary['failed'] += 1

                summary['results'].append(result)
            except Exception as e:
                db.session.rollback()
                logger.exception("Promotion failed for student %s", student_code)
                summary['errors'] += 1
                summary['results'].append({
                    'student_id': student_id,
                    'student_code': student_code,
                    'status': 'error',
                    'reason': str(e)
                })

        summary['manual_promotion_required'] = len(summary['manual_promotion_list'])
        logger.info("Promotion for semester %s%s: %d promoted, %d graduated, %d failed, "
                    "%d manual review, %d errors",
                    semester, ' (dry run)' if dry_run else '', summary['promoted'],
                    summary['graduated'], summary['failed'],
                    summary['manual_promotion_required'], summary['errors'])
        return summary

    @staticmethod
    def get_promotion_report(semester):
        """Read-only eligibility report for every student in a semester"""
        semester = PromotionService.check_semester(semester)
        students = SortingHelpers.sort_students(
            Student.query.filter_by(current_semester=semester).all()
        )

        report = []
        for student in students:
            assessment = PromotionService.assess_student(student, semester)
            performance = assessment['performance']
            record = student.get_semester_record(semester)
            report.append({
                'student_id': student.id,
                'student_code': student.student_code,
                'current_status': student.status,
                'attendance_percentage': assessment['attendance_percentage'],
                'main_assignments_passed': performance['main_assignments_passed'],
                'main_assignments_completed': performance['main_assignments_completed'],
                'assignment_results': performance['main_assignment_results'],
                'subject_results': performance['subject_results'],
                'promotion_eligibility': assessment['eligibility'],
                'reason': assessment['reason'],
                'semester_history': {
                    'semester': record.semester,
                    'semester_passed': record.semester_passed,
                    'subjects_count': len(record.subjects)
                } if record else None
            })

        return {
            'semester': semester,
            'total_students': len(report),
            'auto_promote': sum(1 for r in report if r['promotion_eligibility'] == AUTO_PROMOTE),
            'manual_review_required': sum(1 for r in report if r['promotion_eligibility'] == MANUAL_REVIEW),
            'failed': sum(1 for r in report if r['promotion_eligibility'] == FAILED),
            'report': report
        }

    @staticmethod
    def manually_promote(student_ids, semester, reason=None, promoted_by=None):
        """
        Promote students a reviewer has cleared despite low attendance.

        Only the main-assignment gate is checked again; attendance is what the
        reviewer is overriding.
        """
        if not student_ids or not isinstance(student_ids, (list, tuple)):
            raise ValidationError("Student IDs list is required")
        semester = PromotionService.check_semester(semester)
        pass_percentage = current_app.config.get('PASS_PERCENTAGE', 40)

        promoted = []
        failed = []

        for student_id in student_ids:
            try:
                student = db.session.get(Student, student_id)
                if not student:
                    failed.append({'student_id': student_id, 'reason': "Student not found"})
                    continue

                if student.current_semester != semester or student.status == 'graduated':
                    failed.append({
                        'student_id': student_id,
                        'reason': f"Student is not in semester {semester}"
                    })
                    continue

                performance = PerformanceService.evaluate_student(student.id, semester, pass_percentage)
                if not performance['main_assignments_passed']:
                    failed.append({
                        'student_id': student_id,
                        'reason': "Main assignments not passed (need at least 40% in each)",
                        'assignment_results': performance['main_assignment_results']
                    })
                    continue

                PromotionService.apply_promotion(student, semester, promoted_by, reason)
                db.session.commit()

                promoted.append({
                    'student_id': student.id,
                    'student_code': student.student_code,
                    'new_semester': student.current_semester,
                    'status': student.status,
                    'assignment_results': performance['main_assignment_results']
                })
            except Exception as e:
                db.session.rollback()
                logger.exception("Manual promotion failed for student %s", student_id)
                failed.append({'student_id': student_id, 'reason': str(e)})

        logger.info("Manual promotion for semester %s: %d promoted, %d failed",
                    semester, len(promoted), len(failed))
        return {
            'semester': semester,
            'promoted': promoted,
            'failed': failed
        }
