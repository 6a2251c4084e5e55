"""
Unit tests for attendance, performance, academic history and grading services
"""

import unittest
from datetime import date, datetime, timedelta
from unittest import mock

from sqlalchemy import update
from sqlalchemy.orm.exc import StaleDataError

from app import create_app
from config import TestingConfig
from database import DatabaseError, db, handle_db_error
from models.academic import Teacher, Subject
from models.group import Group
from models.student import Student, SemesterRecord
from models.assignments import Assignment, Submission
from models.attendance import AttendanceSession
from services.attendance_service import AttendanceService, attendance_status, summarize
from services.performance_service import (
    GradedWork, calculate_grade, evaluate_semester, round_half_up, subject_results
)
from services.history_service import AcademicHistoryService
from services.grading_service import GradingService
from utils.db_helpers import retry_on_conflict, safe_add_and_commit
from utils.exceptions import Conflict, MissingGroupContext, NotFound, ValidationError

class ServiceTestCase(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures"""
        self.app = create_app(TestingConfig)
        self.app_context = self.app.app_context()
        self.app_context.push()
        db.create_all()

        self.teacher = Teacher(teacher_code='T001', full_name='Ada Lovelace')
        self.subject = Subject(code='CS101', name='Programming', semester=1)
        self.other_subject = Subject(code='MA101', name='Mathematics', semester=1)
        self.group = Group(name='S1-A', semester=1, academic_year=2024, capacity=30, student_count=1)
        db.session.add_all([self.teacher, self.subject, self.other_subject, self.group])
        db.session.commit()

        self.student = Student(student_code='STU001', full_name='Alice Johnson',
                               enrollment_year=2024, group_id=self.group.id)
        db.session.add(self.student)
        db.session.commit()

    def tearDown(self):
        """Clean up after tests"""
        db.session.remove()
        db.drop_all()
        self.app_context.pop()

    def make_assignment(self, assignment_type='weekly', max_marks=10, subject=None, deadline=None):
        assignment = Assignment(
            title=f'{assignment_type} work',
            assignment_type=assignment_type,
            semester=1,
            subject_id=(subject or self.subject).id,
            teacher_id=self.teacher.id,
            max_marks=max_marks,
            deadline=deadline
        )
        db.session.add(assignment)
        db.session.commit()
        return assignment

class TestAttendanceService(ServiceTestCase):

    def record(self, statuses, subject=None, submit=True):
        subject = subject or self.subject
        for day, status in enumerate(statuses):
            AttendanceService.record_session(
                date(2024, 3, 1) + timedelta(days=day), 1, subject.id, self.teacher.id,
                self.group.id, [{'student_id': self.student.id, 'status': status}], submit=submit
            )

    def test_no_classes_gives_zero_percentage(self):
        """Absence of data is never reported as attendance"""
        summary = summarize(self.student.id, [])
        self.assertEqual(summary['total_classes'], 0)
        self.assertEqual(summary['percentage'], 0)
        self.assertEqual(summary['status'], 'poor')

        summary = AttendanceService.get_student_summary(self.student.id, 1)
        self.assertEqual(summary['percentage'], 0)

    def test_late_counts_towards_percentage_but_is_reported_separately(self):
        self.record(['present', 'late', 'absent', 'excused'])

        summary = AttendanceService.get_student_summary(self.student.id, 1)
        self.assertEqual(summary['total_classes'], 4)
        self.assertEqual(summary['present'], 1)
        self.assertEqual(summary['late'], 1)
        self.assertEqual(summary['absent'], 1)
        self.assertEqual(summary['excused'], 1)
        self.assertEqual(summary['percentage'], 50)
        self.assertEqual(summary['status'], 'satisfactory')

    def test_percentage_rounds_half_up(self):
        self.record(['present'] + ['absent'] * 7)
        self.assertEqual(AttendanceService.get_overall_percentage(self.student.id, 1), 13)

    def test_unsubmitted_sessions_do_not_count(self):
        self.record(['present', 'present'])
        AttendanceService.record_session(
            date(2024, 4, 1), 1, self.subject.id, self.teacher.id, self.group.id,
            [{'student_id': self.student.id, 'status': 'absent'}]
        )
        summary = AttendanceService.get_student_summary(self.student.id, 1)
        self.assertEqual(summary['total_classes'], 2)
        self.assertEqual(summary['percentage'], 100)

    def test_subject_filter_and_breakdown(self):
        self.record(['present', 'present'])
        self.record(['absent', 'absent'], subject=self.other_subject)

        subject_summary = AttendanceService.get_student_summary(self.student.id, 1, self.subject.id)
        self.assertEqual(subject_summary['percentage'], 100)

        breakdown = AttendanceService.get_subject_breakdown(self.student.id, 1)
        self.assertEqual(len(breakdown['subjects']), 2)
        self.assertEqual(breakdown['overall']['total_classes'], 4)
        self.assertEqual(breakdown['overall']['percentage'], 50)

    def test_lookup_failure_degrades_to_zero_summary(self):
        with mock.patch.object(AttendanceService, 'get_submitted_sessions', side_effect=RuntimeError('down')):
            summary = AttendanceService.get_student_summary(self.student.id, 1)
        self.assertEqual(summary['total_classes'], 0)
        self.assertEqual(summary['percentage'], 0)

    def test_submit_session_makes_it_count(self):
        self.record(['present', 'absent'], submit=False)
        self.assertEqual(AttendanceService.get_student_summary(self.student.id, 1)['total_classes'], 0)

        for session in AttendanceSession.query.all():
            AttendanceService.submit_session(session.id)

        summary = AttendanceService.get_student_summary(self.student.id, 1)
        self.assertEqual(summary['total_classes'], 2)
        self.assertEqual(summary['percentage'], 50)

    def test_invalid_status_rejected(self):
        with self.assertRaises(ValidationError):
            AttendanceService.record_session(
                date(2024, 3, 1), 1, self.subject.id, self.teacher.id, self.group.id,
                [{'student_id': self.student.id, 'status': 'sleeping'}]
            )

    def test_submitted_session_cannot_be_rewritten(self):
        self.record(['present'])
        with self.assertRaises(ValidationError):
            self.record(['absent'])

    def test_status_bands(self):
        self.assertEqual(attendance_status(75), 'excellent')
        self.assertEqual(attendance_status(74), 'good')
        self.assertEqual(attendance_status(65), 'good')
        self.assertEqual(attendance_status(50), 'satisfactory')
        self.assertEqual(attendance_status(49), 'poor')

class TestPerformanceEvaluator(unittest.TestCase):

    def test_no_main_assignment_is_never_passed(self):
        work = [GradedWork(1, 10, 'weekly', 10, 10), GradedWork(2, 10, 'weekly', 10, 10)]
        result = evaluate_semester(work)
        self.assertFalse(result['main_assignments_completed'])
        self.assertFalse(result['main_assignments_passed'])
        self.assertEqual(result['subject_results'][0]['percentage'], 100.0)

    def test_every_main_assignment_must_pass(self):
        passed = evaluate_semester([GradedWork(1, 10, 'main', 45, 50)])
        self.assertTrue(passed['main_assignments_completed'])
        self.assertTrue(passed['main_assignments_passed'])
        self.assertEqual(passed['main_assignment_results'][0]['percentage'], 90.0)

        mixed = evaluate_semester([GradedWork(1, 10, 'main', 45, 50), GradedWork(2, 11, 'main', 19, 50)])
        self.assertTrue(mixed['main_assignments_completed'])
        self.assertFalse(mixed['main_assignments_passed'])

    def test_subject_rollup_combines_main_and_weekly(self):
        results = subject_results([
            GradedWork(1, 10, 'weekly', 8, 10),
            GradedWork(2, 10, 'main', 40, 50),
            GradedWork(3, 11, 'weekly', 3, 10),
        ])
        self.assertEqual(len(results), 2)
        first, second = results
        self.assertEqual(first['subject_id'], 10)
        self.assertEqual(first['total_obtained'], 48)
        self.assertEqual(first['total_max'], 60)
        self.assertEqual(first['percentage'], 80.0)
        self.assertEqual(first['grade'], 'A')
        self.assertTrue(first['passed'])
        self.assertEqual(second['grade'], 'F')
        self.assertFalse(second['passed'])

    def test_grade_boundaries(self):
        at_boundary = subject_results([GradedWork(1, 10, 'weekly', 40, 100)])[0]
        self.assertEqual(at_boundary['percentage'], 40.0)
        self.assertEqual(at_boundary['grade'], 'C')
        self.assertTrue(at_boundary['passed'])

        below = subject_results([GradedWork(1, 10, 'weekly', 3999, 10000)])[0]
        self.assertEqual(below['percentage'], 39.99)
        self.assertEqual(below['grade'], 'F')
        self.assertFalse(below['passed'])

        self.assertEqual(calculate_grade(90), 'A+')
        self.assertEqual(calculate_grade(89.99), 'A')
        self.assertEqual(calculate_grade(70), 'B+')
        self.assertEqual(calculate_grade(60), 'B')
        self.assertEqual(calculate_grade(50), 'C+')

    def test_zero_max_marks_gives_zero_percentage(self):
        result = subject_results([GradedWork(1, 10, 'weekly', 0, 0)])[0]
        self.assertEqual(result['percentage'], 0.0)
        self.assertEqual(result['grade'], 'F')

    def test_round_half_up(self):
        self.assertEqual(round_half_up(12.5), 13)
        self.assertEqual(round_half_up(66.666, 2), 66.67)
        self.assertEqual(round_half_up(39.995, 2), 40.0)

    def test_pass_mark_judged_on_unrounded_ratio(self):
        result = evaluate_semester([GradedWork(1, 10, 'main', 19.998, 50)])
        main = result['main_assignment_results'][0]
        subject = result['subject_results'][0]

        # 39.996% displays as 40.0 but is still below the pass mark
        self.assertEqual(main['percentage'], 40.0)
        self.assertFalse(main['passed'])
        self.assertFalse(result['main_assignments_passed'])
        self.assertEqual(subject['percentage'], 40.0)
        self.assertEqual(subject['grade'], 'F')
        self.assertFalse(subject['passed'])

class TestAcademicHistoryService(ServiceTestCase):

    def entry(self, assignment, marks):
        return {
            'assignment_id': assignment.id,
            'marks': marks,
            'max_marks': assignment.max_marks,
            'graded_at': datetime(2024, 3, 1, 12, 0)
        }

    def test_first_result_creates_semester_and_subject(self):
        weekly = self.make_assignment('weekly', 10)
        subject_record = AcademicHistoryService.merge_result(
            self.student.id, 1, self.subject.id, self.teacher.id, 'weekly', self.entry(weekly, 7)
        )

        record = SemesterRecord.query.filter_by(student_id=self.student.id, semester=1).one()
        self.assertEqual(record.group_id, self.group.id)
        self.assertEqual(len(record.subjects), 1)
        self.assertEqual(subject_record.teacher_id, self.teacher.id)
        self.assertEqual(subject_record.percentage, 70.0)
        self.assertEqual(subject_record.grade, 'B+')
        self.assertTrue(subject_record.passed)

    def test_missing_group_context(self):
        loner = Student(student_code='STU099', full_name='No Group', enrollment_year=2024)
        db.session.add(loner)
        db.session.commit()
        weekly = self.make_assignment('weekly', 10)

        with self.assertRaises(MissingGroupContext):
            AcademicHistoryService.merge_result(
                loner.id, 1, self.subject.id, self.teacher.id, 'weekly', self.entry(weekly, 7)
            )

    def test_past_semester_needs_explicit_group(self):
        group = Group(name='S2-A', semester=2, academic_year=2024, capacity=30, student_count=1)
        db.session.add(group)
        db.session.commit()
        senior = Student(student_code='STU050', full_name='Second Year', enrollment_year=2024,
                         current_semester=2, group_id=group.id)
        db.session.add(senior)
        db.session.commit()
        weekly = self.make_assignment('weekly', 10)

        with self.assertRaises(MissingGroupContext):
            AcademicHistoryService.merge_result(
                senior.id, 1, self.subject.id, self.teacher.id, 'weekly', self.entry(weekly, 7)
            )
        db.session.rollback()
        self.assertIsNone(SemesterRecord.query.filter_by(student_id=senior.id, semester=1).first())

        AcademicHistoryService.merge_result(
            senior.id, 1, self.subject.id, self.teacher.id, 'weekly', self.entry(weekly, 7),
            group_id=self.group.id
        )
        record = SemesterRecord.query.filter_by(student_id=senior.id, semester=1).one()
        self.assertEqual(record.group_id, self.group.id)

    def test_main_just_below_pass_mark_fails(self):
        main = self.make_assignment('main', 50)
        subject_record = AcademicHistoryService.merge_result(
            self.student.id, 1, self.subject.id, self.teacher.id, 'main', self.entry(main, 19.998)
        )

        self.assertEqual(subject_record.percentage, 40.0)
        self.assertEqual(subject_record.grade, 'F')
        self.assertFalse(subject_record.passed)

        detail = AcademicHistoryService.get_main_assignments(self.student.id, 1)
        self.assertEqual(detail['main_assignments'][0]['percentage'], 40.0)
        self.assertFalse(detail['main_assignments'][0]['passed'])
        self.assertFalse(detail['all_passed'])

    def test_regrading_same_weekly_assignment_is_idempotent(self):
        weekly = self.make_assignment('weekly', 10)
        first = AcademicHistoryService.merge_result(
            self.student.id, 1, self.subject.id, self.teacher.id, 'weekly', self.entry(weekly, 6)
        ).to_dict()
        second = AcademicHistoryService.merge_result(
            self.student.id, 1, self.subject.id, self.teacher.id, 'weekly', self.entry(weekly, 6)
        ).to_dict()

        self.assertEqual(first, second)
        self.assertEqual(len(second['weekly_assignments']), 1)

    def test_main_result_last_grading_wins(self):
        main = self.make_assignment('main', 50)
        weekly = self.make_assignment('weekly', 10)
        AcademicHistoryService.merge_result(
            self.student.id, 1, self.subject.id, self.teacher.id, 'weekly', self.entry(weekly, 10)
        )
        AcademicHistoryService.merge_result(
            self.student.id, 1, self.subject.id, self.teacher.id, 'main', self.entry(main, 10)
        )
        subject_record = AcademicHistoryService.merge_result(
            self.student.id, 1, self.subject.id, self.teacher.id, 'main', self.entry(main, 35)
        )

        self.assertEqual(subject_record.main_assignment.marks, 35)
        self.assertEqual(len(subject_record.results), 2)
        self.assertEqual(subject_record.total_marks, 45)
        self.assertEqual(subject_record.percentage, 75.0)

        detail = AcademicHistoryService.get_main_assignments(self.student.id, 1)
        self.assertTrue(detail['all_completed'])
        self.assertTrue(detail['all_passed'])

    def test_marks_out_of_range_rejected(self):
        weekly = self.make_assignment('weekly', 10)
        with self.assertRaises(ValidationError):
            AcademicHistoryService.merge_result(
                self.student.id, 1, self.subject.id, self.teacher.id, 'weekly', self.entry(weekly, 11)
            )

    def test_recalculate_semester_requires_history(self):
        with self.assertRaises(NotFound):
            AcademicHistoryService.recalculate_semester(self.student.id, 1)

    def test_stale_student_write_is_rejected(self):
        student = db.session.get(Student, self.student.id)
        db.session.execute(
            update(Student).where(Student.id == student.id)
            .values(version_id=Student.version_id + 1)
            .execution_options(synchronize_session=False)
        )
        student.full_name = 'Concurrent Edit'
        with self.assertRaises(StaleDataError):
            db.session.commit()
        db.session.rollback()

    def test_retry_on_conflict_reruns_unit_of_work(self):
        calls = []

        @retry_on_conflict(attempts=3)
        def flaky():
            calls.append(1)
            if len(calls) < 2:
                raise StaleDataError("version moved")
            return 'done'

        self.assertEqual(flaky(), 'done')
        self.assertEqual(len(calls), 2)

        @retry_on_conflict(attempts=2)
        def always_stale():
            raise StaleDataError("version moved")

        with self.assertRaises(Conflict):
            always_stale()

    def test_db_error_wrapper_keeps_function_identity(self):
        self.assertEqual(safe_add_and_commit.__name__, 'safe_add_and_commit')
        self.assertIs(safe_add_and_commit.__wrapped__.__doc__, safe_add_and_commit.__doc__)

        @handle_db_error
        def broken():
            raise RuntimeError("disk full")

        with self.assertRaises(DatabaseError):
            broken()
        self.assertEqual(broken.__name__, 'broken')

class TestGradingService(ServiceTestCase):

    def test_grade_submission_updates_history(self):
        main = self.make_assignment('main', 50)
        submission = GradingService.submit_work(main.id, self.student.id)
        self.assertEqual(submission.status, 'submitted')
        self.assertEqual(submission.group_id, self.group.id)

        graded, subject_record = GradingService.grade_submission(submission.id, 45, 'Well done', graded_by='T001')

        self.assertEqual(graded.status, 'graded')
        self.assertEqual(graded.marks, 45)
        self.assertEqual(graded.feedback, 'Well done')
        self.assertEqual(graded.graded_by, 'T001')
        self.assertIsNotNone(graded.graded_at)
        self.assertEqual(subject_record.main_assignment.marks, 45)
        self.assertEqual(subject_record.percentage, 90.0)
        self.assertEqual(subject_record.grade, 'A+')

    def test_late_submission(self):
        weekly = self.make_assignment('weekly', 10, deadline=datetime(2024, 1, 1))
        submission = GradingService.submit_work(weekly.id, self.student.id, submitted_at=datetime(2024, 1, 2))
        self.assertEqual(submission.status, 'late')

        with self.assertRaises(Conflict):
            GradingService.submit_work(weekly.id, self.student.id)

    def test_marks_above_maximum_rejected(self):
        weekly = self.make_assignment('weekly', 10)
        submission = GradingService.submit_work(weekly.id, self.student.id)

        with self.assertRaises(ValidationError):
            GradingService.grade_submission(submission.id, 12)
        with self.assertRaises(ValidationError):
            GradingService.grade_submission(submission.id, -1)

        submission = db.session.get(Submission, submission.id)
        self.assertEqual(submission.status, 'submitted')
        self.assertIsNone(submission.marks)
        self.assertEqual(SemesterRecord.query.count(), 0)

    def test_unknown_submission(self):
        with self.assertRaises(NotFound):
            GradingService.grade_submission(999, 5)

    def test_regrade_keeps_single_weekly_entry(self):
        weekly = self.make_assignment('weekly', 10)
        submission = GradingService.submit_work(weekly.id, self.student.id)
        GradingService.grade_submission(submission.id, 4)
        _, subject_record = GradingService.grade_submission(submission.id, 9)

        self.assertEqual(len(subject_record.weekly_assignments), 1)
        self.assertEqual(subject_record.weekly_assignments[0].marks, 9)
        self.assertEqual(subject_record.percentage, 90.0)

if __name__ == '__main__':
    unittest.main()
