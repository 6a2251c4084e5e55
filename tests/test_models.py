"""
Unit tests for database models
"""

import unittest
from datetime import date, datetime

from sqlalchemy.exc import IntegrityError

from app import create_app
from config import TestingConfig
from database import db
from models.academic import Teacher, Subject
from models.group import Group
from models.student import (
    Student, SemesterRecord, SubjectRecord, AssignmentResult,
    MainAssignmentResult, WeeklyAssignmentResult
)
from models.assignments import Assignment
from models.attendance import AttendanceSession, AttendanceEntry

class TestModels(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures"""
        self.app = create_app(TestingConfig)
        self.app_context = self.app.app_context()
        self.app_context.push()
        db.create_all()

        self.teacher = Teacher(teacher_code='T001', full_name='John Doe')
        self.subject = Subject(code='CS101', name='Programming', semester=1)
        self.group = Group(name='S1-A', semester=1, academic_year=2024, capacity=2)
        db.session.add_all([self.teacher, self.subject, self.group])
        db.session.commit()

    def tearDown(self):
        """Clean up after tests"""
        db.session.remove()
        db.drop_all()
        self.app_context.pop()

    def test_student_model(self):
        """Test Student model"""
        student = Student(student_code='STU001', full_name='Alice Johnson', enrollment_year=2024)
        db.session.add(student)
        db.session.commit()

        self.assertEqual(student.current_semester, 1)
        self.assertEqual(student.status, 'active')
        self.assertEqual(student.version_id, 1)
        self.assertEqual(str(student), '<Student STU001: Alice Johnson>')

        student.full_name = 'Alice J. Johnson'
        db.session.commit()
        self.assertEqual(student.version_id, 2)

    def test_advance_semester(self):
        """Test promotion and graduation of a student"""
        student = Student(student_code='STU001', full_name='Alice', enrollment_year=2024,
                          current_semester=3, group_id=self.group.id)
        student.advance_semester()
        self.assertEqual(student.current_semester, 4)
        self.assertEqual(student.status, 'promoted')
        self.assertIsNone(student.group_id)

        finalist = Student(student_code='STU002', full_name='Bob', enrollment_year=2021,
                           current_semester=8, group_id=self.group.id)
        finalist.advance_semester()
        self.assertEqual(finalist.current_semester, 8)
        self.assertEqual(finalist.status, 'graduated')
        self.assertEqual(finalist.group_id, self.group.id)

    def test_semester_out_of_range_rejected(self):
        db.session.add(Student(student_code='STU001', full_name='Alice', enrollment_year=2024, current_semester=9))
        with self.assertRaises(IntegrityError):
            db.session.commit()
        db.session.rollback()

    def test_group_capacity(self):
        """Test Group seat accounting"""
        self.assertEqual(self.group.available_seats, 2)
        self.assertFalse(self.group.is_full())

        self.group.student_count = 2
        db.session.commit()
        self.assertTrue(self.group.is_full())
        self.assertEqual(self.group.available_seats, 0)

        self.group.student_count = 3
        with self.assertRaises(IntegrityError):
            db.session.commit()
        db.session.rollback()

    def test_group_member_ids(self):
        first = Student(student_code='STU001', full_name='Alice', enrollment_year=2024, group_id=self.group.id)
        second = Student(student_code='STU002', full_name='Bob', enrollment_year=2024, group_id=self.group.id)
        db.session.add_all([first, second])
        db.session.commit()

        self.assertEqual(self.group.get_member_ids(), sorted([first.id, second.id]))
        self.assertEqual(self.group.to_dict()['students'], sorted([first.id, second.id]))

    def test_subject_record_recalculate(self):
        """Test derived subject totals"""
        student = Student(student_code='STU001', full_name='Alice', enrollment_year=2024)
        record = SemesterRecord(semester=1, group_id=self.group.id)
        student.academic_history.append(record)
        subject_record = SubjectRecord(subject_id=self.subject.id, teacher_id=self.teacher.id)
        record.subjects.append(subject_record)

        main = Assignment(title='Project', assignment_type='main', semester=1,
                          subject_id=self.subject.id, teacher_id=self.teacher.id, max_marks=50)
        weekly = Assignment(title='Week 1', assignment_type='weekly', semester=1,
                            subject_id=self.subject.id, teacher_id=self.teacher.id, max_marks=10)
        db.session.add_all([student, main, weekly])
        db.session.commit()

        subject_record.results.append(MainAssignmentResult(assignment_id=main.id, marks=20, max_marks=50))
        subject_record.results.append(WeeklyAssignmentResult(assignment_id=weekly.id, marks=4, max_marks=10))
        subject_record.recalculate()
        db.session.commit()

        self.assertEqual(subject_record.total_marks, 24)
        self.assertEqual(subject_record.percentage, 40.0)
        self.assertEqual(subject_record.grade, 'C')
        self.assertTrue(subject_record.passed)
        self.assertEqual(subject_record.main_assignment.marks, 20)
        self.assertEqual(len(subject_record.weekly_assignments), 1)

    def test_assignment_result_polymorphic_load(self):
        student = Student(student_code='STU001', full_name='Alice', enrollment_year=2024)
        record = SemesterRecord(semester=1, group_id=self.group.id)
        student.academic_history.append(record)
        subject_record = SubjectRecord(subject_id=self.subject.id)
        record.subjects.append(subject_record)
        main = Assignment(title='Project', assignment_type='main', semester=1,
                          subject_id=self.subject.id, teacher_id=self.teacher.id, max_marks=50)
        db.session.add_all([student, main])
        db.session.commit()

        subject_record.results.append(MainAssignmentResult(assignment_id=main.id, marks=25, max_marks=50))
        db.session.commit()
        db.session.expire_all()

        loaded = AssignmentResult.query.one()
        self.assertIsInstance(loaded, MainAssignmentResult)
        self.assertEqual(loaded.kind, 'main')
        self.assertEqual(loaded.percentage, 50.0)

    def test_one_semester_record_per_semester(self):
        student = Student(student_code='STU001', full_name='Alice', enrollment_year=2024)
        student.academic_history.append(SemesterRecord(semester=1, group_id=self.group.id))
        student.academic_history.append(SemesterRecord(semester=1, group_id=self.group.id))
        db.session.add(student)
        with self.assertRaises(IntegrityError):
            db.session.commit()
        db.session.rollback()

    def test_assignment_deadline(self):
        assignment = Assignment(title='Week 1', assignment_type='weekly', semester=1,
                                subject_id=self.subject.id, teacher_id=self.teacher.id,
                                max_marks=10, deadline=datetime(2024, 1, 10))
        self.assertFalse(assignment.is_main())
        self.assertFalse(assignment.is_past_deadline(datetime(2024, 1, 10)))
        self.assertTrue(assignment.is_past_deadline(datetime(2024, 1, 11)))

    def test_attendance_session_totals(self):
        """Test AttendanceSession totals"""
        first = Student(student_code='STU001', full_name='Alice', enrollment_year=2024)
        second = Student(student_code='STU002', full_name='Bob', enrollment_year=2024)
        third = Student(student_code='STU003', full_name='Carol', enrollment_year=2024)
        db.session.add_all([first, second, third])
        db.session.commit()

        session = AttendanceSession(date=date(2024, 3, 1), semester=1, subject_id=self.subject.id,
                                    teacher_id=self.teacher.id, group_id=self.group.id)
        session.entries.append(AttendanceEntry(student_id=first.id, status='present'))
        session.entries.append(AttendanceEntry(student_id=second.id, status='late'))
        session.entries.append(AttendanceEntry(student_id=third.id, status='absent'))
        session.calculate_totals()
        db.session.add(session)
        db.session.commit()

        self.assertEqual(session.total_present, 1)
        self.assertEqual(session.total_late, 1)
        self.assertEqual(session.total_absent, 1)
        self.assertEqual(session.total_students, 3)
        self.assertEqual(session.status_for(second.id), 'late')
        self.assertIsNone(session.status_for(999))
        self.assertFalse(session.is_submitted)

        session.submit()
        self.assertTrue(session.is_submitted)
        self.assertIsNotNone(session.submitted_at)

if __name__ == '__main__':
    unittest.main()
