#!/usr/bin/env python3
"""
Sample data generator for the Academic Progression Engine
Creates sample data for testing and demonstration
"""

from app import create_app
from database import db
from models.academic import Teacher, Subject
from models.student import Student
from models.assignments import Assignment
from services.attendance_service import AttendanceService
from services.cohort_service import CohortService
from services.grading_service import GradingService
from datetime import date, datetime, timedelta

def create_sample_data():
    """Create sample data for the system"""
    app = create_app()

    with app.app_context():
        print("Creating sample data...")

        # Create teachers
        teachers = [
            Teacher(teacher_code='T001', full_name='Dr. John Smith'),
            Teacher(teacher_code='T002', full_name='Prof. Sarah Johnson'),
        ]
        db.session.add_all(teachers)

        # Create semester 1 subjects
        subjects = [
            Subject(code='CS101', name='Programming Fundamentals', semester=1, credits=4),
            Subject(code='MA101', name='Discrete Mathematics', semester=1, credits=3),
        ]
        db.session.add_all(subjects)
        db.session.commit()
        print(f"✓ Created {len(teachers)} teachers and {len(subjects)} subjects")

        # Create groups
        groups = [
            CohortService.create_group('S1-A', 1, date.today().year, capacity=3),
            CohortService.create_group('S1-B', 1, date.today().year, capacity=3),
        ]
        for group in groups:
            for subject, teacher in zip(subjects, teachers):
                CohortService.assign_teacher_to_group(group.id, subject.id, teacher.id)
        print(f"✓ Created {len(groups)} groups")

        # Create students
        students = []
        for number in range(1, 6):
            student = Student(
                student_code=f'STU{number:03d}',
                full_name=f'Student {number}',
                enrollment_year=date.today().year
            )
            db.session.add(student)
            students.append(student)
        db.session.commit()
        print(f"✓ Created {len(students)} students")

        summary = CohortService.auto_assign_students()
        print(f"✓ Assigned {summary['assigned']} students to groups")

        # Assignments: one weekly and one main per subject
        assignments = []
        for subject, teacher in zip(subjects, teachers):
            for assignment_type, max_marks in (('weekly', 10), ('main', 50)):
                assignment = Assignment(
                    title=f'{subject.code} {assignment_type} assignment',
                    assignment_type=assignment_type,
                    semester=1,
                    subject_id=subject.id,
                    teacher_id=teacher.id,
                    max_marks=max_marks,
                    deadline=datetime.utcnow() + timedelta(days=7),
                    groups=groups
                )
                db.session.add(assignment)
                assignments.append(assignment)
        db.session.commit()

        # Submissions and grades
        graded = 0
        for offset, student in enumerate(students):
            for assignment in assignments:
                submission = GradingService.submit_work(assignment.id, student.id)
                marks = assignment.max_marks * (0.9 - 0.15 * offset)
                GradingService.grade_submission(submission.id, max(marks, 0), graded_by='T001')
                graded += 1
        print(f"✓ Graded {graded} submissions")

        # Attendance: ten sessions per subject, attendance falls off by student
        for group in groups:
            members = CohortService.get_group_students(group.id)
            for day in range(10):
                for subject, teacher in zip(subjects, teachers):
                    entries = []
                    for index, student in enumerate(members):
                        status = 'present' if day < 10 - index * 2 else 'absent'
                        entries.append({'student_id': student.id, 'status': status})
                    AttendanceService.record_session(
                        date.today() - timedelta(days=day), 1, subject.id,
                        teacher.id, group.id, entries, submit=True
                    )
        print("✓ Recorded attendance")

        print("\nSample data created successfully!")

if __name__ == '__main__':
    create_sample_data()
