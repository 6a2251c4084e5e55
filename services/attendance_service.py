"""
Attendance service for the Academic Progression Engine
Attendance capture and per-student attendance aggregation
"""

import logging
from collections import OrderedDict
from datetime import datetime

from database import db
from models.attendance import AttendanceSession, AttendanceEntry
from services.performance_service import round_half_up
from utils.db_helpers import get_or_raise
from utils.exceptions import ValidationError
from utils.validators import validate_attendance_status, validate_semester, parse_date

logger = logging.getLogger(__name__)

def attendance_status(percentage):
    """Qualitative band shown next to an attendance percentage"""
    if percentage >= 75:
        return 'excellent'
    if percentage >= 65:
        return 'good'
    if percentage >= 50:
        return 'satisfactory'
    return 'poor'

def empty_summary():
    """Summary for a student with no attendance data"""
    return {
        'total_classes': 0,
        'present': 0,
        'absent': 0,
        'late': 0,
        'excused': 0,
        'percentage': 0,
        'status': attendance_status(0)
    }

def summarize(student_id, sessions):
    """
    Count a student's statuses over attendance sessions.

    Late arrivals count towards the percentage but are reported separately.
    Sessions without an entry for the student are not classes for them.
    """
    summary = empty_summary()
    for session in sessions:
        status = session.status_for(student_id)
        if status is None:
            continue
        summary['total_classes'] += 1
        if status in ('present', 'absent', 'late', 'excused'):
            summary[status] += 1

    if summary['total_classes'] > 0:
        attended = summary['present'] + summary['late']
        summary['percentage'] = round_half_up(attended / summary['total_classes'] * 100)
    summary['status'] = attendance_status(summary['percentage'])
    return summary

class AttendanceService:
    """Attendance service class"""

    @staticmethod
    def get_submitted_sessions(student_id, semester, subject_id=None):
        """Submitted sessions of a semester on which the student was on the roll"""
        query = (AttendanceSession.query
                 .join(AttendanceEntry, AttendanceEntry.session_id == AttendanceSession.id)
                 .filter(AttendanceSession.semester == semester,
                         AttendanceSession.is_submitted.is_(True),
                         AttendanceEntry.student_id == student_id))
        if subject_id is not None:
            query = query.filter(AttendanceSession.subject_id == subject_id)
        return query.order_by(AttendanceSession.date, AttendanceSession.id).all()

    @staticmethod
    def get_student_summary(student_id, semester, subject_id=None):
        """
        Attendance summary for one subject, or for all subjects of the semester.

        A failed lookup degrades to the zero summary so grading and reporting
        keep working without attendance data; the failure is logged.
        """
        try:
            sessions = AttendanceService.get_submitted_sessions(student_id, semester, subject_id)
        except Exception:
            logger.exception("Attendance lookup failed for student %s semester %s subject %s",
                             student_id, semester, subject_id)
            db.session.rollback()
            return empty_summary()
        return summarize(student_id, sessions)

    @staticmethod
    def get_overall_percentage(student_id, semester):
        """Overall attendance percentage used by promotion"""
        return AttendanceService.get_student_summary(student_id, semester)['percentage']

    @staticmethod
    def get_subject_breakdown(student_id, semester):
        """Per-subject summaries plus an overall summary for a semester"""
        try:
            sessions = AttendanceService.get_submitted_sessions(student_id, semester)
        except Exception:
            logger.exception("Attendance lookup failed for student %s semester %s",
                             student_id, semester)
            db.session.rollback()
            sessions = []

        by_subject = OrderedDict()
        for session in sessions:
            by_subject.setdefault(session.subject_id, []).append(session)

        subjects = []
        for subject_id, subject_sessions in by_subject.items():
            subject_summary = summarize(student_id, subject_sessions)
            subject_summary['subject_id'] = subject_id
            subjects.append(subject_summary)

        return {
            'student_id': student_id,
            'semester': semester,
            'subjects': subjects,
            'overall': summarize(student_id, sessions)
        }

    @staticmethod
    def record_session(session_date, semester, subject_id, teacher_id, group_id, entries, submit=False):
        """
        Create or update the attendance session for (date, subject, group).

        `entries` is an iterable of dicts with student_id, status and optional
        remarks. Existing entries for the same students are overwritten.
        """
        is_valid, message = validate_semester(semester)
        if not is_valid:
            raise ValidationError(message)

        entries = list(entries or [])
        for entry in entries:
            is_valid, message = validate_attendance_status(entry.get('status'))
            if not is_valid:
                raise ValidationError(f"Student {entry.get('student_id')}: {message}")

        try:
            session_date = parse_date(session_date)
        except (TypeError, ValueError):
            raise ValidationError("Date must be in YYYY-MM-DD format")

        from models.academic import Subject
        from models.group import Group
        get_or_raise(Subject, subject_id)
        get_or_raise(Group, group_id)

        session = AttendanceSession.query.filter_by(
            date=session_date, subject_id=subject_id, group_id=group_id
        ).first()
        if not session:
            session = AttendanceSession(
                date=session_date,
                semester=int(semester),
                subject_id=subject_id,
                teacher_id=teacher_id,
                group_id=group_id
            )
            db.session.add(session)
        elif session.is_submitted:
            raise ValidationError("Attendance for this session has already been submitted")

        existing = {entry.student_id: entry for entry in session.entries}
        for entry in entries:
            student_id = entry['student_id']
            if student_id in existing:
                existing[student_id].status = entry['status']
                existing[student_id].remarks = entry.get('remarks')
            else:
                new_entry = AttendanceEntry(
                    student_id=student_id,
                    status=entry['status'],
                    remarks=entry.get('remarks')
                )
                session.entries.append(new_entry)
                existing[student_id] = new_entry

        session.calculate_totals()
        if submit:
            session.submit()
        session.updated_at = datetime.utcnow()

        db.session.commit()
        logger.info("Recorded attendance session %s (%d students, submitted=%s)",
                    session.id, session.total_students, session.is_submitted)
        return session

    @staticmethod
    def submit_session(session_id):
        """Mark a session as submitted"""
        session = get_or_raise(AttendanceSession, session_id, 'Attendance session')
        session.calculate_totals()
        session.submit()
        db.session.commit()
        return session
