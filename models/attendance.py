"""
Attendance models for the Academic Progression Engine
AttendanceSession and AttendanceEntry models
"""

from database import db
from datetime import datetime, date

class AttendanceSession(db.Model):
    """Attendance taken for one subject and group on one date"""
    __tablename__ = 'attendance_session'

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, default=date.today)
    semester = db.Column(db.Integer, nullable=False, index=True)
    subject_id = db.Column(db.Integer, db.ForeignKey('subject.id'), nullable=False, index=True)
    teacher_id = db.Column(db.Integer, db.ForeignKey('teacher.id'), nullable=False)
    group_id = db.Column(db.Integer, db.ForeignKey('student_group.id'), nullable=False)
    total_present = db.Column(db.Integer, nullable=False, default=0)
    total_absent = db.Column(db.Integer, nullable=False, default=0)
    total_late = db.Column(db.Integer, nullable=False, default=0)
    total_students = db.Column(db.Integer, nullable=False, default=0)
    is_submitted = db.Column(db.Boolean, nullable=False, default=False)
    submitted_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    entries = db.relationship('AttendanceEntry', backref='session',
                              cascade='all, delete-orphan')

    # One session per subject, group and date
    __table_args__ = (db.UniqueConstraint('date', 'subject_id', 'group_id', name='unique_attendance_session'),)

    def calculate_totals(self):
        """Recalculate stored totals from the entries"""
        statuses = [entry.status for entry in self.entries]
        self.total_present = statuses.count('present')
        self.total_absent = statuses.count('absent')
        self.total_late = statuses.count('late')
        self.total_students = len(statuses)

    def submit(self):
        """Mark session as submitted so it counts towards attendance"""
        self.is_submitted = True
        if not self.submitted_at:
            self.submitted_at = datetime.utcnow()

    def status_for(self, student_id):
        """Status recorded for a student, or None if not on the roll"""
        for entry in self.entries:
            if entry.student_id == student_id:
                return entry.status
        return None

    def to_dict(self):
        """Convert attendance session to dictionary"""
        return {
            'id': self.id,
            'date': self.date.isoformat() if self.date else None,
            'semester': self.semester,
            'subject_id': self.subject_id,
            'teacher_id': self.teacher_id,
            'group_id': self.group_id,
            'total_present': self.total_present,
            'total_absent': self.total_absent,
            'total_late': self.total_late,
            'total_students': self.total_students,
            'is_submitted': self.is_submitted,
            'submitted_at': self.submitted_at.isoformat() if self.submitted_at else None,
            'entries': [entry.to_dict() for entry in self.entries]
        }

    def __repr__(self):
        return f'<AttendanceSession {self.date} subject={self.subject_id} group={self.group_id}>'

class AttendanceEntry(db.Model):
    """One student's status in an attendance session"""
    __tablename__ = 'attendance_entry'

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('attendance_session.id'), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False, index=True)
    status = db.Column(db.String(10), nullable=False)  # present, absent, late or excused
    remarks = db.Column(db.String(200), nullable=True)

    __table_args__ = (db.UniqueConstraint('session_id', 'student_id', name='unique_session_student_entry'),)

    def to_dict(self):
        """Convert attendance entry to dictionary"""
        return {
            'student_id': self.student_id,
            'status': self.status,
            'remarks': self.remarks
        }

    def __repr__(self):
        return f'<AttendanceEntry student={self.student_id} {self.status}>'
