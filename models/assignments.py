"""
Assignment models for the Academic Progression Engine
Assignment and Submission models
"""

from database import db
from datetime import datetime

SUBMISSION_STATUSES = ('submitted', 'late', 'graded')

assignment_groups = db.Table(
    'assignment_group',
    db.Column('assignment_id', db.Integer, db.ForeignKey('assignment.id'), primary_key=True),
    db.Column('group_id', db.Integer, db.ForeignKey('student_group.id'), primary_key=True)
)

class Assignment(db.Model):
    """Weekly or main assignment set for a subject in a semester"""
    __tablename__ = 'assignment'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    assignment_type = db.Column(db.String(10), nullable=False, default='weekly')  # 'weekly' or 'main'
    semester = db.Column(db.Integer, nullable=False, index=True)
    subject_id = db.Column(db.Integer, db.ForeignKey('subject.id'), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey('teacher.id'), nullable=False)
    max_marks = db.Column(db.Float, nullable=False, default=100.0)
    deadline = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    subject = db.relationship('Subject')
    teacher = db.relationship('Teacher')
    groups = db.relationship('Group', secondary=assignment_groups, lazy='subquery')
    submissions = db.relationship('Submission', backref='assignment', lazy='dynamic')

    __table_args__ = (
        db.CheckConstraint("assignment_type IN ('weekly', 'main')", name='check_assignment_type'),
        db.CheckConstraint('max_marks > 0', name='check_assignment_max_marks'),
    )

    def is_main(self):
        """Check if this is the module-wide gatekeeping assignment"""
        return self.assignment_type == 'main'

    def is_past_deadline(self, when=None):
        """Check if a submission at `when` would be late"""
        if not self.deadline:
            return False
        return (when or datetime.utcnow()) > self.deadline

    def to_dict(self):
        """Convert assignment to dictionary"""
        return {
            'id': self.id,
            'title': self.title,
            'assignment_type': self.assignment_type,
            'semester': self.semester,
            'subject_id': self.subject_id,
            'teacher_id': self.teacher_id,
            'max_marks': self.max_marks,
            'deadline': self.deadline.isoformat() if self.deadline else None,
            'groups': [group.id for group in self.groups]
        }

    def __repr__(self):
        return f'<Assignment {self.assignment_type} {self.title}>'

class Submission(db.Model):
    """A student's work for an assignment"""
    __tablename__ = 'submission'

    id = db.Column(db.Integer, primary_key=True)
    assignment_id = db.Column(db.Integer, db.ForeignKey('assignment.id'), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False)
    group_id = db.Column(db.Integer, db.ForeignKey('student_group.id'), nullable=True)
    subject_id = db.Column(db.Integer, db.ForeignKey('subject.id'), nullable=False)
    status = db.Column(db.String(10), nullable=False, default='submitted')
    marks = db.Column(db.Float, nullable=True)
    feedback = db.Column(db.Text, nullable=True)
    graded_by = db.Column(db.String(64), nullable=True)
    graded_at = db.Column(db.DateTime, nullable=True)
    submitted_at = db.Column(db.DateTime, default=datetime.utcnow)

    student = db.relationship('Student')

    # One submission per assignment per student
    __table_args__ = (db.UniqueConstraint('assignment_id', 'student_id', name='unique_assignment_student_submission'),)

    def is_graded(self):
        """Check if submission has been graded"""
        return self.status == 'graded' and self.marks is not None

    def to_dict(self):
        """Convert submission to dictionary"""
        return {
            'id': self.id,
            'assignment_id': self.assignment_id,
            'student_id': self.student_id,
            'group_id': self.group_id,
            'subject_id': self.subject_id,
            'status': self.status,
            'marks': self.marks,
            'feedback': self.feedback,
            'graded_by': self.graded_by,
            'graded_at': self.graded_at.isoformat() if self.graded_at else None,
            'submitted_at': self.submitted_at.isoformat() if self.submitted_at else None
        }

    def __repr__(self):
        return f'<Submission assignment={self.assignment_id} student={self.student_id} {self.status}>'
