"""
Cohort models for the Academic Progression Engine
Group and GroupSubjectTeacher models
"""

from database import db
from datetime import datetime

class Group(db.Model):
    """Capacity-bounded cohort of students in one semester"""
    __tablename__ = 'student_group'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    semester = db.Column(db.Integer, nullable=False, index=True)
    academic_year = db.Column(db.Integer, nullable=False, index=True)
    capacity = db.Column(db.Integer, nullable=False, default=50)
    # Kept in step with membership by conditional updates in the cohort service
    student_count = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    is_active = db.Column(db.Boolean, default=True)

    # Relationships
    students = db.relationship('Student', backref='group', lazy='dynamic',
                               foreign_keys='Student.group_id')
    subject_teachers = db.relationship('GroupSubjectTeacher', backref='group', lazy='dynamic',
                                       cascade='all, delete-orphan')

    __table_args__ = (
        db.UniqueConstraint('name', 'semester', 'academic_year', name='unique_group_name_semester_year'),
        db.CheckConstraint('student_count <= capacity', name='check_group_capacity'),
        db.CheckConstraint('student_count >= 0', name='check_group_count_positive'),
        db.CheckConstraint('semester BETWEEN 1 AND 8', name='check_group_semester_range'),
    )

    @property
    def available_seats(self):
        return max((self.capacity or 0) - (self.student_count or 0), 0)

    def is_full(self):
        """Check if group has no free seat"""
        return (self.student_count or 0) >= (self.capacity or 0)

    def get_member_ids(self):
        """Ids of students currently in this group"""
        return sorted(student.id for student in self.students)

    def to_dict(self):
        """Convert group to dictionary"""
        return {
            'id': self.id,
            'name': self.name,
            'semester': self.semester,
            'academic_year': self.academic_year,
            'capacity': self.capacity,
            'student_count': self.student_count,
            'available_seats': self.available_seats,
            'students': self.get_member_ids(),
            'subject_teachers': [st.to_dict() for st in self.subject_teachers],
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    def __repr__(self):
        return f'<Group {self.name} S{self.semester} ({self.student_count}/{self.capacity})>'

class GroupSubjectTeacher(db.Model):
    """Teacher responsible for a subject within a group"""
    __tablename__ = 'group_subject_teacher'

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('student_group.id'), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey('subject.id'), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey('teacher.id'), nullable=False)
    assigned_at = db.Column(db.DateTime, default=datetime.utcnow)

    # One teacher per subject per group
    __table_args__ = (db.UniqueConstraint('group_id', 'subject_id', name='unique_group_subject'),)

    subject = db.relationship('Subject')

    def to_dict(self):
        """Convert subject-teacher assignment to dictionary"""
        return {
            'group_id': self.group_id,
            'subject_id': self.subject_id,
            'subject_code': self.subject.code if self.subject else None,
            'teacher_id': self.teacher_id,
            'teacher_name': self.teacher.full_name if self.teacher else None,
            'assigned_at': self.assigned_at.isoformat() if self.assigned_at else None
        }

    def __repr__(self):
        return f'<GroupSubjectTeacher group={self.group_id} subject={self.subject_id} teacher={self.teacher_id}>'
