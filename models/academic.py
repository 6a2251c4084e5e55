"""
Academic structure models for the Academic Progression Engine
Teacher and Subject models
"""

from database import db
from datetime import datetime

class Teacher(db.Model):
    """Teacher who runs subjects for cohorts and grades submissions"""
    __tablename__ = 'teacher'

    id = db.Column(db.Integer, primary_key=True)
    teacher_code = db.Column(db.String(20), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    is_active = db.Column(db.Boolean, default=True)

    # Relationships
    group_subjects = db.relationship('GroupSubjectTeacher', backref='teacher', lazy='dynamic')

    def to_dict(self):
        """Convert teacher to dictionary"""
        return {
            'id': self.id,
            'teacher_code': self.teacher_code,
            'full_name': self.full_name,
            'email': self.email,
            'is_active': self.is_active
        }

    def __repr__(self):
        return f'<Teacher {self.teacher_code}: {self.full_name}>'

class Subject(db.Model):
    """Subject taught in a given semester"""
    __tablename__ = 'subject'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(20), unique=True, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    semester = db.Column(db.Integer, nullable=False)
    credits = db.Column(db.Integer, default=3)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    is_active = db.Column(db.Boolean, default=True)

    __table_args__ = (
        db.CheckConstraint('semester BETWEEN 1 AND 8', name='check_subject_semester_range'),
    )

    def to_dict(self):
        """Convert subject to dictionary"""
        return {
            'id': self.id,
            'code': self.code,
            'name': self.name,
            'semester': self.semester,
            'credits': self.credits,
            'description': self.description,
            'is_active': self.is_active
        }

    def __repr__(self):
        return f'<Subject {self.code}: {self.name}>'
