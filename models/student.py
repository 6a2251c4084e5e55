"""
Student models for the Academic Progression Engine
Student and academic history (semester, subject and assignment result records)
"""

from database import db
from datetime import datetime
from services.performance_service import calculate_grade, exact_percentage, round_half_up

STUDENT_STATUSES = ('active', 'failed', 'promoted', 'graduated')

class Student(db.Model):
    """Student model"""
    __tablename__ = 'student'

    id = db.Column(db.Integer, primary_key=True)
    student_code = db.Column(db.String(20), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(100), nullable=False)
    enrollment_year = db.Column(db.Integer, nullable=False)
    current_semester = db.Column(db.Integer, nullable=False, default=1)
    status = db.Column(db.String(20), nullable=False, default='active', index=True)
    group_id = db.Column(db.Integer, db.ForeignKey('student_group.id'), nullable=True, index=True)
    email = db.Column(db.String(120), unique=True, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    history_updated_at = db.Column(db.DateTime, nullable=True)
    version_id = db.Column(db.Integer, nullable=False)

    # Relationships
    academic_history = db.relationship('SemesterRecord', backref='student',
                                       order_by='SemesterRecord.semester',
                                       cascade='all, delete-orphan')

    __table_args__ = (
        db.CheckConstraint('current_semester BETWEEN 1 AND 8', name='check_student_semester_range'),
        db.CheckConstraint("status IN ('active', 'failed', 'promoted', 'graduated')",
                           name='check_student_status'),
    )

    # Every UPDATE checks and bumps version_id; a stale writer gets StaleDataError
    __mapper_args__ = {'version_id_col': version_id}

    def get_semester_record(self, semester):
        """Get the history entry for a semester, if any"""
        for record in self.academic_history:
            if record.semester == semester:
                return record
        return None

    def touch_history(self):
        """Mark the academic history as changed so the row version moves"""
        self.history_updated_at = datetime.utcnow()

    def advance_semester(self, max_semester=8):
        """Promote to next semester or graduate from the final one"""
        if self.current_semester >= max_semester:
            self.status = 'graduated'
            self.current_semester = max_semester
        else:
            self.status = 'promoted'
            self.current_semester += 1
            # Cohort must be re-assigned in the new semester
            self.group_id = None

    def to_dict(self, include_history=False):
        """Convert student to dictionary"""
        data = {
            'id': self.id,
            'student_code': self.student_code,
            'full_name': self.full_name,
            'enrollment_year': self.enrollment_year,
            'current_semester': self.current_semester,
            'status': self.status,
            'group_id': self.group_id,
            'email': self.email,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
        if include_history:
            data['academic_history'] = [record.to_dict() for record in self.academic_history]
        return data

    def __repr__(self):
        return f'<Student {self.student_code}: {self.full_name}>'

class SemesterRecord(db.Model):
    """One semester of a student's academic history"""
    __tablename__ = 'semester_record'

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False)
    semester = db.Column(db.Integer, nullable=False)
    group_id = db.Column(db.Integer, db.ForeignKey('student_group.id'), nullable=True)
    semester_passed = db.Column(db.Boolean, nullable=False, default=False)
    promoted_at = db.Column(db.DateTime, nullable=True)
    promoted_by = db.Column(db.String(64), nullable=True)
    manual_promotion_reason = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    subjects = db.relationship('SubjectRecord', backref='semester_record',
                               order_by='SubjectRecord.id',
                               cascade='all, delete-orphan')

    # At most one record per semester per student
    __table_args__ = (db.UniqueConstraint('student_id', 'semester', name='unique_student_semester_record'),)

    def get_subject(self, subject_id):
        """Get the subject entry for a subject, if any"""
        for subject_record in self.subjects:
            if subject_record.subject_id == subject_id:
                return subject_record
        return None

    def to_dict(self):
        """Convert semester record to dictionary"""
        return {
            'semester': self.semester,
            'group_id': self.group_id,
            'semester_passed': self.semester_passed,
            'promoted_at': self.promoted_at.isoformat() if self.promoted_at else None,
            'promoted_by': self.promoted_by,
            'manual_promotion_reason': self.manual_promotion_reason,
            'subjects': [subject_record.to_dict() for subject_record in self.subjects]
        }

    def __repr__(self):
        return f'<SemesterRecord student={self.student_id} semester={self.semester}>'

class SubjectRecord(db.Model):
    """Graded results of one subject inside a semester record"""
    __tablename__ = 'subject_record'

    id = db.Column(db.Integer, primary_key=True)
    semester_record_id = db.Column(db.Integer, db.ForeignKey('semester_record.id'), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey('subject.id'), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey('teacher.id'), nullable=True)
    total_marks = db.Column(db.Float, nullable=False, default=0.0)
    percentage = db.Column(db.Float, nullable=False, default=0.0)
    grade = db.Column(db.String(2), nullable=False, default='')
    passed = db.Column(db.Boolean, nullable=False, default=False)

    results = db.relationship('AssignmentResult', backref='subject_record',
                              order_by='AssignmentResult.id',
                              cascade='all, delete-orphan')

    __table_args__ = (db.UniqueConstraint('semester_record_id', 'subject_id', name='unique_semester_subject_record'),)

    @property
    def main_assignment(self):
        for result in self.results:
            if result.kind == 'main':
                return result
        return None

    @property
    def weekly_assignments(self):
        return [result for result in self.results if result.kind == 'weekly']

    def recalculate(self, pass_percentage=40):
        """Recompute derived totals from every main and weekly entry"""
        total_obtained = 0.0
        total_max = 0.0
        for result in self.results:
            total_obtained += result.marks or 0
            total_max += result.max_marks or 0

        exact = exact_percentage(total_obtained, total_max)

        self.total_marks = total_obtained
        self.percentage = round_half_up(exact, 2)
        self.grade = calculate_grade(exact)
        self.passed = exact >= pass_percentage

    def to_dict(self):
        """Convert subject record to dictionary"""
        main = self.main_assignment
        return {
            'subject_id': self.subject_id,
            'teacher_id': self.teacher_id,
            'main_assignment': main.to_dict() if main else None,
            'weekly_assignments': [result.to_dict() for result in self.weekly_assignments],
            'total_marks': self.total_marks,
            'percentage': self.percentage,
            'grade': self.grade,
            'passed': self.passed
        }

    def __repr__(self):
        return f'<SubjectRecord subject={self.subject_id} {self.percentage}% {self.grade}>'

class AssignmentResult(db.Model):
    """Graded assignment entry; concrete kinds are main and weekly"""
    __tablename__ = 'assignment_result'

    id = db.Column(db.Integer, primary_key=True)
    subject_record_id = db.Column(db.Integer, db.ForeignKey('subject_record.id'), nullable=False)
    kind = db.Column(db.String(10), nullable=False)
    assignment_id = db.Column(db.Integer, db.ForeignKey('assignment.id'), nullable=False)
    marks = db.Column(db.Float, nullable=False, default=0.0)
    max_marks = db.Column(db.Float, nullable=False)
    submitted_at = db.Column(db.DateTime, nullable=True)
    graded_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (db.UniqueConstraint('subject_record_id', 'assignment_id', name='unique_subject_assignment_result'),)

    __mapper_args__ = {'polymorphic_on': kind}

    @property
    def percentage(self):
        return round_half_up(exact_percentage(self.marks or 0, self.max_marks), 2)

    def passes(self, pass_percentage):
        """Judged on the unrounded ratio, so 39.996% is not a pass"""
        return exact_percentage(self.marks or 0, self.max_marks) >= pass_percentage

    def update_from(self, assignment_id, marks, max_marks, submitted_at=None, graded_at=None):
        """Overwrite this entry with a new grading"""
        self.assignment_id = assignment_id
        self.marks = marks
        self.max_marks = max_marks
        self.submitted_at = submitted_at
        self.graded_at = graded_at or datetime.utcnow()

    def to_dict(self):
        """Convert result entry to dictionary"""
        return {
            'kind': self.kind,
            'assignment_id': self.assignment_id,
            'marks': self.marks,
            'max_marks': self.max_marks,
            'percentage': self.percentage,
            'submitted_at': self.submitted_at.isoformat() if self.submitted_at else None,
            'graded_at': self.graded_at.isoformat() if self.graded_at else None
        }

    def __repr__(self):
        return f'<{type(self).__name__} assignment={self.assignment_id} {self.marks}/{self.max_marks}>'

class MainAssignmentResult(AssignmentResult):
    """Module-wide gatekeeping assignment; one per subject per semester"""
    __mapper_args__ = {'polymorphic_identity': 'main'}

class WeeklyAssignmentResult(AssignmentResult):
    """Recurring per-subject assignment"""
    __mapper_args__ = {'polymorphic_identity': 'weekly'}

RESULT_TYPES = {
    'main': MainAssignmentResult,
    'weekly': WeeklyAssignmentResult,
}
