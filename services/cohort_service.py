"""
Cohort service for the Academic Progression Engine
Group administration and capacity-bounded student assignment
"""

import logging
from datetime import datetime

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from database import db
from models.academic import Subject, Teacher
from models.group import Group, GroupSubjectTeacher
from models.student import Student
from utils.db_helpers import get_or_raise, safe_add_and_commit, safe_update_and_commit
from utils.exceptions import CapacityExceeded, Conflict, ValidationError
from utils.sorting_helpers import SortingHelpers
from utils.validators import validate_capacity, validate_semester

logger = logging.getLogger(__name__)

# Students without a group in these statuses are waiting for a cohort
ASSIGNABLE_STATUSES = ('active', 'promoted')

def claim_seat(group_id):
    """Atomically take one seat; False when the group is full"""
    result = db.session.execute(
        update(Group)
        .where(Group.id == group_id, Group.student_count < Group.capacity)
        .values(student_count=Group.student_count + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1

def release_seat(group_id):
    """Atomically give one seat back"""
    db.session.execute(
        update(Group)
        .where(Group.id == group_id, Group.student_count > 0)
        .values(student_count=Group.student_count - 1)
        .execution_options(synchronize_session=False)
    )

class CohortService:
    """Cohort assigner and group administration"""

    @staticmethod
    def create_group(name, semester, academic_year, capacity=None):
        """Create a cohort for a semester"""
        if not name or not str(name).strip():
            raise ValidationError("Group name is required")
        is_valid, message = validate_semester(semester)
        if not is_valid:
            raise ValidationError(message)
        if capacity is None:
            capacity = current_app.config.get('DEFAULT_GROUP_CAPACITY', 50)
        is_valid, message = validate_capacity(capacity)
        if not is_valid:
            raise ValidationError(message)

        group = Group(
            name=str(name).strip(),
            semester=int(semester),
            academic_year=int(academic_year),
            capacity=int(capacity),
            student_count=0
        )
        success, message = safe_add_and_commit(group)
        if not success:
            raise Conflict(f"Group {name} already exists for semester {semester}: {message}")
        logger.info("Created group %s (semester %s, capacity %s)", group.name, group.semester, group.capacity)
        return group

    @staticmethod
    def get_groups_by_semester(semester):
        """Active groups of a semester in creation order"""
        groups = Group.query.filter_by(semester=semester, is_active=True).all()
        return SortingHelpers.sort_groups(groups)

    @staticmethod
    def get_group_students(group_id):
        """Students currently in a group, in enrollment order"""
        group = get_or_raise(Group, group_id)
        return SortingHelpers.sort_students(group.students.all())

    @staticmethod
    def assign_teacher_to_group(group_id, subject_id, teacher_id):
        """Assign or reassign the teacher of a subject in a group"""
        group = get_or_raise(Group, group_id)
        subject = get_or_raise(Subject, subject_id)
        teacher = get_or_raise(Teacher, teacher_id)

        if subject.semester != group.semester:
            raise ValidationError(
                f"Subject {subject.code} belongs to semester {subject.semester}, not {group.semester}"
            )

        assignment = GroupSubjectTeacher.query.filter_by(group_id=group.id, subject_id=subject.id).first()
        if assignment:
            if assignment.teacher_id == teacher.id:
                raise Conflict(f"{teacher.full_name} already teaches {subject.code} in {group.name}")
            assignment.teacher_id = teacher.id
            assignment.assigned_at = datetime.utcnow()
        else:
            assignment = GroupSubjectTeacher(group_id=group.id, subject_id=subject.id, teacher_id=teacher.id)
            db.session.add(assignment)

        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise Conflict(f"Subject {subject.code} was assigned concurrently in {group.name}")
        return assignment

    @staticmethod
    def assign_student_to_group(student_id, group_id):
        """
        Put a student into a group, evicting them from any previous group.

        The seat is claimed with a conditional update so concurrent
        assignments cannot overfill the group; the student row version
        guards against the same student landing in two groups.
        """
        group = get_or_raise(Group, group_id)
        student = get_or_raise(Student, student_id)

        if student.group_id == group.id:
            return {'student': student.to_dict(), 'group': group.to_dict(), 'previous_group_id': group.id}

        if not group.is_active:
            raise ValidationError(f"Group {group.name} is not active")

        if group.semester != student.current_semester:
            raise ValidationError(
                f"Group {group.name} is for semester {group.semester}, "
                f"student is in semester {student.current_semester}"
            )

        previous_group_id = student.group_id
        try:
            if not claim_seat(group.id):
                raise CapacityExceeded(f"Group {group.name} is full")
            if previous_group_id is not None:
                release_seat(previous_group_id)
            student.group_id = group.id
            db.session.commit()
        except CapacityExceeded:
            db.session.rollback()
            raise
        except Exception as e:
            db.session.rollback()
            logger.warning("Assignment of student %s to group %s failed: %s", student_id, group_id, e)
            raise Conflict(f"Student {student_id} could not be assigned: {e}") from e

        logger.info("Assigned student %s to group %s", student.student_code, group.name)
        return {
            'student': student.to_dict(),
            'group': group.to_dict(),
            'previous_group_id': previous_group_id
        }

    @staticmethod
    def remove_student_from_group(student_id):
        """Clear a student's group membership"""
        student = get_or_raise(Student, student_id)
        group_id = student.group_id
        if group_id is None:
            return None

        release_seat(group_id)
        student.group_id = None
        db.session.commit()
        logger.info("Removed student %s from group %s", student.student_code, group_id)
        return db.session.get(Group, group_id)

    @staticmethod
    def recount_group(group_id):
        """Resynchronise student_count with the actual membership"""
        group = get_or_raise(Group, group_id)
        group.student_count = group.students.count()
        success, message = safe_update_and_commit()
        if not success:
            raise Conflict(message)
        return group

    @staticmethod
    def auto_assign_students():
        """
        Distribute unassigned students across their semester's groups.

        Students are taken in enrollment order; for each one the groups of
        its semester are scanned round-robin, starting after the group used
        last, and the first group with a free seat wins. A student for whom
        no group has room, or whose write fails, is skipped.
        """
        students = SortingHelpers.sort_students(Student.query.filter(
            Student.group_id.is_(None),
            Student.status.in_(ASSIGNABLE_STATUSES)
        ).all())

        summary = {
            'total': len(students),
            'assigned': 0,
            'skipped': 0,
            'details': [],
            'groups': []
        }

        by_semester = {}
        for student in students:
            by_semester.setdefault(student.current_semester, []).append(student)

        touched_groups = []
        for semester in sorted(by_semester):
            groups = CohortService.get_groups_by_semester(semester)
            group_ids = [group.id for group in groups]
            group_names = {group.id: group.name for group in groups}
            touched_groups.extend(group_ids)
            next_index = 0

            for student in by_semester[semester]:
                student_id = student.id
                student_code = student.student_code
                assigned_group = None
                try:
                    for offset in range(len(group_ids)):
                        index = (next_index + offset) % len(group_ids)
                        group_id = group_ids[index]
                        if claim_seat(group_id):
                            student.group_id = group_id
                            db.session.commit()
                            assigned_group = group_id
                            next_index = (index + 1) % len(group_ids)
                            break
                except Exception as e:
                    db.session.rollback()
                    logger.warning("Auto-assign failed for student %s: %s", student_code, e)
                    summary['skipped'] += 1
                    summary['details'].append({
                        'student_id': student_id,
                        'student_code': student_code,
                        'semester': semester,
                        'status': 'skipped',
                        'reason': str(e)
                    })
                    continue

                if assigned_group is None:
                    db.session.rollback()
                    summary['skipped'] += 1
                    summary['details'].append({
                        'student_id': student_id,
                        'student_code': student_code,
                        'semester': semester,
                        'status': 'skipped',
                        'reason': "No available groups with space"
                    })
                    continue

                summary['assigned'] += 1
                summary['details'].append({
                    'student_id': student_id,
                    'student_code': student_code,
                    'semester': semester,
                    'status': 'assigned',
                    'group_id': assigned_group,
                    'group_name': group_names[assigned_group]
                })

        db.session.expire_all()
        for group_id in touched_groups:
            group = db.session.get(Group, group_id)
            summary['groups'].append({
                'id': group.id,
                'name': group.name,
                'semester': group.semester,
                'capacity': group.capacity,
                'student_count': group.student_count
            })

        logger.info("Auto-assign finished: %d assigned, %d skipped of %d",
                    summary['assigned'], summary['skipped'], summary['total'])
        return summary
