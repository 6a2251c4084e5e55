"""
Performance evaluation for the Academic Progression Engine
Folds a student's graded work for a semester into main-assignment gates
and per-subject marks, percentages and letter grades.

The evaluation functions are pure; only PerformanceService touches the database.
"""

from collections import OrderedDict, namedtuple
from decimal import Decimal, ROUND_HALF_UP

PASS_PERCENTAGE = 40

GRADE_THRESHOLDS = (
    (90, 'A+'),
    (80, 'A'),
    (70, 'B+'),
    (60, 'B'),
    (50, 'C+'),
    (40, 'C'),
)

GradedWork = namedtuple('GradedWork', [
    'assignment_id', 'subject_id', 'assignment_type', 'marks', 'max_marks',
    'submitted_at', 'graded_at'
])
GradedWork.__new__.__defaults__ = (None, None)

def round_half_up(value, digits=0):
    """Round like a person would: 12.5 -> 13, 39.995 -> 40.0"""
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return int(rounded) if digits == 0 else float(rounded)

def calculate_grade(percentage):
    """Calculate letter grade based on percentage"""
    for threshold, grade in GRADE_THRESHOLDS:
        if percentage >= threshold:
            return grade
    return 'F'

def exact_percentage(obtained, maximum):
    """Unrounded percentage as a Decimal; pass marks and grades are judged on this"""
    if not maximum:
        return Decimal(0)
    return Decimal(str(obtained)) * 100 / Decimal(str(maximum))

def partition_work(graded_work):
    """Split graded work into (main, weekly); anything not 'main' is weekly"""
    main = [work for work in graded_work if work.assignment_type == 'main']
    weekly = [work for work in graded_work if work.assignment_type != 'main']
    return main, weekly

def main_assignment_results(main_work, pass_percentage=PASS_PERCENTAGE):
    """Per main assignment outcome used for gating and reporting"""
    results = []
    for work in main_work:
        exact = exact_percentage(work.marks or 0, work.max_marks)
        results.append({
            'assignment_id': work.assignment_id,
            'subject_id': work.subject_id,
            'marks': work.marks,
            'max_marks': work.max_marks,
            'percentage': round_half_up(exact, 2),
            'passed': exact >= pass_percentage,
            'completed': work.marks is not None
        })
    return results

def subject_results(graded_work, pass_percentage=PASS_PERCENTAGE):
    """Aggregate main and weekly work per subject, in first-seen subject order"""
    totals = OrderedDict()
    for work in graded_work:
        entry = totals.setdefault(work.subject_id, {
            'subject_id': work.subject_id,
            'total_obtained': 0.0,
            'total_max': 0.0,
            'assignments': 0
        })
        entry['total_obtained'] += work.marks or 0
        entry['total_max'] += work.max_marks or 0
        entry['assignments'] += 1

    results = []
    for entry in totals.values():
        exact = exact_percentage(entry['total_obtained'], entry['total_max'])
        entry['total_obtained'] = round_half_up(entry['total_obtained'], 2)
        entry['total_max'] = round_half_up(entry['total_max'], 2)
        entry['percentage'] = round_half_up(exact, 2)
        entry['grade'] = calculate_grade(exact)
        entry['passed'] = exact >= pass_percentage
        results.append(entry)
    return results

def evaluate_semester(graded_work, pass_percentage=PASS_PERCENTAGE):
    """
    Evaluate a student's graded work for one semester.

    Main assignments gate promotion: they are completed when at least one
    exists, and passed only when every one of them reaches the pass
    percentage. With no main assignment at all, nothing is passed.
    """
    graded_work = list(graded_work)
    main, _weekly = partition_work(graded_work)
    main_results = main_assignment_results(main, pass_percentage)

    return {
        'main_assignments_completed': len(main) > 0,
        'main_assignments_passed': bool(main_results) and all(r['passed'] for r in main_results),
        'main_assignment_results': main_results,
        'subject_results': subject_results(graded_work, pass_percentage),
        'graded_count': len(graded_work)
    }

class PerformanceService:
    """Loads graded work from the database and evaluates it"""

    @staticmethod
    def load_graded_work(student_id, semester):
        """Graded submissions of a student joined with their assignment"""
        from database import db
        from models.assignments import Assignment, Submission

        rows = (db.session.query(Submission, Assignment)
                .join(Assignment, Assignment.id == Submission.assignment_id)
                .filter(Submission.student_id == student_id,
                        Submission.status == 'graded',
                        Submission.marks.isnot(None),
                        Assignment.semester == semester)
                .order_by(Submission.id)
                .all())

        return [
            GradedWork(
                assignment_id=assignment.id,
                subject_id=assignment.subject_id,
                assignment_type=assignment.assignment_type,
                marks=submission.marks,
                max_marks=assignment.max_marks,
                submitted_at=submission.submitted_at,
                graded_at=submission.graded_at
            )
            for submission, assignment in rows
        ]

    @staticmethod
    def evaluate_student(student_id, semester, pass_percentage=PASS_PERCENTAGE):
        """Evaluate a student's semester from stored submissions"""
        graded_work = PerformanceService.load_graded_work(student_id, semester)
        return evaluate_semester(graded_work, pass_percentage)
