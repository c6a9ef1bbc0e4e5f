"""
ledger.py - Grade Ledger
Percentages, letters and GPA points from earned/possible pairs, per-course
and per-student aggregation, and the grade write that keeps a Grade and its
paired Submission in step.
"""

import logging
import math
import numbers
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from config import Config
from errors import ConsistencyError, StorageError, ValidationError

logger = logging.getLogger(__name__)


# === PURE CONVERSIONS ===

def round_percentage(value):
    """Round half up to a whole percent (84.5 -> 85)"""
    return int(math.floor(value + 0.5))


def average_percentage(grades):
    """
    Whole-percent average of a set of grades: 100 * sum(earned) / sum(possible).

    Returns:
        int or None: None when there is nothing to average
    """
    grades = list(grades)
    if not grades:
        return None

    total_earned = sum(g.points_earned for g in grades if g.points_earned is not None)
    total_possible = sum(g.points_possible for g in grades if g.points_earned is not None)

    if total_possible <= 0:
        return None

    return round_percentage(100 * total_earned / total_possible)


def _scale_band(percentage):
    for lower_bound, letter, points in Config.GRADE_SCALE:
        if percentage >= lower_bound:
            return letter, points
    _, letter, points = Config.GRADE_SCALE[-1]
    return letter, points


def letter_grade(percentage):
    """
    Map a percentage to A/B/C/D/F. Lower bounds are inclusive:
    90 -> 'A', 89.9 -> 'B', 59.9 -> 'F'.
    """
    if percentage is None:
        return None
    return _scale_band(percentage)[0]


def gpa_point(percentage):
    """Map a percentage to the stepped 4-point scale (A=4.0 ... F=0.0)"""
    if percentage is None:
        return None
    return _scale_band(percentage)[1]


def mean_gpa(averages):
    """Unweighted mean GPA over course averages, skipping courses without one"""
    points = [gpa_point(avg) for avg in averages if avg is not None]
    if not points:
        return None
    return round(sum(points) / len(points), 2)


@dataclass
class GradeResult:
    """Outcome of record_grade, with the student's recomputed standing"""
    grade: Any
    submission: Optional[Any]
    course_average: Optional[int]
    letter: Optional[str]
    gpa: Optional[float]

    def to_dict(self):
        return {
            'grade': self.grade.to_dict(),
            'submission': self.submission.to_dict() if self.submission is not None else None,
            'course_average': self.course_average,
            'letter': self.letter,
            'gpa': self.gpa,
        }


@dataclass
class CourseStanding:
    course_id: int
    course_name: str
    average: Optional[int]
    letter: Optional[str]
    gpa_point: Optional[float]
    last_updated: Optional[datetime] = None

    def to_dict(self):
        return {
            'course_id': self.course_id,
            'course_name': self.course_name,
            'average': self.average,
            'letter': self.letter,
            'gpa_point': self.gpa_point,
            'last_updated': self.last_updated.isoformat() if self.last_updated else None,
        }


@dataclass
class StudentReport:
    student_id: int
    courses: list = field(default_factory=list)
    gpa: Optional[float] = None

    def to_dict(self):
        return {
            'student_id': self.student_id,
            'courses': [c.to_dict() for c in self.courses],
            'gpa': self.gpa,
        }


class GradeLedger:
    """
    Grade ledger over a GradeRepository.

    Args:
        repository: GradeRepository implementation
        clock: callable returning the current UTC datetime (graded_at stamps)
    """

    def __init__(self, repository, clock=None):
        self.repository = repository
        self.clock = clock or datetime.utcnow

    # === WRITES ===

    def record_grade(self, student_id, assignment_id, course_id, points_earned, feedback=None):
        """
        Record a score for (student, assignment) and mirror it onto the
        student's submission, if there is one, in a single unit of work.
        Teacher feedback, when given, is stored on that submission.

        Returns:
            GradeResult

        Raises:
            ValidationError: non-numeric or out-of-range score, or the
                assignment is not part of the course. Nothing is written.
            NotFoundError: unknown assignment, student or course
            ConsistencyError: the submission write failed after the grade
                write; both were rolled back
        """
        points = self._validate_points(points_earned)
        if feedback is not None and not isinstance(feedback, str):
            raise ValidationError("feedback must be text")

        assignment = self.repository.get_assignment(assignment_id)
        self.repository.get_student(student_id)
        self.repository.get_course(course_id)

        if assignment.course_id != course_id:
            raise ValidationError(
                "assignment does not belong to course",
                assignment_id=assignment_id,
                course_id=course_id
            )

        total_points = assignment.total_points
        if not 0 <= points <= total_points:
            logger.warning(
                f"Rejected grade {points} for student {student_id} on assignment {assignment_id} "
                f"(total_points={total_points})"
            )
            raise ValidationError(
                "grade must be between 0 and total_points",
                points_earned=points,
                total_points=total_points
            )

        with self.repository.transaction():
            # Lock the pair; other pairs are untouched
            self.repository.find_grade(student_id, assignment_id, for_update=True)
            submission = self.repository.find_submission(student_id, assignment_id, for_update=True)

            grade = self.repository.upsert_grade({
                'student_id': student_id,
                'assignment_id': assignment_id,
                'course_id': course_id,
                'grade_type': Config.GRADE_TYPE_DEFAULT,
                'points_earned': points,
                'points_possible': float(total_points),
            })

            if submission is not None:
                submission = self._mirror_onto_submission(submission, grade, feedback)

        logger.info(
            f"Recorded grade {points}/{total_points} for student {student_id} "
            f"on assignment {assignment_id} (submission: {submission.id if submission else 'none'})"
        )

        average = self.course_average(student_id, course_id)
        return GradeResult(
            grade=grade,
            submission=submission,
            course_average=average,
            letter=letter_grade(average),
            gpa=self.gpa(student_id),
        )

    def reconcile(self, student_id, assignment_id):
        """
        Repair a submission whose score has drifted from its Grade.
        The Grade is authoritative.

        Returns:
            bool: True if the submission was rewritten
        """
        with self.repository.transaction():
            grade = self.repository.find_grade(student_id, assignment_id, for_update=True)
            submission = self.repository.find_submission(student_id, assignment_id, for_update=True)

            if grade is None or submission is None:
                return False

            in_step = submission.points_earned == grade.points_earned
            if submission.status == 'graded':
                in_step = in_step and submission.graded_at is not None
            elif submission.points_earned is None:
                # Not graded yet, nothing to mirror
                in_step = True

            if in_step:
                return False

            fields = {'points_earned': grade.points_earned}
            if submission.status == 'graded':
                fields['graded_at'] = submission.graded_at or self.clock()

            self.repository.update_submission(submission.id, fields)

        logger.info(
            f"Reconciled submission {submission.id} to grade {grade.points_earned} "
            f"for student {student_id} on assignment {assignment_id}"
        )
        return True

    # === READS ===

    def course_average(self, student_id, course_id):
        """Whole-percent course average, or None when nothing is graded yet"""
        return average_percentage(self.repository.list_grades(student_id, course_id))

    def letter_grade(self, percentage):
        return letter_grade(percentage)

    def gpa_point(self, percentage):
        return gpa_point(percentage)

    def gpa(self, student_id):
        """Mean stepped GPA over courses with a defined average, or None"""
        by_course = self._group_by_course(self.repository.list_grades(student_id))
        return mean_gpa(average_percentage(grades) for grades in by_course.values())

    def student_report(self, student_id):
        """
        Per-course standing for one student, covering enrolled courses and
        any course the student holds grades in.
        """
        self.repository.get_student(student_id)

        by_course = self._group_by_course(self.repository.list_grades(student_id))
        courses = {c.id: c for c in self.repository.list_student_courses(student_id)}
        for course_id in by_course:
            if course_id not in courses:
                courses[course_id] = self.repository.get_course(course_id)

        report = StudentReport(student_id=student_id)
        for course in courses.values():
            grades = by_course.get(course.id, [])
            average = average_percentage(grades)
            report.courses.append(CourseStanding(
                course_id=course.id,
                course_name=course.name,
                average=average,
                letter=letter_grade(average),
                gpa_point=gpa_point(average),
                # list_grades returns newest first
                last_updated=grades[0].updated_at if grades else None,
            ))

        report.gpa = mean_gpa(c.average for c in report.courses)
        return report

    def course_gradebook(self, course_id):
        """
        Enrolled students x assignments for one course.

        Returns:
            dict: {
                'course_id': 1,
                'assignments': [...],
                'students': [
                    {'student_id': 3, 'name': 'Ada Park',
                     'scores': [{'assignment_id': 7, 'points_earned': 18.0}, ...],
                     'average': 90}
                ]
            }
        """
        self.repository.get_course(course_id)

        assignments = self.repository.list_assignments(course_id)
        students = self.repository.list_enrolled_students(course_id)

        grades_by_student = {}
        for grade in self.repository.list_course_grades(course_id):
            grades_by_student.setdefault(grade.student_id, {})[grade.assignment_id] = grade

        rows = []
        for student in students:
            student_grades = grades_by_student.get(student.id, {})
            scores = []
            for assignment in assignments:
                grade = student_grades.get(assignment.id)
                scores.append({
                    'assignment_id': assignment.id,
                    'points_earned': grade.points_earned if grade else None,
                })
            rows.append({
                'student_id': student.id,
                'name': student.get_full_name(),
                'scores': scores,
                'average': average_percentage(student_grades.values()),
            })

        return {
            'course_id': course_id,
            'assignments': [a.to_dict() for a in assignments],
            'students': rows,
        }

    # === HELPERS ===

    @staticmethod
    def _validate_points(value):
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise ValidationError("grade must be a number", points_earned=str(value))

        try:
            value = float(value)
        except OverflowError:
            raise ValidationError("grade must be between 0 and total_points", points_earned=str(value))
        if not math.isfinite(value):
            raise ValidationError("grade must be between 0 and total_points", points_earned=str(value))
        return value

    @staticmethod
    def _group_by_course(grades):
        by_course = {}
        for grade in grades:
            by_course.setdefault(grade.course_id, []).append(grade)
        return by_course

    def _mirror_onto_submission(self, submission, grade, feedback=None):
        unchanged = feedback is None or feedback == submission.feedback
        if submission.status == 'graded' and submission.points_earned == grade.points_earned and unchanged:
            return submission

        fields = {
            'points_earned': grade.points_earned,
            'status': 'graded',
            'graded_at': self.clock(),
        }
        if feedback is not None:
            fields['feedback'] = feedback

        try:
            return self.repository.update_submission(submission.id, fields)
        except StorageError as e:
            logger.error(
                f"Submission {submission.id} update failed after grade write "
                f"for student {grade.student_id} on assignment {grade.assignment_id}: {str(e)}"
            )
            raise ConsistencyError(
                "grade and submission could not both be written; no change was saved",
                student_id=grade.student_id,
                assignment_id=grade.assignment_id
            ) from e
