"""
courses.py - Course Setup
Courses, rosters and assignments: the records every grade refers to.
"""

import logging
import math
import numbers

from errors import ValidationError

logger = logging.getLogger(__name__)

COURSE_FIELDS = ('name', 'description', 'period', 'school_year', 'semester')
REQUIRED_COURSE_FIELDS = ('name', 'school_year', 'semester')


def _text(fields, name, required):
    value = fields.get(name)
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{name} must be text")

    value = value.strip() if value else None
    if required and not value:
        raise ValidationError(f"{name} is required")
    return value


def _student_ids(repository, student_ids):
    if not isinstance(student_ids, (list, tuple, set)):
        raise ValidationError("student_ids must be a list")

    ids = set()
    for student_id in student_ids:
        if isinstance(student_id, bool) or not isinstance(student_id, int):
            raise ValidationError("student ids must be integers", student_id=str(student_id))
        repository.get_student(student_id)
        ids.add(student_id)
    return ids


def create_course(repository, teacher_id, fields, student_ids=None):
    """
    Create a course taught by teacher_id, optionally enrolling students.

    Returns:
        Course
    """
    repository.get_teacher(teacher_id)

    values = {name: _text(fields, name, name in REQUIRED_COURSE_FIELDS) for name in COURSE_FIELDS}
    roster = _student_ids(repository, student_ids or [])

    with repository.transaction():
        course = repository.create_course({**values, 'teacher_id': teacher_id})
        for student_id in sorted(roster):
            repository.add_enrollment(student_id, course.id)

    logger.info(f"Created course {course.id} '{course.name}' for teacher {teacher_id} ({len(roster)} students)")
    return course


def update_course(repository, course_id, fields):
    """Edit the descriptive fields of a course. Only the keys given are changed."""
    repository.get_course(course_id)

    unknown = sorted(set(fields) - set(COURSE_FIELDS))
    if unknown:
        raise ValidationError("unknown course fields", fields=unknown)
    if not fields:
        raise ValidationError("nothing to update")

    values = {name: _text(fields, name, name in REQUIRED_COURSE_FIELDS) for name in fields}

    with repository.transaction():
        course = repository.update_course(course_id, values)

    logger.info(f"Updated course {course_id}: {', '.join(sorted(values))}")
    return course


def set_enrollments(repository, course_id, student_ids):
    """
    Replace the course roster with student_ids.
    Grades already recorded for a dropped student are kept.

    Returns:
        list of enrolled Student, ordered by name
    """
    repository.get_course(course_id)
    wanted = _student_ids(repository, student_ids)

    with repository.transaction():
        current = {student.id for student in repository.list_enrolled_students(course_id)}
        for student_id in sorted(wanted - current):
            repository.add_enrollment(student_id, course_id)
        for student_id in sorted(current - wanted):
            repository.remove_enrollment(student_id, course_id)

    logger.info(
        f"Roster of course {course_id}: +{len(wanted - current)} -{len(current - wanted)} "
        f"({len(wanted)} enrolled)"
    )
    return repository.list_enrolled_students(course_id)


def create_assignment(repository, course_id, title, due_date, total_points, description=None):
    """
    Add an assignment to a course.

    Raises:
        ValidationError: missing title or due date, or total_points not > 0
        NotFoundError: unknown course
    """
    repository.get_course(course_id)

    title = _text({'title': title}, 'title', required=True)
    description = _text({'description': description}, 'description', required=False)

    if due_date is None:
        raise ValidationError("due_date is required")

    if isinstance(total_points, bool) or not isinstance(total_points, numbers.Real):
        raise ValidationError("total_points must be a number")
    try:
        total_points = float(total_points)
    except OverflowError:
        raise ValidationError("total_points is too large")
    if not math.isfinite(total_points) or total_points <= 0:
        raise ValidationError("total_points must be greater than 0", total_points=str(total_points))

    with repository.transaction():
        assignment = repository.create_assignment({
            'course_id': course_id,
            'title': title,
            'description': description,
            'due_date': due_date,
            'total_points': total_points,
        })

    logger.info(f"Created assignment {assignment.id} '{title}' in course {course_id} ({total_points} points)")
    return assignment
