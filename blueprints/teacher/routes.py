"""
blueprints/teacher/routes.py - Teacher Blueprint
Course setup, grade entry, course gradebook, reconciliation and attendance taking.
"""

from datetime import date, datetime, timezone

from flask import Blueprint, jsonify, request

from attendance import attendance_for_date, record_attendance
from courses import create_assignment, create_course, set_enrollments, update_course
from errors import ValidationError
from ledger import GradeLedger
from policy import Capability, requires
from repository import SQLAlchemyGradeRepository

# Initialize the blueprint for teacher-related routes
teacher_bp = Blueprint('teacher', __name__)

repository = SQLAlchemyGradeRepository()
ledger = GradeLedger(repository)


def _int_field(data, name):
    value = data.get(name)
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValidationError(f"{name} is required")
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


def _parse_date(value):
    if not value:
        return date.today()
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError("date must be YYYY-MM-DD", date=value)


def _parse_datetime(value, name):
    if not value:
        raise ValidationError(f"{name} is required")
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an ISO 8601 date-time", **{name: value})
    # Stored naive in UTC
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


@teacher_bp.route('/grades', methods=['POST'])
@requires(Capability.RECORD_GRADE)
def record_grade(ctx):
    """
    Record a score for one student on one assignment.
    The paired submission, if any, is marked graded with the same score.
    """
    data = request.get_json(silent=True) or {}

    student_id = _int_field(data, 'student_id')
    assignment_id = _int_field(data, 'assignment_id')
    course_id = _int_field(data, 'course_id')

    # Verify the course belongs to this teacher
    ctx.require_course(repository.get_course(course_id))

    result = ledger.record_grade(
        student_id, assignment_id, course_id, data.get('points_earned'), feedback=data.get('feedback')
    )

    return jsonify({'success': True, **result.to_dict()})


@teacher_bp.route('/grades/reconcile', methods=['POST'])
@requires(Capability.RECONCILE_GRADES)
def reconcile_grade(ctx):
    """Bring a drifted submission back in line with its grade"""
    data = request.get_json(silent=True) or {}

    student_id = _int_field(data, 'student_id')
    assignment_id = _int_field(data, 'assignment_id')

    assignment = repository.get_assignment(assignment_id)
    ctx.require_course(repository.get_course(assignment.course_id))

    repaired = ledger.reconcile(student_id, assignment_id)
    return jsonify({'success': True, 'repaired': repaired})


@teacher_bp.route('/courses/<int:course_id>/gradebook')
@requires(Capability.VIEW_GRADEBOOK)
def gradebook(ctx, course_id):
    ctx.require_course(repository.get_course(course_id))
    return jsonify({'success': True, 'gradebook': ledger.course_gradebook(course_id)})


@teacher_bp.route('/courses/<int:course_id>/attendance', methods=['POST'])
@requires(Capability.TAKE_ATTENDANCE)
def take_attendance(ctx, course_id):
    """
    Body: {"date": "2024-09-05", "statuses": {"3": "present", "4": "tardy"}}
    """
    ctx.require_course(repository.get_course(course_id))

    data = request.get_json(silent=True) or {}
    on_date = _parse_date(data.get('date'))

    raw_statuses = data.get('statuses')
    if not isinstance(raw_statuses, dict) or not raw_statuses:
        raise ValidationError("statuses must map student ids to a status")

    try:
        statuses = {int(student_id): status for student_id, status in raw_statuses.items()}
    except ValueError:
        raise ValidationError("student ids must be integers")

    stored = record_attendance(repository, course_id, on_date, statuses)
    return jsonify({'success': True, 'date': on_date.isoformat(), 'attendance': stored})


@teacher_bp.route('/courses/<int:course_id>/attendance')
@requires(Capability.TAKE_ATTENDANCE)
def view_attendance(ctx, course_id):
    ctx.require_course(repository.get_course(course_id))

    on_date = _parse_date(request.args.get('date'))
    return jsonify({
        'success': True,
        'date': on_date.isoformat(),
        'attendance': attendance_for_date(repository, course_id, on_date)
    })


# === COURSE SETUP ===

@teacher_bp.route('/courses', methods=['POST'])
@requires(Capability.MANAGE_COURSES)
def new_course(ctx):
    """
    Create a course, optionally with its first roster.
    Teachers create courses for themselves; admins name the teacher.

    Body: {"name": "Algebra II", "school_year": "2024-2025", "semester": "Fall",
           "student_ids": [3, 4]}
    """
    data = request.get_json(silent=True) or {}

    teacher_id = _int_field(data, 'teacher_id') if ctx.is_admin else ctx.teacher_id

    course = create_course(repository, teacher_id, data, student_ids=data.get('student_ids'))
    return jsonify({
        'success': True,
        'course': course.to_dict(),
        'student_ids': [s.id for s in repository.list_enrolled_students(course.id)],
    }), 201


@teacher_bp.route('/courses/<int:course_id>', methods=['PATCH'])
@requires(Capability.MANAGE_COURSES)
def edit_course(ctx, course_id):
    ctx.require_course(repository.get_course(course_id))

    data = request.get_json(silent=True) or {}
    course = update_course(repository, course_id, data)
    return jsonify({'success': True, 'course': course.to_dict()})


@teacher_bp.route('/courses/<int:course_id>/enrollments', methods=['PUT'])
@requires(Capability.MANAGE_COURSES)
def enroll_students(ctx, course_id):
    """Replace the roster. Body: {"student_ids": [3, 4]}"""
    ctx.require_course(repository.get_course(course_id))

    data = request.get_json(silent=True) or {}
    if 'student_ids' not in data:
        raise ValidationError("student_ids is required")

    students = set_enrollments(repository, course_id, data['student_ids'])
    return jsonify({'success': True, 'students': [s.to_dict() for s in students]})


@teacher_bp.route('/courses/<int:course_id>/assignments', methods=['POST'])
@requires(Capability.MANAGE_ASSIGNMENTS)
def new_assignment(ctx, course_id):
    """
    Body: {"title": "Quiz 2", "due_date": "2024-10-01T23:59:00", "total_points": 50}
    """
    ctx.require_course(repository.get_course(course_id))

    data = request.get_json(silent=True) or {}
    assignment = create_assignment(
        repository,
        course_id,
        title=data.get('title'),
        due_date=_parse_datetime(data.get('due_date'), 'due_date'),
        total_points=data.get('total_points'),
        description=data.get('description'),
    )
    return jsonify({'success': True, 'assignment': assignment.to_dict()}), 201
