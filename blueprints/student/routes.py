"""
blueprints/student/routes.py - Student Blueprint
Assignment submission, grade report and attendance summary.
"""

from flask import Blueprint, jsonify, request

from attendance import attendance_summary
from errors import PermissionDenied
from ledger import GradeLedger
from policy import Capability, requires
from repository import SQLAlchemyGradeRepository
from submissions import submit_assignment

# Initialize the blueprint for student-related routes
student_bp = Blueprint('student', __name__)

repository = SQLAlchemyGradeRepository()
ledger = GradeLedger(repository)


def _own_student_id(ctx):
    if ctx.student_id is None:
        raise PermissionDenied("no student profile for this account")
    return ctx.student_id


@student_bp.route('/assignments/<int:assignment_id>/submission', methods=['POST'])
@requires(Capability.SUBMIT_ASSIGNMENT)
def submit(ctx, assignment_id):
    """
    Hand in (or resubmit) work for an assignment.
    Body: {"submission_text": "...", "submission_url": "https://..."}
    """
    data = request.get_json(silent=True) or {}

    submission = submit_assignment(
        repository,
        _own_student_id(ctx),
        assignment_id,
        text=data.get('submission_text'),
        url=data.get('submission_url'),
    )
    return jsonify({'success': True, 'submission': submission.to_dict()}), 201


@student_bp.route('/report')
@requires(Capability.VIEW_REPORT)
def report(ctx):
    """Course averages, letters and GPA for the logged-in student"""
    return jsonify({'success': True, 'report': ledger.student_report(_own_student_id(ctx)).to_dict()})


@student_bp.route('/courses/<int:course_id>/attendance')
@requires(Capability.VIEW_ATTENDANCE)
def attendance(ctx, course_id):
    student_id = _own_student_id(ctx)
    repository.get_course(course_id)
    return jsonify({'success': True, 'attendance': attendance_summary(repository, student_id, course_id)})
