"""
blueprints/parent/routes.py - Parent Blueprint
Read-only view of linked children's grades and attendance.
"""

from flask import Blueprint, jsonify

from attendance import attendance_summary
from ledger import GradeLedger
from policy import Capability, requires
from repository import SQLAlchemyGradeRepository

parent_bp = Blueprint('parent', __name__)

repository = SQLAlchemyGradeRepository()
ledger = GradeLedger(repository)


@parent_bp.route('/children')
@requires(Capability.VIEW_REPORT)
def children(ctx):
    """Linked children with their current GPA"""
    rows = []
    for student_id in sorted(ctx.children_ids):
        student = repository.get_student(student_id)
        rows.append({**student.to_dict(), 'gpa': ledger.gpa(student_id)})
    return jsonify({'success': True, 'children': rows})


@parent_bp.route('/children/<int:student_id>/report')
@requires(Capability.VIEW_REPORT)
def child_report(ctx, student_id):
    ctx.require_student(student_id)
    return jsonify({'success': True, 'report': ledger.student_report(student_id).to_dict()})


@parent_bp.route('/children/<int:student_id>/courses/<int:course_id>/attendance')
@requires(Capability.VIEW_ATTENDANCE)
def child_attendance(ctx, student_id, course_id):
    ctx.require_student(student_id)
    repository.get_course(course_id)
    return jsonify({'success': True, 'attendance': attendance_summary(repository, student_id, course_id)})
