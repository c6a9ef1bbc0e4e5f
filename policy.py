"""
policy.py - Request Context and Capabilities
The logged-in user is turned into a RequestContext once per request, and the
role -> capability table is checked once at the view boundary.
"""

import logging
from dataclasses import dataclass, field
from functools import wraps
from typing import FrozenSet, Optional

from flask_login import current_user, login_required

from errors import PermissionDenied

logger = logging.getLogger(__name__)


class Capability:
    RECORD_GRADE = 'record_grade'
    VIEW_GRADEBOOK = 'view_gradebook'
    RECONCILE_GRADES = 'reconcile_grades'
    TAKE_ATTENDANCE = 'take_attendance'
    VIEW_ATTENDANCE = 'view_attendance'
    SUBMIT_ASSIGNMENT = 'submit_assignment'
    VIEW_REPORT = 'view_report'
    MANAGE_COURSES = 'manage_courses'
    MANAGE_ASSIGNMENTS = 'manage_assignments'


ROLE_CAPABILITIES = {
    'admin': frozenset({
        Capability.RECORD_GRADE,
        Capability.VIEW_GRADEBOOK,
        Capability.RECONCILE_GRADES,
        Capability.TAKE_ATTENDANCE,
        Capability.VIEW_ATTENDANCE,
        Capability.VIEW_REPORT,
        Capability.MANAGE_COURSES,
        Capability.MANAGE_ASSIGNMENTS,
    }),
    'teacher': frozenset({
        Capability.RECORD_GRADE,
        Capability.VIEW_GRADEBOOK,
        Capability.RECONCILE_GRADES,
        Capability.TAKE_ATTENDANCE,
        Capability.VIEW_ATTENDANCE,
        Capability.VIEW_REPORT,
        Capability.MANAGE_COURSES,
        Capability.MANAGE_ASSIGNMENTS,
    }),
    'student': frozenset({
        Capability.SUBMIT_ASSIGNMENT,
        Capability.VIEW_ATTENDANCE,
        Capability.VIEW_REPORT,
    }),
    'parent': frozenset({
        Capability.VIEW_ATTENDANCE,
        Capability.VIEW_REPORT,
    }),
}


def can(role, capability):
    """True if the role is allowed to perform the capability"""
    return capability in ROLE_CAPABILITIES.get(role, frozenset())


@dataclass(frozen=True)
class RequestContext:
    """
    Who is acting in this request. Built from the session once and passed
    explicitly into handlers; nothing below the view layer mutates it.
    """
    user_id: int
    role: str
    student_id: Optional[int] = None
    teacher_id: Optional[int] = None
    children_ids: FrozenSet[int] = field(default_factory=frozenset)

    @classmethod
    def from_user(cls, user):
        student = user.student_profile
        teacher = user.teacher_profile
        parent = user.parent_profile
        return cls(
            user_id=user.id,
            role=user.role,
            student_id=student.id if student else None,
            teacher_id=teacher.id if teacher else None,
            children_ids=frozenset(child.id for child in parent.children) if parent else frozenset(),
        )

    @property
    def is_admin(self):
        return self.role == 'admin'

    def can(self, capability):
        return can(self.role, capability)

    def may_view_student(self, student_id):
        """Row scope for student data. Teachers are scoped per course instead."""
        if self.role in ('admin', 'teacher'):
            return True
        if self.role == 'student':
            return self.student_id == student_id
        if self.role == 'parent':
            return student_id in self.children_ids
        return False

    def may_teach(self, course):
        return self.is_admin or (self.teacher_id is not None and course.teacher_id == self.teacher_id)

    def require_student(self, student_id):
        if not self.may_view_student(student_id):
            raise PermissionDenied("access to this student is not allowed")

    def require_course(self, course):
        if not self.may_teach(course):
            raise PermissionDenied("access to this course is not allowed")


def current_context():
    """RequestContext for the logged-in user"""
    return RequestContext.from_user(current_user)


def requires(capability):
    """
    Decorator: login required, capability checked once, ctx passed to the view
    as its first argument.
    """
    def decorator(f):
        @wraps(f)
        @login_required
        def decorated_function(*args, **kwargs):
            ctx = current_context()
            if not ctx.can(capability):
                logger.warning(f"User {ctx.user_id} ({ctx.role}) denied {capability}")
                raise PermissionDenied(f"{ctx.role} may not {capability.replace('_', ' ')}")
            return f(ctx, *args, **kwargs)
        return decorated_function
    return decorator
