"""
attendance.py - Course Attendance
"""

import logging

from config import Config
from errors import ValidationError
from ledger import round_percentage

logger = logging.getLogger(__name__)


def record_attendance(repository, course_id, on_date, statuses):
    """
    Set the attendance status of several students for one course day.

    Args:
        statuses: {student_id: 'present' | 'absent' | 'tardy' | 'excused'}

    Returns:
        dict: {student_id: status} as stored
    """
    repository.get_course(course_id)

    for student_id, status in statuses.items():
        if status not in Config.ATTENDANCE_STATUSES:
            raise ValidationError(
                f"attendance status must be one of {', '.join(Config.ATTENDANCE_STATUSES)}",
                student_id=student_id,
                status=status
            )
        if not repository.is_enrolled(student_id, course_id):
            raise ValidationError(
                "student is not enrolled in this course",
                student_id=student_id,
                course_id=course_id
            )

    with repository.transaction():
        for student_id, status in statuses.items():
            repository.upsert_attendance(student_id, course_id, on_date, status)

    logger.info(f"Recorded attendance for {len(statuses)} students in course {course_id} on {on_date}")
    return attendance_for_date(repository, course_id, on_date)


def attendance_for_date(repository, course_id, on_date):
    return {r.student_id: r.status for r in repository.list_attendance(course_id, on_date=on_date)}


def attendance_summary(repository, student_id, course_id):
    """
    Status counts for one student in one course.
    rate is the share of recorded days present or tardy, as a whole percent;
    None when nothing is recorded.
    """
    records = repository.list_attendance(course_id, student_id=student_id)

    counts = {status: 0 for status in Config.ATTENDANCE_STATUSES}
    for record in records:
        counts[record.status] = counts.get(record.status, 0) + 1

    total = len(records)
    attended = counts['present'] + counts['tardy']

    return {
        'student_id': student_id,
        'course_id': course_id,
        'counts': counts,
        'total': total,
        'rate': round_percentage(100 * attended / total) if total else None,
    }
