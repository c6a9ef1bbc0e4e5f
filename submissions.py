"""
submissions.py - Assignment Submission
Students hand in work here; grading happens in the ledger.
"""

import logging
from datetime import datetime

from errors import ValidationError

logger = logging.getLogger(__name__)


def submit_assignment(repository, student_id, assignment_id, text=None, url=None, now=None):
    """
    Create or resubmit a student's work for an assignment.

    A first submission is refused once the due date has passed; an existing
    submission can still be replaced. Resubmitting clears graded_at (the
    submission awaits regrading) but keeps points_earned, which still
    mirrors the recorded Grade.

    Args:
        repository: GradeRepository
        student_id: submitting student
        assignment_id: target assignment
        text: inline answer text
        url: reference to an uploaded file (storage is external)
        now: submission time, defaults to utcnow

    Returns:
        Submission
    """
    now = now or datetime.utcnow()
    text = text.strip() if text else None
    url = url.strip() if url else None

    if not text and not url:
        raise ValidationError("submission needs text or a file url")

    assignment = repository.get_assignment(assignment_id)
    repository.get_student(student_id)

    if not repository.is_enrolled(student_id, assignment.course_id):
        raise ValidationError(
            "student is not enrolled in this course",
            student_id=student_id,
            course_id=assignment.course_id
        )

    with repository.transaction():
        existing = repository.find_submission(student_id, assignment_id, for_update=True)

        if existing is None:
            if assignment.is_past_due(now):
                raise ValidationError("the due date for this assignment has passed")

            submission = repository.create_submission({
                'student_id': student_id,
                'assignment_id': assignment_id,
                'submission_text': text,
                'submission_url': url,
                'status': 'submitted',
                'submitted_at': now,
            })
        else:
            submission = repository.update_submission(existing.id, {
                'submission_text': text,
                'submission_url': url or existing.submission_url,
                'status': 'resubmitted',
                'submitted_at': now,
                'graded_at': None,
            })

    logger.info(f"Student {student_id} {submission.status} assignment {assignment_id}")
    return submission
