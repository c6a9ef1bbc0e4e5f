from datetime import date, datetime, timedelta

import pytest

from attendance import attendance_for_date, attendance_summary, record_attendance
from courses import create_assignment, create_course, set_enrollments, update_course
from errors import NotFoundError, ValidationError
from extensions import db
from ledger import GradeLedger
from models import Assignment, Course, Submission
from repository import SQLAlchemyGradeRepository
from submissions import submit_assignment


@pytest.fixture
def repository(school):
    return SQLAlchemyGradeRepository()


# === SUBMISSIONS ===

def test_first_submission(repository, school):
    submission = submit_assignment(repository, school.ben, school.quiz, text='my answers')

    assert submission.status == 'submitted'
    assert submission.submission_text == 'my answers'
    assert submission.graded_at is None
    assert submission.points_earned is None


def test_first_submission_after_due_date_is_refused(repository, school):
    with pytest.raises(ValidationError):
        submit_assignment(repository, school.ada, school.closed, text='late')

    assert db.session.execute(
        db.select(Submission).filter_by(student_id=school.ada, assignment_id=school.closed)
    ).scalar_one_or_none() is None


def test_resubmission_allowed_after_due_date(repository, school):
    later = datetime.utcnow() + timedelta(days=30)

    submission = submit_assignment(
        repository, school.ada, school.homework, url='https://files.test/ada/v2.pdf', now=later
    )

    assert submission.id == school.submission
    assert submission.status == 'resubmitted'
    assert submission.submission_url == 'https://files.test/ada/v2.pdf'
    assert submission.submitted_at == later


def test_resubmitting_graded_work_awaits_regrade(repository, school):
    GradeLedger(repository).record_grade(school.ada, school.homework, school.algebra, 75)

    submission = submit_assignment(repository, school.ada, school.homework, text='fixed step 3')

    assert submission.status == 'resubmitted'
    assert submission.graded_at is None
    # still mirrors the recorded grade until regraded
    assert submission.points_earned == 75


def test_regrading_a_resubmission(repository, school):
    ledger = GradeLedger(repository)
    ledger.record_grade(school.ada, school.homework, school.algebra, 75)
    submit_assignment(repository, school.ada, school.homework, text='fixed step 3')

    result = ledger.record_grade(school.ada, school.homework, school.algebra, 75)

    assert result.submission.status == 'graded'
    assert result.submission.graded_at is not None


def test_submission_needs_content(repository, school):
    with pytest.raises(ValidationError):
        submit_assignment(repository, school.ben, school.quiz, text='   ')


def test_submission_requires_enrollment(repository, school):
    with pytest.raises(ValidationError):
        submit_assignment(repository, school.ben, school.lab, text='not my class')


def test_submission_unknown_assignment(repository, school):
    with pytest.raises(NotFoundError):
        submit_assignment(repository, school.ben, 9999, text='?')


# === ATTENDANCE ===

def test_record_attendance_and_read_back(repository, school):
    day = date(2024, 9, 5)

    stored = record_attendance(repository, school.algebra, day, {school.ada: 'present', school.ben: 'tardy'})

    assert stored == {school.ada: 'present', school.ben: 'tardy'}
    assert attendance_for_date(repository, school.algebra, date(2024, 9, 6)) == {}


def test_record_attendance_overwrites_same_day(repository, school):
    day = date(2024, 9, 5)
    record_attendance(repository, school.algebra, day, {school.ada: 'absent'})
    record_attendance(repository, school.algebra, day, {school.ada: 'excused'})

    assert attendance_for_date(repository, school.algebra, day) == {school.ada: 'excused'}


def test_record_attendance_rejects_unknown_status(repository, school):
    with pytest.raises(ValidationError):
        record_attendance(repository, school.algebra, date(2024, 9, 5), {school.ada: 'late'})

    assert attendance_for_date(repository, school.algebra, date(2024, 9, 5)) == {}


def test_record_attendance_requires_enrollment(repository, school):
    with pytest.raises(ValidationError):
        record_attendance(repository, school.biology, date(2024, 9, 5), {school.ben: 'present'})


def test_attendance_summary(repository, school):
    for offset, status in enumerate(['present', 'present', 'tardy', 'absent']):
        record_attendance(repository, school.algebra, date(2024, 9, 2) + timedelta(days=offset), {school.ada: status})

    summary = attendance_summary(repository, school.ada, school.algebra)

    assert summary['total'] == 4
    assert summary['counts'] == {'present': 2, 'absent': 1, 'tardy': 1, 'excused': 0}
    assert summary['rate'] == 75


def test_attendance_summary_without_records(repository, school):
    summary = attendance_summary(repository, school.ben, school.algebra)

    assert summary['total'] == 0
    assert summary['rate'] is None


# === COURSE SETUP ===

def _roster(repository, course_id):
    return [student.id for student in repository.list_enrolled_students(course_id)]


def test_create_course_with_roster(repository, school):
    course = create_course(
        repository,
        school.teacher_id,
        {'name': ' Chemistry ', 'school_year': '2024-2025', 'semester': 'Spring', 'period': '3'},
        student_ids=[school.ben, school.ada],
    )

    assert course.name == 'Chemistry'
    assert course.teacher_id == school.teacher_id
    assert course.description is None
    assert sorted(_roster(repository, course.id)) == sorted([school.ada, school.ben])


@pytest.mark.parametrize('fields', [
    {'school_year': '2024-2025', 'semester': 'Fall'},
    {'name': '   ', 'school_year': '2024-2025', 'semester': 'Fall'},
    {'name': 'Chemistry', 'school_year': '2024-2025'},
    {'name': 42, 'school_year': '2024-2025', 'semester': 'Fall'},
])
def test_create_course_requires_fields(repository, school, fields):
    with pytest.raises(ValidationError):
        create_course(repository, school.teacher_id, fields)

    assert len(db.session.execute(db.select(Course)).scalars().all()) == 3


def test_create_course_unknown_student_creates_nothing(repository, school):
    with pytest.raises(NotFoundError):
        create_course(
            repository,
            school.teacher_id,
            {'name': 'Chemistry', 'school_year': '2024-2025', 'semester': 'Fall'},
            student_ids=[school.ada, 9999],
        )

    assert db.session.execute(db.select(Course).filter_by(name='Chemistry')).scalar_one_or_none() is None


def test_create_course_unknown_teacher(repository, school):
    with pytest.raises(NotFoundError):
        create_course(repository, 9999, {'name': 'Chemistry', 'school_year': '2024-2025', 'semester': 'Fall'})


def test_update_course_changes_only_given_fields(repository, school):
    course = update_course(repository, school.algebra, {'name': 'Algebra II Honors', 'period': '2'})

    assert course.name == 'Algebra II Honors'
    assert course.period == '2'
    assert course.semester == 'Fall'


def test_update_course_rejects_unknown_fields(repository, school):
    with pytest.raises(ValidationError):
        update_course(repository, school.algebra, {'teacher_id': school.other_teacher_id})

    with pytest.raises(ValidationError):
        update_course(repository, school.algebra, {})


def test_set_enrollments_replaces_roster(repository, school):
    students = set_enrollments(repository, school.algebra, [school.ada])

    assert [s.id for s in students] == [school.ada]
    assert _roster(repository, school.algebra) == [school.ada]


def test_dropping_a_student_keeps_their_grades(repository, school):
    GradeLedger(repository).record_grade(school.ben, school.quiz, school.algebra, 40)

    set_enrollments(repository, school.algebra, [school.ada])

    assert [g.points_earned for g in repository.list_grades(school.ben, school.algebra)] == [40]


def test_set_enrollments_rejects_non_integer_ids(repository, school):
    with pytest.raises(ValidationError):
        set_enrollments(repository, school.algebra, ['ada'])

    with pytest.raises(ValidationError):
        set_enrollments(repository, school.algebra, school.ada)

    assert sorted(_roster(repository, school.algebra)) == sorted([school.ada, school.ben])


def test_create_assignment(repository, school):
    due = datetime(2024, 10, 1, 23, 59)
    assignment = create_assignment(repository, school.biology, ' Lab Report ', due, 40, description='Photosynthesis')

    assert assignment.title == 'Lab Report'
    assert assignment.total_points == 40
    assert assignment.due_date == due
    assert assignment.course_id == school.biology


@pytest.mark.parametrize('total_points', [0, -5, True, '50', None, float('nan'), 10 ** 400])
def test_create_assignment_rejects_bad_total_points(repository, school, total_points):
    with pytest.raises(ValidationError):
        create_assignment(repository, school.biology, 'Lab Report', datetime(2024, 10, 1), total_points)

    assert db.session.execute(db.select(Assignment).filter_by(title='Lab Report')).scalar_one_or_none() is None


def test_create_assignment_unknown_course(repository, school):
    with pytest.raises(NotFoundError):
        create_assignment(repository, 9999, 'Lab Report', datetime(2024, 10, 1), 40)
