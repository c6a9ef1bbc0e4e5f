from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from app import create_app
from extensions import bcrypt, db
from models import (
    Assignment, Course, Enrollment, Parent, Student, Submission, Teacher, User
)

PASSWORD = 'password123'


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _user(email, role, first_name, last_name):
    user = User(
        email=email,
        password=bcrypt.generate_password_hash(PASSWORD).decode('utf-8'),
        role=role,
        first_name=first_name,
        last_name=last_name
    )
    db.session.add(user)
    return user


@pytest.fixture
def school(app):
    """
    Two teachers, two students, one parent (of Ada), three courses.

    Ada is enrolled in algebra, biology and history; Ben only in algebra.
    Ada has an ungraded submission for the algebra homework.
    """
    now = datetime.utcnow()

    admin_user = _user('admin@school.test', 'admin', 'School', 'Admin')
    teacher = Teacher(user=_user('teacher@school.test', 'teacher', 'Mina', 'Lopez'), department='Math')
    other_teacher = Teacher(user=_user('other@school.test', 'teacher', 'Omar', 'Reed'), department='History')
    ada = Student(user=_user('ada@school.test', 'student', 'Ada', 'Park'), grade_level='10th Grade')
    ben = Student(user=_user('ben@school.test', 'student', 'Ben', 'Cho'), grade_level='10th Grade')
    parent = Parent(user=_user('parent@school.test', 'parent', 'Jae', 'Park'))
    parent.children.append(ada)
    db.session.add_all([teacher, other_teacher, ada, ben, parent])
    db.session.flush()

    algebra = Course(name='Algebra II', teacher_id=teacher.id, school_year='2024-2025', semester='Fall')
    biology = Course(name='Biology', teacher_id=teacher.id, school_year='2024-2025', semester='Fall')
    history = Course(name='World History', teacher_id=other_teacher.id, school_year='2024-2025', semester='Fall')
    db.session.add_all([algebra, biology, history])
    db.session.flush()

    db.session.add_all([
        Enrollment(student_id=ada.id, course_id=algebra.id),
        Enrollment(student_id=ada.id, course_id=biology.id),
        Enrollment(student_id=ada.id, course_id=history.id),
        Enrollment(student_id=ben.id, course_id=algebra.id),
    ])

    homework = Assignment(course_id=algebra.id, title='Quadratics', total_points=100, due_date=now + timedelta(days=7))
    quiz = Assignment(course_id=algebra.id, title='Quiz 1', total_points=50, due_date=now + timedelta(days=3))
    closed = Assignment(course_id=algebra.id, title='Warm-up', total_points=10, due_date=now - timedelta(days=1))
    lab = Assignment(course_id=biology.id, title='Cell Lab', total_points=100, due_date=now + timedelta(days=7))
    essay = Assignment(course_id=history.id, title='WWII Essay', total_points=100, due_date=now + timedelta(days=7))
    db.session.add_all([homework, quiz, closed, lab, essay])
    db.session.flush()

    submission = Submission(
        student_id=ada.id,
        assignment_id=homework.id,
        submission_text='x = 2 or x = -3',
        status='submitted',
        submitted_at=now
    )
    db.session.add(submission)
    db.session.commit()

    return SimpleNamespace(
        admin_user_id=admin_user.id,
        teacher_id=teacher.id,
        other_teacher_id=other_teacher.id,
        ada=ada.id,
        ben=ben.id,
        parent_id=parent.id,
        algebra=algebra.id,
        biology=biology.id,
        history=history.id,
        homework=homework.id,
        quiz=quiz.id,
        closed=closed.id,
        lab=lab.id,
        essay=essay.id,
        submission=submission.id,
    )


@pytest.fixture
def login(client):
    def _login(email):
        response = client.post('/auth/login', json={'email': email, 'password': PASSWORD})
        assert response.status_code == 200, response.get_json()
        return client
    return _login
