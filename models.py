"""
models.py - Database Models for Gradeledger
Users and role profiles, courses, assignments, submissions, grades and attendance.
"""

from config import Config
from extensions import db
from flask_login import UserMixin
from datetime import datetime


ROLES = ('admin', 'teacher', 'student', 'parent')

SUBMISSION_STATUSES = ('submitted', 'resubmitted', 'graded')


def _in_clause(column, values):
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


# Parent <-> Student link (a parent may follow several children)
parent_student = db.Table(
    'parent_student',
    db.Column('parent_id', db.Integer, db.ForeignKey('parent.id'), primary_key=True),
    db.Column('student_id', db.Integer, db.ForeignKey('student.id'), primary_key=True),
    db.Column('created_at', db.DateTime, default=datetime.utcnow),
)


class User(UserMixin, db.Model):
    """
    Base User Model - Authentication for all users
    """
    __tablename__ = 'user'
    __table_args__ = (
        db.CheckConstraint(_in_clause('role', ROLES), name='ck_user_role'),
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False)  # 'admin', 'teacher', 'student', 'parent'
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    student_profile = db.relationship('Student', backref='user', uselist=False, cascade='all, delete-orphan')
    teacher_profile = db.relationship('Teacher', backref='user', uselist=False, cascade='all, delete-orphan')
    parent_profile = db.relationship('Parent', backref='user', uselist=False, cascade='all, delete-orphan')

    def __repr__(self):
        return f'<User {self.email} ({self.role})>'

    def get_full_name(self):
        return f"{self.first_name} {self.last_name}"


class Student(db.Model):
    """
    Student Profile
    Only grade_level changes after creation (promotion).
    """
    __tablename__ = 'student'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, unique=True)

    grade_level = db.Column(db.String(20), nullable=False)  # "9th Grade"
    graduation_year = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    enrollments = db.relationship('Enrollment', backref='student', lazy='dynamic', cascade='all, delete-orphan')
    grades = db.relationship('Grade', backref='student', lazy='dynamic', cascade='all, delete-orphan')
    submissions = db.relationship('Submission', backref='student', lazy='dynamic', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Student {self.id} - {self.get_full_name()}>'

    def get_full_name(self):
        return self.user.get_full_name() if self.user else "Unknown Student"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.get_full_name(),
            'grade_level': self.grade_level,
            'graduation_year': self.graduation_year,
        }


class Teacher(db.Model):
    """
    Teacher Profile
    """
    __tablename__ = 'teacher'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, unique=True)
    department = db.Column(db.String(100), nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    courses = db.relationship('Course', backref='teacher', lazy='dynamic')

    def __repr__(self):
        return f'<Teacher {self.id} - {self.department}>'


class Parent(db.Model):
    """
    Parent Profile - read access to linked children
    """
    __tablename__ = 'parent'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, unique=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    children = db.relationship('Student', secondary=parent_student, backref='parents')

    def __repr__(self):
        return f'<Parent {self.id}>'


class Course(db.Model):
    """
    Course - taught by one teacher in one term
    """
    __tablename__ = 'course'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    teacher_id = db.Column(db.Integer, db.ForeignKey('teacher.id'), nullable=False)

    # === ACADEMIC PERIOD ===
    period = db.Column(db.String(20), nullable=True)
    school_year = db.Column(db.String(20), nullable=False)
    semester = db.Column(db.String(20), nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # === RELATIONSHIPS ===
    enrollments = db.relationship('Enrollment', backref='course', lazy='dynamic', cascade='all, delete-orphan')
    assignments = db.relationship('Assignment', backref='course', lazy='dynamic', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Course {self.name} ({self.school_year} {self.semester})>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'teacher_id': self.teacher_id,
            'period': self.period,
            'school_year': self.school_year,
            'semester': self.semester,
        }


class Enrollment(db.Model):
    """
    Enrollment - Links students to courses
    """
    __tablename__ = 'enrollment'
    __table_args__ = (
        db.UniqueConstraint('student_id', 'course_id', name='uq_enrollment_student_course'),
    )

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False, index=True)
    course_id = db.Column(db.Integer, db.ForeignKey('course.id'), nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<Enrollment Student:{self.student_id} Course:{self.course_id}>'


class Assignment(db.Model):
    """
    Assignment - belongs to exactly one course
    """
    __tablename__ = 'assignment'
    __table_args__ = (
        db.CheckConstraint('total_points > 0', name='ck_assignment_total_points_positive'),
    )

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey('course.id'), nullable=False, index=True)

    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    due_date = db.Column(db.DateTime, nullable=False)
    total_points = db.Column(db.Float, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    submissions = db.relationship('Submission', backref='assignment', lazy='dynamic', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Assignment {self.title} - Course:{self.course_id}>'

    def is_past_due(self, now=None):
        return (now or datetime.utcnow()) > self.due_date

    def to_dict(self):
        return {
            'id': self.id,
            'course_id': self.course_id,
            'title': self.title,
            'due_date': self.due_date.isoformat() if self.due_date else None,
            'total_points': self.total_points,
        }


class Submission(db.Model):
    """
    Submission - a student's delivered work for one assignment.
    Once graded, points_earned mirrors the paired Grade.
    """
    __tablename__ = 'submission'
    __table_args__ = (
        db.UniqueConstraint('student_id', 'assignment_id', name='uq_submission_student_assignment'),
        db.CheckConstraint(_in_clause('status', SUBMISSION_STATUSES), name='ck_submission_status'),
        db.CheckConstraint('points_earned IS NULL OR points_earned >= 0', name='ck_submission_points_nonnegative'),
        db.CheckConstraint(
            "(status = 'graded' AND graded_at IS NOT NULL) OR (status != 'graded' AND graded_at IS NULL)",
            name='ck_submission_graded_at'
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False, index=True)
    assignment_id = db.Column(db.Integer, db.ForeignKey('assignment.id'), nullable=False, index=True)

    # Content reference (file storage is external, only the URL is kept)
    submission_text = db.Column(db.Text, nullable=True)
    submission_url = db.Column(db.String(500), nullable=True)

    status = db.Column(db.String(20), nullable=False, default='submitted')  # 'submitted', 'resubmitted', 'graded'
    points_earned = db.Column(db.Float, nullable=True)
    feedback = db.Column(db.Text, nullable=True)

    submitted_at = db.Column(db.DateTime, default=datetime.utcnow)
    graded_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<Submission Student:{self.student_id} Assignment:{self.assignment_id} ({self.status})>'

    def to_dict(self):
        return {
            'id': self.id,
            'student_id': self.student_id,
            'assignment_id': self.assignment_id,
            'submission_text': self.submission_text,
            'submission_url': self.submission_url,
            'status': self.status,
            'points_earned': self.points_earned,
            'feedback': self.feedback,
            'submitted_at': self.submitted_at.isoformat() if self.submitted_at else None,
            'graded_at': self.graded_at.isoformat() if self.graded_at else None,
        }


class Grade(db.Model):
    """
    Grade - points earned out of points possible for a student in a course,
    optionally tied to one assignment. Created on first score, updated in place after.
    """
    __tablename__ = 'grade'
    __table_args__ = (
        db.UniqueConstraint('student_id', 'assignment_id', name='uq_grade_student_assignment'),
        db.CheckConstraint(
            'points_earned >= 0 AND points_earned <= points_possible',
            name='ck_grade_points_in_range'
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False, index=True)
    course_id = db.Column(db.Integer, db.ForeignKey('course.id'), nullable=False, index=True)
    assignment_id = db.Column(db.Integer, db.ForeignKey('assignment.id'), nullable=True, index=True)

    grade_type = db.Column(db.String(30), nullable=False, default='assignment')
    points_earned = db.Column(db.Float, nullable=False)
    points_possible = db.Column(db.Float, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    course = db.relationship('Course')
    assignment = db.relationship('Assignment')

    def __repr__(self):
        return f'<Grade Student:{self.student_id} Assignment:{self.assignment_id} {self.points_earned}/{self.points_possible}>'

    def to_dict(self):
        return {
            'id': self.id,
            'student_id': self.student_id,
            'course_id': self.course_id,
            'assignment_id': self.assignment_id,
            'grade_type': self.grade_type,
            'points_earned': self.points_earned,
            'points_possible': self.points_possible,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class AttendanceRecord(db.Model):
    """
    Attendance - one status per student, course and school day
    """
    __tablename__ = 'attendance'
    __table_args__ = (
        db.UniqueConstraint('student_id', 'course_id', 'date', name='uq_attendance_student_course_date'),
        db.CheckConstraint(_in_clause('status', Config.ATTENDANCE_STATUSES), name='ck_attendance_status'),
    )

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False, index=True)
    course_id = db.Column(db.Integer, db.ForeignKey('course.id'), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(10), nullable=False)  # 'present', 'absent', 'tardy', 'excused'

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<Attendance Student:{self.student_id} Course:{self.course_id} {self.date} {self.status}>'
