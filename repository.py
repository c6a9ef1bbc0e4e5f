"""
repository.py - Persistence Collaborator
GradeRepository is the storage contract the ledger consumes.
SQLAlchemyGradeRepository implements it on the Flask-SQLAlchemy session.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from errors import NotFoundError, StorageError
from extensions import db
from models import (
    Assignment, AttendanceRecord, Course, Enrollment, Grade, Student, Submission, Teacher, User
)

logger = logging.getLogger(__name__)


class GradeRepository(ABC):
    """
    Storage contract for grades, submissions and the records they reference.
    Lookups of optional rows return None; lookups of referenced rows
    (assignment, student, course, teacher) raise NotFoundError.
    """

    @abstractmethod
    def transaction(self):
        """Context manager for one unit of work: commit on success, roll back on error."""

    # --- grades ---

    @abstractmethod
    def find_grade(self, student_id, assignment_id, for_update=False):
        pass

    @abstractmethod
    def upsert_grade(self, fields):
        """Create or update the grade keyed by (student_id, assignment_id)."""

    @abstractmethod
    def list_grades(self, student_id, course_id=None):
        pass

    @abstractmethod
    def list_course_grades(self, course_id):
        pass

    # --- submissions ---

    @abstractmethod
    def find_submission(self, student_id, assignment_id, for_update=False):
        pass

    @abstractmethod
    def create_submission(self, fields):
        pass

    @abstractmethod
    def update_submission(self, submission_id, fields):
        pass

    # --- referenced records ---

    @abstractmethod
    def get_assignment(self, assignment_id):
        pass

    @abstractmethod
    def get_student(self, student_id):
        pass

    @abstractmethod
    def get_course(self, course_id):
        pass

    @abstractmethod
    def list_assignments(self, course_id):
        pass

    @abstractmethod
    def list_enrolled_students(self, course_id):
        pass

    @abstractmethod
    def is_enrolled(self, student_id, course_id):
        pass

    @abstractmethod
    def list_student_courses(self, student_id):
        pass

    # --- course setup ---

    @abstractmethod
    def get_teacher(self, teacher_id):
        pass

    @abstractmethod
    def create_course(self, fields):
        pass

    @abstractmethod
    def update_course(self, course_id, fields):
        pass

    @abstractmethod
    def add_enrollment(self, student_id, course_id):
        pass

    @abstractmethod
    def remove_enrollment(self, student_id, course_id):
        pass

    @abstractmethod
    def create_assignment(self, fields):
        pass

    # --- attendance ---

    @abstractmethod
    def upsert_attendance(self, student_id, course_id, on_date, status):
        pass

    @abstractmethod
    def list_attendance(self, course_id, on_date=None, student_id=None):
        pass


class SQLAlchemyGradeRepository(GradeRepository):
    """GradeRepository backed by db.session"""

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    @contextmanager
    def transaction(self):
        try:
            yield self
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Transaction rolled back: {str(e)}")
            raise StorageError("database write failed") from e
        except Exception:
            self.session.rollback()
            raise

    def _flush(self):
        try:
            self.session.flush()
        except SQLAlchemyError as e:
            raise StorageError("database write failed") from e

    def _get_or_404(self, model, record_id, label):
        record = self.session.get(model, record_id) if record_id is not None else None
        if record is None:
            raise NotFoundError(f"{label} {record_id} not found")
        return record

    # --- grades ---

    def find_grade(self, student_id, assignment_id, for_update=False):
        stmt = db.select(Grade).filter_by(student_id=student_id, assignment_id=assignment_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def upsert_grade(self, fields):
        grade = self.find_grade(fields['student_id'], fields['assignment_id'])

        if grade is None:
            grade = Grade(**fields)
            self.session.add(grade)
        else:
            # Only touch changed columns so updated_at stays put on a no-op
            for key, value in fields.items():
                if getattr(grade, key) != value:
                    setattr(grade, key, value)

        self._flush()
        return grade

    def list_grades(self, student_id, course_id=None):
        stmt = db.select(Grade).filter_by(student_id=student_id)
        if course_id is not None:
            stmt = stmt.filter_by(course_id=course_id)
        stmt = stmt.order_by(Grade.updated_at.desc(), Grade.id.desc())
        return list(self.session.execute(stmt).scalars())

    def list_course_grades(self, course_id):
        stmt = db.select(Grade).filter_by(course_id=course_id)
        return list(self.session.execute(stmt).scalars())

    # --- submissions ---

    def find_submission(self, student_id, assignment_id, for_update=False):
        stmt = db.select(Submission).filter_by(student_id=student_id, assignment_id=assignment_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def create_submission(self, fields):
        submission = Submission(**fields)
        self.session.add(submission)
        self._flush()
        return submission

    def update_submission(self, submission_id, fields):
        submission = self._get_or_404(Submission, submission_id, "Submission")
        for key, value in fields.items():
            if getattr(submission, key) != value:
                setattr(submission, key, value)
        self._flush()
        return submission

    # --- referenced records ---

    def get_assignment(self, assignment_id):
        return self._get_or_404(Assignment, assignment_id, "Assignment")

    def get_student(self, student_id):
        return self._get_or_404(Student, student_id, "Student")

    def get_course(self, course_id):
        return self._get_or_404(Course, course_id, "Course")

    def list_assignments(self, course_id):
        stmt = db.select(Assignment).filter_by(course_id=course_id).order_by(Assignment.due_date, Assignment.id)
        return list(self.session.execute(stmt).scalars())

    def list_enrolled_students(self, course_id):
        stmt = (
            db.select(Student)
            .join(Enrollment, Enrollment.student_id == Student.id)
            .join(User, User.id == Student.user_id)
            .filter(Enrollment.course_id == course_id)
            .order_by(User.last_name, User.first_name)
        )
        return list(self.session.execute(stmt).scalars())

    def is_enrolled(self, student_id, course_id):
        stmt = db.select(Enrollment.id).filter_by(student_id=student_id, course_id=course_id)
        return self.session.execute(stmt).first() is not None

    def list_student_courses(self, student_id):
        stmt = (
            db.select(Course)
            .join(Enrollment, Enrollment.course_id == Course.id)
            .filter(Enrollment.student_id == student_id)
            .order_by(Course.name, Course.id)
        )
        return list(self.session.execute(stmt).scalars())

    # --- course setup ---

    def get_teacher(self, teacher_id):
        return self._get_or_404(Teacher, teacher_id, "Teacher")

    def create_course(self, fields):
        course = Course(**fields)
        self.session.add(course)
        self._flush()
        return course

    def update_course(self, course_id, fields):
        course = self.get_course(course_id)
        for key, value in fields.items():
            if getattr(course, key) != value:
                setattr(course, key, value)
        self._flush()
        return course

    def add_enrollment(self, student_id, course_id):
        if self.is_enrolled(student_id, course_id):
            return
        self.session.add(Enrollment(student_id=student_id, course_id=course_id))
        self._flush()

    def remove_enrollment(self, student_id, course_id):
        stmt = db.select(Enrollment).filter_by(student_id=student_id, course_id=course_id)
        enrollment = self.session.execute(stmt).scalar_one_or_none()
        if enrollment is not None:
            self.session.delete(enrollment)
            self._flush()

    def create_assignment(self, fields):
        assignment = Assignment(**fields)
        self.session.add(assignment)
        self._flush()
        return assignment

    # --- attendance ---

    def upsert_attendance(self, student_id, course_id, on_date, status):
        stmt = db.select(AttendanceRecord).filter_by(
            student_id=student_id, course_id=course_id, date=on_date
        )
        record = self.session.execute(stmt).scalar_one_or_none()

        if record is None:
            record = AttendanceRecord(
                student_id=student_id, course_id=course_id, date=on_date, status=status
            )
            self.session.add(record)
        elif record.status != status:
            record.status = status

        self._flush()
        return record

    def list_attendance(self, course_id, on_date=None, student_id=None):
        stmt = db.select(AttendanceRecord).filter_by(course_id=course_id)
        if on_date is not None:
            stmt = stmt.filter_by(date=on_date)
        if student_id is not None:
            stmt = stmt.filter_by(student_id=student_id)
        return list(self.session.execute(stmt.order_by(AttendanceRecord.date)).scalars())
