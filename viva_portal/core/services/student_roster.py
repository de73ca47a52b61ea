"""Service for the students each faculty member teaches."""

from __future__ import annotations

import logging

from viva_portal.constants.viva_constants import STUDENTS_COLLECTION
from viva_portal.core.document_store import InMemoryDocumentStore
from viva_portal.core.errors import InvalidInput, NotFound, PermissionDenied
from viva_portal.core.models import Student

logger = logging.getLogger(__name__)


class StudentRoster:
    """Adds, edits and lists roster entries.

    Accounts themselves belong to the identity provider; a roster entry only
    ties an existing user id to a faculty member, roll number and section.
    """

    def __init__(self, store: InMemoryDocumentStore) -> None:
        self._store = store

    def add(
        self,
        faculty_id: str,
        user_id: str,
        name: str,
        roll_no: str,
        email: str = "",
        section: str = "",
    ) -> Student:
        student = self._prepare_student("", faculty_id, user_id, name, roll_no, email, section)
        if self.find_by_user(student.user_id) is not None:
            raise InvalidInput(f"User '{student.user_id}' is already on a roster.")
        self._check_roll_no_free(faculty_id, student.roll_no)
        student.id = self._store.insert(STUDENTS_COLLECTION, student.to_record())
        logger.info("Student %s (%s) added to roster of %s", student.id, student.roll_no, faculty_id)
        return student

    def update(
        self,
        faculty_id: str,
        student_id: str,
        name: str,
        roll_no: str,
        email: str = "",
        section: str = "",
    ) -> Student:
        existing = self.get_owned(faculty_id, student_id)
        student = self._prepare_student(
            student_id, faculty_id, existing.user_id, name, roll_no, email, section
        )
        if student.roll_no != existing.roll_no:
            self._check_roll_no_free(faculty_id, student.roll_no)
        self._store.update(
            STUDENTS_COLLECTION,
            student_id,
            {
                "name": student.name,
                "rollNo": student.roll_no,
                "email": student.email,
                "section": student.section,
            },
        )
        return student

    def delete(self, faculty_id: str, student_id: str) -> None:
        self.get_owned(faculty_id, student_id)
        self._store.delete(STUDENTS_COLLECTION, student_id)
        logger.info("Student %s removed from roster of %s", student_id, faculty_id)

    def get(self, student_id: str) -> Student:
        return Student.from_record(student_id, self._store.get(STUDENTS_COLLECTION, student_id))

    def get_owned(self, faculty_id: str, student_id: str) -> Student:
        student = self.get(student_id)
        if student.faculty_id != faculty_id:
            raise PermissionDenied("Student is on another faculty member's roster.")
        return student

    def find_by_user(self, user_id: str) -> Student | None:
        records = self._store.query(STUDENTS_COLLECTION, userId=user_id)
        if not records:
            return None
        return Student.from_record(*records[0])

    def require_by_user(self, user_id: str) -> Student:
        student = self.find_by_user(user_id)
        if student is None:
            raise NotFound("You are not on any faculty member's roster.")
        return student

    def list_students(self, faculty_id: str, section: str | None = None) -> list[Student]:
        filters = {"facultyId": faculty_id}
        if section and section.strip():
            filters["section"] = section.strip().upper()
        students = [
            Student.from_record(doc_id, record)
            for doc_id, record in self._store.query(STUDENTS_COLLECTION, **filters)
        ]
        return sorted(students, key=lambda s: s.roll_no)

    def sections(self, faculty_id: str) -> list[str]:
        return sorted({s.section for s in self.list_students(faculty_id) if s.section})

    def _check_roll_no_free(self, faculty_id: str, roll_no: str) -> None:
        if self._store.query(STUDENTS_COLLECTION, facultyId=faculty_id, rollNo=roll_no):
            raise InvalidInput(f"Roll number '{roll_no}' is already on the roster.")

    @staticmethod
    def _prepare_student(
        student_id: str,
        faculty_id: str,
        user_id: str,
        name: str,
        roll_no: str,
        email: str,
        section: str,
    ) -> Student:
        cleaned_user = user_id.strip()
        cleaned_name = name.strip()
        cleaned_roll = roll_no.strip().upper()
        cleaned_email = email.strip()
        if not cleaned_user:
            raise InvalidInput("User id must not be empty.")
        if not cleaned_name:
            raise InvalidInput("Student name must not be empty.")
        if not cleaned_roll:
            raise InvalidInput("Roll number must not be empty.")
        if cleaned_email and "@" not in cleaned_email:
            raise InvalidInput(f"'{cleaned_email}' is not an email address.")
        return Student(
            id=student_id,
            user_id=cleaned_user,
            name=cleaned_name,
            roll_no=cleaned_roll,
            email=cleaned_email,
            section=section.strip().upper(),
            faculty_id=faculty_id,
        )
