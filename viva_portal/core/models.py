"""Domain models for the viva portal.

Records come out of the document store as plain dicts. Each model checks the
shape of the record it is built from so malformed documents fail at the store
boundary instead of deep inside a session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from viva_portal.constants.viva_constants import OPTION_COUNT, UNANSWERED
from viva_portal.core.errors import InvalidInput

SUBMISSION_STATUSES = ("pending", "approved", "rejected")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def parse_timestamp(value: Any, field_name: str) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, str):
        raise InvalidInput(f"'{field_name}' must be an ISO-8601 timestamp.")
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise InvalidInput(f"'{field_name}' is not a valid timestamp: {value!r}") from exc
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _require(record: dict[str, Any], key: str, expected: type | tuple[type, ...]) -> Any:
    if key not in record:
        raise InvalidInput(f"Record is missing '{key}'.")
    value = record[key]
    # bool is an int subclass; never accept it where a count or index is expected
    if isinstance(value, bool) and expected is int:
        raise InvalidInput(f"'{key}' must be an integer.")
    if not isinstance(value, expected):
        raise InvalidInput(f"'{key}' has unexpected type {type(value).__name__}.")
    return value


@dataclass(slots=True)
class Experiment:
    """A lab assignment authored by a faculty member."""

    id: str
    title: str
    description: str
    manual_link: str
    faculty_id: str
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_record(cls, record_id: str, record: dict[str, Any]) -> "Experiment":
        created_raw = record.get("createdAt")
        return cls(
            id=record_id,
            title=_require(record, "title", str),
            description=record.get("description") or "",
            manual_link=record.get("manualLink") or "",
            faculty_id=_require(record, "facultyId", str),
            created_at=parse_timestamp(created_raw, "createdAt") if created_raw else utc_now(),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "manualLink": self.manual_link,
            "facultyId": self.faculty_id,
            "createdAt": format_timestamp(self.created_at),
        }


@dataclass(frozen=True, slots=True)
class VivaQuestion:
    """Multiple-choice viva question with exactly four options."""

    id: str
    experiment_id: str
    question_text: str
    options: tuple[str, ...]
    correct_option_index: int
    faculty_id: str = ""

    @classmethod
    def from_record(cls, record_id: str, record: dict[str, Any]) -> "VivaQuestion":
        options = _require(record, "options", (list, tuple))
        if len(options) != OPTION_COUNT or not all(isinstance(o, str) for o in options):
            raise InvalidInput(f"Question {record_id} must have exactly {OPTION_COUNT} text options.")
        correct = _require(record, "correctAnswer", int)
        if not 0 <= correct < OPTION_COUNT:
            raise InvalidInput(f"Question {record_id} has correct answer {correct} out of range.")
        return cls(
            id=record_id,
            experiment_id=_require(record, "experimentId", str),
            question_text=_require(record, "question", str),
            options=tuple(options),
            correct_option_index=correct,
            faculty_id=record.get("facultyId") or "",
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "experimentId": self.experiment_id,
            "question": self.question_text,
            "options": list(self.options),
            "correctAnswer": self.correct_option_index,
            "facultyId": self.faculty_id,
        }


@dataclass(frozen=True, slots=True)
class VivaAttempt:
    """Outcome of one completed viva session. Never mutated once recorded."""

    student_id: str
    experiment_id: str
    answers: tuple[int, ...]
    score: int
    total_questions: int
    completed_at: datetime
    id: str | None = None

    def __post_init__(self) -> None:
        if any(a != UNANSWERED and not 0 <= a < OPTION_COUNT for a in self.answers):
            raise InvalidInput("Attempt answers must be -1 or an option index 0-3.")
        if len(self.answers) != self.total_questions:
            raise InvalidInput("Attempt must hold exactly one answer per question.")
        if not 0 <= self.score <= self.total_questions:
            raise InvalidInput("Attempt score must be between 0 and the question count.")

    @property
    def percentage(self) -> float:
        if not self.total_questions:
            return 0.0
        return self.score / self.total_questions * 100

    @classmethod
    def from_record(cls, record_id: str, record: dict[str, Any]) -> "VivaAttempt":
        answers = _require(record, "answers", (list, tuple))
        if not all(isinstance(a, int) and not isinstance(a, bool) for a in answers):
            raise InvalidInput(f"Attempt {record_id} has non-integer answers.")
        return cls(
            id=record_id,
            student_id=_require(record, "studentId", str),
            experiment_id=_require(record, "experimentId", str),
            answers=tuple(answers),
            score=_require(record, "score", int),
            total_questions=_require(record, "totalQuestions", int),
            completed_at=parse_timestamp(record.get("completedAt"), "completedAt"),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "studentId": self.student_id,
            "experimentId": self.experiment_id,
            "score": self.score,
            "totalQuestions": self.total_questions,
            "completedAt": format_timestamp(self.completed_at),
            "answers": list(self.answers),
        }


@dataclass(slots=True)
class Submission:
    """Proof-of-work link a student submits for an experiment."""

    id: str
    student_id: str
    experiment_id: str
    submission_link: str
    status: str
    submitted_at: datetime
    approved_at: datetime | None = None

    @classmethod
    def from_record(cls, record_id: str, record: dict[str, Any]) -> "Submission":
        status = _require(record, "status", str)
        if status not in SUBMISSION_STATUSES:
            raise InvalidInput(f"Submission {record_id} has unknown status '{status}'.")
        approved_raw = record.get("approvedAt")
        return cls(
            id=record_id,
            student_id=_require(record, "studentId", str),
            experiment_id=_require(record, "experimentId", str),
            submission_link=_require(record, "submissionLink", str),
            status=status,
            submitted_at=parse_timestamp(record.get("submittedAt"), "submittedAt"),
            approved_at=parse_timestamp(approved_raw, "approvedAt") if approved_raw else None,
        )

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "studentId": self.student_id,
            "experimentId": self.experiment_id,
            "submissionLink": self.submission_link,
            "status": self.status,
            "submittedAt": format_timestamp(self.submitted_at),
        }
        if self.approved_at is not None:
            record["approvedAt"] = format_timestamp(self.approved_at)
        return record


@dataclass(slots=True)
class Student:
    """Roster entry linking a portal account to the faculty member who teaches it."""

    id: str
    user_id: str
    name: str
    roll_no: str
    email: str
    section: str
    faculty_id: str

    @classmethod
    def from_record(cls, record_id: str, record: dict[str, Any]) -> "Student":
        return cls(
            id=record_id,
            user_id=_require(record, "userId", str),
            name=_require(record, "name", str),
            roll_no=_require(record, "rollNo", str),
            email=record.get("email") or "",
            section=record.get("section") or "",
            faculty_id=_require(record, "facultyId", str),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "name": self.name,
            "rollNo": self.roll_no,
            "email": self.email,
            "section": self.section,
            "facultyId": self.faculty_id,
        }
