"""Business logic shared by the HTTP layer: experiments, questions and vivas."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from threading import Lock

from viva_portal.constants.viva_constants import SECONDS_PER_QUESTION
from viva_portal.core.document_store import InMemoryDocumentStore
from viva_portal.core.errors import (
    DuplicateAttempt,
    NotFound,
    SessionConflict,
    StorageUnavailable,
)
from viva_portal.core.models import Experiment
from viva_portal.core.services.experiment_catalog import ExperimentCatalog
from viva_portal.core.services.progress_report import (
    FacultyOverview,
    RosterRow,
    StudentProgress,
    build_faculty_overview,
    build_roster_summary,
    build_student_progress,
)
from viva_portal.core.services.question_bank import QuestionBank
from viva_portal.core.services.question_loader import QuestionSetLoader
from viva_portal.core.services.result_recorder import ResultRecorder
from viva_portal.core.services.student_roster import StudentRoster
from viva_portal.core.services.submission_desk import SubmissionDesk
from viva_portal.core.services.viva_session import SessionState, VivaSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VivaPreview:
    """What a student sees before deciding to start a viva."""

    experiment_id: str
    experiment_title: str
    question_count: int
    time_limit_seconds: int
    already_attempted: bool


class VivaManager:
    """Facade for the portal services and the live viva sessions.

    Each student has at most one session registered here at a time.
    """

    def __init__(self, store: InMemoryDocumentStore) -> None:
        self._lock = Lock()
        self._store = store

        # Services
        self.experiments = ExperimentCatalog(store)
        self.roster = StudentRoster(store)
        self.questions = QuestionBank(store, self.experiments)
        self.submissions = SubmissionDesk(store, self.experiments)
        self.loader = QuestionSetLoader(store)
        self.recorder = ResultRecorder(store)

        self._sessions: dict[str, VivaSession] = {}

    # --- Viva sessions ---

    def preview(self, student_id: str, experiment_id: str) -> VivaPreview:
        experiment = self.experiments.get(experiment_id)
        count = len(self.questions.list_questions(experiment_id))
        return VivaPreview(
            experiment_id=experiment_id,
            experiment_title=experiment.title,
            question_count=count,
            time_limit_seconds=count * SECONDS_PER_QUESTION,
            already_attempted=self.recorder.has_attempt(student_id, experiment_id),
        )

    def open_session(self, student_id: str, experiment_id: str, allow_empty: bool = False) -> VivaSession:
        """Load the question set and register a not-yet-started session.

        Re-opening the viva a student is already taking returns that session.
        """
        with self._lock:
            existing = self._sessions.get(student_id)
            if existing is not None and not existing.is_finished():
                if existing.experiment_id == experiment_id:
                    return existing
                raise SessionConflict("Finish or cancel the viva already in progress first.")

            self.experiments.get(experiment_id)
            if self.recorder.has_attempt(student_id, experiment_id):
                raise DuplicateAttempt("Viva already completed for this experiment.")

            try:
                questions = self.loader.load(experiment_id)
            except NotFound:
                if not allow_empty:
                    raise
                logger.info("Opening empty viva for experiment %s", experiment_id)
                questions = ()

            session = VivaSession(
                student_id,
                experiment_id,
                questions,
                self.recorder,
                on_complete=self._session_completed,
            )
            self._sessions[student_id] = session
            return session

    def get_session(self, student_id: str) -> VivaSession | None:
        with self._lock:
            return self._sessions.get(student_id)

    def require_session(self, student_id: str) -> VivaSession:
        session = self.get_session(student_id)
        if session is None:
            raise NotFound("No viva session is open.")
        return session

    def close_session(self, student_id: str) -> bool:
        """Forget a finished session. Sessions still in play are kept."""
        with self._lock:
            session = self._sessions.get(student_id)
            if session is None or not session.is_finished():
                return False
            del self._sessions[student_id]
            return True

    def tick_all(self) -> None:
        """Advance the timer of every running session by one second."""
        with self._lock:
            running = [s for s in self._sessions.values() if s.state is SessionState.RUNNING]
        for session in running:
            try:
                session.tick()
            except StorageUnavailable:
                logger.warning(
                    "Forced submission of session %s could not be recorded; awaiting retry",
                    session.session_id,
                )

    def _session_completed(self, session: VivaSession) -> None:
        snapshot = session.snapshot()
        result = snapshot.result
        logger.info(
            "Viva recorded for student %s on experiment %s: %d/%d (%s, attempt %s)",
            snapshot.student_id,
            snapshot.experiment_id,
            result.score if result else 0,
            result.total if result else 0,
            snapshot.submit_reason.value if snapshot.submit_reason else "unknown",
            snapshot.attempt_id,
        )

    # --- Dashboards ---

    def experiments_for_student(self, student_id: str) -> list[Experiment]:
        """Experiments published by the faculty member whose roster holds the student."""
        student = self.roster.require_by_user(student_id)
        return self.experiments.list_experiments(student.faculty_id)

    def student_progress(self, student_id: str) -> StudentProgress:
        return build_student_progress(
            self.experiments_for_student(student_id),
            self.submissions.list_for_student(student_id),
            self.recorder.attempts_for(student_id=student_id),
        )

    def faculty_overview(self, faculty_id: str) -> FacultyOverview:
        return build_faculty_overview(
            self.roster.list_students(faculty_id),
            self.experiments.list_experiments(faculty_id),
            self.submissions.list_for_faculty(faculty_id),
            self.recorder.attempts_for(),
        )

    def roster_summary(self, faculty_id: str, section: str | None = None) -> list[RosterRow]:
        return build_roster_summary(
            self.roster.list_students(faculty_id, section),
            self.experiments.list_experiments(faculty_id),
            self.submissions.list_for_faculty(faculty_id),
            self.recorder.attempts_for(),
        )
