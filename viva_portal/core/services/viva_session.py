"""State machine for one timed viva session.

A session moves NOT_STARTED -> RUNNING -> SUBMITTING -> COMPLETED. Timer ticks,
focus-regain reports and user actions may arrive from different threads; every
transition goes through ``self._lock`` so expiry and a focus violation landing
together still produce a single submission. The attempt write itself runs
outside the lock.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
import logging
from threading import RLock
from uuid import uuid4

from viva_portal.constants.viva_constants import (
    FORCED_SUBMIT_VIOLATIONS,
    OPTION_COUNT,
    SECONDS_PER_QUESTION,
    UNANSWERED,
    WARNING_DISPLAY_SECONDS,
)
from viva_portal.core.errors import InvalidInput, StorageUnavailable
from viva_portal.core.models import VivaAttempt, VivaQuestion, utc_now
from viva_portal.core.services.result_recorder import ResultRecorder
from viva_portal.core.services.scorer import ScoreResult, score_answers

logger = logging.getLogger(__name__)


class SessionState(Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SubmitReason(Enum):
    MANUAL = "manual"
    TIME_EXPIRED = "time_expired"
    FOCUS_VIOLATION = "focus_violation"


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """Read-only view of a session handed to the UI layer."""

    session_id: str
    student_id: str
    experiment_id: str
    state: SessionState
    question_count: int
    current_index: int
    answers: tuple[int, ...]
    remaining_seconds: int
    violation_count: int
    warning_visible: bool
    submit_reason: SubmitReason | None
    result: ScoreResult | None
    attempt_id: str | None
    awaiting_retry: bool
    last_error: str | None

    @property
    def answered_count(self) -> int:
        return sum(1 for answer in self.answers if answer != UNANSWERED)


class VivaSession:
    """Owns the timer, the answer buffer and the violation counter of one viva."""

    def __init__(
        self,
        student_id: str,
        experiment_id: str,
        questions: Sequence[VivaQuestion],
        recorder: ResultRecorder,
        on_complete: Callable[["VivaSession"], None] | None = None,
    ) -> None:
        self._lock = RLock()
        self._session_id = uuid4().hex
        self._student_id = student_id
        self._experiment_id = experiment_id
        self._questions: tuple[VivaQuestion, ...] = tuple(questions)
        self._recorder = recorder
        self._on_complete = on_complete

        self._state = SessionState.NOT_STARTED
        self._current_index = 0
        self._answers: list[int] = []
        self._remaining_seconds = 0
        self._violation_count = 0
        self._warning_ticks_left = 0
        self._submit_reason: SubmitReason | None = None
        self._result: ScoreResult | None = None
        self._pending_attempt: VivaAttempt | None = None
        self._writing = False
        self._attempt_id: str | None = None
        self._last_error: str | None = None

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def student_id(self) -> str:
        return self._student_id

    @property
    def experiment_id(self) -> str:
        return self._experiment_id

    @property
    def questions(self) -> tuple[VivaQuestion, ...]:
        return self._questions

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    def is_finished(self) -> bool:
        return self.state in (SessionState.COMPLETED, SessionState.CANCELLED)

    def current_question(self) -> VivaQuestion | None:
        with self._lock:
            if not self._questions:
                return None
            return self._questions[self._current_index]

    # --- Lifecycle ---

    def start(self) -> bool:
        with self._lock:
            if self._state is not SessionState.NOT_STARTED:
                return False
            count = len(self._questions)
            self._remaining_seconds = count * SECONDS_PER_QUESTION
            self._violation_count = 0
            self._warning_ticks_left = 0
            self._answers = [UNANSWERED] * count
            self._current_index = 0
            self._state = SessionState.RUNNING
        logger.info(
            "Viva session %s started: student %s, experiment %s, %d questions",
            self._session_id,
            self._student_id,
            self._experiment_id,
            count,
        )
        return True

    def cancel(self) -> bool:
        with self._lock:
            if self._state is not SessionState.NOT_STARTED:
                return False
            self._state = SessionState.CANCELLED
            self._answers = []
        logger.info("Viva session %s cancelled before start", self._session_id)
        return True

    def abandon(self) -> bool:
        """Give up on an attempt whose write failed. The score is lost."""
        with self._lock:
            if self._state is not SessionState.SUBMITTING or self._writing:
                return False
            self._state = SessionState.CANCELLED
            self._pending_attempt = None
        logger.warning(
            "Viva session %s abandoned with an unrecorded attempt (student %s)",
            self._session_id,
            self._student_id,
        )
        return True

    # --- Event inputs ---

    def tick(self) -> None:
        with self._lock:
            if self._state is not SessionState.RUNNING:
                return
            if self._warning_ticks_left > 0:
                self._warning_ticks_left -= 1
            if self._remaining_seconds > 0:
                self._remaining_seconds -= 1
            if self._remaining_seconds > 0:
                return
            attempt = self._begin_submission(SubmitReason.TIME_EXPIRED)
        if attempt is not None:
            self._write_pending(attempt)

    def record_focus_regain(self) -> None:
        with self._lock:
            if self._state is not SessionState.RUNNING:
                return
            self._violation_count += 1
            if self._violation_count < FORCED_SUBMIT_VIOLATIONS:
                self._warning_ticks_left = WARNING_DISPLAY_SECONDS
                logger.info(
                    "Viva session %s: focus regained, warning issued (violation %d)",
                    self._session_id,
                    self._violation_count,
                )
                return
            attempt = self._begin_submission(SubmitReason.FOCUS_VIOLATION)
        if attempt is not None:
            self._write_pending(attempt)

    def record_blocked_shortcut(self) -> None:
        """Count a blocked developer-tools shortcut without warning or submitting."""
        with self._lock:
            if self._state is not SessionState.RUNNING:
                return
            self._violation_count += 1

    def select_answer(self, question_index: int, option_index: int) -> bool:
        with self._lock:
            if self._state is not SessionState.RUNNING:
                return False
            if not 0 <= question_index < len(self._questions):
                raise InvalidInput(f"Question index {question_index} out of range")
            if not 0 <= option_index < OPTION_COUNT:
                raise InvalidInput(f"Option index {option_index} out of range")
            self._answers[question_index] = option_index
            return True

    def go_to(self, question_index: int) -> int | None:
        with self._lock:
            if self._state is not SessionState.RUNNING:
                return None
            last_index = max(len(self._questions) - 1, 0)
            self._current_index = min(max(question_index, 0), last_index)
            return self._current_index

    def next_question(self) -> int | None:
        with self._lock:
            return self.go_to(self._current_index + 1)

    def previous_question(self) -> int | None:
        with self._lock:
            return self.go_to(self._current_index - 1)

    # --- Submission ---

    def submit(self) -> ScoreResult | None:
        """Submit on the student's request. Returns None if already submitted."""
        with self._lock:
            attempt = self._begin_submission(SubmitReason.MANUAL)
        if attempt is None:
            return None
        return self._write_pending(attempt)

    def retry_submit(self) -> ScoreResult | None:
        """Re-send an attempt whose previous write failed."""
        with self._lock:
            if (
                self._state is not SessionState.SUBMITTING
                or self._pending_attempt is None
                or self._writing
            ):
                return None
            self._writing = True
            attempt = self._pending_attempt
        logger.info("Retrying attempt write for viva session %s", self._session_id)
        return self._write_pending(attempt)

    def _begin_submission(self, reason: SubmitReason) -> VivaAttempt | None:
        # caller holds self._lock
        if self._state is not SessionState.RUNNING:
            return None
        self._state = SessionState.SUBMITTING
        self._submit_reason = reason
        self._warning_ticks_left = 0
        try:
            result = score_answers(self._questions, self._answers)
        except InvalidInput:
            logger.exception("Viva session %s has inconsistent answer state", self._session_id)
            raise
        self._result = result
        self._pending_attempt = VivaAttempt(
            student_id=self._student_id,
            experiment_id=self._experiment_id,
            answers=tuple(self._answers),
            score=result.score,
            total_questions=result.total,
            completed_at=utc_now(),
        )
        self._writing = True
        if reason is not SubmitReason.MANUAL:
            logger.info("Viva session %s force-submitted: %s", self._session_id, reason.value)
        return self._pending_attempt

    def _write_pending(self, attempt: VivaAttempt) -> ScoreResult:
        try:
            attempt_id = self._recorder.record(attempt)
        except StorageUnavailable as exc:
            with self._lock:
                self._writing = False
                self._last_error = str(exc)
            raise
        with self._lock:
            self._attempt_id = attempt_id
            self._pending_attempt = None
            self._writing = False
            self._last_error = None
            self._state = SessionState.COMPLETED
            result = self._result
        if self._on_complete is not None:
            try:
                self._on_complete(self)
            except Exception:
                # the attempt is already recorded; a listener cannot undo that
                logger.exception("Completion listener failed for viva session %s", self._session_id)
        return result

    # --- Views ---

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return SessionSnapshot(
                session_id=self._session_id,
                student_id=self._student_id,
                experiment_id=self._experiment_id,
                state=self._state,
                question_count=len(self._questions),
                current_index=self._current_index,
                answers=tuple(self._answers),
                remaining_seconds=self._remaining_seconds,
                violation_count=self._violation_count,
                warning_visible=self._warning_ticks_left > 0,
                submit_reason=self._submit_reason,
                result=self._result,
                attempt_id=self._attempt_id,
                awaiting_retry=self._pending_attempt is not None and not self._writing,
                last_error=self._last_error,
            )
