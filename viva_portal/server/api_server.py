"""FastAPI server exposing the viva portal to students and faculty."""

from __future__ import annotations

import logging
from threading import Thread

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, Field
import uvicorn

from viva_portal.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from viva_portal.core.errors import (
    DuplicateAttempt,
    InvalidInput,
    NotFound,
    PermissionDenied,
    SessionConflict,
    StorageUnavailable,
    VivaError,
)
from viva_portal.core.identity import FACULTY_ROLE, STUDENT_ROLE, Identity, require_role
from viva_portal.core.markdown_renderer import renderer
from viva_portal.core.models import Experiment, Student, Submission, VivaQuestion
from viva_portal.core.services.viva_session import SessionState, VivaSession
from viva_portal.core.viva_manager import VivaManager

logger = logging.getLogger(__name__)

_ERROR_STATUS: dict[type[VivaError], int] = {
    NotFound: 404,
    InvalidInput: 422,
    PermissionDenied: 403,
    DuplicateAttempt: 409,
    SessionConflict: 409,
    StorageUnavailable: 503,
}

_VIVA_PAGE_HTML = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>Viva Test</title>
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <style>
      :root { font-family: 'Inter', system-ui, sans-serif; background: #f8fafc; color: #0f172a; }
      body { margin: 0; padding: 1.5rem; display: flex; flex-direction: column; gap: 1rem; max-width: 56rem; margin-inline: auto; }
      .card { background: #fff; border-radius: 0.75rem; padding: 1.5rem; box-shadow: 0 0.25rem 1rem rgba(15, 23, 42, 0.08); }
      .hidden { display: none; }
      .warning { background: #dc2626; color: #fff; padding: 1rem; text-align: center; font-weight: 600; border-radius: 0.5rem; }
      .header { display: flex; justify-content: space-between; align-items: center; }
      #timer { font-family: monospace; font-weight: 700; padding: 0.5rem 0.75rem; border-radius: 0.5rem; background: #dbeafe; }
      #timer.low { background: #fee2e2; color: #991b1b; }
      .option-button { display: block; width: 100%; text-align: left; padding: 1rem; margin-bottom: 0.75rem; border: 2px solid #e2e8f0; border-radius: 0.75rem; background: #fff; cursor: pointer; }
      .option-button.selected { border-color: #3b82f6; background: #eff6ff; }
      .nav { display: flex; justify-content: space-between; }
      button.primary { border: none; border-radius: 0.5rem; padding: 0.6rem 1.25rem; background: #2563eb; color: #fff; cursor: pointer; }
      button.primary:disabled { opacity: 0.5; cursor: not-allowed; }
    </style>
    <script>
      window.MathJax = { tex: { inlineMath: [['$','$']], displayMath: [['$$','$$']] } };
    </script>
    <script defer src="https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js"></script>
  </head>
  <body>
    <section class="card" id="intro-card">
      <h1 id="intro-title">Viva Test</h1>
      <p id="intro-details"></p>
      <ul>
        <li>Each correct answer carries 1 mark.</li>
        <li>After the 1st tab switch you will get a warning.</li>
        <li>After the 2nd tab switch the test is submitted automatically.</li>
        <li>Once started, the test cannot be paused.</li>
      </ul>
      <button class="primary" id="cancel-button">Cancel</button>
      <button class="primary" id="start-button">Start Test</button>
      <p id="intro-status"></p>
    </section>
    <div id="warning" class="warning hidden">WARNING: Tab switching detected! One more violation will auto-submit the test.</div>
    <section class="card hidden" id="quiz-card">
      <div class="header">
        <span id="position"></span>
        <span id="violations"></span>
        <span id="timer"></span>
      </div>
      <div id="question"></div>
      <div id="options"></div>
      <p id="progress"></p>
      <div class="nav">
        <button class="primary" id="prev-button">Previous</button>
        <button class="primary" id="next-button">Next</button>
        <button class="primary" id="submit-button">Submit Test</button>
      </div>
    </section>
    <section class="card hidden" id="result-card">
      <h2>Viva finished</h2>
      <p id="result-text"></p>
      <button class="primary hidden" id="retry-button">Retry saving</button>
    </section>
    <script>
      const params = new URLSearchParams(window.location.search);
      const experimentId = params.get('experiment');
      const userId = params.get('user');
      const headers = { 'Content-Type': 'application/json', 'X-User-Id': userId, 'X-User-Role': 'student' };
      let lastState = null;

      function show(id, visible) { document.getElementById(id).classList.toggle('hidden', !visible); }

      async function call(method, path, body) {
        const response = await fetch(path, { method, headers, body: body ? JSON.stringify(body) : undefined });
        const payload = await response.json();
        if (!response.ok) { throw new Error(payload.detail || 'Request failed'); }
        return payload;
      }

      function formatTime(seconds) {
        const minutes = Math.floor(seconds / 60);
        return minutes + ':' + String(seconds % 60).padStart(2, '0');
      }

      function render(session) {
        lastState = session.state;
        show('intro-card', session.state === 'not_started');
        show('quiz-card', session.state === 'running');
        show('result-card', session.state === 'submitting' || session.state === 'completed');
        show('warning', session.warning_visible);
        if (session.state === 'running') {
          document.getElementById('position').textContent = 'Question ' + (session.current_index + 1) + ' of ' + session.question_count;
          document.getElementById('violations').textContent = 'Tab switches: ' + session.violation_count + '/2';
          const timer = document.getElementById('timer');
          timer.textContent = formatTime(session.remaining_seconds);
          timer.classList.toggle('low', session.remaining_seconds <= 300);
          const question = session.current_question;
          document.getElementById('question').innerHTML = question ? question.question_html : '';
          const options = document.getElementById('options');
          options.innerHTML = '';
          (question ? question.options_html : []).forEach((html, index) => {
            const button = document.createElement('button');
            button.className = 'option-button' + (session.answers[session.current_index] === index ? ' selected' : '');
            button.innerHTML = String.fromCharCode(65 + index) + '. ' + html;
            button.onclick = () => call('POST', '/viva/session/answer', { question_index: session.current_index, option_index: index }).then(render);
            options.appendChild(button);
          });
          document.getElementById('progress').textContent = session.answered_count + '/' + session.question_count + ' answered';
          const isLast = session.current_index >= session.question_count - 1;
          document.getElementById('prev-button').disabled = session.current_index === 0;
          show('next-button', !isLast);
          show('submit-button', isLast);
          if (window.MathJax && window.MathJax.typesetPromise) { window.MathJax.typesetPromise(); }
        }
        if (session.result) {
          const saved = session.state === 'completed';
          document.getElementById('result-text').textContent = 'Your score: ' + session.result.score + '/' + session.result.total + (saved ? '' : ' (not saved yet: ' + (session.last_error || 'saving') + ')');
          show('retry-button', session.awaiting_retry);
        }
      }

      async function refresh() {
        try { render(await call('GET', '/viva/session')); } catch (error) { /* session not open yet */ }
      }

      document.getElementById('start-button').onclick = () => call('POST', '/viva/session/start').then(render);
      document.getElementById('cancel-button').onclick = () => call('POST', '/viva/session/cancel').then(() => window.history.back());
      document.getElementById('prev-button').onclick = () => call('POST', '/viva/session/navigate', { direction: 'previous' }).then(render);
      document.getElementById('next-button').onclick = () => call('POST', '/viva/session/navigate', { direction: 'next' }).then(render);
      document.getElementById('submit-button').onclick = () => call('POST', '/viva/session/submit').then(render);
      document.getElementById('retry-button').onclick = () => call('POST', '/viva/session/retry').then(render).catch(refresh);

      document.addEventListener('visibilitychange', () => {
        if (lastState === 'running' && !document.hidden) {
          call('POST', '/viva/session/focus-regain').then(render).catch(refresh);
        }
      });
      document.addEventListener('keydown', (event) => {
        if (lastState !== 'running') return;
        if (event.key === 'F12' || (event.ctrlKey && ['I', 'J', 'U'].includes(event.key))) {
          event.preventDefault();
          call('POST', '/viva/session/shortcut').then(render);
        }
      });

      async function init() {
        try {
          const preview = await call('GET', '/experiments/' + experimentId + '/viva');
          document.getElementById('intro-title').textContent = 'Viva Test: ' + preview.experiment_title;
          document.getElementById('intro-details').textContent = preview.question_count + ' questions, ' + Math.round(preview.time_limit_seconds / 60) + ' minutes.';
          render(await call('POST', '/experiments/' + experimentId + '/viva/session', { allow_empty: false }));
        } catch (error) {
          document.getElementById('intro-status').textContent = error.message;
          document.getElementById('start-button').disabled = true;
        }
        setInterval(refresh, 1000);
      }
      init();
    </script>
  </body>
</html>
"""


class OpenSessionPayload(BaseModel):
    allow_empty: bool = False


class AnswerPayload(BaseModel):
    """Payload schema for a selected option."""

    question_index: int
    option_index: int


class NavigatePayload(BaseModel):
    direction: str | None = Field(None, pattern="^(next|previous)$")
    question_index: int | None = None


class ExperimentPayload(BaseModel):
    title: str
    description: str = ""
    manual_link: str = ""


class QuestionPayload(BaseModel):
    question: str
    options: list[str]
    correct_answer: int


class SubmissionPayload(BaseModel):
    submission_link: str


class ReviewPayload(BaseModel):
    approved: bool


class StudentPayload(BaseModel):
    name: str
    roll_no: str
    email: str = ""
    section: str = ""


class NewStudentPayload(StudentPayload):
    """Roster entry for an account the identity provider already created."""

    user_id: str


def current_identity(
    x_user_id: str = Header(...),
    x_user_role: str = Header(...),
) -> Identity:
    """Resolve the caller from the headers set by the identity provider."""
    return Identity(user_id=x_user_id, role=x_user_role.strip().lower())


def student_identity(identity: Identity = Depends(current_identity)) -> Identity:
    return require_role(identity, STUDENT_ROLE)


def faculty_identity(identity: Identity = Depends(current_identity)) -> Identity:
    return require_role(identity, FACULTY_ROLE)


def _serialize_experiment(experiment: Experiment) -> dict[str, object]:
    return {
        "id": experiment.id,
        "title": experiment.title,
        "description": experiment.description,
        "manual_link": experiment.manual_link,
        "faculty_id": experiment.faculty_id,
        "created_at": experiment.created_at.isoformat(),
    }


def _serialize_question(question: VivaQuestion) -> dict[str, object]:
    return {
        "id": question.id,
        "experiment_id": question.experiment_id,
        "question": question.question_text,
        "options": list(question.options),
        "correct_answer": question.correct_option_index,
    }


def _serialize_student(student: Student) -> dict[str, object]:
    return {
        "id": student.id,
        "user_id": student.user_id,
        "name": student.name,
        "roll_no": student.roll_no,
        "email": student.email,
        "section": student.section,
    }


def _serialize_submission(submission: Submission) -> dict[str, object]:
    return {
        "id": submission.id,
        "student_id": submission.student_id,
        "experiment_id": submission.experiment_id,
        "submission_link": submission.submission_link,
        "status": submission.status,
        "submitted_at": submission.submitted_at.isoformat(),
        "approved_at": submission.approved_at.isoformat() if submission.approved_at else None,
    }


def _serialize_session(session: VivaSession) -> dict[str, object]:
    snapshot = session.snapshot()
    question = session.current_question() if snapshot.state is SessionState.RUNNING else None
    current_question = None
    if question is not None:
        # Correct answers never leave the server while the viva is running
        current_question = {
            "id": question.id,
            "question_html": renderer.render_fragment(question.question_text),
            "options_html": [renderer.render_option(option) for option in question.options],
        }
    result = None
    if snapshot.result is not None:
        result = {"score": snapshot.result.score, "total": snapshot.result.total}
    return {
        "session_id": snapshot.session_id,
        "experiment_id": snapshot.experiment_id,
        "state": snapshot.state.value,
        "question_count": snapshot.question_count,
        "current_index": snapshot.current_index,
        "answers": list(snapshot.answers),
        "answered_count": snapshot.answered_count,
        "remaining_seconds": snapshot.remaining_seconds,
        "violation_count": snapshot.violation_count,
        "warning_visible": snapshot.warning_visible,
        "submit_reason": snapshot.submit_reason.value if snapshot.submit_reason else None,
        "result": result,
        "attempt_id": snapshot.attempt_id,
        "awaiting_retry": snapshot.awaiting_retry,
        "last_error": snapshot.last_error,
        "current_question": current_question,
    }


def _get_viva_manager_dependency(viva_manager: VivaManager):
    def dependency() -> VivaManager:
        return viva_manager

    return dependency


def create_api_app(viva_manager: VivaManager) -> FastAPI:
    """Create a FastAPI application wired to the provided viva manager."""
    app = FastAPI(title="Viva Portal API", version="0.1.0")
    manager_dep = _get_viva_manager_dependency(viva_manager)

    @app.exception_handler(VivaError)
    async def handle_viva_error(request: Request, exc: VivaError) -> JSONResponse:
        status_code = next(
            (code for error_type, code in _ERROR_STATUS.items() if isinstance(exc, error_type)),
            400,
        )
        if status_code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    @app.get("/", response_class=HTMLResponse)
    def serve_viva_page() -> str:
        return _VIVA_PAGE_HTML

    # --- Experiments ---

    @app.get("/experiments")
    def list_experiments(
        identity: Identity = Depends(current_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        if identity.is_faculty:
            experiments = manager.experiments.list_experiments(identity.user_id)
        else:
            experiments = manager.experiments_for_student(identity.user_id)
        return [_serialize_experiment(e) for e in experiments]

    @app.post("/experiments", status_code=201)
    def create_experiment(
        payload: ExperimentPayload,
        identity: Identity = Depends(faculty_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> dict[str, object]:
        experiment = manager.experiments.create(
            identity.user_id, payload.title, payload.description, payload.manual_link
        )
        return _serialize_experiment(experiment)

    @app.put("/experiments/{experiment_id}")
    def update_experiment(
        experiment_id: str,
        payload: ExperimentPayload,
        identity: Identity = Depends(faculty_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> dict[str, object]:
        experiment = manager.experiments.update(
            identity.user_id, experiment_id, payload.title, payload.description, payload.manual_link
        )
        return _serialize_experiment(experiment)

    @app.delete("/experiments/{experiment_id}", status_code=204)
    def delete_experiment(
        experiment_id: str,
        identity: Identity = Depends(faculty_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> None:
        manager.experiments.delete(identity.user_id, experiment_id)

    # --- Viva questions ---

    @app.get("/experiments/{experiment_id}/questions")
    def list_questions(
        experiment_id: str,
        identity: Identity = Depends(faculty_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        manager.experiments.get_owned(identity.user_id, experiment_id)
        return [_serialize_question(q) for q in manager.questions.list_questions(experiment_id)]

    @app.post("/experiments/{experiment_id}/questions", status_code=201)
    def add_question(
        experiment_id: str,
        payload: QuestionPayload,
        identity: Identity = Depends(faculty_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> dict[str, object]:
        question = manager.questions.add_question(
            identity.user_id, experiment_id, payload.question, payload.options, payload.correct_answer
        )
        return _serialize_question(question)

    @app.put("/questions/{question_id}")
    def update_question(
        question_id: str,
        payload: QuestionPayload,
        identity: Identity = Depends(faculty_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> dict[str, object]:
        question = manager.questions.update_question(
            identity.user_id, question_id, payload.question, payload.options, payload.correct_answer
        )
        return _serialize_question(question)

    @app.delete("/questions/{question_id}", status_code=204)
    def delete_question(
        question_id: str,
        identity: Identity = Depends(faculty_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> None:
        manager.questions.delete_question(identity.user_id, question_id)

    # --- Viva sessions ---

    @app.get("/experiments/{experiment_id}/viva")
    def preview_viva(
        experiment_id: str,
        identity: Identity = Depends(student_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> dict[str, object]:
        preview = manager.preview(identity.user_id, experiment_id)
        return {
            "experiment_id": preview.experiment_id,
            "experiment_title": preview.experiment_title,
            "question_count": preview.question_count,
            "time_limit_seconds": preview.time_limit_seconds,
            "already_attempted": preview.already_attempted,
        }

    @app.post("/experiments/{experiment_id}/viva/session", status_code=201)
    def open_session(
        experiment_id: str,
        payload: OpenSessionPayload | None = None,
        identity: Identity = Depends(student_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> dict[str, object]:
        allow_empty = payload.allow_empty if payload is not None else False
        session = manager.open_session(identity.user_id, experiment_id, allow_empty=allow_empty)
        return _serialize_session(session)

    @app.get("/viva/session")
    def get_session(
        identity: Identity = Depends(student_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> dict[str, object]:
        return _serialize_session(manager.require_session(identity.user_id))

    @app.post("/viva/session/start")
    def start_session(
        identity: Identity = Depends(student_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = manager.require_session(identity.user_id)
        session.start()
        return _serialize_session(session)

    @app.post("/viva/session/answer")
    def select_answer(
        payload: AnswerPayload,
        identity: Identity = Depends(student_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = manager.require_session(identity.user_id)
        session.select_answer(payload.question_index, payload.option_index)
        return _serialize_session(session)

    @app.post("/viva/session/navigate")
    def navigate(
        payload: NavigatePayload,
        identity: Identity = Depends(student_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = manager.require_session(identity.user_id)
        if payload.direction == "next":
            session.next_question()
        elif payload.direction == "previous":
            session.previous_question()
        elif payload.question_index is not None:
            session.go_to(payload.question_index)
        else:
            raise InvalidInput("Provide a direction or a question index.")
        return _serialize_session(session)

    @app.post("/viva/session/focus-regain")
    def focus_regain(
        identity: Identity = Depends(student_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = manager.require_session(identity.user_id)
        session.record_focus_regain()
        return _serialize_session(session)

    @app.post("/viva/session/shortcut")
    def blocked_shortcut(
        identity: Identity = Depends(student_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = manager.require_session(identity.user_id)
        session.record_blocked_shortcut()
        return _serialize_session(session)

    @app.post("/viva/session/submit")
    def submit_session(
        identity: Identity = Depends(student_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = manager.require_session(identity.user_id)
        session.submit()
        return _serialize_session(session)

    @app.post("/viva/session/retry")
    def retry_submission(
        identity: Identity = Depends(student_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = manager.require_session(identity.user_id)
        session.retry_submit()
        return _serialize_session(session)

    @app.post("/viva/session/cancel")
    def cancel_session(
        identity: Identity = Depends(student_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = manager.require_session(identity.user_id)
        session.cancel()
        payload = _serialize_session(session)
        manager.close_session(identity.user_id)
        return payload

    @app.post("/viva/session/abandon")
    def abandon_session(
        identity: Identity = Depends(student_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = manager.require_session(identity.user_id)
        session.abandon()
        payload = _serialize_session(session)
        manager.close_session(identity.user_id)
        return payload

    # --- Submissions ---

    @app.post("/experiments/{experiment_id}/submissions", status_code=201)
    def submit_work(
        experiment_id: str,
        payload: SubmissionPayload,
        identity: Identity = Depends(student_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> dict[str, object]:
        submission = manager.submissions.submit(identity.user_id, experiment_id, payload.submission_link)
        return _serialize_submission(submission)

    @app.get("/submissions")
    def list_submissions(
        identity: Identity = Depends(current_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        if identity.is_faculty:
            submissions = manager.submissions.list_for_faculty(identity.user_id)
        else:
            submissions = manager.submissions.list_for_student(identity.user_id)
        return [_serialize_submission(s) for s in submissions]

    @app.post("/submissions/{submission_id}/review")
    def review_submission(
        submission_id: str,
        payload: ReviewPayload,
        identity: Identity = Depends(faculty_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> dict[str, object]:
        submission = manager.submissions.review(identity.user_id, submission_id, payload.approved)
        return _serialize_submission(submission)

    # --- Student roster ---

    @app.get("/students")
    def list_students(
        section: str | None = Query(None),
        identity: Identity = Depends(faculty_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        return [_serialize_student(s) for s in manager.roster.list_students(identity.user_id, section)]

    @app.get("/students/sections")
    def list_sections(
        identity: Identity = Depends(faculty_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> list[str]:
        return manager.roster.sections(identity.user_id)

    @app.get("/students/summary")
    def roster_summary(
        section: str | None = Query(None),
        identity: Identity = Depends(faculty_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        return [
            {
                **_serialize_student(row.student),
                "submission_count": row.submission_count,
                "viva_attempt_count": row.viva_attempt_count,
            }
            for row in manager.roster_summary(identity.user_id, section)
        ]

    @app.post("/students", status_code=201)
    def add_student(
        payload: NewStudentPayload,
        identity: Identity = Depends(faculty_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> dict[str, object]:
        student = manager.roster.add(
            identity.user_id,
            payload.user_id,
            payload.name,
            payload.roll_no,
            payload.email,
            payload.section,
        )
        return _serialize_student(student)

    @app.put("/students/{student_id}")
    def update_student(
        student_id: str,
        payload: StudentPayload,
        identity: Identity = Depends(faculty_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> dict[str, object]:
        student = manager.roster.update(
            identity.user_id, student_id, payload.name, payload.roll_no, payload.email, payload.section
        )
        return _serialize_student(student)

    @app.delete("/students/{student_id}", status_code=204)
    def delete_student(
        student_id: str,
        identity: Identity = Depends(faculty_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> None:
        manager.roster.delete(identity.user_id, student_id)

    # --- Dashboards ---

    @app.get("/progress")
    def get_progress(
        identity: Identity = Depends(current_identity),
        manager: VivaManager = Depends(manager_dep),
    ) -> dict[str, object]:
        if identity.is_faculty:
            overview = manager.faculty_overview(identity.user_id)
            return {
                "total_students": overview.total_students,
                "students_by_section": overview.students_by_section,
                "total_experiments": overview.total_experiments,
                "submissions_by_status": overview.submissions_by_status,
                "submissions_not_submitted": overview.submissions_not_submitted,
                "viva_attempts": overview.viva_attempts,
                "vivas_not_attempted": overview.vivas_not_attempted,
                "average_viva_percentage": overview.average_viva_percentage,
                "top_scorers": [
                    {
                        "student_id": row.student_id,
                        "correct_answers": row.correct_answers,
                        "total_questions": row.total_questions,
                        "vivas_taken": row.vivas_taken,
                    }
                    for row in overview.top_scorers
                ],
            }
        progress = manager.student_progress(identity.user_id)
        return {
            "total_experiments": progress.total_experiments,
            "submissions_by_status": progress.submissions_by_status,
            "vivas_attempted": progress.vivas_attempted,
            "vivas_not_attempted": progress.vivas_not_attempted,
            "viva_scores": progress.viva_scores,
        }

    return app


def start_api_server(
    viva_manager: VivaManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(viva_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="VivaApiServer", daemon=True)
    thread.start()
    return thread
