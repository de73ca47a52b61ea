"""Dashboard aggregates built from already-fetched records."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field

from viva_portal.core.models import Experiment, Student, Submission, VivaAttempt

UNKNOWN_SECTION = "Unknown"


@dataclass(slots=True)
class StudentTally:
    """Mutable per-student accumulator used internally."""

    student_id: str
    correct_answers: int = 0
    total_questions: int = 0
    vivas_taken: int = 0


@dataclass(frozen=True, slots=True)
class LeaderboardRow:
    student_id: str
    correct_answers: int
    total_questions: int
    vivas_taken: int


@dataclass(frozen=True, slots=True)
class RosterRow:
    """One roster line with the student's activity on this faculty's experiments."""

    student: Student
    submission_count: int
    viva_attempt_count: int


@dataclass(frozen=True, slots=True)
class StudentProgress:
    total_experiments: int
    submissions_by_status: dict[str, int]
    vivas_attempted: int
    vivas_not_attempted: int
    viva_scores: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class FacultyOverview:
    total_students: int
    students_by_section: dict[str, int]
    total_experiments: int
    submissions_by_status: dict[str, int]
    submissions_not_submitted: int
    viva_attempts: int
    vivas_not_attempted: int
    average_viva_percentage: float
    top_scorers: list[LeaderboardRow]


def _count_statuses(submissions: Iterable[Submission]) -> dict[str, int]:
    counts = {"pending": 0, "approved": 0, "rejected": 0}
    for submission in submissions:
        counts[submission.status] += 1
    return counts


def count_sections(students: Iterable[Student]) -> dict[str, int]:
    counts = Counter(student.section or UNKNOWN_SECTION for student in students)
    return dict(sorted(counts.items()))


def build_student_progress(
    experiments: list[Experiment],
    submissions: list[Submission],
    attempts: list[VivaAttempt],
) -> StudentProgress:
    experiment_ids = {experiment.id for experiment in experiments}
    attempted = {a.experiment_id for a in attempts if a.experiment_id in experiment_ids}
    return StudentProgress(
        total_experiments=len(experiment_ids),
        submissions_by_status=_count_statuses(s for s in submissions if s.experiment_id in experiment_ids),
        vivas_attempted=len(attempted),
        vivas_not_attempted=max(0, len(experiment_ids) - len(attempted)),
        viva_scores={a.experiment_id: a.score for a in attempts if a.experiment_id in experiment_ids},
    )


def build_faculty_overview(
    students: list[Student],
    experiments: list[Experiment],
    submissions: list[Submission],
    attempts: list[VivaAttempt],
    top_limit: int = 3,
) -> FacultyOverview:
    experiment_ids = {experiment.id for experiment in experiments}
    own_submissions = [s for s in submissions if s.experiment_id in experiment_ids]
    own_attempts = [a for a in attempts if a.experiment_id in experiment_ids]
    graded = [a for a in own_attempts if a.total_questions]
    average = sum(a.percentage for a in graded) / len(graded) if graded else 0.0
    # every rostered student owes one submission and one viva per experiment
    expected = len(students) * len(experiment_ids)
    return FacultyOverview(
        total_students=len(students),
        students_by_section=count_sections(students),
        total_experiments=len(experiment_ids),
        submissions_by_status=_count_statuses(own_submissions),
        submissions_not_submitted=max(0, expected - len(own_submissions)),
        viva_attempts=len(own_attempts),
        vivas_not_attempted=max(0, expected - len(own_attempts)),
        average_viva_percentage=round(average, 2),
        top_scorers=top_scorers(own_attempts, top_limit),
    )


def build_roster_summary(
    students: list[Student],
    experiments: list[Experiment],
    submissions: list[Submission],
    attempts: list[VivaAttempt],
) -> list[RosterRow]:
    experiment_ids = {experiment.id for experiment in experiments}
    submitted = Counter(s.student_id for s in submissions if s.experiment_id in experiment_ids)
    attempted = Counter(a.student_id for a in attempts if a.experiment_id in experiment_ids)
    return [
        RosterRow(
            student=student,
            submission_count=submitted[student.user_id],
            viva_attempt_count=attempted[student.user_id],
        )
        for student in students
    ]


def top_scorers(attempts: Iterable[VivaAttempt], limit: int = 3) -> list[LeaderboardRow]:
    """Return the top N students by correct answers, fewest vivas breaking ties."""
    tallies: dict[str, StudentTally] = {}
    for attempt in attempts:
        tally = tallies.get(attempt.student_id)
        if tally is None:
            tally = StudentTally(student_id=attempt.student_id)
            tallies[attempt.student_id] = tally
        tally.correct_answers += attempt.score
        tally.total_questions += attempt.total_questions
        tally.vivas_taken += 1

    ordered = sorted(
        tallies.values(),
        key=lambda t: (-t.correct_answers, t.vivas_taken, t.student_id),
    )
    return [
        LeaderboardRow(
            student_id=tally.student_id,
            correct_answers=tally.correct_answers,
            total_questions=tally.total_questions,
            vivas_taken=tally.vivas_taken,
        )
        for tally in ordered[:limit]
    ]
