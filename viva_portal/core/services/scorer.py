"""Scoring of submitted viva answers."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from viva_portal.core.errors import InvalidInput
from viva_portal.core.models import VivaQuestion


@dataclass(frozen=True, slots=True)
class ScoreResult:
    """Number of correct answers out of the questions asked."""

    score: int
    total: int


def score_answers(questions: Sequence[VivaQuestion], answers: Sequence[int]) -> ScoreResult:
    """Count the positions where the chosen option is the correct one.

    Unanswered positions hold -1 and never match. A length mismatch means the
    caller's session state is broken, so it is rejected instead of guessed at.
    """
    if len(answers) != len(questions):
        raise InvalidInput(
            f"Got {len(answers)} answers for {len(questions)} questions."
        )
    score = sum(
        1
        for question, answer in zip(questions, answers)
        if answer == question.correct_option_index
    )
    return ScoreResult(score=score, total=len(questions))
