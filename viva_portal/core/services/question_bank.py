"""Service for authoring the viva questions of an experiment."""

from __future__ import annotations

from collections.abc import Sequence
import logging

from viva_portal.constants.viva_constants import OPTION_COUNT, QUESTIONS_COLLECTION
from viva_portal.core.document_store import InMemoryDocumentStore
from viva_portal.core.errors import InvalidInput, PermissionDenied
from viva_portal.core.models import VivaQuestion
from viva_portal.core.services.experiment_catalog import ExperimentCatalog

logger = logging.getLogger(__name__)


class QuestionBank:
    """Validates and stores faculty-authored multiple-choice questions."""

    def __init__(self, store: InMemoryDocumentStore, catalog: ExperimentCatalog) -> None:
        self._store = store
        self._catalog = catalog

    def add_question(
        self,
        faculty_id: str,
        experiment_id: str,
        question_text: str,
        options: Sequence[str],
        correct_option_index: int,
    ) -> VivaQuestion:
        self._catalog.get_owned(faculty_id, experiment_id)
        question = self._prepare_question(
            "", experiment_id, faculty_id, question_text, options, correct_option_index
        )
        question_id = self._store.insert(QUESTIONS_COLLECTION, question.to_record())
        logger.info("Viva question %s added to experiment %s", question_id, experiment_id)
        return VivaQuestion.from_record(question_id, question.to_record())

    def update_question(
        self,
        faculty_id: str,
        question_id: str,
        question_text: str,
        options: Sequence[str],
        correct_option_index: int,
    ) -> VivaQuestion:
        existing = self.get_question(question_id)
        if existing.faculty_id != faculty_id:
            raise PermissionDenied("Question belongs to another faculty member.")
        # Preserve the experiment and author of the original question
        question = self._prepare_question(
            question_id,
            existing.experiment_id,
            faculty_id,
            question_text,
            options,
            correct_option_index,
        )
        self._store.update(
            QUESTIONS_COLLECTION,
            question_id,
            {
                "question": question.question_text,
                "options": list(question.options),
                "correctAnswer": question.correct_option_index,
            },
        )
        return question

    def delete_question(self, faculty_id: str, question_id: str) -> None:
        existing = self.get_question(question_id)
        if existing.faculty_id != faculty_id:
            raise PermissionDenied("Question belongs to another faculty member.")
        self._store.delete(QUESTIONS_COLLECTION, question_id)
        logger.info("Viva question %s deleted", question_id)

    def get_question(self, question_id: str) -> VivaQuestion:
        return VivaQuestion.from_record(question_id, self._store.get(QUESTIONS_COLLECTION, question_id))

    def list_questions(self, experiment_id: str) -> list[VivaQuestion]:
        return [
            VivaQuestion.from_record(doc_id, record)
            for doc_id, record in self._store.query(QUESTIONS_COLLECTION, experimentId=experiment_id)
        ]

    def _prepare_question(
        self,
        question_id: str,
        experiment_id: str,
        faculty_id: str,
        question_text: str,
        options: Sequence[str],
        correct_option_index: int,
    ) -> VivaQuestion:
        cleaned_text = question_text.strip()
        if not cleaned_text:
            raise InvalidInput("Question text must not be empty.")
        if not 0 <= correct_option_index < OPTION_COUNT:
            raise InvalidInput("Correct option index must be between 0 and 3.")
        return VivaQuestion(
            id=question_id,
            experiment_id=experiment_id,
            question_text=cleaned_text,
            options=self._validate_options(options),
            correct_option_index=correct_option_index,
            faculty_id=faculty_id,
        )

    @staticmethod
    def _validate_options(options: Sequence[str]) -> tuple[str, ...]:
        if len(options) != OPTION_COUNT:
            raise InvalidInput("Each question must have exactly four options.")
        cleaned = tuple(option.strip() for option in options)
        if any(not option for option in cleaned):
            raise InvalidInput("Option text cannot be empty.")
        return cleaned
