"""Loads the ordered viva question set for one experiment."""

from __future__ import annotations

import logging

from viva_portal.constants.viva_constants import QUESTIONS_COLLECTION
from viva_portal.core.document_store import InMemoryDocumentStore
from viva_portal.core.errors import NotFound
from viva_portal.core.models import VivaQuestion

logger = logging.getLogger(__name__)


class QuestionSetLoader:
    """Fetches questions tagged with an experiment id, in store order."""

    def __init__(self, store: InMemoryDocumentStore) -> None:
        self._store = store

    def load(self, experiment_id: str) -> tuple[VivaQuestion, ...]:
        records = self._store.query(QUESTIONS_COLLECTION, experimentId=experiment_id)
        questions = tuple(VivaQuestion.from_record(doc_id, record) for doc_id, record in records)
        if not questions:
            raise NotFound(f"Experiment '{experiment_id}' has no viva questions.")
        logger.debug("Loaded %d questions for experiment %s", len(questions), experiment_id)
        return questions
