"""Persists completed viva attempts."""

from __future__ import annotations

import logging

from viva_portal.constants.viva_constants import ATTEMPTS_COLLECTION
from viva_portal.core.document_store import InMemoryDocumentStore
from viva_portal.core.errors import StorageUnavailable
from viva_portal.core.models import VivaAttempt

logger = logging.getLogger(__name__)


class ResultRecorder:
    """Append-only writer for attempt records.

    Every call inserts a fresh record; existing attempts are never updated.
    Store failures propagate as ``StorageUnavailable`` and are not retried here.
    """

    def __init__(self, store: InMemoryDocumentStore) -> None:
        self._store = store

    def record(self, attempt: VivaAttempt) -> str:
        try:
            attempt_id = self._store.insert(ATTEMPTS_COLLECTION, attempt.to_record())
        except StorageUnavailable:
            logger.warning(
                "Could not record attempt for student %s on experiment %s",
                attempt.student_id,
                attempt.experiment_id,
            )
            raise
        logger.info(
            "Recorded attempt %s: student %s scored %d/%d on experiment %s",
            attempt_id,
            attempt.student_id,
            attempt.score,
            attempt.total_questions,
            attempt.experiment_id,
        )
        return attempt_id

    def attempts_for(self, *, student_id: str | None = None, experiment_id: str | None = None) -> list[VivaAttempt]:
        filters = {}
        if student_id is not None:
            filters["studentId"] = student_id
        if experiment_id is not None:
            filters["experimentId"] = experiment_id
        return [
            VivaAttempt.from_record(doc_id, record)
            for doc_id, record in self._store.query(ATTEMPTS_COLLECTION, **filters)
        ]

    def has_attempt(self, student_id: str, experiment_id: str) -> bool:
        return bool(self._store.query(ATTEMPTS_COLLECTION, studentId=student_id, experimentId=experiment_id))
