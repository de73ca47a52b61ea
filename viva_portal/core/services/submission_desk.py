"""Service for proof-of-work submissions and their faculty review."""

from __future__ import annotations

import logging

from viva_portal.constants.viva_constants import SUBMISSIONS_COLLECTION
from viva_portal.core.document_store import InMemoryDocumentStore
from viva_portal.core.errors import InvalidInput
from viva_portal.core.models import Submission, format_timestamp, utc_now
from viva_portal.core.services.experiment_catalog import ExperimentCatalog

logger = logging.getLogger(__name__)


class SubmissionDesk:
    """Accepts submission links from students and records faculty decisions."""

    def __init__(self, store: InMemoryDocumentStore, catalog: ExperimentCatalog) -> None:
        self._store = store
        self._catalog = catalog

    def submit(self, student_id: str, experiment_id: str, submission_link: str) -> Submission:
        link = submission_link.strip()
        if not link:
            raise InvalidInput("Submission link must not be empty.")
        self._catalog.get(experiment_id)
        submission = Submission(
            id="",
            student_id=student_id,
            experiment_id=experiment_id,
            submission_link=link,
            status="pending",
            submitted_at=utc_now(),
        )
        submission.id = self._store.insert(SUBMISSIONS_COLLECTION, submission.to_record())
        logger.info("Submission %s received from %s", submission.id, student_id)
        return submission

    def review(self, faculty_id: str, submission_id: str, approved: bool) -> Submission:
        submission = Submission.from_record(
            submission_id, self._store.get(SUBMISSIONS_COLLECTION, submission_id)
        )
        self._catalog.get_owned(faculty_id, submission.experiment_id)
        submission.status = "approved" if approved else "rejected"
        changes: dict[str, object] = {"status": submission.status}
        if approved:
            submission.approved_at = utc_now()
            changes["approvedAt"] = format_timestamp(submission.approved_at)
        self._store.update(SUBMISSIONS_COLLECTION, submission_id, changes)
        logger.info("Submission %s marked %s by %s", submission_id, submission.status, faculty_id)
        return submission

    def list_for_student(self, student_id: str) -> list[Submission]:
        return self._newest_first(self._store.query(SUBMISSIONS_COLLECTION, studentId=student_id))

    def list_for_faculty(self, faculty_id: str) -> list[Submission]:
        experiment_ids = {e.id for e in self._catalog.list_experiments(faculty_id)}
        records = [
            (doc_id, record)
            for doc_id, record in self._store.query(SUBMISSIONS_COLLECTION)
            if record.get("experimentId") in experiment_ids
        ]
        return self._newest_first(records)

    @staticmethod
    def _newest_first(records: list[tuple[str, dict]]) -> list[Submission]:
        submissions = [Submission.from_record(doc_id, record) for doc_id, record in records]
        return sorted(submissions, key=lambda s: s.submitted_at, reverse=True)
