"""Service for the experiments faculty publish to their students."""

from __future__ import annotations

import logging

from viva_portal.constants.viva_constants import EXPERIMENTS_COLLECTION
from viva_portal.core.document_store import InMemoryDocumentStore
from viva_portal.core.errors import InvalidInput, PermissionDenied
from viva_portal.core.models import Experiment, utc_now

logger = logging.getLogger(__name__)


class ExperimentCatalog:
    """Creates, edits and looks up experiments."""

    def __init__(self, store: InMemoryDocumentStore) -> None:
        self._store = store

    def create(self, faculty_id: str, title: str, description: str = "", manual_link: str = "") -> Experiment:
        experiment = Experiment(
            id="",
            title=self._clean_title(title),
            description=description.strip(),
            manual_link=manual_link.strip(),
            faculty_id=faculty_id,
            created_at=utc_now(),
        )
        experiment.id = self._store.insert(EXPERIMENTS_COLLECTION, experiment.to_record())
        logger.info("Experiment %s created by %s", experiment.id, faculty_id)
        return experiment

    def update(
        self,
        faculty_id: str,
        experiment_id: str,
        title: str,
        description: str = "",
        manual_link: str = "",
    ) -> Experiment:
        experiment = self.get_owned(faculty_id, experiment_id)
        experiment.title = self._clean_title(title)
        experiment.description = description.strip()
        experiment.manual_link = manual_link.strip()
        self._store.update(
            EXPERIMENTS_COLLECTION,
            experiment_id,
            {
                "title": experiment.title,
                "description": experiment.description,
                "manualLink": experiment.manual_link,
            },
        )
        return experiment

    def delete(self, faculty_id: str, experiment_id: str) -> None:
        self.get_owned(faculty_id, experiment_id)
        self._store.delete(EXPERIMENTS_COLLECTION, experiment_id)
        logger.info("Experiment %s deleted by %s", experiment_id, faculty_id)

    def get(self, experiment_id: str) -> Experiment:
        record = self._store.get(EXPERIMENTS_COLLECTION, experiment_id)
        return Experiment.from_record(experiment_id, record)

    def get_owned(self, faculty_id: str, experiment_id: str) -> Experiment:
        experiment = self.get(experiment_id)
        if experiment.faculty_id != faculty_id:
            raise PermissionDenied("Experiment belongs to another faculty member.")
        return experiment

    def list_experiments(self, faculty_id: str | None = None) -> list[Experiment]:
        filters = {"facultyId": faculty_id} if faculty_id is not None else {}
        experiments = [
            Experiment.from_record(doc_id, record)
            for doc_id, record in self._store.query(EXPERIMENTS_COLLECTION, **filters)
        ]
        return sorted(experiments, key=lambda e: e.created_at)

    @staticmethod
    def _clean_title(title: str) -> str:
        cleaned = title.strip()
        if not cleaned:
            raise InvalidInput("Experiment title must not be empty.")
        return cleaned
