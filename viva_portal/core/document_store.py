"""Document store used for experiments, questions, attempts and submissions.

Records are schemaless JSON-like dicts grouped by collection name and looked up
by equality filters. Results keep insertion order, which is the order viva
questions are presented in.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from threading import RLock
from typing import Any
from uuid import uuid4

from viva_portal.core.errors import NotFound, StorageUnavailable

logger = logging.getLogger(__name__)

Record = dict[str, Any]


class InMemoryDocumentStore:
    """Keeps every collection in process memory."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._collections: dict[str, dict[str, Record]] = {}

    def query(self, collection: str, **filters: Any) -> list[tuple[str, Record]]:
        """Return ``(id, record)`` pairs whose fields equal every filter value."""
        with self._lock:
            documents = self._collections.get(collection, {})
            return [
                (doc_id, copy.deepcopy(record))
                for doc_id, record in documents.items()
                if all(record.get(key) == value for key, value in filters.items())
            ]

    def get(self, collection: str, doc_id: str) -> Record:
        with self._lock:
            record = self._collections.get(collection, {}).get(doc_id)
            if record is None:
                raise NotFound(f"No document '{doc_id}' in '{collection}'.")
            return copy.deepcopy(record)

    def insert(self, collection: str, record: Record) -> str:
        with self._lock:
            doc_id = uuid4().hex
            documents = self._collections.setdefault(collection, {})
            documents[doc_id] = copy.deepcopy(record)
            try:
                self._persist()
            except StorageUnavailable:
                # an insert that never reached disk must not linger in memory
                del documents[doc_id]
                raise
            return doc_id

    def update(self, collection: str, doc_id: str, changes: Record) -> None:
        with self._lock:
            documents = self._collections.get(collection, {})
            if doc_id not in documents:
                raise NotFound(f"No document '{doc_id}' in '{collection}'.")
            previous = documents[doc_id]
            documents[doc_id] = {**previous, **copy.deepcopy(changes)}
            try:
                self._persist()
            except StorageUnavailable:
                documents[doc_id] = previous
                raise

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            documents = self._collections.get(collection, {})
            if doc_id not in documents:
                raise NotFound(f"No document '{doc_id}' in '{collection}'.")
            # keep the original order so a restored document is queried in place
            before = dict(documents)
            del documents[doc_id]
            try:
                self._persist()
            except StorageUnavailable:
                documents.clear()
                documents.update(before)
                raise

    def _persist(self) -> None:
        """Hook for subclasses that write collections somewhere durable."""


class JsonFileDocumentStore(InMemoryDocumentStore):
    """In-memory store mirrored to a single JSON file after every write."""

    def __init__(self, file_path: Path) -> None:
        super().__init__()
        self._file_path = file_path.resolve()
        self._load()

    def _load(self) -> None:
        if not self._file_path.exists():
            return
        try:
            payload = json.loads(self._file_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageUnavailable(f"Unable to read {self._file_path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise StorageUnavailable(f"{self._file_path} does not contain a collection map.")
        for collection, documents in payload.items():
            if not isinstance(documents, dict) or not all(
                isinstance(record, dict) for record in documents.values()
            ):
                raise StorageUnavailable(
                    f"{self._file_path}: collection '{collection}' is not a map of documents."
                )
        self._collections = payload
        logger.info("Loaded document store from %s", self._file_path)

    def _persist(self) -> None:
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = self._file_path.with_suffix(self._file_path.suffix + ".tmp")
            temp_path.write_text(json.dumps(self._collections, indent=2), encoding="utf-8")
            temp_path.replace(self._file_path)
        except OSError as exc:
            logger.error("Failed to write document store %s: %s", self._file_path, exc)
            raise StorageUnavailable(f"Unable to write {self._file_path}: {exc}") from exc
