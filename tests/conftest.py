"""
Pytest configuration and fixtures for viva portal tests.
"""
import pytest

from viva_portal.core.document_store import InMemoryDocumentStore
from viva_portal.core.errors import StorageUnavailable
from viva_portal.core.models import VivaQuestion
from viva_portal.core.services.result_recorder import ResultRecorder
from viva_portal.core.viva_manager import VivaManager


class FlakyDocumentStore(InMemoryDocumentStore):
    """Store whose writes fail while ``offline`` is set."""

    def __init__(self):
        super().__init__()
        self.offline = False

    def _persist(self):
        if self.offline:
            raise StorageUnavailable("store offline")


@pytest.fixture
def store():
    return FlakyDocumentStore()


@pytest.fixture
def recorder(store):
    return ResultRecorder(store)


@pytest.fixture
def manager(store):
    return VivaManager(store)


@pytest.fixture
def make_questions():
    """Build frozen questions whose correct answers follow the given list."""

    def factory(correct_answers, experiment_id="exp-1"):
        return tuple(
            VivaQuestion(
                id=f"q{index}",
                experiment_id=experiment_id,
                question_text=f"Question {index}?",
                options=("A", "B", "C", "D"),
                correct_option_index=correct,
                faculty_id="fac-1",
            )
            for index, correct in enumerate(correct_answers)
        )

    return factory


@pytest.fixture
def experiment(manager):
    """An experiment owned by fac-1 with three questions (answers 1, 2, 0)."""
    created = manager.experiments.create("fac-1", "Socket programming", "TCP echo server", "http://manual")
    for text, correct in (("What is TCP?", 1), ("What is UDP?", 2), ("What is IP?", 0)):
        manager.questions.add_question("fac-1", created.id, text, ["a", "b", "c", "d"], correct)
    return created
