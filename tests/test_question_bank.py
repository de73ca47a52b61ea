import pytest

from viva_portal.core.errors import InvalidInput, NotFound, PermissionDenied


def test_add_question_strips_text(manager, experiment):
    question = manager.questions.add_question(
        "fac-1", experiment.id, "  What is ARP?  ", [" a ", "b", "c", "d"], 3
    )

    assert question.question_text == "What is ARP?"
    assert question.options == ("a", "b", "c", "d")
    assert question.faculty_id == "fac-1"


@pytest.mark.parametrize(
    "text, options, correct",
    [
        ("", ["a", "b", "c", "d"], 0),
        ("Q?", ["a", "b", "c"], 0),
        ("Q?", ["a", "b", "", "d"], 0),
        ("Q?", ["a", "b", "c", "d"], 4),
        ("Q?", ["a", "b", "c", "d"], -1),
    ],
)
def test_add_question_validation(manager, experiment, text, options, correct):
    with pytest.raises(InvalidInput):
        manager.questions.add_question("fac-1", experiment.id, text, options, correct)


def test_only_owner_may_author_questions(manager, experiment):
    with pytest.raises(PermissionDenied):
        manager.questions.add_question("fac-2", experiment.id, "Q?", ["a", "b", "c", "d"], 0)


def test_update_question_keeps_experiment(manager, experiment):
    original = manager.questions.list_questions(experiment.id)[0]

    updated = manager.questions.update_question("fac-1", original.id, "Define TCP", ["w", "x", "y", "z"], 2)

    assert updated.experiment_id == experiment.id
    stored = manager.questions.get_question(original.id)
    assert stored.question_text == "Define TCP"
    assert stored.correct_option_index == 2


def test_delete_question(manager, experiment):
    first = manager.questions.list_questions(experiment.id)[0]

    with pytest.raises(PermissionDenied):
        manager.questions.delete_question("fac-2", first.id)
    manager.questions.delete_question("fac-1", first.id)

    assert len(manager.questions.list_questions(experiment.id)) == 2
    with pytest.raises(NotFound):
        manager.questions.get_question(first.id)


def test_malformed_stored_question_fails_at_load(manager, store, experiment):
    store.insert("vivaQuestions", {"experimentId": experiment.id, "question": "Broken", "options": ["a"], "correctAnswer": 0})

    with pytest.raises(InvalidInput):
        manager.loader.load(experiment.id)
