import pytest

from viva_portal.core.errors import InvalidInput, NotFound, PermissionDenied
from viva_portal.core.models import VivaAttempt, utc_now
from viva_portal.core.services.progress_report import top_scorers


def test_experiment_crud(manager):
    created = manager.experiments.create("fac-1", " Routing ", "RIP and OSPF", "http://manual")
    assert created.title == "Routing"

    manager.experiments.update("fac-1", created.id, "Routing II")
    assert manager.experiments.get(created.id).title == "Routing II"

    with pytest.raises(PermissionDenied):
        manager.experiments.delete("fac-2", created.id)
    manager.experiments.delete("fac-1", created.id)
    with pytest.raises(NotFound):
        manager.experiments.get(created.id)


def test_experiment_title_required(manager):
    with pytest.raises(InvalidInput):
        manager.experiments.create("fac-1", "   ")


def test_list_experiments_by_faculty(manager):
    manager.experiments.create("fac-1", "One")
    manager.experiments.create("fac-2", "Two")

    assert [e.title for e in manager.experiments.list_experiments("fac-1")] == ["One"]
    assert len(manager.experiments.list_experiments()) == 2


def test_submission_starts_pending(manager, experiment):
    submission = manager.submissions.submit("stu-1", experiment.id, " https://github.com/stu/lab1 ")

    assert submission.status == "pending"
    assert submission.submission_link == "https://github.com/stu/lab1"
    assert manager.submissions.list_for_student("stu-1")[0].id == submission.id


def test_submission_requires_link_and_experiment(manager, experiment):
    with pytest.raises(InvalidInput):
        manager.submissions.submit("stu-1", experiment.id, "  ")
    with pytest.raises(NotFound):
        manager.submissions.submit("stu-1", "missing", "https://x")


def test_review_sets_status(manager, experiment):
    submission = manager.submissions.submit("stu-1", experiment.id, "https://x")

    with pytest.raises(PermissionDenied):
        manager.submissions.review("fac-2", submission.id, True)
    approved = manager.submissions.review("fac-1", submission.id, True)

    assert approved.status == "approved"
    assert approved.approved_at is not None
    stored = manager.submissions.list_for_faculty("fac-1")[0]
    assert stored.status == "approved"
    assert manager.submissions.review("fac-1", submission.id, False).status == "rejected"


def test_student_progress(manager, experiment):
    manager.roster.add("fac-1", "stu-1", "Asha", "21cs001", section="A")
    manager.experiments.create("fac-1", "Routing")
    manager.experiments.create("fac-2", "Compilers")
    manager.submissions.submit("stu-1", experiment.id, "https://x")
    session = manager.open_session("stu-1", experiment.id)
    session.start()
    session.select_answer(0, 1)
    session.submit()

    progress = manager.student_progress("stu-1")

    assert progress.total_experiments == 2
    assert progress.submissions_by_status == {"pending": 1, "approved": 0, "rejected": 0}
    assert progress.vivas_attempted == 1
    assert progress.vivas_not_attempted == 1
    assert progress.viva_scores == {experiment.id: 1}


def test_student_progress_requires_roster_entry(manager, experiment):
    with pytest.raises(NotFound):
        manager.student_progress("stu-9")


def test_faculty_overview(manager, experiment):
    manager.roster.add("fac-1", "stu-1", "Asha", "21cs001", section="A")
    manager.roster.add("fac-1", "stu-2", "Ben", "21cs002", section="B")
    manager.roster.add("fac-1", "stu-3", "Chen", "21cs003")
    manager.experiments.create("fac-1", "Routing")
    manager.submissions.submit("stu-1", experiment.id, "https://x")
    for student, answers in (("stu-1", [1, 2, 0]), ("stu-2", [1, 0, 0])):
        session = manager.open_session(student, experiment.id)
        session.start()
        for index, option in enumerate(answers):
            session.select_answer(index, option)
        session.submit()

    overview = manager.faculty_overview("fac-1")

    assert overview.total_students == 3
    assert overview.students_by_section == {"A": 1, "B": 1, "Unknown": 1}
    assert overview.total_experiments == 2
    assert overview.submissions_not_submitted == 5
    assert overview.viva_attempts == 2
    assert overview.vivas_not_attempted == 4
    assert overview.average_viva_percentage == 83.33
    assert [row.student_id for row in overview.top_scorers] == ["stu-1", "stu-2"]
    assert manager.faculty_overview("fac-2").viva_attempts == 0


def test_top_scorers_limit_and_ties():
    def attempt(student, score):
        return VivaAttempt(student, "e", (0,) * 3, score, 3, utc_now())

    rows = top_scorers([attempt("b", 2), attempt("a", 2), attempt("c", 1), attempt("c", 3)], limit=2)

    assert [(r.student_id, r.correct_answers) for r in rows] == [("c", 4), ("a", 2)]


def test_attempt_rejects_invalid_answers():
    with pytest.raises(InvalidInput):
        VivaAttempt("s", "e", (0, 5), 0, 2, utc_now())
