import pytest

from viva_portal.constants.viva_constants import STUDENTS_COLLECTION
from viva_portal.core.errors import InvalidInput, NotFound, PermissionDenied, StorageUnavailable


def test_add_student_normalizes_fields(manager):
    student = manager.roster.add("fac-1", " stu-1 ", "  Asha Rao ", " 21cs001 ", "asha@college.edu", " a ")

    assert student.user_id == "stu-1"
    assert student.name == "Asha Rao"
    assert student.roll_no == "21CS001"
    assert student.section == "A"
    assert student.faculty_id == "fac-1"
    assert manager.roster.get(student.id) == student


@pytest.mark.parametrize(
    "user_id, name, roll_no, email",
    [
        ("", "Asha", "21cs001", ""),
        ("stu-1", " ", "21cs001", ""),
        ("stu-1", "Asha", "", ""),
        ("stu-1", "Asha", "21cs001", "not-an-email"),
    ],
)
def test_add_student_validation(manager, user_id, name, roll_no, email):
    with pytest.raises(InvalidInput):
        manager.roster.add("fac-1", user_id, name, roll_no, email)


def test_duplicate_user_or_roll_number_rejected(manager):
    manager.roster.add("fac-1", "stu-1", "Asha", "21cs001")

    with pytest.raises(InvalidInput):
        manager.roster.add("fac-2", "stu-1", "Asha", "99cs001")
    with pytest.raises(InvalidInput):
        manager.roster.add("fac-1", "stu-2", "Ben", "21CS001")
    # roll numbers only clash within one faculty's roster
    assert manager.roster.add("fac-2", "stu-2", "Ben", "21cs001").roll_no == "21CS001"


def test_list_students_by_faculty_and_section(manager):
    manager.roster.add("fac-1", "stu-2", "Ben", "21cs002", section="B")
    manager.roster.add("fac-1", "stu-1", "Asha", "21cs001", section="A")
    manager.roster.add("fac-1", "stu-3", "Chen", "21cs003", section="A")
    manager.roster.add("fac-2", "stu-4", "Dev", "21cs004", section="C")

    assert [s.user_id for s in manager.roster.list_students("fac-1")] == ["stu-1", "stu-2", "stu-3"]
    assert [s.user_id for s in manager.roster.list_students("fac-1", section="a")] == ["stu-1", "stu-3"]
    assert manager.roster.sections("fac-1") == ["A", "B"]
    assert manager.roster.list_students("fac-3") == []


def test_update_student_keeps_account_link(manager):
    student = manager.roster.add("fac-1", "stu-1", "Asha", "21cs001", section="A")

    updated = manager.roster.update("fac-1", student.id, "Asha R", "21cs001", "asha@college.edu", "B")

    assert updated.user_id == "stu-1"
    assert manager.roster.get(student.id).section == "B"
    assert manager.roster.get(student.id).email == "asha@college.edu"


def test_update_rejects_roll_number_taken_by_classmate(manager):
    manager.roster.add("fac-1", "stu-1", "Asha", "21cs001")
    ben = manager.roster.add("fac-1", "stu-2", "Ben", "21cs002")

    with pytest.raises(InvalidInput):
        manager.roster.update("fac-1", ben.id, "Ben", "21cs001")


def test_only_owning_faculty_may_edit(manager):
    student = manager.roster.add("fac-1", "stu-1", "Asha", "21cs001")

    with pytest.raises(PermissionDenied):
        manager.roster.update("fac-2", student.id, "Asha", "21cs001")
    with pytest.raises(PermissionDenied):
        manager.roster.delete("fac-2", student.id)


def test_delete_student(manager):
    student = manager.roster.add("fac-1", "stu-1", "Asha", "21cs001")

    manager.roster.delete("fac-1", student.id)

    assert manager.roster.find_by_user("stu-1") is None
    with pytest.raises(NotFound):
        manager.roster.require_by_user("stu-1")


def test_failed_roster_write_is_not_kept(manager, store):
    store.offline = True

    with pytest.raises(StorageUnavailable):
        manager.roster.add("fac-1", "stu-1", "Asha", "21cs001")

    assert store.query(STUDENTS_COLLECTION) == []


def test_student_experiments_follow_roster(manager, experiment):
    manager.experiments.create("fac-2", "Compilers")
    manager.roster.add("fac-1", "stu-1", "Asha", "21cs001")

    assert [e.id for e in manager.experiments_for_student("stu-1")] == [experiment.id]
    with pytest.raises(NotFound):
        manager.experiments_for_student("stu-9")


def test_roster_summary_counts_activity(manager, experiment):
    manager.roster.add("fac-1", "stu-1", "Asha", "21cs001", section="A")
    manager.roster.add("fac-1", "stu-2", "Ben", "21cs002", section="B")
    manager.submissions.submit("stu-1", experiment.id, "https://x")
    session = manager.open_session("stu-1", experiment.id)
    session.start()
    session.submit()

    rows = {row.student.user_id: row for row in manager.roster_summary("fac-1")}

    assert (rows["stu-1"].submission_count, rows["stu-1"].viva_attempt_count) == (1, 1)
    assert (rows["stu-2"].submission_count, rows["stu-2"].viva_attempt_count) == (0, 0)
    assert [row.student.user_id for row in manager.roster_summary("fac-1", section="B")] == ["stu-2"]
