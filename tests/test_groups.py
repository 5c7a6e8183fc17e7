import pytest
from pydantic import ValidationError

from app.core.errors import ErrorKind
from app.modules.groups import service as group_service
from app.modules.groups.schemas import GroupCreate, GroupJoin, JOIN_CODE_LENGTH
from tests.factories import seed_profile


def _group(db, group_id):
    return next(g for g in db.rows("groups") if g["id"] == group_id)


def test_join_codes_are_uppercase_alphanumerics():
    code = group_service.generate_join_code()

    assert len(code) == JOIN_CODE_LENGTH
    assert all(c in group_service.JOIN_CODE_ALPHABET for c in code)


def test_group_payloads_are_normalized():
    assert GroupCreate(name="  Flatmates ").name == "Flatmates"
    assert GroupJoin(join_code=" abcd1234 ").join_code == "ABCD1234"
    with pytest.raises(ValidationError):
        GroupCreate(name="   ")


def test_first_group_is_main_and_creator_is_admin(db, groups):
    first = groups.create_group(GroupCreate(name="Alpha"), "u7")
    second = groups.create_group(GroupCreate(name="Beta"), "u7")

    assert first.success, first.error
    assert first.group.is_main_group
    assert not second.group.is_main_group
    members = [m for m in db.rows("group_members") if m["group_id"] == first.group.id]
    assert [(m["user_id"], m["role"]) for m in members] == [("u7", "admin")]


def test_duplicate_group_name_is_rejected_case_insensitively(db, groups):
    groups.create_group(GroupCreate(name="Book Club"), "u7")

    again = groups.create_group(GroupCreate(name="book club"), "u7")
    other_user = groups.create_group(GroupCreate(name="Book Club"), "u8")

    assert again.error_kind == ErrorKind.CONFLICT
    assert other_user.success
    assert len(db.rows("groups")) == 2


def test_join_code_collision_is_retried(db, groups, group4, monkeypatch):
    codes = iter([group4["join_code"], "FRESH001"])
    monkeypatch.setattr(group_service, "generate_join_code", lambda: next(codes))

    result = groups.create_group(GroupCreate(name="Book Club"), "u7")

    assert result.success, result.error
    assert result.group.join_code == "FRESH001"


def test_join_code_attempts_are_bounded(db, groups, group4, monkeypatch):
    attempts = []

    def colliding_code():
        attempts.append(1)
        return group4["join_code"]

    monkeypatch.setattr(group_service, "generate_join_code", colliding_code)

    result = groups.create_group(GroupCreate(name="Book Club"), "u7")

    assert result.error_kind == ErrorKind.INVALID
    assert len(attempts) == group_service.MAX_JOIN_CODE_ATTEMPTS
    assert len(db.rows("groups")) == 1


def test_join_by_code(db, groups, group4):
    joined = groups.join_by_code(group4["join_code"].lower(), "u7")
    again = groups.join_by_code(group4["join_code"], "u7")

    assert joined.success
    assert joined.group.id == group4["id"]
    assert again.error_kind == ErrorKind.CONFLICT
    assert groups.join_by_code("NOPE0000", "u7").error_kind == ErrorKind.NOT_FOUND
    assert groups.join_by_code(group4["join_code"], None).error_kind == ErrorKind.AUTHENTICATION


def test_join_inactive_group_is_not_found(db, groups):
    db.seed("groups", {"id": "gone", "name": "Gone", "join_code": "GONE0000", "created_by": "u1",
                       "is_active": False})

    assert groups.join_by_code("GONE0000", "u7").error_kind == ErrorKind.NOT_FOUND


def test_leave_group(db, groups, group4):
    first = groups.leave_group(group4["id"], "u3")
    second = groups.leave_group(group4["id"], "u3")

    assert first.success
    assert second.error_kind == ErrorKind.NOT_FOUND
    assert "u3" not in [m["user_id"] for m in db.rows("group_members")]


def test_only_the_creator_may_delete(db, groups, group4):
    result = groups.delete_group(group4["id"], "u2")

    assert result.error_kind == ErrorKind.PERMISSION_DENIED
    assert _group(db, group4["id"])["is_active"]


def test_deleting_the_main_group_promotes_the_oldest_remaining(db, groups):
    alpha = groups.create_group(GroupCreate(name="Alpha"), "u7").group
    beta = groups.create_group(GroupCreate(name="Beta"), "u7").group
    gamma = groups.create_group(GroupCreate(name="Gamma"), "u7").group

    result = groups.delete_group(alpha.id, "u7")

    assert result.success
    assert not _group(db, alpha.id)["is_active"]
    assert _group(db, beta.id)["is_main_group"]
    assert not _group(db, gamma.id)["is_main_group"]
    assert groups.delete_group(alpha.id, "u7").error_kind == ErrorKind.NOT_FOUND


def test_set_main_group(db, groups):
    alpha = groups.create_group(GroupCreate(name="Alpha"), "u7").group
    beta = groups.create_group(GroupCreate(name="Beta"), "u7").group

    result = groups.set_main_group(beta.id, "u7")

    assert result.success
    assert _group(db, beta.id)["is_main_group"]
    assert not _group(db, alpha.id)["is_main_group"]
    assert groups.set_main_group(beta.id, "u8").error_kind == ErrorKind.PERMISSION_DENIED


def test_list_user_groups_counts_active_members(db, groups, group4):
    db.seed("group_members", {"group_id": group4["id"], "user_id": "u5", "is_active": False})
    groups.create_group(GroupCreate(name="Solo"), "u2")

    result = groups.list_user_groups("u2")

    counts = {g.name: g.member_count for g in result.groups}
    assert counts == {"Flatmates": 4, "Solo": 1}
    assert groups.list_user_groups("nobody").groups == []


def test_list_members_labels_and_marks_the_creator(db, groups, group4):
    seed_profile(db, "u2", display_name="Bea")

    result = groups.list_members(group4["id"], "u1")

    members = {m.user_id: m for m in result.members}
    assert members["u1"].is_creator
    assert members["u1"].role == "admin"
    assert members["u2"].name == "Bea"
    assert members["u3"].name == "Group Member"
    assert groups.list_members(group4["id"], "u9").error_kind == ErrorKind.PERMISSION_DENIED
