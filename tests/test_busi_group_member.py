import pytest

from nightingale.busi_group_member import (
    BusiGroupMember,
    busi_group_ids,
    busi_group_member_add,
    busi_group_member_count,
    busi_group_member_del,
    busi_group_member_get,
    busi_group_member_gets,
    busi_group_member_gets_by_busi_group_id,
    user_group_ids_of_busi_group,
)
from nightingale.db import Database


@pytest.fixture
def db():
    database = Database()
    for member in [
        BusiGroupMember(1, 10, "rw"),
        BusiGroupMember(1, 11, "ro"),
        BusiGroupMember(2, 10, "ro"),
        BusiGroupMember(3, 12, "rw"),
    ]:
        busi_group_member_add(database, member)
    yield database
    database.close()


def test_busi_group_ids(db):
    assert sorted(busi_group_ids(db, [10, 12])) == [1, 2, 3]
    assert sorted(busi_group_ids(db, [10, 12], "rw")) == [1, 3]
    assert busi_group_ids(db, []) == []


def test_user_group_ids_of_busi_group(db):
    assert sorted(user_group_ids_of_busi_group(db, 1)) == [10, 11]
    assert user_group_ids_of_busi_group(db, 1, "ro") == [11]


def test_add_existing_changes_permission(db):
    busi_group_member_add(db, BusiGroupMember(1, 11, "rw"))
    assert busi_group_member_get(db, "busi_group_id = ? and user_group_id = ?", 1, 11) == (
        BusiGroupMember(1, 11, "rw")
    )
    assert busi_group_member_count(db, "busi_group_id = ?", 1) == 2


def test_add_same_permission_keeps_one_row(db):
    busi_group_member_add(db, BusiGroupMember(1, 10, "rw"))
    assert busi_group_member_count(db, "busi_group_id = ? and user_group_id = ?", 1, 10) == 1


def test_get_missing_is_none(db):
    assert busi_group_member_get(db, "busi_group_id = ?", 99) is None


def test_gets_ordered_by_perm_flag(db):
    members = busi_group_member_gets_by_busi_group_id(db, 1)
    assert [m.perm_flag for m in members] == ["ro", "rw"]
    assert busi_group_member_gets(db, "user_group_id = ?", 12) == [BusiGroupMember(3, 12, "rw")]


def test_del(db):
    busi_group_member_del(db, "busi_group_id = ? and user_group_id = ?", 1, 10)
    assert user_group_ids_of_busi_group(db, 1) == [11]