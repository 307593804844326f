import pytest

from nightingale.busi_group import (
    BusiGroup,
    busi_group_add,
    busi_group_exists,
    busi_group_get,
    busi_group_get_by_id,
    busi_group_get_map,
    busi_group_statistics,
)
from nightingale.busi_group_member import BusiGroupMember
from nightingale.db import Database, ModelError


@pytest.fixture
def db():
    with Database() as database:
        yield database


def _user_group(db, name):
    return db.insert("user_group", {"name": name})


def _member(ugid, bgid=0, flag="rw"):
    return BusiGroupMember(busi_group_id=bgid, user_group_id=ugid, perm_flag=flag)


def test_add_and_get(db):
    ugid = _user_group(db, "ops")
    bg = busi_group_add(db, "web", 1, "web-label", [_member(ugid)], "root")
    got = busi_group_get(db, "name = ?", "web")
    assert got.id == bg.id
    assert got.label_value == "web-label"
    assert got.create_by == "root"
    assert db.count("busi_group_member", "busi_group_id = ?", (bg.id,)) == 1


def test_label_value_cleared_when_disabled(db):
    bg = busi_group_add(db, "web", 0, "ignored", [], "root")
    assert busi_group_get_by_id(db, bg.id).label_value == ""


def test_duplicate_name_rejected(db):
    busi_group_add(db, "web", 0, "", [], "root")
    with pytest.raises(ModelError, match="BusiGroup already exists"):
        busi_group_add(db, "web", 0, "", [], "root")


def test_duplicate_label_rejected(db):
    busi_group_add(db, "a", 1, "lbl", [], "root")
    with pytest.raises(ModelError, match="BusiGroup already exists"):
        busi_group_add(db, "b", 1, "lbl", [], "root")


def test_missing_user_group_rejected(db):
    with pytest.raises(ModelError, match="Some UserGroup id not exists"):
        busi_group_add(db, "web", 0, "", [_member(999)], "root")
    assert not busi_group_exists(db, "name = ?", "web")


def test_delete_blocked_by_dashboard(db):
    bg = busi_group_add(db, "web", 0, "", [], "root")
    db.insert("dashboard", {"group_id": bg.id, "name": "d"})
    with pytest.raises(ModelError, match="Some dashboards still in the BusiGroup"):
        bg.delete(db)
    assert busi_group_get_by_id(db, bg.id) is not None


def test_delete_removes_members_and_events(db):
    ugid = _user_group(db, "ops")
    bg = busi_group_add(db, "web", 0, "", [_member(ugid)], "root")
    db.insert("alert_cur_event", {"group_id": bg.id, "hash": "h"})
    bg.delete(db)
    assert busi_group_get_by_id(db, bg.id) is None
    assert db.count("busi_group_member") == 0
    assert db.count("alert_cur_event") == 0


def test_add_members_and_fill(db):
    first = _user_group(db, "ops")
    second = _user_group(db, "dev")
    bg = busi_group_add(db, "web", 0, "", [_member(first)], "root")
    bg.add_members(db, [_member(second, bg.id, "ro")], "alice")
    assert bg.update_by == "alice"
    loaded = busi_group_get_by_id(db, bg.id)
    loaded.fill_user_groups(db)
    flags = {item.user_group.name: item.perm_flag for item in loaded.user_groups}
    assert flags == {"ops": "rw", "dev": "ro"}


def test_del_members_keeps_last_team(db):
    first = _user_group(db, "ops")
    second = _user_group(db, "dev")
    bg = busi_group_add(db, "web", 0, "", [_member(first), _member(second)], "root")
    bg.del_members(db, [_member(second, bg.id)], "root")
    assert db.count("busi_group_member", "busi_group_id = ?", (bg.id,)) == 1
    with pytest.raises(ModelError, match="retain at least one team"):
        bg.del_members(db, [_member(first, bg.id)], "root")


def test_update_rename_and_conflict(db):
    busi_group_add(db, "taken", 0, "", [], "root")
    bg = busi_group_add(db, "web", 0, "", [], "root")
    with pytest.raises(ModelError, match="BusiGroup already exists"):
        bg.update(db, "taken", 0, "", "bob")
    bg.update(db, "site", 0, "", "bob")
    got = busi_group_get_by_id(db, bg.id)
    assert (got.name, got.update_by) == ("site", "bob")


def test_update_unchanged_is_noop(db):
    bg = busi_group_add(db, "web", 0, "", [], "root")
    bg.update(db, "web", 0, "", "bob")
    assert busi_group_get_by_id(db, bg.id).update_by == "root"


def test_get_map_and_statistics(db):
    a = busi_group_add(db, "a", 0, "", [], "root")
    b = busi_group_add(db, "b", 0, "", [], "root")
    mapping = busi_group_get_map(db)
    assert set(mapping) == {a.id, b.id}
    assert isinstance(mapping[a.id], BusiGroup)
    stats = busi_group_statistics(db)
    assert stats.total == len(mapping)
    assert stats.last_updated == max(a.update_at, b.update_at)