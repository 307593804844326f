import json
import time

import pytest

from nightingale.alert_mute import (
    AlertMute,
    alert_mute_del,
    alert_mute_gets,
    alert_mute_gets_by_cluster,
    alert_mute_statistics,
    parse_tag_filters,
)
from nightingale.db import Database, ModelError
from nightingale.jsonfields import JSONArr

TAGS = [
    {"key": "ident", "func": "==", "value": "host01"},
    {"key": "service", "func": "=~", "value": "^api-.*"},
    {"key": "region", "func": "in", "value": "bj sh"},
]


@pytest.fixture
def db():
    database = Database()
    yield database
    database.close()


def _mute(cluster="c1", etime_offset=3600, group_id=1):
    now = int(time.time())
    return AlertMute(
        group_id=group_id,
        cluster=cluster,
        tags=JSONArr(json.dumps(TAGS).encode()),
        cause="maintenance",
        btime=now,
        etime=now + etime_offset,
        create_by="root",
    )


def test_parse_tag_filters():
    filters = parse_tag_filters(json.dumps(TAGS))
    assert [(f.key, f.func, f.value) for f in filters] == [
        (t["key"], t["func"], t["value"]) for t in TAGS
    ]
    assert filters[0].regexp is None and filters[0].vset is None
    assert filters[1].regexp.match("api-gateway")
    assert filters[1].regexp.match("web") is None
    assert filters[2].vset == {"bj", "sh"}


def test_parse_null_is_empty():
    assert parse_tag_filters(b"null") == []


def test_parse_bad_regexp():
    with pytest.raises(ModelError):
        parse_tag_filters('[{"key":"a","func":"=~","value":"("}]')


def test_parse_empty_raw_fails():
    with pytest.raises(ModelError):
        parse_tag_filters(JSONArr())


def test_verify_group_id():
    mute = _mute(group_id=0)
    with pytest.raises(ModelError, match="group_id invalid"):
        mute.verify()


def test_verify_cluster():
    with pytest.raises(ModelError, match="cluster invalid"):
        _mute(cluster="").verify()


def test_verify_times():
    mute = _mute()
    mute.etime = mute.btime
    with pytest.raises(ModelError, match=r"etime\(.*\) <= btime"):
        mute.verify()


def test_verify_blank_tags():
    mute = _mute()
    mute.tags = JSONArr(b"[]")
    with pytest.raises(ModelError, match="tags is blank"):
        mute.verify()


def test_add_and_gets_roundtrip(db):
    mute = _mute()
    mute.add(db)
    [got] = alert_mute_gets(db, 1)
    assert got.id == mute.id
    assert got.tags == mute.tags
    assert got.create_at > 0
    got.parse()
    assert [f.key for f in got.itags] == ["ident", "service", "region"]


def test_gets_newest_first(db):
    first = _mute()
    first.add(db)
    second = _mute()
    second.add(db)
    assert [m.id for m in alert_mute_gets(db, 1)] == [second.id, first.id]
    assert alert_mute_gets(db, 2) == []


def test_gets_by_cluster_drops_expired(db):
    live = _mute(cluster="c1")
    live.add(db)
    other = _mute(cluster="c2")
    other.add(db)
    expired = _mute(cluster="c1")
    expired.add(db)
    db.update("alert_mute", {"etime": int(time.time()) - 10}, "id = ?", (expired.id,))

    assert [m.id for m in alert_mute_gets_by_cluster(db, "c1")] == [live.id]
    assert sorted(m.id for m in alert_mute_gets_by_cluster(db, "")) == sorted(
        [live.id, other.id]
    )


def test_statistics(db):
    a = _mute(cluster="c1")
    a.add(db)
    b = _mute(cluster="c2")
    b.add(db)
    stats = alert_mute_statistics(db, "c1")
    assert stats.total == len(alert_mute_gets_by_cluster(db, "c1"))
    assert stats.last_updated == a.create_at
    assert alert_mute_statistics(db, "").total == len(alert_mute_gets(db, 1))


def test_del(db):
    mute = _mute()
    mute.add(db)
    alert_mute_del(db, [])
    assert [m.id for m in alert_mute_gets(db, 1)] == [mute.id]
    alert_mute_del(db, [mute.id])
    assert alert_mute_gets(db, 1) == []