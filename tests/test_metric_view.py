import pytest

from nightingale.db import Database, ModelError
from nightingale.metric_view import (
    MetricView,
    metric_view_del,
    metric_view_get,
    metric_view_gets,
)


@pytest.fixture
def db():
    database = Database()
    yield database
    database.close()


def test_verify_strips():
    view = MetricView(name="  mine ", configs=" {} ")
    view.verify()
    assert (view.name, view.configs) == ("mine", "{}")


def test_verify_blank_name():
    with pytest.raises(ModelError, match="name is blank"):
        MetricView(name="  ", configs="{}").verify()


def test_verify_blank_configs():
    with pytest.raises(ModelError, match="configs is blank"):
        MetricView(name="x", configs=" ").verify()


def test_add_and_get(db):
    view = MetricView(name="v", cate=1, configs="{}", create_by=7)
    view.add(db)
    got = metric_view_get(db, "id = ?", view.id)
    assert got == view
    assert got.create_at == got.update_at


def test_get_missing(db):
    assert metric_view_get(db, "id = ?", 99) is None


def test_gets_sorted_and_scoped(db):
    MetricView(name="b_own", cate=1, configs="{}", create_by=7).add(db)
    MetricView(name="a_own", cate=1, configs="{}", create_by=7).add(db)
    MetricView(name="shared", cate=0, configs="{}", create_by=8).add(db)
    MetricView(name="foreign", cate=1, configs="{}", create_by=8).add(db)
    assert [v.name for v in metric_view_gets(db, 7)] == ["shared", "a_own", "b_own"]


def test_update(db):
    view = MetricView(name="v", cate=1, configs="{}", create_by=7)
    view.add(db)
    view.update(db, "renamed", '{"a":1}', 0)
    got = metric_view_get(db, "id = ?", view.id)
    assert (got.name, got.configs, got.cate) == ("renamed", '{"a":1}', 0)


def test_del_with_creator_only_removes_own(db):
    mine = MetricView(name="m", cate=1, configs="{}", create_by=7)
    mine.add(db)
    theirs = MetricView(name="t", cate=1, configs="{}", create_by=8)
    theirs.add(db)
    metric_view_del(db, [mine.id, theirs.id], 7)
    assert metric_view_get(db, "id = ?", mine.id) is None
    assert metric_view_get(db, "id = ?", theirs.id) == theirs


def test_del_without_creator(db):
    view = MetricView(name="t", cate=1, configs="{}", create_by=8)
    view.add(db)
    metric_view_del(db, [])
    assert metric_view_get(db, "id = ?", view.id) == view
    metric_view_del(db, [view.id])
    assert metric_view_get(db, "id = ?", view.id) is None