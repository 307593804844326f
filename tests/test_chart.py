import pytest

from nightingale.chart import (
    Chart,
    ChartGroup,
    ChartShare,
    chart_group_ids_of,
    chart_groups_of,
    chart_share_gets_by_ids,
    charts_of,
    new_default_chart_group,
)
from nightingale.db import Database, ModelError


@pytest.fixture
def db():
    database = Database()
    yield database
    database.close()


def test_chart_add_and_list_by_weight(db):
    heavy = Chart(group_id=1, configs="{}", weight=5)
    light = Chart(group_id=1, configs="{}", weight=1)
    heavy.add(db)
    light.add(db)
    Chart(group_id=2, weight=0).add(db)
    assert charts_of(db, 1) == [light, heavy]


def test_chart_update_selected_fields(db):
    chart = Chart(group_id=1, configs="old", weight=1)
    chart.add(db)
    chart.configs = "new"
    chart.weight = 9
    chart.update(db, "configs")
    assert charts_of(db, 1)[0].configs == "new"
    assert charts_of(db, 1)[0].weight == 1


def test_chart_delete(db):
    chart = Chart(group_id=1)
    chart.add(db)
    chart.delete(db)
    assert charts_of(db, 1) == []


def test_chart_group_verify(db):
    with pytest.raises(ModelError, match="dashboard_id"):
        ChartGroup(dashboard_id=0, name="x").add(db)
    with pytest.raises(ModelError, match="invalid characters"):
        ChartGroup(dashboard_id=1, name="a<b").verify()
    assert chart_groups_of(db, 0) == []


def test_chart_group_update(db):
    group = ChartGroup(dashboard_id=3, name="g", weight=1)
    group.add(db)
    group.name = "renamed"
    group.update(db, "name")
    assert chart_groups_of(db, 3)[0].name == "renamed"


def test_chart_group_delete_removes_charts(db):
    group = ChartGroup(dashboard_id=3, name="g")
    group.add(db)
    Chart(group_id=group.id).add(db)
    group.delete(db)
    assert chart_group_ids_of(db, 3) == []
    assert charts_of(db, group.id) == []


def test_default_chart_group(db):
    new_default_chart_group(db, 4)
    groups = chart_groups_of(db, 4)
    assert [(g.name, g.weight) for g in groups] == [("Default chart group", 0)]
    assert chart_group_ids_of(db, 4) == [groups[0].id]


def test_chart_groups_sorted_by_weight(db):
    ChartGroup(dashboard_id=5, name="b", weight=2).add(db)
    ChartGroup(dashboard_id=5, name="a", weight=1).add(db)
    assert [g.name for g in chart_groups_of(db, 5)] == ["a", "b"]


def test_chart_share(db):
    first = ChartShare(cluster="c1", configs="{}", create_by="root", create_at=1)
    second = ChartShare(cluster="c2", configs="{}", create_by="root", create_at=2)
    first.add(db)
    second.add(db)
    assert chart_share_gets_by_ids(db, [second.id, first.id]) == [first, second]
    assert chart_share_gets_by_ids(db, []) == []