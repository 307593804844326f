import pytest

from nightingale.db import Database, ModelError, Statistics, is_dangerous


@pytest.fixture
def db():
    database = Database(":memory:")
    yield database
    database.close()


def _add_role(db, name):
    return db.insert("role", {"name": name, "note": ""})


def test_insert_assigns_increasing_ids(db):
    first = _add_role(db, "a")
    second = _add_role(db, "b")
    assert second > first
    assert db.query("SELECT name FROM role WHERE id = ?", (second,)) == [{"name": "b"}]


def test_count_and_exists(db):
    _add_role(db, "a")
    _add_role(db, "b")
    assert db.count("role") == 2
    assert db.count("role", "name = ?", ("a",)) == 1
    assert db.exists("role", "name = ?", ("b",)) is True
    assert db.exists("role", "name = ?", ("zzz",)) is False


def test_list_parameter_expands(db):
    ids = [_add_role(db, name) for name in ("a", "b", "c")]
    assert db.count("role", "id in ?", ([ids[0], ids[2]],)) == 2
    assert db.count("role", "id in ?", ([],)) == 0


def test_placeholder_mismatch_raises(db):
    with pytest.raises(ModelError):
        db.query("SELECT * FROM role WHERE id = ?", ())


def test_bad_sql_raises_model_error(db):
    with pytest.raises(ModelError):
        db.query("SELECT * FROM no_such_table")


def test_update_changes_rows(db):
    role_id = _add_role(db, "a")
    assert db.update("role", {"note": "changed"}, "id = ?", (role_id,)) == 1
    assert db.query("SELECT note FROM role WHERE id = ?", (role_id,)) == [{"note": "changed"}]


def test_update_and_delete_need_where(db):
    _add_role(db, "a")
    with pytest.raises(ModelError):
        db.update("role", {"note": "x"}, "")
    with pytest.raises(ModelError):
        db.delete("role", "  ")
    assert db.count("role") == 1


def test_delete_returns_rowcount(db):
    _add_role(db, "a")
    _add_role(db, "a")
    _add_role(db, "b")
    assert db.delete("role", "name = ?", ("a",)) == 2
    assert db.count("role") == 1


def test_transaction_commits(db):
    with db.transaction():
        _add_role(db, "a")
    assert db.count("role") == 1


def test_transaction_rolls_back_on_error(db):
    with pytest.raises(RuntimeError):
        with db.transaction():
            _add_role(db, "a")
            raise RuntimeError("boom")
    assert db.count("role") == 0


def test_nested_transaction_rolls_back_inner_only(db):
    with db.transaction():
        _add_role(db, "outer")
        with pytest.raises(RuntimeError):
            with db.transaction():
                _add_role(db, "inner")
                raise RuntimeError("boom")
    assert [row["name"] for row in db.query("SELECT name FROM role")] == ["outer"]


def test_statistics(db):
    db.insert("user_group", {"name": "a", "update_at": 5})
    db.insert("user_group", {"name": "b", "update_at": 9})
    assert db.statistics("user_group", "update_at") == Statistics(total=2, last_updated=9)
    assert db.statistics("user_group", "update_at", "name = ?", ("a",)) == Statistics(1, 5)


def test_statistics_of_empty_table(db):
    assert db.statistics("user_group", "update_at") == Statistics(0, 0)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("plain name", False),
        ("a<b", True),
        ("x > y", True),
        ("tom & jerry", True),
        ("it's", True),
        ('say "hi"', True),
        ("file://etc", True),
        ("../up", True),
    ],
)
def test_is_dangerous(text, expected):
    assert is_dangerous(text) is expected