"""Dashboards and their removal together with charts."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from nightingale.chart import chart_group_ids_of
from nightingale.db import Database, ModelError, is_dangerous

_COLUMNS = (
    "group_id",
    "name",
    "tags",
    "configs",
    "create_at",
    "create_by",
    "update_at",
    "update_by",
)
_LIST_COLUMNS = (
    "id",
    "group_id",
    "name",
    "tags",
    "create_at",
    "create_by",
    "update_at",
    "update_by",
)


def _selected(obj: Any, fields: tuple[str, ...]) -> dict[str, Any]:
    chosen = _COLUMNS if "*" in fields else fields
    unknown = [name for name in chosen if name not in _COLUMNS]
    if unknown:
        raise ModelError(f"unknown column(s): {', '.join(unknown)}")
    return {name: getattr(obj, name) for name in chosen}


def _where(where: str) -> str:
    return f" WHERE {where}" if where.strip() else ""


@dataclass
class Dashboard:
    id: int = 0
    group_id: int = 0
    name: str = ""
    tags: str = ""
    configs: str = ""
    create_at: int = 0
    create_by: str = ""
    update_at: int = 0
    update_by: str = ""
    tags_lst: list[str] = field(default_factory=list)

    def verify(self) -> None:
        if self.name == "":
            raise ModelError("Name is blank")
        if is_dangerous(self.name):
            raise ModelError("Name has invalid characters")

    def add(self, db: Database) -> None:
        self.verify()
        try:
            exists = dashboard_exists(db, "group_id = ? and name = ?", self.group_id, self.name)
        except ModelError as exc:
            raise ModelError(f"failed to count dashboard: {exc}") from exc
        if exists:
            raise ModelError("Dashboard already exists")
        now = int(time.time())
        self.create_at = now
        self.update_at = now
        self.id = db.insert("dashboard", _selected(self, ("*",)))

    def update(self, db: Database, *args: str) -> None:
        """Write the named columns ("*" for all) to the database."""
        self.verify()
        db.update("dashboard", _selected(self, args), "id = ?", (self.id,))

    def delete(self, db: Database) -> None:
        """Remove the dashboard together with its chart groups and charts."""
        group_ids = chart_group_ids_of(db, self.id)
        with db.transaction():
            if group_ids:
                db.delete("chart", "group_id in ?", (group_ids,))
                db.delete("chart_group", "dashboard_id = ?", (self.id,))
            db.delete("dashboard", "id = ?", (self.id,))


def dashboard_get(db: Database, where: str, *args) -> Dashboard | None:
    rows = db.query(f"SELECT * FROM dashboard{_where(where)}", args)
    if not rows:
        return None
    dashboard = Dashboard(**rows[0])
    dashboard.tags_lst = dashboard.tags.split()
    return dashboard


def dashboard_count(db: Database, where: str, *args) -> int:
    return db.count("dashboard", where, args)


def dashboard_exists(db: Database, where: str, *args) -> bool:
    return dashboard_count(db, where, *args) > 0


def dashboard_gets(db: Database, group_id: int, query: str = "") -> list[Dashboard]:
    """List a group's dashboards without configs; words prefixed by "-" exclude."""
    clauses = ["group_id = ?"]
    params: list[Any] = [group_id]
    for word in query.split():
        if word.startswith("-"):
            pattern = f"%{word[1:]}%"
            clauses.append("(name not like ? and tags not like ?)")
        else:
            pattern = f"%{word}%"
            clauses.append("(name like ? or tags like ?)")
        params.extend((pattern, pattern))
    rows = db.query(
        f"SELECT {', '.join(_LIST_COLUMNS)} FROM dashboard "
        f"WHERE {' AND '.join(clauses)} ORDER BY name",
        params,
    )
    dashboards = [Dashboard(**row) for row in rows]
    for dashboard in dashboards:
        dashboard.tags_lst = dashboard.tags.split()
    return dashboards


def dashboard_gets_by_ids(db: Database, ids: list[int]) -> list[Dashboard]:
    if not ids:
        return []
    rows = db.query("SELECT * FROM dashboard WHERE id in ? ORDER BY name", (list(ids),))
    return [Dashboard(**row) for row in rows]