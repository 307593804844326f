"""Charts, chart groups inside dashboards, and shared charts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from nightingale.db import Database, ModelError, is_dangerous

_CHART_COLUMNS = ("group_id", "configs", "weight")
_CHART_GROUP_COLUMNS = ("dashboard_id", "name", "weight")
_CHART_SHARE_COLUMNS = ("cluster", "configs", "create_by", "create_at")


def _selected(obj: Any, columns: tuple[str, ...], fields: tuple[str, ...]) -> dict[str, Any]:
    chosen = columns if "*" in fields else fields
    unknown = [name for name in chosen if name not in columns]
    if unknown:
        raise ModelError(f"unknown column(s): {', '.join(unknown)}")
    return {name: getattr(obj, name) for name in chosen}


@dataclass
class Chart:
    id: int = 0
    group_id: int = 0
    configs: str = ""
    weight: int = 0

    def add(self, db: Database) -> None:
        self.id = db.insert("chart", _selected(self, _CHART_COLUMNS, ("*",)))

    def update(self, db: Database, *args: str) -> None:
        """Write the named columns ("*" for all) to the database."""
        db.update("chart", _selected(self, _CHART_COLUMNS, args), "id = ?", (self.id,))

    def delete(self, db: Database) -> None:
        db.delete("chart", "id = ?", (self.id,))


@dataclass
class ChartGroup:
    id: int = 0
    dashboard_id: int = 0
    name: str = ""
    weight: int = 0

    def verify(self) -> None:
        if self.dashboard_id <= 0:
            raise ModelError("Arg(dashboard_id) invalid")
        if is_dangerous(self.name):
            raise ModelError("Name has invalid characters")

    def add(self, db: Database) -> None:
        self.verify()
        self.id = db.insert("chart_group", _selected(self, _CHART_GROUP_COLUMNS, ("*",)))

    def update(self, db: Database, *args: str) -> None:
        """Write the named columns ("*" for all) to the database."""
        self.verify()
        db.update(
            "chart_group", _selected(self, _CHART_GROUP_COLUMNS, args), "id = ?", (self.id,)
        )

    def delete(self, db: Database) -> None:
        """Remove the group together with its charts."""
        with db.transaction():
            db.delete("chart", "group_id = ?", (self.id,))
            db.delete("chart_group", "id = ?", (self.id,))


@dataclass
class ChartShare:
    id: int = 0
    cluster: str = ""
    configs: str = ""
    create_by: str = ""
    create_at: int = 0

    def add(self, db: Database) -> None:
        self.id = db.insert("chart_share", _selected(self, _CHART_SHARE_COLUMNS, ("*",)))


def charts_of(db: Database, chart_group_id: int) -> list[Chart]:
    rows = db.query("SELECT * FROM chart WHERE group_id = ? ORDER BY weight", (chart_group_id,))
    return [Chart(**row) for row in rows]


def new_default_chart_group(db: Database, dashboard_id: int) -> None:
    db.insert(
        "chart_group",
        {"dashboard_id": dashboard_id, "name": "Default chart group", "weight": 0},
    )


def chart_group_ids_of(db: Database, dashboard_id: int) -> list[int]:
    rows = db.query("SELECT id FROM chart_group WHERE dashboard_id = ?", (dashboard_id,))
    return [row["id"] for row in rows]


def chart_groups_of(db: Database, dashboard_id: int) -> list[ChartGroup]:
    rows = db.query(
        "SELECT * FROM chart_group WHERE dashboard_id = ? ORDER BY weight", (dashboard_id,)
    )
    return [ChartGroup(**row) for row in rows]


def chart_share_gets_by_ids(db: Database, ids: list[int]) -> list[ChartShare]:
    if not ids:
        return []
    rows = db.query("SELECT * FROM chart_share WHERE id in ? ORDER BY id", (list(ids),))
    return [ChartShare(**row) for row in rows]