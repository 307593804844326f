"""Saved metric views, private to a user or shared (cate 0)."""

from __future__ import annotations

import time
from dataclasses import dataclass

from nightingale.db import Database, ModelError

_COLUMNS = ("name", "cate", "configs", "create_at", "create_by", "update_at")


def _where(where: str) -> str:
    return f" WHERE {where}" if where.strip() else ""


@dataclass
class MetricView:
    id: int = 0
    name: str = ""
    cate: int = 0
    configs: str = ""
    create_at: int = 0
    create_by: int = 0
    update_at: int = 0

    def verify(self) -> None:
        self.name = self.name.strip()
        if self.name == "":
            raise ModelError("name is blank")
        self.configs = self.configs.strip()
        if self.configs == "":
            raise ModelError("configs is blank")

    def add(self, db: Database) -> None:
        self.verify()
        now = int(time.time())
        self.create_at = now
        self.update_at = now
        self.id = db.insert("metric_view", {c: getattr(self, c) for c in _COLUMNS})

    def update(self, db: Database, name: str, configs: str, cate: int) -> None:
        self.verify()
        self.update_at = int(time.time())
        self.name = name
        self.configs = configs
        self.cate = cate
        db.update(
            "metric_view",
            {"name": name, "configs": configs, "cate": cate, "update_at": self.update_at},
            "id = ?",
            (self.id,),
        )


def metric_view_del(db: Database, ids: list[int], create_by: int | None = None) -> None:
    """Delete views; when a creator is given only that creator's views go."""
    if not ids:
        return
    if create_by is not None:
        db.delete("metric_view", "id in ? and create_by = ?", (list(ids), create_by))
    else:
        db.delete("metric_view", "id in ?", (list(ids),))


def metric_view_gets(db: Database, create_by: int) -> list[MetricView]:
    """A user's own views and the shared ones, ordered by category then name."""
    rows = db.query(
        "SELECT * FROM metric_view WHERE create_by = ? or cate = 0", (create_by,)
    )
    views = [MetricView(**row) for row in rows]
    views.sort(key=lambda view: (view.cate, view.name))
    return views


def metric_view_get(db: Database, where: str, *args) -> MetricView | None:
    rows = db.query(f"SELECT * FROM metric_view{_where(where)}", args)
    return MetricView(**rows[0]) if rows else None