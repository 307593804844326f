"""Human-readable descriptions of metric names."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from nightingale.db import Database, Statistics


def _where(where: str) -> str:
    return f" WHERE {where}" if where.strip() else ""


def _page(limit: int, offset: int) -> tuple[str, list[int]]:
    """LIMIT/OFFSET clause; non-positive values mean no limit and no offset."""
    if limit <= 0 and offset <= 0:
        return "", []
    return " LIMIT ? OFFSET ?", [limit if limit > 0 else -1, max(offset, 0)]


@dataclass
class MetricDescription:
    id: int = 0
    metric: str = ""
    description: str = ""
    update_at: int = 0

    def update(self, db: Database, description: str, now: int) -> None:
        self.description = description
        self.update_at = now
        db.update(
            "metric_description",
            {"description": description, "update_at": now},
            "id = ?",
            (self.id,),
        )


def metric_description_update(db: Database, mds: list[MetricDescription]) -> None:
    """Insert new descriptions and update those whose metric is already known."""
    now = int(time.time())
    for item in mds:
        item.metric = item.metric.strip()
        existing = metric_description_get(db, "metric = ?", item.metric)
        if existing is None:
            item.update_at = now
            values: dict[str, Any] = {
                "metric": item.metric,
                "description": item.description,
                "update_at": now,
            }
            if item.id:
                values["id"] = item.id
            item.id = db.insert("metric_description", values)
        else:
            existing.update(db, item.description, now)


def metric_description_get(db: Database, where: str, *args) -> MetricDescription | None:
    rows = db.query(f"SELECT * FROM metric_description{_where(where)}", args)
    return MetricDescription(**rows[0]) if rows else None


def metric_description_total(db: Database, query: str = "") -> int:
    if not query:
        return db.count("metric_description")
    pattern = f"%{query}%"
    return db.count(
        "metric_description", "metric like ? or description like ?", (pattern, pattern)
    )


def metric_description_gets(
    db: Database, query: str, limit: int, offset: int
) -> list[MetricDescription]:
    sql = "SELECT * FROM metric_description"
    params: list[Any] = []
    if query:
        pattern = f"%{query}%"
        sql += " WHERE metric like ? or description like ?"
        params.extend((pattern, pattern))
    page, page_params = _page(limit, offset)
    rows = db.query(sql + " ORDER BY metric" + page, params + page_params)
    return [MetricDescription(**row) for row in rows]


def metric_desc_get_all(db: Database) -> list[MetricDescription]:
    return [MetricDescription(**row) for row in db.query("SELECT * FROM metric_description")]


def metric_desc_statistics(db: Database) -> Statistics:
    return db.statistics("metric_description", "update_at")


def metric_description_mapper(db: Database, metrics: list[str]) -> dict[str, str]:
    """Map each known metric among the given ones to its description."""
    if not metrics:
        return {}
    rows = db.query(
        "SELECT metric, description FROM metric_description WHERE metric in ?",
        (list(metrics),),
    )
    return {row["metric"]: row["description"] for row in rows}


def metric_description_del(db: Database, ids: list[int]) -> None:
    if not ids:
        return
    db.delete("metric_description", "id in ?", (list(ids),))