"""Records of tasks that were launched from templates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from nightingale.db import Database

_COLUMNS = (
    "group_id",
    "ibex_address",
    "ibex_auth_user",
    "ibex_auth_pass",
    "title",
    "account",
    "batch",
    "tolerance",
    "timeout",
    "pause",
    "script",
    "args",
    "create_at",
    "create_by",
)


def _page(limit: int, offset: int) -> tuple[str, list[int]]:
    if limit <= 0 and offset <= 0:
        return "", []
    return " LIMIT ? OFFSET ?", [limit if limit > 0 else -1, max(offset, 0)]


def _filters(
    bgid: int, begin_time: int, create_by: str, query: str
) -> tuple[str, list[Any]]:
    clauses = ["create_at > ? and group_id = ?"]
    params: list[Any] = [begin_time, bgid]
    if create_by:
        clauses.append("create_by = ?")
        params.append(create_by)
    if query:
        clauses.append("title like ?")
        params.append(f"%{query}%")
    return " AND ".join(clauses), params


@dataclass
class TaskRecord:
    id: int = 0
    group_id: int = 0
    ibex_address: str = ""
    ibex_auth_user: str = ""
    ibex_auth_pass: str = ""
    title: str = ""
    account: str = ""
    batch: int = 0
    tolerance: int = 0
    timeout: int = 0
    pause: str = ""
    script: str = ""
    args: str = ""
    create_at: int = 0
    create_by: str = ""

    def add(self, db: Database) -> None:
        values: dict[str, Any] = {c: getattr(self, c) for c in _COLUMNS}
        if self.id:
            values["id"] = self.id
        self.id = db.insert("task_record", values)

    def update_is_done(self, db: Database, is_done: int) -> None:
        db.update("task_record", {"is_done": is_done}, "id = ?", (self.id,))


def task_record_total(
    db: Database, bgid: int, begin_time: int, create_by: str = "", query: str = ""
) -> int:
    where, params = _filters(bgid, begin_time, create_by, query)
    return db.count("task_record", where, params)


def task_record_gets(
    db: Database,
    bgid: int,
    begin_time: int,
    create_by: str,
    query: str,
    limit: int,
    offset: int,
) -> list[TaskRecord]:
    """A group's records created after begin_time, newest first."""
    where, params = _filters(bgid, begin_time, create_by, query)
    page, page_params = _page(limit, offset)
    columns = ", ".join(("id", *_COLUMNS))
    rows = db.query(
        f"SELECT {columns} FROM task_record WHERE {where} ORDER BY create_at DESC{page}",
        params + page_params,
    )
    return [TaskRecord(**row) for row in rows]