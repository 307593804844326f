"""Task templates: reusable scripts with their target hosts."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from nightingale.db import Database, ModelError, is_dangerous

_COLUMNS = (
    "group_id",
    "title",
    "batch",
    "tolerance",
    "timeout",
    "pause",
    "script",
    "args",
    "tags",
    "account",
    "create_at",
    "create_by",
    "update_at",
    "update_by",
)

_DEFAULT_TIMEOUT = 30
_MAX_TIMEOUT = 3600 * 24
_FULLWIDTH_COMMA = "\uff0c"


def _where(where: str) -> str:
    return f" WHERE {where}" if where.strip() else ""


def _page(limit: int, offset: int) -> tuple[str, list[int]]:
    """LIMIT/OFFSET clause; non-positive values mean no limit and no offset."""
    if limit <= 0 and offset <= 0:
        return "", []
    return " LIMIT ? OFFSET ?", [limit if limit > 0 else -1, max(offset, 0)]


def _query_filter(group_id: int, query: str) -> tuple[str, list[Any]]:
    clauses = ["group_id = ?"]
    params: list[Any] = [group_id]
    for word in query.split():
        pattern = f"%{word}%"
        clauses.append("(title like ? or tags like ?)")
        params.extend((pattern, pattern))
    return " AND ".join(clauses), params


def _insert_hosts(db: Database, tpl_id: int, hosts: list[str]) -> None:
    for host in hosts:
        host = host.strip()
        if host:
            db.insert("task_tpl_host", {"id": tpl_id, "host": host})


@dataclass
class TaskTpl:
    id: int = 0
    group_id: int = 0
    title: str = ""
    batch: int = 0
    tolerance: int = 0
    timeout: int = 0
    pause: str = ""
    script: str = ""
    args: str = ""
    tags: str = ""
    account: str = ""
    create_at: int = 0
    create_by: str = ""
    update_at: int = 0
    update_by: str = ""
    tags_json: list[str] = field(default_factory=list)

    def _save_fields(self, values: dict[str, Any]) -> None:
        for name, value in values.items():
            setattr(self, name, value)

    def clean_fields(self) -> None:
        """Validate and normalise the template's fields."""
        if self.batch < 0:
            raise ModelError("arg(batch) should be nonnegative")
        if self.tolerance < 0:
            raise ModelError("arg(tolerance) should be nonnegative")
        if self.timeout < 0:
            raise ModelError("arg(timeout) should be nonnegative")
        if self.timeout == 0:
            self.timeout = _DEFAULT_TIMEOUT
        if self.timeout > _MAX_TIMEOUT:
            raise ModelError("arg(timeout) longer than one day")

        self.pause = self.pause.replace(_FULLWIDTH_COMMA, ",").replace(" ", "")
        self.args = self.args.replace(_FULLWIDTH_COMMA, ",")
        self.tags = self.tags.replace(_FULLWIDTH_COMMA, ",")

        if self.title == "":
            raise ModelError("arg(title) is required")
        if is_dangerous(self.title):
            raise ModelError("arg(title) is dangerous")
        if self.script == "":
            raise ModelError("arg(script) is required")
        if is_dangerous(self.args):
            raise ModelError("arg(args) is dangerous")
        if is_dangerous(self.pause):
            raise ModelError("arg(pause) is dangerous")
        if is_dangerous(self.tags):
            raise ModelError("arg(tags) is dangerous")

    def save(self, db: Database, hosts: list[str]) -> None:
        """Create the template and its host list."""
        self.clean_fields()
        if db.count("task_tpl", "group_id = ? and title = ?", (self.group_id, self.title)) > 0:
            raise ModelError("task template already exists")
        with db.transaction():
            values: dict[str, Any] = {c: getattr(self, c) for c in _COLUMNS}
            if self.id:
                values["id"] = self.id
            self.id = db.insert("task_tpl", values)
            _insert_hosts(db, self.id, hosts)

    def hosts(self, db: Database) -> list[str]:
        rows = db.query("SELECT host FROM task_tpl_host WHERE id = ? ORDER BY ii", (self.id,))
        return [row["host"] for row in rows]

    def update(self, db: Database, hosts: list[str]) -> None:
        """Rewrite the template's fields and replace its host list."""
        self.clean_fields()
        if (
            db.count(
                "task_tpl",
                "group_id = ? and title = ? and id <> ?",
                (self.group_id, self.title, self.id),
            )
            > 0
        ):
            raise ModelError("task template already exists")
        with db.transaction():
            db.update(
                "task_tpl",
                {
                    "title": self.title,
                    "batch": self.batch,
                    "tolerance": self.tolerance,
                    "timeout": self.timeout,
                    "pause": self.pause,
                    "script": self.script,
                    "args": self.args,
                    "tags": self.tags,
                    "account": self.account,
                    "update_by": self.update_by,
                    "update_at": self.update_at,
                },
                "id = ?",
                (self.id,),
            )
            db.delete("task_tpl_host", "id = ?", (self.id,))
            _insert_hosts(db, self.id, hosts)

    def delete(self, db: Database) -> None:
        with db.transaction():
            db.delete("task_tpl_host", "id = ?", (self.id,))
            db.delete("task_tpl", "id = ?", (self.id,))

    def add_tags(self, db: Database, tags: list[str], update_by: str) -> None:
        """Add tags not yet present; stored sorted and space-terminated."""
        for tag in tags:
            if tag + " " not in self.tags:
                self.tags += tag + " "
        values = {
            "tags": " ".join(sorted(self.tags.split())) + " ",
            "update_by": update_by,
            "update_at": int(time.time()),
        }
        db.update("task_tpl", values, "id = ?", (self.id,))
        self._save_fields(values)

    def del_tags(self, db: Database, tags: list[str], update_by: str) -> None:
        for tag in tags:
            self.tags = self.tags.replace(tag + " ", "")
        values = {
            "tags": self.tags,
            "update_by": update_by,
            "update_at": int(time.time()),
        }
        db.update("task_tpl", values, "id = ?", (self.id,))
        self._save_fields(values)

    def update_group(self, db: Database, group_id: int, update_by: str) -> None:
        values = {
            "group_id": group_id,
            "update_by": update_by,
            "update_at": int(time.time()),
        }
        db.update("task_tpl", values, "id = ?", (self.id,))
        self._save_fields(values)


def _from_row(row: dict[str, Any]) -> TaskTpl:
    tpl = TaskTpl(**row)
    tpl.tags_json = tpl.tags.split()
    return tpl


def task_tpl_total(db: Database, group_id: int, query: str = "") -> int:
    where, params = _query_filter(group_id, query)
    return db.count("task_tpl", where, params)


def task_tpl_gets(
    db: Database, group_id: int, query: str, limit: int, offset: int
) -> list[TaskTpl]:
    where, params = _query_filter(group_id, query)
    page, page_params = _page(limit, offset)
    rows = db.query(
        f"SELECT * FROM task_tpl WHERE {where} ORDER BY title{page}", params + page_params
    )
    return [_from_row(row) for row in rows]


def task_tpl_get(db: Database, where: str, *args) -> TaskTpl | None:
    rows = db.query(f"SELECT * FROM task_tpl{_where(where)}", args)
    return _from_row(rows[0]) if rows else None