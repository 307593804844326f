"""Aggregation rules used to group active alerts into cards."""

from __future__ import annotations

import time
from dataclasses import dataclass

from nightingale.db import Database, ModelError

_COLUMNS = ("name", "rule", "cate", "create_at", "create_by", "update_at")

VALID_FIELDS = (
    "cluster",
    "group_id",
    "group_name",
    "rule_id",
    "rule_name",
    "severity",
    "runbook_url",
    "target_ident",
    "target_note",
)


def _where(where: str) -> str:
    return f" WHERE {where}" if where.strip() else ""


@dataclass
class AlertAggrView:
    id: int = 0
    name: str = ""
    rule: str = ""
    cate: int = 0
    create_at: int = 0
    create_by: int = 0
    update_at: int = 0

    def verify(self) -> None:
        """Check a rule of the form "field:x::tagkey:y"."""
        self.name = self.name.strip()
        if self.name == "":
            raise ModelError("name is blank")
        self.rule = self.rule.strip()
        if self.rule == "":
            raise ModelError("rule is blank")
        for part in self.rule.split("::"):
            pair = part.split(":")
            if len(pair) != 2 or pair[0] not in ("field", "tagkey"):
                raise ModelError("rule invalid")
            if pair[0] == "field" and pair[1] not in VALID_FIELDS:
                raise ModelError(f"unsupported field: {pair[1]}")

    def add(self, db: Database) -> None:
        self.verify()
        now = int(time.time())
        self.create_at = now
        self.update_at = now
        self.cate = 1
        self.id = db.insert("alert_aggr_view", {c: getattr(self, c) for c in _COLUMNS})

    def update(self, db: Database, name: str, rule: str) -> None:
        self.verify()
        self.update_at = int(time.time())
        self.name = name
        self.rule = rule
        db.update(
            "alert_aggr_view",
            {"name": name, "rule": rule, "update_at": self.update_at},
            "id = ?",
            (self.id,),
        )


def alert_aggr_view_del(db: Database, ids: list[int], create_by: int) -> None:
    """Delete views owned by the given user."""
    if not ids:
        return
    db.delete("alert_aggr_view", "id in ? and create_by = ?", (list(ids), create_by))


def alert_aggr_view_gets(db: Database, create_by: int) -> list[AlertAggrView]:
    """A user's own views and the shared ones, ordered by category then name."""
    rows = db.query(
        "SELECT * FROM alert_aggr_view WHERE create_by = ? or cate = 0", (create_by,)
    )
    views = [AlertAggrView(**row) for row in rows]
    views.sort(key=lambda view: (view.cate, view.name))
    return views


def alert_aggr_view_get(db: Database, where: str, *args) -> AlertAggrView | None:
    rows = db.query(f"SELECT * FROM alert_aggr_view{_where(where)}", args)
    return AlertAggrView(**rows[0]) if rows else None