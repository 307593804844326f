"""Alert events kept in history, both firing and recovered."""

from __future__ import annotations

import re
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any

from nightingale.db import Database, ModelError
from nightingale.user_group import UserGroup, user_group_get_by_id

_COLUMNS = (
    "is_recovered",
    "cluster",
    "group_id",
    "group_name",
    "hash",
    "rule_id",
    "rule_name",
    "rule_note",
    "severity",
    "prom_for_duration",
    "prom_ql",
    "prom_eval_interval",
    "callbacks",
    "runbook_url",
    "notify_recovered",
    "notify_channels",
    "notify_groups",
    "target_ident",
    "target_note",
    "trigger_time",
    "trigger_value",
    "recover_time",
    "last_eval_time",
    "tags",
)

_INT_RE = re.compile(r"[+-]?[0-9]+")


def _parse_int(text: str) -> int | None:
    """Parse a signed 64-bit decimal integer; None when it is not one."""
    if not _INT_RE.fullmatch(text):
        return None
    value = int(text)
    if not -(2**63) <= value < 2**63:
        return None
    return value


def _page(limit: int, offset: int) -> tuple[str, list[int]]:
    if limit <= 0 and offset <= 0:
        return "", []
    return " LIMIT ? OFFSET ?", [limit if limit > 0 else -1, max(offset, 0)]


def _filters(
    bgid: int,
    stime: int,
    etime: int,
    severity: int,
    recovered: int,
    clusters: list[str],
    query: str,
) -> tuple[str, list[Any]]:
    clauses = ["last_eval_time between ? and ?"]
    params: list[Any] = [stime, etime]
    if bgid > 0:
        clauses.append("group_id = ?")
        params.append(bgid)
    if severity >= 0:
        clauses.append("severity = ?")
        params.append(severity)
    if recovered >= 0:
        clauses.append("is_recovered = ?")
        params.append(recovered)
    if clusters:
        clauses.append("cluster in ?")
        params.append(list(clusters))
    for word in query.split():
        pattern = f"%{word}%"
        clauses.append("(rule_name like ? or tags like ?)")
        params.extend((pattern, pattern))
    return " AND ".join(clauses), params


@dataclass
class AlertHisEvent:
    id: int = 0
    is_recovered: int = 0
    cluster: str = ""
    group_id: int = 0
    group_name: str = ""
    hash: str = ""
    rule_id: int = 0
    rule_name: str = ""
    rule_note: str = ""
    severity: int = 0
    prom_for_duration: int = 0
    prom_ql: str = ""
    prom_eval_interval: int = 0
    callbacks: str = ""
    runbook_url: str = ""
    notify_recovered: int = 0
    notify_channels: str = ""
    notify_groups: str = ""
    target_ident: str = ""
    target_note: str = ""
    trigger_time: int = 0
    trigger_value: str = ""
    recover_time: int = 0
    last_eval_time: int = 0
    tags: str = ""
    callbacks_json: list[str] = field(default_factory=list)
    notify_channels_json: list[str] = field(default_factory=list)
    notify_groups_json: list[str] = field(default_factory=list)
    notify_groups_obj: list[UserGroup] = field(default_factory=list)
    tags_json: list[str] = field(default_factory=list)

    def add(self, db: Database) -> None:
        values: dict[str, Any] = {c: getattr(self, c) for c in _COLUMNS}
        if self.id:
            values["id"] = self.id
        self.id = db.insert("alert_his_event", values)

    def db2fe(self) -> None:
        """Split the stored space- and ",,"-separated columns into lists."""
        self.notify_channels_json = self.notify_channels.split()
        self.notify_groups_json = self.notify_groups.split()
        self.callbacks_json = self.callbacks.split()
        self.tags_json = self.tags.split(",,")

    def fill_notify_groups(self, db: Database, cache: dict[int, UserGroup]) -> None:
        """Resolve notify group ids to groups; unparsable or deleted ids are skipped."""
        if not self.notify_groups_json:
            self.notify_groups_obj = []
            return
        for text in self.notify_groups_json:
            group_id = _parse_int(text)
            if group_id is None:
                continue
            if group_id in cache:
                self.notify_groups_obj.append(cache[group_id])
                continue
            group = user_group_get_by_id(db, group_id)
            if group is not None:
                self.notify_groups_obj.append(group)
                cache[group_id] = group


def alert_his_event_total(
    db: Database,
    bgid: int,
    stime: int,
    etime: int,
    severity: int,
    recovered: int,
    clusters: list[str],
    query: str,
) -> int:
    where, params = _filters(bgid, stime, etime, severity, recovered, clusters, query)
    return db.count("alert_his_event", where, params)


def alert_his_event_gets(
    db: Database,
    bgid: int,
    stime: int,
    etime: int,
    severity: int,
    recovered: int,
    clusters: list[str],
    query: str,
    limit: int,
    offset: int,
) -> list[AlertHisEvent]:
    where, params = _filters(bgid, stime, etime, severity, recovered, clusters, query)
    page, page_params = _page(limit, offset)
    rows = db.query(
        f"SELECT * FROM alert_his_event WHERE {where} ORDER BY id DESC{page}",
        params + page_params,
    )
    events = [AlertHisEvent(**row) for row in rows]
    for event in events:
        event.db2fe()
    return events


def alert_his_event_get(db: Database, where: str, *args) -> AlertHisEvent | None:
    clause = f" WHERE {where}" if where.strip() else ""
    rows = db.query(f"SELECT * FROM alert_his_event{clause}", args)
    if not rows:
        return None
    event = AlertHisEvent(**rows[0])
    event.db2fe()
    with suppress(ModelError):
        event.fill_notify_groups(db, {})
    return event


def alert_his_event_get_by_id(db: Database, event_id: int) -> AlertHisEvent | None:
    return alert_his_event_get(db, "id = ?", event_id)