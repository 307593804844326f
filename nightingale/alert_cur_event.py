"""Alert events that are currently firing."""

from __future__ import annotations

import re
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any

from nightingale.alert_his_event import AlertHisEvent
from nightingale.db import Database, ModelError
from nightingale.user_group import UserGroup, user_group_get_by_id

_COLUMNS = (
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
    "tags",
)

_INT_RE = re.compile(r"[+-]?[0-9]+")


def _parse_int(text: str) -> int | None:
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
    bgid: int, stime: int, etime: int, severity: int, clusters: list[str], query: str
) -> tuple[str, list[Any]]:
    clauses = ["trigger_time between ? and ?"]
    params: list[Any] = [stime, etime]
    if bgid > 0:
        clauses.append("group_id = ?")
        params.append(bgid)
    if severity >= 0:
        clauses.append("severity = ?")
        params.append(severity)
    if clusters:
        clauses.append("cluster in ?")
        params.append(list(clusters))
    for word in query.split():
        pattern = f"%{word}%"
        clauses.append("(rule_name like ? or tags like ?)")
        params.extend((pattern, pattern))
    return " AND ".join(clauses), params


@dataclass
class AggrRule:
    """One part of an aggregation rule: type is "field" or "tagkey"."""

    type: str = ""
    value: str = ""


@dataclass
class AlertCurEvent:
    id: int = 0
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
    tags: str = ""
    callbacks_json: list[str] = field(default_factory=list)
    notify_channels_json: list[str] = field(default_factory=list)
    notify_groups_json: list[str] = field(default_factory=list)
    notify_groups_obj: list[UserGroup] = field(default_factory=list)
    tags_json: list[str] = field(default_factory=list)
    tags_map: dict[str, str] = field(default_factory=dict)
    is_recovered: bool = False
    notify_users_obj: list[Any] = field(default_factory=list)
    last_eval_time: int = 0
    last_sent_time: int = 0

    def add(self, db: Database) -> None:
        values: dict[str, Any] = {c: getattr(self, c) for c in _COLUMNS}
        if self.id:
            values["id"] = self.id
        self.id = db.insert("alert_cur_event", values)

    def gen_card_title(self, rules: list[AggrRule]) -> str:
        """Join the values the rules pick out with "::"; blanks become "Null"."""
        parts = []
        for rule in rules:
            value = ""
            if rule.type == "field":
                value = self.get_field(rule.value)
            if rule.type == "tagkey":
                value = self.get_tag_value(rule.value)
            parts.append(value or "Null")
        return "::".join(parts)

    def get_tag_value(self, tagkey: str) -> str:
        prefix = tagkey + "="
        for tag in self.tags_json:
            if prefix in tag:
                return tag[len(prefix):]
        return ""

    def get_field(self, field: str) -> str:  # noqa: F811
        getters = {
            "cluster": lambda: self.cluster,
            "group_id": lambda: str(self.group_id),
            "group_name": lambda: self.group_name,
            "rule_id": lambda: str(self.rule_id),
            "rule_name": lambda: self.rule_name,
            "severity": lambda: str(self.severity),
            "runbook_url": lambda: self.runbook_url,
            "target_ident": lambda: self.target_ident,
            "target_note": lambda: self.target_note,
        }
        getter = getters.get(field)
        return getter() if getter else ""

    def to_his(self) -> AlertHisEvent:
        """Build the history record of this event."""
        return AlertHisEvent(
            is_recovered=1 if self.is_recovered else 0,
            cluster=self.cluster,
            group_id=self.group_id,
            group_name=self.group_name,
            hash=self.hash,
            rule_id=self.rule_id,
            rule_name=self.rule_name,
            rule_note=self.rule_note,
            severity=self.severity,
            prom_for_duration=self.prom_for_duration,
            prom_ql=self.prom_ql,
            prom_eval_interval=self.prom_eval_interval,
            callbacks=self.callbacks,
            runbook_url=self.runbook_url,
            notify_recovered=self.notify_recovered,
            notify_channels=self.notify_channels,
            notify_groups=self.notify_groups,
            target_ident=self.target_ident,
            target_note=self.target_note,
            trigger_time=self.trigger_time,
            trigger_value=self.trigger_value,
            tags=self.tags,
            recover_time=self.last_eval_time if self.is_recovered else 0,
            last_eval_time=self.last_eval_time,
        )

    def db2fe(self) -> None:
        self.notify_channels_json = self.notify_channels.split()
        self.notify_groups_json = self.notify_groups.split()
        self.callbacks_json = self.callbacks.split()
        self.tags_json = self.tags.split(",,")

    def db2mem(self) -> None:
        """Prepare a loaded event for evaluation, building the tag map."""
        self.is_recovered = False
        self.db2fe()
        self.tags_map = {}
        for item in self.tags_json:
            pair = item.strip()
            if not pair:
                continue
            parts = pair.split("=")
            if len(parts) != 2:
                continue
            self.tags_map[parts[0]] = parts[1]

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


def _events(rows: list[dict[str, Any]]) -> list[AlertCurEvent]:
    return [AlertCurEvent(**row) for row in rows]


def alert_cur_event_total(
    db: Database,
    bgid: int,
    stime: int,
    etime: int,
    severity: int,
    clusters: list[str],
    query: str,
) -> int:
    where, params = _filters(bgid, stime, etime, severity, clusters, query)
    return db.count("alert_cur_event", where, params)


def alert_cur_event_gets(
    db: Database,
    bgid: int,
    stime: int,
    etime: int,
    severity: int,
    clusters: list[str],
    query: str,
    limit: int,
    offset: int,
) -> list[AlertCurEvent]:
    where, params = _filters(bgid, stime, etime, severity, clusters, query)
    page, page_params = _page(limit, offset)
    events = _events(
        db.query(
            f"SELECT * FROM alert_cur_event WHERE {where} ORDER BY id DESC{page}",
            params + page_params,
        )
    )
    for event in events:
        event.db2fe()
    return events


def alert_cur_event_del(db: Database, ids: list[int]) -> None:
    if not ids:
        return
    db.delete("alert_cur_event", "id in ?", (list(ids),))


def alert_cur_event_del_by_hash(db: Database, hash_: str) -> None:
    db.delete("alert_cur_event", "hash = ?", (hash_,))


def alert_cur_event_exists(db: Database, where: str, *args) -> bool:
    return db.exists("alert_cur_event", where, args)


def alert_cur_event_get(db: Database, where: str, *args) -> AlertCurEvent | None:
    clause = f" WHERE {where}" if where.strip() else ""
    rows = db.query(f"SELECT * FROM alert_cur_event{clause}", args)
    if not rows:
        return None
    event = AlertCurEvent(**rows[0])
    event.db2fe()
    with suppress(ModelError):
        event.fill_notify_groups(db, {})
    return event


def alert_cur_event_get_by_id(db: Database, event_id: int) -> AlertCurEvent | None:
    return alert_cur_event_get(db, "id = ?", event_id)


def alert_numbers(db: Database, bgids: list[int]) -> dict[int, int]:
    """Number of active events in each of the business groups."""
    if not bgids:
        return {}
    rows = db.query(
        "SELECT group_id, COUNT(*) AS group_count FROM alert_cur_event "
        "WHERE group_id in ? GROUP BY group_id",
        (list(bgids),),
    )
    return {row["group_id"]: row["group_count"] for row in rows}


def alert_cur_event_get_all(db: Database, cluster: str = "") -> list[AlertCurEvent]:
    if cluster:
        return _events(db.query("SELECT * FROM alert_cur_event WHERE cluster = ?", (cluster,)))
    return _events(db.query("SELECT * FROM alert_cur_event"))


def alert_cur_event_get_by_ids(db: Database, ids: list[int]) -> list[AlertCurEvent]:
    if not ids:
        return []
    events = _events(
        db.query("SELECT * FROM alert_cur_event WHERE id in ? ORDER BY id DESC", (list(ids),))
    )
    for event in events:
        event.db2fe()
    return events


def alert_cur_event_get_by_rule(db: Database, rule_id: int) -> list[AlertCurEvent]:
    return _events(db.query("SELECT * FROM alert_cur_event WHERE rule_id = ?", (rule_id,)))


def alert_cur_event_get_map(db: Database, cluster: str = "") -> dict[int, set[str]]:
    """Map each rule id to the hashes of its active events."""
    sql = "SELECT rule_id, hash FROM alert_cur_event"
    params: tuple = ()
    if cluster:
        sql += " WHERE cluster = ?"
        params = (cluster,)
    result: dict[int, set[str]] = {}
    for row in db.query(sql, params):
        result.setdefault(row["rule_id"], set()).add(row["hash"])
    return result