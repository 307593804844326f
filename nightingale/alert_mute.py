"""Mute rules that silence alerts whose tags match filters."""

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass, field
from typing import Any

from nightingale.db import Database, ModelError, Statistics
from nightingale.jsonfields import JSONArr

_COLUMNS = ("group_id", "cluster", "cause", "btime", "etime", "create_by", "create_at")


@dataclass
class TagFilter:
    """A tag condition: func is "==", "=~" (regexp) or "in" (space-separated set)."""

    key: str = ""
    func: str = ""
    value: str = ""
    regexp: re.Pattern[str] | None = None
    vset: set[str] | None = None


def parse_tag_filters(tags: JSONArr | bytes | str) -> list[TagFilter]:
    """Decode a JSON array of tag filters, compiling regexps and value sets."""
    raw = tags.raw if isinstance(tags, JSONArr) else tags
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise ModelError(f"invalid tags: {exc}") from exc
    if data is None:
        return []
    if not isinstance(data, list):
        raise ModelError("invalid tags: not a JSON array")

    filters = []
    for item in data:
        if item is None:
            filters.append(TagFilter())
            continue
        if not isinstance(item, dict):
            raise ModelError("invalid tags: element is not an object")
        values = {}
        for name in ("key", "func", "value"):
            value = item.get(name)
            if value is None:
                value = ""
            if not isinstance(value, str):
                raise ModelError(f"invalid tags: {name} is not a string")
            values[name] = value
        tag_filter = TagFilter(**values)
        if tag_filter.func == "=~":
            try:
                tag_filter.regexp = re.compile(tag_filter.value)
            except re.error as exc:
                raise ModelError(f"invalid regexp {tag_filter.value!r}: {exc}") from exc
        elif tag_filter.func == "in":
            tag_filter.vset = set(tag_filter.value.split())
        filters.append(tag_filter)
    return filters


@dataclass
class AlertMute:
    id: int = 0
    group_id: int = 0
    cluster: str = ""
    tags: JSONArr = field(default_factory=JSONArr)
    cause: str = ""
    btime: int = 0
    etime: int = 0
    create_by: str = ""
    create_at: int = 0
    itags: list[TagFilter] = field(default_factory=list)

    def verify(self) -> None:
        if self.group_id <= 0:
            raise ModelError("group_id invalid")
        if self.cluster == "":
            raise ModelError("cluster invalid")
        if self.etime <= self.btime:
            raise ModelError(f"Oops... etime({self.etime}) <= btime({self.btime})")
        self.parse()
        if not self.itags:
            raise ModelError("tags is blank")

    def parse(self) -> None:
        self.itags = parse_tag_filters(self.tags)

    def add(self, db: Database) -> None:
        self.verify()
        self.create_at = int(time.time())
        values: dict[str, Any] = {c: getattr(self, c) for c in _COLUMNS}
        values["tags"] = self.tags.to_db()
        self.id = db.insert("alert_mute", values)


def _from_row(row: dict[str, Any]) -> AlertMute:
    return AlertMute(**{**row, "tags": JSONArr.from_db(row["tags"])})


def alert_mute_gets(db: Database, group_id: int) -> list[AlertMute]:
    rows = db.query("SELECT * FROM alert_mute WHERE group_id = ? ORDER BY id DESC", (group_id,))
    return [_from_row(row) for row in rows]


def alert_mute_del(db: Database, ids: list[int]) -> None:
    if not ids:
        return
    db.delete("alert_mute", "id in ?", (list(ids),))


def alert_mute_statistics(db: Database, cluster: str = "") -> Statistics:
    if cluster:
        return db.statistics("alert_mute", "create_at", "cluster = ?", (cluster,))
    return db.statistics("alert_mute", "create_at")


def alert_mute_gets_by_cluster(db: Database, cluster: str = "") -> list[AlertMute]:
    """Drop mutes that end within 30 seconds, then list the cluster's mutes."""
    db.delete("alert_mute", "etime < ?", (int(time.time()) + 30,))
    if cluster:
        rows = db.query("SELECT * FROM alert_mute WHERE cluster = ?", (cluster,))
    else:
        rows = db.query("SELECT * FROM alert_mute")
    return [_from_row(row) for row in rows]