"""Monitored targets (hosts) with their tags, notes and business group."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from nightingale.busi_group import BusiGroup, busi_group_get_by_id
from nightingale.db import Database, ModelError, Statistics

_COLUMNS = ("group_id", "cluster", "ident", "note", "tags", "update_at")


def _where(where: str) -> str:
    return f" WHERE {where}" if where.strip() else ""


def _page(limit: int, offset: int) -> tuple[str, list[int]]:
    """LIMIT/OFFSET clause; non-positive values mean no limit and no offset."""
    if limit <= 0 and offset <= 0:
        return "", []
    return " LIMIT ? OFFSET ?", [limit if limit > 0 else -1, max(offset, 0)]


def _filters(bgid: int, clusters: list[str], query: str) -> tuple[str, list[Any]]:
    clauses: list[str] = []
    params: list[Any] = []
    if bgid >= 0:
        clauses.append("group_id = ?")
        params.append(bgid)
    if clusters:
        clauses.append("cluster in ?")
        params.append(list(clusters))
    for word in query.split():
        pattern = f"%{word}%"
        clauses.append("(ident like ? or note like ? or tags like ?)")
        params.extend((pattern, pattern, pattern))
    return " AND ".join(clauses), params


@dataclass
class Target:
    id: int = 0
    group_id: int = 0
    cluster: str = ""
    ident: str = ""
    note: str = ""
    tags: str = ""
    update_at: int = 0
    group_obj: BusiGroup | None = None
    tags_json: list[str] = field(default_factory=list)
    tags_map: dict[str, str] = field(default_factory=dict)

    def _store(self, db: Database, values: dict[str, Any]) -> None:
        db.update("target", values, "id = ?", (self.id,))
        for name, value in values.items():
            setattr(self, name, value)

    def add(self, db: Database) -> None:
        """Insert the target, or move an existing one with this ident to its cluster."""
        existing = target_get(db, "ident = ?", self.ident)
        if existing is None:
            values: dict[str, Any] = {c: getattr(self, c) for c in _COLUMNS}
            if self.id:
                values["id"] = self.id
            self.id = db.insert("target", values)
            return
        if existing.cluster != self.cluster:
            db.update(
                "target",
                {"cluster": self.cluster, "update_at": self.update_at},
                "ident = ?",
                (self.ident,),
            )

    def fill_group(self, db: Database, cache: dict[int, BusiGroup | None]) -> None:
        """Attach the business group object, looking it up through the cache."""
        if self.group_id <= 0:
            return
        if self.group_id in cache:
            self.group_obj = cache[self.group_id]
            return
        try:
            group = busi_group_get_by_id(db, self.group_id)
        except ModelError as exc:
            raise ModelError(f"failed to get busi group: {exc}") from exc
        self.group_obj = group
        cache[self.group_id] = group

    def add_tags(self, db: Database, tags: list[str]) -> None:
        """Add tags not yet present; stored sorted and space-terminated."""
        for tag in tags:
            if tag + " " not in self.tags:
                self.tags += tag + " "
        self._store(
            db,
            {
                "tags": " ".join(sorted(self.tags.split())) + " ",
                "update_at": int(time.time()),
            },
        )

    def del_tags(self, db: Database, tags: list[str]) -> None:
        for tag in tags:
            self.tags = self.tags.replace(tag + " ", "")
        self._store(db, {"tags": self.tags, "update_at": int(time.time())})


def _from_row(row: dict[str, Any]) -> Target:
    return Target(**row)


def target_statistics(db: Database, cluster: str = "") -> Statistics:
    if cluster:
        return db.statistics("target", "update_at", "cluster = ?", (cluster,))
    return db.statistics("target", "update_at")


def target_del(db: Database, idents: list[str]) -> None:
    if not idents:
        raise ValueError("idents empty")
    db.delete("target", "ident in ?", (list(idents),))


def target_total(db: Database, bgid: int, clusters: list[str], query: str = "") -> int:
    where, params = _filters(bgid, clusters, query)
    return db.count("target", where, params)


def target_gets(
    db: Database, bgid: int, clusters: list[str], query: str, limit: int, offset: int
) -> list[Target]:
    where, params = _filters(bgid, clusters, query)
    page, page_params = _page(limit, offset)
    rows = db.query(
        f"SELECT * FROM target{_where(where)} ORDER BY ident{page}", params + page_params
    )
    targets = [_from_row(row) for row in rows]
    for target in targets:
        target.tags_json = target.tags.split()
    return targets


def target_gets_by_cluster(db: Database, cluster: str = "") -> list[Target]:
    if cluster:
        rows = db.query("SELECT * FROM target WHERE cluster = ?", (cluster,))
    else:
        rows = db.query("SELECT * FROM target")
    return [_from_row(row) for row in rows]


def target_update_note(db: Database, idents: list[str], note: str) -> None:
    db.update(
        "target",
        {"note": note, "update_at": int(time.time())},
        "ident in ?",
        (list(idents),),
    )


def target_update_bgid(
    db: Database, idents: list[str], bgid: int, clear_tags: bool = False
) -> None:
    values: dict[str, Any] = {"group_id": bgid, "update_at": int(time.time())}
    if clear_tags:
        values["tags"] = ""
    db.update("target", values, "ident in ?", (list(idents),))


def target_get(db: Database, where: str, *args) -> Target | None:
    rows = db.query(f"SELECT * FROM target{_where(where)}", args)
    if not rows:
        return None
    target = _from_row(rows[0])
    target.tags_json = target.tags.split()
    return target


def target_get_by_id(db: Database, target_id: int) -> Target | None:
    return target_get(db, "id = ?", target_id)


def target_get_by_ident(db: Database, ident: str) -> Target | None:
    return target_get(db, "ident = ?", ident)


def target_get_tags(db: Database, idents: list[str]) -> list[str]:
    """Distinct tags of the given targets, sorted."""
    if not idents:
        return []
    rows = db.query(
        "SELECT DISTINCT tags FROM target WHERE ident in ?", (list(idents),)
    )
    found = {tag for row in rows for tag in (row["tags"] or "").split()}
    return sorted(found)


def target_idents(db: Database, ids: list[int]) -> list[str]:
    if not ids:
        return []
    rows = db.query("SELECT ident FROM target WHERE id in ?", (list(ids),))
    return [row["ident"] for row in rows]


def target_ids(db: Database, idents: list[str]) -> list[int]:
    if not idents:
        return []
    rows = db.query("SELECT id FROM target WHERE ident in ?", (list(idents),))
    return [row["id"] for row in rows]


def idents_filter(db: Database, idents: list[str], where: str, *args) -> list[str]:
    """The given idents whose targets also satisfy the extra condition."""
    if not idents:
        return []
    sql = "SELECT ident FROM target WHERE ident in ?"
    if where.strip():
        sql += f" AND ({where})"
    rows = db.query(sql, (list(idents), *args))
    return [row["ident"] for row in rows]