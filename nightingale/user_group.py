"""User groups (teams) and their membership."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from nightingale.db import Database, ModelError, Statistics, is_dangerous

_COLUMNS = ("name", "note", "create_at", "create_by", "update_at", "update_by")


def _selected(obj: Any, columns: tuple[str, ...], fields: tuple[str, ...]) -> dict[str, Any]:
    chosen = columns if "*" in fields else fields
    unknown = [name for name in chosen if name not in columns]
    if unknown:
        raise ModelError(f"unknown column(s): {', '.join(unknown)}")
    return {name: getattr(obj, name) for name in chosen}


@dataclass
class UserGroupMember:
    group_id: int = 0
    user_id: int = 0


@dataclass
class UserGroup:
    id: int = 0
    name: str = ""
    note: str = ""
    create_at: int = 0
    create_by: str = ""
    update_at: int = 0
    update_by: str = ""
    user_ids: list[int] = field(default_factory=list)

    def verify(self) -> None:
        if is_dangerous(self.name):
            raise ModelError("Name has invalid characters")
        if is_dangerous(self.note):
            raise ModelError("Note has invalid characters")

    def update(self, db: Database, *args: str) -> None:
        """Write the named columns ("*" for all) to the database."""
        self.verify()
        db.update("user_group", _selected(self, _COLUMNS, args), "id = ?", (self.id,))

    def add(self, db: Database) -> None:
        self.verify()
        try:
            num = user_group_count(db, "name = ?", self.name)
        except ModelError as exc:
            raise ModelError(f"failed to count user-groups: {exc}") from exc
        if num > 0:
            raise ModelError("UserGroup already exists")
        now = int(time.time())
        self.create_at = now
        self.update_at = now
        self.id = db.insert("user_group", _selected(self, _COLUMNS, ("*",)))

    def delete(self, db: Database) -> None:
        with db.transaction():
            db.delete("user_group_member", "group_id = ?", (self.id,))
            db.delete("user_group", "id = ?", (self.id,))

    def add_members(self, db: Database, user_ids: list[int]) -> None:
        """Add existing users to the group; unknown ids are skipped."""
        for user_id in user_ids:
            if not db.exists("users", "id = ?", (user_id,)):
                continue
            user_group_member_add(db, self.id, user_id)

    def del_members(self, db: Database, user_ids: list[int]) -> None:
        user_group_member_del(db, self.id, user_ids)


def user_group_count(db: Database, where: str, *args) -> int:
    return db.count("user_group", where, args)


def user_group_get(db: Database, where: str, *args) -> UserGroup | None:
    rows = db.query(f"SELECT * FROM user_group WHERE {where}", args)
    return UserGroup(**rows[0]) if rows else None


def user_group_get_by_id(db: Database, group_id: int) -> UserGroup | None:
    return user_group_get(db, "id = ?", group_id)


def user_group_get_by_ids(db: Database, ids: list[int]) -> list[UserGroup]:
    if not ids:
        return []
    rows = db.query("SELECT * FROM user_group WHERE id in ? ORDER BY name", (list(ids),))
    return [UserGroup(**row) for row in rows]


def user_group_get_all(db: Database) -> list[UserGroup]:
    return [UserGroup(**row) for row in db.query("SELECT * FROM user_group")]


def user_group_statistics(db: Database) -> Statistics:
    return db.statistics("user_group", "update_at")


def my_group_ids(db: Database, user_id: int) -> list[int]:
    rows = db.query("SELECT group_id FROM user_group_member WHERE user_id = ?", (user_id,))
    return [row["group_id"] for row in rows]


def member_ids(db: Database, group_id: int) -> list[int]:
    rows = db.query("SELECT user_id FROM user_group_member WHERE group_id = ?", (group_id,))
    return [row["user_id"] for row in rows]


def user_group_member_count(db: Database, where: str, *args) -> int:
    return db.count("user_group_member", where, args)


def user_group_member_add(db: Database, group_id: int, user_id: int) -> None:
    """Add a membership unless it already exists."""
    if user_group_member_count(db, "user_id = ? and group_id = ?", user_id, group_id) > 0:
        return
    db.insert("user_group_member", {"group_id": group_id, "user_id": user_id})


def user_group_member_del(db: Database, group_id: int, user_ids: list[int]) -> None:
    if not user_ids:
        return
    db.delete("user_group_member", "group_id = ? and user_id in ?", (group_id, list(user_ids)))


def user_group_member_get_all(db: Database) -> list[UserGroupMember]:
    return [UserGroupMember(**row) for row in db.query("SELECT * FROM user_group_member")]