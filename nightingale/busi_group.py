"""Business groups: the unit that owns targets, rules, dashboards and scripts."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from nightingale.busi_group_member import (
    BusiGroupMember,
    busi_group_member_add,
    busi_group_member_count,
    busi_group_member_del,
    busi_group_member_gets_by_busi_group_id,
)
from nightingale.db import Database, ModelError, Statistics
from nightingale.user_group import UserGroup, user_group_get, user_group_get_by_id

_COLUMNS = (
    "name",
    "label_enable",
    "label_value",
    "create_at",
    "create_by",
    "update_at",
    "update_by",
)

# Tables whose rows keep a business group from being deleted, with the message shown.
_DEPENDENTS = (
    ("alert_mute", "Some alert mutes still in the BusiGroup"),
    ("alert_subscribe", "Some alert subscribes still in the BusiGroup"),
    ("target", "Some targets still in the BusiGroup"),
    ("dashboard", "Some dashboards still in the BusiGroup"),
    ("task_tpl", "Some recovery scripts still in the BusiGroup"),
    ("alert_rule", "Some alert rules still in the BusiGroup"),
)


def _where(where: str) -> str:
    return f" WHERE {where}" if where.strip() else ""


@dataclass
class UserGroupWithPermFlag:
    """A user group together with its permission on a business group."""

    user_group: UserGroup | None = None
    perm_flag: str = ""


@dataclass
class BusiGroup:
    id: int = 0
    name: str = ""
    label_enable: int = 0
    label_value: str = ""
    create_at: int = 0
    create_by: str = ""
    update_at: int = 0
    update_by: str = ""
    user_groups: list[UserGroupWithPermFlag] = field(default_factory=list)

    def _touch(self, db: Database, values: dict[str, Any]) -> None:
        db.update("busi_group", values, "id = ?", (self.id,))
        for name, value in values.items():
            setattr(self, name, value)

    def fill_user_groups(self, db: Database) -> None:
        """Load the user groups that are members, with their permission flags."""
        for member in busi_group_member_gets_by_busi_group_id(db, self.id):
            self.user_groups.append(
                UserGroupWithPermFlag(
                    user_group=user_group_get_by_id(db, member.user_group_id),
                    perm_flag=member.perm_flag,
                )
            )

    def delete(self, db: Database) -> None:
        """Delete an empty group with its memberships and active alert events."""
        for table, message in _DEPENDENTS:
            if db.exists(table, "group_id = ?", (self.id,)):
                raise ModelError(message)
        with db.transaction():
            db.delete("busi_group_member", "busi_group_id = ?", (self.id,))
            db.delete("busi_group", "id = ?", (self.id,))
            db.delete("alert_cur_event", "group_id = ?", (self.id,))

    def add_members(
        self, db: Database, members: list[BusiGroupMember], username: str
    ) -> None:
        for member in members:
            busi_group_member_add(db, member)
        self._touch(db, {"update_at": int(time.time()), "update_by": username})

    def del_members(
        self, db: Database, members: list[BusiGroupMember], username: str
    ) -> None:
        """Remove memberships; the last remaining team cannot be removed."""
        for member in members:
            others = busi_group_member_count(
                db,
                "busi_group_id = ? and user_group_id <> ?",
                member.busi_group_id,
                member.user_group_id,
            )
            if others == 0:
                raise ModelError("The business group must retain at least one team")
            busi_group_member_del(
                db,
                "busi_group_id = ? and user_group_id = ?",
                member.busi_group_id,
                member.user_group_id,
            )
        self._touch(db, {"update_at": int(time.time()), "update_by": username})

    def update(
        self,
        db: Database,
        name: str,
        label_enable: int,
        label_value: str,
        update_by: str,
    ) -> None:
        if (
            self.name == name
            and self.label_enable == label_enable
            and self.label_value == label_value
        ):
            return

        if _exists_checked(db, "name = ? and id <> ?", name, self.id):
            raise ModelError("BusiGroup already exists")

        if label_enable == 1:
            if _exists_checked(
                db, "label_enable = 1 and label_value = ? and id <> ?", label_value, self.id
            ):
                raise ModelError("BusiGroup already exists")
        else:
            label_value = ""

        self._touch(
            db,
            {
                "name": name,
                "label_enable": label_enable,
                "label_value": label_value,
                "update_at": int(time.time()),
                "update_by": update_by,
            },
        )


def _exists_checked(db: Database, where: str, *args) -> bool:
    try:
        return busi_group_exists(db, where, *args)
    except ModelError as exc:
        raise ModelError(f"failed to count BusiGroup: {exc}") from exc


def busi_group_get_map(db: Database) -> dict[int, BusiGroup]:
    return {row["id"]: BusiGroup(**row) for row in db.query("SELECT * FROM busi_group")}


def busi_group_get(db: Database, where: str, *args) -> BusiGroup | None:
    rows = db.query(f"SELECT * FROM busi_group{_where(where)}", args)
    return BusiGroup(**rows[0]) if rows else None


def busi_group_get_by_id(db: Database, group_id: int) -> BusiGroup | None:
    return busi_group_get(db, "id = ?", group_id)


def busi_group_exists(db: Database, where: str, *args) -> bool:
    return db.count("busi_group", where, args) > 0


def busi_group_add(
    db: Database,
    name: str,
    label_enable: int,
    label_value: str,
    members: list[BusiGroupMember],
    creator: str,
) -> BusiGroup:
    """Create a business group with its initial member user groups."""
    if _exists_checked(db, "name = ?", name):
        raise ModelError("BusiGroup already exists")

    if label_enable == 1:
        if _exists_checked(db, "label_enable = 1 and label_value = ?", label_value):
            raise ModelError("BusiGroup already exists")
    else:
        label_value = ""

    for member in members:
        try:
            group = user_group_get(db, "id = ?", member.user_group_id)
        except ModelError as exc:
            raise ModelError(f"failed to get UserGroup: {exc}") from exc
        if group is None:
            raise ModelError("Some UserGroup id not exists")

    now = int(time.time())
    obj = BusiGroup(
        name=name,
        label_enable=label_enable,
        label_value=label_value,
        create_at=now,
        create_by=creator,
        update_at=now,
        update_by=creator,
    )
    with db.transaction():
        obj.id = db.insert("busi_group", {c: getattr(obj, c) for c in _COLUMNS})
        for member in members:
            db.insert(
                "busi_group_member",
                {
                    "busi_group_id": obj.id,
                    "user_group_id": member.user_group_id,
                    "perm_flag": member.perm_flag,
                },
            )
    return obj


def busi_group_statistics(db: Database) -> Statistics:
    return db.statistics("busi_group", "update_at")