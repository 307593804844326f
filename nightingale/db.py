"""SQLite storage layer shared by the model modules."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

ADMIN_ROLE = "Admin"

_DANGEROUS_FRAGMENTS = ("<", ">", "&", "'", '"', "file://", "../")

_TYPES = {
    "id": "INTEGER PRIMARY KEY AUTOINCREMENT",
    "text": "TEXT NOT NULL DEFAULT ''",
    "int": "INTEGER NOT NULL DEFAULT 0",
    "blob": "BLOB",
}

_SCHEMA = {
    "configs": "id:id ckey:text cval:text",
    "role": "id:id name:text note:text",
    "role_operation": "role_name:text operation:text",
    "users": (
        "id:id username:text nickname:text password:text phone:text email:text "
        "portrait:text roles:text contacts:blob create_at:int create_by:text "
        "update_at:int update_by:text"
    ),
    "user_group": (
        "id:id name:text note:text create_at:int create_by:text update_at:int update_by:text"
    ),
    "user_group_member": "group_id:int user_id:int",
    "busi_group": (
        "id:id name:text label_enable:int label_value:text create_at:int "
        "create_by:text update_at:int update_by:text"
    ),
    "busi_group_member": "busi_group_id:int user_group_id:int perm_flag:text",
    "dashboard": (
        "id:id group_id:int name:text tags:text configs:text create_at:int "
        "create_by:text update_at:int update_by:text"
    ),
    "chart_group": "id:id dashboard_id:int name:text weight:int",
    "chart": "id:id group_id:int configs:text weight:int",
    "chart_share": "id:id cluster:text configs:text create_by:text create_at:int",
    "metric_description": "id:id metric:text description:text update_at:int",
    "metric_view": (
        "id:id name:text cate:int configs:text create_at:int create_by:int update_at:int"
    ),
    "alert_aggr_view": (
        "id:id name:text rule:text cate:int create_at:int create_by:int update_at:int"
    ),
    "alert_mute": (
        "id:id group_id:int cluster:text tags:blob cause:text btime:int etime:int "
        "create_by:text create_at:int"
    ),
    "alert_subscribe": (
        "id:id group_id:int cluster:text rule_id:int tags:blob redefine_severity:int "
        "new_severity:int redefine_channels:int new_channels:text user_group_ids:text "
        "create_by:text create_at:int update_by:text update_at:int"
    ),
    "alert_rule": (
        "id:id group_id:int cluster:text name:text note:text severity:int disabled:int "
        "prom_for_duration:int prom_ql:text prom_eval_interval:int enable_stime:text "
        "enable_etime:text enable_days_of_week:text enable_in_bg:int notify_recovered:int "
        "notify_channels:text notify_groups:text notify_repeat_step:int "
        "recover_duration:int callbacks:text runbook_url:text append_tags:text "
        "create_at:int create_by:text update_at:int update_by:text"
    ),
    "alert_cur_event": (
        "id:id cluster:text group_id:int group_name:text hash:text rule_id:int "
        "rule_name:text rule_note:text severity:int prom_for_duration:int prom_ql:text "
        "prom_eval_interval:int callbacks:text runbook_url:text notify_recovered:int "
        "notify_channels:text notify_groups:text target_ident:text target_note:text "
        "trigger_time:int trigger_value:text tags:text"
    ),
    "alert_his_event": (
        "id:id is_recovered:int cluster:text group_id:int group_name:text hash:text "
        "rule_id:int rule_name:text rule_note:text severity:int prom_for_duration:int "
        "prom_ql:text prom_eval_interval:int callbacks:text runbook_url:text "
        "notify_recovered:int notify_channels:text notify_groups:text "
        "target_ident:text target_note:text trigger_time:int trigger_value:text "
        "recover_time:int last_eval_time:int tags:text"
    ),
    "target": (
        "id:id group_id:int cluster:text ident:text note:text tags:text update_at:int"
    ),
    "task_tpl": (
        "id:id group_id:int title:text batch:int tolerance:int timeout:int pause:text "
        "script:text args:text tags:text account:text create_at:int create_by:text "
        "update_at:int update_by:text"
    ),
    "task_tpl_host": "ii:id id:int host:text",
    "task_record": (
        "id:id group_id:int ibex_address:text ibex_auth_user:text ibex_auth_pass:text "
        "title:text account:text batch:int tolerance:int timeout:int pause:text "
        "script:text args:text create_at:int create_by:text is_done:int"
    ),
}


class ModelError(Exception):
    """Raised when a model operation or a storage call fails."""


@dataclass
class Statistics:
    """Row count and latest update time of a table."""

    total: int = 0
    last_updated: int = 0


def is_dangerous(text: str) -> bool:
    """Tell whether a string holds characters unsafe for names and titles."""
    return any(fragment in text for fragment in _DANGEROUS_FRAGMENTS)


def _where(where: str) -> str:
    where = where.strip()
    return f" WHERE {where}" if where else ""


def _expand(sql: str, params: Sequence[Any]) -> tuple[str, list[Any]]:
    """Expand list parameters into "(?, ?, ...)" groups."""
    parts = sql.split("?")
    params = list(params)
    if len(parts) - 1 != len(params):
        raise ModelError(
            f"statement has {len(parts) - 1} placeholders but {len(params)} arguments"
        )
    pieces = [parts[0]]
    flat: list[Any] = []
    for param, tail in zip(params, parts[1:]):
        if isinstance(param, (list, tuple, set, frozenset)):
            items = list(param)
            pieces.append("(" + ", ".join("?" * len(items)) + ")" if items else "(NULL)")
            flat.extend(items)
        else:
            pieces.append("?")
            flat.append(param)
        pieces.append(tail)
    return "".join(pieces), flat


class Database:
    """A SQLite database holding every model table."""

    def __init__(self, path: str = ":memory:") -> None:
        self._conn = sqlite3.connect(path, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._depth = 0
        for table, spec in _SCHEMA.items():
            columns = ", ".join(
                f"{name} {_TYPES[kind]}"
                for name, kind in (column.split(":") for column in spec.split())
            )
            self._conn.execute(f"CREATE TABLE IF NOT EXISTS {table} ({columns})")

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._conn.close()

    def _run(self, sql: str, params: Sequence[Any]) -> sqlite3.Cursor:
        try:
            return self._conn.execute(sql, params)
        except sqlite3.Error as exc:
            raise ModelError(str(exc)) from exc

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a statement and return the number of rows it touched."""
        sql, flat = _expand(sql, params)
        return self._run(sql, flat).rowcount

    def query(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Run a query and return its rows as dictionaries."""
        sql, flat = _expand(sql, params)
        return [dict(row) for row in self._run(sql, flat).fetchall()]

    def count(self, table: str, where: str = "", params: Sequence[Any] = ()) -> int:
        rows = self.query(f"SELECT COUNT(*) AS cnt FROM {table}{_where(where)}", params)
        return rows[0]["cnt"]

    def exists(self, table: str, where: str = "", params: Sequence[Any] = ()) -> bool:
        return self.count(table, where, params) > 0

    def insert(self, table: str, values: Mapping[str, Any]) -> int:
        """Insert one row and return its rowid."""
        columns = list(values)
        if columns:
            sql = (
                f"INSERT INTO {table} ({', '.join(columns)}) "
                f"VALUES ({', '.join('?' * len(columns))})"
            )
        else:
            sql = f"INSERT INTO {table} DEFAULT VALUES"
        return self._run(sql, [values[c] for c in columns]).lastrowid

    def update(
        self,
        table: str,
        values: Mapping[str, Any],
        where: str,
        params: Sequence[Any] = (),
    ) -> int:
        """Update matching rows; a where clause is required."""
        if not where.strip():
            raise ModelError("update without where clause")
        if not values:
            return 0
        assignments = ", ".join(f"{column} = ?" for column in values)
        return self.execute(
            f"UPDATE {table} SET {assignments}{_where(where)}",
            [*values.values(), *params],
        )

    def delete(self, table: str, where: str, params: Sequence[Any] = ()) -> int:
        """Delete matching rows; a where clause is required."""
        if not where.strip():
            raise ModelError("delete without where clause")
        return self.execute(f"DELETE FROM {table}{_where(where)}", params)

    @contextmanager
    def transaction(self) -> Iterator[Database]:
        """Group statements; everything is undone if the block raises."""
        savepoint = f"sp{self._depth}"
        self._run("BEGIN" if self._depth == 0 else f"SAVEPOINT {savepoint}", ())
        self._depth += 1
        try:
            yield self
        except BaseException:
            self._depth -= 1
            if self._depth == 0:
                self._run("ROLLBACK", ())
            else:
                self._run(f"ROLLBACK TO {savepoint}", ())
                self._run(f"RELEASE {savepoint}", ())
            raise
        self._depth -= 1
        self._run("COMMIT" if self._depth == 0 else f"RELEASE {savepoint}", ())

    def statistics(
        self,
        table: str,
        column: str,
        where: str = "",
        params: Sequence[Any] = (),
    ) -> Statistics:
        """Count rows and find the largest value of a time column."""
        rows = self.query(
            f"SELECT COUNT(*) AS total, MAX({column}) AS last_updated "
            f"FROM {table}{_where(where)}",
            params,
        )
        row = rows[0]
        return Statistics(total=row["total"], last_updated=row["last_updated"] or 0)