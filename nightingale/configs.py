"""Key/value settings and password hashing."""

from __future__ import annotations

import hashlib
import os
import secrets
import socket
import string
import time

from nightingale.db import Database, ModelError

_SALT_SEPARATOR = "<-*Uk30^96eY*->"


def _md5(text: str) -> str:
    return hashlib.md5(text.encode()).hexdigest()


def configs_get(db: Database, ckey: str) -> str:
    """Return the value stored for a key, or "" when there is none."""
    try:
        rows = db.query("SELECT cval FROM configs WHERE ckey = ?", (ckey,))
    except ModelError as exc:
        raise ModelError(f"failed to query configs: {exc}") from exc
    return rows[0]["cval"] if rows else ""


def configs_set(db: Database, ckey: str, cval: str) -> None:
    """Insert or update the value of a key."""
    try:
        num = db.count("configs", "ckey = ?", (ckey,))
    except ModelError as exc:
        raise ModelError(f"failed to count configs: {exc}") from exc
    if num == 0:
        db.insert("configs", {"ckey": ckey, "cval": cval})
    else:
        db.update("configs", {"cval": cval}, "ckey = ?", (ckey,))


def configs_gets(db: Database, ckeys: list[str]) -> dict[str, str]:
    """Return the values of several keys; missing keys map to ""."""
    try:
        rows = db.query("SELECT ckey, cval FROM configs WHERE ckey in ?", (list(ckeys),))
    except ModelError as exc:
        raise ModelError(f"failed to gets configs: {exc}") from exc
    values = dict.fromkeys(ckeys, "")
    values.update((row["ckey"], row["cval"]) for row in rows)
    return values


def init_salt(db: Database) -> str:
    """Create the password salt if it does not exist yet; return it."""
    salt = configs_get(db, "salt")
    if salt:
        return salt
    letters = "".join(secrets.choice(string.ascii_letters) for _ in range(6))
    salt = _md5(f"{socket.gethostname()}{os.getpid()}{time.time_ns()}{letters}")
    configs_set(db, "salt", salt)
    return salt


def crypto_pass(db: Database, raw: str) -> str:
    """Hash a password with the stored salt."""
    salt = configs_get(db, "salt")
    return _md5(salt + _SALT_SEPARATOR + raw)