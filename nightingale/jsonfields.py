"""Raw JSON values stored in database columns."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from nightingale.db import ModelError


@dataclass(frozen=True)
class _RawJSON:
    raw: bytes = b""

    def __post_init__(self) -> None:
        if isinstance(self.raw, str):
            object.__setattr__(self, "raw", self.raw.encode())
        elif not isinstance(self.raw, bytes):
            object.__setattr__(self, "raw", bytes(self.raw))

    @classmethod
    def _decode(cls, value: Any, accepts_str: bool):
        if value is None:
            return cls()
        if isinstance(value, (bytes, bytearray, memoryview)):
            data = bytes(value)
        elif isinstance(value, str) and accepts_str:
            data = value.encode()
        else:
            raise ModelError(f"Failed to unmarshal JSONB value:{value}")
        try:
            json.loads(data)
        except ValueError as exc:
            raise ModelError(f"invalid JSON value: {exc}") from exc
        return cls(data)

    def _stored(self) -> bytes | None:
        return self.raw or None

    def _rendered(self, empty: bytes) -> bytes:
        if not self.raw or self.raw.startswith(b'"'):
            return empty
        return self.raw


class JSONObj(_RawJSON):
    """A raw JSON object; accepts bytes or text from the database."""

    @classmethod
    def from_db(cls, value: Any) -> "JSONObj":
        """Build a value from what the database returned, checking it is JSON."""
        return cls._decode(value, accepts_str=True)

    def to_db(self) -> bytes | None:
        """Value written to the database; None when empty."""
        return self._stored()

    def to_json(self) -> bytes:
        """JSON text sent to clients; "{}" for empty or string values."""
        return self._rendered(b"{}")


class JSONArr(_RawJSON):
    """A raw JSON array; accepts only bytes from the database."""

    @classmethod
    def from_db(cls, value: Any) -> "JSONArr":
        """Build a value from what the database returned, checking it is JSON."""
        return cls._decode(value, accepts_str=False)

    def to_db(self) -> bytes | None:
        """Value written to the database; None when empty."""
        return self._stored()

    def to_json(self) -> bytes:
        """JSON text sent to clients; "[]" for empty or string values."""
        return self._rendered(b"[]")