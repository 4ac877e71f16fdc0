"""Append-only audit trail of risk classifications."""

from __future__ import annotations

from collections.abc import Iterator

from reactloop.core.models import AuditEntry


class AuditTrail:
    """Entries are only ever appended. Callers read the most recent N."""

    def __init__(self) -> None:
        self._entries: list[AuditEntry] = []

    def append(self, entry: AuditEntry) -> None:
        self._entries.append(entry)

    def recent(self, limit: int = 100) -> list[AuditEntry]:
        if limit <= 0:
            return []
        return self._entries[-limit:]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[AuditEntry]:
        return iter(list(self._entries))
