"""Live admin audit feed."""

from __future__ import annotations

import logging

from .connection import ConnectionManager
from .const import AUDIT_LOG_MAX_ENTRIES
from .models import AdminUpdate, AuditEntry

_LOGGER = logging.getLogger(__name__)


class AuditLog:
    """Newest-first record of admin actions pushed by the authority."""

    def __init__(
        self,
        connection: ConnectionManager,
        *,
        max_entries: int = AUDIT_LOG_MAX_ENTRIES,
    ) -> None:
        self._connection = connection
        self._max_entries = max(1, max_entries)
        self._entries: list[AuditEntry] = []
        self._attached = False

    @property
    def entries(self) -> list[AuditEntry]:
        return list(self._entries)

    def attach(self) -> None:
        if self._attached:
            return
        self._connection.on(AdminUpdate, self._on_admin_update)
        self._attached = True

    def detach(self) -> None:
        if not self._attached:
            return
        self._connection.off(AdminUpdate, self._on_admin_update)
        self._attached = False

    def clear(self) -> None:
        self._entries = []

    def _on_admin_update(self, message: AdminUpdate) -> None:
        entry = message.entry
        _LOGGER.debug(
            "Admin %s %s %s %s",
            entry.admin_id,
            entry.action,
            entry.target_type,
            entry.target_id,
        )
        self._entries.insert(0, entry)
        del self._entries[self._max_entries :]
