"""Audit log service: records admin actions without ever failing the caller."""

from __future__ import annotations

from typing import Any

import structlog

from psychic_homily.interfaces.report_provider import IAuditLogProvider
from psychic_homily.models.report import AuditLogEntry

logger = structlog.get_logger(logger_name=__name__)


class AuditLogService:
    """Thin wrapper over IAuditLogProvider.

    ``log_action`` swallows and logs storage failures: an approval that
    succeeded must not be reported as failed because its audit row could
    not be written.
    """

    def __init__(self, audit_store: IAuditLogProvider) -> None:
        self._audit_store = audit_store

    async def log_action(
        self,
        actor_id: int | None,
        action: str,
        entity_type: str,
        entity_id: int,
        metadata: dict[str, Any] | None = None,
    ) -> AuditLogEntry | None:
        try:
            return await self._audit_store.log_action(
                actor_id, action, entity_type, entity_id, metadata
            )
        except Exception as exc:
            logger.error(
                "audit_log_write_failed",
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                error=str(exc),
            )
            return None

    async def get_audit_logs(
        self,
        limit: int = 50,
        offset: int = 0,
        *,
        entity_type: str | None = None,
        action: str | None = None,
        actor_id: int | None = None,
    ) -> tuple[list[AuditLogEntry], int]:
        return await self._audit_store.list_actions(
            limit=max(1, min(limit, 200)),
            offset=max(0, offset),
            entity_type=entity_type,
            action=action,
            actor_id=actor_id,
        )
