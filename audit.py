"""
Audit logging: records administrative and grading events.

Events are appended to the audit_log collection and to structured logging.
"""

from __future__ import annotations

import logging

from flask import has_request_context, request

from models import AuditEntry, new_id, now_iso

logger = logging.getLogger(__name__)


def log_event(action: str, user_id: str | None = None, detail: str = "", store=None) -> None:
    """Append an audit entry and emit a structured log line."""
    ip = (request.remote_addr or "") if has_request_context() else ""

    try:
        if store is None:
            from helpers import get_store
            store = get_store()
        store.audit_log.add(AuditEntry(
            id=new_id("audit"),
            action=action,
            user_id=user_id,
            detail=detail,
            created_at=now_iso(),
        ))
    except Exception:
        logger.exception("audit: could not persist %s", action)  # never break the request

    logger.info("audit: %s user_id=%s detail=%s ip=%s", action, user_id, detail, ip)
