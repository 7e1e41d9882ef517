"""Audit logging helper."""

from __future__ import annotations

import uuid
from typing import Any

from flask import has_request_context, request

from licencias.extensions import db
from licencias.models import AuditLog


def log_audit(
    action: str,
    entity_type: str,
    entity_id: uuid.UUID | None,
    payload: dict[str, Any] | None = None,
) -> None:
    body = dict(payload or {})
    actor = request.headers.get("X-Actor") if has_request_context() else None
    if actor:
        body.setdefault("actor", actor.strip()[:128])

    db.session.add(
        AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            payload_json=body,
        )
    )
