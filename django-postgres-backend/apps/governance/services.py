from __future__ import annotations

from django.db import transaction

from .models import AuditLog
from .middleware import get_request_id


@transaction.atomic
def audit(
    actor,
    table: str,
    row_id: int | str,
    action: str,
    before: dict | None = None,
    after: dict | None = None,
    meta: dict | None = None,
) -> AuditLog:
    meta = meta or {}
    return AuditLog.objects.create(
        actor_user=actor if getattr(actor, "id", None) else None,
        action=action,
        table_name=table,
        record_id=str(row_id)[:64],
        before_json=before,
        after_json=after,
        ip=meta.get("ip", ""),
        user_agent=meta.get("user_agent", ""),
        request_id=get_request_id("") or "",
    )
