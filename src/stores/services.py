"""Service / helper functions for the stores app."""
from __future__ import annotations

from typing import Any

from django.contrib.auth import get_user_model

from stores.models import AuditLog, Store

User = get_user_model()


def create_audit_log(
    actor: User | None,
    store: Store | None,
    action: str,
    entity_type: str,
    entity_id: str,
    before: dict[str, Any] | None = None,
    after: dict[str, Any] | None = None,
    ip: str | None = None,
) -> AuditLog:
    """Create and return a new :class:`~stores.models.AuditLog` entry."""
    return AuditLog.objects.create(
        actor=actor,
        store=store,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        before_json=before,
        after_json=after,
        ip_address=ip,
    )


def get_active_stores(store_id=None, store_code: str = ""):
    """Return active stores, optionally narrowed to one id or code."""
    qs = Store.objects.filter(is_active=True).select_related("enterprise")
    if store_id:
        qs = qs.filter(pk=store_id)
    if store_code:
        qs = qs.filter(code=store_code)
    return qs.order_by("name")
