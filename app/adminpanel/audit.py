from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from flask import g, has_app_context, has_request_context, request
from sqlalchemy.orm import Session

from app.adminpanel.models import AuditEvent, User

if TYPE_CHECKING:
    from app.adminpanel.modules.categories.store import Category
    from app.adminpanel.modules.settings.service import ConfigUpdateResult

CATEGORY_ACTIONS = ("create", "edit", "delete")
CONFIG_UPDATE = "config.update"


def _request_id(explicit: str | None) -> str | None:
    if explicit:
        return explicit
    return getattr(g, "request_id", None) if has_app_context() else None


def record_event(
    s: Session,
    *,
    actor: User | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    """
    Adds one AuditEvent to the session; the caller commits.

    Works without a request (scripts, seeding): request id and client IP are
    then left empty unless passed in.
    """
    ev = AuditEvent(
        request_id=_request_id(request_id),
        client_ip=request.remote_addr if has_request_context() else None,
        actor_user_id=actor.id if actor else None,
        actor_user_email=actor.email if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
        metadata_json=json.dumps(metadata, sort_keys=True, default=str) if metadata else None,
    )
    s.add(ev)
    return ev


def record_category_event(s: Session, actor: User | None, verb: str, category: "Category") -> AuditEvent:
    """`category.create` / `category.edit` / `category.delete` for one admin category."""
    if verb not in CATEGORY_ACTIONS:
        raise ValueError(f"Unknown category audit action: {verb}")
    return record_event(
        s,
        actor=actor,
        action=f"category.{verb}",
        entity_type="AdminCategory",
        entity_id=str(category.id),
        metadata={"name": category.name},
    )


def record_config_update(s: Session, actor: User | None, result: "ConfigUpdateResult") -> AuditEvent:
    return record_event(
        s,
        actor=actor,
        action=CONFIG_UPDATE,
        entity_type="ModuleVar",
        entity_id="AdminPanel",
        metadata={
            "config": result.config.to_dict(),
            "skipped_modules": sorted(w.module for w in result.warnings),
        },
    )
