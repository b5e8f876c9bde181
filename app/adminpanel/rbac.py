from __future__ import annotations

import logging
import re
from collections.abc import Callable
from enum import IntEnum
from functools import wraps
from typing import Any

from flask import g, redirect, request, url_for
from sqlalchemy.orm import Session

from app.adminpanel.errors import PermissionDenied
from app.adminpanel.models import PermissionRule, Role, User

logger = logging.getLogger(__name__)

ANONYMOUS_ROLE = "anonymous"
WILDCARD = "*"

MODULE_COMPONENT = "AdminPanel::"
CATEGORY_COMPONENT = "AdminPanel::Category"


class AccessLevel(IntEnum):
    NONE = 0
    READ = 200
    ADD = 300
    EDIT = 500
    DELETE = 700
    ADMIN = 800


class PermissionOracle:
    """Capability check: may `principal` act at `level` on (component, instance)?"""

    def check(self, principal: Any, component: str, instance: str, level: AccessLevel) -> bool:
        raise NotImplementedError


def _pattern_matches(pattern: str, value: str) -> bool:
    try:
        return re.fullmatch(pattern, value) is not None
    except re.error:
        logger.warning("Ignoring permission rule with invalid pattern %r", pattern)
        return False


class RolePermissionOracle(PermissionOracle):
    """
    Evaluates the ordered PermissionRule rows attached to a principal's roles.

    Anonymous (or inactive) principals are evaluated against the rules of the
    `anonymous` role, when one exists.
    """

    def __init__(self, s: Session) -> None:
        self._s = s
        self._cache: dict[int | None, list[PermissionRule]] = {}

    def _rules_for(self, principal: User | None) -> list[PermissionRule]:
        key = principal.id if principal is not None and principal.is_active else None
        if key in self._cache:
            return self._cache[key]
        if key is None:
            role = self._s.query(Role).filter(Role.key == ANONYMOUS_ROLE).one_or_none()
            roles = [role] if role else []
        else:
            roles = list(principal.roles or [])
        rules = sorted((r for role in roles for r in role.rules), key=lambda r: (r.sequence, r.id))
        self._cache[key] = rules
        return rules

    def level_for(self, principal: User | None, component: str, instance: str) -> int:
        for rule in self._rules_for(principal):
            if _pattern_matches(rule.component, component) and _pattern_matches(rule.instance, instance):
                return rule.level
        return AccessLevel.NONE

    def check(self, principal: Any, component: str, instance: str, level: AccessLevel) -> bool:
        return self.level_for(principal, component, instance) >= level


def oracle_for_request() -> RolePermissionOracle:
    """One oracle per request so rule lookups are shared across checks."""
    oracle = getattr(g, "permission_oracle", None)
    if oracle is None:
        from app.adminpanel.db import db_session

        oracle = RolePermissionOracle(db_session())
        g.permission_oracle = oracle
    return oracle


def user_has_permission(user: User | None, component: str, instance: str, level: AccessLevel) -> bool:
    return oracle_for_request().check(user, component, instance, level)


def _redirect_to_login():
    nxt = request.full_path or request.path
    # Avoid trailing '?' from full_path when there is no query string.
    if nxt.endswith("?"):
        nxt = nxt[:-1]
    return redirect(url_for("auth.login_get", next=nxt))


def login_required(fn: Callable[..., Any]) -> Callable[..., Any]:
    """For views whose permission checks happen inside the operation itself."""

    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        user: User | None = getattr(g, "current_user", None)
        if not user or not user.is_active:
            return _redirect_to_login()
        return fn(*args, **kwargs)

    return wrapped


def require_permission(component: str, instance: str, level: AccessLevel) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            # Unauthenticated -> login, authenticated but unauthorized -> 403.
            if not user or not user.is_active:
                return _redirect_to_login()
            if not user_has_permission(user, component, instance, level):
                g.missing_permission = f"{component} {instance} {level.name}"
                raise PermissionDenied()
            return fn(*args, **kwargs)

        return wrapped

    return decorator
