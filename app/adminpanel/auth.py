from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, g, jsonify, redirect, request, session, url_for
from werkzeug.security import check_password_hash

from app.adminpanel.audit import record_event
from app.adminpanel.db import db_session
from app.adminpanel.models import User
from app.adminpanel.security import ensure_csrf_token
from app.adminpanel.utils import request_data

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _login_attempts[ip] = [t for t in _login_attempts[ip] if t > cutoff]
    return len(_login_attempts[ip]) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def load_current_user() -> None:
    """
    Loads g.current_user (the request principal) from the signed session cookie.
    Also assigns a per-request request_id for audit/log correlation.
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    g.current_user = None
    if request.path.startswith(("/static/", "/health", "/healthz")):
        return

    user_id = session.get("user_id")
    if not user_id:
        return

    try:
        user = db_session().get(User, int(user_id))
    except Exception as e:
        current_app.logger.error("load_current_user DB error (clearing session): %s", e)
        session.pop("user_id", None)
        return
    if not user or not user.is_active:
        session.pop("user_id", None)
        return
    g.current_user = user


@bp.get("/login")
def login_get():
    return jsonify({"login_required": True, "next": (request.args.get("next") or "").strip()}), 401


@bp.get("/csrf")
def csrf_token():
    return jsonify({"csrf_token": ensure_csrf_token()})


@bp.post("/login")
def login_post():
    data = request_data()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    nxt = (data.get("next") or "").strip()
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        return jsonify({"error": "Too many login attempts. Please wait 5 minutes."}), 429

    _record_attempt(ip)

    s = db_session()
    user = s.query(User).filter(User.email == email).one_or_none()
    if not user or not user.is_active or not check_password_hash(user.password_hash, password):
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email,
            reason="Invalid credentials",
        )
        s.commit()
        current_app.logger.info("Failed login for %s (request_id=%s)", email, getattr(g, "request_id", None))
        return jsonify({"error": "Invalid credentials."}), 401

    session["user_id"] = user.id
    _login_attempts[ip].clear()
    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
    s.commit()
    # Only local "next" paths, to avoid open redirects.
    if nxt.startswith("/") and not nxt.startswith("//"):
        return redirect(nxt)
    return redirect(url_for("admin.index"))


@bp.get("/logout")
def logout():
    user = getattr(g, "current_user", None)
    if user:
        s = db_session()
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=str(user.id))
        s.commit()
    session.pop("user_id", None)
    return redirect(url_for("routes.index"))
