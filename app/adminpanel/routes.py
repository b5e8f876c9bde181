from flask import Blueprint, current_app, redirect, url_for

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    return redirect(url_for("admin.index"))


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True, "version": current_app.config.get("APP_VERSION")}


@bp.get("/healthz")
def healthz():
    """
    Fast liveness probe. No DB access.
    """
    return "ok", 200
